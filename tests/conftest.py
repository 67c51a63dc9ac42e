from unittest.mock import AsyncMock, MagicMock

import pytest


# ── Patch settings before any other import ──────────────────────────────────
@pytest.fixture(autouse=True)
def _patch_settings(monkeypatch):
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret-key-for-unit-tests-must-be-32-chars")
    from storefront.core.config import settings
    monkeypatch.setattr(settings, "jwt_secret_key", "test-secret-key-for-unit-tests-must-be-32-chars")
    monkeypatch.setattr(settings, "variant_max_combinations", 50)
    monkeypatch.setattr(settings, "sku_prefix", "VAR")
    monkeypatch.setattr(settings, "sku_word_prefix_length", 3)
    monkeypatch.setattr(settings, "deactivate_variants_on_value_deactivation", False)


@pytest.fixture
def mock_db():
    """Create a mock async database session."""
    db = AsyncMock()
    db.flush = AsyncMock()
    db.add = MagicMock()
    db.delete = AsyncMock()
    db.get = AsyncMock(return_value=None)
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    # Savepoints: usable as ``async with db.begin_nested():``
    db.begin_nested = MagicMock()
    return db
