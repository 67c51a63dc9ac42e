"""Tests for the variant record lifecycle and bulk creation."""
import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from storefront.core.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    VariantPersistenceError,
    VariantValidationError,
)
from storefront.core.sku import MAX_SKU_LENGTH
from storefront.models.orm.variant import ProductVariant
from storefront.services import variant_service
from tests.factories import make_attribute, make_product, make_variant, value_named

REPO = "storefront.services.variant_service"


@pytest.fixture
def size():
    return make_attribute(name="size", values=["S", "M", "L"])


@pytest.fixture
def color():
    return make_attribute(name="color", values=["Red", "Blue"], display_order=1)


@pytest.fixture
def product(mock_db):
    product = make_product()
    mock_db.get.return_value = product
    return product


@pytest.fixture
def repos():
    """Patch the repository calls the lifecycle goes through."""
    with patch(f"{REPO}.attribute_repo.get_values_by_ids", new_callable=AsyncMock) as values, \
         patch(f"{REPO}.variant_repo.list_combinations", new_callable=AsyncMock) as combos, \
         patch(f"{REPO}.variant_repo.sku_exists", new_callable=AsyncMock) as sku_exists:
        combos.return_value = {}
        sku_exists.return_value = False
        yield {"values": values, "combos": combos, "sku_exists": sku_exists}


class TestCreateVariant:
    @pytest.mark.asyncio
    async def test_creates_variant_with_assignments(self, mock_db, product, repos, size, color):
        small, red = value_named(size, "S"), value_named(color, "Red")
        repos["values"].return_value = [red, small]

        variant = await variant_service.create_variant(
            mock_db, product.id, price_cents=1500, stock_quantity=4,
            attribute_value_ids=[red.id, small.id], variant_name="Small Red",
        )

        assert isinstance(variant, ProductVariant)
        assert variant.product_id == product.id
        assert variant.sku.startswith("VAR-SMA-RED-")
        assert sorted(variant.attribute_value_ids) == sorted([small.id, red.id])
        assert {a.attribute_id for a in variant.assignments} == {size.id, color.id}
        assert variant.attributes_display == "S • Red"
        assert variant.combination_key == ",".join(sorted([str(small.id), str(red.id)]))
        mock_db.add.assert_called_once_with(variant)
        mock_db.begin_nested.assert_called_once()
        mock_db.refresh.assert_awaited_once_with(variant, attribute_names=["created_at", "updated_at"])

    @pytest.mark.asyncio
    async def test_explicit_display_text_kept(self, mock_db, product, repos):
        variant = await variant_service.create_variant(
            mock_db, product.id, price_cents=100, sku="PLAIN-1", attributes_display="Plain",
        )
        assert variant.sku == "PLAIN-1"
        assert variant.attributes_display == "Plain"
        assert variant.combination_key is None

    @pytest.mark.asyncio
    async def test_missing_product(self, mock_db, repos):
        with pytest.raises(NotFoundError):
            await variant_service.create_variant(mock_db, uuid.uuid4(), price_cents=100)

    @pytest.mark.asyncio
    async def test_product_without_variants(self, mock_db, repos):
        mock_db.get.return_value = make_product(has_variants=False)
        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.create_variant(mock_db, uuid.uuid4(), price_cents=100)
        assert exc_info.value.reason == "variants_not_supported"

    @pytest.mark.asyncio
    async def test_missing_price(self, mock_db, product, repos):
        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.create_variant(mock_db, product.id, price_cents=None)
        assert exc_info.value.reason == "missing_field"

    @pytest.mark.asyncio
    async def test_negative_stock(self, mock_db, product, repos):
        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.create_variant(
                mock_db, product.id, price_cents=100, stock_quantity=-1,
            )
        assert exc_info.value.reason == "negative_value"
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_reordered_combination_rejected(self, mock_db, product, repos, size, color):
        small, red = value_named(size, "S"), value_named(color, "Red")
        existing = make_variant(product, [small, red])
        repos["values"].return_value = [red, small]
        repos["combos"].return_value = {existing.id: [small.id, red.id]}

        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.create_variant(
                mock_db, product.id, price_cents=100, attribute_value_ids=[red.id, small.id],
            )
        assert exc_info.value.reason == "duplicate_combination"
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_two_values_of_one_attribute_rejected(self, mock_db, product, repos, color):
        red, blue = value_named(color, "Red"), value_named(color, "Blue")
        repos["values"].return_value = [red, blue]

        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.create_variant(
                mock_db, product.id, price_cents=100, attribute_value_ids=[red.id, blue.id],
            )
        assert exc_info.value.reason == "duplicate_attribute"

    @pytest.mark.asyncio
    async def test_value_of_inactive_attribute_rejected(self, mock_db, product, repos, color):
        color.is_active = False
        red = value_named(color, "Red")
        repos["values"].return_value = [red]

        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.create_variant(
                mock_db, product.id, price_cents=100, attribute_value_ids=[red.id],
            )
        assert exc_info.value.reason == "invalid_attribute_value"
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_sku_rejected(self, mock_db, product, repos):
        repos["sku_exists"].return_value = True
        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.create_variant(mock_db, product.id, price_cents=100, sku="TAKEN")
        assert exc_info.value.reason == "duplicate_sku"
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_constraint_translated(self, mock_db, product, repos):
        mock_db.flush.side_effect = IntegrityError(
            "INSERT", {}, Exception('unique constraint "uq_variants_sku"')
        )
        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.create_variant(mock_db, product.id, price_cents=100, sku="RACE")
        assert exc_info.value.reason == "duplicate_sku"

    @pytest.mark.asyncio
    async def test_persistence_failure_surfaces_generic_error(self, mock_db, product, repos):
        mock_db.flush.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))
        with pytest.raises(VariantPersistenceError) as exc_info:
            await variant_service.create_variant(mock_db, product.id, price_cents=100, sku="X-1")
        assert exc_info.value.status_code == 500
        mock_db.refresh.assert_not_awaited()


class TestUpdateVariant:
    @pytest.mark.asyncio
    async def test_replaces_assignments(self, mock_db, product, repos, size, color):
        small, large, red = value_named(size, "S"), value_named(size, "L"), value_named(color, "Red")
        variant = make_variant(product, [small, red], price_cents=1000)
        repos["values"].return_value = [large, red]

        with patch(f"{REPO}.variant_repo.get_by_id", new_callable=AsyncMock, return_value=variant):
            updated, changes = await variant_service.update_variant(
                mock_db, product.id, variant.id,
                {"price_cents": 1200, "attribute_value_ids": [large.id, red.id]},
            )

        assert updated is variant
        assert variant.price_cents == 1200
        assert sorted(variant.attribute_value_ids) == sorted([large.id, red.id])
        assert variant.attributes_display == "L • Red"
        assert set(changes) == {"price_cents", "attribute_value_ids"}
        repos["combos"].assert_awaited_once_with(mock_db, product.id, exclude_variant_id=variant.id)
        assert mock_db.flush.await_count == 2

    @pytest.mark.asyncio
    async def test_same_set_in_new_order_is_not_revalidated(self, mock_db, product, repos, size, color):
        small, red = value_named(size, "S"), value_named(color, "Red")
        variant = make_variant(product, [small, red])

        with patch(f"{REPO}.variant_repo.get_by_id", new_callable=AsyncMock, return_value=variant):
            _, changes = await variant_service.update_variant(
                mock_db, product.id, variant.id, {"attribute_value_ids": [red.id, small.id]},
            )

        assert changes == {}
        repos["values"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_collision_with_sibling_rejected(self, mock_db, product, repos, size, color):
        small, large, red = value_named(size, "S"), value_named(size, "L"), value_named(color, "Red")
        variant = make_variant(product, [small, red])
        sibling = make_variant(product, [large, red])
        repos["values"].return_value = [large, red]
        repos["combos"].return_value = {sibling.id: [red.id, large.id]}

        with patch(f"{REPO}.variant_repo.get_by_id", new_callable=AsyncMock, return_value=variant):
            with pytest.raises(VariantValidationError) as exc_info:
                await variant_service.update_variant(
                    mock_db, product.id, variant.id, {"attribute_value_ids": [large.id, red.id]},
                )
        assert exc_info.value.reason == "duplicate_combination"
        assert sorted(variant.attribute_value_ids) == sorted([small.id, red.id])

    @pytest.mark.asyncio
    async def test_sku_change_checked_against_others(self, mock_db, product, repos):
        variant = make_variant(product, sku="OLD")
        repos["sku_exists"].return_value = True

        with patch(f"{REPO}.variant_repo.get_by_id", new_callable=AsyncMock, return_value=variant):
            with pytest.raises(VariantValidationError) as exc_info:
                await variant_service.update_variant(mock_db, product.id, variant.id, {"sku": "NEW"})
        assert exc_info.value.reason == "duplicate_sku"
        repos["sku_exists"].assert_awaited_once_with(mock_db, "NEW", exclude_variant_id=variant.id)

    @pytest.mark.asyncio
    async def test_stock_and_activation_edits(self, mock_db, product, repos):
        variant = make_variant(product, stock_quantity=5)

        with patch(f"{REPO}.variant_repo.get_by_id", new_callable=AsyncMock, return_value=variant):
            _, changes = await variant_service.update_variant(
                mock_db, product.id, variant.id,
                {"stock_quantity": 0, "is_active": False, "display_order": None},
            )

        assert changes == {
            "stock_quantity": {"old": 5, "new": 0},
            "is_active": {"old": True, "new": False},
        }
        assert variant.display_order == 0

    @pytest.mark.asyncio
    async def test_missing_variant(self, mock_db, product, repos):
        with patch(f"{REPO}.variant_repo.get_by_id", new_callable=AsyncMock, return_value=None):
            with pytest.raises(NotFoundError):
                await variant_service.update_variant(mock_db, product.id, uuid.uuid4(), {})


class TestDeleteVariant:
    @pytest.mark.asyncio
    @patch(f"{REPO}.variant_repo.delete_variant", new_callable=AsyncMock)
    @patch(f"{REPO}.variant_repo.has_order_references", new_callable=AsyncMock)
    @patch(f"{REPO}.variant_repo.get_by_id", new_callable=AsyncMock)
    async def test_referenced_variant_is_kept(self, mock_get, mock_refs, mock_delete, mock_db, product):
        mock_get.return_value = make_variant(product)
        mock_refs.return_value = True

        with pytest.raises(ConflictError):
            await variant_service.delete_variant(mock_db, product.id, mock_get.return_value.id)
        mock_delete.assert_not_awaited()

    @pytest.mark.asyncio
    @patch(f"{REPO}.variant_repo.delete_variant", new_callable=AsyncMock)
    @patch(f"{REPO}.variant_repo.has_order_references", new_callable=AsyncMock)
    @patch(f"{REPO}.variant_repo.get_by_id", new_callable=AsyncMock)
    async def test_unreferenced_variant_deleted(self, mock_get, mock_refs, mock_delete, mock_db, product):
        variant = make_variant(product, sku="GONE-1")
        mock_get.return_value = variant
        mock_refs.return_value = False

        sku = await variant_service.delete_variant(mock_db, product.id, variant.id)
        assert sku == "GONE-1"
        mock_delete.assert_awaited_once_with(mock_db, variant.id)


class TestPreviewCombinations:
    @pytest.mark.asyncio
    async def test_flags_existing_combinations(self, mock_db, product, repos, size, color):
        small, medium, red = value_named(size, "S"), value_named(size, "M"), value_named(color, "Red")
        existing = make_variant(product, [red, small])
        repos["values"].return_value = [small, medium, red]
        repos["combos"].return_value = {existing.id: [red.id, small.id]}

        candidates = await variant_service.preview_combinations(
            mock_db, product.id, {size.id: [small.id, medium.id], color.id: [red.id]},
        )

        by_name = {c["display_name"]: c for c in candidates}
        assert set(by_name) == {"S + Red", "M + Red"}
        assert by_name["S + Red"]["exists"] is True
        assert by_name["S + Red"]["existing_variant_id"] == existing.id
        assert by_name["M + Red"]["exists"] is False

    @pytest.mark.asyncio
    async def test_value_listed_under_wrong_attribute(self, mock_db, product, repos, size, color):
        small, red = value_named(size, "S"), value_named(color, "Red")
        repos["values"].return_value = [small, red]

        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.preview_combinations(
                mock_db, product.id, {size.id: [small.id, red.id]},
            )
        assert exc_info.value.reason == "invalid_attribute_value"

    @pytest.mark.asyncio
    async def test_inactive_attribute_not_expanded(self, mock_db, product, repos, size):
        size.is_active = False
        small, medium = value_named(size, "S"), value_named(size, "M")
        repos["values"].return_value = [small, medium]

        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.preview_combinations(
                mock_db, product.id, {size.id: [small.id, medium.id]},
            )
        assert exc_info.value.reason == "invalid_attribute_value"
        repos["combos"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cap_checked_before_lookups(self, mock_db, product, repos, size, color, monkeypatch):
        from storefront.core.config import settings
        monkeypatch.setattr(settings, "variant_max_combinations", 4)

        selections = {size.id: [v.id for v in size.values], color.id: [v.id for v in color.values]}
        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.preview_combinations(mock_db, product.id, selections)
        assert exc_info.value.reason == "too_many_combinations"
        repos["values"].assert_not_awaited()


class TestCreateProductWithVariants:
    @pytest.fixture(autouse=True)
    def _free_slug(self):
        with patch(f"{REPO}.product_service.slug_exists", new_callable=AsyncMock, return_value=False):
            yield

    @pytest.mark.asyncio
    async def test_partial_success(self, mock_db, repos, size, color):
        small, medium, red = value_named(size, "S"), value_named(size, "M"), value_named(color, "Red")
        repos["values"].return_value = [small, medium, red]
        specs = [
            {"price_cents": 1000, "attribute_value_ids": [small.id, red.id]},
            {"price_cents": 1100, "attribute_value_ids": [medium.id, red.id]},
            {"price_cents": 1200, "attribute_value_ids": [red.id, small.id]},
        ]

        product, created, errors = await variant_service.create_product_with_variants(
            mock_db, product={"name": "Water Bottle"}, variants=specs,
        )

        assert product.slug == "water-bottle"
        assert product.has_variants is True
        assert [v.price_cents for v in created] == [1000, 1100]
        assert errors == [{
            "variant_index": 2,
            "reason": "duplicate_combination",
            "error": "A variant with this combination of attributes already exists",
        }]
        assert created[0].sku == f"WATER-BOTTLE-{str(small.id)[:4]}-{str(red.id)[:4]}".upper()
        mock_db.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_invalid_discards_product(self, mock_db, repos, size, color):
        small, medium = value_named(size, "S"), value_named(size, "M")
        red, blue = value_named(color, "Red"), value_named(color, "Blue")
        repos["values"].return_value = [small, medium, red, blue]
        specs = [
            {"price_cents": 1000, "attribute_value_ids": [red.id, blue.id]},
            {"price_cents": 1000, "attribute_value_ids": [small.id, medium.id]},
            {"price_cents": -1, "attribute_value_ids": [small.id]},
        ]

        with pytest.raises(BadRequestError) as exc_info:
            await variant_service.create_product_with_variants(
                mock_db, product={"name": "Water Bottle"}, variants=specs,
            )

        detail = exc_info.value.detail
        assert detail["reason"] == "no_variants_created"
        assert [e["reason"] for e in detail["errors"]] == [
            "duplicate_attribute", "duplicate_attribute", "negative_value",
        ]
        mock_db.delete.assert_awaited_once()
        assert mock_db.delete.await_args.args[0].slug == "water-bottle"

    @pytest.mark.asyncio
    async def test_invalid_value_rejects_before_product_exists(self, mock_db, repos, size):
        small = value_named(size, "S")
        small.is_active = False
        repos["values"].return_value = [small]

        with pytest.raises(VariantValidationError) as exc_info:
            await variant_service.create_product_with_variants(
                mock_db, product={"name": "Water Bottle"},
                variants=[{"price_cents": 100, "attribute_value_ids": [small.id]}],
            )
        assert exc_info.value.reason == "invalid_attribute_value"
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_explicit_sku_repeated_in_batch(self, mock_db, repos, size):
        small, medium = value_named(size, "S"), value_named(size, "M")
        repos["values"].return_value = [small, medium]
        specs = [
            {"sku": "BOTTLE", "price_cents": 100, "attribute_value_ids": [small.id]},
            {"sku": "BOTTLE", "price_cents": 100, "attribute_value_ids": [medium.id]},
        ]

        _, created, errors = await variant_service.create_product_with_variants(
            mock_db, product={"name": "Water Bottle"}, variants=specs,
        )
        assert len(created) == 1
        assert errors[0]["variant_index"] == 1
        assert errors[0]["reason"] == "duplicate_sku"

    @pytest.mark.asyncio
    async def test_generated_sku_collision_gets_suffix(self, mock_db, repos, size):
        small = value_named(size, "S")
        repos["values"].return_value = [small]
        repos["sku_exists"].side_effect = [True, False]

        _, created, _ = await variant_service.create_product_with_variants(
            mock_db, product={"name": "Water Bottle"},
            variants=[{"price_cents": 100, "attribute_value_ids": [small.id]}],
        )
        base = f"WATER-BOTTLE-{str(small.id)[:4]}".upper()
        assert created[0].sku.startswith(f"{base}-")
        assert len(created[0].sku) == len(base) + 7

    @pytest.mark.asyncio
    async def test_failed_write_only_loses_that_variant(self, mock_db, repos, size):
        small, medium = value_named(size, "S"), value_named(size, "M")
        repos["values"].return_value = [small, medium]
        # product insert, first variant (lost connection), second variant
        mock_db.flush.side_effect = [
            None,
            OperationalError("INSERT", {}, Exception("connection lost")),
            None,
        ]

        _, created, errors = await variant_service.create_product_with_variants(
            mock_db, product={"name": "Water Bottle"},
            variants=[
                {"price_cents": 100, "attribute_value_ids": [small.id]},
                {"price_cents": 100, "attribute_value_ids": [medium.id]},
            ],
        )
        assert [v.attribute_value_ids for v in created] == [[medium.id]]
        assert errors == [{
            "variant_index": 0, "reason": "persistence_error", "error": "Failed to save variant",
        }]
        assert mock_db.begin_nested.call_count == 2

    @pytest.mark.asyncio
    async def test_long_product_name_keeps_skus_distinct_and_bounded(self, mock_db, repos, size):
        small, medium = value_named(size, "S"), value_named(size, "M")
        repos["values"].return_value = [small, medium]
        repos["sku_exists"].side_effect = [False, True, False]

        _, created, errors = await variant_service.create_product_with_variants(
            mock_db, product={"name": "Extra long insulated stainless steel water bottle " * 3},
            variants=[
                {"price_cents": 100, "attribute_value_ids": [small.id]},
                {"price_cents": 100, "attribute_value_ids": [medium.id]},
            ],
        )
        assert errors == []
        first, second = (v.sku for v in created)
        assert first.endswith(f"-{str(small.id)[:4].upper()}")
        assert f"-{str(medium.id)[:4].upper()}-" in second
        assert all(len(v.sku) <= MAX_SKU_LENGTH for v in created)
