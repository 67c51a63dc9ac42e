import logging
from urllib.parse import urlparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.config import settings

logger = logging.getLogger(__name__)


def normalize_origins(origins: list[str]) -> list[str]:
    """Validate configured origins and drop trailing slashes and repeats."""
    normalized: list[str] = []
    for origin in origins:
        parsed = urlparse(origin)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"Invalid CORS origin: {origin!r}")
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"CORS origin must use http or https: {origin!r}")
        value = f"{parsed.scheme}://{parsed.netloc}"
        if value not in normalized:
            normalized.append(value)
    return normalized


def setup_cors(app: FastAPI) -> None:
    origins = normalize_origins(settings.cors_origins_list)
    logger.debug("CORS origins: %s", origins)
    # Bearer tokens only, so no cookies cross origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )
