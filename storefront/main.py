import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.core.logging import setup_logging

setup_logging()

from storefront import __version__
from storefront.api.middleware.cors import setup_cors
from storefront.api.middleware.request_id import RequestIdMiddleware
from storefront.api.routes import health, products
from storefront.api.routes.admin import (
    attributes as admin_attributes,
    products as admin_products,
    variants as admin_variants,
)
from storefront.core.config import settings
from storefront.core.database import engine

logger = logging.getLogger(__name__)

try:
    settings.validate_secrets()
except ValueError as e:
    logger.critical("Secret validation failed: %s", e)
    raise SystemExit(f"FATAL: {e}") from e


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "Variant engine starting (max combinations %d, value deactivation cascade %s)",
        settings.variant_max_combinations,
        "on" if settings.deactivate_variants_on_value_deactivation else "off",
    )
    yield
    await engine.dispose()


app = FastAPI(
    title="Storefront Variant API",
    version=__version__,
    lifespan=lifespan,
)

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )

setup_cors(app)
app.add_middleware(RequestIdMiddleware)

# Public routes
app.include_router(health.router, prefix="/api")
app.include_router(products.router, prefix="/api")

# Admin routes
app.include_router(admin_attributes.router, prefix="/api/admin")
app.include_router(admin_products.router, prefix="/api/admin")
app.include_router(admin_variants.router, prefix="/api/admin")
