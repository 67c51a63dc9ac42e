from urllib.parse import urlparse

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # Database
    db_name: str = "storefront"
    db_user: str = "storefront"
    db_password: str = "CHANGE_ME"
    db_host: str = "db"
    db_port: int = 5432
    db_ssl: bool = False

    # CORS
    cors_allowed_origins: str = "http://localhost:3000"

    # JWT (tokens are issued by the identity provider, verified here)
    jwt_secret_key: str = "CHANGE_ME"
    jwt_issuer: str = "storefront"
    jwt_audience: str = "storefront"

    # Variant engine
    variant_max_combinations: int = Field(default=50, ge=1)
    sku_prefix: str = "VAR"
    sku_word_prefix_length: int = Field(default=3, ge=1)
    deactivate_variants_on_value_deactivation: bool = False

    # App
    debug: bool = False
    backend_url: str = "http://localhost:8000"

    @property
    def database_url(self) -> str:
        base = (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )
        return f"{base}?ssl=require" if self.db_ssl else base

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]

    model_config = {"env_file": ".env", "extra": "ignore"}

    def validate_secrets(self) -> None:
        """Raise if production-critical secrets are still defaults."""
        defaults = {"CHANGE_ME"}
        if self.jwt_secret_key in defaults:
            raise ValueError("jwt_secret_key must be changed from default")
        if len(self.jwt_secret_key) < 32:
            raise ValueError(
                "jwt_secret_key must be at least 32 characters (256 bits) per RFC 7518 Section 3.2"
            )
        parsed = urlparse(self.backend_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("backend_url must be a valid http(s) URL")
        if self.db_password in defaults:
            raise ValueError("db_password must be changed from default")


settings = Settings()
