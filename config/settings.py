"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )

    # ===================
    # SHOPIFY
    # ===================
    shopify_shop_domain: Optional[str] = Field(
        None,
        description="Default shop domain when the request carries none (e.g. my-store.myshopify.com)"
    )
    shopify_access_token: Optional[str] = Field(
        None,
        description="Admin API access token"
    )
    shopify_api_version: str = Field(
        default="2024-10",
        description="Admin GraphQL API version"
    )
    shopify_request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=120,
        description="Timeout for a single Admin API call"
    )

    # ===================
    # IMPORT PIPELINE
    # ===================
    source_api_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Timeout when fetching products from a supplier API"
    )
    import_item_delay_seconds: float = Field(
        default=0.2,
        ge=0,
        le=5,
        description="Pause before each product so progress polling can observe it"
    )
    max_product_tags: int = Field(
        default=250,
        ge=1,
        le=250,
        description="Maximum tags sent per product"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def shopify_configured(self) -> bool:
        """Check if the Admin API credentials are present."""
        return bool(self.shopify_shop_domain and self.shopify_access_token)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
