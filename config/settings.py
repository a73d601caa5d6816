"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Import and export policy is read here once and handed to the services as
explicit ImportOptions / ExportOptions objects.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional

from models.export import ExportOptions
from models.imports import (
    ImportMode,
    ImportOptions,
    LengthUnit,
    MergePolicy,
    WeightUnit,
)


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
        extra="ignore"
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL (in-memory store when unset)"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )
    products_table: str = Field(
        default="products",
        description="Table holding product records"
    )

    # ===================
    # IMPORT POLICY
    # ===================
    import_success_error_ratio: float = Field(
        default=0.5,
        gt=0,
        le=1,
        description="Import succeeds while error rows < total rows * ratio"
    )
    import_merge_policy: MergePolicy = Field(
        default=MergePolicy.NON_EMPTY,
        description="How incoming rows are merged into existing products"
    )
    import_mode: ImportMode = Field(
        default=ImportMode.UPSERT,
        description="upsert, create_only or update_only"
    )
    import_max_images: int = Field(
        default=10,
        ge=0,
        le=50,
        description="Maximum images attached to a created product"
    )
    import_default_weight_unit: WeightUnit = Field(
        default=WeightUnit.G,
        description="Unit assumed for weight cells without a suffix"
    )
    import_default_length_unit: LengthUnit = Field(
        default=LengthUnit.CM,
        description="Unit assumed for dimension cells without a suffix"
    )
    import_default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency for created products without one"
    )
    csv_max_field_length: int = Field(
        default=1000,
        ge=1,
        description="Fields longer than this raise a parse warning"
    )

    # ===================
    # EXPORT DEFAULTS
    # ===================
    export_max_rows: int = Field(
        default=50000,
        ge=1,
        le=50000,
        description="Row cap for a single export"
    )
    export_default_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3
    )
    export_default_tax_rate: str = Field(
        default="23",
        description="Baselinker tax rate (%) when a request gives none"
    )

    # ===================
    # IMAGE FETCH
    # ===================
    image_fetch_url: Optional[str] = Field(
        None,
        description="Endpoint notified when a created product has a UPC but no images"
    )
    image_fetch_timeout: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Seconds before the image fetch request is abandoned"
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
    def supabase_configured(self) -> bool:
        """Check if Supabase credentials are present."""
        return bool(self.supabase_url and self.supabase_key)

    def import_options(self) -> ImportOptions:
        """Import policy as an explicit options object."""
        return ImportOptions(
            mode=self.import_mode,
            merge_policy=self.import_merge_policy,
            success_error_ratio=self.import_success_error_ratio,
            default_weight_unit=self.import_default_weight_unit,
            default_length_unit=self.import_default_length_unit,
            default_currency=self.import_default_currency,
            max_images=self.import_max_images,
            max_field_length=self.csv_max_field_length,
        )

    def export_defaults(self) -> ExportOptions:
        """Export options used when a request leaves them out."""
        return ExportOptions(
            currency=self.export_default_currency,
            max_rows=self.export_max_rows,
            tax_rate=self.export_default_tax_rate,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()
