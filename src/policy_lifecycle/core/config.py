# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Configuration management using Pydantic Settings."""

from decimal import Decimal

from beartype import beartype
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings with immutable configuration."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        frozen=True,
        validate_default=True,
        extra="forbid",
    )

    # Database
    database_url: str = Field(
        default="postgresql://localhost:5432/policy_lifecycle",
        description="PostgreSQL connection URL",
        min_length=1,
    )
    database_pool_min: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Minimum database pool size",
    )
    database_pool_max: int = Field(
        default=20,
        ge=5,
        le=100,
        description="Maximum database pool size",
    )
    database_pool_timeout: float = Field(
        default=10.0,
        ge=1.0,
        le=60.0,
        description="Connection acquisition timeout in seconds",
    )
    database_command_timeout: float = Field(
        default=30.0,
        ge=5.0,
        le=300.0,
        description="Query execution timeout in seconds",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
        min_length=1,
    )
    redis_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        le=86400,
        description="Default Redis TTL in seconds",
    )
    package_cache_ttl_seconds: int = Field(
        default=900,
        ge=60,
        le=86400,
        description="TTL for cached insurance package records",
    )

    # Notification queue
    celery_broker_url: str = Field(
        default="redis://localhost:6379/1",
        description="Celery broker URL for notification dispatch",
        min_length=1,
    )
    notification_queue: str = Field(
        default="notifications",
        min_length=1,
        description="Queue that notification tasks are routed to",
    )

    api_env: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Deployment environment",
    )

    # Premium schedule
    premium_unit_size: Decimal = Field(
        default=Decimal("50000"),
        gt=Decimal("0"),
        description="Coverage amount covered by one premium unit",
    )
    premium_rate_per_unit: Decimal = Field(
        default=Decimal("250"),
        gt=Decimal("0"),
        description="Premium charged per started coverage unit",
    )
    minimum_coverage_amount: Decimal = Field(
        default=Decimal("50000"),
        gt=Decimal("0"),
        description="Smallest coverage amount a quotation may request",
    )

    # Identifiers
    quotation_reference_prefix: str = Field(default="TIQ", pattern="^[A-Z]{2,5}$")
    order_reference_prefix: str = Field(default="TIO", pattern="^[A-Z]{2,5}$")
    claim_reference_prefix: str = Field(default="TIC", pattern="^[A-Z]{2,5}$")
    reference_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Regeneration attempts when a generated code collides",
    )
    policy_category_code: str = Field(
        default="TI",
        pattern="^[A-Z]{2}$",
        description="Insurance line code embedded in policy numbers",
    )
    default_partner_code: str = Field(default="IN", pattern="^[A-Z]{2}$")
    default_insurance_company_code: str = Field(default="PR", pattern="^[A-Z]{2}$")
    policy_term_years: int = Field(default=1, ge=1, le=10)

    default_brand: str = Field(
        default="Instasure",
        min_length=1,
        description="Brand used when the request boundary does not resolve one",
    )

    @field_validator("database_pool_max")
    @classmethod
    def validate_pool_sizes(cls: type["Settings"], v: int, info: ValidationInfo) -> int:
        """Ensure pool max is greater than pool min."""
        if "database_pool_min" in info.data:
            min_size = info.data["database_pool_min"]
            if v < min_size:
                raise ValueError(
                    f"database_pool_max ({v}) must be >= database_pool_min ({min_size})"
                )
        return v

    @property
    @beartype
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.api_env == "production"


_settings: Settings | None = None


@beartype
def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


@beartype
def clear_settings_cache() -> None:
    """Clear settings cache (for testing)."""
    global _settings
    _settings = None
