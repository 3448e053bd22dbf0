"""
Pydantic configuration models for Medibill.

All configuration is validated using Pydantic models.
"""

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BillingConfig(BaseModel):
    """Bill settlement settings."""

    payment_due_days: int = Field(
        default=30,
        ge=0,
        description="Days after the bill date before an unsettled bill is past due",
    )
    currency: str = Field(default="SGD", min_length=3, max_length=3)


class AdjudicationConfig(BaseModel):
    """Coverage adjudication settings."""

    apply_accident_benefit: bool = Field(
        default=True,
        description="Add accident payouts to emergency bills with accident-related items",
    )


class InsuranceConfig(BaseModel):
    """Insurance provider and coverage catalog settings."""

    provider_name: str = Field(default="Government Insurance")
    catalog_path: str = Field(
        default="config/coverage_catalog.yaml",
        description="YAML file of named coverage schemes",
    )
    default_scheme: str | None = Field(
        default=None,
        description="Scheme used when none is requested; must exist in the catalog",
    )
    policy_prefix: str = Field(default="GOVT", min_length=1, max_length=10)
    policy_term_days: int = Field(default=365, ge=1)

    @field_validator("policy_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if not v.isalnum():
            raise ValueError(f"policy_prefix must be alphanumeric, got {v!r}")
        return v.upper()


class StorageConfig(BaseModel):
    """File storage settings."""

    data_dir: str = Field(default="data", description="Directory for bills.json and claims.json")


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class MedibillConfig(BaseSettings):
    """
    Root Medibill configuration.

    Values can be loaded from YAML files and overridden via environment
    variables prefixed with MEDIBILL_ (nested with a double underscore,
    e.g. MEDIBILL_BILLING__PAYMENT_DUE_DAYS=14).
    """

    model_config = SettingsConfigDict(
        env_prefix="MEDIBILL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    seed: int = Field(default=42, description="Seed for the ID generator RNG")
    worker_id: int = Field(default=0, ge=0)

    billing: BillingConfig = Field(default_factory=BillingConfig)
    adjudication: AdjudicationConfig = Field(default_factory=AdjudicationConfig)
    insurance: InsuranceConfig = Field(default_factory=InsuranceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
