"""
Configuration validation for Medibill.

Provides additional validation beyond Pydantic model validation.
"""

from pathlib import Path

import structlog

from medibill.config.models import MedibillConfig

logger = structlog.get_logger()


class ConfigurationError(Exception):
    """Raised when configuration is invalid."""

    pass


def validate_config(config: MedibillConfig) -> list[str]:
    """
    Validate Medibill configuration.

    Performs checks beyond what Pydantic models provide, such as file
    availability and catalog cross-references.

    Args:
        config: MedibillConfig to validate

    Returns:
        List of warning messages (non-fatal issues)

    Raises:
        ConfigurationError: If configuration has fatal issues
    """
    from medibill.reference.catalog import load_coverage_catalog

    warnings: list[str] = []
    errors: list[str] = []

    catalog_path = Path(config.insurance.catalog_path)
    if not catalog_path.exists():
        if config.insurance.default_scheme is not None:
            errors.append(f"Coverage catalog does not exist: {catalog_path}")
        else:
            warnings.append(f"Coverage catalog not found: {catalog_path}")
    else:
        try:
            catalog = load_coverage_catalog(catalog_path)
        except (ValueError, LookupError) as e:
            errors.append(f"Coverage catalog is invalid: {e}")
        else:
            if not catalog:
                warnings.append(f"Coverage catalog {catalog_path} defines no schemes")
            scheme = config.insurance.default_scheme
            if scheme is not None and scheme not in catalog:
                errors.append(
                    f"Default scheme {scheme!r} not in catalog; "
                    f"available: {', '.join(sorted(catalog))}"
                )

    data_dir = Path(config.storage.data_dir)
    if data_dir.exists() and not data_dir.is_dir():
        errors.append(f"Storage path is not a directory: {data_dir}")

    if config.billing.payment_due_days == 0:
        warnings.append("payment_due_days is 0; bills become past due on submission")

    for warning in warnings:
        logger.warning("config_warning", message=warning)

    if errors:
        raise ConfigurationError(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )

    return warnings
