"""
Configuration module for Medibill.

This module provides:
- Pydantic configuration models
- YAML configuration loading
- Configuration validation
"""

from medibill.config.models import (
    AdjudicationConfig,
    BillingConfig,
    InsuranceConfig,
    LoggingConfig,
    MedibillConfig,
    StorageConfig,
)
from medibill.config.loader import load_config
from medibill.config.validation import ConfigurationError, validate_config

__all__ = [
    "AdjudicationConfig",
    "BillingConfig",
    "InsuranceConfig",
    "LoggingConfig",
    "MedibillConfig",
    "StorageConfig",
    "ConfigurationError",
    "load_config",
    "validate_config",
]
