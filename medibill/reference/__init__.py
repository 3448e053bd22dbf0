"""
Reference data for Medibill: billable code registry and coverage catalog.
"""

from medibill.reference.catalog import load_coverage_catalog, parse_coverage_catalog
from medibill.reference.registry import CodeRegistry

__all__ = [
    "CodeRegistry",
    "load_coverage_catalog",
    "parse_coverage_catalog",
]
