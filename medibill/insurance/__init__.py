"""
Insurance provider integration for Medibill.
"""

from medibill.insurance.provider import CatalogInsuranceProvider, InsuranceProvider

__all__ = ["CatalogInsuranceProvider", "InsuranceProvider"]
