"""
Utility modules for Medibill.
"""

from medibill.utils.logging import configure_logging, get_logger
from medibill.utils.money import ZERO, to_money

__all__ = [
    "configure_logging",
    "get_logger",
    "ZERO",
    "to_money",
]
