"""
Identifier generators for Medibill.
"""

from medibill.generators.id_generator import IDGenerator

__all__ = ["IDGenerator"]
