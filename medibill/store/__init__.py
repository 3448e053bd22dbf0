"""
File-backed storage for bills and claims.
"""

from medibill.store.json_store import JsonStore

__all__ = ["JsonStore"]
