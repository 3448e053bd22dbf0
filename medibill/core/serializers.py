"""
JSON serialization helpers for Medibill aggregates.

Decimals are written as strings so two-decimal amounts survive a round trip
exactly, and status enums are written as their display values.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel


class MedibillEncoder(json.JSONEncoder):
    """
    Custom JSON encoder for Medibill types.

    Handles:
    - date/datetime -> ISO format string
    - Decimal -> string (preserves precision)
    - Enum -> value
    - Pydantic models -> dict (via model_dump)
    - set/frozenset -> sorted list
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(self.default(v) if isinstance(v, Enum) else v for v in obj)
        if isinstance(obj, BaseModel):
            return obj.model_dump(mode="json")
        return super().default(obj)


def serialize_to_json(data: Any, indent: int | None = 2) -> str:
    """
    Serialize data to JSON string using MedibillEncoder.

    Args:
        data: Data to serialize
        indent: JSON indentation (None for compact)

    Returns:
        JSON string
    """
    return json.dumps(data, cls=MedibillEncoder, indent=indent)


def deserialize_from_json(text: str) -> Any:
    """Parse JSON, reading floats as Decimal."""
    return json.loads(text, parse_float=Decimal)


def deserialize_decimal(value: str | None) -> Decimal | None:
    """Convert string to Decimal, handling None."""
    if value is None:
        return None
    return Decimal(value)


def deserialize_datetime(value: str | None) -> datetime | None:
    """Convert ISO string to datetime, handling None."""
    if value is None:
        return None
    return datetime.fromisoformat(value)
