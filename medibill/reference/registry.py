"""
Billable code registry for Medibill.

Maps stable billing codes (diagnosis codes, procedure codes, MED-<drug>,
ward codes, fee codes) to claimable items. Records are loaded from JSON or
YAML files whose entries carry a ``kind`` discriminator.
"""

import json
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

import structlog
import yaml
from pydantic import TypeAdapter

from medibill.domain.errors import NotFoundError
from medibill.domain.items import BillableItemType

logger = structlog.get_logger()

_ITEM_ADAPTER = TypeAdapter(BillableItemType)


class CodeRegistry:
    """
    In-memory lookup of billable items by code.

    Usage:
        registry = CodeRegistry.load(Path("data/codes.json"))
        item = registry.lookup("E66.01")
    """

    def __init__(self, items: Iterable[BillableItemType] = ()):
        self._items: dict[str, BillableItemType] = {}
        for item in items:
            self.register(item)

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]]) -> "CodeRegistry":
        return cls(_ITEM_ADAPTER.validate_python(record) for record in records)

    @classmethod
    def load(cls, path: Path) -> "CodeRegistry":
        """
        Load a registry from a JSON or YAML list of item records.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Code registry file not found: {path}")

        with open(path, encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                records = yaml.safe_load(f) or []
            else:
                records = json.load(f)

        registry = cls.from_records(records)
        logger.info("code_registry_loaded", path=str(path), codes=len(registry))
        return registry

    def register(self, item: BillableItemType) -> None:
        if item.code in self._items:
            logger.warning("code_registry_duplicate", code=item.code)
        self._items[item.code] = item

    def lookup(self, code: str) -> BillableItemType:
        """
        Find the item for a code.

        Raises:
            NotFoundError: If the code is not registered
        """
        try:
            return self._items[code]
        except KeyError:
            raise NotFoundError(f"Code not found: {code}") from None

    def find(self, code: str) -> Optional[BillableItemType]:
        return self._items.get(code)

    def codes(self) -> list[str]:
        return sorted(self._items)

    def __contains__(self, code: object) -> bool:
        return code in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[BillableItemType]:
        return iter(self._items.values())
