"""
Coverage catalog loader.

A catalog is a YAML mapping of scheme name to coverage definition, using the
same fields as BaseCoverage and CompositeCoverage. Composite entries may
refer to other schemes by name:

    MediShield Life + CareShield:
      kind: composite
      primary: MediShield Life
      supplementary: CareShield Life
"""

from pathlib import Path
from typing import Any

import structlog
from pydantic import TypeAdapter

from medibill.config.loader import load_yaml
from medibill.domain.coverage import CoverageType
from medibill.domain.errors import NotFoundError

logger = structlog.get_logger()

_COVERAGE_ADAPTER = TypeAdapter(CoverageType)


def parse_coverage_catalog(raw: dict[str, Any]) -> dict[str, CoverageType]:
    """
    Validate catalog entries into coverages.

    Raises:
        NotFoundError: If a composite refers to an unknown scheme
        pydantic.ValidationError: If an entry is invalid
    """
    catalog: dict[str, CoverageType] = {}
    resolving: set[str] = set()

    def resolve(name: str) -> CoverageType:
        if name in catalog:
            return catalog[name]
        if name not in raw:
            raise NotFoundError(f"Coverage scheme not found: {name}")
        if name in resolving:
            raise ValueError(f"Circular coverage reference: {name}")
        resolving.add(name)

        entry = dict(raw[name] or {})
        entry.setdefault("name", name)
        if entry.get("kind") == "composite":
            for part in ("primary", "supplementary"):
                if isinstance(entry.get(part), str):
                    entry[part] = resolve(entry[part])
        else:
            entry.setdefault("kind", "base")

        catalog[name] = _COVERAGE_ADAPTER.validate_python(entry)
        resolving.discard(name)
        return catalog[name]

    for scheme_name in raw:
        resolve(scheme_name)
    return catalog


def load_coverage_catalog(path: str | Path) -> dict[str, CoverageType]:
    """
    Load a coverage catalog YAML file.

    Supports ${VAR} and ${VAR:-default} substitution like the main config.
    """
    path = Path(path)
    catalog = parse_coverage_catalog(load_yaml(path))
    logger.info("coverage_catalog_loaded", path=str(path), schemes=sorted(catalog))
    return catalog
