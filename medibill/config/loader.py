"""
YAML configuration loader for Medibill.

Configuration, coverage catalogs and bill files are all YAML documents that
may reference the environment as ``${VAR}`` or ``${VAR:-default}``.

The runtime configuration is resolved in this order:

1. an explicit path passed to :func:`load_config`
2. the file named by ``$MEDIBILL_CONFIG``
3. the first existing entry of :data:`DEFAULT_SEARCH_PATHS`
4. built-in defaults (plus ``MEDIBILL_*`` settings from the environment)
"""

import os
import re
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml

from medibill.config.models import MedibillConfig

logger = structlog.get_logger()

CONFIG_ENV_VAR = "MEDIBILL_CONFIG"

DEFAULT_SEARCH_PATHS: tuple[Path, ...] = (
    Path("config") / "medibill.yaml",
    Path("medibill.yaml"),
    Path.home() / ".medibill" / "medibill.yaml",
)

_ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


def _expand(match: re.Match) -> str:
    return os.environ.get(match["name"], match["default"] or "")


def _substitute_env_vars(value: Any) -> Any:
    """Expand ``${VAR}`` references in every string of a loaded document."""
    if isinstance(value, dict):
        return {key: _substitute_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    if isinstance(value, str) and "${" in value:
        return _ENV_REFERENCE.sub(_expand, value)
    return value


def load_yaml(path: str | Path) -> dict[str, Any]:
    """
    Read a YAML document with environment references expanded.

    An empty document reads as an empty mapping.

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If the YAML is invalid
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    document = yaml.safe_load(path.read_text(encoding="utf-8"))
    return _substitute_env_vars(document) if document is not None else {}


def find_config_file() -> Optional[Path]:
    """Locate the runtime configuration file, or None to run on defaults."""
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env)
    return next((path for path in DEFAULT_SEARCH_PATHS if path.is_file()), None)


def load_config(
    config_path: str | Path | None = None,
    override_values: dict[str, Any] | None = None,
) -> MedibillConfig:
    """
    Build the validated Medibill configuration.

    Args:
        config_path: Explicit configuration file; see the module docstring
            for the lookup used when omitted
        override_values: Nested values applied on top of the file, e.g. from
            CLI flags

    Raises:
        FileNotFoundError: If an explicit or ``$MEDIBILL_CONFIG`` file is missing
        ValidationError: If configuration is invalid
    """
    path = Path(config_path) if config_path is not None else find_config_file()
    values = load_yaml(path) if path is not None else {}
    logger.debug("config_resolved", path=str(path) if path else None)

    if override_values:
        values = _deep_merge(values, override_values)
    return MedibillConfig(**values)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated by ``override``, merging nested mappings key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        both_mappings = isinstance(current, dict) and isinstance(value, dict)
        merged[key] = _deep_merge(current, value) if both_mappings else value
    return merged
