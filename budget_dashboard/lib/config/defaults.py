"""Loader for the budget report constants shipped as JSON."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

# Configuration directory
CONFIG_DIR = Path(__file__).parent

_MISSING = object()


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


@lru_cache(maxsize=None)
def load_config(config_name: str) -> Mapping[str, Any]:
    """Load a configuration file by name.

    Each file is read once per process.  Every report shares the result, so
    it is returned read-only: objects become mappingproxies and arrays
    become tuples.

    Args:
        config_name: Name of the config file (without .json extension)

    Raises:
        FileNotFoundError: If the configuration file doesn't exist
        json.JSONDecodeError: If the configuration file is invalid JSON
    """
    config_path = CONFIG_DIR / f"{config_name}.json"
    try:
        with config_path.open('r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {config_path}") from None
    return _freeze(data)


def get_budget_value(*keys: str, default: Any = _MISSING) -> Any:
    """Look up a value in the budget configuration by key path.

    Args:
        *keys: Path to the nested value (e.g., 'constants', 'currency')
        default: Returned when the path doesn't exist; without it a missing
            path raises KeyError

    Example:
        >>> get_budget_value('constants', 'currency')
        'CHF'
        >>> get_budget_value('status', 'labels', 'bogus', default='N/A')
        'N/A'
    """
    value: Any = load_config('budgets')
    try:
        for key in keys:
            value = value[key]
    except (KeyError, TypeError):
        if default is _MISSING:
            raise KeyError('.'.join(map(str, keys))) from None
        return default
    return value
