"""Budget and setting records as returned by the backend.

The backend delivers budgets as loosely-typed JSON objects.  The helpers in
this module turn them into immutable records and apply the defaults the
usage computations rely on: missing or malformed amounts become ``0``,
thresholds fall back to the configured breakpoints and an absent category
is left as ``None`` (folded into "Uncategorized" by the aggregator).
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .lib.config import get_budget_value

logger = logging.getLogger(__name__)


class SnapshotError(Exception):
    """Raised when a budget snapshot file cannot be read or parsed."""


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["Category"]:
        """Build a category from an object, a bare id, or nothing."""
        if raw is None or raw == '':
            return None
        if isinstance(raw, Category):
            return raw
        if isinstance(raw, Mapping):
            category_id = raw.get('_id') or raw.get('id')
            if not category_id:
                return None
            return cls(
                id=str(category_id),
                name=str(raw.get('name') or category_id),
                color=raw.get('color') or None,
            )
        # Unpopulated reference: only the id is known
        return cls(id=str(raw), name=str(raw))


@dataclass(frozen=True)
class BudgetRecord:
    """One allocated budget and the spend recorded against it.

    ``month`` is 1-12 for a monthly budget and ``0`` for an annual one.
    """
    id: str
    year: int
    month: int
    amount: float
    actual_cost: float = 0.0
    warning_threshold: int = 75
    critical_threshold: int = 90
    is_active: bool = True
    category: Optional[Category] = None

    @property
    def is_annual(self) -> bool:
        return self.month == 0

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "BudgetRecord":
        """Coerce a backend budget object into a record.

        Never raises on bad field values; see the module docstring for the
        defaults that are applied.
        """
        constants = get_budget_value('constants')
        usage = raw.get('usage')
        actual = usage.get('actualCost') if isinstance(usage, Mapping) else None
        if actual is None:
            actual = raw.get('actualCost', raw.get('actual_cost'))

        return cls(
            id=str(raw.get('_id') or raw.get('id') or ''),
            year=_to_int(raw.get('year'), 0),
            month=_to_month(raw.get('month')),
            amount=_to_amount(raw.get('amount')),
            actual_cost=_to_amount(actual),
            warning_threshold=_to_threshold(
                raw.get('warningThreshold', raw.get('warning_threshold')),
                constants['default_warning_threshold'],
            ),
            critical_threshold=_to_threshold(
                raw.get('criticalThreshold', raw.get('critical_threshold')),
                constants['default_critical_threshold'],
            ),
            is_active=bool(raw.get('isActive', raw.get('is_active', True))),
            category=Category.from_dict(raw.get('category')),
        )


@dataclass(frozen=True)
class Setting:
    key: str
    value: Union[float, int, str, None]
    is_default: bool = False

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Setting":
        return cls(
            key=str(raw.get('key', '')),
            value=raw.get('value'),
            is_default=raw.get('isDefault', raw.get('is_default')) is True,
        )


BudgetInput = Union[BudgetRecord, Mapping[str, Any]]


def coerce_budget(item: BudgetInput) -> BudgetRecord:
    if isinstance(item, BudgetRecord):
        return item
    return BudgetRecord.from_dict(item)


def coerce_budgets(items: Optional[Iterable[BudgetInput]]) -> List[BudgetRecord]:
    """Convert a sequence of records and/or raw mappings into records."""
    if not items:
        return []
    return [coerce_budget(item) for item in items]


def load_snapshot(path: Union[str, Path]) -> Tuple[List[BudgetRecord], Dict[str, Setting]]:
    """Load a JSON export of budgets and settings.

    The file holds either ``{"budgets": [...], "settings": [...]}`` or a
    bare list of budgets.

    Returns:
        Tuple of (budget records, settings keyed by setting key)

    Raises:
        SnapshotError: If the file is missing, unreadable or not valid JSON
    """
    target = Path(path)
    try:
        with target.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError) as e:
        raise SnapshotError(f"Could not read budget snapshot {target}: {e}") from e

    if isinstance(data, list):
        data = {'budgets': data}
    if not isinstance(data, dict):
        raise SnapshotError(f"Unexpected snapshot layout in {target}")

    raw_budgets = data.get('budgets') or []
    # Paginated API responses wrap the list in a data envelope
    if isinstance(raw_budgets, Mapping):
        raw_budgets = raw_budgets.get('data') or []
    budgets = [BudgetRecord.from_dict(b) for b in raw_budgets if isinstance(b, Mapping)]

    settings: Dict[str, Setting] = {}
    for raw in data.get('settings') or []:
        if isinstance(raw, Mapping) and raw.get('key'):
            setting = Setting.from_dict(raw)
            settings[setting.key] = setting

    logger.info("Loaded %d budgets and %d settings from %s", len(budgets), len(settings), target)
    return budgets, settings


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _to_amount(value: Any) -> float:
    number = _to_float(value)
    if number is None or number < 0:
        return 0.0
    return number


def _to_int(value: Any, default: int) -> int:
    number = _to_float(value)
    return int(number) if number is not None else default


def _to_month(value: Any) -> int:
    number = _to_float(value)
    if number is None or number != int(number) or not 0 <= number <= 12:
        if value is not None:
            logger.debug("Treating budget month %r as annual", value)
        return 0
    return int(number)


def _to_threshold(value: Any, default: int) -> int:
    number = _to_float(value)
    if number is None:
        return default
    return int(min(max(round(number), 1), 100))
