from datetime import date, timedelta
from typing import Any, Callable, Optional

from ledger.aggregate import _get, canonical_category, range_since_days
from ledger.domain import parse_date

Predicate = Callable[[Any], bool]


def by_type(kind: str) -> Predicate:
    kind = kind.strip().lower()

    def _filter(t: Any) -> bool:
        return str(_get(t, "type") or "").strip().lower() == kind

    return _filter


def by_category(label: str) -> Predicate:
    key = canonical_category(label)

    def _filter(t: Any) -> bool:
        return canonical_category(_get(t, "category")) == key

    return _filter


def by_date_range(start: Optional[date], end: Optional[date]) -> Predicate:
    def _filter(t: Any) -> bool:
        d = parse_date(_get(t, "transaction_date") or _get(t, "date"))
        if d is None:
            return start is None and end is None
        if start is not None and d < start:
            return False
        if end is not None and d > end:
            return False
        return True

    return _filter


def since_days(days: Optional[int], today: Optional[date] = None) -> Predicate:
    """Keep records dated within the last ``days`` days (inclusive)."""
    if days is None:
        return by_date_range(None, None)
    today = today or date.today()
    return by_date_range(today - timedelta(days=days), None)


def in_range(range_key: Any, today: Optional[date] = None) -> Predicate:
    return since_days(range_since_days(range_key), today)
