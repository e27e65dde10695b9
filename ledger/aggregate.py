"""Client-side aggregation over the cached transaction and budget lists.

Every function here is pure: inputs are never mutated and the same input
always gives the same output. Records may be domain dataclasses or the raw
mappings the store returns. Bad amounts and missing categories never raise;
they are coerced (0 and "Uncategorized") and the coercion is logged.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any, Dict, List, Optional, Tuple

from ledger.domain import (
    TRANSACTION_TYPES,
    AnalyticsTotals,
    BudgetUsage,
    CategorySummary,
)

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
WARNING_RATIO = 0.9
TOP_N = 6

RANGE_DAYS = {"7": 7, "30": 30, "365": 365}
RANGE_LABELS = {"7": "Week", "30": "Month", "365": "Year", "all": "All"}


def _get(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _records(items: Any, what: str = "transactions") -> Tuple[Any, ...]:
    if items is None or isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
        raise TypeError(f"{what} must be a sequence of records, not {type(items).__name__}")
    return tuple(items)


def _parse_amount(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_malformed_amount(value: Any) -> bool:
    """True when an amount is present but cannot be read as a finite number."""
    return not _is_missing(value) and _parse_amount(value) is None


def coerce_amount(value: Any) -> float:
    if _is_missing(value):
        logger.debug("missing amount counted as 0")
        return 0.0
    number = _parse_amount(value)
    if number is None:
        logger.warning("malformed amount %r counted as 0", value)
        return 0.0
    return number


def count_malformed_amounts(records: Any) -> int:
    return sum(1 for r in _records(records) if is_malformed_amount(_get(r, "amount")))


def canonical_category(label: Any) -> str:
    """The one key used to match categories across transactions and budgets."""
    text = "" if label is None else str(label).strip()
    return (text or UNCATEGORIZED).lower()


def display_category(label: Any) -> str:
    text = "" if label is None else str(label).strip()
    return text or UNCATEGORIZED


def _type_of(record: Any) -> str:
    return str(_get(record, "type") or "").strip().lower()


def _group(records: Tuple[Any, ...], kind: str) -> Tuple[Dict[str, str], Dict[str, float], Dict[str, int]]:
    labels: Dict[str, str] = {}
    totals: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    for t in records:
        if _type_of(t) != kind:
            continue
        category = _get(t, "category")
        key = canonical_category(category)
        if key not in labels:
            # first occurrence decides the display label
            labels[key] = display_category(category)
            totals[key] = 0.0
            counts[key] = 0
        totals[key] += coerce_amount(_get(t, "amount"))
        counts[key] += 1
    return labels, totals, counts


def category_spend(transactions: Any, type: str) -> Dict[str, float]:
    """Total amount per category for one transaction type.

    Categories are matched case-insensitively; the label shown is the one
    seen first. Ordering is left to the caller.
    """
    labels, totals, _ = _group(_records(transactions), str(type).strip().lower())
    return {labels[key]: total for key, total in totals.items()}


def category_summaries(transactions: Any, type: Optional[str] = None) -> Tuple[CategorySummary, ...]:
    """Per-category total, count and share of the type's total.

    With no type both income and expense summaries are returned, each
    percentage relative to its own type.
    """
    records = _records(transactions)
    kinds = (str(type).strip().lower(),) if type and type != "all" else TRANSACTION_TYPES
    result: List[CategorySummary] = []
    for kind in kinds:
        labels, totals, counts = _group(records, kind)
        whole = sum(totals.values())
        for key, total in totals.items():
            result.append(
                CategorySummary(
                    category=labels[key],
                    type=kind,
                    total_amount=total,
                    count=counts[key],
                    percentage=percentage_of(total, whole),
                )
            )
    return tuple(result)


def _round_half_up(value: float, places: int = 0) -> float:
    if not math.isfinite(value):
        return value
    step = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        # wide enough for any finite float at this many places
        ctx.prec = 400
        return float(Decimal(str(value)).quantize(step, rounding=ROUND_HALF_UP))


def percentage_of(part: Any, whole: Any) -> float:
    """Share of ``whole`` in percent, one decimal. 0 when whole <= 0."""
    part, whole = coerce_amount(part), coerce_amount(whole)
    if whole <= 0:
        return 0.0
    share = part / whole * 100
    if math.isnan(share):
        return 0.0
    return _round_half_up(share, 1)


def bar_width(part: Any, whole: Any) -> int:
    """Progress-bar width in whole percent, clamped to 0..100."""
    part, whole = coerce_amount(part), coerce_amount(whole)
    if whole <= 0:
        return 0
    ratio = part / whole * 100
    if math.isnan(ratio):
        return 0
    if ratio >= 100:
        return 100
    if ratio <= 0:
        return 0
    return int(_round_half_up(ratio))


def is_near_limit(used: float, amount: float) -> bool:
    if amount <= 0:
        return used > 0
    return used / amount >= WARNING_RATIO


def budget_usage(budgets: Any, transactions: Any) -> Tuple[BudgetUsage, ...]:
    """Pair each budget with its expense usage, keeping the budget order."""
    spent: Dict[str, float] = {}
    for t in _records(transactions):
        if _type_of(t) == "expense":
            key = canonical_category(_get(t, "category"))
            spent[key] = spent.get(key, 0.0) + coerce_amount(_get(t, "amount"))

    usages = []
    for b in _records(budgets, "budgets"):
        amount = coerce_amount(_get(b, "amount"))
        used = spent.get(canonical_category(_get(b, "category")), 0.0)
        usages.append(
            BudgetUsage(
                id=str(_get(b, "id", "")),
                category=display_category(_get(b, "category")),
                amount=amount,
                used=used,
                percentage=bar_width(used, amount),
                warning=is_near_limit(used, amount),
            )
        )
    return tuple(usages)


def range_since_days(range_key: Any) -> Optional[int]:
    """Day window for a range token; None (no lower bound) for 'all' or anything unknown."""
    if range_key is None:
        return None
    return RANGE_DAYS.get(str(range_key).strip())


def _total_of(summary: Any) -> float:
    total = _get(summary, "total_amount")
    if total is None:
        total = _get(summary, "totalAmount")
    return coerce_amount(total)


def top_categories(summaries: Any, n: Optional[int] = TOP_N) -> Tuple[Any, ...]:
    """Largest categories first; equal totals keep their input order."""
    ordered = sorted(_records(summaries, "summaries"), key=_total_of, reverse=True)
    if n is None:
        return tuple(ordered)
    return tuple(ordered[: max(0, n)])


def chart_series(summaries: Any, n: Optional[int] = TOP_N) -> Tuple[List[str], List[float]]:
    top = top_categories(summaries, n)
    labels = [display_category(_get(s, "category")) for s in top]
    values = [_total_of(s) for s in top]
    return labels, values


def analytics_totals(transactions: Any) -> AnalyticsTotals:
    records = _records(transactions)
    income = sum(coerce_amount(_get(t, "amount")) for t in records if _type_of(t) == "income")
    expense = sum(coerce_amount(_get(t, "amount")) for t in records if _type_of(t) == "expense")
    return AnalyticsTotals(total_income=float(income), total_expense=float(expense), total_transactions=len(records))


def goal_progress(goal: Any) -> int:
    return bar_width(_get(goal, "saved_amount"), _get(goal, "target_amount"))


def goal_is_completed(goal: Any) -> bool:
    if _get(goal, "status") == "completed":
        return True
    return coerce_amount(_get(goal, "saved_amount")) >= coerce_amount(_get(goal, "target_amount"))
