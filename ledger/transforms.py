from dataclasses import replace
from typing import Any, Iterable, Mapping, Tuple, TypeVar

from ledger.aggregate import canonical_category
from ledger.domain import Budget, Goal, Transaction

R = TypeVar("R")


def transactions_from_payload(rows: Iterable[Mapping[str, Any]] | None) -> Tuple[Transaction, ...]:
    return tuple(Transaction.from_payload(r) for r in rows or ())


def budgets_from_payload(rows: Iterable[Mapping[str, Any]] | None) -> Tuple[Budget, ...]:
    return tuple(Budget.from_payload(r) for r in rows or ())


def goals_from_payload(rows: Iterable[Mapping[str, Any]] | None) -> Tuple[Goal, ...]:
    return tuple(Goal.from_payload(r) for r in rows or ())


def add_transaction(
    trans: Tuple[Transaction, ...], t: Transaction
) -> Tuple[Transaction, ...]:
    # newest first, as the store lists them
    return (t,) + trans


def replace_by_id(items: Tuple[R, ...], new: R) -> Tuple[R, ...]:
    new_id = getattr(new, "id")
    return tuple(new if getattr(item, "id") == new_id else item for item in items)


def remove_by_id(items: Tuple[R, ...], item_id: str) -> Tuple[R, ...]:
    return tuple(filter(lambda item: getattr(item, "id") != str(item_id), items))


def upsert_budget(budgets: Tuple[Budget, ...], budget: Budget) -> Tuple[Budget, ...]:
    """Replace the budget with the same id or category, otherwise append it."""
    key = canonical_category(budget.category)
    for b in budgets:
        if b.id == budget.id or canonical_category(b.category) == key:
            return tuple(budget if x is b else x for x in budgets)
    return budgets + (budget,)


def update_goal(goals: Tuple[Goal, ...], gid: str, **changes: Any) -> Tuple[Goal, ...]:
    return tuple(replace(g, **changes) if g.id == str(gid) else g for g in goals)
