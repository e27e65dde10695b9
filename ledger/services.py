from typing import Any, Callable, Dict, Iterable, List, Sequence, Tuple

from ledger.aggregate import analytics_totals, budget_usage, category_summaries
from ledger.filters import by_type

Aggregator = Callable[..., Dict[str, Any]]


def _name(fn: Callable) -> str:
    return getattr(fn, "__name__", str(fn))


def _fold(steps: Sequence[Aggregator], label: str, *args: Any) -> Tuple[List[dict], Dict[str, Any]]:
    """Run each step with (*args, acc), merging dict outputs into acc."""
    trace: List[dict] = []
    acc: Dict[str, Any] = {}
    for step in steps:
        out = step(*args, acc)
        trace.append({label: _name(step), "output": out})
        if isinstance(out, dict):
            acc.update(out)
    return trace, acc


class ReportService:
    """Builds an analytics report from injected aggregators.

    aggregators: functions taking (transactions, type, acc) -> dict (partial results)
    """

    def __init__(self, aggregators: Sequence[Aggregator]):
        self.aggregators = aggregators

    def analytics_report(self, transactions: Iterable, type: str | None = None) -> Dict[str, Any]:
        steps, result = _fold(self.aggregators, "aggregator", tuple(transactions), type)
        return {"type": type or "all", "steps": steps, "result": result}


class BudgetService:
    """Facade for budget checks using injected validators and calculators.

    validators: functions taking (budgets, transactions) -> Sequence[str]
    calculators: functions taking (budgets, transactions, acc) -> dict (partial results)
    """

    def __init__(self, validators: Sequence[Callable[..., Sequence[str]]], calculators: Sequence[Aggregator]):
        self.validators = validators
        self.calculators = calculators

    def budget_report(self, budgets: Iterable, transactions: Iterable) -> Dict[str, Any]:
        budgets, transactions = tuple(budgets), tuple(transactions)

        validation = []
        for check in self.validators:
            try:
                messages = list(check(budgets, transactions))
            except Exception as e:
                messages = [f"validator_error: {e}"]
            validation.append({"validator": _name(check), "messages": messages})

        steps, result = _fold(self.calculators, "calculator", budgets, transactions)
        return {"validation": validation, "steps": steps, "result": result}


def totals_aggregator(transactions, type=None, acc=None) -> Dict[str, Any]:
    scoped = transactions if not type or type == "all" else tuple(filter(by_type(type), transactions))
    return {"totals": analytics_totals(scoped)}


def categories_aggregator(transactions, type=None, acc=None) -> Dict[str, Any]:
    return {"categories": category_summaries(transactions, type)}


def has_budgets(budgets, transactions) -> list[str]:
    return [] if budgets else ["No budgets defined"]


def non_negative_caps(budgets, transactions) -> list[str]:
    return [f"Budget for {b.category} has a negative amount" for b in budgets if b.amount < 0]


def usage_calculator(budgets, transactions, acc=None) -> Dict[str, Any]:
    return {"usage": budget_usage(budgets, transactions)}


def totals_calculator(budgets, transactions, acc=None) -> Dict[str, Any]:
    usage = (acc or {}).get("usage") or budget_usage(budgets, transactions)
    return {
        "total_budget": sum(u.amount for u in usage),
        "total_used": sum(u.used for u in usage),
    }


def warnings_calculator(budgets, transactions, acc=None) -> Dict[str, Any]:
    usage = (acc or {}).get("usage") or budget_usage(budgets, transactions)
    return {"near_limit": tuple(u.category for u in usage if u.warning)}


def default_report_service() -> ReportService:
    return ReportService(aggregators=[totals_aggregator, categories_aggregator])


def default_budget_service() -> BudgetService:
    return BudgetService(
        validators=[has_budgets, non_negative_caps],
        calculators=[usage_calculator, totals_calculator, warnings_calculator],
    )
