from ledger.domain import Budget, Transaction
from ledger.services import (
    BudgetService,
    ReportService,
    default_budget_service,
    default_report_service,
    totals_aggregator,
)


def make_tx(id, type, category, amount):
    return Transaction(id=id, type=type, category=category, amount=amount)


trans = (
    make_tx("t1", "expense", "Food", 100),
    make_tx("t2", "expense", "food", 50),
    make_tx("t3", "income", "Salary", 1000),
)
budgets = (Budget(id="b1", category="Food", amount=200), Budget(id="b2", category="Travel", amount=50))


def test_analytics_report_all_types():
    report = default_report_service().analytics_report(trans)
    assert report["type"] == "all"
    assert [s["aggregator"] for s in report["steps"]] == ["totals_aggregator", "categories_aggregator"]
    totals = report["result"]["totals"]
    assert (totals.total_income, totals.total_expense, totals.total_transactions) == (1000, 150, 3)
    assert {(c.type, c.category) for c in report["result"]["categories"]} == {("expense", "Food"), ("income", "Salary")}


def test_analytics_report_single_type():
    report = default_report_service().analytics_report(trans, "expense")
    assert report["result"]["totals"].total_transactions == 2
    assert all(c.type == "expense" for c in report["result"]["categories"])


def test_report_service_accumulates_partial_results():
    def seen(transactions, type, acc):
        return {"seen_totals": "totals" in acc}

    report = ReportService([totals_aggregator, seen]).analytics_report(trans)
    assert report["result"]["seen_totals"] is True


def test_budget_report():
    report = default_budget_service().budget_report(budgets, trans)
    result = report["result"]
    assert result["total_budget"] == 250
    assert result["total_used"] == 150
    assert result["near_limit"] == ()
    assert [u.used for u in result["usage"]] == [150, 0]
    assert all(v["messages"] == [] for v in report["validation"])


def test_budget_report_flags_near_limit():
    over = trans + (make_tx("t4", "expense", "FOOD", 40),)
    result = default_budget_service().budget_report(budgets, over)["result"]
    assert result["near_limit"] == ("Food",)


def test_budget_report_validators():
    report = default_budget_service().budget_report((), trans)
    messages = [m for v in report["validation"] for m in v["messages"]]
    assert messages == ["No budgets defined"]

    negative = (Budget(id="b9", category="Rent", amount=-1),)
    report = default_budget_service().budget_report(negative, trans)
    messages = [m for v in report["validation"] for m in v["messages"]]
    assert "Budget for Rent has a negative amount" in messages


def test_failing_validator_is_reported():
    def broken(budgets, transactions):
        raise RuntimeError("boom")

    report = BudgetService([broken], []).budget_report(budgets, trans)
    assert report["validation"][0]["messages"] == ["validator_error: boom"]
    assert report["result"] == {}
