import json
import logging
import math

import pytest

from ledger.aggregate import (
    analytics_totals,
    bar_width,
    budget_usage,
    canonical_category,
    category_spend,
    category_summaries,
    chart_series,
    coerce_amount,
    count_malformed_amounts,
    goal_is_completed,
    goal_progress,
    percentage_of,
    range_since_days,
    top_categories,
)
from ledger.domain import Budget, CategorySummary, Goal, Transaction


def make_tx(id, type, category, amount, d="2025-01-10"):
    return Transaction(id=id, type=type, category=category, amount=amount, description="", transaction_date=d)


def scenario():
    return [
        {"id": "1", "type": "expense", "category": "Food", "amount": 100},
        {"id": "2", "type": "expense", "category": "food", "amount": 50},
        {"id": "3", "type": "income", "category": "Salary", "amount": 1000},
    ]


def test_category_spend_scenario():
    assert category_spend(scenario(), "expense") == {"Food": 150}
    assert category_spend(scenario(), "income") == {"Salary": 1000}


def test_category_spend_partitions_the_type_total():
    trans = [
        make_tx("t1", "expense", "Food", 12.5),
        make_tx("t2", "expense", "Rent", 700),
        make_tx("t3", "expense", " rent ", 100),
        make_tx("t4", "income", "Salary", 2000),
        make_tx("t5", "expense", "", 30),
    ]
    spend = category_spend(trans, "expense")
    assert sum(spend.values()) == pytest.approx(12.5 + 700 + 100 + 30)
    assert spend["Rent"] == 800
    assert spend["Uncategorized"] == 30
    assert "Salary" not in spend


def test_category_spend_first_label_wins():
    trans = [make_tx("t1", "expense", "groceries", 10), make_tx("t2", "expense", "Groceries", 5)]
    assert category_spend(trans, "expense") == {"groceries": 15}


def test_category_spend_empty():
    assert category_spend([], "expense") == {}
    assert category_spend((), "income") == {}


def test_category_spend_does_not_mutate_input():
    trans = scenario()
    snapshot = [dict(t) for t in trans]
    category_spend(trans, "expense")
    assert trans == snapshot


def test_malformed_amount_counts_as_zero(caplog):
    trans = [
        {"type": "expense", "category": "Food", "amount": "abc"},
        {"type": "expense", "category": "Food", "amount": 40},
    ]
    with caplog.at_level(logging.WARNING, logger="ledger.aggregate"):
        assert category_spend(trans, "expense") == {"Food": 40}
    assert "abc" in caplog.text


def test_missing_amount_is_zero_without_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="ledger.aggregate"):
        assert coerce_amount(None) == 0.0
        assert coerce_amount("  ") == 0.0
    assert caplog.text == ""


def test_coerce_amount_parses_strings():
    assert coerce_amount("12.50") == 12.5
    assert coerce_amount(float("nan")) == 0.0


def test_count_malformed_amounts():
    rows = [{"amount": "abc"}, {"amount": None}, {"amount": "7"}, {"amount": "inf"}]
    assert count_malformed_amounts(rows) == 2


def test_invalid_input_raises_type_error():
    with pytest.raises(TypeError):
        category_spend(None, "expense")
    with pytest.raises(TypeError):
        category_spend("food", "expense")
    with pytest.raises(TypeError):
        budget_usage({"category": "Food"}, [])


def test_canonical_category():
    assert canonical_category(" Food ") == "food"
    assert canonical_category("FOOD") == canonical_category("food")
    assert canonical_category(None) == "uncategorized"
    assert canonical_category("") == "uncategorized"


def test_category_summaries_percentages_per_type():
    summaries = category_summaries(scenario())
    by_key = {(s.type, s.category): s for s in summaries}
    assert by_key[("expense", "Food")].total_amount == 150
    assert by_key[("expense", "Food")].count == 2
    assert by_key[("expense", "Food")].percentage == 100.0
    assert by_key[("income", "Salary")].percentage == 100.0


def test_category_summaries_single_type():
    trans = [make_tx("t1", "expense", "Food", 25), make_tx("t2", "expense", "Rent", 75)]
    summaries = category_summaries(trans, "expense")
    assert [(s.category, s.percentage) for s in summaries] == [("Food", 25.0), ("Rent", 75.0)]


def test_percentage_of_zero_whole():
    for part in (0, 1, 50, -3, 1e9):
        assert percentage_of(part, 0) == 0.0
    assert percentage_of(10, -5) == 0.0


def test_percentage_of_values():
    assert percentage_of(50, 200) == 25.0
    assert percentage_of(190, 200) == 95.0
    assert percentage_of(250, 200) == 125.0
    assert percentage_of(1, 3) == 33.3


def test_percentage_of_rounds_half_up():
    assert percentage_of(1, 8) == 12.5
    assert percentage_of(0.125, 1) == 12.5
    assert percentage_of(0.0625, 1) == 6.3


def test_bar_width_clamps():
    assert bar_width(190, 200) == 95
    assert bar_width(250, 200) == 100
    assert bar_width(-10, 200) == 0
    assert bar_width(10, 0) == 0
    assert bar_width(1, 200) == 1  # 0.5 rounds up


def test_budget_usage_scenario():
    budgets = [Budget(id="b1", category="Food", amount=200)]
    (usage,) = budget_usage(budgets, scenario())
    assert usage.used == 150
    assert usage.percentage == 75
    assert usage.warning is False
    assert usage.remaining == 50


def test_budget_usage_case_insensitive():
    trans = [make_tx("t1", "expense", "food", 90)]
    upper = budget_usage([Budget(id="b1", category="FOOD", amount=100)], trans)
    lower = budget_usage([Budget(id="b1", category="food", amount=100)], trans)
    assert upper[0].used == lower[0].used == 90
    assert upper[0].warning and lower[0].warning


def test_budget_usage_ignores_income_and_keeps_order():
    trans = [
        make_tx("t1", "income", "Food", 1000),
        make_tx("t2", "expense", "Travel", 250),
    ]
    budgets = [Budget(id="b1", category="Travel", amount=200), Budget(id="b2", category="Food", amount=50)]
    usages = budget_usage(budgets, trans)
    assert [u.category for u in usages] == ["Travel", "Food"]
    assert usages[0].percentage == 100
    assert usages[0].warning is True
    assert usages[1].used == 0


def test_budget_usage_zero_cap():
    trans = [make_tx("t1", "expense", "Food", 5)]
    (usage,) = budget_usage([Budget(id="b1", category="Food", amount=0)], trans)
    assert usage.percentage == 0
    assert usage.warning is True
    (idle,) = budget_usage([Budget(id="b1", category="Food", amount=0)], [])
    assert idle.warning is False


def test_budget_usage_empty():
    assert budget_usage([], scenario()) == ()


def test_range_since_days():
    assert range_since_days("7") == 7
    assert range_since_days(30) == 30
    assert range_since_days("365") == 365
    assert range_since_days("all") is None
    assert range_since_days("fortnight") is None
    assert range_since_days(None) is None


def test_top_categories_orders_and_limits():
    summaries = [
        CategorySummary("A", "expense", 10, 1),
        CategorySummary("B", "expense", 30, 1),
        CategorySummary("C", "expense", 20, 1),
    ]
    assert [s.category for s in top_categories(summaries, 2)] == ["B", "C"]
    assert top_categories(summaries, 0) == ()
    assert len(top_categories(summaries, None)) == 3


def test_top_categories_stable_and_idempotent():
    summaries = [
        {"category": "x", "totalAmount": 5},
        {"category": "y", "totalAmount": 9},
        {"category": "z", "totalAmount": 5},
    ]
    once = top_categories(summaries, 6)
    twice = top_categories(once, 6)
    assert [s["category"] for s in once] == ["y", "x", "z"]
    assert once == twice


def test_chart_series():
    summaries = [CategorySummary("Food", "expense", 30, 2), CategorySummary("Rent", "expense", 70, 1)]
    assert chart_series(summaries, 6) == (["Rent", "Food"], [70.0, 30.0])


def test_analytics_totals():
    totals = analytics_totals(scenario())
    assert totals.total_income == 1000
    assert totals.total_expense == 150
    assert totals.total_transactions == 3
    assert totals.net == 850


def test_goal_progress_and_completion():
    goal = Goal(id="g1", title="Laptop", target_amount=1000, saved_amount=250)
    assert goal_progress(goal) == 25
    assert goal_is_completed(goal) is False
    assert goal_is_completed(Goal(id="g2", title="Trip", target_amount=100, saved_amount=100)) is True
    assert goal_is_completed(Goal(id="g3", title="Car", target_amount=100, status="completed")) is True


def test_huge_integer_amount_counts_as_zero():
    rows = json.loads('[{"type": "expense", "category": "Food", "amount": 1' + "0" * 400 + "}]")
    assert category_spend(rows, "expense") == {"Food": 0.0}
    assert count_malformed_amounts(rows) == 1


def test_large_ratios_do_not_raise():
    assert percentage_of(1e30, 1) == pytest.approx(1e32)
    assert bar_width(1e30, 1) == 100
    assert bar_width(1e308, 1e-10) == 100
    assert math.isinf(percentage_of(1e308, 1e-10))
    assert percentage_of(1e300, 3) == pytest.approx(1e302 / 3)


def test_overflowing_budget_usage_stays_in_bounds():
    trans = [make_tx("t1", "expense", "Food", 1.7e308), make_tx("t2", "expense", "Food", 1.7e308)]
    (usage,) = budget_usage([Budget(id="b1", category="Food", amount=1e10)], trans)
    assert usage.percentage == 100
    assert usage.warning is True
    goal = Goal(id="g1", title="Moon", target_amount=1, saved_amount=1e300)
    assert goal_progress(goal) == 100
