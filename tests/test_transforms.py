from datetime import date

from ledger.domain import Budget, Goal, Transaction
from ledger.transforms import (
    add_transaction,
    budgets_from_payload,
    goals_from_payload,
    remove_by_id,
    replace_by_id,
    transactions_from_payload,
    update_goal,
    upsert_budget,
)


def test_transactions_from_payload():
    rows = [
        {"id": 1, "type": "Expense", "category": "Food", "amount": "12.5", "transaction_date": "2025-01-03T00:00:00"},
        {"id": 2, "type": "income", "category": None, "amount": "abc", "date": "2025-01-04"},
    ]
    t1, t2 = transactions_from_payload(rows)
    assert t1.id == "1"
    assert t1.type == "expense"
    assert t1.amount == 12.5
    assert t1.transaction_date == date(2025, 1, 3)
    assert t2.category == ""
    assert t2.amount == 0.0
    assert t2.transaction_date == date(2025, 1, 4)
    assert transactions_from_payload(None) == ()


def test_budgets_and_goals_from_payload():
    (b,) = budgets_from_payload([{"id": 7, "category": "Food", "amount": 200}])
    assert b == Budget(id="7", category="Food", amount=200.0)
    (g,) = goals_from_payload([{"id": 3, "title": "Laptop", "target_amount": "1000", "saved_amount": None}])
    assert g.target_amount == 1000.0
    assert g.saved_amount == 0.0
    assert g.status == "active"


def test_add_transaction():
    t1 = Transaction(id="t1", type="income", category="Salary", amount=100)
    t2 = Transaction(id="t2", type="expense", category="Food", amount=50)

    transactions = (t1,)
    new_transactions = add_transaction(transactions, t2)

    assert new_transactions == (t2, t1)
    assert transactions == (t1,)


def test_replace_and_remove_by_id():
    g1 = Goal(id="g1", title="Laptop", target_amount=1000)
    g2 = Goal(id="g2", title="Trip", target_amount=500)
    changed = Goal(id="g2", title="Trip", target_amount=500, saved_amount=100)

    assert replace_by_id((g1, g2), changed) == (g1, changed)
    assert remove_by_id((g1, g2), "g1") == (g2,)
    assert remove_by_id((g1, g2), "missing") == (g1, g2)


def test_upsert_budget_matches_category_case_insensitively():
    b1 = Budget(id="b1", category="Food", amount=200)
    b2 = Budget(id="b2", category="Travel", amount=150)

    updated = upsert_budget((b1, b2), Budget(id="b1", category="food", amount=300))
    assert updated == (Budget(id="b1", category="food", amount=300), b2)

    added = upsert_budget((b1, b2), Budget(id="b3", category="Shopping", amount=80))
    assert [b.id for b in added] == ["b1", "b2", "b3"]


def test_update_goal():
    goals = (Goal(id="g1", title="Laptop", target_amount=1000),)
    new_goals = update_goal(goals, "g1", saved_amount=1000, status="completed")
    assert new_goals[0].status == "completed"
    assert goals[0].saved_amount == 0.0
