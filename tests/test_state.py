import logging

from ledger.domain import (
    AnalyticsTotals,
    Budget,
    CategorySummary,
    Goal,
    Notification,
    Pagination,
    Transaction,
    UserProfile,
)
from ledger.state import AppState, RequestTracker


def make_tx(id, category="Food", amount=10):
    return Transaction(id=id, type="expense", category=category, amount=amount)


def test_request_tracker_issues_increasing_tokens():
    tracker = RequestTracker()
    first = tracker.issue("transactions")
    second = tracker.issue("transactions")
    other = tracker.issue("analytics")
    assert first < second < other
    assert tracker.is_latest("transactions", second)
    assert not tracker.is_latest("transactions", first)
    assert tracker.latest("budgets") is None


def test_stale_response_is_discarded(caplog):
    state = AppState()
    slow = state.requests.issue("transactions")
    fast = state.requests.issue("transactions")

    assert state.apply_transactions(fast, (make_tx("new"),), Pagination(page=2, total_pages=3))
    with caplog.at_level(logging.INFO, logger="ledger.state"):
        assert state.apply_transactions(slow, (make_tx("old"),), Pagination()) is False

    assert [t.id for t in state.transactions] == ["new"]
    assert state.pagination.page == 2
    assert "stale" in caplog.text


def test_views_have_independent_tokens():
    state = AppState()
    t_token = state.requests.issue("transactions")
    a_token = state.requests.issue("analytics")
    totals = AnalyticsTotals(total_income=10, total_expense=5, total_transactions=2)

    assert state.apply_analytics(a_token, totals, [CategorySummary("Food", "expense", 5, 1)])
    assert state.apply_transactions(t_token, (make_tx("t1"),), Pagination(), malformed=1)
    assert state.analytics.totals.net == 5
    assert state.analytics.categories[0].category == "Food"
    assert state.malformed_amounts == 1


def test_sign_in_and_out():
    state = AppState()
    assert not state.signed_in
    state.sign_in("tok")
    state.set_user(UserProfile(name="Ann", email="ann@example.com"))
    token = state.requests.issue("budgets")
    state.apply_budgets(token, (Budget(id="b1", category="Food", amount=100),))
    assert state.signed_in

    state.sign_out()
    assert not state.signed_in
    assert state.user is None
    assert state.budgets == ()
    assert state.transactions == ()
    assert state.analytics is None


def test_local_mutations():
    state = AppState()
    state.add_transaction(make_tx("t1"))
    state.add_transaction(make_tx("t2"))
    assert [t.id for t in state.transactions] == ["t2", "t1"]
    state.remove_transaction("t1")
    assert [t.id for t in state.transactions] == ["t2"]

    state.upsert_budget(Budget(id="b1", category="Food", amount=100))
    state.upsert_budget(Budget(id="b1", category="Food", amount=250))
    assert state.budgets == (Budget(id="b1", category="Food", amount=250),)
    state.remove_budget("b1")
    assert state.budgets == ()

    state.add_goal(Goal(id="g1", title="Laptop", target_amount=1000))
    state.replace_goal(Goal(id="g1", title="Laptop", target_amount=1000, saved_amount=400))
    assert state.goals[0].saved_amount == 400
    state.remove_goal("g1")
    assert state.goals == ()


def test_mark_notifications_read():
    state = AppState()
    token = state.requests.issue("notifications")
    state.apply_notifications(token, (Notification(id="n1", message="a"), Notification(id="n2", message="b")))

    state.mark_notifications_read("n1")
    assert [n.is_read for n in state.notifications] == [True, False]
    state.mark_notifications_read()
    assert all(n.is_read for n in state.notifications)


def test_goals_apply_respects_tokens():
    state = AppState()
    old = state.requests.issue("goals")
    new = state.requests.issue("goals")
    assert state.apply_goals(new, (Goal(id="g1", title="Trip", target_amount=10),))
    assert not state.apply_goals(old, ())
    assert len(state.goals) == 1


def test_update_goal_in_place():
    state = AppState()
    state.add_goal(Goal(id="g1", title="Laptop", target_amount=1000))
    state.add_goal(Goal(id="g2", title="Trip", target_amount=500))
    state.update_goal("g2", saved_amount=500, status="completed")
    assert [(g.id, g.saved_amount, g.status) for g in state.goals] == [
        ("g1", 0.0, "active"),
        ("g2", 500, "completed"),
    ]
