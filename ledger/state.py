"""Per-session application state.

One ``AppState`` lives in each browser session and is handed to every view.
Views never assign its fields directly; they go through the ``apply_*`` and
mutation methods below. Fetch results carry a request token from
``RequestTracker`` so a slow, superseded response cannot overwrite a newer
one.
"""

import logging
from dataclasses import dataclass, field, replace
from itertools import count
from typing import Dict, Optional, Tuple

from ledger import transforms
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

logger = logging.getLogger(__name__)


class RequestTracker:
    def __init__(self):
        self._counter = count(1)
        self._latest: Dict[str, int] = {}

    def issue(self, view: str) -> int:
        token = next(self._counter)
        self._latest[view] = token
        return token

    def is_latest(self, view: str, token: int) -> bool:
        return self._latest.get(view) == token

    def latest(self, view: str) -> Optional[int]:
        return self._latest.get(view)


@dataclass
class Analytics:
    totals: AnalyticsTotals
    categories: Tuple[CategorySummary, ...]


@dataclass
class AppState:
    token: Optional[str] = None
    user: Optional[UserProfile] = None
    transactions: Tuple[Transaction, ...] = ()
    pagination: Pagination = field(default_factory=Pagination)
    malformed_amounts: int = 0
    analytics: Optional[Analytics] = None
    budgets: Tuple[Budget, ...] = ()
    goals: Tuple[Goal, ...] = ()
    notifications: Tuple[Notification, ...] = ()
    requests: RequestTracker = field(default_factory=RequestTracker)

    @property
    def signed_in(self) -> bool:
        return bool(self.token)

    def sign_in(self, token: str) -> None:
        self.token = token

    def sign_out(self) -> None:
        self.token = None
        self.user = None
        self.transactions = ()
        self.pagination = Pagination()
        self.malformed_amounts = 0
        self.analytics = None
        self.budgets = ()
        self.goals = ()
        self.notifications = ()

    def set_user(self, user: Optional[UserProfile]) -> None:
        self.user = user

    def _accept(self, view: str, token: int) -> bool:
        if self.requests.is_latest(view, token):
            return True
        logger.info("discarding stale %s response (token %s, latest %s)", view, token, self.requests.latest(view))
        return False

    def apply_transactions(
        self,
        token: int,
        transactions: Tuple[Transaction, ...],
        pagination: Pagination,
        malformed: int = 0,
        view: str = "transactions",
    ) -> bool:
        if not self._accept(view, token):
            return False
        self.transactions = tuple(transactions)
        self.pagination = pagination
        self.malformed_amounts = malformed
        return True

    def apply_analytics(self, token: int, totals: AnalyticsTotals, categories: Tuple[CategorySummary, ...], view: str = "analytics") -> bool:
        if not self._accept(view, token):
            return False
        self.analytics = Analytics(totals=totals, categories=tuple(categories))
        return True

    def apply_budgets(self, token: int, budgets: Tuple[Budget, ...]) -> bool:
        if not self._accept("budgets", token):
            return False
        self.budgets = tuple(budgets)
        return True

    def apply_goals(self, token: int, goals: Tuple[Goal, ...]) -> bool:
        if not self._accept("goals", token):
            return False
        self.goals = tuple(goals)
        return True

    def apply_notifications(self, token: int, notifications: Tuple[Notification, ...]) -> bool:
        if not self._accept("notifications", token):
            return False
        self.notifications = tuple(notifications)
        return True

    def add_transaction(self, t: Transaction) -> None:
        self.transactions = transforms.add_transaction(self.transactions, t)

    def remove_transaction(self, transaction_id: str) -> None:
        self.transactions = transforms.remove_by_id(self.transactions, transaction_id)

    def upsert_budget(self, budget: Budget) -> None:
        self.budgets = transforms.upsert_budget(self.budgets, budget)

    def remove_budget(self, budget_id: str) -> None:
        self.budgets = transforms.remove_by_id(self.budgets, budget_id)

    def replace_goal(self, goal: Goal) -> None:
        self.goals = transforms.replace_by_id(self.goals, goal)

    def update_goal(self, goal_id: str, **changes) -> None:
        self.goals = transforms.update_goal(self.goals, goal_id, **changes)

    def add_goal(self, goal: Goal) -> None:
        self.goals = self.goals + (goal,)

    def remove_goal(self, goal_id: str) -> None:
        self.goals = transforms.remove_by_id(self.goals, goal_id)

    def mark_notifications_read(self, notification_id: Optional[str] = None) -> None:
        self.notifications = tuple(
            replace(n, is_read=True) if notification_id is None or n.id == str(notification_id) else n
            for n in self.notifications
        )
