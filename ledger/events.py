import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

from ledger.aggregate import budget_usage, canonical_category, _get

__all__ = [
    "event_bus", "TRANSACTION_ADDED", "TRANSACTION_DELETED", "BUDGET_ALERT",
    "Event", "EventBus", "audit_handler", "budget_alert_handler", "register_default_handlers",
]

logger = logging.getLogger(__name__)

TRANSACTION_ADDED = "TRANSACTION_ADDED"
TRANSACTION_DELETED = "TRANSACTION_DELETED"
BUDGET_ALERT = "BUDGET_ALERT"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.setdefault(name, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        handlers = self._subscribers.get(name)
        if not handlers:
            return []
        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        logger.debug("publishing %s to %d handler(s)", name, len(handlers))
        return [handler(event, payload) for handler in handlers]


def budget_alert_handler(event: Event, payload: dict) -> dict:
    """Warn when a new expense pushes its category to the warning threshold.

    payload: transaction (the one just added), budgets, transactions (the
    updated list, new transaction included).
    """
    t = payload.get("transaction")
    if t is None or str(_get(t, "type") or "").lower() != "expense":
        return {}

    key = canonical_category(_get(t, "category"))
    budgets = [b for b in payload.get("budgets", ()) if canonical_category(_get(b, "category")) == key]
    if not budgets:
        return {}

    usage = budget_usage(budgets, payload.get("transactions", ()))[0]
    if not usage.warning:
        return {}
    if usage.used > usage.amount:
        message = f"Budget exceeded for {usage.category}: {usage.used:,.2f} / {usage.amount:,.2f}"
    else:
        message = f"Budget for {usage.category} is almost used up: {usage.used:,.2f} / {usage.amount:,.2f}"
    return {
        "alert": message,
        "category": usage.category,
        "percentage": usage.percentage,
        "exceeded": usage.used > usage.amount,
    }


def audit_handler(event: Event, payload: dict) -> dict:
    t = payload.get("transaction")
    logger.info("%s %s at %s", event.name, _get(t, "id") if t is not None else payload.get("id"), event.ts)
    return {}


event_bus = EventBus()


def register_default_handlers(bus: EventBus = event_bus) -> EventBus:
    bus.subscribe(TRANSACTION_ADDED, budget_alert_handler)
    bus.subscribe(TRANSACTION_ADDED, audit_handler)
    bus.subscribe(TRANSACTION_DELETED, audit_handler)
    return bus


register_default_handlers()
