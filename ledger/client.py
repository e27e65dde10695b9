"""HTTP client for the Transaction Store.

All paths hang off ``{base_url}/api/user``. Authenticated calls send the
session token in the ``usertoken`` header. Store responses are envelopes
``{"success": bool, "message": str, ...}``; anything other than
``success: true`` is raised as :class:`StoreError` so callers can show it and
keep their previous data.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple

import httpx

from ledger import config
from ledger.aggregate import coerce_amount, count_malformed_amounts, range_since_days
from ledger.domain import (
    AnalyticsTotals,
    Budget,
    CategorySummary,
    ExpenseAnalysis,
    Goal,
    Notification,
    Pagination,
    Transaction,
    UserProfile,
)
from ledger.errors import AuthError, StoreError, TransportError, ValidationError
from ledger.functional import validate_goal_form, validate_transaction_form
from ledger.transforms import budgets_from_payload, goals_from_payload, transactions_from_payload

logger = logging.getLogger(__name__)


class TransactionPage(NamedTuple):
    transactions: Tuple[Transaction, ...]
    pagination: Pagination
    malformed: int


class AnalyticsResult(NamedTuple):
    totals: AnalyticsTotals
    categories: Tuple[CategorySummary, ...]


def _body(response: httpx.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _check_auth(response: httpx.Response) -> None:
    if response.status_code in (401, 403):
        message = _body(response).get("message") or "Session expired, please log in again"
        raise AuthError(message, response.status_code)


def _unwrap(method: str, path: str, response: httpx.Response) -> Dict[str, Any]:
    _check_auth(response)
    data = _body(response)
    if data.get("success") is not True:
        message = data.get("message") or data.get("error") or f"Request failed ({response.status_code})"
        logger.warning("%s %s rejected: %s", method, path, message)
        raise StoreError(message, response.status_code)
    return data


def _frequency(range_key: Any) -> str:
    # unknown range tokens widen to the full history
    days = range_since_days(range_key)
    return "all" if days is None else str(days)


def _validated(check) -> Dict[str, Any]:
    if check.is_left():
        raise ValidationError(check.get_error()["message"])
    return check.get_or_else({})


def _transaction_page(data: Mapping[str, Any], page: int, page_size: int) -> TransactionPage:
    rows = data.get("transactions") or []
    return TransactionPage(
        transactions=transactions_from_payload(rows),
        pagination=Pagination.from_payload(data.get("pagination"), page, page_size),
        malformed=count_malformed_amounts(rows),
    )


def _analytics(data: Mapping[str, Any]) -> AnalyticsResult:
    payload = data.get("data") or {}
    return AnalyticsResult(
        totals=AnalyticsTotals.from_payload(payload.get("totals") or {}),
        categories=tuple(CategorySummary.from_payload(c) for c in payload.get("categories") or ()),
    )


class StoreClient:
    def __init__(
        self,
        base_url: str = config.BACKEND_URL,
        token: Optional[str] = None,
        timeout: float = config.REQUEST_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") + config.API_PREFIX
        self.token = token
        self.timeout = timeout
        self.transport = transport
        self.async_transport = async_transport

    # plumbing

    def _headers(self, auth: bool) -> Dict[str, str]:
        if not auth:
            return {}
        if not self.token:
            raise AuthError("Not logged in")
        return {"usertoken": self.token}

    def _send(self, method: str, path: str, auth: bool = True, **kwargs: Any) -> httpx.Response:
        headers = self._headers(auth)
        logger.debug("%s %s", method, path)
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as http:
                return http.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise TransportError("The server took too long to respond") from e
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError("Could not reach the server") from e

    def _call(self, method: str, path: str, auth: bool = True, **kwargs: Any) -> Dict[str, Any]:
        return _unwrap(method, path, self._send(method, path, auth=auth, **kwargs))

    def _download(self, path: str) -> bytes:
        response = self._send("GET", path)
        _check_auth(response)
        if response.is_error:
            message = _body(response).get("message") or f"Export failed ({response.status_code})"
            raise StoreError(message, response.status_code)
        return response.content

    def _ai(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        # AI endpoints answer with bare JSON, errors under "error"
        response = self._send("POST", path, json=payload)
        _check_auth(response)
        data = _body(response)
        if response.is_error:
            raise StoreError(data.get("error") or data.get("message") or "AI service unavailable", response.status_code)
        return data

    def async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.async_transport)

    async def _acall(self, http: httpx.AsyncClient, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        headers = self._headers(True)
        logger.debug("%s %s (async)", method, path)
        try:
            response = await http.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError("The server took too long to respond") from e
        except httpx.TransportError as e:
            raise TransportError("Could not reach the server") from e
        return _unwrap(method, path, response)

    # session

    def register(self, name: str, email: str, password: str) -> str:
        data = self._call("POST", "/register", auth=False, json={"name": name, "email": email, "password": password})
        self.token = data.get("usertoken")
        return self.token

    def login(self, email: str, password: str) -> str:
        data = self._call("POST", "/login", auth=False, json={"email": email, "password": password})
        self.token = data.get("usertoken")
        return self.token

    def profile(self) -> UserProfile:
        data = self._call("GET", "/profile")
        return UserProfile.from_payload(data.get("userdata") or {})

    def update_profile(self, name: str, gender: str = "", dob: str = "", image: Optional[Tuple[str, bytes]] = None) -> str:
        files = {"image": image} if image else None
        data = self._call("POST", "/update-profile", data={"name": name, "gender": gender, "dob": dob}, files=files)
        return data.get("message") or "Profile updated"

    # transactions

    def list_transactions(self, page: int = 1, page_size: int = 10, frequency: str = "all") -> TransactionPage:
        params = {"page": page, "pageSize": page_size, "frequency": _frequency(frequency)}
        return _transaction_page(self._call("GET", "/transactions", params=params), page, page_size)

    def analytics(self, frequency: str = "all", type: str = "all") -> AnalyticsResult:
        return _analytics(self._call("GET", "/transactions/analytics", params={"frequency": _frequency(frequency), "type": type}))

    def create_transaction(self, form: Mapping[str, Any]) -> Tuple[Transaction, Optional[str]]:
        form = _validated(validate_transaction_form(form))
        data = self._call("POST", "/transactions", json=form)
        return Transaction.from_payload(data.get("data") or {}), data.get("aiCategory")

    def update_transaction(self, transaction_id: str, changes: Mapping[str, Any]) -> Optional[Transaction]:
        data = self._call("PUT", f"/transactions/{transaction_id}", json=dict(changes))
        return Transaction.from_payload(data["data"]) if data.get("data") else None

    def delete_transaction(self, transaction_id: str) -> None:
        self._call("DELETE", f"/transactions/{transaction_id}")

    def export_csv(self) -> bytes:
        return self._download("/transactions/export/csv")

    def export_pdf(self) -> bytes:
        return self._download("/transactions/export/pdf")

    # budgets

    def list_budgets(self) -> Tuple[Budget, ...]:
        return budgets_from_payload(self._call("GET", "/budgets").get("budgets"))

    def save_budget(self, category: str, amount: float) -> Tuple[Optional[Budget], str]:
        data = self._call("POST", "/budgets", json={"category": category, "amount": amount})
        budget = Budget.from_payload(data["budget"]) if data.get("budget") else None
        return budget, data.get("message") or "Budget saved"

    def update_budget(self, budget_id: str, amount: Optional[float] = None, category: Optional[str] = None) -> Optional[Budget]:
        changes: Dict[str, Any] = {}
        if amount is not None:
            changes["amount"] = amount
        if category is not None:
            changes["category"] = category
        data = self._call("PUT", f"/budgets/{budget_id}", json=changes)
        return Budget.from_payload(data["budget"]) if data.get("budget") else None

    def delete_budget(self, budget_id: str) -> None:
        self._call("DELETE", f"/budgets/{budget_id}")

    # goals

    def list_goals(self) -> Tuple[Goal, ...]:
        return goals_from_payload(self._call("GET", "/goals").get("goals"))

    def create_goal(self, form: Mapping[str, Any]) -> Optional[Goal]:
        form = _validated(validate_goal_form(form))
        data = self._call("POST", "/goals", json=form)
        return Goal.from_payload(data["goal"]) if data.get("goal") else None

    def update_goal(self, goal_id: str, changes: Mapping[str, Any]) -> Optional[Goal]:
        data = self._call("PUT", f"/goals/{goal_id}", json=dict(changes))
        return Goal.from_payload(data["goal"]) if data.get("goal") else None

    def delete_goal(self, goal_id: str) -> None:
        self._call("DELETE", f"/goals/{goal_id}")

    # notifications

    def list_notifications(self) -> Tuple[Notification, ...]:
        rows = self._call("GET", "/notifications").get("notifications") or ()
        return tuple(Notification.from_payload(n) for n in rows)

    def generate_notifications(self) -> int:
        return int(coerce_amount(self._call("POST", "/notifications/generate").get("count")))

    def mark_read(self, notification_id: str) -> None:
        self._call("PUT", f"/notifications/{notification_id}/read")

    def mark_all_read(self) -> None:
        self._call("PUT", "/notifications/read-all")

    # AI helpers

    def analyze_expense(self, expense: str, amount: float, description: str = "") -> ExpenseAnalysis:
        data = self._ai("/ai/analyze-expense", {"expense": expense, "amount": amount, "description": description})
        return ExpenseAnalysis.from_payload(data)

    def smart_advice(self, query: str) -> str:
        return self._ai("/ai/smart-advisor", {"query": query}).get("advice") or ""

    # concurrent fetches

    async def fetch_analytics(self, http: httpx.AsyncClient, frequency: str = "all", type: str = "all") -> AnalyticsResult:
        data = await self._acall(http, "GET", "/transactions/analytics", params={"frequency": _frequency(frequency), "type": type})
        return _analytics(data)

    async def fetch_transactions(self, http: httpx.AsyncClient, page: int = 1, page_size: int = 10, frequency: str = "all") -> TransactionPage:
        params = {"page": page, "pageSize": page_size, "frequency": _frequency(frequency)}
        data = await self._acall(http, "GET", "/transactions", params=params)
        return _transaction_page(data, page, page_size)


async def load_dashboard(
    client: StoreClient,
    range_key: str = "7",
    page_size: int = config.DASHBOARD_PAGE_SIZE,
) -> Tuple[AnalyticsResult, TransactionPage]:
    """Fetch the all-time analytics and the recent transactions together."""
    async with client.async_client() as http:
        # both fetches settle before the client closes; the first failure is raised
        results = await asyncio.gather(
            client.fetch_analytics(http),
            client.fetch_transactions(http, page=1, page_size=page_size, frequency=range_key),
            return_exceptions=True,
        )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    analytics, page = results
    return analytics, page
