from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional, Tuple

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)


def parse_date(value: Any) -> Optional[date]:
    """Accept a date, or an ISO string like '2025-01-03' / '2025-01-03T10:00:00'."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _number(value: Any, default: float = 0.0) -> float:
    # imported late: aggregate depends on domain
    from ledger.aggregate import coerce_amount

    if value is None:
        return default
    return coerce_amount(value)


def _whole(value: Any, default: int = 0) -> int:
    return int(_number(value, default))


@dataclass(frozen=True)
class Transaction:
    id: str
    type: str             # "income" or "expense"
    category: str
    amount: float         # always >= 0, sign comes from type
    description: str = ""
    transaction_date: Optional[date] = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Transaction":
        return cls(
            id=str(data.get("id", "")),
            type=str(data.get("type") or "").lower(),
            category=data.get("category") or "",
            amount=_number(data.get("amount")),
            description=data.get("description") or "",
            transaction_date=parse_date(data.get("transaction_date") or data.get("date")),
        )


@dataclass(frozen=True)
class Budget:
    id: str
    category: str
    amount: float  # the cap

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Budget":
        return cls(
            id=str(data.get("id", "")),
            category=data.get("category") or "",
            amount=_number(data.get("amount")),
        )


@dataclass(frozen=True)
class Goal:
    id: str
    title: str
    target_amount: float
    saved_amount: float = 0.0
    target_date: Optional[date] = None
    description: str = ""
    status: str = "active"  # "active" or "completed"

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Goal":
        return cls(
            id=str(data.get("id", "")),
            title=data.get("title") or "",
            target_amount=_number(data.get("target_amount")),
            saved_amount=_number(data.get("saved_amount")),
            target_date=parse_date(data.get("target_date")),
            description=data.get("description") or "",
            status=data.get("status") or "active",
        )


@dataclass(frozen=True)
class CategorySummary:
    category: str
    type: str
    total_amount: float
    count: int
    percentage: float = 0.0

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "CategorySummary":
        return cls(
            category=data.get("category") or "Uncategorized",
            type=str(data.get("type") or "").lower(),
            total_amount=_number(data.get("totalAmount", data.get("total_amount"))),
            count=_whole(data.get("count")),
            percentage=_number(data.get("percentage")),
        )


@dataclass(frozen=True)
class BudgetUsage:
    id: str
    category: str
    amount: float
    used: float
    percentage: int   # progress-bar width, 0..100
    warning: bool     # used / amount >= 0.9

    @property
    def remaining(self) -> float:
        return self.amount - self.used


@dataclass(frozen=True)
class AnalyticsTotals:
    total_income: float = 0.0
    total_expense: float = 0.0
    total_transactions: int = 0

    @property
    def net(self) -> float:
        return self.total_income - self.total_expense

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "AnalyticsTotals":
        return cls(
            total_income=_number(data.get("totalIncome")),
            total_expense=_number(data.get("totalExpense")),
            total_transactions=_whole(data.get("totalTransactions")),
        )


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    total_pages: int = 1
    page_size: int = 10
    total: int = 0

    @classmethod
    def from_payload(cls, data: Optional[Mapping[str, Any]], page: int, page_size: int) -> "Pagination":
        data = data or {}
        return cls(
            page=_whole(data.get("page")) or page,
            total_pages=_whole(data.get("totalPages")) or 1,
            page_size=_whole(data.get("pageSize")) or page_size,
            total=_whole(data.get("total")),
        )


@dataclass(frozen=True)
class UserProfile:
    name: str
    email: str
    image: str = ""
    gender: str = ""
    dob: str = ""

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "UserProfile":
        return cls(
            name=data.get("name") or "",
            email=data.get("email") or "",
            image=data.get("image") or "",
            gender=data.get("gender") or "",
            dob=data.get("dob") or "",
        )


@dataclass(frozen=True)
class Notification:
    id: str
    message: str
    type: str = "info"  # success, warning, tip, info
    is_read: bool = False
    created_at: str = ""

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Notification":
        return cls(
            id=str(data.get("id", "")),
            message=data.get("message") or "",
            type=data.get("type") or "info",
            is_read=bool(data.get("is_read", data.get("isRead", False))),
            created_at=str(data.get("created_at") or data.get("createdAt") or ""),
        )


@dataclass(frozen=True)
class ExpenseAnalysis:
    category: str           # "Need", "Want" or "Unknown"
    confidence: int
    reasoning: str
    tips: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ExpenseAnalysis":
        return cls(
            category=data.get("category") or "Unknown",
            confidence=_whole(data.get("confidence")),
            reasoning=data.get("reasoning") or "",
            tips=tuple(data.get("tips") or ()),
        )
