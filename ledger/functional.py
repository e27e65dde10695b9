from typing import Any, Callable, Generic, Iterable, Mapping, Optional, TypeVar

from ledger.aggregate import _parse_amount, canonical_category
from ledger.domain import TRANSACTION_TYPES, Budget, parse_date

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class Maybe(Generic[T]):
    """A value that may be absent. Build with Some(x) or Nothing()."""

    __slots__ = ("_value", "_present")

    def __init__(self, value: Optional[T] = None, present: bool = False):
        self._value = value
        self._present = present

    def map(self, f: Callable[[T], U]) -> "Maybe[U]":
        return Some(f(self._value)) if self._present else Nothing()

    def bind(self, f: Callable[[T], "Maybe[U]"]) -> "Maybe[U]":
        return f(self._value) if self._present else Nothing()

    def get_or_else(self, default: T) -> T:
        return self._value if self._present else default

    def is_some(self) -> bool:
        return self._present

    def is_none(self) -> bool:
        return not self._present

    def __eq__(self, other) -> bool:
        return isinstance(other, Maybe) and (self._present, self._value) == (other._present, other._value)

    def __repr__(self) -> str:
        return f"Some({self._value!r})" if self._present else "Nothing()"


def Some(value: T) -> Maybe[T]:
    return Maybe(value, present=True)


def Nothing() -> Maybe[Any]:
    return Maybe()


class Either(Generic[E, T]):
    """Right(value) on success, Left(error) on failure."""

    __slots__ = ("_value", "_error", "_right")

    def __init__(self, value: Optional[T] = None, error: Optional[E] = None, right: bool = True):
        self._value = value
        self._error = error
        self._right = right

    def map(self, f: Callable[[T], U]) -> "Either[E, U]":
        return Right(f(self._value)) if self._right else self

    def bind(self, f: Callable[[T], "Either[E, U]"]) -> "Either[E, U]":
        return f(self._value) if self._right else self

    def get_or_else(self, default: T) -> T:
        return self._value if self._right else default

    def is_right(self) -> bool:
        return self._right

    def is_left(self) -> bool:
        return not self._right

    def get_error(self) -> E:
        if self._right:
            raise ValueError("Cannot get error from Right")
        return self._error

    def __eq__(self, other) -> bool:
        if not isinstance(other, Either) or self._right != other._right:
            return False
        return self._value == other._value if self._right else self._error == other._error

    def __repr__(self) -> str:
        return f"Right({self._value!r})" if self._right else f"Left({self._error!r})"


def Right(value: T) -> Either[Any, T]:
    return Either(value=value)


def Left(error: E) -> Either[E, Any]:
    return Either(error=error, right=False)


def _invalid(error: str, message: str, **extra: Any) -> Either[dict, Any]:
    return Left({"error": error, "message": message, **extra})


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def _check_amount(value: Any, label: str = "Amount") -> Optional[Either[dict, Any]]:
    if _blank(value):
        return _invalid("amount_required", f"{label} is required")
    number = _parse_amount(value)
    if number is None:
        return _invalid("amount_not_numeric", f"{label} must be a number", amount=value)
    if number < 0:
        return _invalid("amount_negative", f"{label} must be a non-negative number", amount=value)
    return None


def validate_transaction_form(form: Mapping[str, Any]) -> Either[dict, dict]:
    """Check a new-transaction form before it is posted.

    Category may be left empty: the store fills it in from the description.
    """
    kind = str(form.get("type") or "").strip().lower()
    if kind not in TRANSACTION_TYPES:
        return _invalid("type_invalid", "Type must be income or expense", type=form.get("type"))

    bad_amount = _check_amount(form.get("amount"))
    if bad_amount is not None:
        return bad_amount

    if _blank(form.get("description")):
        return _invalid("description_required", "Description is required for AI categorization")

    raw_date = form.get("transaction_date")
    if not _blank(raw_date) and parse_date(raw_date) is None:
        return _invalid("date_invalid", f"Invalid date {raw_date!r}", transaction_date=raw_date)

    return Right({
        "type": kind,
        "category": str(form.get("category") or "").strip(),
        "amount": _parse_amount(form.get("amount")),
        "description": str(form.get("description")).strip(),
        "transaction_date": str(parse_date(raw_date)) if not _blank(raw_date) else None,
    })


def validate_budget_form(form: Mapping[str, Any]) -> Either[dict, dict]:
    if _blank(form.get("category")):
        return _invalid("category_required", "Category is required")
    bad_amount = _check_amount(form.get("amount"))
    if bad_amount is not None:
        return bad_amount
    return Right({"category": str(form["category"]).strip(), "amount": _parse_amount(form["amount"])})


def validate_goal_form(form: Mapping[str, Any]) -> Either[dict, dict]:
    if _blank(form.get("title")):
        return _invalid("title_required", "Title is required")
    bad_amount = _check_amount(form.get("target_amount"), "Target amount")
    if bad_amount is not None:
        return bad_amount
    raw_date = form.get("target_date")
    if not _blank(raw_date) and parse_date(raw_date) is None:
        return _invalid("date_invalid", f"Invalid date {raw_date!r}", target_date=raw_date)
    return Right({
        "title": str(form["title"]).strip(),
        "target_amount": _parse_amount(form["target_amount"]),
        "target_date": str(parse_date(raw_date)) if not _blank(raw_date) else None,
        "description": str(form.get("description") or "").strip(),
    })


def validate_credentials(email: str, password: str, name: Optional[str] = None, register: bool = False) -> Either[dict, dict]:
    if register and _blank(name):
        return _invalid("name_required", "Name is required")
    if _blank(email) or "@" not in str(email):
        return _invalid("email_invalid", "Enter valid Email")
    if _blank(password):
        return _invalid("password_required", "Password is required")
    if register and len(password) < 8:
        return _invalid("password_short", "Password must be of 8 characters")
    creds = {"email": str(email).strip(), "password": password}
    if register:
        creds["name"] = str(name).strip()
    return Right(creds)


def find_budget(budgets: Iterable[Budget], category: str) -> Maybe[Budget]:
    key = canonical_category(category)
    for b in budgets:
        if canonical_category(b.category) == key:
            return Some(b)
    return Nothing()
