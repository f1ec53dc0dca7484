from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, Optional, TypeVar, Union

from tracker.domain import (
    Account,
    Category,
    EXPENSE,
    FREQUENCIES,
    INCOME,
    OTHER_CATEGORY,
    RecurringTransaction,
    TRANSACTION_TYPES,
    Transaction,
    parse_ts,
)

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):
    """A value that may be absent: ``Some(value)`` or ``Nothing()``."""

    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return self.bind(lambda v: Some(f(v)))

    def is_none(self) -> bool:
        return not self.is_some()


@dataclass(frozen=True)
class Some(Maybe[T]):
    value: T

    def bind(self, f):
        return f(self.value)

    def get_or_else(self, default):
        return self.value

    def is_some(self) -> bool:
        return True


@dataclass(frozen=True)
class Nothing(Maybe[T]):

    def bind(self, f):
        return self

    def get_or_else(self, default):
        return default

    def is_some(self) -> bool:
        return False


class Either(Generic[E, T], ABC):
    """Validation outcome: ``Right(value)`` on success, ``Left(error)`` otherwise."""

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    @abstractmethod
    def get_error(self) -> E:
        pass

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return self.bind(lambda v: Right(f(v)))

    def is_left(self) -> bool:
        return not self.is_right()


@dataclass(frozen=True)
class Right(Either[E, T]):
    value: T

    def bind(self, f):
        return f(self.value)

    def get_or_else(self, default):
        return self.value

    def is_right(self) -> bool:
        return True

    def get_error(self):
        raise ValueError("Right carries no error")


@dataclass(frozen=True)
class Left(Either[E, T]):
    error: E

    def bind(self, f):
        return self

    def get_or_else(self, default):
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self):
        return self.error


# --- Category resolution

class ResolvedCategory(ABC):
    """Display form of a transaction's category: a real one or the fallback."""

    category: Category
    is_fallback: bool

    @property
    def id(self) -> str:
        return self.category.id

    @property
    def name(self) -> str:
        return self.category.name

    @property
    def color(self) -> str:
        return self.category.color

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and self.category == other.category

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.category))


class RealCategory(ResolvedCategory):
    is_fallback = False

    def __init__(self, category: Category):
        self.category = category

    def __repr__(self) -> str:
        return f"RealCategory({self.category.name!r})"


class FallbackCategory(ResolvedCategory):
    is_fallback = True

    def __init__(self, category: Category = OTHER_CATEGORY):
        self.category = category

    def __repr__(self) -> str:
        return "FallbackCategory()"


def safe_category(cats: Iterable[Category], cat_id: Optional[str]) -> Maybe[Category]:
    if cat_id is None:
        return Nothing()
    for cat in cats:
        if cat.id == cat_id:
            return Some(cat)
    return Nothing()


def resolve_category(cats: Iterable[Category], cat_id: Optional[str]) -> ResolvedCategory:
    cats = tuple(cats)
    sentinel = next((c for c in cats if c.id == OTHER_CATEGORY.id), OTHER_CATEGORY)
    if cat_id == sentinel.id:
        return FallbackCategory(sentinel)
    return safe_category(cats, cat_id).map(RealCategory).get_or_else(FallbackCategory(sentinel))


# --- Validation of user-entered records

def _error(code: str, message: str, **extra) -> dict:
    return {"error": code, "message": message, **extra}


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_movement(
    r: Union[Transaction, RecurringTransaction],
    accs: Iterable[Account],
    cats: Iterable[Category],
) -> Optional[dict]:
    if not r.description or not r.description.strip():
        return _error("missing_description", "Description is required")
    if not _is_number(r.amount) or r.amount <= 0:
        return _error("invalid_amount", "Amount must be a positive number", amount=r.amount)
    if r.type not in TRANSACTION_TYPES:
        return _error("invalid_type", f"Unknown transaction type {r.type!r}", type=r.type)
    if not any(a.id == r.account_id for a in accs):
        return _error(
            "account_not_found",
            f"Account with ID {r.account_id} does not exist",
            account_id=r.account_id,
        )
    if r.type == EXPENSE and not r.category_id:
        return _error("missing_category", "Expenses need a category")
    if r.type == INCOME and r.category_id:
        return _error(
            "unexpected_category",
            "Income transactions do not carry a category",
            category_id=r.category_id,
        )
    if r.type == EXPENSE and safe_category(cats, r.category_id).is_none():
        return _error(
            "category_not_found",
            f"Category with ID {r.category_id} does not exist",
            category_id=r.category_id,
        )
    return None


def _check_date(value: str, field_name: str) -> Optional[dict]:
    try:
        parse_ts(value)
    except (TypeError, ValueError):
        return _error("invalid_date", f"{field_name} is not a valid date", **{field_name: value})
    return None


def validate_transaction(
    t: Transaction,
    accs: Iterable[Account],
    cats: Iterable[Category],
) -> Either[dict, Transaction]:
    problem = _check_movement(t, tuple(accs), tuple(cats)) or _check_date(t.date, "date")
    return Left(problem) if problem else Right(t)


def validate_recurring(
    r: RecurringTransaction,
    accs: Iterable[Account],
    cats: Iterable[Category],
) -> Either[dict, RecurringTransaction]:
    problem = (
        _check_movement(r, tuple(accs), tuple(cats))
        or (
            None if r.frequency in FREQUENCIES
            else _error("invalid_frequency", f"Unknown frequency {r.frequency!r}", frequency=r.frequency)
        )
        or _check_date(r.start_date, "start_date")
        or _check_date(r.next_due_date, "next_due_date")
    )
    return Left(problem) if problem else Right(r)


def validate_account(a: Account) -> Either[dict, Account]:
    if not a.name or not a.name.strip():
        return Left(_error("missing_name", "Account name is required"))
    if not _is_number(a.initial_balance):
        return Left(_error(
            "invalid_balance",
            "Initial balance must be a number",
            initial_balance=a.initial_balance,
        ))
    if not isinstance(a.currency, str) or len(a.currency) != 3 or not a.currency.isalpha():
        return Left(_error("invalid_currency", f"Unknown currency code {a.currency!r}", currency=a.currency))
    return Right(a)


def validate_category(c: Category) -> Either[dict, Category]:
    if not c.name or not c.name.strip():
        return Left(_error("missing_name", "Category name cannot be empty"))
    return Right(c)


# --- Composition helpers

def compose(*funcs):
    """Return a function that's the composition of the given functions.

    compose(f, g, h)(x) == f(g(h(x)))
    """
    def _composed(x):
        res = x
        for f in reversed(funcs):
            res = f(res)
        return res
    return _composed


def pipe(x, *funcs):
    """Pipe a value through a series of functions.

    pipe(x, f, g, h) == h(g(f(x)))
    """
    res = x
    for f in funcs:
        res = f(res)
    return res
