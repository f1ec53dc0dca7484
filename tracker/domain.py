from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple, Union

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)

WEEKLY = "weekly"
MONTHLY = "monthly"
ANNUALLY = "annually"
FREQUENCIES = (WEEKLY, MONTHLY, ANNUALLY)

MONTH_MODE = "month"
RANGE_MODE = "range"

ALL = "all"

OTHER_CATEGORY_ID = "other"


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    initial_balance: float
    currency: str  # e.g. "EUR"


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    color: str = "#6b7280"


OTHER_CATEGORY = Category(id=OTHER_CATEGORY_ID, name="Other", color="#6b7280")


@dataclass(frozen=True)
class Transaction:
    id: str
    account_id: str
    description: str
    amount: float                      # always positive, sign comes from type
    date: str                          # ISO-8601, e.g. "2025-09-01T10:00:00"
    type: str                          # "income" | "expense"
    category_id: Optional[str] = None  # expenses only


@dataclass(frozen=True)
class RecurringTransaction:
    id: str
    account_id: str
    description: str
    amount: float
    type: str
    frequency: str       # "weekly" | "monthly" | "annually"
    start_date: str
    next_due_date: str
    category_id: Optional[str] = None


@dataclass(frozen=True)
class Filter:
    """Active view filter.

    In month mode ``month`` is a 0-based month index or ``"all"`` and ``year``
    is always set. In range mode either bound may be ``None`` (unbounded).
    ``type`` and ``query`` are applied independently of the date window.
    """

    mode: str = MONTH_MODE
    month: Union[int, str] = ALL
    year: int = field(default_factory=lambda: datetime.now().year)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    type: str = ALL
    query: str = ""

    def __post_init__(self):
        if self.mode not in (MONTH_MODE, RANGE_MODE):
            raise ValueError(f"Unknown filter mode: {self.mode!r}")
        if self.type != ALL and self.type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type: {self.type!r}")
        if self.mode == MONTH_MODE:
            if isinstance(self.year, bool) or not isinstance(self.year, int):
                raise ValueError(f"Filter year must be an integer, got {self.year!r}")
            if self.month != ALL and (
                isinstance(self.month, bool)
                or not isinstance(self.month, int)
                or not 0 <= self.month <= 11
            ):
                raise ValueError(f"Filter month must be 0-11 or 'all', got {self.month!r}")

    @property
    def is_annual(self) -> bool:
        return self.mode == MONTH_MODE and self.month == ALL


@dataclass(frozen=True)
class Ledger:
    accounts: Tuple[Account, ...] = ()
    categories: Tuple[Category, ...] = (OTHER_CATEGORY,)
    transactions: Tuple[Transaction, ...] = ()
    recurring: Tuple[RecurringTransaction, ...] = ()

    def account(self, account_id: str) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)


def parse_ts(value: str) -> datetime:
    """Parse an ISO-8601 string into a naive local datetime.

    Strings carrying an offset (or a trailing ``Z``) are converted to local
    time first. Anything unparseable raises ``ValueError``.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_ts(dt: datetime) -> str:
    return dt.isoformat()
