import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from tracker.domain import (
    ALL,
    Account,
    Category,
    EXPENSE,
    Filter,
    INCOME,
    MONTH_MODE,
    OTHER_CATEGORY,
    Transaction,
    parse_ts,
)
from tracker.functional import ResolvedCategory, resolve_category

logger = logging.getLogger(__name__)

DAY = "day"
MONTH = "month"

# range views spanning more days than this are bucketed per month
DAILY_SPAN_LIMIT_DAYS = 35


@dataclass(frozen=True)
class Bucket:
    key: str          # "YYYY-MM-DD" for day buckets, "YYYY-MM" for month buckets
    income: float = 0.0
    expense: float = 0.0


@dataclass(frozen=True)
class TrendSeries:
    granularity: str
    buckets: Tuple[Bucket, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.buckets


@dataclass(frozen=True)
class CategoryTotal:
    category: ResolvedCategory
    amount: float


@dataclass(frozen=True)
class DashboardMetrics:
    current_balance: Optional[float]  # None for the "all accounts" view
    currency: Optional[str]
    period_income: float
    period_expenses: float
    net_balance: float
    expenses_by_category: Tuple[CategoryTotal, ...]
    trend: TrendSeries


def _is_income(t: Transaction) -> bool:
    if t.type not in (INCOME, EXPENSE):
        raise ValueError(f"Unknown transaction type {t.type!r} on {t.id}")
    return t.type == INCOME


def _signed(t: Transaction) -> float:
    return t.amount if _is_income(t) else -t.amount


def current_balance(acc: Account, trans: Iterable[Transaction]) -> float:
    """Initial balance plus every income minus every expense of ``acc``."""
    return acc.initial_balance + sum(_signed(t) for t in trans if t.account_id == acc.id)


def account_balances(accs: Iterable[Account], trans: Iterable[Transaction]) -> Dict[str, float]:
    trans = tuple(trans)
    return {a.id: current_balance(a, trans) for a in accs}


def period_totals(trans: Iterable[Transaction]) -> Tuple[float, float]:
    income = 0.0
    expenses = 0.0
    for t in trans:
        if _is_income(t):
            income += t.amount
        else:
            expenses += t.amount
    return income, expenses


def category_breakdown(
    trans: Iterable[Transaction],
    cats: Iterable[Category] = (),
) -> Tuple[CategoryTotal, ...]:
    """Sum expenses per category in first-seen order.

    Without ``cats`` only a missing id falls back to the sentinel bucket;
    with ``cats`` unknown ids fall back too.
    """
    cats = tuple(cats)
    known = {c.id for c in cats}
    totals: Dict[str, float] = {}
    for t in trans:
        if _is_income(t):
            continue
        cid = t.category_id or OTHER_CATEGORY.id
        if cats and cid not in known:
            cid = OTHER_CATEGORY.id
        totals[cid] = totals.get(cid, 0.0) + t.amount

    # unnamed ids keep their id as a display name
    lookup = cats or tuple(Category(cid, cid) for cid in totals if cid != OTHER_CATEGORY.id)
    return tuple(
        CategoryTotal(resolve_category(lookup, cid), amount)
        for cid, amount in totals.items()
    )


def _day_key(d: date) -> str:
    return d.isoformat()


def _month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def _accumulate(buckets: Dict[str, List[float]], key: str, t: Transaction) -> None:
    if _is_income(t):
        buckets[key][0] += t.amount
    else:
        buckets[key][1] += t.amount


def _freeze(buckets: Dict[str, List[float]], keys: Iterable[str]) -> Tuple[Bucket, ...]:
    return tuple(Bucket(k, buckets[k][0], buckets[k][1]) for k in keys)


def trend_series(trans: Iterable[Transaction], date_filter: Optional[Filter]) -> TrendSeries:
    """Bucket income and expense over time for the active filter.

    Month views use fixed buckets (every day of the month, or all twelve
    months of the year). Range views with at least one bound only create
    buckets for dates that actually occur, daily when the data spans at most
    35 days. Without a filter the whole input is bucketed the same way.
    """
    dated = [(parse_ts(t.date), t) for t in trans]

    if date_filter is not None and date_filter.mode == MONTH_MODE:
        year = date_filter.year
        if date_filter.month == ALL:
            keys = [_month_key(year, m) for m in range(1, 13)]
            buckets = {k: [0.0, 0.0] for k in keys}
            for ts, t in dated:
                if ts.year == year:
                    _accumulate(buckets, _month_key(ts.year, ts.month), t)
            return TrendSeries(MONTH, _freeze(buckets, keys))

        month = date_filter.month + 1
        days = calendar.monthrange(year, month)[1]
        keys = [_day_key(date(year, month, d)) for d in range(1, days + 1)]
        buckets = {k: [0.0, 0.0] for k in keys}
        for ts, t in dated:
            if ts.year == year and ts.month == month:
                _accumulate(buckets, _day_key(ts.date()), t)
        return TrendSeries(DAY, _freeze(buckets, keys))

    # an unbounded range view has no trend
    if not dated or (
        date_filter is not None and not date_filter.start_date and not date_filter.end_date
    ):
        return TrendSeries(DAY)

    first = min(ts for ts, _ in dated)
    last = max(ts for ts, _ in dated)
    span_days = (last - first).total_seconds() / 86400
    buckets = defaultdict(lambda: [0.0, 0.0])
    if span_days <= DAILY_SPAN_LIMIT_DAYS:
        for ts, t in dated:
            _accumulate(buckets, _day_key(ts.date()), t)
        return TrendSeries(DAY, _freeze(buckets, sorted(buckets)))

    for ts, t in dated:
        _accumulate(buckets, _month_key(ts.year, ts.month), t)
    return TrendSeries(MONTH, _freeze(buckets, sorted(buckets)))


def aggregate(
    filtered: Iterable[Transaction],
    all_transactions: Iterable[Transaction],
    acc: Optional[Account],
    date_filter: Optional[Filter] = None,
    cats: Iterable[Category] = (),
) -> DashboardMetrics:
    """Compute the dashboard figures for one view.

    ``filtered`` is the output of the filter pipeline; ``all_transactions``
    is only used for the running balance of ``acc``, which must ignore the
    period window. With ``acc=None`` the balance is not applicable.
    """
    filtered = tuple(filtered)
    income, expenses = period_totals(filtered)
    balance = current_balance(acc, all_transactions) if acc is not None else None
    metrics = DashboardMetrics(
        current_balance=balance,
        currency=acc.currency if acc is not None else None,
        period_income=income,
        period_expenses=expenses,
        net_balance=income - expenses,
        expenses_by_category=category_breakdown(filtered, cats),
        trend=trend_series(filtered, date_filter),
    )
    logger.debug(
        "Aggregated %d transaction(s): income=%s expenses=%s",
        len(filtered), income, expenses,
    )
    return metrics


def available_years(trans: Iterable[Transaction], today: Optional[datetime] = None) -> List[int]:
    """Years that have transactions, plus the current one, newest first."""
    years = {parse_ts(t.date).year for t in trans}
    years.add((today or datetime.now()).year)
    return sorted(years, reverse=True)
