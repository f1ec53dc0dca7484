from datetime import datetime, time
from typing import Callable, Iterable, Optional, Tuple

from tracker.domain import (
    ALL,
    Category,
    EXPENSE,
    Filter,
    MONTH_MODE,
    TRANSACTION_TYPES,
    Transaction,
    parse_ts,
)
from tracker.functional import pipe, safe_category

Predicate = Callable[[Transaction], bool]


def by_account(scope: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return scope == ALL or t.account_id == scope

    return _filter


def _end_of_day(value: str) -> datetime:
    return datetime.combine(parse_ts(value).date(), time.max)


def by_date(date_filter: Optional[Filter]) -> Predicate:
    if date_filter is None:
        return lambda t: True

    if date_filter.mode == MONTH_MODE:
        def _in_month(t: Transaction) -> bool:
            ts = parse_ts(t.date)
            if ts.year != date_filter.year:
                return False
            return date_filter.month == ALL or ts.month - 1 == date_filter.month

        return _in_month

    start = parse_ts(date_filter.start_date) if date_filter.start_date else None
    end = _end_of_day(date_filter.end_date) if date_filter.end_date else None

    def _in_range(t: Transaction) -> bool:
        ts = parse_ts(t.date)
        if start is not None and ts < start:
            return False
        if end is not None and ts > end:
            return False
        return True

    return _in_range


def by_type(type_filter: str) -> Predicate:
    if type_filter != ALL and type_filter not in TRANSACTION_TYPES:
        raise ValueError(f"Unknown transaction type filter: {type_filter!r}")

    def _filter(t: Transaction) -> bool:
        return type_filter == ALL or t.type == type_filter

    return _filter


def by_search(query: str, cats: Iterable[Category]) -> Predicate:
    needle = (query or "").lower()
    cats = tuple(cats)

    def _filter(t: Transaction) -> bool:
        if not needle:
            return True
        if needle in t.description.lower():
            return True
        # only a real category of an expense can match
        if t.type != EXPENSE:
            return False
        return (
            safe_category(cats, t.category_id)
            .map(lambda c: needle in c.name.lower())
            .get_or_else(False)
        )

    return _filter


def _keep(pred: Predicate) -> Callable[[Tuple[Transaction, ...]], Tuple[Transaction, ...]]:
    return lambda trans: tuple(t for t in trans if pred(t))


def filter_transactions(
    trans: Iterable[Transaction],
    account_scope: str = ALL,
    date_filter: Optional[Filter] = None,
    type_filter: str = ALL,
    query: str = "",
    cats: Iterable[Category] = (),
) -> Tuple[Transaction, ...]:
    """Narrow ``trans`` to the current view, keeping the input order.

    Stages run as account -> date -> type -> search, so the search only
    ever looks at the already-narrowed set.
    """
    return pipe(
        tuple(trans),
        _keep(by_account(account_scope)),
        _keep(by_date(date_filter)),
        _keep(by_type(type_filter)),
        _keep(by_search(query, cats)),
    )


def filter_with(
    trans: Iterable[Transaction],
    account_scope: str,
    flt: Filter,
    cats: Iterable[Category] = (),
) -> Tuple[Transaction, ...]:
    return filter_transactions(trans, account_scope, flt, flt.type, flt.query, cats)
