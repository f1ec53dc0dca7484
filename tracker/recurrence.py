"""Catch-up generation of transactions from recurring definitions."""

import calendar
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, NamedTuple, Optional, Tuple
from uuid import uuid4

from dateutil.relativedelta import relativedelta

from tracker.domain import (
    ANNUALLY,
    FREQUENCIES,
    MONTHLY,
    RecurringTransaction,
    Transaction,
    WEEKLY,
    format_ts,
    parse_ts,
)

logger = logging.getLogger(__name__)


class AdvanceResult(NamedTuple):
    materialized: Tuple[Transaction, ...]
    updated: Tuple[RecurringTransaction, ...]


def _new_id() -> str:
    return str(uuid4())


def _step_day(due: datetime, anchor: datetime) -> int:
    # a due date clamped to a short month's end returns to the anchor's day
    last = calendar.monthrange(due.year, due.month)[1]
    if due.day == last and anchor.day > last:
        return anchor.day
    return due.day


def next_occurrence(due: datetime, frequency: str, anchor: datetime) -> datetime:
    """Return the due date one calendar period after ``due``.

    The day-of-month of ``due`` is kept and clamped to the last day of
    shorter months. A due date that was clamped that way (Jan 31 -> Feb 28)
    steps back to the anchor's day (Mar 31).
    """
    if frequency == WEEKLY:
        return due + timedelta(days=7)
    if frequency == MONTHLY:
        return due + relativedelta(months=+1, day=_step_day(due, anchor))
    if frequency == ANNUALLY:
        day = _step_day(due, anchor) if due.month == anchor.month else due.day
        return due + relativedelta(years=+1, day=day)
    raise ValueError(f"Unknown frequency: {frequency!r}")


def materialize(rt: RecurringTransaction, due: datetime, tx_id: str) -> Transaction:
    return Transaction(
        id=tx_id,
        account_id=rt.account_id,
        description=rt.description,
        amount=rt.amount,
        date=format_ts(due),
        type=rt.type,
        category_id=rt.category_id,
    )


def advance(
    recurring: Iterable[RecurringTransaction],
    reference: datetime,
    id_factory: Optional[Callable[[], str]] = None,
) -> AdvanceResult:
    """Materialize every period that fell due at or before ``reference``.

    Each definition yields one transaction per elapsed period, oldest first,
    and comes back with ``next_due_date`` strictly after ``reference``.
    Definitions that were not due are returned as-is.
    """
    new_id = id_factory or _new_id
    recurring = tuple(recurring)
    for rt in recurring:
        if rt.frequency not in FREQUENCIES:
            raise ValueError(f"Unknown frequency {rt.frequency!r} on recurring {rt.id}")

    materialized: List[Transaction] = []
    updated: List[RecurringTransaction] = []
    for rt in recurring:
        due = parse_ts(rt.next_due_date)
        if due > reference:
            updated.append(rt)
            continue
        anchor = parse_ts(rt.start_date)
        count = 0
        while due <= reference:
            materialized.append(materialize(rt, due, new_id()))
            due = next_occurrence(due, rt.frequency, anchor)
            count += 1
        logger.debug("Recurring %s: %d occurrence(s), next due %s", rt.id, count, due)
        updated.append(replace(rt, next_due_date=format_ts(due)))

    return AdvanceResult(tuple(materialized), tuple(updated))


def recurring_from_transaction(
    t: Transaction,
    frequency: str,
    rt_id: Optional[str] = None,
) -> RecurringTransaction:
    """Build a definition that repeats ``t``; ``t`` itself is the first occurrence."""
    start = parse_ts(t.date)
    return RecurringTransaction(
        id=rt_id or _new_id(),
        account_id=t.account_id,
        description=t.description,
        amount=t.amount,
        type=t.type,
        frequency=frequency,
        start_date=format_ts(start),
        next_due_date=format_ts(next_occurrence(start, frequency, start)),
        category_id=t.category_id,
    )
