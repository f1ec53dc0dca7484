from dataclasses import replace
from typing import Iterable, Tuple

from tracker.domain import (
    Account,
    Category,
    Ledger,
    OTHER_CATEGORY_ID,
    RecurringTransaction,
    Transaction,
    parse_ts,
)
from tracker.recurrence import AdvanceResult


def sort_by_date_desc(trans: Iterable[Transaction]) -> Tuple[Transaction, ...]:
    return tuple(sorted(trans, key=lambda t: parse_ts(t.date), reverse=True))


def add_transaction(
    trans: Tuple[Transaction, ...], t: Transaction
) -> Tuple[Transaction, ...]:
    return sort_by_date_desc(trans + (t,))


def add_transactions(
    trans: Tuple[Transaction, ...], new: Iterable[Transaction]
) -> Tuple[Transaction, ...]:
    return sort_by_date_desc(trans + tuple(new))


def update_transaction(
    trans: Tuple[Transaction, ...], t: Transaction
) -> Tuple[Transaction, ...]:
    return sort_by_date_desc(t if old.id == t.id else old for old in trans)


def delete_transaction(
    trans: Tuple[Transaction, ...], tid: str
) -> Tuple[Transaction, ...]:
    return tuple(filter(lambda t: t.id != tid, trans))


def _upsert(items: tuple, item) -> tuple:
    if any(i.id == item.id for i in items):
        return tuple(item if i.id == item.id else i for i in items)
    return items + (item,)


def upsert_account(ledger: Ledger, acc: Account) -> Ledger:
    return replace(ledger, accounts=_upsert(ledger.accounts, acc))


def delete_account(ledger: Ledger, acc_id: str) -> Ledger:
    """Remove an account together with everything it owns."""
    return replace(
        ledger,
        accounts=tuple(a for a in ledger.accounts if a.id != acc_id),
        transactions=tuple(t for t in ledger.transactions if t.account_id != acc_id),
        recurring=tuple(r for r in ledger.recurring if r.account_id != acc_id),
    )


def upsert_category(ledger: Ledger, cat: Category) -> Ledger:
    return replace(ledger, categories=_upsert(ledger.categories, cat))


def delete_category(ledger: Ledger, cat_id: str) -> Ledger:
    # transactions keep the dangling id and resolve to the fallback
    if cat_id == OTHER_CATEGORY_ID:
        raise ValueError("The fallback category cannot be deleted")
    return replace(ledger, categories=tuple(c for c in ledger.categories if c.id != cat_id))


def upsert_recurring(ledger: Ledger, rt: RecurringTransaction) -> Ledger:
    return replace(ledger, recurring=_upsert(ledger.recurring, rt))


def delete_recurring(ledger: Ledger, rt_id: str) -> Ledger:
    return replace(ledger, recurring=tuple(r for r in ledger.recurring if r.id != rt_id))


def apply_advance(ledger: Ledger, result: AdvanceResult) -> Ledger:
    return replace(
        ledger,
        transactions=add_transactions(ledger.transactions, result.materialized),
        recurring=result.updated,
    )
