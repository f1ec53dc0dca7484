import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, NamedTuple, Optional, Tuple

from tracker import csv_io
from tracker.aggregation import DashboardMetrics, aggregate
from tracker.domain import (
    ALL,
    Account,
    Category,
    FREQUENCIES,
    Filter,
    Ledger,
    RecurringTransaction,
    Transaction,
)
from tracker.filters import filter_with
from tracker.functional import (
    Either,
    Left,
    Right,
    validate_account,
    validate_category,
    validate_recurring,
    validate_transaction,
)
from tracker.recurrence import advance, recurring_from_transaction
from tracker import transforms
from tracker.repository import Repository

logger = logging.getLogger(__name__)


class DashboardView(NamedTuple):
    transactions: Tuple[Transaction, ...]
    metrics: DashboardMetrics


class FinanceService:
    """Facade over the ledger for one user session.

    repository: storage collaborator, loaded once and saved after every change
    clock: returns "now"; the recurring catch-up runs against it on ``load``
    id_factory: optional id generator for materialized and imported records
    """

    def __init__(
        self,
        repository: Repository,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.repository = repository
        self.clock = clock
        self.id_factory = id_factory
        self.ledger = Ledger()

    def load(self) -> Ledger:
        """Load the ledger and catch up every overdue recurring definition."""
        ledger = self.repository.load()
        result = advance(ledger.recurring, self.clock(), self.id_factory)
        if result.materialized:
            ledger = transforms.apply_advance(ledger, result)
            self.repository.save(ledger)
            logger.info("Materialized %d recurring transaction(s)", len(result.materialized))
        self.ledger = ledger
        return ledger

    def _commit(self, ledger: Ledger) -> Ledger:
        self.repository.save(ledger)
        self.ledger = ledger
        return ledger

    # --- reading

    def dashboard(self, account_scope: str = ALL, flt: Optional[Filter] = None) -> DashboardView:
        flt = flt or Filter()
        ledger = self.ledger
        trans = filter_with(ledger.transactions, account_scope, flt, ledger.categories)
        acc = None if account_scope == ALL else ledger.account(account_scope)
        metrics = aggregate(trans, ledger.transactions, acc, flt, ledger.categories)
        return DashboardView(trans, metrics)

    # --- transactions

    def add_transaction(self, t: Transaction, frequency: Optional[str] = None) -> Either[dict, Transaction]:
        ledger = self.ledger
        checked = validate_transaction(t, ledger.accounts, ledger.categories)
        if checked.is_left():
            return checked
        ledger = replace(ledger, transactions=transforms.add_transaction(ledger.transactions, t))
        if frequency is not None:
            if frequency not in FREQUENCIES:
                return Left({"error": "invalid_frequency", "message": f"Unknown frequency {frequency!r}"})
            rt_id = self.id_factory() if self.id_factory else None
            rt = recurring_from_transaction(t, frequency, rt_id)
            rt_checked = validate_recurring(rt, ledger.accounts, ledger.categories)
            if rt_checked.is_left():
                return rt_checked
            ledger = transforms.upsert_recurring(ledger, rt)
        self._commit(ledger)
        return Right(t)

    def update_transaction(self, t: Transaction) -> Either[dict, Transaction]:
        ledger = self.ledger
        if not any(old.id == t.id for old in ledger.transactions):
            return Left({"error": "transaction_not_found", "message": f"Transaction {t.id} does not exist"})
        checked = validate_transaction(t, ledger.accounts, ledger.categories)
        if checked.is_left():
            return checked
        self._commit(replace(ledger, transactions=transforms.update_transaction(ledger.transactions, t)))
        return Right(t)

    def delete_transaction(self, tid: str) -> None:
        ledger = self.ledger
        self._commit(replace(ledger, transactions=transforms.delete_transaction(ledger.transactions, tid)))

    # --- accounts, categories, recurring definitions

    def save_account(self, acc: Account) -> Either[dict, Account]:
        checked = validate_account(acc)
        if checked.is_right():
            self._commit(transforms.upsert_account(self.ledger, acc))
        return checked

    def delete_account(self, acc_id: str) -> None:
        self._commit(transforms.delete_account(self.ledger, acc_id))
        logger.info("Deleted account %s and its transactions", acc_id)

    def save_category(self, cat: Category) -> Either[dict, Category]:
        checked = validate_category(cat)
        if checked.is_right():
            self._commit(transforms.upsert_category(self.ledger, cat))
        return checked

    def delete_category(self, cat_id: str) -> None:
        self._commit(transforms.delete_category(self.ledger, cat_id))

    def save_recurring(self, rt: RecurringTransaction) -> Either[dict, RecurringTransaction]:
        checked = validate_recurring(rt, self.ledger.accounts, self.ledger.categories)
        if checked.is_right():
            self._commit(transforms.upsert_recurring(self.ledger, rt))
        return checked

    def delete_recurring(self, rt_id: str) -> None:
        self._commit(transforms.delete_recurring(self.ledger, rt_id))

    # --- CSV

    def export_csv(self, account_scope: str = ALL) -> str:
        trans = filter_with(self.ledger.transactions, account_scope, Filter(mode="range"))
        return csv_io.export_csv(trans, self.ledger.categories)

    def import_csv(self, text: str, account_id: str) -> csv_io.ImportResult:
        ledger = self.ledger
        if ledger.account(account_id) is None:
            raise ValueError(f"Account {account_id} does not exist")
        result = csv_io.import_csv(text, ledger.categories, ledger.transactions, account_id, self.id_factory)
        if result.transactions:
            self._commit(replace(
                ledger,
                transactions=transforms.add_transactions(ledger.transactions, result.transactions),
            ))
        return result
