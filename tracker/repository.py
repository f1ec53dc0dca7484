import json
import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, replace
from pathlib import Path
from typing import Optional, Union

from tracker.domain import (
    Account,
    Category,
    Ledger,
    OTHER_CATEGORY,
    RecurringTransaction,
    Transaction,
)
from tracker.transforms import sort_by_date_desc

logger = logging.getLogger(__name__)


class Repository(ABC):
    """Storage boundary: hands out and takes back whole ledgers."""

    @abstractmethod
    def load(self) -> Ledger:
        pass

    @abstractmethod
    def save(self, ledger: Ledger) -> None:
        pass


def _with_sentinel(ledger: Ledger) -> Ledger:
    if any(c.id == OTHER_CATEGORY.id for c in ledger.categories):
        return ledger
    return replace(ledger, categories=(OTHER_CATEGORY,) + ledger.categories)


def ledger_from_dict(data: dict) -> Ledger:
    ledger = Ledger(
        accounts=tuple(Account(**a) for a in data.get("accounts", [])),
        categories=tuple(Category(**c) for c in data.get("categories", [])),
        transactions=sort_by_date_desc(Transaction(**t) for t in data.get("transactions", [])),
        recurring=tuple(RecurringTransaction(**r) for r in data.get("recurring", [])),
    )
    return _with_sentinel(ledger)


def ledger_to_dict(ledger: Ledger) -> dict:
    return {
        "accounts": [asdict(a) for a in ledger.accounts],
        "categories": [asdict(c) for c in ledger.categories],
        "transactions": [asdict(t) for t in ledger.transactions],
        "recurring": [asdict(r) for r in ledger.recurring],
    }


def load_seed(path: Union[str, Path]) -> Ledger:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return ledger_from_dict(data)


class JsonFileRepository(Repository):

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Ledger:
        if not self.path.exists():
            logger.info("No ledger at %s, starting empty", self.path)
            return Ledger()
        ledger = load_seed(self.path)
        logger.info(
            "Loaded %d account(s), %d transaction(s) from %s",
            len(ledger.accounts), len(ledger.transactions), self.path,
        )
        return ledger

    def save(self, ledger: Ledger) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(ledger_to_dict(ledger), f, indent=2, ensure_ascii=False)
        tmp.replace(self.path)
        logger.debug("Saved ledger to %s", self.path)


class InMemoryRepository(Repository):

    def __init__(self, ledger: Optional[Ledger] = None):
        self._ledger = _with_sentinel(ledger) if ledger is not None else Ledger()
        self.saves = 0

    def load(self) -> Ledger:
        return self._ledger

    def save(self, ledger: Ledger) -> None:
        self._ledger = ledger
        self.saves += 1
