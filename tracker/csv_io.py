"""CSV export and import of transactions.

Rows follow RFC 4180 quoting via the ``csv`` module, one transaction per
row under the header ``ID,Description,Amount,Type,Category,Date``.
"""

import csv
import io
import logging
from typing import Callable, Iterable, List, NamedTuple, Optional, Tuple
from uuid import uuid4

from tracker.domain import (
    Category,
    EXPENSE,
    OTHER_CATEGORY_ID,
    TRANSACTION_TYPES,
    Transaction,
    parse_ts,
)
from tracker.functional import resolve_category

logger = logging.getLogger(__name__)

HEADER = ["ID", "Description", "Amount", "Type", "Category", "Date"]


class ImportResult(NamedTuple):
    transactions: Tuple[Transaction, ...]
    imported: int
    skipped: int      # malformed rows
    duplicates: int   # ids already known


class RowError(ValueError):
    pass


def export_csv(trans: Iterable[Transaction], cats: Iterable[Category]) -> str:
    cats = tuple(cats)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(HEADER)
    for t in trans:
        category = resolve_category(cats, t.category_id).name if t.type == EXPENSE else ""
        writer.writerow([t.id, t.description, repr(float(t.amount)), t.type, category, t.date])
    return buf.getvalue()


def _category_for(name: str, by_name: dict) -> str:
    return by_name.get(name.strip().lower(), OTHER_CATEGORY_ID)


def parse_row(
    row: List[str],
    by_name: dict,
    account_id: str,
    new_id: Callable[[], str],
) -> Transaction:
    if len(row) != len(HEADER):
        raise RowError(f"expected {len(HEADER)} columns, got {len(row)}")
    tid, description, amount_str, tx_type, category_name, date_str = (c.strip() for c in row)

    try:
        amount = float(amount_str)
    except ValueError:
        raise RowError(f"invalid amount {amount_str!r}") from None
    if not amount > 0:
        raise RowError(f"amount must be positive, got {amount_str!r}")

    tx_type = tx_type.lower()
    if tx_type not in TRANSACTION_TYPES:
        raise RowError(f"unknown type {tx_type!r}")

    try:
        parse_ts(date_str)
    except ValueError:
        raise RowError(f"invalid date {date_str!r}") from None

    return Transaction(
        id=tid or new_id(),
        account_id=account_id,
        description=description,
        amount=amount,
        date=date_str,
        type=tx_type,
        category_id=_category_for(category_name, by_name) if tx_type == EXPENSE else None,
    )


def import_csv(
    text: str,
    cats: Iterable[Category],
    existing: Iterable[Transaction],
    account_id: str,
    id_factory: Optional[Callable[[], str]] = None,
) -> ImportResult:
    """Parse exported CSV text into new transactions for ``account_id``.

    A bad header rejects the whole file with ``ValueError``. Malformed rows
    are logged and skipped; rows whose id is already known are skipped
    silently.
    """
    new_id = id_factory or (lambda: str(uuid4()))
    by_name = {c.name.strip().lower(): c.id for c in cats}
    seen = {t.id for t in existing}

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    header = next(reader, None)
    if header is None or [h.strip().lower() for h in header] != [h.lower() for h in HEADER]:
        raise ValueError(f"Unrecognized CSV header: {header!r}")

    imported: List[Transaction] = []
    skipped = duplicates = 0
    for row in reader:
        line_no = reader.line_num
        if not any(cell.strip() for cell in row):
            continue
        if row and row[0].strip() and row[0].strip() in seen:
            duplicates += 1
            continue
        try:
            t = parse_row(row, by_name, account_id, new_id)
        except RowError as e:
            logger.warning("Skipping CSV line %d: %s", line_no, e)
            skipped += 1
            continue
        seen.add(t.id)
        imported.append(t)

    logger.info(
        "CSV import: %d imported, %d skipped, %d duplicate(s)",
        len(imported), skipped, duplicates,
    )
    return ImportResult(tuple(imported), len(imported), skipped, duplicates)
