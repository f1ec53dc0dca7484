import logging

import pytest

from tracker.csv_io import HEADER, export_csv, import_csv
from tracker.domain import Category, OTHER_CATEGORY, Transaction

CATS = (OTHER_CATEGORY, Category("food", "Food"), Category("fun", "Fun & Games"))


def make_sample():
    return (
        Transaction("t1", "a1", "Salary", 2400.0, "2025-01-27T09:00:00", "income"),
        Transaction("t2", "a1", 'Pizza, "large"', 12.3, "2025-01-20T20:00:00", "expense", "food"),
        Transaction("t3", "a1", "Board game\nwith friends", 0.1 + 0.2, "2025-01-18T15:00:00", "expense", "fun"),
        Transaction("t4", "a1", "Lost receipt", 5.0, "2025-01-02T10:00:00", "expense", None),
    )


def test_export_header_and_category_names():
    text = export_csv(make_sample(), CATS)
    lines = text.splitlines()
    assert lines[0] == ",".join(HEADER)
    assert lines[1] == "t1,Salary,2400.0,income,,2025-01-27T09:00:00"
    assert '"Pizza, ""large"""' in lines[2]
    assert ",Other," in text


def test_round_trip_into_empty_set():
    original = make_sample()
    text = export_csv(original, CATS)
    result = import_csv(text, CATS, (), "a1")

    assert result.imported == 4
    assert result.skipped == 0
    restored = {t.id: t for t in result.transactions}
    for t in original:
        r = restored[t.id]
        assert r.description == t.description
        assert r.amount == pytest.approx(t.amount)
        assert r.type == t.type
        assert r.date == t.date
    assert restored["t1"].category_id is None
    assert restored["t2"].category_id == "food"
    assert restored["t4"].category_id == "other"


def test_category_matched_case_insensitively_with_fallback():
    text = "\n".join([
        ",".join(HEADER),
        "x1,Apples,3.5,expense,  FOOD ,2025-01-01",
        "x2,Tickets,20,expense,Concerts,2025-01-02",
        "x3,Bonus,100,income,Food,2025-01-03",
    ])
    result = import_csv(text, CATS, (), "a9")
    by_id = {t.id: t for t in result.transactions}
    assert by_id["x1"].category_id == "food"
    assert by_id["x2"].category_id == "other"
    assert by_id["x3"].category_id is None
    assert all(t.account_id == "a9" for t in result.transactions)


def test_duplicates_skipped_silently(caplog):
    existing = (Transaction("t1", "a1", "Salary", 1.0, "2025-01-01", "income"),)
    text = "\n".join([
        ",".join(HEADER),
        "t1,Salary,2400,income,,2025-01-27",
        "n1,New,1,income,,2025-01-28",
        "n1,New again,1,income,,2025-01-29",
    ])
    with caplog.at_level(logging.WARNING, logger="tracker.csv_io"):
        result = import_csv(text, CATS, existing, "a1")
    assert [t.id for t in result.transactions] == ["n1"]
    assert result.duplicates == 2
    assert result.skipped == 0
    assert not caplog.records


def test_malformed_rows_skipped_with_warning(caplog):
    text = "\n".join([
        ",".join(HEADER),
        "b1,Too,few",
        "b2,Bad amount,abc,expense,Food,2025-01-01",
        "b3,Negative,-4,expense,Food,2025-01-01",
        "b4,Odd type,4,transfer,,2025-01-01",
        "b5,Bad date,4,expense,Food,01/02/2025",
        "ok,Fine,4,Expense,Food,2025-01-01",
        "",
    ])
    with caplog.at_level(logging.WARNING, logger="tracker.csv_io"):
        result = import_csv(text, CATS, (), "a1")
    assert [t.id for t in result.transactions] == ["ok"]
    assert result.transactions[0].type == "expense"
    assert result.imported == 1
    assert result.skipped == 5
    assert len(caplog.records) == 5


def test_blank_id_gets_generated():
    text = ",".join(HEADER) + "\n,Cash gift,50,income,,2025-02-02\n"
    result = import_csv(text, CATS, (), "a1", id_factory=lambda: "fresh")
    assert result.transactions[0].id == "fresh"


def test_bad_header_rejects_file():
    with pytest.raises(ValueError):
        import_csv("Date,Amount\n2025-01-01,3\n", CATS, (), "a1")
    with pytest.raises(ValueError):
        import_csv("", CATS, (), "a1")
