from datetime import datetime

import pytest

from tracker.aggregation import (
    DAY,
    MONTH,
    account_balances,
    aggregate,
    available_years,
    category_breakdown,
    current_balance,
    period_totals,
    trend_series,
)
from tracker.domain import Account, Category, Filter, Transaction


def make_tx(id, amount, date, type="expense", cat_id=None, acc_id="a1"):
    return Transaction(id, acc_id, f"tx {id}", amount, date, type, cat_id)


def make_cats():
    return (
        Category("food", "Food", "#f97316"),
        Category("rent", "Rent", "#8b5cf6"),
        Category("other", "Other"),
    )


def test_balance_scenario():
    acc = Account("a1", "Checking", 100.0, "EUR")
    trans = (
        make_tx("i", 50.0, "2025-01-01", "income"),
        make_tx("e", 30.0, "2025-01-02", cat_id="food"),
    )
    assert current_balance(acc, trans) == 120.0


def test_balance_uses_all_transactions_of_account_only():
    acc = Account("a1", "Checking", 0.0, "EUR")
    all_trans = (
        make_tx("old", 10.0, "2020-01-01", "income"),
        make_tx("now", 5.0, "2025-01-01", cat_id="food"),
        make_tx("other", 999.0, "2025-01-01", "income", acc_id="a2"),
    )
    filtered = all_trans[1:2]
    m = aggregate(filtered, all_trans, acc, Filter(mode="month", month=0, year=2025))
    assert m.current_balance == 5.0
    assert m.currency == "EUR"
    assert m.period_income == 0.0
    assert m.period_expenses == 5.0


def test_all_accounts_has_no_balance():
    trans = (make_tx("i", 50.0, "2025-01-01", "income"),)
    m = aggregate(trans, trans, None, Filter(mode="month", month=0, year=2025))
    assert m.current_balance is None
    assert m.currency is None


def test_account_balances_map():
    accs = (Account("a1", "A", 10.0, "EUR"), Account("a2", "B", 0.0, "USD"))
    trans = (make_tx("x", 4.0, "2025-01-01", cat_id="food", acc_id="a2"),)
    assert account_balances(accs, trans) == {"a1": 10.0, "a2": -4.0}


def test_net_and_category_sums_are_consistent():
    cats = make_cats()
    trans = (
        make_tx("1", 1000.0, "2025-05-01", "income"),
        make_tx("2", 700.0, "2025-05-01", cat_id="rent"),
        make_tx("3", 20.25, "2025-05-03", cat_id="food"),
        make_tx("4", 14.5, "2025-05-09", cat_id="food"),
        make_tx("5", 3.0, "2025-05-10"),
        make_tx("6", 8.0, "2025-05-11", cat_id="gone"),
    )
    m = aggregate(trans, trans, None, Filter(mode="month", month=4, year=2025), cats)
    assert m.period_income - m.period_expenses == m.net_balance
    assert sum(ct.amount for ct in m.expenses_by_category) == pytest.approx(m.period_expenses)
    by_name = {ct.category.name: ct.amount for ct in m.expenses_by_category}
    assert by_name == {"Rent": 700.0, "Food": 34.75, "Other": 11.0}


def test_breakdown_omits_empty_groups_and_marks_fallback():
    cats = make_cats()
    trans = (make_tx("1", 5.0, "2025-05-01"), make_tx("2", 7.0, "2025-05-01", cat_id="food"))
    res = category_breakdown(trans, cats)
    assert [ct.category.id for ct in res] == ["other", "food"]
    assert res[0].category.is_fallback
    assert not res[1].category.is_fallback
    assert res[1].category.color == "#f97316"


def test_breakdown_without_categories_groups_by_id():
    trans = (
        make_tx("1", 5.0, "2025-05-01", cat_id="x"),
        make_tx("2", 1.0, "2025-05-01"),
        make_tx("3", 2.0, "2025-05-01", cat_id="x"),
    )
    res = category_breakdown(trans)
    assert [(ct.category.id, ct.amount) for ct in res] == [("x", 7.0), ("other", 1.0)]


def test_period_totals():
    trans = (make_tx("1", 3.0, "2025-01-01", "income"), make_tx("2", 1.0, "2025-01-01", cat_id="food"))
    assert period_totals(trans) == (3.0, 1.0)


def test_unknown_type_fails():
    with pytest.raises(ValueError):
        period_totals((make_tx("1", 3.0, "2025-01-01", "transfer"),))


def test_specific_month_has_one_bucket_per_day():
    trans = (
        make_tx("1", 10.0, "2024-02-01T10:00:00", "income"),
        make_tx("2", 4.0, "2024-02-29T22:00:00", cat_id="food"),
        make_tx("3", 1.0, "2024-02-29T08:00:00", cat_id="food"),
    )
    series = trend_series(trans, Filter(mode="month", month=1, year=2024))
    assert series.granularity == DAY
    assert len(series.buckets) == 29
    assert series.buckets[0].key == "2024-02-01"
    assert series.buckets[0].income == 10.0
    assert series.buckets[-1].expense == 5.0
    assert series.buckets[10].income == 0.0 and series.buckets[10].expense == 0.0


def test_all_months_has_twelve_buckets():
    trans = (
        make_tx("1", 10.0, "2025-01-15", "income"),
        make_tx("2", 3.0, "2025-12-31T23:00:00", cat_id="food"),
    )
    series = trend_series(trans, Filter(mode="month", month="all", year=2025))
    assert series.granularity == MONTH
    assert [b.key for b in series.buckets][:2] == ["2025-01", "2025-02"]
    assert len(series.buckets) == 12
    assert series.buckets[0].income == 10.0
    assert series.buckets[11].expense == 3.0


def test_range_short_span_buckets_by_present_days():
    trans = (
        make_tx("1", 2.0, "2025-03-20", cat_id="food"),
        make_tx("2", 5.0, "2025-03-01", "income"),
        make_tx("3", 1.0, "2025-03-20T18:00:00", "income"),
    )
    series = trend_series(trans, Filter(mode="range", start_date="2025-03-01"))
    assert series.granularity == DAY
    assert [(b.key, b.income, b.expense) for b in series.buckets] == [
        ("2025-03-01", 5.0, 0.0),
        ("2025-03-20", 1.0, 2.0),
    ]


def test_range_forty_day_span_buckets_by_month():
    trans = (
        make_tx("1", 2.0, "2025-01-01", cat_id="food"),
        make_tx("2", 5.0, "2025-02-10", "income"),
    )
    series = trend_series(trans, Filter(mode="range", start_date="2025-01-01", end_date="2025-02-10"))
    assert series.granularity == MONTH
    assert [b.key for b in series.buckets] == ["2025-01", "2025-02"]


def test_range_months_sorted_across_years():
    trans = (
        make_tx("1", 1.0, "2025-01-05", "income"),
        make_tx("2", 1.0, "2024-11-05", "income"),
    )
    series = trend_series(trans, Filter(mode="range", end_date="2025-02-01"))
    assert [b.key for b in series.buckets] == ["2024-11", "2025-01"]


def test_range_empty_input_gives_empty_series():
    series = trend_series((), Filter(mode="range", start_date="2025-01-01", end_date="2025-01-31"))
    assert series.is_empty


def test_available_years():
    trans = (make_tx("1", 1.0, "2023-05-01"), make_tx("2", 1.0, "2021-05-01"))
    assert available_years(trans, datetime(2025, 1, 1)) == [2025, 2023, 2021]


def test_range_without_bounds_has_no_trend():
    trans = (make_tx("1", 5.0, "2025-01-01", cat_id="food"),)
    assert trend_series(trans, Filter(mode="range")).is_empty
    assert [b.key for b in trend_series(trans, None).buckets] == ["2025-01-01"]


def test_zero_amount_income_stays_income():
    trans = (make_tx("1", 0.0, "2025-01-01", "income"),)
    assert category_breakdown(trans, make_cats()) == ()
    assert period_totals(trans) == (0.0, 0.0)
