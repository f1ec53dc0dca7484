from tracker.domain import Account, Category, OTHER_CATEGORY, RecurringTransaction, Transaction
from tracker.functional import (
    FallbackCategory,
    Left,
    Maybe,
    Nothing,
    RealCategory,
    Right,
    Some,
    compose,
    pipe,
    resolve_category,
    safe_category,
    validate_account,
    validate_category,
    validate_recurring,
    validate_transaction,
)

ACCOUNTS = (Account("acc1", "Checking", 1000.0, "EUR"),)
CATEGORIES = (Category("cat1", "Food"), OTHER_CATEGORY)


def make_tx(**kw):
    fields = dict(
        id="t1",
        account_id="acc1",
        description="Groceries",
        amount=12.5,
        date="2025-01-01T10:00:00",
        type="expense",
        category_id="cat1",
    )
    fields.update(kw)
    return Transaction(**fields)


def test_maybe_map_and_bind():
    assert Some(5).map(lambda x: x * 2).get_or_else(0) == 10
    assert Nothing().map(lambda x: x * 2).is_none()

    def safe_divide(x: int) -> Maybe[int]:
        return Nothing() if x == 0 else Some(10 // x)

    assert Some(2).bind(safe_divide) == Some(5)
    assert Some(0).bind(safe_divide).is_none()


def test_either_map_and_bind():
    assert Right(5).map(lambda x: x + 1) == Right(6)
    left = Left("error").map(lambda x: x + 1)
    assert left.is_left()
    assert left.get_error() == "error"
    assert left.get_or_else(0) == 0


def test_safe_category():
    assert safe_category(CATEGORIES, "cat1").get_or_else(None).name == "Food"
    assert safe_category(CATEGORIES, "missing").is_none()
    assert safe_category(CATEGORIES, None).is_none()


def test_resolve_category_variants():
    real = resolve_category(CATEGORIES, "cat1")
    assert isinstance(real, RealCategory)
    assert real.name == "Food"
    assert not real.is_fallback

    for missing in (None, "deleted", "other"):
        fallback = resolve_category(CATEGORIES, missing)
        assert isinstance(fallback, FallbackCategory)
        assert fallback.is_fallback
        assert fallback.id == "other"

    assert resolve_category((), "anything") == FallbackCategory()


def test_validate_transaction_success():
    result = validate_transaction(make_tx(), ACCOUNTS, CATEGORIES)
    assert result.is_right()
    assert result.get_or_else(None).id == "t1"


def test_validate_transaction_errors():
    cases = {
        "missing_description": make_tx(description="  "),
        "invalid_amount": make_tx(amount=0),
        "invalid_type": make_tx(type="transfer"),
        "account_not_found": make_tx(account_id="nope"),
        "missing_category": make_tx(category_id=None),
        "category_not_found": make_tx(category_id="nope"),
        "unexpected_category": make_tx(type="income"),
        "invalid_date": make_tx(date="yesterday"),
    }
    for code, tx in cases.items():
        result = validate_transaction(tx, ACCOUNTS, CATEGORIES)
        assert result.is_left(), code
        assert result.get_error()["error"] == code


def test_validate_income_without_category():
    result = validate_transaction(make_tx(type="income", category_id=None), ACCOUNTS, CATEGORIES)
    assert result.is_right()


def test_validate_recurring():
    rt = RecurringTransaction(
        "r1", "acc1", "Rent", 700.0, "expense", "monthly",
        "2025-01-01T00:00:00", "2025-02-01T00:00:00", "cat1",
    )
    assert validate_recurring(rt, ACCOUNTS, CATEGORIES).is_right()
    bad = RecurringTransaction(
        "r1", "acc1", "Rent", 700.0, "expense", "daily",
        "2025-01-01T00:00:00", "2025-02-01T00:00:00", "cat1",
    )
    assert validate_recurring(bad, ACCOUNTS, CATEGORIES).get_error()["error"] == "invalid_frequency"


def test_validate_account_and_category():
    assert validate_account(Account("a", "Wallet", -20.0, "USD")).is_right()
    assert validate_account(Account("a", "", 0.0, "USD")).get_error()["error"] == "missing_name"
    assert validate_account(Account("a", "W", "ten", "USD")).get_error()["error"] == "invalid_balance"
    assert validate_account(Account("a", "W", 0.0, "dollars")).get_error()["error"] == "invalid_currency"
    assert validate_category(Category("c", "Books")).is_right()
    assert validate_category(Category("c", " ")).is_left()


def test_compose_and_pipe():
    def add1(x):
        return x + 1

    def mul2(x):
        return x * 2

    assert compose(add1, mul2)(3) == 7
    assert pipe(3, add1, mul2) == 8
