import pytest
from datetime import datetime, timezone
from decimal import Decimal

from expensecli.core.reconciler import FALLBACK_CATEGORIES, Reconciler, fallback_category
from expensecli.domain.models.expense import MANDATORY_FIELDS, QueryError

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
FIXED_MILLIS = int(FIXED_NOW.timestamp() * 1000)
FIXED_ISO = "2024-05-01T12:00:00.000Z"


@pytest.fixture
def reconciler():
    return Reconciler(clock=lambda: FIXED_NOW)


def _assert_complete(expenses):
    for expense in expenses:
        for field_name in MANDATORY_FIELDS:
            assert getattr(expense, field_name) is not None, f"{field_name} missing on {expense}"


@pytest.mark.parametrize("raw", [None, "not a list", 42, {"id": "1"}])
def test_non_list_input_yields_empty(reconciler: Reconciler, raw):
    assert reconciler.reconcile(raw, []) == []


def test_null_record_and_flagged_field_are_repaired(reconciler: Reconciler):
    """A null row becomes a placeholder; a row with an amount error only loses the amount."""
    raw = [None, {"id": "x", "name": "Coffee", "amount": None, "category": "Food", "date": "2024-01-01"}]
    errors = [QueryError(message="Cannot return null", path=["getExpenses", 1, "amount"])]

    first, second = reconciler.reconcile(raw, errors)

    assert first.id == f"placeholder-0-{FIXED_MILLIS}"
    assert first.is_placeholder
    assert first.name == "Loading..."
    assert first.amount == 0
    assert first.category == FALLBACK_CATEGORIES[0]
    assert first.date == FIXED_ISO
    assert first.created_at == FIXED_ISO and first.updated_at == FIXED_ISO

    assert second.id == "x"
    assert not second.is_placeholder
    assert second.name == "Coffee"
    assert second.amount == 0
    assert second.category == "Food"
    assert second.date == "2024-01-01"


def test_flagged_fields_get_fallbacks_even_when_present(reconciler: Reconciler):
    raw = [{"id": "a"}, {"id": "b", "name": "Rent", "amount": 900, "category": "Housing", "date": "2024-02-01"}]
    errors = [
        {"path": ["getExpenses", 1, "id"], "message": "boom"},
        {"path": ["getExpenses", 1, "category"], "message": "boom"},
    ]

    _, repaired = reconciler.reconcile(raw, errors)

    assert repaired.id == f"recovered-1-{FIXED_MILLIS}"
    assert repaired.is_placeholder
    assert repaired.category == fallback_category(1)
    assert repaired.name == "Rent"
    assert repaired.amount == Decimal("900")


def test_missing_fields_repaired_without_error_annotation(reconciler: Reconciler):
    raw = [
        {"id": "ok", "name": "Bus", "amount": 2.5, "category": "Transportation", "date": "2024-03-03"},
        {"id": "", "name": None, "category": None},
    ]

    expenses = reconciler.reconcile(raw, None)

    _assert_complete(expenses)
    repaired = expenses[1]
    assert repaired.id == f"recovered-1-{FIXED_MILLIS}"
    assert repaired.name == "Expense 2"
    assert repaired.amount == 0
    assert repaired.category == fallback_category(1)
    assert repaired.date == FIXED_ISO


def test_short_and_non_integer_paths_are_ignored(reconciler: Reconciler):
    record = {"id": "k", "name": "Book", "amount": 12, "category": "Education", "date": "2024-04-04"}
    errors = [
        QueryError(message="too short", path=["getExpenses", 0]),
        QueryError(message="no path"),
        QueryError(message="bad index", path=["getExpenses", "first", "amount"]),
    ]

    [expense] = reconciler.reconcile([record], errors)

    assert expense.id == "k"
    assert expense.amount == Decimal("12")


def test_string_index_in_path_is_accepted():
    error_map = Reconciler.index_field_errors([{"path": ["getExpenses", "2", "name"]}])
    assert error_map == {2: {"name"}}


def test_legacy_title_counts_as_name(reconciler: Reconciler):
    [expense] = reconciler.reconcile(
        [{"id": "t", "title": "Groceries", "amount": 75.5, "category": "Food", "date": "2023-05-15"}], []
    )
    assert expense.name == "Groceries"
    assert not expense.is_placeholder


def test_fallback_category_cycles_deterministically(reconciler: Reconciler):
    expenses = reconciler.reconcile([None] * (len(FALLBACK_CATEGORIES) + 2), [])
    assert [e.category for e in expenses] == FALLBACK_CATEGORIES + FALLBACK_CATEGORIES[:2]
    assert [e.id.split("-")[1] for e in expenses] == [str(i) for i in range(len(expenses))]


def test_order_is_preserved_and_nothing_dropped(reconciler: Reconciler):
    raw = [
        {"id": "3", "name": "C", "amount": 3, "category": "Food", "date": "2024-01-03"},
        None,
        {"id": "1", "name": "A", "amount": 1, "category": "Food", "date": "2024-01-01"},
    ]
    expenses = reconciler.reconcile(raw, [])
    assert [e.id for e in expenses][0] == "3"
    assert expenses[1].is_placeholder
    assert expenses[2].id == "1"


def test_adversarial_rows_always_complete(reconciler: Reconciler):
    raw = [None, {}, {"amount": "abc"}, {"amount": float("nan")}, "junk", {"id": "z", "amount": -0.0}]
    errors = [{"path": ["getExpenses", i, f]} for i in range(6) for f in ("id", "name", "amount")]
    expenses = reconciler.reconcile(raw, errors)
    assert len(expenses) == len(raw)
    _assert_complete(expenses)


def test_reconciling_well_formed_input_is_idempotent(reconciler: Reconciler):
    raw = [
        {"id": "1", "name": "A", "amount": 1.25, "category": "Food", "date": "2024-01-01", "description": "x"},
        {"id": "2", "name": "B", "amount": 7, "category": "Other", "date": "2024-01-02"},
    ]
    first = reconciler.reconcile(raw, [])
    second = reconciler.reconcile(raw, [])
    assert first == second
    assert reconciler.reconcile([{"id": e.id, "name": e.name, "amount": float(e.amount), "category": e.category,
                                  "date": e.date, "description": e.description} for e in first], []) == first


def test_negative_amount_is_repaired_but_id_kept(reconciler: Reconciler):
    raw = [{"id": "neg", "name": "Refund?", "amount": -12.5, "category": "Food", "date": "2024-01-01"}]

    [expense] = reconciler.reconcile(raw, [])

    assert expense.id == "neg"
    assert not expense.is_placeholder
    assert expense.amount == 0
    assert expense.name == "Refund?"
