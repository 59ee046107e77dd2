"""Tests for totals and report aggregation."""

from datetime import datetime, timezone
from decimal import Decimal

from mymoney.ledger import (
    SUMMARY_DESCRIPTION,
    PeriodView,
    compute_totals,
    expense_by_category,
    to_export_rows,
)
from mymoney.models.transaction import Transaction, TransactionKind


def tx(id, description, kind, amount, occurred_at=None):
    return Transaction(
        id=id,
        description=description,
        kind=kind,
        amount=Decimal(amount),
        occurred_at=occurred_at or datetime(2024, 5, 1, tzinfo=timezone.utc),
    )


LEDGER = (
    tx("1", "Salary", "income", "1000"),
    tx("2", "Market", "expense", "120"),
    tx("3", "Rent", "expense", "500"),
    tx("4", "Market", "expense", "80"),
)


class TestComputeTotals:
    """Tests for compute_totals."""

    def test_empty(self):
        totals = compute_totals([])
        assert totals.balance == Decimal("0")
        assert totals.count == 0
        assert totals.balance_series == ()

    def test_totals(self):
        totals = compute_totals(LEDGER)
        assert totals.total_income == Decimal("1000")
        assert totals.total_expense == Decimal("700")
        assert totals.balance == Decimal("300")
        assert totals.count == 4

    def test_series_follows_insertion_order(self):
        totals = compute_totals(LEDGER)
        assert totals.balance_series == (
            Decimal("1000"), Decimal("880"), Decimal("380"), Decimal("300"),
        )
        assert totals.balance_series[-1] == totals.balance

    def test_deterministic(self):
        assert compute_totals(LEDGER) == compute_totals(LEDGER)


class TestExpenseByCategory:
    """Tests for the category breakdown."""

    def test_groups_expenses_by_description(self):
        categories = expense_by_category(LEDGER)
        assert [(c.category, c.total, c.count) for c in categories] == [
            ("Market", Decimal("200"), 2),
            ("Rent", Decimal("500"), 1),
        ]

    def test_income_is_ignored(self):
        assert expense_by_category([tx("1", "Salary", "income", "10")]) == []


class TestExportRows:
    """Tests for flattening into export rows."""

    def test_rows_end_with_summary(self):
        rows = to_export_rows(LEDGER[:2], Decimal("880"))
        assert len(rows) == 3
        assert [r.id for r in rows[:2]] == ["1", "2"]
        assert rows[1].kind is TransactionKind.EXPENSE
        summary = rows[-1]
        assert summary.is_summary is True
        assert summary.description == SUMMARY_DESCRIPTION
        assert summary.amount == Decimal("880")
        assert summary.occurred_at is None

    def test_empty_period_still_has_summary(self):
        rows = to_export_rows([], Decimal("5"))
        assert len(rows) == 1
        assert rows[0].is_summary


class TestPeriodView:
    """Tests for the month filter view."""

    def test_filters_by_month_and_year(self):
        june = datetime(2024, 6, 2, tzinfo=timezone.utc)
        ledger = LEDGER + (tx("5", "Gym", "expense", "50", june),)
        assert [t.id for t in PeriodView(ledger, 6, 2024)] == ["5"]
        assert [t.id for t in PeriodView(ledger, 5, 2024)] == ["1", "2", "3", "4"]
        assert list(PeriodView(ledger, 5, 2023)) == []

    def test_repr(self):
        assert repr(PeriodView((), 5, 2024)) == "PeriodView(month=5, year=2024)"
