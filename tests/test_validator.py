"""Tests for transaction input validation."""

import pytest
from datetime import timedelta
from decimal import Decimal

from mymoney.models.transaction import TransactionDraft, TransactionKind, utcnow
from mymoney.validation import (
    InvalidInputError,
    TransactionValidator,
    coerce_draft,
    parse_amount,
)


class TestParseAmount:
    """Tests for user-entered amounts."""

    def test_accepts_comma_and_dot(self):
        assert parse_amount("10,50") == Decimal("10.50")
        assert parse_amount("10.50") == Decimal("10.50")

    def test_trims_whitespace(self):
        assert parse_amount("  7 ") == Decimal("7")

    def test_accepts_numbers(self):
        assert parse_amount(3) == Decimal("3")
        assert parse_amount(0.1) == Decimal("0.1")
        assert parse_amount(Decimal("2.5")) == Decimal("2.5")

    @pytest.mark.parametrize("raw", ["", "   ", "abc", "1,2,3", None, True, "nan", "Infinity", float("inf")])
    def test_rejects_non_numbers(self, raw):
        with pytest.raises(ValueError):
            parse_amount(raw)


class TestTransactionValidator:
    """Tests for TransactionValidator."""

    def test_valid_draft(self, validator):
        is_valid, issues = validator.validate({"description": "Salary", "kind": "income", "amount": "3500"})
        assert is_valid is True
        assert issues == []

    def test_empty_description_is_rejected(self, validator):
        with pytest.raises(InvalidInputError) as exc:
            validator.build({"description": "  ", "kind": "income", "amount": "10"}, "t1")
        assert exc.value.field == "description"

    def test_missing_kind_is_rejected(self, validator):
        with pytest.raises(InvalidInputError) as exc:
            validator.build({"description": "Gift", "amount": "10"}, "t1")
        assert exc.value.field == "kind"

    def test_unknown_kind_is_rejected(self, validator):
        is_valid, issues = validator.validate({"description": "Gift", "kind": "transfer", "amount": "10"})
        assert is_valid is False
        assert issues[0].field == "kind"
        assert issues[0].issue_type == "invalid_value"

    def test_non_numeric_amount_is_rejected(self, validator):
        with pytest.raises(InvalidInputError) as exc:
            validator.build({"description": "Gift", "kind": "income", "amount": "ten"}, "t1")
        assert exc.value.field == "amount"

    def test_negative_income_is_rejected(self, validator):
        is_valid, issues = validator.validate({"description": "Salary", "kind": "income", "amount": "-5"})
        assert is_valid is False
        assert [i.issue_type for i in issues] == ["negative_income"]

    def test_negative_expense_keeps_magnitude(self, validator):
        t = validator.build({"description": "Rent", "kind": "saida", "amount": "-500"}, "t1")
        assert t.kind is TransactionKind.EXPENSE
        assert t.amount == Decimal("500")

    def test_all_failed_fields_are_reported(self, validator):
        with pytest.raises(InvalidInputError) as exc:
            validator.build({}, "t1")
        assert {i.field for i in exc.value.issues} == {"description", "kind", "amount"}

    def test_future_date_is_a_warning(self, validator):
        draft = TransactionDraft(
            description="Trip",
            kind="expense",
            amount="100",
            occurred_at=utcnow() + timedelta(days=30),
        )
        is_valid, issues = validator.validate(draft)
        assert is_valid is True
        assert issues[0].severity == "warning"
        assert issues[0].issue_type == "future_date"

    def test_future_date_still_builds(self, validator):
        occurred_at = utcnow() + timedelta(days=30)
        t = validator.build(
            {"description": "Trip", "kind": "expense", "amount": "100", "occurred_at": occurred_at},
            "t1",
        )
        assert t.occurred_at == occurred_at

    def test_user_friendly_summary(self, validator):
        _, issues = validator.validate({"description": "", "kind": "income", "amount": "1"})
        assert "Description is required" in validator.get_user_friendly_summary(issues)
        assert validator.get_user_friendly_summary([]) == "All fields look good."


class TestCoerceDraft:
    """Tests for accepting drafts from plain dicts."""

    def test_passes_drafts_through(self):
        draft = TransactionDraft(description="X")
        assert coerce_draft(draft) is draft

    def test_rejects_non_mappings(self):
        with pytest.raises(InvalidInputError) as exc:
            coerce_draft(42)
        assert exc.value.field == "input"

    def test_rejects_unusable_field_types(self):
        with pytest.raises(InvalidInputError):
            coerce_draft({"description": "X", "amount": ["10"]})
