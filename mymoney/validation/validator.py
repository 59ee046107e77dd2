"""
Transaction Input Validation

Raw user input (form fields, dicts from the UI) is checked here before a
Transaction is ever constructed.

ERRORS block the input:
- Empty description
- Missing or unknown kind
- Missing or non-numeric amount (NaN and infinity included)
- Negative income

WARNINGS are reported but do not block:
- A date further in the future than the configured tolerance

IMPORTANT: Validation NEVER silently fixes invalid input. The one
normalization it performs is taking the magnitude of a negative expense,
because magnitude + kind is the canonical amount representation.
"""

from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from mymoney.config import get_settings
from mymoney.models.transaction import (
    Transaction,
    TransactionDraft,
    TransactionKind,
    ValidationIssue,
    utcnow,
)


class InvalidInputError(ValueError):
    """User input failed validation. Nothing was mutated."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = issues
        fields = ", ".join(issue.field for issue in issues) or "input"
        super().__init__(f"Invalid {fields}: " + "; ".join(i.message for i in issues))

    @property
    def field(self) -> Optional[str]:
        """The first field that failed."""
        return self.issues[0].field if self.issues else None

    @classmethod
    def for_field(cls, field: str, message: str, issue_type: str = "invalid_value") -> "InvalidInputError":
        return cls([ValidationIssue(field=field, issue_type=issue_type, message=message)])


def parse_amount(raw: Union[str, int, float, Decimal, None]) -> Decimal:
    """
    Parse a user-entered amount.

    Accepts both "," and "." as the decimal separator ("10,50" == "10.50").

    Raises:
        ValueError: If the value is empty, not a number, or not finite
    """
    if raw is None or isinstance(raw, bool):
        raise ValueError("Amount is required")
    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        text = raw.strip().replace(",", ".")
        if not text:
            raise ValueError("Amount is required")
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Amount is not a number: {raw!r}")
    else:
        raise ValueError(f"Amount is not a number: {raw!r}")

    if not value.is_finite():
        raise ValueError(f"Amount must be a finite number: {raw!r}")
    return value


class TransactionValidator:
    """
    Validates transaction drafts and builds Transactions from them.
    """

    def __init__(self, future_date_tolerance_days: Optional[int] = None):
        if future_date_tolerance_days is None:
            future_date_tolerance_days = get_settings().app.future_date_tolerance_days
        self._future_tolerance = timedelta(days=future_date_tolerance_days)

    def _check(
        self,
        draft: TransactionDraft,
    ) -> tuple[list[ValidationIssue], Optional[TransactionKind], Optional[Decimal]]:
        issues = []

        if not draft.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                suggested_fix="Describe what the transaction was for",
            ))
        elif len(draft.description) > 200:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message="Description must be at most 200 characters",
            ))

        kind = None
        if draft.kind is None or draft.kind == "":
            issues.append(ValidationIssue(
                field="kind",
                issue_type="missing",
                message="Kind is required",
                suggested_fix="Choose income or expense",
            ))
        else:
            try:
                kind = TransactionKind.parse(draft.kind)
            except ValueError:
                issues.append(ValidationIssue(
                    field="kind",
                    issue_type="invalid_value",
                    message=f"Unknown kind: {draft.kind}",
                    suggested_fix="Choose income or expense",
                ))

        amount = None
        try:
            amount = parse_amount(draft.amount)
        except ValueError as e:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing" if draft.amount in (None, "") else "invalid_value",
                message=str(e),
                suggested_fix="Enter a number such as 10.50 or 10,50",
            ))

        if amount is not None and amount < 0:
            if kind is TransactionKind.INCOME:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="negative_income",
                    message="Income cannot have a negative amount",
                ))
            else:
                amount = abs(amount)

        if draft.occurred_at is not None:
            occurred_at = draft.occurred_at
            now = utcnow() if occurred_at.tzinfo else datetime.now()
            if occurred_at > now + self._future_tolerance:
                issues.append(ValidationIssue(
                    field="occurred_at",
                    issue_type="future_date",
                    message=f"Date ({occurred_at.date()}) is in the future",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))

        return issues, kind, amount

    def validate(self, draft: Union[TransactionDraft, dict[str, Any]]) -> tuple[bool, list[ValidationIssue]]:
        """
        Validate a draft.

        Returns: (is_valid, list_of_issues). Warnings do not make a
        draft invalid.
        """
        draft = coerce_draft(draft)
        issues, _, _ = self._check(draft)
        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def build(
        self,
        draft: Union[TransactionDraft, dict[str, Any]],
        transaction_id: str,
    ) -> Transaction:
        """
        Build a Transaction from a draft.

        Raises:
            InvalidInputError: If the draft has any error-level issue
        """
        draft = coerce_draft(draft)
        issues, kind, amount = self._check(draft)
        errors = [issue for issue in issues if issue.severity == "error"]
        if errors:
            raise InvalidInputError(errors)

        fields = {
            "id": transaction_id,
            "description": draft.description,
            "kind": kind,
            "amount": amount,
        }
        if draft.occurred_at is not None:
            fields["occurred_at"] = draft.occurred_at
        return Transaction(**fields)

    def get_user_friendly_summary(self, issues: list[ValidationIssue]) -> str:
        """Summarize issues in one message for display."""
        if not issues:
            return "All fields look good."
        return " ".join(issue.message + "." for issue in issues)


def coerce_draft(candidate: Union[TransactionDraft, dict[str, Any]]) -> TransactionDraft:
    """
    Accept a draft or a plain dict.

    Raises:
        InvalidInputError: If a dict field has a type no form could produce
    """
    if isinstance(candidate, TransactionDraft):
        return candidate
    if not isinstance(candidate, dict):
        raise InvalidInputError.for_field("input", f"Expected a transaction, got {type(candidate).__name__}")
    try:
        return TransactionDraft.model_validate(candidate)
    except ValueError as e:
        raise InvalidInputError.for_field("input", str(e))
