"""
Core Data Models for MyMoney

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep one canonical amount representation (magnitude + kind)
3. Be serializable to the wire format shared by persistence and the backend

DESIGN DECISION: Amounts are stored as a non-negative Decimal magnitude.
The sign of a transaction comes only from its kind. Records that arrive
with signed amounts are normalized at the boundary (from_wire) and never
inside the ledger.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionKind(str, Enum):
    """
    Direction of a transaction.

    The backend and the persisted blob use the Portuguese vocabulary
    ("entrada" / "saida"); both vocabularies are accepted on input.
    """
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def wire_value(self) -> str:
        return "entrada" if self is TransactionKind.INCOME else "saida"

    @property
    def label(self) -> str:
        return "Income" if self is TransactionKind.INCOME else "Expense"

    @classmethod
    def parse(cls, value: Any) -> "TransactionKind":
        """Coerce either vocabulary, in any casing, into a kind."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Unsupported transaction kind: {value!r}")
        kind = _KIND_ALIASES.get(value.strip().lower())
        if kind is None:
            raise ValueError(f"Unsupported transaction kind: {value!r}")
        return kind


_KIND_ALIASES = {
    "income": TransactionKind.INCOME,
    "entrada": TransactionKind.INCOME,
    "expense": TransactionKind.EXPENSE,
    "saida": TransactionKind.EXPENSE,
    "saída": TransactionKind.EXPENSE,
}


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class Transaction(BaseModel):
    """
    One recorded income or expense event.

    Instances are immutable. The ledger replaces a transaction with a new
    instance on edit, so snapshots handed out earlier never change.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Identifier assigned by the ledger store"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the transaction was for; also its category"
    )
    kind: TransactionKind = Field(
        ...,
        description="Income or expense"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Non-negative magnitude"
    )
    occurred_at: datetime = Field(
        default_factory=utcnow,
        description="When the transaction happened"
    )

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Backends may hand out integer ids."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('kind', mode='before')
    @classmethod
    def parse_kind(cls, v: Any) -> TransactionKind:
        return TransactionKind.parse(v)

    @field_validator('occurred_at')
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def signed_amount(self) -> Decimal:
        """Contribution of this transaction to the balance."""
        if self.kind is TransactionKind.INCOME:
            return self.amount
        return -self.amount

    def to_wire(self) -> dict:
        """
        Convert to the wire format used by persistence and the backend.

        Returns a dict with keys: id, descricao, tipo, valor, data.
        "valor" is the decimal string of the amount, so a save/load
        cycle is exact.
        """
        return {
            "id": self.id,
            "descricao": self.description,
            "tipo": self.kind.wire_value,
            "valor": str(self.amount),
            "data": self.occurred_at.isoformat(),
        }

    @classmethod
    def from_wire(
        cls,
        data: dict,
        default_occurred_at: Optional[datetime] = None,
    ) -> "Transaction":
        """
        Build a Transaction from a wire record, normalizing the amount.

        - "saida" with a negative "valor" keeps the magnitude
        - no "tipo" infers the kind from the sign of "valor"
        - "entrada" with a negative "valor" is invalid

        Raises:
            ValueError: If the record cannot be normalized
            TypeError: If the record is not a dict
        """
        if not isinstance(data, dict):
            raise TypeError(f"Transaction record must be an object, got {type(data).__name__}")

        raw_amount = data.get("valor", data.get("amount"))
        if raw_amount is None or isinstance(raw_amount, bool):
            raise ValueError("Transaction record has no amount")
        try:
            amount = Decimal(str(raw_amount))
        except InvalidOperation:
            raise ValueError(f"Transaction amount is not a number: {raw_amount!r}")
        if not amount.is_finite():
            raise ValueError(f"Transaction amount is not finite: {raw_amount!r}")

        raw_kind = data.get("tipo", data.get("kind"))
        if raw_kind is None or raw_kind == "":
            kind = TransactionKind.EXPENSE if amount < 0 else TransactionKind.INCOME
        else:
            kind = TransactionKind.parse(raw_kind)
            if kind is TransactionKind.INCOME and amount < 0:
                raise ValueError("Income record cannot have a negative amount")

        raw_id = data.get("id")
        if raw_id is None or raw_id == "":
            raise ValueError("Transaction record has no id")

        occurred_at = (
            data.get("data")
            or data.get("occurred_at")
            or default_occurred_at
            or utcnow()
        )

        return cls(
            id=raw_id,
            description=data.get("descricao", data.get("description", "")),
            kind=kind,
            amount=abs(amount),
            occurred_at=occurred_at,
        )


class TransactionDraft(BaseModel):
    """
    Raw user input for a new transaction.

    CRITICAL: This is UNVALIDATED data. Amounts may still be strings with
    a comma decimal separator. Only TransactionValidator turns a draft
    into a Transaction.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = None
    kind: Optional[Union[TransactionKind, str]] = None
    amount: Optional[Union[Decimal, int, float, str]] = None
    occurred_at: Optional[datetime] = None


class TransactionPatch(BaseModel):
    """
    Partial update for an existing transaction.

    Only fields explicitly set on the patch are merged; everything else
    is preserved from the stored transaction.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = None
    kind: Optional[Union[TransactionKind, str]] = None
    amount: Optional[Union[Decimal, int, float, str]] = None
    occurred_at: Optional[datetime] = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set on this patch."""
        return self.model_dump(exclude_unset=True)


# =============================================================================
# DERIVED / REPORT MODELS
# =============================================================================

class LedgerTotals(BaseModel):
    """Aggregates derived from the ledger in insertion order."""
    model_config = ConfigDict(frozen=True)

    balance: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    balance_series: tuple[Decimal, ...] = ()
    count: int = Field(default=0, ge=0)


class CategoryTotal(BaseModel):
    """Sum of expenses sharing a description."""
    model_config = ConfigDict(frozen=True)

    category: str
    total: Decimal
    count: int = Field(ge=1)


class ExportRow(BaseModel):
    """
    One flat record of an exported report.

    The last row of every export is a summary row carrying the balance;
    it has no id, kind or date.
    """
    model_config = ConfigDict(frozen=True)

    id: str = ""
    description: str
    kind: Optional[TransactionKind] = None
    amount: Decimal
    occurred_at: Optional[datetime] = None
    is_summary: bool = False


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in user input."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'negative_income')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


# =============================================================================
# SESSION MODEL
# =============================================================================

class UserSession(BaseModel):
    """
    The logged-in user, as returned by the backend.

    Extra fields sent by the backend are kept so the mirrored copy in
    persistence round-trips unchanged. Passwords are never kept.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="allow",
        populate_by_name=True,
    )

    id: Optional[str] = None
    name: str = Field(default="", alias="nome")
    email: str = ""

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @classmethod
    def from_wire(cls, data: dict) -> "UserSession":
        if not isinstance(data, dict):
            raise TypeError(f"User record must be an object, got {type(data).__name__}")
        cleaned = {k: v for k, v in data.items() if k != "senha"}
        return cls.model_validate(cleaned)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# REPORT MODEL
# =============================================================================

class PeriodReport(BaseModel):
    """
    Everything the reports screen shows for one month.

    rows always end with the summary row. Its balance is the balance of the
    whole ledger, not just of the period.
    """
    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=1, le=12)
    year: int
    transactions: tuple[Transaction, ...] = ()
    totals: LedgerTotals = Field(default_factory=LedgerTotals)
    categories: tuple[CategoryTotal, ...] = ()
    rows: tuple[ExportRow, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.transactions
