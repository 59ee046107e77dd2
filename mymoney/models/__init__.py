"""
Data Models Package

This package contains all Pydantic models used by MyMoney.
All data flowing through the system must conform to these schemas.
"""

from mymoney.models.transaction import (
    CategoryTotal,
    ExportRow,
    LedgerTotals,
    PeriodReport,
    Transaction,
    TransactionDraft,
    TransactionKind,
    TransactionPatch,
    UserSession,
    ValidationIssue,
    utcnow,
)
from mymoney.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CategoryTotal",
    "ExportRow",
    "LedgerTotals",
    "PeriodReport",
    "Transaction",
    "TransactionDraft",
    "TransactionKind",
    "TransactionPatch",
    "UserSession",
    "ValidationIssue",
    "utcnow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
