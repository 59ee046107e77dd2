"""Transaction ledger: the store and its pure aggregations."""

from mymoney.ledger.aggregator import (
    SUMMARY_DESCRIPTION,
    PeriodView,
    compute_totals,
    expense_by_category,
    to_export_rows,
)
from mymoney.ledger.store import (
    RESET_DESCRIPTION,
    LedgerError,
    LedgerStore,
    NotFoundError,
    decode_ledger,
    encode_ledger,
)

__all__ = [
    "SUMMARY_DESCRIPTION",
    "RESET_DESCRIPTION",
    "PeriodView",
    "compute_totals",
    "expense_by_category",
    "to_export_rows",
    "LedgerError",
    "LedgerStore",
    "NotFoundError",
    "decode_ledger",
    "encode_ledger",
]
