"""Input validation package."""

from mymoney.validation.validator import (
    InvalidInputError,
    TransactionValidator,
    coerce_draft,
    parse_amount,
)

__all__ = [
    "InvalidInputError",
    "TransactionValidator",
    "coerce_draft",
    "parse_amount",
]
