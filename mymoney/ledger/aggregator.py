"""
Totals and Report Aggregation

Pure functions over a sequence of transactions. Nothing here mutates the
ledger or touches I/O, so every function is safe to call on a snapshot
while a load or save is in flight.

GUARANTEES:
- Insertion order is preserved everywhere (no sorting by date)
- Same input, same output
"""

from decimal import Decimal
from typing import Iterable, Iterator, Sequence

from mymoney.models.transaction import (
    CategoryTotal,
    ExportRow,
    LedgerTotals,
    Transaction,
    TransactionKind,
)


SUMMARY_DESCRIPTION = "Current balance"


def compute_totals(transactions: Iterable[Transaction]) -> LedgerTotals:
    """
    Single pass over the transactions.

    balance_series[i] is the running balance after transactions[i].
    """
    balance = Decimal("0")
    total_income = Decimal("0")
    total_expense = Decimal("0")
    series = []

    for t in transactions:
        if t.kind is TransactionKind.INCOME:
            total_income += t.amount
        else:
            total_expense += t.amount
        balance += t.signed_amount
        series.append(balance)

    return LedgerTotals(
        balance=balance,
        total_income=total_income,
        total_expense=total_expense,
        balance_series=tuple(series),
        count=len(series),
    )


def expense_by_category(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """
    Group expenses by description and sum them.

    Groups come out in the order their first expense appears.
    """
    totals: dict[str, Decimal] = {}
    counts: dict[str, int] = {}

    for t in transactions:
        if t.kind is not TransactionKind.EXPENSE:
            continue
        totals[t.description] = totals.get(t.description, Decimal("0")) + t.amount
        counts[t.description] = counts.get(t.description, 0) + 1

    return [
        CategoryTotal(category=name, total=total, count=counts[name])
        for name, total in totals.items()
    ]


def to_export_rows(
    transactions: Iterable[Transaction],
    balance: Decimal,
) -> list[ExportRow]:
    """
    Flatten transactions into export rows plus a trailing summary row.

    This is the shape every report renderer consumes.
    """
    rows = [
        ExportRow(
            id=t.id,
            description=t.description,
            kind=t.kind,
            amount=t.amount,
            occurred_at=t.occurred_at,
        )
        for t in transactions
    ]
    rows.append(ExportRow(
        description=SUMMARY_DESCRIPTION,
        amount=balance,
        is_summary=True,
    ))
    return rows


class PeriodView:
    """
    Transactions that fall in one calendar month.

    Lazy and restartable: iterating twice walks the snapshot twice.
    The snapshot is fixed at construction, so later ledger mutations
    do not leak into a view already handed out.
    """

    def __init__(self, transactions: Sequence[Transaction], month: int, year: int):
        self._transactions = tuple(transactions)
        self.month = month
        self.year = year

    def __iter__(self) -> Iterator[Transaction]:
        for t in self._transactions:
            if t.occurred_at.month == self.month and t.occurred_at.year == self.year:
                yield t

    def __repr__(self) -> str:
        return f"PeriodView(month={self.month}, year={self.year})"
