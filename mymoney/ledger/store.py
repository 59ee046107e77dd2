"""
Ledger Store

The single owner of the transaction list and its derived totals.

DESIGN DECISIONS:
1. The ledger is an immutable tuple snapshot. Every mutation builds a new
   tuple and swaps it in, so readers (totals, period views, a background
   export) never observe a half-applied change and need no locking.
2. Write-through persistence: every successful mutation is followed by an
   explicit save() of the full snapshot. There is no batching and no
   "save on any change" hook.
3. Storage failures never reach the caller. A failed load starts an empty
   ledger; a failed save keeps the in-memory state. Both are logged and
   audited. This favors availability over durability.
4. A monotonic revision guards against a slow load overwriting a newer
   mutation (last-write-wins otherwise).
"""

import json
from datetime import datetime
from typing import Any, Iterable, Optional, Union
from uuid import uuid4

import structlog

from mymoney.audit import AuditLogger
from mymoney.ledger.aggregator import PeriodView, compute_totals
from mymoney.models.audit import AuditEventBuilder
from mymoney.models.transaction import (
    LedgerTotals,
    Transaction,
    TransactionDraft,
    TransactionKind,
    TransactionPatch,
    utcnow,
)
from mymoney.services.storage import BlobStoreInterface, StorageError
from mymoney.validation import InvalidInputError, TransactionValidator


logger = structlog.get_logger(__name__)

RESET_DESCRIPTION = "Reset transaction"


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class NotFoundError(LedgerError):
    """No transaction with the given id exists in the ledger."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


def decode_ledger(raw: str) -> tuple[Transaction, ...]:
    """
    Parse a persisted ledger blob.

    Raises:
        ValueError: On bad JSON, a non-list payload, an invalid record
                    or duplicate ids
        TypeError: If a record is not an object
    """
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError(f"Ledger blob must be a list, got {type(data).__name__}")
    loaded_at = utcnow()
    transactions = tuple(Transaction.from_wire(item, default_occurred_at=loaded_at) for item in data)
    ensure_unique_ids(transactions)
    return transactions


def encode_ledger(transactions: Iterable[Transaction]) -> str:
    return json.dumps([t.to_wire() for t in transactions], ensure_ascii=False)


def ensure_unique_ids(transactions: Iterable[Transaction]) -> None:
    seen = set()
    for t in transactions:
        if t.id in seen:
            raise ValueError(f"Duplicate transaction id: {t.id}")
        seen.add(t.id)


class LedgerStore:
    """
    Authoritative in-memory ledger with write-through persistence.

    Usage:
        store = LedgerStore(JsonFileBlobStore("data/mymoney.json"))
        await store.load()
        tx = await store.add({"description": "Salary", "kind": "income", "amount": "3500"})
        store.totals().balance
    """

    def __init__(
        self,
        blob_store: BlobStoreInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        storage_key: str = "@transacoes",
    ):
        self._blob_store = blob_store
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self._key = storage_key

        self._transactions: tuple[Transaction, ...] = ()
        self._totals: LedgerTotals = compute_totals(())
        self._revision = 0
        self.loading = False

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """Current snapshot, in insertion order."""
        return self._transactions

    @property
    def revision(self) -> int:
        """Bumped on every mutation."""
        return self._revision

    @property
    def storage_key(self) -> str:
        return self._key

    @property
    def validator(self) -> TransactionValidator:
        return self._validator

    def __len__(self) -> int:
        return len(self._transactions)

    def get(self, transaction_id: str) -> Transaction:
        """
        Raises:
            NotFoundError: If no transaction has this id
        """
        for t in self._transactions:
            if t.id == transaction_id:
                return t
        raise NotFoundError(transaction_id)

    def totals(self) -> LedgerTotals:
        """Balance, income, expense and balance series of the current snapshot."""
        return self._totals

    def filter_by_period(self, month: int, year: int) -> PeriodView:
        """
        Transactions whose date falls in the given month (1-12) and year.

        Raises:
            InvalidInputError: If month or year is out of range
        """
        if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
            raise InvalidInputError.for_field("month", f"Month must be between 1 and 12, got {month!r}")
        if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9999:
            raise InvalidInputError.for_field("year", f"Year is out of range: {year!r}")
        return PeriodView(self._transactions, month, year)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """
        Replace the in-memory ledger with the persisted one.

        Never raises: missing, corrupt or unreadable data yields an empty
        ledger. If a mutation happens while the read is suspended, the
        loaded data is stale and is discarded.
        """
        started_at_revision = self._revision
        self.loading = True
        try:
            loaded = await self._read_persisted()
        finally:
            self.loading = False

        if self._revision != started_at_revision:
            logger.warning(
                "stale_load_discarded",
                loaded_revision=started_at_revision,
                current_revision=self._revision,
            )
            self._audit(AuditEventBuilder.stale_load_discarded(started_at_revision, self._revision))
            return

        self._commit(loaded, mutation=False)
        self._audit(AuditEventBuilder.ledger_loaded(len(loaded)))

    async def _read_persisted(self) -> tuple[Transaction, ...]:
        try:
            raw = await self._blob_store.get(self._key)
        except StorageError as e:
            self._load_failed(str(e))
            return ()

        if not raw:
            return ()

        try:
            return decode_ledger(raw)
        except (ValueError, TypeError) as e:
            self._load_failed(f"Corrupt ledger data: {e}")
            return ()

    def _load_failed(self, message: str) -> None:
        logger.warning("ledger_load_failed", key=self._key, error=message)
        self._audit(AuditEventBuilder.ledger_load_failed(self._key, message))

    async def save(self) -> bool:
        """
        Persist the full snapshot.

        Returns True if written. A StorageError is logged and swallowed;
        the in-memory ledger stays as it is.
        """
        snapshot = self._transactions
        try:
            await self._blob_store.set(self._key, encode_ledger(snapshot))
            return True
        except StorageError as e:
            logger.error("ledger_save_failed", key=self._key, error=str(e), count=len(snapshot))
            self._audit(AuditEventBuilder.save_failed(self._key, str(e)))
            return False

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, candidate: Union[TransactionDraft, dict[str, Any]]) -> Transaction:
        """
        Validate and append a new transaction.

        Raises:
            InvalidInputError: If the candidate fails validation
        """
        transaction = self._validator.build(candidate, self._new_id())
        self._commit(self._transactions + (transaction,))
        await self.save()
        self._audit(AuditEventBuilder.transaction_added(
            transaction_id=transaction.id,
            description=transaction.description,
            kind=transaction.kind.value,
            amount=str(transaction.amount),
        ))
        return transaction

    async def update(
        self,
        transaction_id: str,
        patch: Union[TransactionPatch, dict[str, Any]],
    ) -> Transaction:
        """
        Merge a partial update onto an existing transaction.

        Fields absent from the patch are preserved. The merged result is
        re-validated under the same rules as add().

        Raises:
            NotFoundError: If no transaction has this id
            InvalidInputError: If the merged transaction is invalid
        """
        index, existing = self._locate(transaction_id)
        changes = self._patch_changes(patch)

        merged = {
            "description": existing.description,
            "kind": existing.kind,
            "amount": existing.amount,
            "occurred_at": existing.occurred_at,
        }
        merged.update(changes)
        updated = self._validator.build(merged, existing.id)

        new = list(self._transactions)
        new[index] = updated
        self._commit(tuple(new))
        await self.save()
        self._audit(AuditEventBuilder.transaction_updated(existing.id, sorted(changes)))
        return updated

    async def remove(self, transaction_id: str) -> Transaction:
        """
        Remove a transaction.

        Raises:
            NotFoundError: If no transaction has this id. The ledger is
                           left unchanged.
        """
        index, existing = self._locate(transaction_id)
        self._commit(self._transactions[:index] + self._transactions[index + 1:])
        await self.save()
        self._audit(AuditEventBuilder.transaction_removed(existing.id))
        return existing

    async def reset(self, transaction_id: str, occurred_at: Optional[datetime] = None) -> Transaction:
        """
        Replace a transaction's fields with neutral defaults, keeping its id.

        Raises:
            NotFoundError: If no transaction has this id
        """
        index, existing = self._locate(transaction_id)
        reset = Transaction(
            id=existing.id,
            description=RESET_DESCRIPTION,
            kind=TransactionKind.INCOME,
            amount=0,
            occurred_at=occurred_at or utcnow(),
        )
        new = list(self._transactions)
        new[index] = reset
        self._commit(tuple(new))
        await self.save()
        self._audit(AuditEventBuilder.transaction_reset(existing.id))
        return reset

    async def replace_all(self, transactions: Iterable[Transaction], source: str = "backend") -> None:
        """
        Swap the whole ledger, e.g. for the list fetched from the backend.

        Raises:
            InvalidInputError: If two transactions share an id
        """
        snapshot = tuple(transactions)
        try:
            ensure_unique_ids(snapshot)
        except ValueError as e:
            raise InvalidInputError.for_field("id", str(e), issue_type="duplicate")
        self._commit(snapshot)
        await self.save()
        self._audit(AuditEventBuilder.ledger_replaced(len(snapshot), source))

    def clear(self) -> None:
        """Drop the in-memory ledger. Persisted data is untouched."""
        self._commit(())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _commit(self, transactions: tuple[Transaction, ...], mutation: bool = True) -> None:
        self._transactions = transactions
        self._totals = compute_totals(transactions)
        if mutation:
            self._revision += 1

    def _locate(self, transaction_id: str) -> tuple[int, Transaction]:
        for index, t in enumerate(self._transactions):
            if t.id == transaction_id:
                return index, t
        raise NotFoundError(transaction_id)

    def _new_id(self) -> str:
        existing = {t.id for t in self._transactions}
        while True:
            candidate = uuid4().hex
            if candidate not in existing:
                return candidate

    @staticmethod
    def _patch_changes(patch: Union[TransactionPatch, dict[str, Any]]) -> dict[str, Any]:
        if isinstance(patch, TransactionPatch):
            return patch.changes()
        if not isinstance(patch, dict):
            raise InvalidInputError.for_field("patch", f"Expected a patch, got {type(patch).__name__}")
        try:
            return TransactionPatch.model_validate(patch).changes()
        except ValueError as e:
            raise InvalidInputError.for_field("patch", str(e))

    def _audit(self, event) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)
