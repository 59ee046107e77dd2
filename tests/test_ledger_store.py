"""
Tests for the LedgerStore

Covers mutations, totals, period filtering and persistence behavior
(including failures that must not reach the caller).
"""

import asyncio
import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from mymoney.ledger import RESET_DESCRIPTION, LedgerStore, NotFoundError
from mymoney.models.audit import AuditEventType
from mymoney.models.transaction import Transaction, TransactionKind, TransactionPatch
from mymoney.services.storage import InMemoryBlobStore
from mymoney.validation import InvalidInputError

from tests.conftest import FailingBlobStore, UnreadableBlobStore


KEY = "@transacoes"


def draft(description, kind, amount, occurred_at=None):
    data = {"description": description, "kind": kind, "amount": amount}
    if occurred_at is not None:
        data["occurred_at"] = occurred_at
    return data


def snapshot(store):
    return [(t.id, t.description, t.kind, t.amount, t.occurred_at) for t in store.transactions]


def event_types(audit_logger):
    return [e.event_type for e in audit_logger.recent_events(limit=100)]


class TestAdd:
    """Tests for adding transactions."""

    @pytest.mark.asyncio
    async def test_add_assigns_unique_ids(self, store):
        a = await store.add(draft("Salary", "income", "100"))
        b = await store.add(draft("Salary", "income", "100"))
        assert a.id and b.id
        assert a.id != b.id
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_balance_after_adds(self, store):
        """Balance is income minus expenses."""
        await store.add(draft("Salary", "income", "100"))
        await store.add(draft("Market", "expense", "30,50"))
        totals = store.totals()
        assert totals.balance == Decimal("69.50")
        assert totals.total_income == Decimal("100")
        assert totals.total_expense == Decimal("30.50")

    @pytest.mark.asyncio
    async def test_balance_series(self, store):
        await store.add(draft("Salary", "income", "100"))
        await store.add(draft("Market", "expense", "30"))
        await store.add(draft("Freelance", "income", "50"))
        assert store.totals().balance_series == (Decimal("100"), Decimal("70"), Decimal("120"))

    @pytest.mark.asyncio
    async def test_empty_description_leaves_ledger_unchanged(self, store):
        await store.add(draft("Salary", "income", "100"))
        with pytest.raises(InvalidInputError) as exc:
            await store.add(draft("", "expense", "10"))
        assert exc.value.field == "description"
        assert len(store) == 1
        assert store.totals().balance == Decimal("100")

    @pytest.mark.asyncio
    async def test_negative_income_is_rejected(self, store):
        with pytest.raises(InvalidInputError) as exc:
            await store.add(draft("Salary", "income", "-100"))
        assert exc.value.field == "amount"
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_add_persists_and_audits(self, store, blob_store, audit_logger):
        t = await store.add(draft("Salary", "income", "100"))
        persisted = json.loads(await blob_store.get(KEY))
        assert persisted[0]["id"] == t.id
        assert persisted[0]["tipo"] == "entrada"
        assert AuditEventType.TRANSACTION_ADDED in event_types(audit_logger)


class TestUpdate:
    """Tests for partial updates."""

    @pytest.mark.asyncio
    async def test_patch_preserves_unset_fields(self, store):
        occurred_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        first = await store.add(draft("Rent", "expense", "500", occurred_at))
        await store.add(draft("Salary", "income", "3000"))

        updated = await store.update(first.id, {"amount": "550"})

        assert updated.id == first.id
        assert updated.description == "Rent"
        assert updated.kind is TransactionKind.EXPENSE
        assert updated.occurred_at == occurred_at
        assert updated.amount == Decimal("550")
        assert store.transactions[0] == updated
        assert store.totals().balance == Decimal("2450")

    @pytest.mark.asyncio
    async def test_patch_model(self, store):
        t = await store.add(draft("Rent", "expense", "500"))
        updated = await store.update(t.id, TransactionPatch(description="Rent May"))
        assert updated.description == "Rent May"
        assert updated.amount == Decimal("500")

    @pytest.mark.asyncio
    async def test_invalid_patch_leaves_ledger_unchanged(self, store):
        t = await store.add(draft("Rent", "expense", "500"))
        before = snapshot(store)
        with pytest.raises(InvalidInputError):
            await store.update(t.id, {"description": ""})
        with pytest.raises(InvalidInputError):
            await store.update(t.id, {"kind": "income", "amount": "-1"})
        assert snapshot(store) == before

    @pytest.mark.asyncio
    async def test_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            await store.update("missing", {"amount": "1"})


class TestRemoveAndReset:
    """Tests for removal and reset."""

    @pytest.mark.asyncio
    async def test_remove_recomputes_totals(self, store):
        a = await store.add(draft("Salary", "income", "100"))
        await store.add(draft("Market", "expense", "30"))
        removed = await store.remove(a.id)
        assert removed.id == a.id
        assert store.totals().balance == Decimal("-30")
        assert store.totals().balance_series == (Decimal("-30"),)

    @pytest.mark.asyncio
    async def test_add_then_remove_restores_totals(self, store):
        await store.add(draft("Salary", "income", "100"))
        await store.add(draft("Market", "expense", "30,25"))
        before = store.totals()

        t = await store.add(draft("Cinema", "expense", "42.10"))
        assert store.totals() != before
        await store.remove(t.id)

        assert store.totals() == before

    @pytest.mark.asyncio
    async def test_remove_unknown_id_changes_nothing(self, store):
        await store.add(draft("Salary", "income", "100"))
        before = snapshot(store)
        revision = store.revision
        with pytest.raises(NotFoundError):
            await store.remove("missing")
        assert snapshot(store) == before
        assert store.revision == revision
        assert store.totals().balance == Decimal("100")

    @pytest.mark.asyncio
    async def test_reset_keeps_id_and_zeroes_contribution(self, store, audit_logger):
        await store.add(draft("Salary", "income", "100"))
        t = await store.add(draft("Market", "expense", "30"))
        reset = await store.reset(t.id)
        assert reset.id == t.id
        assert reset.description == RESET_DESCRIPTION
        assert reset.kind is TransactionKind.INCOME
        assert reset.amount == Decimal("0")
        assert store.totals().balance == Decimal("100")
        assert store.get(t.id) == reset
        assert AuditEventType.TRANSACTION_RESET in event_types(audit_logger)

    @pytest.mark.asyncio
    async def test_get_and_reset_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            store.get("missing")
        with pytest.raises(NotFoundError):
            await store.reset("missing")


class TestReplaceAll:
    """Tests for swapping in a backend list."""

    @pytest.mark.asyncio
    async def test_replace_all(self, store, blob_store):
        await store.add(draft("Old", "income", "1"))
        incoming = [
            Transaction(id="10", description="Salary", kind="income", amount=100),
            Transaction(id="11", description="Rent", kind="expense", amount=40),
        ]
        await store.replace_all(incoming)
        assert [t.id for t in store.transactions] == ["10", "11"]
        assert store.totals().balance == Decimal("60")
        assert len(json.loads(await blob_store.get(KEY))) == 2

    @pytest.mark.asyncio
    async def test_duplicate_ids_are_rejected(self, store):
        incoming = [
            Transaction(id="10", description="Salary", kind="income", amount=100),
            Transaction(id="10", description="Rent", kind="expense", amount=40),
        ]
        with pytest.raises(InvalidInputError):
            await store.replace_all(incoming)
        assert len(store) == 0


class TestFilterByPeriod:
    """Tests for month filtering."""

    @pytest.mark.asyncio
    async def test_filter_keeps_matching_in_order(self, store):
        may = datetime(2024, 5, 10, tzinfo=timezone.utc)
        june = datetime(2024, 6, 1, tzinfo=timezone.utc)
        await store.add(draft("A", "income", "1", may))
        await store.add(draft("B", "expense", "1", june))
        await store.add(draft("C", "expense", "2", may))
        await store.add(draft("D", "income", "3", datetime(2023, 5, 10, tzinfo=timezone.utc)))

        view = store.filter_by_period(5, 2024)
        assert [t.description for t in view] == ["A", "C"]
        # restartable
        assert [t.description for t in view] == ["A", "C"]

    @pytest.mark.asyncio
    async def test_filter_with_no_match_is_empty(self, store):
        await store.add(draft("A", "income", "1", datetime(2024, 5, 10, tzinfo=timezone.utc)))
        assert list(store.filter_by_period(1, 2020)) == []

    @pytest.mark.asyncio
    async def test_view_is_a_snapshot(self, store):
        may = datetime(2024, 5, 10, tzinfo=timezone.utc)
        await store.add(draft("A", "income", "1", may))
        view = store.filter_by_period(5, 2024)
        await store.add(draft("B", "income", "1", may))
        assert [t.description for t in view] == ["A"]

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_month_out_of_range(self, store, month):
        with pytest.raises(InvalidInputError) as exc:
            store.filter_by_period(month, 2024)
        assert exc.value.field == "month"

    @pytest.mark.asyncio
    async def test_filter_does_not_mutate(self, store):
        await store.add(draft("A", "income", "1"))
        revision = store.revision
        list(store.filter_by_period(1, 2000))
        assert store.revision == revision
        assert len(store) == 1


class TestPersistence:
    """Tests for load/save behavior."""

    @pytest.mark.asyncio
    async def test_round_trip(self, store, blob_store, validator):
        await store.add(draft("Salary", "income", "3500", datetime(2024, 5, 1, tzinfo=timezone.utc)))
        await store.add(draft("Rent", "expense", "1200,75"))

        reloaded = LedgerStore(blob_store, validator=validator)
        await reloaded.load()

        assert snapshot(reloaded) == snapshot(store)
        assert reloaded.totals().balance == store.totals().balance

    @pytest.mark.asyncio
    async def test_huge_amount_survives_reload(self, store, blob_store, validator):
        """An accepted amount beyond float range must not corrupt the blob."""
        await store.add(draft("Salary", "income", "100"))
        await store.add(draft("Jackpot", "income", "1e400"))

        reloaded = LedgerStore(blob_store, validator=validator)
        await reloaded.load()

        assert len(reloaded) == 2
        assert snapshot(reloaded) == snapshot(store)

    @pytest.mark.asyncio
    async def test_high_precision_totals_survive_reload(self, store, blob_store, validator):
        await store.add(draft("Transfer", "income", "12345678901234567.89"))
        await store.add(draft("Fee", "expense", "0.01"))

        reloaded = LedgerStore(blob_store, validator=validator)
        await reloaded.load()

        assert reloaded.totals() == store.totals()
        assert reloaded.totals().balance == Decimal("12345678901234567.88")

    @pytest.mark.asyncio
    async def test_amount_is_persisted_as_decimal_string(self, store, blob_store):
        await store.add(draft("Rent", "expense", "10.125"))
        persisted = json.loads(await blob_store.get(KEY))
        assert persisted[0]["valor"] == "10.125"

    @pytest.mark.asyncio
    async def test_load_missing_blob_is_empty(self, store):
        await store.load()
        assert len(store) == 0
        assert store.loading is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        "not json",
        '{"id": 1}',
        '[{"id": "a", "descricao": "X", "tipo": "entrada", "valor": "abc"}]',
        '[{"id": "a", "descricao": "X", "tipo": "entrada", "valor": -1}]',
        '["just a string"]',
        '[{"id": "a", "descricao": "X", "tipo": "entrada", "valor": 1},'
        ' {"id": "a", "descricao": "Y", "tipo": "saida", "valor": 2}]',
    ])
    async def test_corrupt_blob_loads_empty(self, validator, audit_logger, raw):
        store = LedgerStore(InMemoryBlobStore({KEY: raw}), validator=validator, audit_logger=audit_logger)
        await store.load()
        assert len(store) == 0
        assert store.totals().balance == Decimal("0")
        assert AuditEventType.LEDGER_LOAD_FAILED in event_types(audit_logger)

    @pytest.mark.asyncio
    async def test_unreadable_storage_loads_empty(self, validator, audit_logger):
        store = LedgerStore(UnreadableBlobStore(), validator=validator, audit_logger=audit_logger)
        await store.load()
        assert len(store) == 0
        assert AuditEventType.LEDGER_LOAD_FAILED in event_types(audit_logger)

    @pytest.mark.asyncio
    async def test_load_normalizes_signed_amounts(self, validator):
        raw = json.dumps([
            {"id": 1, "descricao": "Aluguel", "tipo": "saida", "valor": -500, "data": "2024-05-01T00:00:00Z"},
            {"id": 2, "descricao": "Pix", "valor": -20},
            {"id": 3, "descricao": "Salário", "tipo": "entrada", "valor": 1000},
        ])
        store = LedgerStore(InMemoryBlobStore({KEY: raw}), validator=validator)
        await store.load()
        assert [t.amount for t in store.transactions] == [Decimal("500"), Decimal("20"), Decimal("1000")]
        assert store.totals().balance == Decimal("480")
        # record without a date gets the load time
        assert store.get("2").occurred_at is not None

    @pytest.mark.asyncio
    async def test_save_failure_keeps_memory_state(self, validator, audit_logger):
        store = LedgerStore(FailingBlobStore(), validator=validator, audit_logger=audit_logger)
        t = await store.add(draft("Salary", "income", "100"))
        assert store.get(t.id) == t
        assert await store.save() is False
        assert AuditEventType.SAVE_FAILED in event_types(audit_logger)

    @pytest.mark.asyncio
    async def test_stale_load_is_discarded(self, validator, audit_logger):
        """A load that overlaps a mutation does not overwrite the newer state."""
        old = json.dumps([{"id": "old", "descricao": "Old", "tipo": "entrada", "valor": 5}])
        release = asyncio.Event()

        class SlowBlobStore(InMemoryBlobStore):
            async def get(self, key):
                value = await super().get(key)
                await release.wait()
                return value

        store = LedgerStore(SlowBlobStore({KEY: old}), validator=validator, audit_logger=audit_logger)
        loading = asyncio.create_task(store.load())
        await asyncio.sleep(0)
        assert store.loading is True

        added = await store.add(draft("New", "income", "10"))
        release.set()
        await loading

        assert [t.id for t in store.transactions] == [added.id]
        assert store.loading is False
        assert AuditEventType.STALE_LOAD_DISCARDED in event_types(audit_logger)

    @pytest.mark.asyncio
    async def test_clear_keeps_persisted_data(self, store, blob_store):
        await store.add(draft("Salary", "income", "100"))
        store.clear()
        assert len(store) == 0
        assert store.totals().count == 0
        assert await blob_store.get(KEY) is not None
