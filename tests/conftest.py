"""Shared fixtures: an in-memory ledger with local-only audit logging."""

import pytest

from mymoney.audit import AuditLogger
from mymoney.config import get_settings
from mymoney.ledger import LedgerStore
from mymoney.services.storage import InMemoryBlobStore, StorageError
from mymoney.validation import TransactionValidator


class FailingBlobStore(InMemoryBlobStore):
    """Reads work; every write fails."""

    async def set(self, key, value):
        raise StorageError("disk full")

    async def remove(self, key):
        raise StorageError("disk full")


class UnreadableBlobStore(InMemoryBlobStore):
    """Every read fails."""

    async def get(self, key):
        raise StorageError("permission denied")


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def audit_logger():
    return AuditLogger()


@pytest.fixture
def validator():
    return TransactionValidator(future_date_tolerance_days=7)


@pytest.fixture
def store(blob_store, validator, audit_logger):
    return LedgerStore(blob_store, validator=validator, audit_logger=audit_logger)
