"""Tests for the session manager."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mymoney.auth import SessionManager
from mymoney.models.audit import AuditEventType
from mymoney.models.transaction import UserSession
from mymoney.services.api import AuthenticationError
from mymoney.services.storage import InMemoryBlobStore
from mymoney.validation import InvalidInputError

from tests.conftest import FailingBlobStore, UnreadableBlobStore


ANA = UserSession(id="7", name="Ana", email="ana@example.com")


@pytest.fixture
def api():
    api = MagicMock()
    api.login = AsyncMock(return_value=ANA)
    api.register = AsyncMock(return_value=ANA)
    return api


class TestLogin:
    """Tests for login and logout."""

    @pytest.mark.asyncio
    async def test_login_persists_user(self, api, blob_store, audit_logger):
        sessions = SessionManager(api, blob_store, audit_logger)
        user = await sessions.login(" ana@example.com ", "secret")

        assert user == ANA
        assert sessions.current == ANA
        api.login.assert_awaited_once_with("ana@example.com", "secret")
        assert json.loads(await blob_store.get("@usuario"))["nome"] == "Ana"
        assert audit_logger.recent_events()[0].event_type == AuditEventType.USER_LOGGED_IN

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email, password", [("", "secret"), ("ana@example.com", ""), ("  ", "  ")])
    async def test_empty_fields_are_rejected(self, api, blob_store, email, password):
        sessions = SessionManager(api, blob_store)
        with pytest.raises(InvalidInputError):
            await sessions.login(email, password)
        api.login.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refused_login_propagates(self, api, blob_store):
        api.login.side_effect = AuthenticationError("Senha inválida", status_code=401)
        sessions = SessionManager(api, blob_store)
        with pytest.raises(AuthenticationError):
            await sessions.login("ana@example.com", "wrong")
        assert sessions.current is None
        assert await blob_store.get("@usuario") is None

    @pytest.mark.asyncio
    async def test_login_survives_storage_failure(self, api, audit_logger):
        sessions = SessionManager(api, FailingBlobStore(), audit_logger)
        assert await sessions.login("ana@example.com", "secret") == ANA
        assert AuditEventType.SAVE_FAILED in [e.event_type for e in audit_logger.recent_events()]

    @pytest.mark.asyncio
    async def test_logout(self, api, blob_store, audit_logger):
        sessions = SessionManager(api, blob_store, audit_logger)
        await sessions.login("ana@example.com", "secret")
        await sessions.logout()
        assert sessions.current is None
        assert sessions.is_authenticated is False
        assert await blob_store.get("@usuario") is None
        assert audit_logger.recent_events()[0].event_type == AuditEventType.USER_LOGGED_OUT


class TestRegister:
    """Tests for registration."""

    @pytest.mark.asyncio
    async def test_register_does_not_log_in(self, api, blob_store):
        sessions = SessionManager(api, blob_store)
        user = await sessions.register("Ana", "ana@example.com", "secret")
        assert user == ANA
        assert sessions.current is None
        api.register.assert_awaited_once_with("Ana", "ana@example.com", "secret")

    @pytest.mark.asyncio
    async def test_missing_name(self, api, blob_store):
        sessions = SessionManager(api, blob_store)
        with pytest.raises(InvalidInputError) as exc:
            await sessions.register("", "ana@example.com", "secret")
        assert exc.value.field == "name"


class TestRestore:
    """Tests for resuming a persisted session."""

    @pytest.mark.asyncio
    async def test_restore(self, api):
        blob_store = InMemoryBlobStore({"@usuario": json.dumps({"id": 7, "nome": "Ana", "email": "ana@example.com"})})
        sessions = SessionManager(api, blob_store)
        user = await sessions.restore()
        assert user.id == "7"
        assert sessions.current == user

    @pytest.mark.asyncio
    async def test_nothing_persisted(self, api, blob_store):
        assert await SessionManager(api, blob_store).restore() is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["not json", "[1, 2]"])
    async def test_corrupt_session(self, api, audit_logger, raw):
        sessions = SessionManager(api, InMemoryBlobStore({"@usuario": raw}), audit_logger)
        assert await sessions.restore() is None
        assert audit_logger.recent_events()[0].event_type == AuditEventType.SESSION_RESTORE_FAILED

    @pytest.mark.asyncio
    async def test_unreadable_storage(self, api):
        assert await SessionManager(api, UnreadableBlobStore()).restore() is None
