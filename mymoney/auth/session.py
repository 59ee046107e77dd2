"""
User Session Management

The logged-in user is mirrored into persistence so a restart resumes
the session without asking for credentials again.

IMPORTANT: Credentials are checked by the backend only. This module
validates presence, never correctness, and never stores a password.
"""

import json
from typing import Optional

import structlog

from mymoney.audit import AuditLogger
from mymoney.models.audit import AuditEventBuilder
from mymoney.models.transaction import UserSession, ValidationIssue
from mymoney.services.api import MyMoneyApiClient
from mymoney.services.storage import BlobStoreInterface, StorageError
from mymoney.validation import InvalidInputError


logger = structlog.get_logger(__name__)


def _require(**fields: str) -> None:
    issues = [
        ValidationIssue(field=name, issue_type="missing", message=f"{name.capitalize()} is required")
        for name, value in fields.items()
        if not value or not value.strip()
    ]
    if issues:
        raise InvalidInputError(issues)


class SessionManager:
    """
    Owns the current user.

    Usage:
        sessions = SessionManager(api, blob_store)
        user = await sessions.restore() or await sessions.login(email, password)
    """

    def __init__(
        self,
        api: MyMoneyApiClient,
        blob_store: BlobStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        storage_key: str = "@usuario",
    ):
        self._api = api
        self._blob_store = blob_store
        self._audit_logger = audit_logger
        self._key = storage_key
        self._current: Optional[UserSession] = None

    @property
    def current(self) -> Optional[UserSession]:
        return self._current

    @property
    def is_authenticated(self) -> bool:
        return self._current is not None

    async def restore(self) -> Optional[UserSession]:
        """
        Resume the persisted session, if any.

        Never raises: a missing, corrupt or unreadable session means
        nobody is logged in.
        """
        try:
            raw = await self._blob_store.get(self._key)
            if not raw:
                return None
            self._current = UserSession.from_wire(json.loads(raw))
        except (StorageError, ValueError, TypeError) as e:
            logger.warning("session_restore_failed", key=self._key, error=str(e))
            self._audit(AuditEventBuilder.session_restore_failed(str(e)))
            return None

        logger.info("session_restored", user_id=self._current.id)
        return self._current

    async def login(self, email: str, password: str) -> UserSession:
        """
        Raises:
            InvalidInputError: If email or password is empty
            AuthenticationError: If the backend refuses the credentials
            NetworkError: If the backend is unreachable
        """
        _require(email=email, password=password)
        user = await self._api.login(email.strip(), password)
        self._current = user
        await self._persist(user)
        self._audit(AuditEventBuilder.user_logged_in(user.id, user.email))
        return user

    async def register(self, name: str, email: str, password: str) -> UserSession:
        """
        Create an account. The user still has to log in afterwards.

        Raises:
            InvalidInputError: If any field is empty
            AuthenticationError: If the backend refuses the registration
            NetworkError: If the backend is unreachable
        """
        _require(name=name, email=email, password=password)
        user = await self._api.register(name.strip(), email.strip(), password)
        self._audit(AuditEventBuilder.user_registered(user.id, user.email))
        return user

    async def logout(self) -> None:
        user = self._current
        self._current = None
        try:
            await self._blob_store.remove(self._key)
        except StorageError as e:
            logger.error("session_remove_failed", key=self._key, error=str(e))
            self._audit(AuditEventBuilder.save_failed(self._key, str(e)))
        if user is not None:
            self._audit(AuditEventBuilder.user_logged_out(user.id))

    async def _persist(self, user: UserSession) -> None:
        try:
            await self._blob_store.set(self._key, json.dumps(user.to_wire(), ensure_ascii=False))
        except StorageError as e:
            logger.error("session_save_failed", key=self._key, error=str(e))
            self._audit(AuditEventBuilder.save_failed(self._key, str(e)))

    def _audit(self, event) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)
