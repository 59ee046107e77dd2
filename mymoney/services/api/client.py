"""
MyMoney Backend API Client

Thin wrapper over the REST backend (users and transactions).

DESIGN DECISION: The backend is a collaborator, not the source of truth.
The local ledger keeps working when the backend is down; callers decide
what to do with a NetworkError (the UI shows a generic alert).

BOUNDARIES:
1. No retries. A failed call fails once, loudly.
2. No timeout unless ApiSettings.timeout_seconds is set.
3. requests is blocking, so every call runs in a worker thread to keep
   the event loop responsive.
"""

import asyncio
from typing import Any, Optional

import requests
import structlog

from mymoney.config import ApiSettings, Platform, get_settings
from mymoney.models.transaction import Transaction, UserSession


logger = structlog.get_logger(__name__)


class NetworkError(Exception):
    """A backend call failed: transport error, bad status or bad body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class AuthenticationError(NetworkError):
    """Login or registration was refused. Carries the server's message."""
    pass


class MyMoneyApiClient:
    """
    Client for the MyMoney REST backend.

    Usage:
        api = MyMoneyApiClient(platform=Platform.ANDROID)
        user = await api.login("ana@example.com", "secret")
        transactions = await api.list_transactions()
    """

    def __init__(
        self,
        settings: Optional[ApiSettings] = None,
        platform: Optional[Platform] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().api
        if platform is None:
            platform = get_settings().app.platform
        self._base_url = self._settings.url_for(platform)
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(self, method: str, path: str, payload: Optional[dict] = None) -> requests.Response:
        url = f"{self._base_url}{path}"
        try:
            return self._session.request(
                method,
                url,
                json=payload,
                timeout=self._settings.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("api_transport_error", method=method, url=url, error=str(e))
            raise NetworkError(f"{method} {path} failed: {e}") from e

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> requests.Response:
        response = await asyncio.to_thread(self._send, method, path, payload)
        logger.debug("api_response", method=method, path=path, status=response.status_code)
        return response

    @staticmethod
    def _ensure_success(response: requests.Response, operation: str) -> None:
        if not 200 <= response.status_code < 300:
            raise NetworkError(
                f"{operation} failed with status {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

    @staticmethod
    def _decode(response: requests.Response, operation: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(
                f"{operation} returned an undecodable body",
                status_code=response.status_code,
            ) from e

    def _to_transaction(self, data: Any, operation: str) -> Transaction:
        try:
            return Transaction.from_wire(data)
        except (ValueError, TypeError) as e:
            raise NetworkError(f"{operation} returned an invalid transaction: {e}") from e

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> UserSession:
        """
        Raises:
            AuthenticationError: Credentials refused (non-200)
            NetworkError: Transport failure or undecodable body
        """
        response = await self._request(
            "POST", "/api/usuarios/login", {"email": email, "senha": password}
        )
        if response.status_code != 200:
            raise AuthenticationError(response.text or "Login failed", status_code=response.status_code)
        return self._to_user(self._decode(response, "login"), "login")

    async def register(self, name: str, email: str, password: str) -> UserSession:
        """
        Raises:
            AuthenticationError: Registration refused (non-200)
            NetworkError: Transport failure or undecodable body
        """
        response = await self._request(
            "POST", "/api/usuarios/registro", {"nome": name, "email": email, "senha": password}
        )
        if response.status_code != 200:
            raise AuthenticationError(response.text or "Registration failed", status_code=response.status_code)
        return self._to_user(self._decode(response, "register"), "register")

    @staticmethod
    def _to_user(data: Any, operation: str) -> UserSession:
        try:
            return UserSession.from_wire(data)
        except (ValueError, TypeError) as e:
            raise NetworkError(f"{operation} returned an invalid user: {e}") from e

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        response = await self._request("GET", "/api/transacoes")
        self._ensure_success(response, "list_transactions")
        data = self._decode(response, "list_transactions")
        if not isinstance(data, list):
            raise NetworkError("list_transactions did not return a list")
        return [self._to_transaction(item, "list_transactions") for item in data]

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        """The backend assigns its own id; the returned record carries it."""
        wire = self._body(transaction)
        body = {key: wire[key] for key in ("descricao", "tipo", "valor", "data")}
        response = await self._request("POST", "/api/transacoes", body)
        self._ensure_success(response, "create_transaction")
        return self._to_transaction(self._decode(response, "create_transaction"), "create_transaction")

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        response = await self._request(
            "PUT", f"/api/transacoes/{transaction.id}", self._body(transaction)
        )
        self._ensure_success(response, "update_transaction")
        return self._to_transaction(self._decode(response, "update_transaction"), "update_transaction")

    @staticmethod
    def _body(transaction: Transaction) -> dict:
        """The backend takes "valor" as a JSON number."""
        wire = transaction.to_wire()
        wire["valor"] = float(transaction.amount)
        return wire

    async def delete_transaction(self, transaction_id: str) -> bool:
        response = await self._request("DELETE", f"/api/transacoes/{transaction_id}")
        self._ensure_success(response, "delete_transaction")
        return True
