"""
Main Orchestrator for MyMoney

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger changes (record / edit / delete / reset, optional backend mirror)
2. Reports (period filter -> totals and categories -> export)
3. App lifecycle (session restore, ledger load, background task, logout)

DESIGN DECISION: The orchestrator is where failures become messages.
Stores and services raise; flows catch the expected errors and return
(result, ok, message) so the UI never needs to know the exception
hierarchy. Unexpected errors still propagate.
"""

import asyncio
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from mymoney.audit import AuditLogger, configure_logging, create_correlation_id
from mymoney.auth import SessionManager
from mymoney.config import Platform, Settings, get_settings
from mymoney.ledger import (
    LedgerStore,
    NotFoundError,
    compute_totals,
    expense_by_category,
    to_export_rows,
)
from mymoney.models.audit import AuditEventBuilder
from mymoney.models.transaction import (
    PeriodReport,
    Transaction,
    TransactionDraft,
    TransactionKind,
    TransactionPatch,
    UserSession,
)
from mymoney.services.api import MyMoneyApiClient, NetworkError
from mymoney.services.export import (
    EmptyReportError,
    ExportError,
    ExportFormat,
    ReportExporter,
    UnsupportedPlatformError,
    get_exporter,
)
from mymoney.services.storage import (
    BlobStoreInterface,
    InMemoryBlobStore,
    JsonFileBlobStore,
)
from mymoney.tasks import MonthlyExportTask, PeriodicTaskRunner, create_background_runner
from mymoney.validation import InvalidInputError, TransactionValidator, parse_amount


logger = structlog.get_logger(__name__)

NETWORK_ALERT = "Could not reach the server. Your change was kept on this device."


def edit_patch(
    existing: Transaction,
    description: str,
    kind: Union[TransactionKind, str],
    amount: Any,
    occurred_on: Optional[date] = None,
) -> dict[str, Any]:
    """
    Build a patch holding only what the edit form actually changed.

    An amount that parses to the stored value is left out, so "10.125"
    is never rewritten by a form that displays it differently. A new
    date keeps the stored time of day.
    """
    changes: dict[str, Any] = {}
    if description.strip() != existing.description:
        changes["description"] = description
    try:
        same_kind = TransactionKind.parse(kind) is existing.kind
    except ValueError:
        same_kind = False
    if not same_kind:
        changes["kind"] = kind
    try:
        same_amount = parse_amount(amount) == existing.amount
    except ValueError:
        same_amount = False
    if not same_amount:
        changes["amount"] = amount
    if occurred_on is not None and occurred_on != existing.occurred_at.date():
        changes["occurred_at"] = datetime.combine(
            occurred_on, existing.occurred_at.timetz()
        )
    return changes


class LedgerFlow:
    """
    Orchestrates ledger mutations.

    Local-first: the ledger store is always updated first. When sync is
    enabled the change is then mirrored to the backend; a network failure
    is reported but the local change stays.
    """

    def __init__(
        self,
        store: LedgerStore,
        api: Optional[MyMoneyApiClient] = None,
        sync_enabled: bool = False,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        self._store = store
        self._api = api
        self._sync = sync_enabled and api is not None
        self._audit_logger = audit_logger
        self._validator = validator or store.validator

    @property
    def store(self) -> LedgerStore:
        return self._store

    def check(self, candidate: Union[TransactionDraft, dict[str, Any]]) -> tuple[bool, str]:
        """
        Pre-validate form input without touching the ledger.

        Returns: (is_valid, message). Warnings are included in the message.
        """
        try:
            is_valid, issues = self._validator.validate(candidate)
        except InvalidInputError as e:
            return False, str(e)
        return is_valid, self._validator.get_user_friendly_summary(issues)

    async def record(
        self,
        candidate: Union[TransactionDraft, dict[str, Any]],
    ) -> tuple[Optional[Transaction], bool, str]:
        """
        Add a transaction.

        Returns:
            (transaction, ok, message). transaction is None when the input
            was rejected; ok is False when anything needs the user's
            attention.
        """
        try:
            transaction = await self._store.add(candidate)
        except InvalidInputError as e:
            return None, False, self._validator.get_user_friendly_summary(e.issues)

        ok, message = await self._mirror("create_transaction", transaction)
        return transaction, ok, message or "Transaction saved."

    async def edit(
        self,
        transaction_id: str,
        patch: Union[TransactionPatch, dict[str, Any]],
    ) -> tuple[Optional[Transaction], bool, str]:
        try:
            transaction = await self._store.update(transaction_id, patch)
        except InvalidInputError as e:
            return None, False, self._validator.get_user_friendly_summary(e.issues)
        except NotFoundError as e:
            return None, False, str(e)

        ok, message = await self._mirror("update_transaction", transaction)
        return transaction, ok, message or "Transaction updated."

    async def delete(self, transaction_id: str) -> tuple[Optional[Transaction], bool, str]:
        """Confirmation is the caller's job; this deletes immediately."""
        try:
            removed = await self._store.remove(transaction_id)
        except NotFoundError as e:
            return None, False, str(e)

        ok, message = await self._mirror("delete_transaction", removed)
        return removed, ok, message or "Transaction deleted."

    async def reset(self, transaction_id: str) -> tuple[Optional[Transaction], bool, str]:
        try:
            transaction = await self._store.reset(transaction_id)
        except NotFoundError as e:
            return None, False, str(e)

        ok, message = await self._mirror("update_transaction", transaction)
        return transaction, ok, message or "Transaction reset."

    async def refresh_from_remote(self) -> tuple[int, bool, str]:
        """
        Replace the local ledger with the backend's list.

        Returns: (count, ok, message)
        """
        if self._api is None:
            return len(self._store), False, "No server is configured."

        correlation_id = create_correlation_id()
        try:
            transactions = await self._api.list_transactions()
            await self._store.replace_all(transactions, source="backend")
        except NetworkError as e:
            self._remote_failed("list_transactions", e, correlation_id)
            return len(self._store), False, "Could not reach the server."
        except InvalidInputError as e:
            self._remote_failed("list_transactions", e, correlation_id)
            return len(self._store), False, "The server sent an invalid transaction list."

        return len(transactions), True, f"Loaded {len(transactions)} transactions from the server."

    async def _mirror(self, operation: str, transaction: Transaction) -> tuple[bool, Optional[str]]:
        if not self._sync:
            return True, None

        correlation_id = create_correlation_id()
        try:
            if operation == "create_transaction":
                await self._api.create_transaction(transaction)
            elif operation == "update_transaction":
                await self._api.update_transaction(transaction)
            else:
                await self._api.delete_transaction(transaction.id)
        except NetworkError as e:
            self._remote_failed(operation, e, correlation_id)
            return False, NETWORK_ALERT
        return True, None

    def _remote_failed(self, operation: str, error: Exception, correlation_id) -> None:
        logger.warning("remote_call_failed", operation=operation, error=str(error))
        if self._audit_logger:
            self._audit_logger.log_remote_call_failed(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )


class ReportFlow:
    """
    Orchestrates period reports and their export.

    Export formats are resolved once, at construction, for the platform
    the app runs on.
    """

    def __init__(
        self,
        store: LedgerStore,
        platform: Platform,
        export_dir: Union[str, Path],
        currency_symbol: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._platform = platform
        self._export_dir = Path(export_dir)
        self._audit_logger = audit_logger
        self._exporters: dict[ExportFormat, ReportExporter] = {
            export_format: get_exporter(export_format, platform, currency_symbol)
            for export_format in ExportFormat
        }

    def exporter(self, export_format: Union[ExportFormat, str]) -> ReportExporter:
        return self._exporters[ExportFormat(export_format)]

    def build_period_report(self, month: int, year: int) -> PeriodReport:
        """
        Raises:
            InvalidInputError: If month or year is out of range
        """
        transactions = tuple(self._store.filter_by_period(month, year))
        balance = self._store.totals().balance
        return PeriodReport(
            month=month,
            year=year,
            transactions=transactions,
            totals=compute_totals(transactions),
            categories=tuple(expense_by_category(transactions)),
            rows=tuple(to_export_rows(transactions, balance)),
        )

    def render(
        self,
        report: PeriodReport,
        export_format: Union[ExportFormat, str],
    ) -> tuple[Optional[str], str]:
        """
        Render a report in memory (for a download button).

        Returns: (content, message). content is None when nothing can be
        exported.
        """
        exporter = self.exporter(export_format)
        if report.is_empty:
            return None, "No transactions to export for this period."
        try:
            return exporter.render(report.rows), f"Report ready: {exporter.filename}"
        except UnsupportedPlatformError as e:
            self._unsupported(e)
            return None, self._unsupported_message(e)

    def export(
        self,
        report: PeriodReport,
        export_format: Union[ExportFormat, str],
    ) -> tuple[Optional[Path], str]:
        """
        Write a report to the export directory.

        Returns: (path, message). path is None when nothing was written;
        the message then says why (unsupported here, empty period, or a
        write failure).
        """
        exporter = self.exporter(export_format)
        try:
            path = exporter.export(report.rows, self._export_dir)
        except UnsupportedPlatformError as e:
            self._unsupported(e)
            return None, self._unsupported_message(e)
        except EmptyReportError:
            return None, "No transactions to export for this period."
        except ExportError as e:
            logger.error("report_export_failed", format=exporter.export_format.value, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_error("ExportError", str(e))
            return None, "The report could not be saved."

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.report_exported(
                export_format=exporter.export_format.value,
                row_count=len(report.transactions),
                path=str(path),
            ))
        return path, f"Report saved to {path}"

    def _unsupported(self, error: UnsupportedPlatformError) -> None:
        logger.info("export_unsupported", format=error.export_format.value, platform=error.platform)
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.export_unsupported(
                export_format=error.export_format.value,
                platform=error.platform,
            ))

    @staticmethod
    def _unsupported_message(error: UnsupportedPlatformError) -> str:
        return f"Exporting a {error.export_format.value} report is not available on {error.platform}."


class MyMoneyApp:
    """
    Application lifecycle.

    init() restores the session and loads the ledger; dispose() stops the
    background task and drops the in-memory ledger.
    """

    def __init__(
        self,
        settings: Settings,
        blob_store: BlobStoreInterface,
        store: LedgerStore,
        sessions: SessionManager,
        ledger_flow: LedgerFlow,
        report_flow: ReportFlow,
        background_task: Optional[MonthlyExportTask] = None,
        background_runner: Optional[PeriodicTaskRunner] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.settings = settings
        self.blob_store = blob_store
        self.store = store
        self.sessions = sessions
        self.ledger_flow = ledger_flow
        self.report_flow = report_flow
        self.background_task = background_task
        self.background_runner = background_runner
        self.audit_logger = audit_logger
        self._stop_event: Optional[asyncio.Event] = None
        self._background: Optional[asyncio.Task] = None

    @property
    def user(self) -> Optional[UserSession]:
        return self.sessions.current

    async def init(self) -> Optional[UserSession]:
        """Restore the persisted session and, if there is one, load the ledger."""
        user = await self.sessions.restore()
        if user is not None:
            await self.store.load()
        return user

    async def login(self, email: str, password: str) -> UserSession:
        """
        Raises:
            InvalidInputError, AuthenticationError, NetworkError
        """
        user = await self.sessions.login(email, password)
        await self.store.load()
        return user

    async def logout(self) -> None:
        await self.sessions.logout()
        self.store.clear()

    def start_background(self) -> Optional[asyncio.Task]:
        """Schedule the periodic task on the running loop (native platforms only)."""
        if self.background_runner is None or self._background is not None:
            return self._background
        self._stop_event = asyncio.Event()
        self._background = asyncio.create_task(self.background_runner.run(self._stop_event))
        return self._background

    async def dispose(self) -> None:
        if self._background is not None:
            self._stop_event.set()
            await self._background
            self._background = None
            self._stop_event = None
        self.store.clear()


def create_blob_store(settings: Settings) -> BlobStoreInterface:
    storage = settings.storage
    if storage.backend == "memory":
        return InMemoryBlobStore()
    return JsonFileBlobStore(storage.data_path)


def create_app_components(
    settings: Optional[Settings] = None,
    blob_store: Optional[BlobStoreInterface] = None,
    api: Optional[MyMoneyApiClient] = None,
    session_store: Optional[BlobStoreInterface] = None,
) -> MyMoneyApp:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to get_settings()
        blob_store: Overrides the configured storage backend (tests)
        api: Overrides the HTTP client (tests)
        session_store: Where the logged-in user is kept. Defaults to
                       blob_store; a server hosting many browser sessions
                       passes one store per session.
    """
    settings = settings or get_settings()
    app_settings = settings.app
    storage_settings = settings.storage
    api_settings = settings.api

    configure_logging(app_settings.log_level)
    audit_logger = AuditLogger()

    blob_store = blob_store or create_blob_store(settings)
    api = api or MyMoneyApiClient(api_settings, app_settings.platform)

    store = LedgerStore(
        blob_store,
        validator=TransactionValidator(app_settings.future_date_tolerance_days),
        audit_logger=audit_logger,
        storage_key=storage_settings.transactions_key,
    )
    sessions = SessionManager(
        api,
        session_store or blob_store,
        audit_logger=audit_logger,
        storage_key=storage_settings.session_key,
    )
    ledger_flow = LedgerFlow(
        store,
        api=api,
        sync_enabled=api_settings.sync_enabled,
        audit_logger=audit_logger,
    )
    report_flow = ReportFlow(
        store,
        platform=app_settings.platform,
        export_dir=app_settings.export_dir,
        currency_symbol=app_settings.currency_symbol,
        audit_logger=audit_logger,
    )
    background_task = MonthlyExportTask(blob_store, storage_settings.transactions_key, audit_logger)
    background_runner = create_background_runner(
        background_task,
        settings.background,
        app_settings.platform,
    )

    logger.info(
        "app_components_created",
        platform=app_settings.platform.value,
        storage=storage_settings.backend,
        api=api.base_url,
        sync=api_settings.sync_enabled,
    )

    return MyMoneyApp(
        settings=settings,
        blob_store=blob_store,
        store=store,
        sessions=sessions,
        ledger_flow=ledger_flow,
        report_flow=report_flow,
        background_task=background_task,
        background_runner=background_runner,
        audit_logger=audit_logger,
    )
