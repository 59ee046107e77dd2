"""
Periodic Background Export Task

Runs at most once per configured interval (never more often than daily)
and reports whether there was ledger data to process.

DESIGN DECISION: The task reads the persisted blob directly instead of
going through a LedgerStore. It may run while the UI is closed, and it
must never touch (or be blocked by) the in-memory ledger.

The task never raises. Every outcome is one of BackgroundFetchResult.
"""

import asyncio
from datetime import timedelta
from enum import Enum
from typing import Optional

import structlog

from mymoney.audit import AuditLogger
from mymoney.config import BackgroundSettings, Platform
from mymoney.ledger.aggregator import compute_totals
from mymoney.ledger.store import decode_ledger
from mymoney.models.audit import AuditEventBuilder
from mymoney.services.storage import BlobStoreInterface, StorageError


logger = structlog.get_logger(__name__)

TASK_NAME = "monthly-export"


class BackgroundFetchResult(str, Enum):
    NEW_DATA = "new-data"
    NO_DATA = "no-data"
    FAILED = "failed"


class MonthlyExportTask:
    """Checks persisted ledger data and logs the current balance."""

    name = TASK_NAME

    def __init__(
        self,
        blob_store: BlobStoreInterface,
        key: str = "@transacoes",
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._blob_store = blob_store
        self._key = key
        self._audit_logger = audit_logger

    async def run(self) -> BackgroundFetchResult:
        result = await self._execute()
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.background_task_completed(self.name, result.value))
        return result

    async def _execute(self) -> BackgroundFetchResult:
        try:
            raw = await self._blob_store.get(self._key)
            if not raw:
                logger.info("background_no_data", task=self.name, key=self._key)
                return BackgroundFetchResult.NO_DATA

            totals = compute_totals(decode_ledger(raw))
        except (StorageError, ValueError, TypeError) as e:
            logger.error("background_task_failed", task=self.name, error=str(e))
            return BackgroundFetchResult.FAILED

        logger.info(
            "background_balance",
            task=self.name,
            balance=str(totals.balance),
            count=totals.count,
        )
        return BackgroundFetchResult.NEW_DATA


class PeriodicTaskRunner:
    """
    Runs a task now and then once per interval until stopped.

    Usage:
        stop = asyncio.Event()
        runner = PeriodicTaskRunner(task, timedelta(hours=24))
        asyncio.create_task(runner.run(stop))
        ...
        stop.set()
    """

    def __init__(self, task: MonthlyExportTask, interval: timedelta):
        if interval.total_seconds() <= 0:
            raise ValueError("Interval must be positive")
        self._task = task
        self._interval = interval
        self.last_result: Optional[BackgroundFetchResult] = None
        self.runs = 0

    @property
    def interval(self) -> timedelta:
        return self._interval

    async def run(self, stop_event: asyncio.Event) -> int:
        """Loop until stop_event is set. Returns the number of runs."""
        while not stop_event.is_set():
            self.last_result = await self._task.run()
            self.runs += 1
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval.total_seconds())
            except asyncio.TimeoutError:
                continue
        logger.info("background_runner_stopped", task=self._task.name, runs=self.runs)
        return self.runs


def create_background_runner(
    task: MonthlyExportTask,
    settings: BackgroundSettings,
    platform: Platform,
) -> Optional[PeriodicTaskRunner]:
    """A runner for native platforms, or None where background tasks are not registered."""
    if platform == Platform.WEB or not settings.enabled:
        logger.info("background_task_not_registered", platform=platform.value, enabled=settings.enabled)
        return None
    return PeriodicTaskRunner(task, timedelta(hours=settings.interval_hours))
