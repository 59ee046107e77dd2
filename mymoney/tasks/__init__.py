"""Background tasks."""

from mymoney.tasks.background import (
    BackgroundFetchResult,
    MonthlyExportTask,
    PeriodicTaskRunner,
    create_background_runner,
)

__all__ = [
    "BackgroundFetchResult",
    "MonthlyExportTask",
    "PeriodicTaskRunner",
    "create_background_runner",
]
