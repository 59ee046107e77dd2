"""
Report Export Interface

DESIGN DECISION: Exporters only turn ExportRows into a file. Which rows
go in (period filter, summary row) is decided by the report flow, and
which exporter is used on which platform is decided once at startup by
get_exporter().
"""

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Sequence, Union

import structlog

from mymoney.models.transaction import ExportRow


logger = structlog.get_logger(__name__)


class ExportFormat(str, Enum):
    CSV = "csv"
    DOCUMENT = "document"


class ExportError(Exception):
    """Base exception for export errors."""
    pass


class UnsupportedPlatformError(ExportError):
    """The export format is not available on this platform."""

    def __init__(self, export_format: ExportFormat, platform: str):
        self.export_format = export_format
        self.platform = platform
        super().__init__(f"{export_format.value} export is not supported on {platform}")


class EmptyReportError(ExportError):
    """There are no transactions to export."""
    pass


class ReportExporter(ABC):
    """
    Abstract report exporter.

    Subclasses provide the format, the file name and render().
    """

    export_format: ExportFormat
    filename: str
    media_type: str = "text/plain"

    @abstractmethod
    def render(self, rows: Sequence[ExportRow]) -> str:
        """Render rows (summary row last) into the document text."""
        pass

    def export(self, rows: Sequence[ExportRow], directory: Union[str, Path]) -> Path:
        """
        Render rows and write them to <directory>/<filename>.

        Raises:
            EmptyReportError: If rows hold no transaction
            UnsupportedPlatformError: If the format is unavailable
            ExportError: If the file cannot be written
        """
        ensure_not_empty(rows)
        content = self.render(rows)

        path = Path(directory) / self.filename
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ExportError(f"Could not write {path}: {e}") from e

        logger.info("report_written", format=self.export_format.value, path=str(path), rows=len(rows))
        return path


def ensure_not_empty(rows: Sequence[ExportRow]) -> None:
    if not any(not row.is_summary for row in rows):
        raise EmptyReportError("No transactions to export")
