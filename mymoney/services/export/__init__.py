"""
Report Export Services

get_exporter() picks the implementation for a format and platform.
"""

from typing import Optional, Union

from mymoney.config import Platform
from mymoney.services.export.csv_exporter import CSV_HEADER, CsvReportExporter
from mymoney.services.export.document_exporter import (
    HtmlDocumentExporter,
    UnsupportedDocumentExporter,
)
from mymoney.services.export.interface import (
    EmptyReportError,
    ExportError,
    ExportFormat,
    ReportExporter,
    UnsupportedPlatformError,
    ensure_not_empty,
)


def get_exporter(
    export_format: Union[ExportFormat, str],
    platform: Platform,
    currency_symbol: Optional[str] = None,
) -> ReportExporter:
    """
    Raises:
        ValueError: If the format is unknown
    """
    export_format = ExportFormat(export_format)
    if export_format is ExportFormat.CSV:
        return CsvReportExporter()
    if platform == Platform.WEB:
        return UnsupportedDocumentExporter(platform.value)
    return HtmlDocumentExporter(currency_symbol)


__all__ = [
    "CSV_HEADER",
    "CsvReportExporter",
    "EmptyReportError",
    "ExportError",
    "ExportFormat",
    "HtmlDocumentExporter",
    "ReportExporter",
    "UnsupportedDocumentExporter",
    "UnsupportedPlatformError",
    "ensure_not_empty",
    "get_exporter",
]
