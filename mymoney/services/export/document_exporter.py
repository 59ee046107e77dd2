"""
Document Report Exporter

Renders the report as a printable HTML document (title, current balance
and a table of transactions).

Native platforms get HtmlDocumentExporter. On the web there is no
document export: UnsupportedDocumentExporter stands in and raises
UnsupportedPlatformError, which the report flow turns into an
informational message.
"""

from decimal import Decimal
from html import escape
from pathlib import Path
from typing import Optional, Sequence, Union

from mymoney.config import get_settings
from mymoney.models.transaction import ExportRow
from mymoney.services.export.interface import (
    ExportFormat,
    ReportExporter,
    UnsupportedPlatformError,
)


REPORT_TITLE = "MyMoney Report"
DATE_FORMAT = "%d/%m/%Y %H:%M:%S"


class HtmlDocumentExporter(ReportExporter):
    export_format = ExportFormat.DOCUMENT
    filename = "relatorio_mymoney.html"
    media_type = "text/html"

    def __init__(self, currency_symbol: Optional[str] = None):
        self._currency = currency_symbol or get_settings().app.currency_symbol

    def format_amount(self, amount: Decimal) -> str:
        return f"{self._currency} {amount:.2f}"

    def render(self, rows: Sequence[ExportRow]) -> str:
        balance = Decimal("0")
        body_rows = []
        for row in rows:
            if row.is_summary:
                balance = row.amount
                continue
            body_rows.append(
                "      <tr>"
                f"<td>{escape(row.description)}</td>"
                f"<td>{escape(row.kind.label if row.kind else '')}</td>"
                f"<td>{escape(self.format_amount(row.amount))}</td>"
                f"<td>{row.occurred_at.strftime(DATE_FORMAT) if row.occurred_at else ''}</td>"
                "</tr>"
            )

        return "\n".join([
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            '  <meta charset="utf-8">',
            f"  <title>{REPORT_TITLE}</title>",
            "  <style>",
            "    body { font-family: sans-serif; padding: 20px; }",
            "    table { width: 100%; border-collapse: collapse; }",
            "    th, td { border: 1px solid #ccc; padding: 8px; text-align: left; }",
            "  </style>",
            "</head>",
            "<body>",
            f"  <h1>{REPORT_TITLE}</h1>",
            f"  <p>Current balance: {escape(self.format_amount(balance))}</p>",
            "  <table>",
            "    <thead>",
            "      <tr><th>Description</th><th>Kind</th><th>Amount</th><th>Date</th></tr>",
            "    </thead>",
            "    <tbody>",
            *body_rows,
            "    </tbody>",
            "  </table>",
            "</body>",
            "</html>",
            "",
        ])


class UnsupportedDocumentExporter(ReportExporter):
    """Document export on a platform that cannot produce one."""

    export_format = ExportFormat.DOCUMENT
    filename = "relatorio_mymoney.html"

    def __init__(self, platform: str = "web"):
        self._platform = platform

    def render(self, rows: Sequence[ExportRow]) -> str:
        raise UnsupportedPlatformError(self.export_format, self._platform)

    def export(self, rows: Sequence[ExportRow], directory: Union[str, Path]) -> Path:
        raise UnsupportedPlatformError(self.export_format, self._platform)
