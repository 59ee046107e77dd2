"""
CSV Report Exporter

One line per transaction, then a summary line carrying the balance:

    ID,Description,Kind,Amount,Date
    7f3c...,Salary,income,3500.00,2024-05-01T09:00:00+00:00
    ,Current balance,,3500.00,
"""

import csv
import io
from typing import Sequence

from mymoney.models.transaction import ExportRow
from mymoney.services.export.interface import ExportFormat, ReportExporter


CSV_HEADER = ["ID", "Description", "Kind", "Amount", "Date"]


class CsvReportExporter(ReportExporter):
    export_format = ExportFormat.CSV
    filename = "relatorio_mymoney.csv"
    media_type = "text/csv"

    def render(self, rows: Sequence[ExportRow]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADER)

        for row in rows:
            writer.writerow([
                row.id,
                row.description,
                row.kind.value if row.kind else "",
                f"{row.amount:.2f}",
                row.occurred_at.isoformat() if row.occurred_at else "",
            ])

        return buffer.getvalue()
