"""CSV and XLSX renderings of tabular report projections."""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from dataclasses import dataclass, field
from io import BytesIO

from fastapi import HTTPException, status

EXPORT_FORMATS = ("csv", "xlsx")


@dataclass(slots=True)
class TabularReport:
    report_key: str
    headers: list[str]
    rows: list[list[str]] = field(default_factory=list)


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


def normalize_format(format_name: str) -> str:
    normalized = format_name.strip().lower()
    if normalized not in EXPORT_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="format must be one of: csv, xlsx.",
        )
    return normalized


def render_csv(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Header row then data rows.

    Fields containing a comma, a double quote or a line break are wrapped in
    double quotes with inner quotes doubled; everything else is written bare.
    """

    sio = io.StringIO()
    writer = csv.writer(sio, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return sio.getvalue()


def render_xlsx(report: TabularReport) -> bytes:
    from openpyxl import Workbook

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = report.report_key[:31]
    sheet.append(report.headers)
    for row in report.rows:
        sheet.append(list(row))

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def render_export(report: TabularReport, format_name: str) -> ExportFilePayload:
    normalized_format = normalize_format(format_name)
    if normalized_format == "csv":
        return ExportFilePayload(
            media_type="text/csv; charset=utf-8",
            filename=f"{report.report_key}-report.csv",
            content=render_csv(report.headers, report.rows).encode("utf-8"),
        )

    return ExportFilePayload(
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=f"{report.report_key}-report.xlsx",
        content=render_xlsx(report),
    )
