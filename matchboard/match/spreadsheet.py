"""Spreadsheet import of table pairings and export of session reports."""

from __future__ import annotations

import csv
import io
import logging
import re
from typing import IO, TYPE_CHECKING, Any, Optional

from openpyxl import Workbook, load_workbook

from matchboard.core.constants import (
    P1_ID_HEADERS,
    P1_NAME_HEADERS,
    P2_ID_HEADERS,
    P2_NAME_HEADERS,
    RESULT_HEADER,
    STANDINGS_HEADERS,
    SUBMITTED_BY_HEADER,
    TABLE_NUMBER_HEADERS,
    UPDATED_AT_HEADER,
)
from matchboard.errors import ImportFormatError

from .models import GameResult, PlayerInfo, TableMatch
from .scoring import aggregate

if TYPE_CHECKING:
    from .models import MatchSession

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MIMETYPE = "text/csv"

TABLE_REPORT_HEADERS = (
    TABLE_NUMBER_HEADERS[0],
    P1_ID_HEADERS[0],
    P1_NAME_HEADERS[0],
    P2_ID_HEADERS[0],
    P2_NAME_HEADERS[0],
    RESULT_HEADER,
    SUBMITTED_BY_HEADER,
    UPDATED_AT_HEADER,
)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _read_csv(stream: IO[bytes]) -> tuple[list[str], list[dict[str, Any]]]:
    text = stream.read().decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(text))
    columns = [(c or "").strip() for c in reader.fieldnames or []]
    rows = []
    for raw in reader:
        row = {(k or "").strip(): v for k, v in raw.items()}
        if any(_cell_text(v) for v in row.values() if not isinstance(v, list)):
            rows.append(row)
    return columns, rows


def _read_xlsx(stream: IO[bytes]) -> tuple[list[str], list[dict[str, Any]]]:
    wb = load_workbook(io.BytesIO(stream.read()), data_only=True)
    ws = wb[wb.sheetnames[0]]
    columns = [str(ws.cell(1, c).value or "").strip() for c in range(1, ws.max_column + 1)]
    rows: list[dict[str, Any]] = []
    for r in range(2, ws.max_row + 1):
        row = {}
        empty = True
        for c, col in enumerate(columns, start=1):
            value = ws.cell(r, c).value
            row[col] = value
            if value not in (None, ""):
                empty = False
        if not empty:
            rows.append(row)
    return columns, rows


def _pick_column(columns: list[str], aliases: tuple[str, ...]) -> Optional[str]:
    """First alias present in the sheet, checked in alias order."""
    for alias in aliases:
        if alias in columns:
            return alias
    return None


def _table_number(value: Any, row_index: int) -> int:
    text = _cell_text(value)
    if not text:
        return row_index
    try:
        return int(float(text))
    except ValueError:
        raise ImportFormatError(f"Row {row_index}: table number {text!r} is not a number.") from None


def _rows_to_tables(columns: list[str], rows: list[dict[str, Any]]) -> list[TableMatch]:
    table_col = _pick_column(columns, TABLE_NUMBER_HEADERS)
    p1_id_col = _pick_column(columns, P1_ID_HEADERS)
    p1_name_col = _pick_column(columns, P1_NAME_HEADERS)
    p2_id_col = _pick_column(columns, P2_ID_HEADERS)
    p2_name_col = _pick_column(columns, P2_NAME_HEADERS)

    if not any((p1_id_col, p1_name_col, p2_id_col, p2_name_col)):
        raise ImportFormatError("No player columns were recognized in the sheet.")
    if not rows:
        raise ImportFormatError("The sheet has no table rows.")

    def cell(row: dict[str, Any], col: Optional[str]) -> str:
        return _cell_text(row.get(col)) if col else ""

    tables = []
    for index, row in enumerate(rows, start=1):
        number = _table_number(row.get(table_col), index) if table_col else index
        tables.append(
            TableMatch(
                table_number=number,
                player1=PlayerInfo(id=cell(row, p1_id_col), name=cell(row, p1_name_col)),
                player2=PlayerInfo(id=cell(row, p2_id_col), name=cell(row, p2_name_col)),
                result=GameResult.PENDING,
            )
        )
    return tables


def read_tables(stream: IO[bytes], filename: str) -> list[TableMatch]:
    """Parse an uploaded xlsx/csv into PENDING tables.

    Raises:
        ImportFormatError: The file is not a readable table sheet.
    """
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    try:
        if ext == "csv":
            columns, rows = _read_csv(stream)
        elif ext in ("xlsx", "xlsm"):
            columns, rows = _read_xlsx(stream)
        else:
            raise ImportFormatError(f"Unsupported file type {ext or filename!r}.")
    except ImportFormatError:
        raise
    except Exception as e:
        logger.warning(f"Failed to read spreadsheet {filename}: {e}")
        raise ImportFormatError() from e
    return _rows_to_tables(columns, rows)


def table_report(session: MatchSession) -> tuple[tuple[str, ...], list[list[Any]]]:
    """Raw per-table results in table-number order."""
    rows = [
        [
            t.table_number,
            t.player1.id,
            t.player1.name,
            t.player2.id,
            t.player2.name,
            t.result.label,
            t.submitted_by or "",
            t.updated_at or "",
        ]
        for t in session.sorted_tables()
    ]
    return TABLE_REPORT_HEADERS, rows


def standings_report(session: MatchSession) -> tuple[tuple[str, ...], list[list[Any]]]:
    """Per-player standings, ordered by id the way the board shows them."""
    rows = [
        [s.id, s.name, s.points, s.win_count, s.loss_count, s.draw_count, s.match_count]
        for s in aggregate(session)
    ]
    return STANDINGS_HEADERS, rows


def to_xlsx(headers: tuple[str, ...], rows: list[list[Any]], sheet_title: str) -> bytes:
    wb = Workbook()
    ws = wb.active
    # Excel sheet titles are limited to 31 chars and may not contain []:*?/\
    ws.title = re.sub(r"[\[\]:*?/\\]", "", sheet_title)[:31] or "Sheet1"
    ws.append(list(headers))
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def to_csv(headers: tuple[str, ...], rows: list[list[Any]]) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue().encode("utf-8-sig")


REPORTS = {"tables": table_report, "standings": standings_report}
FORMATS = ("xlsx", "csv")


def export_report(session: MatchSession, report: str, fmt: str) -> tuple[bytes, str, str]:
    """Render a report; returns (content, mimetype, download filename)."""
    if report not in REPORTS:
        raise ValueError(f"Unknown report {report!r}.")
    if fmt not in FORMATS:
        raise ValueError(f"Unknown format {fmt!r}.")
    headers, rows = REPORTS[report](session)
    filename = f"{session.title or session.id}_{report}.{fmt}"
    if fmt == "csv":
        return to_csv(headers, rows), CSV_MIMETYPE, filename
    return to_xlsx(headers, rows, session.title or report), XLSX_MIMETYPE, filename
