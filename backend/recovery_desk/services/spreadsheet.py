"""Workbook reading and template generation for bulk imports.

Uploaded files are flattened into ``list[dict]`` rows keyed by the trimmed
header text of the first sheet.  Blank cells become ``None``.  Column-name
synonyms are resolved by the importing service with :func:`pick`.
"""

import csv
import io
import logging
import zipfile
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable

from dateutil import parser as date_parser
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from recovery_desk.services.errors import ValidationError

logger = logging.getLogger(__name__)

# Spreadsheet serial day 0.
_SERIAL_EPOCH = date(1899, 12, 30)

_EXCEL_SUFFIXES = (".xlsx", ".xlsm")


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

def _clean_header(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _clean_cell(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _rows_from_xlsx(content: bytes) -> list[dict]:
    workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        columns = [_clean_header(cell) for cell in header]
        parsed = []
        for values in rows:
            if values is None or all(_clean_cell(v) is None for v in values):
                continue
            parsed.append({
                column: _clean_cell(value)
                for column, value in zip(columns, values)
                if column
            })
        return parsed
    finally:
        workbook.close()


def _rows_from_csv(content: bytes) -> list[dict]:
    text = content.decode("utf-8-sig", errors="replace")
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header is None:
        return []
    columns = [_clean_header(cell) for cell in header]
    parsed = []
    for values in reader:
        if all(_clean_cell(v) is None for v in values):
            continue
        parsed.append({
            column: _clean_cell(value)
            for column, value in zip(columns, values)
            if column
        })
    return parsed


def read_rows(content: bytes, filename: str = "") -> list[dict]:
    """Parse an uploaded ``.xlsx`` or ``.csv`` file into header-keyed rows."""
    name = (filename or "").lower()
    if name.endswith(".csv"):
        return _rows_from_csv(content)
    if name.endswith(".xls"):
        raise ValidationError("Legacy .xls workbooks are not supported; save the file as .xlsx")
    if name and not name.endswith(_EXCEL_SUFFIXES):
        raise ValidationError(f"Unsupported file type: {filename}")
    try:
        return _rows_from_xlsx(content)
    except (zipfile.BadZipFile, InvalidFileException, OSError, KeyError, ValueError) as exc:
        logger.warning("Could not parse workbook %s: %s", filename, exc)
        raise ValidationError("Excel/CSV file is empty or could not be parsed") from exc


# ---------------------------------------------------------------------------
# Column resolution
# ---------------------------------------------------------------------------

def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def pick(row: dict, *names: str) -> Any:
    """First non-blank value among the synonymous column *names*."""
    for name in names:
        value = row.get(name)
        if not is_blank(value):
            return value
    return None


def missing_columns(rows: list[dict], required: dict[str, Iterable[str]]) -> list[str]:
    """Labels of required columns none of whose synonyms appear in the header."""
    if not rows:
        return list(required)
    header = set(rows[0])
    return [
        label
        for label, synonyms in required.items()
        if not any(name in header for name in synonyms)
    ]


def text(value: Any) -> str | None:
    """Cell value as trimmed text; integral floats lose their ``.0``."""
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return str(int(value))
    return str(value).strip()


def parse_date(value: Any) -> date | None:
    """Read a date from a date cell, a serial day number or day-first text."""
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _SERIAL_EPOCH + timedelta(days=int(value))
    raw = str(value).strip()
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        pass
    try:
        return date_parser.parse(raw, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def build_workbook(columns: list[str], rows: list[dict], sheet_name: str = "Template") -> bytes:
    """Render *rows* under a styled header row as ``.xlsx`` bytes."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
    for col_idx, col_name in enumerate(columns, 1):
        cell = ws.cell(row=1, column=col_idx, value=col_name)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")

    for row_idx, row in enumerate(rows, 2):
        for col_idx, col_name in enumerate(columns, 1):
            value = row.get(col_name)
            cell = ws.cell(row=row_idx, column=col_idx, value=value)
            if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
                cell.number_format = "#,##0.00"
            elif isinstance(value, (date, datetime)):
                cell.number_format = "DD/MM/YYYY"

    for col_idx, col_name in enumerate(columns, 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = min(max(len(col_name) + 2, 12), 40)
    ws.freeze_panes = "A2"

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()
