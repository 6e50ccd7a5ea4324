"""
Spreadsheet reading utilities.

Decodes an uploaded byte buffer into a plain workbook structure:
sheet names in workbook order, and for each sheet a list of rows where
every cell is a string (empty cells are "").

Supported formats:
- Excel (.xlsx, .xlsm) via openpyxl
- Legacy Excel (.xls) via xlrd
- CSV (.csv)
"""
import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Dict, List, Optional

import openpyxl
import xlrd
from openpyxl.chartsheet import Chartsheet

logger = logging.getLogger(__name__)

XLSX_MAGIC = b"PK\x03\x04"
XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

EXCEL_SUFFIXES = (".xlsx", ".xlsm")


# =============================================================================
# Errors
# =============================================================================

class SheetError(ValueError):
    """Base class for uploads that cannot be turned into a sheet."""


class FileReadError(SheetError):
    """Raised when the file content cannot be decoded."""


class EmptyWorkbookError(SheetError):
    """Raised when the workbook contains no worksheets."""


class EmptyWorksheetError(SheetError):
    """Raised when the first worksheet yields zero rows."""


@dataclass
class Workbook:
    sheet_names: List[str] = field(default_factory=list)
    sheets: Dict[str, List[List[str]]] = field(default_factory=dict)

    def first_sheet(self) -> List[List[str]]:
        if not self.sheet_names:
            raise EmptyWorkbookError("Workbook has no worksheets")
        return self.sheets[self.sheet_names[0]]


# =============================================================================
# Utility Functions
# =============================================================================

def cell_to_text(value: Any) -> str:
    """Render a decoded cell value as display text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


def _is_blank(row: List[str]) -> bool:
    return all(cell == "" for cell in row)


def detect_format(content: bytes, filename: Optional[str] = None) -> str:
    """
    Work out which reader to use.

    The filename suffix wins when it is a known one; otherwise the leading
    bytes decide, and anything that is not a zip or OLE container is read
    as CSV.
    """
    suffix = Path(filename).suffix.lower() if filename else ""
    if suffix in EXCEL_SUFFIXES:
        return "xlsx"
    if suffix == ".xls":
        return "xls"
    if suffix == ".csv":
        return "csv"

    if content.startswith(XLSX_MAGIC):
        return "xlsx"
    if content.startswith(XLS_MAGIC):
        return "xls"
    return "csv"


# =============================================================================
# Format readers
# =============================================================================

def _read_xlsx(content: bytes) -> Workbook:
    wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        workbook = Workbook()
        for name in wb.sheetnames:
            rows = []
            sheet = wb[name]
            # Chart sheets hold no cells
            if not isinstance(sheet, Chartsheet):
                for values in sheet.iter_rows(values_only=True):
                    row = [cell_to_text(v) for v in values]
                    if not _is_blank(row):
                        rows.append(row)
            workbook.sheet_names.append(name)
            workbook.sheets[name] = rows
        return workbook
    finally:
        wb.close()


def _xls_cell_text(cell: "xlrd.sheet.Cell", datemode: int) -> str:
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return cell_to_text(xlrd.xldate_as_datetime(cell.value, datemode))
        except (ValueError, OverflowError):
            return cell_to_text(cell.value)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return cell_to_text(bool(cell.value))
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return ""
    return cell_to_text(cell.value)


def _read_xls(content: bytes) -> Workbook:
    book = xlrd.open_workbook(file_contents=content)
    workbook = Workbook()
    for sheet in book.sheets():
        rows = []
        for r in range(sheet.nrows):
            row = [_xls_cell_text(cell, book.datemode) for cell in sheet.row(r)]
            if not _is_blank(row):
                rows.append(row)
        workbook.sheet_names.append(sheet.name)
        workbook.sheets[sheet.name] = rows
    return workbook


def _read_csv(content: bytes) -> Workbook:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")

    sample = text[:4096]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",;\t|")
    except csv.Error:
        dialect = csv.excel

    rows = []
    for values in csv.reader(io.StringIO(text, newline=""), dialect=dialect):
        row = [cell_to_text(v) for v in values]
        if not _is_blank(row):
            rows.append(row)

    return Workbook(sheet_names=["Sheet1"], sheets={"Sheet1": rows})


_READERS = {
    "xlsx": _read_xlsx,
    "xls": _read_xls,
    "csv": _read_csv,
}


def read_workbook(content: bytes, filename: Optional[str] = None) -> Workbook:
    """
    Decode an uploaded spreadsheet.

    Args:
        content: Full file content
        filename: Original filename, used to pick the reader

    Returns:
        Workbook with every sheet decoded to rows of strings

    Raises:
        FileReadError: content is empty or cannot be decoded
        EmptyWorkbookError: the file decodes but contains no worksheets
    """
    if not content:
        raise FileReadError("File is empty")

    fmt = detect_format(content, filename)
    try:
        workbook = _READERS[fmt](content)
    except SheetError:
        raise
    except Exception as e:
        raise FileReadError(f"Failed to read {fmt} file: {e}") from e

    if not workbook.sheet_names:
        raise EmptyWorkbookError("Workbook has no worksheets")

    logger.debug(
        "Read %s workbook %s with sheets %s",
        fmt, filename or "<upload>", workbook.sheet_names
    )
    return workbook


def read_first_sheet(content: bytes, filename: Optional[str] = None) -> List[List[str]]:
    """Decode an upload and return the rows of its first worksheet."""
    return read_workbook(content, filename).first_sheet()
