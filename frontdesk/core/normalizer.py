"""
Mailroom export normalization.

Turns the first worksheet of a package-tracking export into the audit
table staff print and re-export:

1. keep the first three columns (recipient, tag #, shelf)
2. drop rows addressed to the "RTS Troy CSC" return-to-sender bucket
3. insert an empty "Bin No." column after the first column
4. fill the bin number from the tag for packages shelved in a bin
5. sort: binned rows by bin number, then everything by shelf
6. pad every row to the same width

The input must be a raw export. Running the pipeline on its own output
inserts a second "Bin No." column.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from .parsers import EmptyWorksheetError, Workbook, read_workbook

logger = logging.getLogger(__name__)

KEEP_COLUMNS = 3
BIN_COLUMN = "Bin No."
BIN_COLUMN_INDEX = 1
RETURN_TO_SENDER = "rts troy csc"
BIN_SHELF = "bin"
SHELF_HEADER = "shelf"
NOT_FOUND = -1

INVISIBLE_CHARS = "\u200b\u200c\u200d\ufeff\u00a0\u2060\u180e"
_INVISIBLE_TABLE = str.maketrans("", "", INVISIBLE_CHARS)
_DECIMAL_DIGITS = "0123456789"

Row = List[str]


# =============================================================================
# Text helpers
# =============================================================================

def strip_invisible(value: Any) -> str:
    """Remove zero-width and non-breaking characters from a cell value."""
    if value is None:
        return ""
    return str(value).translate(_INVISIBLE_TABLE)


def normalize_cell(value: Any) -> str:
    """Comparison form of a cell: invisible chars removed, trimmed, lower-cased."""
    return strip_invisible(value).strip().lower()


def find_column(headers: Sequence[Any], predicate: Callable[[str], bool]) -> int:
    """
    Find the first header matching a predicate.

    The predicate receives the normalized header text.

    Returns:
        Column index, or NOT_FOUND (-1)
    """
    for idx, header in enumerate(headers):
        if predicate(normalize_cell(header)):
            return idx
    return NOT_FOUND


def _cell(row: Sequence[Any], idx: int) -> str:
    if idx == NOT_FOUND or idx >= len(row):
        return ""
    value = row[idx]
    return "" if value is None else str(value)


def _is_student_staff(header: str) -> bool:
    return "student" in header and "staff" in header


def _is_tag(header: str) -> bool:
    return "tag" in header and "#" in header


def _is_shelf(header: str) -> bool:
    return header == SHELF_HEADER


# =============================================================================
# Pipeline stages
# =============================================================================

def project_columns(rows: Sequence[Sequence[Any]]) -> List[Row]:
    """Keep only the first three columns of every row."""
    return [["" if v is None else str(v) for v in row[:KEEP_COLUMNS]] for row in rows]


def filter_return_to_sender(rows: List[Row]) -> List[Row]:
    """
    Drop data rows whose student/staff cell names the RTS Troy CSC bucket.

    When no student/staff header exists nothing is dropped.
    """
    header, data = rows[0], rows[1:]
    col = find_column(header, _is_student_staff)
    if col == NOT_FOUND:
        logger.warning("No student/staff column in header %r; skipping RTS filter", header)
        return rows

    kept = [row for row in data if RETURN_TO_SENDER not in normalize_cell(_cell(row, col))]
    dropped = len(data) - len(kept)
    if dropped:
        logger.debug("Dropped %d return-to-sender rows", dropped)
    return [header] + kept


def insert_bin_column(rows: List[Row]) -> List[Row]:
    """Insert the Bin No. column after the first column of every row."""
    result = []
    for i, row in enumerate(rows):
        row = list(row) or [""]
        row.insert(BIN_COLUMN_INDEX, BIN_COLUMN if i == 0 else "")
        result.append(row)
    return result


def derive_bin_number(tag: str, shelf: str) -> str:
    """
    Bin number for a single package.

    Only packages shelved in "bin" get one: the last character of the tag,
    when it is a decimal digit.
    """
    if normalize_cell(shelf) != BIN_SHELF:
        return ""
    tag = strip_invisible(tag).strip()
    if tag and tag[-1] in _DECIMAL_DIGITS:
        return tag[-1]
    return ""


def assign_bins(rows: List[Row]) -> List[Row]:
    """Fill the Bin No. column from the tag # and shelf columns."""
    header = rows[0]
    tag_col = find_column(header, _is_tag)
    shelf_col = find_column(header, _is_shelf)

    for row in rows[1:]:
        if tag_col == NOT_FOUND or shelf_col == NOT_FOUND:
            row[BIN_COLUMN_INDEX] = ""
            continue
        row[BIN_COLUMN_INDEX] = derive_bin_number(_cell(row, tag_col), _cell(row, shelf_col))
    return rows


def sort_rows(rows: List[Row]) -> List[Row]:
    """
    Stable sort of the data rows, header kept first.

    Binned rows come first in ascending bin order; ties and all unbinned
    rows are ordered by shelf, case-insensitively.
    """
    header, data = rows[0], rows[1:]
    shelf_col = find_column(header, _is_shelf)

    def sort_key(row: Row):
        bin_value = _cell(row, BIN_COLUMN_INDEX)
        shelf = strip_invisible(_cell(row, shelf_col)).lower()
        if bin_value:
            return (0, int(bin_value), shelf)
        return (1, 0, shelf)

    return [header] + sorted(data, key=sort_key)


def pad_rows(rows: List[Row]) -> List[Row]:
    """Pad every row with empty strings to the widest row."""
    width = max((len(row) for row in rows), default=0)
    return [row + [""] * (width - len(row)) for row in rows]


# =============================================================================
# Entry points
# =============================================================================

def normalize_sheet(rows: Sequence[Sequence[Any]]) -> List[Row]:
    """
    Run the full normalization pipeline over a worksheet.

    Args:
        rows: Worksheet rows, header first

    Returns:
        New list of rows; the input is not modified

    Raises:
        EmptyWorksheetError: the worksheet has no rows
    """
    if not rows:
        raise EmptyWorksheetError("Worksheet has no rows")

    table = project_columns(rows)
    table = filter_return_to_sender(table)
    table = insert_bin_column(table)
    table = assign_bins(table)
    table = sort_rows(table)
    return pad_rows(table)


def normalize_workbook(workbook: Workbook) -> List[Row]:
    """Normalize the first worksheet of a decoded workbook."""
    return normalize_sheet(workbook.first_sheet())


@dataclass
class AuditResult:
    """Outcome of auditing one uploaded file."""
    rows: List[Row]
    sheet_name: str
    input_rows: int
    dropped_rows: int
    bins_assigned: int
    filename: Optional[str] = None

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "sheet_name": self.sheet_name,
            "rows": self.rows,
            "row_count": self.row_count,
            "column_count": self.column_count,
            "dropped_rows": self.dropped_rows,
            "bins_assigned": self.bins_assigned,
        }


def audit_file(content: bytes, filename: Optional[str] = None) -> AuditResult:
    """
    Read an uploaded export and normalize its first worksheet.

    Raises:
        FileReadError, EmptyWorkbookError, EmptyWorksheetError
    """
    workbook = read_workbook(content, filename)
    raw = workbook.first_sheet()
    rows = normalize_sheet(raw)

    result = AuditResult(
        rows=rows,
        sheet_name=workbook.sheet_names[0],
        input_rows=len(raw),
        dropped_rows=len(raw) - len(rows),
        bins_assigned=sum(1 for row in rows[1:] if row[BIN_COLUMN_INDEX]),
        filename=filename,
    )
    logger.info(
        "Audited %s: %d rows in, %d out, %d binned",
        filename or "<upload>", result.input_rows, result.row_count, result.bins_assigned
    )
    return result
