"""
XLSX/CSV Export Module - Processed Audit Sheets

Encodes a normalized audit table (row 0 = header) into a downloadable file:
- XLSX: single "Processed" sheet, bold header, widths sized to content
- CSV: UTF-8 with BOM so Excel opens it with the right encoding
"""

import csv
import io
from io import BytesIO
from typing import Any, List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

PROCESSED_SHEET_NAME = "Processed"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv"

MIN_COLUMN_WIDTH = 8
MAX_COLUMN_WIDTH = 50


def _column_widths(rows: Sequence[Sequence[Any]]) -> List[int]:
    widths: List[int] = []
    for row in rows:
        for idx, value in enumerate(row):
            length = len(str(value)) if value is not None else 0
            if idx >= len(widths):
                widths.append(length)
            else:
                widths[idx] = max(widths[idx], length)
    return [min(max(w + 2, MIN_COLUMN_WIDTH), MAX_COLUMN_WIDTH) for w in widths]


def create_processed_workbook(
    rows: Sequence[Sequence[Any]],
    sheet_name: str = PROCESSED_SHEET_NAME,
) -> BytesIO:
    """
    Create an XLSX file from a normalized audit table.

    Args:
        rows: Table rows, header first
        sheet_name: Worksheet title

    Returns:
        BytesIO buffer containing the Excel file
    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name

    for row in rows:
        ws.append(list(row))

    # Bold the header row
    if rows:
        for cell in ws[1]:
            cell.font = Font(bold=True)
        ws.freeze_panes = "A2"

    for col_idx, width in enumerate(_column_widths(rows), 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    return buffer


def rows_to_csv(rows: Sequence[Sequence[Any]]) -> BytesIO:
    """Encode a table as a CSV file."""
    text = io.StringIO(newline="")
    writer = csv.writer(text)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])

    buffer = BytesIO(text.getvalue().encode("utf-8-sig"))
    buffer.seek(0)
    return buffer
