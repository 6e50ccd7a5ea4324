"""
Package audit API router.

Takes a mailroom export upload and returns the normalized table, either
as JSON for on-screen review and printing or as a file download.
"""
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse

from frontdesk.core.config import settings
from frontdesk.core.normalizer import AuditResult, audit_file
from frontdesk.core.parsers import SheetError
from frontdesk.core.xlsx_export import (
    CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE, create_processed_workbook, rows_to_csv
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/audit", tags=["Package Audit"])


class ExportFormat(str, Enum):
    """Export format options."""
    XLSX = "xlsx"
    CSV = "csv"


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe use in Content-Disposition header."""
    safe = re.sub(r'[^\w\s\-\.]', '_', filename)
    return quote(safe, safe='')


def export_filename(source: Optional[str], fmt: ExportFormat) -> str:
    stem = Path(source).stem if source else ""
    return f"{stem}_processed.{fmt.value}" if stem else f"processed.{fmt.value}"


async def _audit_upload(file: UploadFile) -> AuditResult:
    content = await file.read()
    max_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large (limit {settings.MAX_UPLOAD_MB} MB)"
        )

    try:
        return audit_file(content, file.filename)
    except SheetError as e:
        logger.info("Rejected upload %s: %s", file.filename, e)
        raise HTTPException(status_code=400, detail=f"{e}. Please check the file format.")


@router.post("/normalize")
async def normalize_upload(file: UploadFile = File(...)):
    """Normalize an uploaded export and return the table as JSON."""
    result = await _audit_upload(file)
    return result.to_dict()


@router.post("/export")
async def export_upload(
    file: UploadFile = File(...),
    format: ExportFormat = Form(ExportFormat.XLSX),
):
    """
    Normalize an uploaded export and download the result.

    Formats:
    - xlsx: single "Processed" sheet
    - csv: UTF-8 CSV
    """
    result = await _audit_upload(file)

    if format == ExportFormat.XLSX:
        buffer = create_processed_workbook(result.rows)
        media_type = XLSX_MEDIA_TYPE
    else:
        buffer = rows_to_csv(result.rows)
        media_type = CSV_MEDIA_TYPE

    safe_filename = sanitize_filename(export_filename(file.filename, format))

    def iterfile():
        yield buffer.getvalue()

    return StreamingResponse(
        iterfile(),
        media_type=media_type,
        headers={
            "Content-Disposition": f"attachment; filename=\"{safe_filename}\"; filename*=UTF-8''{safe_filename}"
        }
    )
