"""
Guest card request database operations.
"""
import uuid
from typing import Any, Dict, List, Optional

from .base import ALLOWED_REQUEST_COLUMNS, RequestStatus, get_db
from .utils import build_list_query, now, row_to_document, rows_to_documents


def create_request(
    name: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> Dict[str, Any]:
    """Store a new pending request and return it."""
    request_id = str(uuid.uuid4())
    ts = now()

    with get_db() as conn:
        conn.execute("""
            INSERT INTO requests
            (id, name, first_name, last_name, email, phone, status,
             assigned_card_id, processed_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, NULL, NULL, ?, ?)
        """, (
            request_id, name, first_name, last_name, email, phone,
            RequestStatus.PENDING.value, ts, ts
        ))

    return get_request(request_id)


def get_request(request_id: str) -> Optional[Dict[str, Any]]:
    """Get a request by ID."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM requests WHERE id = ?", (request_id,)
        ).fetchone()
        return row_to_document(row)


def list_requests(
    status: Optional[RequestStatus] = None,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """List requests, newest first, optionally filtered by status."""
    query, params = build_list_query(
        "requests",
        filters={"status": RequestStatus(status).value if status else None},
        order_by="created_at DESC, rowid DESC",
        limit=limit,
        allowed_columns=ALLOWED_REQUEST_COLUMNS,
    )
    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
        return rows_to_documents(rows)


def update_request_status(request_id: str, status: RequestStatus) -> bool:
    """Set a request's status. Returns False when the request does not exist."""
    with get_db() as conn:
        result = conn.execute(
            "UPDATE requests SET status = ?, updated_at = ? WHERE id = ?",
            (RequestStatus(status).value, now(), request_id)
        )
        return result.rowcount > 0


def delete_request(request_id: str) -> bool:
    """Delete a request. Returns False when the request does not exist."""
    with get_db() as conn:
        result = conn.execute("DELETE FROM requests WHERE id = ?", (request_id,))
        return result.rowcount > 0
