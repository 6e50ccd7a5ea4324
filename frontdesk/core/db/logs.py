"""
Card activity log operations.

Logs are append-only; every assignment and return writes one entry.
"""
import sqlite3
import uuid
from typing import Any, Dict, List, Optional

from .base import ALLOWED_LOG_COLUMNS, LogAction, get_db
from .utils import build_list_query, now, row_to_document, rows_to_documents


def user_identifier(
    user_name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None
) -> str:
    """Display identity for a card holder: name plus email or phone."""
    if email:
        return f"{user_name} ({email})"
    if phone:
        return f"{user_name} ({phone})"
    return user_name


def insert_log(
    conn: sqlite3.Connection,
    action: LogAction,
    card_number: str,
    user: Optional[str],
    identifier: Optional[str] = None,
    user_email: Optional[str] = None,
    user_phone: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Write a log entry on an open connection and return it."""
    log_id = str(uuid.uuid4())
    conn.execute("""
        INSERT INTO logs
        (id, action, card_number, user, user_identifier, user_email, user_phone, request_id, timestamp)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        log_id, LogAction(action).value, card_number, user,
        identifier or user, user_email, user_phone, request_id, now()
    ))
    row = conn.execute("SELECT * FROM logs WHERE id = ?", (log_id,)).fetchone()
    return row_to_document(row)


def create_log(
    action: LogAction,
    card_number: str,
    user: Optional[str],
    identifier: Optional[str] = None,
    user_email: Optional[str] = None,
    user_phone: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Append a log entry in its own transaction."""
    with get_db() as conn:
        return insert_log(
            conn, action, card_number, user,
            identifier=identifier, user_email=user_email,
            user_phone=user_phone, request_id=request_id
        )


def find_latest_assignment(conn: sqlite3.Connection, card_number: str) -> Optional[sqlite3.Row]:
    return conn.execute("""
        SELECT * FROM logs
        WHERE card_number = ? AND action = ?
        ORDER BY timestamp DESC, rowid DESC
        LIMIT 1
    """, (card_number, LogAction.ASSIGNED.value)).fetchone()


def get_latest_assignment_log(card_number: str) -> Optional[Dict[str, Any]]:
    """Most recent 'assigned' entry for a card."""
    with get_db() as conn:
        return row_to_document(find_latest_assignment(conn, card_number))


def list_logs(
    action: Optional[str] = None,
    card_number: Optional[str] = None,
    limit: Optional[int] = None
) -> List[Dict[str, Any]]:
    """List log entries, newest first."""
    query, params = build_list_query(
        "logs",
        filters={"action": action, "card_number": card_number},
        order_by="timestamp DESC, rowid DESC",
        limit=limit,
        allowed_columns=ALLOWED_LOG_COLUMNS,
    )
    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()
        return rows_to_documents(rows)


def get_log_summary() -> Dict[str, int]:
    """Count log entries per action."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT action, COUNT(*) AS count FROM logs GROUP BY action"
        ).fetchall()

    counts = {row["action"]: row["count"] for row in rows}
    summary = {action.value: counts.get(action.value, 0) for action in LogAction}
    summary["total"] = sum(counts.values())
    return summary
