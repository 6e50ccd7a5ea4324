"""
Guest card assignment operations.

The cards table holds the current state of each physical card; the logs
table holds the history. Both are written in one transaction so they
cannot drift apart.

Assignment is a compare-and-set on is_assigned: two staff members
swiping the same card at once cannot both succeed.
"""
import logging
import sqlite3
import uuid
from typing import Any, Dict, Optional

from .base import CardStatus, LogAction, RequestStatus, get_db
from .logs import find_latest_assignment, insert_log, user_identifier
from .utils import now, row_to_document

logger = logging.getLogger(__name__)

CARD_BOOLEANS = ("is_assigned",)


class CardStateError(ValueError):
    """Raised when a card is not in the state an operation requires."""


class CardAlreadyAssignedError(CardStateError):
    def __init__(self, card_number: str):
        super().__init__("Card already assigned")
        self.card_number = card_number


class CardNotAssignedError(CardStateError):
    def __init__(self, card_number: str):
        super().__init__("Card is not currently assigned")
        self.card_number = card_number


def _fetch_card(conn: sqlite3.Connection, card_number: str) -> Optional[sqlite3.Row]:
    return conn.execute(
        "SELECT * FROM cards WHERE card_number = ?", (card_number,)
    ).fetchone()


def get_card(card_number: str) -> Optional[Dict[str, Any]]:
    """Get a card by number."""
    with get_db() as conn:
        return row_to_document(_fetch_card(conn, card_number), CARD_BOOLEANS)


def assign_card(
    card_number: str,
    user_name: str,
    request_id: Optional[str] = None,
    user_email: Optional[str] = None,
    user_phone: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Hand a card to a guest.

    Creates the card record on first use. When request_id is given the
    request is marked completed and linked to the card.

    Raises:
        CardAlreadyAssignedError: the card is already out
    """
    ts = now()

    with get_db() as conn:
        result = conn.execute("""
            UPDATE cards
            SET is_assigned = 1, status = ?, assigned_to = ?, assigned_at = ?,
                current_request_id = ?, last_used = ?
            WHERE card_number = ? AND is_assigned = 0
        """, (CardStatus.ASSIGNED.value, user_name, ts, request_id, ts, card_number))

        if result.rowcount == 0:
            if _fetch_card(conn, card_number) is not None:
                raise CardAlreadyAssignedError(card_number)
            try:
                conn.execute("""
                    INSERT INTO cards
                    (id, card_number, is_assigned, status, assigned_to, assigned_at,
                     current_request_id, created_at, last_used)
                    VALUES (?, ?, 1, ?, ?, ?, ?, ?, ?)
                """, (
                    str(uuid.uuid4()), card_number, CardStatus.ASSIGNED.value,
                    user_name, ts, request_id, ts, ts
                ))
            except sqlite3.IntegrityError as e:
                # Another assignment created the card between our UPDATE and INSERT
                raise CardAlreadyAssignedError(card_number) from e

        if request_id:
            conn.execute("""
                UPDATE requests
                SET status = ?, assigned_card_id = ?, updated_at = ?
                WHERE id = ?
            """, (RequestStatus.COMPLETED.value, card_number, ts, request_id))

        insert_log(
            conn, LogAction.ASSIGNED, card_number, user_name,
            identifier=user_identifier(user_name, user_email, user_phone),
            user_email=user_email, user_phone=user_phone, request_id=request_id
        )
        card = row_to_document(_fetch_card(conn, card_number), CARD_BOOLEANS)

    logger.info("Assigned card %s to %s", card_number, user_name)
    return card


def unassign_card(card_number: str) -> Dict[str, Any]:
    """
    Record a card's return.

    The return log copies the holder details from the most recent
    assignment entry.

    Returns:
        The 'unassigned' log entry

    Raises:
        CardNotAssignedError: the card is unknown or not out
    """
    ts = now()

    with get_db() as conn:
        card = _fetch_card(conn, card_number)
        if card is None or not card["is_assigned"]:
            raise CardNotAssignedError(card_number)

        holder = card["assigned_to"]
        assignment = find_latest_assignment(conn, card_number)

        result = conn.execute("""
            UPDATE cards
            SET is_assigned = 0, status = ?, assigned_to = NULL, assigned_at = NULL,
                current_request_id = NULL, last_used = ?
            WHERE card_number = ? AND is_assigned = 1
        """, (CardStatus.AVAILABLE.value, ts, card_number))
        if result.rowcount == 0:
            raise CardNotAssignedError(card_number)

        entry = insert_log(
            conn, LogAction.UNASSIGNED, card_number, holder,
            identifier=assignment["user_identifier"] if assignment else holder,
            user_email=assignment["user_email"] if assignment else None,
            user_phone=assignment["user_phone"] if assignment else None,
            request_id=assignment["request_id"] if assignment else None,
        )

    logger.info("Card %s returned by %s", card_number, holder)
    return entry
