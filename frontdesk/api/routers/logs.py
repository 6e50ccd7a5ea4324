"""
Card activity log API router.
"""
from typing import Optional

from fastapi import APIRouter, Query

from frontdesk.core.cardnum import extract_card_number
from frontdesk.core.db import LogAction, get_log_summary, list_logs

router = APIRouter(prefix="/api/logs", tags=["Activity Logs"])


@router.get("")
def get_logs(
    action: Optional[LogAction] = Query(None),
    card_number: Optional[str] = Query(None, alias="cardNumber"),
    limit: Optional[int] = Query(None, ge=1, le=5000),
):
    """All assignment/return entries, newest first."""
    number = extract_card_number(card_number) if card_number else None
    return list_logs(
        action=action.value if action else None,
        card_number=number or None,
        limit=limit,
    )


@router.get("/summary")
def logs_summary():
    """Entry counts per action."""
    return get_log_summary()
