"""
Guest card assignment API router.
"""
from enum import Enum
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from frontdesk.core.cardnum import extract_card_number, is_valid_card_number
from frontdesk.core.db import CardStateError, assign_card, get_card, unassign_card
from frontdesk.api.models import CardActionBody

router = APIRouter(prefix="/api/cards", tags=["Guest Cards"])


class CardAction(str, Enum):
    ASSIGN = "assign"
    UNASSIGN = "unassign"


def _card_number_or_400(raw: Optional[str]) -> str:
    """Reduce swipe or typed input to a card number, rejecting unusable input."""
    if not raw or not raw.strip():
        raise HTTPException(status_code=400, detail="Card number is required")
    card_number = extract_card_number(raw)
    if not is_valid_card_number(card_number):
        raise HTTPException(status_code=400, detail="Invalid card number")
    return card_number


@router.get("")
def get_card_status(card_number: Optional[str] = Query(None, alias="cardNumber")):
    """Current state of a card; unknown cards report exists=false."""
    number = _card_number_or_400(card_number)
    card = get_card(number)
    if not card:
        return {"exists": False, "isAssigned": False}
    return {"exists": True, **card}


@router.post("")
def card_action(
    action: Optional[str] = Query(None),
    body: Optional[CardActionBody] = None,
):
    """Assign a card to a guest (action=assign) or record its return (action=unassign)."""
    try:
        requested = CardAction(action)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid action")

    body = body or CardActionBody()

    if requested == CardAction.ASSIGN:
        user_name = body.user_name.strip() if body.user_name else ""
        if not body.card_number or not user_name:
            raise HTTPException(status_code=400, detail="Card number and user name are required")
        number = _card_number_or_400(body.card_number)
        try:
            card = assign_card(
                number,
                user_name,
                request_id=body.request_id or None,
                user_email=body.user_email or None,
                user_phone=body.user_phone or None,
            )
        except CardStateError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"card": card, "message": "Card assigned successfully"}

    number = _card_number_or_400(body.card_number)
    try:
        unassign_card(number)
    except CardStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Card returned successfully"}
