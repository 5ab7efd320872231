"""Owner portal gift card routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, RequireFranchisee
from franchise_pos.core.tenancy import accessible_franchise_ids, resolve_franchise_id
from franchise_pos.db.session import DbSession
from franchise_pos.models.gift_card import GiftCard
from franchise_pos.schemas.gift_card import GiftCardAction, GiftCardResponse, GiftCardUpdate
from franchise_pos.services.gift_card_service import GiftCardError, GiftCardNotFound, GiftCardService

logger = logging.getLogger(__name__)

router = APIRouter()


def _card_json(card: GiftCard) -> dict:
    return GiftCardResponse.model_validate(card).model_dump(mode="json")


@router.get("/")
@limiter.limit("60/minute")
def list_gift_cards(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    limit: int = Query(100, ge=1, le=500),
):
    """Gift cards in the caller's scope plus issued, outstanding and redeemed totals."""
    ids = accessible_franchise_ids(db, current_user)
    service = GiftCardService(db)
    return {
        "items": [_card_json(c) for c in service.list_cards(ids, limit)],
        "stats": service.stats(ids),
    }


@router.post("/")
@limiter.limit("60/minute")
def gift_card_action(request: Request, body: GiftCardAction, db: DbSession, current_user: CurrentUser):
    """Issue a card, check a balance, or redeem an amount."""
    franchise_id = resolve_franchise_id(db, current_user, body.franchise_id)
    service = GiftCardService(db)
    try:
        if body.action == "issue":
            if body.amount is None:
                raise GiftCardError("Amount is required")
            card = service.issue(
                franchise_id,
                body.amount,
                purchaser_name=body.purchaser_name,
                recipient_name=body.recipient_name,
                recipient_email=body.recipient_email,
                issued_by_id=current_user.user_id,
            )
            return {"success": True, "gift_card": _card_json(card)}

        if not body.code:
            raise GiftCardError("Gift card code is required")

        if body.action == "check":
            card = service.lookup(franchise_id, body.code)
            return {
                "success": True,
                "gift_card": _card_json(card),
                "is_expired": service.is_expired(card),
            }

        if body.amount is None:
            raise GiftCardError("Amount is required")
        card = service.redeem(franchise_id, body.code, body.amount, employee_id=current_user.user_id)
        return {
            "success": True,
            "amount_redeemed": float(body.amount),
            "gift_card": _card_json(card),
        }
    except GiftCardNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except GiftCardError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{card_id}", response_model=GiftCardResponse)
@limiter.limit("30/minute")
def update_gift_card(
    request: Request,
    card_id: int,
    body: GiftCardUpdate,
    db: DbSession,
    current_user: RequireFranchisee,
):
    """Activate or deactivate a card."""
    card = db.query(GiftCard).filter(GiftCard.id == card_id).first()
    ids: Optional[list] = accessible_franchise_ids(db, current_user)
    if card is None or (ids is not None and card.franchise_id not in ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gift card not found")
    return GiftCardService(db).set_active(card, body.is_active)
