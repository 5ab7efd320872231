"""Gift card issuing, lookup and redemption."""

import logging
import re
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from franchise_pos.core.security import generate_code
from franchise_pos.db.base import as_utc, to_money, utcnow
from franchise_pos.models.gift_card import GiftCard, GiftCardTransaction

logger = logging.getLogger(__name__)

CARD_VALIDITY = timedelta(days=365)


class GiftCardError(ValueError):
    """Gift card cannot be used for the requested operation."""


class GiftCardNotFound(LookupError):
    pass


def generate_card_code() -> str:
    """16 random characters grouped as XXXX-XXXX-XXXX-XXXX."""
    raw = generate_code(16)
    return "-".join(raw[i:i + 4] for i in range(0, 16, 4))


def normalize_code(code: str) -> str:
    """Upper-case alphanumerics of ``code`` re-grouped in fours."""
    raw = re.sub(r"[^A-Z0-9]", "", (code or "").upper())
    if len(raw) != 16:
        return raw
    return "-".join(raw[i:i + 4] for i in range(0, 16, 4))


class GiftCardService:
    """Gift cards of one or more franchises."""

    def __init__(self, db: Session):
        self.db = db

    def _unique_code(self) -> str:
        while True:
            code = generate_card_code()
            if not self.db.query(GiftCard.id).filter(GiftCard.code == code).first():
                return code

    def issue(
        self,
        franchise_id: int,
        amount: Decimal,
        purchaser_name: Optional[str] = None,
        recipient_name: Optional[str] = None,
        recipient_email: Optional[str] = None,
        issued_by_id: Optional[int] = None,
    ) -> GiftCard:
        amount = to_money(amount)
        if amount <= 0:
            raise GiftCardError("Amount must be greater than zero")

        now = utcnow()
        card = GiftCard(
            franchise_id=franchise_id,
            code=self._unique_code(),
            initial_amount=amount,
            current_balance=amount,
            is_active=True,
            expires_at=now + CARD_VALIDITY,
            purchaser_name=purchaser_name,
            recipient_name=recipient_name,
            recipient_email=recipient_email,
            issued_by_id=issued_by_id,
        )
        self.db.add(card)
        self.db.flush()
        self.db.add(GiftCardTransaction(
            gift_card_id=card.id,
            type="ISSUE",
            amount=amount,
            balance_after=amount,
            employee_id=issued_by_id,
            created_at=now,
        ))
        self.db.commit()
        self.db.refresh(card)
        logger.info(f"Issued gift card {card.id} for {amount} (franchise {franchise_id})")
        return card

    def lookup(self, franchise_id: int, code: str) -> GiftCard:
        card = self.db.query(GiftCard).filter(
            GiftCard.code == normalize_code(code),
            GiftCard.franchise_id == franchise_id,
        ).first()
        if card is None:
            raise GiftCardNotFound("Gift card not found")
        return card

    @staticmethod
    def is_expired(card: GiftCard) -> bool:
        expires_at = as_utc(card.expires_at)
        return expires_at is not None and expires_at < utcnow()

    def get_redeemable(self, franchise_id: int, code: str, amount: Decimal) -> GiftCard:
        """Card that can cover ``amount``; raises GiftCardError otherwise."""
        amount = to_money(amount)
        if amount <= 0:
            raise GiftCardError("Amount must be greater than zero")
        card = self.lookup(franchise_id, code)
        if not card.is_active:
            raise GiftCardError("Gift card has been deactivated")
        if self.is_expired(card):
            raise GiftCardError("Gift card has expired")
        if card.current_balance < amount:
            raise GiftCardError(
                f"Insufficient balance: {to_money(card.current_balance)} available"
            )
        return card

    def apply_redemption(self, card: GiftCard, amount: Decimal, employee_id: Optional[int] = None) -> None:
        """Deduct ``amount`` from a card already checked by get_redeemable. Does not commit."""
        amount = to_money(amount)
        card.current_balance = to_money(card.current_balance - amount)
        self.db.add(GiftCardTransaction(
            gift_card_id=card.id,
            type="REDEEM",
            amount=amount,
            balance_after=card.current_balance,
            employee_id=employee_id,
            created_at=utcnow(),
        ))

    def redeem(self, franchise_id: int, code: str, amount: Decimal,
               employee_id: Optional[int] = None) -> GiftCard:
        card = self.get_redeemable(franchise_id, code, amount)
        self.apply_redemption(card, amount, employee_id=employee_id)
        self.db.commit()
        self.db.refresh(card)
        logger.info(f"Redeemed {to_money(amount)} from gift card {card.id}, balance {card.current_balance}")
        return card

    def list_cards(self, franchise_ids: Optional[List[int]], limit: int = 100) -> List[GiftCard]:
        query = self.db.query(GiftCard)
        if franchise_ids is not None:
            query = query.filter(GiftCard.franchise_id.in_(franchise_ids))
        return query.order_by(GiftCard.created_at.desc(), GiftCard.id.desc()).limit(limit).all()

    def stats(self, franchise_ids: Optional[List[int]]) -> dict:
        query = self.db.query(
            func.count(GiftCard.id),
            func.coalesce(func.sum(GiftCard.initial_amount), 0),
            func.coalesce(func.sum(GiftCard.current_balance), 0),
        )
        if franchise_ids is not None:
            query = query.filter(GiftCard.franchise_id.in_(franchise_ids))
        count, issued, outstanding = query.one()
        issued = to_money(issued)
        outstanding = to_money(outstanding)
        return {
            "total_cards": count,
            "total_issued": issued,
            "outstanding_balance": outstanding,
            "total_redeemed": to_money(issued - outstanding),
        }

    def set_active(self, card: GiftCard, is_active: bool) -> GiftCard:
        card.is_active = is_active
        self.db.commit()
        self.db.refresh(card)
        logger.info(f"Gift card {card.id} {'activated' if is_active else 'deactivated'}")
        return card
