"""Checkout, refund and void of POS transactions."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from franchise_pos.db.base import as_utc, to_money, utcnow
from franchise_pos.models.client import Client
from franchise_pos.models.inventory import Item
from franchise_pos.models.transaction import (
    CashDrawerSession,
    DrawerStatus,
    LineItemStatus,
    LineItemType,
    PaymentMethod,
    Transaction,
    TransactionLineItem,
    TransactionStatus,
)
from franchise_pos.models.user import User
from franchise_pos.core.tenancy import business_config_for_franchise
from franchise_pos.services.gift_card_service import GiftCardService
from franchise_pos.services.payout_engine import (
    LineItemInput,
    LineItemSnapshot,
    PayoutConfig,
    calculate_transaction_payouts,
    create_refund_reversals,
)

logger = logging.getLogger(__name__)


class CheckoutError(ValueError):
    """Checkout rejected for a business reason (maps to HTTP 400)."""


class TransactionNotFound(LookupError):
    pass


@dataclass
class CheckoutLine:
    type: str = "SERVICE"
    item_id: Optional[int] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    quantity: int = 1
    discount: Decimal = Decimal("0")
    staff_id: Optional[int] = None


class CheckoutService:
    """Turns a cart into a stored transaction with frozen payout snapshots."""

    def __init__(self, db: Session):
        self.db = db

    def checkout(
        self,
        franchise_id: int,
        location_id: int,
        employee_id: int,
        lines: List[CheckoutLine],
        payment_method: PaymentMethod,
        tip: Decimal = Decimal("0"),
        client_id: Optional[int] = None,
        station_id: Optional[int] = None,
        gift_card_code: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Transaction:
        if not lines:
            raise CheckoutError("Cart is empty")

        config = business_config_for_franchise(self.db, franchise_id)
        tip = to_money(tip)
        if tip < 0:
            raise CheckoutError("Tip cannot be negative")
        if tip > 0 and config is not None and not config.uses_tipping:
            raise CheckoutError("Tipping is disabled for this business")

        client = None
        if client_id is not None:
            client = self.db.query(Client).filter(
                Client.id == client_id, Client.franchise_id == franchise_id
            ).first()
            if client is None:
                raise CheckoutError("Client not found")

        inputs: List[LineItemInput] = []
        stocked: List[tuple] = []
        for line in lines:
            inputs.append(self._resolve_line(line, franchise_id, location_id, stocked))

        if config is not None and not config.uses_discounts and any(i.discount > 0 for i in inputs):
            raise CheckoutError("Discounts are disabled for this business")

        now = utcnow()
        result = calculate_transaction_payouts(
            inputs, tip, PayoutConfig.from_business_config(config), now.date()
        )
        totals = result.totals

        gift_cards = GiftCardService(self.db)
        card = None
        if payment_method == PaymentMethod.GIFT_CARD:
            if not gift_card_code:
                raise CheckoutError("Gift card code is required")
            card = gift_cards.get_redeemable(franchise_id, gift_card_code, totals.grand_total)

        shift = self.db.query(CashDrawerSession).filter(
            CashDrawerSession.location_id == location_id,
            CashDrawerSession.status == DrawerStatus.OPEN,
        ).order_by(CashDrawerSession.start_time.desc()).first()

        transaction = Transaction(
            franchise_id=franchise_id,
            location_id=location_id,
            station_id=station_id,
            employee_id=employee_id,
            client_id=client.id if client else None,
            cash_drawer_session_id=shift.id if shift else None,
            subtotal=totals.subtotal,
            discount=totals.discount_total,
            tax=totals.tax_total,
            tip=totals.tip_total,
            total=totals.grand_total,
            commission_total=totals.commission_total,
            owner_total=totals.owner_total,
            payment_method=payment_method,
            status=TransactionStatus.COMPLETED,
            notes=notes,
            created_at=now,
        )
        self.db.add(transaction)
        self.db.flush()

        for item_input, snapshot in zip(inputs, result.snapshots):
            transaction.line_items.append(self._line_row(item_input, snapshot))

        for item, quantity in stocked:
            item.stock = item.stock - quantity

        if card is not None:
            gift_cards.apply_redemption(card, totals.grand_total, employee_id=employee_id)
            transaction.gift_card_id = card.id

        if client is not None:
            client.last_visit = now
            client.total_visits = (client.total_visits or 0) + 1

        self.db.commit()
        self.db.refresh(transaction)
        logger.info(
            f"Checkout {transaction.id} at location {location_id}: total {totals.grand_total} "
            f"({payment_method.value}), commission {totals.commission_total}"
        )
        return transaction

    def _resolve_line(self, line: CheckoutLine, franchise_id: int, location_id: int,
                      stocked: list) -> LineItemInput:
        line_type = LineItemType(line.type)
        price = line.price
        description = line.description
        item_id = None

        if line.item_id is not None:
            item = self.db.query(Item).filter(
                Item.id == line.item_id,
                Item.franchise_id == franchise_id,
                Item.is_active.is_(True),
            ).first()
            if item is None:
                raise CheckoutError(f"Item {line.item_id} not found")
            item_id = item.id
            price = item.price if price is None else price
            description = description or item.name
            if line_type == LineItemType.PRODUCT:
                if item.location_id != location_id:
                    raise CheckoutError(f"{item.name} is not stocked at this location")
                if item.stock < line.quantity:
                    raise CheckoutError(f"Insufficient stock for {item.name}")
                stocked.append((item, line.quantity))

        if price is None:
            raise CheckoutError("Price is required for items not in the catalog")
        if line.quantity < 1:
            raise CheckoutError("Quantity must be at least 1")
        price = to_money(price)
        discount = to_money(line.discount or 0)
        if price < 0 or discount < 0:
            raise CheckoutError("Price and discount cannot be negative")
        if discount > price * line.quantity:
            raise CheckoutError("Discount cannot exceed the line amount")

        if line.staff_id is not None:
            staff = self.db.query(User).filter(
                User.id == line.staff_id, User.franchise_id == franchise_id
            ).first()
            if staff is None:
                raise CheckoutError(f"Staff member {line.staff_id} not found")

        return LineItemInput(
            type=line_type.value,
            price=price,
            quantity=line.quantity,
            discount=discount,
            description=description or line_type.value.title(),
            item_id=item_id,
            staff_id=line.staff_id,
        )

    @staticmethod
    def _line_row(item_input: LineItemInput, snapshot: LineItemSnapshot) -> TransactionLineItem:
        return TransactionLineItem(
            type=LineItemType(item_input.type),
            item_id=item_input.item_id,
            description=snapshot.description,
            staff_id=item_input.staff_id,
            quantity=item_input.quantity,
            price=item_input.price,
            total=snapshot.price_charged,
            discount=snapshot.discount_allocated,
            tax_allocated=snapshot.tax_allocated,
            tip_allocated=snapshot.tip_allocated,
            commission_split_used=snapshot.commission_split_used,
            commission_amount=snapshot.commission_amount,
            owner_amount=snapshot.owner_amount,
            business_date=snapshot.business_date,
            status=LineItemStatus(snapshot.status),
        )

    def _get(self, transaction_id: int) -> Transaction:
        transaction = self.db.query(Transaction).filter(Transaction.id == transaction_id).first()
        if transaction is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        return transaction

    def _restock(self, transaction: Transaction) -> None:
        for line in transaction.line_items:
            if line.type == LineItemType.PRODUCT and line.item_id:
                item = self.db.query(Item).filter(Item.id == line.item_id).first()
                if item is not None:
                    item.stock = item.stock + line.quantity

    def refund(self, transaction_id: int, employee_id: int, reason: Optional[str] = None) -> Transaction:
        """Record a full refund as a separate, negated transaction."""
        original = self._get(transaction_id)
        if original.status not in (TransactionStatus.COMPLETED, TransactionStatus.APPROVED):
            raise CheckoutError(f"Cannot refund a {original.status.value} transaction")
        existing = self.db.query(Transaction).filter(
            Transaction.original_transaction_id == original.id
        ).first()
        if existing is not None:
            raise CheckoutError("Transaction has already been refunded")

        original_snapshots = [
            LineItemSnapshot(
                description=line.description,
                price_charged=line.total,
                discount_allocated=line.discount,
                tax_allocated=line.tax_allocated,
                tip_allocated=line.tip_allocated,
                commission_split_used=line.commission_split_used,
                commission_amount=line.commission_amount,
                owner_amount=line.owner_amount,
                business_date=line.business_date,
            )
            for line in original.line_items
        ]
        reversals = create_refund_reversals(original_snapshots)

        now = utcnow()
        refund = Transaction(
            franchise_id=original.franchise_id,
            location_id=original.location_id,
            station_id=original.station_id,
            employee_id=employee_id,
            client_id=original.client_id,
            cash_drawer_session_id=original.cash_drawer_session_id,
            original_transaction_id=original.id,
            subtotal=-original.subtotal,
            discount=-original.discount,
            tax=-original.tax,
            tip=-original.tip,
            total=-original.total,
            commission_total=-original.commission_total,
            owner_total=-original.owner_total,
            payment_method=original.payment_method,
            status=TransactionStatus.REFUNDED,
            notes=reason,
            created_at=now,
        )
        self.db.add(refund)
        self.db.flush()

        for line, snapshot in zip(original.line_items, reversals):
            refund.line_items.append(TransactionLineItem(
                type=line.type,
                item_id=line.item_id,
                description=snapshot.description,
                staff_id=line.staff_id,
                quantity=line.quantity,
                price=line.price,
                total=snapshot.price_charged,
                discount=snapshot.discount_allocated,
                tax_allocated=snapshot.tax_allocated,
                tip_allocated=snapshot.tip_allocated,
                commission_split_used=snapshot.commission_split_used,
                commission_amount=snapshot.commission_amount,
                owner_amount=snapshot.owner_amount,
                business_date=now.date(),
                status=LineItemStatus.REFUNDED,
            ))

        self._restock(original)
        self.db.commit()
        self.db.refresh(refund)
        logger.info(f"Refunded transaction {original.id} as {refund.id} ({original.total})")
        return refund

    def void(self, transaction_id: int) -> Transaction:
        """Void a sale rung up today."""
        transaction = self._get(transaction_id)
        if transaction.status != TransactionStatus.COMPLETED:
            raise CheckoutError(f"Cannot void a {transaction.status.value} transaction")
        if transaction.original_transaction_id is not None:
            raise CheckoutError("Refunds cannot be voided")
        created = as_utc(transaction.created_at)
        if created.date() != utcnow().date():
            raise CheckoutError("Only same-day transactions can be voided; use a refund instead")

        transaction.status = TransactionStatus.VOIDED
        for line in transaction.line_items:
            line.status = LineItemStatus.VOIDED
        self._restock(transaction)
        self.db.commit()
        self.db.refresh(transaction)
        logger.info(f"Voided transaction {transaction.id}")
        return transaction
