"""Inter-location inventory transfers.

Lifecycle: PENDING -> APPROVED -> IN_TRANSIT -> RECEIVED | DISCREPANCY, with
CANCELLED reachable from any state before receipt. Stock leaves the source
location when the transfer ships and arrives at the destination on receipt.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from franchise_pos.db.base import to_money, utcnow
from franchise_pos.models.inventory import InventoryTransfer, Item, TransferItem, TransferStatus
from franchise_pos.models.location import Location

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = (TransferStatus.RECEIVED, TransferStatus.DISCREPANCY)


class TransferError(ValueError):
    pass


class TransferNotFound(LookupError):
    pass


@dataclass
class TransferLine:
    item_id: int
    quantity: int


class TransferService:
    def __init__(self, db: Session):
        self.db = db

    def _next_number(self) -> str:
        last = self.db.query(InventoryTransfer.transfer_number).order_by(
            InventoryTransfer.id.desc()
        ).first()
        next_number = 1
        if last:
            match = re.match(r"TR-(\d+)", last.transfer_number)
            if match:
                next_number = int(match.group(1)) + 1
        return f"TR-{next_number:04d}"

    def get(self, transfer_id: int) -> InventoryTransfer:
        transfer = self.db.query(InventoryTransfer).filter(InventoryTransfer.id == transfer_id).first()
        if transfer is None:
            raise TransferNotFound("Transfer not found")
        return transfer

    def create(
        self,
        from_location: Location,
        to_location: Location,
        lines: List[TransferLine],
        requested_by_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> InventoryTransfer:
        if not lines:
            raise TransferError("At least one item is required")
        if from_location.id == to_location.id:
            raise TransferError("Cannot transfer to the same location")
        if from_location.franchise_id != to_location.franchise_id:
            raise TransferError("Locations must belong to the same franchise")

        transfer = InventoryTransfer(
            transfer_number=self._next_number(),
            franchise_id=from_location.franchise_id,
            from_location_id=from_location.id,
            to_location_id=to_location.id,
            status=TransferStatus.PENDING,
            reason=reason,
            requested_by_id=requested_by_id,
        )

        total_items = 0
        total_value = Decimal("0")
        for line in lines:
            if line.quantity < 1:
                raise TransferError("Quantity must be at least 1")
            item = self.db.query(Item).filter(
                Item.id == line.item_id, Item.location_id == from_location.id
            ).first()
            if item is None:
                raise TransferError(f"Item {line.item_id} not found at the source location")
            unit_cost = to_money(item.cost or 0)
            total_items += line.quantity
            total_value += unit_cost * line.quantity
            transfer.items.append(TransferItem(
                item_id=item.id,
                item_name=item.name,
                item_sku=item.sku,
                quantity_sent=line.quantity,
                unit_cost=unit_cost,
            ))

        transfer.total_items = total_items
        transfer.total_value = to_money(total_value)
        self.db.add(transfer)
        self.db.commit()
        self.db.refresh(transfer)
        logger.info(
            f"Transfer {transfer.transfer_number} created: {from_location.id} -> {to_location.id}, "
            f"{total_items} units"
        )
        return transfer

    def approve(self, transfer: InventoryTransfer, user_id: int) -> InventoryTransfer:
        if transfer.status != TransferStatus.PENDING:
            raise TransferError("Can only approve pending transfers")
        transfer.status = TransferStatus.APPROVED
        transfer.approved_by_id = user_id
        transfer.approved_at = utcnow()
        return self._save(transfer, "approved")

    def ship(self, transfer: InventoryTransfer, user_id: int) -> InventoryTransfer:
        if transfer.status not in (TransferStatus.PENDING, TransferStatus.APPROVED):
            raise TransferError("Invalid status for shipping")
        for line in transfer.items:
            item = self.db.query(Item).filter(Item.id == line.item_id).first()
            if item is not None:
                item.stock = item.stock - line.quantity_sent
        now = utcnow()
        transfer.status = TransferStatus.IN_TRANSIT
        transfer.shipped_at = now
        if transfer.approved_at is None:
            transfer.approved_by_id = user_id
            transfer.approved_at = now
        return self._save(transfer, "shipped")

    def _destination_item(self, transfer: InventoryTransfer, source: Item) -> Item:
        """Matching item (by sku, else name) at the destination, created if missing."""
        query = self.db.query(Item).filter(Item.location_id == transfer.to_location_id)
        if source.sku:
            query = query.filter(Item.sku == source.sku)
        else:
            query = query.filter(Item.name == source.name)
        item = query.first()
        if item is None:
            item = Item(
                franchise_id=source.franchise_id,
                location_id=transfer.to_location_id,
                supplier_id=source.supplier_id,
                name=source.name,
                sku=source.sku,
                barcode=source.barcode,
                item_type=source.item_type,
                price=source.price,
                cost=source.cost,
                stock=0,
                reorder_point=source.reorder_point,
                max_stock=source.max_stock,
            )
            self.db.add(item)
            self.db.flush()
        return item

    def receive(self, transfer: InventoryTransfer, user_id: int,
                received: Optional[Dict[int, int]] = None,
                notes: Optional[str] = None) -> InventoryTransfer:
        """``received`` maps item id to the counted quantity; omitted items arrived in full."""
        if transfer.status != TransferStatus.IN_TRANSIT:
            raise TransferError("Can only receive in-transit transfers")
        received = received or {}

        discrepancy = False
        for line in transfer.items:
            quantity = received.get(line.item_id, line.quantity_sent)
            if quantity < 0:
                raise TransferError("Received quantity cannot be negative")
            if quantity != line.quantity_sent:
                discrepancy = True
            line.quantity_received = quantity

            source = self.db.query(Item).filter(Item.id == line.item_id).first()
            if source is not None:
                destination = self._destination_item(transfer, source)
                destination.stock = (destination.stock or 0) + quantity

        transfer.status = TransferStatus.DISCREPANCY if discrepancy else TransferStatus.RECEIVED
        transfer.received_by_id = user_id
        transfer.received_at = utcnow()
        if notes:
            transfer.notes = notes
        return self._save(transfer, "received")

    def cancel(self, transfer: InventoryTransfer, notes: Optional[str] = None) -> InventoryTransfer:
        if transfer.status in COMPLETED_STATUSES:
            raise TransferError("Cannot cancel completed transfers")
        if transfer.status == TransferStatus.CANCELLED:
            raise TransferError("Transfer is already cancelled")
        if transfer.status == TransferStatus.IN_TRANSIT:
            for line in transfer.items:
                item = self.db.query(Item).filter(Item.id == line.item_id).first()
                if item is not None:
                    item.stock = item.stock + line.quantity_sent
        transfer.status = TransferStatus.CANCELLED
        transfer.cancelled_at = utcnow()
        transfer.notes = notes or "Cancelled by user"
        return self._save(transfer, "cancelled")

    def _save(self, transfer: InventoryTransfer, verb: str) -> InventoryTransfer:
        self.db.commit()
        self.db.refresh(transfer)
        logger.info(f"Transfer {transfer.transfer_number} {verb}")
        return transfer

    def list_transfers(self, franchise_ids: Optional[List[int]], status: Optional[str] = None,
                       location_id: Optional[int] = None, limit: int = 50) -> dict:
        query = self.db.query(InventoryTransfer)
        if franchise_ids is not None:
            query = query.filter(InventoryTransfer.franchise_id.in_(franchise_ids))
        if location_id is not None:
            query = query.filter(
                (InventoryTransfer.from_location_id == location_id)
                | (InventoryTransfer.to_location_id == location_id)
            )
        if status:
            query = query.filter(InventoryTransfer.status == TransferStatus(status))
        transfers = query.order_by(InventoryTransfer.id.desc()).limit(limit).all()

        def count(*statuses):
            return sum(1 for t in transfers if t.status in statuses)

        return {
            "transfers": transfers,
            "counts": {
                "pending": count(TransferStatus.PENDING),
                "in_transit": count(TransferStatus.APPROVED, TransferStatus.IN_TRANSIT),
                "completed": count(*COMPLETED_STATUSES),
                "cancelled": count(TransferStatus.CANCELLED),
                "total": len(transfers),
            },
        }
