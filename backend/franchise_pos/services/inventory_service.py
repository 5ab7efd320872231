"""Smart ordering: reorder suggestions from stock levels and sales velocity."""

import math
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from franchise_pos.db.base import to_money, utcnow
from franchise_pos.models.inventory import Item
from franchise_pos.models.transaction import Transaction, TransactionLineItem, TransactionStatus

logger = logging.getLogger(__name__)

VELOCITY_WINDOW_DAYS = 30
DEFAULT_VELOCITY = 0.1
DEFAULT_REORDER_POINT = 5
URGENCY_ORDER = {"critical": 0, "high": 1, "normal": 2}


def classify_urgency(stock: int, days_until_stockout: Optional[int]) -> str:
    if stock == 0 or (days_until_stockout is not None and days_until_stockout <= 3):
        return "critical"
    if days_until_stockout is not None and days_until_stockout <= 7:
        return "high"
    return "normal"


def build_reorder_item(item: Item, velocity: Optional[float]) -> Optional[dict]:
    """Reorder suggestion for ``item``, or None while it is above its reorder point."""
    stock = item.stock or 0
    reorder_point = item.reorder_point or DEFAULT_REORDER_POINT
    velocity = velocity or DEFAULT_VELOCITY

    if stock > reorder_point:
        return None

    days_until_stockout = math.floor(stock / velocity) if velocity > 0 else None
    max_stock = item.max_stock or reorder_point * 3
    suggested_qty = max(max_stock - stock, reorder_point)

    return {
        "item_id": item.id,
        "name": item.name,
        "barcode": item.barcode,
        "sku": item.sku,
        "location_id": item.location_id,
        "current_stock": stock,
        "reorder_point": reorder_point,
        "suggested_qty": suggested_qty,
        "cost": to_money(item.cost or 0),
        "supplier": item.supplier.name if item.supplier else "Unknown",
        "supplier_id": item.supplier_id,
        "days_until_stockout": days_until_stockout,
        "velocity": round(velocity, 1),
        "urgency": classify_urgency(stock, days_until_stockout),
    }


def group_by_supplier(reorder_items: List[dict]) -> List[dict]:
    """Suggested purchase orders, one per supplier, most urgent first."""
    groups: Dict[Optional[int], List[dict]] = {}
    for entry in reorder_items:
        groups.setdefault(entry["supplier_id"], []).append(entry)

    orders = []
    for supplier_id, entries in groups.items():
        entries.sort(key=lambda e: (
            URGENCY_ORDER[e["urgency"]],
            999 if e["days_until_stockout"] is None else e["days_until_stockout"],
        ))
        urgency = min((e["urgency"] for e in entries), key=URGENCY_ORDER.get)
        total_cost = sum((e["cost"] * e["suggested_qty"] for e in entries), Decimal("0"))
        orders.append({
            "supplier_id": supplier_id,
            "supplier_name": entries[0]["supplier"] if supplier_id else "General Supplier",
            "items": entries,
            "total_items": len(entries),
            "total_cost": to_money(total_cost),
            "urgency": urgency,
        })

    orders.sort(key=lambda o: URGENCY_ORDER[o["urgency"]])
    return orders


class SmartOrderingService:
    def __init__(self, db: Session):
        self.db = db

    def sales_velocity(self, franchise_id: int) -> Dict[int, float]:
        """Average units sold per day per item over the velocity window."""
        since = utcnow() - timedelta(days=VELOCITY_WINDOW_DAYS)
        rows = self.db.query(
            TransactionLineItem.item_id,
            func.sum(TransactionLineItem.quantity),
        ).join(Transaction, Transaction.id == TransactionLineItem.transaction_id).filter(
            Transaction.franchise_id == franchise_id,
            Transaction.status == TransactionStatus.COMPLETED,
            Transaction.created_at >= since,
            TransactionLineItem.item_id.isnot(None),
        ).group_by(TransactionLineItem.item_id).all()
        return {item_id: (qty or 0) / VELOCITY_WINDOW_DAYS for item_id, qty in rows}

    def suggestions(self, franchise_id: int, location_id: Optional[int] = None) -> dict:
        query = self.db.query(Item).filter(
            Item.franchise_id == franchise_id,
            Item.active(),
            Item.item_type == "PRODUCT",
        )
        if location_id is not None:
            query = query.filter(Item.location_id == location_id)

        velocity = self.sales_velocity(franchise_id)
        reorder_items = []
        for item in query.order_by(Item.id).all():
            entry = build_reorder_item(item, velocity.get(item.id))
            if entry is not None:
                reorder_items.append(entry)

        critical = sum(1 for e in reorder_items if e["urgency"] == "critical")
        logger.debug(f"Smart ordering for franchise {franchise_id}: {len(reorder_items)} items to reorder")
        return {
            "critical_count": critical,
            "warning_count": len(reorder_items) - critical,
            "suggested_orders": group_by_supplier(reorder_items),
        }
