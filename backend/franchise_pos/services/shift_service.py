"""Cash drawer shifts and lottery movements."""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from franchise_pos.core.tenancy import business_config_for_franchise
from franchise_pos.db.base import to_money, utcnow
from franchise_pos.models.location import Location
from franchise_pos.models.tenant import ShiftRequirement
from franchise_pos.models.transaction import (
    CashDrawerSession,
    DrawerStatus,
    LotteryTransaction,
    LotteryType,
    PaymentMethod,
    Transaction,
    TransactionStatus,
)
from franchise_pos.services.report_service import day_bounds

logger = logging.getLogger(__name__)

SHIFT_ACTIONS = ("OPEN", "CLOSE", "DROP")


class ShiftError(ValueError):
    pass


class ShiftNotFound(LookupError):
    pass


class ShiftService:
    def __init__(self, db: Session):
        self.db = db

    def _open_shift(self, employee_id: int, location_id: Optional[int]) -> Optional[CashDrawerSession]:
        query = self.db.query(CashDrawerSession).filter(
            CashDrawerSession.employee_id == employee_id,
            CashDrawerSession.status == DrawerStatus.OPEN,
        )
        if location_id is not None:
            query = query.filter(CashDrawerSession.location_id == location_id)
        return query.order_by(CashDrawerSession.start_time.desc()).first()

    def resolve_location_id(self, location_id: Optional[int], franchise_id: Optional[int]) -> int:
        """The user's own location, else the first location of their franchise."""
        if location_id:
            return location_id
        if franchise_id:
            first = self.db.query(Location).filter(
                Location.franchise_id == franchise_id
            ).order_by(Location.id).first()
            if first is None:
                raise ShiftError("No location found for this franchise")
            return first.id
        raise ShiftError("Location ID required to open shift")

    def open(self, employee_id: int, location_id: Optional[int], franchise_id: Optional[int],
             amount: Decimal, notes: Optional[str] = None) -> CashDrawerSession:
        location_id = self.resolve_location_id(location_id, franchise_id)
        if self._open_shift(employee_id, location_id) is not None:
            raise ShiftError("Shift already open")
        if amount < 0:
            raise ShiftError("Starting cash cannot be negative")

        shift = CashDrawerSession(
            location_id=location_id,
            employee_id=employee_id,
            start_time=utcnow(),
            starting_cash=to_money(amount),
            status=DrawerStatus.OPEN,
            notes=notes,
        )
        self.db.add(shift)
        self.db.commit()
        self.db.refresh(shift)
        logger.info(f"Shift {shift.id} opened at location {location_id} by user {employee_id}")
        return shift

    def close(self, employee_id: int, location_id: Optional[int], amount: Decimal,
              notes: Optional[str] = None) -> CashDrawerSession:
        shift = self._open_shift(employee_id, location_id)
        if shift is None:
            raise ShiftNotFound("No open shift found")
        shift.ending_cash = to_money(amount)
        shift.end_time = utcnow()
        shift.status = DrawerStatus.CLOSED
        if notes:
            shift.notes = f"{shift.notes or ''}\n{notes}"
        self.db.commit()
        self.db.refresh(shift)
        logger.info(f"Shift {shift.id} closed with {shift.ending_cash}")
        return shift

    def drop(self, employee_id: int, location_id: Optional[int], amount: Decimal) -> CashDrawerSession:
        shift = self._open_shift(employee_id, location_id)
        if shift is None:
            raise ShiftNotFound("No open shift found for drop")
        if amount <= 0:
            raise ShiftError("Drop amount must be positive")
        shift.cash_drops = to_money((shift.cash_drops or 0) + amount)
        self.db.commit()
        self.db.refresh(shift)
        logger.info(f"Cash drop of {amount} on shift {shift.id}")
        return shift

    def cash_sales(self, shift: CashDrawerSession) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(Transaction.total), 0)).filter(
            Transaction.cash_drawer_session_id == shift.id,
            Transaction.status == TransactionStatus.COMPLETED,
            Transaction.payment_method == PaymentMethod.CASH,
        ).scalar()
        return to_money(total)

    def current(self, employee_id: int, location_id: Optional[int],
                franchise_id: Optional[int]) -> dict:
        requirement = ShiftRequirement.BOTH
        if franchise_id:
            config = business_config_for_franchise(self.db, franchise_id)
            if config is not None:
                requirement = config.shift_requirement

        shift = self._open_shift(employee_id, location_id)
        data = None
        if shift is not None:
            cash_sales = self.cash_sales(shift)
            data = {
                "shift": shift,
                "cash_sales": cash_sales,
                "expected_cash": to_money(shift.starting_cash + cash_sales),
            }
        return {"current": data, "shift_requirement": requirement.value}


class LotteryService:
    def __init__(self, db: Session):
        self.db = db

    def record(self, franchise_id: int, location_id: int, employee_id: Optional[int],
               type_: LotteryType, amount: Decimal,
               ticket_number: Optional[str] = None) -> LotteryTransaction:
        if amount <= 0:
            raise ValueError("Amount must be positive")
        entry = LotteryTransaction(
            franchise_id=franchise_id,
            location_id=location_id,
            employee_id=employee_id,
            type=type_,
            amount=to_money(amount),
            ticket_number=ticket_number,
            created_at=utcnow(),
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info(f"Lottery {type_.value} of {entry.amount} at location {location_id}")
        return entry

    def for_day(self, location_id: int, day: date) -> dict:
        start, end = day_bounds(day)
        entries: List[LotteryTransaction] = self.db.query(LotteryTransaction).filter(
            LotteryTransaction.location_id == location_id,
            LotteryTransaction.created_at >= start,
            LotteryTransaction.created_at < end,
        ).order_by(LotteryTransaction.created_at.desc()).all()
        sales = sum((e.amount for e in entries if e.type == LotteryType.SALE), Decimal("0"))
        payouts = sum((e.amount for e in entries if e.type == LotteryType.PAYOUT), Decimal("0"))
        return {
            "entries": entries,
            "sales": to_money(sales),
            "payouts": to_money(payouts),
            "net": to_money(sales - payouts),
        }
