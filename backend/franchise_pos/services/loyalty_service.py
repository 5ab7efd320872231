"""Loyalty points: per-franchise programs and cross-store pooled accounts."""

import logging
import math
import re
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from franchise_pos.db.base import to_money, utcnow
from franchise_pos.models.loyalty import (
    LoyaltyMasterAccount,
    LoyaltyMember,
    LoyaltyProgram,
    PointsTransaction,
)

logger = logging.getLogger(__name__)

POINT_TYPES = ("EARN", "REDEEM", "ADJUST")
ACTIVE_WINDOW = timedelta(days=30)


class LoyaltyError(ValueError):
    """Rejected points operation. ``extra`` is merged into the error response."""

    def __init__(self, message: str, **extra):
        super().__init__(message)
        self.extra = extra


class MemberNotFound(LookupError):
    pass


def clean_phone(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", phone or "")


def points_change_for(point_type: str, points: int) -> int:
    """Signed change: redemptions subtract, everything else adds."""
    return -abs(points) if point_type == "REDEEM" else abs(points)


class LoyaltyService:
    def __init__(self, db: Session):
        self.db = db

    # ========== PROGRAMS ==========

    def get_program(self, franchise_id: int) -> Optional[LoyaltyProgram]:
        return self.db.query(LoyaltyProgram).filter(LoyaltyProgram.franchise_id == franchise_id).first()

    def get_or_create_program(self, franchise_id: int) -> LoyaltyProgram:
        program = self.get_program(franchise_id)
        if program is None:
            program = LoyaltyProgram(
                franchise_id=franchise_id,
                name="Rewards",
                points_per_dollar=Decimal("1"),
                redemption_ratio=Decimal("0.01"),
                is_active=True,
            )
            self.db.add(program)
            self.db.commit()
            self.db.refresh(program)
            logger.info(f"Created loyalty program for franchise {franchise_id}")
        return program

    def update_program(self, franchise_id: int, **changes) -> LoyaltyProgram:
        program = self.get_or_create_program(franchise_id)
        for field, value in changes.items():
            if value is not None:
                setattr(program, field, value)
        self.db.commit()
        self.db.refresh(program)
        return program

    # ========== POINTS (pooled or individual) ==========

    def record_points(
        self,
        phone: str,
        point_type: str,
        points: int,
        description: Optional[str] = None,
        transaction_id: Optional[int] = None,
        franchise_id: Optional[int] = None,
    ) -> dict:
        """Earn, redeem or adjust points for a phone number.

        A master account for the phone takes precedence: its pooled balance is
        used. Otherwise the member of ``franchise_id``'s program is updated.
        """
        phone = clean_phone(phone)
        if not phone:
            raise LoyaltyError("Phone number required")
        if point_type not in POINT_TYPES:
            raise LoyaltyError("Invalid type")
        if not points:
            raise LoyaltyError("Points amount required")

        change = points_change_for(point_type, points)
        requested = abs(points)
        now = utcnow()

        master = self.db.query(LoyaltyMasterAccount).filter(LoyaltyMasterAccount.phone == phone).first()
        if master is not None:
            if point_type == "REDEEM" and master.pooled_balance < requested:
                raise LoyaltyError(
                    "Insufficient points", available=master.pooled_balance, requested=requested
                )
            master.pooled_balance += change
            if point_type == "EARN":
                master.lifetime_points += requested
            self.db.add(PointsTransaction(
                master_account_id=master.id,
                franchise_id=franchise_id,
                type=point_type,
                points=change,
                description=description or f"{point_type} at location",
                transaction_id=transaction_id,
                created_at=now,
            ))
            if point_type == "EARN" and franchise_id:
                linked = self.db.query(LoyaltyMember).filter(
                    LoyaltyMember.phone == phone,
                    LoyaltyMember.master_account_id == master.id,
                    LoyaltyMember.franchise_id == franchise_id,
                ).all()
                for member in linked:
                    member.lifetime_points += requested
                    member.last_activity = now
            self.db.commit()
            self.db.refresh(master)
            logger.info(f"Pooled {point_type} of {change} points for master account {master.id}")
            return {
                "success": True,
                "type": "POOLED",
                "points_change": change,
                "new_balance": master.pooled_balance,
                "lifetime_points": master.lifetime_points,
            }

        if not franchise_id:
            raise LoyaltyError("Franchise ID required for non-linked members")

        member = self.db.query(LoyaltyMember).filter(
            LoyaltyMember.phone == phone,
            LoyaltyMember.franchise_id == franchise_id,
        ).first()
        if member is None:
            raise MemberNotFound("Member not found")

        if point_type == "REDEEM" and member.points_balance < requested:
            raise LoyaltyError(
                "Insufficient points", available=member.points_balance, requested=requested
            )
        member.points_balance += change
        if point_type == "EARN":
            member.lifetime_points += requested
        member.last_activity = now
        self.db.add(PointsTransaction(
            member_id=member.id,
            franchise_id=franchise_id,
            type=point_type,
            points=change,
            description=description or f"{point_type} at {member.program.name}",
            transaction_id=transaction_id,
            created_at=now,
        ))
        self.db.commit()
        self.db.refresh(member)
        logger.info(f"{point_type} of {change} points for member {member.id}")
        return {
            "success": True,
            "type": "INDIVIDUAL",
            "program_name": member.program.name,
            "points_change": change,
            "new_balance": member.points_balance,
            "lifetime_points": member.lifetime_points,
        }

    def history(self, phone: str, limit: int = 20) -> dict:
        phone = clean_phone(phone)
        if not phone:
            raise LoyaltyError("Phone required")

        master = self.db.query(LoyaltyMasterAccount).filter(LoyaltyMasterAccount.phone == phone).first()
        if master is not None:
            rows = self.db.query(PointsTransaction).filter(
                PointsTransaction.master_account_id == master.id
            ).order_by(PointsTransaction.created_at.desc(), PointsTransaction.id.desc()).limit(limit).all()
            return {"type": "POOLED", "balance": master.pooled_balance, "history": rows}

        members = self.db.query(LoyaltyMember).filter(LoyaltyMember.phone == phone).all()
        member_ids = [m.id for m in members]
        rows = []
        if member_ids:
            rows = self.db.query(PointsTransaction).filter(
                PointsTransaction.member_id.in_(member_ids)
            ).order_by(PointsTransaction.created_at.desc(), PointsTransaction.id.desc()).limit(limit).all()
        return {
            "type": "INDIVIDUAL",
            "balance": sum(m.points_balance for m in members),
            "history": rows,
        }

    def create_master_account(self, phone: str, name: Optional[str] = None) -> LoyaltyMasterAccount:
        """Link every membership with ``phone`` into one pooled account."""
        phone = clean_phone(phone)
        if len(phone) < 10:
            raise LoyaltyError("Valid phone number required")
        if self.db.query(LoyaltyMasterAccount).filter(LoyaltyMasterAccount.phone == phone).first():
            raise LoyaltyError("Master account already exists for this phone")

        members = self.db.query(LoyaltyMember).filter(LoyaltyMember.phone == phone).all()
        master = LoyaltyMasterAccount(
            phone=phone,
            name=name or next((m.name for m in members if m.name), None),
            pooled_balance=sum(m.points_balance for m in members),
            lifetime_points=sum(m.lifetime_points for m in members),
        )
        self.db.add(master)
        self.db.flush()
        for member in members:
            member.master_account_id = master.id
            member.points_balance = 0
        self.db.commit()
        self.db.refresh(master)
        logger.info(f"Created master account {master.id} linking {len(members)} memberships")
        return master

    # ========== OWNER PORTAL ==========

    def search_members(self, phone: str, franchise_id: Optional[int]) -> List[LoyaltyMember]:
        query = self.db.query(LoyaltyMember).filter(LoyaltyMember.phone.contains(clean_phone(phone)))
        if franchise_id is not None:
            query = query.filter(LoyaltyMember.franchise_id == franchise_id)
        return query.order_by(LoyaltyMember.id).limit(20).all()

    def stats(self, program: LoyaltyProgram) -> dict:
        base = self.db.query(LoyaltyMember).filter(LoyaltyMember.program_id == program.id)
        total_members = base.count()
        active_members = base.filter(LoyaltyMember.last_activity >= utcnow() - ACTIVE_WINDOW).count()
        outstanding, lifetime, spend = self.db.query(
            func.coalesce(func.sum(LoyaltyMember.points_balance), 0),
            func.coalesce(func.sum(LoyaltyMember.lifetime_points), 0),
            func.coalesce(func.sum(LoyaltyMember.lifetime_spend), 0),
        ).filter(LoyaltyMember.program_id == program.id).one()

        issued, redeemed = self.db.query(
            func.coalesce(func.sum(case((PointsTransaction.points > 0, PointsTransaction.points), else_=0)), 0),
            func.coalesce(func.sum(case((PointsTransaction.type == "REDEEM", PointsTransaction.points), else_=0)), 0),
        ).filter(PointsTransaction.franchise_id == program.franchise_id).one()

        return {
            "total_members": total_members,
            "active_members": active_members,
            "total_points_outstanding": int(outstanding),
            "total_lifetime_points": int(lifetime),
            "total_lifetime_spend": to_money(spend),
            "points_issued": int(issued),
            "points_redeemed": abs(int(redeemed)),
        }

    def top_members(self, program: LoyaltyProgram, limit: int = 20) -> List[LoyaltyMember]:
        return self.db.query(LoyaltyMember).filter(
            LoyaltyMember.program_id == program.id
        ).order_by(LoyaltyMember.lifetime_spend.desc(), LoyaltyMember.id).limit(limit).all()

    def _member(self, program: LoyaltyProgram, phone: str) -> LoyaltyMember:
        member = self.db.query(LoyaltyMember).filter(
            LoyaltyMember.program_id == program.id,
            LoyaltyMember.phone == clean_phone(phone),
        ).first()
        if member is None:
            raise MemberNotFound("Member not found")
        return member

    def enroll(self, program: LoyaltyProgram, phone: str, name: Optional[str] = None,
               email: Optional[str] = None) -> tuple:
        """Returns ``(member, created)``."""
        phone = clean_phone(phone)
        if not phone:
            raise LoyaltyError("Phone required")
        existing = self.db.query(LoyaltyMember).filter(
            LoyaltyMember.program_id == program.id, LoyaltyMember.phone == phone
        ).first()
        if existing is not None:
            return existing, False

        master = self.db.query(LoyaltyMasterAccount).filter(LoyaltyMasterAccount.phone == phone).first()
        member = LoyaltyMember(
            program_id=program.id,
            franchise_id=program.franchise_id,
            master_account_id=master.id if master else None,
            phone=phone,
            name=name,
            email=email,
            enrolled_at=utcnow(),
        )
        self.db.add(member)
        self.db.commit()
        self.db.refresh(member)
        return member, True

    def earn_for_purchase(self, program: LoyaltyProgram, phone: str, amount: Decimal,
                          transaction_id: Optional[int] = None) -> dict:
        amount = to_money(amount)
        if amount <= 0:
            raise LoyaltyError("Phone and amount required")
        member = self._member(program, phone)
        earned = math.floor(amount * Decimal(str(program.points_per_dollar)))
        description = f"Earned on ${amount} purchase"

        member.lifetime_spend = to_money(member.lifetime_spend + amount)
        member.last_activity = utcnow()
        if member.master_account_id is not None:
            # Linked members earn into the pooled balance
            if not earned:
                self.db.commit()
                return {"success": True, "points_earned": 0, "new_balance": member.master_account.pooled_balance}
            result = self.record_points(member.phone, "EARN", earned, description, transaction_id,
                                        franchise_id=program.franchise_id)
            return {"success": True, "points_earned": earned, "new_balance": result["new_balance"]}

        member.points_balance += earned
        member.lifetime_points += earned
        self.db.add(PointsTransaction(
            member_id=member.id,
            franchise_id=program.franchise_id,
            type="EARN",
            points=earned,
            description=description,
            transaction_id=transaction_id,
            created_at=utcnow(),
        ))
        self.db.commit()
        return {"success": True, "points_earned": earned, "new_balance": member.points_balance}

    def redeem_for_discount(self, program: LoyaltyProgram, phone: str, points: int,
                            transaction_id: Optional[int] = None) -> dict:
        if not points or points <= 0:
            raise LoyaltyError("Phone and points required")
        member = self._member(program, phone)
        value = to_money(Decimal(points) * Decimal(str(program.redemption_ratio)))
        description = f"Redeemed for ${value} discount"

        if member.master_account_id is not None:
            result = self.record_points(member.phone, "REDEEM", points, description, transaction_id,
                                        franchise_id=program.franchise_id)
            member.last_activity = utcnow()
            self.db.commit()
            return {
                "success": True,
                "points_redeemed": points,
                "dollar_value": value,
                "new_balance": result["new_balance"],
            }

        if member.points_balance < points:
            raise LoyaltyError("Insufficient points", available=member.points_balance, requested=points)

        member.points_balance -= points
        member.last_activity = utcnow()
        self.db.add(PointsTransaction(
            member_id=member.id,
            franchise_id=program.franchise_id,
            type="REDEEM",
            points=-points,
            description=description,
            transaction_id=transaction_id,
            created_at=utcnow(),
        ))
        self.db.commit()
        return {
            "success": True,
            "points_redeemed": points,
            "dollar_value": value,
            "new_balance": member.points_balance,
        }
