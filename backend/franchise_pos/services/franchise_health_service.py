"""Franchisee health scores for the franchisor dashboard."""

from datetime import timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from franchise_pos.core.rbac import UserRole
from franchise_pos.db.base import utcnow
from franchise_pos.models.client import Client
from franchise_pos.models.tenant import Franchise
from franchise_pos.models.transaction import Transaction, TransactionStatus
from franchise_pos.models.user import User

REVENUE_TARGET = Decimal("50000")
COMPLIANCE_SCORE = 85
EMPLOYEE_RETENTION_SCORE = 85
DEFAULT_SATISFACTION = 80

WEIGHTS = {
    "revenue": 0.30,
    "compliance": 0.25,
    "customer_satisfaction": 0.20,
    "employee_retention": 0.15,
    "growth": 0.10,
}


def revenue_score(monthly_revenue: Decimal) -> float:
    return min(100.0, float(monthly_revenue / REVENUE_TARGET * 100))


def growth_rate(current: Decimal, previous: Decimal) -> float:
    if previous <= 0:
        return 0.0
    return float((current - previous) / previous * 100)


def growth_score(rate: float) -> float:
    return min(100.0, max(0.0, 50 + rate))


def satisfaction_score(total_clients: int, repeat_clients: int) -> int:
    if total_clients == 0:
        return DEFAULT_SATISFACTION
    return round(repeat_clients / total_clients * 100)


def health_score(breakdown: dict) -> int:
    return round(sum(breakdown[key] * weight for key, weight in WEIGHTS.items()))


class FranchiseHealthService:
    def __init__(self, db: Session):
        self.db = db

    def _revenue(self, franchise_id: int, start, end) -> Decimal:
        total = self.db.query(func.coalesce(func.sum(Transaction.total), 0)).filter(
            Transaction.franchise_id == franchise_id,
            Transaction.status.in_((TransactionStatus.COMPLETED, TransactionStatus.APPROVED)),
            Transaction.created_at >= start,
            Transaction.created_at < end,
        ).scalar()
        return Decimal(str(total or 0))

    def score_franchise(self, franchise: Franchise) -> dict:
        now = utcnow()
        month_ago = now - timedelta(days=30)
        two_months_ago = now - timedelta(days=60)

        monthly = self._revenue(franchise.id, month_ago, now)
        previous = self._revenue(franchise.id, two_months_ago, month_ago)
        rate = growth_rate(monthly, previous)

        clients = self.db.query(Client).filter(Client.franchise_id == franchise.id, Client.total_visits > 0)
        total_clients = clients.count()
        repeat_clients = clients.filter(Client.total_visits > 1).count()

        breakdown = {
            "revenue": round(revenue_score(monthly)),
            "compliance": COMPLIANCE_SCORE,
            "customer_satisfaction": satisfaction_score(total_clients, repeat_clients),
            "employee_retention": EMPLOYEE_RETENTION_SCORE,
            "growth": round(growth_score(rate)),
        }
        score = health_score({
            **breakdown,
            "revenue": revenue_score(monthly),
            "growth": growth_score(rate),
        })

        owner = self.db.query(User).filter(
            User.franchise_id == franchise.id, User.role == UserRole.FRANCHISEE
        ).order_by(User.id).first()
        location_ids = [loc.id for loc in franchise.locations]
        employees = 0
        if location_ids:
            employees = self.db.query(User).filter(User.location_id.in_(location_ids)).count()

        return {
            "id": franchise.id,
            "franchise_name": franchise.name,
            "franchisor_name": franchise.franchisor.name,
            "owner_name": owner.name if owner else None,
            "owner_email": owner.email if owner else None,
            "health_score": score,
            "locations": len(location_ids),
            "employee_count": employees,
            "monthly_revenue": round(float(monthly), 2),
            "growth_rate": round(rate, 1),
            "trend": "up" if rate > 0 else "down",
            "breakdown": breakdown,
        }

    def list_scores(self, franchisor_id: Optional[int] = None) -> List[dict]:
        query = self.db.query(Franchise)
        if franchisor_id is not None:
            query = query.filter(Franchise.franchisor_id == franchisor_id)
        scores = [self.score_franchise(f) for f in query.order_by(Franchise.id).all()]
        return sorted(scores, key=lambda s: s["health_score"], reverse=True)
