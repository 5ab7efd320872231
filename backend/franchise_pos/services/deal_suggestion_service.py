"""Weekly deal suggestions for a location, generated from the last four weeks of sales."""

import logging
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from franchise_pos.db.base import as_utc, to_money, utcnow
from franchise_pos.models.client import Client
from franchise_pos.models.deal import DealSuggestion
from franchise_pos.models.location import Location
from franchise_pos.models.transaction import LineItemType, Transaction, TransactionStatus

logger = logging.getLogger(__name__)

ANALYSIS_WINDOW = timedelta(days=28)
INACTIVE_AFTER = timedelta(days=35)
DEFAULT_SERVICE_PRICE = Decimal("50")
SLOW_DAY_MIN_SPEND = Decimal("60")
WIN_BACK_DISCOUNT = Decimal("10")
REBOOK_DISCOUNT = Decimal("10")

# (max average service price, fixed discount)
DISCOUNT_BANDS = (
    (Decimal("30"), Decimal("5")),
    (Decimal("60"), Decimal("10")),
    (Decimal("120"), Decimal("15")),
)
TOP_BAND_DISCOUNT = Decimal("20")

# Sunday first, matching the week boundary
WEEKDAYS = ("SUNDAY", "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY")


class DealNotFound(LookupError):
    pass


def discount_for_price(avg_price: Decimal) -> Decimal:
    for max_price, discount in DISCOUNT_BANDS:
        if avg_price <= max_price:
            return discount
    return TOP_BAND_DISCOUNT


def week_start(now: Optional[datetime] = None) -> datetime:
    """Sunday 00:00 UTC of the week containing ``now``."""
    now = now or utcnow()
    days_since_sunday = (now.weekday() + 1) % 7
    sunday = now.date() - timedelta(days=days_since_sunday)
    return datetime.combine(sunday, time.min, tzinfo=timezone.utc)


def sunday_index(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


def slowest_days(transactions: List[Transaction], count: int = 2) -> List[str]:
    """Weekdays with the fewest sales; days without any sale count as zero."""
    totals = {day: 0 for day in range(7)}
    for transaction in transactions:
        totals[sunday_index(as_utc(transaction.created_at))] += 1
    ranked = sorted(totals.items(), key=lambda entry: (entry[1], entry[0]))
    return [WEEKDAYS[day] for day, _ in ranked[:count]]


def average_service_price(transactions: List[Transaction]) -> Decimal:
    prices = [
        line.price
        for transaction in transactions
        for line in transaction.line_items
        if line.type == LineItemType.SERVICE
    ]
    if not prices:
        return DEFAULT_SERVICE_PRICE
    return sum(prices, Decimal("0")) / len(prices)


class DealSuggestionService:
    def __init__(self, db: Session):
        self.db = db

    def current_week(self, location_id: int, now: Optional[datetime] = None) -> List[DealSuggestion]:
        """This week's suggestions, generating them on first request."""
        start = week_start(now)
        suggestions = self._for_week(location_id, start)
        if not suggestions:
            self.generate(location_id, start, now)
            suggestions = self._for_week(location_id, start)
        return suggestions

    def regenerate(self, location_id: int, now: Optional[datetime] = None) -> List[DealSuggestion]:
        """Replace this week's PENDING suggestions; accepted or dismissed ones stay."""
        start = week_start(now)
        self.db.query(DealSuggestion).filter(
            DealSuggestion.location_id == location_id,
            DealSuggestion.week_of >= start,
            DealSuggestion.status == "PENDING",
        ).delete(synchronize_session=False)
        self.db.commit()
        return self.generate(location_id, start, now)

    def _for_week(self, location_id: int, start: datetime) -> List[DealSuggestion]:
        return self.db.query(DealSuggestion).filter(
            DealSuggestion.location_id == location_id,
            DealSuggestion.week_of >= start,
        ).order_by(DealSuggestion.deal_type, DealSuggestion.id).all()

    def generate(self, location_id: int, week_of: datetime,
                 now: Optional[datetime] = None) -> List[DealSuggestion]:
        now = now or utcnow()
        location = self.db.query(Location).filter(Location.id == location_id).first()
        if location is None:
            return []

        transactions = self.db.query(Transaction).filter(
            Transaction.franchise_id == location.franchise_id,
            Transaction.status == TransactionStatus.COMPLETED,
            Transaction.created_at >= now - ANALYSIS_WINDOW,
        ).all()

        slow_days = slowest_days(transactions)
        avg_price = average_service_price(transactions)
        inactive_count = self.db.query(Client).filter(
            Client.franchise_id == location.franchise_id,
            Client.last_visit < now - INACTIVE_AFTER,
            Client.phone.isnot(None),
        ).count()

        def suggestion(**fields) -> DealSuggestion:
            return DealSuggestion(
                location_id=location.id,
                franchise_id=location.franchise_id,
                week_of=week_of,
                discount_type="FIXED_AMOUNT",
                status="PENDING",
                **fields,
            )

        suggestions = [
            suggestion(
                deal_type="SLOW_DAY",
                title=f"Boost {' & '.join(day.title() for day in slow_days)}",
                description="Offer customers an incentive to visit on your slower days",
                reasoning=f"{' and '.join(slow_days)} had the fewest sales over the last 4 weeks",
                discount_value=discount_for_price(avg_price),
                price_floor=to_money(avg_price * Decimal("0.85")),
                min_spend=SLOW_DAY_MIN_SPEND,
                valid_days=slow_days,
                start_time="10:00",
                end_time="14:00",
                audience_count=0,
            ),
        ]
        if inactive_count:
            suggestions.append(suggestion(
                deal_type="WIN_BACK",
                title=f"Bring Back {inactive_count}+ Inactive Customers",
                description="Re-engage customers who haven't visited in 35+ days",
                reasoning=f"{inactive_count} customers with a phone number have not visited in 35 days",
                discount_value=WIN_BACK_DISCOUNT,
                price_floor=to_money(avg_price * Decimal("0.90")),
                valid_days=[],
                audience_count=inactive_count,
            ))
        suggestions.append(suggestion(
            deal_type="REBOOK",
            title="Increase Repeat Visits",
            description="Rebook within 7 days and get a discount on next visit",
            discount_value=REBOOK_DISCOUNT,
            valid_days=[],
            audience_count=0,
        ))

        self.db.add_all(suggestions)
        self.db.commit()
        for item in suggestions:
            self.db.refresh(item)
        logger.info(f"Generated {len(suggestions)} deal suggestions for location {location.id}")
        return suggestions

    def get(self, suggestion_id: int) -> DealSuggestion:
        suggestion = self.db.query(DealSuggestion).filter(DealSuggestion.id == suggestion_id).first()
        if suggestion is None:
            raise DealNotFound("Suggestion not found")
        return suggestion

    def set_status(self, suggestion: DealSuggestion, new_status: str) -> DealSuggestion:
        if new_status not in ("ACCEPTED", "DISMISSED"):
            raise ValueError("Status must be ACCEPTED or DISMISSED")
        suggestion.status = new_status
        self.db.commit()
        self.db.refresh(suggestion)
        return suggestion
