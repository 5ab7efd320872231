"""Location provisioning, plan limits and the location 360 view."""

import logging
import re
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from franchise_pos.core.security import generate_code
from franchise_pos.core.tenancy import get_or_create_business_config
from franchise_pos.db.base import as_utc, utcnow
from franchise_pos.models.client import Appointment, AppointmentStatus
from franchise_pos.models.inventory import Item
from franchise_pos.models.location import Location, ProvisioningStatus, Station
from franchise_pos.models.tenant import Franchise, Franchisor
from franchise_pos.models.transaction import Transaction, TransactionStatus
from franchise_pos.models.user import User

logger = logging.getLogger(__name__)

RANGE_PRESETS = ("TODAY", "WEEK", "MONTH")
ONLINE_WINDOW = timedelta(minutes=15)
OFFLINE_AFTER = timedelta(hours=24)
HIGH_NO_SHOW_RATE = 15.0
ZERO_SALES_HOUR = 10


class LocationLimitReached(Exception):
    """Franchisor is at the location limit of its plan."""

    def __init__(self, current: int, limit: int, tier: str):
        super().__init__(
            f"Location limit reached. Your {tier} plan allows {limit} store(s). Upgrade to add more."
        )
        self.current = current
        self.limit = limit
        self.tier = tier


def slugify(value: str) -> str:
    slug = re.sub(r"\s+", "-", (value or "").strip().lower())
    slug = re.sub(r"[^\w\-]+", "", slug)
    slug = re.sub(r"-{2,}", "-", slug).strip("-")
    return slug or "store"


def unique_slug(db: Session, model, name: str) -> str:
    """``name`` slugified, suffixed with -1, -2, ... until unused in ``model``."""
    base = slugify(name)
    slug = base
    counter = 1
    while db.query(model.id).filter(model.slug == slug).first():
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def generate_setup_code(db: Session, name: str) -> str:
    """Setup code like ``MAIN-7KQ2``: up to four letters of the name plus a random suffix."""
    prefix = re.sub(r"[^A-Z]", "", (name or "").upper())[:4] or "LOC"
    while True:
        code = f"{prefix}-{generate_code(4)}"
        if not db.query(Location.id).filter(Location.setup_code == code).first():
            return code


def location_count_for_franchisor(db: Session, franchisor_id: int) -> int:
    return db.query(Location).join(Franchise, Franchise.id == Location.franchise_id).filter(
        Franchise.franchisor_id == franchisor_id
    ).count()


def ensure_default_store(db: Session, franchisor: Franchisor) -> None:
    """Give a franchisor without franchises a default franchise and first location."""
    franchise = db.query(Franchise).filter(Franchise.franchisor_id == franchisor.id).order_by(Franchise.id).first()
    created = False
    if franchise is None:
        franchise = Franchise(
            franchisor_id=franchisor.id,
            name=franchisor.name or "My Store",
            slug=unique_slug(db, Franchise, franchisor.name or "store"),
        )
        db.add(franchise)
        db.flush()
        created = True

    if location_count_for_franchisor(db, franchisor.id) == 0:
        name = franchisor.name or "My First Store"
        db.add(Location(
            franchise_id=franchise.id,
            name=name,
            slug=unique_slug(db, Location, name),
            address="Please update your store address",
            setup_code=generate_setup_code(db, name),
            provisioning_status=ProvisioningStatus.PENDING,
        ))
        created = True

    if created:
        db.commit()
        logger.info(f"Created default store for franchisor {franchisor.id}")


def check_location_limit(db: Session, franchisor_id: int) -> None:
    config = get_or_create_business_config(db, franchisor_id)
    current = location_count_for_franchisor(db, franchisor_id)
    limit = config.max_locations or 1
    if current >= limit:
        raise LocationLimitReached(current, limit, config.subscription_tier.value)


def create_location(db: Session, franchise_id: int, name: str, address: str, **fields) -> Location:
    location = Location(
        franchise_id=franchise_id,
        name=name,
        slug=unique_slug(db, Location, name),
        address=address,
        setup_code=generate_setup_code(db, name),
        provisioning_status=ProvisioningStatus.PENDING,
        **{k: v for k, v in fields.items() if v is not None},
    )
    db.add(location)
    db.commit()
    db.refresh(location)
    logger.info(f"Created location {location.id} ({location.slug}) in franchise {franchise_id}")
    return location


def date_range(preset: str, now: Optional[datetime] = None):
    now = now or utcnow()
    if preset == "WEEK":
        return now - timedelta(days=7), now
    if preset == "MONTH":
        return now - timedelta(days=30), now
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc), now


class Location360Service:
    """Header, KPIs, go-live checklist and alerts for one location."""

    def __init__(self, db: Session):
        self.db = db

    def _sum_total(self, location_id: int, start, end, statuses) -> tuple:
        total, count = self.db.query(
            func.coalesce(func.sum(Transaction.total), 0),
            func.count(Transaction.id),
        ).filter(
            Transaction.location_id == location_id,
            Transaction.created_at >= start,
            Transaction.created_at <= end,
            Transaction.status.in_(statuses),
        ).one()
        return Decimal(str(total or 0)), count

    def build(self, location: Location, preset: str = "TODAY", now: Optional[datetime] = None) -> dict:
        now = now or utcnow()
        start, end = date_range(preset, now)
        sale_statuses = (TransactionStatus.COMPLETED, TransactionStatus.APPROVED)

        stations: List[Station] = [s for s in location.stations if s.is_trusted]
        seen = [as_utc(s.last_seen_at) for s in stations if s.last_seen_at]
        online = [s for s in stations if s.last_seen_at and now - as_utc(s.last_seen_at) <= ONLINE_WINDOW]
        offline = [s for s in stations if not s.last_seen_at or now - as_utc(s.last_seen_at) > OFFLINE_AFTER]

        gross, count = self._sum_total(location.id, start, end, sale_statuses)
        refunds, _ = self._sum_total(
            location.id, start, end, (TransactionStatus.REFUNDED, TransactionStatus.CANCELLED)
        )
        refunds = abs(refunds)
        net = gross - refunds
        tips = self.db.query(func.coalesce(func.sum(Transaction.tip), 0)).filter(
            Transaction.location_id == location.id,
            Transaction.created_at >= start,
            Transaction.created_at <= end,
            Transaction.status.in_(sale_statuses),
        ).scalar()

        sales_query = self.db.query(Transaction).filter(
            Transaction.location_id == location.id,
            Transaction.created_at >= start,
            Transaction.created_at <= end,
            Transaction.status.in_(sale_statuses),
        )
        walk_ins = sales_query.filter(Transaction.client_id.is_(None)).count()
        unique_customers = self.db.query(func.count(func.distinct(Transaction.client_id))).filter(
            Transaction.location_id == location.id,
            Transaction.created_at >= start,
            Transaction.created_at <= end,
            Transaction.status.in_(sale_statuses),
            Transaction.client_id.isnot(None),
        ).scalar()

        by_status = dict(self.db.query(Appointment.status, func.count(Appointment.id)).filter(
            Appointment.location_id == location.id,
            Appointment.start_time >= start,
            Appointment.start_time <= end,
        ).group_by(Appointment.status).all())
        booked = sum(by_status.values())
        no_shows = by_status.get(AppointmentStatus.NO_SHOW, 0)
        no_show_rate = no_shows / booked * 100 if booked else 0.0

        alerts = []
        if preset == "TODAY" and now.hour >= ZERO_SALES_HOUR and count == 0:
            alerts.append({"type": "ZERO_SALES", "severity": "WARNING", "message": "No sales recorded today"})
        if booked and no_show_rate > HIGH_NO_SHOW_RATE:
            alerts.append({
                "type": "HIGH_NO_SHOW",
                "severity": "WARNING",
                "message": f"No-show rate is {no_show_rate:.1f}%",
            })
        if offline:
            alerts.append({
                "type": "DEVICE_OFFLINE",
                "severity": "CRITICAL",
                "message": f"{len(offline)} station(s) offline",
            })

        checklist = None
        if location.provisioning_status != ProvisioningStatus.ACTIVE:
            has_employees = self.db.query(User.id).filter(User.location_id == location.id).first() is not None
            has_inventory = self.db.query(Item.id).filter(Item.location_id == location.id).first() is not None
            has_sale = self.db.query(Transaction.id).filter(Transaction.location_id == location.id).first() is not None
            checklist = {
                "stations_paired": bool(stations),
                "employees_added": has_employees,
                "inventory_loaded": has_inventory,
                "first_sale": has_sale,
            }

        return {
            "header": {
                "id": location.id,
                "name": location.name,
                "slug": location.slug,
                "address": location.address,
                "city": location.city,
                "state": location.state,
                "zip_code": location.zip_code,
                "phone": location.phone,
                "provisioning_status": location.provisioning_status.value,
                "franchise": location.franchise.name if location.franchise else None,
                "devices": {
                    "paired": len(stations),
                    "online": len(online),
                    "last_seen": max(seen).isoformat() if seen else None,
                },
            },
            "date_range": {"preset": preset, "from": start.isoformat(), "to": end.isoformat()},
            "kpis": {
                "gross_sales": round(float(gross), 2),
                "refunds": round(float(refunds), 2),
                "net_sales": round(float(net), 2),
                "tips": round(float(tips or 0), 2),
                "transaction_count": count,
                "avg_ticket": round(float(net / count), 2) if count else 0.0,
                "walk_ins": walk_ins,
                "unique_customers": unique_customers or 0,
                "appointments": {
                    "booked": booked,
                    "completed": by_status.get(AppointmentStatus.COMPLETED, 0),
                    "no_shows": no_shows,
                    "cancelled": by_status.get(AppointmentStatus.CANCELLED, 0),
                },
                "no_show_rate": round(no_show_rate, 1),
            },
            "go_live_checklist": checklist,
            "alerts": alerts,
        }
