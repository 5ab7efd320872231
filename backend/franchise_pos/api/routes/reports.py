"""Report routes: z-report, daily summary, discount audit and staff earnings."""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Literal, Optional, Tuple

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import Response

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, TokenData, UserRole
from franchise_pos.core.tenancy import (
    accessible_franchise_ids,
    get_accessible_location,
    resolve_franchise_id,
)
from franchise_pos.db.base import utcnow
from franchise_pos.db.session import DbSession
from franchise_pos.services.deal_suggestion_service import week_start
from franchise_pos.services.report_service import ReportScope, ReportService, render_z_report_pdf

logger = logging.getLogger(__name__)

router = APIRouter()
franchise_router = APIRouter()

AUDIT_DEFAULT_DAYS = 30
PAYOUT_DEFAULT_DAYS = 30
CASH_CARD_DEFAULT_DAYS = 7


def report_scope(db, current_user: TokenData, location_id: Optional[int] = None) -> ReportScope:
    """Store staff see their location, owners their franchises, the provider everything."""
    if location_id is not None:
        get_accessible_location(db, current_user, location_id)
        return ReportScope(location_id=location_id)
    if current_user.role in (UserRole.MANAGER, UserRole.EMPLOYEE) and current_user.location_id:
        return ReportScope(location_id=current_user.location_id)
    return ReportScope(franchise_ids=accessible_franchise_ids(db, current_user))


@router.get("/z-report")
@limiter.limit("30/minute")
def z_report(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    date: Optional[date] = None,
    location_id: Optional[int] = None,
    format: Literal["json", "pdf"] = "json",
):
    """End-of-day register report, as JSON or a PDF download."""
    day = date or utcnow().date()
    report = ReportService(db).z_report(report_scope(db, current_user, location_id), day)
    if format == "pdf":
        pdf = render_z_report_pdf(report)
        logger.info(f"Z-report PDF for {day} generated by {current_user.email}")
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="z-report-{day.isoformat()}.pdf"'},
        )
    return report


@router.get("/daily")
@limiter.limit("30/minute")
def daily_report(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    date: Optional[date] = None,
    location_id: Optional[int] = None,
):
    """Gross sales, payment breakdown, employee sales, voids and lottery for a day."""
    day = date or utcnow().date()
    return ReportService(db).daily(report_scope(db, current_user, location_id), day)


def report_franchise(db, current_user: TokenData, franchise_id: Optional[int]) -> int:
    if not current_user.can("can_view_reports"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to view reports")
    return resolve_franchise_id(db, current_user, franchise_id)


def report_period(start_date: Optional[date], end_date: Optional[date], default_start) -> Tuple[datetime, datetime]:
    """UTC bounds for a date filter; ``default_start(end)`` fills a missing start."""
    end = datetime.combine(end_date, time.max, tzinfo=timezone.utc) if end_date else utcnow()
    start = datetime.combine(start_date, time.min, tzinfo=timezone.utc) if start_date else default_start(end)
    if start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must be before end_date")
    return start, end


@franchise_router.get("/discount-audit")
@limiter.limit("30/minute")
def discount_audit(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    franchise_id: Optional[int] = None,
):
    """Discounts given over a period, with suspicious ones flagged."""
    franchise_id = report_franchise(db, current_user, franchise_id)
    start, end = report_period(start_date, end_date, lambda end: end - timedelta(days=AUDIT_DEFAULT_DAYS))
    return ReportService(db).discount_audit(franchise_id, start, end)


@franchise_router.get("/earnings-statement")
@limiter.limit("30/minute")
def earnings_statement(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    employee_id: Optional[int] = None,
    franchise_id: Optional[int] = None,
):
    """Commission, tips and refund reversals per staff member, this week by default."""
    franchise_id = report_franchise(db, current_user, franchise_id)
    start, end = report_period(start_date, end_date, week_start)
    return ReportService(db).earnings_statement(franchise_id, start, end, employee_id)


@franchise_router.get("/payout-history")
@limiter.limit("30/minute")
def payout_history(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    employee_id: Optional[int] = None,
    franchise_id: Optional[int] = None,
):
    """Amounts owed per staff member and business date, last 30 days by default."""
    franchise_id = report_franchise(db, current_user, franchise_id)
    start, end = report_period(start_date, end_date, lambda end: end - timedelta(days=PAYOUT_DEFAULT_DAYS))
    return ReportService(db).payout_history(franchise_id, start.date(), end.date(), employee_id)


@franchise_router.get("/cash-card")
@limiter.limit("30/minute")
def cash_card(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    franchise_id: Optional[int] = None,
):
    """Cash against card takings, last 7 days by default."""
    franchise_id = report_franchise(db, current_user, franchise_id)
    start, end = report_period(start_date, end_date, lambda end: end - timedelta(days=CASH_CARD_DEFAULT_DAYS))
    return ReportService(db).cash_card(franchise_id, start, end)
