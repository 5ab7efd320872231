"""End-of-day, audit and staff earnings reports.

All sales figures are sums of the amounts frozen on transactions at
checkout; nothing here recomputes payouts.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from io import BytesIO
from typing import List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from franchise_pos.core.rbac import UserRole
from franchise_pos.core.responses import money
from franchise_pos.db.base import as_utc, utcnow
from franchise_pos.models.location import Location
from franchise_pos.models.transaction import (
    CashDrawerSession,
    LineItemType,
    LotteryTransaction,
    LotteryType,
    PaymentMethod,
    Transaction,
    TransactionLineItem,
    TransactionStatus,
)
from franchise_pos.models.user import CompensationPlan, User

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = (TransactionStatus.COMPLETED, TransactionStatus.APPROVED)
REFUND_STATUSES = (TransactionStatus.REFUNDED, TransactionStatus.CANCELLED)
CARD_METHODS = (PaymentMethod.CARD, PaymentMethod.CREDIT, PaymentMethod.DEBIT)
ZERO = Decimal("0")


@dataclass
class ReportScope:
    """Which transactions a report covers: one location, some franchises, or everything."""

    location_id: Optional[int] = None
    franchise_ids: Optional[List[int]] = None

    def apply(self, query, location_column, franchise_column):
        if self.location_id is not None:
            return query.filter(location_column == self.location_id)
        if self.franchise_ids is not None:
            return query.filter(franchise_column.in_(self.franchise_ids))
        return query


def day_bounds(day: date):
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def _sum(values) -> Decimal:
    return sum((Decimal(str(v or 0)) for v in values), ZERO)


def discount_percent(subtotal: Decimal, discount: Decimal) -> float:
    """Discount as a percentage of ``subtotal + discount``; 0 when there is no subtotal."""
    if subtotal <= 0:
        return 0.0
    return float(discount / (subtotal + discount) * 100)


def discount_range(pct: float) -> str:
    if pct <= 10:
        return "1-10%"
    if pct <= 25:
        return "11-25%"
    if pct <= 50:
        return "26-50%"
    if pct <= 75:
        return "51-75%"
    return "76-100%"


def is_suspicious_discount(pct: float, amount: Decimal) -> bool:
    return pct >= 50 or amount >= 50


class ReportService:
    def __init__(self, db: Session):
        self.db = db

    def _transactions(self, scope: ReportScope, start: datetime, end: datetime, statuses):
        query = self.db.query(Transaction).filter(
            Transaction.created_at >= start,
            Transaction.created_at < end,
            Transaction.status.in_(statuses),
        )
        query = scope.apply(query, Transaction.location_id, Transaction.franchise_id)
        return query.order_by(Transaction.created_at, Transaction.id).all()

    def _lottery(self, scope: ReportScope, start: datetime, end: datetime) -> dict:
        query = self.db.query(LotteryTransaction).filter(
            LotteryTransaction.created_at >= start,
            LotteryTransaction.created_at < end,
        )
        rows = scope.apply(query, LotteryTransaction.location_id, LotteryTransaction.franchise_id).all()
        sales = [r for r in rows if r.type == LotteryType.SALE]
        payouts = [r for r in rows if r.type == LotteryType.PAYOUT]
        sales_total = _sum(r.amount for r in sales)
        payouts_total = _sum(r.amount for r in payouts)
        return {
            "sales": sales_total,
            "sales_count": len(sales),
            "payouts": payouts_total,
            "payouts_count": len(payouts),
            "net": sales_total - payouts_total,
        }

    def _latest_drawer(self, scope: ReportScope, start: datetime, end: datetime) -> Optional[CashDrawerSession]:
        query = self.db.query(CashDrawerSession).filter(
            CashDrawerSession.start_time >= start,
            CashDrawerSession.start_time < end,
        )
        if scope.location_id is not None:
            query = query.filter(CashDrawerSession.location_id == scope.location_id)
        elif scope.franchise_ids is not None:
            query = query.join(Location, Location.id == CashDrawerSession.location_id).filter(
                Location.franchise_id.in_(scope.franchise_ids)
            )
        return query.order_by(CashDrawerSession.start_time.desc(), CashDrawerSession.id.desc()).first()

    # ========== Z-REPORT ==========

    def z_report(self, scope: ReportScope, day: date) -> dict:
        start, end = day_bounds(day)
        sales = self._transactions(scope, start, end, COMPLETED_STATUSES)
        refunds = self._transactions(scope, start, end, REFUND_STATUSES)
        voids = self._transactions(scope, start, end, (TransactionStatus.VOIDED,))

        cash = [t for t in sales if t.payment_method == PaymentMethod.CASH]
        card = [t for t in sales if t.payment_method in CARD_METHODS]
        total_sales = _sum(t.total for t in sales)
        cash_sales = _sum(t.total for t in cash)
        card_sales = _sum(t.total for t in card)

        refund_total = _sum(abs(t.total) for t in refunds)
        refund_tax = _sum(abs(t.tax) for t in refunds)
        void_total = _sum(t.total for t in voids)

        lottery = self._lottery(scope, start, end)

        drawer = self._latest_drawer(scope, start, end)
        opening = Decimal(str(drawer.starting_cash)) if drawer else ZERO
        closing = Decimal(str(drawer.ending_cash)) if drawer and drawer.ending_cash is not None else None
        expected = opening + cash_sales + lottery["sales"] - lottery["payouts"]

        items = defaultdict(lambda: {"quantity": 0, "sales": ZERO})
        for transaction in sales:
            for line in transaction.line_items:
                entry = items[line.description or "Unknown Item"]
                entry["quantity"] += line.quantity
                entry["sales"] += Decimal(str(line.total))
        top_items = sorted(
            ({"name": name, "quantity": v["quantity"], "sales": money(v["sales"])} for name, v in items.items()),
            key=lambda i: i["sales"],
            reverse=True,
        )[:10]

        subtotal = _sum(t.subtotal for t in sales)
        tax = _sum(t.tax for t in sales)

        return {
            "date": day.isoformat(),
            "summary": {
                "total_sales": money(total_sales),
                "cash_sales": money(cash_sales),
                "card_sales": money(card_sales),
                "cash_count": len(cash),
                "card_count": len(card),
                "total_transactions": len(sales),
                "refund_total": money(refund_total),
                "refund_count": len(refunds),
                "refund_tax": money(refund_tax),
                "void_total": money(void_total),
                "void_count": len(voids),
                "net_sales": money(total_sales - refund_total),
            },
            "cash_reconciliation": {
                "opening": money(opening),
                "sales": money(cash_sales),
                "lottery_sales": money(lottery["sales"]),
                "lottery_payouts": money(lottery["payouts"]),
                "expected": money(expected),
                "actual": money(closing) if closing is not None else None,
                "variance": money(closing - expected) if closing is not None else 0.0,
            },
            "lottery": {
                "sales": money(lottery["sales"]),
                "sales_count": lottery["sales_count"],
                "payouts": money(lottery["payouts"]),
                "payouts_count": lottery["payouts_count"],
                "net": money(lottery["net"]),
            },
            "top_items": top_items,
            "tax_summary": {
                "subtotal": money(subtotal),
                "tax": money(tax),
                "total": money(subtotal + tax),
            },
            "refunds": {
                "total": money(refund_total),
                "count": len(refunds),
                "tax": money(refund_tax),
            },
        }

    # ========== DAILY REPORT ==========

    def daily(self, scope: ReportScope, day: date) -> dict:
        start, end = day_bounds(day)
        sales = self._transactions(scope, start, end, COMPLETED_STATUSES)
        voids = self._transactions(scope, start, end, (TransactionStatus.VOIDED,))
        refunds = self._transactions(scope, start, end, REFUND_STATUSES)

        gross = _sum(t.total for t in sales)
        count = len(sales)

        breakdown = {key: {"count": 0, "total": ZERO} for key in ("CASH", "EBT", "CARD", "OTHER")}
        for transaction in sales:
            method = transaction.payment_method
            if method == PaymentMethod.CASH:
                key = "CASH"
            elif method == PaymentMethod.EBT:
                key = "EBT"
            elif method in CARD_METHODS:
                key = "CARD"
            else:
                key = "OTHER"
            breakdown[key]["count"] += 1
            breakdown[key]["total"] += Decimal(str(transaction.total))

        employees = {}
        for transaction in sales:
            name = transaction.employee.name if transaction.employee and transaction.employee.name else "Unknown"
            entry = employees.setdefault(name, {"name": name, "sales": ZERO, "transactions": 0})
            entry["sales"] += Decimal(str(transaction.total))
            entry["transactions"] += 1
        employee_sales = sorted(employees.values(), key=lambda e: e["sales"], reverse=True)

        lottery = self._lottery(scope, start, end)

        return {
            "date": day.isoformat(),
            "gross_sales": money(gross),
            "tax_collected": money(_sum(t.tax for t in sales)),
            "transaction_count": count,
            "average_ticket": money(gross / count) if count else 0.0,
            "payment_breakdown": {
                key: {"count": v["count"], "total": money(v["total"])} for key, v in breakdown.items()
            },
            "employee_sales": [
                {"name": e["name"], "sales": money(e["sales"]), "transactions": e["transactions"]}
                for e in employee_sales
            ],
            "voids": {"count": len(voids), "total": money(_sum(t.total for t in voids))},
            "refunds": {"count": len(refunds), "total": money(_sum(abs(t.total) for t in refunds))},
            "lottery": {
                "sales": money(lottery["sales"]),
                "sales_count": lottery["sales_count"],
                "payouts": money(lottery["payouts"]),
                "payouts_count": lottery["payouts_count"],
                "net": money(lottery["net"]),
            },
        }

    # ========== DISCOUNT AUDIT ==========

    def discount_audit(self, franchise_id: int, start: datetime, end: datetime) -> dict:
        transactions = self.db.query(Transaction).filter(
            Transaction.franchise_id == franchise_id,
            Transaction.created_at >= start,
            Transaction.created_at <= end,
            Transaction.discount > 0,
        ).order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()

        total_discount = ZERO
        by_range = {label: 0 for label in ("1-10%", "11-25%", "26-50%", "51-75%", "76-100%")}
        by_employee = {}
        suspicious = []

        for transaction in transactions:
            discount = Decimal(str(transaction.discount))
            subtotal = Decimal(str(transaction.subtotal))
            pct = discount_percent(subtotal, discount)
            total_discount += discount
            by_range[discount_range(pct)] += 1

            employee = transaction.employee
            employee_name = employee.name if employee and employee.name else "Unknown"
            if is_suspicious_discount(pct, discount):
                suspicious.append({
                    "transaction_id": transaction.id,
                    "date": as_utc(transaction.created_at).isoformat(),
                    "employee": employee_name,
                    "original_amount": money(subtotal + discount),
                    "discount_amount": money(discount),
                    "discount_percent": round(pct, 2),
                    "final_amount": money(subtotal),
                })

            if employee is not None:
                entry = by_employee.setdefault(employee.id, {
                    "id": employee.id,
                    "name": employee_name,
                    "discount_count": 0,
                    "total_discount_amount": ZERO,
                })
                entry["discount_count"] += 1
                entry["total_discount_amount"] += discount

        employees = sorted(by_employee.values(), key=lambda e: e["total_discount_amount"], reverse=True)

        total_transactions = self.db.query(Transaction).filter(
            Transaction.franchise_id == franchise_id,
            Transaction.created_at >= start,
            Transaction.created_at <= end,
        ).count()
        with_discount = len(transactions)

        return {
            "summary": {
                "total_transactions": total_transactions,
                "transactions_with_discount": with_discount,
                "discount_rate": round(with_discount / total_transactions * 100, 2) if total_transactions else 0.0,
                "total_discount_amount": money(total_discount),
                "avg_discount_per_transaction": money(total_discount / with_discount) if with_discount else 0.0,
            },
            "by_employee": [
                {
                    "id": e["id"],
                    "name": e["name"],
                    "discount_count": e["discount_count"],
                    "total_discount_amount": money(e["total_discount_amount"]),
                    "avg_discount": money(e["total_discount_amount"] / e["discount_count"]),
                }
                for e in employees
            ],
            "by_discount_range": by_range,
            "suspicious_discounts": suspicious[:20],
            "recent_discounts": [
                {
                    "id": t.id,
                    "date": as_utc(t.created_at).isoformat(),
                    "employee": t.employee.name if t.employee and t.employee.name else "Unknown",
                    "subtotal": money(t.subtotal),
                    "discount": money(t.discount),
                    "total": money(t.total),
                    "items": [line.description for line in t.line_items],
                }
                for t in transactions[:20]
            ],
            "date_range": {"start": start.isoformat(), "end": end.isoformat()},
            "generated_at": utcnow().isoformat(),
        }

    # ========== STAFF EARNINGS ==========

    def _staff_lines(self, franchise_id: int, employee_id: Optional[int] = None):
        """(line, transaction) pairs for lines worked by a staff member, sales and refunds."""
        query = self.db.query(TransactionLineItem, Transaction).join(
            Transaction, Transaction.id == TransactionLineItem.transaction_id
        ).filter(
            Transaction.franchise_id == franchise_id,
            Transaction.status.in_(COMPLETED_STATUSES + REFUND_STATUSES),
            TransactionLineItem.staff_id.isnot(None),
        )
        if employee_id is not None:
            query = query.filter(TransactionLineItem.staff_id == employee_id)
        return query

    def _staff(self, franchise_id: int, staff_ids, employee_id: Optional[int] = None) -> List[User]:
        """Employees of the franchise plus anyone else who worked a line."""
        query = self.db.query(User).filter(
            or_(
                and_(User.franchise_id == franchise_id, User.role == UserRole.EMPLOYEE),
                User.id.in_(staff_ids),
            )
        )
        if employee_id is not None:
            query = query.filter(User.id == employee_id)
        return query.order_by(User.name, User.id).all()

    def _compensation_type(self, user: User) -> Optional[str]:
        plan = self.db.query(CompensationPlan).filter(
            CompensationPlan.user_id == user.id
        ).order_by(CompensationPlan.effective_from.desc(), CompensationPlan.id.desc()).first()
        return plan.compensation_type if plan else None

    def earnings_statement(self, franchise_id: int, start: datetime, end: datetime,
                           employee_id: Optional[int] = None) -> dict:
        """Per staff member: revenue, commission, tips and refund reversals from line snapshots."""
        rows = self._staff_lines(franchise_id, employee_id).filter(
            Transaction.created_at >= start,
            Transaction.created_at <= end,
        ).order_by(Transaction.created_at, TransactionLineItem.id).all()

        by_staff = defaultdict(list)
        for line, transaction in rows:
            by_staff[line.staff_id].append((line, transaction))

        statements = []
        for employee in self._staff(franchise_id, list(by_staff), employee_id):
            lines = by_staff.get(employee.id, [])
            sales = [(item, t) for item, t in lines if t.status in COMPLETED_STATUSES]
            refunds = [(item, t) for item, t in lines if t.status in REFUND_STATUSES]

            service_revenue = _sum(item.total - item.discount for item, _ in sales if item.type == LineItemType.SERVICE)
            product_revenue = _sum(item.total - item.discount for item, _ in sales if item.type == LineItemType.PRODUCT)
            commission = _sum(item.commission_amount for item, _ in sales)
            cash_tips = _sum(item.tip_allocated for item, t in sales if t.payment_method == PaymentMethod.CASH)
            card_tips = _sum(item.tip_allocated for item, t in sales if t.payment_method != PaymentMethod.CASH)
            reversals = -_sum(item.commission_amount + item.tip_allocated for item, _ in refunds)

            services = {}
            for line, _ in sales:
                if line.type != LineItemType.SERVICE:
                    continue
                entry = services.setdefault(line.description, {
                    "name": line.description,
                    "quantity": 0,
                    "price": money(line.price),
                    "total": ZERO,
                    "commission": ZERO,
                })
                entry["quantity"] += line.quantity
                entry["total"] += Decimal(str(line.total - line.discount))
                entry["commission"] += Decimal(str(line.commission_amount))

            transactions = {}
            for line, transaction in lines:
                entry = transactions.setdefault(transaction.id, {
                    "id": transaction.id,
                    "date": as_utc(transaction.created_at).isoformat(),
                    "total": money(transaction.total),
                    "tip": ZERO,
                    "payment_method": transaction.payment_method.value,
                    "status": transaction.status.value,
                    "item_count": 0,
                })
                entry["tip"] += Decimal(str(line.tip_allocated))
                entry["item_count"] += 1

            statements.append({
                "employee": {"id": employee.id, "name": employee.name, "email": employee.email},
                "compensation_type": self._compensation_type(employee),
                "summary": {
                    "total_transactions": len({t.id for _, t in sales}),
                    "service_revenue": money(service_revenue),
                    "product_revenue": money(product_revenue),
                    "total_revenue": money(service_revenue + product_revenue),
                    "commission": money(commission),
                    "owner_amount": money(_sum(item.owner_amount for item, _ in sales)),
                    "tips": {
                        "total": money(cash_tips + card_tips),
                        "cash": money(cash_tips),
                        "card": money(card_tips),
                    },
                    "refund_reversals": money(reversals),
                    "net_earnings": money(commission + cash_tips + card_tips - reversals),
                },
                "services_performed": [
                    {**s, "total": money(s["total"]), "commission": money(s["commission"])}
                    for s in services.values()
                ],
                "transactions": [{**t, "tip": money(t["tip"])} for t in transactions.values()],
            })

        return {
            "data": statements,
            "date_range": {"start": start.isoformat(), "end": end.isoformat()},
            "generated_at": utcnow().isoformat(),
        }

    def payout_history(self, franchise_id: int, start: date, end: date,
                       employee_id: Optional[int] = None) -> dict:
        """What each staff member is owed per business date. Refund lines count negative."""
        rows = self._staff_lines(franchise_id, employee_id).filter(
            TransactionLineItem.business_date >= start,
            TransactionLineItem.business_date <= end,
        ).all()

        groups = {}
        for line, _ in rows:
            entry = groups.setdefault((line.business_date, line.staff_id), {
                "commission": ZERO, "tips": ZERO, "owner": ZERO, "lines": 0,
            })
            entry["commission"] += Decimal(str(line.commission_amount))
            entry["tips"] += Decimal(str(line.tip_allocated))
            entry["owner"] += Decimal(str(line.owner_amount))
            entry["lines"] += 1

        staff_ids = {staff_id for _, staff_id in groups}
        users = {u.id: u for u in self.db.query(User).filter(User.id.in_(staff_ids)).all()}
        compensation = {staff_id: self._compensation_type(users[staff_id]) for staff_id in users}

        # newest business date first, then by name
        ordered = sorted(groups.items(), key=lambda item: users[item[0][1]].name or "")
        ordered.sort(key=lambda item: item[0][0], reverse=True)
        payouts = []
        for (business_date, staff_id), entry in ordered:
            employee = users[staff_id]
            payouts.append({
                "business_date": business_date.isoformat(),
                "employee": {"id": employee.id, "name": employee.name, "email": employee.email},
                "compensation_type": compensation[staff_id],
                "commission": money(entry["commission"]),
                "tips": money(entry["tips"]),
                "owner_amount": money(entry["owner"]),
                "total_payout": money(entry["commission"] + entry["tips"]),
                "line_count": entry["lines"],
                "status": "PENDING",
            })

        total_commission = _sum(e["commission"] for e in groups.values())
        total_tips = _sum(e["tips"] for e in groups.values())
        return {
            "data": payouts,
            "summary": {
                "total_employees": len(staff_ids),
                "total_commissions": money(total_commission),
                "total_tips": money(total_tips),
                "total_owner_amount": money(_sum(e["owner"] for e in groups.values())),
                "total_payouts": money(total_commission + total_tips),
            },
            "date_range": {"start": start.isoformat(), "end": end.isoformat()},
            "generated_at": utcnow().isoformat(),
        }

    # ========== CASH VS CARD ==========

    def cash_card(self, franchise_id: int, start: datetime, end: datetime) -> dict:
        """Cash against every other tender, overall, per staff member and per day.

        Refunds are included with their negative totals.
        """
        transactions = self.db.query(Transaction).filter(
            Transaction.franchise_id == franchise_id,
            Transaction.created_at >= start,
            Transaction.created_at <= end,
            Transaction.status.in_(COMPLETED_STATUSES + REFUND_STATUSES),
        ).order_by(Transaction.created_at, Transaction.id).all()

        def bucket() -> dict:
            return {"cash_revenue": ZERO, "card_revenue": ZERO, "cash_tips": ZERO, "card_tips": ZERO,
                    "cash_count": 0, "card_count": 0}

        totals = bucket()
        by_staff = defaultdict(bucket)
        by_day = defaultdict(bucket)

        for transaction in transactions:
            kind = "cash" if transaction.payment_method == PaymentMethod.CASH else "card"
            for entry in (totals, by_day[as_utc(transaction.created_at).date()]):
                entry[f"{kind}_revenue"] += Decimal(str(transaction.total))
                entry[f"{kind}_tips"] += Decimal(str(transaction.tip))
                entry[f"{kind}_count"] += 1

            worked = set()
            for line in transaction.line_items:
                if line.staff_id is None:
                    continue
                entry = by_staff[line.staff_id]
                entry[f"{kind}_revenue"] += Decimal(str(line.total - line.discount))
                entry[f"{kind}_tips"] += Decimal(str(line.tip_allocated))
                worked.add(line.staff_id)
            for staff_id in worked:
                by_staff[staff_id][f"{kind}_count"] += 1

        def split(entry: dict) -> dict:
            return {key: money(value) if isinstance(value, Decimal) else value for key, value in entry.items()}

        def percent(part: Decimal, whole: Decimal) -> float:
            return round(float(part / whole * 100), 2) if whole else 0.0

        revenue = totals["cash_revenue"] + totals["card_revenue"]
        tips = totals["cash_tips"] + totals["card_tips"]
        names = {
            u.id: u.name or "Unknown"
            for u in self.db.query(User).filter(User.id.in_(list(by_staff))).all()
        }
        staff_rows = sorted(
            ({"id": staff_id, "name": names.get(staff_id, "Unknown"), **split(entry)}
             for staff_id, entry in by_staff.items()),
            key=lambda row: row["cash_revenue"] + row["card_revenue"],
            reverse=True,
        )

        return {
            "summary": {
                "total_revenue": money(revenue),
                "cash": {
                    "revenue": money(totals["cash_revenue"]),
                    "revenue_percent": percent(totals["cash_revenue"], revenue),
                    "tips": money(totals["cash_tips"]),
                    "tips_percent": percent(totals["cash_tips"], tips),
                    "transaction_count": totals["cash_count"],
                },
                "card": {
                    "revenue": money(totals["card_revenue"]),
                    "revenue_percent": percent(totals["card_revenue"], revenue),
                    "tips": money(totals["card_tips"]),
                    "tips_percent": percent(totals["card_tips"], tips),
                    "transaction_count": totals["card_count"],
                },
                "total_tips": money(tips),
            },
            "by_staff": staff_rows,
            "by_day": [
                {"date": day.isoformat(), **split(entry)} for day, entry in sorted(by_day.items())
            ],
            "date_range": {"start": start.isoformat(), "end": end.isoformat()},
            "generated_at": utcnow().isoformat(),
        }


def render_z_report_pdf(report: dict, title: str = "Z-Report") -> bytes:
    """Render a z-report dict to a PDF document."""
    output = BytesIO()
    doc = SimpleDocTemplate(output, pagesize=A4, topMargin=2 * cm, bottomMargin=2 * cm)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "Title",
        parent=styles["Heading1"],
        fontSize=18,
        spaceAfter=20,
    )

    def section(heading: str, rows: list) -> list:
        table = Table(rows, colWidths=[9 * cm, 5 * cm])
        table.setStyle(TableStyle([
            ("ALIGN", (1, 0), (1, -1), "RIGHT"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ]))
        return [Paragraph(heading, styles["Heading3"]), table, Spacer(1, 0.5 * cm)]

    summary = report["summary"]
    recon = report["cash_reconciliation"]
    lottery = report["lottery"]
    taxes = report["tax_summary"]

    elements = [
        Paragraph(title, title_style),
        Paragraph(f"<b>Date:</b> {report['date']}", styles["Normal"]),
        Spacer(1, 0.5 * cm),
    ]
    elements += section("Sales", [
        ["Total sales", f"{summary['total_sales']:.2f}"],
        [f"Cash ({summary['cash_count']})", f"{summary['cash_sales']:.2f}"],
        [f"Card ({summary['card_count']})", f"{summary['card_sales']:.2f}"],
        [f"Refunds ({summary['refund_count']})", f"-{summary['refund_total']:.2f}"],
        [f"Voids ({summary['void_count']})", f"{summary['void_total']:.2f}"],
        ["Net sales", f"{summary['net_sales']:.2f}"],
    ])
    elements += section("Cash Reconciliation", [
        ["Opening", f"{recon['opening']:.2f}"],
        ["Cash sales", f"{recon['sales']:.2f}"],
        ["Lottery sales", f"{recon['lottery_sales']:.2f}"],
        ["Lottery payouts", f"-{recon['lottery_payouts']:.2f}"],
        ["Expected", f"{recon['expected']:.2f}"],
        ["Actual", f"{recon['actual']:.2f}" if recon["actual"] is not None else "-"],
        ["Variance", f"{recon['variance']:.2f}"],
    ])
    elements += section("Lottery", [
        [f"Sales ({lottery['sales_count']})", f"{lottery['sales']:.2f}"],
        [f"Payouts ({lottery['payouts_count']})", f"{lottery['payouts']:.2f}"],
        ["Net", f"{lottery['net']:.2f}"],
    ])
    elements += section("Tax", [
        ["Subtotal", f"{taxes['subtotal']:.2f}"],
        ["Tax", f"{taxes['tax']:.2f}"],
        ["Total", f"{taxes['total']:.2f}"],
    ])

    if report["top_items"]:
        table_data = [["Item", "Qty", "Sales"]]
        for item in report["top_items"]:
            table_data.append([str(item["name"])[:40], str(item["quantity"]), f"{item['sales']:.2f}"])
        table = Table(table_data, colWidths=[9 * cm, 2 * cm, 3 * cm])
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ]))
        elements += [Paragraph("Top Items", styles["Heading3"]), table]

    doc.build(elements)
    logger.debug(f"Rendered z-report PDF for {report['date']}")
    return output.getvalue()
