"""Tests for deal suggestions, end-of-day reports, the discount audit and the audit trail."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from franchise_pos.core.rbac import UserRole
from franchise_pos.db.base import utcnow
from franchise_pos.main import audit_target
from franchise_pos.models.client import Client
from franchise_pos.models.location import Location
from franchise_pos.models.transaction import CashDrawerSession, LotteryType, PaymentMethod, Transaction
from franchise_pos.models.user import CompensationPlan
from franchise_pos.services.audit_service import log_action
from franchise_pos.services.checkout_service import CheckoutLine, CheckoutService
from franchise_pos.services.deal_suggestion_service import (
    average_service_price,
    discount_for_price,
    slowest_days,
    week_start,
)
from franchise_pos.services.report_service import (
    discount_percent,
    discount_range,
    is_suspicious_discount,
)
from franchise_pos.services.shift_service import LotteryService

API = "/api/v1"


def _sell(db, location, employee, price, method=PaymentMethod.CASH, description="Haircut", discount="0", tip="0"):
    return CheckoutService(db).checkout(
        franchise_id=location.franchise_id,
        location_id=location.id,
        employee_id=employee.id,
        lines=[CheckoutLine(description=description, price=Decimal(price), discount=Decimal(discount),
                            staff_id=employee.id)],
        payment_method=method,
        tip=Decimal(tip),
    )


# ============== Deal suggestions ==============

class TestDealRules:
    def test_discount_bands(self):
        assert discount_for_price(Decimal("25")) == Decimal("5")
        assert discount_for_price(Decimal("30")) == Decimal("5")
        assert discount_for_price(Decimal("45")) == Decimal("10")
        assert discount_for_price(Decimal("100")) == Decimal("15")
        assert discount_for_price(Decimal("150")) == Decimal("20")

    def test_week_starts_sunday(self):
        wednesday = datetime(2026, 3, 18, 16, 30, tzinfo=timezone.utc)
        assert week_start(wednesday) == datetime(2026, 3, 15, tzinfo=timezone.utc)
        sunday = datetime(2026, 3, 15, 9, 0, tzinfo=timezone.utc)
        assert week_start(sunday) == datetime(2026, 3, 15, tzinfo=timezone.utc)

    def test_slowest_days(self):
        assert slowest_days([]) == ["SUNDAY", "MONDAY"]
        busy = [Transaction(created_at=datetime(2026, 3, day, 12, tzinfo=timezone.utc))
                for day in (15, 16, 18, 19, 21)]
        assert slowest_days(busy) == ["TUESDAY", "FRIDAY"]

    def test_average_price_defaults_without_services(self):
        assert average_service_price([]) == Decimal("50")


class TestDealRoutes:
    def test_generated_on_first_request(self, client, location, manager_headers):
        res = client.get(f"{API}/deals/suggestions?location_id={location.id}", headers=manager_headers)
        assert res.status_code == 200
        items = res.json()["items"]
        assert [s["deal_type"] for s in items] == ["REBOOK", "SLOW_DAY"]
        slow = items[1]
        assert slow["discount_value"] == 10.0
        assert slow["price_floor"] == 42.5
        assert slow["min_spend"] == 60.0
        assert slow["valid_days"] == ["SUNDAY", "MONDAY"]
        assert slow["status"] == "PENDING"

        again = client.get(f"{API}/deals/suggestions?location_id={location.id}", headers=manager_headers)
        assert [s["id"] for s in again.json()["items"]] == [s["id"] for s in items]

    def test_win_back_for_inactive_clients(self, client, db_session, franchise, location, manager_headers):
        db_session.add(Client(franchise_id=franchise.id, first_name="Gone", phone="5550003333",
                              last_visit=utcnow() - timedelta(days=40)))
        db_session.add(Client(franchise_id=franchise.id, first_name="No Phone", last_visit=utcnow() - timedelta(days=40)))
        db_session.commit()
        res = client.get(f"{API}/deals/suggestions?location_id={location.id}", headers=manager_headers)
        win_back = [s for s in res.json()["items"] if s["deal_type"] == "WIN_BACK"]
        assert len(win_back) == 1
        assert win_back[0]["audience_count"] == 1

    def test_accept_then_regenerate_keeps_decisions(self, client, location, manager_headers):
        items = client.get(f"{API}/deals/suggestions?location_id={location.id}", headers=manager_headers).json()["items"]
        res = client.patch(f"{API}/deals/suggestions/{items[0]['id']}", json={"status": "ACCEPTED"},
                           headers=manager_headers)
        assert res.json()["status"] == "ACCEPTED"

        res = client.post(f"{API}/deals/suggestions", json={"location_id": location.id}, headers=manager_headers)
        assert res.json()["total"] == 2

        res = client.get(f"{API}/deals/suggestions?location_id={location.id}", headers=manager_headers)
        statuses = sorted(s["status"] for s in res.json()["items"])
        assert statuses == ["ACCEPTED", "PENDING", "PENDING"]

    def test_employee_cannot_regenerate(self, client, location, employee_headers):
        res = client.post(f"{API}/deals/suggestions", json={"location_id": location.id}, headers=employee_headers)
        assert res.status_code == 403

    def test_status_must_be_a_decision(self, client, location, manager_headers):
        items = client.get(f"{API}/deals/suggestions?location_id={location.id}", headers=manager_headers).json()["items"]
        res = client.patch(f"{API}/deals/suggestions/{items[0]['id']}", json={"status": "PENDING"},
                           headers=manager_headers)
        assert res.status_code == 422

    def test_unknown_suggestion(self, client, manager_headers):
        res = client.patch(f"{API}/deals/suggestions/9999", json={"status": "DISMISSED"}, headers=manager_headers)
        assert res.status_code == 404

    def test_other_location_forbidden(self, client, second_location, manager_headers):
        res = client.get(f"{API}/deals/suggestions?location_id={second_location.id}", headers=manager_headers)
        assert res.status_code == 403


# ============== End-of-day reports ==============

@pytest.fixture
def trading_day(db_session, location, employee_user):
    """Cash 50 and card 30 sales, the card sale refunded, a voided 20 and lottery 10 in / 4 out."""
    db_session.add(CashDrawerSession(location_id=location.id, employee_id=employee_user.id,
                                     starting_cash=Decimal("100")))
    db_session.commit()
    _sell(db_session, location, employee_user, "50.00")
    card_sale = _sell(db_session, location, employee_user, "30.00", PaymentMethod.CARD, "Beard trim")
    voided = _sell(db_session, location, employee_user, "20.00")
    service = CheckoutService(db_session)
    service.refund(card_sale.id, employee_user.id, "Changed mind")
    service.void(voided.id)
    lottery = LotteryService(db_session)
    lottery.record(location.franchise_id, location.id, employee_user.id, LotteryType.SALE, Decimal("10"))
    lottery.record(location.franchise_id, location.id, employee_user.id, LotteryType.PAYOUT, Decimal("4"))


class TestZReport:
    def test_summary_and_reconciliation(self, client, trading_day, manager_headers):
        res = client.get(f"{API}/reports/z-report", headers=manager_headers)
        assert res.status_code == 200
        data = res.json()
        summary = data["summary"]
        assert summary["total_sales"] == 80.0
        assert summary["cash_sales"] == 50.0
        assert summary["card_sales"] == 30.0
        assert summary["total_transactions"] == 2
        assert summary["refund_total"] == 30.0
        assert summary["refund_count"] == 1
        assert summary["void_total"] == 20.0
        assert summary["void_count"] == 1
        assert summary["net_sales"] == 50.0

        recon = data["cash_reconciliation"]
        assert recon["opening"] == 100.0
        assert recon["expected"] == 156.0
        assert recon["actual"] is None
        assert data["lottery"]["net"] == 6.0
        assert data["top_items"][0] == {"name": "Haircut", "quantity": 1, "sales": 50.0}

    def test_pdf_download(self, client, trading_day, manager_headers):
        res = client.get(f"{API}/reports/z-report?format=pdf", headers=manager_headers)
        assert res.status_code == 200
        assert res.headers["content-type"] == "application/pdf"
        assert f"z-report-{utcnow().date().isoformat()}.pdf" in res.headers["content-disposition"]
        assert res.content.startswith(b"%PDF")

    def test_other_day_is_empty(self, client, trading_day, manager_headers):
        yesterday = (utcnow() - timedelta(days=1)).date().isoformat()
        data = client.get(f"{API}/reports/z-report?date={yesterday}", headers=manager_headers).json()
        assert data["summary"]["total_sales"] == 0.0
        assert data["cash_reconciliation"]["opening"] == 0.0

    def test_location_outside_scope(self, client, db_session, other_franchise, franchisee_headers):
        theirs = Location(franchise_id=other_franchise.id, name="Theirs", slug="theirs", address="1 Away")
        db_session.add(theirs)
        db_session.commit()
        res = client.get(f"{API}/reports/z-report?location_id={theirs.id}", headers=franchisee_headers)
        assert res.status_code == 403


class TestDailyReport:
    def test_daily(self, client, trading_day, franchisee_headers):
        res = client.get(f"{API}/reports/daily", headers=franchisee_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["gross_sales"] == 80.0
        assert data["transaction_count"] == 2
        assert data["average_ticket"] == 40.0
        assert data["payment_breakdown"]["CASH"] == {"count": 1, "total": 50.0}
        assert data["payment_breakdown"]["CARD"] == {"count": 1, "total": 30.0}
        assert data["employee_sales"] == [{"name": "Barber", "sales": 80.0, "transactions": 2}]
        assert data["voids"] == {"count": 1, "total": 20.0}
        assert data["refunds"] == {"count": 1, "total": 30.0}
        assert data["lottery"]["sales_count"] == 1

    def test_other_tenant_sees_nothing(self, client, trading_day, other_franchise, user_factory, auth_headers_for):
        outsider = user_factory("out@example.com", UserRole.FRANCHISEE, franchise_id=other_franchise.id)
        data = client.get(f"{API}/reports/daily", headers=auth_headers_for(outsider)).json()
        assert data["transaction_count"] == 0


# ============== Discount audit ==============

class TestDiscountAuditRules:
    def test_percent_of_subtotal_plus_discount(self):
        assert discount_percent(Decimal("40"), Decimal("60")) == 60.0
        assert round(discount_percent(Decimal("40"), Decimal("20")), 2) == 33.33
        assert discount_percent(Decimal("0"), Decimal("5")) == 0.0

    def test_ranges(self):
        assert discount_range(10) == "1-10%"
        assert discount_range(10.5) == "11-25%"
        assert discount_range(50) == "26-50%"
        assert discount_range(75) == "51-75%"
        assert discount_range(80) == "76-100%"

    def test_suspicious(self):
        assert is_suspicious_discount(50, Decimal("5"))
        assert is_suspicious_discount(10, Decimal("50"))
        assert not is_suspicious_discount(49.9, Decimal("49.99"))


class TestDiscountAudit:
    @pytest.fixture
    def discounted_sales(self, db_session, location, employee_user):
        _sell(db_session, location, employee_user, "100.00", discount="60.00")
        _sell(db_session, location, employee_user, "40.00", discount="20.00")
        _sell(db_session, location, employee_user, "40.00", discount="4.00")
        _sell(db_session, location, employee_user, "25.00")

    def test_audit(self, client, discounted_sales, employee_user, franchisee_headers):
        res = client.get(f"{API}/franchise/reports/discount-audit", headers=franchisee_headers)
        assert res.status_code == 200
        data = res.json()
        summary = data["summary"]
        assert summary["total_transactions"] == 4
        assert summary["transactions_with_discount"] == 3
        assert summary["discount_rate"] == 75.0
        assert summary["total_discount_amount"] == 84.0
        assert summary["avg_discount_per_transaction"] == 28.0

        assert data["by_discount_range"]["26-50%"] == 2
        assert data["by_discount_range"]["1-10%"] == 1
        assert data["by_discount_range"]["51-75%"] == 0
        assert data["by_employee"] == [{
            "id": employee_user.id,
            "name": "Barber",
            "discount_count": 3,
            "total_discount_amount": 84.0,
            "avg_discount": 28.0,
        }]

        suspicious = data["suspicious_discounts"]
        assert len(suspicious) == 1
        assert suspicious[0]["original_amount"] == 160.0
        assert suspicious[0]["final_amount"] == 100.0
        assert suspicious[0]["discount_amount"] == 60.0
        assert suspicious[0]["discount_percent"] == 37.5
        assert suspicious[0]["date"].endswith("+00:00")
        assert data["recent_discounts"][0]["date"].endswith("+00:00")

    def test_requires_report_permission(self, client, db_session, discounted_sales, employee_user, employee_headers):
        res = client.get(f"{API}/franchise/reports/discount-audit", headers=employee_headers)
        assert res.status_code == 403
        employee_user.can_view_reports = True
        db_session.commit()
        res = client.get(f"{API}/franchise/reports/discount-audit", headers=employee_headers)
        assert res.status_code == 200

    def test_start_after_end(self, client, franchise, franchisee_headers):
        res = client.get(
            f"{API}/franchise/reports/discount-audit?start_date=2026-03-10&end_date=2026-03-01",
            headers=franchisee_headers,
        )
        assert res.status_code == 400


# ============== Staff earnings ==============

@pytest.fixture
def payroll_week(db_session, location, employee_user, user_factory):
    """Barber: 50 cash + 10 tip, 30 card + 5 tip refunded. Stylist: 100 card less 20 discount."""
    stylist = user_factory("stylist@example.com", UserRole.EMPLOYEE,
                           franchise_id=location.franchise_id, location_id=location.id)
    db_session.add(CompensationPlan(user_id=stylist.id, compensation_type="BOOTH_RENTER"))
    db_session.commit()
    _sell(db_session, location, employee_user, "50.00", tip="10.00")
    trim = _sell(db_session, location, employee_user, "30.00", PaymentMethod.CARD, "Beard trim", tip="5.00")
    _sell(db_session, location, stylist, "100.00", PaymentMethod.CARD, "Color", discount="20.00")
    CheckoutService(db_session).refund(trim.id, employee_user.id, "Unhappy")
    return stylist


class TestEarningsStatement:
    def test_statement_per_staff_member(self, client, payroll_week, employee_user, franchisee_headers):
        res = client.get(f"{API}/franchise/reports/earnings-statement", headers=franchisee_headers)
        assert res.status_code == 200
        barber, stylist = res.json()["data"]

        assert barber["employee"]["id"] == employee_user.id
        assert barber["compensation_type"] is None
        summary = barber["summary"]
        assert summary["total_transactions"] == 2
        assert summary["service_revenue"] == 80.0
        assert summary["commission"] == 32.0
        assert summary["owner_amount"] == 48.0
        assert summary["tips"] == {"total": 15.0, "cash": 10.0, "card": 5.0}
        assert summary["refund_reversals"] == 17.0
        assert summary["net_earnings"] == 30.0
        assert [s["name"] for s in barber["services_performed"]] == ["Haircut", "Beard trim"]
        assert barber["services_performed"][0]["commission"] == 20.0
        assert [t["status"] for t in barber["transactions"]] == ["COMPLETED", "COMPLETED", "REFUNDED"]

        assert stylist["employee"]["id"] == payroll_week.id
        assert stylist["compensation_type"] == "BOOTH_RENTER"
        assert stylist["summary"]["service_revenue"] == 80.0
        assert stylist["summary"]["net_earnings"] == 32.0

    def test_single_employee(self, client, payroll_week, franchisee_headers):
        res = client.get(
            f"{API}/franchise/reports/earnings-statement?employee_id={payroll_week.id}",
            headers=franchisee_headers,
        )
        assert [s["employee"]["id"] for s in res.json()["data"]] == [payroll_week.id]

    def test_staff_without_sales_listed(self, client, employee_user, franchisee_headers):
        res = client.get(f"{API}/franchise/reports/earnings-statement", headers=franchisee_headers)
        statement = res.json()["data"][0]
        assert statement["employee"]["name"] == "Barber"
        assert statement["summary"]["net_earnings"] == 0.0
        assert statement["transactions"] == []


class TestPayoutHistory:
    def test_rows_per_staff_and_business_date(self, client, payroll_week, employee_user, franchisee_headers):
        res = client.get(f"{API}/franchise/reports/payout-history", headers=franchisee_headers)
        assert res.status_code == 200
        data = res.json()
        today = utcnow().date().isoformat()

        barber, stylist = data["data"]
        assert barber["business_date"] == today
        assert barber["employee"]["id"] == employee_user.id
        assert barber["commission"] == 20.0
        assert barber["tips"] == 10.0
        assert barber["owner_amount"] == 30.0
        assert barber["total_payout"] == 30.0
        assert barber["line_count"] == 3
        assert barber["status"] == "PENDING"
        assert stylist["total_payout"] == 32.0

        assert data["summary"] == {
            "total_employees": 2,
            "total_commissions": 52.0,
            "total_tips": 10.0,
            "total_owner_amount": 78.0,
            "total_payouts": 62.0,
        }

    def test_filters(self, client, payroll_week, employee_user, franchisee_headers):
        res = client.get(
            f"{API}/franchise/reports/payout-history?employee_id={employee_user.id}",
            headers=franchisee_headers,
        )
        assert [p["employee"]["id"] for p in res.json()["data"]] == [employee_user.id]

        tomorrow = (utcnow() + timedelta(days=1)).date().isoformat()
        res = client.get(
            f"{API}/franchise/reports/payout-history?start_date={tomorrow}&end_date={tomorrow}",
            headers=franchisee_headers,
        )
        assert res.json()["data"] == []
        assert res.json()["summary"]["total_payouts"] == 0.0


class TestCashCard:
    def test_breakdown(self, client, payroll_week, employee_user, franchisee_headers):
        res = client.get(f"{API}/franchise/reports/cash-card", headers=franchisee_headers)
        assert res.status_code == 200
        data = res.json()

        summary = data["summary"]
        assert summary["total_revenue"] == 140.0
        assert summary["cash"]["revenue"] == 60.0
        assert summary["cash"]["revenue_percent"] == 42.86
        assert summary["cash"]["tips_percent"] == 100.0
        assert summary["cash"]["transaction_count"] == 1
        assert summary["card"]["revenue"] == 80.0
        assert summary["card"]["transaction_count"] == 3
        assert summary["total_tips"] == 10.0

        stylist, barber = data["by_staff"]
        assert stylist["id"] == payroll_week.id
        assert stylist["card_revenue"] == 80.0
        assert barber["name"] == "Barber"
        assert barber["cash_revenue"] == 50.0
        assert barber["cash_tips"] == 10.0
        assert barber["card_revenue"] == 0.0
        assert barber["card_count"] == 2

        assert len(data["by_day"]) == 1
        assert data["by_day"][0]["date"] == utcnow().date().isoformat()

    def test_empty_period(self, client, franchise, franchisee_headers):
        res = client.get(f"{API}/franchise/reports/cash-card", headers=franchisee_headers)
        summary = res.json()["summary"]
        assert summary["total_revenue"] == 0.0
        assert summary["cash"]["revenue_percent"] == 0.0


class TestStaffReportAccess:
    @pytest.mark.parametrize("report", ["earnings-statement", "payout-history", "cash-card"])
    def test_requires_report_permission(self, client, employee_user, employee_headers, report):
        res = client.get(f"{API}/franchise/reports/{report}", headers=employee_headers)
        assert res.status_code == 403

    @pytest.mark.parametrize("report", ["earnings-statement", "payout-history", "cash-card"])
    def test_start_after_end(self, client, franchise, franchisee_headers, report):
        res = client.get(
            f"{API}/franchise/reports/{report}?start_date=2026-03-10&end_date=2026-03-01",
            headers=franchisee_headers,
        )
        assert res.status_code == 400

    def test_other_franchise_forbidden(self, client, other_franchise, franchisee_headers):
        res = client.get(
            f"{API}/franchise/reports/payout-history?franchise_id={other_franchise.id}",
            headers=franchisee_headers,
        )
        assert res.status_code == 403


# ============== Audit trail ==============

class TestAuditLogs:
    @pytest.fixture
    def entries(self, db_session, franchisor_user, employee_user, other_franchise, user_factory):
        outsider = user_factory("out@example.com", UserRole.FRANCHISEE, franchise_id=other_franchise.id)
        log_action("update", "business_config", "1", user_id=franchisor_user.id, db=db_session)
        log_action("create", "clients", "", user_id=employee_user.id, db=db_session)
        log_action("create", "clients", "", user_id=outsider.id, db=db_session)
        db_session.commit()

    def test_provider_sees_everything(self, client, entries, provider_headers):
        res = client.get(f"{API}/audit-logs/", headers=provider_headers)
        assert res.status_code == 200
        assert res.json()["total"] == 3

    def test_franchisor_sees_own_tenant(self, client, entries, franchisor_user, employee_user, franchisor_headers):
        res = client.get(f"{API}/audit-logs/", headers=franchisor_headers)
        users = [e["user_id"] for e in res.json()["items"]]
        assert users == [employee_user.id, franchisor_user.id]

    def test_filters(self, client, entries, provider_headers):
        res = client.get(f"{API}/audit-logs/?action=create&entity_type=clients", headers=provider_headers)
        assert res.json()["total"] == 2

    def test_store_roles_forbidden(self, client, franchisee_headers, manager_headers):
        assert client.get(f"{API}/audit-logs/", headers=franchisee_headers).status_code == 403
        assert client.get(f"{API}/audit-logs/", headers=manager_headers).status_code == 403

    def test_audit_target(self):
        assert audit_target("/api/v1/transfers/7/ship") == ("transfers", "7")
        assert audit_target("/api/v1/franchise/employees/3") == ("franchise_employees", "3")
        assert audit_target("/api/v1/owner/gift-cards/") == ("owner_gift_cards", "")


def test_readiness_reports_database(client):
    res = client.get("/health/ready")
    assert res.status_code == 200
    assert res.json()["checks"]["database"] == "healthy"
