"""Tests for transaction history, refunds and voids."""

from datetime import timedelta
from decimal import Decimal

import pytest

from franchise_pos.core.rbac import UserRole
from franchise_pos.db.base import utcnow
from franchise_pos.models.inventory import Item
from franchise_pos.models.transaction import PaymentMethod, Transaction, TransactionStatus
from franchise_pos.services.checkout_service import CheckoutLine, CheckoutService

API = "/api/v1"


@pytest.fixture
def sale(db_session, location, employee_user, product):
    """A $50 haircut plus two jars of pomade, paid cash."""
    return CheckoutService(db_session).checkout(
        franchise_id=location.franchise_id,
        location_id=location.id,
        employee_id=employee_user.id,
        lines=[
            CheckoutLine(type="SERVICE", description="Haircut", price=Decimal("50.00"), staff_id=employee_user.id),
            CheckoutLine(type="PRODUCT", item_id=product.id, quantity=2),
        ],
        payment_method=PaymentMethod.CASH,
        tip=Decimal("10.00"),
    )


def _quick_sale(db, location, employee_id, price="25.00"):
    return CheckoutService(db).checkout(
        franchise_id=location.franchise_id,
        location_id=location.id,
        employee_id=employee_id,
        lines=[CheckoutLine(description="Beard trim", price=Decimal(price))],
        payment_method=PaymentMethod.CARD,
    )


# ============== History ==============

class TestListTransactions:
    def test_franchisee_sees_all_locations(self, client, db_session, sale, second_location, employee_user,
                                           franchisee_headers):
        _quick_sale(db_session, second_location, employee_user.id)
        res = client.get(f"{API}/transactions/", headers=franchisee_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["total"] == 2
        assert data["has_more"] is False

    def test_manager_pinned_to_location(self, client, db_session, sale, second_location, employee_user,
                                        manager_headers):
        _quick_sale(db_session, second_location, employee_user.id)
        res = client.get(f"{API}/transactions/?location_id={second_location.id}", headers=manager_headers)
        assert [t["id"] for t in res.json()["items"]] == [sale.id]

    def test_location_filter(self, client, db_session, sale, second_location, employee_user, franchisee_headers):
        other = _quick_sale(db_session, second_location, employee_user.id)
        res = client.get(f"{API}/transactions/?location_id={second_location.id}", headers=franchisee_headers)
        assert [t["id"] for t in res.json()["items"]] == [other.id]

    def test_status_filter(self, client, db_session, sale, franchisee_headers):
        sale.status = TransactionStatus.VOIDED
        db_session.commit()
        res = client.get(f"{API}/transactions/?status=COMPLETED", headers=franchisee_headers)
        assert res.json()["total"] == 0
        res = client.get(f"{API}/transactions/?status=VOIDED", headers=franchisee_headers)
        assert res.json()["total"] == 1

    def test_date_filter(self, client, sale, franchisee_headers):
        tomorrow = (utcnow() + timedelta(days=1)).date().isoformat()
        res = client.get(f"{API}/transactions/?start_date={tomorrow}", headers=franchisee_headers)
        assert res.json()["total"] == 0
        today = utcnow().date().isoformat()
        res = client.get(f"{API}/transactions/?start_date={today}&end_date={today}", headers=franchisee_headers)
        assert res.json()["total"] == 1

    def test_other_tenant_sees_nothing(self, client, db_session, sale, other_franchise, user_factory,
                                       auth_headers_for):
        outsider = user_factory("out@example.com", UserRole.FRANCHISEE, franchise_id=other_franchise.id)
        res = client.get(f"{API}/transactions/", headers=auth_headers_for(outsider))
        assert res.json()["items"] == []


class TestTransactionDetail:
    def test_detail_has_line_items(self, client, sale, manager_headers):
        res = client.get(f"{API}/transactions/{sale.id}", headers=manager_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["subtotal"] == 90.0
        assert data["tip"] == 10.0
        assert data["total"] == 100.0
        assert [line["type"] for line in data["line_items"]] == ["SERVICE", "PRODUCT"]
        assert data["line_items"][0]["commission_amount"] == 20.0
        assert data["line_items"][0]["tip_allocated"] == 10.0

    def test_out_of_scope_is_not_found(self, client, sale, other_franchise, user_factory, auth_headers_for):
        outsider = user_factory("out@example.com", UserRole.FRANCHISEE, franchise_id=other_franchise.id)
        res = client.get(f"{API}/transactions/{sale.id}", headers=auth_headers_for(outsider))
        assert res.status_code == 404

    def test_unknown_transaction(self, client, franchisee_headers):
        assert client.get(f"{API}/transactions/9999", headers=franchisee_headers).status_code == 404


# ============== Refunds ==============

class TestRefund:
    def test_manager_refunds_sale(self, client, db_session, sale, product, manager_headers):
        res = client.post(f"{API}/transactions/{sale.id}/refund", json={"reason": "Unhappy"}, headers=manager_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["status"] == "REFUNDED"
        assert data["original_transaction_id"] == sale.id
        assert data["total"] == -100.0
        assert data["commission_total"] == -20.0
        assert data["notes"] == "Unhappy"
        assert all(line["status"] == "REFUNDED" for line in data["line_items"])

        db_session.refresh(product)
        assert product.stock == 10

        db_session.refresh(sale)
        assert sale.status == TransactionStatus.COMPLETED

    def test_refund_nets_to_zero(self, client, db_session, sale, manager_headers):
        client.post(f"{API}/transactions/{sale.id}/refund", json={}, headers=manager_headers)
        totals = [t.total for t in db_session.query(Transaction).all()]
        assert sum(totals) == Decimal("0")

    def test_second_refund_rejected(self, client, sale, manager_headers):
        client.post(f"{API}/transactions/{sale.id}/refund", json={}, headers=manager_headers)
        res = client.post(f"{API}/transactions/{sale.id}/refund", json={}, headers=manager_headers)
        assert res.status_code == 400
        assert res.json()["detail"] == "Transaction has already been refunded"

    def test_employee_needs_refund_permission(self, client, db_session, sale, employee_user, employee_headers):
        res = client.post(f"{API}/transactions/{sale.id}/refund", json={}, headers=employee_headers)
        assert res.status_code == 403
        assert res.json()["detail"] == "Not allowed to process refunds"

        employee_user.can_process_refunds = True
        db_session.commit()
        res = client.post(f"{API}/transactions/{sale.id}/refund", json={}, headers=employee_headers)
        assert res.status_code == 200

    def test_voided_sale_cannot_be_refunded(self, client, db_session, sale, manager_headers):
        sale.status = TransactionStatus.VOIDED
        db_session.commit()
        res = client.post(f"{API}/transactions/{sale.id}/refund", json={}, headers=manager_headers)
        assert res.status_code == 400

    def test_manager_of_other_location_cannot_refund(self, client, db_session, franchise, sale, second_location,
                                                     user_factory, auth_headers_for):
        other_manager = user_factory(
            "elm@example.com", UserRole.MANAGER, franchise_id=franchise.id, location_id=second_location.id
        )
        res = client.post(f"{API}/transactions/{sale.id}/refund", json={}, headers=auth_headers_for(other_manager))
        assert res.status_code == 404


# ============== Voids ==============

class TestVoid:
    def test_void_same_day_sale(self, client, db_session, sale, product, manager_headers):
        assert db_session.get(Item, product.id).stock == 8
        res = client.post(f"{API}/transactions/{sale.id}/void", headers=manager_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["status"] == "VOIDED"
        assert all(line["status"] == "VOIDED" for line in data["line_items"])
        db_session.refresh(product)
        assert product.stock == 10

    def test_void_twice_rejected(self, client, sale, manager_headers):
        client.post(f"{API}/transactions/{sale.id}/void", headers=manager_headers)
        res = client.post(f"{API}/transactions/{sale.id}/void", headers=manager_headers)
        assert res.status_code == 400

    def test_old_sale_must_be_refunded(self, client, db_session, sale, manager_headers):
        sale.created_at = utcnow() - timedelta(days=2)
        db_session.commit()
        res = client.post(f"{API}/transactions/{sale.id}/void", headers=manager_headers)
        assert res.status_code == 400
        assert "refund" in res.json()["detail"]

    def test_refund_cannot_be_voided(self, client, sale, manager_headers):
        refund = client.post(f"{API}/transactions/{sale.id}/refund", json={}, headers=manager_headers).json()
        res = client.post(f"{API}/transactions/{refund['id']}/void", headers=manager_headers)
        assert res.status_code == 400


class TestCheckoutService:
    def test_empty_cart(self, db_session, location, employee_user):
        with pytest.raises(ValueError, match="Cart is empty"):
            CheckoutService(db_session).checkout(
                location.franchise_id, location.id, employee_user.id, [], PaymentMethod.CASH
            )

    def test_product_from_other_location(self, db_session, franchise, location, second_location, employee_user):
        item = Item(franchise_id=franchise.id, location_id=second_location.id, name="Wax", item_type="PRODUCT",
                    price=Decimal("9.00"), stock=5)
        db_session.add(item)
        db_session.commit()
        with pytest.raises(ValueError, match="not stocked at this location"):
            CheckoutService(db_session).checkout(
                franchise.id, location.id, employee_user.id,
                [CheckoutLine(type="PRODUCT", item_id=item.id)], PaymentMethod.CASH,
            )

    def test_negative_tip(self, db_session, location, employee_user):
        with pytest.raises(ValueError, match="Tip cannot be negative"):
            CheckoutService(db_session).checkout(
                location.franchise_id, location.id, employee_user.id,
                [CheckoutLine(price=Decimal("10"))], PaymentMethod.CASH, tip=Decimal("-1"),
            )

    def test_refund_unknown_transaction(self, db_session):
        with pytest.raises(LookupError):
            CheckoutService(db_session).refund(9999, 1)
