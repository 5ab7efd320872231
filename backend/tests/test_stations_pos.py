"""Tests for station pairing, terminal authentication, checkout and shifts."""

from decimal import Decimal

from franchise_pos.core.rbac import UserRole
from franchise_pos.core.security import issue_station_token
from franchise_pos.models.client import Client
from franchise_pos.models.location import Location, ProvisioningStatus, Station
from franchise_pos.models.tenant import BusinessConfig, TipHandling
from franchise_pos.models.transaction import Transaction
from franchise_pos.services.gift_card_service import GiftCardService

API = "/api/v1"


# ============== Stations ==============

class TestStationPairing:
    def test_create_station_with_pairing_code(self, client, location, manager_headers):
        res = client.post(f"{API}/stations/", json={"location_id": location.id, "name": "Back Bar"},
                          headers=manager_headers)
        assert res.status_code == 201
        data = res.json()
        assert len(data["pairing_code"]) == 6
        assert data["is_trusted"] is False

    def test_employee_cannot_create_station(self, client, location, employee_headers):
        res = client.post(f"{API}/stations/", json={"location_id": location.id, "name": "X"},
                          headers=employee_headers)
        assert res.status_code == 403

    def test_pair_station(self, client, db_session, location, manager_headers):
        created = client.post(f"{API}/stations/", json={"location_id": location.id, "name": "Front"},
                              headers=manager_headers).json()

        res = client.post(f"{API}/stations/pair", json={
            "pairing_code": created["pairing_code"].lower(),
            "device_fingerprint": "ipad-123",
        })
        assert res.status_code == 200
        data = res.json()
        assert data["location_id"] == location.id
        assert data["franchise_id"] == location.franchise_id
        assert data["station"]["is_trusted"] is True
        assert data["station"]["pairing_code"] is None
        assert data["station_token"]

        db_session.refresh(location)
        assert location.provisioning_status == ProvisioningStatus.IN_PROGRESS

        # Codes are single use
        again = client.post(f"{API}/stations/pair", json={
            "pairing_code": created["pairing_code"],
            "device_fingerprint": "ipad-123",
        })
        assert again.status_code == 404

    def test_invalid_pairing_code(self, client):
        res = client.post(f"{API}/stations/pair", json={"pairing_code": "NOPE42", "device_fingerprint": "x"})
        assert res.status_code == 404
        assert res.json()["detail"] == "Invalid pairing code"

    def test_list_stations_scoped(self, client, station, franchisee_headers, db_session, other_franchise):
        theirs = Location(franchise_id=other_franchise.id, name="Theirs", slug="theirs", address="1 Away")
        db_session.add(theirs)
        db_session.flush()
        db_session.add(Station(location_id=theirs.id, name="Their Register", is_trusted=True))
        db_session.commit()
        res = client.get(f"{API}/stations/", headers=franchisee_headers)
        assert [s["id"] for s in res.json()["items"]] == [station.id]


# ============== Terminal authentication ==============

class TestStationAuth:
    def test_bootstrap(self, client, station, station_headers, location, franchise):
        res = client.get(f"{API}/pos/bootstrap", headers=station_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["station"]["id"] == station.id
        assert data["location"]["id"] == location.id
        assert data["franchise"]["id"] == franchise.id
        assert data["business_config"]["tip_handling"] == "BARBER_KEEPS"

    def test_missing_token(self, client):
        res = client.get(f"{API}/pos/bootstrap")
        assert res.status_code == 403
        assert res.json()["detail"]["code"] == "DEVICE_NOT_PAIRED"

    def test_invalid_token(self, client):
        res = client.get(f"{API}/pos/bootstrap", headers={"X-Station-Token": "garbage"})
        assert res.status_code == 401
        detail = res.json()["detail"]
        assert detail["code"] == "TOKEN_INVALID_OR_EXPIRED"
        assert detail["reason"] == "invalid"

    def test_user_token_is_not_a_station_token(self, client, manager_headers):
        token = manager_headers["Authorization"].split(" ", 1)[1]
        res = client.get(f"{API}/pos/bootstrap", headers={"X-Station-Token": token})
        assert res.status_code == 401

    def test_revoked_station(self, client, station, station_headers, manager_headers):
        res = client.post(f"{API}/stations/{station.id}/revoke", headers=manager_headers)
        assert res.status_code == 200
        assert res.json()["is_trusted"] is False
        res = client.get(f"{API}/pos/bootstrap", headers=station_headers)
        assert res.status_code == 403
        assert res.json()["detail"]["code"] == "DEVICE_NOT_PAIRED"

    def test_bootstrap_updates_last_seen(self, client, db_session, station, station_headers):
        assert station.last_seen_at is None
        client.get(f"{API}/pos/bootstrap", headers=station_headers)
        db_session.refresh(station)
        assert station.last_seen_at is not None


# ============== Checkout ==============

def _service_line(staff_id, price="50.00", **extra):
    return {"type": "SERVICE", "description": "Haircut", "price": price, "staff_id": staff_id, **extra}


class TestCheckout:
    def test_service_sale_with_tip(self, client, employee_user, pos_headers):
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id)],
            "payment_method": "CARD",
            "tip": "10.00",
        }, headers=pos_headers)
        assert res.status_code == 201
        data = res.json()
        assert data["subtotal"] == 50.0
        assert data["tip"] == 10.0
        assert data["total"] == 60.0
        assert data["commission_total"] == 20.0
        assert data["owner_total"] == 30.0
        assert data["status"] == "COMPLETED"
        line = data["line_items"][0]
        assert line["commission_split_used"] == 40.0
        assert line["tip_allocated"] == 10.0
        assert line["status"] == "PAID"

    def test_scope_comes_from_station(self, client, employee_user, station, location, pos_headers):
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id)],
            "payment_method": "CASH",
        }, headers=pos_headers)
        data = res.json()
        assert data["station_id"] == station.id
        assert data["location_id"] == location.id
        assert data["employee_id"] == employee_user.id

    def test_product_sale_decrements_stock(self, client, db_session, product, pos_headers):
        res = client.post(f"{API}/pos/transactions", json={
            "items": [{"type": "PRODUCT", "item_id": product.id, "quantity": 3}],
            "payment_method": "CASH",
        }, headers=pos_headers)
        assert res.status_code == 201
        data = res.json()
        assert data["subtotal"] == 60.0
        assert data["commission_total"] == 0.0
        assert data["line_items"][0]["description"] == "Pomade"
        db_session.refresh(product)
        assert product.stock == 7

    def test_insufficient_stock(self, client, product, pos_headers):
        res = client.post(f"{API}/pos/transactions", json={
            "items": [{"type": "PRODUCT", "item_id": product.id, "quantity": 11}],
            "payment_method": "CASH",
        }, headers=pos_headers)
        assert res.status_code == 400
        assert res.json()["detail"] == "Insufficient stock for Pomade"

    def test_price_required_for_free_form_lines(self, client, employee_user, pos_headers):
        res = client.post(f"{API}/pos/transactions", json={
            "items": [{"type": "SERVICE", "description": "Mystery", "staff_id": employee_user.id}],
            "payment_method": "CASH",
        }, headers=pos_headers)
        assert res.status_code == 400
        assert res.json()["detail"] == "Price is required for items not in the catalog"

    def test_discount_cannot_exceed_line(self, client, employee_user, pos_headers):
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id, price="20.00", discount="25.00")],
            "payment_method": "CASH",
        }, headers=pos_headers)
        assert res.status_code == 400

    def test_staff_from_other_franchise(self, client, other_franchise, user_factory, pos_headers):
        outsider = user_factory("outsider@example.com", UserRole.EMPLOYEE, franchise_id=other_franchise.id)
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(outsider.id)],
            "payment_method": "CASH",
        }, headers=pos_headers)
        assert res.status_code == 400

    def test_tax_and_split_tips(self, client, db_session, franchisor, employee_user, pos_headers):
        config = db_session.query(BusinessConfig).filter(BusinessConfig.franchisor_id == franchisor.id).one()
        config.tax_rate = Decimal("10")
        config.tip_handling = TipHandling.SPLIT
        db_session.commit()

        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id, price="100.00")],
            "payment_method": "CARD",
            "tip": "20.00",
        }, headers=pos_headers)
        data = res.json()
        assert data["tax"] == 10.0
        # SPLIT: staff keeps the commission share of the tip
        assert data["tip"] == 8.0
        assert data["total"] == 118.0

    def test_requires_station_token(self, client, employee_user, employee_headers):
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id)],
            "payment_method": "CASH",
        }, headers=employee_headers)
        assert res.status_code == 403

    def test_requires_user_token(self, client, employee_user, station_headers):
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id)],
            "payment_method": "CASH",
        }, headers=station_headers)
        assert res.status_code == 401

    def test_user_of_other_franchise_cannot_use_terminal(self, client, other_franchise, user_factory,
                                                         auth_headers_for, station_headers):
        outsider = user_factory("outsider@example.com", UserRole.EMPLOYEE, franchise_id=other_franchise.id)
        res = client.post(f"{API}/pos/transactions", json={
            "items": [{"type": "SERVICE", "price": "10.00"}],
            "payment_method": "CASH",
        }, headers={**station_headers, **auth_headers_for(outsider)})
        assert res.status_code == 403

    def test_station_of_other_franchise_rejected(self, client, db_session, other_franchise, employee_user,
                                                 station, pos_headers):
        forged = issue_station_token(station.id, 9999, other_franchise.id, "fp", station.name)
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id)],
            "payment_method": "CASH",
        }, headers={**pos_headers, "X-Station-Token": forged})
        assert res.status_code == 403
        assert db_session.query(Transaction).count() == 0

    def test_gift_card_payment(self, client, db_session, franchise, employee_user, pos_headers):
        card = GiftCardService(db_session).issue(franchise.id, Decimal("100.00"))
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id)],
            "payment_method": "GIFT_CARD",
            "gift_card_code": card.code.replace("-", "").lower(),
        }, headers=pos_headers)
        assert res.status_code == 201
        assert res.json()["gift_card_id"] == card.id
        db_session.refresh(card)
        assert card.current_balance == Decimal("50.00")

    def test_gift_card_insufficient_balance(self, client, db_session, franchise, employee_user, pos_headers):
        card = GiftCardService(db_session).issue(franchise.id, Decimal("20.00"))
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id)],
            "payment_method": "GIFT_CARD",
            "gift_card_code": card.code,
        }, headers=pos_headers)
        assert res.status_code == 400
        db_session.refresh(card)
        assert card.current_balance == Decimal("20.00")

    def test_client_visit_is_recorded(self, client, db_session, franchise, employee_user, pos_headers):
        regular = Client(franchise_id=franchise.id, first_name="Reggie", phone="5550001111")
        db_session.add(regular)
        db_session.commit()
        res = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id)],
            "payment_method": "CASH",
            "client_id": regular.id,
        }, headers=pos_headers)
        assert res.status_code == 201
        db_session.refresh(regular)
        assert regular.total_visits == 1
        assert regular.last_visit is not None


# ============== Shifts ==============

class TestShift:
    def test_open_sell_drop_close(self, client, db_session, employee_user, employee_headers, pos_headers):
        res = client.get(f"{API}/pos/shift", headers=employee_headers)
        assert res.json() == {"current": None, "shift_requirement": "BOTH"}

        res = client.post(f"{API}/pos/shift", json={"action": "OPEN", "amount": "100.00"}, headers=employee_headers)
        assert res.status_code == 200
        shift_id = res.json()["id"]
        assert res.json()["status"] == "OPEN"

        sale = client.post(f"{API}/pos/transactions", json={
            "items": [_service_line(employee_user.id, price="30.00")],
            "payment_method": "CASH",
        }, headers=pos_headers).json()
        assert sale["cash_drawer_session_id"] == shift_id

        current = client.get(f"{API}/pos/shift", headers=employee_headers).json()["current"]
        assert current["cash_sales"] == 30.0
        assert current["expected_cash"] == 130.0

        client.post(f"{API}/pos/shift", json={"action": "DROP", "amount": "20"}, headers=employee_headers)
        res = client.post(f"{API}/pos/shift", json={"action": "DROP", "amount": "5"}, headers=employee_headers)
        assert res.json()["cash_drops"] == 25.0

        res = client.post(f"{API}/pos/shift", json={"action": "CLOSE", "amount": "105.00"}, headers=employee_headers)
        assert res.status_code == 200
        assert res.json()["status"] == "CLOSED"
        assert res.json()["ending_cash"] == 105.0

    def test_open_twice(self, client, employee_headers):
        client.post(f"{API}/pos/shift", json={"action": "OPEN", "amount": "50"}, headers=employee_headers)
        res = client.post(f"{API}/pos/shift", json={"action": "OPEN", "amount": "50"}, headers=employee_headers)
        assert res.status_code == 400
        assert res.json()["detail"] == "Shift already open"

    def test_close_without_open_shift(self, client, employee_headers):
        res = client.post(f"{API}/pos/shift", json={"action": "CLOSE", "amount": "0"}, headers=employee_headers)
        assert res.status_code == 404

    def test_franchisee_opens_at_first_location(self, client, db_session, location, franchisee_headers):
        res = client.post(f"{API}/pos/shift", json={"action": "OPEN", "amount": "10"}, headers=franchisee_headers)
        assert res.status_code == 200
        assert res.json()["location_id"] == location.id

    def test_no_location_at_all(self, client, provider_headers):
        res = client.post(f"{API}/pos/shift", json={"action": "OPEN", "amount": "10"}, headers=provider_headers)
        assert res.status_code == 400

    def test_invalid_action(self, client, employee_headers):
        res = client.post(f"{API}/pos/shift", json={"action": "PAUSE"}, headers=employee_headers)
        assert res.status_code == 422
        assert client.get(f"{API}/pos/shift", headers=employee_headers).json()["current"] is None
