"""Tests for locations: listing, plan limits, updates and the 360 view."""

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal

from franchise_pos.core.rbac import UserRole
from franchise_pos.db.base import utcnow
from franchise_pos.models.client import Appointment, AppointmentStatus
from franchise_pos.models.location import Location, ProvisioningStatus, Station
from franchise_pos.models.tenant import BusinessConfig, Franchise, Franchisor
from franchise_pos.models.transaction import PaymentMethod, Transaction, TransactionStatus
from franchise_pos.services.location_service import Location360Service, slugify

API = "/api/v1"


def _sale(db, location, total, status=TransactionStatus.COMPLETED, tip="0", client_id=None):
    txn = Transaction(
        franchise_id=location.franchise_id,
        location_id=location.id,
        subtotal=Decimal(total),
        total=Decimal(total),
        tip=Decimal(tip),
        payment_method=PaymentMethod.CASH,
        status=status,
        client_id=client_id,
        created_at=utcnow(),
    )
    db.add(txn)
    db.commit()
    return txn


# ============== Listing ==============

class TestListLocations:
    def test_franchisor_lists_own_locations(self, client, location, other_franchise, db_session, franchisor_headers):
        db_session.add(Location(franchise_id=other_franchise.id, name="Theirs", slug="theirs", address="1 Away"))
        db_session.commit()
        res = client.get(f"{API}/locations/", headers=franchisor_headers)
        assert res.status_code == 200
        data = res.json()
        assert [loc["id"] for loc in data["items"]] == [location.id]
        assert data["total"] == 1
        assert data["next_cursor"] is None

    def test_cursor_pagination(self, client, location, second_location, franchisor_headers):
        res = client.get(f"{API}/locations/?limit=1", headers=franchisor_headers)
        data = res.json()
        assert data["total"] == 2
        assert data["next_cursor"] == location.id
        res = client.get(f"{API}/locations/?limit=1&cursor={data['next_cursor']}", headers=franchisor_headers)
        assert [loc["id"] for loc in res.json()["items"]] == [second_location.id]

    def test_search(self, client, location, second_location, franchisor_headers):
        res = client.get(f"{API}/locations/?search=elm", headers=franchisor_headers)
        assert [loc["name"] for loc in res.json()["items"]] == ["Elm Street"]

    def test_store_staff_cannot_list(self, client, franchisee_headers, manager_headers):
        assert client.get(f"{API}/locations/", headers=franchisee_headers).status_code == 403
        assert client.get(f"{API}/locations/", headers=manager_headers).status_code == 403

    def test_new_franchisor_gets_default_store(self, client, db_session, user_factory, auth_headers_for):
        brand = Franchisor(name="Brand New")
        db_session.add(brand)
        db_session.commit()
        owner = user_factory("new@example.com", UserRole.FRANCHISOR, franchisor_id=brand.id)

        res = client.get(f"{API}/locations/", headers=auth_headers_for(owner))
        assert res.status_code == 200
        items = res.json()["items"]
        assert len(items) == 1
        assert items[0]["provisioning_status"] == "PENDING"
        assert items[0]["setup_code"].startswith("BRAN-")
        assert db_session.query(Franchise).filter(Franchise.franchisor_id == brand.id).count() == 1


# ============== Creation and plan limit ==============

class TestCreateLocation:
    def test_franchisee_creates_location(self, client, franchise, location, franchisee_headers):
        res = client.post(
            f"{API}/locations/",
            json={"name": "Oak Lawn", "address": "3 Oak Ave", "city": "Dallas"},
            headers=franchisee_headers,
        )
        assert res.status_code == 201
        data = res.json()
        assert data["franchise_id"] == franchise.id
        assert data["slug"] == "oak-lawn"
        assert data["provisioning_status"] == "PENDING"
        assert data["setup_code"]

    def test_limit_reached(self, client, db_session, franchisor, location, franchisee_headers):
        config = db_session.query(BusinessConfig).filter(BusinessConfig.franchisor_id == franchisor.id).one()
        config.max_locations = 1
        db_session.commit()

        res = client.post(
            f"{API}/locations/",
            json={"name": "Too Many", "address": "9 Limit Rd"},
            headers=franchisee_headers,
        )
        assert res.status_code == 403
        detail = res.json()["detail"]
        assert detail["code"] == "LIMIT_REACHED"
        assert detail["current"] == 1
        assert detail["limit"] == 1
        assert detail["subscription_tier"] == "STARTER"

    def test_blank_name_rejected(self, client, franchise, franchisee_headers):
        res = client.post(f"{API}/locations/", json={"name": "  ", "address": "x"}, headers=franchisee_headers)
        assert res.status_code == 400

    def test_franchisor_with_several_franchises_must_choose(self, client, db_session, franchisor, franchise, franchisor_headers):
        db_session.add(Franchise(franchisor_id=franchisor.id, name="Second", slug="second"))
        db_session.commit()
        res = client.post(f"{API}/locations/", json={"name": "Where", "address": "1 St"}, headers=franchisor_headers)
        assert res.status_code == 400
        res = client.post(
            f"{API}/locations/",
            json={"name": "Here", "address": "1 St", "franchise_id": franchise.id},
            headers=franchisor_headers,
        )
        assert res.status_code == 201

    def test_franchisee_cannot_create_for_other_franchise(self, client, other_franchise, franchisee_headers):
        res = client.post(
            f"{API}/locations/",
            json={"name": "Nope", "address": "1 St", "franchise_id": other_franchise.id},
            headers=franchisee_headers,
        )
        assert res.status_code == 403

    def test_manager_cannot_create(self, client, manager_headers):
        res = client.post(f"{API}/locations/", json={"name": "X", "address": "Y"}, headers=manager_headers)
        assert res.status_code == 403


# ============== Read and update ==============

class TestLocationDetail:
    def test_get_and_update(self, client, location, manager_headers):
        res = client.get(f"{API}/locations/{location.id}", headers=manager_headers)
        assert res.status_code == 200
        res = client.patch(
            f"{API}/locations/{location.id}",
            json={"phone": "555-0100", "provisioning_status": "ACTIVE"},
            headers=manager_headers,
        )
        assert res.status_code == 200
        assert res.json()["phone"] == "555-0100"
        assert res.json()["provisioning_status"] == "ACTIVE"

    def test_manager_pinned_to_own_location(self, client, second_location, manager_headers):
        assert client.get(f"{API}/locations/{second_location.id}", headers=manager_headers).status_code == 403

    def test_other_tenant_forbidden(self, client, db_session, other_franchise, franchisee_headers):
        theirs = Location(franchise_id=other_franchise.id, name="Theirs", slug="theirs", address="1 Away")
        db_session.add(theirs)
        db_session.commit()
        assert client.get(f"{API}/locations/{theirs.id}", headers=franchisee_headers).status_code == 403

    def test_unknown_location(self, client, franchisee_headers):
        assert client.get(f"{API}/locations/9999", headers=franchisee_headers).status_code == 404


# ============== Location 360 ==============

class TestLocation360:
    def test_empty_location(self, client, location, franchisee_headers):
        res = client.get(f"{API}/locations/{location.id}/360", headers=franchisee_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["header"]["name"] == location.name
        assert data["header"]["devices"] == {"paired": 0, "online": 0, "last_seen": None}
        assert data["kpis"]["gross_sales"] == 0
        assert data["kpis"]["avg_ticket"] == 0
        assert data["date_range"]["preset"] == "TODAY"
        assert data["go_live_checklist"] == {
            "stations_paired": False,
            "employees_added": False,
            "inventory_loaded": False,
            "first_sale": False,
        }

    def test_kpis(self, client, db_session, location, franchisee_headers):
        _sale(db_session, location, "40.00", tip="5.00")
        _sale(db_session, location, "60.00")
        _sale(db_session, location, "-40.00", status=TransactionStatus.REFUNDED)
        _sale(db_session, location, "99.00", status=TransactionStatus.VOIDED)

        res = client.get(f"{API}/locations/{location.id}/360?range=week", headers=franchisee_headers)
        kpis = res.json()["kpis"]
        assert kpis["gross_sales"] == 100.0
        assert kpis["refunds"] == 40.0
        assert kpis["net_sales"] == 60.0
        assert kpis["tips"] == 5.0
        assert kpis["transaction_count"] == 2
        assert kpis["avg_ticket"] == 30.0
        assert kpis["walk_ins"] == 2

    def test_devices_and_no_show_alert(self, client, db_session, location, franchisee_headers):
        now = utcnow()
        db_session.add(Station(location_id=location.id, name="A", is_trusted=True, last_seen_at=now))
        db_session.add(Station(location_id=location.id, name="B", is_trusted=True, last_seen_at=now - timedelta(days=2)))
        db_session.add(Station(location_id=location.id, name="Revoked", is_trusted=False, last_seen_at=now))
        db_session.add(Appointment(location_id=location.id, service_name="Cut", start_time=now - timedelta(days=1),
                                   status=AppointmentStatus.NO_SHOW))
        db_session.add(Appointment(location_id=location.id, service_name="Cut", start_time=now - timedelta(days=1),
                                   status=AppointmentStatus.COMPLETED))
        db_session.commit()

        res = client.get(f"{API}/locations/{location.id}/360?range=WEEK", headers=franchisee_headers)
        data = res.json()
        assert data["header"]["devices"]["paired"] == 2
        assert data["header"]["devices"]["online"] == 1
        assert data["kpis"]["appointments"]["booked"] == 2
        assert data["kpis"]["no_show_rate"] == 50.0
        alert_types = {a["type"] for a in data["alerts"]}
        assert "HIGH_NO_SHOW" in alert_types
        assert "DEVICE_OFFLINE" in alert_types
        assert data["go_live_checklist"]["stations_paired"] is True

    def test_active_location_has_no_checklist(self, client, db_session, location, franchisee_headers):
        location.provisioning_status = ProvisioningStatus.ACTIVE
        db_session.commit()
        res = client.get(f"{API}/locations/{location.id}/360", headers=franchisee_headers)
        assert res.json()["go_live_checklist"] is None

    def test_bad_range(self, client, location, franchisee_headers):
        res = client.get(f"{API}/locations/{location.id}/360?range=YEAR", headers=franchisee_headers)
        assert res.status_code == 400

    def test_zero_sales_alert_after_ten(self, db_session, location):
        today = utcnow().date()
        late_morning = datetime.combine(today, time(11, 0), tzinfo=timezone.utc)
        early = datetime.combine(today, time(9, 0), tzinfo=timezone.utc)
        service = Location360Service(db_session)

        alerts = service.build(location, "TODAY", now=late_morning)["alerts"]
        assert [a["type"] for a in alerts] == ["ZERO_SALES"]
        assert service.build(location, "TODAY", now=early)["alerts"] == []
        assert service.build(location, "WEEK", now=late_morning)["alerts"] == []

    def test_no_zero_sales_alert_once_something_sold(self, db_session, location):
        today = utcnow().date()
        sale = _sale(db_session, location, "25.00")
        sale.created_at = datetime.combine(today, time(9, 30), tzinfo=timezone.utc)
        db_session.commit()
        late_morning = datetime.combine(today, time(11, 0), tzinfo=timezone.utc)
        alerts = Location360Service(db_session).build(location, "TODAY", now=late_morning)["alerts"]
        assert "ZERO_SALES" not in {a["type"] for a in alerts}


class TestSlugify:
    def test_slugify(self):
        assert slugify("Main Street  Store!") == "main-street-store"
        assert slugify("   ") == "store"
