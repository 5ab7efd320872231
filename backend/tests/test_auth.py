"""Tests for authentication: hashing, tokens, login, phone + PIN login and enforcement."""

from datetime import timedelta

import pytest

from franchise_pos.core.rate_limit import PinLoginRateLimiter, pin_login_limiter
from franchise_pos.core.rbac import TokenData, UserRole
from franchise_pos.core.security import (
    StationTokenError,
    create_access_token,
    decode_access_token,
    decode_station_token,
    get_password_hash,
    get_pin_hash,
    issue_station_token,
    verify_password,
    verify_pin,
)

API = "/api/v1"


# ============== Password and PIN hashing ==============

class TestHashing:
    def test_password_hash_and_verify(self):
        h = get_password_hash("secret123")
        assert verify_password("secret123", h)
        assert not verify_password("wrong", h)

    def test_hash_is_salted(self):
        assert get_password_hash("same") != get_password_hash("same")

    def test_invalid_hash_returns_false(self):
        assert not verify_password("test", "not-a-hash")
        assert not verify_pin("1234", "bad-hash")

    def test_pin_hash_and_verify(self):
        h = get_pin_hash("1234")
        assert verify_pin("1234", h)
        assert not verify_pin("5678", h)


# ============== JWT tokens ==============

class TestJWTTokens:
    def test_create_and_decode(self):
        token = create_access_token(data={"sub": "42", "email": "a@b.com", "role": "MANAGER"})
        payload = decode_access_token(token)
        assert payload["sub"] == "42"
        assert payload["role"] == "MANAGER"
        assert "exp" in payload and "jti" in payload

    def test_expired_token_rejected(self):
        token = create_access_token(data={"sub": "1"}, expires_delta=timedelta(seconds=-10))
        assert decode_access_token(token) is None

    def test_invalid_token_rejected(self):
        assert decode_access_token("not.a.token") is None

    def test_station_token_is_not_a_user_token(self):
        token = issue_station_token(1, 2, 3, "fp", "Register")
        assert decode_access_token(token) is None
        payload = decode_station_token(token)
        assert payload["station_id"] == 1
        assert payload["franchise_id"] == 3

    def test_user_token_is_not_a_station_token(self):
        token = create_access_token(data={"sub": "1", "email": "a@b.com", "role": "EMPLOYEE"})
        with pytest.raises(StationTokenError) as exc:
            decode_station_token(token)
        assert exc.value.reason == "invalid"


# ============== Login endpoint ==============

class TestLoginEndpoint:
    def test_successful_login(self, client, user_factory):
        user_factory("login@example.com", UserRole.MANAGER, password="pass1234")
        res = client.post(f"{API}/auth/login", json={"email": "login@example.com", "password": "pass1234"})
        assert res.status_code == 200
        data = res.json()
        assert data["token_type"] == "bearer"
        assert decode_access_token(data["access_token"])["email"] == "login@example.com"

    def test_wrong_password(self, client, user_factory):
        user_factory("login@example.com", UserRole.MANAGER, password="pass1234")
        res = client.post(f"{API}/auth/login", json={"email": "login@example.com", "password": "nope"})
        assert res.status_code == 401
        assert res.json()["detail"] == "Invalid email or password"

    def test_unknown_email(self, client):
        res = client.post(f"{API}/auth/login", json={"email": "ghost@example.com", "password": "x"})
        assert res.status_code == 401

    def test_inactive_user(self, client, db_session, user_factory):
        user = user_factory("gone@example.com", UserRole.EMPLOYEE, password="pass1234")
        user.is_active = False
        db_session.commit()
        res = client.post(f"{API}/auth/login", json={"email": "gone@example.com", "password": "pass1234"})
        assert res.status_code == 401


class TestMe:
    def test_me_returns_profile_without_hashes(self, client, manager_user, manager_headers):
        res = client.get(f"{API}/auth/me", headers=manager_headers)
        assert res.status_code == 200
        data = res.json()
        assert data["email"] == manager_user.email
        assert data["role"] == "MANAGER"
        assert "password_hash" not in data
        assert "pin_hash" not in data

    def test_set_own_pin(self, client, db_session, manager_user, manager_headers):
        res = client.post(f"{API}/auth/me/pin", json={"pin": "4321"}, headers=manager_headers)
        assert res.status_code == 200
        db_session.refresh(manager_user)
        assert verify_pin("4321", manager_user.pin_hash)

    def test_set_pin_requires_four_digits(self, client, manager_headers):
        res = client.post(f"{API}/auth/me/pin", json={"pin": "12a4"}, headers=manager_headers)
        assert res.status_code == 422

    def test_logout_revokes_token(self, client, manager_headers):
        assert client.post(f"{API}/auth/logout", headers=manager_headers).status_code == 200
        assert client.get(f"{API}/auth/me", headers=manager_headers).status_code == 401


# ============== Phone + PIN login ==============

class TestPhonePinLogin:
    def _login(self, client, pin, phone="(555) 123-4567"):
        return client.post(f"{API}/auth/phone-pin-login", json={"phone": phone, "pin": pin})

    def test_successful_pin_login(self, client, employee_user, franchisor):
        res = self._login(client, "1234")
        assert res.status_code == 200
        data = res.json()
        assert data["user"]["id"] == employee_user.id
        assert data["user"]["role"] == "EMPLOYEE"
        assert data["user"]["location_id"] == employee_user.location_id
        assert data["user"]["industry_type"] == franchisor.industry_type
        assert decode_access_token(data["access_token"])["sub"] == str(employee_user.id)

    def test_short_phone_rejected(self, client, employee_user):
        res = self._login(client, "1234", phone="555-1234")
        assert res.status_code == 400

    def test_pin_must_be_four_digits(self, client, employee_user):
        res = self._login(client, "12345")
        assert res.status_code == 400

    def test_unknown_phone(self, client, employee_user):
        res = self._login(client, "1234", phone="2125550000")
        assert res.status_code == 401
        assert res.json()["detail"] == "Invalid phone or PIN"

    def test_only_employees_can_use_pin_login(self, client, db_session, franchise, user_factory):
        user = user_factory("mgr2@example.com", UserRole.MANAGER, franchise_id=franchise.id, phone="5559990000")
        user.pin_hash = get_pin_hash("1111")
        db_session.commit()
        res = self._login(client, "1111", phone="5559990000")
        assert res.status_code == 401

    def test_pin_not_set(self, client, franchise, user_factory):
        user_factory("nopin@example.com", UserRole.EMPLOYEE, franchise_id=franchise.id, phone="5558887777")
        res = self._login(client, "1234", phone="5558887777")
        assert res.status_code == 401
        assert "PIN not set" in res.json()["detail"]

    def test_wrong_pin_counts_down_then_locks(self, client, db_session, employee_user):
        res = self._login(client, "0000")
        assert res.status_code == 401
        assert res.json()["detail"] == "Invalid PIN. 4 attempts remaining."

        for _ in range(2):
            self._login(client, "0000")

        res = self._login(client, "0000")
        assert res.status_code == 401
        assert "LAST ATTEMPT" in res.json()["detail"]

        res = self._login(client, "0000")
        assert res.status_code == 423
        assert res.json()["detail"] == "Account locked. Try again in 15 minutes."

        # Correct PIN is refused while locked
        res = self._login(client, "1234")
        assert res.status_code == 423

        db_session.refresh(employee_user)
        assert employee_user.is_locked()

    def test_success_resets_failed_attempts(self, client, db_session, employee_user):
        self._login(client, "0000")
        self._login(client, "0000")
        assert self._login(client, "1234").status_code == 200
        db_session.refresh(employee_user)
        assert employee_user.failed_login_attempts == 0


class TestPinLoginRateLimit:
    @pytest.fixture
    def pin_limit_on(self):
        pin_login_limiter.reset()
        pin_login_limiter.enabled = True
        yield pin_login_limiter
        pin_login_limiter.enabled = False
        pin_login_limiter.reset()

    def _attempt(self, client, ip="10.0.0.1"):
        return client.post(
            f"{API}/auth/phone-pin-login",
            json={"phone": "123", "pin": "0000"},
            headers={"X-Forwarded-For": ip},
        )

    def test_eleventh_request_is_throttled(self, client, pin_limit_on):
        for _ in range(10):
            assert self._attempt(client).status_code == 400
        res = self._attempt(client)
        assert res.status_code == 429
        retry_after = res.json()["detail"]["retry_after"]
        assert 1 <= retry_after <= 60
        assert res.headers["Retry-After"] == str(retry_after)

    def test_window_is_per_ip(self, client, pin_limit_on):
        for _ in range(10):
            self._attempt(client)
        assert self._attempt(client).status_code == 429
        assert self._attempt(client, ip="10.0.0.2").status_code == 400

    def test_limiter_counts_and_resets(self):
        limiter = PinLoginRateLimiter(max_requests=2, window_seconds=60)
        assert limiter.hit("a") == (True, 0)
        assert limiter.hit("a") == (True, 0)
        allowed, retry_after = limiter.hit("a")
        assert not allowed
        assert 1 <= retry_after <= 60
        assert limiter.hit("b") == (True, 0)
        limiter.reset()
        assert limiter.hit("a") == (True, 0)


# ============== Auth enforcement ==============

class TestAuthEnforcement:
    def test_get_without_token(self, client):
        res = client.get(f"{API}/transactions/")
        assert res.status_code == 401
        assert res.json()["detail"] == "Authentication required"

    def test_write_without_token(self, client):
        res = client.post(f"{API}/clients/", json={"first_name": "Ann"})
        assert res.status_code == 401
        assert res.json()["detail"] == "Authentication required for this operation"

    def test_garbage_token(self, client):
        res = client.get(f"{API}/auth/me", headers={"Authorization": "Bearer garbage"})
        assert res.status_code == 401

    def test_token_missing_claims(self, client, manager_user):
        token = create_access_token(data={"sub": str(manager_user.id)})
        res = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_public_paths(self, client):
        assert client.get("/health").status_code == 200
        assert client.get("/").json()["message"] == "Franchise POS API"

    def test_security_headers(self, client):
        res = client.get("/health")
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"

    def test_deactivated_user_token_rejected(self, client, db_session, manager_user, auth_headers_for):
        headers = auth_headers_for(manager_user)
        manager_user.is_active = False
        db_session.commit()
        res = client.get(f"{API}/auth/me", headers=headers)
        assert res.status_code == 401


# ============== Role hierarchy ==============

class TestRoleHierarchy:
    def test_require_role(self, client, manager_headers, provider_headers):
        assert client.get(f"{API}/franchisors/", headers=manager_headers).status_code == 403
        assert client.get(f"{API}/franchisors/", headers=provider_headers).status_code == 200

    def test_role_levels(self):
        franchisee = TokenData(1, "f@example.com", UserRole.FRANCHISEE)
        employee = TokenData(2, "e@example.com", UserRole.EMPLOYEE, permissions={"can_view_reports": True})
        assert franchisee.has_role(UserRole.MANAGER)
        assert not franchisee.has_role(UserRole.FRANCHISOR)
        assert franchisee.can("can_process_refunds")
        assert employee.can("can_view_reports")
        assert not employee.can("can_process_refunds")
