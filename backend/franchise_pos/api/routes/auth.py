"""Authentication routes."""

import logging
import math
import re
from datetime import timedelta

from fastapi import APIRouter, HTTPException, Request, status

from franchise_pos.core.config import settings
from franchise_pos.core.rate_limit import client_ip, limiter, pin_login_limiter
from franchise_pos.core.rbac import CurrentUser, UserRole
from franchise_pos.core.security import (
    blacklist_token,
    create_access_token,
    get_pin_hash,
    verify_password,
    verify_pin,
)
from franchise_pos.db.base import as_utc, utcnow
from franchise_pos.db.session import DbSession
from franchise_pos.models.tenant import Franchise, Franchisor
from franchise_pos.models.user import User
from franchise_pos.schemas.auth import (
    LoginRequest,
    LoginUser,
    PhonePinLoginRequest,
    PhonePinLoginResponse,
    SetPinRequest,
    Token,
)
from franchise_pos.schemas.user import UserResponse
from franchise_pos.services.audit_service import log_login

logger = logging.getLogger("auth")

router = APIRouter()


def _issue_token(user: User) -> str:
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )


def _find_employee_by_phone(db, digits: str):
    """Exact digits first, then containment, then the last 7 digits."""
    base = db.query(User).filter(User.role == UserRole.EMPLOYEE, User.is_active.is_(True))
    user = base.filter(User.phone == digits).first()
    if user is None:
        user = base.filter(User.phone.contains(digits)).first()
    if user is None and len(digits) >= 7:
        user = base.filter(User.phone.contains(digits[-7:])).first()
    return user


def _industry_type(db, user: User):
    if not user.franchise_id:
        return None
    row = db.query(Franchisor.industry_type).join(
        Franchise, Franchise.franchisor_id == Franchisor.id
    ).filter(Franchise.id == user.franchise_id).first()
    return row.industry_type if row else None


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, login_request: LoginRequest, db: DbSession):
    """Authenticate user and return JWT token."""
    ip = client_ip(request)
    user = db.query(User).filter(User.email == login_request.email).first()

    if not user or not verify_password(login_request.password, user.password_hash):
        logger.warning(f"Failed login attempt for email: {login_request.email} from IP: {ip}")
        log_login(user_id=None, email=login_request.email, ip_address=ip, success=False)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        logger.warning(f"Login attempt for inactive user: {login_request.email} (ID: {user.id}) from IP: {ip}")
        log_login(user_id=user.id, email=login_request.email, ip_address=ip, success=False)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive",
        )

    logger.info(f"Successful login: {user.email} (ID: {user.id}, role: {user.role.value}) from IP: {ip}")
    log_login(user_id=user.id, email=user.email, ip_address=ip, success=True)
    return Token(access_token=_issue_token(user))


@router.post("/phone-pin-login", response_model=PhonePinLoginResponse)
def phone_pin_login(request: Request, body: PhonePinLoginRequest, db: DbSession):
    """Employee sign-in at a terminal with phone number and 4-digit PIN.

    Failed PINs count against the account: the last allowed attempt carries a
    warning and the next one locks the account for ``pin_lockout_minutes``.
    """
    ip = client_ip(request)
    allowed, retry_after = pin_login_limiter.hit(ip)
    if not allowed:
        logger.warning(f"PIN login rate limit hit from IP: {ip}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": "Too many login attempts. Please try again later.",
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    digits = re.sub(r"\D", "", body.phone)
    if len(digits) < 10:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Valid phone number required")
    if len(body.pin) != 4:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="PIN must be 4 digits")

    user = _find_employee_by_phone(db, digits)
    if user is None:
        logger.warning(f"PIN login for unknown phone ending {digits[-4:]} from IP: {ip}")
        log_login(user_id=None, email=f"phone:***{digits[-4:]}", ip_address=ip, success=False, method="pin")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid phone or PIN")

    now = utcnow()
    locked_until = as_utc(user.locked_until)
    if locked_until is not None and locked_until > now:
        minutes = math.ceil((locked_until - now).total_seconds() / 60)
        logger.warning(f"PIN login for locked account {user.id} from IP: {ip}")
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail=f"Account locked. Try again in {minutes} minutes.",
        )

    if not user.pin_hash:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="PIN not set. Ask your manager to set up your PIN.",
        )

    if not verify_pin(body.pin, user.pin_hash):
        attempts = (user.failed_login_attempts or 0) + 1
        user.failed_login_attempts = attempts
        max_attempts = settings.pin_login_max_attempts
        if attempts >= max_attempts:
            user.locked_until = now + timedelta(minutes=settings.pin_lockout_minutes)
            db.commit()
            logger.warning(f"Account {user.id} locked after {attempts} failed PIN attempts from IP: {ip}")
            log_login(user_id=user.id, email=user.email, ip_address=ip, success=False, method="pin")
            raise HTTPException(
                status_code=status.HTTP_423_LOCKED,
                detail=f"Account locked. Try again in {settings.pin_lockout_minutes} minutes.",
            )
        db.commit()
        remaining = max_attempts - attempts
        log_login(user_id=user.id, email=user.email, ip_address=ip, success=False, method="pin")
        if remaining == 1:
            detail = "Invalid PIN. LAST ATTEMPT before your account is locked."
        else:
            detail = f"Invalid PIN. {remaining} attempts remaining."
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

    user.failed_login_attempts = 0
    user.locked_until = None
    db.commit()

    logger.info(f"Successful PIN login: {user.email} (ID: {user.id}) from IP: {ip}")
    log_login(user_id=user.id, email=user.email, ip_address=ip, success=True, method="pin")
    return PhonePinLoginResponse(
        access_token=_issue_token(user),
        user=LoginUser(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role.value,
            franchise_id=user.franchise_id,
            location_id=user.location_id,
            industry_type=_industry_type(db, user),
        ),
    )


@router.post("/logout")
@limiter.limit("30/minute")
def logout(request: Request, current_user: CurrentUser):
    """Invalidate the current access token."""
    token = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
    if not token:
        token = request.cookies.get("access_token")
    if token:
        blacklist_token(token)
    logger.info(f"Logout: {current_user.email} (ID: {current_user.user_id})")
    return {"status": "ok"}


@router.get("/me", response_model=UserResponse)
@limiter.limit("60/minute")
def get_me(request: Request, db: DbSession, current_user: CurrentUser):
    """Get current user info."""
    return db.query(User).filter(User.id == current_user.user_id).first()


@router.post("/me/pin")
@limiter.limit("10/minute")
def set_my_pin(request: Request, body: SetPinRequest, db: DbSession, current_user: CurrentUser):
    """Set the caller's own 4-digit PIN."""
    user = db.query(User).filter(User.id == current_user.user_id).first()
    user.pin_hash = get_pin_hash(body.pin)
    user.failed_login_attempts = 0
    user.locked_until = None
    db.commit()
    logger.info(f"PIN updated for user {user.id}")
    return {"status": "ok"}
