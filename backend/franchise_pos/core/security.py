"""Security utilities: JWT tokens, password/PIN hashing and station tokens."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt
import redis
from jwt.exceptions import ExpiredSignatureError, PyJWTError

from franchise_pos.core.config import settings

logger = logging.getLogger(__name__)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hash.

    Uses bcrypt's built-in timing-safe comparison.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError as e:
        logger.warning(f"Password verification error: {e}")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt()
    ).decode('utf-8')


def verify_pin(plain_pin: str, hashed_pin: str) -> bool:
    """Verify a plain PIN against a hash."""
    try:
        return bcrypt.checkpw(
            plain_pin.encode('utf-8'),
            hashed_pin.encode('utf-8')
        )
    except ValueError as e:
        logger.warning(f"PIN verification error: {e}")
        return False


def get_pin_hash(pin: str) -> str:
    """Hash a PIN code using bcrypt."""
    return bcrypt.hashpw(
        pin.encode('utf-8'),
        bcrypt.gensalt()
    ).decode('utf-8')


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token with a unique JTI for blacklisting support."""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({
        "exp": expire,
        "iat": now,
        "jti": secrets.token_urlsafe(16),
    })
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT token. Checks the blacklist."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require_exp": True}
        )
    except PyJWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None

    if payload.get("purpose") == "station":
        return None

    jti = payload.get("jti")
    if jti and _is_token_blacklisted(jti):
        logger.debug(f"Token {jti} is blacklisted")
        return None

    return payload


def blacklist_token(token: str) -> bool:
    """Add a token to the blacklist (invalidate session).

    The token is stored in Redis with TTL matching its expiration time.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require_exp": True, "verify_exp": False}
        )
    except PyJWTError:
        return False

    jti = payload.get("jti")
    if not jti:
        return False

    exp = payload.get("exp", 0)
    ttl = max(int(exp - datetime.now(timezone.utc).timestamp()), 60)

    if settings.redis_url:
        try:
            r = redis.from_url(settings.redis_url, socket_connect_timeout=2)
            r.setex(f"token_blacklist:{jti}", ttl, "1")
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis blacklist failed: {e}")

    # Fallback: in-memory blacklist (cleared on restart)
    _memory_blacklist[jti] = datetime.now(timezone.utc) + timedelta(seconds=ttl)
    return True


def _is_token_blacklisted(jti: str) -> bool:
    """Check if a token JTI is blacklisted."""
    if settings.redis_url:
        try:
            r = redis.from_url(settings.redis_url, socket_connect_timeout=1)
            if r.get(f"token_blacklist:{jti}"):
                return True
        except redis.RedisError as e:
            logger.warning(f"Redis blacklist check failed: {e}")

    expiry = _memory_blacklist.get(jti)
    if expiry:
        if datetime.now(timezone.utc) < expiry:
            return True
        del _memory_blacklist[jti]
    return False


# In-memory blacklist fallback (for when Redis is unavailable)
_memory_blacklist: Dict[str, datetime] = {}


# ---------------------------------------------------------------------------
# Station tokens
# ---------------------------------------------------------------------------

class StationTokenError(Exception):
    """Raised when a station token cannot be accepted."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def issue_station_token(
    station_id: int,
    location_id: int,
    franchise_id: int,
    device_fingerprint: str,
    station_name: str,
) -> str:
    """Issue a long-lived token for a freshly paired terminal."""
    now = datetime.now(timezone.utc)
    payload = {
        "purpose": "station",
        "station_id": station_id,
        "location_id": location_id,
        "franchise_id": franchise_id,
        "device_fingerprint": device_fingerprint,
        "station_name": station_name,
        "iat": now,
        "exp": now + timedelta(days=settings.station_token_expire_days),
    }
    return jwt.encode(payload, settings.station_secret, algorithm=settings.algorithm)


def decode_station_token(token: str) -> dict[str, Any]:
    """Decode a station token, raising StationTokenError("expired"|"invalid")."""
    try:
        payload = jwt.decode(
            token,
            settings.station_secret,
            algorithms=[settings.algorithm],
            options={"require_exp": True},
        )
    except ExpiredSignatureError:
        raise StationTokenError("expired")
    except PyJWTError:
        raise StationTokenError("invalid")

    if payload.get("purpose") != "station" or not payload.get("station_id"):
        raise StationTokenError("invalid")
    return payload


def generate_code(length: int, alphabet: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789") -> str:
    """Random human-friendly code (no 0/O or 1/I)."""
    return "".join(secrets.choice(alphabet) for _ in range(length))
