"""Terminal (station) authentication for /pos endpoints.

Station, location and franchise scope always come from the signed
``X-Station-Token`` header, never from the request payload.
"""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from franchise_pos.core.rate_limit import client_ip
from franchise_pos.core.security import StationTokenError, decode_station_token
from franchise_pos.db.base import utcnow
from franchise_pos.db.session import DbSession
from franchise_pos.models.location import Station

logger = logging.getLogger("auth")

STATION_TOKEN_HEADER = "X-Station-Token"


@dataclass
class StationContext:
    station_id: int
    location_id: int
    franchise_id: int
    station_name: str
    device_fingerprint: str


def _log_station_auth(request: Request, event: str, reason: str = "", payload: dict | None = None) -> None:
    payload = payload or {}
    line = (
        f"{event} station={payload.get('station_id')} location={payload.get('location_id')} "
        f"franchise={payload.get('franchise_id')} ip={client_ip(request)} "
        f"endpoint={request.url.path}"
    )
    if reason:
        line += f" reason={reason}"
    if event == "POS_AUTH_SUCCESS":
        logger.info(line)
    else:
        logger.warning(line)


def device_not_paired() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "code": "DEVICE_NOT_PAIRED",
            "message": "Terminal not configured. Please enter pairing code.",
        },
    )


def get_station_context(request: Request, db: DbSession) -> StationContext:
    """Authenticate the terminal making the request."""
    token = request.headers.get(STATION_TOKEN_HEADER)
    if not token:
        _log_station_auth(request, "POS_AUTH_FAILURE", "TOKEN_MISSING")
        raise device_not_paired()

    try:
        payload = decode_station_token(token)
    except StationTokenError as e:
        _log_station_auth(request, "POS_AUTH_FAILURE", f"TOKEN_{e.reason.upper()}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": "TOKEN_INVALID_OR_EXPIRED",
                "reason": e.reason,
                "message": (
                    "Station token expired. Please re-pair device."
                    if e.reason == "expired"
                    else "Invalid station token. Please re-pair device."
                ),
            },
        )

    station = db.query(Station).filter(Station.id == payload["station_id"]).first()
    if station is None or not station.is_trusted:
        _log_station_auth(request, "POS_AUTH_FAILURE", "STATION_REVOKED", payload)
        raise device_not_paired()

    station.last_seen_at = utcnow()
    db.commit()

    _log_station_auth(request, "POS_AUTH_SUCCESS", payload=payload)
    return StationContext(
        station_id=station.id,
        location_id=payload["location_id"],
        franchise_id=payload["franchise_id"],
        station_name=payload.get("station_name", station.name),
        device_fingerprint=payload.get("device_fingerprint", ""),
    )


StationAuth = Annotated[StationContext, Depends(get_station_context)]
