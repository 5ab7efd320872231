"""Station (terminal) routes: creation, pairing and revocation."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status

from franchise_pos.core.rate_limit import client_ip, limiter
from franchise_pos.core.rbac import CurrentUser, RequireManager
from franchise_pos.core.responses import list_response
from franchise_pos.core.security import generate_code, issue_station_token
from franchise_pos.core.tenancy import get_accessible_location, scope_to_franchises
from franchise_pos.db.base import utcnow
from franchise_pos.db.session import DbSession
from franchise_pos.models.location import Location, ProvisioningStatus, Station
from franchise_pos.schemas.location import (
    StationCreate,
    StationPairRequest,
    StationPairResponse,
    StationResponse,
)

logger = logging.getLogger(__name__)
auth_logger = logging.getLogger("auth")

router = APIRouter()

PAIRING_CODE_LENGTH = 6


def _new_pairing_code(db) -> str:
    while True:
        code = generate_code(PAIRING_CODE_LENGTH)
        if not db.query(Station.id).filter(Station.pairing_code == code).first():
            return code


@router.post("/", response_model=StationResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_station(request: Request, body: StationCreate, db: DbSession, current_user: RequireManager):
    """Create a station with a fresh pairing code."""
    location = get_accessible_location(db, current_user, body.location_id)
    station = Station(
        location_id=location.id,
        name=body.name,
        pairing_code=_new_pairing_code(db),
        is_trusted=False,
    )
    db.add(station)
    db.commit()
    db.refresh(station)
    logger.info(f"Station {station.id} created at location {location.id}")
    return station


@router.get("/")
@limiter.limit("60/minute")
def list_stations(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    location_id: Optional[int] = None,
):
    """Stations visible to the caller."""
    query = db.query(Station).join(Location, Location.id == Station.location_id)
    query = scope_to_franchises(query, Location.franchise_id, db, current_user)
    if location_id is not None:
        get_accessible_location(db, current_user, location_id)
        query = query.filter(Station.location_id == location_id)
    rows = query.order_by(Station.id).all()
    return list_response([StationResponse.model_validate(s).model_dump(mode="json") for s in rows])


@router.post("/pair", response_model=StationPairResponse)
@limiter.limit("10/minute")
def pair_station(request: Request, body: StationPairRequest, db: DbSession):
    """Exchange a pairing code for a station token. The code is single use."""
    code = body.pairing_code.strip().upper()
    station = db.query(Station).filter(Station.pairing_code == code).first()
    if station is None:
        auth_logger.warning(f"STATION_PAIR_FAILURE code={code} ip={client_ip(request)}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid pairing code")

    location = db.query(Location).filter(Location.id == station.location_id).first()
    station.device_fingerprint = body.device_fingerprint
    station.is_trusted = True
    station.paired_at = utcnow()
    station.last_seen_at = station.paired_at
    station.pairing_code = None
    if location.provisioning_status == ProvisioningStatus.PENDING:
        location.provisioning_status = ProvisioningStatus.IN_PROGRESS
    db.commit()
    db.refresh(station)

    token = issue_station_token(
        station_id=station.id,
        location_id=location.id,
        franchise_id=location.franchise_id,
        device_fingerprint=body.device_fingerprint,
        station_name=station.name,
    )
    auth_logger.info(
        f"STATION_PAIRED station={station.id} location={location.id} "
        f"franchise={location.franchise_id} ip={client_ip(request)}"
    )
    return StationPairResponse(
        station_token=token,
        station=StationResponse.model_validate(station),
        location_id=location.id,
        franchise_id=location.franchise_id,
    )


@router.post("/{station_id}/revoke", response_model=StationResponse)
@limiter.limit("30/minute")
def revoke_station(request: Request, station_id: int, db: DbSession, current_user: RequireManager):
    """Stop trusting a station. Its token is rejected from now on."""
    station = db.query(Station).filter(Station.id == station_id).first()
    if not station:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Station not found")
    get_accessible_location(db, current_user, station.location_id)
    station.is_trusted = False
    db.commit()
    db.refresh(station)
    auth_logger.warning(f"STATION_REVOKED station={station.id} by user={current_user.user_id}")
    return station
