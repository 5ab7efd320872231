"""Appointment routes."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser
from franchise_pos.core.responses import list_response
from franchise_pos.core.tenancy import get_accessible_location, scope_to_franchises
from franchise_pos.db.session import DbSession
from franchise_pos.models.client import Appointment, Client
from franchise_pos.models.location import Location
from franchise_pos.schemas.client import AppointmentCreate, AppointmentResponse, AppointmentUpdate
from franchise_pos.services.report_service import day_bounds

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_appointment(db, current_user, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    get_accessible_location(db, current_user, appointment.location_id)
    return appointment


@router.get("/")
@limiter.limit("60/minute")
def list_appointments(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    location_id: Optional[int] = None,
    date: Optional[date] = None,
):
    """Appointments, optionally for one location and day."""
    query = db.query(Appointment).join(Location, Location.id == Appointment.location_id)
    query = scope_to_franchises(query, Location.franchise_id, db, current_user)
    if location_id is not None:
        get_accessible_location(db, current_user, location_id)
        query = query.filter(Appointment.location_id == location_id)
    if date is not None:
        start, end = day_bounds(date)
        query = query.filter(Appointment.start_time >= start, Appointment.start_time < end)
    rows = query.order_by(Appointment.start_time).all()
    return list_response([AppointmentResponse.model_validate(a).model_dump(mode="json") for a in rows])


@router.post("/", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_appointment(request: Request, body: AppointmentCreate, db: DbSession, current_user: CurrentUser):
    """Book an appointment."""
    location = get_accessible_location(db, current_user, body.location_id)
    if body.client_id is not None:
        client = db.query(Client).filter(Client.id == body.client_id).first()
        if not client or client.franchise_id != location.franchise_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    appointment = Appointment(**body.model_dump())
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    logger.info(f"Appointment {appointment.id} booked at location {location.id}")
    return appointment


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
@limiter.limit("30/minute")
def update_appointment(
    request: Request,
    appointment_id: int,
    body: AppointmentUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Reschedule, reassign or change the status of an appointment."""
    appointment = _get_appointment(db, current_user, appointment_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(appointment, field, value)
    db.commit()
    db.refresh(appointment)
    return appointment
