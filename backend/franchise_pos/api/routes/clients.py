"""Client routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Query, Request, status
from sqlalchemy import or_

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser
from franchise_pos.core.responses import paginated_response
from franchise_pos.core.tenancy import resolve_franchise_id, scope_to_franchises
from franchise_pos.db.session import DbSession
from franchise_pos.models.client import Client
from franchise_pos.schemas.client import ClientCreate, ClientResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def list_clients(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    search: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """Clients of the caller's franchises, searchable by name or phone."""
    query = scope_to_franchises(db.query(Client), Client.franchise_id, db, current_user)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Client.first_name.ilike(pattern),
            Client.last_name.ilike(pattern),
            Client.phone.ilike(pattern),
        ))
    total = query.count()
    rows = query.order_by(Client.first_name, Client.id).offset(skip).limit(limit).all()
    items = [ClientResponse.model_validate(c).model_dump(mode="json") for c in rows]
    return paginated_response(items, total, skip, limit)


@router.post("/", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_client(request: Request, body: ClientCreate, db: DbSession, current_user: CurrentUser):
    """Add a client to the caller's franchise."""
    franchise_id = resolve_franchise_id(db, current_user, body.franchise_id)
    client = Client(
        franchise_id=franchise_id,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        email=body.email,
        notes=body.notes,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    logger.info(f"Client {client.id} created in franchise {franchise_id}")
    return client
