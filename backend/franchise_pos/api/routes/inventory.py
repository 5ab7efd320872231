"""Inventory routes: suppliers, items and smart ordering."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import or_

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, TokenData
from franchise_pos.core.responses import list_response
from franchise_pos.core.tenancy import (
    get_accessible_location,
    resolve_franchise_id,
    scope_to_franchises,
)
from franchise_pos.db.session import DbSession
from franchise_pos.models.inventory import Item, Supplier
from franchise_pos.schemas.inventory import (
    ItemCreate,
    ItemResponse,
    ItemUpdate,
    SupplierCreate,
    SupplierResponse,
)
from franchise_pos.services.inventory_service import SmartOrderingService

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_inventory_access(current_user: TokenData) -> None:
    if not current_user.can("can_manage_inventory"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to manage inventory")


def _check_supplier(db, supplier_id: Optional[int], franchise_id: int) -> None:
    if supplier_id is None:
        return
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id).first()
    if not supplier or supplier.franchise_id != franchise_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")


# ==================== Suppliers ====================

@router.get("/suppliers")
@limiter.limit("60/minute")
def list_suppliers(request: Request, db: DbSession, current_user: CurrentUser):
    query = scope_to_franchises(db.query(Supplier), Supplier.franchise_id, db, current_user)
    rows = query.order_by(Supplier.name).all()
    return list_response([SupplierResponse.model_validate(s).model_dump(mode="json") for s in rows])


@router.post("/suppliers", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_supplier(request: Request, body: SupplierCreate, db: DbSession, current_user: CurrentUser):
    _require_inventory_access(current_user)
    franchise_id = resolve_franchise_id(db, current_user, body.franchise_id)
    supplier = Supplier(franchise_id=franchise_id, **body.model_dump(exclude={"franchise_id"}))
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    logger.info(f"Supplier {supplier.id} ({supplier.name}) created in franchise {franchise_id}")
    return supplier


# ==================== Items ====================

@router.get("/items")
@limiter.limit("60/minute")
def list_items(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    location_id: Optional[int] = None,
    search: Optional[str] = None,
    low_stock: bool = False,
    include_inactive: bool = False,
):
    """Items in the caller's scope; ``low_stock`` keeps those at or under their reorder point."""
    query = scope_to_franchises(db.query(Item), Item.franchise_id, db, current_user)
    if location_id is not None:
        get_accessible_location(db, current_user, location_id)
        query = query.filter(Item.location_id == location_id)
    if not include_inactive:
        query = query.filter(Item.active())
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Item.name.ilike(pattern),
            Item.sku.ilike(pattern),
            Item.barcode.ilike(pattern),
        ))
    if low_stock:
        query = query.filter(Item.reorder_point.isnot(None), Item.stock <= Item.reorder_point)
    rows = query.order_by(Item.name).all()
    return list_response([ItemResponse.model_validate(i).model_dump(mode="json") for i in rows])


@router.post("/items", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
def create_item(request: Request, body: ItemCreate, db: DbSession, current_user: CurrentUser):
    _require_inventory_access(current_user)
    location = get_accessible_location(db, current_user, body.location_id)
    _check_supplier(db, body.supplier_id, location.franchise_id)

    item = Item(franchise_id=location.franchise_id, **body.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info(f"Item {item.id} ({item.name}) created at location {location.id}")
    return item


@router.patch("/items/{item_id}", response_model=ItemResponse)
@limiter.limit("60/minute")
def update_item(request: Request, item_id: int, body: ItemUpdate, db: DbSession, current_user: CurrentUser):
    _require_inventory_access(current_user)
    item = db.query(Item).filter(Item.id == item_id).first()
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    get_accessible_location(db, current_user, item.location_id)

    changes = body.model_dump(exclude_unset=True)
    if changes.get("supplier_id") is not None:
        _check_supplier(db, changes["supplier_id"], item.franchise_id)
    for field, value in changes.items():
        if value is not None:
            setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item


# ==================== Smart ordering ====================

@router.get("/smart-ordering")
@limiter.limit("30/minute")
def smart_ordering(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    location_id: Optional[int] = None,
    franchise_id: Optional[int] = None,
):
    """Reorder suggestions grouped by supplier, most urgent first."""
    if location_id is not None:
        location = get_accessible_location(db, current_user, location_id)
        franchise_id = location.franchise_id
    else:
        franchise_id = resolve_franchise_id(db, current_user, franchise_id)
    return SmartOrderingService(db).suggestions(franchise_id, location_id)
