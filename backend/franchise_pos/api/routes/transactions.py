"""Transaction history, refund and void routes."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from franchise_pos.core.rate_limit import limiter
from franchise_pos.core.rbac import CurrentUser, TokenData, UserRole
from franchise_pos.core.responses import paginated_response
from franchise_pos.core.tenancy import accessible_franchise_ids, scope_to_franchises
from franchise_pos.db.session import DbSession
from franchise_pos.models.transaction import Transaction, TransactionStatus
from franchise_pos.schemas.transaction import (
    RefundRequest,
    TransactionDetailResponse,
    TransactionResponse,
)
from franchise_pos.services.checkout_service import CheckoutService
from franchise_pos.services.report_service import day_bounds

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_transaction(db, current_user: TokenData, transaction_id: int) -> Transaction:
    transaction = db.query(Transaction).filter(Transaction.id == transaction_id).first()
    if not transaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    ids = accessible_franchise_ids(db, current_user)
    if ids is not None and transaction.franchise_id not in ids:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    if current_user.role in (UserRole.MANAGER, UserRole.EMPLOYEE) and current_user.location_id \
            and transaction.location_id != current_user.location_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return transaction


@router.get("/")
@limiter.limit("60/minute")
def list_transactions(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    location_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
):
    """Transactions in the caller's scope, newest first."""
    query = scope_to_franchises(db.query(Transaction), Transaction.franchise_id, db, current_user)
    if current_user.role in (UserRole.MANAGER, UserRole.EMPLOYEE) and current_user.location_id:
        query = query.filter(Transaction.location_id == current_user.location_id)
    elif location_id is not None:
        query = query.filter(Transaction.location_id == location_id)
    if start_date is not None:
        query = query.filter(Transaction.created_at >= day_bounds(start_date)[0])
    if end_date is not None:
        query = query.filter(Transaction.created_at < day_bounds(end_date)[1])
    if status_filter is not None:
        query = query.filter(Transaction.status == status_filter)

    total = query.count()
    rows = query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).offset(skip).limit(limit).all()
    items = [TransactionResponse.model_validate(t).model_dump(mode="json") for t in rows]
    return paginated_response(items, total, skip, limit)


@router.get("/{transaction_id}", response_model=TransactionDetailResponse)
@limiter.limit("60/minute")
def get_transaction(request: Request, transaction_id: int, db: DbSession, current_user: CurrentUser):
    """A transaction with its line items."""
    return _get_transaction(db, current_user, transaction_id)


@router.post("/{transaction_id}/refund", response_model=TransactionDetailResponse)
@limiter.limit("10/minute")
def refund_transaction(
    request: Request,
    transaction_id: int,
    body: RefundRequest,
    db: DbSession,
    current_user: CurrentUser,
):
    """Fully refund a sale. Managers and above, or staff allowed to refund."""
    if not (current_user.has_role(UserRole.MANAGER) or current_user.can("can_process_refunds")):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to process refunds")
    transaction = _get_transaction(db, current_user, transaction_id)
    try:
        refund = CheckoutService(db).refund(transaction.id, current_user.user_id, body.reason)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info(f"Transaction {transaction.id} refunded by {current_user.email}")
    return refund


@router.post("/{transaction_id}/void", response_model=TransactionDetailResponse)
@limiter.limit("10/minute")
def void_transaction(request: Request, transaction_id: int, db: DbSession, current_user: CurrentUser):
    """Void a sale rung up today."""
    transaction = _get_transaction(db, current_user, transaction_id)
    try:
        return CheckoutService(db).void(transaction.id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
