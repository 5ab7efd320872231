"""Audit logging service.

Writes audit log entries for state-changing operations. Used by the
AuditLoggingMiddleware and called directly from route handlers where the
entry should carry more detail (old/new values, login outcome).

When called without an explicit ``db`` session, ``log_action`` opens its own
short-lived session so the middleware does not share the request's session.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from franchise_pos.db.session import session_scope
from franchise_pos.models.operations import AuditLogEntry

logger = logging.getLogger("audit")


def log_action(
    action: str,
    entity_type: str = "",
    entity_id: str = "",
    user_id: Optional[int] = None,
    user_name: str = "",
    ip_address: str = "",
    details: Optional[dict[str, Any]] = None,
    db: Optional[Session] = None,
) -> None:
    """Write an audit log entry.

    Args:
        action: The action performed (create, update, delete, login, etc.)
        entity_type: Type of entity affected (location, transfer, gift_card, etc.)
        entity_id: ID of the affected entity
        user_id: ID of the user performing the action
        user_name: Email of the user
        ip_address: Client IP address
        details: Additional details (old_value, new_value, description, etc.)
        db: Optional existing DB session. If None, creates a new one.
    """
    entry = AuditLogEntry(
        user_id=user_id,
        user_name=user_name,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id else "",
        details=details or {},
        ip_address=ip_address or "",
        created_at=datetime.now(timezone.utc),
    )
    if db is not None:
        # The caller's session commits; flush so the entry is visible in its transaction.
        db.add(entry)
        db.flush()
        return

    with session_scope() as own:
        try:
            own.add(entry)
            own.commit()
        except SQLAlchemyError:
            logger.exception("Failed to write audit log entry")
            own.rollback()


def log_login(user_id: Optional[int], email: str, ip_address: str, success: bool = True,
              method: str = "password", db: Optional[Session] = None) -> None:
    """Log a login attempt."""
    log_action(
        action="login" if success else "failed_login",
        entity_type="session",
        user_id=user_id if success else None,
        user_name=email,
        ip_address=ip_address,
        details={
            "method": method,
            "description": f"{'Successful' if success else 'Failed'} {method} login for {email}",
        },
        db=db,
    )


def log_entity_change(
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: Optional[int] = None,
    user_name: str = "",
    old_value: Any = None,
    new_value: Any = None,
    description: str = "",
    db: Optional[Session] = None,
) -> None:
    """Log a create/update/delete on an entity with old/new values."""
    details: dict[str, Any] = {}
    if description:
        details["description"] = description
    if old_value is not None:
        details["old_value"] = str(old_value)[:1000]
    if new_value is not None:
        details["new_value"] = str(new_value)[:1000]

    log_action(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        user_name=user_name,
        details=details,
        db=db,
    )
