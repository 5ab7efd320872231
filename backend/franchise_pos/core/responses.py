"""Standardized API response helpers.

All list endpoints return a consistent envelope:
    {"items": [...], "total": <int>}

Offset-paginated endpoints additionally include:
    {"items": [...], "total": <int>, "skip": <int>, "limit": <int>, "has_more": <bool>}

Cursor-paginated endpoints return:
    {"items": [...], "total": <int>, "next_cursor": <int | None>}

Single-item endpoints return the object directly (no wrapper).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional


def list_response(
    items: list,
    total: Optional[int] = None,
) -> dict:
    """Wrap a list in the standard envelope."""
    return {
        "items": items,
        "total": total if total is not None else len(items),
    }


def paginated_response(
    items: list,
    total: int,
    skip: int = 0,
    limit: int = 50,
) -> dict:
    """Wrap a paginated list in the standard envelope."""
    return {
        "items": items,
        "total": total,
        "skip": skip,
        "limit": limit,
        "has_more": (skip + len(items)) < total,
    }


def cursor_response(items: list, total: int, limit: int, cursor_of) -> dict:
    """Wrap a keyset page. ``cursor_of`` maps the last item to the next cursor."""
    next_cursor = cursor_of(items[-1]) if items and len(items) == limit else None
    return {
        "items": items,
        "total": total,
        "next_cursor": next_cursor,
    }


def money(value: Any) -> float:
    """Decimal (or None) to a float rounded to cents for JSON output."""
    if value is None:
        return 0.0
    if isinstance(value, Decimal):
        return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    return round(float(value), 2)
