# Overview: Service-layer read operations for committed sales; history listing and sale detail.

from __future__ import annotations

from datetime import datetime

from ..errors import ValidationError
from ..models import Sale
from ..models.sales import VALID_PAYMENT_KINDS
from ..time_utils import parse_iso_datetime
from .ownership_service import require_visible_sale, visible_sales_query

DEFAULT_LIMIT = 100
MAX_LIMIT = 500


def _parse_bound(value, field: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime", details={"field": field})


def list_sales(
    principal_id: int,
    since=None,
    until=None,
    limit: int | None = DEFAULT_LIMIT,
    payment_kind: str | None = None,
) -> dict:
    """
    Sales visible to the principal, newest first.

    A cashier sees the sales they rang up; an admin sees every sale.
    since/until bound created_at (inclusive) and accept ISO-8601 strings.
    """
    since_dt = _parse_bound(since, "since")
    until_dt = _parse_bound(until, "until")
    if since_dt and until_dt and since_dt > until_dt:
        raise ValidationError("since must not be after until")

    if limit is None:
        limit = DEFAULT_LIMIT
    if limit < 1:
        raise ValidationError("limit must be positive")
    limit = min(limit, MAX_LIMIT)

    query = visible_sales_query(principal_id)
    if since_dt:
        query = query.filter(Sale.created_at >= since_dt)
    if until_dt:
        query = query.filter(Sale.created_at <= until_dt)
    if payment_kind:
        if payment_kind not in VALID_PAYMENT_KINDS:
            raise ValidationError(
                f"Invalid payment kind: {payment_kind}. Must be one of {list(VALID_PAYMENT_KINDS)}"
            )
        query = query.filter(Sale.payment_kind == payment_kind)

    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()
    return {
        "items": [s.to_dict(viewer_id=principal_id) for s in sales],
        "count": len(sales),
    }


def get_sale(principal_id: int, sale_id: int) -> dict:
    sale = require_visible_sale(sale_id, principal_id)
    return sale.to_dict(include_lines=True, viewer_id=principal_id)
