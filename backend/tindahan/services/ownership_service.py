"""
Ownership Partitioning: per-principal isolation of owned rows

Products, customers and ledger entries belong to the principal that created
them. This module is the single place that turns that rule into queries and
checks; services never query an owned model without going through it.

INVARIANTS:
1. owned_query() filters every read/list to owner_id == acting principal
2. require_owned() refuses rows of another owner (Unauthorized) and absent
   rows (NotFound)
3. stamp_owner() sets owner_id on insert; a caller can never choose another owner
4. Ledger inserts also require the customer to be owned by the acting
   principal and a referenced sale to have been rung up by them
5. Denied access is logged with the acting principal and the target row

USAGE:
    from tindahan.services.ownership_service import owned_query, require_owned

    products = owned_query(Product, principal_id).all()
    product = require_owned(Product, product_id, principal_id, lock=True)
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFound, Unauthorized
from ..extensions import db
from ..models import Customer, LedgerEntry, Product, Sale
from .concurrency import lock_for_update

OWNED_MODELS = (Product, Customer, LedgerEntry)


def _log_denied(principal_id: int, model, row_id, reason: str) -> None:
    current_app.logger.warning(
        "OWNERSHIP_DENIED principal=%s model=%s id=%s reason=%s",
        principal_id, model.__name__, row_id, reason,
    )


def _ensure_owned_model(model) -> None:
    if model not in OWNED_MODELS:
        raise TypeError(f"{model.__name__} is not an owner-partitioned model")


def owned_query(model, principal_id: int):
    """Query over model restricted to the acting principal's rows."""
    _ensure_owned_model(model)
    if principal_id is None:
        raise Unauthorized("Not authenticated")
    return db.session.query(model).filter(model.owner_id == principal_id)


def require_owned(model, row_id: int, principal_id: int, *, lock: bool = False):
    """
    Load one owned row for the acting principal.

    Raises:
        NotFound: no row with that id
        Unauthorized: row exists but belongs to another principal
    """
    _ensure_owned_model(model)
    if principal_id is None:
        raise Unauthorized("Not authenticated")

    query = db.session.query(model).filter(model.id == row_id)
    if lock:
        # Locked reads must see the committed row, not a stale identity-map copy
        query = lock_for_update(query).populate_existing()
    row = query.first()

    label = model.__name__
    if row is None:
        raise NotFound(f"{label} not found", details={"id": row_id})

    if row.owner_id != principal_id:
        _log_denied(principal_id, model, row_id, f"owned by principal {row.owner_id}")
        raise Unauthorized(f"{label} is not accessible", details={"id": row_id})

    return row


def stamp_owner(row, principal_id: int, requested_owner_id: int | None = None):
    """
    Attach a new owned row to the acting principal.

    requested_owner_id is whatever the caller asked for; anything other than
    the acting principal is refused.
    """
    _ensure_owned_model(type(row))
    if principal_id is None:
        raise Unauthorized("Not authenticated")
    if requested_owner_id is not None and requested_owner_id != principal_id:
        _log_denied(principal_id, type(row), None, f"insert for owner {requested_owner_id}")
        raise Unauthorized("Cannot create records for another owner")
    row.owner_id = principal_id
    return row


def guard_ledger_insert(entry: LedgerEntry, principal_id: int) -> LedgerEntry:
    """
    Authorize a ledger entry before it is added to the session.

    Ties every entry to both the customer relationship and the originating
    sale: the customer must be owned by the acting principal, a referenced
    sale must have the acting principal as cashier. owner_id and created_by
    are forced to the acting principal.
    """
    customer = db.session.get(Customer, entry.customer_id)
    if customer is None:
        raise NotFound("Customer not found", details={"id": entry.customer_id})
    if customer.owner_id != principal_id:
        _log_denied(principal_id, Customer, customer.id, "ledger insert against foreign customer")
        raise Unauthorized("Customer is not accessible", details={"id": customer.id})

    if entry.sale_id is not None:
        sale = db.session.get(Sale, entry.sale_id)
        if sale is None:
            raise NotFound("Sale not found", details={"id": entry.sale_id})
        if sale.cashier_id != principal_id:
            _log_denied(principal_id, Sale, sale.id, "ledger insert for another cashier's sale")
            raise Unauthorized("Sale is not accessible", details={"id": sale.id})

    if entry.created_by is not None and entry.created_by != principal_id:
        _log_denied(principal_id, LedgerEntry, None, f"created_by {entry.created_by}")
        raise Unauthorized("Cannot record ledger entries on behalf of another principal")

    stamp_owner(entry, principal_id, entry.owner_id)
    entry.created_by = principal_id
    return entry


def visible_sales_query(principal_id: int):
    """
    Sales are cashier-scoped rather than owner-partitioned: a cashier sees
    the sales they rang up, an admin sees every sale.
    """
    from .role_service import is_admin

    if principal_id is None:
        raise Unauthorized("Not authenticated")
    query = db.session.query(Sale)
    if not is_admin(principal_id):
        query = query.filter(Sale.cashier_id == principal_id)
    return query


def require_visible_sale(sale_id: int, principal_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFound("Sale not found", details={"id": sale_id})
    if visible_sales_query(principal_id).filter(Sale.id == sale_id).first() is None:
        _log_denied(principal_id, Sale, sale_id, f"rung up by principal {sale.cashier_id}")
        raise Unauthorized("Sale is not accessible", details={"id": sale_id})
    return sale
