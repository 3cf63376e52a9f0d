# Overview: Service-layer operations for customers; owner-scoped records and name resolution for credit sales.

from __future__ import annotations

from ..errors import MissingCustomerName, ValidationError
from ..extensions import db
from ..models import Customer, Principal
from .concurrency import lock_for_update
from .ledger_service import ZERO, balances_by_customer, customer_balance
from .ownership_service import owned_query, require_owned, stamp_owner

CUSTOMER_MUTABLE_FIELDS = {"full_name", "contact_number", "notes"}


def normalize_name(name: str | None) -> str:
    """Trimmed, case-folded key used to match customers typed at the register."""
    return " ".join((name or "").split()).casefold()


def find_by_name(principal_id: int, name: str) -> Customer | None:
    """
    Oldest of the principal's customers whose name matches ignoring case and
    surrounding/repeated whitespace.
    """
    key = normalize_name(name)
    if not key:
        return None
    for customer in owned_query(Customer, principal_id).order_by(Customer.id.asc()):
        if normalize_name(customer.full_name) == key:
            return customer
    return None


def _new_customer(principal_id: int, patch: dict, requested_owner_id: int | None = None) -> Customer:
    customer = Customer(
        full_name=" ".join(patch["full_name"].split()),
        contact_number=patch.get("contact_number") or None,
        notes=patch.get("notes") or None,
    )
    stamp_owner(customer, principal_id, requested_owner_id)
    db.session.add(customer)
    db.session.flush()
    return customer


def resolve_credit_customer(principal_id: int, customer_ref) -> Customer:
    """
    Customer for a credit checkout, inside the caller's transaction.

    customer_ref is a customer id (must be owned) or a name: matched against
    the principal's customers, created when no match exists.

    LOCK: the acting principal's row is locked before the name lookup, so two
    concurrent first credit sales to the same new name create one customer.
    """
    if isinstance(customer_ref, int) and not isinstance(customer_ref, bool):
        return require_owned(Customer, customer_ref, principal_id, lock=True)

    if not isinstance(customer_ref, str) or not customer_ref.strip():
        raise MissingCustomerName("Customer name is required for credit sales")

    lock_for_update(db.session.query(Principal).filter(Principal.id == principal_id)).one()

    existing = find_by_name(principal_id, customer_ref)
    if existing:
        return existing
    return _new_customer(principal_id, {"full_name": customer_ref})


def create_customer(principal_id: int, patch: dict, requested_owner_id: int | None = None) -> Customer:
    """Create a customer owned by the acting principal."""
    if not (patch.get("full_name") or "").strip():
        raise ValidationError("full_name cannot be blank")
    customer = _new_customer(principal_id, patch, requested_owner_id)
    db.session.commit()
    return customer


def update_customer(principal_id: int, customer_id: int, patch: dict) -> Customer:
    customer = require_owned(Customer, customer_id, principal_id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.commit()
    return customer


def get_customer(principal_id: int, customer_id: int) -> dict:
    customer = require_owned(Customer, customer_id, principal_id)
    balance = customer_balance(principal_id, customer.id)
    return {**customer.to_dict(), "balance": f"{balance:.2f}"}


def list_customers(principal_id: int, search: str | None = None) -> dict:
    """Own customers with their derived balances, sorted by name."""
    customers = owned_query(Customer, principal_id).order_by(Customer.full_name.asc(), Customer.id.asc()).all()

    key = normalize_name(search)
    if key:
        customers = [c for c in customers if key in normalize_name(c.full_name)]

    balances = balances_by_customer(principal_id)
    items = [{**c.to_dict(), "balance": f"{balances.get(c.id, ZERO):.2f}"} for c in customers]
    total = sum((balances.get(c.id, ZERO) for c in customers), ZERO)

    return {"items": items, "count": len(items), "total_receivables": f"{total:.2f}"}
