# Overview: Service-layer operations for the credit ledger; derived balances, payments and manual charges.

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import case, func

from ..errors import InvalidAmount, ValidationError
from ..extensions import db
from ..models import Customer, LedgerEntry
from ..models.ledger import KIND_CREDIT, KIND_PAYMENT, VALID_LEDGER_KINDS
from ..validation import quantize_money, to_money
from .concurrency import begin_write, run_with_retry
from .ownership_service import guard_ledger_insert, owned_query, require_owned
"""
Credit Ledger Invariants (authoritative)

- Append-only: entries are inserted, never updated or deleted.
- balance(customer) = max(0, SUM(credit) - SUM(payment)) over the acting
  principal's entries, recomputed from rows on every read. No running
  balance is stored anywhere, so there is nothing to drift.
- Payments must satisfy 0 < amount <= balance at the moment of insert; the
  customer row is locked while the check and the insert happen.
- Entries written during checkout share the checkout transaction.
"""

ZERO = Decimal("0.00")
DEFAULT_PAYMENT_NOTE = "Payment received"


def _signed_amount():
    return case(
        (LedgerEntry.kind == KIND_CREDIT, LedgerEntry.amount),
        else_=-LedgerEntry.amount,
    )


def _as_money(value) -> Decimal:
    if value is None:
        return ZERO
    return quantize_money(Decimal(str(value)))


def raw_balance(principal_id: int, customer_id: int) -> Decimal:
    """SUM(credit) - SUM(payment) without the display floor."""
    total = (
        owned_query(LedgerEntry, principal_id)
        .filter(LedgerEntry.customer_id == customer_id)
        .with_entities(func.sum(_signed_amount()))
        .scalar()
    )
    return _as_money(total)


def customer_balance(principal_id: int, customer_id: int) -> Decimal:
    """Outstanding balance for one customer, floored at zero."""
    return max(ZERO, raw_balance(principal_id, customer_id))


def balances_by_customer(principal_id: int) -> dict[int, Decimal]:
    """Floored balance for every customer with ledger activity, in one grouped query."""
    rows = (
        owned_query(LedgerEntry, principal_id)
        .with_entities(LedgerEntry.customer_id, func.sum(_signed_amount()))
        .group_by(LedgerEntry.customer_id)
        .all()
    )
    return {customer_id: max(ZERO, _as_money(total)) for customer_id, total in rows}


def append_entry(
    *,
    principal_id: int,
    customer_id: int,
    kind: str,
    amount: Decimal,
    sale_id: int | None = None,
    note: str | None = None,
) -> LedgerEntry:
    """
    Add one ledger entry to the current transaction (no commit).

    Authorization goes through guard_ledger_insert: own customer, own sale,
    created_by and owner_id forced to the acting principal.
    """
    if kind not in VALID_LEDGER_KINDS:
        raise ValidationError(f"Invalid ledger kind: {kind}. Must be one of {list(VALID_LEDGER_KINDS)}")
    if amount is None or amount <= 0:
        raise InvalidAmount("Amount must be greater than zero")

    entry = LedgerEntry(
        customer_id=customer_id,
        sale_id=sale_id,
        kind=kind,
        amount=quantize_money(amount),
        note=note,
    )
    guard_ledger_insert(entry, principal_id)

    db.session.add(entry)
    db.session.flush()
    return entry


def _parse_amount(amount) -> Decimal:
    try:
        return to_money(amount, "amount")
    except ValidationError as exc:
        raise InvalidAmount(exc.message)


def record_payment(principal_id: int, customer_id: int, amount, note: str | None = None) -> LedgerEntry:
    """
    Record a payment against a customer's outstanding balance.

    Raises:
        InvalidAmount: amount <= 0 or greater than the current balance
        NotFound / Unauthorized: customer missing or owned by someone else
    """
    amount = _parse_amount(amount)

    def _op():
        begin_write()
        customer = require_owned(Customer, customer_id, principal_id, lock=True)

        balance = customer_balance(principal_id, customer.id)
        if amount <= 0:
            raise InvalidAmount("Payment amount must be greater than zero")
        if amount > balance:
            raise InvalidAmount(
                "Payment exceeds outstanding balance",
                details={"amount": f"{amount:.2f}", "balance": f"{balance:.2f}"},
            )

        entry = append_entry(
            principal_id=principal_id,
            customer_id=customer.id,
            kind=KIND_PAYMENT,
            amount=amount,
            note=(note or "").strip() or DEFAULT_PAYMENT_NOTE,
        )
        db.session.commit()

        current_app.logger.info(
            "Payment %s recorded for customer %s by principal %s", amount, customer.id, principal_id
        )
        return entry

    return run_with_retry(_op)


def record_credit(principal_id: int, customer_id: int, amount, note: str | None = None) -> LedgerEntry:
    """Manual charge to a customer's account that is not tied to a sale."""
    amount = _parse_amount(amount)

    def _op():
        begin_write()
        customer = require_owned(Customer, customer_id, principal_id, lock=True)
        entry = append_entry(
            principal_id=principal_id,
            customer_id=customer.id,
            kind=KIND_CREDIT,
            amount=amount,
            note=(note or "").strip() or None,
        )
        db.session.commit()
        return entry

    return run_with_retry(_op)


def list_entries(principal_id: int, customer_id: int) -> list[LedgerEntry]:
    """Ledger history of one customer, newest first."""
    customer = require_owned(Customer, customer_id, principal_id)
    return (
        owned_query(LedgerEntry, principal_id)
        .filter(LedgerEntry.customer_id == customer.id)
        .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        .all()
    )


def receivables(principal_id: int) -> dict:
    """Customers that still owe money and the total outstanding."""
    balances = balances_by_customer(principal_id)
    owing_ids = [cid for cid, balance in balances.items() if balance > 0]

    customers = []
    if owing_ids:
        customers = (
            owned_query(Customer, principal_id)
            .filter(Customer.id.in_(owing_ids))
            .order_by(Customer.full_name.asc())
            .all()
        )

    items = [{**c.to_dict(), "balance": f"{balances[c.id]:.2f}"} for c in customers]
    total = sum((balances[c.id] for c in customers), ZERO)
    return {"items": items, "count": len(items), "total": f"{total:.2f}"}
