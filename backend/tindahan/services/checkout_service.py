"""
Checkout: the sale transaction coordinator

One checkout is one database transaction. Either all of these happen or
none of them does:

1. sale header (total, cash fields or customer, cashier)
2. one sale line per cart entry, with product name and price copied by value
3. stock decrement per line
4. for credit sales, one `credit` ledger entry linked to the sale

STOCK: each decrement is a compare-and-set
(UPDATE ... SET stock_qty = stock_qty - :q WHERE id = :id AND stock_qty >= :q)
run against the committed row after the write lock is taken. Zero affected
rows means another checkout got there first; the whole sale is rejected with
InsufficientStock and rolled back. Concurrent checkouts on the same product
therefore serialize and never oversell.

RETRIES: lock timeouts and serialization failures re-run the whole unit
through run_with_retry; domain errors never retry.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import InsufficientPayment, InsufficientStock, ValidationError
from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..models.ledger import KIND_CREDIT
from ..models.sales import PAYMENT_CASH, PAYMENT_CREDIT, VALID_PAYMENT_KINDS
from ..validation import parse_cart, quantize_money, to_money
from ..time_utils import utcnow
from .concurrency import begin_write, run_with_retry
from .customer_service import resolve_credit_customer
from .ledger_service import ZERO, append_entry
from .ownership_service import require_owned
from .principal_service import get_principal


def _load_products(principal_id: int, cart: list[dict]) -> dict[int, Product]:
    products: dict[int, Product] = {}
    for product_id in sorted({item["product_id"] for item in cart}):
        # Sorted lock order keeps two multi-product checkouts from deadlocking
        products[product_id] = require_owned(Product, product_id, principal_id, lock=True)
    return products


def _check_on_hand(cart: list[dict], products: dict[int, Product]) -> None:
    requested: dict[int, int] = {}
    for item in cart:
        requested[item["product_id"]] = requested.get(item["product_id"], 0) + item["quantity"]

    insufficient = []
    for product_id, qty in requested.items():
        on_hand = products[product_id].stock_qty
        if on_hand < qty:
            insufficient.append({
                "product_id": product_id,
                "product_name": products[product_id].name,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })

    if insufficient:
        raise InsufficientStock("Insufficient stock to complete sale", details={"items": insufficient})


def _decrement_stock(product: Product, quantity: int) -> None:
    updated = (
        db.session.query(Product)
        .filter(Product.id == product.id, Product.stock_qty >= quantity)
        .update(
            {Product.stock_qty: Product.stock_qty - quantity, Product.updated_at: utcnow()},
            synchronize_session=False,
        )
    )
    if updated != 1:
        raise InsufficientStock(
            "Insufficient stock to complete sale",
            details={"items": [{"product_id": product.id, "product_name": product.name, "requested_quantity": quantity}]},
        )


def checkout(
    principal_id: int,
    cart,
    payment_kind: str,
    cash_received=None,
    customer=None,
) -> Sale:
    """
    Ring up a cart as one atomic sale.

    Args:
        principal_id: acting principal (becomes the sale's cashier)
        cart: [{"product_id": int, "quantity": int}, ...]
        payment_kind: "cash" or "credit"
        cash_received: amount tendered, required for cash
        customer: customer id or name, required for credit

    Returns:
        The committed Sale with its lines

    Raises:
        ValidationError: empty cart, non-positive quantity, unknown payment kind
        InsufficientPayment: cash below the subtotal
        MissingCustomerName: credit without a customer
        InsufficientStock: a product does not have enough units at commit time
        Unauthorized / NotFound: product or customer not visible to the principal
        ConflictRetry: transient conflicts outlasted every retry
    """
    get_principal(principal_id)

    items = parse_cart(cart)
    if payment_kind not in VALID_PAYMENT_KINDS:
        raise ValidationError(
            f"Invalid payment kind: {payment_kind}. Must be one of {list(VALID_PAYMENT_KINDS)}"
        )

    tendered = None
    if payment_kind == PAYMENT_CASH:
        if cash_received is None:
            raise InsufficientPayment("Cash received is required for cash sales")
        tendered = to_money(cash_received, "cash_received")

    def _op():
        begin_write()

        products = _load_products(principal_id, items)

        priced = []
        subtotal = ZERO
        for item in items:
            product = products[item["product_id"]]
            unit_price = quantize_money(Decimal(str(product.selling_price)))
            line_total = quantize_money(unit_price * item["quantity"])
            priced.append((item, product, unit_price, line_total))
            subtotal += line_total

        sale = Sale(payment_kind=payment_kind, total=subtotal, cashier_id=principal_id, created_at=utcnow())

        if payment_kind == PAYMENT_CASH:
            if tendered < subtotal:
                raise InsufficientPayment(
                    "Cash received is less than the total",
                    details={"total": f"{subtotal:.2f}", "cash_received": f"{tendered:.2f}"},
                )
            sale.cash_received = tendered
            sale.change_amount = tendered - subtotal
        else:
            credit_customer = resolve_credit_customer(principal_id, customer)
            sale.customer_id = credit_customer.id

        _check_on_hand(items, products)

        db.session.add(sale)
        db.session.flush()

        for item, product, unit_price, line_total in priced:
            db.session.add(SaleLine(
                sale_id=sale.id,
                product_id=product.id,
                product_name=product.name,
                quantity=item["quantity"],
                unit_price=unit_price,
                line_total=line_total,
            ))
            _decrement_stock(product, item["quantity"])

        if payment_kind == PAYMENT_CREDIT:
            append_entry(
                principal_id=principal_id,
                customer_id=sale.customer_id,
                kind=KIND_CREDIT,
                amount=subtotal,
                sale_id=sale.id,
                note=f"Sale #{sale.id}",
            )

        db.session.commit()

        current_app.logger.info(
            "Sale %s committed: kind=%s total=%s lines=%d cashier=%s",
            sale.id, payment_kind, subtotal, len(priced), principal_id,
        )
        return sale

    return run_with_retry(_op)
