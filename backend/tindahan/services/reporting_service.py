# Overview: Service-layer operations for the dashboard summary; aggregates over visible sales, own products and the ledger.

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, Sale, SaleLine
from ..validation import quantize_money
from ..time_utils import start_of_local_day, to_utc_z, utcnow
from .ledger_service import ZERO, balances_by_customer
from .ownership_service import owned_query, visible_sales_query

RECENT_SALES = 5


def _money(value) -> Decimal:
    return ZERO if value is None else quantize_money(Decimal(str(value)))


def dashboard_summary(principal_id: int) -> dict:
    """
    Store overview for the acting principal.

    - sales totals and profit cover the sales the principal can see
    - profit uses the current cost price of the principal's own products;
      lines of products they cannot see count at zero cost
    - receivables are recomputed from the ledger, never read from a column
    - "today" starts at midnight in STORE_TIMEZONE
    """
    sales_q = visible_sales_query(principal_id)
    sale_ids = sales_q.with_entities(Sale.id).subquery()

    all_total, sale_count = sales_q.with_entities(
        func.coalesce(func.sum(Sale.total), 0),
        func.count(Sale.id),
    ).one()

    store_tz = current_app.config.get("STORE_TIMEZONE", "UTC")
    today = start_of_local_day(utcnow(), store_tz)
    today_total, today_count = sales_q.filter(Sale.created_at >= today).with_entities(
        func.coalesce(func.sum(Sale.total), 0),
        func.count(Sale.id),
    ).one()

    own_cost = (
        owned_query(Product, principal_id)
        .with_entities(Product.id.label("product_id"), Product.cost_price.label("cost_price"))
        .subquery()
    )
    profit = (
        db.session.query(
            func.coalesce(
                func.sum(SaleLine.line_total - func.coalesce(own_cost.c.cost_price, 0) * SaleLine.quantity),
                0,
            )
        )
        .outerjoin(own_cost, own_cost.c.product_id == SaleLine.product_id)
        .filter(SaleLine.sale_id.in_(db.select(sale_ids.c.id)))
        .scalar()
    )

    balances = balances_by_customer(principal_id)
    receivables_total = sum(balances.values(), ZERO)

    products = owned_query(Product, principal_id)
    low_stock = (
        products.filter(Product.stock_qty <= Product.min_stock_level)
        .order_by(Product.stock_qty.asc(), Product.name.asc())
        .all()
    )

    recent = sales_q.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(RECENT_SALES).all()

    return {
        "generated_at": to_utc_z(utcnow()),
        "timezone": store_tz,
        "today_total": f"{_money(today_total):.2f}",
        "today_count": int(today_count or 0),
        "all_time_total": f"{_money(all_total):.2f}",
        "sale_count": int(sale_count or 0),
        "gross_profit": f"{max(ZERO, _money(profit)):.2f}",
        "receivables_total": f"{receivables_total:.2f}",
        "customers_owing": sum(1 for b in balances.values() if b > 0),
        "product_count": products.count(),
        "low_stock_count": len(low_stock),
        "low_stock": [p.to_dict() for p in low_stock],
        "recent_sales": [s.to_dict(viewer_id=principal_id) for s in recent],
    }
