# backend/tindahan/services/catalog_service.py
"""
Catalog Service: categories, products and explicit stock adjustments

OWNERSHIP: every product operation is scoped to the acting principal
through ownership_service.
- list_products only returns the principal's products
- create_product stamps owner_id from the acting principal
- update/delete/adjust refuse products owned by someone else

stock_qty is not editable through update_product. It moves only through a
checkout or adjust_stock, which records a StockAdjustment row.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientStock, NotFound, ValidationError
from ..extensions import db
from ..models import Category, Product, SaleLine, StockAdjustment
from ..models.catalog import DEFAULT_CATEGORIES
from .concurrency import begin_write, run_with_retry
from .ownership_service import owned_query, require_owned, stamp_owner

PRODUCT_MUTABLE_FIELDS = {
    "name", "category_id", "cost_price", "selling_price",
    "min_stock_level", "barcode", "image_url",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


# =============================================================================
# CATEGORIES
# =============================================================================

def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def create_category(name: str) -> Category:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name cannot be blank")
    if db.session.query(Category).filter_by(name=name).first():
        raise ValidationError("Category already exists", details={"name": name})

    category = Category(name=name)
    db.session.add(category)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Category already exists", details={"name": name})
    return category


def seed_default_categories() -> int:
    """Idempotent: returns how many categories were created."""
    existing = {c.name for c in db.session.query(Category).all()}
    created = 0
    for name in DEFAULT_CATEGORIES:
        if name not in existing:
            db.session.add(Category(name=name))
            created += 1
    db.session.commit()
    return created


def _require_category(category_id: int | None) -> None:
    if category_id is not None and db.session.get(Category, category_id) is None:
        raise NotFound("Category not found", details={"id": category_id})


# =============================================================================
# PRODUCTS
# =============================================================================

def list_products(
    principal_id: int,
    *,
    low_stock: bool = False,
    in_stock: bool = False,
    search: str | None = None,
) -> dict:
    """
    The principal's products ordered by name.

    low_stock: only stock_qty <= min_stock_level
    in_stock: only stock_qty > 0 (what the register can sell)
    """
    query = owned_query(Product, principal_id)
    if low_stock:
        query = query.filter(Product.stock_qty <= Product.min_stock_level)
    if in_stock:
        query = query.filter(Product.stock_qty > 0)
    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))

    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


def get_product(principal_id: int, product_id: int) -> Product:
    return require_owned(Product, product_id, principal_id)


def create_product(principal_id: int, patch: dict, requested_owner_id: int | None = None) -> Product:
    """
    Create a product owned by the acting principal from a validated patch.

    Initial stock comes from patch["stock_qty"] (default 0).
    """
    _require_category(patch.get("category_id"))

    product = Product(stock_qty=patch.get("stock_qty") or 0)
    apply_product_patch(product, patch)
    stamp_owner(product, principal_id, requested_owner_id)

    db.session.add(product)
    db.session.commit()

    current_app.logger.info("Product %s created by principal %s", product.id, principal_id)
    return product


def update_product(principal_id: int, product_id: int, patch: dict) -> Product:
    """Edit catalog fields of an owned product. Stock is not touched here."""
    if "stock_qty" in patch:
        raise ValidationError("stock_qty can only change through a stock adjustment")
    if "category_id" in patch:
        _require_category(patch["category_id"])

    product = require_owned(Product, product_id, principal_id)
    apply_product_patch(product, patch)
    db.session.commit()
    return product


def delete_product(principal_id: int, product_id: int) -> None:
    """
    Delete an owned product.

    Products that appear on sale lines stay: sales history references them.
    """
    product = require_owned(Product, product_id, principal_id)

    sold = db.session.query(SaleLine.id).filter(SaleLine.product_id == product.id).first()
    if sold is not None:
        raise ValidationError("Cannot delete a product that has been sold", details={"id": product.id})

    db.session.query(StockAdjustment).filter(StockAdjustment.product_id == product.id).delete()
    db.session.delete(product)
    db.session.commit()


def adjust_stock(principal_id: int, product_id: int, quantity_change: int, reason: str | None = None) -> StockAdjustment:
    """
    Explicit stock change (restock, spoilage, recount) on an owned product.

    Raises:
        ValidationError: quantity_change is zero
        InsufficientStock: the change would drive stock below zero
    """
    if quantity_change == 0:
        raise ValidationError("quantity_change must be non-zero")

    def _op():
        begin_write()
        product = require_owned(Product, product_id, principal_id, lock=True)

        new_qty = product.stock_qty + quantity_change
        if new_qty < 0:
            raise InsufficientStock(
                "Adjustment would make stock negative",
                details={"product_id": product.id, "on_hand": product.stock_qty, "quantity_change": quantity_change},
            )

        product.stock_qty = new_qty
        adjustment = StockAdjustment(
            product_id=product.id,
            quantity_change=quantity_change,
            reason=(reason or "").strip() or None,
            adjusted_by=principal_id,
        )
        db.session.add(adjustment)
        db.session.commit()
        return adjustment

    return run_with_retry(_op)
