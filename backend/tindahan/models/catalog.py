from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


def money_str(value) -> str | None:
    return None if value is None else f"{value:.2f}"


DEFAULT_CATEGORIES = [
    "Beverages",
    "Snacks",
    "Canned Goods",
    "Condiments",
    "Personal Care",
    "Household",
    "Frozen",
    "Bread & Bakery",
    "Others",
]


class Category(db.Model):
    """Shared product categories. Readable by everyone, managed by admins."""
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class Product(db.Model):
    """
    Product master data and its stock counter.

    OWNERSHIP: owner_id is stamped from the acting principal at creation and
    never reassigned. Every query goes through ownership_service.

    stock_qty changes only through a checkout or an explicit StockAdjustment.
    The CHECK constraint is the last line of defence; the checkout decrement
    is a compare-and-set that never attempts to go below zero.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_qty >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("selling_price >= 0", name="ck_products_selling_price"),
        db.CheckConstraint("cost_price >= 0", name="ck_products_cost_price"),
        db.Index("ix_products_owner_name", "owner_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("principals.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)

    cost_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    selling_price = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    stock_qty = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=5)

    barcode = db.Column(db.String(64), nullable=True)
    image_url = db.Column(db.String(1024), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=db.func.now())

    category = db.relationship("Category")

    @property
    def is_low_stock(self) -> bool:
        return self.stock_qty <= self.min_stock_level

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "category_id": self.category_id,
            "category": self.category.name if self.category else None,
            "cost_price": money_str(self.cost_price),
            "selling_price": money_str(self.selling_price),
            "stock_qty": self.stock_qty,
            "min_stock_level": self.min_stock_level,
            "is_low_stock": self.is_low_stock,
            "barcode": self.barcode,
            "image_url": self.image_url,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockAdjustment(db.Model):
    """
    Explicit stock change outside of a sale (restock, spoilage, recount).

    IMMUTABLE: append-only record of who moved stock and why.
    """
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.CheckConstraint("quantity_change <> 0", name="ck_stock_adjustments_nonzero"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity_change = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    adjusted_by = db.Column(db.Integer, db.ForeignKey("principals.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity_change": self.quantity_change,
            "reason": self.reason,
            "adjusted_by": self.adjusted_by,
            "created_at": to_utc_z(self.created_at),
        }
