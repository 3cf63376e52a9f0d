from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .catalog import money_str

PAYMENT_CASH = "cash"
PAYMENT_CREDIT = "credit"
VALID_PAYMENT_KINDS = (PAYMENT_CASH, PAYMENT_CREDIT)


class Sale(db.Model):
    """
    Committed sale header.

    Written once by checkout_service inside the same transaction as its
    lines, the stock decrements and (for credit) the ledger entry. Cash
    fields exist only on cash sales, the customer only on credit sales; the
    CHECK constraints hold that shape at the storage layer.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("payment_kind IN ('cash', 'credit')", name="ck_sales_payment_kind"),
        db.CheckConstraint(
            "(payment_kind = 'cash' AND customer_id IS NULL) OR "
            "(payment_kind = 'credit' AND customer_id IS NOT NULL "
            "AND cash_received IS NULL AND change_amount IS NULL)",
            name="ck_sales_payment_shape",
        ),
        db.CheckConstraint("total >= 0", name="ck_sales_total"),
        db.Index("ix_sales_cashier_created", "cashier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    payment_kind = db.Column(db.String(16), nullable=False)
    total = db.Column(db.Numeric(10, 2), nullable=False)

    # Cash only
    cash_received = db.Column(db.Numeric(10, 2), nullable=True)
    change_amount = db.Column(db.Numeric(10, 2), nullable=True)

    # Credit only
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    cashier_id = db.Column(db.Integer, db.ForeignKey("principals.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)

    customer = db.relationship("Customer")
    cashier = db.relationship("Principal")
    lines = db.relationship("SaleLine", back_populates="sale", order_by="SaleLine.id", lazy=True)

    def to_dict(self, include_lines: bool = False, viewer_id: int | None = None) -> dict:
        """
        customer_name is filled only for the customer's owner; an admin
        reading a cashier's credit sale gets the id without the name.
        """
        customer_name = None
        if self.customer is not None and self.customer.owner_id == viewer_id:
            customer_name = self.customer.full_name
        data = {
            "id": self.id,
            "payment_kind": self.payment_kind,
            "total": money_str(self.total),
            "cash_received": money_str(self.cash_received),
            "change_amount": money_str(self.change_amount),
            "customer_id": self.customer_id,
            "customer_name": customer_name,
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier.display_name if self.cashier else None,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """
    One cart entry of a sale.

    product_name and unit_price are value copies taken at checkout; later
    catalog edits never change historical sales.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    line_total = db.Column(db.Numeric(10, 2), nullable=False)

    sale = db.relationship("Sale", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": money_str(self.unit_price),
            "line_total": money_str(self.line_total),
        }
