from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .catalog import money_str

KIND_CREDIT = "credit"
KIND_PAYMENT = "payment"
VALID_LEDGER_KINDS = (KIND_CREDIT, KIND_PAYMENT)


class LedgerEntry(db.Model):
    """
    Append-only credit ("utang") ledger.

    ENTRY KINDS:
    - credit: increases what the customer owes (checkout on credit, manual charge)
    - payment: decreases it

    IMMUTABLE: entries are never updated or deleted. The balance of a
    customer is SUM(credit) - SUM(payment), floored at zero, computed on
    every read.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.CheckConstraint("kind IN ('credit', 'payment')", name="ck_ledger_entries_kind"),
        db.CheckConstraint("amount > 0", name="ck_ledger_entries_amount"),
        db.Index("ix_ledger_entries_owner_customer", "owner_id", "customer_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("principals.id"), nullable=False, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    kind = db.Column(db.String(16), nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("principals.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)

    customer = db.relationship("Customer", backref=db.backref("ledger_entries", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "sale_id": self.sale_id,
            "amount": money_str(self.amount),
            "kind": self.kind,
            "note": self.note,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
