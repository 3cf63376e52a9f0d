from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    A customer who may buy on credit ("utang").

    OWNERSHIP: scoped to the principal that created the record. No balance
    column on purpose: the outstanding amount is always derived from the
    ledger (see ledger_service.customer_balance).
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_owner_name", "owner_id", "full_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("principals.id"), nullable=False, index=True)

    full_name = db.Column(db.String(255), nullable=False)
    contact_number = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "full_name": self.full_name,
            "contact_number": self.contact_number,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
