from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

ROLE_ADMIN = "admin"
ROLE_CASHIER = "cashier"
VALID_ROLES = (ROLE_ADMIN, ROLE_CASHIER)


class Principal(db.Model):
    """
    An authenticated actor known to the store.

    Authentication itself happens at the identity provider; this row is the
    local profile created when the provider hands a new subject over. Every
    owned row and every ledger entry points back here.
    """
    __tablename__ = "principals"
    __table_args__ = (
        db.UniqueConstraint("subject", name="uq_principals_subject"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Opaque identifier issued by the identity provider
    subject = db.Column(db.String(128), nullable=False)
    display_name = db.Column(db.String(128), nullable=False, default="")

    # bcrypt hash of the 4-digit product PIN (never the PIN itself)
    product_pin_hash = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject": self.subject,
            "display_name": self.display_name,
            "has_product_pin": self.product_pin_hash is not None,
            "created_at": to_utc_z(self.created_at),
        }


class SessionToken(db.Model):
    """
    Request-scoped identity: a hashed bearer token resolving to a principal.

    Only the SHA-256 hash is stored; the plaintext goes to the client once.
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.UniqueConstraint("token_hash", name="uq_session_tokens_hash"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    principal_id = db.Column(db.Integer, db.ForeignKey("principals.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    is_revoked = db.Column(db.Boolean, nullable=False, default=False)

    principal = db.relationship("Principal", backref=db.backref("sessions", lazy=True))


class RoleAssignment(db.Model):
    """
    Exactly one role per principal.

    bootstrap_slot is "admin" only on the assignment that won the first-admin
    race and NULL everywhere else; its UNIQUE constraint makes a second
    bootstrap admin impossible even when two first registrations interleave.
    """
    __tablename__ = "role_assignments"
    __table_args__ = (
        db.UniqueConstraint("principal_id", name="uq_role_assignments_principal"),
        db.UniqueConstraint("bootstrap_slot", name="uq_role_assignments_bootstrap_slot"),
        db.CheckConstraint("role IN ('admin', 'cashier')", name="ck_role_assignments_role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    principal_id = db.Column(db.Integer, db.ForeignKey("principals.id"), nullable=False)
    role = db.Column(db.String(16), nullable=False, index=True)
    bootstrap_slot = db.Column(db.String(16), nullable=True)

    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    principal = db.relationship("Principal", backref=db.backref("role_assignment", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "principal_id": self.principal_id,
            "role": self.role,
            "assigned_at": to_utc_z(self.assigned_at),
        }
