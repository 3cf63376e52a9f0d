# Overview: Service-layer operations for principals; local profile and the product PIN gate.

"""
Principal profiles and the secret product PIN.

The identity provider authenticates; this module only records the profile
it hands over (subject, display name) and the one-way hash of the 4-digit
PIN chosen at signup.

The PIN is friction in front of product add/edit screens, not an
authorization layer: ownership_service still decides who may write which
product. verify_pin answers yes/no and nothing else.
"""

import re

import bcrypt
from flask import current_app

from ..errors import ValidationError, Unauthorized
from ..extensions import db
from ..models import Principal

PIN_PATTERN = re.compile(r"\d{4}", re.ASCII)


def validate_pin_format(pin: str) -> None:
    """PINs are exactly 4 digits."""
    if not isinstance(pin, str) or not PIN_PATTERN.fullmatch(pin):
        raise ValidationError("PIN must be exactly 4 digits")


def hash_pin(pin: str) -> str:
    validate_pin_format(pin)
    rounds = current_app.config.get("PIN_HASH_ROUNDS", 12)
    hashed = bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def register_principal(subject: str, display_name: str | None = None, pin: str | None = None) -> Principal:
    """
    Create the local profile for a subject issued by the identity provider.

    display_name falls back to the subject. When a PIN is given it is
    validated and stored as a bcrypt hash only.

    Raises ValidationError if the subject is blank or already registered.
    """
    subject = (subject or "").strip()
    if not subject:
        raise ValidationError("subject is required")

    existing = db.session.query(Principal).filter_by(subject=subject).first()
    if existing:
        raise ValidationError("Principal already registered", details={"subject": subject})

    principal = Principal(
        subject=subject,
        display_name=(display_name or "").strip() or subject,
        product_pin_hash=hash_pin(pin) if pin else None,
    )
    db.session.add(principal)
    db.session.commit()

    current_app.logger.info("Registered principal %s (id=%s)", subject, principal.id)
    return principal


def get_principal(principal_id: int | None) -> Principal:
    """Resolve the acting principal or raise Unauthorized."""
    if principal_id is None:
        raise Unauthorized("Not authenticated")
    principal = db.session.get(Principal, principal_id)
    if principal is None:
        raise Unauthorized("Not authenticated")
    return principal


def get_principal_by_subject(subject: str) -> Principal | None:
    return db.session.query(Principal).filter_by(subject=subject).first()


def verify_pin(principal_id: int, pin: str) -> bool:
    """
    Compare a submitted PIN against the principal's stored hash.

    Returns False when no PIN was set, the input is malformed or it does not
    match. bcrypt.checkpw is constant-time.
    """
    principal = get_principal(principal_id)
    if not principal.product_pin_hash:
        return False
    if not isinstance(pin, str) or not PIN_PATTERN.fullmatch(pin):
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), principal.product_pin_hash.encode("utf-8"))
    except ValueError:
        # Corrupt hash in the row
        current_app.logger.warning("Unreadable PIN hash for principal %s", principal_id)
        return False
