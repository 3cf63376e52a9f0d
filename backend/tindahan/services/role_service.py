# Overview: Service-layer operations for roles; first registrant becomes admin, everyone else cashier.

"""
Role bootstrap

ensure_role(principal_id) is called after every sign-in. It is idempotent:
a principal that already has a role gets it back unchanged.

RACE: two principals registering at the same time must not both become
admin. The admin-existence check and the insert run in one write
transaction (BEGIN IMMEDIATE on SQLite, row lock elsewhere), and two unique
constraints arbitrate anything the lock cannot cover:

- role_assignments.principal_id: a duplicate bootstrap of the same
  principal fails to insert and re-reads the existing assignment.
- role_assignments.bootstrap_slot: only one row may hold "admin"; the loser
  of a first-admin race fails to insert, retries, sees the admin and
  becomes cashier.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import RoleAssignment
from ..models.identity import ROLE_ADMIN, ROLE_CASHIER
from .concurrency import begin_write, lock_for_update, run_with_retry
from .principal_service import get_principal

BOOTSTRAP_ADMIN_SLOT = "admin"


def get_role(principal_id: int) -> str | None:
    assignment = db.session.query(RoleAssignment).filter_by(principal_id=principal_id).first()
    return assignment.role if assignment else None


def is_admin(principal_id: int) -> bool:
    return get_role(principal_id) == ROLE_ADMIN


def ensure_role(principal_id: int | None) -> str:
    """
    Return the principal's role, assigning one on first call.

    First principal ever becomes admin, every later one cashier.

    Raises:
        Unauthorized: principal missing or unknown
        ConflictRetry: the insert kept conflicting after every retry
    """
    get_principal(principal_id)

    def _op():
        begin_write()

        existing = db.session.query(RoleAssignment).filter_by(principal_id=principal_id).first()
        if existing:
            db.session.commit()
            return existing.role

        admin_exists = (
            lock_for_update(
                db.session.query(RoleAssignment.id).filter(RoleAssignment.role == ROLE_ADMIN)
            ).first()
            is not None
        )

        if admin_exists:
            assignment = RoleAssignment(principal_id=principal_id, role=ROLE_CASHIER)
        else:
            assignment = RoleAssignment(
                principal_id=principal_id,
                role=ROLE_ADMIN,
                bootstrap_slot=BOOTSTRAP_ADMIN_SLOT,
            )

        db.session.add(assignment)
        db.session.flush()
        db.session.commit()

        current_app.logger.info("Assigned role %s to principal %s", assignment.role, principal_id)
        return assignment.role

    return run_with_retry(_op, retry_on=(IntegrityError,))
