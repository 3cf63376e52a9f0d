# Overview: Service-layer operations for bearer sessions; resolves a request to its principal.

"""
Session Token Management

Tokens are handed to principals provisioned from the identity provider and
are the only request-scoped identity the core accepts.

- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout from SESSION_TTL_HOURS
- Revocable
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, Principal
from ..time_utils import utcnow


@dataclass
class SessionContext:
    """Identity attached to one authenticated request."""
    principal: Principal
    session: SessionToken

    @property
    def principal_id(self) -> int:
        return self.principal.id


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy); never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(principal_id: int) -> tuple[SessionToken, str]:
    """
    Create a session token for a principal.

    Returns (session_record, plaintext_token). The client receives the
    plaintext token, the database stores only the hash.

    Raises ValueError if the principal does not exist.
    """
    principal = db.session.get(Principal, principal_id)
    if not principal:
        raise ValueError("Principal not found")

    plaintext_token = generate_token()
    now = utcnow()
    ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 24))

    session = SessionToken(
        principal_id=principal_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + ttl,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return its SessionContext.

    Returns None if the token is unknown, expired or revoked.
    Updates last_used_at on success.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None

    principal = session.principal
    if principal is None:
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(principal=principal, session=session)


def revoke_session(token: str) -> bool:
    """Revoke a session token. Returns False if it was not active."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    session.is_revoked = True
    db.session.commit()
    return True
