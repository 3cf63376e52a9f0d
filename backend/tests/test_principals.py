# Overview: Pytest coverage for principal profiles, the product PIN gate and bearer sessions.

from datetime import timedelta

import pytest
from tindahan.errors import Unauthorized, ValidationError
from tindahan.models import Principal
from tindahan.services import principal_service, session_service
from tindahan.time_utils import utcnow


class TestRegisterPrincipal:

    def test_register_with_pin_stores_hash_only(self, db_session):
        p = principal_service.register_principal("auth0|nena", "Aling Nena", pin="4321")

        stored = db_session.get(Principal, p.id)
        assert stored.product_pin_hash
        assert "4321" not in stored.product_pin_hash
        assert stored.to_dict()["has_product_pin"] is True
        assert "product_pin_hash" not in stored.to_dict()

    def test_display_name_defaults_to_subject(self, db_session):
        p = principal_service.register_principal("auth0|plain")
        assert p.display_name == "auth0|plain"

    def test_duplicate_subject_rejected(self, db_session, alice):
        with pytest.raises(ValidationError):
            principal_service.register_principal("auth0|alice")

    def test_blank_subject_rejected(self, db_session):
        with pytest.raises(ValidationError):
            principal_service.register_principal("   ")

    @pytest.mark.parametrize("pin", ["123", "12345", "abcd", "12a4", " 1234"])
    def test_malformed_pin_rejected(self, db_session, pin):
        with pytest.raises(ValidationError):
            principal_service.register_principal("auth0|badpin", pin=pin)

    def test_get_principal_unknown(self, db_session):
        with pytest.raises(Unauthorized):
            principal_service.get_principal(99999)


class TestVerifyPin:

    def test_correct_pin(self, db_session, alice):
        assert principal_service.verify_pin(alice.id, "1234") is True

    def test_wrong_pin(self, db_session, alice):
        assert principal_service.verify_pin(alice.id, "0000") is False

    def test_malformed_pin_is_just_false(self, db_session, alice):
        assert principal_service.verify_pin(alice.id, "12345") is False
        assert principal_service.verify_pin(alice.id, None) is False

    def test_no_pin_set(self, db_session, bob):
        assert principal_service.verify_pin(bob.id, "1234") is False

    def test_unknown_principal(self, db_session):
        with pytest.raises(Unauthorized):
            principal_service.verify_pin(99999, "1234")


class TestSessions:

    def test_token_resolves_to_principal(self, db_session, alice):
        _, token = session_service.create_session(alice.id)
        context = session_service.validate_session(token)
        assert context.principal_id == alice.id

    def test_only_hash_stored(self, db_session, alice):
        session, token = session_service.create_session(alice.id)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_unknown_token(self, db_session, alice):
        assert session_service.validate_session("not-a-token") is None

    def test_expired_token(self, db_session, alice):
        session, token = session_service.create_session(alice.id)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_revoked_token(self, db_session, alice):
        _, token = session_service.create_session(alice.id)
        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_create_session_unknown_principal(self, db_session):
        with pytest.raises(ValueError):
            session_service.create_session(99999)
