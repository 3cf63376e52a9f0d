# Overview: Pytest coverage for role bootstrap (first principal admin, later ones cashier).

import threading

import pytest
from tindahan.errors import Unauthorized
from tindahan.extensions import db
from tindahan.models import RoleAssignment
from tindahan.services import principal_service, role_service


class TestEnsureRole:
    """ensure_role assigns exactly once and returns the stored role afterwards."""

    def test_first_principal_is_admin(self, db_session):
        p = principal_service.register_principal("auth0|first")
        assert role_service.ensure_role(p.id) == "admin"

    def test_second_principal_is_cashier(self, db_session):
        first = principal_service.register_principal("auth0|first")
        second = principal_service.register_principal("auth0|second")

        assert role_service.ensure_role(first.id) == "admin"
        assert role_service.ensure_role(second.id) == "cashier"

    def test_idempotent(self, db_session, alice, bob):
        assert role_service.ensure_role(alice.id) == "admin"
        assert role_service.ensure_role(alice.id) == "admin"
        assert role_service.ensure_role(bob.id) == "cashier"

        assert db_session.query(RoleAssignment).count() == 2

    def test_only_first_admin_holds_bootstrap_slot(self, db_session, alice, bob):
        slots = {
            ra.principal_id: ra.bootstrap_slot
            for ra in db_session.query(RoleAssignment).all()
        }
        assert slots == {alice.id: "admin", bob.id: None}

    def test_order_of_registration_not_of_ids_decides(self, db_session):
        """The admin is whoever calls ensure_role first."""
        early = principal_service.register_principal("auth0|early")
        late = principal_service.register_principal("auth0|late")

        assert role_service.ensure_role(late.id) == "admin"
        assert role_service.ensure_role(early.id) == "cashier"

    def test_missing_principal_rejected(self, db_session):
        with pytest.raises(Unauthorized):
            role_service.ensure_role(None)

    def test_unknown_principal_rejected(self, db_session):
        with pytest.raises(Unauthorized):
            role_service.ensure_role(99999)

    def test_is_admin(self, db_session, alice, bob):
        assert role_service.is_admin(alice.id) is True
        assert role_service.is_admin(bob.id) is False


class TestConcurrentBootstrap:
    """Simultaneous first registrations must still produce exactly one admin."""

    def test_exactly_one_admin_under_race(self, file_app):
        n = 8
        with file_app.app_context():
            ids = [principal_service.register_principal(f"auth0|racer{i}").id for i in range(n)]

        barrier = threading.Barrier(n)
        results = {}
        errors = []

        def worker(principal_id):
            with file_app.app_context():
                barrier.wait()
                try:
                    results[principal_id] = role_service.ensure_role(principal_id)
                except Exception as exc:
                    errors.append(exc)

        threads = [threading.Thread(target=worker, args=(pid,)) for pid in ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert sorted(results.values()) == ["admin"] + ["cashier"] * (n - 1)

        with file_app.app_context():
            assert db.session.query(RoleAssignment).filter_by(role="admin").count() == 1
            assert db.session.query(RoleAssignment).count() == n

    def test_duplicate_bootstrap_of_same_principal(self, file_app):
        with file_app.app_context():
            pid = principal_service.register_principal("auth0|twice").id

        barrier = threading.Barrier(4)
        results = []

        def worker():
            with file_app.app_context():
                barrier.wait()
                results.append(role_service.ensure_role(pid))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == ["admin"] * 4
        with file_app.app_context():
            assert db.session.query(RoleAssignment).filter_by(principal_id=pid).count() == 1
