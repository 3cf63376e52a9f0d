# Overview: Pytest coverage for the flask CLI command groups.

from tindahan.models import Category, Principal, RoleAssignment
from tindahan.models.catalog import DEFAULT_CATEGORIES
from tindahan.services import session_service


class TestSystemCommands:

    def test_seed_categories(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "seed-categories"])
        assert result.exit_code == 0
        assert db_session.query(Category).count() == len(DEFAULT_CATEGORIES)

        again = runner.invoke(args=["system", "seed-categories"])
        assert "Created 0 categories" in again.output


class TestPrincipalCommands:

    def test_register_bootstraps_roles(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["principals", "register", "--subject", "auth0|nena", "--name", "Aling Nena", "--pin", "2468"])
        second = runner.invoke(args=["principals", "register", "--subject", "auth0|ben"])

        assert first.exit_code == 0
        assert "role 'admin'" in first.output
        assert "role 'cashier'" in second.output

        nena = db_session.query(Principal).filter_by(subject="auth0|nena").one()
        assert nena.product_pin_hash is not None
        assert db_session.query(RoleAssignment).count() == 2

    def test_register_bad_pin(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["principals", "register", "--subject", "auth0|x", "--pin", "12"])
        assert result.exit_code != 0
        assert db_session.query(Principal).count() == 0

    def test_issue_token(self, app, alice):
        result = app.test_cli_runner().invoke(args=["principals", "issue-token", "--subject", "auth0|alice"])
        assert result.exit_code == 0

        token = result.output.strip().splitlines()[0]
        assert session_service.validate_session(token).principal_id == alice.id

    def test_issue_token_unknown_subject(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["principals", "issue-token", "--subject", "auth0|ghost"])
        assert result.exit_code != 0

    def test_list(self, app, alice, bob):
        result = app.test_cli_runner().invoke(args=["principals", "list"])
        assert result.exit_code == 0
        assert "auth0|alice" in result.output
        assert "cashier" in result.output
