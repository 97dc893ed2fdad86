"""
CLI command tests (flask users / flask system).
"""

from paint_erp.models import User


class TestUsersCommands:

    def test_create_super_admin(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--name", "Owner",
            "--email", "Owner@PaintShop.test",
            "--password", "Password123",
            "--role", "super_admin",
        ])

        assert result.exit_code == 0, result.output
        assert "PASS Created user owner@paintshop.test" in result.output
        user = db_session.query(User).filter_by(email="owner@paintshop.test").one()
        assert user.role == "super_admin"

    def test_create_rejects_weak_password(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--name", "Owner", "--email", "owner@paintshop.test", "--password", "weak",
        ])

        assert result.exit_code != 0
        assert "Password must be at least 8 characters long" in result.output
        assert db_session.query(User).count() == 0

    def test_list(self, app, db_session, user):
        result = app.test_cli_runner().invoke(args=["users", "list"])

        assert result.exit_code == 0
        assert "staff@paintshop.test" in result.output


class TestSystemCommands:

    def test_init_db_is_idempotent(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "init-db"])
        assert result.exit_code == 0
        assert "PASS" in result.output
