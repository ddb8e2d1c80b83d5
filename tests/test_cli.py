"""Tests for the admin CLI."""

from click.testing import CliRunner

from taskflow.cli import cli
from taskflow.core.security import verify_password
from taskflow.db.models import User


def test_create_user_and_set_role(db):
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["create-user", "--username", "ops", "--email", "ops@example.com", "--password", "secret123"],
    )
    assert result.exit_code == 0, result.output
    assert "Created user ops" in result.output

    user = db.query(User).filter(User.username == "ops").one()
    assert user.role == "standard"
    assert verify_password("secret123", user.password_hash)

    result = runner.invoke(cli, ["set-role", "--username", "ops", "--role", "admin"])
    assert result.exit_code == 0, result.output

    db.expire_all()
    assert db.query(User).filter(User.username == "ops").one().role == "admin"


def test_create_user_duplicate_fails(db, test_user):
    result = CliRunner().invoke(
        cli,
        ["create-user", "--username", "alice", "--email", "x@example.com", "--password", "secret123"],
    )
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_set_role_unknown_user(db):
    result = CliRunner().invoke(cli, ["set-role", "--username", "ghost", "--role", "admin"])
    assert result.exit_code != 0
    assert "not found" in result.output
