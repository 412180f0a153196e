"""Flask CLI commands."""

from hortifruti.models import User

from conftest import TEST_PASSWORD


def test_seed_admin_command(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "seed-admin"])
    assert result.exit_code == 0
    assert "PASS Admin created" in result.output

    admin = db_session.query(User).filter_by(email=app.config["ADMIN_EMAIL"]).one()
    assert admin.role == "ADMIN"

    again = runner.invoke(args=["users", "seed-admin"])
    assert "SKIP" in again.output


def test_create_and_list_users(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create",
        "--name", "Caixa", "--email", "caixa@hortiflow.com",
        "--password", TEST_PASSWORD, "--role", "USER",
    ])
    assert result.exit_code == 0

    duplicate = runner.invoke(args=[
        "users", "create",
        "--name", "Caixa", "--email", "caixa@hortiflow.com",
        "--password", TEST_PASSWORD,
    ])
    assert duplicate.exit_code != 0

    listing = runner.invoke(args=["users", "list"])
    assert "caixa@hortiflow.com" in listing.output
