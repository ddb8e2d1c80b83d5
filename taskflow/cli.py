"""CLI tools for TaskFlow administration."""

import click

from taskflow.db.enums import Role
from taskflow.db.session import SessionLocal
from taskflow.services import auth_service, user_service


@click.group()
def cli():
    """TaskFlow CLI tools."""
    pass


@cli.command()
@click.option("--username", required=True, help="Login name")
@click.option("--email", required=True, help="Email address")
@click.option("--password", required=True, prompt=True, hide_input=True, help="Password (min 6 chars)")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.STANDARD.value,
    show_default=True,
)
def create_user(username: str, email: str, password: str, role: str):
    """
    Create a local account.

    Example:
        taskflow create-user --username admin --email admin@example.com --role admin
    """
    if len(password) < 6:
        raise click.ClickException("Password must be at least 6 characters")

    db = SessionLocal()
    try:
        user = auth_service.create_user(
            db, username=username, email=email, password=password, role=Role(role)
        )
    except auth_service.DuplicateUserError as e:
        raise click.ClickException(str(e))
    finally:
        db.close()

    click.echo(f"✓ Created user {username} ({role})")
    click.echo(f"  ID: {user.id}")


@cli.command()
@click.option("--username", required=True, help="Login name")
@click.option("--role", type=click.Choice([r.value for r in Role]), required=True)
def set_role(username: str, role: str):
    """Change a user's role (bootstrap the first admin)."""
    db = SessionLocal()
    try:
        user = user_service.set_role(db, username, Role(role))
    finally:
        db.close()

    if not user:
        raise click.ClickException(f"User '{username}' not found")
    click.echo(f"✓ {username} is now {role}")


if __name__ == "__main__":
    cli()
