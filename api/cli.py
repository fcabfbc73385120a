"""
Flask CLI commands:
- flask --app api create-admin   bootstrap a superadmin
- flask --app api reset-db       drop and recreate every table
"""
import click
from flask import current_app

from models import storage
from services.errors import ServiceError
from utils.context import get_services


@click.command("create-admin")
@click.option("--name", prompt=True)
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--role", default="superadmin", show_default=True,
              type=click.Choice(["superadmin", "admin", "editor"]))
def create_admin_command(name, email, password, role):
    """Create an admin account."""
    if len(password) < 8:
        raise click.BadParameter("Password must be at least 8 characters long.", param_hint="--password")
    try:
        admin = get_services().admin_auth.register(name=name, email=email, password=password, role=role)
    except ServiceError as exc:
        raise click.ClickException(exc.message)
    click.echo(f"Created {admin.role_name} {admin.email} ({admin.id})")


@click.command("reset-db")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
def reset_db_command(yes):
    """Drop and recreate all tables."""
    if not yes:
        click.confirm(f"Drop every table in {current_app.config['DATABASE_URL']}?", abort=True)
    storage.drop_all()
    storage.reload()
    click.echo("Database reset.")


def register_commands(app):
    app.cli.add_command(create_admin_command)
    app.cli.add_command(reset_db_command)
