from __future__ import annotations

import click
from flask import Flask

from .errors import NotFound
from .models import Role
from .services.users import grant_role_by_name


def register_commands(app: Flask) -> None:
    @app.cli.command("grant-role")
    @click.argument("name")
    @click.option(
        "--role",
        type=click.Choice([r.value for r in Role]),
        default=Role.ADMIN.value,
        show_default=True,
    )
    def grant_role_command(name: str, role: str) -> None:
        """Give the user NAME a portal role."""
        try:
            changed = grant_role_by_name(name, Role(role))
        except NotFound as e:
            raise click.ClickException(str(e)) from e
        click.echo(f"Granted {role} to {name}." if changed else f"{name} already has {role}.")
