"""``reelcritic promote``: grant or revoke admin rights.

Only admins can write reviews, so the first admin is promoted from the
command line after registering through the API.

Usage:
    reelcritic promote critic@example.com
    reelcritic promote critic@example.com --revoke
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from reelcritic.config import settings
from reelcritic.persistence.db import Database
from reelcritic.persistence.repositories import UserRepository


def promote(
    email: str = typer.Argument(..., help="Email of a registered user"),
    revoke: bool = typer.Option(False, "--revoke", help="Remove admin rights instead"),
) -> None:
    """Grant (or revoke) admin rights for the user registered with EMAIL."""
    console = Console()
    if not asyncio.run(_set_admin(email.lower(), not revoke)):
        console.print(f"[red]No user registered with[/red] {email}")
        raise typer.Exit(code=1)

    state = "revoked from" if revoke else "granted to"
    console.print(f"[green]Admin rights {state}[/green] {email}")


async def _set_admin(email: str, is_admin: bool) -> bool:
    db = Database.from_settings(settings)
    try:
        async with db.session_context() as session:
            user = await UserRepository(session).get_by_email(email)
            if user is None:
                return False
            user.is_admin = is_admin
            return True
    finally:
        await db.close()
