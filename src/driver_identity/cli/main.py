"""CLI entry point for driver-identity.

Invoked as::

    driver-identity [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m driver_identity.cli.main

Commands
--------
serve        Run the HTTP server
create-did   Create (or load) the driver DID
issue-vc     Issue the driver credential
create-vp    Present the driver credential
verify       Verify the driver presentation
status       Show the persisted state of every actor
version      Show version information

Every command except ``version`` reads ``API_ENDPOINT``,
``IDENTITY_PACKAGE_ID`` and ``VAULT_PASSWORD`` from the environment.
"""
from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click
from rich.console import Console
from rich.table import Table

from driver_identity.config import Settings
from driver_identity.errors import ConfigError, IdentityServiceError
from driver_identity.identity.store import ActorRole, IdentityState
from driver_identity.service import DriverIdentityService

console = Console()

T = TypeVar("T")


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level.",
)
def cli(log_level: str) -> None:
    """Driver identity: DIDs, verifiable credentials and presentations"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from driver_identity import __version__

    console.print(f"[bold]driver-identity[/bold] v{__version__}")


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--host", default=None, help="Bind address (defaults to HOST or 0.0.0.0).")
@click.option("--port", type=int, default=None, help="TCP port (defaults to PORT or 3002).")
def serve_command(host: str | None, port: int | None) -> None:
    """Run the HTTP server."""
    from driver_identity.server.app import run_server

    settings = _load_settings()
    run_server(host=host or settings.host, port=port or settings.port)


# ------------------------------------------------------------------
# Workflow commands
# ------------------------------------------------------------------


@cli.command(name="create-did")
def create_did_command() -> None:
    """Create the driver DID, or print the existing one."""
    did = _run(lambda service: service.create_driver_did())
    console.print(f"[green]Driver DID[/green] {did}")


@cli.command(name="issue-vc")
@click.option("--raw", is_flag=True, help="Print only the credential token.")
def issue_vc_command(raw: bool) -> None:
    """Issue the driver credential (creates the issuer DID on first use)."""
    token = _run(lambda service: service.issue_driver_vc())
    _print_token("Credential", token, raw)


@cli.command(name="create-vp")
@click.option("--raw", is_flag=True, help="Print only the presentation token.")
def create_vp_command(raw: bool) -> None:
    """Present the driver's current credential."""
    token = _run(lambda service: service.create_driver_vp())
    _print_token("Presentation", token, raw)


@cli.command(name="verify")
def verify_command() -> None:
    """Verify the driver's current presentation."""
    outcome = _run(lambda service: service.verify_driver_vp())
    console.print("[green]Presentation is valid.[/green]")
    console.print(f"  Holder:       {outcome.holder}")
    console.print(f"  Credentials:  {outcome.credential_count}")


@cli.command(name="status")
def status_command() -> None:
    """Show the persisted DID, credential and presentation of every actor."""
    settings = _load_settings()
    try:
        service = DriverIdentityService.from_settings(settings)
    except IdentityServiceError as exc:
        console.print(f"[red]{type(exc).__name__}:[/red] {exc}")
        sys.exit(1)
    store = service.store

    table = Table(title="Actors")
    table.add_column("Role", style="cyan")
    table.add_column("State")
    table.add_column("DID")
    table.add_column("Credential")
    table.add_column("Presentation")

    for role in ActorRole:
        state = store.state(role)
        did = "-"
        if state is IdentityState.PUBLISHED:
            try:
                document, _ = store.load_identity(role)
                did = document.id
            except IdentityServiceError as exc:
                did = f"[red]{exc}[/red]"
        table.add_row(
            role.value,
            state.value,
            did,
            "yes" if store.credential_path(role).exists() else "no",
            "yes" if store.presentation_path(role).exists() else "no",
        )

    asyncio.run(service.aclose())
    console.print(table)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_settings() -> Settings:
    try:
        return Settings.from_env()
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        sys.exit(1)


def _run(operation: Callable[[DriverIdentityService], Awaitable[T]]) -> T:
    """Build the service from the environment and run *operation* to completion."""
    settings = _load_settings()

    async def _main() -> T:
        service = DriverIdentityService.from_settings(settings)
        try:
            return await operation(service)
        finally:
            await service.aclose()

    try:
        return asyncio.run(_main())
    except IdentityServiceError as exc:
        console.print(f"[red]{type(exc).__name__}:[/red] {exc}")
        sys.exit(1)


def _print_token(label: str, token: str, raw: bool) -> None:
    if raw:
        click.echo(token)
        return
    console.print(f"[green]{label} token[/green] ({len(token)} chars)")
    console.print(token, soft_wrap=True)


if __name__ == "__main__":
    cli()
