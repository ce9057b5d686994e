"""CLI entry point for totpgate."""

from __future__ import annotations

import logging
import sys

import click
from rich.console import Console

from totpgate.errors import TotpGateError
from totpgate.secret import TwoFactorSecret

console = Console()


@click.group()
@click.option("--log-level", default=None, help="Override TOTPGATE_LOG_LEVEL.")
def main(log_level: str | None) -> None:
    """totpgate — TOTP second-factor gate."""
    from totpgate.config import load_settings

    if log_level is None:
        try:
            log_level = load_settings().log_level
        except TotpGateError:
            log_level = "INFO"
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )


@main.command()
@click.option("--label", default=None, help="Issuer label shown in the authenticator.")
@click.option("--identity", default="user@example.com", show_default=True)
@click.option("--bytes", "byte_length", type=int, default=None, help="Secret length in bytes.")
@click.option("--qr", is_flag=True, help="Also print the QR code.")
def generate(label: str | None, identity: str, byte_length: int | None, qr: bool) -> None:
    """Generate a new secret and its provisioning URI."""
    from totpgate.config import load_settings

    try:
        settings = load_settings()
        secret = TwoFactorSecret.generate(
            byte_length if byte_length is not None else settings.secret_byte_length,
            label=label if label is not None else settings.label,
        )
    except TotpGateError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    uri = secret.provisioning_uri(identity)
    console.print(f"[bold]Secret:[/bold] {secret.raw_secret}", soft_wrap=True)
    console.print(f"[bold]URI:[/bold]    {uri}", soft_wrap=True)
    if qr:
        from totpgate import qr as qr_render

        click.echo(qr_render.terminal(uri))


@main.command()
@click.argument("secret")
def code(secret: str) -> None:
    """Show the current code for SECRET."""
    try:
        totp = TwoFactorSecret.from_stored(None, secret)
    except TotpGateError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    click.echo(totp.expected_code())


@main.command()
@click.argument("secret")
@click.argument("token")
def verify(secret: str, token: str) -> None:
    """Check TOKEN against SECRET (exit code 1 when invalid)."""
    try:
        totp = TwoFactorSecret.from_stored(None, secret)
    except TotpGateError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)
    if totp.verify(token):
        console.print("[green]valid[/green]")
    else:
        console.print("[red]invalid[/red]")
        sys.exit(1)


@main.command()
def settings() -> None:
    """Show the effective gate settings."""
    from totpgate.config import load_settings

    try:
        cfg = load_settings()
    except TotpGateError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(2)

    data = cfg.model_dump()
    data["master_key"] = "set" if cfg.master_key else "not set"
    data["challenge_path"] = cfg.challenge_path
    data["verify_path"] = cfg.verify_path
    data["failure_target"] = cfg.failure_target
    console.print_json(data=data)
