"""Typer-based CLI for checking and watching a remote session."""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from remotelink.config import ConnectionSettings, Endpoint
from remotelink.connection import ConnectionManager
from remotelink.events import ConnectionEstablished, ConnectionFailed, LogLine, ReconnectStarted
from remotelink.logger import get_logger, setup_logger
from remotelink.sftp import SftpSession

logger = get_logger("cli")
app = typer.Typer(
    name="remotelink",
    help="Open, watch and re-establish an SFTP session to a remote host",
    add_completion=False,
)


def _echo_log(event: LogLine) -> None:
    typer.echo(event.message)


def _echo_failed(event: ConnectionFailed) -> None:
    typer.echo(f"❌ Connection failed after {event.attempts} attempt(s): {event.message}")


def _echo_established(event: ConnectionEstablished) -> None:
    typer.echo(f"🎯 Connected to {event.endpoint.display_name}")


def _echo_reconnect(event: ReconnectStarted) -> None:
    typer.echo(f"Reconnecting to {event.endpoint.display_name}")


def _build_manager(endpoint: Endpoint, settings: ConnectionSettings) -> ConnectionManager:
    manager = ConnectionManager(
        endpoint,
        settings=settings,
        session_factory=partial(SftpSession, settings=settings),
    )
    manager.set_on_log(_echo_log)
    manager.set_on_connection_failed(_echo_failed)
    manager.set_on_connection_established(_echo_established)
    manager.set_on_reconnect_started(_echo_reconnect)
    return manager


async def _probe(endpoint: Endpoint, settings: ConnectionSettings) -> bool:
    async with _build_manager(endpoint, settings) as manager:
        result = await manager.connect()
    return result.success


async def _watch(endpoint: Endpoint, settings: ConnectionSettings, max_reconnects: Optional[int]) -> bool:
    lost = asyncio.Event()

    async with _build_manager(endpoint, settings) as manager:
        # Delivered on the loop, so setting an asyncio.Event is safe here
        manager.set_on_connection_lost(lambda event: lost.set())

        result = await manager.connect()
        if not result:
            return False

        reconnects = 0
        while max_reconnects is None or reconnects < max_reconnects:
            await lost.wait()
            lost.clear()
            reconnects += 1
            result = await manager.reconnect()
            if not result:
                return False
    return True


def _resolve(
    host: Optional[str],
    port: int,
    username: Optional[str],
    password: str,
    name: Optional[str],
    attempts: Optional[int],
    backoff: Optional[float],
) -> tuple[Endpoint, ConnectionSettings]:
    if not host or not username:
        typer.echo("❌ Host and username are required (--host/--username or REMOTELINK_HOST/REMOTELINK_USERNAME).")
        raise typer.Exit(code=2)

    overrides = {}
    if attempts is not None:
        overrides["max_attempts"] = attempts
    if backoff is not None:
        overrides["initial_backoff"] = backoff

    try:
        endpoint = Endpoint(host=host, port=port, username=username, password=password, name=name)
        settings = ConnectionSettings.from_env().model_copy(update=overrides)
    except ValidationError as exc:
        typer.echo(f"❌ Invalid configuration: {exc}")
        raise typer.Exit(code=2)
    return endpoint, settings


HostOption = typer.Option(None, "--host", envvar="REMOTELINK_HOST", help="Remote host")
PortOption = typer.Option(22, "--port", envvar="REMOTELINK_PORT", help="SSH port")
UsernameOption = typer.Option(None, "--username", "-u", envvar="REMOTELINK_USERNAME", help="Login user")
PasswordOption = typer.Option("", "--password", envvar="REMOTELINK_PASSWORD", help="Login password")
NameOption = typer.Option(None, "--name", envvar="REMOTELINK_NAME", help="Display name for the host")
AttemptsOption = typer.Option(None, "--attempts", min=1, help="Connect attempts before giving up")
BackoffOption = typer.Option(None, "--backoff", min=0.0, help="Delay after the first failed attempt (seconds)")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Also log to the console")


@app.command()
def probe(
    host: Optional[str] = HostOption,
    port: int = PortOption,
    username: Optional[str] = UsernameOption,
    password: str = PasswordOption,
    name: Optional[str] = NameOption,
    attempts: Optional[int] = AttemptsOption,
    backoff: Optional[float] = BackoffOption,
    verbose: bool = VerboseOption,
) -> None:
    """Connect once, report the outcome, and disconnect."""
    if verbose:
        setup_logger(log_level="DEBUG", console_output=True)
    endpoint, settings = _resolve(host, port, username, password, name, attempts, backoff)

    ok = asyncio.run(_probe(endpoint, settings))
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def watch(
    host: Optional[str] = HostOption,
    port: int = PortOption,
    username: Optional[str] = UsernameOption,
    password: str = PasswordOption,
    name: Optional[str] = NameOption,
    attempts: Optional[int] = AttemptsOption,
    backoff: Optional[float] = BackoffOption,
    max_reconnects: Optional[int] = typer.Option(
        None, "--max-reconnects", min=0, help="Stop after this many reconnects (default: never)"
    ),
    verbose: bool = VerboseOption,
) -> None:
    """Stay connected, reconnecting whenever the session is lost."""
    if verbose:
        setup_logger(log_level="DEBUG", console_output=True)
    endpoint, settings = _resolve(host, port, username, password, name, attempts, backoff)

    try:
        ok = asyncio.run(_watch(endpoint, settings, max_reconnects))
    except KeyboardInterrupt:
        typer.echo("\n👋 Goodbye!")
        return
    if not ok:
        raise typer.Exit(code=1)


def main() -> None:
    """Console entry point: load .env, then run the CLI."""
    load_dotenv()
    app()


if __name__ == "__main__":
    main()
