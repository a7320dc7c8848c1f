"""unhash CLI: resolve content hashes against mirror hosts.

Commands:
- fetch  HASH   race the configured hosts and write the content out
- digest HASH   show the normalized forms of a hash and the URLs it maps to
- hash   FILE   SHA-256 of a local file in hex and base64url
- hosts         list the effective mirror hosts
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from unhash.config import load_settings
from unhash.core import resolve_sync
from unhash.digest import normalize
from unhash.errors import UnhashError
from unhash.logging import get_logger
from unhash.race.fetcher import leg_url
from unhash.signing.checks import sha256_file

app = typer.Typer(add_completion=False, help="Resolve content hashes from mirror hosts")
console = Console(stderr=True)


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {exc}", markup=True, highlight=False)
    raise typer.Exit(code=1)


@app.command()
def fetch(
    hash_: str = typer.Argument(..., metavar="HASH", help="hex, base64 or base64url SHA-256"),
    host: list[str] | None = typer.Option(
        None, "--host", "-H", help="Mirror host (repeatable)", show_default=False
    ),
    no_verify: bool = typer.Option(False, "--no-verify", help="Accept bytes without hashing"),
    policy: str | None = typer.Option(
        None, "--policy", help='"first-settled" | "first-success"', show_default=False
    ),
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds bounding the race"),
    config: str | None = typer.Option(None, "--config", help="JSON settings file"),
    out: str | None = typer.Option(None, "--out", "-o", help="Write to file instead of stdout"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    if verbose:
        get_logger().setLevel(logging.DEBUG)
    try:
        settings = load_settings(
            config,
            hosts=host or None,
            verify=False if no_verify else None,
            policy=policy,
            timeout=timeout,
        )
        data = resolve_sync(hash_, settings=settings)
    except UnhashError as exc:
        _fail(exc)

    if out:
        Path(out).write_bytes(data)
        console.print(f"[green]Wrote {len(data)} bytes:[/green] {out}")
    else:
        typer.echo(data, nl=False)


@app.command()
def digest(
    hash_: str = typer.Argument(..., metavar="HASH", help="hex, base64 or base64url SHA-256"),
    config: str | None = typer.Option(None, "--config", help="JSON settings file"),
) -> None:
    try:
        d = normalize(hash_)
        settings = load_settings(config)
    except UnhashError as exc:
        _fail(exc)

    table = Table(title="Digest")
    table.add_column("Form", style="cyan")
    table.add_column("Value")
    table.add_row("hex", d.hex)
    table.add_row("base64url", d.urlsafe)
    for h in settings.hosts:
        table.add_row("url", leg_url(h, d, settings.scheme))
    Console().print(table)


@app.command(name="hash")
def hash_file(path: str = typer.Argument(..., help="Local file to hash")) -> None:
    p = Path(path)
    if not p.is_file():
        _fail(FileNotFoundError(f"No such file: {p}"))
    d = sha256_file(p)
    print(d.hex)
    print(d.urlsafe)


@app.command()
def hosts(config: str | None = typer.Option(None, "--config", help="JSON settings file")) -> None:
    try:
        settings = load_settings(config)
    except UnhashError as exc:
        _fail(exc)
    for h in settings.hosts:
        rprint(h)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
