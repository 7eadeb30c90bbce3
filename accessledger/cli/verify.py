"""
accessledger verify — ledger chain verification.

Exit codes:
    0  Ledger valid (genesis + chain + indices + timestamps)
    1  Ledger has violations
    2  Error (file missing, unreadable, no genesis)
"""

import json
import sys
from pathlib import Path

import click

from accessledger.core.exceptions import IntegrityError, LedgerError
from accessledger.ledger.store import RecordStore


class _Color:
    """Minimal ANSI wrapper. Auto-disables when not a TTY or --no-color."""
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def green(cls, s: str) -> str:
        return f"\033[32m{s}\033[0m" if cls._on else s

    @classmethod
    def red(cls, s: str) -> str:
        return f"\033[31m{s}\033[0m" if cls._on else s


@click.command(name="verify")
@click.argument("ledger", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json", "compact"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option("--quiet", is_flag=True, default=False, help="Exit code only.")
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def verify_command(ledger: str, fmt: str, quiet: bool, no_color: bool) -> None:
    """
    Verify the hash chain of an access ledger file.

    \b
    Examples:
      accessledger verify .accessledger/ledger.jsonl
      accessledger verify ledger.jsonl --format json
      accessledger verify ledger.jsonl --quiet && echo "clean"
    """
    _Color.configure(not no_color)
    ledger_path = Path(ledger)

    # RecordStore.open() replays and verifies; IntegrityError is a violation
    try:
        store = RecordStore.open(ledger_path)
    except IntegrityError as e:
        _emit(fmt, quiet, valid=False, path=ledger_path, error=str(e))
        sys.exit(1)
    except LedgerError as e:
        if not quiet:
            click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    stats = store.get_stats()
    _emit(fmt, quiet, valid=True, path=ledger_path, stats=stats)
    sys.exit(0)


def _emit(fmt: str, quiet: bool, valid: bool, path: Path, error: str = None, stats: dict = None) -> None:
    if quiet:
        return

    if fmt == "json":
        payload = {"ledger": str(path), "valid": valid}
        if error:
            payload["violation"] = error
        if stats:
            payload.update({
                "owner":     stats["owner"],
                "records":   stats["total_records"],
                "head_hash": stats["head_hash"],
            })
        click.echo(json.dumps(payload, indent=2))
        return

    if fmt == "compact":
        if valid:
            click.echo(f"VALID {path} records={stats['total_records']} head={stats['head_hash'][:16]}")
        else:
            click.echo(f"INVALID {path} {error}")
        return

    if valid:
        click.echo(_Color.green(f"Ledger valid: {path}"))
        click.echo(f"  owner      {stats['owner']}")
        click.echo(f"  records    {stats['total_records']} "
                   f"({stats['granted']} granted, {stats['denied']} denied)")
        click.echo(f"  head hash  {stats['head_hash']}")
    else:
        click.echo(_Color.red(f"Ledger INVALID: {path}"))
        click.echo(f"  {error}")
