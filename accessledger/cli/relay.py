"""
Relay-side commands: key generation, HTTP server, one-shot submission.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from accessledger.config import RelayConfig
from accessledger.core.crypto import Ed25519KeyManager
from accessledger.core.exceptions import AccessLedgerError


def _load_config(config_path: Optional[str]) -> RelayConfig:
    try:
        return RelayConfig.load(Path(config_path) if config_path else None)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")


@click.command(name="keygen")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing key.")
def keygen_command(path: str, force: bool) -> None:
    """Generate an Ed25519 owner key and print its identity."""
    key_path = Path(path)
    if key_path.exists() and not force:
        raise click.ClickException(f"Key already exists: {key_path} (use --force)")
    key = Ed25519KeyManager.generate()
    key.save(key_path)
    click.echo(key.identity)


@click.command(name="serve")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None)
@click.option("--host", default=None, help="Override the bind address.")
@click.option("--port", type=int, default=None, help="Override the port.")
def serve_command(config_path: Optional[str], host: Optional[str], port: Optional[int]) -> None:
    """Run the relay HTTP API."""
    import uvicorn

    from accessledger.api import create_app
    from accessledger.runtime import RuntimeContext

    config = _load_config(config_path)
    try:
        context = RuntimeContext.from_config(config)
    except (AccessLedgerError, ValueError) as e:
        raise click.ClickException(str(e))

    click.echo(f"Owner identity: {context.key_manager.identity}")
    click.echo(f"Ledger: {config.ledger_path} ({context.store.count()} records)")
    uvicorn.run(
        create_app(context),
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower(),
    )


@click.command(name="log-access")
@click.argument("rfid_id")
@click.argument("fingerprint_id")
@click.option("--success/--failure", default=True, show_default=True,
              help="Outcome of the RFID + fingerprint match.")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None)
def log_access_command(
    rfid_id:        str,
    fingerprint_id: str,
    success:        bool,
    config_path:    Optional[str],
) -> None:
    """
    Relay one access attempt into the configured ledger.

    Prints the JSON result. Exit code 0 on confirmation, 1 otherwise.

    \b
    Example:
      accessledger log-access 63:5A:59:31 1 --success
    """
    from accessledger.runtime import RuntimeContext

    config = _load_config(config_path)
    try:
        context = RuntimeContext.from_config(config)
    except (AccessLedgerError, ValueError) as e:
        raise click.ClickException(str(e))

    result = context.relay.log_access_sync(rfid_id, success, fingerprint_id)
    click.echo(json.dumps(result.to_dict()))
    sys.exit(0 if result.success else 1)
