"""
accessledger/cli/__init__.py

AccessLedger CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    accessledger = "accessledger.cli:cli"
"""

import logging

import click

from accessledger.cli.records import records_command
from accessledger.cli.relay import keygen_command, log_access_command, serve_command
from accessledger.cli.verify import verify_command


@click.group()
@click.version_option(package_name="accessledger")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity for this invocation.",
)
def cli(log_level: str) -> None:
    """
    AccessLedger — tamper-evident physical access log.

    \b
    Commands:
      keygen      Create the owner signing key.
      serve       Run the HTTP relay (POST /log-access).
      log-access  Relay one access attempt from the terminal.
      records     Print the records of a ledger file.
      verify      Verify a ledger file's chain.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(keygen_command)
cli.add_command(serve_command)
cli.add_command(log_access_command)
cli.add_command(records_command)
cli.add_command(verify_command)
