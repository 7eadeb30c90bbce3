"""
accessledger records — print the access records of a ledger file.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click

from accessledger.core.exceptions import LedgerError
from accessledger.ledger.store import RecordStore
from accessledger.projection import MAX_PAGE_SIZE, ReadProjection


@click.command(name="records")
@click.argument("ledger", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.option("--cursor", type=click.IntRange(min=0), default=0, show_default=True, help="First record index.")
@click.option("--limit", type=click.IntRange(1, MAX_PAGE_SIZE), default=None,
              help="Maximum records to print (default: all).")
def records_command(ledger: str, fmt: str, cursor: int, limit: Optional[int]) -> None:
    """Print records from LEDGER in append order."""
    try:
        store = RecordStore.open(Path(ledger))
    except LedgerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)

    projection = ReadProjection(store)
    if limit is None:
        records = projection.list_records()[cursor:]
    else:
        records = projection.page(cursor=cursor, limit=limit).records

    if fmt == "json":
        click.echo(json.dumps({
            "owner":   store.owner,
            "count":   projection.access_count(),
            "records": [r.to_dict() for r in records],
        }, indent=2))
        return

    click.echo(f"Owner:   {store.owner}")
    click.echo(f"Records: {projection.access_count()}")
    for offset, record in enumerate(records):
        when = datetime.fromtimestamp(record.timestamp, tz=timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%SZ"
        )
        outcome = "GRANTED" if record.success else "DENIED "
        click.echo(
            f"  #{cursor + offset:<6} {when}  {outcome}  "
            f"rfid={record.rfid_id}  fingerprint={record.fingerprint_id}"
        )
