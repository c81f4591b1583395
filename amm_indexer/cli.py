import json
import logging
import time
from pathlib import Path

import typer
from dotenv import load_dotenv

load_dotenv()

from amm_indexer.config.settings import DATABASE_URL, STATE_VIEW_ADDRESSES
from amm_indexer.evm.client import get_chain_client
from amm_indexer.evm.reader import Web3ContractReader
from amm_indexer.pipeline.events import ChainEvent
from amm_indexer.pipeline.processor import EventProcessor
from amm_indexer.pipeline.refresh import refresh_active_pools
from amm_indexer.storage.db import init_db, make_engine, make_session_factory
from amm_indexer.utils.log_utils import configure_logging

log = logging.getLogger(__name__)

app = typer.Typer(help="AMM pool indexer")


@app.callback()
def setup(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    configure_logging(logging.DEBUG if verbose else logging.INFO)


@app.command("init-db")
def init_db_cmd(database_url: str = typer.Option(DATABASE_URL, help="SQLAlchemy URL")):
    """Create all tables."""
    init_db(make_engine(database_url))
    log.info("[cli] Tables created")


@app.command("replay")
def replay(
    file: Path = typer.Argument(..., exists=True, readable=True, help="JSON-lines event dump"),
    chain_id: int = typer.Option(..., help="e.g. 8453"),
    database_url: str = typer.Option(DATABASE_URL, help="SQLAlchemy URL"),
):
    """
    Feed a JSON-lines dump of decoded events through the processor (backfills).
    Lines for other chains are ignored.
    """
    processor = EventProcessor(
        make_session_factory(make_engine(database_url)),
        Web3ContractReader(get_chain_client(chain_id)),
        STATE_VIEW_ADDRESSES,
    )
    applied = skipped = 0
    with file.open() as fh:
        for line_no, line in enumerate(fh, 1):
            if not line.strip():
                continue
            event = ChainEvent.from_dict(json.loads(line))
            if event.chain_id != chain_id:
                continue
            if processor.handle(event):
                applied += 1
            else:
                skipped += 1
            if line_no % 1000 == 0:
                log.info(f"[cli] {line_no} lines read, {applied} applied")
    log.info(f"[cli] Replay finished: {applied} applied, {skipped} skipped")


@app.command("refresh")
def refresh(
    chain_id: int = typer.Option(..., help="e.g. 8453"),
    database_url: str = typer.Option(DATABASE_URL, help="SQLAlchemy URL"),
):
    """Run the active pool sweep once."""
    session_factory = make_session_factory(make_engine(database_url))
    reader = Web3ContractReader(get_chain_client(chain_id))
    with session_factory() as db, db.begin():
        count = refresh_active_pools(db, reader, chain_id, int(time.time()))
    typer.echo(f"Refreshed {count} pools on chain {chain_id}")


def main():
    app()

if __name__ == "__main__":
    main()
