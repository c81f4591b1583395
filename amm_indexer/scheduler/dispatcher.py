from celery import shared_task
from redis import Redis
from redlock import Redlock
import time
import logging

from amm_indexer.config.settings import DATABASE_URL, REDIS_URL, REFRESH_CHAIN_IDS
from amm_indexer.evm.client import get_chain_client
from amm_indexer.evm.reader import Web3ContractReader
from amm_indexer.pipeline.refresh import refresh_active_pools
from amm_indexer.storage.db import make_engine, make_session_factory

log = logging.getLogger(__name__)

# ── global Redis lock (only ONE sweep per chain may run at a time) ──────
LOCKER = Redlock([Redis.from_url(REDIS_URL)])

REFRESH_LOCK_MS = 4 * 60 * 1000   # shorter than the beat interval

_session_factory = None

def _sessions():
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(make_engine(DATABASE_URL, worker=True))
    return _session_factory


@shared_task(name="refresh_all_chains", queue="refresh")
def refresh_all_chains():
    for chain_id in REFRESH_CHAIN_IDS:
        refresh_chain.apply_async(kwargs={"chain_id": chain_id}, queue="refresh")


@shared_task(name="refresh_chain", queue="refresh", bind=True, max_retries=3)
def refresh_chain(self, chain_id: int):
    lock = LOCKER.lock(f"refresh_lock:{chain_id}", REFRESH_LOCK_MS)
    if not lock:
        log.info(f"Refresh of chain {chain_id} already running; skipping.")
        return 0

    try:
        reader = Web3ContractReader(get_chain_client(chain_id))
        with _sessions()() as db, db.begin():
            return refresh_active_pools(db, reader, chain_id, int(time.time()))
    except Exception as exc:
        log.exception(f"Refresh of chain {chain_id} failed")
        raise self.retry(exc=exc, countdown=30)
    finally:
        LOCKER.unlock(lock)
