from sqlalchemy import select
from sqlalchemy.orm import Session

from amm_indexer.storage.db_utils import upsert
from amm_indexer.storage.models.active_pool import ActivePool


class ActivityScheduler:
    """Marks pools that traded recently for the periodic refresh sweep."""

    def __init__(self, session: Session):
        self.session = session

    def mark_active(self, pool_address: str, chain_id: int, timestamp: int) -> None:
        upsert(
            self.session,
            ActivePool.__table__,
            {"chain_id": chain_id, "pool_address": pool_address.lower(), "last_swap_timestamp": timestamp},
            index_elements=["chain_id", "pool_address"],
            update_columns=["last_swap_timestamp"],
            where=lambda table, excluded: table.c.last_swap_timestamp < excluded.last_swap_timestamp,
        )

    def active_pools(self, chain_id: int, since: int) -> list[str]:
        return list(self.session.scalars(
            select(ActivePool.pool_address)
            .where(ActivePool.chain_id == chain_id, ActivePool.last_swap_timestamp >= since)
            .order_by(ActivePool.last_swap_timestamp.desc())
        ))
