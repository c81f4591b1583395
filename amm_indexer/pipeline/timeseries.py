import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from amm_indexer.config.settings import DAY_SECONDS, PRICE_BUCKET_SECONDS, PRICE_CHANGE_LOOKBACK_SECONDS
from amm_indexer.pipeline.fixed_point import WAD, compute_percent_change, usd_value
from amm_indexer.storage.db_utils import insert_if_absent, upsert
from amm_indexer.storage.models.daily_volume import DailyVolume
from amm_indexer.storage.models.pools import Pool
from amm_indexer.storage.models.price_bucket import PriceBucket

log = logging.getLogger(__name__)


def floor_to(timestamp: int, interval: int) -> int:
    return timestamp // interval * interval


class TimeSeriesAggregator:
    """Owns the PriceBucket and DailyVolume series of every pool."""

    def __init__(
        self,
        session: Session,
        bucket_seconds: int = PRICE_BUCKET_SECONDS,
        lookback_seconds: int = PRICE_CHANGE_LOOKBACK_SECONDS,
    ):
        self.session = session
        self.bucket_seconds = bucket_seconds
        self.lookback_seconds = lookback_seconds

    # ── price buckets ────────────────────────────────────────────────────
    def record_price_bucket(
        self,
        pool: Pool,
        timestamp: int,
        price: int,
        eth_price: int,
        market_cap_usd: int | None = None,
    ) -> int:
        """Write the closing price of the bucket containing ``timestamp``.

        A replayed older swap never overwrites a later close.
        """
        bucket_ts = floor_to(timestamp, self.bucket_seconds)
        values = {
            "pool_address": pool.address,
            "chain_id": pool.chain_id,
            "bucket_timestamp": bucket_ts,
            "price": price,
            "eth_price": eth_price,
            "price_usd": usd_value(price, eth_price),
            "market_cap_usd": market_cap_usd,
            "updated_at": timestamp,
        }
        upsert(
            self.session,
            PriceBucket.__table__,
            values,
            index_elements=["pool_address", "chain_id", "bucket_timestamp"],
            update_columns=["price", "eth_price", "price_usd", "market_cap_usd", "updated_at"],
            where=lambda table, excluded: table.c.updated_at <= excluded.updated_at,
        )
        return bucket_ts

    def compute_24h_price_change(self, pool: Pool, current_market_cap_usd: int, timestamp: int) -> float:
        """Percent change against the latest bucket at or before ``timestamp - 24h``.

        Zero when the pool has no history that old.
        """
        horizon = timestamp - self.lookback_seconds
        past = self.session.execute(
            select(PriceBucket.bucket_timestamp, PriceBucket.market_cap_usd)
            .where(
                PriceBucket.pool_address == pool.address,
                PriceBucket.chain_id == pool.chain_id,
                PriceBucket.bucket_timestamp <= horizon,
            )
            .order_by(PriceBucket.bucket_timestamp.desc())
            .limit(1)
        ).first()

        if past is None or not past.market_cap_usd:
            return 0.0
        return compute_percent_change(current_market_cap_usd, past.market_cap_usd)

    # ── daily volume ─────────────────────────────────────────────────────
    def record_daily_volume(
        self,
        pool: Pool,
        amount_in: int,
        amount_out: int,
        token_in: str,
        token_out: str,
        timestamp: int,
        eth_price: int,
        market_cap_usd: int | None,
        price: int | None = None,
    ) -> DailyVolume:
        """Add one swap to the pool's volume for the UTC day of ``timestamp``."""
        price = pool.price if price is None else price
        in_usd = usd_value(self._quote_equivalent(pool, token_in, amount_in, price), eth_price)
        out_usd = usd_value(self._quote_equivalent(pool, token_out, amount_out, price), eth_price)
        # volume is measured on the quote side of the trade
        volume_usd = in_usd if token_in.lower() == pool.quote_token else out_usd

        day = floor_to(timestamp, DAY_SECONDS)
        key = {"pool_address": pool.address, "chain_id": pool.chain_id, "day_timestamp": day}
        if insert_if_absent(
            self.session,
            DailyVolume.__table__,
            {**key, "volume_usd": 0, "amount_in_usd": 0, "amount_out_usd": 0,
             "swap_count": 0, "market_cap_usd": None, "last_updated": timestamp},
            ["pool_address", "chain_id", "day_timestamp"],
        ):
            log.debug("Opened daily volume %s for pool %s", day, pool.address)

        row = self.session.execute(
            select(DailyVolume)
            .filter_by(**key)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one()

        row.volume_usd += volume_usd
        row.amount_in_usd += in_usd
        row.amount_out_usd += out_usd
        row.swap_count += 1
        if timestamp >= row.last_updated:
            row.last_updated = timestamp
            if market_cap_usd is not None:
                row.market_cap_usd = market_cap_usd
        self.session.flush()
        return row

    def daily_volume_usd(self, pool: Pool, timestamp: int) -> int:
        day = floor_to(timestamp, DAY_SECONDS)
        row = self.session.get(DailyVolume, (pool.address, pool.chain_id, day))
        return row.volume_usd if row is not None else 0

    @staticmethod
    def _quote_equivalent(pool: Pool, token: str, amount: int, price: int) -> int:
        if token.lower() == pool.quote_token:
            return amount
        return amount * price // WAD
