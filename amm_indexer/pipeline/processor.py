import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from amm_indexer.pipeline.activity import ActivityScheduler
from amm_indexer.pipeline.adapters.base import EventKind, NormalizedSwap, PoolAdapter, PoolType
from amm_indexer.pipeline.adapters.v2 import V2Adapter
from amm_indexer.pipeline.adapters.v3 import V3Adapter
from amm_indexer.pipeline.adapters.v4 import V4Adapter
from amm_indexer.pipeline.events import ChainEvent
from amm_indexer.pipeline.exceptions import UnknownEventError
from amm_indexer.pipeline.fixed_point import (
    compute_dollar_liquidity, compute_graduation_percentage, compute_market_cap,
)
from amm_indexer.pipeline.oracle import OracleResolver
from amm_indexer.pipeline.registry import Registry
from amm_indexer.pipeline.timeseries import TimeSeriesAggregator
from amm_indexer.pipeline.user_activity import UserActivityRecorder
from amm_indexer.storage.db_utils import insert_if_absent
from amm_indexer.storage.models.processed_event import ProcessedEvent

log = logging.getLogger(__name__)

EVENT_DISPATCH: dict[str, tuple[PoolType, EventKind]] = {
    "UniswapV2Migrator:Migrate":   (PoolType.V2, EventKind.CREATE),
    "UniswapV2Pair:Swap":          (PoolType.V2, EventKind.SWAP),
    "UniswapV3Initializer:Create": (PoolType.V3, EventKind.CREATE),
    "UniswapV3Pool:Swap":          (PoolType.V3, EventKind.SWAP),
    "UniswapV4Initializer:Create": (PoolType.V4, EventKind.CREATE),
    "DopplerHook:Swap":            (PoolType.V4, EventKind.SWAP),
}


@dataclass
class PipelineContext:
    """Per-event handles, all bound to the event's single transaction."""
    session: Session
    registry: Registry
    oracle: OracleResolver
    timeseries: TimeSeriesAggregator
    activity: ActivityScheduler
    user_activity: UserActivityRecorder


class EventProcessor:
    """Entry point for the ingestion engine: one call per contract event.

    Every side effect of an event (pool/asset rows, price bucket, daily
    volume, activity marker, user activity, dedup claim) commits in one
    transaction or not at all. Contract read failures propagate to the caller.
    """

    def __init__(self, session_factory: sessionmaker, reader, state_view_addresses: dict[int, str] | None = None):
        self.session_factory = session_factory
        self.reader = reader
        self.adapters: dict[PoolType, PoolAdapter] = {
            PoolType.V2: V2Adapter(reader),
            PoolType.V3: V3Adapter(reader),
            PoolType.V4: V4Adapter(reader, state_view_addresses),
        }

    def _context(self, session: Session) -> PipelineContext:
        registry = Registry(session, self.reader)
        return PipelineContext(
            session=session,
            registry=registry,
            oracle=OracleResolver(session),
            timeseries=TimeSeriesAggregator(session),
            activity=ActivityScheduler(session),
            user_activity=UserActivityRecorder(session, registry),
        )

    def handle(self, event: ChainEvent) -> bool:
        """Apply ``event``. False when it was a duplicate or had nothing to update."""
        try:
            pool_type, kind = EVENT_DISPATCH[event.name]
        except KeyError:
            raise UnknownEventError(event.name) from None
        adapter = self.adapters[pool_type]

        with self.session_factory() as session, session.begin():
            if not self._claim(session, event):
                log.info("Skipping duplicate %s %s:%s", event.name, event.tx_hash, event.log_index)
                return False

            ctx = self._context(session)
            if kind is EventKind.CREATE:
                return self._on_create(ctx, adapter, event)
            return self._on_swap(ctx, adapter, event)

    @staticmethod
    def _claim(session: Session, event: ChainEvent) -> bool:
        return insert_if_absent(
            session,
            ProcessedEvent.__table__,
            {
                "chain_id": event.chain_id,
                "tx_hash": event.tx_hash.lower(),
                "log_index": event.log_index,
                "event_name": event.name,
                "block_number": event.block_number,
            },
            ["chain_id", "tx_hash", "log_index"],
        )

    # ── creation ─────────────────────────────────────────────────────────
    def _on_create(self, ctx: PipelineContext, adapter: PoolAdapter, event: ChainEvent) -> bool:
        chain_id, ts = event.chain_id, event.block_timestamp
        address = adapter.creation_pool_address(event)
        eth_price = ctx.oracle.try_resolve(ts)

        pool = ctx.registry.get_or_create_pool(
            address, chain_id, ts, eth_price,
            read_state=lambda: adapter.read_pool_state(address, event),
        )

        creator = event.args.get("creator")
        ctx.registry.get_or_create_token(pool.asset, chain_id, creator, ts)
        ctx.registry.get_or_create_token(pool.quote_token, chain_id, None, ts)

        if isinstance(adapter, V4Adapter) and not pool.graduation_threshold:
            ctx.registry.update_pool(
                address, chain_id,
                {"graduation_threshold": adapter.read_graduation_threshold(address)},
                event=event.name,
            )

        ctx.registry.update_asset(
            pool.asset, chain_id,
            {
                "pool": pool.address,
                "liquidity_usd": pool.dollar_liquidity,
                "market_cap_usd": pool.market_cap_usd,
                "last_seen_at": ts,
            },
            event=event.name,
        )

        if pool.parent_pool:
            ctx.registry.update_pool(pool.parent_pool, chain_id, {"migrated": True}, event=event.name)
        return True

    # ── swaps ────────────────────────────────────────────────────────────
    def _on_swap(self, ctx: PipelineContext, adapter: PoolAdapter, event: ChainEvent) -> bool:
        chain_id, ts = event.chain_id, event.block_timestamp
        address = adapter.swap_pool_address(event)

        pool = ctx.registry.find_pool(address, chain_id)
        if pool is None:
            log.warning("Swap %s:%s for unknown pool %s on chain %s, skipping",
                        event.tx_hash, event.log_index, address, chain_id)
            return False

        swap = adapter.extract_swap(event, pool)
        is_latest = pool.last_swap_timestamp is None or ts >= pool.last_swap_timestamp
        # an older swap measured against later cumulative totals has meaningless amounts
        amounts_valid = is_latest or not adapter.cumulative_amounts
        ctx.activity.mark_active(pool.address, chain_id, ts)

        eth_price = ctx.oracle.try_resolve(ts)
        if amounts_valid:
            ctx.user_activity.record_swap(event, swap, eth_price)
        if eth_price is None:
            # no USD reference: keep raw AMM state current, skip USD-derived series
            if is_latest:
                ctx.registry.update_pool(pool.address, chain_id, self._raw_fields(swap, ts), event=event.name)
            return True

        token = ctx.registry.find_token(pool.asset, chain_id)
        total_supply = token.total_supply if token is not None else 0
        market_cap_usd = compute_market_cap(swap.raw_price, eth_price, total_supply)
        dollar_liquidity = compute_dollar_liquidity(
            swap.asset_reserve, swap.quote_reserve, swap.raw_price, eth_price
        )

        ctx.timeseries.record_price_bucket(pool, ts, swap.raw_price, eth_price, market_cap_usd)
        if not amounts_valid:
            log.info("Swap at %s predates %s pool %s last swap %s, price bucket only",
                     ts, pool.type, pool.address, pool.last_swap_timestamp)
            return True

        volume = ctx.timeseries.record_daily_volume(
            pool, swap.amount_in, swap.amount_out, swap.token_in, swap.token_out,
            ts, eth_price, market_cap_usd, price=swap.raw_price,
        )

        if not is_latest:
            log.info("Swap at %s predates pool %s last swap %s, series only",
                     ts, pool.address, pool.last_swap_timestamp)
            return True

        percent_day_change = ctx.timeseries.compute_24h_price_change(pool, market_cap_usd, ts)
        pool_update = {
            **self._raw_fields(swap, ts),
            "dollar_liquidity": dollar_liquidity,
            "market_cap_usd": market_cap_usd,
            "volume_usd": volume.volume_usd,
            "percent_day_change": percent_day_change,
            "last_refreshed": ts,
        }
        ctx.registry.update_pool(pool.address, chain_id, pool_update, event=event.name)
        ctx.registry.update_asset(
            pool.asset, chain_id,
            {
                "liquidity_usd": dollar_liquidity,
                "market_cap_usd": market_cap_usd,
                "volume_usd": volume.volume_usd,
                "percent_day_change": percent_day_change,
                "last_seen_at": ts,
            },
            event=event.name,
        )
        return True

    @staticmethod
    def _raw_fields(swap: NormalizedSwap, ts: int) -> dict:
        fields = {
            "price": swap.raw_price,
            "liquidity": swap.liquidity,
            "sqrt_price": swap.sqrt_price,
            "tick": swap.tick,
            "asset_reserve": swap.asset_reserve,
            "quote_reserve": swap.quote_reserve,
            "last_swap_timestamp": ts,
        }
        if swap.graduation_balance is not None:
            threshold = swap.graduation_threshold or 0
            fields["graduation_balance"] = swap.graduation_balance
            fields["graduation_percentage"] = compute_graduation_percentage(swap.graduation_balance, threshold)
            if swap.graduation_threshold is not None:
                fields["graduation_threshold"] = swap.graduation_threshold
        if swap.total_tokens_sold is not None:
            fields["total_tokens_sold"] = swap.total_tokens_sold
        return fields
