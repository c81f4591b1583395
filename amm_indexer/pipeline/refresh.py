import logging

from sqlalchemy.orm import Session

from amm_indexer.config.settings import ACTIVE_POOL_WINDOW_SECONDS, REFRESH_STALE_SECONDS
from amm_indexer.pipeline.activity import ActivityScheduler
from amm_indexer.pipeline.exceptions import ContractReadError
from amm_indexer.pipeline.fixed_point import compute_dollar_liquidity, compute_market_cap
from amm_indexer.pipeline.oracle import OracleResolver
from amm_indexer.pipeline.registry import Registry
from amm_indexer.pipeline.timeseries import TimeSeriesAggregator

log = logging.getLogger(__name__)


def refresh_active_pools(
    session: Session,
    reader,
    chain_id: int,
    now: int,
    stale_seconds: int = REFRESH_STALE_SECONDS,
    window_seconds: int = ACTIVE_POOL_WINDOW_SECONDS,
) -> int:
    """Recompute USD metrics of recently traded pools that no event touched lately.

    Market cap drifts with the ETH price and the token supply even when a
    pool does not trade; stored reserves and price are reused as-is.
    Returns the number of pools refreshed. The caller owns the transaction.
    """
    eth_price = OracleResolver(session).try_resolve(now)
    if eth_price is None:
        log.warning("No ETH price for %s, skipping refresh of chain %s", now, chain_id)
        return 0

    registry = Registry(session, reader)
    timeseries = TimeSeriesAggregator(session)
    refreshed = 0

    for address in ActivityScheduler(session).active_pools(chain_id, now - window_seconds):
        pool = registry.find_pool(address, chain_id)
        if pool is None:
            log.warning("Active pool %s missing on chain %s", address, chain_id)
            continue
        if pool.last_refreshed is not None and now - pool.last_refreshed < stale_seconds:
            continue

        # one savepoint per pool, a failed read only drops that pool from the sweep
        try:
            with session.begin_nested():
                if not _refresh_pool(registry, timeseries, pool, eth_price, now):
                    continue
        except ContractReadError as e:
            log.warning("Skipping refresh of pool %s on chain %s: %s", address, chain_id, e)
            continue
        refreshed += 1

    log.info("Refreshed %d active pools on chain %s", refreshed, chain_id)
    return refreshed


def _refresh_pool(registry: Registry, timeseries: TimeSeriesAggregator, pool, eth_price: int, now: int) -> bool:
    chain_id = pool.chain_id
    total_supply = registry.refresh_token_supply(pool.asset, chain_id)
    if total_supply is None:
        return False

    market_cap_usd = compute_market_cap(pool.price, eth_price, total_supply)
    dollar_liquidity = compute_dollar_liquidity(pool.asset_reserve, pool.quote_reserve, pool.price, eth_price)
    percent_day_change = timeseries.compute_24h_price_change(pool, market_cap_usd, now)

    registry.update_pool(pool.address, chain_id, {
        "dollar_liquidity": dollar_liquidity,
        "market_cap_usd": market_cap_usd,
        "percent_day_change": percent_day_change,
        "last_refreshed": now,
    }, event="refresh")
    registry.update_asset(pool.asset, chain_id, {
        "liquidity_usd": dollar_liquidity,
        "market_cap_usd": market_cap_usd,
        "percent_day_change": percent_day_change,
    }, event="refresh")
    return True
