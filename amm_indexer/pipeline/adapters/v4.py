import logging

from amm_indexer.config.abis import V4_HOOK_ABI, V4_STATE_VIEW_ABI
from amm_indexer.config.settings import STATE_VIEW_ADDRESSES
from amm_indexer.evm.pool_key import dump_pool_key, load_pool_key, pool_id, pool_key_from_tuple
from amm_indexer.pipeline.adapters.base import (
    NormalizedSwap, PoolAdapter, PoolState, PoolType, order_sides, split_reserves,
)
from amm_indexer.pipeline.events import ChainEvent
from amm_indexer.pipeline.exceptions import IndexerError
from amm_indexer.pipeline.fixed_point import price_from_sqrt_price_x96, reserves_from_liquidity

log = logging.getLogger(__name__)


class V4Adapter(PoolAdapter):
    """Pools living inside the singleton manager, addressed by their hook.

    Price, tick and liquidity are read through the chain's StateView lens
    keyed by the PoolId; reserves are the virtual reserves of the current
    liquidity at the current price.
    """

    pool_type = PoolType.V4
    cumulative_amounts = True

    def __init__(self, reader, state_view_addresses: dict[int, str] | None = None):
        super().__init__(reader)
        self.state_view_addresses = state_view_addresses or STATE_VIEW_ADDRESSES

    def creation_pool_address(self, event: ChainEvent) -> str:
        return event.args["poolOrHook"].lower()

    def _state_view(self, chain_id: int) -> str:
        try:
            return self.state_view_addresses[chain_id]
        except KeyError:
            raise IndexerError(f"No StateView address configured for chain {chain_id}") from None

    def _read_slot(self, chain_id: int, key: dict, block_number: int | None) -> tuple[int, int, int]:
        state_view = self._state_view(chain_id)
        pid = pool_id(key)
        slot0 = self.reader.read_contract(
            state_view, V4_STATE_VIEW_ABI, "getSlot0", args=(pid,), block_identifier=block_number
        )
        liquidity = self.reader.read_contract(
            state_view, V4_STATE_VIEW_ABI, "getLiquidity", args=(pid,), block_identifier=block_number
        )
        return int(slot0[0]), int(slot0[1]), int(liquidity)

    def read_pool_state(self, address: str, event: ChainEvent) -> PoolState:
        key = pool_key_from_tuple(self.reader.read_contract(address, V4_HOOK_ABI, "poolKey"))
        asset = event.args["asset"].lower()
        quote, is_token0 = order_sides(key["currency0"], key["currency1"], asset)

        sqrt_price, tick, liquidity = self._read_slot(event.chain_id, key, event.block_number)
        reserve0, reserve1 = reserves_from_liquidity(liquidity, sqrt_price)
        asset_reserve, quote_reserve = split_reserves(reserve0, reserve1, is_token0)

        return PoolState(
            pool_type=self.pool_type,
            asset=asset,
            quote=quote,
            is_token0=is_token0,
            asset_reserve=asset_reserve,
            quote_reserve=quote_reserve,
            price=price_from_sqrt_price_x96(sqrt_price, is_token0),
            liquidity=liquidity,
            sqrt_price=sqrt_price,
            tick=tick,
            fee=key["fee"],
            pool_key=dump_pool_key(key),
        )

    def read_graduation_threshold(self, address: str) -> int:
        return int(self.reader.read_contract(address, V4_HOOK_ABI, "maximumProceeds"))

    def extract_swap(self, event: ChainEvent, pool) -> NormalizedSwap:
        args = event.args
        total_proceeds = int(args["totalProceeds"])
        total_sold = int(args["totalTokensSold"])

        # the hook reports cumulative totals; this swap is the change since the stored row
        proceeds_delta = total_proceeds - (pool.graduation_balance or 0)
        sold_delta = total_sold - (pool.total_tokens_sold or 0)
        if sold_delta >= 0:
            token_in, token_out = pool.quote_token, pool.asset
            amount_in, amount_out = max(proceeds_delta, 0), sold_delta
        else:
            token_in, token_out = pool.asset, pool.quote_token
            amount_in, amount_out = -sold_delta, max(-proceeds_delta, 0)

        key = load_pool_key(pool.pool_key)
        sqrt_price, tick, liquidity = self._read_slot(event.chain_id, key, event.block_number)
        reserve0, reserve1 = reserves_from_liquidity(liquidity, sqrt_price)
        asset_reserve, quote_reserve = split_reserves(reserve0, reserve1, pool.is_token0)

        threshold = pool.graduation_threshold or self.read_graduation_threshold(pool.address)

        return NormalizedSwap(
            pool_address=pool.address,
            asset_address=pool.asset,
            quote_address=pool.quote_token,
            is_token0=pool.is_token0,
            asset_reserve=asset_reserve,
            quote_reserve=quote_reserve,
            raw_price=price_from_sqrt_price_x96(sqrt_price, pool.is_token0),
            fee_tier=pool.fee,
            amount_in=amount_in,
            amount_out=amount_out,
            token_in=token_in,
            token_out=token_out,
            liquidity=liquidity,
            sqrt_price=sqrt_price,
            tick=int(args.get("currentTick", tick)),
            graduation_balance=total_proceeds,
            graduation_threshold=threshold,
            total_tokens_sold=total_sold,
        )
