# Uniswap V2-style constant-product pairs (migration targets)
from math import isqrt

from amm_indexer.config.abis import V2_PAIR_ABI
from amm_indexer.pipeline.adapters.base import (
    NormalizedSwap, PoolAdapter, PoolState, PoolType, order_sides, split_reserves,
)
from amm_indexer.pipeline.events import ChainEvent
from amm_indexer.pipeline.fixed_point import compute_price


V2_FEE = 3000


class V2Adapter(PoolAdapter):
    pool_type = PoolType.V2

    def creation_pool_address(self, event: ChainEvent) -> str:
        return event.args["pool"].lower()

    def _reserves(self, address: str, block_number: int | None) -> tuple[int, int]:
        reserve0, reserve1, _ = self.reader.read_contract(
            address, V2_PAIR_ABI, "getReserves", block_identifier=block_number
        )
        return int(reserve0), int(reserve1)

    def read_pool_state(self, address: str, event: ChainEvent) -> PoolState:
        token0 = self.reader.read_contract(address, V2_PAIR_ABI, "token0")
        token1 = self.reader.read_contract(address, V2_PAIR_ABI, "token1")
        asset = event.args["asset"].lower()
        quote, is_token0 = order_sides(token0, token1, asset)

        reserve0, reserve1 = self._reserves(address, event.block_number)
        asset_reserve, quote_reserve = split_reserves(reserve0, reserve1, is_token0)
        parent = event.args.get("parentPool")

        return PoolState(
            pool_type=self.pool_type,
            asset=asset,
            quote=quote,
            is_token0=is_token0,
            asset_reserve=asset_reserve,
            quote_reserve=quote_reserve,
            price=compute_price(asset_reserve, quote_reserve),
            liquidity=isqrt(reserve0 * reserve1),
            fee=V2_FEE,
            parent_pool=parent.lower() if parent else None,
        )

    def extract_swap(self, event: ChainEvent, pool) -> NormalizedSwap:
        args = event.args
        amount0_in = int(args["amount0In"])
        amount1_in = int(args["amount1In"])
        amount0_out = int(args["amount0Out"])
        amount1_out = int(args["amount1Out"])

        # only one side of each pair is non-zero on a plain swap
        amount_in = amount0_in if amount0_in > 0 else amount1_in
        amount_out = amount0_out if amount0_out > 0 else amount1_out

        token0 = pool.asset if pool.is_token0 else pool.quote_token
        token1 = pool.quote_token if pool.is_token0 else pool.asset
        token_in = token0 if amount0_in > 0 else token1
        token_out = token1 if amount0_in > 0 else token0

        reserve0, reserve1 = self._reserves(pool.address, event.block_number)
        asset_reserve, quote_reserve = split_reserves(reserve0, reserve1, pool.is_token0)

        return NormalizedSwap(
            pool_address=pool.address,
            asset_address=pool.asset,
            quote_address=pool.quote_token,
            is_token0=pool.is_token0,
            asset_reserve=asset_reserve,
            quote_reserve=quote_reserve,
            raw_price=compute_price(asset_reserve, quote_reserve),
            fee_tier=pool.fee,
            amount_in=amount_in,
            amount_out=amount_out,
            token_in=token_in,
            token_out=token_out,
            liquidity=isqrt(reserve0 * reserve1),
        )
