import logging

from amm_indexer.config.abis import ERC20_ABI, V3_POOL_ABI
from amm_indexer.pipeline.adapters.base import (
    NormalizedSwap, PoolAdapter, PoolState, PoolType, order_sides, split_reserves,
)
from amm_indexer.pipeline.events import ChainEvent
from amm_indexer.pipeline.fixed_point import price_from_sqrt_price_x96

log = logging.getLogger(__name__)


class V3Adapter(PoolAdapter):
    """Single-pool concentrated liquidity.

    Reserves come from token balances held by the pool, not from swap
    deltas, so several swaps in one block cannot drift them.
    """

    pool_type = PoolType.V3

    def creation_pool_address(self, event: ChainEvent) -> str:
        return event.args["poolOrHook"].lower()

    def _slot0(self, address: str, block_number: int | None) -> tuple[int, int]:
        slot0 = self.reader.read_contract(address, V3_POOL_ABI, "slot0", block_identifier=block_number)
        return int(slot0[0]), int(slot0[1])

    def _balances(self, address: str, asset: str, quote: str, block_number: int | None) -> tuple[int, int]:
        asset_balance = self.reader.read_contract(
            asset, ERC20_ABI, "balanceOf", args=(address,), block_identifier=block_number
        )
        quote_balance = self.reader.read_contract(
            quote, ERC20_ABI, "balanceOf", args=(address,), block_identifier=block_number
        )
        return int(asset_balance), int(quote_balance)

    def read_pool_state(self, address: str, event: ChainEvent) -> PoolState:
        token0 = self.reader.read_contract(address, V3_POOL_ABI, "token0")
        token1 = self.reader.read_contract(address, V3_POOL_ABI, "token1")
        fee = int(self.reader.read_contract(address, V3_POOL_ABI, "fee"))
        asset = event.args["asset"].lower()
        quote, is_token0 = order_sides(token0, token1, asset)
        numeraire = event.args.get("numeraire")
        if numeraire and numeraire.lower() != quote:
            log.warning("Pool %s numeraire %s does not match pair token %s", address, numeraire, quote)

        sqrt_price, tick = self._slot0(address, event.block_number)
        liquidity = int(self.reader.read_contract(
            address, V3_POOL_ABI, "liquidity", block_identifier=event.block_number
        ))
        asset_reserve, quote_reserve = self._balances(address, asset, quote, event.block_number)

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
            fee=fee,
        )

    def extract_swap(self, event: ChainEvent, pool) -> NormalizedSwap:
        args = event.args
        # signed deltas, pool perspective: positive = paid into the pool
        amount0 = int(args["amount0"])
        amount1 = int(args["amount1"])

        token0 = pool.asset if pool.is_token0 else pool.quote_token
        token1 = pool.quote_token if pool.is_token0 else pool.asset
        if amount0 > 0:
            token_in, token_out = token0, token1
            amount_in, amount_out = amount0, -amount1
        else:
            token_in, token_out = token1, token0
            amount_in, amount_out = amount1, -amount0

        sqrt_price, tick = self._slot0(pool.address, event.block_number)
        asset_reserve, quote_reserve = self._balances(
            pool.address, pool.asset, pool.quote_token, event.block_number
        )

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
            amount_out=max(amount_out, 0),
            token_in=token_in,
            token_out=token_out,
            liquidity=int(args.get("liquidity", 0)),
            sqrt_price=sqrt_price,
            tick=tick,
        )
