import json
from math import isqrt
from types import SimpleNamespace

import pytest

from amm_indexer.evm.pool_key import dump_pool_key, pool_id
from amm_indexer.pipeline.adapters.base import PoolType, canonical_is_token0, order_sides
from amm_indexer.pipeline.adapters.v2 import V2Adapter
from amm_indexer.pipeline.adapters.v3 import V3Adapter
from amm_indexer.pipeline.adapters.v4 import V4Adapter
from amm_indexer.pipeline.events import ChainEvent
from amm_indexer.pipeline.exceptions import IndexerError
from amm_indexer.pipeline.fixed_point import Q96

from conftest import (
    ASSET_HIGH, ASSET_LOW, CHAIN_ID, HOOK_V4, NATIVE, POOL_V2, POOL_V3, STATE_VIEW, T0, WETH,
)


def event(name, address, args, block_number=100):
    return ChainEvent(
        name=name, chain_id=CHAIN_ID, block_timestamp=T0, log_address=address,
        tx_hash="0xabc", log_index=0, args=args, block_number=block_number,
    )


def stored_pool(address, asset, quote, fee=3000, **extra):
    return SimpleNamespace(
        address=address, asset=asset, quote_token=quote,
        is_token0=canonical_is_token0(asset, quote), fee=fee, **extra,
    )


def test_canonical_is_token0():
    assert canonical_is_token0(ASSET_LOW, WETH) is True
    assert canonical_is_token0(ASSET_HIGH, WETH) is False
    assert order_sides(WETH, ASSET_HIGH.upper().replace("0X", "0x"), ASSET_HIGH) == (WETH, False)
    with pytest.raises(ValueError):
        order_sides(WETH, ASSET_LOW, ASSET_HIGH)


# ── V2 ──────────────────────────────────────────────────────────────────
SWAP_0_IN = {"amount0In": 1000, "amount1In": 0, "amount0Out": 0, "amount1Out": 7}


@pytest.mark.parametrize("asset, token_in, token_out", [
    (ASSET_LOW, ASSET_LOW, WETH),      # asset is token0: token0 in means asset sold
    (ASSET_HIGH, WETH, ASSET_HIGH),    # asset is token1: token0 in means quote paid
])
def test_v2_swap_attributes_token0_side(reader, asset, token_in, token_out):
    reader.set(POOL_V2, "getReserves", value=(5000, 6000, 0))
    swap = V2Adapter(reader).extract_swap(event("UniswapV2Pair:Swap", POOL_V2, SWAP_0_IN), stored_pool(POOL_V2, asset, WETH))

    assert (swap.token_in, swap.token_out) == (token_in, token_out)
    assert (swap.amount_in, swap.amount_out) == (1000, 7)


def test_v2_swap_token1_in(reader):
    reader.set(POOL_V2, "getReserves", value=(5000, 6000, 0))
    args = {"amount0In": 0, "amount1In": 40, "amount0Out": 30, "amount1Out": 0}
    swap = V2Adapter(reader).extract_swap(event("UniswapV2Pair:Swap", POOL_V2, args), stored_pool(POOL_V2, ASSET_LOW, WETH))
    assert (swap.token_in, swap.amount_in, swap.token_out, swap.amount_out) == (WETH, 40, ASSET_LOW, 30)


def test_v2_reserves_follow_asset_side(reader):
    reader.set(POOL_V2, "getReserves", value=(5000, 6000, 0))
    swap = V2Adapter(reader).extract_swap(
        event("UniswapV2Pair:Swap", POOL_V2, SWAP_0_IN), stored_pool(POOL_V2, ASSET_HIGH, WETH)
    )
    assert (swap.asset_reserve, swap.quote_reserve) == (6000, 5000)
    assert swap.raw_price == 5000 * 10 ** 18 // 6000
    # reserves read at the event's block
    assert reader.calls[-1][3] == 100


def test_v2_read_pool_state(reader):
    reader.set(POOL_V2, "token0", value=ASSET_LOW)
    reader.set(POOL_V2, "token1", value=WETH)
    reader.set(POOL_V2, "getReserves", value=(10 ** 24, 10 ** 19, 0))
    parent = "0x9999999999999999999999999999999999999999"
    state = V2Adapter(reader).read_pool_state(
        POOL_V2, event("UniswapV2Migrator:Migrate", "0x01", {"asset": ASSET_LOW, "pool": POOL_V2, "parentPool": parent})
    )
    assert state.pool_type is PoolType.V2
    assert (state.asset, state.quote, state.is_token0) == (ASSET_LOW, WETH, True)
    assert state.price == 10 ** 13
    assert state.liquidity == isqrt(10 ** 43)
    assert state.parent_pool == parent


# ── V3 ──────────────────────────────────────────────────────────────────
def test_v3_swap_uses_signed_deltas_and_balances(reader):
    reader.set(POOL_V3, "slot0", value=(2 * Q96, 13863, 0, 1, 1, 0, True))
    reader.set(ASSET_LOW, "balanceOf", (POOL_V3,), value=4000)
    reader.set(WETH, "balanceOf", (POOL_V3,), value=16000)
    args = {"amount0": -500, "amount1": 1000, "sqrtPriceX96": 2 * Q96, "liquidity": 777, "tick": 13863}

    swap = V3Adapter(reader).extract_swap(event("UniswapV3Pool:Swap", POOL_V3, args), stored_pool(POOL_V3, ASSET_LOW, WETH, fee=10000))

    assert (swap.token_in, swap.amount_in) == (WETH, 1000)
    assert (swap.token_out, swap.amount_out) == (ASSET_LOW, 500)
    assert (swap.asset_reserve, swap.quote_reserve) == (4000, 16000)
    assert swap.raw_price == 4 * 10 ** 18
    assert swap.liquidity == 777
    assert swap.fee_tier == 10000


def test_v3_read_pool_state_inverts_price_for_token1_asset(reader):
    reader.set(POOL_V3, "token0", value=WETH)
    reader.set(POOL_V3, "token1", value=ASSET_HIGH)
    reader.set(POOL_V3, "fee", value=10000)
    reader.set(POOL_V3, "liquidity", value=10 ** 20)
    reader.set(POOL_V3, "slot0", value=(2 * Q96, 13863, 0, 1, 1, 0, True))
    reader.set(ASSET_HIGH, "balanceOf", (POOL_V3,), value=8)
    reader.set(WETH, "balanceOf", (POOL_V3,), value=2)

    state = V3Adapter(reader).read_pool_state(
        POOL_V3, event("UniswapV3Initializer:Create", "0x01", {"poolOrHook": POOL_V3, "asset": ASSET_HIGH, "numeraire": WETH})
    )
    assert state.is_token0 is False
    assert state.price == 10 ** 18 // 4
    assert (state.asset_reserve, state.quote_reserve) == (8, 2)
    assert state.tick == 13863


# ── V4 ──────────────────────────────────────────────────────────────────
POOL_KEY = {"currency0": NATIVE, "currency1": ASSET_LOW, "fee": 0, "tickSpacing": 8, "hooks": HOOK_V4}


def test_pool_id_is_bytes32_and_deterministic():
    pid = pool_id(POOL_KEY)
    assert isinstance(pid, bytes) and len(pid) == 32
    assert pid == pool_id(json.loads(dump_pool_key(POOL_KEY)))
    assert pid != pool_id({**POOL_KEY, "fee": 3000})


def v4_reader(reader):
    reader.set(HOOK_V4, "poolKey", value=(NATIVE, ASSET_LOW, 0, 8, HOOK_V4))
    reader.set(HOOK_V4, "maximumProceeds", value=10 * 10 ** 18)
    reader.set(STATE_VIEW, "getSlot0", value=(Q96, 0, 0, 0))
    reader.set(STATE_VIEW, "getLiquidity", value=10 ** 18)
    return reader


def test_v4_read_pool_state(reader):
    adapter = V4Adapter(v4_reader(reader), {CHAIN_ID: STATE_VIEW})
    state = adapter.read_pool_state(
        HOOK_V4, event("UniswapV4Initializer:Create", "0x01", {"poolOrHook": HOOK_V4, "asset": ASSET_LOW, "numeraire": NATIVE})
    )
    assert (state.asset, state.quote, state.is_token0) == (ASSET_LOW, NATIVE, False)
    assert (state.asset_reserve, state.quote_reserve) == (10 ** 18, 10 ** 18)
    assert state.price == 10 ** 18
    assert json.loads(state.pool_key)["hooks"] == HOOK_V4
    _, fn, args, _ = next(c for c in reader.calls if c[1] == "getSlot0")
    assert args == (pool_id(POOL_KEY),)


def test_v4_swap_amounts_are_cumulative_deltas(reader):
    adapter = V4Adapter(v4_reader(reader), {CHAIN_ID: STATE_VIEW})
    pool = stored_pool(
        HOOK_V4, ASSET_LOW, NATIVE, fee=0, pool_key=dump_pool_key(POOL_KEY),
        graduation_balance=10 ** 18, graduation_threshold=0, total_tokens_sold=1000 * 10 ** 18,
    )
    args = {"currentTick": -5, "totalProceeds": 3 * 10 ** 18, "totalTokensSold": 1500 * 10 ** 18}
    swap = adapter.extract_swap(event("DopplerHook:Swap", HOOK_V4, args), pool)

    assert (swap.token_in, swap.amount_in) == (NATIVE, 2 * 10 ** 18)
    assert (swap.token_out, swap.amount_out) == (ASSET_LOW, 500 * 10 ** 18)
    assert swap.graduation_balance == 3 * 10 ** 18
    assert swap.graduation_threshold == 10 * 10 ** 18
    assert swap.tick == -5


def test_v4_sell_reduces_totals(reader):
    adapter = V4Adapter(v4_reader(reader), {CHAIN_ID: STATE_VIEW})
    pool = stored_pool(
        HOOK_V4, ASSET_LOW, NATIVE, fee=0, pool_key=dump_pool_key(POOL_KEY),
        graduation_balance=3 * 10 ** 18, graduation_threshold=10 * 10 ** 18, total_tokens_sold=1500 * 10 ** 18,
    )
    args = {"currentTick": 0, "totalProceeds": 2 * 10 ** 18, "totalTokensSold": 1200 * 10 ** 18}
    swap = adapter.extract_swap(event("DopplerHook:Swap", HOOK_V4, args), pool)

    assert (swap.token_in, swap.amount_in) == (ASSET_LOW, 300 * 10 ** 18)
    assert (swap.token_out, swap.amount_out) == (NATIVE, 10 ** 18)
    assert reader.count("maximumProceeds") == 0


def test_v4_unknown_chain(reader):
    adapter = V4Adapter(v4_reader(reader), {1: STATE_VIEW})
    with pytest.raises(IndexerError):
        adapter.read_pool_state(
            HOOK_V4, event("UniswapV4Initializer:Create", "0x01", {"poolOrHook": HOOK_V4, "asset": ASSET_LOW})
        )
