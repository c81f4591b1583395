import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from amm_indexer.pipeline.adapters.base import PoolState, PoolType
from amm_indexer.pipeline.exceptions import ContractReadError, ImmutableFieldError
from amm_indexer.pipeline.registry import Registry
from amm_indexer.storage.models.pools import Pool
from amm_indexer.storage.models.token import Token

from conftest import ASSET_LOW, CHAIN_ID, ETH_3000, NATIVE, POOL_V2, T0, WETH


def make_state(price=10 ** 13):
    return PoolState(
        pool_type=PoolType.V2,
        asset=ASSET_LOW,
        quote=WETH,
        is_token0=True,
        asset_reserve=10 ** 24,
        quote_reserve=10 * 10 ** 18,
        price=price,
        liquidity=10 ** 22,
        fee=3000,
    )


def test_create_pool_computes_initial_metrics(session, reader):
    pool = Registry(session, reader).get_or_create_pool(
        POOL_V2.upper().replace("0X", "0x"), CHAIN_ID, T0, ETH_3000, make_state
    )
    session.commit()

    assert pool.address == POOL_V2
    assert pool.type == "v2"
    assert pool.is_token0 is True
    assert pool.dollar_liquidity == 60_000 * 10 ** 18
    assert pool.market_cap_usd == 30_000_000 * 10 ** 18
    assert pool.volume_usd == 0
    assert pool.graduation_threshold == 0 and pool.graduation_balance == 0
    assert pool.created_at == pool.last_refreshed == T0


def test_create_without_eth_price_leaves_usd_fields_zero(session, reader):
    pool = Registry(session, reader).get_or_create_pool(POOL_V2, CHAIN_ID, T0, None, make_state)
    assert pool.market_cap_usd == 0
    assert pool.dollar_liquidity == 0
    assert pool.price == 10 ** 13


def test_get_or_create_is_a_pure_fetch_on_hit(session, reader):
    registry = Registry(session, reader)
    registry.get_or_create_pool(POOL_V2, CHAIN_ID, T0, ETH_3000, make_state)
    registry.update_pool(POOL_V2, CHAIN_ID, {"price": 42})
    session.commit()

    read_state = MagicMock(return_value=make_state(price=999))
    first = registry.get_or_create_pool(POOL_V2, CHAIN_ID, T0 + 60, ETH_3000, read_state)
    second = registry.get_or_create_pool(POOL_V2, CHAIN_ID, T0 + 120, ETH_3000, read_state)

    read_state.assert_not_called()
    assert first.price == 42
    assert first.to_dict() == second.to_dict()


def test_concurrent_creators_share_one_row(session_factory, reader):
    winner_db = session_factory()
    loser_db = session_factory()
    results = {}

    def loser_reads_state():
        # the other creator commits between our lookup and our insert
        results["winner"] = Registry(winner_db, reader).get_or_create_pool(
            POOL_V2, CHAIN_ID, T0, ETH_3000, make_state
        ).to_dict()
        winner_db.commit()
        return make_state(price=7)

    loser = Registry(loser_db, reader).get_or_create_pool(POOL_V2, CHAIN_ID, T0 + 5, ETH_3000, loser_reads_state)
    loser_db.commit()

    assert loser.to_dict() == results["winner"]
    assert loser.price == 10 ** 13
    with session_factory() as db:
        assert db.scalar(select(func.count()).select_from(Pool)) == 1
    winner_db.close()
    loser_db.close()


def test_update_missing_pool_warns(session, reader, caplog):
    with caplog.at_level(logging.WARNING):
        result = Registry(session, reader).update_pool(POOL_V2, CHAIN_ID, {"price": 1}, event="UniswapV2Pair:Swap")
    assert result is None
    assert "not found" in caplog.text


def test_update_rejects_identity_fields(session, reader):
    registry = Registry(session, reader)
    registry.get_or_create_pool(POOL_V2, CHAIN_ID, T0, ETH_3000, make_state)
    with pytest.raises(ImmutableFieldError) as exc:
        registry.update_pool(POOL_V2, CHAIN_ID, {"asset": WETH, "price": 1})
    assert exc.value.fields == ["asset"]
    with pytest.raises(ValueError):
        registry.update_asset(ASSET_LOW, CHAIN_ID, {"is_promoted": True})


def test_update_is_partial_last_writer_wins(session, reader):
    registry = Registry(session, reader)
    registry.get_or_create_pool(POOL_V2, CHAIN_ID, T0, ETH_3000, make_state)
    registry.update_pool(POOL_V2, CHAIN_ID, {"price": 1, "liquidity": 5})
    registry.update_pool(POOL_V2, CHAIN_ID, {"price": 2})
    session.commit()

    pool = registry.find_pool(POOL_V2, CHAIN_ID)
    assert (pool.price, pool.liquidity) == (2, 5)


def test_token_supply_comes_from_contract_read(session, reader):
    registry = Registry(session, reader)
    token = registry.get_or_create_token(ASSET_LOW, CHAIN_ID, "0xABCDEF0000000000000000000000000000000001", T0)
    assert token.total_supply == 10 ** 27
    assert token.symbol == "LOW"
    assert token.creator_address == "0xabcdef0000000000000000000000000000000001"
    assert token.is_promoted is False

    reader.set(ASSET_LOW, "totalSupply", value=5 * 10 ** 26)
    again = registry.get_or_create_token(ASSET_LOW, CHAIN_ID, None, T0 + 10)
    assert again.total_supply == 10 ** 27          # fetch, not refresh

    assert registry.refresh_token_supply(ASSET_LOW, CHAIN_ID) == 5 * 10 ** 26
    session.commit()
    assert session.get(Token, (ASSET_LOW, CHAIN_ID)).total_supply == 5 * 10 ** 26


def test_update_asset_missing_warns(session, reader, caplog):
    with caplog.at_level(logging.WARNING):
        assert Registry(session, reader).update_asset(ASSET_LOW, CHAIN_ID, {"market_cap_usd": 1}) is None
    assert "Asset" in caplog.text


def test_native_quote_token_is_created_without_contract_reads(session, reader):
    for fn in ("name", "symbol", "decimals", "totalSupply"):
        reader.set(NATIVE, fn, value=ContractReadError(NATIVE, fn))
    registry = Registry(session, reader)

    token = registry.get_or_create_token(NATIVE, CHAIN_ID, None, T0)
    session.commit()

    assert (token.name, token.symbol, token.decimals) == ("Ether", "ETH", 18)
    assert token.total_supply == 0
    assert not [c for c in reader.calls if c[0] == NATIVE]
    assert registry.refresh_token_supply(NATIVE, CHAIN_ID) == 0
    assert not [c for c in reader.calls if c[0] == NATIVE]
