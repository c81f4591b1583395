import logging
from typing import Callable

from sqlalchemy.orm import Session

from amm_indexer.config.abis import ERC20_ABI
from amm_indexer.config.settings import NATIVE_TOKEN, NATIVE_TOKEN_ADDRESS
from amm_indexer.pipeline.adapters.base import PoolState
from amm_indexer.pipeline.exceptions import ImmutableFieldError
from amm_indexer.pipeline.fixed_point import compute_dollar_liquidity, compute_market_cap
from amm_indexer.storage.db_utils import insert_if_absent
from amm_indexer.storage.models.pools import Pool
from amm_indexer.storage.models.token import Token

log = logging.getLogger(__name__)

TOKEN_IMMUTABLE = frozenset({"address", "chain_id", "is_promoted"})


class Registry:
    """Creates and merges Pool / Token rows.

    Creation is fetch-or-insert: a cache hit returns the stored row untouched,
    a miss reads live chain state and inserts with ON CONFLICT DO NOTHING so
    a concurrent creator of the same key wins silently and both callers end
    up with the same row. Updates are partial last-writer-wins merges.
    """

    def __init__(self, session: Session, reader):
        self.session = session
        self.reader = reader

    # ── pools ────────────────────────────────────────────────────────────
    def find_pool(self, address: str, chain_id: int) -> Pool | None:
        return self.session.get(Pool, (address.lower(), chain_id))

    def get_or_create_pool(
        self,
        address: str,
        chain_id: int,
        timestamp: int,
        eth_price: int | None,
        read_state: Callable[[], PoolState],
    ) -> Pool:
        address = address.lower()
        existing = self.find_pool(address, chain_id)
        if existing is not None:
            return existing

        state = read_state()
        total_supply = self._read_total_supply(state.asset)

        dollar_liquidity = 0
        market_cap_usd = 0
        if eth_price:
            dollar_liquidity = compute_dollar_liquidity(
                state.asset_reserve, state.quote_reserve, state.price, eth_price
            )
            market_cap_usd = compute_market_cap(state.price, eth_price, total_supply)

        values = {
            "address": address,
            "chain_id": chain_id,
            "asset": state.asset,
            "base_token": state.asset,
            "quote_token": state.quote,
            "type": state.pool_type.value,
            "is_token0": state.is_token0,
            "fee": state.fee,
            "pool_key": state.pool_key,
            "parent_pool": state.parent_pool,
            "price": state.price,
            "liquidity": state.liquidity,
            "sqrt_price": state.sqrt_price,
            "tick": state.tick,
            "asset_reserve": state.asset_reserve,
            "quote_reserve": state.quote_reserve,
            "dollar_liquidity": dollar_liquidity,
            "market_cap_usd": market_cap_usd,
            "volume_usd": 0,
            "percent_day_change": 0.0,
            "graduation_balance": 0,
            "graduation_threshold": 0,
            "graduation_percentage": 0.0,
            "total_tokens_sold": 0,
            "migrated": False,
            "created_at": timestamp,
            "last_refreshed": timestamp,
        }
        if insert_if_absent(self.session, Pool.__table__, values, ["address", "chain_id"]):
            log.info("Created %s pool %s on chain %s (asset %s)",
                     state.pool_type.value, address, chain_id, state.asset)
        else:
            log.info("Pool %s on chain %s was created concurrently, using stored row", address, chain_id)

        return self.session.get(Pool, (address, chain_id), populate_existing=True)

    def update_pool(self, address: str, chain_id: int, update: dict, event: str | None = None) -> Pool | None:
        frozen = Pool.IMMUTABLE & update.keys()
        if frozen:
            raise ImmutableFieldError(frozen)

        pool = self.find_pool(address, chain_id)
        if pool is None:
            log.warning("Pool %s not found on chain %s in event %s, skipping update",
                        address.lower(), chain_id, event)
            return None

        for field, value in update.items():
            setattr(pool, field, value)
        self.session.flush()
        return pool

    # ── tokens / assets ─────────────────────────────────────────────────
    def find_token(self, address: str, chain_id: int) -> Token | None:
        return self.session.get(Token, (address.lower(), chain_id))

    def get_or_create_token(
        self,
        address: str,
        chain_id: int,
        creator_address: str | None,
        timestamp: int,
    ) -> Token:
        address = address.lower()
        existing = self.find_token(address, chain_id)
        if existing is not None:
            return existing

        values = {
            "address": address,
            "chain_id": chain_id,
            **self._read_metadata(address),
            "creator_address": creator_address.lower() if creator_address else None,
            "liquidity_usd": 0,
            "market_cap_usd": 0,
            "volume_usd": 0,
            "percent_day_change": 0.0,
            "is_promoted": False,
            "first_seen_at": timestamp,
            "last_seen_at": timestamp,
        }
        if not insert_if_absent(self.session, Token.__table__, values, ["address", "chain_id"]):
            log.info("Token %s on chain %s was created concurrently, using stored row", address, chain_id)

        return self.session.get(Token, (address, chain_id), populate_existing=True)

    def update_asset(self, address: str, chain_id: int, update: dict, event: str | None = None) -> Token | None:
        frozen = TOKEN_IMMUTABLE & update.keys()
        if frozen:
            raise ImmutableFieldError(frozen)

        token = self.find_token(address, chain_id)
        if token is None:
            log.warning("Asset %s not found on chain %s in event %s, skipping update",
                        address.lower(), chain_id, event)
            return None

        for field, value in update.items():
            setattr(token, field, value)
        self.session.flush()
        return token

    def refresh_token_supply(self, address: str, chain_id: int) -> int | None:
        token = self.find_token(address, chain_id)
        if token is None:
            log.warning("Token %s not found on chain %s, cannot refresh supply", address.lower(), chain_id)
            return None
        if token.address == NATIVE_TOKEN_ADDRESS:
            return token.total_supply
        token.total_supply = self._read_total_supply(token.address)
        self.session.flush()
        return token.total_supply

    def _read_metadata(self, address: str) -> dict:
        # native ETH has no contract to read, its row is static
        if address == NATIVE_TOKEN_ADDRESS:
            return {**NATIVE_TOKEN, "total_supply": 0}
        return {
            "name": self.reader.read_contract(address, ERC20_ABI, "name"),
            "symbol": self.reader.read_contract(address, ERC20_ABI, "symbol"),
            "decimals": self.reader.read_contract(address, ERC20_ABI, "decimals"),
            "total_supply": self._read_total_supply(address),
        }

    def _read_total_supply(self, address: str) -> int:
        return int(self.reader.read_contract(address, ERC20_ABI, "totalSupply"))
