from dataclasses import dataclass
from enum import Enum

from amm_indexer.pipeline.events import ChainEvent


class PoolType(str, Enum):
    V2 = "v2"
    V3 = "v3"
    V4 = "v4"


class EventKind(str, Enum):
    CREATE = "create"
    SWAP = "swap"


@dataclass(frozen=True)
class PoolState:
    """Version-independent snapshot read from chain when a pool is first seen."""
    pool_type: PoolType
    asset: str
    quote: str
    is_token0: bool
    asset_reserve: int
    quote_reserve: int
    price: int
    liquidity: int = 0
    sqrt_price: int = 0
    tick: int | None = None
    fee: int = 0
    pool_key: str | None = None
    parent_pool: str | None = None


@dataclass(frozen=True)
class NormalizedSwap:
    pool_address: str
    asset_address: str
    quote_address: str
    is_token0: bool
    asset_reserve: int
    quote_reserve: int
    raw_price: int
    fee_tier: int
    amount_in: int
    amount_out: int
    token_in: str
    token_out: str
    liquidity: int = 0
    sqrt_price: int = 0
    tick: int | None = None
    # bonding-curve progress, only reported by versions that track it
    graduation_balance: int | None = None
    graduation_threshold: int | None = None
    total_tokens_sold: int | None = None


def canonical_is_token0(asset: str, quote: str) -> bool:
    """True iff the asset has the numerically smaller address of the pair."""
    return int(asset, 16) < int(quote, 16)


def order_sides(token0: str, token1: str, asset: str) -> tuple[str, bool]:
    """Return (quote, is_token0) for an asset that must be one of the pair's tokens."""
    token0, token1, asset = token0.lower(), token1.lower(), asset.lower()
    if asset == token0:
        quote = token1
    elif asset == token1:
        quote = token0
    else:
        raise ValueError(f"Asset {asset} is neither token0 {token0} nor token1 {token1}")
    return quote, canonical_is_token0(asset, quote)


def split_reserves(reserve0: int, reserve1: int, is_token0: bool) -> tuple[int, int]:
    """(asset_reserve, quote_reserve) from raw token0/token1 reserves."""
    return (reserve0, reserve1) if is_token0 else (reserve1, reserve0)


class PoolAdapter:
    """One per AMM version: reads pool state and normalizes swap events.

    Adapters only talk to the contract reader; they never write rows.
    """

    pool_type: PoolType
    # amounts derived from cumulative totals are only valid against the latest stored row
    cumulative_amounts = False

    def __init__(self, reader):
        self.reader = reader

    def creation_pool_address(self, event: ChainEvent) -> str:
        raise NotImplementedError

    def swap_pool_address(self, event: ChainEvent) -> str:
        return event.log_address.lower()

    def read_pool_state(self, address: str, event: ChainEvent) -> PoolState:
        raise NotImplementedError

    def extract_swap(self, event: ChainEvent, pool) -> NormalizedSwap:
        raise NotImplementedError
