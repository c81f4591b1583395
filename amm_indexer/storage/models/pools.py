# models/pools.py
from sqlalchemy import BigInteger, Boolean, Column, Float, Index, Integer, String, Text

from amm_indexer.storage.base import Base
from amm_indexer.storage.types import BigUint


class Pool(Base):
    """Canonical pool row, one per (address, chain_id) across V2/V3/V4.

    For V4 the hook address stands in for the pool address.
    """
    __tablename__ = "pool"

    address      = Column(String(42), primary_key=True)      # lower-case 0x…
    chain_id     = Column(BigInteger, primary_key=True)

    # ── identity (immutable after creation) ───────────────────────────
    asset        = Column(String(42), nullable=False)
    base_token   = Column(String(42), nullable=False)
    quote_token  = Column(String(42), nullable=False)
    type         = Column(String(2),  nullable=False)         # v2 / v3 / v4
    is_token0    = Column(Boolean,    nullable=False)
    fee          = Column(Integer,    nullable=False, default=0)
    pool_key     = Column(Text)                               # JSON, v4 only
    parent_pool  = Column(String(42))                         # v2 migrations

    # ── raw AMM state ─────────────────────────────────────────────────
    price         = Column(BigUint, nullable=False, default=0)   # quote per asset, 18 dp
    liquidity     = Column(BigUint, nullable=False, default=0)
    sqrt_price    = Column(BigUint, nullable=False, default=0)
    tick          = Column(Integer)
    asset_reserve = Column(BigUint, nullable=False, default=0)
    quote_reserve = Column(BigUint, nullable=False, default=0)

    # ── derived metrics (USD, 18 dp) ──────────────────────────────────
    dollar_liquidity   = Column(BigUint, nullable=False, default=0)
    market_cap_usd     = Column(BigUint, nullable=False, default=0)
    volume_usd         = Column(BigUint, nullable=False, default=0)   # current UTC day, resets at 00:00 (not rolling 24h)
    percent_day_change = Column(Float,   nullable=False, default=0.0)

    # ── bonding curve ────────────────────────────────────────────────
    graduation_balance    = Column(BigUint, nullable=False, default=0)
    graduation_threshold  = Column(BigUint, nullable=False, default=0)
    graduation_percentage = Column(Float,   nullable=False, default=0.0)
    total_tokens_sold     = Column(BigUint, nullable=False, default=0)
    migrated              = Column(Boolean, nullable=False, default=False)

    created_at          = Column(BigInteger, nullable=False)       # epoch seconds
    last_refreshed      = Column(BigInteger)
    last_swap_timestamp = Column(BigInteger)

    __table_args__ = (
        Index("ix_pool_chain_asset", "chain_id", "asset"),
    )

    IMMUTABLE = frozenset({
        "address", "chain_id", "asset", "base_token", "quote_token", "type", "is_token0",
    })

    def to_dict(self, stringify: bool = False) -> dict:
        out = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        if stringify:
            # uint256 values do not survive JSON number parsing
            out = {k: str(v) if isinstance(self.__table__.c[k].type, BigUint) and v is not None else v
                   for k, v in out.items()}
        return out

    def __repr__(self) -> str:
        return f"<Pool {self.type} {self.chain_id}:{self.address} asset={self.asset}>"
