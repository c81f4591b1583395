from sqlalchemy import BigInteger, Boolean, Column, Float, Index, Integer, String

from amm_indexer.storage.base import Base
from amm_indexer.storage.types import BigUint


class Token(Base):
    """One row per token contract per chain.

    Traded assets additionally carry the pool-derived metrics
    (liquidity_usd, market_cap_usd, percent_day_change).
    ``is_promoted`` is only ever written by the admin facade.
    """
    __tablename__ = "token"

    address  = Column(String(42), primary_key=True)
    chain_id = Column(BigInteger, primary_key=True)

    name            = Column(String(128), nullable=False, default="")
    symbol          = Column(String(64),  nullable=False, default="")
    decimals        = Column(Integer,     nullable=False, default=18)
    total_supply    = Column(BigUint,     nullable=False, default=0)
    creator_address = Column(String(42))
    pool            = Column(String(42))

    liquidity_usd      = Column(BigUint, nullable=False, default=0)
    market_cap_usd     = Column(BigUint, nullable=False, default=0)
    volume_usd         = Column(BigUint, nullable=False, default=0)   # current UTC day of its pool
    percent_day_change = Column(Float,   nullable=False, default=0.0)

    is_promoted   = Column(Boolean,    nullable=False, default=False)
    first_seen_at = Column(BigInteger, nullable=False)
    last_seen_at  = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index("ix_token_chain_symbol", "chain_id", "symbol"),
    )

    def to_dict(self, stringify: bool = False) -> dict:
        out = {c.name: getattr(self, c.name) for c in self.__table__.columns}
        if stringify:
            # uint256 values do not survive JSON number parsing
            out = {k: str(v) if isinstance(self.__table__.c[k].type, BigUint) and v is not None else v
                   for k, v in out.items()}
        return out

    def __repr__(self) -> str:
        return f"<Token {self.chain_id}:{self.address} {self.symbol}>"
