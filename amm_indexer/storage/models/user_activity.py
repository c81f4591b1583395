from sqlalchemy import BigInteger, Column, Integer, String

from amm_indexer.storage.base import Base
from amm_indexer.storage.types import BigUint


class UserActivity(Base):
    """One buy or sell by a trader, keyed by the swap log that produced it."""
    __tablename__ = "user_activity"

    chain_id  = Column(BigInteger, primary_key=True)
    tx_hash   = Column(String(66), primary_key=True)
    log_index = Column(Integer,    primary_key=True)

    user_address  = Column(String(42), nullable=False, index=True)
    type          = Column(String(4),  nullable=False)         # "buy" | "sell"
    timestamp     = Column(BigInteger, nullable=False)
    usd_value     = Column(BigUint,    nullable=False, default=0)   # 18 dp, 0 when no ETH price
    amount_in     = Column(BigUint,    nullable=False)
    amount_out    = Column(BigUint,    nullable=False)
    token_address = Column(String(42), nullable=False)
    token_symbol  = Column(String(64))                         # NULL when unreadable
    token_amount  = Column(BigUint,    nullable=False)
    pool_address  = Column(String(42), nullable=False)
    asset_address = Column(String(42), nullable=False)
