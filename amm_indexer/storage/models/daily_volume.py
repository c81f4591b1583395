from sqlalchemy import BigInteger, Column, Integer, String

from amm_indexer.storage.base import Base
from amm_indexer.storage.types import BigUint


class DailyVolume(Base):
    """USD flow through a pool for one UTC day; only ever incremented."""
    __tablename__ = "daily_volume"

    pool_address  = Column(String(42), primary_key=True)
    chain_id      = Column(BigInteger, primary_key=True)
    day_timestamp = Column(BigInteger, primary_key=True)

    volume_usd     = Column(BigUint, nullable=False, default=0)
    amount_in_usd  = Column(BigUint, nullable=False, default=0)
    amount_out_usd = Column(BigUint, nullable=False, default=0)
    swap_count     = Column(Integer, nullable=False, default=0)
    market_cap_usd = Column(BigUint)                          # latest seen in the day
    last_updated   = Column(BigInteger, nullable=False)
