from sqlalchemy import BigInteger, Column, String

from amm_indexer.storage.base import Base
from amm_indexer.storage.types import BigUint


class PriceBucket(Base):
    """Closing price of a pool for one bucket interval."""
    __tablename__ = "price_bucket"

    pool_address     = Column(String(42), primary_key=True)
    chain_id         = Column(BigInteger, primary_key=True)
    bucket_timestamp = Column(BigInteger, primary_key=True)   # floor(ts / interval) * interval

    price          = Column(BigUint, nullable=False)           # quote per asset, 18 dp
    eth_price      = Column(BigUint, nullable=False)           # 8 dp
    price_usd      = Column(BigUint, nullable=False)           # 18 dp
    market_cap_usd = Column(BigUint)                           # 18 dp, NULL when unknown
    updated_at     = Column(BigInteger, nullable=False)        # timestamp of the closing swap
