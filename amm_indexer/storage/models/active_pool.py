from sqlalchemy import BigInteger, Column, String

from amm_indexer.storage.base import Base


class ActivePool(Base):
    __tablename__ = "active_pool"

    chain_id            = Column(BigInteger, primary_key=True)
    pool_address        = Column(String(42), primary_key=True)
    last_swap_timestamp = Column(BigInteger, nullable=False)
