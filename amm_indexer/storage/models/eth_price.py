from sqlalchemy import BigInteger, Column

from amm_indexer.storage.base import Base
from amm_indexer.storage.types import BigUint


class EthPrice(Base):
    """Reference ETH/USD price per 5-minute bucket (8 decimals).

    Written by the oracle ingestion job, read-only here.
    """
    __tablename__ = "eth_price"

    timestamp = Column(BigInteger, primary_key=True)
    price     = Column(BigUint,    nullable=False)
