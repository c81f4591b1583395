from sqlalchemy import TIMESTAMP, BigInteger, Column, Integer, String, func

from amm_indexer.storage.base import Base


class ProcessedEvent(Base):
    """Dedup ledger keyed like the chain: one row per applied log."""
    __tablename__ = "processed_event"

    chain_id  = Column(BigInteger, primary_key=True)
    tx_hash   = Column(String(66), primary_key=True)
    log_index = Column(Integer,    primary_key=True)

    event_name   = Column(String(64), nullable=False)
    block_number = Column(BigInteger)
    processed_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
