import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from amm_indexer.config.settings import ORACLE_BUCKET_SECONDS, ORACLE_MAX_LOOKBACK_SECONDS
from amm_indexer.pipeline.exceptions import OracleGapError
from amm_indexer.storage.models.eth_price import EthPrice

log = logging.getLogger(__name__)


class OracleResolver:
    """Resolve the reference ETH/USD price for a block timestamp.

    The feed writes one row per 5-minute bucket but may have gaps, so the
    latest bucket at or before the truncated timestamp is used, searching
    back no further than ``max_lookback_seconds``.
    """

    def __init__(
        self,
        session: Session,
        bucket_seconds: int = ORACLE_BUCKET_SECONDS,
        max_lookback_seconds: int = ORACLE_MAX_LOOKBACK_SECONDS,
    ):
        self.session = session
        self.bucket_seconds = bucket_seconds
        self.max_lookback_seconds = max_lookback_seconds
        self._cache: dict[int, int] = {}

    def bucket_for(self, timestamp: int) -> int:
        return timestamp // self.bucket_seconds * self.bucket_seconds

    def resolve_price(self, timestamp: int) -> int:
        """Price of the nearest stored bucket at or before ``timestamp``.

        Raises OracleGapError when nothing exists inside the window.
        """
        rounded = self.bucket_for(timestamp)
        if rounded in self._cache:
            return self._cache[rounded]

        floor_ts = rounded - self.max_lookback_seconds
        # one bounded range scan, equivalent to stepping back bucket by bucket
        row = self.session.execute(
            select(EthPrice.timestamp, EthPrice.price)
            .where(EthPrice.timestamp <= rounded, EthPrice.timestamp >= floor_ts)
            .order_by(EthPrice.timestamp.desc())
            .limit(1)
        ).first()

        if row is None:
            raise OracleGapError(timestamp, self.max_lookback_seconds)

        if row.timestamp != rounded:
            log.debug(
                "ETH price bucket %s missing, using %s (%ss earlier)",
                rounded, row.timestamp, rounded - row.timestamp,
            )
        self._cache[rounded] = row.price
        return row.price

    def try_resolve(self, timestamp: int) -> int | None:
        try:
            return self.resolve_price(timestamp)
        except OracleGapError as exc:
            log.warning("Oracle gap: %s", exc)
            return None
