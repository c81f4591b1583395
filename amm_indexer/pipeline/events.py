from dataclasses import dataclass, field
from typing import Any

from amm_indexer.utils.sanitize import sanitize_log


@dataclass(frozen=True)
class ChainEvent:
    """One decoded contract event as delivered by the ingestion engine."""
    name: str
    chain_id: int
    block_timestamp: int
    log_address: str
    tx_hash: str
    log_index: int
    args: dict[str, Any] = field(default_factory=dict)
    block_number: int | None = None
    tx_from: str | None = None             # transaction sender, when the source provides it

    @property
    def key(self) -> tuple[int, str, int]:
        return self.chain_id, self.tx_hash, self.log_index

    @classmethod
    def from_log(cls, name: str, chain_id: int, log, block_timestamp: int) -> "ChainEvent":
        """Build from a web3 decoded event log (``contract.events.X().process_log``)."""
        raw = sanitize_log(log)
        tx_hash = raw["transactionHash"]
        return cls(
            name=name,
            chain_id=chain_id,
            block_timestamp=int(block_timestamp),
            log_address=raw["address"].lower(),
            tx_hash=tx_hash if tx_hash.startswith("0x") else "0x" + tx_hash,
            log_index=int(raw["logIndex"]),
            args=dict(raw.get("args", {})),
            block_number=raw.get("blockNumber"),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ChainEvent":
        """Accepts snake_case or the camelCase keys of JSON event dumps."""
        def pick(snake, camel, default=None):
            return data.get(snake, data.get(camel, default))

        block_number = pick("block_number", "blockNumber")
        return cls(
            name=data["name"],
            chain_id=int(pick("chain_id", "chainId")),
            block_timestamp=int(pick("block_timestamp", "blockTimestamp")),
            log_address=pick("log_address", "logAddress").lower(),
            tx_hash=pick("tx_hash", "txHash"),
            log_index=int(pick("log_index", "logIndex")),
            args=dict(data.get("args") or {}),
            block_number=int(block_number) if block_number is not None else None,
            tx_from=pick("tx_from", "txFrom"),
        )
