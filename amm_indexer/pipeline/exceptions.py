class IndexerError(Exception):
    """Base class for pipeline errors."""


class OracleGapError(IndexerError):
    """No reference price exists within the bounded lookback window."""

    def __init__(self, timestamp: int, lookback_seconds: int):
        self.timestamp = timestamp
        self.lookback_seconds = lookback_seconds
        super().__init__(
            f"No ETH price at or before {timestamp} within {lookback_seconds}s"
        )


class ContractReadError(IndexerError):
    """A direct contract read failed (RPC or ABI decoding) after retries."""

    def __init__(self, address: str, function_name: str, cause: Exception | None = None):
        self.address = address
        self.function_name = function_name
        self.cause = cause
        super().__init__(f"{function_name}() on {address} failed: {cause}")


class UnknownEventError(IndexerError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No handler registered for event '{name}'")


class ImmutableFieldError(IndexerError, ValueError):
    def __init__(self, fields):
        self.fields = sorted(fields)
        super().__init__(f"Fields are immutable after creation: {', '.join(self.fields)}")
