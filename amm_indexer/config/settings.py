import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///amm_indexer.db")

# ── Oracle (reference ETH/USD feed, 8 decimals) ────────────────────────
ORACLE_BUCKET_SECONDS       = 300
ORACLE_MAX_LOOKBACK_SECONDS = int(os.getenv("ORACLE_MAX_LOOKBACK_SECONDS", 86_400))

# ── Pool time series ───────────────────────────────────────────────────
PRICE_BUCKET_SECONDS          = int(os.getenv("PRICE_BUCKET_SECONDS", 3_600))
DAY_SECONDS                   = 86_400
PRICE_CHANGE_LOOKBACK_SECONDS = 86_400

# ── Active pool sweep ──────────────────────────────────────────────────
REFRESH_STALE_SECONDS      = int(os.getenv("REFRESH_STALE_SECONDS", 300))
ACTIVE_POOL_WINDOW_SECONDS = int(os.getenv("ACTIVE_POOL_WINDOW_SECONDS", 86_400))
REFRESH_CHAIN_IDS = [
    int(c) for c in os.getenv("REFRESH_CHAIN_IDS", "1,8453").split(",") if c.strip()
]

# Uniswap V4 StateView lens, one per chain
STATE_VIEW_ADDRESSES = {
    1:     "0x7ffe42c4a5deea5b0fec41c94c136cf115597227",
    8453:  "0xa3c0c9b65bad0b08107aa264b0f3db444b867a71",
}

# Numeraire address used by V4 pools quoted in native ETH (no ERC20 contract)
NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"
NATIVE_TOKEN = {"name": "Ether", "symbol": "ETH", "decimals": 18}

ADMIN_SECRET = os.getenv("ADMIN_SECRET")

CELERY_BROKER_URL     = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/0")
REDIS_URL             = os.getenv("REDIS_URL", "redis://redis:6379/0")


def rpc_url_for(chain_id: int) -> str:
    """RPC endpoint for a chain, read from ``RPC_URL_<chain_id>``."""
    url = os.getenv(f"RPC_URL_{chain_id}")
    if not url:
        raise KeyError(f"RPC_URL_{chain_id} is not set")
    return url
