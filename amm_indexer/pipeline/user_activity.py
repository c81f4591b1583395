import logging

from sqlalchemy.orm import Session

from amm_indexer.config.abis import ERC20_ABI
from amm_indexer.pipeline.adapters.base import NormalizedSwap
from amm_indexer.pipeline.events import ChainEvent
from amm_indexer.pipeline.exceptions import ContractReadError
from amm_indexer.pipeline.fixed_point import usd_value
from amm_indexer.pipeline.registry import Registry
from amm_indexer.storage.db_utils import insert_if_absent
from amm_indexer.storage.models.user_activity import UserActivity

log = logging.getLogger(__name__)

# swap args naming the trader, most specific first
TRADER_ARGS = ("recipient", "to", "sender")


def swap_trader(event: ChainEvent) -> str | None:
    trader = event.tx_from or next((event.args[k] for k in TRADER_ARGS if event.args.get(k)), None)
    return trader.lower() if trader else None


class UserActivityRecorder:
    """Writes one buy/sell row per swap log for the trader's history feed."""

    def __init__(self, session: Session, registry: Registry):
        self.session = session
        self.registry = registry

    def record_swap(self, event: ChainEvent, swap: NormalizedSwap, eth_price: int | None) -> bool:
        user = swap_trader(event)
        if user is None:
            log.debug("Swap %s:%s carries no trader address, no activity recorded",
                      event.tx_hash, event.log_index)
            return False

        asset = swap.asset_address.lower()
        is_buy = swap.token_out.lower() == asset
        quote_amount = swap.amount_in if is_buy else swap.amount_out
        values = {
            "chain_id": event.chain_id,
            "tx_hash": event.tx_hash.lower(),
            "log_index": event.log_index,
            "user_address": user,
            "type": "buy" if is_buy else "sell",
            "timestamp": event.block_timestamp,
            "usd_value": usd_value(quote_amount, eth_price) if eth_price else 0,
            "amount_in": swap.amount_in,
            "amount_out": swap.amount_out,
            "token_address": asset,
            "token_symbol": self._token_symbol(asset, event.chain_id),
            "token_amount": swap.amount_out if is_buy else swap.amount_in,
            "pool_address": swap.pool_address.lower(),
            "asset_address": asset,
        }
        return insert_if_absent(self.session, UserActivity.__table__, values, ["chain_id", "tx_hash", "log_index"])

    def _token_symbol(self, address: str, chain_id: int) -> str | None:
        token = self.registry.find_token(address, chain_id)
        if token is not None:
            return token.symbol
        try:
            return self.registry.reader.read_contract(address, ERC20_ABI, "symbol")
        except ContractReadError as e:
            log.warning("Could not read symbol of %s on chain %s: %s", address, chain_id, e)
            return None
