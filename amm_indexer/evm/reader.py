import logging

import backoff
from web3 import Web3

from amm_indexer.pipeline.exceptions import ContractReadError

logger = logging.getLogger(__name__)


def _normalize(value):
    # checksummed addresses come back from web3; the store keys on lower case
    if isinstance(value, str) and Web3.is_address(value):
        return value.lower()
    if isinstance(value, (list, tuple)):
        return tuple(_normalize(v) for v in value)
    return value


class Web3ContractReader:
    """Synchronous ``read_contract`` over a web3 client.

    Transient RPC failures are retried with exponential backoff; whatever
    still fails is raised as ContractReadError for the caller's retry policy.
    """

    def __init__(self, w3: Web3, max_tries: int = 4):
        self.w3 = w3
        self.max_tries = max_tries
        self._contracts = {}

    def _contract(self, address: str, abi: list):
        key = (address.lower(), id(abi))
        if key not in self._contracts:
            self._contracts[key] = self.w3.eth.contract(
                address=Web3.to_checksum_address(address), abi=abi
            )
        return self._contracts[key]

    def read_contract(self, address: str, abi: list, function_name: str, args=(), block_identifier=None):
        @backoff.on_exception(backoff.expo, Exception, max_tries=self.max_tries, jitter=None)
        def _call():
            fn = getattr(self._contract(address, abi).functions, function_name)(*args)
            if block_identifier is None:
                return fn.call()
            return fn.call(block_identifier=block_identifier)

        try:
            return _normalize(_call())
        except Exception as e:
            logger.error(f"{function_name}() on {address} failed after {self.max_tries} tries: {e}")
            raise ContractReadError(address, function_name, e) from e
