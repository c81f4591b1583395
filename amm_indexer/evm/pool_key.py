import json

from eth_abi import encode
from web3 import Web3

POOL_KEY_TYPES = ["address", "address", "uint24", "int24", "address"]
POOL_KEY_FIELDS = ("currency0", "currency1", "fee", "tickSpacing", "hooks")


def pool_key_from_tuple(values) -> dict:
    currency0, currency1, fee, tick_spacing, hooks = values
    return {
        "currency0": currency0.lower(),
        "currency1": currency1.lower(),
        "fee": int(fee),
        "tickSpacing": int(tick_spacing),
        "hooks": hooks.lower(),
    }


def pool_id(pool_key: dict) -> bytes:
    """V4 PoolId: keccak256(abi.encode(PoolKey))."""
    values = [pool_key[f] for f in POOL_KEY_FIELDS]
    values[0] = Web3.to_checksum_address(values[0])
    values[1] = Web3.to_checksum_address(values[1])
    values[4] = Web3.to_checksum_address(values[4])
    return bytes(Web3.keccak(encode(POOL_KEY_TYPES, values)))


def dump_pool_key(pool_key: dict) -> str:
    return json.dumps(pool_key, sort_keys=True)


def load_pool_key(raw: str) -> dict:
    return json.loads(raw)
