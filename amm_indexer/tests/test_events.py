from hexbytes import HexBytes
from web3.datastructures import AttributeDict

from amm_indexer.pipeline.events import ChainEvent

from conftest import ASSET_LOW, POOL_V2


def test_from_dict_accepts_camel_case():
    event = ChainEvent.from_dict({
        "name": "UniswapV2Pair:Swap",
        "chainId": "8453",
        "blockNumber": 123,
        "blockTimestamp": 1_700_000_000,
        "logAddress": POOL_V2.upper().replace("0X", "0x"),
        "txHash": "0xabc",
        "logIndex": 4,
        "args": {"amount0In": 1},
    })
    assert event.chain_id == 8453
    assert event.log_address == POOL_V2
    assert event.key == (8453, "0xabc", 4)
    assert event.block_number == 123


def test_from_log_sanitizes_web3_types():
    log = AttributeDict({
        "address": "0x2222222222222222222222222222222222222222",
        "transactionHash": HexBytes("0x" + "ab" * 32),
        "logIndex": 7,
        "blockNumber": 99,
        "args": AttributeDict({"asset": ASSET_LOW, "pool": POOL_V2}),
    })
    event = ChainEvent.from_log("UniswapV2Migrator:Migrate", 8453, log, 1_700_000_000)
    assert event.tx_hash == "0x" + "ab" * 32
    assert event.args == {"asset": ASSET_LOW, "pool": POOL_V2}
    assert event.block_number == 99
