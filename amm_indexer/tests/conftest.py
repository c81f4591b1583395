from dotenv import load_dotenv
import pathlib
import pytest

# Automatically load .env from project root
load_dotenv(dotenv_path=pathlib.Path(__file__).parent.parent.parent / ".env")

from amm_indexer.storage.db import init_db, make_engine, make_session_factory
from amm_indexer.storage.models.eth_price import EthPrice

WETH = "0x4200000000000000000000000000000000000006"
NATIVE = "0x0000000000000000000000000000000000000000"
ASSET_LOW = "0x0000000000000000000000000000000000000a55"    # sorts before WETH
ASSET_HIGH = "0xfff0000000000000000000000000000000000a55"   # sorts after WETH
POOL_V2 = "0x2222222222222222222222222222222222222222"
POOL_V3 = "0x3333333333333333333333333333333333333333"
HOOK_V4 = "0x4444444444444444444444444444444444444444"
STATE_VIEW = "0x5555555555555555555555555555555555555555"

CHAIN_ID = 8453
T0 = 1_699_999_800            # multiple of 300
ETH_3000 = 3000 * 10 ** 8


class FakeReader:
    """Dict-backed ``read_contract``.

    Keys are ``(address, function)`` or ``(address, function, args)``;
    an Exception value is raised instead of returned.
    """

    def __init__(self, values=None):
        self.values = {}
        self.calls = []
        for key, value in (values or {}).items():
            self.set(*key, value=value)

    def set(self, address, function_name, args=None, *, value):
        key = (address.lower(), function_name) if args is None else (address.lower(), function_name, tuple(args))
        self.values[key] = value

    def read_contract(self, address, abi, function_name, args=(), block_identifier=None):
        self.calls.append((address.lower(), function_name, tuple(args), block_identifier))
        key = (address.lower(), function_name, tuple(args))
        if key not in self.values:
            key = (address.lower(), function_name)
        value = self.values[key]
        if isinstance(value, Exception):
            raise value
        return value

    def count(self, function_name):
        return sum(1 for c in self.calls if c[1] == function_name)


def erc20(reader, address, symbol, total_supply, name=None):
    reader.set(address, "name", value=name or symbol)
    reader.set(address, "symbol", value=symbol)
    reader.set(address, "decimals", value=18)
    reader.set(address, "totalSupply", value=total_supply)


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def reader():
    r = FakeReader()
    erc20(r, WETH, "WETH", 10 ** 24, name="Wrapped Ether")
    erc20(r, ASSET_LOW, "LOW", 10 ** 27)
    erc20(r, ASSET_HIGH, "HIGH", 10 ** 27)
    return r


@pytest.fixture
def seed_eth_price(session_factory):
    def _seed(timestamp, price=ETH_3000):
        with session_factory() as db, db.begin():
            db.merge(EthPrice(timestamp=timestamp, price=price))
    return _seed
