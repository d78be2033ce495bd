"""Shared fixtures for LP tracker tests."""

import pytest

USER = "0x1111111111111111111111111111111111111111"
UNI_V2_ROUTER = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
LP_CONTRACT = "0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc"
BASE_TIME = 1700000000


class FakeOracle:
    """Price oracle returning fixed prices; symbols in ``fail`` raise."""

    def __init__(self, prices: dict[str, float] | None = None, fail: tuple[str, ...] = ()):
        self.prices = {k.upper(): v for k, v in (prices or {}).items()}
        self.fail = {s.upper() for s in fail}
        self.calls: list[str] = []

    def get_price(self, symbol: str) -> float:
        self.calls.append(symbol)
        if symbol.upper() in self.fail:
            raise RuntimeError(f"price feed down for {symbol}")
        return self.prices.get(symbol.upper(), 0.0)


def _make_transfer(**overrides) -> dict:
    transfer = {
        "hash": "0xtransfer",
        "from": "0x0000000000000000000000000000000000000000",
        "to": USER,
        "contractAddress": LP_CONTRACT,
        "tokenSymbol": "UNI-V2",
        "tokenName": "Uniswap V2",
        "value": str(10 * 10 ** 18),
        "tokenDecimal": "18",
        "timeStamp": str(BASE_TIME),
    }
    transfer.update(overrides)
    return transfer


def _make_tx(**overrides) -> dict:
    tx = {
        "hash": "0xaction",
        "from": USER,
        "to": UNI_V2_ROUTER,
        "value": str(10 ** 18),
        "input": "0xf305d719" + "00" * 32,   # addLiquidityETH
        "timeStamp": str(BASE_TIME + 10),
        "gasUsed": "150000",
        "gasPrice": "30000000000",
    }
    tx.update(overrides)
    return tx


@pytest.fixture
def user():
    return USER


@pytest.fixture
def router():
    return UNI_V2_ROUTER


@pytest.fixture
def lp_contract():
    return LP_CONTRACT


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def make_transfer():
    return _make_transfer


@pytest.fixture
def make_tx():
    return _make_tx


@pytest.fixture
def oracle():
    return FakeOracle({"TOKEN0": 2000.0, "TOKEN1": 1.0, "ETH": 3000.0, "MATIC": 0.5})


@pytest.fixture
def oracle_factory():
    return FakeOracle
