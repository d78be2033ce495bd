"""Tests for portfolio aggregation."""

from dataclasses import replace

import pytest

from lp_tracker import protocols
from lp_tracker.models import ImpermanentLoss, LPTokenSummary, Position, PositionStatus, TokenPair
from lp_tracker.portfolio import aggregate, breakdown_by_chain, breakdown_by_protocol


def _position(name, status=PositionStatus.ACTIVE, value=0.0, initial=0.0, pnl_percent=0.0,
              fees=0.0, il=0.0, chain="Ethereum", protocol="uniswapV2"):
    return Position(
        id=f"{chain}_{name}",
        contract_address=name,
        lp_token=LPTokenSummary(symbol=name, name=name, balance=1.0, decimals=18),
        token_pair=TokenPair(token0="A", token1="B", display_name=name),
        chain=chain,
        protocol=protocols.lookup(protocol),
        status=status,
        initial_value=initial,
        current_value=value,
        pnl=value + fees - initial,
        pnl_percent=pnl_percent,
        fees_earned=fees,
        impermanent_loss=ImpermanentLoss(value=il),
    )


def test_empty_portfolio():
    metrics = aggregate([])
    assert metrics.total_value == 0.0
    assert metrics.total_pnl_percent == 0.0
    assert metrics.active_positions == 0
    assert metrics.best_performer is None
    assert metrics.worst_performer is None


def test_totals_and_performers():
    a = _position("a", value=1200.0, initial=1000.0, pnl_percent=20.0, fees=10.0, il=-5.0)
    b = _position("b", status=PositionStatus.CLOSED, value=0.0, initial=500.0, pnl_percent=-100.0, il=-1.0)
    c = _position("c", status=PositionStatus.PARTIAL, value=300.0, initial=250.0, pnl_percent=20.0)

    metrics = aggregate([a, b, c])

    assert metrics.total_value == pytest.approx(1500.0)
    assert metrics.total_initial_investment == pytest.approx(1750.0)
    assert metrics.total_pnl == pytest.approx(a.pnl + b.pnl + c.pnl)
    assert metrics.total_pnl_percent == pytest.approx(metrics.total_pnl / 1750.0 * 100)
    assert metrics.total_fees_earned == pytest.approx(10.0)
    assert metrics.total_impermanent_loss == pytest.approx(-6.0)
    # Partial positions count as neither
    assert metrics.active_positions == 1
    assert metrics.closed_positions == 1
    assert metrics.best_performer is a
    assert metrics.worst_performer is b


def test_ties_keep_earliest_position():
    first = _position("first", pnl_percent=5.0)
    second = _position("second", pnl_percent=5.0)
    metrics = aggregate([first, second])
    assert metrics.best_performer is first
    assert metrics.worst_performer is first


def test_no_initial_investment_gives_zero_percent():
    metrics = aggregate([_position("a", value=100.0)])
    assert metrics.total_pnl == pytest.approx(100.0)
    assert metrics.total_pnl_percent == 0.0


def test_missing_values_count_as_zero():
    position = replace(_position("a", value=100.0), fees_earned=None)
    assert aggregate([position]).total_fees_earned == 0.0


def test_aggregate_accepts_generators():
    metrics = aggregate(_position(str(i), value=1.0) for i in range(3))
    assert metrics.total_value == pytest.approx(3.0)
    assert metrics.active_positions == 3


def test_breakdowns():
    positions = [
        _position("a", value=100.0, initial=50.0, chain="Ethereum", protocol="uniswapV2"),
        _position("b", value=40.0, initial=50.0, chain="Polygon", protocol="uniswapV2"),
        _position("c", value=10.0, chain="Polygon", protocol="sushiswap"),
    ]

    by_protocol = breakdown_by_protocol(positions)
    assert by_protocol["Uniswap V2"] == {"count": 2, "value": 140.0, "pnl": 40.0}
    assert by_protocol["SushiSwap"]["count"] == 1

    by_chain = breakdown_by_chain(positions)
    assert set(by_chain) == {"Ethereum", "Polygon"}
    assert by_chain["Polygon"]["value"] == pytest.approx(50.0)
    assert by_chain["Polygon"]["pnl"] == pytest.approx(0.0)
