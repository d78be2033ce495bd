"""LP Tracker - Reconstruct and value DEX liquidity positions from explorer data."""

from .builder import analyze_positions, build_positions
from .models import PortfolioMetrics, Position, PositionStatus, TxType
from .portfolio import aggregate
from .prices import PriceCache, PriceService
from .valuation import PlaceholderPoolState, PoolStateProvider, ValuationEngine, valuate_all

__all__ = [
    "analyze_positions",
    "build_positions",
    "aggregate",
    "valuate_all",
    "ValuationEngine",
    "PoolStateProvider",
    "PlaceholderPoolState",
    "PriceCache",
    "PriceService",
    "Position",
    "PositionStatus",
    "PortfolioMetrics",
    "TxType",
]

__version__ = "0.1.0"
