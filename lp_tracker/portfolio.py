"""Portfolio-wide metrics over a list of positions."""

from collections import defaultdict
from typing import Callable, Iterable

from .models import PortfolioMetrics, Position, PositionStatus


def aggregate(positions: Iterable[Position]) -> PortfolioMetrics:
    """
    Reduce positions to portfolio totals.

    Best/worst performer are tracked by ``pnl_percent`` in a single pass
    with strict comparisons, so on a tie the earlier position is kept.
    Partial positions count as neither active nor closed.
    """
    total_value = 0.0
    total_initial = 0.0
    total_pnl = 0.0
    total_fees = 0.0
    total_il = 0.0
    active = 0
    closed = 0
    best: Position | None = None
    worst: Position | None = None

    for position in positions:
        total_value += position.current_value or 0.0
        total_initial += position.initial_value or 0.0
        total_pnl += position.pnl or 0.0
        total_fees += position.fees_earned or 0.0
        total_il += position.impermanent_loss.value or 0.0

        if position.status is PositionStatus.ACTIVE:
            active += 1
        elif position.status is PositionStatus.CLOSED:
            closed += 1

        if best is None or position.pnl_percent > best.pnl_percent:
            best = position
        if worst is None or position.pnl_percent < worst.pnl_percent:
            worst = position

    return PortfolioMetrics(
        total_value=total_value,
        total_initial_investment=total_initial,
        total_pnl=total_pnl,
        total_pnl_percent=total_pnl / total_initial * 100 if total_initial > 0 else 0.0,
        total_fees_earned=total_fees,
        total_impermanent_loss=total_il,
        active_positions=active,
        closed_positions=closed,
        best_performer=best,
        worst_performer=worst,
    )


def _breakdown(
    positions: Iterable[Position],
    key: Callable[[Position], str],
) -> dict[str, dict[str, float]]:
    groups: dict[str, dict[str, float]] = defaultdict(lambda: {"count": 0, "value": 0.0, "pnl": 0.0})
    for position in positions:
        group = groups[key(position)]
        group["count"] += 1
        group["value"] += position.current_value
        group["pnl"] += position.pnl
    return dict(groups)


def breakdown_by_protocol(positions: Iterable[Position]) -> dict[str, dict[str, float]]:
    """Count, value and PnL per protocol name."""
    return _breakdown(positions, lambda p: p.protocol.name)


def breakdown_by_chain(positions: Iterable[Position]) -> dict[str, dict[str, float]]:
    """Count, value and PnL per chain name."""
    return _breakdown(positions, lambda p: p.chain)
