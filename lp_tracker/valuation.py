"""PnL, fee, impermanent-loss and APY estimation for LP positions."""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Iterable

from .chains import get_chain_by_name
from .models import (
    AmountPair,
    ImpermanentLoss,
    Position,
    TokenAmounts,
    TxType,
)
from .prices import PriceOracle

logger = logging.getLogger(__name__)

SECONDS_PER_YEAR = 365.25 * 24 * 60 * 60


class PoolStateProvider(ABC):
    """Source of the underlying token amounts an LP balance represents."""

    @abstractmethod
    def token_amounts(self, position: Position) -> AmountPair:
        """Current (token0, token1) amounts redeemable for the position."""


class PlaceholderPoolState(PoolStateProvider):
    """
    Stand-in for real pool-reserve lookups.

    Treats every LP unit as ``scalar`` units of each underlying token. The
    numbers are not derived from chain state; a reserve-based provider
    (reserves x balance / total supply) should replace this in production.
    """

    def __init__(self, scalar: float = 100.0):
        self.scalar = scalar

    def token_amounts(self, position: Position) -> AmountPair:
        balance = position.lp_token.balance
        return AmountPair(token0=balance * self.scalar, token1=balance * self.scalar)


def impermanent_loss(
    initial_prices: AmountPair,
    current_prices: AmountPair,
    initial_amounts: AmountPair,
) -> ImpermanentLoss:
    """
    Impermanent loss of a 50/50 constant-product position.

    Compares the rebalanced LP value, ``initial * 2*sqrt(r)/(1+r)`` where
    ``r`` is the change of the token0/token1 price ratio, with the value of
    simply holding the initial amounts at current prices.

    Args:
        initial_prices: Prices when liquidity was added
        current_prices: Prices now
        initial_amounts: Token amounts deposited

    Returns:
        ImpermanentLoss; all zero when an initial price is 0
    """
    p0_initial, p1_initial = initial_prices.token0, initial_prices.token1
    p0_current, p1_current = current_prices.token0, current_prices.token1
    amount0, amount1 = initial_amounts.token0, initial_amounts.token1

    if p0_initial == 0 or p1_initial == 0 or p1_current == 0:
        return ImpermanentLoss()

    ratio_change = (p0_current / p1_current) / (p0_initial / p1_initial)
    il_multiplier = 2 * math.sqrt(ratio_change) / (1 + ratio_change)

    hold_value = amount0 * p0_current + amount1 * p1_current
    initial_value = amount0 * p0_initial + amount1 * p1_initial
    lp_value = initial_value * il_multiplier

    il_value = lp_value - hold_value
    il_percent = il_value / hold_value * 100 if hold_value else 0.0

    return ImpermanentLoss(
        value=il_value,
        percent=il_percent,
        hold_value=hold_value,
        lp_value=lp_value,
    )


def calculate_apy(
    initial_value: float,
    final_value: float,
    start_timestamp: int | None,
    end_timestamp: int | None,
) -> float:
    """
    Annualize the holding-period return.

    Short holding periods are extrapolated to a full year as-is, so a
    one-day position can show an extreme APY.
    """
    if not start_timestamp or not end_timestamp or initial_value == 0:
        return 0.0

    duration_years = (end_timestamp - start_timestamp) / SECONDS_PER_YEAR
    if duration_years <= 0:
        return 0.0

    return_multiple = final_value / initial_value
    if return_multiple < 0:
        return 0.0

    try:
        return (return_multiple ** (1 / duration_years) - 1) * 100
    except OverflowError:
        logger.debug("APY overflow for multiple %s over %.6f years", return_multiple, duration_years)
        return 0.0


class ValuationEngine:
    """
    Fills in the valuation fields of positions.

    Each step (prices, initial investment, current value, fees, IL, APY)
    is guarded on its own: a failure is logged and leaves that field at
    zero without stopping the rest.
    """

    def __init__(
        self,
        price_oracle: PriceOracle,
        pool_state: PoolStateProvider | None = None,
        default_native_symbol: str = "ETH",
    ):
        self.prices = price_oracle
        self.pool_state = pool_state or PlaceholderPoolState()
        self.default_native_symbol = default_native_symbol

    def _native_symbol(self, position: Position) -> str:
        chain = get_chain_by_name(position.chain)
        return chain.symbol if chain else self.default_native_symbol

    def _native_price(self, position: Position) -> float:
        return self.prices.get_price(self._native_symbol(position))

    def initial_investment(
        self,
        position: Position,
        current_prices: AmountPair,
    ) -> tuple[float, AmountPair, AmountPair]:
        """
        Estimate what went into the position.

        Uses today's prices as a stand-in for prices at deposit time and
        assumes the first deposit was split 50/50 between the two tokens.

        Returns:
            (initial USD value, initial token amounts, initial prices)
        """
        adds = [tx for tx in position.transactions if tx.tx_type is TxType.ADD_LIQUIDITY]
        if not adds:
            return 0.0, AmountPair(), AmountPair()

        native_price = self._native_price(position)
        total_value = sum(tx.value for tx in adds) * native_price

        first_value = adds[0].value * native_price
        p0, p1 = current_prices.token0, current_prices.token1
        amounts = AmountPair(
            token0=(first_value / 2) / p0 if p0 else 0.0,
            token1=(first_value / 2) / p1 if p1 else 0.0,
        )
        return total_value or first_value, amounts, current_prices

    def current_value(self, position: Position, current_prices: AmountPair) -> float:
        if position.lp_token.balance == 0:
            return 0.0
        amounts = self.pool_state.token_amounts(position)
        return amounts.token0 * current_prices.token0 + amounts.token1 * current_prices.token1

    def fees_earned(self, position: Position) -> float:
        """USD value sent along with fee-collection calls, at today's native price."""
        fee_txs = [tx for tx in position.transactions if tx.tx_type is TxType.COLLECT_FEES]
        if not fee_txs:
            return 0.0
        return sum(tx.value for tx in fee_txs) * self._native_price(position)

    def valuate(self, position: Position) -> Position:
        """
        Compute PnL, fees, IL and APY for one position.

        Args:
            position: Position from the builder

        Returns:
            A valued copy; the input is left untouched
        """
        label = position.token_pair.display_name or position.id
        logger.debug("Valuating %s", label)

        prices = AmountPair()
        try:
            prices = AmountPair(
                token0=self.prices.get_price(position.token_pair.token0),
                token1=self.prices.get_price(position.token_pair.token1),
            )
        except Exception:
            logger.exception("Price lookup failed for %s", position.id)

        initial_value = 0.0
        initial_amounts = AmountPair()
        initial_prices = AmountPair()
        try:
            initial_value, initial_amounts, initial_prices = self.initial_investment(position, prices)
        except Exception:
            logger.exception("Initial investment estimate failed for %s", position.id)

        current_value = 0.0
        current_amounts = AmountPair()
        try:
            current_value = self.current_value(position, prices)
            current_amounts = self.pool_state.token_amounts(position)
        except Exception:
            logger.exception("Current value estimate failed for %s", position.id)

        fees = 0.0
        try:
            fees = self.fees_earned(position)
        except Exception:
            logger.exception("Fee estimate failed for %s", position.id)

        il = ImpermanentLoss()
        try:
            il = impermanent_loss(initial_prices, prices, initial_amounts)
        except Exception:
            logger.exception("Impermanent loss calculation failed for %s", position.id)

        pnl = current_value + fees - initial_value
        pnl_percent = pnl / initial_value * 100 if initial_value > 0 else 0.0

        apy = 0.0
        try:
            apy = calculate_apy(
                initial_value,
                current_value + fees,
                position.first_interaction,
                position.last_interaction,
            )
        except Exception:
            logger.exception("APY calculation failed for %s", position.id)

        return replace(
            position,
            initial_value=initial_value,
            current_value=current_value,
            pnl=pnl,
            pnl_percent=pnl_percent,
            fees_earned=fees,
            impermanent_loss=il,
            apy=apy,
            token_prices=prices,
            token_amounts=TokenAmounts(initial=initial_amounts, current=current_amounts),
        )

    async def valuate_all(self, positions: Iterable[Position]) -> list[Position]:
        """Valuate positions concurrently; output order matches input order."""
        positions = list(positions)
        logger.info("Valuating %d positions", len(positions))
        return list(await asyncio.gather(
            *(asyncio.to_thread(self.valuate, position) for position in positions)
        ))


async def valuate_all(
    positions: Iterable[Position],
    price_oracle: PriceOracle,
    pool_state: PoolStateProvider | None = None,
) -> list[Position]:
    """Quick function to valuate positions with a one-off engine."""
    return await ValuationEngine(price_oracle, pool_state).valuate_all(positions)
