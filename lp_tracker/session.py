"""Portfolio loading and wallet-driven reloads."""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Union

from .api.coingecko import CoinGeckoClient
from .api.etherscan import ExplorerClient
from .builder import analyze_positions
from .chains import get_chain_by_id
from .config import Config, Heuristics
from .models import PortfolioMetrics, Position
from .portfolio import aggregate
from .prices import PriceCache, PriceService
from .valuation import PlaceholderPoolState, ValuationEngine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Wallet messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Connected:
    address: str
    chain_id: str | int | None = None


@dataclass(frozen=True)
class AccountChanged:
    address: str | None


@dataclass(frozen=True)
class ChainChanged:
    chain_id: str | int


@dataclass(frozen=True)
class Disconnected:
    pass


WalletMessage = Union[Connected, AccountChanged, ChainChanged, Disconnected]


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Result of one portfolio load."""
    address: str
    positions: list[Position] = field(default_factory=list)
    metrics: PortfolioMetrics = field(default_factory=PortfolioMetrics)
    generation: int = 0


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

class PortfolioLoader:
    """
    Runs the full pipeline for an address.

    Fetches every chain in parallel, detects positions, valuates them
    concurrently and aggregates the metrics.
    """

    def __init__(
        self,
        clients: dict[str, ExplorerClient],
        engine: ValuationEngine,
        heuristics: Heuristics | None = None,
    ):
        self.clients = clients
        self.engine = engine
        self.heuristics = heuristics or Heuristics()

    @classmethod
    def from_config(cls, config: Config, prices: PriceService | None = None) -> "PortfolioLoader":
        if prices is None:
            prices = PriceService(
                client=CoinGeckoClient(config.coingecko_base_url),
                cache=PriceCache(ttl=config.price_cache_ttl),
                custom_prices=config.custom_prices,
            )
        clients = {
            chain.key: ExplorerClient(chain, max_transactions=config.max_transactions)
            for chain in config.chain_configs()
        }
        engine = ValuationEngine(
            prices,
            PlaceholderPoolState(config.heuristics.placeholder_scalar),
        )
        return cls(clients, engine, config.heuristics)

    async def _fetch_chain(self, chain_key: str, address: str) -> dict[str, Any]:
        client = self.clients[chain_key]
        try:
            return await asyncio.to_thread(client.fetch_chain_data, address)
        except Exception:
            logger.exception("Fetching %s data failed", chain_key)
            return {"transactions": [], "tokenTransfers": []}

    async def fetch_all(self, address: str, chain_keys: list[str] | None = None) -> dict[str, Any]:
        """Raw explorer data per chain key, fetched concurrently."""
        keys = [k for k in (chain_keys or list(self.clients)) if k in self.clients]
        logger.info("Fetching data for %s across %d chains", address, len(keys))
        results = await asyncio.gather(*(self._fetch_chain(k, address) for k in keys))
        return dict(zip(keys, results))

    async def load(self, address: str, chain_keys: list[str] | None = None) -> PortfolioSnapshot:
        raw = await self.fetch_all(address, chain_keys)
        positions = analyze_positions(
            raw,
            address,
            window=self.heuristics.correlation_window_seconds,
            closed_threshold=self.heuristics.closed_balance_threshold,
        )
        valued = await self.engine.valuate_all(positions)
        return PortfolioSnapshot(address=address, positions=valued, metrics=aggregate(valued))

    def close(self) -> None:
        for client in self.clients.values():
            client.close()
        close_prices = getattr(self.engine.prices, "close", None)
        if callable(close_prices):
            close_prices()


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class PortfolioSession:
    """
    Wallet state plus the latest loaded portfolio.

    Wallet events arrive as messages. Every reload takes a new generation
    number; a load that finishes after a newer one started (or after a
    disconnect) is discarded instead of overwriting newer state.
    """

    def __init__(self, loader: PortfolioLoader, chain_keys: list[str] | None = None):
        self.loader = loader
        self.chain_keys = chain_keys
        self.address: str | None = None
        self.chain_id: str | None = None
        self.generation = 0
        self.snapshot: PortfolioSnapshot | None = None

    @property
    def connected(self) -> bool:
        return self.address is not None

    def reduce(self, message: WalletMessage) -> bool:
        """
        Apply a wallet message to the session state.

        Returns:
            True when the portfolio should be reloaded
        """
        if isinstance(message, Connected):
            self.address = message.address.lower()
            if message.chain_id is not None:
                self.chain_id = _normalize_chain_id(message.chain_id)
            logger.info("Wallet connected: %s", self.address)
            return True

        if isinstance(message, AccountChanged):
            if not message.address:
                return self.reduce(Disconnected())
            self.address = message.address.lower()
            logger.info("Account changed to %s", self.address)
            return True

        if isinstance(message, ChainChanged):
            self.chain_id = _normalize_chain_id(message.chain_id)
            chain = get_chain_by_id(message.chain_id)
            if chain is None:
                logger.warning("Unsupported chain %s, keeping current portfolio", message.chain_id)
                return False
            logger.info("Chain changed to %s", chain.name)
            return self.connected

        if isinstance(message, Disconnected):
            logger.info("Wallet disconnected")
            self.address = None
            self.snapshot = None
            # Invalidate anything still in flight
            self.generation += 1
            return False

        raise TypeError(f"Unknown wallet message: {message!r}")

    async def reload(self) -> bool:
        """
        Load the portfolio for the current address.

        Returns:
            True if the result was stored, False if it went stale or failed
        """
        if self.address is None:
            return False

        self.generation += 1
        generation = self.generation
        address = self.address

        try:
            snapshot = await self.loader.load(address, self.chain_keys)
        except Exception:
            logger.exception("Loading portfolio for %s failed", address)
            return False

        if generation != self.generation:
            logger.info("Dropping stale portfolio load #%d for %s", generation, address)
            return False

        self.snapshot = replace(snapshot, generation=generation)
        return True

    async def dispatch(self, message: WalletMessage) -> bool:
        """Reduce a message and reload if it calls for one."""
        if self.reduce(message):
            return await self.reload()
        return False


def _normalize_chain_id(chain_id: str | int) -> str:
    if isinstance(chain_id, int):
        return hex(chain_id)
    return str(chain_id).lower()
