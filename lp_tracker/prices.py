"""Token price oracle with TTL cache, custom overrides and fallbacks."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol

from .api.base import APIError, RateLimitError
from .api.coingecko import CoinGeckoClient

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 30.0

# Ticker -> CoinGecko id
COINGECKO_IDS = {
    "ETH": "ethereum",
    "WETH": "ethereum",
    "MATIC": "matic-network",
    "WMATIC": "matic-network",
    "BNB": "binancecoin",
    "WBNB": "binancecoin",
    "USDC": "usd-coin",
    "USDT": "tether",
    "DAI": "dai",
    "WBTC": "wrapped-bitcoin",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "AAVE": "aave",
    "CRV": "curve-dao-token",
    "BAL": "balancer",
    "SUSHI": "sushi",
}

# Last-resort prices when the API is unreachable
FALLBACK_PRICES = {
    "ETH": 3500.0,
    "WETH": 3500.0,
    "MATIC": 0.85,
    "WMATIC": 0.85,
    "BNB": 600.0,
    "WBNB": 600.0,
    "USDC": 1.0,
    "USDT": 1.0,
    "DAI": 1.0,
    "BUSD": 1.0,
    "USDD": 1.0,
    "FRAX": 1.0,
    "WBTC": 95000.0,
    "BTC": 95000.0,
    "LINK": 22.0,
    "UNI": 12.0,
    "AAVE": 285.0,
    "CRV": 0.95,
    "BAL": 5.0,
    "SUSHI": 1.8,
    "COMP": 75.0,
    "MKR": 2800.0,
}


class PriceOracle(Protocol):
    """Anything that can quote a USD price for a ticker without raising."""

    def get_price(self, symbol: str) -> float:
        ...


def fallback_price(symbol: str) -> float:
    return FALLBACK_PRICES.get((symbol or "").upper(), 0.0)


@dataclass
class _CacheEntry:
    price: float
    fetched_at: float


class PriceCache:
    """Thread-safe price cache with a fixed time-to-live."""

    def __init__(self, ttl: float = DEFAULT_CACHE_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, symbol: str) -> float | None:
        """Cached price if younger than the TTL, else None."""
        with self._lock:
            entry = self._entries.get(symbol.upper())
            if entry and self._clock() - entry.fetched_at < self.ttl:
                return entry.price
        return None

    def get_stale(self, symbol: str) -> float | None:
        """Cached price regardless of age."""
        with self._lock:
            entry = self._entries.get(symbol.upper())
            return entry.price if entry else None

    def set(self, symbol: str, price: float) -> None:
        with self._lock:
            self._entries[symbol.upper()] = _CacheEntry(price=price, fetched_at=self._clock())

    def invalidate(self, symbol: str | None = None) -> None:
        """Drop one symbol, or everything when no symbol is given."""
        with self._lock:
            if symbol is None:
                self._entries.clear()
            else:
                self._entries.pop(symbol.upper(), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PriceService:
    """
    USD price lookups for token tickers.

    Resolution order: custom override, fresh cache entry, CoinGecko, stale
    cache entry, hardcoded fallback table, 0. ``get_price`` never raises.
    """

    def __init__(
        self,
        client: CoinGeckoClient | None = None,
        cache: PriceCache | None = None,
        custom_prices: dict[str, float] | None = None,
    ):
        self.cache = cache or PriceCache()
        self._client = client
        self._client_lock = threading.Lock()
        self._custom: dict[str, float] = {
            symbol.upper(): float(price) for symbol, price in (custom_prices or {}).items()
        }
        self.last_update: float | None = None

    @property
    def client(self) -> CoinGeckoClient:
        if self._client is None:
            with self._client_lock:
                if self._client is None:
                    self._client = CoinGeckoClient()
        return self._client

    def get_price(self, symbol: str, use_custom: bool = True) -> float:
        """
        Get the USD price of a token.

        Args:
            symbol: Token ticker (case-insensitive)
            use_custom: Honour user-set overrides

        Returns:
            Best-known price, or 0.0 when nothing is known
        """
        symbol = (symbol or "").upper()
        if not symbol:
            return 0.0

        if use_custom and symbol in self._custom:
            return self._custom[symbol]

        cached = self.cache.get(symbol)
        if cached is not None:
            return cached

        coin_id = COINGECKO_IDS.get(symbol)
        if coin_id is None:
            logger.debug("No CoinGecko id for %s, using fallback", symbol)
            return fallback_price(symbol)

        try:
            prices = self.client.simple_price([coin_id])
        except (APIError, RateLimitError, ValueError, TypeError) as e:
            logger.warning("Price fetch for %s failed: %s", symbol, e)
            stale = self.cache.get_stale(symbol)
            return stale if stale is not None else fallback_price(symbol)

        if coin_id not in prices:
            return fallback_price(symbol)

        price = prices[coin_id]
        self.cache.set(symbol, price)
        self.last_update = time.time()
        return price

    def get_prices(self, symbols: Iterable[str]) -> dict[str, float]:
        """Get several prices with a single CoinGecko request."""
        unique = list(dict.fromkeys(s.upper() for s in symbols if s))
        result: dict[str, float] = {}
        to_fetch: dict[str, str] = {}

        for symbol in unique:
            cached = self.cache.get(symbol)
            if symbol in self._custom:
                result[symbol] = self._custom[symbol]
            elif cached is not None:
                result[symbol] = cached
            elif symbol in COINGECKO_IDS:
                to_fetch[symbol] = COINGECKO_IDS[symbol]
            else:
                result[symbol] = fallback_price(symbol)

        if to_fetch:
            try:
                fetched = self.client.simple_price(list(to_fetch.values()))
            except (APIError, RateLimitError, ValueError, TypeError) as e:
                logger.warning("Batch price fetch failed: %s", e)
                fetched = {}

            for symbol, coin_id in to_fetch.items():
                if coin_id in fetched:
                    result[symbol] = fetched[coin_id]
                    self.cache.set(symbol, fetched[coin_id])
                else:
                    stale = self.cache.get_stale(symbol)
                    result[symbol] = stale if stale is not None else fallback_price(symbol)
            if fetched:
                self.last_update = time.time()

        return result

    def set_custom_price(self, symbol: str, price: float) -> None:
        self._custom[symbol.upper()] = float(price)
        logger.info("Custom price set: %s = $%s", symbol.upper(), price)

    def remove_custom_price(self, symbol: str) -> None:
        self._custom.pop(symbol.upper(), None)

    def get_custom_price(self, symbol: str) -> float | None:
        return self._custom.get(symbol.upper())

    def has_custom_price(self, symbol: str) -> bool:
        return symbol.upper() in self._custom

    def custom_prices(self) -> dict[str, float]:
        return dict(self._custom)

    def clear_cache(self) -> None:
        self.cache.invalidate()

    def cache_stats(self) -> dict[str, float | int | None]:
        return {
            "cached_prices": len(self.cache),
            "custom_prices": len(self._custom),
            "last_update": self.last_update,
        }

    def close(self) -> None:
        if self._client:
            self._client.close()
