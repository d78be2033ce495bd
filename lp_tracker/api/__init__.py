"""API clients for external services."""

from .base import APIError, RateLimitError
from .coingecko import CoinGeckoClient
from .etherscan import ExplorerClient

__all__ = ["APIError", "RateLimitError", "CoinGeckoClient", "ExplorerClient"]
