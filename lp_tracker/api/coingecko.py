"""CoinGecko API client for spot USD prices."""

from typing import Any

from .base import BaseAPIClient


class CoinGeckoClient(BaseAPIClient):
    """Client for the CoinGecko public API (FREE - ~30 requests/min)."""

    BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(self, base_url: str | None = None, **kwargs: Any):
        super().__init__(base_url=base_url or self.BASE_URL, **kwargs)

    def simple_price(self, coin_ids: list[str], vs_currency: str = "usd") -> dict[str, float]:
        """
        Get current prices for a batch of CoinGecko coin ids.

        Args:
            coin_ids: CoinGecko ids (e.g. ["ethereum", "usd-coin"])
            vs_currency: Quote currency

        Returns:
            Mapping of coin id -> price; ids without a price are omitted
        """
        if not coin_ids:
            return {}

        response = self.get(
            "/simple/price",
            params={"ids": ",".join(sorted(set(coin_ids))), "vs_currencies": vs_currency},
        )

        prices: dict[str, float] = {}
        for coin_id in coin_ids:
            entry = response.get(coin_id) if isinstance(response, dict) else None
            if entry and entry.get(vs_currency):
                prices[coin_id] = float(entry[vs_currency])
        return prices
