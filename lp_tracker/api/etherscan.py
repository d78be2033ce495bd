"""Etherscan-compatible block-explorer client (Etherscan, Polygonscan, ...)."""

import logging
from typing import Any

import httpx

from ..chains import ChainConfig
from .base import APIError, BaseAPIClient, RateLimitError

logger = logging.getLogger(__name__)

# Free explorer tiers allow ~5 calls/s
REQUEST_INTERVAL = 0.2


class ExplorerClient(BaseAPIClient):
    """
    Client for one chain's Etherscan-style explorer API.

    Every fetch returns an empty result instead of raising: a chain that
    fails to answer looks exactly like a chain with no activity. Responses
    are memoized per client until ``clear_cache`` is called.
    """

    def __init__(
        self,
        chain: ChainConfig,
        max_transactions: int = 10000,
        transport: httpx.BaseTransport | None = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("min_interval", REQUEST_INTERVAL)
        super().__init__(base_url=chain.api_url, transport=transport, **kwargs)
        self.chain = chain
        self.max_transactions = max_transactions
        self._cache: dict[tuple, Any] = {}

    def _account_query(self, action: str, address: str, **params: Any) -> list[dict[str, Any]]:
        """Run a ``module=account`` list query, returning [] on any failure."""
        cache_key = (action, address.lower(), tuple(sorted(params.items())))
        if cache_key in self._cache:
            return self._cache[cache_key]

        query: dict[str, Any] = {
            "module": "account",
            "action": action,
            "address": address,
            "sort": "desc",
            **params,
        }
        if self.chain.api_key:
            query["apikey"] = self.chain.api_key

        try:
            data = self.get("", params=query)
        except (APIError, RateLimitError) as e:
            logger.warning("%s %s failed for %s: %s", self.chain.name, action, address, e)
            return []

        if not isinstance(data, dict):
            return []
        result = data.get("result")
        if data.get("status") != "1" or not isinstance(result, list):
            # "No transactions found" also comes back with status 0
            logger.debug("%s %s returned no data: %s", self.chain.name, action, data.get("message"))
            return []

        self._cache[cache_key] = result
        return result

    def fetch_transactions(self, address: str, page: int = 1, offset: int = 100) -> list[dict[str, Any]]:
        """
        Get normal transactions sent from or to an address.

        Args:
            address: Wallet address
            page: Page number (starts at 1)
            offset: Results per page

        Returns:
            Raw explorer ``txlist`` entries, newest first
        """
        return self._account_query("txlist", address, page=page, offset=offset)

    def fetch_internal_transactions(self, address: str) -> list[dict[str, Any]]:
        return self._account_query("txlistinternal", address, page=1, offset=100)

    def fetch_token_transfers(
        self,
        address: str,
        contract_address: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Get ERC20 transfers in and out of an address.

        Args:
            address: Wallet address
            contract_address: Restrict to a single token contract

        Returns:
            Raw explorer ``tokentx`` entries, newest first
        """
        params: dict[str, Any] = {"page": 1, "offset": self.max_transactions}
        if contract_address:
            params["contractaddress"] = contract_address
        return self._account_query("tokentx", address, **params)

    def fetch_nft_transfers(self, address: str) -> list[dict[str, Any]]:
        """ERC721 transfers, e.g. Uniswap V3 position NFTs."""
        return self._account_query("tokennfttx", address, page=1, offset=100)

    def fetch_native_balance(self, address: str) -> float:
        """Native currency balance in whole units (wei / 1e18)."""
        query: dict[str, Any] = {
            "module": "account",
            "action": "balance",
            "address": address,
            "tag": "latest",
        }
        if self.chain.api_key:
            query["apikey"] = self.chain.api_key

        try:
            data = self.get("", params=query)
            if data.get("status") == "1":
                return int(data["result"]) / 1e18
        except (APIError, RateLimitError, AttributeError, KeyError, ValueError, TypeError) as e:
            logger.warning("%s balance lookup failed for %s: %s", self.chain.name, address, e)
        return 0.0

    def fetch_chain_data(self, address: str) -> dict[str, list[dict[str, Any]]]:
        """Everything the position detector needs from this chain."""
        transactions = self.fetch_transactions(address)
        token_transfers = self.fetch_token_transfers(address)
        data = {
            "transactions": transactions,
            "tokenTransfers": token_transfers,
            "internalTransactions": self.fetch_internal_transactions(address),
            "nftTransfers": self.fetch_nft_transfers(address),
        }
        logger.info(
            "%s: %d tx, %d token transfers",
            self.chain.name, len(transactions), len(token_transfers),
        )
        return data

    def clear_cache(self) -> None:
        self._cache.clear()
