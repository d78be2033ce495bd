"""Supported EVM chains and their block-explorer endpoints."""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class ChainConfig:
    """Static description of a chain the tracker can scan."""
    key: str
    id: str                 # Hex chain id, as reported by wallets ("0x1")
    chain_id: int
    name: str
    symbol: str             # Native currency symbol
    explorer_url: str
    api_url: str
    icon: str
    api_key: str = ""

    def with_api_key(self, api_key: str) -> "ChainConfig":
        return replace(self, api_key=api_key)


CHAINS: dict[str, ChainConfig] = {
    "ethereum": ChainConfig(
        key="ethereum",
        id="0x1",
        chain_id=1,
        name="Ethereum",
        symbol="ETH",
        explorer_url="https://etherscan.io",
        api_url="https://api.etherscan.io/api",
        icon="⟠",
    ),
    "polygon": ChainConfig(
        key="polygon",
        id="0x89",
        chain_id=137,
        name="Polygon",
        symbol="MATIC",
        explorer_url="https://polygonscan.com",
        api_url="https://api.polygonscan.com/api",
        icon="⬡",
    ),
    "base": ChainConfig(
        key="base",
        id="0x2105",
        chain_id=8453,
        name="Base",
        symbol="ETH",
        explorer_url="https://basescan.org",
        api_url="https://api.basescan.org/api",
        icon="🔵",
    ),
    "arbitrum": ChainConfig(
        key="arbitrum",
        id="0xa4b1",
        chain_id=42161,
        name="Arbitrum",
        symbol="ETH",
        explorer_url="https://arbiscan.io",
        api_url="https://api.arbiscan.io/api",
        icon="◆",
    ),
    "optimism": ChainConfig(
        key="optimism",
        id="0xa",
        chain_id=10,
        name="Optimism",
        symbol="ETH",
        explorer_url="https://optimistic.etherscan.io",
        api_url="https://api-optimistic.etherscan.io/api",
        icon="○",
    ),
    "bsc": ChainConfig(
        key="bsc",
        id="0x38",
        chain_id=56,
        name="BNB Chain",
        symbol="BNB",
        explorer_url="https://bscscan.com",
        api_url="https://api.bscscan.com/api",
        icon="◈",
    ),
}

# Environment variable holding the explorer API key for each chain
API_KEY_ENV = {
    "ethereum": "ETHERSCAN_API_KEY",
    "polygon": "POLYGONSCAN_API_KEY",
    "base": "BASESCAN_API_KEY",
    "arbitrum": "ARBISCAN_API_KEY",
    "optimism": "OPTIMISM_API_KEY",
    "bsc": "BSCSCAN_API_KEY",
}


def get_chain_by_id(chain_id: int | str) -> ChainConfig | None:
    """Look up a chain by numeric id or hex id string ("0x89")."""
    if isinstance(chain_id, int):
        hex_id = hex(chain_id)
    else:
        hex_id = str(chain_id).strip().lower()
        if hex_id.isdigit():
            hex_id = hex(int(hex_id))
    for chain in CHAINS.values():
        if chain.id == hex_id:
            return chain
    return None


def get_chain_by_name(name: str) -> ChainConfig | None:
    """Look up a chain by its table key, or by its display name."""
    if not name:
        return None
    chain = CHAINS.get(name.lower())
    if chain:
        return chain
    for candidate in CHAINS.values():
        if candidate.name.lower() == name.lower():
            return candidate
    return None


def is_chain_supported(chain_id: int | str) -> bool:
    return get_chain_by_id(chain_id) is not None


def supported_chain_ids() -> list[str]:
    return [chain.id for chain in CHAINS.values()]
