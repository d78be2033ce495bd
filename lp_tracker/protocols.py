"""Registry of known DEX protocols, their contracts and naming conventions.

The tables here are static and maintained by hand. Lookups never raise:
an address or name that matches nothing is a valid outcome and comes back
as ``None`` (or the ``UNKNOWN_PROTOCOL`` sentinel for name matching).
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from .chains import get_chain_by_name


@dataclass(frozen=True)
class ProtocolMetadata:
    """Static description of a DEX protocol."""
    key: str
    name: str
    type: str               # amm, concentrated, stableswap, weighted
    version: str
    logo: str
    color: str
    chains: tuple[str, ...] = ()
    # chain key -> contract role (factory, router, vault, ...) -> address
    contracts: Mapping[str, Mapping[str, str]] = field(
        default_factory=dict, hash=False, compare=False
    )
    nft_based: bool = False

    def contracts_on(self, chain_key: str) -> Mapping[str, str]:
        return self.contracts.get(chain_key, {})


def _contracts(table: dict[str, dict[str, str]]) -> Mapping[str, Mapping[str, str]]:
    return MappingProxyType({k: MappingProxyType(v) for k, v in table.items()})


_EVM_MAJORS = ("ethereum", "polygon", "arbitrum", "optimism", "base")

PROTOCOLS: dict[str, ProtocolMetadata] = {
    "uniswapV2": ProtocolMetadata(
        key="uniswapV2",
        name="Uniswap V2",
        type="amm",
        version="v2",
        logo="🦄",
        color="#FF007A",
        chains=_EVM_MAJORS,
        contracts=_contracts({
            "ethereum": {
                "factory": "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
                "router": "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
            },
            "polygon": {
                "factory": "0x5757371414417b8C6CAad45bAeF941aBc7d3Ab32",
                "router": "0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff",
            },
        }),
    ),
    "uniswapV3": ProtocolMetadata(
        key="uniswapV3",
        name="Uniswap V3",
        type="concentrated",
        version="v3",
        logo="🦄",
        color="#FF007A",
        chains=_EVM_MAJORS,
        contracts=_contracts({
            "ethereum": {
                "factory": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
                "positionManager": "0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
            },
            "polygon": {
                "factory": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
                "positionManager": "0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
            },
        }),
        nft_based=True,
    ),
    "sushiswap": ProtocolMetadata(
        key="sushiswap",
        name="SushiSwap",
        type="amm",
        version="v2",
        logo="🍣",
        color="#FA52A0",
        chains=_EVM_MAJORS,
        contracts=_contracts({
            "ethereum": {
                "factory": "0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac",
                "router": "0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F",
            },
            "polygon": {
                "factory": "0xc35DADB65012eC5796536bD9864eD8773aBc74C4",
                "router": "0x1b02dA8Cb0d097eB8D57A175b88c7D8b47997506",
            },
        }),
    ),
    "curve": ProtocolMetadata(
        key="curve",
        name="Curve Finance",
        type="stableswap",
        version="v1",
        logo="🌊",
        color="#40649F",
        chains=("ethereum", "polygon", "arbitrum", "optimism"),
        contracts=_contracts({
            "ethereum": {
                "registry": "0x90E00ACe148ca3b23Ac1bC8C240C2a7Dd9c2d7f5",
                "addressProvider": "0x0000000022D53366457F9d5E68Ec105046FC4383",
            },
        }),
    ),
    "balancerV2": ProtocolMetadata(
        key="balancerV2",
        name="Balancer V2",
        type="weighted",
        version="v2",
        logo="⚖️",
        color="#1E1E1E",
        chains=_EVM_MAJORS,
        contracts=_contracts({
            "ethereum": {"vault": "0xBA12222222228d8Ba445958a75a0704d566BF2C8"},
            "polygon": {"vault": "0xBA12222222228d8Ba445958a75a0704d566BF2C8"},
        }),
    ),
    "pancakeswap": ProtocolMetadata(
        key="pancakeswap",
        name="PancakeSwap",
        type="amm",
        version="v2",
        logo="🥞",
        color="#D1884F",
        chains=("bsc", "ethereum"),
        contracts=_contracts({
            "bsc": {
                "factory": "0xcA143Ce32Fe78f1f7019d7d551a6402fC5350c73",
                "router": "0x10ED43C718714eb63d5aA57B78B54704E256024E",
            },
        }),
    ),
    "aerodrome": ProtocolMetadata(
        key="aerodrome",
        name="Aerodrome",
        type="amm",
        version="v2",
        logo="✈️",
        color="#0047FF",
        chains=("base",),
        contracts=_contracts({
            "base": {
                "factory": "0x420DD381b31aEf6683db6B902084cB0FFECe40Da",
                "router": "0xcF77a3Ba9A5CA399B7c97c74d54e5b1Beb874E43",
            },
        }),
    ),
}

UNKNOWN_PROTOCOL = ProtocolMetadata(
    key="unknown",
    name="Unknown DEX",
    type="unknown",
    version="",
    logo="🔄",
    color="#888888",
)

# Checked in order: V3 must win over the plain "uniswap" fragment
_NAME_FRAGMENTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("uniswapV3", ("uniswap v3", "uni-v3")),
    ("uniswapV2", ("uniswap", "uni-v2")),
    ("sushiswap", ("sushi",)),
    ("curve", ("curve", "crv")),
    ("balancerV2", ("balancer", "bpt")),
    ("pancakeswap", ("pancake", "cake")),
    ("aerodrome", ("aerodrome",)),
)


def _chain_key(chain_name: str) -> str:
    """Accept either a chain table key or its display name."""
    chain = get_chain_by_name(chain_name or "")
    return chain.key if chain else (chain_name or "").lower()


def lookup(key: str) -> ProtocolMetadata | None:
    """Get protocol by registry key (e.g. "uniswapV2")."""
    return PROTOCOLS.get(key)


def by_chain(chain_name: str) -> list[ProtocolMetadata]:
    """All protocols deployed on a chain."""
    chain_key = _chain_key(chain_name)
    return [p for p in PROTOCOLS.values() if chain_key in p.chains]


def match_contract(address: str | None, chain_name: str) -> ProtocolMetadata | None:
    """
    Find the protocol owning a contract address on a chain.

    Case-insensitive exact match against every contract role of every
    protocol deployed there. No partial matching.

    Args:
        address: Contract address (any case)
        chain_name: Chain key or display name

    Returns:
        Matching protocol, or None
    """
    if not address:
        return None
    target = address.lower()
    chain_key = _chain_key(chain_name)

    for protocol in PROTOCOLS.values():
        for contract_addr in protocol.contracts_on(chain_key).values():
            if contract_addr.lower() == target:
                return protocol
    return None


def match_name(name: str | None, symbol: str | None) -> ProtocolMetadata:
    """Guess the protocol behind an LP token from its name and symbol."""
    text = f"{name or ''} {symbol or ''}".lower()
    for key, fragments in _NAME_FRAGMENTS:
        if any(fragment in text for fragment in fragments):
            return PROTOCOLS[key]
    return UNKNOWN_PROTOCOL
