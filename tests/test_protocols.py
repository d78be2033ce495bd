"""Tests for the protocol registry and chain table."""

from lp_tracker import protocols
from lp_tracker.chains import (
    CHAINS,
    get_chain_by_id,
    get_chain_by_name,
    is_chain_supported,
    supported_chain_ids,
)


def test_lookup_known_and_unknown():
    assert protocols.lookup("uniswapV2").name == "Uniswap V2"
    assert protocols.lookup("uniswapV3").nft_based is True
    assert protocols.lookup("nope") is None


def test_by_chain_accepts_key_or_display_name():
    keys = {p.key for p in protocols.by_chain("base")}
    assert "aerodrome" in keys
    assert "pancakeswap" not in keys
    assert {p.key for p in protocols.by_chain("Base")} == keys
    assert [p.key for p in protocols.by_chain("bsc")] == ["pancakeswap"]


def test_match_contract_is_case_insensitive_exact():
    router = "0x7A250D5630B4CF539739DF2C5DACB4C659F2488D"
    assert protocols.match_contract(router, "ethereum").key == "uniswapV2"
    assert protocols.match_contract(router.lower(), "Ethereum").key == "uniswapV2"
    # Any role counts
    vault = "0xba12222222228d8ba445958a75a0704d566bf2c8"
    assert protocols.match_contract(vault, "polygon").key == "balancerV2"


def test_match_contract_no_partial_or_cross_chain_match():
    router = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
    assert protocols.match_contract(router[:-1], "ethereum") is None
    assert protocols.match_contract(router, "base") is None
    assert protocols.match_contract(None, "ethereum") is None
    assert protocols.match_contract("", "ethereum") is None


def test_match_name_priority_and_fallback():
    assert protocols.match_name("Uniswap V3 Positions NFT-V1", "UNI-V3-POS").key == "uniswapV3"
    assert protocols.match_name("Uniswap V2", "UNI-V2").key == "uniswapV2"
    assert protocols.match_name("SushiSwap LP Token", "SLP").key == "sushiswap"
    assert protocols.match_name("Curve.fi DAI/USDC/USDT", "3Crv").key == "curve"
    assert protocols.match_name("Balancer 80BAL-20WETH", "B-80BAL-20WETH").key == "balancerV2"
    assert protocols.match_name("Pancake LPs", "Cake-LP").key == "pancakeswap"
    assert protocols.match_name("vAMM-WETH/USDC", "vAMM-WETH/USDC Aerodrome").key == "aerodrome"

    unknown = protocols.match_name("Mystery Pool", "MP")
    assert unknown is protocols.UNKNOWN_PROTOCOL
    assert unknown.name == "Unknown DEX"
    assert protocols.match_name(None, None) is protocols.UNKNOWN_PROTOCOL


def test_chain_lookups():
    assert get_chain_by_id(1).key == "ethereum"
    assert get_chain_by_id("0x89").key == "polygon"
    assert get_chain_by_id("0xA4B1").key == "arbitrum"
    assert get_chain_by_id("8453").key == "base"
    assert get_chain_by_id("0x999") is None

    assert get_chain_by_name("Ethereum") is CHAINS["ethereum"]
    assert get_chain_by_name("BNB Chain") is CHAINS["bsc"]
    assert get_chain_by_name("") is None

    assert is_chain_supported(56)
    assert not is_chain_supported(250)
    assert len(supported_chain_ids()) == len(CHAINS)


def test_with_api_key_returns_copy():
    chain = CHAINS["ethereum"].with_api_key("KEY")
    assert chain.api_key == "KEY"
    assert CHAINS["ethereum"].api_key == ""
