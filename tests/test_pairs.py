"""Tests for token pair extraction."""

from lp_tracker.pairs import extract_token_pair


def test_pair_from_dash_separated_symbol():
    pair = extract_token_pair("WETH/USDC Pool", "WETH-USDC-LP")
    assert (pair.token0, pair.token1) == ("WETH", "USDC")
    assert pair.display_name == "WETH/USDC"


def test_pair_from_ticker_words_in_name():
    pair = extract_token_pair("Pool WETH USDC", "LP")
    assert (pair.token0, pair.token1) == ("WETH", "USDC")


def test_uni_v2_falls_back_to_placeholders():
    pair = extract_token_pair("Uniswap V2", "UNI-V2")
    assert (pair.token0, pair.token1) == ("Token0", "Token1")
    assert pair.display_name == "UNI-V2"


def test_segments_containing_markers_are_dropped():
    # "SLP" contains "LP", and "LP" is the only ticker-like word in the name
    pair = extract_token_pair("SushiSwap LP Token", "SLP")
    assert pair.token0 == "Token0"
    assert pair.display_name == "SLP"


def test_missing_name_and_symbol():
    pair = extract_token_pair(None, None)
    assert pair.token0 == "Token0"
    assert pair.token1 == "Token1"
    assert pair.display_name == ""


def test_long_words_are_not_tickers():
    pair = extract_token_pair("BALANCER WEIGHTED", "B")
    assert pair.token0 == "Token0"
