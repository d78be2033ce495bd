"""Best-effort extraction of the token pair behind an LP token."""

from .models import TokenPair

# Symbol segments that name the pool format rather than a token
_NON_TOKEN_MARKERS = ("V2", "V3", "LP")


def extract_token_pair(name: str | None, symbol: str | None) -> TokenPair:
    """
    Parse an LP token's symbol/name into its two constituent tickers.

    Tries the dash-separated symbol first ("WETH-USDC-LP"), then ticker-like
    words in the name ("Pool WETH USDC"). When neither yields two tokens the
    pair falls back to ``Token0``/``Token1`` labelled with the raw symbol.

    This is a naming heuristic; nothing is verified on-chain.
    """
    name = name or ""
    symbol = symbol or ""

    symbol_parts = [
        part for part in symbol.split("-")
        if part and not any(marker in part for marker in _NON_TOKEN_MARKERS)
    ]
    if len(symbol_parts) >= 2:
        return _pair(symbol_parts[0], symbol_parts[1])

    name_parts = [
        part for part in name.split()
        if len(part) <= 6 and part.upper() == part
    ]
    if len(name_parts) >= 2:
        return _pair(name_parts[0], name_parts[1])

    return TokenPair(token0="Token0", token1="Token1", display_name=symbol)


def _pair(token0: str, token1: str) -> TokenPair:
    return TokenPair(token0=token0, token1=token1, display_name=f"{token0}/{token1}")
