"""Heuristic classification of LP tokens and LP-protocol transactions."""

import logging
from typing import Any, Iterable

from . import protocols
from .models import (
    ClassifiedAction,
    LPToken,
    LPTransfer,
    RawTokenTransfer,
    RawTransaction,
    TxType,
)
from .protocols import ProtocolMetadata

logger = logging.getLogger(__name__)

# Substrings that mark a token as an LP share. Known to misfire both ways
# (e.g. the CRV governance token matches, unbranded pool tokens don't).
LP_INDICATORS = (
    "UNI-V2", "UNI-V3", "SLP", "CAKE-LP", "BPT",
    "CRV", "3Crv", "crvUSD",
    "-LP", "LP-", "Balancer", "Curve",
    "Uniswap V2", "Uniswap V3", "SushiSwap",
    "PancakeSwap", "Aerodrome",
)

_UPPER_INDICATORS = tuple(indicator.upper() for indicator in LP_INDICATORS)

METHOD_SIGNATURES: dict[str, TxType] = {
    # Add liquidity
    "0xe8e33700": TxType.ADD_LIQUIDITY,     # addLiquidity
    "0xf305d719": TxType.ADD_LIQUIDITY,     # addLiquidityETH
    "0x4515cef3": TxType.ADD_LIQUIDITY,     # addLiquidityAVAX
    "0x0b4c7e4d": TxType.ADD_LIQUIDITY,     # add_liquidity (Curve)
    # Remove liquidity
    "0xbaa2abde": TxType.REMOVE_LIQUIDITY,  # removeLiquidity
    "0x02751cec": TxType.REMOVE_LIQUIDITY,  # removeLiquidityETH
    "0x5b0d5984": TxType.REMOVE_LIQUIDITY,  # removeLiquidityAVAX
    "0x1a4d01d2": TxType.REMOVE_LIQUIDITY,  # remove_liquidity (Curve)
    # Uniswap V3 position manager
    "0x88316456": TxType.ADD_LIQUIDITY,     # mint
    "0x0c49ccbe": TxType.REMOVE_LIQUIDITY,  # decreaseLiquidity
    "0xfc6f7865": TxType.COLLECT_FEES,      # collect
    # Swaps
    "0x38ed1739": TxType.SWAP,              # swapExactTokensForTokens
    "0x7ff36ab5": TxType.SWAP,              # swapExactETHForTokens
    "0x18cbafe5": TxType.SWAP,              # swapExactTokensForETH
}


def is_lp_token(symbol: str | None, name: str | None) -> bool:
    """Check if a token looks like an LP share, judging by its naming."""
    combined = f"{symbol or ''} {name or ''}".upper()
    return any(indicator in combined for indicator in _UPPER_INDICATORS)


def _parse_decimals(raw: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 18


def aggregate_balances(
    transfers: Iterable[RawTokenTransfer | dict[str, Any]],
    user_address: str,
) -> list[LPToken]:
    """
    Fold a wallet's token transfers into running LP token balances.

    Args:
        transfers: Explorer ``tokentx`` entries (raw dicts or records)
        user_address: Wallet whose balance is tracked

    Returns:
        One LPToken per LP contract, in first-seen order
    """
    user = (user_address or "").lower()
    lp_tokens: dict[str, LPToken] = {}

    for item in transfers:
        transfer = _as_token_transfer(item)
        if transfer is None:
            continue
        if not is_lp_token(transfer.token_symbol, transfer.token_name):
            continue
        if not transfer.contract_address:
            logger.warning("Skipping LP transfer %s without contract address", transfer.hash)
            continue

        token = lp_tokens.get(transfer.contract_address)
        if token is None:
            token = LPToken(
                contract_address=transfer.contract_address,
                symbol=transfer.token_symbol,
                name=transfer.token_name,
                decimals=_parse_decimals(transfer.token_decimal),
            )

        try:
            amount = float(transfer.value) / (10 ** token.decimals)
        except (TypeError, ValueError, OverflowError):
            logger.warning(
                "Skipping LP transfer %s with unparseable value %r",
                transfer.hash, transfer.value,
            )
            continue

        lp_tokens.setdefault(transfer.contract_address, token)

        receiving = transfer.to_address == user
        sending = transfer.from_address == user
        if receiving and sending:
            direction, signed = "self", 0.0
        elif receiving:
            direction, signed = "receive", amount
        elif sending:
            direction, signed = "send", -amount
        else:
            direction, signed = "other", 0.0

        token.balance += signed
        token.transfers.append(LPTransfer(
            hash=transfer.hash,
            timestamp=transfer.timestamp,
            direction=direction,
            value=signed,
        ))

    return list(lp_tokens.values())


def method_id(input_data: str | None) -> str:
    """The 4-byte selector of a call, as a lowercase ``0x``-prefixed string."""
    if not isinstance(input_data, str):
        return ""
    return input_data[:10].lower()


def classify_transaction(
    tx: RawTransaction,
    protocol: ProtocolMetadata | None = None,
) -> TxType:
    """
    Map a protocol transaction to its semantic action by method id.

    The protocol is accepted so per-protocol tables can be added later;
    the selector table is currently shared by all of them.
    """
    return METHOD_SIGNATURES.get(method_id(tx.input), TxType.UNKNOWN)


def detect_lp_actions(
    transactions: Iterable[RawTransaction | dict[str, Any]],
    chain_name: str,
    include_unknown: bool = True,
) -> list[ClassifiedAction]:
    """
    Classify the transactions sent to known LP protocol contracts.

    Transactions to any other address are not LP related and are dropped
    before classification. Calls to a known contract with an unrecognised
    selector are kept as ``TxType.UNKNOWN`` unless ``include_unknown`` is off.

    Args:
        transactions: Explorer ``txlist`` entries (raw dicts or records)
        chain_name: Display name of the chain (e.g. "Ethereum")
        include_unknown: Keep LP-protocol calls with unrecognised selectors

    Returns:
        Classified actions, in input order
    """
    actions: list[ClassifiedAction] = []

    for item in transactions:
        tx = _as_transaction(item)
        if tx is None:
            continue

        protocol = protocols.match_contract(tx.to_address, chain_name)
        if protocol is None:
            continue

        tx_type = classify_transaction(tx, protocol)
        if tx_type is TxType.UNKNOWN and not include_unknown:
            continue

        try:
            action = ClassifiedAction(
                hash=tx.hash,
                from_address=tx.from_address.lower(),
                to_address=tx.to_address.lower(),
                tx_type=tx_type,
                protocol=protocol.name,
                protocol_key=protocol.key,
                chain_name=chain_name,
                timestamp=int(tx.timestamp),
                value=float(tx.value) / 1e18,
                gas_used=int(tx.gas_used or 0),
                gas_price=float(tx.gas_price or 0) / 1e9,
                method_id=method_id(tx.input),
            )
        except (TypeError, ValueError) as e:
            logger.warning("Skipping malformed transaction %s: %s", tx.hash, e)
            continue

        actions.append(action)

    return actions


def _as_transaction(item: RawTransaction | dict[str, Any]) -> RawTransaction | None:
    if isinstance(item, RawTransaction):
        return item
    if isinstance(item, dict):
        try:
            return RawTransaction.from_explorer(item)
        except (TypeError, AttributeError, ValueError) as e:
            logger.warning("Skipping unreadable transaction record %r: %s", item.get("hash"), e)
            return None
    logger.warning("Ignoring transaction record of type %s", type(item).__name__)
    return None


def _as_token_transfer(item: RawTokenTransfer | dict[str, Any]) -> RawTokenTransfer | None:
    if isinstance(item, RawTokenTransfer):
        return item
    if isinstance(item, dict):
        try:
            return RawTokenTransfer.from_explorer(item)
        except (TypeError, AttributeError, ValueError) as e:
            logger.warning("Skipping unreadable token transfer %r: %s", item.get("hash"), e)
            return None
    logger.warning("Ignoring token transfer record of type %s", type(item).__name__)
    return None
