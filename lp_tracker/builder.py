"""Position reconstruction - correlate LP balances with protocol actions."""

import logging
from typing import Any, Iterable, Mapping

from . import protocols
from .chains import ChainConfig, get_chain_by_name
from .classifier import aggregate_balances, detect_lp_actions
from .models import (
    ActionCounts,
    ClassifiedAction,
    LPToken,
    LPTokenSummary,
    Position,
    PositionStatus,
    TxType,
)
from .pairs import extract_token_pair

logger = logging.getLogger(__name__)

CORRELATION_WINDOW_SECONDS = 60
CLOSED_BALANCE_THRESHOLD = 1e-6


def position_status(
    balance: float,
    has_removes: bool,
    closed_threshold: float = CLOSED_BALANCE_THRESHOLD,
) -> PositionStatus:
    """Status is a pure function of the current balance and removal history."""
    if balance < closed_threshold:
        return PositionStatus.CLOSED
    if has_removes and balance > 0:
        return PositionStatus.PARTIAL
    return PositionStatus.ACTIVE


def related_actions(
    token: LPToken,
    actions: Iterable[ClassifiedAction],
    window: int = CORRELATION_WINDOW_SECONDS,
) -> list[ClassifiedAction]:
    """
    Actions that happened within ``window`` seconds of any transfer of the token.

    Timestamp proximity is the only link: every action inside the window is
    attributed, even when several unrelated ones land in the same minute.
    """
    transfer_times = [t.timestamp for t in token.transfers]
    return [
        action for action in actions
        if any(abs(ts - action.timestamp) < window for ts in transfer_times)
    ]


def attribution_confidence(
    token: LPToken,
    related: list[ClassifiedAction],
    window: int = CORRELATION_WINDOW_SECONDS,
) -> str:
    """How cleanly the window attributed actions: none, matched or ambiguous."""
    if not related:
        return "none"
    for transfer in token.transfers:
        hits = sum(1 for a in related if abs(transfer.timestamp - a.timestamp) < window)
        if hits > 1:
            return "ambiguous"
    return "matched"


def build_position(
    token: LPToken,
    actions: list[ClassifiedAction],
    chain: ChainConfig,
    window: int = CORRELATION_WINDOW_SECONDS,
    closed_threshold: float = CLOSED_BALANCE_THRESHOLD,
) -> Position:
    related = related_actions(token, actions, window)

    counts = ActionCounts(
        adds=sum(1 for a in related if a.tx_type is TxType.ADD_LIQUIDITY),
        removes=sum(1 for a in related if a.tx_type is TxType.REMOVE_LIQUIDITY),
        fee_collections=sum(1 for a in related if a.tx_type is TxType.COLLECT_FEES),
    )
    timestamps = [a.timestamp for a in related]

    return Position(
        id=Position.make_id(chain.name, token.contract_address),
        contract_address=token.contract_address,
        lp_token=LPTokenSummary(
            symbol=token.symbol,
            name=token.name,
            balance=token.balance,
            decimals=token.decimals,
        ),
        token_pair=extract_token_pair(token.name, token.symbol),
        protocol=protocols.match_name(token.name, token.symbol),
        chain=chain.name,
        chain_icon=chain.icon,
        status=position_status(token.balance, counts.removes > 0, closed_threshold),
        current_balance=token.balance,
        actions=counts,
        transactions=tuple(related),
        first_interaction=min(timestamps) if timestamps else None,
        last_interaction=max(timestamps) if timestamps else None,
        attribution_confidence=attribution_confidence(token, related, window),
    )


def build_positions(
    lp_tokens: Iterable[LPToken],
    actions: Iterable[ClassifiedAction],
    chain: ChainConfig,
    window: int = CORRELATION_WINDOW_SECONDS,
    closed_threshold: float = CLOSED_BALANCE_THRESHOLD,
) -> list[Position]:
    """
    Turn one chain's LP tokens and classified actions into positions.

    Args:
        lp_tokens: Aggregated LP token balances
        actions: Classified protocol actions on the same chain
        chain: Chain the data came from
        window: Correlation window in seconds
        closed_threshold: Balance below which a position counts as closed

    Returns:
        One unvalued Position per LP token
    """
    actions = list(actions)
    positions: list[Position] = []

    for token in lp_tokens:
        try:
            positions.append(build_position(token, actions, chain, window, closed_threshold))
        except Exception:
            logger.exception(
                "Could not build position for %s on %s",
                getattr(token, "contract_address", "?"), chain.name,
            )

    return positions


def analyze_positions(
    per_chain_raw: Mapping[str, Mapping[str, Any]],
    user_address: str,
    window: int = CORRELATION_WINDOW_SECONDS,
    closed_threshold: float = CLOSED_BALANCE_THRESHOLD,
) -> list[Position]:
    """
    Detect LP positions across chains from raw explorer data.

    Args:
        per_chain_raw: chain key -> {"transactions": [...], "tokenTransfers": [...]}
        user_address: Wallet being analyzed

    Returns:
        Unvalued positions for every chain, in chain order
    """
    all_positions: list[Position] = []

    for chain_key, data in per_chain_raw.items():
        chain = get_chain_by_name(chain_key)
        if chain is None:
            logger.warning("Skipping unsupported chain %r", chain_key)
            continue

        data = data or {}
        if not isinstance(data, Mapping):
            logger.warning("Skipping %s: expected a mapping, got %s", chain.name, type(data).__name__)
            continue

        transfers = data.get("tokenTransfers") or data.get("token_transfers") or []
        transactions = data.get("transactions") or []

        try:
            lp_tokens = aggregate_balances(transfers, user_address)
            actions = detect_lp_actions(transactions, chain.name)
            positions = build_positions(lp_tokens, actions, chain, window, closed_threshold)
        except Exception:
            logger.exception("Position analysis failed for %s", chain.name)
            continue

        logger.info(
            "%s: %d LP tokens, %d protocol actions, %d positions",
            chain.name, len(lp_tokens), len(actions), len(positions),
        )
        all_positions.extend(positions)

    return all_positions
