"""Data models for the LP tracker."""

from dataclasses import asdict, dataclass, field, fields, is_dataclass
from enum import Enum
from typing import Any

from .protocols import UNKNOWN_PROTOCOL, ProtocolMetadata


class TxType(str, Enum):
    """Semantic action of an LP-protocol transaction."""
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    COLLECT_FEES = "collect_fees"
    SWAP = "swap"
    TRANSFER = "transfer"
    UNKNOWN = "unknown"


class PositionStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    PARTIAL = "partial"


def _text(value: Any, default: str = "") -> str:
    """Explorer field as a string; None and empty values become ``default``."""
    if value is None or value == "":
        return default
    return str(value)


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class RawTransaction:
    """A normal transaction as returned by an Etherscan-style explorer."""
    hash: str
    from_address: str
    to_address: str
    value: str              # Wei, string-encoded integer
    input: str
    timestamp: int
    gas_used: str = "0"
    gas_price: str = "0"

    @classmethod
    def from_explorer(cls, data: dict[str, Any]) -> "RawTransaction":
        """Create RawTransaction from an explorer ``txlist`` entry."""
        return cls(
            hash=_text(data.get("hash")),
            from_address=_text(data.get("from")).lower(),
            to_address=_text(data.get("to")).lower(),
            value=_text(data.get("value"), "0"),
            input=_text(data.get("input")),
            timestamp=_to_int(data.get("timeStamp")),
            gas_used=_text(data.get("gasUsed"), "0"),
            gas_price=_text(data.get("gasPrice"), "0"),
        )


@dataclass(frozen=True)
class RawTokenTransfer:
    """An ERC20 transfer as returned by the explorer ``tokentx`` action."""
    hash: str
    from_address: str
    to_address: str
    contract_address: str
    token_symbol: str
    token_name: str
    value: str              # Raw amount (before decimals)
    token_decimal: str
    timestamp: int

    @classmethod
    def from_explorer(cls, data: dict[str, Any]) -> "RawTokenTransfer":
        return cls(
            hash=_text(data.get("hash")),
            from_address=_text(data.get("from")).lower(),
            to_address=_text(data.get("to")).lower(),
            contract_address=_text(data.get("contractAddress")).lower(),
            token_symbol=_text(data.get("tokenSymbol")),
            token_name=_text(data.get("tokenName")),
            value=_text(data.get("value"), "0"),
            token_decimal=_text(data.get("tokenDecimal")),
            timestamp=_to_int(data.get("timeStamp")),
        )


@dataclass(frozen=True)
class LPTransfer:
    """One transfer contributing to an LP token balance."""
    hash: str
    timestamp: int
    direction: str          # receive, send or self
    value: float            # Signed, after decimals


@dataclass
class LPToken:
    """An LP token held (or once held) by the user on one chain."""
    contract_address: str
    symbol: str
    name: str
    decimals: int = 18
    balance: float = 0.0
    transfers: list[LPTransfer] = field(default_factory=list)


@dataclass(frozen=True)
class ClassifiedAction:
    """A protocol transaction tagged with its semantic action."""
    hash: str
    from_address: str
    to_address: str
    tx_type: TxType
    protocol: str
    protocol_key: str
    chain_name: str
    timestamp: int
    value: float            # Native currency units
    gas_used: int = 0
    gas_price: float = 0.0  # Gwei
    method_id: str = ""


@dataclass(frozen=True)
class TokenPair:
    token0: str
    token1: str
    display_name: str


@dataclass(frozen=True)
class LPTokenSummary:
    symbol: str
    name: str
    balance: float
    decimals: int


@dataclass(frozen=True)
class ActionCounts:
    adds: int = 0
    removes: int = 0
    fee_collections: int = 0


@dataclass(frozen=True)
class AmountPair:
    """A (token0, token1) pair of prices or amounts."""
    token0: float = 0.0
    token1: float = 0.0


@dataclass(frozen=True)
class TokenAmounts:
    initial: AmountPair = field(default_factory=AmountPair)
    current: AmountPair = field(default_factory=AmountPair)


@dataclass(frozen=True)
class ImpermanentLoss:
    value: float = 0.0
    percent: float = 0.0
    hold_value: float = 0.0
    lp_value: float = 0.0


@dataclass(frozen=True)
class Position:
    """
    An LP position reconstructed from explorer data.

    Identity is ``{chain}_{contract_address}``, so rebuilding from the same
    inputs always yields the same id. Valuation fields stay zeroed until
    the valuation engine fills them in.
    """
    id: str
    contract_address: str
    lp_token: LPTokenSummary
    token_pair: TokenPair
    chain: str
    chain_icon: str = ""
    protocol: ProtocolMetadata = UNKNOWN_PROTOCOL
    status: PositionStatus = PositionStatus.ACTIVE
    current_balance: float = 0.0
    actions: ActionCounts = field(default_factory=ActionCounts)
    transactions: tuple[ClassifiedAction, ...] = ()
    first_interaction: int | None = None
    last_interaction: int | None = None
    # none, matched or ambiguous: how many actions the window caught per transfer
    attribution_confidence: str = "none"

    initial_value: float = 0.0
    current_value: float = 0.0
    pnl: float = 0.0
    pnl_percent: float = 0.0
    fees_earned: float = 0.0
    impermanent_loss: ImpermanentLoss = field(default_factory=ImpermanentLoss)
    apy: float = 0.0
    token_prices: AmountPair = field(default_factory=AmountPair)
    token_amounts: TokenAmounts = field(default_factory=TokenAmounts)

    @staticmethod
    def make_id(chain_name: str, contract_address: str) -> str:
        return f"{chain_name}_{contract_address}"

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation for the presentation layer."""
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "protocol":
                data[f.name] = {
                    "key": value.key,
                    "name": value.name,
                    "logo": value.logo,
                    "color": value.color,
                }
            elif f.name == "transactions":
                data[f.name] = [
                    {**asdict(tx), "tx_type": tx.tx_type.value} for tx in value
                ]
            elif isinstance(value, Enum):
                data[f.name] = value.value
            elif is_dataclass(value):
                data[f.name] = asdict(value)
            else:
                data[f.name] = value
        return data


@dataclass(frozen=True)
class PortfolioMetrics:
    """Portfolio-wide totals across all positions."""
    total_value: float = 0.0
    total_initial_investment: float = 0.0
    total_pnl: float = 0.0
    total_pnl_percent: float = 0.0
    total_fees_earned: float = 0.0
    total_impermanent_loss: float = 0.0
    active_positions: int = 0
    closed_positions: int = 0
    best_performer: Position | None = None
    worst_performer: Position | None = None
