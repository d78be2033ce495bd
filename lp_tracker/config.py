"""Configuration management for the LP tracker."""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .chains import API_KEY_ENV, CHAINS, ChainConfig


# Load .env file from project root
_project_root = Path(__file__).parent.parent
_env_path = _project_root / ".env"
_config_path = _project_root / "config.json"

load_dotenv(_env_path)

logger = logging.getLogger(__name__)

# Defaults (used when config.json is missing or incomplete)
_DEFAULTS = {
    "correlation_window_seconds": 60,   # transfer <-> action attribution window
    "closed_balance_threshold": 1e-6,   # balance below this = closed position
    "placeholder_scalar": 100.0,        # underlying tokens per LP unit (stub)
    "price_cache_ttl_seconds": 30.0,
    "max_transactions": 10000,
}


def _load_config_json(path: Path | None = None) -> dict:
    """Load config.json from project root. Returns empty dict if missing."""
    path = path or _config_path
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Could not parse %s: %s -- using defaults", path, e)
        return {}


@dataclass
class Heuristics:
    """Knobs of the position detection heuristics."""
    correlation_window_seconds: int = _DEFAULTS["correlation_window_seconds"]
    closed_balance_threshold: float = _DEFAULTS["closed_balance_threshold"]
    placeholder_scalar: float = _DEFAULTS["placeholder_scalar"]


@dataclass
class Config:
    """Application configuration."""
    # Explorer API keys, by chain key
    api_keys: dict[str, str]

    heuristics: Heuristics = field(default_factory=Heuristics)

    # Chain keys to scan
    chains: list[str] = field(default_factory=lambda: list(CHAINS))

    price_cache_ttl: float = _DEFAULTS["price_cache_ttl_seconds"]
    custom_prices: dict[str, float] = field(default_factory=dict)
    max_transactions: int = _DEFAULTS["max_transactions"]
    coingecko_base_url: str | None = None
    log_level: str = "INFO"

    def chain_configs(self) -> list[ChainConfig]:
        """Enabled chains, each carrying its explorer API key."""
        return [
            CHAINS[key].with_api_key(self.api_keys.get(key, ""))
            for key in self.chains
        ]

    @classmethod
    def from_env(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from .env + config.json."""
        api_keys = {
            chain_key: os.getenv(env_var, "")
            for chain_key, env_var in API_KEY_ENV.items()
        }

        # Read user-editable config.json
        user_cfg = _load_config_json(config_path)
        h_cfg = user_cfg.get("heuristics", {})

        heuristics = Heuristics(
            correlation_window_seconds=int(h_cfg.get(
                "correlation_window_seconds", _DEFAULTS["correlation_window_seconds"]
            )),
            closed_balance_threshold=float(h_cfg.get(
                "closed_balance_threshold", _DEFAULTS["closed_balance_threshold"]
            )),
            placeholder_scalar=float(h_cfg.get(
                "placeholder_scalar", _DEFAULTS["placeholder_scalar"]
            )),
        )

        chains = [str(c).lower() for c in user_cfg.get("chains", list(CHAINS))]
        unknown = [c for c in chains if c not in CHAINS]
        if unknown:
            raise ValueError(
                f"Unsupported chain(s) in config.json: {', '.join(unknown)}\n"
                f"Supported chains: {', '.join(CHAINS)}"
            )

        custom_prices = {
            str(symbol).upper(): float(price)
            for symbol, price in user_cfg.get("custom_prices", {}).items()
        }

        return cls(
            api_keys=api_keys,
            heuristics=heuristics,
            chains=chains,
            price_cache_ttl=float(user_cfg.get(
                "price_cache_ttl_seconds", _DEFAULTS["price_cache_ttl_seconds"]
            )),
            custom_prices=custom_prices,
            max_transactions=int(user_cfg.get(
                "max_transactions", _DEFAULTS["max_transactions"]
            )),
            coingecko_base_url=os.getenv("COINGECKO_BASE_URL") or None,
            log_level=os.getenv("LP_TRACKER_LOG_LEVEL", "INFO").upper(),
        )

    @classmethod
    def load(cls) -> "Config":
        """Load configuration, with helpful error messages."""
        try:
            return cls.from_env()
        except ValueError as e:
            print(f"\n[ERROR] Configuration Error:\n{e}\n")
            print("Setup instructions:")
            print("1. Copy .env.example to .env and add explorer API keys")
            print("   (ETHERSCAN_API_KEY, POLYGONSCAN_API_KEY, BASESCAN_API_KEY, ...)")
            print("2. Optionally create config.json to choose chains and tune heuristics\n")
            raise


def get_config() -> Config:
    """Get the application configuration (loaded once)."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


_config: Config | None = None
