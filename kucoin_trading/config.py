"""
KuCoin Trading - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the trading gateway.

LIFECYCLE:
- Loaded once at start-up (environment / .env file)
- Validated immediately, fail fast
- Passed explicitly to the signer, client and executor
- Immutable for the process lifetime

============================================================
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Tuple

from dotenv import load_dotenv

from .errors import ConfigurationError


KUCOIN_BASE_URL = "https://api.kucoin.com"

DEFAULT_SYMBOLS: Tuple[str, ...] = (
    "BTC-USDT",
    "ETH-USDT",
    "ADA-USDT",
    "SOL-USDT",
    "MATIC-USDT",
)


# ============================================================
# CREDENTIALS
# ============================================================

@dataclass(frozen=True)
class Credentials:
    """
    Exchange API credentials.

    Never persisted. Excluded from repr.
    """

    api_key: str = field(repr=False)
    api_secret: str = field(repr=False)
    passphrase: str = field(repr=False)
    key_version: str = "2"

    def missing_fields(self) -> List[str]:
        """Names of empty credential fields."""
        return [
            name for name in ("api_key", "api_secret", "passphrase", "key_version")
            if not getattr(self, name)
        ]

    def validate(self) -> "Credentials":
        """
        Raise ConfigurationError if any field is empty.

        Returns:
            self, for chaining
        """
        missing = self.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing KuCoin API credentials: {', '.join(missing)}",
                missing=missing,
            )
        return self

    @classmethod
    def from_env(cls, prefix: str = "KUCOIN") -> "Credentials":
        """
        Read credentials from environment variables.

        Does not validate; call validate() at start-up.
        """
        load_dotenv()
        return cls(
            api_key=os.environ.get(f"{prefix}_API_KEY", ""),
            api_secret=os.environ.get(f"{prefix}_API_SECRET", ""),
            passphrase=os.environ.get(f"{prefix}_API_PASSPHRASE", ""),
            key_version=os.environ.get(f"{prefix}_API_KEY_VERSION", "2"),
        )


# ============================================================
# RISK PARAMETERS
# ============================================================

@dataclass(frozen=True)
class RiskParameters:
    """
    Position sizing inputs.

    Configuration, not exchange state.
    """

    account_capital: Decimal
    """Capital the risk fraction applies to (quote currency)."""

    max_risk_fraction: Decimal = Decimal("0.04")
    """Maximum fraction of capital lost if the stop is hit."""

    min_notional: Decimal = Decimal("1")
    """Exchange minimum order value (quote currency)."""

    def validate(self) -> List[str]:
        """Return validation errors."""
        errors = []
        if self.account_capital <= 0:
            errors.append("account_capital must be positive")
        if not (Decimal("0") < self.max_risk_fraction <= Decimal("1")):
            errors.append("max_risk_fraction must be in (0, 1]")
        if self.min_notional < 0:
            errors.append("min_notional must not be negative")
        return errors

    @property
    def risk_budget(self) -> Decimal:
        """Capital at risk per trade."""
        return self.account_capital * self.max_risk_fraction


# ============================================================
# CLIENT CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class ClientConfig:
    """HTTP client configuration."""

    base_url: str = KUCOIN_BASE_URL
    """REST API base URL."""

    timeout_seconds: Optional[float] = None
    """Total request timeout. None leaves deadlines to the caller."""


# ============================================================
# BATCH CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class BatchConfig:
    """Sequential batch submission settings."""

    order_delay_seconds: float = 1.0
    """Pause between submissions (exchange rate limits)."""

    max_daily_trades: int = 5
    """Orders placed per UTC day."""

    quantity_step: Decimal = Decimal("0.000001")
    """Sized quantities are rounded down to this step."""

    reconcile_on_transport_error: bool = True
    """Look the order up by clientOid when the outcome is unknown."""

    attach_stop_price: bool = False
    """Send the stop loss as stop/stopPrice on the entry order."""


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass
class TradingConfig:
    """Master configuration."""

    credentials: Optional[Credentials] = None
    risk: RiskParameters = field(
        default_factory=lambda: RiskParameters(account_capital=Decimal("100"))
    )
    client: ClientConfig = field(default_factory=ClientConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    symbols: Tuple[str, ...] = DEFAULT_SYMBOLS

    def validate(self) -> List[str]:
        """Return validation errors (credentials are checked separately)."""
        errors = list(self.risk.validate())
        if self.batch.order_delay_seconds < 0:
            errors.append("order_delay_seconds must not be negative")
        if self.batch.max_daily_trades < 0:
            errors.append("max_daily_trades must not be negative")
        if self.batch.quantity_step <= 0:
            errors.append("quantity_step must be positive")
        if not self.symbols:
            errors.append("at least one symbol is required")
        return errors

    @classmethod
    def from_env(cls) -> "TradingConfig":
        """
        Build configuration from environment variables.

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        load_dotenv()

        symbols_env = os.environ.get("KUCOIN_SYMBOLS", "")
        symbols = tuple(
            s.strip() for s in symbols_env.split(",") if s.strip()
        ) or DEFAULT_SYMBOLS

        return cls(
            credentials=Credentials.from_env(),
            risk=RiskParameters(
                account_capital=_env_decimal("ACCOUNT_CAPITAL", "100"),
                max_risk_fraction=_env_decimal("MAX_RISK_FRACTION", "0.04"),
                min_notional=_env_decimal("MIN_NOTIONAL", "1"),
            ),
            client=ClientConfig(
                base_url=os.environ.get("KUCOIN_BASE_URL", KUCOIN_BASE_URL),
                timeout_seconds=_env_float("KUCOIN_TIMEOUT_SECONDS", None),
            ),
            batch=BatchConfig(
                order_delay_seconds=_env_float("ORDER_DELAY_SECONDS", 1.0),
                max_daily_trades=_env_int("MAX_DAILY_TRADES", 5),
            ),
            symbols=symbols,
        )


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.environ.get(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise ConfigurationError(f"Invalid decimal for {name}: {raw!r}")


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid number for {name}: {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid integer for {name}: {raw!r}")
