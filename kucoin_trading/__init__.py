"""
KuCoin Trading Package.

============================================================
PURPOSE
============================================================
Authenticated KuCoin spot trading with a risk-capped
position sizer.

CRITICAL PRINCIPLE:
    "An order is sized by the loss at its stop, not by
    available balance."

============================================================
MODULES
============================================================
- types: Order requests, tagged results, batch outcomes
- config: Credentials, risk, client and batch settings
- errors: Exceptions and exchange error mapping
- signer: HMAC-SHA256 request signing
- payload: Order validation and JSON body construction
- client: Signed REST client
- sizing: Position sizer / risk gate
- executor: Sequential batch submission
- analysis: Analysis interface and placeholder engine
- dispatch: Action dispatch table
- api: HTTP gateway (FastAPI)
- cli: Command-line interface

============================================================
"""

# ============================================================
# TYPES
# ============================================================
from .types import (
    # Enums
    OrderSide,
    OrderType,
    TimeInForce,
    StopType,
    OutcomeStatus,
    # Requests
    OrderRequest,
    SignedRequest,
    # Results
    OrderResult,
    Success,
    Rejected,
    TransportError,
    NoValidSize,
    # Data
    MarketSnapshot,
    AccountBalance,
    OrderStatus,
    # Batch
    TradeCandidate,
    ExecutionOutcome,
    BatchReport,
)

# ============================================================
# CONFIG
# ============================================================
from .config import (
    Credentials,
    RiskParameters,
    ClientConfig,
    BatchConfig,
    TradingConfig,
    KUCOIN_BASE_URL,
    DEFAULT_SYMBOLS,
)

# ============================================================
# ERRORS
# ============================================================
from .errors import (
    KucoinTradingError,
    ConfigurationError,
    ValidationError,
    ErrorCategory,
    RetryEligibility,
    ExchangeError,
    map_kucoin_error,
)

# ============================================================
# CORE
# ============================================================
from .signer import RequestSigner, sign, encode_passphrase
from .payload import build_order_payload, build_order_dict, validate_order_request
from .client import KucoinClient, classify_response
from .sizing import PositionSizer, calculate_position_size, quantize_quantity
from .executor import BatchExecutor
from .analysis import (
    AnalysisEngine,
    PlaceholderAnalysisEngine,
    Strategy,
    score_opportunity,
)
from .dispatch import ActionDispatcher


__all__ = [
    # Types
    "OrderSide",
    "OrderType",
    "TimeInForce",
    "StopType",
    "OutcomeStatus",
    "OrderRequest",
    "SignedRequest",
    "OrderResult",
    "Success",
    "Rejected",
    "TransportError",
    "NoValidSize",
    "MarketSnapshot",
    "AccountBalance",
    "OrderStatus",
    "TradeCandidate",
    "ExecutionOutcome",
    "BatchReport",
    # Config
    "Credentials",
    "RiskParameters",
    "ClientConfig",
    "BatchConfig",
    "TradingConfig",
    "KUCOIN_BASE_URL",
    "DEFAULT_SYMBOLS",
    # Errors
    "KucoinTradingError",
    "ConfigurationError",
    "ValidationError",
    "ErrorCategory",
    "RetryEligibility",
    "ExchangeError",
    "map_kucoin_error",
    # Core
    "RequestSigner",
    "sign",
    "encode_passphrase",
    "build_order_payload",
    "build_order_dict",
    "validate_order_request",
    "KucoinClient",
    "classify_response",
    "PositionSizer",
    "calculate_position_size",
    "quantize_quantity",
    "BatchExecutor",
    "AnalysisEngine",
    "PlaceholderAnalysisEngine",
    "Strategy",
    "score_opportunity",
    "ActionDispatcher",
]
