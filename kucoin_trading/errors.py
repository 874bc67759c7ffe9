"""
KuCoin Trading - Error Taxonomy and Mapping.

============================================================
PURPOSE
============================================================
Exceptions raised before any network I/O, plus the mapping of
KuCoin response codes to a unified error record.

RAISED (fail fast, no request is sent):
- ConfigurationError - Missing or invalid credentials/config
- ValidationError    - Malformed order request

RETURNED (never raised, see types.OrderResult):
- Rejected        - Exchange explicitly declined
- TransportError  - Network/parse failure, outcome unknown

============================================================
"""

import logging
from enum import Enum
from typing import Optional, Dict, Any, Tuple, List
from dataclasses import dataclass


logger = logging.getLogger(__name__)


# ============================================================
# EXCEPTIONS
# ============================================================

class KucoinTradingError(Exception):
    """Base exception for the trading gateway."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging/responses."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "context": self.context,
        }


class ConfigurationError(KucoinTradingError):
    """Required configuration is missing or invalid."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        context = {"missing": list(missing)} if missing else {}
        super().__init__(message, context=context)
        self.missing = list(missing or [])


class ValidationError(KucoinTradingError):
    """Order request or action failed validation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, context={"field": field} if field else {})
        self.field = field


# ============================================================
# ERROR TAXONOMY
# ============================================================

class ErrorCategory(Enum):
    """Standardized error categories."""

    NETWORK = "NETWORK"
    RATE_LIMIT = "RATE_LIMIT"
    AUTHENTICATION = "AUTHENTICATION"
    INVALID_ORDER = "INVALID_ORDER"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    EXCHANGE_ERROR = "EXCHANGE_ERROR"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    SYMBOL_NOT_FOUND = "SYMBOL_NOT_FOUND"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    UNKNOWN = "UNKNOWN"


class RetryEligibility(Enum):
    """Whether a caller may consider retrying."""

    RETRY = "RETRY"           # Safe to retry with a fresh timestamp
    NO_RETRY = "NO_RETRY"     # Should not retry
    BACKOFF = "BACKOFF"       # Retry with exponential backoff


@dataclass(frozen=True)
class ExchangeError:
    """
    Standardized exchange error.

    The exchange's own code and message are kept verbatim.
    """

    category: ErrorCategory
    code: str
    message: str
    retry_eligible: RetryEligibility
    http_status: Optional[int] = None

    def is_retryable(self) -> bool:
        """Check if error is retryable."""
        return self.retry_eligible in (RetryEligibility.RETRY, RetryEligibility.BACKOFF)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "category": self.category.value,
            "code": self.code,
            "message": self.message,
            "retry_eligible": self.retry_eligible.value,
            "http_status": self.http_status,
        }

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.code}: {self.message}"


# ============================================================
# KUCOIN ERROR MAPPING
# ============================================================

KUCOIN_ERROR_MAP: Dict[str, Tuple[ErrorCategory, RetryEligibility]] = {
    # Authentication
    "400001": (ErrorCategory.AUTHENTICATION, RetryEligibility.NO_RETRY),
    "400002": (ErrorCategory.AUTHENTICATION, RetryEligibility.RETRY),  # timestamp skew
    "400003": (ErrorCategory.AUTHENTICATION, RetryEligibility.NO_RETRY),
    "400004": (ErrorCategory.AUTHENTICATION, RetryEligibility.NO_RETRY),
    "400005": (ErrorCategory.AUTHENTICATION, RetryEligibility.NO_RETRY),
    "400006": (ErrorCategory.AUTHENTICATION, RetryEligibility.NO_RETRY),
    "400007": (ErrorCategory.AUTHENTICATION, RetryEligibility.NO_RETRY),
    "411100": (ErrorCategory.AUTHENTICATION, RetryEligibility.NO_RETRY),

    # Request validation
    "400100": (ErrorCategory.INVALID_ORDER, RetryEligibility.NO_RETRY),
    "404000": (ErrorCategory.INVALID_ORDER, RetryEligibility.NO_RETRY),
    "415000": (ErrorCategory.INVALID_ORDER, RetryEligibility.NO_RETRY),
    "900001": (ErrorCategory.SYMBOL_NOT_FOUND, RetryEligibility.NO_RETRY),
    "400400": (ErrorCategory.ORDER_NOT_FOUND, RetryEligibility.NO_RETRY),

    # Funds
    "200004": (ErrorCategory.INSUFFICIENT_FUNDS, RetryEligibility.NO_RETRY),
    "230003": (ErrorCategory.INSUFFICIENT_FUNDS, RetryEligibility.NO_RETRY),

    # Rate limiting
    "429000": (ErrorCategory.RATE_LIMIT, RetryEligibility.BACKOFF),

    # Exchange internal
    "500000": (ErrorCategory.EXCHANGE_ERROR, RetryEligibility.RETRY),
}


def map_kucoin_error(
    code: Optional[str],
    message: str,
    http_status: Optional[int] = None,
) -> ExchangeError:
    """
    Map a KuCoin error to the unified format.

    Args:
        code: KuCoin response code (None when the body had none)
        message: KuCoin message, kept verbatim
        http_status: HTTP status code

    Returns:
        Unified ExchangeError
    """
    code = str(code) if code is not None else ""

    if code in KUCOIN_ERROR_MAP:
        category, retry = KUCOIN_ERROR_MAP[code]
    elif http_status == 429:
        category = ErrorCategory.RATE_LIMIT
        retry = RetryEligibility.BACKOFF
    elif http_status in (401, 403):
        category = ErrorCategory.AUTHENTICATION
        retry = RetryEligibility.NO_RETRY
    elif http_status and http_status >= 500:
        category = ErrorCategory.EXCHANGE_ERROR
        retry = RetryEligibility.RETRY
    else:
        category = ErrorCategory.UNKNOWN
        retry = RetryEligibility.NO_RETRY

    return ExchangeError(
        category=category,
        code=code,
        message=message,
        retry_eligible=retry,
        http_status=http_status,
    )
