"""
KuCoin Trading - Secure Logging Utilities.

============================================================
PURPOSE
============================================================
Secure logging for exchange requests with:
- Credential masking (key, signature, passphrase)
- Body hashing instead of body logging
- Structured JSON entries
- Process-wide logging setup

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log raw API keys, secrets or signatures
2. Mask every KC-API-* authentication header
3. Hash request bodies, never log them in full

============================================================
"""

import hashlib
import json
import logging
import sys
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


# ============================================================
# SENSITIVE DATA
# ============================================================

SENSITIVE_HEADERS = {
    "kc-api-key",
    "kc-api-sign",
    "kc-api-passphrase",
    "authorization",
}

SENSITIVE_PARAMS = {
    "apikey",
    "api_key",
    "api_secret",
    "secret",
    "passphrase",
    "signature",
    "sign",
    "passphrase_digest",
}


# ============================================================
# MASKING FUNCTIONS
# ============================================================

def mask_value(value: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """
    Mask sensitive headers.

    The signature is fully redacted; other secrets keep a prefix.
    """
    if not headers:
        return {}

    masked = {}
    for key, value in headers.items():
        lowered = key.lower()
        if lowered == "kc-api-sign":
            masked[key] = "***"
        elif lowered in SENSITIVE_HEADERS:
            masked[key] = mask_value(str(value))
        else:
            masked[key] = value
    return masked


def mask_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Mask sensitive keys, recursing into nested dicts."""
    if not params:
        return {}

    masked = {}
    for key, value in params.items():
        if key.lower() in SENSITIVE_PARAMS:
            masked[key] = "***"
        elif isinstance(value, dict):
            masked[key] = mask_params(value)
        else:
            masked[key] = value
    return masked


def hash_body(body: Optional[str]) -> Optional[str]:
    """Short SHA-256 of a request body."""
    if not body:
        return None
    return hashlib.sha256(body.encode("utf-8")).hexdigest()[:16]


# ============================================================
# LOG ENTRY STRUCTURES
# ============================================================

@dataclass
class RequestLogEntry:
    """Structured log entry for requests."""

    timestamp: str
    operation: str
    method: str
    path: str
    request_id: str
    headers: Dict[str, str] = None
    body_hash: str = None

    def to_json(self) -> str:
        return json.dumps({k: v for k, v in asdict(self).items() if v is not None})


@dataclass
class ResponseLogEntry:
    """Structured log entry for responses."""

    timestamp: str
    operation: str
    request_id: str
    outcome: str
    latency_ms: float
    status_code: int = None
    code: str = None
    message: str = None

    def to_json(self) -> str:
        return json.dumps({k: v for k, v in asdict(self).items() if v is not None})


@dataclass
class OrderLogEntry:
    """Structured log entry for orders."""

    timestamp: str
    client_oid: str
    symbol: str
    side: str
    order_type: str
    outcome: str
    order_id: str = None
    code: str = None
    message: str = None

    def to_json(self) -> str:
        return json.dumps({k: v for k, v in asdict(self).items() if v is not None})


# ============================================================
# CLIENT LOGGER
# ============================================================

class ClientLogger:
    """
    Secure logger for exchange client operations.

    Provides structured logging with automatic credential masking.
    """

    def __init__(self, logger_name: str = "kucoin_trading.client"):
        self._logger = logging.getLogger(logger_name)
        self._request_counter = 0

    def _generate_request_id(self) -> str:
        self._request_counter += 1
        return f"kucoin-{self._request_counter}"

    def log_request(
        self,
        operation: str,
        method: str,
        path: str,
        headers: Dict[str, str] = None,
        body: str = None,
    ) -> str:
        """
        Log outgoing request.

        Returns:
            Request ID for correlation
        """
        request_id = self._generate_request_id()

        entry = RequestLogEntry(
            timestamp=datetime.utcnow().isoformat(),
            operation=operation,
            method=method,
            path=path,
            request_id=request_id,
            headers=mask_headers(headers) if headers else None,
            body_hash=hash_body(body),
        )

        self._logger.debug(f"REQUEST: {entry.to_json()}")
        return request_id

    def log_response(
        self,
        operation: str,
        request_id: str,
        outcome: str,
        latency_ms: float,
        status_code: int = None,
        code: str = None,
        message: str = None,
    ) -> None:
        """Log a classified response."""
        entry = ResponseLogEntry(
            timestamp=datetime.utcnow().isoformat(),
            operation=operation,
            request_id=request_id,
            outcome=outcome,
            latency_ms=round(latency_ms, 2),
            status_code=status_code,
            code=code,
            message=message[:200] if message else None,
        )

        if outcome == "success":
            self._logger.debug(f"RESPONSE: {entry.to_json()}")
        else:
            self._logger.warning(f"RESPONSE_ERROR: {entry.to_json()}")

    def log_order(
        self,
        client_oid: str,
        symbol: str,
        side: str,
        order_type: str,
        outcome: str,
        order_id: str = None,
        code: str = None,
        message: str = None,
    ) -> None:
        """Log order placement result."""
        entry = OrderLogEntry(
            timestamp=datetime.utcnow().isoformat(),
            client_oid=client_oid,
            symbol=symbol,
            side=side,
            order_type=order_type,
            outcome=outcome,
            order_id=order_id,
            code=code,
            message=message[:200] if message else None,
        )

        if outcome == "success":
            self._logger.info(f"ORDER: {entry.to_json()}")
        else:
            self._logger.warning(f"ORDER_ERROR: {entry.to_json()}")


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(level: str = "INFO", log_format: str = "text") -> logging.Logger:
    """
    Set up process-wide logging.

    Args:
        level: Log level
        log_format: Output format (json or text)

    Returns:
        Package logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("kucoin_trading")
