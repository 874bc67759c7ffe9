"""
KuCoin Trading - Authenticated REST Client.

============================================================
PURPOSE
============================================================
Signed HTTP dispatch to the KuCoin spot REST API.

ENDPOINTS:
- GET  /api/v1/market/allTickers            (public)
- POST /api/v1/orders
- GET  /api/v1/orders/{orderId}
- GET  /api/v1/order/client-order/{clientOid}
- GET  /api/v1/accounts

RESPONSE CLASSIFICATION:
- Network error / timeout / non-JSON body -> TransportError
- code == "200000"                        -> Success
- anything else, or no code               -> Rejected
  (exchange code and message verbatim)

No retries happen here. A TransportError means the outcome
is unknown; reconcile with an order lookup before resubmitting.

============================================================
API DOCUMENTATION
============================================================
https://www.kucoin.com/docs/basic-info/connection-method/authentication

============================================================
"""

import asyncio
import json
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import quote, urlencode

import aiohttp

from .config import ClientConfig, Credentials, DEFAULT_SYMBOLS
from .errors import ConfigurationError, ErrorCategory, ValidationError, map_kucoin_error
from .logging_utils import ClientLogger
from .metrics import ClientMetrics
from .payload import build_order_dict, serialize_payload
from .signer import RequestSigner
from .types import (
    AccountBalance,
    MarketSnapshot,
    OrderRequest,
    OrderResult,
    OrderStatus,
    Rejected,
    Success,
    TransportError,
)


logger = logging.getLogger(__name__)


# ============================================================
# CONSTANTS
# ============================================================

SUCCESS_CODE = "200000"

ALL_TICKERS_PATH = "/api/v1/market/allTickers"
ORDERS_PATH = "/api/v1/orders"
CLIENT_ORDER_PATH = "/api/v1/order/client-order"
ACCOUNTS_PATH = "/api/v1/accounts"

MALFORMED_SUCCESS_MESSAGE = "malformed success response: missing orderId"
MALFORMED_ORDER_MESSAGE = "malformed success response: missing order data"
MALFORMED_ACCOUNTS_MESSAGE = "malformed success response: unreadable account data"
MALFORMED_NUMBER_MESSAGE = "malformed success response: non-numeric order field"

MarketDataResult = Union[MarketSnapshot, Rejected, TransportError]
OrderStatusResult = Union[OrderStatus, Rejected, TransportError]
AccountsResult = Union[List[AccountBalance], Rejected, TransportError]


# ============================================================
# RESPONSE CLASSIFICATION
# ============================================================

def classify_response(
    status: int,
    body: Union[bytes, str],
    require_order_id: bool = False,
) -> OrderResult:
    """
    Classify a raw HTTP response.

    Args:
        status: HTTP status code
        body: Raw response body (bytes are decoded as UTF-8)
        require_order_id: Whether success must carry data.orderId

    Returns:
        Success, Rejected or TransportError
    """
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return TransportError(f"Non-JSON response from exchange (HTTP {status}): invalid UTF-8")

    try:
        payload = json.loads(body)
    except ValueError:
        return TransportError(f"Non-JSON response from exchange (HTTP {status})")

    if not isinstance(payload, dict):
        return TransportError(f"Unexpected response shape from exchange (HTTP {status})")

    code = payload.get("code")
    code = str(code) if code is not None else None
    data = payload.get("data")

    if code == SUCCESS_CODE:
        if not require_order_id:
            return Success(data=data)

        order_id = data.get("orderId") if isinstance(data, dict) else None
        if not order_id:
            return Rejected(
                code=code,
                message=MALFORMED_SUCCESS_MESSAGE,
                category=ErrorCategory.MALFORMED_RESPONSE,
                http_status=status,
            )
        return Success(order_id=str(order_id), data=data)

    message = payload.get("msg")
    if message is None:
        message = "response has no code" if code is None else f"exchange returned code {code}"

    error = map_kucoin_error(code, str(message), status)
    return Rejected(
        code=code,
        message=str(message),
        category=error.category,
        http_status=status,
    )


def _malformed(message: str) -> Rejected:
    """Exchange answered 200000 but the data cannot be read."""
    return Rejected(
        code=SUCCESS_CODE,
        message=message,
        category=ErrorCategory.MALFORMED_RESPONSE,
    )


# ============================================================
# CLIENT
# ============================================================

class KucoinClient:
    """
    KuCoin spot REST client.

    Credentials are optional; without them only public market
    data is available and authenticated calls raise
    ConfigurationError before any I/O.
    """

    def __init__(
        self,
        credentials: Optional[Credentials] = None,
        config: Optional[ClientConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        clock=None,
    ):
        """
        Initialize client.

        Args:
            credentials: API credentials (validated immediately)
            config: Client configuration
            session: Externally owned aiohttp session
            clock: Timestamp source for signing
        """
        self._config = config or ClientConfig()
        self._signer = RequestSigner(credentials, clock) if credentials is not None else None

        self._session = session
        self._owns_session = session is None

        self._metrics = ClientMetrics()
        self._logger = ClientLogger()

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def base_url(self) -> str:
        return self._config.base_url.rstrip("/")

    @property
    def is_authenticated(self) -> bool:
        return self._signer is not None

    @property
    def metrics(self) -> ClientMetrics:
        return self._metrics

    # --------------------------------------------------------
    # CONNECTION
    # --------------------------------------------------------

    async def connect(self) -> None:
        """Create the HTTP session if needed."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "KucoinClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --------------------------------------------------------
    # REQUEST HANDLING
    # --------------------------------------------------------

    async def send(
        self,
        method: str,
        path: str,
        body: str = "",
        authenticated: bool = True,
        require_order_id: bool = False,
        operation: Optional[str] = None,
    ) -> OrderResult:
        """
        Send one request and classify the response.

        The timestamp and signature are generated here, at send time.

        Args:
            method: HTTP method
            path: Path including query string
            body: Exact body string to sign and send
            authenticated: Whether to attach KC-API-* headers
            require_order_id: Treat success without orderId as Rejected
            operation: Name used in logs and metrics

        Returns:
            Success, Rejected or TransportError

        Raises:
            ConfigurationError: Authenticated call without credentials
        """
        method = method.upper()
        operation = operation or path

        if authenticated:
            if self._signer is None:
                raise ConfigurationError(
                    "Missing KuCoin API credentials",
                    missing=["api_key", "api_secret", "passphrase"],
                )
            signed = self._signer.sign_request(method, path, body)
            headers = self._signer.headers(signed)
        else:
            headers = {"Content-Type": "application/json"}

        if self._session is None:
            await self.connect()

        request_id = self._logger.log_request(
            operation=operation,
            method=method,
            path=path,
            headers=headers,
            body=body,
        )

        status = None
        start_time = time.monotonic()

        try:
            async with self._session.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                data=body if body else None,
            ) as response:
                status = response.status
                raw = await response.read()
        except aiohttp.ClientError as e:
            result = TransportError(f"Network error: {e}")
        except asyncio.TimeoutError:
            result = TransportError("Request timed out")
        else:
            result = classify_response(status, raw, require_order_id)

        latency_ms = (time.monotonic() - start_time) * 1000
        self._metrics.record_request(path.split("?")[0], latency_ms, result.kind)
        self._logger.log_response(
            operation=operation,
            request_id=request_id,
            outcome=result.kind,
            latency_ms=latency_ms,
            status_code=status,
            code=getattr(result, "code", None),
            message=getattr(result, "message", None),
        )

        return result

    # --------------------------------------------------------
    # MARKET DATA
    # --------------------------------------------------------

    async def get_market_data(
        self,
        symbols: Optional[Iterable[str]] = None,
    ) -> MarketDataResult:
        """
        Last prices for the requested symbols.

        Args:
            symbols: Symbols to keep (default: DEFAULT_SYMBOLS)

        Returns:
            MarketSnapshot, or the Rejected/TransportError result
        """
        wanted = set(symbols or DEFAULT_SYMBOLS)

        result = await self.send(
            "GET",
            ALL_TICKERS_PATH,
            authenticated=False,
            operation="get_market_data",
        )
        if not isinstance(result, Success):
            return result

        data = result.data if isinstance(result.data, dict) else {}
        found: List[str] = []
        prices: Dict[str, Decimal] = {}

        for ticker in data.get("ticker") or []:
            symbol = ticker.get("symbol")
            if symbol not in wanted or symbol in found:
                continue
            found.append(symbol)
            try:
                price = Decimal(str(ticker.get("last")))
            except InvalidOperation:
                continue
            if price.is_finite():
                prices[symbol] = price

        return MarketSnapshot(symbols=tuple(found), prices=prices)

    # --------------------------------------------------------
    # ORDERS
    # --------------------------------------------------------

    async def place_order(self, request: OrderRequest) -> OrderResult:
        """
        Place an order.

        Raises:
            ValidationError: Malformed request (nothing is sent)
            ConfigurationError: No credentials (nothing is sent)
        """
        payload = build_order_dict(request)
        body = serialize_payload(payload)

        result = await self.send(
            "POST",
            ORDERS_PATH,
            body,
            require_order_id=True,
            operation="place_order",
        )

        if isinstance(result, Success):
            self._metrics.record_order_placed()
        elif isinstance(result, Rejected):
            self._metrics.record_order_rejected(result.code)

        self._logger.log_order(
            client_oid=payload["clientOid"],
            symbol=payload["symbol"],
            side=payload["side"],
            order_type=payload["type"],
            outcome=result.kind,
            order_id=getattr(result, "order_id", None),
            code=getattr(result, "code", None),
            message=getattr(result, "message", None),
        )

        return result

    async def get_order(self, order_id: str) -> OrderStatusResult:
        """Order details by exchange order ID."""
        if not order_id:
            raise ValidationError("order_id is required", field="order_id")

        path = f"{ORDERS_PATH}/{quote(str(order_id), safe='')}"
        return self._to_order_status(
            await self.send("GET", path, operation="get_order")
        )

    async def get_order_by_client_oid(self, client_oid: str) -> OrderStatusResult:
        """Order details by clientOid, for reconciling unknown outcomes."""
        if not client_oid:
            raise ValidationError("client_oid is required", field="client_oid")

        path = f"{CLIENT_ORDER_PATH}/{quote(str(client_oid), safe='')}"
        return self._to_order_status(
            await self.send("GET", path, operation="get_order_by_client_oid")
        )

    @staticmethod
    def _to_order_status(result: OrderResult) -> OrderStatusResult:
        if not isinstance(result, Success):
            return result
        if not isinstance(result.data, dict) or not result.data:
            return _malformed(MALFORMED_ORDER_MESSAGE)
        try:
            return OrderStatus.from_response(result.data)
        except InvalidOperation:
            return _malformed(MALFORMED_NUMBER_MESSAGE)

    # --------------------------------------------------------
    # ACCOUNT
    # --------------------------------------------------------

    async def get_accounts(
        self,
        currency: Optional[str] = None,
        account_type: Optional[str] = None,
    ) -> AccountsResult:
        """
        Account balances.

        Args:
            currency: Filter by currency (e.g. USDT)
            account_type: Filter by type (main, trade, margin)
        """
        params = {}
        if currency:
            params["currency"] = currency
        if account_type:
            params["type"] = account_type

        path = ACCOUNTS_PATH
        if params:
            path = f"{path}?{urlencode(params)}"

        result = await self.send("GET", path, operation="get_accounts")
        if not isinstance(result, Success):
            return result

        accounts = result.data or []
        if not isinstance(accounts, list) or not all(isinstance(a, dict) for a in accounts):
            return _malformed(MALFORMED_ACCOUNTS_MESSAGE)
        try:
            return [AccountBalance.from_response(account) for account in accounts]
        except InvalidOperation:
            return _malformed(MALFORMED_ACCOUNTS_MESSAGE)
