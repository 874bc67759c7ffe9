"""
KuCoin Trading - Types.

============================================================
PURPOSE
============================================================
All value types passed between the sizer, the payload
builder, the signer and the client.

RESULT SHAPE:
    Every exchange call returns exactly one of
    Success / Rejected / TransportError. Nothing is raised
    for exchange-side failures.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple, Union

from .errors import ErrorCategory


# ============================================================
# ORDER ENUMS
# ============================================================

class OrderSide(Enum):
    """Order side."""

    BUY = "buy"
    SELL = "sell"


class OrderType(Enum):
    """Order type."""

    MARKET = "market"
    """Execute at current market price."""

    LIMIT = "limit"
    """Execute at specified price or better."""


class TimeInForce(Enum):
    """Time in force for limit orders."""

    GTC = "GTC"
    """Good Till Canceled."""

    GTT = "GTT"
    """Good Till Time."""

    IOC = "IOC"
    """Immediate Or Cancel."""

    FOK = "FOK"
    """Fill Or Kill."""


class StopType(Enum):
    """Stop trigger direction."""

    LOSS = "loss"
    """Triggers when last price <= stop price."""

    ENTRY = "entry"
    """Triggers when last price >= stop price."""


# ============================================================
# REQUESTS
# ============================================================

@dataclass(frozen=True)
class OrderRequest:
    """
    Caller-supplied order.

    Numeric fields are decimal strings. For a market buy `size`
    is the quote amount to spend.
    """

    symbol: str
    """Trading pair, BASE-QUOTE."""

    side: Union[OrderSide, str]
    """buy or sell."""

    order_type: Union[OrderType, str]
    """market or limit."""

    size: Union[str, Decimal, int]
    """Order size as a decimal string."""

    price: Optional[Union[str, Decimal, int]] = None
    """Limit price (required iff limit)."""

    stop_price: Optional[Union[str, Decimal, int]] = None
    """Stop trigger price."""

    stop: Optional[Union[StopType, str]] = None
    """Stop direction (derived from side when omitted)."""

    time_in_force: Optional[Union[TimeInForce, str]] = None
    """Limit order time in force (GTC when omitted)."""

    client_oid: Optional[str] = None
    """Idempotency token; reuse only to retry the same order."""


@dataclass(frozen=True)
class SignedRequest:
    """
    A request with its authentication material.

    Signature and passphrase are excluded from repr.
    """

    method: str
    path: str
    body: str
    timestamp: str
    key_version: str
    signature: str = field(repr=False)
    passphrase_digest: str = field(repr=False)

    def to_diagnostic_dict(self) -> Dict[str, Any]:
        """Redacted view safe for logs and error payloads."""
        return {
            "method": self.method,
            "path": self.path,
            "body_length": len(self.body),
            "timestamp": self.timestamp,
            "key_version": self.key_version,
            "signature": "***",
            "passphrase": "***",
        }


# ============================================================
# ORDER RESULT (TAGGED VARIANT)
# ============================================================

class OrderResult:
    """Base of the Success / Rejected / TransportError variant."""

    kind: str = ""

    @property
    def is_success(self) -> bool:
        return False


@dataclass(frozen=True)
class Success(OrderResult):
    """Exchange accepted the request."""

    order_id: Optional[str] = None
    data: Any = None

    kind = "success"

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class Rejected(OrderResult):
    """Exchange declined; code and message are the exchange's own."""

    code: Optional[str]
    message: str
    category: ErrorCategory = ErrorCategory.UNKNOWN
    http_status: Optional[int] = None

    kind = "rejected"


@dataclass(frozen=True)
class TransportError(OrderResult):
    """
    Network or parse failure.

    The order may or may not have reached the exchange.
    """

    message: str

    kind = "transport_error"


# ============================================================
# SIZING
# ============================================================

@dataclass(frozen=True)
class NoValidSize:
    """Risk gate declined to produce an order. Not an error."""

    reason: str


# ============================================================
# MARKET / ACCOUNT DATA
# ============================================================

@dataclass(frozen=True)
class MarketSnapshot:
    """Last prices for a set of symbols."""

    symbols: Tuple[str, ...]
    prices: Dict[str, Decimal]
    fetched_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbols": list(self.symbols),
            "prices": {s: str(p) for s, p in self.prices.items()},
        }


@dataclass(frozen=True)
class AccountBalance:
    """Balance of one currency in one account."""

    account_id: str
    currency: str
    account_type: str
    balance: Decimal
    available: Decimal
    holds: Decimal

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "AccountBalance":
        """Build from one entry of the exchange `data` list."""
        return cls(
            account_id=str(data.get("id", "")),
            currency=data.get("currency", ""),
            account_type=data.get("type", ""),
            balance=_decimal(data.get("balance")),
            available=_decimal(data.get("available")),
            holds=_decimal(data.get("holds")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.account_id,
            "currency": self.currency,
            "type": self.account_type,
            "balance": str(self.balance),
            "available": str(self.available),
            "holds": str(self.holds),
        }


@dataclass(frozen=True)
class OrderStatus:
    """Order details from GET /api/v1/orders/{orderId}."""

    order_id: str
    client_oid: Optional[str]
    symbol: str
    side: str
    order_type: str
    is_active: bool
    cancel_exist: bool
    size: Decimal
    funds: Decimal
    deal_size: Decimal
    deal_funds: Decimal
    price: Decimal
    created_at: Optional[int] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "OrderStatus":
        """Build from the exchange `data` object."""
        return cls(
            order_id=str(data.get("id", "")),
            client_oid=data.get("clientOid"),
            symbol=data.get("symbol", ""),
            side=data.get("side", ""),
            order_type=data.get("type", ""),
            is_active=bool(data.get("isActive", False)),
            cancel_exist=bool(data.get("cancelExist", False)),
            size=_decimal(data.get("size")),
            funds=_decimal(data.get("funds")),
            deal_size=_decimal(data.get("dealSize")),
            deal_funds=_decimal(data.get("dealFunds")),
            price=_decimal(data.get("price")),
            created_at=data.get("createdAt"),
        )

    @property
    def status(self) -> str:
        """open / done / canceled, as the exchange reports it."""
        if self.is_active:
            return "open"
        return "canceled" if self.cancel_exist else "done"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "clientOid": self.client_oid,
            "symbol": self.symbol,
            "side": self.side,
            "type": self.order_type,
            "status": self.status,
            "size": str(self.size),
            "funds": str(self.funds),
            "dealSize": str(self.deal_size),
            "dealFunds": str(self.deal_funds),
            "price": str(self.price),
        }


def _decimal(value: Any) -> Decimal:
    """Exchange number to Decimal; raises InvalidOperation on non-numeric values."""
    if value in (None, ""):
        return Decimal("0")
    return Decimal(str(value))


# ============================================================
# BATCH EXECUTION
# ============================================================

class OutcomeStatus(Enum):
    """Per-candidate result of a batch run."""

    PLACED = "PLACED"
    SKIPPED = "SKIPPED"
    REJECTED = "REJECTED"
    INVALID = "INVALID"
    UNKNOWN = "UNKNOWN"
    """Transport failed and the order could not be found by clientOid."""


@dataclass(frozen=True)
class TradeCandidate:
    """A trade idea to be sized and submitted."""

    symbol: str
    side: OrderSide
    entry_price: Decimal
    stop_loss: Decimal
    take_profit: Optional[Decimal] = None
    score: float = 0.0
    confidence: float = 0.0
    risk_reward: float = 0.0
    analysis: str = ""


@dataclass
class ExecutionOutcome:
    """What happened to one candidate."""

    candidate: TradeCandidate
    status: OutcomeStatus
    order_id: Optional[str] = None
    client_oid: Optional[str] = None
    quantity: Optional[Decimal] = None
    message: str = ""


@dataclass
class BatchReport:
    """Result of one batch run."""

    outcomes: List[ExecutionOutcome] = field(default_factory=list)

    def by_status(self, status: OutcomeStatus) -> List[ExecutionOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def placed_count(self) -> int:
        return len(self.by_status(OutcomeStatus.PLACED))
