"""
KuCoin Trading - Order Payload Builder.

============================================================
PURPOSE
============================================================
Builds the JSON body for POST /api/v1/orders.

FIELD RULES (exchange-mandated):
- clientOid always present (fresh UUID unless retrying)
- Market + buy  -> funds (quote amount to spend)
- Market + sell -> size (base amount to sell)
- Limit         -> price and size, timeInForce (GTC default)
- stopPrice     -> stop (loss/entry) and stopPrice

All numbers travel as decimal strings.

============================================================
"""

import json
import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Type, TypeVar, Union

from .errors import ValidationError
from .types import OrderRequest, OrderSide, OrderType, StopType, TimeInForce


logger = logging.getLogger(__name__)

E = TypeVar("E", OrderSide, OrderType, StopType, TimeInForce)


# ============================================================
# FIELD COERCION
# ============================================================

def to_decimal_string(value: Union[str, Decimal, int], field: str) -> str:
    """
    Normalize a numeric field to a plain decimal string.

    Strings are kept as written (after validation) so the caller's
    exact digits are transmitted.

    Raises:
        ValidationError: On floats, non-numeric or non-finite values
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(
            f"{field} must be a decimal string, not {type(value).__name__}",
            field=field,
        )

    if isinstance(value, str):
        text = value.strip()
        _parse_decimal(text, field)
        return text

    if isinstance(value, int):
        return str(value)

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValidationError(f"{field} must be finite", field=field)
        return format(value, "f")

    raise ValidationError(f"{field} has unsupported type {type(value).__name__}", field=field)


def _parse_decimal(text: str, field: str) -> Decimal:
    try:
        value = Decimal(text)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} is not a number: {text!r}", field=field)
    if not value.is_finite():
        raise ValidationError(f"{field} must be finite", field=field)
    return value


def _positive(value: Any, field: str) -> str:
    text = to_decimal_string(value, field)
    if _parse_decimal(text, field) <= 0:
        raise ValidationError(f"{field} must be positive", field=field)
    return text


def _coerce_enum(enum_cls: Type[E], value: Any, field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ValidationError(f"{field} must be one of {allowed}, got {value!r}", field=field)


# ============================================================
# VALIDATION
# ============================================================

def validate_order_request(request: OrderRequest) -> Dict[str, Any]:
    """
    Validate an order request.

    Returns:
        Normalized fields (enums and decimal strings)

    Raises:
        ValidationError: On the first invalid field
    """
    symbol = (request.symbol or "").strip()
    base, sep, quote = symbol.partition("-")
    if not sep or not base or not quote:
        raise ValidationError(
            f"symbol must be BASE-QUOTE, got {request.symbol!r}",
            field="symbol",
        )

    side = _coerce_enum(OrderSide, request.side, "side")
    order_type = _coerce_enum(OrderType, request.order_type, "order_type")
    size = _positive(request.size, "size")

    price = None
    if order_type == OrderType.LIMIT:
        if request.price is None or request.price == "":
            raise ValidationError("limit order requires a price", field="price")
        price = _positive(request.price, "price")

    stop_price = None
    stop = None
    if request.stop_price is not None and request.stop_price != "":
        stop_price = _positive(request.stop_price, "stop_price")
        if request.stop is not None:
            stop = _coerce_enum(StopType, request.stop, "stop")
        else:
            stop = StopType.LOSS if side == OrderSide.BUY else StopType.ENTRY

    time_in_force = None
    if order_type == OrderType.LIMIT:
        time_in_force = (
            _coerce_enum(TimeInForce, request.time_in_force, "time_in_force")
            if request.time_in_force is not None else TimeInForce.GTC
        )

    return {
        "symbol": symbol,
        "side": side,
        "order_type": order_type,
        "size": size,
        "price": price,
        "stop_price": stop_price,
        "stop": stop,
        "time_in_force": time_in_force,
    }


# ============================================================
# BUILD / PARSE
# ============================================================

def new_client_oid() -> str:
    """Fresh idempotency token."""
    return uuid.uuid4().hex


def build_order_dict(request: OrderRequest) -> Dict[str, Any]:
    """Validated order fields as an ordered dict."""
    fields = validate_order_request(request)

    payload: Dict[str, Any] = {
        "clientOid": request.client_oid or new_client_oid(),
        "side": fields["side"].value,
        "symbol": fields["symbol"],
        "type": fields["order_type"].value,
    }

    if fields["order_type"] == OrderType.MARKET:
        if fields["side"] == OrderSide.BUY:
            payload["funds"] = fields["size"]
        else:
            payload["size"] = fields["size"]
    else:
        payload["price"] = fields["price"]
        payload["size"] = fields["size"]
        payload["timeInForce"] = fields["time_in_force"].value

    if fields["stop_price"] is not None:
        payload["stop"] = fields["stop"].value
        payload["stopPrice"] = fields["stop_price"]

    return payload


def build_order_payload(request: OrderRequest) -> str:
    """
    Build the JSON body for order placement.

    Args:
        request: Order request

    Returns:
        Compact JSON body string (the exact bytes to sign and send)

    Raises:
        ValidationError: If the request is malformed
    """
    payload = build_order_dict(request)
    logger.debug(
        f"Built {payload['type']} {payload['side']} order for {payload['symbol']} "
        f"(clientOid={payload['clientOid']})"
    )
    return serialize_payload(payload)


def serialize_payload(payload: Dict[str, Any]) -> str:
    """Compact JSON, the exact string that is signed and sent."""
    return json.dumps(payload, separators=(",", ":"))


def parse_order_payload(body: str) -> OrderRequest:
    """
    Parse a body produced by build_order_payload back to a request.

    A market buy's funds field maps back to size.

    Raises:
        ValidationError: If the body is not an order payload
    """
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ValidationError(f"order payload is not JSON: {e}")

    if not isinstance(data, dict):
        raise ValidationError("order payload must be a JSON object")

    size: Optional[str] = data.get("size")
    if data.get("type") == OrderType.MARKET.value and data.get("side") == OrderSide.BUY.value:
        size = data.get("funds")

    if size is None:
        raise ValidationError("order payload has no size or funds", field="size")

    return OrderRequest(
        symbol=data.get("symbol", ""),
        side=data.get("side", ""),
        order_type=data.get("type", ""),
        size=size,
        price=data.get("price"),
        stop_price=data.get("stopPrice"),
        stop=data.get("stop"),
        time_in_force=data.get("timeInForce"),
        client_oid=data.get("clientOid"),
    )
