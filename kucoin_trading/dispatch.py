"""
KuCoin Trading - Action Dispatch.

============================================================
PURPOSE
============================================================
Routes an action name plus loosely-typed order data to a
typed client call, and renders the tagged result as a JSON-
able response dict.

ACTIONS:
- get_market_data  (public)
- place_order
- get_order
- get_account

============================================================
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from .client import KucoinClient
from .config import DEFAULT_SYMBOLS
from .errors import ValidationError
from .logging_utils import mask_params
from .types import (
    MarketSnapshot,
    OrderRequest,
    OrderResult,
    OrderStatus,
    Rejected,
    Success,
    TransportError,
)


logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


def failure_response(result: OrderResult) -> Dict[str, Any]:
    """Response dict for a Rejected or TransportError result."""
    if isinstance(result, Rejected):
        return {
            "success": False,
            "kind": result.kind,
            "code": result.code,
            "category": result.category.value,
            "error": result.message,
        }
    if isinstance(result, TransportError):
        return {
            "success": False,
            "kind": result.kind,
            "error": result.message,
            "message": "Outcome unknown; check order status before resubmitting",
        }
    raise TypeError(f"Not a failure result: {result!r}")


def order_request_from_data(data: Dict[str, Any]) -> OrderRequest:
    """
    Build an OrderRequest from action order data.

    Accepts the exchange's field names (type, stopPrice,
    timeInForce, clientOid).
    """
    if not data:
        raise ValidationError("orderData is required", field="orderData")

    return OrderRequest(
        symbol=data.get("symbol") or "",
        side=data.get("side") or "",
        order_type=data.get("type") or data.get("order_type") or "",
        size=data.get("size") if data.get("size") is not None else "",
        price=data.get("price"),
        stop_price=data.get("stopPrice"),
        stop=data.get("stop"),
        time_in_force=data.get("timeInForce"),
        client_oid=data.get("clientOid"),
    )


class ActionDispatcher:
    """
    Dispatch table from action name to handler.

    Every handler returns a response dict with a `success` flag.
    ValidationError and ConfigurationError propagate to the caller.
    """

    def __init__(
        self,
        client: KucoinClient,
        symbols: Optional[Iterable[str]] = None,
    ):
        self._client = client
        self._symbols = tuple(symbols or DEFAULT_SYMBOLS)

        self._handlers: Dict[str, Handler] = {
            "get_market_data": self._get_market_data,
            "place_order": self._place_order,
            "get_order": self._get_order,
            "get_account": self._get_account,
        }

    @property
    def actions(self):
        return sorted(self._handlers)

    async def dispatch(
        self,
        action: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Run one action.

        Raises:
            ValidationError: Unknown action or malformed data
            ConfigurationError: Credentials missing for an authenticated action
        """
        handler = self._handlers.get(action)
        if handler is None:
            raise ValidationError(f"Unknown action: {action}", field="action")

        data = data or {}
        logger.debug(f"Dispatching action {action}: {mask_params(data)}")
        return await handler(data)

    # --------------------------------------------------------
    # HANDLERS
    # --------------------------------------------------------

    async def _get_market_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        symbols = data.get("symbols") or self._symbols
        result = await self._client.get_market_data(symbols)
        if not isinstance(result, MarketSnapshot):
            return failure_response(result)
        return {"success": True, **result.to_dict()}

    async def _place_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._client.place_order(order_request_from_data(data))
        if not isinstance(result, Success):
            return failure_response(result)
        return {
            "success": True,
            "orderId": result.order_id,
            "message": "Order placed successfully",
        }

    async def _get_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("orderId"):
            result = await self._client.get_order(data["orderId"])
        elif data.get("clientOid"):
            result = await self._client.get_order_by_client_oid(data["clientOid"])
        else:
            raise ValidationError("orderId or clientOid is required", field="orderId")

        if not isinstance(result, OrderStatus):
            return failure_response(result)
        return {"success": True, "order": result.to_dict()}

    async def _get_account(self, data: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._client.get_accounts(
            currency=data.get("currency"),
            account_type=data.get("accountType"),
        )
        if not isinstance(result, list):
            return failure_response(result)
        return {
            "success": True,
            "data": [balance.to_dict() for balance in result],
        }
