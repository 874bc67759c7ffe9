"""
Pydantic schemas for the trading gateway HTTP API.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict

# =======================
# REQUEST
# =======================

NumberLike = Union[str, Decimal]


class OrderData(BaseModel):
    """Order fields in the exchange's own naming."""

    model_config = ConfigDict(extra="ignore")

    symbol: Optional[str] = None
    side: Optional[str] = None
    type: Optional[str] = None
    size: Optional[NumberLike] = None
    price: Optional[NumberLike] = None
    stopPrice: Optional[NumberLike] = None
    stop: Optional[str] = None
    timeInForce: Optional[str] = None
    clientOid: Optional[str] = None

    # get_order / get_account / get_market_data
    orderId: Optional[str] = None
    currency: Optional[str] = None
    accountType: Optional[str] = None
    symbols: Optional[List[str]] = None

    def to_action_data(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TradingRequest(BaseModel):
    action: str
    orderData: Optional[OrderData] = None

    def action_data(self) -> Dict[str, Any]:
        return self.orderData.to_action_data() if self.orderData else {}

# =======================
# RESPONSE
# =======================

class HealthResponse(BaseModel):
    status: str
    authenticated: bool
    actions: List[str]
    metrics: Dict[str, Any]
