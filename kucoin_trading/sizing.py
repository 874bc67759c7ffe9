"""
KuCoin Trading - Position Sizer / Risk Gate.

============================================================
PURPOSE
============================================================
Computes an order quantity that keeps the loss at the stop
within a fixed fraction of account capital.

ALGORITHM:
1. d = |entry - stop| / entry          (zero -> NoValidSize)
2. budget = capital * max_risk_fraction
3. notional = budget / d
4. notional >= min_notional  -> quantity = notional / entry
5. else if min_notional * d > budget -> NoValidSize
   else quantity = min_notional / entry

The gate refuses a trade rather than let the exchange's
minimum order value force a position above the risk cap.

============================================================
"""

import logging
from decimal import Decimal, ROUND_DOWN
from typing import Union

from .config import RiskParameters
from .types import NoValidSize


logger = logging.getLogger(__name__)

Number = Union[Decimal, int, str, float]
SizeResult = Union[Decimal, NoValidSize]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def calculate_position_size(
    entry_price: Number,
    stop_price: Number,
    capital: Number,
    max_risk_fraction: Number,
    min_notional: Number,
) -> SizeResult:
    """
    Risk-capped quantity for one trade.

    Args:
        entry_price: Expected fill price
        stop_price: Stop-loss price
        capital: Account capital (quote currency)
        max_risk_fraction: Max fraction of capital lost at the stop
        min_notional: Exchange minimum order value

    Returns:
        Base-currency quantity, or NoValidSize
    """
    entry = _to_decimal(entry_price)
    stop = _to_decimal(stop_price)
    capital = _to_decimal(capital)
    fraction = _to_decimal(max_risk_fraction)
    min_notional = _to_decimal(min_notional)

    if entry <= 0:
        return NoValidSize("entry price must be positive")

    risk_distance = abs(entry - stop) / entry
    if risk_distance == 0:
        return NoValidSize("stop price equals entry price")

    risk_budget = capital * fraction
    if risk_budget <= 0:
        return NoValidSize("risk budget is zero")

    risk_based_notional = risk_budget / risk_distance
    if risk_based_notional >= min_notional:
        return risk_based_notional / entry

    risk_at_min_notional = min_notional * risk_distance
    if risk_at_min_notional > risk_budget:
        return NoValidSize(
            f"minimum order value {min_notional} would risk {risk_at_min_notional}, "
            f"above the budget of {risk_budget}"
        )

    return min_notional / entry


def quantize_quantity(quantity: Decimal, step: Decimal) -> Decimal:
    """Round a quantity down to a step, so rounding never adds risk."""
    if step <= 0:
        return quantity
    return (quantity / step).to_integral_value(rounding=ROUND_DOWN) * step


class PositionSizer:
    """Sizes trades against fixed risk parameters."""

    def __init__(self, params: RiskParameters):
        self._params = params

    @property
    def params(self) -> RiskParameters:
        return self._params

    @property
    def risk_budget(self) -> Decimal:
        return self._params.risk_budget

    def size(self, entry_price: Number, stop_price: Number) -> SizeResult:
        """Quantity for a trade, or NoValidSize."""
        result = calculate_position_size(
            entry_price,
            stop_price,
            self._params.account_capital,
            self._params.max_risk_fraction,
            self._params.min_notional,
        )
        if isinstance(result, NoValidSize):
            logger.info(f"No valid size for entry={entry_price} stop={stop_price}: {result.reason}")
        return result
