"""
KuCoin Trading - Batch Executor.

============================================================
PURPOSE
============================================================
Submits a ranked batch of trade candidates, one at a time.

FLOW PER CANDIDATE:
    PositionSizer -> quantize -> OrderRequest
        -> KucoinClient.place_order -> ExecutionOutcome

CRITICAL CONSTRAINTS:
- Sequential submission with a fixed delay between orders
- Daily trade cap (UTC day), counting placed and unknown outcomes
- No automatic resubmission. A transport failure is
  reconciled by looking the order up by clientOid.

============================================================
"""

import asyncio
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Awaitable, Callable, Iterable, Optional

from .client import KucoinClient
from .config import BatchConfig
from .errors import ValidationError
from .payload import new_client_oid
from .sizing import PositionSizer, quantize_quantity
from .types import (
    BatchReport,
    ExecutionOutcome,
    NoValidSize,
    OrderRequest,
    OrderSide,
    OrderStatus,
    OrderType,
    OutcomeStatus,
    Rejected,
    Success,
    TradeCandidate,
    TransportError,
)


logger = logging.getLogger(__name__)

# An UNKNOWN outcome may have filled, so it uses up a daily slot.
DAILY_CAP_STATUSES = frozenset({OutcomeStatus.PLACED, OutcomeStatus.UNKNOWN})


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class BatchExecutor:
    """
    Sizes and submits trade candidates sequentially.

    Holds only the daily trade counter; everything else is
    derived per call from configuration.
    """

    def __init__(
        self,
        client: KucoinClient,
        sizer: PositionSizer,
        config: Optional[BatchConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        today: Callable[[], date] = _utc_today,
    ):
        """
        Initialize executor.

        Args:
            client: Authenticated client
            sizer: Position sizer
            config: Batch configuration
            sleep: Delay function (injectable for tests)
            today: Current UTC date source
        """
        self._client = client
        self._sizer = sizer
        self._config = config or BatchConfig()
        self._sleep = sleep
        self._today = today

        self._day = today()
        self._trades_today = 0

    # --------------------------------------------------------
    # DAILY LIMIT
    # --------------------------------------------------------

    def _roll_day(self) -> None:
        current = self._today()
        if current != self._day:
            self._day = current
            self._trades_today = 0

    @property
    def trades_today(self) -> int:
        self._roll_day()
        return self._trades_today

    @property
    def remaining_trades(self) -> int:
        return max(0, self._config.max_daily_trades - self.trades_today)

    # --------------------------------------------------------
    # ORDER CONSTRUCTION
    # --------------------------------------------------------

    def build_request(
        self,
        candidate: TradeCandidate,
        quantity: Decimal,
        client_oid: str,
    ) -> OrderRequest:
        """
        Market order for a sized candidate.

        A market buy spends quote funds, so its size is the
        notional; a sell gives the base quantity.
        """
        if candidate.side == OrderSide.BUY:
            size = quantize_quantity(quantity * candidate.entry_price, self._config.quantity_step)
        else:
            size = quantity

        stop_price = None
        if self._config.attach_stop_price and candidate.stop_loss:
            stop_price = candidate.stop_loss

        return OrderRequest(
            symbol=candidate.symbol,
            side=candidate.side,
            order_type=OrderType.MARKET,
            size=size,
            stop_price=stop_price,
            client_oid=client_oid,
        )

    # --------------------------------------------------------
    # EXECUTION
    # --------------------------------------------------------

    async def execute(self, candidates: Iterable[TradeCandidate]) -> BatchReport:
        """
        Execute the highest-scored candidates within the daily cap.

        Returns:
            BatchReport with one outcome per candidate
        """
        ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
        report = BatchReport()

        remaining = self.remaining_trades
        selected = ranked[:remaining]

        for candidate in ranked[remaining:]:
            report.outcomes.append(ExecutionOutcome(
                candidate=candidate,
                status=OutcomeStatus.SKIPPED,
                message="daily trade limit reached",
            ))

        submitted_any = False
        for candidate in selected:
            sized = self._sizer.size(candidate.entry_price, candidate.stop_loss)
            if isinstance(sized, NoValidSize):
                report.outcomes.append(ExecutionOutcome(
                    candidate=candidate,
                    status=OutcomeStatus.SKIPPED,
                    message=sized.reason,
                ))
                continue

            quantity = quantize_quantity(sized, self._config.quantity_step)
            if quantity <= 0:
                report.outcomes.append(ExecutionOutcome(
                    candidate=candidate,
                    status=OutcomeStatus.SKIPPED,
                    message=f"size {sized} rounds to zero",
                ))
                continue

            if submitted_any and self._config.order_delay_seconds > 0:
                await self._sleep(self._config.order_delay_seconds)

            outcome = await self._submit(candidate, quantity)
            if outcome.status != OutcomeStatus.INVALID:
                submitted_any = True
            report.outcomes.append(outcome)

            if outcome.status in DAILY_CAP_STATUSES:
                self._trades_today += 1

        logger.info(
            f"Batch finished: {report.placed_count} placed, "
            f"{len(report.by_status(OutcomeStatus.SKIPPED))} skipped, "
            f"{len(report.by_status(OutcomeStatus.REJECTED))} rejected, "
            f"{len(report.by_status(OutcomeStatus.UNKNOWN))} unknown"
        )
        return report

    async def _submit(self, candidate: TradeCandidate, quantity: Decimal) -> ExecutionOutcome:
        client_oid = new_client_oid()

        try:
            request = self.build_request(candidate, quantity, client_oid)
            result = await self._client.place_order(request)
        except ValidationError as e:
            logger.warning(f"Invalid order for {candidate.symbol}: {e.message}")
            return ExecutionOutcome(
                candidate=candidate,
                status=OutcomeStatus.INVALID,
                client_oid=client_oid,
                quantity=quantity,
                message=e.message,
            )

        if isinstance(result, Success):
            return ExecutionOutcome(
                candidate=candidate,
                status=OutcomeStatus.PLACED,
                order_id=result.order_id,
                client_oid=client_oid,
                quantity=quantity,
            )

        if isinstance(result, Rejected):
            return ExecutionOutcome(
                candidate=candidate,
                status=OutcomeStatus.REJECTED,
                client_oid=client_oid,
                quantity=quantity,
                message=result.message,
            )

        return await self._reconcile(candidate, quantity, client_oid, result)

    async def _reconcile(
        self,
        candidate: TradeCandidate,
        quantity: Decimal,
        client_oid: str,
        failure: TransportError,
    ) -> ExecutionOutcome:
        logger.warning(
            f"Outcome unknown for {candidate.symbol} (clientOid={client_oid}): {failure.message}"
        )

        if self._config.reconcile_on_transport_error:
            lookup = await self._client.get_order_by_client_oid(client_oid)
            if isinstance(lookup, OrderStatus):
                logger.info(f"Reconciled {client_oid} as order {lookup.order_id}")
                return ExecutionOutcome(
                    candidate=candidate,
                    status=OutcomeStatus.PLACED,
                    order_id=lookup.order_id,
                    client_oid=client_oid,
                    quantity=quantity,
                    message="reconciled after transport error",
                )

        return ExecutionOutcome(
            candidate=candidate,
            status=OutcomeStatus.UNKNOWN,
            client_oid=client_oid,
            quantity=quantity,
            message=failure.message,
        )
