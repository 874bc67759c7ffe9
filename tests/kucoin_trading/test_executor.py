"""
Batch Executor Tests.

============================================================
PURPOSE
============================================================
Tests for sequential batch submission with a mocked client.

TEST CATEGORIES:
- Ranking and daily cap
- Sizing gate
- Outcome mapping
- Transport failure reconciliation

============================================================
"""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from kucoin_trading import (
    BatchConfig,
    BatchExecutor,
    OrderSide,
    OrderStatus,
    OrderType,
    OutcomeStatus,
    PositionSizer,
    Rejected,
    RiskParameters,
    Success,
    TradeCandidate,
    TransportError,
    ValidationError,
)


def _candidate(symbol="BTC-USDT", score=5.0, side=OrderSide.BUY, entry="100", stop="98"):
    return TradeCandidate(
        symbol=symbol,
        side=side,
        entry_price=Decimal(entry),
        stop_loss=Decimal(stop),
        score=score,
    )


def _client(place_result=None, lookup_result=None):
    client = MagicMock()
    client.place_order = AsyncMock(return_value=place_result or Success(order_id="order-1"))
    client.get_order_by_client_oid = AsyncMock(return_value=lookup_result)
    return client


def _executor(client, config=None, sleep=None, today=None):
    sizer = PositionSizer(RiskParameters(account_capital=Decimal("1000")))
    return BatchExecutor(
        client,
        sizer,
        config or BatchConfig(),
        sleep=sleep or AsyncMock(),
        today=today or (lambda: date(2026, 1, 1)),
    )


# ============================================================
# RANKING AND LIMIT TESTS
# ============================================================

class TestRankingAndLimits:
    """Candidate ordering and the daily trade cap."""

    @pytest.mark.asyncio
    async def test_highest_scores_within_cap(self):
        client = _client()
        executor = _executor(client, BatchConfig(max_daily_trades=2))

        report = await executor.execute([
            _candidate("ADA-USDT", score=3.0),
            _candidate("BTC-USDT", score=9.0),
            _candidate("ETH-USDT", score=6.0),
        ])

        placed = [o.candidate.symbol for o in report.by_status(OutcomeStatus.PLACED)]
        skipped = report.by_status(OutcomeStatus.SKIPPED)
        assert placed == ["BTC-USDT", "ETH-USDT"]
        assert [o.candidate.symbol for o in skipped] == ["ADA-USDT"]
        assert skipped[0].message == "daily trade limit reached"
        assert executor.remaining_trades == 0

    @pytest.mark.asyncio
    async def test_cap_persists_across_batches(self):
        client = _client()
        executor = _executor(client, BatchConfig(max_daily_trades=1))

        await executor.execute([_candidate()])
        report = await executor.execute([_candidate("ETH-USDT")])

        assert report.placed_count == 0
        assert client.place_order.await_count == 1

    @pytest.mark.asyncio
    async def test_counter_resets_on_new_day(self):
        days = [date(2026, 1, 1)]
        executor = _executor(
            _client(), BatchConfig(max_daily_trades=1), today=lambda: days[0],
        )

        await executor.execute([_candidate()])
        assert executor.remaining_trades == 0

        days[0] = date(2026, 1, 2)
        assert executor.remaining_trades == 1

    @pytest.mark.asyncio
    async def test_delay_between_submissions(self):
        sleep = AsyncMock()
        executor = _executor(_client(), BatchConfig(order_delay_seconds=1.0), sleep=sleep)

        await executor.execute([_candidate("BTC-USDT"), _candidate("ETH-USDT")])

        sleep.assert_awaited_once_with(1.0)


# ============================================================
# SIZING TESTS
# ============================================================

class TestSizing:
    """Sized order construction."""

    @pytest.mark.asyncio
    async def test_market_buy_spends_notional(self):
        """20 units at 100 is sent as 2000 quote funds."""
        client = _client()

        report = await _executor(client).execute([_candidate()])

        request = client.place_order.await_args.args[0]
        assert request.order_type == OrderType.MARKET
        assert request.side == OrderSide.BUY
        assert request.size == Decimal("2000")
        assert request.stop_price is None
        assert report.outcomes[0].quantity == Decimal("20")

    @pytest.mark.asyncio
    async def test_sell_sends_base_quantity(self):
        client = _client()

        await _executor(client).execute([_candidate(side=OrderSide.SELL, stop="102")])

        assert client.place_order.await_args.args[0].size == Decimal("20")

    @pytest.mark.asyncio
    async def test_stop_attached_when_enabled(self):
        client = _client()

        await _executor(client, BatchConfig(attach_stop_price=True)).execute([_candidate()])

        assert client.place_order.await_args.args[0].stop_price == Decimal("98")

    @pytest.mark.asyncio
    async def test_no_valid_size_is_skipped(self):
        client = _client()

        report = await _executor(client).execute([_candidate(stop="100")])

        assert report.outcomes[0].status == OutcomeStatus.SKIPPED
        client.place_order.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_client_oid_per_order(self):
        client = _client()

        report = await _executor(client).execute([_candidate("BTC-USDT"), _candidate("ETH-USDT")])

        oids = [o.client_oid for o in report.outcomes]
        assert all(oids)
        assert oids[0] != oids[1]
        assert client.place_order.await_args_list[0].args[0].client_oid == oids[0]


# ============================================================
# OUTCOME TESTS
# ============================================================

class TestOutcomes:
    """Mapping of client results to outcomes."""

    @pytest.mark.asyncio
    async def test_rejected_not_counted(self):
        client = _client(Rejected(code="200004", message="Balance insufficient!"))
        executor = _executor(client)

        report = await executor.execute([_candidate()])

        assert report.outcomes[0].status == OutcomeStatus.REJECTED
        assert report.outcomes[0].message == "Balance insufficient!"
        assert executor.trades_today == 0

    @pytest.mark.asyncio
    async def test_transport_error_reconciled(self):
        status = OrderStatus.from_response({"id": "order-9", "symbol": "BTC-USDT", "isActive": True})
        client = _client(TransportError("Request timed out"), lookup_result=status)
        executor = _executor(client)

        report = await executor.execute([_candidate()])

        outcome = report.outcomes[0]
        assert outcome.status == OutcomeStatus.PLACED
        assert outcome.order_id == "order-9"
        client.get_order_by_client_oid.assert_awaited_once_with(outcome.client_oid)
        assert client.place_order.await_count == 1
        assert executor.trades_today == 1

    @pytest.mark.asyncio
    async def test_transport_error_unresolved(self):
        client = _client(
            TransportError("Request timed out"),
            lookup_result=Rejected(code="400400", message="order not exist"),
        )

        report = await _executor(client).execute([_candidate()])

        assert report.outcomes[0].status == OutcomeStatus.UNKNOWN
        assert client.place_order.await_count == 1

    @pytest.mark.asyncio
    async def test_reconcile_disabled(self):
        client = _client(TransportError("down"))
        config = BatchConfig(reconcile_on_transport_error=False)

        report = await _executor(client, config).execute([_candidate()])

        assert report.outcomes[0].status == OutcomeStatus.UNKNOWN
        client.get_order_by_client_oid.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_order(self):
        client = _client()
        client.place_order.side_effect = ValidationError("symbol must be BASE-QUOTE", field="symbol")

        report = await _executor(client).execute([_candidate("BTCUSDT")])

        assert report.outcomes[0].status == OutcomeStatus.INVALID
        assert report.outcomes[0].message == "symbol must be BASE-QUOTE"

    @pytest.mark.asyncio
    async def test_unknown_outcomes_use_daily_slots(self):
        """Orders with an unknown outcome may have filled and count against the cap."""
        client = _client(TransportError("down"), lookup_result=TransportError("down"))
        executor = _executor(client, BatchConfig(max_daily_trades=2))
        candidates = [_candidate("BTC-USDT"), _candidate("ETH-USDT")]

        for _ in range(3):
            await executor.execute(candidates)

        assert client.place_order.await_count == 2
        assert executor.trades_today == 2
        assert executor.remaining_trades == 0
