"""
KuCoin Client Tests.

============================================================
PURPOSE
============================================================
Tests for the signed REST client against a fake HTTP
session.

TEST CATEGORIES:
- Response classification
- Order placement (success, rejection, transport failure)
- Order lookup and accounts
- Public market data
- Session ownership and metrics

============================================================
"""

import asyncio
import json
from decimal import Decimal

import aiohttp
import pytest

from kucoin_trading import (
    ClientConfig,
    ConfigurationError,
    Credentials,
    ErrorCategory,
    KucoinClient,
    MarketSnapshot,
    OrderRequest,
    OrderStatus,
    Rejected,
    Success,
    TransportError,
    ValidationError,
    classify_response,
)
from kucoin_trading.client import (
    MALFORMED_ACCOUNTS_MESSAGE,
    MALFORMED_NUMBER_MESSAGE,
    MALFORMED_SUCCESS_MESSAGE,
)
from kucoin_trading.signer import sign


BASE_URL = "https://api.test.kucoin"
TIMESTAMP = "1700000000000"


# ============================================================
# FAKE SESSION
# ============================================================

class FakeResponse:
    """Minimal aiohttp response stand-in."""

    def __init__(self, status, payload):
        self.status = status
        if isinstance(payload, bytes):
            self._body = payload
        elif isinstance(payload, str):
            self._body = payload.encode("utf-8")
        else:
            self._body = json.dumps(payload).encode("utf-8")

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Records requests and replays queued responses or exceptions."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []
        self.closed = False

    def request(self, method, url, headers=None, data=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "data": data})
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def close(self):
        self.closed = True


def _credentials() -> Credentials:
    return Credentials(api_key="key", api_secret="secret", passphrase="pass")


def _client(session, credentials=True) -> KucoinClient:
    return KucoinClient(
        credentials=_credentials() if credentials else None,
        config=ClientConfig(base_url=BASE_URL),
        session=session,
        clock=lambda: TIMESTAMP,
    )


def _order(**overrides) -> OrderRequest:
    values = {
        "symbol": "BTC-USDT",
        "side": "buy",
        "order_type": "limit",
        "size": "0.001",
        "price": "30000",
        "client_oid": "oid-1",
    }
    values.update(overrides)
    return OrderRequest(**values)


# ============================================================
# CLASSIFICATION TESTS
# ============================================================

class TestClassifyResponse:
    """Tests for classify_response()."""

    def test_success(self):
        result = classify_response(200, json.dumps({"code": "200000", "data": {"x": 1}}))

        assert isinstance(result, Success)
        assert result.data == {"x": 1}

    def test_success_requires_order_id(self):
        """Success without orderId is a malformed response, not success."""
        result = classify_response(200, json.dumps({"code": "200000", "data": {}}), True)

        assert isinstance(result, Rejected)
        assert result.code == "200000"
        assert result.message == MALFORMED_SUCCESS_MESSAGE
        assert result.category == ErrorCategory.MALFORMED_RESPONSE

    def test_rejection_keeps_exchange_text(self):
        result = classify_response(
            400, json.dumps({"code": "200004", "msg": "Balance insufficient!"}),
        )

        assert isinstance(result, Rejected)
        assert result.code == "200004"
        assert result.message == "Balance insufficient!"
        assert result.category == ErrorCategory.INSUFFICIENT_FUNDS
        assert result.http_status == 400

    def test_missing_code_is_rejected(self):
        result = classify_response(200, json.dumps({"data": {}}))

        assert isinstance(result, Rejected)
        assert result.code is None

    def test_non_json_is_transport_error(self):
        result = classify_response(502, "<html>Bad Gateway</html>")

        assert isinstance(result, TransportError)
        assert "502" in result.message

    def test_invalid_utf8_bytes(self):
        result = classify_response(200, b'\xff\xfe{"code":"200000"}')

        assert isinstance(result, TransportError)
        assert "200" in result.message

    def test_bytes_body(self):
        assert isinstance(classify_response(200, b'{"code":"200000","data":null}'), Success)

    def test_numeric_code(self):
        """Numeric success code is compared as a string."""
        assert isinstance(classify_response(200, '{"code":200000,"data":null}'), Success)


# ============================================================
# ORDER PLACEMENT TESTS
# ============================================================

class TestPlaceOrder:
    """Tests for KucoinClient.place_order()."""

    @pytest.mark.asyncio
    async def test_success_returns_order_id(self):
        session = FakeSession(
            FakeResponse(200, {"code": "200000", "data": {"orderId": "5bd6e9286d99522a52e458de"}}),
        )
        client = _client(session)

        result = await client.place_order(_order())

        assert isinstance(result, Success)
        assert result.order_id == "5bd6e9286d99522a52e458de"
        assert client.metrics.get_summary()["orders"]["placed"] == 1

    @pytest.mark.asyncio
    async def test_sent_body_is_signed_body(self):
        """Signature covers exactly the transmitted body."""
        session = FakeSession(FakeResponse(200, {"code": "200000", "data": {"orderId": "1"}}))

        await _client(session).place_order(_order())

        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["url"] == f"{BASE_URL}/api/v1/orders"
        assert call["headers"]["KC-API-TIMESTAMP"] == TIMESTAMP
        assert call["headers"]["KC-API-SIGN"] == sign(
            TIMESTAMP, "POST", "/api/v1/orders", call["data"], "secret",
        )
        body = json.loads(call["data"])
        assert body == {
            "clientOid": "oid-1",
            "side": "buy",
            "symbol": "BTC-USDT",
            "type": "limit",
            "price": "30000",
            "size": "0.001",
            "timeInForce": "GTC",
        }

    @pytest.mark.asyncio
    async def test_rejection(self):
        session = FakeSession(
            FakeResponse(400, {"code": "400100", "msg": "Order size below the minimum"}),
        )
        client = _client(session)

        result = await client.place_order(_order())

        assert isinstance(result, Rejected)
        assert result.code == "400100"
        assert result.message == "Order size below the minimum"
        assert result.category == ErrorCategory.INVALID_ORDER
        assert client.metrics.get_summary()["orders"]["rejected_by_code"] == {"400100": 1}

    @pytest.mark.asyncio
    async def test_missing_order_id(self):
        session = FakeSession(FakeResponse(200, {"code": "200000", "data": {}}))

        result = await _client(session).place_order(_order())

        assert isinstance(result, Rejected)
        assert result.message == MALFORMED_SUCCESS_MESSAGE

    @pytest.mark.asyncio
    async def test_network_error_is_transport_error(self):
        session = FakeSession(aiohttp.ClientConnectionError("connection reset"))

        result = await _client(session).place_order(_order())

        assert isinstance(result, TransportError)
        assert "connection reset" in result.message

    @pytest.mark.asyncio
    async def test_timeout_is_transport_error(self):
        session = FakeSession(asyncio.TimeoutError())

        result = await _client(session).place_order(_order())

        assert isinstance(result, TransportError)

    @pytest.mark.asyncio
    async def test_undecodable_body_is_transport_error(self):
        """A body that is not UTF-8 leaves the outcome unknown."""
        session = FakeSession(FakeResponse(200, b'\xff\xfe{"code":"200000"}'))
        client = _client(session)

        result = await client.place_order(_order())

        assert isinstance(result, TransportError)
        assert "Non-JSON" in result.message
        assert client.metrics.get_summary()["requests"]["transport_error"] == 1

    @pytest.mark.asyncio
    async def test_no_credentials_raises_before_io(self):
        session = FakeSession()

        with pytest.raises(ConfigurationError):
            await _client(session, credentials=False).place_order(_order())

        assert session.calls == []

    @pytest.mark.asyncio
    async def test_invalid_order_raises_before_io(self):
        session = FakeSession()

        with pytest.raises(ValidationError):
            await _client(session).place_order(_order(price=None))

        assert session.calls == []


# ============================================================
# ORDER LOOKUP TESTS
# ============================================================

ORDER_DATA = {
    "id": "5c35c02703aa673ceec2a168",
    "clientOid": "oid-1",
    "symbol": "BTC-USDT",
    "side": "buy",
    "type": "limit",
    "isActive": False,
    "cancelExist": False,
    "size": "0.001",
    "funds": "0",
    "dealSize": "0.001",
    "dealFunds": "30",
    "price": "30000",
    "createdAt": 1547026471000,
}


class TestOrderLookup:
    """Tests for get_order() and get_order_by_client_oid()."""

    @pytest.mark.asyncio
    async def test_get_order(self):
        session = FakeSession(FakeResponse(200, {"code": "200000", "data": ORDER_DATA}))

        result = await _client(session).get_order("5c35c02703aa673ceec2a168")

        assert isinstance(result, OrderStatus)
        assert result.order_id == "5c35c02703aa673ceec2a168"
        assert result.deal_funds == Decimal("30")
        assert result.status == "done"
        assert session.calls[0]["url"] == f"{BASE_URL}/api/v1/orders/5c35c02703aa673ceec2a168"
        assert session.calls[0]["method"] == "GET"
        assert session.calls[0]["data"] is None

    @pytest.mark.asyncio
    async def test_get_by_client_oid(self):
        session = FakeSession(FakeResponse(200, {"code": "200000", "data": ORDER_DATA}))

        result = await _client(session).get_order_by_client_oid("oid-1")

        assert isinstance(result, OrderStatus)
        assert session.calls[0]["url"] == f"{BASE_URL}/api/v1/order/client-order/oid-1"

    @pytest.mark.asyncio
    async def test_order_id_is_path_quoted(self):
        session = FakeSession(FakeResponse(200, {"code": "200000", "data": ORDER_DATA}))

        await _client(session).get_order("a/b")

        assert session.calls[0]["url"].endswith("/api/v1/orders/a%2Fb")

    @pytest.mark.asyncio
    async def test_not_found(self):
        session = FakeSession(FakeResponse(404, {"code": "400400", "msg": "order not exist"}))

        result = await _client(session).get_order_by_client_oid("missing")

        assert isinstance(result, Rejected)
        assert result.category == ErrorCategory.ORDER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_empty_data_is_malformed(self):
        session = FakeSession(FakeResponse(200, {"code": "200000", "data": None}))

        result = await _client(session).get_order("1")

        assert isinstance(result, Rejected)
        assert result.category == ErrorCategory.MALFORMED_RESPONSE

    @pytest.mark.asyncio
    async def test_non_numeric_field_is_malformed(self):
        data = dict(ORDER_DATA, dealFunds="n/a")
        session = FakeSession(FakeResponse(200, {"code": "200000", "data": data}))

        result = await _client(session).get_order("1")

        assert isinstance(result, Rejected)
        assert result.category == ErrorCategory.MALFORMED_RESPONSE
        assert result.message == MALFORMED_NUMBER_MESSAGE

    @pytest.mark.asyncio
    async def test_empty_order_id_raises(self):
        with pytest.raises(ValidationError):
            await _client(FakeSession()).get_order("")


# ============================================================
# ACCOUNT TESTS
# ============================================================

class TestAccounts:
    """Tests for get_accounts()."""

    @pytest.mark.asyncio
    async def test_balances_and_signed_query(self):
        session = FakeSession(FakeResponse(200, {
            "code": "200000",
            "data": [{
                "id": "5bd6e9286d99522a52e458de",
                "currency": "USDT",
                "type": "trade",
                "balance": "100.5",
                "available": "90.5",
                "holds": "10",
            }],
        }))

        result = await _client(session).get_accounts(currency="USDT", account_type="trade")

        assert len(result) == 1
        assert result[0].available == Decimal("90.5")
        call = session.calls[0]
        path = "/api/v1/accounts?currency=USDT&type=trade"
        assert call["url"] == f"{BASE_URL}{path}"
        assert call["headers"]["KC-API-SIGN"] == sign(TIMESTAMP, "GET", path, "", "secret")

    @pytest.mark.asyncio
    async def test_auth_failure(self):
        session = FakeSession(FakeResponse(401, {"code": "400005", "msg": "Invalid KC-API-SIGN"}))

        result = await _client(session).get_accounts()

        assert isinstance(result, Rejected)
        assert result.category == ErrorCategory.AUTHENTICATION
        assert result.message == "Invalid KC-API-SIGN"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [
        {"id": "1", "currency": "USDT"},
        ["USDT"],
        [{"id": "1", "currency": "USDT", "balance": "lots"}],
        [{"id": "1", "currency": "USDT", "holds": {"amount": "1"}}],
    ])
    async def test_malformed_data(self, data):
        session = FakeSession(FakeResponse(200, {"code": "200000", "data": data}))

        result = await _client(session).get_accounts()

        assert isinstance(result, Rejected)
        assert result.code == "200000"
        assert result.category == ErrorCategory.MALFORMED_RESPONSE
        assert result.message == MALFORMED_ACCOUNTS_MESSAGE

    @pytest.mark.asyncio
    async def test_missing_amounts_default_to_zero(self):
        session = FakeSession(FakeResponse(200, {
            "code": "200000",
            "data": [{"id": "1", "currency": "BTC", "type": "main", "balance": ""}],
        }))

        result = await _client(session).get_accounts()

        assert result[0].balance == Decimal("0")
        assert result[0].holds == Decimal("0")


# ============================================================
# MARKET DATA TESTS
# ============================================================

class TestMarketData:
    """Tests for get_market_data()."""

    TICKERS = {
        "code": "200000",
        "data": {
            "time": 1602832092060,
            "ticker": [
                {"symbol": "BTC-USDT", "last": "30000.5"},
                {"symbol": "ETH-USDT", "last": "2000"},
                {"symbol": "DOGE-USDT", "last": "0.1"},
                {"symbol": "ADA-USDT", "last": None},
            ],
        },
    }

    @pytest.mark.asyncio
    async def test_filters_requested_symbols(self):
        session = FakeSession(FakeResponse(200, self.TICKERS))

        result = await _client(session).get_market_data(["BTC-USDT", "ETH-USDT"])

        assert isinstance(result, MarketSnapshot)
        assert set(result.symbols) == {"BTC-USDT", "ETH-USDT"}
        assert result.prices["BTC-USDT"] == Decimal("30000.5")

    @pytest.mark.asyncio
    async def test_public_without_credentials(self):
        """Market data needs no credentials and sends no KC-API headers."""
        session = FakeSession(FakeResponse(200, self.TICKERS))

        result = await _client(session, credentials=False).get_market_data(["BTC-USDT"])

        assert isinstance(result, MarketSnapshot)
        assert not any(h.startswith("KC-API") for h in session.calls[0]["headers"])
        assert session.calls[0]["url"] == f"{BASE_URL}/api/v1/market/allTickers"

    @pytest.mark.asyncio
    async def test_unparseable_price_omitted(self):
        session = FakeSession(FakeResponse(200, self.TICKERS))

        result = await _client(session).get_market_data(["ADA-USDT", "BTC-USDT"])

        assert "ADA-USDT" in result.symbols
        assert "ADA-USDT" not in result.prices

    @pytest.mark.asyncio
    async def test_failure_passthrough(self):
        session = FakeSession(FakeResponse(500, "upstream error"))

        result = await _client(session).get_market_data()

        assert isinstance(result, TransportError)


# ============================================================
# SESSION TESTS
# ============================================================

class TestSession:
    """Session ownership and metrics."""

    @pytest.mark.asyncio
    async def test_external_session_not_closed(self):
        session = FakeSession()
        client = _client(session)

        await client.close()

        assert session.closed is False

    @pytest.mark.asyncio
    async def test_request_metrics(self):
        session = FakeSession(
            FakeResponse(200, {"code": "200000", "data": []}),
            FakeResponse(400, {"code": "400100", "msg": "bad"}),
            aiohttp.ClientConnectionError("down"),
        )
        client = _client(session)

        await client.get_accounts()
        await client.get_accounts()
        await client.get_accounts()

        requests = client.metrics.get_summary()["requests"]
        assert requests == {"total": 3, "success": 1, "rejected": 1, "transport_error": 1}

        by_path = client.metrics.get_summary()["latency_by_path"]
        assert list(by_path) == ["/api/v1/accounts"]
        assert by_path["/api/v1/accounts"]["count"] == 3

    def test_authenticated_flag(self):
        assert _client(FakeSession()).is_authenticated is True
        assert _client(FakeSession(), credentials=False).is_authenticated is False
