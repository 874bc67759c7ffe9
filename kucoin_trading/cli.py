"""
KuCoin Trading - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the trading gateway.

- Public market data
- Position sizing without any I/O
- Order placement and lookup
- Account balances
- Placeholder analysis batch (dry run unless --execute)
- HTTP gateway server

============================================================
USAGE
============================================================
python -m kucoin_trading.cli tickers --symbols BTC-USDT,ETH-USDT
python -m kucoin_trading.cli size --entry 100 --stop 98 --capital 1000
python -m kucoin_trading.cli order --symbol BTC-USDT --side buy --type limit --size 0.001 --price 30000
python -m kucoin_trading.cli scan --strategy scalp --seed 7
python -m kucoin_trading.cli serve --port 8000

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from .analysis import PlaceholderAnalysisEngine, Strategy
from .client import KucoinClient
from .config import RiskParameters, TradingConfig
from .dispatch import failure_response
from .errors import ConfigurationError, ValidationError
from .executor import BatchExecutor
from .logging_utils import setup_logging
from .sizing import PositionSizer, calculate_position_size
from .types import (
    MarketSnapshot,
    NoValidSize,
    OrderRequest,
    OrderStatus,
    Success,
)


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def _decimal_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid decimal value: {value!r}")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="kucoin-trading",
        description="KuCoin spot trading gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Credentials are read from KUCOIN_API_KEY, KUCOIN_API_SECRET,
KUCOIN_API_PASSPHRASE and KUCOIN_API_KEY_VERSION (or a .env file).

Examples:
  %(prog)s tickers                              # Default symbols
  %(prog)s size --entry 100 --stop 98 --capital 1000
  %(prog)s status --client-oid 5c52e11203aa677f33e493fb
        """
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        default="text",
        help="Logging format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 1.0.0",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    # --------------------------------------------------------
    # Market data
    # --------------------------------------------------------
    tickers = commands.add_parser("tickers", help="Last prices (public)")
    tickers.add_argument(
        "--symbols",
        type=str,
        help="Comma-separated symbols (default: configured symbols)",
    )

    # --------------------------------------------------------
    # Sizing
    # --------------------------------------------------------
    size = commands.add_parser("size", help="Risk-capped position size (no I/O)")
    size.add_argument("--entry", type=_decimal_arg, required=True)
    size.add_argument("--stop", type=_decimal_arg, required=True)
    size.add_argument("--capital", type=_decimal_arg, help="Account capital (default: config)")
    size.add_argument("--risk-fraction", type=_decimal_arg, help="Max risk fraction (default: config)")
    size.add_argument("--min-notional", type=_decimal_arg, help="Minimum order value (default: config)")

    # --------------------------------------------------------
    # Orders
    # --------------------------------------------------------
    order = commands.add_parser("order", help="Place an order")
    order.add_argument("--symbol", required=True)
    order.add_argument("--side", choices=["buy", "sell"], required=True)
    order.add_argument("--type", dest="order_type", choices=["market", "limit"], default="market")
    order.add_argument("--size", required=True, help="Base size, or quote funds for a market buy")
    order.add_argument("--price", help="Limit price")
    order.add_argument("--stop-price", help="Stop trigger price")
    order.add_argument("--client-oid", help="Idempotency token (generated when omitted)")

    status = commands.add_parser("status", help="Look up an order")
    lookup = status.add_mutually_exclusive_group(required=True)
    lookup.add_argument("--order-id")
    lookup.add_argument("--client-oid")

    accounts = commands.add_parser("accounts", help="Account balances")
    accounts.add_argument("--currency")
    accounts.add_argument("--type", dest="account_type", choices=["main", "trade", "margin"])

    # --------------------------------------------------------
    # Batch
    # --------------------------------------------------------
    scan = commands.add_parser(
        "scan",
        help="Run the placeholder analysis over market data and size candidates",
    )
    scan.add_argument(
        "--strategy",
        choices=[s.value for s in Strategy],
        default=Strategy.SWING.value,
    )
    scan.add_argument("--seed", type=int, help="Random seed for reproducible output")
    scan.add_argument(
        "--execute",
        action="store_true",
        help="Submit orders (default: dry run)",
    )

    # --------------------------------------------------------
    # Server
    # --------------------------------------------------------
    serve = commands.add_parser("serve", help="Run the HTTP gateway")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    return parser


# ============================================================
# COMMANDS
# ============================================================

def _print(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _client(config: TradingConfig, authenticated: bool = True) -> KucoinClient:
    credentials = None
    if authenticated:
        if config.credentials is None:
            raise ConfigurationError("Missing KuCoin API credentials")
        credentials = config.credentials.validate()
    return KucoinClient(credentials=credentials, config=config.client)


async def cmd_tickers(args: argparse.Namespace, config: TradingConfig) -> int:
    symbols = config.symbols
    if args.symbols:
        symbols = tuple(s.strip() for s in args.symbols.split(",") if s.strip())

    async with _client(config, authenticated=False) as client:
        result = await client.get_market_data(symbols)

    if not isinstance(result, MarketSnapshot):
        _print(failure_response(result))
        return 1
    _print(result.to_dict())
    return 0


def cmd_size(args: argparse.Namespace, config: TradingConfig) -> int:
    risk = config.risk
    result = calculate_position_size(
        args.entry,
        args.stop,
        args.capital if args.capital is not None else risk.account_capital,
        args.risk_fraction if args.risk_fraction is not None else risk.max_risk_fraction,
        args.min_notional if args.min_notional is not None else risk.min_notional,
    )
    if isinstance(result, NoValidSize):
        _print({"valid": False, "reason": result.reason})
        return 1
    _print({"valid": True, "quantity": str(result), "notional": str(result * args.entry)})
    return 0


async def cmd_order(args: argparse.Namespace, config: TradingConfig) -> int:
    request = OrderRequest(
        symbol=args.symbol,
        side=args.side,
        order_type=args.order_type,
        size=args.size,
        price=args.price,
        stop_price=args.stop_price,
        client_oid=args.client_oid,
    )
    async with _client(config) as client:
        result = await client.place_order(request)

    if not isinstance(result, Success):
        _print(failure_response(result))
        return 1
    _print({"orderId": result.order_id})
    return 0


async def cmd_status(args: argparse.Namespace, config: TradingConfig) -> int:
    async with _client(config) as client:
        if args.order_id:
            result = await client.get_order(args.order_id)
        else:
            result = await client.get_order_by_client_oid(args.client_oid)

    if not isinstance(result, OrderStatus):
        _print(failure_response(result))
        return 1
    _print(result.to_dict())
    return 0


async def cmd_accounts(args: argparse.Namespace, config: TradingConfig) -> int:
    async with _client(config) as client:
        result = await client.get_accounts(args.currency, args.account_type)

    if not isinstance(result, list):
        _print(failure_response(result))
        return 1
    _print([balance.to_dict() for balance in result])
    return 0


async def cmd_scan(args: argparse.Namespace, config: TradingConfig) -> int:
    engine = PlaceholderAnalysisEngine(Strategy(args.strategy), seed=args.seed)
    sizer = PositionSizer(config.risk)

    async with _client(config, authenticated=args.execute) as client:
        snapshot = await client.get_market_data(config.symbols)
        if not isinstance(snapshot, MarketSnapshot):
            _print(failure_response(snapshot))
            return 1

        candidates = engine.analyze(snapshot)

        if not args.execute:
            rows = []
            for candidate in candidates:
                sized = sizer.size(candidate.entry_price, candidate.stop_loss)
                rows.append({
                    "symbol": candidate.symbol,
                    "side": candidate.side.value,
                    "entry": str(candidate.entry_price),
                    "stop": str(candidate.stop_loss),
                    "score": candidate.score,
                    "quantity": None if isinstance(sized, NoValidSize) else str(sized),
                    "analysis": candidate.analysis,
                })
            _print(rows)
            return 0

        executor = BatchExecutor(client, sizer, config.batch)
        report = await executor.execute(candidates)

    _print([
        {
            "symbol": o.candidate.symbol,
            "status": o.status.value,
            "orderId": o.order_id,
            "clientOid": o.client_oid,
            "quantity": o.quantity,
            "message": o.message,
        }
        for o in report.outcomes
    ])
    return 0


def cmd_serve(args: argparse.Namespace, config: TradingConfig) -> int:
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(config), host=args.host, port=args.port)
    return 0


ASYNC_COMMANDS = {
    "tickers": cmd_tickers,
    "order": cmd_order,
    "status": cmd_status,
    "accounts": cmd_accounts,
    "scan": cmd_scan,
}

SYNC_COMMANDS = {
    "size": cmd_size,
    "serve": cmd_serve,
}


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_format)

    try:
        config = TradingConfig.from_env()
        errors = config.validate()
        if errors:
            for error in errors:
                print(f"Error: {error}", file=sys.stderr)
            return 1

        if args.command in SYNC_COMMANDS:
            return SYNC_COMMANDS[args.command](args, config)
        return asyncio.run(ASYNC_COMMANDS[args.command](args, config))

    except (ConfigurationError, ValidationError) as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
