"""
Feed tap: stream one market from one exchange to the log.

Usage:
    python -m marketfeed binance
    python -m marketfeed okx eth-usdt --interval 1h --duration 60
    python -m marketfeed kraken btc-usd --config-dir config --log-level DEBUG

The tap resolves the adapter, loads the symbol list, picks a symbol (the
requested one or its closest listed alternative), fetches candle history and
a book snapshot, then streams book, kline and trade updates until the
duration elapses.

Exit Codes:
    0: Success
    1: Exchange or configuration error
    2: Exchange not integrated or disabled

Environment Variables:
    CONFIG_PATH: Path to config directory (overridden by --config-dir)
    LOG_LEVEL: Logging level (overridden by --log-level)
"""

import argparse
import asyncio
import sys
import time
from typing import List, Optional

import structlog

from marketfeed.adapters.registry import AVAILABLE_EXCHANGES, ExchangeRegistry
from marketfeed.config.loader import ConfigLoadError, load_config
from marketfeed.config.models import LogLevel
from marketfeed.errors import MarketFeedError
from marketfeed.interfaces.exchange_adapter import ExchangeAdapter
from marketfeed.log import setup_logging
from marketfeed.metrics.candles import CandleSeries
from marketfeed.metrics.flow import CumulativeDelta
from marketfeed.models.stream import StreamMessage
from marketfeed.symbols import choose_symbol

logger = structlog.get_logger(__name__)

FLOW_WINDOW_SECONDS = 300


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marketfeed",
        description="Stream normalized market data from one exchange to the log.",
    )
    parser.add_argument("exchange", help=f"One of: {', '.join(AVAILABLE_EXCHANGES)}")
    parser.add_argument("symbol", nargs="?", default=None, help="Canonical symbol, e.g. btc-usdt")
    parser.add_argument("--interval", default="1m", help="Candle interval (default: 1m)")
    parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Seconds to stream before disconnecting (default: 30)",
    )
    parser.add_argument("--config-dir", default=None, help="Directory holding the YAML config")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=[level.value for level in LogLevel],
        help="Override the configured log level",
    )
    return parser


class FeedTap:
    """Consumer that keeps candle and flow state and logs every update."""

    def __init__(self, exchange: str, history: CandleSeries) -> None:
        self.exchange = exchange
        self.candles = history
        self.flow = CumulativeDelta()
        self.messages = 0

    def handle(self, message: StreamMessage, exchange_name: str) -> None:
        if exchange_name != self.exchange:
            return
        self.messages += 1

        if message.type == "depth":
            book = message.data
            logger.info(
                "depth_update",
                best_bid=str(book.best_bid),
                best_ask=str(book.best_ask),
                spread=str(book.spread),
                levels=len(book.bids) + len(book.asks),
            )
        elif message.type == "kline":
            if self.candles.apply(message.data):
                logger.info(
                    "kline_update",
                    time=message.data.time,
                    close=str(message.data.close),
                    candles=len(self.candles),
                )
        elif message.type == "trade":
            point = self.flow.add(message.data)
            logger.debug(
                "flow_update",
                price=str(message.data.price),
                side=message.data.side.value,
                delta=str(point.delta),
                avg_5m=str(self.flow.average_since(FLOW_WINDOW_SECONDS, time.time())),
            )


async def run_tap(
    adapter: ExchangeAdapter,
    symbol: Optional[str],
    interval: str,
    duration: float,
) -> int:
    """
    Run the feed tap against one adapter.

    Returns:
        int: Process exit code.
    """
    try:
        symbols = await adapter.fetch_all_symbols()
        chosen = choose_symbol(symbols, previous=symbol)
        if chosen is None:
            logger.error("no_symbols_listed", exchange=adapter.name)
            return 1
        if symbol and chosen != symbol:
            logger.warning("symbol_substituted", requested=symbol, chosen=chosen)

        history = CandleSeries(await adapter.fetch_klines(chosen, interval))
        book = await adapter.fetch_order_book_snapshot(chosen)
        logger.info(
            "market_loaded",
            exchange=adapter.name,
            symbol=chosen,
            interval=interval,
            candles=len(history),
            best_bid=str(book.best_bid),
            best_ask=str(book.best_ask),
        )

        tap = FeedTap(adapter.name, history)
        disconnect = adapter.connect(chosen, interval, tap.handle)
        try:
            await asyncio.sleep(duration)
        finally:
            disconnect()

        logger.info(
            "feed_tap_finished",
            exchange=adapter.name,
            messages=tap.messages,
            delta=str(tap.flow.delta),
        )
        return 0

    except MarketFeedError as e:
        logger.error("feed_tap_failed", exchange=adapter.name, error=str(e))
        return 1
    finally:
        await adapter.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config_dir)
    except ConfigLoadError as e:
        setup_logging()
        logger.error("config_load_failed", error=str(e), file_path=str(e.file_path))
        return 1

    logging_config = config.logging
    if args.log_level:
        logging_config = logging_config.model_copy(update={"level": LogLevel(args.log_level)})
    setup_logging(logging_config)

    adapter = ExchangeRegistry(config).get(args.exchange)
    if adapter is None:
        logger.error(
            "exchange_unavailable",
            exchange=args.exchange,
            available=list(AVAILABLE_EXCHANGES),
        )
        return 2

    return asyncio.run(run_tap(adapter, args.symbol, args.interval, args.duration))


if __name__ == "__main__":
    sys.exit(main())
