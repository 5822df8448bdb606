#!/usr/bin/env python3
"""
Command-line interface for the candles_feeder package.

Builds a FeederConfig from a JSON file and/or flags, prints a compact
colored one-liner, resolves the symbol set and runs the feeder until
interrupted.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from typing import Any, Dict, List, Optional

from colorama import Fore, Style

from .catalog import resolve_symbols
from .config import DEFAULT_DATA_DIR, FeederConfig, read_config_file
from .errors import FeederError
from .feeder import CandleFeeder
from .logs import ERROR, INFO, WARNING, COLOR_TYPE, COLOR_VAR, log_error, set_verbose
from .sources import BinanceCandleSource, BinanceSymbolCatalog
from .store import CsvSeriesStore
from .timeframes import DEFAULT_TIMEFRAME

SEP_BULLET: str = " · "
EMPTY_DASH: str = "—"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="candles-feeder",
        description=(
            f"{INFO} Candles Feeder — exchange candle backfill & realtime ingestion {Style.RESET_ALL}\n\n"
            "Backfills OHLCV candles from the last stored point, then appends one closed candle\n"
            "per interval. Flags override values from --config.\n\n"
            f"{INFO} Defaults:{Style.RESET_ALL} --base-timeframe={DEFAULT_TIMEFRAME}, --data-dir={DEFAULT_DATA_DIR}\n"
        ),
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="JSON config file (FeederConfig fields)")
    parser.add_argument(
        "--symbols",
        nargs="+",
        default=None,
        help="Base-asset symbols (e.g. ETH BTC). Omit to discover all trading symbols.",
    )
    parser.add_argument("--base-currency", dest="base_currency", default=None, help="Quote asset (default: BNB)")
    parser.add_argument(
        "--base-timeframe",
        "--timeframe",
        dest="base_timeframe",
        default=None,
        help=f"Timeframe label, e.g. 1Min, 5Min, 1H, 1D (default: {DEFAULT_TIMEFRAME})",
    )
    parser.add_argument(
        "--query-start",
        "--start",
        dest="query_start",
        default=None,
        help="Backfill start, 'YYYY-MM-DD[ HH:MM[:SS]]' in --timezone",
    )
    parser.add_argument("--timezone", default=None, help="Timezone for --query-start (default: UTC)")
    parser.add_argument("--data-dir", dest="data_dir", default=None, help=f"CSV store root (default: {DEFAULT_DATA_DIR})")
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="Verbose logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> FeederConfig:
    data: Dict[str, Any] = read_config_file(args.config) if args.config else {}
    for key in ("symbols", "base_currency", "base_timeframe", "query_start", "timezone", "data_dir", "verbose"):
        value = getattr(args, key, None)
        if value is not None:
            data[key] = value
    return FeederConfig.from_dict(data)


def _one_line_run_summary(config: FeederConfig) -> str:
    symbols = "[" + ", ".join(config.symbols) + "]" if config.symbols else "auto"
    start = config.query_start if config.query_start else EMPTY_DASH
    parts = [
        f"{Fore.CYAN}{config.exchange}{Style.RESET_ALL}",
        f"{COLOR_VAR}quote{Style.RESET_ALL}={COLOR_TYPE}{config.base_currency}{Style.RESET_ALL}",
        f"{COLOR_VAR}symbols{Style.RESET_ALL}={COLOR_TYPE}{symbols}{Style.RESET_ALL}",
        f"{COLOR_VAR}tf{Style.RESET_ALL}={COLOR_TYPE}{config.timeframe}{Style.RESET_ALL}",
        f"{COLOR_VAR}start{Style.RESET_ALL}={COLOR_TYPE}{start}{Style.RESET_ALL}",
        f"{COLOR_VAR}tz{Style.RESET_ALL}={COLOR_TYPE}{config.timezone}{Style.RESET_ALL}",
        f"{COLOR_VAR}data{Style.RESET_ALL}={COLOR_TYPE}{config.data_dir}{Style.RESET_ALL}",
    ]
    return f"{INFO} " + SEP_BULLET.join(parts) + f"{Style.RESET_ALL}"


def run_cli(config: FeederConfig, stop_event: Optional[threading.Event] = None) -> int:
    """
    Wires the Binance source, symbol catalog and CSV store into a feeder and
    runs it. Returns a process exit code.
    """
    stop_event = stop_event or threading.Event()
    try:
        source = BinanceCandleSource(config.api_url, timeout=config.request_timeout_seconds)
        catalog = BinanceSymbolCatalog(config.api_url, timeout=config.request_timeout_seconds)
        symbols = resolve_symbols(config, catalog, source)
        feeder = CandleFeeder(config, source, CsvSeriesStore(config.data_dir), symbols, stop_event=stop_event)
    except FeederError as exc:
        sys.stderr.write(f"{ERROR} Failed to create feeder: {exc}{Style.RESET_ALL}\n")
        return 2

    try:
        feeder.run()
    except KeyboardInterrupt:
        sys.stderr.write(f"{WARNING} Interrupted by user.{Style.RESET_ALL}\n")
    except FeederError as exc:
        sys.stderr.write(f"{ERROR} Feeder failed: {exc}{Style.RESET_ALL}\n")
        return 3
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    try:
        config = build_config(args)
    except FeederError as exc:
        log_error(f"Invalid configuration: {exc}")
        raise SystemExit(2)

    set_verbose(config.verbose)
    print(_one_line_run_summary(config))

    stop_event = threading.Event()
    signal.signal(signal.SIGTERM, lambda signum, frame: stop_event.set())

    raise SystemExit(run_cli(config, stop_event))


if __name__ == "__main__":
    main()
