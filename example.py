#!/usr/bin/env python3
"""
Example runner for candles_feeder that delegates to the package CLI.

    python example.py --symbols ETH BTC --base-currency USDT --base-timeframe 1H \
        --query-start "2024-01-01" --data-dir ./data
"""

from __future__ import annotations

import sys
from candles_feeder.cli import main as cli_main


def main() -> None:
    # Pass through command-line args to the real CLI main
    cli_main(sys.argv[1:])


if __name__ == "__main__":
    main()
