#!/usr/bin/env python3
"""
Sui cross-DEX arbitrage monitor CLI.

Discovers Cetus and Turbos pools, finds pairs quoted on both and reports
price spreads between them. Detection only; nothing is traded.

Usage:
    python3 monitor_arbitrage.py
    python3 monitor_arbitrage.py --config configs/monitor.yaml
    python3 monitor_arbitrage.py --config configs/monitor.yaml --once
"""

import sys

import logging_config
from sui_arbitrage.runner import main, parse_args

if __name__ == "__main__":
    args = parse_args()
    if args.verbose:
        logging_config.setup_debug()
    elif args.quiet:
        logging_config.setup_minimal()
    else:
        logging_config.setup()
    sys.exit(main())
