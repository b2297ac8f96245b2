"""
Arbitrage monitor orchestration.

Wires config -> RPC client -> DEX adapters -> pool registry -> pair finder
-> price and spread monitors, prints console summaries and persists the
pairs and opportunities snapshots.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
from tabulate import tabulate

from dex.adapters import create_adapters
from dex.pool_registry import PoolRegistry

from .arbitrage import ArbitragePair, ArbitragePairFinder, MonitorConfig, SpreadMonitor
from .config_loader import get_default_config, load_config
from .config_schema import AppConfig, MonitorSettings
from .exceptions import SuiArbitrageError, ValidationError
from .metrics import MonitorMetrics
from .price import PriceMonitor, format_price, format_spread, shorten_coin_type
from .rpc import SuiClientManager, SuiRpcClient
from .utils import format_duration, get_logger
from .version import get_version

logger = get_logger(__name__)

SAMPLE_PAIR_COUNT = 5
TOP_OPPORTUNITY_COUNT = 10
HIGH_SPREAD_PERCENT = 1.0


class MonitorRunner:
    """
    End-to-end spread monitoring session.

    Usage:
        runner = MonitorRunner(config)
        await runner.setup()
        await runner.run(once=True)
        await runner.shutdown()
    """

    def __init__(self, config: AppConfig, enabled_dexes: Optional[List[str]] = None):
        self.config = config
        self.enabled_dexes = enabled_dexes or config.enabled_dexes
        self.metrics = MonitorMetrics() if config.metrics.enabled else None

        self.client: Optional[SuiClientManager] = None
        self.registry: Optional[PoolRegistry] = None
        self.pair_finder: Optional[ArbitragePairFinder] = None
        self.price_monitor: Optional[PriceMonitor] = None
        self.spread_monitor: Optional[SpreadMonitor] = None
        self.pairs: List[ArbitragePair] = []

    @property
    def output_dir(self) -> Path:
        return Path(self.config.output.directory)

    @property
    def pairs_path(self) -> Path:
        return self.output_dir / self.config.output.pairs_file

    @property
    def opportunities_path(self) -> Path:
        return self.output_dir / self.config.output.opportunities_file

    async def setup(self) -> None:
        """
        Connect, discover pools and find cross-DEX pairs.

        Raises:
            ConfigurationError: If no RPC URL is configured or a requested
                DEX has no adapter
        """
        rpc = self.config.rpc
        self.client = SuiClientManager(
            rpc.network,
            rpc.urls,
            rate_limit=rpc.rate_limit,
            client_factory=lambda url: SuiRpcClient(url, timeout=rpc.timeout),
            retry_delay=rpc.retry_delay,
            max_attempts=rpc.max_retries,
            metrics=self.metrics,
        )

        if self.metrics:
            await self.metrics.start_server(
                port=self.config.metrics.port, host=self.config.metrics.host
            )

        print(f"Connecting to Sui {rpc.network} ({self.client.current_url})...")
        if not await self.client.test_connection():
            logger.warning("Primary RPC endpoint failed the connection test")
            await self.client.switch_to_fallback()

        adapters = create_adapters(self.client, self.config.dexes)
        self.registry = PoolRegistry(adapters, metrics=self.metrics)

        print(f"Scanning pools on {', '.join(self.enabled_dexes)}...")
        await self.registry.initialize(self.enabled_dexes)
        self.print_pool_summary()

        self.pair_finder = ArbitragePairFinder(self.registry)
        self.pairs = self.pair_finder.find_cross_dex_pairs()
        self.print_pair_summary()

        self.price_monitor = PriceMonitor(self.registry)
        self.spread_monitor = SpreadMonitor(
            self.price_monitor,
            MonitorConfig.from_settings(self.config.monitor),
            metrics=self.metrics,
        )
        self.spread_monitor.load_pairs(self.pairs)

    async def run(self, once: bool = False) -> None:
        """Check the pairs once, or keep monitoring until cancelled."""
        if not self.pairs:
            print("No cross-DEX pairs found. Try raising max_events for the DEXes.")
            return

        self.pair_finder.export_pairs(self.pairs_path, self.pairs)
        print(f"Saved pairs to {self.pairs_path}")

        print("Running initial price check (reserves are fetched for every pair)...")
        await self.spread_monitor.start()
        self.report_opportunities()

        if once:
            self.spread_monitor.stop()
            return

        interval = self.spread_monitor.config.check_interval
        print(
            f"\nMonitoring {len(self.pairs)} pairs every {format_duration(interval)}. "
            "Press Ctrl+C to stop.\n"
        )

        check_count = 0
        while True:
            await asyncio.sleep(interval)
            check_count += 1
            self.print_status_line(check_count)
            if self.spread_monitor.opportunities:
                self.spread_monitor.save_opportunities(self.opportunities_path)

    async def shutdown(self) -> None:
        if self.spread_monitor:
            self.spread_monitor.stop()
            await self.spread_monitor.wait_for_cycle()
        if self.client:
            await self.client.close()
        if self.metrics:
            await self.metrics.stop_server()

    # === console output ===

    def print_pool_summary(self) -> None:
        rows = [
            [dex, len(self.registry.get_pools_by_dex(dex))] for dex in self.enabled_dexes
        ]
        rows.append(["total", len(self.registry.get_all_pools())])
        print(tabulate(rows, headers=["DEX", "Pools"], tablefmt="simple"))
        print()

    def print_pair_summary(self) -> None:
        stats = self.pair_finder.get_statistics()
        print(
            f"Cross-DEX pairs: {stats['total_pairs']} "
            f"(on 2 DEXes: {stats['pairs_on_2_dexes']}, "
            f"unique tokens: {stats['unique_tokens']})"
        )
        if not self.pairs:
            return

        rows = []
        for index, pair in enumerate(self.pairs[:SAMPLE_PAIR_COUNT], 1):
            rows.append(
                [
                    index,
                    f"{shorten_coin_type(pair.base_token)} / {shorten_coin_type(pair.quote_token)}",
                    " + ".join(pool.dex for pool in pair.pools),
                    len(pair.pools),
                ]
            )
        print(tabulate(rows, headers=["#", "Pair", "DEXes", "Pools"], tablefmt="simple"))
        print()

    def report_opportunities(self) -> None:
        opportunities = self.spread_monitor.get_top_opportunities(TOP_OPPORTUNITY_COUNT)
        print(f"\nFound {len(opportunities)} arbitrage opportunities")

        if not opportunities:
            print("No significant opportunities at this time.")
            return

        rows = [
            [
                index,
                f"{shorten_coin_type(opp.base_token)} / {shorten_coin_type(opp.quote_token)}",
                format_spread(opp.spread_percent),
                f"{opp.buy_dex} @ {format_price(opp.buy_price)}",
                f"{opp.sell_dex} @ {format_price(opp.sell_price)}",
            ]
            for index, opp in enumerate(opportunities, 1)
        ]
        print(
            tabulate(
                rows,
                headers=["#", "Pair", "Spread (before fees)", "Buy", "Sell"],
                tablefmt="grid",
            )
        )

        self.spread_monitor.save_opportunities(self.opportunities_path)
        print(f"Saved opportunities to {self.opportunities_path}")

    def print_status_line(self, check_count: int) -> None:
        stats = self.spread_monitor.get_stats()
        recorded = self.spread_monitor.get_opportunities()
        print(
            f"Check #{check_count} - {stats['recent_opportunities']} opportunities "
            f"in last minute (total: {len(recorded)})"
        )
        high = [opp for opp in recorded if opp.spread_percent >= HIGH_SPREAD_PERCENT]
        if high:
            print(f"  {len(high)} opportunities with >{HIGH_SPREAD_PERCENT:g}% spread")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Sui cross-DEX spread monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Monitor Cetus and Turbos on mainnet with built-in defaults
  python3 monitor_arbitrage.py

  # Use a config file
  python3 monitor_arbitrage.py --config configs/monitor.yaml

  # Single check (for testing/CI)
  python3 monitor_arbitrage.py --config configs/monitor.yaml --once
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {get_version()}",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config YAML file (default: built-in mainnet config)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single check and exit",
    )
    parser.add_argument(
        "--min-spread",
        type=float,
        default=None,
        help="Minimum spread to record, in percent (overrides config)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between checks (overrides config)",
    )
    parser.add_argument(
        "--dex",
        action="append",
        default=None,
        help="DEX to scan; repeat for several (default: every enabled DEX)",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging (every retry and skip)"
    )
    verbosity.add_argument(
        "-q", "--quiet", action="store_true", help="Only warnings and errors"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> AppConfig:
    """Load the config file (or defaults) and apply CLI overrides."""
    config = load_config(args.config) if args.config else get_default_config()

    overrides = {}
    if args.min_spread is not None:
        overrides["min_spread"] = args.min_spread
    if args.interval is not None:
        overrides["check_interval"] = args.interval
    if not overrides:
        return config

    try:
        monitor = MonitorSettings.model_validate({**config.monitor.model_dump(), **overrides})
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid command line override: {e}") from e
    return config.model_copy(update={"monitor": monitor})


async def run_monitor(config: AppConfig, once: bool, dexes: Optional[List[str]] = None) -> None:
    runner = MonitorRunner(config, enabled_dexes=dexes)
    try:
        await runner.setup()
        await runner.run(once=once)
    finally:
        await runner.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    load_dotenv()
    args = parse_args(argv)

    try:
        config = build_config(args)
        MonitorConfig.from_settings(config.monitor)
    except (SuiArbitrageError, ValueError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    try:
        asyncio.run(run_monitor(config, once=args.once, dexes=args.dex))
    except KeyboardInterrupt:
        print("\n\nStopped by user")
        return 0
    except SuiArbitrageError as e:
        print(f"Monitor failed: {e}", file=sys.stderr)
        return 1

    return 0
