"""
Periodic cross-DEX spread monitor.

Lifecycle: constructed (idle) -> ``start()`` (running) -> ``stop()`` (idle).
A check cycle walks every loaded pair, optionally refreshes its pools'
reserves, compares the prices and records opportunities that meet the
minimum spread in a bounded history.
"""

import asyncio
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Optional, Union

from ..exceptions import DataError
from ..price.calculator import calculate_spread, format_spread, shorten_coin_type
from ..utils import (
    get_current_timestamp,
    get_logger,
    iso_to_timestamp,
    read_json_file,
    timestamp_to_iso,
    write_json_file,
)
from .pair_finder import SNAPSHOT_FORMAT_VERSION
from .types import ArbitrageOpportunity, ArbitragePair, MonitorConfig

logger = get_logger(__name__)

RECENT_WINDOW_SECONDS = 60.0


class SpreadMonitor:
    """Watches cross-DEX pairs and keeps a history of spread opportunities"""

    def __init__(self, price_monitor, config: Optional[MonitorConfig] = None, metrics=None):
        """
        Args:
            price_monitor: PriceMonitor used for reserve refreshes and prices
            config: Monitor settings (defaults to MonitorConfig())
            metrics: Optional MonitorMetrics
        """
        self.price_monitor = price_monitor
        self.config = config or MonitorConfig()
        self.metrics = metrics

        self.pairs: List[ArbitragePair] = []
        self.opportunities: Deque[ArbitrageOpportunity] = deque(
            maxlen=self.config.history_size
        )
        self.is_running = False

        self._loop_task: Optional[asyncio.Task] = None
        self._cycle_task: Optional[asyncio.Task] = None
        self._cycle_lock = asyncio.Lock()

    def load_pairs(self, pairs: List[ArbitragePair]) -> None:
        self.pairs = list(pairs)
        logger.info(f"Loaded {len(self.pairs)} pairs for monitoring")

    # === lifecycle ===

    async def start(self) -> None:
        """Run one check now, then keep checking every ``check_interval``."""
        if self.is_running:
            logger.warning("Spread monitor already running")
            return

        self.is_running = True
        logger.info(
            f"Starting spread monitor (interval={self.config.check_interval}s, "
            f"min_spread={self.config.min_spread}%)"
        )

        await self._run_cycle()

        # stop() may have been called during the first cycle
        if self.is_running:
            self._loop_task = asyncio.create_task(self._run_loop())

    def stop(self) -> None:
        """
        Cancel the recurring schedule.

        A cycle already in progress keeps running to completion; await
        ``wait_for_cycle()`` to wait for it.
        """
        if self._loop_task is not None:
            self._loop_task.cancel()
            self._loop_task = None
        self.is_running = False
        logger.info("Spread monitor stopped")

    async def wait_for_cycle(self) -> None:
        """Wait for an in-flight check cycle, if any."""
        if self._cycle_task is not None and not self._cycle_task.done():
            await asyncio.wait([self._cycle_task])

    async def _run_loop(self) -> None:
        while self.is_running:
            try:
                await asyncio.sleep(self.config.check_interval)
                await self._run_cycle()
            except asyncio.CancelledError:
                logger.debug("Spread monitor loop cancelled")
                break
            except Exception as e:
                logger.error(f"Error in spread monitor loop: {e}")

    async def _run_cycle(self) -> None:
        # Shielded so that cancelling the loop leaves the cycle running
        self._cycle_task = asyncio.ensure_future(self.check_all_pairs())
        await asyncio.shield(self._cycle_task)

    # === checking ===

    async def check_all_pairs(self) -> int:
        """
        Check every loaded pair once, in load order.

        Returns:
            Number of opportunities recorded by this cycle (0 if skipped
            because another cycle was still running)
        """
        if self._cycle_lock.locked():
            logger.warning("Previous check cycle still running, skipping")
            return 0

        async with self._cycle_lock:
            started = get_current_timestamp()
            logger.info(f"Checking {len(self.pairs)} pairs...")

            found = 0
            best_spread = 0.0
            for pair in self.pairs:
                try:
                    opportunity = await self.check_pair(pair)
                except Exception as e:
                    logger.debug(
                        f"Failed to check pair {shorten_coin_type(pair.base_token)}/"
                        f"{shorten_coin_type(pair.quote_token)}: {e}"
                    )
                    if self.metrics:
                        self.metrics.record_pair_failure()
                    continue

                pair.last_check = get_current_timestamp()
                if pair.spread_percent is not None:
                    best_spread = max(best_spread, pair.spread_percent)

                if opportunity is None:
                    continue

                self.opportunities.append(opportunity)
                found += 1
                if self.metrics:
                    self.metrics.record_opportunity(opportunity.buy_dex, opportunity.sell_dex)

                logger.info(
                    f"Arbitrage opportunity: {shorten_coin_type(pair.base_token)}/"
                    f"{shorten_coin_type(pair.quote_token)} "
                    f"spread={format_spread(opportunity.spread_percent)} "
                    f"buy={opportunity.buy_dex} sell={opportunity.sell_dex}"
                )

            elapsed = get_current_timestamp() - started
            if self.metrics:
                self.metrics.record_check_cycle(elapsed, best_spread)
            logger.info(
                f"Pair check complete: checked={len(self.pairs)}, "
                f"opportunities={found}, elapsed={elapsed * 1000:.0f}ms"
            )
            return found

    async def check_pair(self, pair: ArbitragePair) -> Optional[ArbitrageOpportunity]:
        """
        Compare a pair's prices across its pools.

        Updates ``pair.spread_percent`` whenever two or more prices exist.
        Returns an opportunity only when the spread meets ``min_spread``.
        """
        if self.config.auto_refresh:
            await asyncio.gather(
                *(self.price_monitor.update_pool_reserves(pool.pool_id) for pool in pair.pools)
            )

        prices = await self.price_monitor.get_prices(
            pair.base_token, pair.quote_token, refresh=False
        )
        if len(prices) < 2:
            return None

        ordered = sorted(prices, key=lambda p: p.price)
        best_buy, best_sell = ordered[0], ordered[-1]
        spread = calculate_spread(best_buy.price, best_sell.price)
        pair.spread_percent = spread

        if spread < self.config.min_spread:
            return None

        return ArbitrageOpportunity(
            pair=pair,
            buy_dex=best_buy.dex,
            buy_price=best_buy.price,
            sell_dex=best_sell.dex,
            sell_price=best_sell.price,
            spread_percent=spread,
            timestamp=get_current_timestamp(),
            buy_pool_id=best_buy.pool_id,
            sell_pool_id=best_sell.pool_id,
        )

    # === queries ===

    def get_opportunities(self, min_spread: Optional[float] = None) -> List[ArbitrageOpportunity]:
        threshold = self.config.min_spread if min_spread is None else min_spread
        return [opp for opp in self.opportunities if opp.spread_percent >= threshold]

    def get_top_opportunities(self, count: int = 10) -> List[ArbitrageOpportunity]:
        return sorted(self.opportunities, key=lambda o: o.spread_percent, reverse=True)[:count]

    def get_stats(self) -> Dict:
        now = get_current_timestamp()
        recent = sum(
            1 for opp in self.opportunities if now - opp.timestamp < RECENT_WINDOW_SECONDS
        )
        return {
            "is_running": self.is_running,
            "pairs_monitored": len(self.pairs),
            "total_opportunities": len(self.opportunities),
            "recent_opportunities": recent,
            "config": self.config.to_dict(),
        }

    # === persistence ===

    def save_opportunities(self, path: Union[str, Path]) -> Path:
        """Write the history as a versioned JSON snapshot."""
        document = {
            "format_version": SNAPSHOT_FORMAT_VERSION,
            "timestamp": timestamp_to_iso(get_current_timestamp()),
            "config": self.config.to_dict(),
            "pairs": len(self.pairs),
            "count": len(self.opportunities),
            "opportunities": [self._opportunity_to_dict(opp) for opp in self.opportunities],
        }
        written = write_json_file(path, document)
        logger.info(f"Opportunities saved: {written} ({len(self.opportunities)} entries)")
        return written

    def load_opportunities(self, path: Union[str, Path]) -> List[ArbitrageOpportunity]:
        """
        Read a snapshot written by save_opportunities.

        The monitor's own history is left untouched.

        Raises:
            DataError: If the snapshot version is unsupported or an entry is
                malformed
        """
        document = read_json_file(path)
        version = document.get("format_version")
        if version != SNAPSHOT_FORMAT_VERSION:
            raise DataError(
                f"Unsupported snapshot format version: {version}",
                source=str(path),
            )

        opportunities = []
        for entry in document.get("opportunities", []):
            try:
                opportunities.append(self._opportunity_from_dict(entry))
            except (KeyError, TypeError, ValueError) as e:
                raise DataError(f"Malformed opportunity entry: {e}", source=str(path)) from e
        return opportunities

    @staticmethod
    def _opportunity_to_dict(opp: ArbitrageOpportunity) -> Dict:
        return {
            "base_token": opp.pair.base_token,
            "quote_token": opp.pair.quote_token,
            "base_symbol": shorten_coin_type(opp.pair.base_token),
            "quote_symbol": shorten_coin_type(opp.pair.quote_token),
            "buy_dex": opp.buy_dex,
            "buy_pool_id": opp.buy_pool_id,
            "buy_price": opp.buy_price,
            "sell_dex": opp.sell_dex,
            "sell_pool_id": opp.sell_pool_id,
            "sell_price": opp.sell_price,
            "spread_percent": opp.spread_percent,
            "spread": format_spread(opp.spread_percent),
            "timestamp": timestamp_to_iso(opp.timestamp),
        }

    @staticmethod
    def _opportunity_from_dict(entry: Dict) -> ArbitrageOpportunity:
        pair = ArbitragePair(
            base_token=entry["base_token"],
            quote_token=entry["quote_token"],
            spread_percent=float(entry["spread_percent"]),
        )
        return ArbitrageOpportunity(
            pair=pair,
            buy_dex=entry["buy_dex"],
            buy_price=float(entry["buy_price"]),
            sell_dex=entry["sell_dex"],
            sell_price=float(entry["sell_price"]),
            spread_percent=float(entry["spread_percent"]),
            timestamp=iso_to_timestamp(entry["timestamp"]),
            buy_pool_id=entry.get("buy_pool_id", ""),
            sell_pool_id=entry.get("sell_pool_id", ""),
        )
