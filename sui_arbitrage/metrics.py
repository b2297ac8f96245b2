"""
Prometheus Metrics for the Sui spread monitor

Exposes RPC health, pool discovery and spread-check metrics for monitoring
and alerting.
"""

import logging
import time
from typing import Any, Dict, Optional

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)


class MonitorMetrics:
    """
    Spread monitor metrics collection and exposure

    Provides Prometheus-compatible metrics for:
    - RPC request outcomes and endpoint failovers
    - Pools discovered per DEX
    - Check cycle counts and duration
    - Recorded arbitrage opportunities and the best observed spread
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics with custom registry or default"""
        self.registry = registry or REGISTRY
        self._initialize_metrics()

        self._app = None
        self._runner = None
        self._site = None

    def _initialize_metrics(self):
        """Initialize all Prometheus metrics"""

        # === RPC METRICS ===
        self.rpc_requests_total = Counter(
            "sui_arbitrage_rpc_requests_total",
            "RPC operations by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.rpc_failovers_total = Counter(
            "sui_arbitrage_rpc_failovers_total",
            "Switches to the next RPC endpoint",
            registry=self.registry,
        )

        # === POOL METRICS ===
        self.pools_discovered = Gauge(
            "sui_arbitrage_pools_discovered",
            "Pools discovered on the last registry initialization",
            ["dex"],
            registry=self.registry,
        )

        # === CHECK CYCLE METRICS ===
        self.check_cycles_total = Counter(
            "sui_arbitrage_check_cycles_total",
            "Completed spread check cycles",
            registry=self.registry,
        )

        self.check_cycle_duration_seconds = Histogram(
            "sui_arbitrage_check_cycle_duration_seconds",
            "Duration of a full spread check cycle",
            buckets=[0.5, 1, 5, 10, 30, 60, 120, 300],
            registry=self.registry,
        )

        self.pair_check_failures_total = Counter(
            "sui_arbitrage_pair_check_failures_total",
            "Pair checks that raised and were skipped",
            registry=self.registry,
        )

        # === OPPORTUNITY METRICS ===
        self.opportunities_total = Counter(
            "sui_arbitrage_opportunities_total",
            "Opportunities recorded at or above the minimum spread",
            ["buy_dex", "sell_dex"],
            registry=self.registry,
        )

        self.best_spread_percent = Gauge(
            "sui_arbitrage_best_spread_percent",
            "Highest spread seen in the last check cycle",
            registry=self.registry,
        )

        self.last_cycle_timestamp = Gauge(
            "sui_arbitrage_last_cycle_timestamp",
            "Unix time of the last completed check cycle",
            registry=self.registry,
        )

    # === RECORDING ===

    def record_rpc_request(self, outcome: str):
        self.rpc_requests_total.labels(outcome=outcome).inc()

    def record_failover(self):
        self.rpc_failovers_total.inc()

    def update_pools_discovered(self, dex: str, count: int):
        self.pools_discovered.labels(dex=dex).set(count)

    def record_check_cycle(self, duration_seconds: float, best_spread: float):
        self.check_cycles_total.inc()
        self.check_cycle_duration_seconds.observe(duration_seconds)
        self.best_spread_percent.set(best_spread)
        self.last_cycle_timestamp.set(time.time())

    def record_pair_failure(self):
        self.pair_check_failures_total.inc()

    def record_opportunity(self, buy_dex: str, sell_dex: str):
        self.opportunities_total.labels(buy_dex=buy_dex, sell_dex=sell_dex).inc()

    # === SERVER MANAGEMENT ===

    async def start_server(
        self, port: int = 8000, host: str = "0.0.0.0", path: str = "/metrics"
    ):
        """Start Prometheus metrics HTTP server"""
        try:
            self._app = web.Application()
            self._app.router.add_get(path, self._metrics_handler)
            self._app.router.add_get("/health", self._health_handler)

            self._runner = web.AppRunner(self._app)
            await self._runner.setup()

            self._site = web.TCPSite(self._runner, host, port)
            await self._site.start()

            logger.info(f"Prometheus metrics server started on http://{host}:{port}{path}")
            return True

        except OSError as e:
            logger.error(f"Failed to start metrics server: {e}")
            return False

    async def stop_server(self):
        """Stop the metrics server"""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._site = None
        self._runner = None
        logger.info("Metrics server stopped")

    async def _metrics_handler(self, request):
        """Handle metrics endpoint requests"""
        metrics_output = generate_latest(self.registry)
        # Strip charset from content type to avoid conflicts with aiohttp
        content_type = CONTENT_TYPE_LATEST.split(";")[0]
        return web.Response(text=metrics_output.decode("utf-8"), content_type=content_type)

    async def _health_handler(self, request):
        """Handle health check endpoint"""
        return web.json_response({"status": "healthy", "service": "sui_arbitrage_metrics"})

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Current values of the headline counters"""
        return {
            "check_cycles": self.check_cycles_total._value.get(),
            "failovers": self.rpc_failovers_total._value.get(),
            "best_spread_percent": self.best_spread_percent._value.get(),
            "timestamp": time.time(),
        }
