"""
Integration tests for the full discovery -> pairing -> spread pipeline
"""

import json
from unittest.mock import patch

import pytest

from conftest import SUI, USDC
from dex.adapters import create_adapters
from dex.pool_registry import PoolRegistry
from sui_arbitrage.arbitrage import ArbitragePairFinder, MonitorConfig, SpreadMonitor
from sui_arbitrage.config_loader import CETUS_MAINNET, TURBOS_MAINNET, build_config
from sui_arbitrage.price import PriceMonitor
from sui_arbitrage.rpc import SuiClientManager
from sui_arbitrage.runner import MonitorRunner

TURBOS_PACKAGE = TURBOS_MAINNET["package_id"]


class ScriptedSuiNode:
    """Answers the handful of JSON-RPC methods the pipeline uses."""

    def __init__(self, cetus_reserves=(1_000_000, 3_000_000), turbos_reserves=(1_000_000, 3_150_000)):
        self.cetus_reserves = cetus_reserves
        self.turbos_reserves = turbos_reserves

    async def get_chain_identifier(self):
        return "35834a8a"

    async def query_events(self, query, cursor=None, limit=50, descending_order=True):
        event_type = query["MoveEventType"]
        if event_type.endswith("::factory::CreatePoolEvent"):
            data = [
                {
                    "id": {"txDigest": "c1", "eventSeq": "0"},
                    "parsedJson": {
                        "pool_id": "0xpool1",
                        "coin_type_a": SUI[2:],
                        "coin_type_b": USDC[2:],
                        "fee_rate": "3000",
                    },
                }
            ]
        elif event_type.endswith("::pool_factory::PoolCreatedEvent"):
            data = [{"id": {"txDigest": "t1", "eventSeq": "0"}, "parsedJson": {"pool": "0xpool2"}}]
        else:
            data = []
        return {"data": data, "nextCursor": None, "hasNextPage": False}

    def _turbos_object(self):
        reserve_a, reserve_b = self.turbos_reserves
        return {
            "data": {
                "objectId": "0xpool2",
                "type": (
                    f"{TURBOS_PACKAGE}::pool::Pool<0x2::sui::SUI, {USDC}, "
                    f"{TURBOS_PACKAGE}::fee3000bps::FEE3000BPS>"
                ),
                "content": {
                    "dataType": "moveObject",
                    "fields": {"coin_a": str(reserve_a), "coin_b": str(reserve_b), "fee": "3000"},
                },
            }
        }

    async def get_object(self, object_id, show_content=True, show_type=False):
        if object_id == "0xpool1":
            reserve_a, reserve_b = self.cetus_reserves
            return {
                "data": {
                    "objectId": "0xpool1",
                    "content": {
                        "dataType": "moveObject",
                        "fields": {"coin_a": str(reserve_a), "coin_b": str(reserve_b)},
                    },
                }
            }
        if object_id == "0xpool2":
            return self._turbos_object()
        return {"error": {"code": "notExists", "object_id": object_id}}

    async def multi_get_objects(self, object_ids, show_content=True, show_type=True):
        return [self._turbos_object() for object_id in object_ids if object_id == "0xpool2"]

    async def close(self):
        pass


def mainnet_config(output_dir, min_spread=1.0):
    return build_config(
        {
            "rpc": {"network": "mainnet", "urls": ["https://fullnode.example:443"], "retry_delay": 0},
            "dexes": [dict(CETUS_MAINNET), dict(TURBOS_MAINNET)],
            "monitor": {"min_spread": min_spread, "check_interval": 60},
            "output": {"directory": str(output_dir)},
        }
    )


@pytest.mark.integration
class TestSuiUsdcScenario:
    """Two SUI/USDC pools quoting 3.00 and 3.15"""

    @pytest.mark.asyncio
    async def test_fake_dexes(self, sui_usdc_registry):
        finder = ArbitragePairFinder(sui_usdc_registry)
        pairs = finder.find_cross_dex_pairs()
        assert len(pairs) == 1

        price_monitor = PriceMonitor(sui_usdc_registry)
        comparison = await price_monitor.compare_prices(SUI, USDC)
        assert comparison.spread_percent == pytest.approx(5.0)

        spread_monitor = SpreadMonitor(price_monitor, MonitorConfig(min_spread=1.0))
        spread_monitor.load_pairs(pairs)
        await spread_monitor.check_all_pairs()

        assert len(spread_monitor.opportunities) == 1
        opportunity = spread_monitor.opportunities[0]
        assert opportunity.buy_dex == "alpha"
        assert opportunity.sell_dex == "beta"
        assert opportunity.spread_percent == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_real_adapters_over_scripted_node(self, tmp_path):
        config = mainnet_config(tmp_path)
        node = ScriptedSuiNode()
        client = SuiClientManager(
            "mainnet", config.rpc.urls, client_factory=lambda url: node, retry_delay=0
        )
        registry = PoolRegistry(create_adapters(client, config.dexes))
        await registry.initialize(config.enabled_dexes)

        # Cetus events carry unprefixed addresses; both pools land on one edge
        assert registry.get_pool("0xpool1").coin_type_a == SUI
        assert len(registry.get_pools_for_pair(SUI, USDC)) == 2

        pairs = ArbitragePairFinder(registry).find_cross_dex_pairs()
        spread_monitor = SpreadMonitor(
            PriceMonitor(registry), MonitorConfig.from_settings(config.monitor)
        )
        spread_monitor.load_pairs(pairs)
        await spread_monitor.check_all_pairs()

        (opportunity,) = spread_monitor.get_opportunities()
        assert (opportunity.buy_dex, opportunity.sell_dex) == ("cetus", "turbos")
        assert (opportunity.buy_pool_id, opportunity.sell_pool_id) == ("0xpool1", "0xpool2")
        assert opportunity.spread_percent == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_no_opportunity_below_threshold(self, tmp_path):
        config = mainnet_config(tmp_path, min_spread=10.0)
        node = ScriptedSuiNode()
        client = SuiClientManager("mainnet", config.rpc.urls, client_factory=lambda url: node)
        registry = PoolRegistry(create_adapters(client, config.dexes))
        await registry.initialize()

        spread_monitor = SpreadMonitor(
            PriceMonitor(registry), MonitorConfig.from_settings(config.monitor)
        )
        spread_monitor.load_pairs(ArbitragePairFinder(registry).find_cross_dex_pairs())
        await spread_monitor.check_all_pairs()

        assert spread_monitor.get_opportunities(min_spread=0) == []
        assert spread_monitor.pairs[0].spread_percent == pytest.approx(5.0)


@pytest.mark.integration
class TestMonitorRunner:
    """CLI orchestration with a scripted node"""

    @pytest.mark.asyncio
    async def test_single_pass_writes_snapshots(self, tmp_path, capsys):
        config = mainnet_config(tmp_path)
        node = ScriptedSuiNode()

        with patch("sui_arbitrage.runner.SuiRpcClient", lambda url, timeout=30.0: node):
            runner = MonitorRunner(config)
            try:
                await runner.setup()
                await runner.run(once=True)
            finally:
                await runner.shutdown()

        pairs_doc = json.loads((tmp_path / "cross-dex-pairs.json").read_text())
        assert pairs_doc["count"] == 1
        assert {pool["dex"] for pool in pairs_doc["pairs"][0]["pools"]} == {"cetus", "turbos"}

        opportunities_doc = json.loads((tmp_path / "arbitrage-opportunities.json").read_text())
        assert opportunities_doc["count"] == 1
        assert opportunities_doc["opportunities"][0]["spread"] == "5.00%"

        output = capsys.readouterr().out
        assert "Found 1 arbitrage opportunities" in output
        assert runner.spread_monitor.is_running is False
