"""
Unit tests for price calculation, formatting and the PriceMonitor cache
"""

from unittest.mock import patch

import pytest

from conftest import CETUS, SUI, USDC, FakeAdapter, make_pool
from dex.pool_registry import PoolRegistry
from sui_arbitrage.price import (
    PriceMonitor,
    calculate_price,
    calculate_spread,
    format_price,
    format_spread,
    shorten_coin_type,
)


async def build_monitor(adapters, cache_ttl=5.0):
    registry = PoolRegistry({adapter.name: adapter for adapter in adapters})
    await registry.initialize()
    return PriceMonitor(registry, cache_ttl=cache_ttl), registry


class TestCalculator:
    """Pure price helpers"""

    def test_calculate_price_both_orientations(self):
        pool = make_pool("cetus", "0x1", SUI, USDC, 2_000, 6_000)

        forward = calculate_price(SUI, USDC, pool)
        backward = calculate_price(USDC, SUI, pool)

        assert forward.price == 3.0
        assert (forward.reserve_base, forward.reserve_quote) == (2_000, 6_000)
        assert backward.price == pytest.approx(1 / 3)
        assert forward.dex == "cetus" and forward.pool_id == "0x1"

    def test_calculate_price_absent(self):
        pool = make_pool("cetus", "0x1", SUI, USDC, 0, 6_000)
        assert calculate_price(SUI, USDC, pool) is None
        assert calculate_price(SUI, CETUS, make_pool("cetus", "0x2", SUI, USDC, 1, 1)) is None

    def test_calculate_spread(self):
        assert calculate_spread(3.0, 3.15) == pytest.approx(5.0)
        assert calculate_spread(3.15, 3.0) == pytest.approx(5.0)
        assert calculate_spread(0, 3.0) == 0.0

    @pytest.mark.parametrize(
        "price, expected",
        [
            (0, "0"),
            (1.5e-9, "1.500000e-09"),
            (0.123456789, "0.123457"),
            (3.14159, "3.1416"),
            (1500, "1.5K"),
            (2_350_000, "2.35M"),
            (7_000_000_000, "7B"),
        ],
    )
    def test_format_price(self, price, expected):
        assert format_price(price) == expected

    def test_format_spread(self):
        assert format_spread(0.005) == "<0.01%"
        assert format_spread(5.0) == "5.00%"
        assert format_spread(0.0123) == "0.01%"

    def test_shorten_coin_type(self):
        assert shorten_coin_type(SUI) == "SUI"
        assert shorten_coin_type(f"{USDC[:66]}::usdc::usdc") == "USDC"
        assert shorten_coin_type("0x" + "ab" * 32) == "0xababab...ababab"
        assert shorten_coin_type("TOKEN") == "TOKEN"


class TestPriceMonitor:
    """Prices, cache and cross-DEX comparisons"""

    @pytest.mark.asyncio
    async def test_get_prices_skips_empty_pools(self):
        pools = [
            make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000),
            make_pool("turbos", "0xt1", SUI, USDC, 0, 3_000),
        ]
        monitor, _ = await build_monitor(
            [FakeAdapter("cetus", [pools[0]]), FakeAdapter("turbos", [pools[1]])]
        )

        prices = await monitor.get_prices(SUI, USDC)

        assert [price.pool_id for price in prices] == ["0xc1"]

    @pytest.mark.asyncio
    async def test_cache_hit_within_ttl(self):
        pool = make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000)
        monitor, _ = await build_monitor([FakeAdapter("cetus", [pool])])

        first = await monitor.get_prices(SUI, USDC)
        pool.set_reserves(1_000, 4_000)  # not observed until the entry expires
        second = await monitor.get_prices(SUI, USDC)

        assert second == first
        assert second[0].price == 3.0

    @pytest.mark.asyncio
    async def test_callers_get_their_own_list(self):
        pool = make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000)
        monitor, _ = await build_monitor([FakeAdapter("cetus", [pool])])

        first = await monitor.get_prices(SUI, USDC)
        first.clear()

        assert [price.pool_id for price in await monitor.get_prices(SUI, USDC)] == ["0xc1"]

    @pytest.mark.asyncio
    async def test_empty_result_is_cached_within_ttl(self):
        monitor, registry = await build_monitor([FakeAdapter("cetus", [])])

        with patch.object(
            registry, "find_pools_for_pair", wraps=registry.find_pools_for_pair
        ) as lookup:
            assert await monitor.get_prices(SUI, USDC) == []
            assert await monitor.get_prices(SUI, USDC) == []

        assert lookup.call_count == 1

    @pytest.mark.asyncio
    async def test_cache_expires_after_ttl(self):
        pool = make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000)
        monitor, _ = await build_monitor([FakeAdapter("cetus", [pool])])

        with patch("sui_arbitrage.price.monitor.get_current_timestamp", return_value=1000.0):
            await monitor.get_prices(SUI, USDC)
        pool.set_reserves(1_000, 4_000)
        with patch("sui_arbitrage.price.monitor.get_current_timestamp", return_value=1006.0):
            prices = await monitor.get_prices(SUI, USDC)

        assert prices[0].price == 4.0

    @pytest.mark.asyncio
    async def test_refresh_refetches_reserves(self):
        pool = make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000)
        adapter = FakeAdapter("cetus", [pool], reserves={"0xc1": (1_000, 3_300)})
        monitor, _ = await build_monitor([adapter])

        await monitor.get_prices(SUI, USDC)
        prices = await monitor.get_prices(SUI, USDC, refresh=True)

        assert adapter.reserve_calls == ["0xc1"]
        assert prices[0].price == pytest.approx(3.3)
        # the refreshed result replaced the cache entry
        assert (await monitor.get_prices(SUI, USDC))[0].price == pytest.approx(3.3)

    @pytest.mark.asyncio
    async def test_update_invalidates_both_directions(self):
        pool = make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000)
        adapter = FakeAdapter("cetus", [pool], reserves={"0xc1": (2_000, 3_000)})
        monitor, _ = await build_monitor([adapter])
        await monitor.get_prices(SUI, USDC)
        await monitor.get_prices(USDC, SUI)
        assert monitor.get_cache_stats()["total_cached"] == 2

        assert await monitor.update_pool_reserves("0xc1") is True

        assert monitor.price_cache == {}
        assert (await monitor.get_prices(SUI, USDC))[0].price == 1.5

    @pytest.mark.asyncio
    async def test_failed_update_keeps_cache(self):
        pool = make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000)
        monitor, _ = await build_monitor([FakeAdapter("cetus", [pool])])
        await monitor.get_prices(SUI, USDC)

        assert await monitor.update_pool_reserves("0xc1") is False
        assert monitor.get_cache_stats()["total_cached"] == 1

    @pytest.mark.asyncio
    async def test_compare_prices(self):
        pools = [
            make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_150),
            make_pool("turbos", "0xt1", SUI, USDC, 1_000, 3_000),
        ]
        monitor, _ = await build_monitor(
            [FakeAdapter("cetus", [pools[0]]), FakeAdapter("turbos", [pools[1]])]
        )

        comparison = await monitor.compare_prices(SUI, USDC)

        assert [price.dex for price in comparison.prices] == ["turbos", "cetus"]
        assert comparison.best_buy.dex == "turbos"
        assert comparison.best_sell.dex == "cetus"
        assert comparison.spread_percent == pytest.approx(5.0)
        assert comparison.dexes == ["cetus", "turbos"]

    @pytest.mark.asyncio
    async def test_compare_prices_none_without_prices(self):
        monitor, _ = await build_monitor([FakeAdapter("cetus", [])])
        assert await monitor.compare_prices(SUI, USDC) is None

    @pytest.mark.asyncio
    async def test_get_all_pairs_both_orderings(self):
        pools = [
            make_pool("cetus", "0xc1", SUI, USDC, 1, 1),
            make_pool("turbos", "0xt1", USDC, SUI, 1, 1),
        ]
        monitor, _ = await build_monitor([FakeAdapter("cetus", [pools[0]]), FakeAdapter("turbos", [pools[1]])])

        assert sorted(monitor.get_all_pairs()) == sorted([(SUI, USDC), (USDC, SUI)])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("turbos_reversed", [False, True])
    async def test_opportunities_regardless_of_pool_orientation(self, turbos_reversed):
        cetus_pool = make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000)
        if turbos_reversed:
            turbos_pool = make_pool("turbos", "0xt1", USDC, SUI, 3_150, 1_000)
        else:
            turbos_pool = make_pool("turbos", "0xt1", SUI, USDC, 1_000, 3_150)
        monitor, _ = await build_monitor(
            [FakeAdapter("cetus", [cetus_pool]), FakeAdapter("turbos", [turbos_pool])]
        )

        opportunities = await monitor.find_arbitrage_opportunities(min_spread_percent=1.0)

        assert len(opportunities) == 1
        assert opportunities[0].spread_percent == pytest.approx(5.0)

    @pytest.mark.asyncio
    async def test_opportunities_sorted_and_thresholded(self):
        pools = [
            make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000),
            make_pool("turbos", "0xt1", SUI, USDC, 1_000, 3_300),
            make_pool("cetus", "0xc2", SUI, CETUS, 1_000, 50_000),
            make_pool("turbos", "0xt2", SUI, CETUS, 1_000, 51_000),
            make_pool("cetus", "0xc3", USDC, CETUS, 1_000, 1_000),
            make_pool("turbos", "0xt3", USDC, CETUS, 1_000, 1_001),
        ]
        monitor, _ = await build_monitor(
            [
                FakeAdapter("cetus", [p for p in pools if p.dex == "cetus"]),
                FakeAdapter("turbos", [p for p in pools if p.dex == "turbos"]),
            ]
        )

        opportunities = await monitor.find_arbitrage_opportunities(min_spread_percent=0.5)

        assert [round(opp.spread_percent, 6) for opp in opportunities] == [10.0, 2.0]

    @pytest.mark.asyncio
    async def test_clear_cache(self):
        pool = make_pool("cetus", "0xc1", SUI, USDC, 1_000, 3_000)
        monitor, _ = await build_monitor([FakeAdapter("cetus", [pool])])
        await monitor.get_prices(SUI, USDC)

        monitor.clear_cache()

        stats = monitor.get_cache_stats()
        assert stats["total_cached"] == 0
        assert stats["cache_ttl"] == 5.0
