"""
Shared fixtures: in-memory pools, fake adapters and fake RPC managers.
"""

from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from dex.adapters.base import constant_product_out, fee_rate_to_ppm
from dex.pool_registry import PoolRegistry
from dex.types import Pool
from sui_arbitrage.config_schema import DexSettings

SUI = "0x0000000000000000000000000000000000000000000000000000000000000002::sui::SUI"
USDC = "0x5d4b302506645c37ff133b98c4b50a5ae14841659738d6d733d59d0d217a93bf::coin::COIN"
CETUS = "0x06864a6f921804860930db6ddbe2e16acdf8504495ea7481637a1c8b9a8fe54b::cetus::CETUS"


def make_pool(
    dex: str,
    pool_id: str,
    coin_type_a: str,
    coin_type_b: str,
    reserve_a: int = 0,
    reserve_b: int = 0,
    fee_rate: float = 0.003,
) -> Pool:
    return Pool(
        dex=dex,
        pool_id=pool_id,
        coin_type_a=coin_type_a,
        coin_type_b=coin_type_b,
        reserve_a=reserve_a,
        reserve_b=reserve_b,
        fee_rate=fee_rate,
    )


class FakeAdapter:
    """In-memory stand-in for a DexAdapter."""

    def __init__(
        self,
        name: str,
        pools: Optional[List[Pool]] = None,
        reserves: Optional[Dict[str, Tuple[int, int]]] = None,
        fail_fetch: bool = False,
    ):
        self.name = name
        self.pools = list(pools or [])
        self.reserves = dict(reserves or {})
        self.fail_fetch = fail_fetch
        self.reserve_calls: List[str] = []

    async def fetch_pools(self) -> List[Pool]:
        if self.fail_fetch:
            raise RuntimeError(f"{self.name} is down")
        return list(self.pools)

    async def get_pool_reserves(self, pool_id: str) -> Tuple[int, int]:
        self.reserve_calls.append(pool_id)
        if pool_id not in self.reserves:
            raise RuntimeError(f"no reserves for {pool_id}")
        return self.reserves[pool_id]

    def calculate_amount_out(self, amount_in, reserve_in, reserve_out, fee_rate=None):
        return constant_product_out(
            amount_in, reserve_in, reserve_out, fee_rate_to_ppm(fee_rate or 0.003)
        )


class FakeClientManager:
    """Runs call_with_retry operations once against an AsyncMock RPC client."""

    def __init__(self, rpc: Optional[AsyncMock] = None):
        self.rpc = rpc or AsyncMock()
        self.calls = 0

    async def call_with_retry(self, operation, max_attempts=None):
        self.calls += 1
        return await operation(self.rpc)


@pytest.fixture
def fake_client():
    return FakeClientManager()


@pytest.fixture
def cetus_settings():
    return DexSettings(
        name="cetus",
        package_id="0x1eabed72c53feb3805120a081dc15963c204dc8d091542592abaf7a35689b2fb",
        page_size=2,
        max_events=10,
    )


@pytest.fixture
def turbos_settings():
    return DexSettings(
        name="turbos",
        package_id="0x91bfbc386a41afcfd9b2533058d7e915a1d3829089cc268ff4333d54d6339ca1",
        page_size=50,
        max_events=100,
    )


@pytest.fixture
def sui_usdc_pools():
    """The two-DEX SUI/USDC scenario: alpha quotes 3.0, beta quotes 3.15."""
    return [
        make_pool("alpha", "0xpool1", SUI, USDC, 1_000_000, 3_000_000),
        make_pool("beta", "0xpool2", SUI, USDC, 1_000_000, 3_150_000),
    ]


@pytest_asyncio.fixture
async def sui_usdc_registry(sui_usdc_pools):
    alpha = FakeAdapter(
        "alpha",
        pools=[sui_usdc_pools[0]],
        reserves={"0xpool1": (1_000_000, 3_000_000)},
    )
    beta = FakeAdapter(
        "beta",
        pools=[sui_usdc_pools[1]],
        reserves={"0xpool2": (1_000_000, 3_150_000)},
    )
    registry = PoolRegistry({"alpha": alpha, "beta": beta})
    await registry.initialize()
    return registry
