"""
Cross-DEX price monitor.

Computes per-pool prices for a token pair, caches them briefly and compares
them across DEXes to surface spreads.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from dex.types import Pool

from ..utils import get_current_timestamp
from .calculator import calculate_price, calculate_spread
from .types import PriceComparison, TokenPrice

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 5.0


class PriceMonitor:
    """
    Prices for token pairs across every pool in a PoolRegistry.

    The cache is keyed by ordered pair ``"base:quote"`` and holds
    ``(prices, computed_at)``.
    """

    def __init__(self, registry, cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS):
        """
        Args:
            registry: Initialized PoolRegistry
            cache_ttl: Seconds a computed price list stays valid
        """
        self.registry = registry
        self.cache_ttl = cache_ttl
        self.price_cache: Dict[str, Tuple[List[TokenPrice], float]] = {}

    @staticmethod
    def _cache_key(base_token: str, quote_token: str) -> str:
        return f"{base_token}:{quote_token}"

    async def get_prices(
        self, base_token: str, quote_token: str, refresh: bool = False
    ) -> List[TokenPrice]:
        """
        One TokenPrice per pool connecting the pair, skipping empty pools.

        Args:
            base_token: Coin type being priced
            quote_token: Coin type to price in
            refresh: Re-fetch every connecting pool's reserves first,
                bypassing the cache
        """
        cache_key = self._cache_key(base_token, quote_token)

        if not refresh and cache_key in self.price_cache:
            prices, computed_at = self.price_cache[cache_key]
            if get_current_timestamp() - computed_at < self.cache_ttl:
                logger.debug(f"Cache hit for {cache_key}")
                return list(prices)

        pools = self.registry.find_pools_for_pair(base_token, quote_token)

        if refresh:
            await asyncio.gather(
                *(self.update_pool_reserves(pool.pool_id) for pool in pools)
            )

        prices: List[TokenPrice] = []
        for pool in pools:
            if not pool.has_liquidity:
                logger.debug(f"Skipping pool with zero reserves: {pool.pool_id}")
                continue
            price = calculate_price(base_token, quote_token, pool)
            if price is not None:
                prices.append(price)

        self.price_cache[cache_key] = (prices, get_current_timestamp())
        return list(prices)

    async def compare_prices(
        self, base_token: str, quote_token: str, refresh: bool = False
    ) -> Optional[PriceComparison]:
        """Prices sorted ascending with best buy/sell and spread; None if no prices."""
        prices = await self.get_prices(base_token, quote_token, refresh)
        if not prices:
            return None

        ordered = sorted(prices, key=lambda p: p.price)
        best_buy = ordered[0]
        best_sell = ordered[-1]
        spread = calculate_spread(best_buy.price, best_sell.price) if len(ordered) > 1 else 0.0

        return PriceComparison(
            base_token=base_token,
            quote_token=quote_token,
            prices=ordered,
            best_buy=best_buy,
            best_sell=best_sell,
            spread_percent=spread,
            timestamp=get_current_timestamp(),
        )

    def get_all_pairs(self) -> List[Tuple[str, str]]:
        """Every directed (base, quote) pair implied by the pool set."""
        pairs: Dict[Tuple[str, str], None] = {}
        for pool in self.registry.get_all_pools():
            pairs[(pool.coin_type_a, pool.coin_type_b)] = None
            pairs[(pool.coin_type_b, pool.coin_type_a)] = None
        return list(pairs)

    async def find_arbitrage_opportunities(
        self, min_spread_percent: float = 0.5, refresh: bool = False
    ) -> List[PriceComparison]:
        """
        Comparisons whose spread meets the threshold, widest first.

        Pools are grouped by their unordered token pair, so a pair stored as
        (A, B) on one DEX and (B, A) on another lands in the same group.
        """
        groups: Dict[Tuple[str, str], List[Pool]] = {}
        for pool in self.registry.get_all_pools():
            key = tuple(sorted((pool.coin_type_a, pool.coin_type_b)))
            groups.setdefault(key, []).append(pool)

        opportunities: List[PriceComparison] = []
        for (base_token, quote_token), pools in groups.items():
            if len(pools) < 2:
                continue

            comparison = await self.compare_prices(base_token, quote_token, refresh)
            if comparison and comparison.spread_percent >= min_spread_percent:
                opportunities.append(comparison)

        opportunities.sort(key=lambda c: c.spread_percent, reverse=True)
        return opportunities

    async def update_pool_reserves(self, pool_id: str) -> bool:
        """Refresh one pool via the registry and drop both cached directions."""
        updated = await self.registry.update_pool_reserves(pool_id)
        if updated:
            self.invalidate_cache_for_pool(self.registry.get_pool(pool_id))
        return updated

    def invalidate_cache_for_pool(self, pool: Pool) -> None:
        self.price_cache.pop(self._cache_key(pool.coin_type_a, pool.coin_type_b), None)
        self.price_cache.pop(self._cache_key(pool.coin_type_b, pool.coin_type_a), None)

    def clear_cache(self) -> None:
        self.price_cache.clear()
        logger.info("Price cache cleared")

    def get_cache_stats(self) -> Dict:
        now = get_current_timestamp()
        fresh = sum(
            1 for _, computed_at in self.price_cache.values() if now - computed_at < self.cache_ttl
        )
        return {
            "total_cached": len(self.price_cache),
            "fresh": fresh,
            "stale": len(self.price_cache) - fresh,
            "cache_ttl": self.cache_ttl,
        }
