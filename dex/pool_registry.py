"""
Pool registry and token adjacency graph.

The registry owns every discovered Pool, keyed by pool id, and keeps an
undirected networkx graph whose nodes are coin types. Each edge carries the
ordered list of pools joining its two tokens, so both directions of an edge
see the same list.
"""

import asyncio
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

import networkx as nx

from sui_arbitrage.exceptions import ConfigurationError
from sui_arbitrage.utils import get_logger

from .adapters.base import DexAdapter
from .types import Pool, TokenGraphNode

logger = get_logger(__name__)


class PoolRegistry:
    """
    Lifecycle: ``initialize`` -> read/refresh many times -> discard.

    Only ``update_pool_reserves`` writes a pool's reserves, one writer per
    pool id at a time.
    """

    def __init__(self, adapters: Dict[str, DexAdapter], metrics=None):
        self.adapters = dict(adapters)
        self.metrics = metrics
        self.pools: Dict[str, Pool] = {}
        self.token_graph = nx.Graph()
        self._pool_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def initialize(self, enabled_dexes: Optional[Iterable[str]] = None) -> None:
        """
        Fetch pools from each requested adapter and rebuild the graph.

        Args:
            enabled_dexes: DEX names to load (default: every registered adapter)

        Raises:
            ConfigurationError: If a requested DEX has no adapter
        """
        dex_names = list(enabled_dexes) if enabled_dexes is not None else list(self.adapters)
        missing = [name for name in dex_names if name not in self.adapters]
        if missing:
            raise ConfigurationError(
                f"DEX adapter not found: {', '.join(missing)}",
                {"available": sorted(self.adapters)},
            )

        logger.info(f"Initializing pool registry for {dex_names}...")

        all_pools: List[Pool] = []
        for dex_name in dex_names:
            try:
                pools = await self.adapters[dex_name].fetch_pools()
            except Exception as e:
                logger.error(f"Failed to fetch pools from {dex_name}: {e}")
                continue

            all_pools.extend(pools)
            logger.info(f"Pools fetched: {dex_name}={len(pools)}")
            if self.metrics:
                self.metrics.update_pools_discovered(dex_name, len(pools))

        self.pools = {pool.pool_id: pool for pool in all_pools}
        self.build_token_graph()

        logger.info(
            f"Pool registry initialized: {len(self.pools)} pools, "
            f"{self.token_graph.number_of_nodes()} tokens"
        )

    def build_token_graph(self) -> None:
        """Rebuild the adjacency graph from the current pool map."""
        graph = nx.Graph()
        for pool in self.pools.values():
            a, b = pool.coin_type_a, pool.coin_type_b
            if graph.has_edge(a, b):
                graph[a][b]["pools"].append(pool)
            else:
                graph.add_edge(a, b, pools=[pool])
        self.token_graph = graph

    async def update_pool_reserves(self, pool_id: str) -> bool:
        """
        Re-read one pool's reserves through its owning adapter.

        Returns:
            True if the reserves were updated, False if the pool or adapter
            is unknown or the fetch failed
        """
        pool = self.pools.get(pool_id)
        if pool is None:
            logger.warning(f"Pool not found: {pool_id}")
            return False

        adapter = self.adapters.get(pool.dex)
        if adapter is None:
            logger.warning(f"Adapter not found for {pool.dex}")
            return False

        async with self._pool_locks[pool_id]:
            try:
                reserve_a, reserve_b = await adapter.get_pool_reserves(pool_id)
            except Exception as e:
                logger.warning(f"Failed to refresh pool reserves for {pool_id}: {e}")
                return False
            pool.set_reserves(reserve_a, reserve_b)
        return True

    async def refresh_pool_reserves(self, pool_ids: Optional[Iterable[str]] = None) -> int:
        """
        Refresh reserves for the given pools (all pools if omitted).

        Returns:
            Number of pools successfully refreshed
        """
        targets = list(pool_ids) if pool_ids is not None else list(self.pools)
        targets = [pool_id for pool_id in targets if pool_id in self.pools]
        logger.debug(f"Refreshing pool reserves for {len(targets)} pools...")

        results = await asyncio.gather(
            *(self.update_pool_reserves(pool_id) for pool_id in targets)
        )
        return sum(1 for ok in results if ok)

    # === readers ===

    def get_pool(self, pool_id: str) -> Optional[Pool]:
        return self.pools.get(pool_id)

    def get_all_pools(self) -> List[Pool]:
        return list(self.pools.values())

    def get_pools_by_dex(self, dex: str) -> List[Pool]:
        return [pool for pool in self.pools.values() if pool.dex == dex]

    def get_pools_for_pair(self, coin_type_a: str, coin_type_b: str) -> List[Pool]:
        """Pools joining the two tokens, in discovery order; empty if unconnected."""
        if not self.token_graph.has_edge(coin_type_a, coin_type_b):
            return []
        return list(self.token_graph[coin_type_a][coin_type_b]["pools"])

    find_pools_for_pair = get_pools_for_pair

    def get_price(
        self, coin_in: str, coin_out: str, dex: Optional[str] = None
    ) -> Optional[float]:
        """
        Spot price of ``coin_in`` in ``coin_out`` from a single pool.

        Uses the first connecting pool, or the first one on ``dex`` if given.
        Returns None when no pool matches or it has no liquidity.
        """
        pools = self.get_pools_for_pair(coin_in, coin_out)
        if dex is not None:
            pools = [pool for pool in pools if pool.dex == dex]
        if not pools:
            return None

        pool = pools[0]
        if not pool.has_liquidity:
            return None

        if pool.coin_type_a == coin_in:
            reserve_in, reserve_out = pool.reserve_a, pool.reserve_b
        else:
            reserve_in, reserve_out = pool.reserve_b, pool.reserve_a
        return reserve_out / reserve_in

    def get_all_tokens(self) -> List[str]:
        return list(self.token_graph.nodes)

    def get_neighbors(self, coin_type: str) -> Dict[str, List[Pool]]:
        if coin_type not in self.token_graph:
            return {}
        return {
            neighbor: list(edge["pools"])
            for neighbor, edge in self.token_graph[coin_type].items()
        }

    def get_node(self, coin_type: str) -> Optional[TokenGraphNode]:
        if coin_type not in self.token_graph:
            return None
        return TokenGraphNode(coin_type=coin_type, neighbors=self.get_neighbors(coin_type))

    def get_adapter(self, dex: str) -> Optional[DexAdapter]:
        return self.adapters.get(dex)
