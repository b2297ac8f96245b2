"""
Cetus CLMM adapter.

Pools are discovered by replaying the factory's CreatePoolEvent, which
already carries the pool id and both coin types. Reserves are read from the
pool object's coin balances.
"""

from typing import Any, Dict, List, Optional

from sui_arbitrage.utils import get_current_timestamp, get_logger, normalize_coin_type

from ..types import Pool
from .base import DexAdapter

logger = get_logger(__name__)


class CetusAdapter(DexAdapter):
    """Cetus pool discovery and reserve reads"""

    name = "cetus"

    RESERVE_A_FIELDS = ("coin_a", "coin_a_balance", "reserve_a")
    RESERVE_B_FIELDS = ("coin_b", "coin_b_balance", "reserve_b")

    def _default_event_type(self) -> str:
        return f"{self.settings.package_id}::factory::CreatePoolEvent"

    async def fetch_pools(self) -> List[Pool]:
        logger.info("Fetching Cetus pools...")
        events = await self._paginate_events({"MoveEventType": self.event_type})

        pools: List[Pool] = []
        for event in events:
            try:
                pool = self.parse_pool_event(event)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Failed to parse Cetus pool event {event.get('id')}: {e}")
                continue
            if pool is not None:
                pools.append(pool)

        self._remember(pools)
        logger.info(f"Cetus pools loaded: {len(pools)}")
        return pools

    def parse_pool_event(self, event: Dict[str, Any]) -> Optional[Pool]:
        """
        Build a Pool from a CreatePoolEvent.

        parsedJson looks like::

            {"pool_id": "0x...", "coin_type_a": "0000...0002::sui::SUI",
             "coin_type_b": "dba3...::usdc::USDC", "tick_spacing": 60}

        Reserves start at zero; they are read separately.
        """
        parsed = event.get("parsedJson") or {}
        pool_id = parsed.get("pool_id")
        if not pool_id:
            return None

        coin_type_a = parsed.get("coin_type_a") or parsed.get("coinTypeA")
        coin_type_b = parsed.get("coin_type_b") or parsed.get("coinTypeB")
        if not coin_type_a or not coin_type_b:
            raise ValueError(f"missing coin types for pool {pool_id}")

        return Pool(
            dex=self.name,
            pool_id=pool_id,
            coin_type_a=normalize_coin_type(coin_type_a),
            coin_type_b=normalize_coin_type(coin_type_b),
            fee_rate=self._fee_from_ppm(parsed.get("fee_rate")),
            last_updated=get_current_timestamp(),
        )
