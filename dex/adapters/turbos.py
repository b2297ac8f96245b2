"""
Turbos CLMM adapter.

Turbos' PoolCreatedEvent only names the pool, so discovery is two-phase:
page through the events to collect pool ids, then batch-fetch the pool
objects and read coin types from the object's generic type arguments.
"""

from typing import Any, Dict, List, Optional

from sui_arbitrage.exceptions import DataError, NetworkError
from sui_arbitrage.rpc.client import MAX_MULTI_GET_OBJECTS
from sui_arbitrage.utils import (
    get_current_timestamp,
    get_logger,
    normalize_coin_type,
    parse_type_arguments,
)

from ..types import Pool
from .base import DexAdapter

logger = get_logger(__name__)


class TurbosAdapter(DexAdapter):
    """Turbos pool discovery and reserve reads"""

    name = "turbos"

    RESERVE_A_FIELDS = ("coin_a", "reserve_a", "balance_a")
    RESERVE_B_FIELDS = ("coin_b", "reserve_b", "balance_b")

    POOL_ID_KEYS = ("pool", "pool_id", "poolId")

    def _default_event_type(self) -> str:
        return f"{self.settings.package_id}::pool_factory::PoolCreatedEvent"

    async def fetch_pools(self) -> List[Pool]:
        logger.info("Fetching Turbos pools...")
        events = await self._paginate_events({"MoveEventType": self.event_type})
        pool_ids = self.collect_pool_ids(events)
        logger.info(f"Turbos pool ids collected: {len(pool_ids)}")

        pools: List[Pool] = []
        for start in range(0, len(pool_ids), MAX_MULTI_GET_OBJECTS):
            batch = pool_ids[start : start + MAX_MULTI_GET_OBJECTS]
            try:
                objects = await self.client.call_with_retry(
                    lambda c: c.multi_get_objects(batch, show_content=True, show_type=True)
                )
            except NetworkError as e:
                logger.error(f"Turbos object batch at offset {start} failed: {e}")
                continue

            for response in objects or []:
                try:
                    pools.append(self.parse_pool_object(response))
                except (DataError, KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Failed to parse Turbos pool object: {e}")

        self._remember(pools)
        logger.info(f"Turbos pools loaded: {len(pools)}")
        return pools

    def collect_pool_ids(self, events: List[Dict[str, Any]]) -> List[str]:
        """Unique pool ids in event order."""
        seen = set()
        pool_ids = []
        for event in events:
            parsed = event.get("parsedJson") or {}
            pool_id = self._first_present(parsed, self.POOL_ID_KEYS)
            if not pool_id:
                logger.warning(f"Turbos event without pool id: {event.get('id')}")
                continue
            if pool_id not in seen:
                seen.add(pool_id)
                pool_ids.append(pool_id)
        return pool_ids

    def parse_pool_object(self, response: Dict[str, Any]) -> Pool:
        """
        Build a Pool (with reserves) from a ``Pool<CoinA, CoinB, FeeType>`` object.

        Raises:
            DataError: If the object is not a Turbos pool
        """
        data = (response or {}).get("data") or {}
        object_id = data.get("objectId", "<unknown>")
        fields = self._move_object_fields(response, object_id)

        object_type = data.get("type") or (data.get("content") or {}).get("type") or ""
        type_args = parse_type_arguments(object_type)
        if len(type_args) < 2:
            raise DataError(
                f"Unexpected Turbos pool type {object_type!r}",
                source=self.name,
                object_id=object_id,
            )

        reserve_a = self._extract_reserve(fields, self.RESERVE_A_FIELDS)
        reserve_b = self._extract_reserve(fields, self.RESERVE_B_FIELDS)

        return Pool(
            dex=self.name,
            pool_id=object_id,
            coin_type_a=normalize_coin_type(type_args[0]),
            coin_type_b=normalize_coin_type(type_args[1]),
            reserve_a=reserve_a or 0,
            reserve_b=reserve_b or 0,
            fee_rate=self._fee_from_ppm(fields.get("fee")),
            last_updated=get_current_timestamp(),
        )

    @staticmethod
    def _first_present(data: Dict[str, Any], keys) -> Optional[str]:
        for key in keys:
            if data.get(key):
                return data[key]
        return None
