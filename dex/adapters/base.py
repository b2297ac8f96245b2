"""
Common DEX adapter interface and constant-product helpers.

Every exchange adapter turns its own on-chain event/object layout into
normalized Pool values and can re-read a single pool's reserves.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sui_arbitrage.exceptions import AdapterError, DataError, NetworkError
from sui_arbitrage.utils import get_logger

from ..types import DEFAULT_FEE_RATE, FEE_DENOMINATOR, Pool

logger = get_logger(__name__)


def fee_rate_to_ppm(fee_rate: float) -> int:
    """0.003 -> 3000"""
    return int(round(fee_rate * FEE_DENOMINATOR))


def constant_product_out(
    amount_in: int, reserve_in: int, reserve_out: int, fee_ppm: int
) -> int:
    """
    Integer constant-product quote with the fee taken from the input.

    Formula:
        amountInWithFee = amountIn * (1 - fee)
        amountOut = amountInWithFee * reserveOut / (reserveIn + amountInWithFee)

    Evaluated as exact integers with the fee in parts per million; the
    result is floored. Returns 0 when any input is 0.
    """
    if amount_in < 0 or reserve_in < 0 or reserve_out < 0:
        raise ValueError(
            f"Amounts must be non-negative: in={amount_in}, "
            f"reserve_in={reserve_in}, reserve_out={reserve_out}"
        )
    if not 0 <= fee_ppm < FEE_DENOMINATOR:
        raise ValueError(f"Fee must be in [0, {FEE_DENOMINATOR}) ppm: {fee_ppm}")
    if amount_in == 0 or reserve_in == 0 or reserve_out == 0:
        return 0

    # Scaled by FEE_DENOMINATOR on both sides to stay integral
    amount_in_with_fee = amount_in * (FEE_DENOMINATOR - fee_ppm)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * FEE_DENOMINATOR + amount_in_with_fee
    return numerator // denominator


class DexAdapter(ABC):
    """Abstract base class for DEX adapters"""

    name: str = ""
    default_fee_rate: float = DEFAULT_FEE_RATE

    # Object field names holding the reserves, highest priority first
    RESERVE_A_FIELDS: Sequence[str] = ("reserve_a",)
    RESERVE_B_FIELDS: Sequence[str] = ("reserve_b",)

    def __init__(self, client, settings):
        """
        Args:
            client: SuiClientManager used for every RPC call
            settings: DexSettings with package/event identifiers and limits
        """
        self.client = client
        self.settings = settings
        self.default_fee_rate = settings.default_fee_rate
        self.pool_cache: Dict[str, Pool] = {}

    @property
    def event_type(self) -> str:
        return self.settings.event_type or self._default_event_type()

    @abstractmethod
    def _default_event_type(self) -> str:
        """Pool-creation event type derived from the package id"""
        pass

    @abstractmethod
    async def fetch_pools(self) -> List[Pool]:
        """Discover the exchange's pools (bounded by the configured event limit)"""
        pass

    async def get_pool_reserves(self, pool_id: str) -> Tuple[int, int]:
        """
        Fetch a pool object and read its two reserves.

        Raises:
            DataError: If the object is missing or carries no usable reserves
            NetworkError: If the RPC call fails after retries
        """
        response = await self.client.call_with_retry(
            lambda c: c.get_object(pool_id, show_content=True)
        )
        fields = self._move_object_fields(response, pool_id)
        reserve_a = self._extract_reserve(fields, self.RESERVE_A_FIELDS)
        reserve_b = self._extract_reserve(fields, self.RESERVE_B_FIELDS)

        if reserve_a is None or reserve_b is None:
            raise DataError(
                f"No reserve fields on {self.name} pool {pool_id}",
                source=self.name,
                object_id=pool_id,
                details={"fields": sorted(fields)},
            )
        return reserve_a, reserve_b

    def calculate_amount_out(
        self,
        amount_in: int,
        reserve_in: int,
        reserve_out: int,
        fee_rate: Optional[float] = None,
    ) -> int:
        """Constant-product quote using this exchange's fee unless one is given."""
        rate = self.default_fee_rate if fee_rate is None else fee_rate
        return constant_product_out(
            amount_in, reserve_in, reserve_out, fee_rate_to_ppm(rate)
        )

    # === shared parsing helpers ===

    async def _paginate_events(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Collect events newest first, following cursors up to max_events.

        Raises:
            AdapterError: If a page cannot be fetched after retries
        """
        events: List[Dict[str, Any]] = []
        cursor = None
        max_events = self.settings.max_events

        while len(events) < max_events:
            limit = min(self.settings.page_size, max_events - len(events))
            try:
                page = await self.client.call_with_retry(
                    lambda c: c.query_events(
                        query, cursor=cursor, limit=limit, descending_order=True
                    )
                )
            except NetworkError as e:
                raise AdapterError(
                    f"{self.name} event query failed after {len(events)} events: {e}",
                    dex=self.name,
                ) from e
            events.extend(page.get("data") or [])

            cursor = page.get("nextCursor")
            if not page.get("hasNextPage") or cursor is None:
                break

        logger.info(f"{self.name}: fetched {len(events)} events")
        return events

    def _move_object_fields(self, response: Any, object_id: str) -> Dict[str, Any]:
        data = (response or {}).get("data") or {}
        content = data.get("content") or {}
        if content.get("dataType") != "moveObject":
            error = (response or {}).get("error")
            raise DataError(
                f"Invalid {self.name} pool object {object_id}",
                source=self.name,
                object_id=object_id,
                details={"error": error} if error else None,
            )
        return content.get("fields") or {}

    @staticmethod
    def _extract_reserve(fields: Dict[str, Any], names: Sequence[str]) -> Optional[int]:
        """First field in ``names`` that holds an integer balance."""
        for name in names:
            if name not in fields:
                continue
            value = fields[name]
            # Balance<T> may be rendered as a nested struct
            if isinstance(value, dict):
                value = value.get("value", (value.get("fields") or {}).get("value"))
            if value is None:
                continue
            try:
                return int(value)
            except (TypeError, ValueError):
                logger.debug(f"Unparsable reserve field {name}={value!r}")
        return None

    def _fee_from_ppm(self, raw: Any) -> float:
        if raw is None:
            return self.default_fee_rate
        return int(raw) / FEE_DENOMINATOR

    def _remember(self, pools: List[Pool]) -> None:
        self.pool_cache = {pool.pool_id: pool for pool in pools}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
