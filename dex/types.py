"""
Core data types for Sui DEX pool tracking.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from sui_arbitrage.utils import get_current_timestamp

DEFAULT_FEE_RATE = 0.003
FEE_DENOMINATOR = 1_000_000


@dataclass
class Pool:
    """
    A DEX liquidity pool with its current reserves.

    Attributes:
        dex: Name of the DEX (e.g., "cetus", "turbos")
        pool_id: On-chain object id of the pool
        coin_type_a: Move type of the first coin, as labelled by the source
        coin_type_b: Move type of the second coin
        reserve_a: Raw reserve of coin A (smallest units)
        reserve_b: Raw reserve of coin B (smallest units)
        fee_rate: Fee as a fraction (e.g., 0.003 for 30 bps)
        last_updated: Unix timestamp of the last reserve write
    """

    dex: str
    pool_id: str
    coin_type_a: str
    coin_type_b: str
    reserve_a: int = 0
    reserve_b: int = 0
    fee_rate: float = DEFAULT_FEE_RATE
    last_updated: float = field(default_factory=get_current_timestamp)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.dex, self.pool_id)

    @property
    def has_liquidity(self) -> bool:
        return self.reserve_a > 0 and self.reserve_b > 0

    def set_reserves(
        self, reserve_a: int, reserve_b: int, timestamp: Optional[float] = None
    ) -> None:
        """Write both reserves and the update time together."""
        if reserve_a < 0 or reserve_b < 0:
            raise ValueError(
                f"Reserves must be non-negative: a={reserve_a}, b={reserve_b}"
            )
        self.reserve_a = int(reserve_a)
        self.reserve_b = int(reserve_b)
        self.last_updated = timestamp if timestamp is not None else get_current_timestamp()


@dataclass
class TokenGraphNode:
    """One token in the adjacency graph and the pools linking it to each neighbor."""

    coin_type: str
    neighbors: Dict[str, List[Pool]] = field(default_factory=dict)
