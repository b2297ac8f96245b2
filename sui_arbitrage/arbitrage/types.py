"""
Cross-DEX pair and opportunity types.
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from ..config_schema import MonitorSettings
from ..price.calculator import shorten_coin_type


@dataclass
class PairPool:
    """Snapshot of one pool backing a cross-DEX pair."""

    dex: str
    pool_id: str
    reserve_a: int
    reserve_b: int
    fee_rate: float


@dataclass
class ArbitragePair:
    """
    A token pair quoted on two or more DEXes.

    ``base_token``/``quote_token`` are the canonical (sorted) order of the two
    coin types. ``last_check`` and ``spread_percent`` are written by the
    spread monitor after each check.
    """

    base_token: str
    quote_token: str
    pools: List[PairPool] = field(default_factory=list)
    last_check: Optional[float] = None
    spread_percent: Optional[float] = None

    @property
    def key(self) -> str:
        return f"{self.base_token}::{self.quote_token}"

    @property
    def dexes(self) -> List[str]:
        return sorted({pool.dex for pool in self.pools})

    @property
    def pool_ids(self) -> List[str]:
        return [pool.pool_id for pool in self.pools]

    def to_dict(self) -> Dict:
        """Export form used by the pairs file."""
        return {
            "base_token": self.base_token,
            "quote_token": self.quote_token,
            "base_symbol": shorten_coin_type(self.base_token),
            "quote_symbol": shorten_coin_type(self.quote_token),
            "pools": [{"dex": pool.dex, "pool_id": pool.pool_id} for pool in self.pools],
        }


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """A recorded spread between the cheapest and dearest pool of a pair."""

    pair: ArbitragePair
    buy_dex: str
    buy_price: float
    sell_dex: str
    sell_price: float
    spread_percent: float
    timestamp: float
    buy_pool_id: str = ""
    sell_pool_id: str = ""

    @property
    def base_token(self) -> str:
        return self.pair.base_token

    @property
    def quote_token(self) -> str:
        return self.pair.quote_token


@dataclass
class MonitorConfig:
    """
    Spread monitor settings.

    Attributes:
        min_spread: Minimum spread to record, in percent
        check_interval: Seconds between check cycles
        history_size: Opportunities kept, oldest evicted first
        auto_refresh: Re-fetch pool reserves before every pair check
    """

    min_spread: float = 0.5
    check_interval: float = 30.0
    history_size: int = 100
    auto_refresh: bool = True

    def __post_init__(self):
        if self.min_spread < 0:
            raise ValueError(f"min_spread must be non-negative: {self.min_spread}")
        if self.check_interval <= 0:
            raise ValueError(f"check_interval must be positive: {self.check_interval}")
        if self.history_size < 1:
            raise ValueError(f"history_size must be at least 1: {self.history_size}")

    @classmethod
    def from_settings(cls, settings: MonitorSettings) -> "MonitorConfig":
        return cls(
            min_spread=settings.min_spread,
            check_interval=settings.check_interval,
            history_size=settings.history_size,
            auto_refresh=settings.auto_refresh,
        )

    def to_dict(self) -> Dict:
        return asdict(self)
