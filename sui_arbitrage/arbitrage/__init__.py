"""
Cross-DEX pair discovery and spread monitoring.
"""

from .pair_finder import ArbitragePairFinder, canonical_pair_key
from .spread_monitor import SpreadMonitor
from .types import ArbitrageOpportunity, ArbitragePair, MonitorConfig, PairPool

__all__ = [
    "ArbitrageOpportunity",
    "ArbitragePair",
    "ArbitragePairFinder",
    "MonitorConfig",
    "PairPool",
    "SpreadMonitor",
    "canonical_pair_key",
]
