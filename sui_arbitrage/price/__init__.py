"""
Price calculation and cross-DEX comparison.
"""

from .calculator import (
    calculate_price,
    calculate_spread,
    format_price,
    format_spread,
    shorten_coin_type,
)
from .monitor import PriceMonitor
from .types import PriceComparison, TokenPrice

__all__ = [
    "PriceComparison",
    "PriceMonitor",
    "TokenPrice",
    "calculate_price",
    "calculate_spread",
    "format_price",
    "format_spread",
    "shorten_coin_type",
]
