"""
Price math and display helpers.

Prices are the ratio of two arbitrary-precision reserves. They are computed
with Python's integer true division, which returns the correctly rounded
double of the exact rational, so huge reserves neither overflow nor drift.
"""

from typing import Optional

from dex.types import Pool

from ..utils import get_current_timestamp
from .types import TokenPrice

SPREAD_DISPLAY_FLOOR = 0.01

_COMPACT_SUFFIXES = ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K"))


def calculate_price(base_token: str, quote_token: str, pool: Pool) -> Optional[TokenPrice]:
    """
    Price of ``base_token`` in ``quote_token`` from one pool.

    Returns None if the pool does not hold the pair or either reserve is zero.
    """
    if pool.coin_type_a == base_token and pool.coin_type_b == quote_token:
        reserve_base, reserve_quote = pool.reserve_a, pool.reserve_b
    elif pool.coin_type_b == base_token and pool.coin_type_a == quote_token:
        reserve_base, reserve_quote = pool.reserve_b, pool.reserve_a
    else:
        return None

    if reserve_base == 0 or reserve_quote == 0:
        return None

    return TokenPrice(
        base_token=base_token,
        quote_token=quote_token,
        price=reserve_quote / reserve_base,
        pool_id=pool.pool_id,
        dex=pool.dex,
        reserve_base=reserve_base,
        reserve_quote=reserve_quote,
        timestamp=get_current_timestamp(),
    )


def calculate_spread(price1: float, price2: float) -> float:
    """Percent difference of the higher price over the lower one."""
    if price1 == 0 or price2 == 0:
        return 0.0

    lower = min(price1, price2)
    higher = max(price1, price2)
    return (higher - lower) / lower * 100


def format_price(price: float, decimals: int = 6) -> str:
    """
    Human-readable price.

    Scientific below 1e-6, fixed point below 1, four decimals below 1000 and
    compact notation (``1.5K``, ``2.35M``) above that.
    """
    if price == 0:
        return "0"
    if price < 0.000001:
        return f"{price:.{decimals}e}"
    if price < 1:
        return f"{price:.{decimals}f}"
    if price < 1000:
        return f"{price:.4f}"

    for threshold, suffix in _COMPACT_SUFFIXES:
        if price >= threshold:
            scaled = f"{price / threshold:.2f}".rstrip("0").rstrip(".")
            return f"{scaled}{suffix}"
    return f"{price:.2f}"


def format_spread(spread_percent: float) -> str:
    if spread_percent < SPREAD_DISPLAY_FLOOR:
        return "<0.01%"
    return f"{spread_percent:.2f}%"


def shorten_coin_type(coin_type: str) -> str:
    """
    Short display form of a coin type.

    ``0x2::sui::SUI`` -> ``SUI``; long bare hex ids are truncated to
    ``0x123456...abcdef``.
    """
    parts = coin_type.split("::")
    if len(parts) >= 3:
        return parts[-1].upper()

    if coin_type.startswith("0x") and len(coin_type) > 20:
        return f"{coin_type[:8]}...{coin_type[-6:]}"

    return coin_type
