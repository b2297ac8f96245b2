"""
Price data types derived from pool reserves.
"""

from dataclasses import dataclass
from typing import List


@dataclass
class TokenPrice:
    """
    Price of one base token in quote tokens, read from a single pool.

    Attributes:
        base_token: Coin type being priced
        quote_token: Coin type the price is expressed in
        price: reserve_quote / reserve_base (correctly rounded double)
        pool_id: Pool the price comes from
        dex: DEX hosting the pool
        reserve_base: Raw base reserve used
        reserve_quote: Raw quote reserve used
        timestamp: Unix time the price was computed
    """

    base_token: str
    quote_token: str
    price: float
    pool_id: str
    dex: str
    reserve_base: int
    reserve_quote: int
    timestamp: float


@dataclass
class PriceComparison:
    """Prices for one pair across pools, cheapest first."""

    base_token: str
    quote_token: str
    prices: List[TokenPrice]
    best_buy: TokenPrice
    best_sell: TokenPrice
    spread_percent: float
    timestamp: float

    @property
    def dexes(self) -> List[str]:
        return sorted({price.dex for price in self.prices})

