"""
Cross-DEX pair discovery.

Pure function of the registry's current pool snapshot; performs no I/O
except when exporting.
"""

from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from dex.types import DEFAULT_FEE_RATE, Pool

from ..utils import get_current_timestamp, get_logger, timestamp_to_iso, write_json_file
from .types import ArbitragePair, PairPool

logger = get_logger(__name__)

SNAPSHOT_FORMAT_VERSION = 1


def canonical_pair_key(coin_type_a: str, coin_type_b: str) -> Tuple[str, str]:
    """Direction-independent pair key: the two coin types in sorted order."""
    return tuple(sorted((coin_type_a, coin_type_b)))


class ArbitragePairFinder:
    """Finds token pairs that have pools on at least two distinct DEXes"""

    def __init__(self, registry):
        self.registry = registry

    def find_cross_dex_pairs(self) -> List[ArbitragePair]:
        groups: Dict[Tuple[str, str], List[Pool]] = {}
        for pool in self.registry.get_all_pools():
            key = canonical_pair_key(pool.coin_type_a, pool.coin_type_b)
            groups.setdefault(key, []).append(pool)

        pairs: List[ArbitragePair] = []
        for (base_token, quote_token), pools in groups.items():
            if len({pool.dex for pool in pools}) < 2:
                continue

            pairs.append(
                ArbitragePair(
                    base_token=base_token,
                    quote_token=quote_token,
                    pools=[
                        PairPool(
                            dex=pool.dex,
                            pool_id=pool.pool_id,
                            reserve_a=pool.reserve_a,
                            reserve_b=pool.reserve_b,
                            fee_rate=pool.fee_rate or DEFAULT_FEE_RATE,
                        )
                        for pool in pools
                    ],
                )
            )

        logger.info(f"Cross-DEX pairs found: {len(pairs)}")
        return pairs

    def find_pairs_with_token(self, coin_type: str) -> List[ArbitragePair]:
        return [
            pair
            for pair in self.find_cross_dex_pairs()
            if coin_type in (pair.base_token, pair.quote_token)
        ]

    def get_statistics(self) -> Dict[str, int]:
        """
        Returns:
            total_pairs, pairs_on_2_dexes (pairs spanning exactly two DEXes)
            and unique_tokens
        """
        pairs = self.find_cross_dex_pairs()
        tokens = set()
        on_two = 0
        for pair in pairs:
            if len(pair.dexes) == 2:
                on_two += 1
            tokens.add(pair.base_token)
            tokens.add(pair.quote_token)

        return {
            "total_pairs": len(pairs),
            "pairs_on_2_dexes": on_two,
            "unique_tokens": len(tokens),
        }

    def export_pairs(
        self, path: Union[str, Path], pairs: Optional[List[ArbitragePair]] = None
    ) -> Path:
        """
        Write the pair list as a versioned JSON snapshot.

        Args:
            path: Output file; parent directories are created
            pairs: Pairs to write (default: a fresh find_cross_dex_pairs())
        """
        if pairs is None:
            pairs = self.find_cross_dex_pairs()

        document = {
            "format_version": SNAPSHOT_FORMAT_VERSION,
            "timestamp": timestamp_to_iso(get_current_timestamp()),
            "count": len(pairs),
            "pairs": [pair.to_dict() for pair in pairs],
        }
        written = write_json_file(path, document)
        logger.info(f"Pairs exported: {written} ({len(pairs)} pairs)")
        return written
