"""
Sui cross-DEX spread monitor.

Discovers pools on Sui DEXes, tracks their reserves and reports token pairs
whose price differs across exchanges. Detection only; nothing is executed.

Components live in their subpackages (``sui_arbitrage.rpc``,
``sui_arbitrage.price``, ``sui_arbitrage.arbitrage``) so that the ``dex``
package can import the shared utilities without a cycle.
"""

from sui_arbitrage.version import __version__

PROJECT_NAME = "Sui-DEX-Arbitrage"
VERSION = __version__

__all__ = ["PROJECT_NAME", "VERSION", "__version__"]
