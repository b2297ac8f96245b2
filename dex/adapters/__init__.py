"""
DEX adapter modules for Sui exchanges.

New exchanges register their class in ADAPTER_CLASSES; the registry and
monitors only talk to the DexAdapter interface.
"""

from typing import Dict, Iterable, Type

from sui_arbitrage.exceptions import ConfigurationError

from .base import DexAdapter, constant_product_out, fee_rate_to_ppm
from .cetus import CetusAdapter
from .turbos import TurbosAdapter

ADAPTER_CLASSES: Dict[str, Type[DexAdapter]] = {
    CetusAdapter.name: CetusAdapter,
    TurbosAdapter.name: TurbosAdapter,
}


def register_adapter(adapter_class: Type[DexAdapter]) -> None:
    """Make an adapter class available to create_adapters by its name."""
    if not adapter_class.name:
        raise ConfigurationError(f"{adapter_class.__name__} has no name")
    ADAPTER_CLASSES[adapter_class.name] = adapter_class


def create_adapters(client, dex_settings: Iterable) -> Dict[str, DexAdapter]:
    """
    Instantiate one adapter per enabled DexSettings entry.

    Raises:
        ConfigurationError: If a configured DEX has no adapter class
    """
    adapters: Dict[str, DexAdapter] = {}
    for settings in dex_settings:
        if not settings.enabled:
            continue
        adapter_class = ADAPTER_CLASSES.get(settings.name)
        if adapter_class is None:
            raise ConfigurationError(
                f"No adapter for DEX '{settings.name}'",
                {"known": sorted(ADAPTER_CLASSES)},
            )
        adapters[settings.name] = adapter_class(client, settings)
    return adapters


__all__ = [
    "ADAPTER_CLASSES",
    "CetusAdapter",
    "DexAdapter",
    "TurbosAdapter",
    "constant_product_out",
    "create_adapters",
    "fee_rate_to_ppm",
    "register_adapter",
]
