"""
Configuration loading and normalization for the Sui arbitrage monitor.

Loads the YAML config, layers environment overrides on top and validates the
result against the pydantic schema.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from .config_schema import AppConfig
from .exceptions import ConfigurationError, ValidationError

# Mainnet deployment constants
CETUS_MAINNET = {
    "name": "cetus",
    "package_id": "0x1eabed72c53feb3805120a081dc15963c204dc8d091542592abaf7a35689b2fb",
    "event_type": (
        "0x1eabed72c53feb3805120a081dc15963c204dc8d091542592abaf7a35689b2fb"
        "::factory::CreatePoolEvent"
    ),
}

TURBOS_MAINNET = {
    "name": "turbos",
    "package_id": "0x91bfbc386a41afcfd9b2533058d7e915a1d3829089cc268ff4333d54d6339ca1",
    "event_type": (
        "0x91bfbc386a41afcfd9b2533058d7e915a1d3829089cc268ff4333d54d6339ca1"
        "::pool_factory::PoolCreatedEvent"
    ),
}

DEFAULT_RPC_URL = "https://fullnode.mainnet.sui.io:443"


def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse YAML configuration file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if config_dict is None:
        raise ConfigurationError(f"Empty configuration file: {config_path}")
    if not isinstance(config_dict, dict):
        raise ConfigurationError("Config file must contain a YAML dictionary")

    return config_dict


def apply_env_overrides(
    config_dict: Dict[str, Any], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """
    Layer RPC settings from the environment over a raw config dictionary.

    Recognised variables:
        SUI_NETWORK: network name
        SUI_MAINNET_RPC / SUI_RPC_URL: primary endpoint (replaces the first URL)
        SUI_RPC_FALLBACK: appended as a fallback endpoint
        SUI_MAINNET_RATE_LIMIT: requests per second
    """
    env = os.environ if environ is None else environ
    result = dict(config_dict)
    rpc = dict(result.get("rpc") or {})
    urls = list(rpc.get("urls") or [])

    if env.get("SUI_NETWORK"):
        rpc["network"] = env["SUI_NETWORK"]

    primary = env.get("SUI_MAINNET_RPC") or env.get("SUI_RPC_URL")
    if primary:
        urls = [primary] + [url for url in urls[1:] if url != primary]

    fallback = env.get("SUI_RPC_FALLBACK")
    if fallback and fallback not in urls:
        urls.append(fallback)

    if env.get("SUI_MAINNET_RATE_LIMIT"):
        try:
            rpc["rate_limit"] = float(env["SUI_MAINNET_RATE_LIMIT"])
        except ValueError as e:
            raise ConfigurationError(
                f"SUI_MAINNET_RATE_LIMIT must be numeric: {env['SUI_MAINNET_RATE_LIMIT']}"
            ) from e

    rpc["urls"] = urls
    result["rpc"] = rpc
    return result


def build_config(config_dict: Dict[str, Any]) -> AppConfig:
    """Validate a raw dictionary into an AppConfig."""
    try:
        return AppConfig.model_validate(config_dict)
    except PydanticValidationError as e:
        raise ValidationError(f"Configuration validation failed: {e}") from e


def load_config(
    config_path: Union[str, Path], environ: Optional[Mapping[str, str]] = None
) -> AppConfig:
    """
    Load, override and validate a monitor configuration file.

    Args:
        config_path: Path to the YAML configuration file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated AppConfig

    Raises:
        ConfigurationError: If the configuration cannot be loaded
        ValidationError: If the configuration fails schema validation
    """
    config_dict = load_yaml_config(config_path)
    return build_config(apply_env_overrides(config_dict, environ))


def get_default_config(environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Default mainnet configuration (Cetus + Turbos) for running without a file."""
    config_dict = {
        "rpc": {"network": "mainnet", "urls": [DEFAULT_RPC_URL]},
        "dexes": [dict(CETUS_MAINNET), dict(TURBOS_MAINNET)],
    }
    return build_config(apply_env_overrides(config_dict, environ))
