"""
Common utilities and helper functions for the Sui arbitrage monitor.

This module provides centralized helper functions for common operations like
timestamp handling, JSON serialization, path validation, Move type-string
handling and logger construction.
"""

import json
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Union


# Timestamp utilities
def get_current_timestamp() -> float:
    """Get current Unix timestamp as float."""
    return time.time()


def timestamp_to_iso(timestamp: float) -> str:
    """Convert Unix timestamp to ISO 8601 string."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def iso_to_timestamp(iso_string: str) -> float:
    """Convert ISO 8601 string to Unix timestamp."""
    return datetime.fromisoformat(iso_string.replace("Z", "+00:00")).timestamp()


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human-readable string."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"


# JSON utilities
def safe_json_dump(data: Any, **kwargs) -> str:
    """
    Safely serialize data to JSON with sensible defaults.

    Args:
        data: Data to serialize
        **kwargs: Additional arguments to json.dumps

    Returns:
        JSON string
    """
    defaults = {"ensure_ascii": False, "indent": 2, "default": _json_default_handler}
    defaults.update(kwargs)
    return json.dumps(data, **defaults)


def _json_default_handler(obj: Any) -> Any:
    """Default JSON serialization handler for custom types."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    elif hasattr(obj, "__dict__"):
        return obj.__dict__
    else:
        return str(obj)


# Path utilities
def ensure_path_exists(path: Union[str, Path], is_file: bool = False) -> Path:
    """
    Ensure a path exists, creating directories if necessary.

    Args:
        path: Path to ensure exists
        is_file: If True, create parent directories for file path

    Returns:
        Path object
    """
    path_obj = Path(path)

    if is_file:
        path_obj.parent.mkdir(parents=True, exist_ok=True)
    else:
        path_obj.mkdir(parents=True, exist_ok=True)

    return path_obj


def write_json_file(path: Union[str, Path], data: Any) -> Path:
    """Write data as pretty JSON, creating parent directories as needed."""
    path_obj = ensure_path_exists(path, is_file=True)
    path_obj.write_text(safe_json_dump(data), encoding="utf-8")
    return path_obj


def read_json_file(path: Union[str, Path]) -> Any:
    """Read a JSON document written by write_json_file."""
    return json.loads(Path(path).read_text(encoding="utf-8"))


# Move type utilities
_ADDRESS_PREFIX_RE = re.compile(r"(^|[<,]\s*)(?:0x)?([0-9a-fA-F]{1,64})(?=::)")


def normalize_coin_type(coin_type: str) -> str:
    """
    Normalize a Move type string so every address is 0x-prefixed, 64 hex digits.

    Different DEX packages emit coin types in different forms; Cetus events
    carry ``0000...0002::sui::SUI`` while object types read ``0x2::sui::SUI``.

    >>> normalize_coin_type("2::sui::SUI")
    '0x0000000000000000000000000000000000000000000000000000000000000002::sui::SUI'
    """
    if not coin_type:
        return coin_type

    def _pad(match: "re.Match[str]") -> str:
        return f"{match.group(1)}0x{match.group(2).lower().zfill(64)}"

    return _ADDRESS_PREFIX_RE.sub(_pad, coin_type.strip())


def parse_type_arguments(type_str: str) -> List[str]:
    """
    Split the top-level generic arguments of a Move struct type.

    ``0xabc::pool::Pool<0x2::sui::SUI, 0xdef::usdc::USDC, 0xabc::fee3000bps::FEE3000BPS>``
    yields the three argument strings. Nested generics are kept intact.
    """
    start = type_str.find("<")
    if start == -1 or not type_str.endswith(">"):
        return []

    args: List[str] = []
    depth = 0
    current = []
    for char in type_str[start + 1 : -1]:
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
        if char == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    tail = "".join(current).strip()
    if tail:
        args.append(tail)
    return args


# Logging utilities
def get_logger(name: str, level: Union[str, int] = logging.INFO) -> logging.Logger:
    """
    Get a logger with the project's structured format.

    Args:
        name: Logger name (typically __name__)
        level: Logging level, applied only if the logger has none yet

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    # Set level if not already set
    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    # Add structured formatter if no handlers exist
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
                datefmt="%H:%M:%S",
            )
        )
        logger.addHandler(handler)

    return logger
