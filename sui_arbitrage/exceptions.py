"""
Exception hierarchy for the Sui arbitrage monitor.

Provides specific exception types for different error categories to enable
better error handling and debugging.
"""

from typing import Any, Dict, Optional


class SuiArbitrageError(Exception):
    """Base exception for all arbitrage monitor errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(SuiArbitrageError):
    """Raised when there are configuration-related issues."""

    pass


class ValidationError(ConfigurationError):
    """Raised when configuration fails schema validation."""

    pass


class NetworkError(SuiArbitrageError):
    """Raised when an RPC endpoint is unreachable or returns an error."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class DataError(SuiArbitrageError):
    """Raised when on-chain data cannot be parsed into the expected shape."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        object_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.source = source
        self.object_id = object_id


class AdapterError(SuiArbitrageError):
    """Raised when a DEX adapter operation fails."""

    def __init__(
        self,
        message: str,
        dex: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.dex = dex
