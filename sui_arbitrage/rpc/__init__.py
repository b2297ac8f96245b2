"""
RPC access layer: token-bucket throttling and retrying Sui endpoint access.
"""

from .client import SuiClientManager, SuiRpcClient, create_sui_client
from .rate_limiter import RateLimiter

__all__ = ["RateLimiter", "SuiClientManager", "SuiRpcClient", "create_sui_client"]
