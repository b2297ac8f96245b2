"""
Sui JSON-RPC client with rate limiting, retries and endpoint failover.

SuiRpcClient is a thin aiohttp transport for the handful of full-node
methods the pipeline needs. SuiClientManager owns one active SuiRpcClient at
a time and rotates through the configured endpoints when calls fail.
"""

import asyncio
import itertools
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

import aiohttp

from ..exceptions import ConfigurationError, NetworkError
from ..utils import get_logger
from .rate_limiter import RateLimiter

logger = get_logger(__name__)

T = TypeVar("T")

# Sui full nodes reject multiGetObjects batches above this size
MAX_MULTI_GET_OBJECTS = 50


class SuiRpcClient:
    """Minimal async JSON-RPC 2.0 client for a single Sui full node."""

    def __init__(
        self,
        url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._request_ids = itertools.count(1)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Send one JSON-RPC request and return its ``result`` member.

        Raises:
            NetworkError: On transport failure, non-2xx status or RPC error
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params or [],
        }
        session = await self._get_session()

        try:
            async with session.post(self.url, json=payload) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise NetworkError(
                        f"{method} failed with HTTP {response.status}: {text[:200]}",
                        endpoint=self.url,
                        status_code=response.status,
                    )
                body = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(
                f"{method} request to {self.url} failed: {e}", endpoint=self.url
            ) from e

        if not isinstance(body, dict):
            raise NetworkError(f"{method} returned a non-object body", endpoint=self.url)
        if body.get("error"):
            error = body["error"]
            raise NetworkError(
                f"{method} RPC error: {error.get('message', error)}",
                endpoint=self.url,
                details={"rpc_error": error},
            )
        return body.get("result")

    async def query_events(
        self,
        query: Dict[str, Any],
        cursor: Optional[Dict[str, Any]] = None,
        limit: int = 50,
        descending_order: bool = True,
    ) -> Dict[str, Any]:
        """
        Query events by filter, e.g. ``{"MoveEventType": "0x..::factory::CreatePoolEvent"}``
        or ``{"MoveModule": {"package": "0x..", "module": "pool"}}``.

        Returns the page: ``{"data": [...], "nextCursor": ..., "hasNextPage": bool}``.
        """
        return await self.request(
            "suix_queryEvents", [query, cursor, limit, descending_order]
        )

    async def get_object(
        self, object_id: str, show_content: bool = True, show_type: bool = False
    ) -> Dict[str, Any]:
        return await self.request(
            "sui_getObject",
            [object_id, {"showContent": show_content, "showType": show_type}],
        )

    async def multi_get_objects(
        self, object_ids: List[str], show_content: bool = True, show_type: bool = True
    ) -> List[Dict[str, Any]]:
        if len(object_ids) > MAX_MULTI_GET_OBJECTS:
            raise ValueError(
                f"At most {MAX_MULTI_GET_OBJECTS} objects per call, got {len(object_ids)}"
            )
        return await self.request(
            "sui_multiGetObjects",
            [object_ids, {"showContent": show_content, "showType": show_type}],
        )

    async def get_chain_identifier(self) -> str:
        return await self.request("sui_getChainIdentifier")

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()


class SuiClientManager:
    """
    Retrying, rate-limited access to a list of Sui endpoints.

    Exactly one endpoint is active at a time; failover is round-robin in
    configuration order, not latency based.
    """

    def __init__(
        self,
        network: str,
        rpc_urls: List[str],
        rate_limit: Optional[float] = None,
        client_factory: Optional[Callable[[str], SuiRpcClient]] = None,
        retry_delay: float = 1.0,
        max_attempts: int = 3,
        metrics=None,
    ):
        """
        Args:
            network: Network name, informational
            rpc_urls: Endpoints, primary first
            rate_limit: Requests per second shared across endpoints (None = unlimited)
            client_factory: Builds a client for a URL (defaults to SuiRpcClient)
            retry_delay: Base backoff in seconds, multiplied by the attempt number
            max_attempts: Default attempt count for call_with_retry
            metrics: Optional MonitorMetrics

        Raises:
            ConfigurationError: If no RPC URL is supplied
        """
        urls = [url for url in rpc_urls if url]
        if not urls:
            raise ConfigurationError("At least one RPC URL is required")

        self.network = network
        self.rpc_urls = urls
        self.retry_delay = retry_delay
        self.max_attempts = max_attempts
        self.metrics = metrics
        self.rate_limiter = RateLimiter(rate_limit) if rate_limit else None
        self._client_factory = client_factory or SuiRpcClient
        self.current_index = 0
        self.client = self._client_factory(urls[0])
        self._retired_clients: List[Any] = []
        self._in_flight: Dict[int, int] = {}
        self._switch_lock = asyncio.Lock()

        logger.info(f"SuiClient initialized (network={network}, rpc={urls[0]})")

    @property
    def current_url(self) -> str:
        return self.rpc_urls[self.current_index]

    def get_client(self) -> SuiRpcClient:
        return self.client

    async def test_connection(self) -> bool:
        """Check the active endpoint's chain identifier; never raises."""
        try:
            chain_id = await self.client.get_chain_identifier()
            logger.info(f"Connection test successful (chain_id={chain_id})")
            return True
        except Exception as e:
            logger.error(f"Connection test failed for {self.current_url}: {e}")
            return False

    async def switch_to_fallback(self, failed_client: Any = None) -> bool:
        """
        Advance to the next endpoint, skipping ones that fail the liveness check.

        At most one full lap is attempted so a fully unreachable endpoint list
        leaves the manager on the last endpoint tried instead of looping.

        Switches are serialised. A failure reported for ``failed_client`` once
        it is no longer the active client is ignored, so late errors from
        requests still in flight on an old endpoint do not move the manager.
        A replaced client is closed once its last in-flight request finishes.

        Returns:
            True if the active endpoint changed
        """
        async with self._switch_lock:
            if failed_client is not None and failed_client is not self.client:
                logger.debug("Ignoring failure from a replaced RPC client")
                return False

            for _ in range(len(self.rpc_urls)):
                await self._retire(self.client)
                self.current_index = (self.current_index + 1) % len(self.rpc_urls)
                logger.warning(f"Switching to fallback RPC: {self.current_url}")
                self.client = self._client_factory(self.current_url)

                if self.metrics:
                    self.metrics.record_failover()

                if await self.test_connection() or len(self.rpc_urls) == 1:
                    break
            return True

    async def call_with_retry(
        self,
        operation: Callable[[SuiRpcClient], Awaitable[T]],
        max_attempts: Optional[int] = None,
    ) -> T:
        """
        Run ``operation(client)`` against the active endpoint with retries.

        Each attempt waits for the rate limiter first. After a failure the
        manager fails over and backs off ``retry_delay * attempt`` seconds.

        Raises:
            The last error once all attempts are exhausted
        """
        if max_attempts is None:
            max_attempts = self.max_attempts
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1: {max_attempts}")

        client = None

        async def run_on_active_client():
            nonlocal client
            client = self.client
            self._in_flight[id(client)] = self._in_flight.get(id(client), 0) + 1
            try:
                return await operation(client)
            finally:
                await self._release(client)

        last_error: Optional[BaseException] = None
        for attempt in range(max_attempts):
            client = None
            try:
                if self.rate_limiter:
                    result = await self.rate_limiter.execute_with_limit(run_on_active_client)
                else:
                    result = await run_on_active_client()
                if self.metrics:
                    self.metrics.record_rpc_request("success")
                return result
            except Exception as e:
                last_error = e
                if self.metrics:
                    self.metrics.record_rpc_request("failure")
                logger.warning(
                    f"Operation failed (attempt {attempt + 1}/{max_attempts}) "
                    f"on {getattr(client, 'url', self.current_url)}: {e}"
                )

                if attempt < max_attempts - 1:
                    await self.switch_to_fallback(failed_client=client)
                    await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise last_error

    async def _retire(self, client: Any) -> None:
        if self._in_flight.get(id(client)):
            self._retired_clients.append(client)
        else:
            await self._close_client(client)

    async def _release(self, client: Any) -> None:
        remaining = self._in_flight.get(id(client), 0) - 1
        if remaining > 0:
            self._in_flight[id(client)] = remaining
            return
        self._in_flight.pop(id(client), None)
        if any(retired is client for retired in self._retired_clients):
            self._retired_clients = [c for c in self._retired_clients if c is not client]
            await self._close_client(client)

    def rate_limiter_status(self) -> Optional[Dict[str, Any]]:
        return self.rate_limiter.status() if self.rate_limiter else None

    @staticmethod
    async def _close_client(client: Any) -> None:
        close = getattr(client, "close", None)
        if close is None:
            return
        try:
            await close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing RPC client: {e}")

    async def close(self) -> None:
        for client in self._retired_clients:
            await self._close_client(client)
        self._retired_clients.clear()
        await self._close_client(self.client)


def create_sui_client(
    network: str,
    rpc_urls: List[str],
    rate_limit: Optional[float] = None,
    **kwargs,
) -> SuiClientManager:
    return SuiClientManager(network, rpc_urls, rate_limit, **kwargs)
