"""
Shared async REST client for exchange public endpoints.

Every adapter issues its GET requests through one RestClient. The client owns
the aiohttp session, applies simple time-based throttling, and turns the
exchange's error envelope into RemoteAPIError with the exchange's own text.

Each exchange reports errors differently, so adapters pass an
``error_parser``: a function that returns the error message found in a parsed
payload, or None when the payload is a success.

    Binance:  {"code": -1121, "msg": "Invalid symbol."}
    OKX:      {"code": "51001", "msg": "Instrument ID does not exist", "data": []}
    Kraken:   {"error": ["EQuery:Unknown asset pair"], "result": {}}
    Coinbase: {"message": "NotFound"}

Errors:
    - HTTP 429 raises RateLimitError
    - An error envelope (any status) raises RemoteAPIError
    - Other HTTP >= 400 responses raise RemoteAPIError with the body text
    - Network failures and timeouts raise ConnectionError
    - A fired abort signal raises RequestAbortedError
"""

import asyncio
import json
from typing import Any, Callable, Dict, Optional

import aiohttp
import structlog

from marketfeed.errors import RateLimitError, RemoteAPIError, RequestAbortedError

logger = structlog.get_logger(__name__)

ErrorParser = Callable[[Any], Optional[str]]

DEFAULT_RETRY_AFTER = 60


class RestClient:
    """
    Async REST API client shared by the exchange adapters.

    Attributes:
        exchange: Exchange identifier used in errors and logs.
        base_url: REST API base URL.
        rate_limit_per_second: Maximum requests per second.
        timeout_seconds: Total request timeout.

    Example:
        >>> client = RestClient(
        ...     exchange="binance",
        ...     base_url="https://api.binance.com",
        ...     error_parser=BinanceNormalizer.parse_error,
        ... )
        >>> rows = await client.get("/api/v3/klines", {"symbol": "BTCUSDT", "interval": "1m"})
    """

    def __init__(
        self,
        exchange: str,
        base_url: str,
        error_parser: ErrorParser,
        rate_limit_per_second: int = 10,
        timeout_seconds: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize REST client.

        Args:
            exchange: Exchange identifier.
            base_url: REST API base URL.
            error_parser: Extracts an error message from a parsed payload.
            rate_limit_per_second: Maximum requests per second.
            timeout_seconds: Request timeout in seconds.
            session: Optional pre-built session (the client will not close it).
        """
        self.exchange = exchange
        self.base_url = base_url.rstrip("/")
        self.rate_limit_per_second = rate_limit_per_second
        self.timeout_seconds = timeout_seconds

        self._error_parser = error_parser
        self._session = session
        self._owns_session = session is None
        self._last_request_time: float = 0.0
        self._request_interval = 1.0 / rate_limit_per_second
        self._throttle_lock = asyncio.Lock()

        logger.debug(
            "rest_client_initialized",
            exchange=exchange,
            base_url=self.base_url,
            rate_limit=rate_limit_per_second,
        )

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure aiohttp session is created."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(
                timeout=timeout,
                headers={"User-Agent": "marketfeed/0.1"},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            logger.debug("rest_client_session_closed", exchange=self.exchange)

    async def _rate_limit(self) -> None:
        """
        Apply rate limiting using simple time-based throttling.

        Ensures a minimum interval between consecutive requests.
        """
        async with self._throttle_lock:
            loop = asyncio.get_running_loop()
            time_since_last = loop.time() - self._last_request_time

            if time_since_last < self._request_interval:
                await asyncio.sleep(self._request_interval - time_since_last)

            self._last_request_time = loop.time()

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        abort: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Issue a GET request and return the parsed JSON payload.

        Args:
            path: Endpoint path appended to the base URL.
            params: Query parameters.
            abort: Optional event; setting it abandons the request.

        Returns:
            Any: Parsed JSON payload.

        Raises:
            RemoteAPIError: If the exchange reported an error.
            RateLimitError: If rate limited by the exchange.
            ConnectionError: If the request failed at the network level.
            RequestAbortedError: If ``abort`` was set before completion.
        """
        if abort is None:
            return await self._request(path, params)

        if abort.is_set():
            raise RequestAbortedError(self.exchange, path)

        request = asyncio.ensure_future(self._request(path, params))
        aborted = asyncio.ensure_future(abort.wait())
        try:
            done, _ = await asyncio.wait(
                {request, aborted}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (request, aborted):
                if not task.done():
                    task.cancel()

        if request in done:
            return request.result()

        logger.info("rest_request_aborted", exchange=self.exchange, path=path)
        raise RequestAbortedError(self.exchange, path)

    async def _request(self, path: str, params: Optional[Dict[str, Any]]) -> Any:
        """Throttled GET with status and error-envelope handling."""
        await self._rate_limit()

        session = await self._ensure_session()
        url = f"{self.base_url}{path}"

        try:
            async with session.get(url, params=params) as response:
                if response.status == 429:
                    retry_after = self._retry_after(response.headers.get("Retry-After"))
                    logger.warning(
                        "rest_rate_limited",
                        exchange=self.exchange,
                        url=url,
                        retry_after=retry_after,
                    )
                    raise RateLimitError(self.exchange, retry_after)

                body = await response.text()
                payload = self._decode(body)

                message = self._error_parser(payload) if payload is not None else None
                if message is None and response.status >= 400:
                    message = body.strip() or f"HTTP {response.status}"

                if message is not None:
                    logger.error(
                        "rest_request_failed",
                        exchange=self.exchange,
                        url=url,
                        status=response.status,
                        error=message,
                    )
                    raise RemoteAPIError(self.exchange, message, status=response.status)

                if payload is None:
                    raise RemoteAPIError(
                        self.exchange,
                        f"Invalid JSON response from {path}",
                        status=response.status,
                    )

                return payload

        except aiohttp.ClientError as e:
            logger.error("rest_client_error", exchange=self.exchange, url=url, error=str(e))
            raise ConnectionError(f"REST request failed: {e}") from e
        except asyncio.TimeoutError as e:
            logger.error(
                "rest_timeout", exchange=self.exchange, url=url, timeout=self.timeout_seconds
            )
            raise ConnectionError(
                f"REST request timeout after {self.timeout_seconds}s"
            ) from e

    @staticmethod
    def _retry_after(value: Optional[str]) -> int:
        """Seconds from a Retry-After header; the HTTP-date form falls back to 60."""
        try:
            return int(value) if value is not None else DEFAULT_RETRY_AFTER
        except ValueError:
            return DEFAULT_RETRY_AFTER

    @staticmethod
    def _decode(body: str) -> Any:
        """Parse a response body, returning None when it is not JSON."""
        try:
            return json.loads(body)
        except ValueError:
            return None

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"RestClient(exchange={self.exchange}, base_url={self.base_url}, "
            f"rate_limit={self.rate_limit_per_second}/s)"
        )
