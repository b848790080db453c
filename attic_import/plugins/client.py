"""Outbound HTTP client shared by import plugins.

The client attaches per-plugin authentication, bounds every call with a
timeout, paces calls to sources that require a minimum interval between
requests, and classifies failures into the import error taxonomy so that
adapters never look at raw status codes.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx

from attic_import.observability.logging import get_logger
from attic_import.plugins.errors import NotFoundError, UnauthorizedError, UnavailableError

logger = get_logger(__name__)

_deadline: ContextVar[asyncio.Timeout | None] = ContextVar("call_deadline", default=None)


@asynccontextmanager
async def call_deadline(seconds: float) -> AsyncIterator[asyncio.Timeout]:
    """Bound a plugin call, not counting time spent queued at a ``RateGate``.

    Raises:
        TimeoutError: If the call runs longer than ``seconds`` outside gate waits
    """
    async with asyncio.timeout(seconds) as deadline:
        token = _deadline.set(deadline)
        try:
            yield deadline
        finally:
            _deadline.reset(token)


@contextmanager
def _paused_deadline() -> Iterator[None]:
    deadline = _deadline.get()
    if deadline is None or deadline.when() is None:
        yield
        return
    loop = asyncio.get_running_loop()
    remaining = deadline.when() - loop.time()
    deadline.reschedule(None)
    try:
        yield
    finally:
        deadline.reschedule(loop.time() + remaining)


class RateGate:
    """Serializes calls and enforces a minimum interval between them.

    Callers queue on the gate instead of being rejected, so bursts against a
    strict source show up as added latency. A ``call_deadline`` around the
    caller is paused while it waits here.

    Example:
        >>> gate = RateGate(min_interval=5.0)
        >>> async with gate:
        ...     response = await http.get(url)
    """

    def __init__(self, min_interval: float) -> None:
        self.min_interval = min_interval
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    async def __aenter__(self) -> "RateGate":
        with _paused_deadline():
            await self._lock.acquire()
            try:
                if self._last_call is not None:
                    wait = self.min_interval - (time.monotonic() - self._last_call)
                    if wait > 0:
                        await asyncio.sleep(wait)
                self._last_call = time.monotonic()
            except BaseException:
                self._lock.release()
                raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self._lock.release()


class RateLimiter:
    """Owns one ``RateGate`` per rate-limited plugin."""

    def __init__(self) -> None:
        self._gates: Dict[str, RateGate] = {}

    def gate(self, plugin_id: str, min_interval: float) -> RateGate:
        """Get the gate for a plugin, creating it on first use.

        Args:
            plugin_id: Plugin identifier
            min_interval: Minimum seconds between two calls

        Returns:
            The plugin's RateGate
        """
        gate = self._gates.get(plugin_id)
        if gate is None:
            gate = RateGate(min_interval)
            self._gates[plugin_id] = gate
        return gate


@dataclass(frozen=True)
class BearerAuth:
    """Static bearer token sent in the Authorization header."""
    token: Optional[str]

    def apply(self, headers: Dict[str, str], params: Dict[str, Any]) -> None:
        headers["Authorization"] = f"Bearer {self.token}"


@dataclass(frozen=True)
class QueryKeyAuth:
    """API key sent as a query-string parameter."""
    token: Optional[str]
    param: str = "key"
    optional: bool = True

    def apply(self, headers: Dict[str, str], params: Dict[str, Any]) -> None:
        if self.token:
            params[self.param] = self.token


class ExternalClient:
    """HTTP client bound to one plugin's upstream source.

    Args:
        plugin_id: Plugin the client belongs to (used in logs and errors)
        base_url: Upstream API root
        timeout: Per-call timeout in seconds
        auth: BearerAuth, QueryKeyAuth or None
        gate: RateGate shared by all calls to this source, or None
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        plugin_id: str,
        base_url: str,
        timeout: float = 10.0,
        auth: BearerAuth | QueryKeyAuth | None = None,
        gate: RateGate | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        accept: str = "application/json",
    ) -> None:
        self.plugin_id = plugin_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.auth = auth
        self.gate = gate
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Accept": accept},
            transport=transport,
        )

    @property
    def has_credential(self) -> bool:
        if self.auth is None:
            return True
        if isinstance(self.auth, QueryKeyAuth) and self.auth.optional:
            return True
        return bool(self.auth.token)

    async def get(self, path: str, params: Mapping[str, Any] | None = None) -> httpx.Response:
        """Perform a GET request against the upstream source.

        Args:
            path: Path relative to the base URL
            params: Query-string parameters

        Returns:
            The successful (2xx) response

        Raises:
            NotFoundError: Upstream answered 404
            UnauthorizedError: Credential missing, or upstream answered 401/403
            UnavailableError: Timeout, network failure, 429, 5xx or other non-2xx
        """
        context = {"plugin_id": self.plugin_id, "path": path}
        if not self.has_credential:
            raise UnauthorizedError(
                f"Plugin '{self.plugin_id}' has no API credential configured",
                context,
            )

        headers: Dict[str, str] = {}
        query: Dict[str, Any] = dict(params or {})
        if self.auth is not None:
            self.auth.apply(headers, query)

        try:
            if self.gate is not None:
                async with self.gate:
                    response = await self._client.get(path, params=query, headers=headers)
            else:
                response = await self._client.get(path, params=query, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("upstream_timeout", **context)
            raise UnavailableError(f"Request to '{self.plugin_id}' timed out", context) from e
        except httpx.HTTPError as e:
            logger.warning("upstream_transport_error", error=type(e).__name__, **context)
            raise UnavailableError(f"Could not reach '{self.plugin_id}'", context) from e

        return self._classify(response, context)

    async def get_json(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        """GET a path and decode the JSON body.

        Raises:
            UnavailableError: If the body is not valid JSON, plus everything ``get`` raises
        """
        response = await self.get(path, params)
        try:
            return response.json()
        except ValueError as e:
            logger.warning("upstream_invalid_json", plugin_id=self.plugin_id, path=path)
            raise UnavailableError(
                f"'{self.plugin_id}' returned an invalid response",
                {"plugin_id": self.plugin_id, "path": path},
            ) from e

    def _classify(self, response: httpx.Response, context: Dict[str, Any]) -> httpx.Response:
        status = response.status_code
        if 200 <= status < 300:
            return response

        context = {**context, "status_code": status}
        if status == 404:
            raise NotFoundError("Item not found in external source", context)
        if status in (401, 403):
            logger.warning("upstream_unauthorized", **context)
            raise UnauthorizedError(f"'{self.plugin_id}' rejected the API credential", context)

        logger.warning("upstream_error_status", **context)
        raise UnavailableError(f"'{self.plugin_id}' returned status {status}", context)

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()
