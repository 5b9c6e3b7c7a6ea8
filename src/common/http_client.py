"""Shared async HTTP helpers used by the registry client.

``HttpClient`` owns the aiohttp session and turns non-2xx responses and
transport failures into ``NetworkError``. ``FetchCache`` sits in front of it
and guarantees a URL is requested at most once per cache instance: the first
caller schedules the request, every later caller awaits the same task.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Protocol

import aiohttp

from constants import Constants
from common.errors import NetworkError
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


class TextTransport(Protocol):
    """Anything able to GET a URL and return its body as text."""

    async def get_text(self, url: str) -> str:
        """Return the response body or raise ``NetworkError``."""
        ...


class HttpClient:
    """aiohttp-backed GET client with a total per-request timeout."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_connections: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """Initialize the client.

        Args:
            timeout: Total timeout per request in seconds.
            max_connections: Connection pool limit; caps concurrent requests.
            headers: Extra default request headers.
        """
        self._timeout = aiohttp.ClientTimeout(
            total=timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        )
        self._max_connections = (
            max_connections if max_connections is not None else Constants.HTTP_MAX_CONNECTIONS
        )
        self._headers = {"User-Agent": Constants.USER_AGENT, "Accept": "*/*"}
        if headers:
            self._headers.update(headers)
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=self._max_connections)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers=self._headers,
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def get_text(self, url: str) -> str:
        """GET ``url`` and return the body decoded as UTF-8.

        Raises:
            NetworkError: On a non-2xx status, a timeout or a connection error.
        """
        if self._session is None:
            await self.start()
        assert self._session is not None

        safe_target = safe_url(url)
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                    ),
                )
            try:
                async with self._session.get(url) as response:
                    status = response.status
                    if status < 200 or status >= 300:
                        reason = response.reason or str(status)
                        logger.debug(
                            "HTTP non-2xx",
                            extra=extra_context(
                                event="http_response",
                                component="http_client",
                                outcome="non_2xx",
                                status_code=status,
                                duration_ms=t.duration_ms(),
                                target=safe_target,
                            ),
                        )
                        raise NetworkError(url, status, reason)
                    body = await response.read()
            except asyncio.TimeoutError as exc:
                logger.debug("GET %s timed out after %s", safe_target, self._timeout.total)
                raise NetworkError(url, None, "timeout") from exc
            except aiohttp.ClientError as exc:
                logger.debug("GET %s connection error: %s", safe_target, exc)
                raise NetworkError(url, None, str(exc) or exc.__class__.__name__) from exc

            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response ok",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        outcome="success",
                        status_code=status,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                    ),
                )
        return body.decode("utf-8", errors="replace")

    async def __aenter__(self) -> "HttpClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()


class FetchCache:
    """Deduplicates GET requests by URL.

    Entries never expire: package@version content is immutable. A failed
    request stays failed for every waiter and is not retried.
    """

    def __init__(self, transport: TextTransport):
        self._transport = transport
        self._entries: Dict[str, "asyncio.Future[str]"] = {}

    def fetch(self, url: str) -> "asyncio.Future[str]":
        """Return the (possibly shared) pending or settled request for ``url``.

        Must be called from a running event loop.
        """
        loop = asyncio.get_running_loop()
        entry = self._entries.get(url)
        if entry is not None:
            # A pending task from a finished loop can never settle
            if entry.done() or entry.get_loop() is loop:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP cache hit",
                        extra=extra_context(
                            event="cache_hit",
                            component="fetch_cache",
                            outcome="settled" if entry.done() else "in_flight",
                            target=safe_url(url),
                        ),
                    )
                return entry

        entry = loop.create_task(self._transport.get_text(url))
        self._entries[url] = entry
        return entry

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Forget every entry."""
        self._entries.clear()
