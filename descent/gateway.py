"""HTTP access to the game service that owns all game state."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

import httpx

__all__ = [
    "BackendGateway",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TIMEOUT",
    "GatewayError",
    "GatewayTimeout",
    "TransportError",
]

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY = 1.0


class GatewayError(RuntimeError):
    """Base class for failures talking to the game service."""


class TransportError(GatewayError):
    """Raised when the service could not be reached or answered with an error status."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.data = data


class GatewayTimeout(TransportError):
    """Raised when the service did not answer in time, even after retrying."""


class BackendGateway:
    """Thin wrapper around :class:`httpx.AsyncClient` for the game service.

    Network failures, timeouts and 5xx answers are retried up to
    ``max_retries`` times before surfacing as :class:`TransportError`.
    Callers never retry on their own.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self.max_retries = max(0, max_retries)
        self.retry_delay = max(0.0, retry_delay)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, payload: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("POST", path, payload=payload)

    async def request(
        self,
        method: str,
        path: str,
        *,
        payload: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded body.

        A top-level ``{"data": ...}`` envelope is unwrapped.
        """

        client = self._get_client()
        attempt = 0
        while True:
            try:
                response = await client.request(
                    method,
                    path,
                    json=dict(payload) if payload is not None else None,
                    params=dict(params) if params is not None else None,
                )
            except httpx.TimeoutException as exc:
                if attempt < self.max_retries:
                    attempt += 1
                    log.info("Timeout calling %s %s, retry %s/%s", method, path, attempt, self.max_retries)
                    await asyncio.sleep(self.retry_delay)
                    continue
                raise GatewayTimeout(f"{method} {path} timed out") from exc
            except httpx.TransportError as exc:
                if attempt < self.max_retries:
                    attempt += 1
                    log.info("Network error calling %s %s (%s), retry %s/%s", method, path, exc, attempt, self.max_retries)
                    await asyncio.sleep(self.retry_delay)
                    continue
                raise TransportError(f"{method} {path} failed: {exc}") from exc

            if response.status_code >= 500 and attempt < self.max_retries:
                attempt += 1
                log.info(
                    "Service answered %s for %s %s, retry %s/%s",
                    response.status_code,
                    method,
                    path,
                    attempt,
                    self.max_retries,
                )
                await asyncio.sleep(self.retry_delay)
                continue
            return self._decode(method, path, response)

    @staticmethod
    def _decode(method: str, path: str, response: httpx.Response) -> Any:
        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
        if response.is_error:
            raise TransportError(
                f"{method} {path} answered {response.status_code}",
                status=response.status_code,
                data=body,
            )
        if isinstance(body, dict) and set(body) == {"data"}:
            return body["data"]
        return body
