from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator

import httpx

from deskcanvas.core.errors import UpstreamUnavailable
from deskcanvas.infrastructure.logging import get_logger

logger = get_logger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = 3
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 10.0
    jitter_ratio: float = 0.2
    timeout_seconds: float = 10.0

    @property
    def attempts(self) -> int:
        return max(0, int(self.retries)) + 1

    def delays(self, rng: random.Random | None = None) -> Iterator[float]:
        """Yields the wait before each retry.

        The first wait is the base delay; every later one doubles the previous
        wait, caps it at ``max_delay_seconds`` and scales it by a random factor
        in ``[1 - jitter_ratio, 1 + jitter_ratio]``.
        """
        source = rng or random
        jitter = max(0.0, float(self.jitter_ratio))
        delay = max(0.0, float(self.base_delay_seconds))
        for index in range(max(0, int(self.retries))):
            if index > 0:
                capped = min(delay * 2, self.max_delay_seconds)
                delay = capped * source.uniform(1.0 - jitter, 1.0 + jitter)
            yield delay


def _error_detail(exc: httpx.HTTPError) -> tuple[int | None, Any]:
    if not isinstance(exc, httpx.HTTPStatusError):
        return None, str(exc)
    response = exc.response
    try:
        detail: Any = response.json()
    except ValueError:
        detail = response.text
    return response.status_code, detail


class RetryingHttpClient:
    """Outbound JSON client with bounded retries and jittered exponential backoff.

    Calls are not assumed idempotent: a POST that times out after the server
    accepted it will be sent again on the next attempt.
    """

    def __init__(
        self,
        *,
        name: str,
        base_url: str,
        policy: RetryPolicy | None = None,
        auth: tuple[str, str] | None = None,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleeper = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.policy = policy or RetryPolicy()
        self._auth = auth
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._transport = transport
        self._sleep = sleep
        self._rng = rng
        self._client: httpx.AsyncClient | None = None

    def configure(
        self,
        *,
        policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Swaps the retry policy or transport. Only allowed while no client is open."""
        if self._client is not None:
            raise RuntimeError(f"{self.name} client is open; call aclose() before configure()")
        if policy is not None:
            self.policy = policy
        if transport is not None:
            self._transport = transport

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                auth=self._auth,
                headers=self._headers,
                timeout=self.policy.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        client = self._get_client()
        delays = self.policy.delays(self._rng)
        attempts = self.policy.attempts
        last_error: httpx.HTTPError | None = None

        for attempt in range(1, attempts + 1):
            try:
                response = await self._attempt(client, method, path, params=params, json=json)
                response.raise_for_status()
                if attempt > 1:
                    logger.info(
                        "upstream_request_recovered",
                        upstream=self.name,
                        method=method,
                        path=path,
                        attempt=attempt,
                    )
                return response
            except httpx.HTTPError as exc:
                last_error = exc
                status_code, _ = _error_detail(exc)
                if attempt >= attempts:
                    break
                delay = next(delays)
                logger.warning(
                    "upstream_request_retrying",
                    upstream=self.name,
                    method=method,
                    path=path,
                    attempt=attempt,
                    status_code=status_code,
                    error=str(exc),
                    delay_seconds=round(delay, 3),
                )
                await self._sleep(delay)

        assert last_error is not None
        status_code, detail = _error_detail(last_error)
        logger.error(
            "upstream_request_failed",
            upstream=self.name,
            method=method,
            path=path,
            attempts=attempts,
            status_code=status_code,
            error=str(last_error),
        )
        raise UpstreamUnavailable(
            f"{self.name} {method} {path} failed after {attempts} attempts: {last_error}",
            status_code=status_code,
            detail=detail,
        ) from last_error

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None,
        json: Any,
    ) -> httpx.Response:
        # httpx timeouts are per phase; the policy timeout caps the whole attempt.
        timeout = self.policy.timeout_seconds
        try:
            return await asyncio.wait_for(
                client.request(method, path, params=params, json=json, timeout=timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise httpx.TimeoutException(f"{method} {path} exceeded {timeout}s") from exc

    async def get_json(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        response = await self.request("GET", path, params=params)
        return self._decode(response, path)

    async def post_json(self, path: str, payload: dict[str, Any]) -> Any:
        response = await self.request("POST", path, json=payload)
        return self._decode(response, path)

    def _decode(self, response: httpx.Response, path: str) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamUnavailable(
                f"{self.name} returned a non-JSON body for {path}",
                status_code=response.status_code,
                detail=response.text[:200],
            ) from exc
