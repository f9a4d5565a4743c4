# packsmith/http/client.py
from __future__ import annotations
import asyncio
import json
import random
from typing import Any
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

from packsmith.app.settings import config
from packsmith.core.logging import getLogger

logger = getLogger("http")

__all__ = ["HTTPError", "HttpResponse", "RetryPolicy", "request", "fetchBytes"]

# Transient statuses worth another attempt
RETRY_STATUSES = frozenset({408, 429, 500, 502, 503, 504})



class HTTPError(Exception):
    def __init__(self, status: int, body: str, url: str | None = None):
        where = f" ({url})" if url else ""
        super().__init__(f"HTTP {status}{where}: {body[:200]}")
        self.status = status
        self.body = body
        self.url = url



@dataclass
class HttpResponse:
    status: int
    url: str
    content: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """Decode the body as JSON; raises ValueError when it is not."""
        return json.loads(self.content)

    def raiseForStatus(self) -> None:
        if not self.ok:
            raise HTTPError(self.status, self.text, self.url)



@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff window; unset fields come from "http.*" config."""
    retries: int
    backoffBaseMs: int
    backoffMaxMs: int

    @classmethod
    def fromConfig(cls, retries: int | None = None, backoffBaseMs: int | None = None, backoffMaxMs: int | None = None) -> RetryPolicy:
        return cls(
            retries=max(0, int(config("http.retries", 2) if retries is None else retries)),
            backoffBaseMs=int(config("http.backoffBaseMs", 250) if backoffBaseMs is None else backoffBaseMs),
            backoffMaxMs=int(config("http.backoffMaxMs", 1_000) if backoffMaxMs is None else backoffMaxMs),
        )

    def backoffSeconds(self, attempt: int) -> float:
        """Exponential delay for the zero-based `attempt`, jittered by +-25%."""
        baseMs = min(self.backoffMaxMs, self.backoffBaseMs * (2 ** attempt))
        spreadMs = baseMs * 0.25
        return max(0.0, baseMs + random.uniform(-spreadMs, spreadMs)) / 1_000



def _parseRetryAfter(value: str | None) -> float | None:
    """Seconds to wait per a Retry-After header (delta-seconds or HTTP-date), or None."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        seconds = None
    if seconds is not None:
        return seconds if seconds >= 0 else None
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())



async def request(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    timeoutMs: int | None = None,
    retries: int | None = None,
    backoffBaseMs: int | None = None,
    backoffMaxMs: int | None = None,
    followRedirects: bool = True,
) -> HttpResponse:
    """
    Send one request, retrying transient failures.

    Statuses in RETRY_STATUSES and transport errors are retried up to
    `retries` times. A Retry-After header overrides the backoff delay.
    Once the budget is spent a retryable status raises HTTPError and a
    transport failure re-raises the httpx error. Every other status,
    including 4xx, is returned for the caller to judge.
    """
    policy = RetryPolicy.fromConfig(retries, backoffBaseMs, backoffMaxMs)
    timeoutSec = max(1, int(config("http.timeoutMs", 30_000) if timeoutMs is None else timeoutMs)) / 1_000
    method = str(method).upper()
    sendHeaders = {"User-Agent": str(config("http.userAgent", "packsmith")), **(headers or {})}

    logger.debug("%s %s (timeout=%.1fs, retries=%d)", method, url, timeoutSec, policy.retries)

    async with httpx.AsyncClient(timeout=httpx.Timeout(timeoutSec), http2=True) as cli:
        for attempt in range(policy.retries + 1):
            finalAttempt = attempt == policy.retries
            try:
                resp = await cli.request(method, url, headers=sendHeaders, params=params, follow_redirects=followRedirects)
            except httpx.HTTPError as err:
                if finalAttempt:
                    logger.debug("Giving up on %s %s: %s", method, url, err)
                    raise
                delay = policy.backoffSeconds(attempt)
                logger.debug("Transport error on %s %s: %s; retrying in %.3fs", method, url, err, delay)
                await asyncio.sleep(delay)
                continue

            if resp.status_code in RETRY_STATUSES:
                if finalAttempt:
                    raise HTTPError(resp.status_code, resp.text, url)
                delay = _parseRetryAfter(resp.headers.get("Retry-After"))
                if delay is None:
                    delay = policy.backoffSeconds(attempt)
                logger.debug("HTTP %d from %s %s; retry %d in %.3fs", resp.status_code, method, url, attempt + 1, delay)
                await asyncio.sleep(delay)
                continue

            logger.debug("%s %s -> %d (%d bytes)", method, url, resp.status_code, len(resp.content))
            return HttpResponse(status=resp.status_code, url=url, content=resp.content, headers=dict(resp.headers))

    raise AssertionError("unreachable: retry loop always returns or raises")



async def fetchBytes(url: str, **kwargs: Any) -> bytes:
    """GET `url` and return the body; any non-2xx status raises HTTPError."""
    resp = await request("GET", url, **kwargs)
    resp.raiseForStatus()
    return resp.content
