# tests/packsmith/http/test_client.py
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from packsmith.app import settings
from packsmith.http import client as http_client


@pytest.fixture
def sleeps(monkeypatch):
    recorded: list[float] = []

    async def fakeSleep(delay: float):
        recorded.append(delay)

    monkeypatch.setattr(http_client.asyncio, "sleep", fakeSleep)
    return recorded


def _flaky(firstResponse: httpx.Response, calls: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return firstResponse
        return httpx.Response(200, json={"ok": True})
    return handler


@pytest.mark.parametrize("header,expected", [
    ("120", 120.0),
    ("0", 0.0),
    ("-1", None),
    ("soon", None),
    (None, None),
])
def test_retry_after_values(header, expected):
    assert http_client._parseRetryAfter(header) == expected


def test_retry_after_http_date_is_relative_to_now():
    inFiveSeconds = format_datetime(datetime.now(timezone.utc) + timedelta(seconds=5))
    assert http_client._parseRetryAfter(inFiveSeconds) == pytest.approx(5.0, abs=1.5)


def test_retry_policy_doubles_until_cap(monkeypatch):
    monkeypatch.setattr(http_client.random, "uniform", lambda low, high: 0)
    policy = http_client.RetryPolicy(retries=5, backoffBaseMs=100, backoffMaxMs=350)

    assert [policy.backoffSeconds(n) for n in range(4)] == [0.1, 0.2, 0.35, 0.35]


def test_retry_policy_reads_config():
    settings.setOverride("http.retries", 4)
    policy = http_client.RetryPolicy.fromConfig(backoffBaseMs=10)
    assert (policy.retries, policy.backoffBaseMs) == (4, 10)
    assert http_client.RetryPolicy.fromConfig(retries=-3).retries == 0


@pytest.mark.asyncio
async def test_request_backs_off_after_server_error(monkeypatch, mockHttp, sleeps):
    monkeypatch.setattr(http_client.random, "uniform", lambda low, high: 0)
    calls: list[httpx.Request] = []
    mockHttp(_flaky(httpx.Response(503, text="busy"), calls))

    resp = await http_client.request("GET", "https://example.com/r", retries=1, backoffBaseMs=100, backoffMaxMs=500)

    assert len(calls) == 2
    assert sleeps == [pytest.approx(0.1)]
    assert resp.ok and resp.json() == {"ok": True}


@pytest.mark.asyncio
async def test_request_prefers_retry_after(mockHttp, sleeps):
    calls: list[httpx.Request] = []
    mockHttp(_flaky(httpx.Response(429, text="slow down", headers={"Retry-After": "2"}), calls))

    resp = await http_client.request("post", "https://example.com/things", retries=1)

    assert [c.method for c in calls] == ["POST", "POST"]
    assert sleeps == [pytest.approx(2.0)]
    assert resp.status == 200


@pytest.mark.asyncio
async def test_request_retries_transport_errors(mockHttp, sleeps):
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, content=b"done")

    mockHttp(handler)

    resp = await http_client.request("GET", "https://example.com/", retries=2)

    assert resp.content == b"done"
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_request_reraises_transport_error_when_budget_spent(mockHttp, sleeps):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    mockHttp(handler)

    with pytest.raises(httpx.ConnectError):
        await http_client.request("GET", "https://example.com/", retries=1)
    assert len(sleeps) == 1


@pytest.mark.asyncio
async def test_request_raises_after_exhausting_retries(mockHttp, sleeps):
    mockHttp(lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(http_client.HTTPError) as info:
        await http_client.request("GET", "https://example.com/down", retries=2)

    assert info.value.status == 502
    assert info.value.url == "https://example.com/down"
    assert len(sleeps) == 2


@pytest.mark.asyncio
async def test_client_errors_are_returned(mockHttp, sleeps):
    mockHttp(lambda request: httpx.Response(403, text="nope"))

    resp = await http_client.request("GET", "https://example.com/private")

    assert (resp.status, resp.ok, resp.text) == (403, False, "nope")
    assert sleeps == []


@pytest.mark.asyncio
async def test_non_json_body_raises_value_error(mockHttp):
    mockHttp(lambda request: httpx.Response(200, text="not-json", headers={"Content-Type": "application/json"}))

    resp = await http_client.request("GET", "https://example.com/bad-json")

    with pytest.raises(ValueError):
        resp.json()


@pytest.mark.asyncio
async def test_request_sends_configured_user_agent(mockHttp):
    settings.setOverride("http.userAgent", "packsmith-tests/1.0")
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["User-Agent"])
        return httpx.Response(200, text="ok")

    mockHttp(handler)
    await http_client.request("GET", "https://example.com/", headers={"Accept": "application/json"})

    assert seen == ["packsmith-tests/1.0"]


@pytest.mark.asyncio
async def test_fetch_bytes(mockHttp):
    mockHttp(lambda request: httpx.Response(200, content=b"\x00jar-bytes"))
    assert await http_client.fetchBytes("https://example.com/mod.jar") == b"\x00jar-bytes"

    mockHttp(lambda request: httpx.Response(404, text="missing"))
    with pytest.raises(http_client.HTTPError) as info:
        await http_client.fetchBytes("https://example.com/gone.jar")
    assert info.value.status == 404
