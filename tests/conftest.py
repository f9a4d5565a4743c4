import asyncio
import inspect
import sys

import httpx
import pytest

from packsmith.app import settings
from packsmith.core.logging import clearLogContext
from packsmith.http import client as http_client



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")

    config.addinivalue_line("markers", "asyncio: mark a test to run inside an event loop")



@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function):
    """Run `async def` tests marked with @pytest.mark.asyncio in a fresh event loop."""
    if pyfuncitem.get_closest_marker("asyncio") is None:
        return None
    if not inspect.iscoroutinefunction(pyfuncitem.obj):
        return None
    argNames = pyfuncitem._fixtureinfo.argnames
    kwargs = {name: pyfuncitem.funcargs[name] for name in argNames}
    asyncio.run(pyfuncitem.obj(**kwargs))
    return True



@pytest.fixture(autouse=True)
def isolatedSettings(tmp_path_factory):
    """Every test starts from defaults plus an empty user config."""
    userConfig = tmp_path_factory.mktemp("userconfig") / "config.json5"
    settings.initSettings(userConfig=userConfig)
    clearLogContext()
    yield
    settings.resetSettings()
    clearLogContext()



@pytest.fixture
def mockHttp(monkeypatch):
    """
    Route every httpx.AsyncClient created by packsmith.http.client through a
    MockTransport built from `handler`. Returns the installer.
    """
    originalAsyncClient = http_client.httpx.AsyncClient

    def install(handler):
        transport = httpx.MockTransport(handler)

        class _PatchedAsyncClient:
            def __init__(self, *args, **kwargs):
                kwargs = dict(kwargs)
                kwargs["transport"] = transport
                kwargs["http2"] = False
                self._client = originalAsyncClient(*args, **kwargs)

            async def __aenter__(self):
                return await self._client.__aenter__()

            async def __aexit__(self, exc_type, exc, tb):
                return await self._client.__aexit__(exc_type, exc, tb)

        monkeypatch.setattr(http_client.httpx, "AsyncClient", _PatchedAsyncClient)
        return transport

    return install
