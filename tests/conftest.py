"""Global pytest configuration."""

from __future__ import annotations

import asyncio
import inspect
import os
from collections.abc import AsyncGenerator

import pytest

from vibesniff.analyzer.browser_models import RenderedPage
from vibesniff.analyzer.signals import Signals

# Never launch a real browser sandbox from tests even if .env enables one.
os.environ.setdefault("VIBESNIFF_DISABLE_CHROMIUM_SANDBOX", "1")


@pytest.fixture(scope="session")
def event_loop() -> AsyncGenerator[asyncio.AbstractEventLoop, None]:
    """Provide a shared event loop for async tests and fixtures."""

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        yield loop
    finally:
        loop.close()


def _get_loop(request: pytest.FixtureRequest) -> asyncio.AbstractEventLoop:
    try:
        loop = request.getfixturevalue("event_loop")
    except pytest.FixtureLookupError:
        loop = asyncio.new_event_loop()
    if loop.is_closed():
        loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    return loop


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):  # type: ignore[override]
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        testargs = {
            name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames
        }
        shared = testargs.get("event_loop")
        loop = shared or asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(pyfuncitem.obj(**testargs))
        finally:
            if shared is None:
                loop.close()
        return True
    return None


@pytest.hookimpl(tryfirst=True)
def pytest_fixture_setup(fixturedef, request):  # type: ignore[override]
    func = fixturedef.func
    if inspect.iscoroutinefunction(func):
        loop = _get_loop(request)
        kwargs = {arg: request.getfixturevalue(arg) for arg in fixturedef.argnames}
        value = loop.run_until_complete(func(**kwargs))
        fixturedef.cached_result = (value, fixturedef.cache_key(request), None)
        return value

    if inspect.isasyncgenfunction(func):
        loop = _get_loop(request)
        kwargs = {arg: request.getfixturevalue(arg) for arg in fixturedef.argnames}
        agen = func(**kwargs)
        value = loop.run_until_complete(agen.__anext__())

        def finalize() -> None:
            try:
                loop.run_until_complete(agen.__anext__())
            except StopAsyncIteration:
                pass

        request.addfinalizer(finalize)
        fixturedef.cached_result = (value, fixturedef.cache_key(request), None)
        return value

    return None


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "asyncio: mark test as requiring asyncio support")


# -----------------------------------------------------------------------------
# Shared fakes
# -----------------------------------------------------------------------------


class FakeRenderer:
    """Stands in for PageRenderer; returns a canned page per call."""

    def __init__(self, page: RenderedPage | None = None, html: str = ""):
        self.page = page
        self.html = html
        self.rendered: list[str] = []
        self.started = False
        self.stopped = False

    async def start(self):
        self.started = True

    async def stop(self):
        self.stopped = True

    async def render(self, url: str) -> RenderedPage:
        self.rendered.append(url)
        if self.page is not None:
            return self.page
        return RenderedPage(
            url=url,
            success=True,
            final_url=url,
            status_code=200,
            title="Test page",
            html=self.html,
            screenshot=b"\x89PNG fake",
        )


class FakeCollector:
    """Stands in for SignalCollector; records the hosts it was asked about."""

    def __init__(self, signals: Signals | None = None):
        self.signals = signals or Signals()
        self.hosts: list[str] = []
        self.tls_ports: list[int | None] = []

    async def collect(self, host: str, tls_port: int | None = None) -> Signals:
        self.hosts.append(host)
        self.tls_ports.append(tls_port)
        return self.signals


@pytest.fixture
def fake_renderer():
    """Renderer that serves an empty successful page."""
    return FakeRenderer()


@pytest.fixture
def fake_collector():
    """Collector whose every signal is unavailable."""
    return FakeCollector()
