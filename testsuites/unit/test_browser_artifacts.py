"""
Context teardown in BrowserManager, against a stand-in browser that records
what was called on it.
"""

import pytest
from playwright.async_api import Error as PlaywrightError

from testsuites.ui_testing.framework.browser_manager import ArtifactPolicy, BrowserManager


class StubTracing:
    def __init__(self, fail_on_stop: bool = False):
        self.fail_on_stop = fail_on_stop
        self.started = False
        self.stopped_with = []

    async def start(self, **options):
        self.started = True

    async def stop(self, path=None):
        self.stopped_with.append(path)
        if self.fail_on_stop:
            raise PlaywrightError("Target page, context or browser has been closed")


class StubContext:
    def __init__(self, tracing: StubTracing):
        self.tracing = tracing
        self.pages = []
        self.closed = False

    def set_default_navigation_timeout(self, timeout):
        pass

    def set_default_timeout(self, timeout):
        pass

    async def close(self):
        self.closed = True


class StubBrowser:
    def __init__(self, context: StubContext):
        self._context = context

    async def new_context(self, **options):
        return self._context


def _manager(context: StubContext, trace: str) -> BrowserManager:
    manager = BrowserManager(policy=ArtifactPolicy(trace=trace, video="off", screenshot="off"))
    manager._browser = StubBrowser(context)
    return manager


@pytest.mark.asyncio
async def test_context_closed_when_trace_export_fails(tmp_path):
    context = StubContext(StubTracing(fail_on_stop=True))
    manager = _manager(context, trace="on")
    await manager.new_context(artifacts_dir=tmp_path / "t")

    with pytest.raises(PlaywrightError):
        await manager.close_context(context, failed=True)

    assert context.closed
    assert context.tracing.stopped_with == [str(tmp_path / "t" / "trace.zip")]


@pytest.mark.asyncio
async def test_passing_test_discards_trace(tmp_path):
    context = StubContext(StubTracing())
    manager = _manager(context, trace="retain-on-failure")
    await manager.new_context(artifacts_dir=tmp_path / "t")
    assert context.tracing.started

    assert await manager.close_context(context, failed=False) == []
    assert context.tracing.stopped_with == [None]
    assert context.closed
    assert not (tmp_path / "t").exists()
