"""
Fixtures for the engine unit tests: a short-timeout RunConfig and the
in-memory page / HRM application the engine is driven against.
"""

import pytest

from testsuites.ui_testing.framework.config import RunConfig
from testsuites.ui_testing.framework.element_actions import ElementActions, RetryConfig
from testsuites.ui_testing.framework.session_state import SessionState
from testsuites.ui_testing.framework.smart_locator import SmartLocator
from testsuites.ui_testing.framework.wait_helpers import WaitConfig
from testsuites.unit.fake_hrm import BASE_URL, FakeHrmApp
from testsuites.unit.fake_page import FakePage


@pytest.fixture
def run_config(tmp_path) -> RunConfig:
    return RunConfig(
        base_url=BASE_URL,
        user_email="Admin",
        user_pass="admin123",
        action_timeout_ms=800,
        navigation_timeout_ms=800,
        expect_timeout_ms=800,
        settle_allowance_ms=200,
        poll_interval_ms=10,
        grid_settle_polls=2,
        results_dir=tmp_path / "results",
    )


@pytest.fixture
def fake_page() -> FakePage:
    return FakePage()


@pytest.fixture
def smart(fake_page) -> SmartLocator:
    return SmartLocator(fake_page, default_timeout_ms=300, poll=WaitConfig(interval_ms=10))


@pytest.fixture
def actions(smart) -> ElementActions:
    return ElementActions(smart, settle_allowance_ms=150, retry_config=RetryConfig(delay_ms=5))


@pytest.fixture
def hrm(fake_page) -> FakeHrmApp:
    return FakeHrmApp(fake_page)


@pytest.fixture
def session() -> SessionState:
    return SessionState()
