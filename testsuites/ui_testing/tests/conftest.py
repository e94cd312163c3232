"""
================================================================================
UI Testing Pytest Configuration
================================================================================

Fixtures for the end-to-end suite: run configuration, browser lifecycle,
per-test artifacts and page objects.

Key Features:
- Tests are skipped when BASE_URL is not configured
- One browser context per test (no shared cookies or sessions)
- Every test is parametrized over the configured browser engines
- Trace / video / screenshot kept only for failing tests
- Page objects of one test share a single SessionState
- Users created by a test are deleted on teardown

================================================================================
"""

import re
from functools import lru_cache
from typing import AsyncGenerator, List, Tuple

import pytest
from loguru import logger
from playwright.async_api import BrowserContext, Page

from testsuites.ui_testing.framework.browser_manager import BrowserManager
from testsuites.ui_testing.framework.config import RunConfig
from testsuites.ui_testing.framework.errors import ConfigurationError, RecordNotFound, UIEngineError
from testsuites.ui_testing.framework.session_state import PageState, SessionState
from testsuites.ui_testing.framework.user_data import UserDataFactory
from testsuites.ui_testing.pages import AdminUsersPage, DashboardPage, LoginOutcome, LoginPage


# ================================================================================
# Configuration
# ================================================================================

@lru_cache(maxsize=1)
def _configured_engines() -> Tuple[str, ...]:
    try:
        return RunConfig.load().browsers
    except ConfigurationError:
        # Tests are skipped by the run_config fixture; one id is enough
        return ("chromium",)


def pytest_generate_tests(metafunc):
    """Run every browser-driven test once per configured engine."""
    if "browser_name" in metafunc.fixturenames:
        metafunc.parametrize("browser_name", list(_configured_engines()), scope="function")


@pytest.fixture(scope="session")
def run_config() -> RunConfig:
    """Run configuration, built once. Skips the suite without BASE_URL."""
    try:
        return RunConfig.load()
    except ConfigurationError as e:
        pytest.skip(f"UI suite needs a target: {e}")


@pytest.fixture(scope="session")
def credentials_required(run_config: RunConfig) -> None:
    if not run_config.has_credentials:
        pytest.skip("USER_EMAIL / USER_PASS are not configured")


# ================================================================================
# Browser Fixtures
# ================================================================================

@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Expose each phase's report on the item so fixtures can see failures."""
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)


def _failed(request) -> bool:
    node = request.node
    return any(
        getattr(node, f"rep_{phase}", None) is not None and getattr(node, f"rep_{phase}").failed
        for phase in ("setup", "call")
    )


def _artifact_dir_name(nodeid: str) -> str:
    return re.sub(r"[^\w.-]+", "-", nodeid).strip("-")


@pytest.fixture
async def browser_manager(run_config: RunConfig, browser_name: str) -> AsyncGenerator[BrowserManager, None]:
    """Browser for one test. Function-scoped so each test owns its event loop and engine."""
    async with BrowserManager.from_config(run_config, browser_name) as manager:
        yield manager


@pytest.fixture
async def context(request, browser_manager: BrowserManager, run_config: RunConfig) -> AsyncGenerator[BrowserContext, None]:
    """
    Isolated browser context with tracing/video per artifact policy.

    On teardown artifacts are kept in `test-results/<test-id>/` when the
    test failed, discarded otherwise.
    """
    artifacts_dir = run_config.results_dir / _artifact_dir_name(request.node.nodeid)
    ctx = await browser_manager.new_context(artifacts_dir=artifacts_dir)
    yield ctx
    await browser_manager.close_context(ctx, failed=_failed(request))


@pytest.fixture
async def page(context: BrowserContext) -> Page:
    return await context.new_page()


# ================================================================================
# Page Object Fixtures
# ================================================================================

@pytest.fixture
def session_state() -> SessionState:
    """Navigation state shared by the page objects of one test."""
    return SessionState()


async def _capture_if_failed(request, page_object) -> None:
    if _failed(request):
        await page_object.capture_failure(f"{request.node.name} ({type(page_object).__name__})")


@pytest.fixture
async def login_page(request, page: Page, run_config: RunConfig, session_state: SessionState) -> AsyncGenerator[LoginPage, None]:
    login = LoginPage(page, run_config, session_state)
    yield login
    await _capture_if_failed(request, login)


@pytest.fixture
async def dashboard_page(request, page: Page, run_config: RunConfig, session_state: SessionState) -> AsyncGenerator[DashboardPage, None]:
    dashboard = DashboardPage(page, run_config, session_state)
    yield dashboard
    await _capture_if_failed(request, dashboard)


@pytest.fixture
async def admin_users_page(request, page: Page, run_config: RunConfig, session_state: SessionState) -> AsyncGenerator[AdminUsersPage, None]:
    admin = AdminUsersPage(page, run_config, session_state)
    yield admin
    await _capture_if_failed(request, admin)


# ================================================================================
# Authentication Fixtures
# ================================================================================

@pytest.fixture
async def authenticated_dashboard(
    credentials_required,
    login_page: LoginPage,
    dashboard_page: DashboardPage,
) -> DashboardPage:
    """Dashboard reached through the login form with USER_EMAIL / USER_PASS."""
    await login_page.open()
    outcome = await login_page.login_with_env_credentials()
    assert outcome is LoginOutcome.AUTHENTICATED, "Login with configured credentials was rejected"
    return dashboard_page


@pytest.fixture
async def admin_users(authenticated_dashboard: DashboardPage, admin_users_page: AdminUsersPage) -> AdminUsersPage:
    """System Users list reached through the side menu."""
    await authenticated_dashboard.navigate_to_admin_users()
    return admin_users_page


# ================================================================================
# Test Data Fixtures
# ================================================================================

@pytest.fixture
def user_factory(run_config: RunConfig) -> UserDataFactory:
    return UserDataFactory(run_config.employee_name)


@pytest.fixture
async def created_users(admin_users_page: AdminUsersPage, session_state: SessionState) -> AsyncGenerator[List[str], None]:
    """
    Usernames to delete after the test.

    Tests append every username they create; teardown removes those still
    present. Cleanup only runs from the dashboard or the users list.
    """
    usernames: List[str] = []
    yield usernames

    if not usernames:
        return
    if session_state.state not in (PageState.DASHBOARD, PageState.ADMIN_USERS_LIST):
        logger.warning(f"Skipping cleanup of {usernames} from state {session_state.state.name}")
        return

    await admin_users_page.open()
    for username in usernames:
        try:
            await admin_users_page.delete_user(username)
        except RecordNotFound:
            logger.debug(f"Cleanup: {username} already gone")
        except UIEngineError as e:
            logger.warning(f"Cleanup of {username} failed: {e}")
