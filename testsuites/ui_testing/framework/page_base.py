"""
================================================================================
Base Page Object
================================================================================

Foundation class for the page flow controllers.

Provides:
    - Navigation relative to the configured BASE_URL
    - Descriptor-based element interaction (SmartLocator + ElementActions)
    - State transition guards (URL pattern + marker visibility)
    - Network settle waits
    - API request capture and failure attachments

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

import allure
from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Response
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import RunConfig
from .element_actions import ElementActions, RetryConfig
from .errors import ActionTimeout, StateTransitionTimeout
from .locator_descriptor import LocatorDescriptor
from .session_state import PageState, SessionState
from .smart_locator import SmartLocator
from .wait_helpers import WaitConfig, poll_until


# Keep this many recent API responses for failure reports
CAPTURED_REQUESTS_LIMIT = 20


class BasePage:
    """
    Base class for all page objects.

    All page objects of one test share a single `SessionState`; each
    operation checks the state it may run in and confirms the state it
    leads to before returning.

    Usage:
        class LoginPage(BasePage):
            URL_PATTERN = re.compile(r"/auth/login")

            async def login(self, username: str, password: str):
                self.session.require("login", PageState.LOGGED_OUT)
                await self.actions.fill(USERNAME_INPUT, username)
                ...
    """

    # Override in subclasses
    URL_PATH: str = "/"
    URL_PATTERN: Optional[Pattern[str]] = None

    def __init__(
        self,
        page: Page,
        config: RunConfig,
        session: Optional[SessionState] = None,
    ):
        """
        Initialize page object.

        Args:
            page: Playwright Page object
            config: Run configuration (shared, immutable)
            session: Navigation state shared by the pages of one test
        """
        self.page = page
        self.config = config
        self.session = session if session is not None else SessionState()
        self.smart = SmartLocator(
            page,
            default_timeout_ms=config.action_timeout_ms,
            poll=WaitConfig(interval_ms=config.poll_interval_ms),
        )
        self.actions = ElementActions(
            self.smart,
            settle_allowance_ms=config.settle_allowance_ms,
            retry_config=RetryConfig(),
        )

        self._captured_requests: List[Dict[str, Any]] = []
        self._setup_request_capture()

    def _setup_request_capture(self) -> None:
        """Set up API response capture for debugging."""

        def capture_response(response: Response) -> None:
            if "/api/" not in response.url:
                return
            self._captured_requests.append({
                "timestamp": datetime.now().isoformat(),
                "method": response.request.method,
                "url": response.url,
                "status": response.status,
            })
            if len(self._captured_requests) > CAPTURED_REQUESTS_LIMIT:
                self._captured_requests.pop(0)

        self.page.on("response", capture_response)

    @property
    def url(self) -> str:
        """Full URL of this page."""
        return self.config.url(self.URL_PATH)

    @property
    def state(self) -> PageState:
        return self.session.state

    async def navigate(self, wait_for: str = "domcontentloaded") -> None:
        """
        Navigate to this page.

        Args:
            wait_for: Wait condition - 'load', 'domcontentloaded', 'networkidle'
        """
        await self.navigate_to(self.URL_PATH, wait_for=wait_for)

    async def navigate_to(self, path: str, wait_for: str = "domcontentloaded") -> None:
        """Navigate to a path relative to BASE_URL."""
        full_url = self.config.url(path)
        timeout = self.config.navigation_timeout_ms
        with allure.step(f"Navigate to {path or '/'}"):
            try:
                await self.page.goto(full_url, wait_until=wait_for, timeout=timeout)
            except PlaywrightError as e:
                raise ActionTimeout(full_url, "navigate", timeout, reason=str(e).split("\n")[0]) from e
            logger.debug(f"Navigated to: {full_url}")

    async def reload(self, wait_for: str = "domcontentloaded") -> None:
        timeout = self.config.navigation_timeout_ms
        try:
            await self.page.reload(wait_until=wait_for, timeout=timeout)
        except PlaywrightError as e:
            raise ActionTimeout(self.page.url, "reload", timeout, reason=str(e).split("\n")[0]) from e

    async def wait_for_network_idle(self, timeout_ms: Optional[int] = None) -> bool:
        """
        Wait for the network to go quiet.

        Returns:
            False when the page kept requesting until the timeout; callers
            follow this with a DOM-level settle check.
        """
        timeout = timeout_ms if timeout_ms is not None else self.config.navigation_timeout_ms
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout)
            return True
        except PlaywrightTimeoutError:
            logger.warning(f"Network not idle after {timeout}ms, relying on DOM settle check")
            return False

    # =========================================================================
    # State Transition Guards
    # =========================================================================

    async def confirm_state(
        self,
        target: PageState,
        url_pattern: Optional[Pattern[str]] = None,
        markers: Sequence[LocatorDescriptor] = (),
        timeout_ms: Optional[int] = None,
        from_state: Optional[PageState] = None,
    ) -> None:
        """
        Wait for a transition guard to hold, then record the transition.

        The guard holds when the URL matches `url_pattern` and every marker
        is visible at the same poll.

        Raises:
            StateTransitionTimeout: the guard did not hold within the timeout
        """
        timeout = timeout_ms if timeout_ms is not None else self.config.navigation_timeout_ms
        source = from_state if from_state is not None else self.session.state
        ok, observed = await self.guard_holds(url_pattern, markers, timeout)
        if not ok:
            guard = describe_guard(url_pattern, markers)
            logger.error(f"Guard failed {source.name} -> {target.name}: {guard} ({observed})")
            raise StateTransitionTimeout(source, target, f"{guard}; last observed: {observed}", timeout)
        self.session.transition(target, url=self.page.url, budget_ms=timeout)

    async def guard_holds(
        self,
        url_pattern: Optional[Pattern[str]],
        markers: Sequence[LocatorDescriptor],
        timeout_ms: int,
    ) -> Tuple[bool, str]:
        """Poll a guard without changing state. Returns (held, last observation)."""

        async def holds() -> Tuple[bool, str]:
            current = self.page.url
            if url_pattern is not None and not url_pattern.search(current):
                return False, f"url={current}"
            for marker in markers:
                if not await self.smart.is_present(marker, timeout_ms=0):
                    return False, f"'{marker}' not visible"
            return True, current

        result = await poll_until(
            holds,
            timeout_ms,
            description=describe_guard(url_pattern, markers),
            config=self.smart.poll,
        )
        return result.success, result.value or result.last_error or ""

    # =========================================================================
    # Debug Utilities
    # =========================================================================

    async def capture_failure(self, test_name: str) -> None:
        """
        Attach debugging information on test failure.

        Attaches:
            - Current URL and navigation state
            - Locator health report
            - Recent API requests
        """
        with allure.step(f"Capture failure details: {test_name}"):
            allure.attach(
                f"url: {self.page.url}\nstate: {self.session.state.name}\n"
                f"history: {[(a.name, b.name) for a, b in self.session.history]}",
                name="Navigation State",
                attachment_type=allure.attachment_type.TEXT,
            )
            allure.attach(
                self.get_locator_health_report(),
                name="Locator Health",
                attachment_type=allure.attachment_type.TEXT,
            )
            if self._captured_requests:
                allure.attach(
                    json.dumps(self._captured_requests[-10:], indent=2),
                    name="Recent API Requests",
                    attachment_type=allure.attachment_type.JSON,
                )

    def get_locator_health_report(self) -> str:
        """Get smart locator health report."""
        return self.smart.get_health_report()


def describe_guard(url_pattern: Optional[Pattern[str]], markers: Iterable[LocatorDescriptor]) -> str:
    parts = []
    if url_pattern is not None:
        parts.append(f"url ~ /{url_pattern.pattern}/")
    parts.extend(f"'{m}' visible" for m in markers)
    return " and ".join(parts) or "no guard"


__all__ = [
    "BasePage",
    "describe_guard",
]
