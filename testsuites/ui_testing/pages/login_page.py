"""
================================================================================
Login Page Object (Async / Playwright)
================================================================================

Login flow controller.

    open()                      -> LOGGED_OUT (login URL + username input)
    login(username, password)   -> AUTHENTICATED (DASHBOARD)
                                 | REJECTED (error shown, back to LOGGED_OUT)

A rejected login is not an error: the outcome is returned so that negative
tests can assert on it, and the page can be used again right away.

================================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

import allure
from loguru import logger
from playwright.async_api import Error as PlaywrightError

from testsuites.ui_testing.framework.element_actions import MASK
from testsuites.ui_testing.framework.errors import ActionTimeout, StateTransitionTimeout, UIEngineError
from testsuites.ui_testing.framework.page_base import BasePage, describe_guard
from testsuites.ui_testing.framework.session_state import PageState
from testsuites.ui_testing.framework.wait_helpers import poll_until

from . import elements as el


class LoginOutcome(Enum):
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


class LoginPage(BasePage):
    """Login page object (async)."""

    URL_PATH = ""
    URL_PATTERN = el.LOGIN_URL

    @allure.step("Open login page")
    async def open(self) -> "LoginPage":
        """Navigate to the application root, which redirects to the login form."""
        self.session.require("open login page", PageState.LOGGED_OUT)
        await self.navigate()
        await self.confirm_state(
            PageState.LOGGED_OUT,
            url_pattern=self.URL_PATTERN,
            markers=(el.LOGIN_USERNAME,),
        )
        return self

    @allure.step("Login (username={username})")
    async def login(self, username: str, password: str) -> LoginOutcome:
        """
        Submit credentials and wait for either outcome.

        Raises:
            InvalidTransition: not in LOGGED_OUT
            StateTransitionTimeout: neither the dashboard nor an error appeared
        """
        self.session.require("login", PageState.LOGGED_OUT)
        self.session.transition(PageState.AUTHENTICATING, url=self.page.url)
        logger.info(f"Logging in as {username!r} (password {MASK})")

        try:
            await self.actions.fill(el.LOGIN_USERNAME, username)
            await self.actions.fill(el.LOGIN_PASSWORD, password, sensitive=True)
            stale_error = await self.smart.count_visible(el.LOGIN_ERROR) > 0
            await self.actions.click(el.LOGIN_BUTTON)
            if stale_error:
                # Error of the previous attempt must not decide this one
                await self.actions.wait_until_hidden(el.LOGIN_ERROR, timeout_ms=self.config.action_timeout_ms)
            outcome = await self._await_outcome()
        except UIEngineError:
            self.session.reset()
            raise
        except PlaywrightError as e:
            self.session.reset()
            raise ActionTimeout(
                str(el.LOGIN_BUTTON), "login", self.config.navigation_timeout_ms, reason=str(e).split("\n")[0]
            ) from e

        if outcome is LoginOutcome.AUTHENTICATED:
            self.session.transition(
                PageState.DASHBOARD, url=self.page.url, budget_ms=self.config.navigation_timeout_ms
            )
            logger.info("✅ Login succeeded")
        else:
            self.session.transition(PageState.LOGGED_OUT, url=self.page.url)
            logger.info(f"Login rejected: {await self.get_error_text()!r}")
        return outcome

    async def _await_outcome(self) -> LoginOutcome:
        timeout = self.config.navigation_timeout_ms

        async def decided() -> Tuple[bool, Optional[LoginOutcome]]:
            if el.DASHBOARD_URL.search(self.page.url) and await self.smart.is_present(
                el.DASHBOARD_HEADING, timeout_ms=0
            ):
                return True, LoginOutcome.AUTHENTICATED
            if await self.smart.count_visible(el.LOGIN_ERROR):
                return True, LoginOutcome.REJECTED
            return False, None

        result = await poll_until(decided, timeout, description="login outcome", config=self.smart.poll)
        if not result.success:
            guard = f"{describe_guard(el.DASHBOARD_URL, (el.DASHBOARD_HEADING,))} or '{el.LOGIN_ERROR}' visible"
            raise StateTransitionTimeout(PageState.AUTHENTICATING, PageState.DASHBOARD, guard, timeout)
        return result.value

    async def login_with_env_credentials(self) -> LoginOutcome:
        """
        Login with USER_EMAIL / USER_PASS.

        Raises:
            ConfigurationError: credentials are not configured
        """
        username, password = self.config.credentials()
        return await self.login(username, password)

    @allure.step("Verify login form is displayed")
    async def verify_form_displayed(self) -> bool:
        """Verify login form elements are visible."""
        for marker in (el.LOGIN_USERNAME, el.LOGIN_PASSWORD, el.LOGIN_BUTTON):
            if not await self.smart.is_present(marker, timeout_ms=2000):
                return False
        return True

    async def is_submit_enabled(self) -> bool:
        try:
            handle = await self.actions.assert_visible(el.LOGIN_BUTTON, timeout_ms=2000)
        except UIEngineError:
            return False
        try:
            return await handle.is_enabled(timeout=self.actions.settle_allowance_ms)
        except PlaywrightError as e:
            raise ActionTimeout(
                str(el.LOGIN_BUTTON), "read enabled state", self.actions.settle_allowance_ms, reason=str(e).split("\n")[0]
            ) from e

    async def get_error_text(self) -> Optional[str]:
        """Text of the first visible error indicator, None when there is none."""
        texts = await self.actions.visible_texts(el.LOGIN_ERROR)
        return texts[0] if texts else None

    async def assert_login_page_loaded(self) -> None:
        """Hard assertion helper used by tests."""
        assert await self.verify_form_displayed(), "Login form should be visible"
