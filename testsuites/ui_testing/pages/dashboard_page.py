"""
================================================================================
Dashboard Page Object (Async / Playwright)
================================================================================

Landing page after login. Holds the top-bar operations available from every
authenticated page (account menu, logout) and the side-panel navigation.

================================================================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import allure
from loguru import logger

from testsuites.ui_testing.framework.page_base import BasePage
from testsuites.ui_testing.framework.session_state import AUTHENTICATED_STATES, PageState

from . import elements as el

if TYPE_CHECKING:
    from .admin_users_page import AdminUsersPage


class DashboardPage(BasePage):
    """Dashboard page object (async)."""

    URL_PATH = "/dashboard/index"
    URL_PATTERN = el.DASHBOARD_URL

    @allure.step("Verify dashboard loaded")
    async def verify_dashboard_loaded(self) -> bool:
        ok, observed = await self.guard_holds(
            self.URL_PATTERN, (el.DASHBOARD_HEADING,), self.config.navigation_timeout_ms
        )
        if not ok:
            logger.warning(f"Dashboard not loaded: {observed}")
        return ok

    async def get_heading_text(self) -> str:
        return await self.actions.get_text(el.DASHBOARD_HEADING)

    @allure.step("Navigate to Admin > User Management")
    async def navigate_to_admin_users(self) -> "AdminUsersPage":
        """
        Open the System Users list from the side panel.

        Raises:
            InvalidTransition: not on the dashboard
            StateTransitionTimeout: list page did not show up
        """
        from .admin_users_page import AdminUsersPage

        self.session.require("navigate to admin users", PageState.DASHBOARD)
        await self.actions.click(el.ADMIN_MENU)
        await self.confirm_state(
            PageState.ADMIN_USERS_LIST,
            url_pattern=el.ADMIN_USERS_URL,
            markers=(el.SYSTEM_USERS_HEADING,),
        )
        return AdminUsersPage(self.page, self.config, self.session)

    async def open_user_menu(self) -> None:
        if not await self.is_user_menu_open():
            await self.actions.click(el.USER_MENU_TRIGGER)
        await self.actions.assert_visible(el.LOGOUT_ITEM)

    async def is_user_menu_open(self) -> bool:
        return await self.smart.count_visible(el.USER_MENU) > 0

    @allure.step("Logout")
    async def logout(self) -> None:
        """
        Log out from any authenticated page.

        Raises:
            InvalidTransition: not logged in
            StateTransitionTimeout: login form did not come back
        """
        self.session.require("logout", *AUTHENTICATED_STATES)
        await self.open_user_menu()
        await self.actions.click(el.LOGOUT_ITEM)
        await self.confirm_state(
            PageState.LOGGED_OUT,
            url_pattern=el.LOGIN_URL,
            markers=(el.LOGIN_USERNAME, el.LOGIN_PASSWORD),
        )
        logger.info("✅ Logged out")

    @allure.step("Reload and verify session is kept")
    async def reload_keeps_session(self) -> bool:
        """Reload the page; True when the dashboard comes back without a login prompt."""
        self.session.require("reload dashboard", PageState.DASHBOARD)
        await self.reload()
        return await self.verify_dashboard_loaded()
