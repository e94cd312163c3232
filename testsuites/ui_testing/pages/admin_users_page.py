"""
================================================================================
Admin Users Page Object (Async / Playwright)
================================================================================

Admin > User Management > System Users.

Operations:
    - open_add_user_form / submit_create_user / create_user
    - search_users / reset_search / table_has_user / get_row_count
    - delete_user
    - open_edit_user_form / edit_current_user

Form submissions are never retried as a whole: only the failing primitive is
retried by the action executor, so a user is never saved twice.

The result grid loads asynchronously. After every search or reset the page
waits for network idle (best effort), for the loader to disappear and for the
row count to stay the same over a few consecutive polls.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import allure
from loguru import logger
from playwright.async_api import Response
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from testsuites.ui_testing.framework.errors import ActionTimeout, RecordNotFound, ScopeNotFound
from testsuites.ui_testing.framework.locator_descriptor import LocatorDescriptor
from testsuites.ui_testing.framework.page_base import BasePage
from testsuites.ui_testing.framework.session_state import PageState
from testsuites.ui_testing.framework.user_data import UserRecord, UserUpdate
from testsuites.ui_testing.framework.wait_helpers import poll_until

from . import elements as el


def _is_users_response(response: Response) -> bool:
    return el.USERS_API.search(response.url) is not None


class AdminUsersPage(BasePage):
    """System Users list plus the Add / Edit User forms (async)."""

    URL_PATH = "/admin/viewSystemUsers"
    URL_PATTERN = el.ADMIN_USERS_URL

    LIST_MARKERS = (el.SYSTEM_USERS_HEADING,)
    FORM_MARKERS = (el.FORM_ROLE, el.FORM_EMPLOYEE_NAME)

    # =========================================================================
    # Page State
    # =========================================================================

    @allure.step("Open System Users by URL")
    async def open(self) -> "AdminUsersPage":
        """Direct navigation, for tests that do not exercise the side menu."""
        self.session.require("open admin users", PageState.DASHBOARD, PageState.ADMIN_USERS_LIST)
        await self.navigate()
        await self.confirm_state(PageState.ADMIN_USERS_LIST, url_pattern=self.URL_PATTERN, markers=self.LIST_MARKERS)
        await self.wait_for_grid_settle()
        return self

    @allure.step("Verify System Users page loaded")
    async def verify_page_loaded(self) -> bool:
        ok, observed = await self.guard_holds(
            self.URL_PATTERN,
            self.LIST_MARKERS + (el.ADD_BUTTON, el.SEARCH_BUTTON, el.RESET_BUTTON),
            self.config.navigation_timeout_ms,
        )
        if not ok:
            logger.warning(f"System Users page not loaded: {observed}")
        return ok

    async def get_heading_text(self) -> str:
        return await self.actions.get_text(el.SYSTEM_USERS_HEADING)

    async def is_form_displayed(self) -> bool:
        for marker in self.FORM_MARKERS + (el.FORM_USERNAME, el.FORM_PASSWORD, el.SAVE_BUTTON):
            if not await self.smart.is_present(marker, timeout_ms=2000):
                return False
        return True

    async def _confirmed_click(self, target: LocatorDescriptor, operation: str) -> None:
        """Click a mutating button and wait for the success toast it produces."""
        # A toast of the previous mutation must not confirm this one
        if not await self.actions.wait_until_hidden(el.SUCCESS_TOAST, timeout_ms=self.config.expect_timeout_ms):
            logger.warning(f"Earlier success toast still visible before {operation}")
        await self.actions.click(target)
        await self.actions.wait_for_success_signal(
            el.SUCCESS_TOAST, operation=operation, timeout_ms=self.config.expect_timeout_ms
        )

    async def _back_to_list(self) -> None:
        await self.confirm_state(PageState.ADMIN_USERS_LIST, url_pattern=self.URL_PATTERN, markers=self.LIST_MARKERS)
        await self.wait_for_grid_settle()

    # =========================================================================
    # Create
    # =========================================================================

    @allure.step("Open Add User form")
    async def open_add_user_form(self) -> None:
        self.session.require("open add user form", PageState.ADMIN_USERS_LIST)
        await self.actions.click(el.ADD_BUTTON)
        await self.confirm_state(PageState.ADMIN_USERS_ADD_FORM, url_pattern=el.ADD_USER_URL, markers=self.FORM_MARKERS)

    @allure.step("Submit new user {record}")
    async def submit_create_user(self, record: UserRecord) -> None:
        """
        Fill and save the Add User form.

        Raises:
            OptionNotFound: role, status or employee not offered
            VerificationMismatch: a field did not take its value
            NoConfirmation: no success toast after saving
        """
        self.session.require("submit create user", PageState.ADMIN_USERS_ADD_FORM)
        logger.info(f"Creating user {record!r}")

        await self.actions.select_option(el.FORM_ROLE, record.role, el.SELECT_OPTIONS)
        await self.actions.pick_autocomplete(el.FORM_EMPLOYEE_NAME, record.employee_name, el.AUTOCOMPLETE_OPTIONS)
        await self.actions.select_option(el.FORM_STATUS, record.status, el.SELECT_OPTIONS)
        await self.actions.fill(el.FORM_USERNAME, record.username)
        await self.actions.fill(el.FORM_PASSWORD, record.password, sensitive=True)
        await self.actions.fill(el.FORM_CONFIRM_PASSWORD, record.password, sensitive=True)
        await self._confirmed_click(el.SAVE_BUTTON, f"create user {record.username}")
        await self._back_to_list()
        logger.info(f"✅ User created: {record.username}")

    async def create_user(self, record: UserRecord) -> None:
        await self.open_add_user_form()
        await self.submit_create_user(record)

    # =========================================================================
    # Search
    # =========================================================================

    @allure.step("Search users: {username}")
    async def search_users(self, username: str) -> List[str]:
        """
        Filter the grid by username.

        Returns:
            Usernames of the visible result rows (empty when nothing matched)
        """
        self.session.require("search users", PageState.ADMIN_USERS_LIST)
        await self._reload_grid(el.RESET_BUTTON, "reset filters")
        await self.actions.fill(el.FILTER_USERNAME, username)
        await self._reload_grid(el.SEARCH_BUTTON, "search")

        found = await self.visible_usernames()
        logger.info(f"Search {username!r}: {len(found)} row(s)")
        return found

    @allure.step("Reset search")
    async def reset_search(self) -> None:
        self.session.require("reset search", PageState.ADMIN_USERS_LIST)
        await self._reload_grid(el.RESET_BUTTON, "reset filters")

    async def _reload_grid(self, control: LocatorDescriptor, operation: str) -> int:
        """
        Click a control that refetches the grid and wait for the new rows.

        Raises:
            ActionTimeout: the users request was not answered, or the grid
                did not settle after it
        """
        timeout = self.config.expect_timeout_ms
        try:
            async with self.page.expect_response(_is_users_response, timeout=timeout):
                await self.actions.click(control)
        except PlaywrightTimeoutError as e:
            raise ActionTimeout(str(el.USERS_TABLE), operation, timeout, reason="users request not answered") from e
        return await self.wait_for_grid_settle()

    async def wait_for_grid_settle(self, timeout_ms: Optional[int] = None) -> int:
        """
        Wait until the result grid stops changing.

        The loader is checked on every poll: a poll that sees it restarts
        the stable streak.

        Returns:
            Settled number of visible rows

        Raises:
            ActionTimeout: the loader stayed up or the rows kept changing
        """
        timeout = timeout_ms if timeout_ms is not None else self.config.expect_timeout_ms
        await self.wait_for_network_idle(timeout)

        required = max(1, self.config.grid_settle_polls)
        seen = {"count": -1, "streak": 0, "loading": False}

        async def stable() -> Tuple[bool, int]:
            seen["loading"] = await self.smart.count_visible(el.LOADER) > 0
            if seen["loading"]:
                seen["count"], seen["streak"] = -1, 0
                return False, -1
            count = await self.smart.count_visible(el.USER_ROWS)
            if count == seen["count"]:
                seen["streak"] += 1
            else:
                seen["count"], seen["streak"] = count, 1
            return seen["streak"] >= required, count

        result = await poll_until(stable, timeout, description="grid row count stable", config=self.smart.poll)
        if not result.success:
            reason = "loader still visible" if seen["loading"] else "row count kept changing"
            raise ActionTimeout(str(el.USERS_TABLE), "settle", timeout, reason=reason)
        return result.value

    async def visible_usernames(self) -> List[str]:
        """Usernames of the rows currently shown."""
        try:
            return await self.actions.visible_texts(el.USERNAME_CELLS)
        except ScopeNotFound:
            return []

    async def get_row_count(self) -> int:
        return await self.smart.count_visible(el.USER_ROWS)

    async def table_has_user(self, username: str) -> bool:
        """Exact match on the username column of the current grid."""
        return username in await self.visible_usernames()

    # =========================================================================
    # Delete
    # =========================================================================

    @allure.step("Delete user {username}")
    async def delete_user(self, username: str) -> None:
        """
        Search, select the row and delete it through the confirmation dialog.

        Raises:
            RecordNotFound: no row with that username after searching
            NoConfirmation: no success toast after confirming
        """
        self.session.require("delete user", PageState.ADMIN_USERS_LIST)
        if username not in await self.search_users(username):
            raise RecordNotFound("user", username)

        await self.actions.set_checkbox(el.row_checkbox(username), True)
        await self.actions.click(el.DELETE_SELECTED_BUTTON)
        await self._confirmed_click(el.CONFIRM_DELETE_BUTTON, f"delete user {username}")
        await self.wait_for_grid_settle()
        logger.info(f"✅ User deleted: {username}")

    # =========================================================================
    # Edit
    # =========================================================================

    @allure.step("Open Edit User form for {username}")
    async def open_edit_user_form(self, username: str) -> None:
        """
        Raises:
            RecordNotFound: no row with that username after searching
        """
        self.session.require("open edit user form", PageState.ADMIN_USERS_LIST)
        if username not in await self.search_users(username):
            raise RecordNotFound("user", username)

        await self.actions.click(el.row_edit_button(username))
        await self.confirm_state(
            PageState.ADMIN_USERS_EDIT_FORM,
            url_pattern=el.EDIT_USER_URL,
            markers=self.FORM_MARKERS + (el.FORM_USERNAME,),
        )

    @allure.step("Save user changes {update}")
    async def edit_current_user(self, update: UserUpdate) -> None:
        """Apply the fields set in `update` to the open Edit User form and save."""
        self.session.require("edit user", PageState.ADMIN_USERS_EDIT_FORM)
        logger.info(f"Editing user: {update!r}")

        if update.role is not None:
            await self.actions.select_option(el.FORM_ROLE, update.role, el.SELECT_OPTIONS)
        if update.employee_name is not None:
            await self.actions.pick_autocomplete(el.FORM_EMPLOYEE_NAME, update.employee_name, el.AUTOCOMPLETE_OPTIONS)
        if update.status is not None:
            await self.actions.select_option(el.FORM_STATUS, update.status, el.SELECT_OPTIONS)
        if update.username is not None:
            await self.actions.fill(el.FORM_USERNAME, update.username)
        if update.password is not None:
            await self.actions.set_checkbox(el.FORM_CHANGE_PASSWORD, True)
            await self.actions.fill(el.FORM_PASSWORD, update.password, sensitive=True)
            await self.actions.fill(el.FORM_CONFIRM_PASSWORD, update.password, sensitive=True)

        await self._confirmed_click(el.SAVE_BUTTON, "edit user")
        await self._back_to_list()
