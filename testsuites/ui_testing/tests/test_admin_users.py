"""
================================================================================
Admin Users UI Tests (Async / Playwright)
================================================================================

Read-only checks of Admin > User Management: navigation, page elements,
search and reset. Nothing is created here.

================================================================================
"""

import uuid

import allure
import pytest

from testsuites.ui_testing.framework.session_state import PageState
from testsuites.ui_testing.pages import elements as el
from testsuites.ui_testing.pages.admin_users_page import AdminUsersPage
from testsuites.ui_testing.pages.dashboard_page import DashboardPage


pytestmark = [pytest.mark.e2e, pytest.mark.admin]


@allure.epic("UI Testing")
@allure.feature("User Management")
class TestAdminUsers:

    @allure.story("Navigation")
    @allure.title("Side menu leads to System Users")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.smoke
    @pytest.mark.asyncio
    async def test_navigate_to_admin_users(self, authenticated_dashboard: DashboardPage):
        admin = await authenticated_dashboard.navigate_to_admin_users()

        assert admin.state is PageState.ADMIN_USERS_LIST
        assert el.ADMIN_USERS_URL.search(admin.page.url)
        assert await admin.verify_page_loaded()
        assert await admin.get_heading_text() == "System Users"

    @allure.story("Search")
    @allure.title("Searching for Admin finds the Admin row")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P1
    @pytest.mark.regression
    @pytest.mark.asyncio
    async def test_search_existing_user(self, admin_users: AdminUsersPage, run_config):
        username = run_config.user_email

        found = await admin_users.search_users(username)

        assert username in found
        assert await admin_users.table_has_user(username)

    @allure.story("Search")
    @allure.title("Searching for an unknown user returns no rows")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.regression
    @pytest.mark.asyncio
    async def test_search_unknown_user_is_empty(self, admin_users: AdminUsersPage):
        found = await admin_users.search_users(f"no.such.user.{uuid.uuid4().hex[:8]}")

        assert found == []
        assert await admin_users.get_row_count() == 0
        assert admin_users.state is PageState.ADMIN_USERS_LIST

    @allure.story("Search")
    @allure.title("Reset brings back the unfiltered list")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P2
    @pytest.mark.regression
    @pytest.mark.asyncio
    async def test_reset_search(self, admin_users: AdminUsersPage, run_config):
        await admin_users.search_users(run_config.user_email)
        filtered = await admin_users.get_row_count()

        await admin_users.reset_search()

        assert await admin_users.get_row_count() >= filtered
        assert await admin_users.table_has_user(run_config.user_email)

    @allure.story("Add User")
    @allure.title("Add User form shows all fields")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P2
    @pytest.mark.regression
    @pytest.mark.asyncio
    async def test_open_add_user_form(self, admin_users: AdminUsersPage):
        await admin_users.open_add_user_form()

        assert admin_users.state is PageState.ADMIN_USERS_ADD_FORM
        assert await admin_users.is_form_displayed()
