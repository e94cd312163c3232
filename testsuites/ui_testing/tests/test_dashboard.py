"""
================================================================================
Dashboard UI Tests (Async / Playwright)
================================================================================

Validates:
  - Dashboard heading after login
  - Account menu opens from the top bar
  - Admin users list is only reachable from the dashboard state

================================================================================
"""

import allure
import pytest

from testsuites.ui_testing.framework.errors import InvalidTransition
from testsuites.ui_testing.framework.session_state import PageState
from testsuites.ui_testing.pages.dashboard_page import DashboardPage
from testsuites.ui_testing.pages.login_page import LoginPage


pytestmark = [pytest.mark.e2e]


@allure.epic("UI Testing")
@allure.feature("Dashboard")
class TestDashboard:
    """Dashboard UI tests (async)."""

    @allure.story("Layout")
    @allure.title("Dashboard shows its heading after login")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P1
    @pytest.mark.smoke
    @pytest.mark.asyncio
    async def test_dashboard_heading(self, authenticated_dashboard: DashboardPage):
        assert await authenticated_dashboard.verify_dashboard_loaded()
        assert await authenticated_dashboard.get_heading_text() == "Dashboard"

    @allure.story("Account Menu")
    @allure.title("Account menu opens and offers Logout")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P2
    @pytest.mark.regression
    @pytest.mark.asyncio
    async def test_user_menu_opens(self, authenticated_dashboard: DashboardPage):
        assert not await authenticated_dashboard.is_user_menu_open()

        await authenticated_dashboard.open_user_menu()

        assert await authenticated_dashboard.is_user_menu_open()
        assert authenticated_dashboard.state is PageState.DASHBOARD

    @allure.story("Navigation")
    @allure.title("Admin navigation is refused before login")
    @allure.severity(allure.severity_level.MINOR)
    @pytest.mark.P3
    @pytest.mark.asyncio
    async def test_admin_navigation_requires_login(self, login_page: LoginPage, dashboard_page: DashboardPage):
        await login_page.open()

        with pytest.raises(InvalidTransition) as exc_info:
            await dashboard_page.navigate_to_admin_users()

        assert exc_info.value.current is PageState.LOGGED_OUT
