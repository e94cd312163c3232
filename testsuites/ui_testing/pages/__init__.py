"""
================================================================================
Page Objects
================================================================================

Page flow controllers for the HRM application.

Each page class encapsulates:
    - The operations valid on that page (checked against SessionState)
    - The guards confirming where an operation led
    - Verification helpers for tests

Element descriptors live in `elements`, one factory per logical field.

Author: Automation Team
License: MIT
================================================================================
"""

from .login_page import LoginPage, LoginOutcome
from .dashboard_page import DashboardPage
from .admin_users_page import AdminUsersPage

__all__ = [
    "LoginPage",
    "LoginOutcome",
    "DashboardPage",
    "AdminUsersPage",
]
