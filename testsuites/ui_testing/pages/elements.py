"""
================================================================================
Element Descriptors
================================================================================

Locator descriptors for the HRM application, one factory per logical field.

The application renders the same control with different markup depending on
context (list filter vs. user form), and inputs carry no ids. Fields are
therefore anchored on their visible label inside an explicit scope:

    >>> username_in_form = text_field("Username", scope=USER_FORM)
    >>> username_in_filter = text_field("Username", scope=USER_SEARCH_FILTER)

Both resolve to an `input` in a `.oxd-input-group` labelled "Username", but
each only ever looks inside its own container.

================================================================================
"""

from __future__ import annotations

import re
from typing import Optional

from testsuites.ui_testing.framework.locator_descriptor import (
    ByCss,
    ByPlaceholder,
    ByRole,
    ByText,
    LocatorDescriptor,
    Within,
)


def _css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _exact_name(name: str) -> "re.Pattern[str]":
    return re.compile(rf"^\s*{re.escape(name)}\s*$", re.IGNORECASE)


def _input_group(label: str) -> str:
    return f'.oxd-input-group:has(label:text-is("{_css_string(label)}"))'


# ================================================================================
# URL Patterns
# ================================================================================

LOGIN_URL = re.compile(r"/auth/login", re.IGNORECASE)
DASHBOARD_URL = re.compile(r"/dashboard", re.IGNORECASE)
ADMIN_USERS_URL = re.compile(r"/admin/viewSystemUsers", re.IGNORECASE)
ADD_USER_URL = re.compile(r"/admin/saveSystemUser/?(\?.*)?$", re.IGNORECASE)
EDIT_USER_URL = re.compile(r"/admin/saveSystemUser/\d+", re.IGNORECASE)

# XHR the grid issues on Search / Reset
USERS_API = re.compile(r"/api/v\d+/admin/users(\?|$)", re.IGNORECASE)


# ================================================================================
# Field Factories
# ================================================================================

def text_field(label: str, scope: Optional[LocatorDescriptor] = None) -> LocatorDescriptor:
    """Text input labelled `label`."""
    return LocatorDescriptor.of(
        f"{label} input",
        Within(_input_group(label), "input"),
        ByRole("textbox", name=label, exact=True),
        ByPlaceholder(label),
        scope=scope,
    )


def password_field(label: str, scope: Optional[LocatorDescriptor] = None) -> LocatorDescriptor:
    """Password input labelled `label`."""
    return LocatorDescriptor.of(
        f"{label} input",
        Within(_input_group(label), "input[type='password']"),
        ByCss(f'.oxd-form-row:has(label:text-is("{_css_string(label)}")) input[type="password"]'),
        scope=scope,
    )


def select_field(label: str, scope: Optional[LocatorDescriptor] = None) -> LocatorDescriptor:
    """Custom dropdown trigger labelled `label`."""
    return LocatorDescriptor.of(
        f"{label} dropdown",
        Within(_input_group(label), ".oxd-select-text"),
        Within(_input_group(label), ".oxd-select-wrapper"),
        ByRole("combobox", name=label, exact=True),
        scope=scope,
    )


def autocomplete_field(label: str, scope: Optional[LocatorDescriptor] = None) -> LocatorDescriptor:
    """Autocomplete text input labelled `label`."""
    return LocatorDescriptor.of(
        f"{label} autocomplete",
        Within(_input_group(label), "input"),
        ByPlaceholder("Type for hints..."),
        ByCss(".oxd-autocomplete-text-input input"),
        scope=scope,
    )


def checkbox_field(label: str, scope: Optional[LocatorDescriptor] = None) -> LocatorDescriptor:
    """Checkbox toggle whose group label contains `label`."""
    return LocatorDescriptor.of(
        f"{label} checkbox",
        ByCss(f'.oxd-input-group:has(label:has-text("{_css_string(label)}")) .oxd-checkbox-wrapper label'),
        ByRole("checkbox", name=re.compile(re.escape(label), re.IGNORECASE)),
        ByCss(".oxd-checkbox-wrapper label"),
        scope=scope,
    )


def button(name: str, scope: Optional[LocatorDescriptor] = None) -> LocatorDescriptor:
    """Button with the accessible name `name` (exact, case-insensitive)."""
    return LocatorDescriptor.of(
        f"{name} button",
        ByRole("button", name=_exact_name(name)),
        ByCss(f'button:has-text("{_css_string(name)}")'),
        scope=scope,
    )


# ================================================================================
# Shared Widgets
# ================================================================================

SELECT_LISTBOX = LocatorDescriptor.of(
    "Dropdown list",
    ".oxd-select-dropdown",
    ByRole("listbox"),
)

SELECT_OPTIONS = LocatorDescriptor.of(
    "Dropdown options",
    ".oxd-select-option",
    ByRole("option"),
    scope=SELECT_LISTBOX,
)

AUTOCOMPLETE_LISTBOX = LocatorDescriptor.of(
    "Autocomplete suggestions",
    ".oxd-autocomplete-dropdown",
    ByRole("listbox"),
)

AUTOCOMPLETE_OPTIONS = LocatorDescriptor.of(
    "Autocomplete options",
    ".oxd-autocomplete-option",
    ByRole("option"),
    scope=AUTOCOMPLETE_LISTBOX,
)

SUCCESS_TOAST = LocatorDescriptor.of(
    "Success toast",
    ".oxd-toast--success",
    ".toast-success",
    ByText(re.compile(r"successfully", re.IGNORECASE)),
)

LOADER = LocatorDescriptor.of(
    "Loading spinner",
    ".oxd-loading-spinner",
    ".oxd-form-loader",
)


# ================================================================================
# Login
# ================================================================================

LOGIN_FORM = LocatorDescriptor.of(
    "Login form",
    ".orangehrm-login-form form",
    "form:has(input[name='password'])",
)

LOGIN_USERNAME = LocatorDescriptor.of(
    "Login username",
    "input[name='username']",
    ByPlaceholder("Username"),
    scope=LOGIN_FORM,
)

LOGIN_PASSWORD = LocatorDescriptor.of(
    "Login password",
    "input[name='password']",
    ByPlaceholder("Password"),
    scope=LOGIN_FORM,
)

LOGIN_BUTTON = LocatorDescriptor.of(
    "Login button",
    ByRole("button", name=re.compile(r"login", re.IGNORECASE)),
    "button[type='submit']",
    scope=LOGIN_FORM,
)

LOGIN_ERROR = LocatorDescriptor.of(
    "Login error",
    ".oxd-alert-content-text",
    ".oxd-input-field-error-message",
    ".alert-danger",
    ByRole("alert"),
)


# ================================================================================
# Top Bar / Side Panel
# ================================================================================

DASHBOARD_HEADING = LocatorDescriptor.of(
    "Dashboard heading",
    'h6.oxd-topbar-header-breadcrumb-module:text-is("Dashboard")',
    ByRole("heading", name="Dashboard", exact=True),
    'h6:has-text("Dashboard")',
)

USER_MENU_TRIGGER = LocatorDescriptor.of(
    "Account menu",
    ".oxd-userdropdown-tab",
    ".user-dropdown",
    ".oxd-userdropdown-name",
)

USER_MENU = LocatorDescriptor.of(
    "Account menu items",
    ".oxd-dropdown-menu",
    ByRole("menu"),
)

LOGOUT_ITEM = LocatorDescriptor.of(
    "Logout",
    ByRole("menuitem", name="Logout", exact=True),
    'a:has-text("Logout")',
    ".oxd-userdropdown-link:has-text('Logout')",
    scope=USER_MENU,
)

SIDE_PANEL = LocatorDescriptor.of(
    "Side panel",
    "aside nav",
    ".oxd-sidepanel",
    ByRole("navigation", name="Sidepanel"),
)

ADMIN_MENU = LocatorDescriptor.of(
    "Admin menu",
    ByRole("link", name="Admin", exact=True),
    'a.oxd-main-menu-item:has-text("Admin")',
    scope=SIDE_PANEL,
)


# ================================================================================
# Admin / System Users
# ================================================================================

SYSTEM_USERS_HEADING = LocatorDescriptor.of(
    "System Users heading",
    'h5:text-is("System Users")',
    ByRole("heading", name="System Users", exact=True),
    ".oxd-table-filter-title",
)

USER_SEARCH_FILTER = LocatorDescriptor.of(
    "User search filter",
    ".oxd-table-filter",
    "form:has(button:has-text('Reset'))",
)

FILTER_USERNAME = text_field("Username", scope=USER_SEARCH_FILTER)
SEARCH_BUTTON = button("Search", scope=USER_SEARCH_FILTER)
RESET_BUTTON = button("Reset", scope=USER_SEARCH_FILTER)

ADD_BUTTON = LocatorDescriptor.of(
    "Add button",
    ByRole("button", name=_exact_name("Add")),
    ".orangehrm-header-container button",
)

USERS_TABLE = LocatorDescriptor.of(
    "Users table",
    ".oxd-table-body",
    ByRole("rowgroup"),
)

USER_ROWS = LocatorDescriptor.of(
    "User rows",
    ".oxd-table-card",
    ByRole("row"),
    scope=USERS_TABLE,
)

# Column holding the username (first column is the row checkbox)
USERNAME_CELL = ".oxd-table-cell:nth-child(2)"

USERNAME_CELLS = LocatorDescriptor.of(
    "Username cells",
    USERNAME_CELL,
    scope=USERS_TABLE,
)

DELETE_SELECTED_BUTTON = button("Delete Selected")

CONFIRM_DIALOG = LocatorDescriptor.of(
    "Delete confirmation dialog",
    ".orangehrm-dialog-popup",
    ByRole("dialog"),
    ".oxd-dialog-sheet",
)

CONFIRM_DELETE_BUTTON = button("Yes, Delete", scope=CONFIRM_DIALOG)


def user_row(username: str) -> LocatorDescriptor:
    """Table row whose username cell is exactly `username`."""
    return LocatorDescriptor.of(
        f"Row '{username}'",
        f'.oxd-table-card:has({USERNAME_CELL}:text-is("{_css_string(username)}"))',
        ByRole("row", name=re.compile(rf"(^|\s){re.escape(username)}(\s|$)")),
        scope=USERS_TABLE,
    )


def row_checkbox(username: str) -> LocatorDescriptor:
    return LocatorDescriptor.of(
        "Row checkbox",
        ".oxd-table-card-cell-checkbox .oxd-checkbox-wrapper label",
        ByRole("checkbox"),
        scope=user_row(username),
    )


def row_edit_button(username: str) -> LocatorDescriptor:
    return LocatorDescriptor.of(
        "Edit action",
        ".oxd-table-cell-actions button:has(i.bi-pencil-fill)",
        ".oxd-table-cell-actions button >> nth=1",
        scope=user_row(username),
    )


# ================================================================================
# Add / Edit User Form
# ================================================================================

USER_FORM = LocatorDescriptor.of(
    "User form",
    ".orangehrm-card-container form",
    "form:has(button:has-text('Save'))",
)

FORM_ROLE = select_field("User Role", scope=USER_FORM)
FORM_STATUS = select_field("Status", scope=USER_FORM)
FORM_EMPLOYEE_NAME = autocomplete_field("Employee Name", scope=USER_FORM)
FORM_USERNAME = text_field("Username", scope=USER_FORM)
FORM_PASSWORD = password_field("Password", scope=USER_FORM)
FORM_CONFIRM_PASSWORD = password_field("Confirm Password", scope=USER_FORM)
FORM_CHANGE_PASSWORD = checkbox_field("Change Password", scope=USER_FORM)
SAVE_BUTTON = button("Save", scope=USER_FORM)
