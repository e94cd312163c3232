"""
================================================================================
UI Testing Framework
================================================================================

Playwright-based UI interaction engine for dynamically rendered pages.

Components:
    - locator_descriptor: Ordered, scoped match strategies per logical element
    - smart_locator: Resolver turning a descriptor into exactly one element
    - element_actions: Synchronized actions with verification and bounded retry
    - session_state: Navigation state machine shared by the page objects
    - page_base: Base page object (navigation, guards, failure capture)
    - browser_manager: Browser lifecycle and failure artifacts
    - config: Run configuration and logger setup

Author: Automation Team
License: MIT
================================================================================
"""

from .errors import (
    UIEngineError,
    ConfigurationError,
    ElementNotFound,
    ScopeNotFound,
    ActionTimeout,
    VerificationMismatch,
    OptionNotFound,
    NoConfirmation,
    StateTransitionTimeout,
    InvalidTransition,
    RecordNotFound,
)
from .locator_descriptor import ByCss, ByPlaceholder, ByRole, ByText, LocatorDescriptor, Within
from .smart_locator import SmartLocator
from .element_actions import ElementActions, RetryConfig
from .session_state import PageState, SessionState
from .config import RunConfig, init_logger
from .page_base import BasePage
from .browser_manager import BrowserManager
from .user_data import UserDataFactory, UserRecord, UserUpdate

__all__ = [
    "UIEngineError",
    "ConfigurationError",
    "ElementNotFound",
    "ScopeNotFound",
    "ActionTimeout",
    "VerificationMismatch",
    "OptionNotFound",
    "NoConfirmation",
    "StateTransitionTimeout",
    "InvalidTransition",
    "RecordNotFound",
    "ByCss",
    "ByPlaceholder",
    "ByRole",
    "ByText",
    "Within",
    "LocatorDescriptor",
    "SmartLocator",
    "ElementActions",
    "RetryConfig",
    "PageState",
    "SessionState",
    "RunConfig",
    "init_logger",
    "BasePage",
    "BrowserManager",
    "UserDataFactory",
    "UserRecord",
    "UserUpdate",
]
