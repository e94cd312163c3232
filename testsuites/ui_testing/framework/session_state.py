"""
================================================================================
Session State
================================================================================

Navigation state machine shared by the page objects of one test.

    LOGGED_OUT -> AUTHENTICATING -> DASHBOARD | LOGGED_OUT
    DASHBOARD -> ADMIN_USERS_LIST
    ADMIN_USERS_LIST -> ADMIN_USERS_ADD_FORM | ADMIN_USERS_EDIT_FORM
    ADMIN_USERS_ADD_FORM | ADMIN_USERS_EDIT_FORM -> ADMIN_USERS_LIST
    any authenticated state -> LOGGED_OUT

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from loguru import logger

from .errors import InvalidTransition


class PageState(Enum):
    LOGGED_OUT = "LoggedOut"
    AUTHENTICATING = "Authenticating"
    DASHBOARD = "Dashboard"
    ADMIN_USERS_LIST = "AdminUsersList"
    ADMIN_USERS_ADD_FORM = "AdminUsersAddForm"
    ADMIN_USERS_EDIT_FORM = "AdminUsersEditForm"

    @property
    def authenticated(self) -> bool:
        return self not in (PageState.LOGGED_OUT, PageState.AUTHENTICATING)


AUTHENTICATED_STATES: FrozenSet[PageState] = frozenset(s for s in PageState if s.authenticated)

TRANSITIONS: Dict[PageState, FrozenSet[PageState]] = {
    PageState.LOGGED_OUT: frozenset({PageState.AUTHENTICATING}),
    PageState.AUTHENTICATING: frozenset({PageState.DASHBOARD, PageState.LOGGED_OUT}),
    PageState.DASHBOARD: frozenset({PageState.ADMIN_USERS_LIST, PageState.LOGGED_OUT}),
    PageState.ADMIN_USERS_LIST: frozenset({
        PageState.ADMIN_USERS_ADD_FORM,
        PageState.ADMIN_USERS_EDIT_FORM,
        PageState.LOGGED_OUT,
    }),
    PageState.ADMIN_USERS_ADD_FORM: frozenset({PageState.ADMIN_USERS_LIST, PageState.LOGGED_OUT}),
    PageState.ADMIN_USERS_EDIT_FORM: frozenset({PageState.ADMIN_USERS_LIST, PageState.LOGGED_OUT}),
}


@dataclass
class SessionState:
    """
    Per-test navigation state. Never shared between tests.

    Attributes:
        state: Current logical page
        current_url: URL observed when the state was last confirmed
        last_budget_ms: Timing budget of the last guarded operation
        history: (from, to) pairs of confirmed transitions
    """
    state: PageState = PageState.LOGGED_OUT
    current_url: str = ""
    last_budget_ms: Optional[int] = None
    history: List[Tuple[PageState, PageState]] = field(default_factory=list)

    def require(self, operation: str, *allowed: PageState) -> PageState:
        """
        Assert `operation` may run in the current state.

        Raises:
            InvalidTransition: current state is not in `allowed`
        """
        if self.state not in allowed:
            raise InvalidTransition(operation, self.state, allowed)
        return self.state

    def can_transition(self, target: PageState) -> bool:
        return target == self.state or target in TRANSITIONS[self.state]

    def transition(self, target: PageState, url: str = "", budget_ms: Optional[int] = None) -> None:
        """
        Move to `target` after its guard held.

        Raises:
            InvalidTransition: `target` is not reachable from the current state
        """
        if not self.can_transition(target):
            raise InvalidTransition(f"transition to {target.name}", self.state, TRANSITIONS[self.state])
        if target != self.state:
            logger.debug(f"State: {self.state.name} -> {target.name}")
            self.history.append((self.state, target))
        self.state = target
        if url:
            self.current_url = url
        if budget_ms is not None:
            self.last_budget_ms = budget_ms

    def reset(self) -> None:
        """Fall back to LOGGED_OUT without a transition check (failed login)."""
        if self.state != PageState.LOGGED_OUT:
            self.history.append((self.state, PageState.LOGGED_OUT))
        self.state = PageState.LOGGED_OUT


__all__ = [
    "PageState",
    "SessionState",
    "AUTHENTICATED_STATES",
    "TRANSITIONS",
]
