"""
================================================================================
UI Engine Errors
================================================================================

Typed failure conditions raised by the locator resolver, the action executor
and the page flow controllers.

Every error carries the logical element / operation it concerns so that the
test runner can label screenshots, traces and videos meaningfully.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence


class UIEngineError(Exception):
    """Base class for all UI engine failures."""

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context: Dict[str, Any] = context
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items() if v is not None)
        return f"{self.message} [{details}]" if details else self.message


class ConfigurationError(UIEngineError):
    """Raised when the run configuration is missing required values."""
    pass


class ElementNotFound(UIEngineError):
    """No candidate strategy matched a single visible element within timeout."""

    def __init__(
        self,
        descriptor: str,
        attempts: Sequence[str] = (),
        timeout_ms: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.descriptor = descriptor
        self.attempts = list(attempts)
        self.timeout_ms = timeout_ms
        text = message or f"Element '{descriptor}' not found within {timeout_ms}ms"
        if self.attempts:
            text += "\n" + "\n".join(f"  - {a}" for a in self.attempts)
        super().__init__(text)


class ScopeNotFound(ElementNotFound):
    """The container a scoped descriptor is bound to could not be resolved."""

    def __init__(
        self,
        descriptor: str,
        scope: str,
        attempts: Sequence[str] = (),
        timeout_ms: Optional[int] = None,
    ):
        self.scope = scope
        super().__init__(
            descriptor,
            attempts=attempts,
            timeout_ms=timeout_ms,
            message=(
                f"Scope '{scope}' for element '{descriptor}' not found "
                f"within {timeout_ms}ms"
            ),
        )


class ActionTimeout(UIEngineError):
    """Element was found but never became stable/enabled for the action."""

    def __init__(self, descriptor: str, action: str, timeout_ms: Optional[int] = None, reason: str = ""):
        self.descriptor = descriptor
        self.action = action
        self.timeout_ms = timeout_ms
        super().__init__(
            f"{action} on '{descriptor}' timed out after {timeout_ms}ms",
            reason=reason or None,
        )


class VerificationMismatch(UIEngineError):
    """Post-action state did not match the expected value."""

    def __init__(self, descriptor: str, expected: str, actual: str):
        self.descriptor = descriptor
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Value of '{descriptor}' is {actual!r}, expected {expected!r}"
        )


class OptionNotFound(UIEngineError):
    """A dropdown or autocomplete option never appeared."""

    def __init__(self, descriptor: str, option: str, seen: Iterable[str] = (), timeout_ms: Optional[int] = None):
        self.descriptor = descriptor
        self.option = option
        self.seen = list(seen)
        super().__init__(
            f"Option {option!r} not found in '{descriptor}' within {timeout_ms}ms",
            seen=self.seen or None,
        )


class NoConfirmation(UIEngineError):
    """Expected success signal was absent after a mutating action."""

    def __init__(self, operation: str, timeout_ms: Optional[int] = None):
        self.operation = operation
        self.timeout_ms = timeout_ms
        super().__init__(
            f"No success confirmation for '{operation}' within {timeout_ms}ms"
        )


class StateTransitionTimeout(UIEngineError):
    """A navigation guard never held."""

    def __init__(self, from_state: Any, to_state: Any, guard: str, timeout_ms: Optional[int] = None):
        self.from_state = from_state
        self.to_state = to_state
        self.guard = guard
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Transition {_state_name(from_state)} -> {_state_name(to_state)} "
            f"not confirmed: {guard}",
            timeout_ms=timeout_ms,
        )


class InvalidTransition(UIEngineError):
    """An operation was requested from a state it is not valid in."""

    def __init__(self, operation: str, current: Any, allowed: Iterable[Any]):
        self.operation = operation
        self.current = current
        self.allowed = list(allowed)
        super().__init__(
            f"'{operation}' is not valid in state {_state_name(current)}",
            allowed=[_state_name(s) for s in self.allowed],
        )


class RecordNotFound(UIEngineError):
    """A named domain entity expected to exist was absent."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


def _state_name(state: Any) -> str:
    return getattr(state, "name", str(state))


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
]
