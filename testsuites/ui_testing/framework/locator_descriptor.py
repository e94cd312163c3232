"""
================================================================================
Locator Descriptors
================================================================================

Declarative description of how to find one logical UI element.

A descriptor is an ordered list of match strategies plus an optional parent
scope. Strategies are tried in declared order by the resolver
(see `smart_locator.SmartLocator`); the scope restricts every query to the
inside of the resolved container.

Strategy variants:
    - ByRole:        role + accessible name
    - ByPlaceholder: placeholder text
    - ByCss:         plain CSS / Playwright selector
    - ByText:        text content, exact string or regex
    - Within:        container (optionally filtered by text) + sub-selector

Usage:
    >>> username = LocatorDescriptor.of(
    ...     "Username input",
    ...     ByPlaceholder("Username"),
    ...     "input[name='username']",
    ... )
    >>> in_form = username.within(add_user_form)

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional, Pattern, Tuple, Union

TextMatch = Union[str, Pattern[str]]


def _text_repr(value: Optional[TextMatch]) -> str:
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    return repr(value)


class MatchStrategy:
    """Base class for one way of matching an element."""

    def build(self, root: Any) -> Any:
        """
        Build a Playwright locator for this strategy.

        Args:
            root: Playwright Page or Locator to query from

        Returns:
            A (possibly multi-match) Playwright Locator
        """
        raise NotImplementedError

    def describe(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class ByRole(MatchStrategy):
    role: str
    name: Optional[TextMatch] = None
    exact: bool = False

    def build(self, root: Any) -> Any:
        if self.name is None:
            return root.get_by_role(self.role)
        if isinstance(self.name, re.Pattern):
            return root.get_by_role(self.role, name=self.name)
        return root.get_by_role(self.role, name=self.name, exact=self.exact)

    def describe(self) -> str:
        return f"role={self.role} name={_text_repr(self.name)}"


@dataclass(frozen=True)
class ByPlaceholder(MatchStrategy):
    text: str
    exact: bool = True

    def build(self, root: Any) -> Any:
        return root.get_by_placeholder(self.text, exact=self.exact)

    def describe(self) -> str:
        return f"placeholder={self.text!r}"


@dataclass(frozen=True)
class ByCss(MatchStrategy):
    selector: str

    def build(self, root: Any) -> Any:
        return root.locator(self.selector)

    def describe(self) -> str:
        return f"css={self.selector}"


@dataclass(frozen=True)
class ByText(MatchStrategy):
    text: TextMatch
    exact: bool = False

    def build(self, root: Any) -> Any:
        if isinstance(self.text, re.Pattern):
            return root.get_by_text(self.text)
        return root.get_by_text(self.text, exact=self.exact)

    def describe(self) -> str:
        return f"text={_text_repr(self.text)}{' (exact)' if self.exact else ''}"


@dataclass(frozen=True)
class Within(MatchStrategy):
    """Composite: a container (filtered by the text it contains) + sub-selector."""

    container: str
    target: str
    has_text: Optional[TextMatch] = None

    def build(self, root: Any) -> Any:
        container = root.locator(self.container)
        if self.has_text is not None:
            container = container.filter(has_text=self.has_text)
        return container.locator(self.target)

    def describe(self) -> str:
        has = f" has_text={_text_repr(self.has_text)}" if self.has_text is not None else ""
        return f"within={self.container}{has} >> {self.target}"


StrategyLike = Union[MatchStrategy, str]


def as_strategy(candidate: StrategyLike) -> MatchStrategy:
    """Plain strings are treated as CSS selectors."""
    if isinstance(candidate, MatchStrategy):
        return candidate
    if isinstance(candidate, str):
        return ByCss(candidate)
    raise TypeError(f"Unsupported locator candidate: {candidate!r}")


@dataclass(frozen=True, repr=False)
class LocatorDescriptor:
    """
    Ordered, optionally scoped description of one logical UI target.

    Attributes:
        name: Human-readable element name (used in logs and errors)
        candidates: Ordered match strategies, tried first to last
        scope: Optional container descriptor; matching happens inside it
        timeout_ms: Optional resolution timeout override
    """

    name: str
    candidates: Tuple[MatchStrategy, ...]
    scope: Optional["LocatorDescriptor"] = None
    timeout_ms: Optional[int] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        candidates = tuple(as_strategy(c) for c in self.candidates)
        if not candidates:
            raise ValueError(f"Locator '{self.name}' needs at least one candidate")
        object.__setattr__(self, "candidates", candidates)

    @classmethod
    def of(
        cls,
        name: str,
        *candidates: StrategyLike,
        scope: Optional["LocatorDescriptor"] = None,
        timeout_ms: Optional[int] = None,
    ) -> "LocatorDescriptor":
        return cls(name=name, candidates=tuple(candidates), scope=scope, timeout_ms=timeout_ms)

    def within(self, scope: Optional["LocatorDescriptor"]) -> "LocatorDescriptor":
        """Return a copy of this descriptor bound to `scope`."""
        return replace(self, scope=scope)

    @property
    def qualified_name(self) -> str:
        """Name including the scope chain, e.g. `Add User form > Username`."""
        if self.scope is None:
            return self.name
        return f"{self.scope.qualified_name} > {self.name}"

    def describe(self) -> List[str]:
        return [f"[{i}] {c.describe()}" for i, c in enumerate(self.candidates)]

    def __str__(self) -> str:
        return self.qualified_name

    def __repr__(self) -> str:
        return f"LocatorDescriptor('{self.qualified_name}')"


__all__ = [
    "MatchStrategy",
    "ByRole",
    "ByPlaceholder",
    "ByCss",
    "ByText",
    "Within",
    "LocatorDescriptor",
    "as_strategy",
]
