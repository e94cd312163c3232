"""
================================================================================
Smart Locator (Locator Resolver)
================================================================================

Turns a `LocatorDescriptor` into a live Playwright locator for exactly one
element, using ordered fallback strategies and optional scoping.

Resolution rules:
    - Candidates are tried in declared order on every poll
    - A candidate wins only when exactly one matching element is visible
      (and, for actionable lookups, enabled)
    - Scoped descriptors first resolve their container, then query inside it
    - Nothing is cached: every call re-queries the live DOM

Fallback usage is recorded so selectors that drifted can be spotted in the
locator health report.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger
from playwright.async_api import Locator, Page

from .errors import ActionTimeout, ElementNotFound, ScopeNotFound
from .locator_descriptor import LocatorDescriptor, MatchStrategy
from .wait_helpers import Deadline, WaitConfig, poll_until


# Matches beyond this many are not inspected for visibility
MAX_INSPECTED_MATCHES = 25


@dataclass
class LocatorHealth:
    """
    Tracks which strategy resolved an element.

    Attributes:
        element_name: Human-readable element name
        primary_strategy: The preferred (first) strategy
        used_fallback: Whether a later strategy was used
        fallback_index: Index of the strategy used (if fallback)
        fallback_strategy: Description of the strategy used (if fallback)
    """
    element_name: str
    primary_strategy: str
    used_fallback: bool = False
    fallback_index: Optional[int] = None
    fallback_strategy: Optional[str] = None


@dataclass
class _Observation:
    handle: Optional[Locator]
    note: str
    disabled: bool = False


class SmartLocator:
    """
    Resolver for `LocatorDescriptor` objects against one Playwright page.

    Usage:
        >>> smart = SmartLocator(page, default_timeout_ms=15000)
        >>> handle = await smart.resolve(login_button)
        >>> await handle.click()
    """

    def __init__(
        self,
        page: Page,
        default_timeout_ms: int = 15000,
        poll: Optional[WaitConfig] = None,
    ):
        """
        Args:
            page: Playwright Page object
            default_timeout_ms: Resolution timeout when neither the caller
                nor the descriptor sets one
            poll: Poll interval configuration
        """
        self.page = page
        self.default_timeout_ms = default_timeout_ms
        self.poll = poll or WaitConfig()
        self._health_records: List[LocatorHealth] = []
        self._fallback_used: Dict[str, LocatorHealth] = {}

    def timeout_for(self, descriptor: LocatorDescriptor, timeout_ms: Optional[int] = None) -> int:
        if timeout_ms is not None:
            return timeout_ms
        if descriptor.timeout_ms is not None:
            return descriptor.timeout_ms
        return self.default_timeout_ms

    async def resolve(
        self,
        descriptor: LocatorDescriptor,
        timeout_ms: Optional[int] = None,
        actionable: bool = True,
    ) -> Locator:
        """
        Resolve `descriptor` to a locator pinned to a single element.

        Args:
            descriptor: What to find
            timeout_ms: Total budget, including resolution of the scope chain
            actionable: Also require the element to be enabled

        Returns:
            Playwright Locator for the single matching element

        Raises:
            ScopeNotFound: The scope container never resolved
            ElementNotFound: No candidate produced exactly one visible match
            ActionTimeout: A visible match stayed disabled (actionable only)
        """
        timeout = self.timeout_for(descriptor, timeout_ms)
        deadline = Deadline(timeout)
        root = await self._resolve_scope(descriptor, deadline, timeout)

        observations: Dict[int, _Observation] = {}

        async def check() -> Tuple[bool, Optional[Tuple[int, Locator]]]:
            for index, strategy in enumerate(descriptor.candidates):
                obs = await self._evaluate(strategy, root, actionable)
                observations[index] = obs
                if obs.handle is not None:
                    return True, (index, obs.handle)
            return False, None

        result = await poll_until(
            check,
            deadline.remaining_ms(),
            description=f"resolve '{descriptor.qualified_name}'",
            config=self.poll,
        )

        if result.success:
            index, handle = result.value
            self._record(descriptor, index)
            return handle

        attempts = [
            f"{strategy.describe()} -> "
            f"{observations[i].note if i in observations else 'not evaluated'}"
            for i, strategy in enumerate(descriptor.candidates)
        ]
        if result.last_error:
            attempts.append(f"last driver error: {result.last_error}")

        if actionable and any(obs.disabled for obs in observations.values()):
            logger.debug(f"'{descriptor.qualified_name}' visible but never enabled")
            raise ActionTimeout(
                descriptor.qualified_name,
                action="resolve",
                timeout_ms=timeout,
                reason="element visible but disabled",
            )

        error = ElementNotFound(descriptor.qualified_name, attempts=attempts, timeout_ms=timeout)
        logger.debug(f"Resolution failed: {error}")
        raise error

    async def _resolve_scope(self, descriptor: LocatorDescriptor, deadline: Deadline, timeout: int) -> Any:
        if descriptor.scope is None:
            return self.page
        try:
            return await self.resolve(
                descriptor.scope,
                timeout_ms=deadline.remaining_ms(),
                actionable=False,
            )
        except ElementNotFound as e:
            raise ScopeNotFound(
                descriptor.qualified_name,
                descriptor.scope.qualified_name,
                attempts=e.attempts,
                timeout_ms=timeout,
            ) from e

    async def _evaluate(self, strategy: MatchStrategy, root: Any, actionable: bool) -> _Observation:
        matches = strategy.build(root)
        count = await matches.count()
        if count == 0:
            return _Observation(None, "no match")

        visible: List[Locator] = []
        for i in range(min(count, MAX_INSPECTED_MATCHES)):
            candidate = matches.nth(i)
            if await candidate.is_visible():
                visible.append(candidate)

        if not visible:
            return _Observation(None, f"{count} matched, none visible")
        if len(visible) > 1:
            return _Observation(None, f"{len(visible)} visible (ambiguous)")

        handle = visible[0]
        if actionable and not await handle.is_enabled():
            return _Observation(None, "1 visible but disabled", disabled=True)
        return _Observation(handle, "matched")

    async def visible_matches(
        self,
        descriptor: LocatorDescriptor,
        timeout_ms: Optional[int] = None,
    ) -> List[Locator]:
        """
        Collect every visible element of the first candidate that has any.

        Used for collections (table rows, list options) where more than one
        match is expected. Returns an empty list when nothing is visible;
        the scope, if any, must still resolve.
        """
        timeout = self.timeout_for(descriptor, timeout_ms)
        root = await self._resolve_scope(descriptor, Deadline(timeout), timeout)

        for strategy in descriptor.candidates:
            matches = strategy.build(root)
            count = await matches.count()
            visible = []
            for i in range(count):
                item = matches.nth(i)
                if await item.is_visible():
                    visible.append(item)
            if visible:
                return visible
        return []

    async def count_visible(self, descriptor: LocatorDescriptor, timeout_ms: int = 0) -> int:
        """Number of visible matches; 0 when the element or its scope is absent."""
        try:
            return len(await self.visible_matches(descriptor, timeout_ms=timeout_ms))
        except ElementNotFound:
            return 0

    async def is_present(
        self,
        descriptor: LocatorDescriptor,
        timeout_ms: int = 2000,
    ) -> bool:
        """Check if `descriptor` resolves to a visible element within `timeout_ms`."""
        try:
            await self.resolve(descriptor, timeout_ms=timeout_ms, actionable=False)
            return True
        except ElementNotFound:
            return False

    def _record(self, descriptor: LocatorDescriptor, index: int) -> None:
        name = descriptor.qualified_name
        primary = descriptor.candidates[0].describe()
        if index == 0:
            self._health_records.append(LocatorHealth(name, primary))
            logger.debug(f"✅ Element '{name}' found: {primary}")
            return

        used = descriptor.candidates[index].describe()
        health = LocatorHealth(
            element_name=name,
            primary_strategy=primary,
            used_fallback=True,
            fallback_index=index,
            fallback_strategy=used,
        )
        self._health_records.append(health)
        if name not in self._fallback_used:
            logger.warning(f"⚠️ Element '{name}' used fallback [{index}]: {used}")
        self._fallback_used[name] = health

    @property
    def health_records(self) -> List[LocatorHealth]:
        return list(self._health_records)

    def get_health_report(self) -> str:
        """
        Generate locator health report.

        Lists elements that needed a fallback strategy (maintenance candidates).
        """
        if not self._fallback_used:
            return "✅ All elements used primary locators. No maintenance needed."

        report_lines = [
            "⚠️ Locator Health Report - Fallbacks Used:",
            "",
            "The following elements used fallback locators.",
            "Consider updating the primary strategy:",
            "",
        ]

        for element_name, health in self._fallback_used.items():
            report_lines.extend([
                f"  [{element_name}]",
                f"    Failed primary: {health.primary_strategy}",
                f"    Used: [{health.fallback_index}] {health.fallback_strategy}",
                "",
            ])

        return "\n".join(report_lines)


__all__ = [
    "SmartLocator",
    "LocatorHealth",
    "MAX_INSPECTED_MATCHES",
]
