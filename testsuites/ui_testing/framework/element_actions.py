# ================================================================================
# Element Actions Module
# ================================================================================
#
# Synchronized action executor: resolves a LocatorDescriptor through the
# SmartLocator and performs one primitive against it with wait + timeout +
# bounded-retry semantics.
#
# Key Features:
#   - One budget per primitive: resolution timeout + fixed settle allowance
#   - Post-action verification (field content, selected option, checkbox)
#   - Retry of the single primitive on transient driver errors only
#   - Every failure surfaces as a typed UIEngineError
#   - Allure step integration
#
# ================================================================================

from __future__ import annotations

import asyncio
import re
from functools import wraps
from typing import Callable, List, Optional, Tuple

import allure
from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import (
    ActionTimeout,
    ElementNotFound,
    NoConfirmation,
    OptionNotFound,
    VerificationMismatch,
)
from .locator_descriptor import LocatorDescriptor
from .smart_locator import SmartLocator
from .wait_helpers import Deadline, poll_until


MASK = "***MASKED***"


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        delay_ms: int = 200,
        backoff_multiplier: float = 2.0,
        max_delay_ms: int = 2000
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts of one primitive
            delay_ms: Initial delay between attempts
            backoff_multiplier: Multiplier for exponential backoff
            max_delay_ms: Maximum delay between attempts
        """
        self.max_attempts = max_attempts
        self.delay_ms = delay_ms
        self.backoff_multiplier = backoff_multiplier
        self.max_delay_ms = max_delay_ms


def is_transient(error: BaseException) -> bool:
    """Driver errors worth retrying: the node went away under us, not a timeout."""
    return isinstance(error, PlaywrightError) and not isinstance(error, PlaywrightTimeoutError)


def with_retry(config: RetryConfig = None):
    """
    Decorator retrying an async primitive on transient driver errors.

    Typed engine errors and timeouts are never retried: the primitive
    already spent its budget polling.
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            delay = config.delay_ms
            for attempt in range(1, config.max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except PlaywrightError as e:
                    if not is_transient(e) or attempt == config.max_attempts:
                        raise
                    logger.warning(
                        f"Attempt {attempt}/{config.max_attempts} failed for "
                        f"{func.__name__}: {str(e).splitlines()[0]}. Retrying in {delay}ms..."
                    )
                    await asyncio.sleep(delay / 1000.0)
                    delay = min(delay * config.backoff_multiplier, config.max_delay_ms)

        return wrapper
    return decorator


def normalize_label(text: Optional[str]) -> str:
    """Collapse whitespace and casefold, for case-insensitive exact matching."""
    return " ".join((text or "").split()).casefold()


def _first_line(error: BaseException) -> str:
    return str(error).splitlines()[0] if str(error) else type(error).__name__


class ElementActions:
    """
    Synchronized action executor.

    Example:
        actions = ElementActions(SmartLocator(page), settle_allowance_ms=2000)
        await actions.click(login_button)
        await actions.fill(username_input, "Admin")
    """

    # Autocomplete placeholders shown while suggestions load
    PENDING_SUGGESTIONS = re.compile(r"^(searching\.*|loading\.*)$", re.IGNORECASE)

    def __init__(
        self,
        smart: SmartLocator,
        settle_allowance_ms: int = 2000,
        retry_config: Optional[RetryConfig] = None,
    ):
        """
        Initialize ElementActions.

        Args:
            smart: Resolver bound to the page under test
            settle_allowance_ms: Fixed allowance added to the resolution
                timeout to form a primitive's default budget
            retry_config: Retry behavior for transient driver errors
        """
        self.smart = smart
        self.page = smart.page
        self.settle_allowance_ms = settle_allowance_ms
        self.retry_config = retry_config or RetryConfig()

    def budget_for(self, descriptor: LocatorDescriptor, timeout_ms: Optional[int] = None) -> int:
        """Default budget: resolution timeout plus the settle allowance."""
        if timeout_ms is not None:
            return timeout_ms
        return self.smart.timeout_for(descriptor) + self.settle_allowance_ms

    def _resolution_timeout(self, descriptor: LocatorDescriptor, deadline: Deadline) -> int:
        return min(self.smart.timeout_for(descriptor), deadline.remaining_ms())

    # =========================================================================
    # Primitives
    # =========================================================================

    @allure.step("Click: {descriptor}")
    async def click(
        self,
        descriptor: LocatorDescriptor,
        timeout_ms: Optional[int] = None,
    ) -> None:
        """
        Resolve, wait for stable + enabled, click.

        Raises:
            ElementNotFound / ScopeNotFound: resolution failed
            ActionTimeout: element never became stable/enabled within budget
        """
        budget = self.budget_for(descriptor, timeout_ms)
        deadline = Deadline(budget)
        logger.info(f"Clicking element: {descriptor}")
        await self._click_once(descriptor, deadline, budget)
        logger.debug(f"Successfully clicked: {descriptor}")

    async def _click_once(self, descriptor: LocatorDescriptor, deadline: Deadline, budget: int) -> None:
        @with_retry(self.retry_config)
        async def attempt() -> None:
            handle = await self.smart.resolve(
                descriptor,
                timeout_ms=self._resolution_timeout(descriptor, deadline),
                actionable=True,
            )
            await handle.click(timeout=deadline.remaining_ms(floor=1))

        try:
            await attempt()
        except PlaywrightError as e:
            raise ActionTimeout(str(descriptor), "click", budget, reason=_first_line(e)) from e

    @allure.step("Fill: {descriptor}")
    async def fill(
        self,
        descriptor: LocatorDescriptor,
        value: str,
        timeout_ms: Optional[int] = None,
        sensitive: bool = False,
    ) -> None:
        """
        Clear the field, enter `value`, then read it back.

        Args:
            descriptor: Input field
            value: Text to enter
            timeout_ms: Budget override
            sensitive: Mask the value in logs and errors

        Raises:
            VerificationMismatch: the field does not hold `value` afterwards
        """
        budget = self.budget_for(descriptor, timeout_ms)
        deadline = Deadline(budget)
        shown = MASK if sensitive else repr(value[:50])
        logger.info(f"Filling input: {descriptor} with {shown}")

        @with_retry(self.retry_config)
        async def attempt() -> Locator:
            handle = await self.smart.resolve(
                descriptor,
                timeout_ms=self._resolution_timeout(descriptor, deadline),
                actionable=True,
            )
            await handle.clear(timeout=deadline.remaining_ms(floor=1))
            await handle.fill(value, timeout=deadline.remaining_ms(floor=1))
            return handle

        try:
            handle = await attempt()
        except PlaywrightError as e:
            raise ActionTimeout(str(descriptor), "fill", budget, reason=_first_line(e)) from e

        async def holds_value() -> Tuple[bool, str]:
            actual = await handle.input_value()
            return actual == value, actual

        result = await poll_until(
            holds_value,
            min(self.settle_allowance_ms, deadline.remaining_ms()),
            description=f"value of '{descriptor}'",
            config=self.smart.poll,
        )
        if not result.success:
            actual = result.value if result.value is not None else ""
            raise VerificationMismatch(
                str(descriptor),
                expected=MASK if sensitive else value,
                actual=MASK if sensitive else actual,
            )
        logger.debug(f"Successfully filled: {descriptor}")

    @allure.step("Select option '{option_label}' in {trigger}")
    async def select_option(
        self,
        trigger: LocatorDescriptor,
        option_label: str,
        options: LocatorDescriptor,
        timeout_ms: Optional[int] = None,
        verify: bool = True,
    ) -> None:
        """
        Open a custom dropdown and pick an option by exact label (case-insensitive).

        Args:
            trigger: Element that opens the dropdown
            option_label: Visible label of the option
            options: Descriptor matching the options of the opened list
            timeout_ms: Budget override
            verify: Check that the trigger shows the chosen label afterwards

        Raises:
            OptionNotFound: no option with that label appeared
        """
        budget = self.budget_for(trigger, timeout_ms)
        deadline = Deadline(budget)
        logger.info(f"Selecting option: {option_label!r} in {trigger}")

        await self._click_once(trigger, deadline, budget)
        option = await self._find_option(options, option_label, deadline, budget)
        await self._click_option(option, trigger, budget, deadline)

        if verify:
            await self._verify_text(trigger, option_label, deadline)
        logger.debug(f"Successfully selected: {option_label!r}")

    @allure.step("Pick suggestion '{text}' in {field}")
    async def pick_autocomplete(
        self,
        field: LocatorDescriptor,
        text: str,
        options: LocatorDescriptor,
        timeout_ms: Optional[int] = None,
    ) -> None:
        """
        Type into an autocomplete input and pick the suggestion equal to `text`.

        Waits for the pending placeholder ("Searching....") to go away before
        comparing suggestions; the match is exact and case-insensitive.

        Raises:
            OptionNotFound: no matching suggestion appeared
        """
        budget = self.budget_for(field, timeout_ms)
        deadline = Deadline(budget)

        await self.fill(field, text, timeout_ms=deadline.remaining_ms(floor=1))
        option = await self._find_option(options, text, deadline, budget)
        await self._click_option(option, field, budget, deadline)
        logger.debug(f"Picked autocomplete suggestion: {text!r}")

    async def _find_option(
        self,
        options: LocatorDescriptor,
        label: str,
        deadline: Deadline,
        budget: int,
    ) -> Locator:
        wanted = normalize_label(label)
        seen: List[str] = []

        async def option_visible() -> Tuple[bool, Optional[Locator]]:
            seen.clear()
            items = await self.smart.visible_matches(options, timeout_ms=deadline.remaining_ms())
            for item in items:
                text = normalize_label(await item.inner_text())
                if self.PENDING_SUGGESTIONS.match(text):
                    continue
                seen.append(text)
                if text == wanted:
                    return True, item
            return False, None

        try:
            result = await poll_until(
                option_visible,
                deadline.remaining_ms(),
                description=f"option {label!r} in '{options}'",
                config=self.smart.poll,
            )
        except ElementNotFound as e:
            raise OptionNotFound(str(options), label, timeout_ms=budget) from e
        if not result.success:
            raise OptionNotFound(str(options), label, seen=seen, timeout_ms=budget)
        return result.value

    async def _click_option(self, option: Locator, owner: LocatorDescriptor, budget: int, deadline: Deadline) -> None:
        try:
            await option.click(timeout=deadline.remaining_ms(floor=1))
        except PlaywrightError as e:
            raise ActionTimeout(str(owner), "click option", budget, reason=_first_line(e)) from e

    async def _verify_text(self, descriptor: LocatorDescriptor, expected: str, deadline: Deadline) -> None:
        wanted = normalize_label(expected)

        async def shows_expected() -> Tuple[bool, str]:
            handle = await self.smart.resolve(
                descriptor, timeout_ms=deadline.remaining_ms(), actionable=False
            )
            text = normalize_label(await handle.inner_text())
            return text == wanted, text

        result = await poll_until(
            shows_expected,
            min(self.settle_allowance_ms, deadline.remaining_ms()),
            description=f"text of '{descriptor}'",
            config=self.smart.poll,
        )
        if not result.success:
            raise VerificationMismatch(str(descriptor), expected=expected, actual=result.value or "")

    @allure.step("Set checkbox {descriptor} to {checked}")
    async def set_checkbox(
        self,
        descriptor: LocatorDescriptor,
        checked: bool = True,
        timeout_ms: Optional[int] = None,
    ) -> None:
        """
        Toggle the checkbox when its state differs from `checked`, then verify.

        The descriptor may point at the input itself or at its wrapping label
        (custom-styled checkboxes hide the native input behind the label).

        Raises:
            VerificationMismatch: the checked state did not follow
        """
        budget = self.budget_for(descriptor, timeout_ms)
        deadline = Deadline(budget)
        action = "Checking" if checked else "Unchecking"
        logger.info(f"{action} checkbox: {descriptor}")

        @with_retry(self.retry_config)
        async def attempt() -> Locator:
            handle = await self.smart.resolve(
                descriptor,
                timeout_ms=self._resolution_timeout(descriptor, deadline),
                actionable=True,
            )
            if await handle.is_checked() != checked:
                await handle.click(timeout=deadline.remaining_ms(floor=1))
            return handle

        try:
            handle = await attempt()
        except PlaywrightError as e:
            raise ActionTimeout(str(descriptor), "set_checked", budget, reason=_first_line(e)) from e

        async def in_state() -> Tuple[bool, bool]:
            state = await handle.is_checked()
            return state == checked, state

        result = await poll_until(
            in_state,
            min(self.settle_allowance_ms, deadline.remaining_ms()),
            description=f"checked state of '{descriptor}'",
            config=self.smart.poll,
        )
        if not result.success:
            raise VerificationMismatch(str(descriptor), expected=str(checked), actual=str(not checked))

    @allure.step("Assert visible: {descriptor}")
    async def assert_visible(
        self,
        descriptor: LocatorDescriptor,
        timeout_ms: Optional[int] = None,
    ) -> Locator:
        """
        Resolve `descriptor` without requiring it to be enabled.

        Raises:
            ElementNotFound: not visible within the timeout
        """
        return await self.smart.resolve(descriptor, timeout_ms=timeout_ms, actionable=False)

    async def get_text(
        self,
        descriptor: LocatorDescriptor,
        timeout_ms: Optional[int] = None,
    ) -> str:
        """Visible text of the element, whitespace-collapsed."""
        handle = await self.smart.resolve(descriptor, timeout_ms=timeout_ms, actionable=False)
        try:
            return " ".join((await handle.inner_text(timeout=self.settle_allowance_ms)).split())
        except PlaywrightError as e:
            raise ActionTimeout(str(descriptor), "read text", self.settle_allowance_ms, reason=_first_line(e)) from e

    async def visible_texts(self, descriptor: LocatorDescriptor) -> List[str]:
        """
        Texts of every element of `descriptor` visible right now.

        Raises:
            ScopeNotFound: the scope of `descriptor` is not on the page
            ActionTimeout: an element detached or re-rendered while being read
        """
        read_timeout = self.settle_allowance_ms
        try:
            items = await self.smart.visible_matches(descriptor, timeout_ms=0)
            return [" ".join((await item.inner_text(timeout=read_timeout)).split()) for item in items]
        except PlaywrightError as e:
            raise ActionTimeout(str(descriptor), "read text", read_timeout, reason=_first_line(e)) from e

    async def wait_until_hidden(
        self,
        descriptor: LocatorDescriptor,
        timeout_ms: Optional[int] = None,
    ) -> bool:
        """
        Wait until no element of `descriptor` is visible.

        Returns:
            True when hidden, False if still visible after the timeout
        """
        timeout = self.smart.timeout_for(descriptor, timeout_ms)

        async def hidden() -> Tuple[bool, int]:
            try:
                items = await self.smart.visible_matches(descriptor, timeout_ms=0)
            except ElementNotFound:
                return True, 0
            return not items, len(items)

        result = await poll_until(hidden, timeout, description=f"'{descriptor}' hidden", config=self.smart.poll)
        return result.success

    @allure.step("Wait for success signal: {operation}")
    async def wait_for_success_signal(
        self,
        signal: LocatorDescriptor,
        operation: str = "operation",
        timeout_ms: Optional[int] = None,
    ) -> None:
        """
        Poll for a success notification.

        Several stacked toasts all count; at least one must be visible.

        Raises:
            NoConfirmation: no success signal within the timeout
        """
        timeout = self.smart.timeout_for(signal, timeout_ms)

        async def shown() -> Tuple[bool, int]:
            items = await self.smart.visible_matches(signal, timeout_ms=0)
            return bool(items), len(items)

        result = await poll_until(shown, timeout, description=f"success signal for {operation}", config=self.smart.poll)
        if not result.success:
            logger.error(f"No success signal after {operation}")
            raise NoConfirmation(operation, timeout_ms=timeout)
        logger.info(f"✅ Success signal shown for {operation}")


__all__ = [
    "ElementActions",
    "RetryConfig",
    "with_retry",
    "normalize_label",
    "MASK",
]
