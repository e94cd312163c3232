# ================================================================================
# Wait Helpers Module
# ================================================================================
#
# Condition-based waiting for the UI engine. Every wait in the framework is a
# bounded poll of an explicit condition (visibility, enablement, URL pattern,
# network settle, row-count stability); there are no fixed sleeps.
#
# Key Features:
#   - Deadline bookkeeping shared by nested waits
#   - Async polling with a fixed poll interval or exponential backoff
#   - Transient Playwright errors are recorded, not raised, while polling
#
# Usage:
#   ok, value = await poll_until(check, timeout_ms=5000, description="toast")
#   deadline = Deadline(15000); await step(timeout=deadline.remaining_ms())
#
# ================================================================================

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Tuple, TypeVar

from loguru import logger
from playwright.async_api import Error as PlaywrightError


T = TypeVar("T")

CheckFn = Callable[[], Awaitable[Tuple[bool, T]]]


@dataclass
class WaitConfig:
    """
    Configuration for polling waits.

    Attributes:
        interval_ms: Initial interval between polls in milliseconds
        multiplier: Multiplier applied to the interval after each poll
        max_interval_ms: Upper bound for the interval
    """
    interval_ms: int = 100
    multiplier: float = 1.0
    max_interval_ms: int = 1000

    def next_interval(self, current_ms: float) -> float:
        return min(current_ms * self.multiplier, self.max_interval_ms)


class Deadline:
    """A point in (monotonic) time that nested waits share."""

    def __init__(self, timeout_ms: float):
        self.timeout_ms = timeout_ms
        self._expires_at = time.monotonic() + max(timeout_ms, 0) / 1000.0

    def remaining_ms(self, floor: int = 0) -> int:
        left = int((self._expires_at - time.monotonic()) * 1000)
        return max(left, floor)

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining_ms()}ms of {self.timeout_ms}ms)"


@dataclass
class PollResult(Generic[T]):
    """Outcome of `poll_until`."""
    success: bool
    value: Optional[T]
    attempts: int
    last_error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.success


async def poll_until(
    check_fn: CheckFn,
    timeout_ms: float,
    description: str = "condition",
    config: Optional[WaitConfig] = None,
) -> PollResult:
    """
    Poll `check_fn` until it reports success or the timeout elapses.

    The check is always evaluated at least once, even with a zero timeout.

    Args:
        check_fn: Async callable returning (success, value)
        timeout_ms: Total budget in milliseconds
        description: Human-readable description for logging
        config: Poll interval configuration

    Returns:
        PollResult with the last observed value
    """
    config = config or WaitConfig()
    deadline = Deadline(timeout_ms)
    interval = float(config.interval_ms)
    attempts = 0
    value = None
    last_error: Optional[str] = None

    while True:
        attempts += 1
        try:
            success, value = await check_fn()
        except PlaywrightError as e:
            # Nodes detach during re-render; the next poll sees the new tree.
            success = False
            last_error = str(e).splitlines()[0][:200]
            logger.debug(f"Poll {attempts} for {description} raised: {last_error}")

        if success:
            if attempts > 1:
                logger.debug(f"{description}: satisfied after {attempts} polls")
            return PollResult(True, value, attempts, last_error)

        if deadline.expired:
            return PollResult(False, value, attempts, last_error)

        await asyncio.sleep(min(interval, deadline.remaining_ms(floor=1)) / 1000.0)
        interval = config.next_interval(interval)


__all__ = [
    "WaitConfig",
    "Deadline",
    "PollResult",
    "poll_until",
]
