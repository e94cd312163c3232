"""
================================================================================
Browser Manager
================================================================================

Browser lifecycle management for UI automation.

Features:
    - One browser engine per manager (chromium / firefox / webkit)
    - One isolated context per test: no cookies or sessions are shared
    - Trace and video recording with retain-on-failure semantics
    - Failure artifacts (screenshot, trace, video, URL) written to the
      results directory and attached to Allure

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import allure
from loguru import logger
from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Playwright,
)

from .config import RunConfig


@dataclass
class ArtifactPolicy:
    """
    What to record and keep for each test.

    Policies: "off", "on", "retain-on-failure" (trace/video),
    "off", "on", "only-on-failure" (screenshot).
    """
    trace: str = "retain-on-failure"
    video: str = "retain-on-failure"
    screenshot: str = "only-on-failure"

    @classmethod
    def from_config(cls, config: RunConfig) -> "ArtifactPolicy":
        return cls(trace=config.trace, video=config.video, screenshot=config.screenshot)

    def keep(self, policy: str, failed: bool) -> bool:
        if policy == "on":
            return True
        if policy in ("retain-on-failure", "only-on-failure", "on-first-retry"):
            return failed
        return False


class BrowserManager:
    """
    Manages one browser engine and the per-test contexts created from it.

    Usage:
        async with BrowserManager(browser_type="firefox") as manager:
            context = await manager.new_context(artifacts_dir=Path("test-results/x"))
            page = await context.new_page()
            ...
            await manager.close_context(context, failed=False)
    """

    # Default browser launch options
    DEFAULT_LAUNCH_OPTIONS: Dict[str, Any] = {
        "headless": True,
    }

    # Chromium-only flags
    CHROMIUM_ARGS: List[str] = [
        "--ignore-certificate-errors",
    ]

    # Default context options
    DEFAULT_CONTEXT_OPTIONS: Dict[str, Any] = {
        "viewport": {"width": 1920, "height": 1080},
        "ignore_https_errors": True,
    }

    def __init__(
        self,
        headless: bool = True,
        browser_type: str = "chromium",
        policy: Optional[ArtifactPolicy] = None,
        navigation_timeout_ms: int = 20000,
        action_timeout_ms: int = 15000,
    ):
        """
        Initialize browser manager.

        Args:
            headless: Run browser in headless mode
            browser_type: Browser to use - 'chromium', 'firefox', 'webkit'
            policy: Artifact recording policy
            navigation_timeout_ms: Default navigation timeout for new contexts
            action_timeout_ms: Default driver timeout for new contexts
        """
        self.headless = headless
        self.browser_type = browser_type
        self.policy = policy or ArtifactPolicy()
        self.navigation_timeout_ms = navigation_timeout_ms
        self.action_timeout_ms = action_timeout_ms

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._contexts: Dict[int, Dict[str, Any]] = {}

    @classmethod
    def from_config(cls, config: RunConfig, browser_type: str) -> "BrowserManager":
        return cls(
            headless=config.headless,
            browser_type=browser_type,
            policy=ArtifactPolicy.from_config(config),
            navigation_timeout_ms=config.navigation_timeout_ms,
            action_timeout_ms=config.action_timeout_ms,
        )

    async def __aenter__(self) -> "BrowserManager":
        """Async context manager entry - start browser."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - close browser."""
        await self.close()

    async def start(self) -> None:
        """Start Playwright and launch browser."""
        self._playwright = await async_playwright().start()

        if self.browser_type == "firefox":
            browser_launcher = self._playwright.firefox
        elif self.browser_type == "webkit":
            browser_launcher = self._playwright.webkit
        else:
            browser_launcher = self._playwright.chromium

        launch_options = {
            **self.DEFAULT_LAUNCH_OPTIONS,
            "headless": self.headless,
        }
        if self.browser_type == "chromium":
            launch_options["args"] = list(self.CHROMIUM_ARGS)

        self._browser = await browser_launcher.launch(**launch_options)
        logger.debug(
            f"Browser started: {self.browser_type} "
            f"(headless={self.headless})"
        )

    async def close(self) -> None:
        """Close remaining contexts and the browser."""
        for entry in list(self._contexts.values()):
            try:
                await entry["context"].close()
            except PlaywrightError as e:
                logger.debug(f"Context already closed: {e}")
        self._contexts.clear()

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.debug("Browser closed")

    async def new_context(
        self,
        artifacts_dir: Optional[Path] = None,
        **options: Any,
    ) -> BrowserContext:
        """
        Create a new isolated browser context.

        Each context is isolated - separate cookies, localStorage, etc.
        Video and tracing start here according to the artifact policy.

        Args:
            artifacts_dir: Where this test's artifacts go
            **options: Additional context options

        Returns:
            New BrowserContext
        """
        if not self._browser:
            raise RuntimeError("Browser not started. Call start() first.")

        context_options = {**self.DEFAULT_CONTEXT_OPTIONS, **options}
        video_tmp: Optional[Path] = None
        if artifacts_dir is not None and self.policy.video != "off":
            video_tmp = artifacts_dir / ".video"
            context_options["record_video_dir"] = str(video_tmp)

        context = await self._browser.new_context(**context_options)
        context.set_default_navigation_timeout(self.navigation_timeout_ms)
        context.set_default_timeout(self.action_timeout_ms)

        tracing = artifacts_dir is not None and self.policy.trace != "off"
        if tracing:
            await context.tracing.start(screenshots=True, snapshots=True)

        self._contexts[id(context)] = {
            "context": context,
            "artifacts_dir": artifacts_dir,
            "video_tmp": video_tmp,
            "tracing": tracing,
        }
        return context

    async def close_context(self, context: BrowserContext, failed: bool = False) -> List[Path]:
        """
        Close a test's context and keep or discard its artifacts.

        Args:
            context: Context created by `new_context`
            failed: Whether the test failed

        Returns:
            Paths of the artifacts that were kept
        """
        entry = self._contexts.pop(id(context), None) or {"context": context}
        artifacts_dir: Optional[Path] = entry.get("artifacts_dir")
        kept: List[Path] = []

        if artifacts_dir is not None:
            artifacts_dir.mkdir(parents=True, exist_ok=True)

        pages = list(context.pages)

        if artifacts_dir is not None and pages and self.policy.keep(self.policy.screenshot, failed):
            shot = artifacts_dir / "failure.png" if failed else artifacts_dir / "final.png"
            try:
                await pages[-1].screenshot(path=str(shot), full_page=True)
                kept.append(shot)
                allure.attach.file(str(shot), name=shot.stem, attachment_type=allure.attachment_type.PNG)
                allure.attach(pages[-1].url, name="Current URL", attachment_type=allure.attachment_type.TEXT)
            except PlaywrightError as e:
                logger.warning(f"Failed to capture screenshot: {e}")

        videos = [p.video for p in pages if p.video is not None]
        try:
            if entry.get("tracing"):
                if self.policy.keep(self.policy.trace, failed):
                    trace = artifacts_dir / "trace.zip"
                    await context.tracing.stop(path=str(trace))
                    kept.append(trace)
                    allure.attach.file(str(trace), name="trace", extension="zip")
                else:
                    await context.tracing.stop()
        finally:
            await context.close()

        # Videos are only complete once the context is closed
        video_tmp: Optional[Path] = entry.get("video_tmp")
        try:
            if videos and artifacts_dir is not None and self.policy.keep(self.policy.video, failed):
                for i, video in enumerate(videos):
                    target = artifacts_dir / f"video-{i}.webm"
                    await video.save_as(str(target))
                    kept.append(target)
                    allure.attach.file(str(target), name=target.stem, attachment_type=allure.attachment_type.WEBM)
        finally:
            if video_tmp is not None and video_tmp.exists():
                shutil.rmtree(video_tmp, ignore_errors=True)

        if kept:
            logger.info(f"Artifacts kept in {artifacts_dir}: {[p.name for p in kept]}")
        elif artifacts_dir is not None and artifacts_dir.exists() and not any(artifacts_dir.iterdir()):
            artifacts_dir.rmdir()
        return kept

    @property
    def browser(self) -> Optional[Browser]:
        """Get browser instance."""
        return self._browser


__all__ = [
    "BrowserManager",
    "ArtifactPolicy",
]
