#!/usr/bin/env python3
# ================================================================================
# Test Runner Script
# ================================================================================
#
# Main entry point for executing the HRM UI automation suites.
#
# Features:
#   - Run engine unit tests (no browser needed) and/or the E2E UI suite
#   - Select browser engines and headed mode through the run configuration
#   - Re-run failed tests only (pytest --lf) up to N times
#   - Generate Allure reports
#   - Fail fast on a missing BASE_URL before any browser starts
#
# Usage:
#   python run_tests.py --suite unit
#   python run_tests.py --suite ui --browser chromium firefox --tags P0 smoke
#   python run_tests.py --suite all --parallel 4 --retries 1
#   python run_tests.py --check-env
#
# ================================================================================

import argparse
import os
import shutil
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from testsuites.ui_testing.framework.config import SUPPORTED_BROWSERS, RunConfig, load_environment, masked_environment
from testsuites.ui_testing.framework.errors import ConfigurationError


# Configure logging
logger.remove()
logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    level="INFO"
)

SUITE_PATHS = {
    "unit": ["testsuites/unit"],
    "ui": ["testsuites/ui_testing/tests"],
    "all": ["testsuites/"],
}

# pytest exit code for "tests ran and some failed"
TESTS_FAILED = 1
CONFIG_ERROR = 2


class TestRunner:
    """
    Main test runner class for orchestrating test execution.

    This class handles:
    - Run configuration validation
    - Parallel execution configuration
    - Re-running failed tests
    - Report generation
    """

    __test__ = False

    def __init__(
        self,
        suite: str = "all",
        tags: List[str] = None,
        parallel: int = 1,
        browsers: List[str] = None,
        headless: bool = True,
        retries: Optional[int] = None,
        allure_report: bool = True,
        verbose: bool = False
    ):
        """
        Initialize test runner.

        Args:
            suite: Test suite to run - "unit", "ui", "all"
            tags: List of pytest markers to filter tests
            parallel: Number of parallel workers
            browsers: Browser engines for UI tests (default: from config)
            headless: Run browser in headless mode
            retries: Re-runs of failed tests (default: from config)
            allure_report: Generate Allure report
            verbose: Enable verbose output
        """
        self.suite = suite
        self.tags = tags or []
        self.parallel = parallel
        self.browsers = browsers or []
        self.headless = headless
        self.retries = retries
        self.allure_report = allure_report
        self.verbose = verbose

        # Paths
        self.root_dir = Path(__file__).parent
        self.reports_dir = self.root_dir / "reports"
        self.allure_results = self.reports_dir / "allure-results"
        self.allure_report_dir = self.reports_dir / "allure-report"

    @property
    def needs_browser(self) -> bool:
        return self.suite in ("ui", "all")

    def run(self) -> int:
        """
        Execute the test run.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        logger.info("=" * 60)
        logger.info("Starting Test Execution")
        logger.info("=" * 60)
        logger.info(f"Suite: {self.suite}")
        logger.info(f"Tags: {self.tags or 'All'}")
        logger.info(f"Parallel Workers: {self.parallel}")
        if self.needs_browser:
            logger.info(f"Browsers: {', '.join(self.browsers) or 'from config'}")
            logger.info(f"Headless: {self.headless}")
        logger.info("=" * 60)

        env = self._build_environment()
        config = self._load_config(env)
        if self.needs_browser and config is None:
            return CONFIG_ERROR

        retries = self.retries
        if retries is None:
            retries = config.retries if config is not None else 0

        self._prepare_environment()

        cmd = self._build_pytest_command()
        logger.info(f"Executing: {' '.join(cmd)}")
        exit_code = subprocess.run(cmd, cwd=str(self.root_dir), env=env).returncode

        for attempt in range(1, retries + 1):
            if exit_code != TESTS_FAILED:
                break
            logger.warning(f"Re-running failed tests ({attempt}/{retries})...")
            exit_code = subprocess.run(cmd + ["--lf"], cwd=str(self.root_dir), env=env).returncode

        # Generate report
        if self.allure_report:
            self._generate_allure_report()

        # Print summary
        self._print_summary(exit_code)

        return exit_code

    def _build_environment(self) -> Dict[str, str]:
        """Process environment plus the run options the configuration reads."""
        env = dict(os.environ)
        if self.browsers:
            env["BROWSER_ENGINES"] = ",".join(self.browsers)
        if not self.headless:
            env["BROWSER_HEADLESS"] = "false"
        return env

    def _load_config(self, env: Dict[str, str]) -> Optional[RunConfig]:
        try:
            return RunConfig.load(env=load_environment(environ=env))
        except ConfigurationError as e:
            log = logger.error if self.needs_browser else logger.debug
            log(f"Configuration error: {e}")
            return None

    def _prepare_environment(self) -> None:
        """Prepare test environment."""
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        self.allure_results.mkdir(parents=True, exist_ok=True)
        logger.debug("Environment prepared")

    def _build_pytest_command(self) -> List[str]:
        """Build the pytest command with all options."""
        cmd = [sys.executable, "-m", "pytest", *SUITE_PATHS[self.suite]]

        # Add tags filter
        if self.tags:
            marker_expr = " or ".join(self.tags)
            cmd.extend(["-m", marker_expr])

        # Add parallel execution
        if self.parallel > 1:
            cmd.extend(["-n", str(self.parallel)])

        # Add Allure
        if self.allure_report:
            cmd.extend(["--alluredir", str(self.allure_results)])

        # Add verbosity
        if self.verbose:
            cmd.append("-v")
        else:
            cmd.append("-q")

        return cmd

    def _generate_allure_report(self) -> None:
        """Generate Allure HTML report."""
        if shutil.which("allure") is None:
            logger.warning("Allure CLI not found. Please install Allure to generate reports.")
            return

        logger.info("Generating Allure report...")
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        report_path = self.reports_dir / f"allure-report-{timestamp}"

        result = subprocess.run([
            "allure", "generate",
            str(self.allure_results),
            "-o", str(report_path),
            "--clean"
        ])
        if result.returncode != 0:
            logger.error(f"Failed to generate Allure report (exit code: {result.returncode})")
            return

        # Create/update latest symlink
        latest_link = self.allure_report_dir
        if latest_link.is_symlink():
            latest_link.unlink()
        elif latest_link.exists():
            shutil.rmtree(latest_link)
        latest_link.symlink_to(report_path.name)

        logger.info(f"Report generated: {report_path}")
        logger.info(f"Latest report: {self.allure_report_dir}")

    def _print_summary(self, exit_code: int) -> None:
        """Print test execution summary."""
        logger.info("=" * 60)
        if exit_code == 0:
            logger.info("✅ TEST EXECUTION COMPLETED SUCCESSFULLY")
        else:
            logger.error(f"❌ TEST EXECUTION FAILED (exit code: {exit_code})")

        if self.allure_report:
            logger.info(f"📊 Report available at: {self.allure_report_dir}")

        logger.info("=" * 60)


def check_environment() -> int:
    """Print the required variables (secrets masked); non-zero when BASE_URL is missing."""
    shown = masked_environment()
    logger.info("Environment:")
    for name, value in shown.items():
        logger.info(f"  {name}: {value if value is not None else '(not set)'}")
    if not shown["BASE_URL"]:
        logger.error("BASE_URL is required")
        return CONFIG_ERROR
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="HRM UI Automation Test Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the engine unit tests (no browser, no BASE_URL needed)
  python run_tests.py --suite unit

  # Run P0 smoke UI tests in parallel on two engines
  python run_tests.py --suite ui --tags P0 smoke --parallel 4 --browser chromium firefox

  # Run UI tests with visible browser, re-running failures twice
  python run_tests.py --suite ui --no-headless --retries 2

  # Show the configured environment
  python run_tests.py --check-env
        """
    )

    parser.add_argument(
        "--suite",
        choices=sorted(SUITE_PATHS),
        default="all",
        help="Test suite to run (default: all)"
    )

    parser.add_argument(
        "--tags",
        nargs="+",
        default=[],
        help="Pytest markers to filter tests (e.g., P0 smoke regression)"
    )

    parser.add_argument(
        "--parallel", "-n",
        type=int,
        default=1,
        help="Number of parallel workers (default: 1)"
    )

    parser.add_argument(
        "--browser",
        nargs="+",
        choices=SUPPORTED_BROWSERS,
        default=[],
        help="Browser engines for UI tests (default: browser.engines in config)"
    )

    parser.add_argument(
        "--no-headless",
        action="store_true",
        help="Run browser in headed mode (visible)"
    )

    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        help="Re-run failed tests up to N times (default: runner.retries in config)"
    )

    parser.add_argument(
        "--no-allure",
        action="store_true",
        help="Disable Allure report generation"
    )

    parser.add_argument(
        "--check-env",
        action="store_true",
        help="Show the configured environment (secrets masked) and exit"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args()

    if args.check_env:
        sys.exit(check_environment())

    # Create and run test runner
    runner = TestRunner(
        suite=args.suite,
        tags=args.tags,
        parallel=args.parallel,
        browsers=args.browser,
        headless=not args.no_headless,
        retries=args.retries,
        allure_report=not args.no_allure,
        verbose=args.verbose
    )

    exit_code = runner.run()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
