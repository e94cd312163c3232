"""
================================================================================
Run Configuration
================================================================================

Configuration value object for a UI test run, built once per process and
passed by reference into the page objects.

Configuration hierarchy (highest to lowest priority):
    1. Environment variables (BASE_URL, USER_EMAIL, USER_PASS, TIMEOUTS_ACTION_MS)
    2. `.env` file at the repository root
    3. YAML configuration file (config/config.yaml)
    4. Defaults

`BASE_URL` is required: a missing value is a single fail-fast
`ConfigurationError`. Missing credentials only produce a warning so that
tests without authentication can still run.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from dotenv import dotenv_values
from loguru import logger

from .errors import ConfigurationError


PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "config.yaml"
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"

SUPPORTED_BROWSERS = ("chromium", "firefox", "webkit")

DEFAULT_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"

_logger_initialized: bool = False


class ConfigSource:
    """
    Dot-notation access over YAML data with environment overrides.

    Environment Variable Mapping:
        - timeouts.action_ms -> TIMEOUTS_ACTION_MS
        - browser.headless -> BROWSER_HEADLESS
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None, env: Optional[Mapping[str, str]] = None):
        self._config = data or {}
        self._env = env if env is not None else os.environ

    @classmethod
    def from_file(cls, config_path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> "ConfigSource":
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        if not path.exists():
            logger.warning(
                f"Configuration file not found: {path}. "
                f"Using defaults and environment variables only."
            )
            return cls({}, env)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        logger.debug(f"Loaded configuration from: {path}")
        return cls(data, env)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        First checks environment variables, then YAML config, then default.
        """
        env_key = key.upper().replace(".", "_")
        env_value = self._env.get(env_key)
        if env_value is not None:
            return self._convert_type(env_value, default)

        value: Any = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = None
            if value is None:
                return default
        return value

    def env(self, name: str) -> Optional[str]:
        value = self._env.get(name)
        return value if value not in (None, "") else None

    @staticmethod
    def _convert_type(value: str, reference: Any) -> Any:
        """Convert an environment string to the type of the default."""
        if reference is None:
            return value
        if isinstance(reference, bool):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(reference, int):
            try:
                return int(value)
            except ValueError:
                return value
        if isinstance(reference, float):
            try:
                return float(value)
            except ValueError:
                return value
        if isinstance(reference, (list, tuple)):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@dataclass(frozen=True)
class RunConfig:
    """
    Immutable configuration for one test process.

    Attributes:
        base_url: Target application root (required)
        user_email: Login name for authenticated flows
        user_pass: Password for authenticated flows
        action_timeout_ms: Default resolution/action timeout
        navigation_timeout_ms: Timeout for page loads and navigation guards
        expect_timeout_ms: Timeout for success signals and post-conditions
        settle_allowance_ms: Fixed allowance added to an action's budget
        poll_interval_ms: Resolver/guard poll interval
        grid_settle_polls: Consecutive equal row counts that mean "settled"
        browsers: Browser engines to run against
        headless: Run browsers headless
        results_dir: Directory for failure artifacts
        trace / video / screenshot: Artifact policies
        retries: Test-level re-runs performed by the runner
        employee_name: Existing employee that new test users are attached to
    """
    base_url: str
    user_email: Optional[str] = None
    user_pass: Optional[str] = field(default=None, repr=False)
    action_timeout_ms: int = 15000
    navigation_timeout_ms: int = 20000
    expect_timeout_ms: int = 15000
    settle_allowance_ms: int = 2000
    poll_interval_ms: int = 100
    grid_settle_polls: int = 3
    browsers: Tuple[str, ...] = ("chromium",)
    headless: bool = True
    results_dir: Path = PROJECT_ROOT / "test-results"
    trace: str = "retain-on-failure"
    video: str = "retain-on-failure"
    screenshot: str = "only-on-failure"
    retries: int = 1
    employee_name: str = "Jane Doe"

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigurationError(
                "BASE_URL is not set. Define it in the environment or the .env file."
            )
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        unknown = [b for b in self.browsers if b not in SUPPORTED_BROWSERS]
        if unknown:
            raise ConfigurationError(f"Unsupported browser engine(s): {', '.join(unknown)}")

    @property
    def has_credentials(self) -> bool:
        return bool(self.user_email and self.user_pass)

    def credentials(self) -> Tuple[str, str]:
        """
        Raises:
            ConfigurationError: USER_EMAIL / USER_PASS are not configured
        """
        if not self.has_credentials:
            raise ConfigurationError("USER_EMAIL and USER_PASS must be set for authenticated flows")
        return self.user_email, self.user_pass

    def url(self, path: str = "") -> str:
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        env_file: Optional[Path] = None,
    ) -> "RunConfig":
        """
        Build the run configuration.

        Args:
            config_path: YAML file (defaults to config/config.yaml)
            env: Environment mapping (defaults to os.environ merged over `.env`)
            env_file: dotenv file (defaults to `.env` at the repository root)

        Raises:
            ConfigurationError: BASE_URL missing or invalid values
        """
        if env is None:
            env = load_environment(env_file or DEFAULT_ENV_FILE)
        source = ConfigSource.from_file(config_path, env)

        user_email = source.env("USER_EMAIL")
        user_pass = source.env("USER_PASS")
        if not user_email or not user_pass:
            logger.warning(
                "USER_EMAIL and USER_PASS should be set for login tests to work properly."
            )

        browsers = source.get("browser.engines", list(SUPPORTED_BROWSERS[:1]))
        if isinstance(browsers, str):
            browsers = [browsers]

        results_dir = Path(source.get("artifacts.results_dir", "test-results"))
        if not results_dir.is_absolute():
            results_dir = PROJECT_ROOT / results_dir

        return cls(
            base_url=source.env("BASE_URL") or "",
            user_email=user_email,
            user_pass=user_pass,
            action_timeout_ms=int(source.get("timeouts.action_ms", 15000)),
            navigation_timeout_ms=int(source.get("timeouts.navigation_ms", 20000)),
            expect_timeout_ms=int(source.get("timeouts.expect_ms", 15000)),
            settle_allowance_ms=int(source.get("timeouts.settle_allowance_ms", 2000)),
            poll_interval_ms=int(source.get("timeouts.poll_interval_ms", 100)),
            grid_settle_polls=int(source.get("timeouts.grid_settle_polls", 3)),
            browsers=tuple(browsers),
            headless=bool(source.get("browser.headless", True)),
            results_dir=results_dir,
            trace=str(source.get("artifacts.trace", "retain-on-failure")),
            video=str(source.get("artifacts.video", "retain-on-failure")),
            screenshot=str(source.get("artifacts.screenshot", "only-on-failure")),
            retries=int(source.get("runner.retries", 1)),
            employee_name=str(source.get("test_data.employee_name", "Jane Doe")),
        )


def load_environment(env_file: Path = DEFAULT_ENV_FILE, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """`.env` values overlaid by `environ` (defaults to os.environ)."""
    merged: Dict[str, str] = {}
    if env_file.exists():
        merged.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        logger.debug(f"Loaded .env from: {env_file}")
    merged.update(os.environ if environ is None else environ)
    return merged


def masked_environment(env: Optional[Mapping[str, str]] = None) -> Dict[str, Optional[str]]:
    """
    Required variables with secrets masked, for display.

    Returns:
        {name: masked value or None when unset}
    """
    if env is None:
        env = load_environment()
    shown: Dict[str, Optional[str]] = {}
    for name in ("BASE_URL", "USER_EMAIL", "USER_PASS"):
        value = env.get(name)
        if not value:
            shown[name] = None
        elif "PASS" in name:
            shown[name] = "******"
        elif "EMAIL" in name:
            shown[name] = value[:2] + "***"
        else:
            shown[name] = value
    return shown


def init_logger(level: Optional[str] = None, config_path: Optional[Path] = None) -> None:
    """
    Initializes the global Loguru logger with consistent configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to config value.
        config_path: YAML file holding the `logging` section
    """
    global _logger_initialized

    if _logger_initialized:
        return

    source = ConfigSource.from_file(config_path)
    log_level = (level or source.get("logging.level", "INFO")).upper()
    log_format = source.get("logging.format", DEFAULT_LOG_FORMAT)

    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format=log_format,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    log_file = source.get("logging.file", None)
    if log_file:
        log_path = Path(log_file)
        if not log_path.is_absolute():
            log_path = PROJECT_ROOT / log_path
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_path),
            level=log_level,
            format=log_format.replace("{level: <8}", "{level}"),
            rotation=source.get("logging.rotation", "10 MB"),
            retention=source.get("logging.retention", "7 days"),
            compression="zip",
            enqueue=True,
        )

    _logger_initialized = True
    logger.debug(f"Logger initialized with level: {log_level}")


__all__ = [
    "RunConfig",
    "ConfigSource",
    "ConfigurationError",
    "init_logger",
    "masked_environment",
    "load_environment",
    "SUPPORTED_BROWSERS",
    "DEFAULT_CONFIG_PATH",
]
