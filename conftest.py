"""
Repository-level pytest configuration.

  - Configures the loguru logger once per process (per xdist worker)

Secrets are never set here: BASE_URL, USER_EMAIL and USER_PASS come from the
environment or a local `.env` file (see `.env.example`).
"""

from __future__ import annotations

from testsuites.ui_testing.framework.config import init_logger


def pytest_configure(config):
    verbose = config.getoption("verbose", 0) > 1
    init_logger("DEBUG" if verbose else None)
