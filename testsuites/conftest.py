"""
================================================================================
Test Suites Pytest Configuration
================================================================================

Registers the project-wide markers and tags collected tests by suite.

================================================================================
"""

import pytest


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    # Priority markers
    config.addinivalue_line(
        "markers", "P0: Critical priority tests - must pass for deployment"
    )
    config.addinivalue_line(
        "markers", "P1: High priority tests - important functionality"
    )
    config.addinivalue_line(
        "markers", "P2: Medium priority tests - edge cases and minor features"
    )
    config.addinivalue_line(
        "markers", "P3: Low priority tests - extensive validation"
    )

    # Test type markers
    config.addinivalue_line(
        "markers", "smoke: Quick verification tests"
    )
    config.addinivalue_line(
        "markers", "regression: Full regression test suite"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests against a live BASE_URL"
    )

    # Suite markers
    config.addinivalue_line(
        "markers", "ui: Browser-driven tests"
    )
    config.addinivalue_line(
        "markers", "unit: Engine tests against the in-memory fake page"
    )

    # Feature markers
    config.addinivalue_line(
        "markers", "auth: Login and logout"
    )
    config.addinivalue_line(
        "markers", "admin: Admin > User Management"
    )


def pytest_collection_modifyitems(config, items):
    """Tag tests with their suite marker from the directory they live in."""
    for item in items:
        path = str(item.fspath)
        if "ui_testing" in path:
            item.add_marker(pytest.mark.ui)
        elif "unit" in path:
            item.add_marker(pytest.mark.unit)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "HRM UI Automation - Resilient Interaction Engine",
        "=" * 60,
        "",
    ]
