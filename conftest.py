"""
Root pytest configuration.
"""

from __future__ import annotations

from collections.abc import Generator

import pytest


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "security: Security-critical tests (identity spoofing, auth headers)",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


@pytest.fixture(autouse=True)
def reset_diagnostics() -> Generator[None, None, None]:
    """Reset the diagnostics cache and writer around each test.

    The diagnostics module caches the ``internal_logging_enabled`` setting
    at first access; resetting it keeps tests from inheriting state.
    """
    import cloudlog.core.diagnostics as diag

    diag._internal_logging_enabled = None
    diag.set_writer(None)
    yield
    diag._internal_logging_enabled = None
    diag.set_writer(None)


@pytest.fixture
def captured_diagnostics() -> Generator[list[dict], None, None]:
    """Collect diagnostics lines as parsed dicts instead of writing stderr."""
    import json

    import cloudlog.core.diagnostics as diag

    lines: list[dict] = []
    diag.set_writer(lambda line: lines.append(json.loads(line)))
    yield lines
    diag.set_writer(None)
