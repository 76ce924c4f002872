"""Pytest configuration and shared fixtures."""

import pytest

# The timebase testing plugin is registered via a ``pytest11`` entry
# point (pyproject.toml) for external consumers.  In our own test
# suite we disable it (``-p no:timebase``) and load explicitly here
# instead, because conftest-based loading is processed after
# ``pytest-cov`` starts coverage tracing, so the timebase import
# chain is measured.
pytest_plugins = ["timebase.testing._plugin"]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (whole clock stacks)"
    )
