"""Pytest configuration for claudeplex tests."""

import os

import pytest

# Configuration is read at import time; point it somewhere that never exists
# so tests always see the schema defaults.
os.environ.setdefault("CLAUDEPLEX_CONFIG_PATH", "/nonexistent/claudeplex/config.yml")
os.environ.setdefault("CLAUDEPLEX_ENV_PATH", "/nonexistent/claudeplex/.env")

from loguru import logger  # noqa: E402

logger.remove()


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))
