"""Global test configuration for the tool gateway."""

import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_gateway_env():
    """Keep GATEWAY_* variables from the host out of settings-based tests.

    Clears the get_settings cache before and after each test so a test that
    sets environment variables never leaks a cached Settings instance.
    """
    from tool_gateway.config import get_settings

    saved = {k: v for k, v in os.environ.items() if k.startswith("GATEWAY_")}
    for key in saved:
        del os.environ[key]
    get_settings.cache_clear()

    yield

    for key in [k for k in os.environ if k.startswith("GATEWAY_")]:
        del os.environ[key]
    os.environ.update(saved)
    get_settings.cache_clear()
