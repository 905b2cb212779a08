"""Pytest session setup for backend test runs.

Lives at the backend/ root so it runs before any `taskhub` import: settings
are read at import time, so the test database URL must be in the environment
first.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_taskhub.db")
os.environ.setdefault("APP_ENV", "test")

import pytest


@pytest.fixture(scope="session")
def anyio_backend():
    # The client is written against asyncio; run every async test on it
    return "asyncio"
