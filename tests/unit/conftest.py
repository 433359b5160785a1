import pytest
from contextlib import asynccontextmanager
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock


@asynccontextmanager
async def _savepoint():
    yield


@pytest.fixture
def mock_uow():
    """Mock unit of work; savepoint() is a no-op async context manager"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    uow.savepoint = MagicMock(side_effect=lambda: _savepoint())
    return uow


@pytest.fixture
def fixed_now():
    return datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def mock_clock(fixed_now):
    """Clock frozen at fixed_now"""
    clock = MagicMock()
    clock.now = MagicMock(return_value=fixed_now)
    return clock
