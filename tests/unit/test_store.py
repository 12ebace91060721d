"""
Tests for the Motor-backed store's timeout and connection handling.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from jobportal.data.store import MongoStore, request_timeout
from jobportal.utils.exceptions import DependencyException


@pytest.fixture
def mongo_store():
    return MongoStore(MagicMock(), timeout_seconds=5.0)


class TestBoundedCalls:
    @pytest.mark.asyncio
    async def test_result_passes_through(self, mongo_store):
        async def ok():
            return 42

        assert await mongo_store._bounded("op", ok()) == 42

    @pytest.mark.asyncio
    async def test_request_timeout_bounds_call(self, mongo_store):
        with request_timeout(0.01):
            with pytest.raises(DependencyException, match="timed out"):
                await mongo_store._bounded("slow", asyncio.sleep(1))

    @pytest.mark.asyncio
    async def test_store_default_timeout(self):
        store = MongoStore(MagicMock(), timeout_seconds=0.01)
        with pytest.raises(DependencyException):
            await store._bounded("slow", asyncio.sleep(1))

    @pytest.mark.asyncio
    async def test_connection_failure_mapped(self, mongo_store):
        async def unreachable():
            raise ServerSelectionTimeoutError("no servers")

        with pytest.raises(DependencyException, match="unavailable"):
            await mongo_store._bounded("find", unreachable())

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, mongo_store):
        async def broken():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await mongo_store._bounded("find", broken())


class TestRequestTimeout:
    @pytest.mark.asyncio
    async def test_scope_is_restored(self, mongo_store):
        with request_timeout(0.01):
            pass
        assert await mongo_store._bounded("fast", asyncio.sleep(0.02, result="done")) == "done"
