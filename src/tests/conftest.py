"""Pytest configuration and shared fixtures."""

import asyncio
import os
import re
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

# Set test environment before importing settings
os.environ["ENV"] = "development"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["LOG_FORMAT"] = "text"

from cache_facade import CacheFacade  # noqa: E402


def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate the subset of Redis glob syntax the facade emits."""
    out: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out), re.DOTALL)


class InMemoryStore:
    """In-memory double for the redis-py asyncio client.

    Replies mimic a client created with decode_responses=True. Expiry uses
    a manual clock advanced with advance().
    """

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}
        self.now = 0.0
        self.closed = False

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _purge(self, name: str) -> None:
        deadline = self._expires.get(name)
        if deadline is not None and deadline <= self.now:
            self._data.pop(name, None)
            self._expires.pop(name, None)

    def _live_keys(self) -> list[str]:
        for name in list(self._data):
            self._purge(name)
        return list(self._data)

    def ttl(self, name: str) -> float | None:
        self._purge(name)
        deadline = self._expires.get(name)
        return None if deadline is None else deadline - self.now

    async def get(self, name: str) -> str | None:
        await asyncio.sleep(0)
        self._purge(name)
        return self._data.get(name)

    async def set(
        self,
        name: str,
        value: Any,
        ex: int | None = None,
        get: bool = False,
    ) -> Any:
        await asyncio.sleep(0)
        self._purge(name)
        previous = self._data.get(name)
        self._data[name] = value.decode() if isinstance(value, bytes) else str(value)
        self._expires.pop(name, None)
        if ex is not None:
            self._expires[name] = self.now + ex
        return previous if get else True

    async def exists(self, *names: str) -> int:
        await asyncio.sleep(0)
        live = self._live_keys()
        return sum(1 for name in names if name in live)

    async def delete(self, *names: str) -> int:
        await asyncio.sleep(0)
        self._live_keys()
        removed = 0
        for name in names:
            if self._data.pop(name, None) is not None:
                removed += 1
            self._expires.pop(name, None)
        return removed

    async def scan_iter(
        self,
        match: str | None = None,
        count: int | None = None,
    ) -> AsyncIterator[str]:
        regex = _glob_to_regex(match or "*")
        for name in self._live_keys():
            await asyncio.sleep(0)
            if regex.fullmatch(name):
                yield name

    async def rpush(self, name: str, *values: Any) -> int:
        await asyncio.sleep(0)
        items = self._data.setdefault(name, [])
        items.extend(str(v) for v in values)
        return len(items)

    async def lrem(self, name: str, count: int, value: Any) -> int:
        await asyncio.sleep(0)
        items = self._data.get(name, [])
        removed = 0
        while removed < count and str(value) in items:
            items.remove(str(value))
            removed += 1
        if name in self._data and not items:
            del self._data[name]
        return removed

    async def hset(self, name: str, mapping: dict[str, Any] | None = None) -> int:
        await asyncio.sleep(0)
        fields = self._data.setdefault(name, {})
        created = sum(1 for field in mapping or {} if field not in fields)
        fields.update({field: str(v) for field, v in (mapping or {}).items()})
        return created

    async def hdel(self, name: str, *keys: str) -> int:
        await asyncio.sleep(0)
        fields = self._data.get(name, {})
        removed = sum(1 for key in keys if fields.pop(key, None) is not None)
        if name in self._data and not fields:
            del self._data[name]
        return removed

    async def hgetall(self, name: str) -> dict[str, str]:
        await asyncio.sleep(0)
        return dict(self._data.get(name, {}))

    async def incr(self, name: str, amount: int = 1) -> int:
        # No await between read and write: INCR is atomic
        value = int(self._data.get(name, 0)) + amount
        self._data[name] = str(value)
        await asyncio.sleep(0)
        return value

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_store() -> InMemoryStore:
    """In-memory Redis double."""
    return InMemoryStore()


@pytest.fixture
def cache(fake_store: InMemoryStore) -> CacheFacade:
    """Facade wired to the in-memory store."""
    return CacheFacade(client=fake_store)


@pytest.fixture
def failing_store() -> MagicMock:
    """Store whose every call fails with a connection error."""
    error = redis.ConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
    store = MagicMock()
    for method in (
        "get",
        "set",
        "exists",
        "delete",
        "rpush",
        "lrem",
        "hset",
        "hdel",
        "hgetall",
        "incr",
        "ping",
    ):
        setattr(store, method, AsyncMock(side_effect=error))

    async def broken_scan(*args: Any, **kwargs: Any) -> AsyncIterator[str]:
        raise error
        yield  # pragma: no cover

    store.scan_iter = MagicMock(side_effect=broken_scan)
    return store


@pytest.fixture
def failing_cache(failing_store: MagicMock) -> CacheFacade:
    """Facade wired to a store that is down."""
    return CacheFacade(client=failing_store)


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line(
        "markers", "integration: Integration tests (require external services)"
    )
    config.addinivalue_line("markers", "slow: Slow tests")
