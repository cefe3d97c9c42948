"""Narrow store interface used by CacheFacade.

``redis.asyncio.Redis`` satisfies this protocol. Anything else that
implements the same coroutine signatures (e.g. a test double) can be
injected instead.
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol


class KeyValueStore(Protocol):
    """Subset of the redis-py asyncio client that the facade calls."""

    async def get(self, name: str) -> str | None: ...

    async def set(
        self,
        name: str,
        value: Any,
        ex: int | None = None,
        get: bool = False,
    ) -> Any: ...

    async def exists(self, *names: str) -> int: ...

    async def delete(self, *names: str) -> int: ...

    def scan_iter(
        self,
        match: str | None = None,
        count: int | None = None,
    ) -> AsyncIterator[str]: ...

    async def rpush(self, name: str, *values: Any) -> int: ...

    async def lrem(self, name: str, count: int, value: Any) -> int: ...

    async def hset(self, name: str, mapping: dict[str, Any] | None = None) -> int: ...

    async def hdel(self, name: str, *keys: str) -> int: ...

    async def hgetall(self, name: str) -> dict[str, str]: ...

    async def incr(self, name: str, amount: int = 1) -> int: ...

    async def ping(self) -> bool: ...

    async def aclose(self) -> None: ...
