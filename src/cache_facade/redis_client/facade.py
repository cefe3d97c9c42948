"""Redis cache facade.

Thin async layer over redis-py exposing string, list and hash operations
plus an atomic auto-suffixed key writer.

Error policy:
- Mutating operations never raise store errors. They log the failure and
  return an OperationResult with status STORE_ERROR.
- Reads (get, get_all_hash_fields, get_keys_by_prefix, key_exists) and
  delete_by_prefix propagate redis-py exceptions.
- has_key reports False when the store cannot be reached.
"""

from __future__ import annotations

import json
import re
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any

import redis.asyncio as redis
from pydantic import BaseModel

from cache_facade.config import Settings, get_settings
from cache_facade.models import OperationResult
from cache_facade.observability import (
    get_logger,
    log_store_call_end,
    log_store_call_start,
)

from .protocol import KeyValueStore

logger = get_logger(__name__)

# Redis glob metacharacters that must not leak out of a literal prefix
_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


def serialize_value(value: Any) -> str | bytes | int | float:
    """Convert a value into something redis-py accepts.

    Strings, bytes and numbers pass through. Pydantic models are dumped as
    JSON, anything else is JSON encoded.
    """
    if isinstance(value, (str, bytes)):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    return json.dumps(value, default=str)


def prefix_pattern(prefix: str) -> str:
    """Build a SCAN/KEYS pattern matching every key starting with prefix."""
    return _GLOB_SPECIAL.sub(r"\\\1", prefix) + "*"


class CacheFacade:
    """Async key-value cache facade backed by Redis.

    Usage:
        async with CacheFacade("redis://localhost:6379") as cache:
            await cache.set("user:1", "alice", ttl_seconds=60)
            name = await cache.get("user:1")
    """

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        db: int = 0,
        client: KeyValueStore | None = None,
        key_separator: str = ":",
        scan_batch_size: int = 500,
        socket_timeout: float | None = None,
    ):
        """Initialize the facade.

        Args:
            url: Redis connection URL
            db: Redis database number
            client: Pre-built store client; when given, connect() is a no-op
                and close() leaves the client open
            key_separator: Separator used by set_auto_key
            scan_batch_size: SCAN COUNT hint and delete batch size
            socket_timeout: redis-py socket timeout in seconds
        """
        self._url = url
        self._db = db
        self._key_separator = key_separator
        self._scan_batch_size = max(1, scan_batch_size)
        self._socket_timeout = socket_timeout
        self._client: KeyValueStore | None = client
        self._pool: redis.ConnectionPool | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        client: KeyValueStore | None = None,
    ) -> CacheFacade:
        """Build a facade from application settings.

        Args:
            settings: Settings to read (defaults to get_settings())
            client: Optional pre-built store client, see __init__
        """
        settings = settings or get_settings()
        return cls(
            url=settings.redis.url,
            db=settings.redis.db,
            client=client,
            key_separator=settings.redis.key_separator,
            scan_batch_size=settings.redis.scan_batch_size,
            socket_timeout=settings.redis.socket_timeout,
        )

    async def connect(self) -> None:
        """Create the connection pool and client."""
        if self._client is not None:
            return
        self._pool = redis.ConnectionPool.from_url(
            self._url,
            db=self._db,
            decode_responses=True,
            socket_timeout=self._socket_timeout,
        )
        self._client = redis.Redis(connection_pool=self._pool)
        logger.info("Redis facade connected", db=self._db)

    async def close(self) -> None:
        """Close the client and pool created by connect()."""
        if self._pool is None:
            return
        if self._client is not None:
            await self._client.aclose()
        await self._pool.disconnect()
        self._client = None
        self._pool = None

    async def __aenter__(self) -> "CacheFacade":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def get_client(self) -> KeyValueStore:
        """Get the active store client."""
        if self._client is None:
            raise RuntimeError("Redis client not connected. Call connect() first.")
        return self._client

    async def _mutate(
        self,
        operation: str,
        key: str,
        call: Callable[[KeyValueStore], Awaitable[Any]],
        interpret: Callable[[Any], OperationResult] | None = None,
    ) -> OperationResult:
        """Run a store call, converting redis errors into a failed result."""
        client = self.get_client()
        log_store_call_start(logger, operation, key)
        start = time.perf_counter()

        try:
            reply = await call(client)
        except redis.RedisError as e:
            log_store_call_end(
                logger,
                operation,
                key,
                success=False,
                duration_ms=(time.perf_counter() - start) * 1000,
                error=str(e),
            )
            return OperationResult.failure(operation, key, str(e))

        log_store_call_end(
            logger,
            operation,
            key,
            success=True,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        if interpret is None:
            return OperationResult.success(operation, key)
        return interpret(reply)

    # =========================================================================
    # String operations
    # =========================================================================

    async def get(self, key: str) -> str | None:
        """Read a string value.

        Returns:
            Stored value or None if the key is absent
        """
        return await self.get_client().get(key)

    async def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: int | None = None,
    ) -> OperationResult:
        """Write a value, optionally expiring after ttl_seconds.

        Raises:
            ValueError: If ttl_seconds is given and is not a positive int
        """
        if ttl_seconds is not None and (
            isinstance(ttl_seconds, bool)
            or not isinstance(ttl_seconds, int)
            or ttl_seconds <= 0
        ):
            raise ValueError(f"ttl_seconds must be a positive integer, got {ttl_seconds!r}")

        serialized = serialize_value(value)
        return await self._mutate(
            "set",
            key,
            lambda client: client.set(key, serialized, ex=ttl_seconds),
        )

    async def set_auto_key(self, key_prefix: str, value: Any) -> OperationResult:
        """Write value under ``{key_prefix}{sep}{n}`` with n taken from a counter.

        The counter lives at key_prefix itself and is advanced with INCR, so
        concurrent writers always receive distinct suffixes starting at 0.

        Returns:
            Result whose value is the generated key
        """
        serialized = serialize_value(value)

        async def write(client: KeyValueStore) -> str:
            counter = await client.incr(key_prefix)
            generated = f"{key_prefix}{self._key_separator}{counter - 1}"
            await client.set(generated, serialized)
            return generated

        return await self._mutate(
            "set_auto_key",
            key_prefix,
            write,
            lambda generated: OperationResult.success("set_auto_key", key_prefix, generated),
        )

    async def get_and_set(self, key: str, value: Any) -> OperationResult:
        """Overwrite a value.

        Returns:
            Result whose value is the previous value (None if there was none)
        """
        serialized = serialize_value(value)
        return await self._mutate(
            "get_and_set",
            key,
            lambda client: client.set(key, serialized, get=True),
            lambda previous: OperationResult.success("get_and_set", key, previous),
        )

    async def delete(self, key: str) -> OperationResult:
        """Delete a key. NOT_FOUND if it did not exist."""
        return await self._mutate(
            "delete",
            key,
            lambda client: client.delete(key),
            lambda removed: (
                OperationResult.success("delete", key, removed)
                if removed
                else OperationResult.not_found("delete", key, removed)
            ),
        )

    # =========================================================================
    # Key inspection
    # =========================================================================

    async def has_key(self, key: str) -> bool:
        """Check whether a key exists.

        Store errors are logged and reported as False. Use key_exists() to
        have them raised instead.
        """
        try:
            return await self.key_exists(key)
        except redis.RedisError as e:
            logger.warning("Existence check failed", key=key, error=str(e))
            return False

    async def key_exists(self, key: str) -> bool:
        """Check whether a key exists, propagating store errors."""
        return await self.get_client().exists(key) > 0

    async def get_keys_by_prefix(self, prefix: str) -> set[str]:
        """Return all keys starting with prefix."""
        client = self.get_client()
        return {
            key
            async for key in client.scan_iter(
                match=prefix_pattern(prefix),
                count=self._scan_batch_size,
            )
        }

    async def delete_by_prefix(self, prefix: str) -> int:
        """Delete all keys starting with prefix.

        Keys are collected with SCAN and deleted in batches, so the server is
        never blocked by a single KEYS call. The walk still covers the whole
        keyspace.

        Returns:
            Number of keys deleted
        """
        client = self.get_client()
        deleted = 0
        batch: list[str] = []

        async for key in client.scan_iter(
            match=prefix_pattern(prefix),
            count=self._scan_batch_size,
        ):
            batch.append(key)
            if len(batch) >= self._scan_batch_size:
                deleted += await client.delete(*batch)
                batch = []

        if batch:
            deleted += await client.delete(*batch)

        logger.info("Deleted keys by prefix", prefix=prefix, count=deleted)
        return deleted

    # =========================================================================
    # List operations
    # =========================================================================

    async def add_list(self, key: str, value: Any) -> OperationResult:
        """Append one element to the tail of a list.

        Returns:
            Result whose value is the list length after the push
        """
        serialized = serialize_value(value)
        return await self._mutate(
            "add_list",
            key,
            lambda client: client.rpush(key, serialized),
            lambda length: OperationResult.success("add_list", key, length),
        )

    async def add_list_all(self, key: str, values: Iterable[Any]) -> OperationResult:
        """Append elements to the tail of a list, preserving their order."""
        serialized = [serialize_value(v) for v in values]
        if not serialized:
            return OperationResult.success("add_list_all", key, 0)

        return await self._mutate(
            "add_list_all",
            key,
            lambda client: client.rpush(key, *serialized),
            lambda length: OperationResult.success("add_list_all", key, length),
        )

    async def remove_first_list_match(self, key: str, value: Any) -> OperationResult:
        """Remove the first element equal to value. NOT_FOUND if none matched."""
        serialized = serialize_value(value)
        return await self._mutate(
            "remove_first_list_match",
            key,
            lambda client: client.lrem(key, 1, serialized),
            lambda removed: (
                OperationResult.success("remove_first_list_match", key, removed)
                if removed
                else OperationResult.not_found("remove_first_list_match", key, removed)
            ),
        )

    # =========================================================================
    # Hash operations
    # =========================================================================

    async def add_hash(self, key: str, fields: Mapping[str, Any]) -> OperationResult:
        """Write several hash fields at once.

        Returns:
            Result whose value is the number of newly created fields
        """
        mapping = {field: serialize_value(v) for field, v in fields.items()}
        if not mapping:
            return OperationResult.success("add_hash", key, 0)

        return await self._mutate(
            "add_hash",
            key,
            lambda client: client.hset(key, mapping=mapping),
            lambda created: OperationResult.success("add_hash", key, created),
        )

    async def delete_hash_field(self, key: str, field: str) -> OperationResult:
        """Delete one hash field. NOT_FOUND if the field did not exist."""
        return await self._mutate(
            "delete_hash_field",
            key,
            lambda client: client.hdel(key, field),
            lambda removed: (
                OperationResult.success("delete_hash_field", key, removed)
                if removed
                else OperationResult.not_found("delete_hash_field", key, removed)
            ),
        )

    async def get_all_hash_fields(self, key: str) -> dict[str, str]:
        """Read every field of a hash. Empty dict if the key is absent."""
        return await self.get_client().hgetall(key)

    # =========================================================================
    # Health Check
    # =========================================================================

    async def health_check(self) -> dict[str, Any]:
        """Check Redis connectivity.

        Returns:
            Health status dict
        """
        try:
            await self.get_client().ping()
        except (redis.RedisError, RuntimeError) as e:
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy"}
