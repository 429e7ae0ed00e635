### Description ###
# VetPractice Core - Multi-Tenant Veterinary Practice Backend
# - Tenant Connection Manager -
# Author: Bailey Dixon
# Date: 10/18/2026
# Python: 3.11
####################

"""
Tenant Connection Manager

Keeps one live, pooled database handle per tenant and shares it across all
concurrent requests for that tenant:

- Injectable cache (TenantConnectionCache) with an in-memory default
- Single-flight opens: concurrent first callers for an uncached tenant
  await the same in-flight future instead of opening duplicates
- Bounded open time (asyncio.wait_for), one retry after a backoff, then
  ConnectionUnavailable
- Failed opens are never cached; idle handles are health-checked on reuse
  and re-opened if the check fails

All coordination relies on the event loop: between two awaits nothing
else touches the cache or the pending map, so no locks are taken.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from vetcore.config_schema import TenancyConfig
from vetcore.errors import ConnectionUnavailable
from vetcore.services.tenant_resolver import DEFAULT_TENANT_KEY, TenantDescriptor
from vetcore.utils import setup_logger

logger = setup_logger("vetcore.tenancy")


class TenantDatabase:
    """A tenant's pooled engine plus its session factory"""

    def __init__(self, key: str, engine: Engine):
        self.key = key
        self.engine = engine
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def __repr__(self):
        return f"<TenantDatabase(key='{self.key}', url='{self.engine.url!r}')>"

    def session(self) -> Session:
        return self.session_factory()

    def ping(self) -> None:
        """Run a trivial query; raises on a broken connection"""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.engine.dispose()


def build_engine(url: str, pool_size: int = 3, connect_timeout: float = 30) -> Engine:
    """Create a pooled engine for a tenant URL"""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_size=pool_size,
        max_overflow=0,
        pool_pre_ping=True,
        connect_args={"connect_timeout": int(connect_timeout)},
    )


def make_tenant_opener(
    pool_size: int = 3,
    connect_timeout: float = 30,
) -> Callable[[TenantDescriptor], Awaitable[TenantDatabase]]:
    """
    Build the default opener: create the engine and prove it with a ping.

    The ping runs in a worker thread so the event loop keeps serving other
    tenants while the driver connects.
    """

    async def open_tenant_database(descriptor: TenantDescriptor) -> TenantDatabase:
        database = TenantDatabase(
            descriptor.key,
            build_engine(descriptor.url, pool_size=pool_size, connect_timeout=connect_timeout),
        )
        try:
            await asyncio.to_thread(database.ping)
        except BaseException:
            database.dispose()
            raise
        return database

    return open_tenant_database


@dataclass
class CachedConnection:
    """A live handle and its bookkeeping"""

    handle: TenantDatabase
    opened_at: float
    last_used_at: float
    hits: int = 0
    opened_wall: datetime = field(default_factory=lambda: datetime.now(UTC))


class TenantConnectionCache(Protocol):
    """Storage for live tenant handles. At most one entry per key."""

    def get(self, key: str) -> CachedConnection | None: ...

    def set(self, key: str, entry: CachedConnection) -> None: ...

    def invalidate(self, key: str) -> CachedConnection | None: ...

    def items(self) -> list[tuple[str, CachedConnection]]: ...

    def clear(self) -> list[CachedConnection]: ...


@dataclass
class InMemoryConnectionCache:
    """Process-local dict-backed cache"""

    _entries: dict[str, CachedConnection] = field(default_factory=dict)

    def get(self, key: str) -> CachedConnection | None:
        return self._entries.get(key)

    def set(self, key: str, entry: CachedConnection) -> None:
        self._entries[key] = entry

    def invalidate(self, key: str) -> CachedConnection | None:
        return self._entries.pop(key, None)

    def items(self) -> list[tuple[str, CachedConnection]]:
        return list(self._entries.items())

    def clear(self) -> list[CachedConnection]:
        entries = list(self._entries.values())
        self._entries.clear()
        return entries


@dataclass
class ConnectionStats:
    key: str
    opened_at: datetime
    idle_seconds: float
    hits: int


class TenantConnectionManager:
    """
    Per-tenant connection cache with single-flight opening.

    Args:
        opener: async callable turning a descriptor into a TenantDatabase
        cache: handle storage (defaults to InMemoryConnectionCache)
        ttl_seconds: idle time after which a cached handle is health-checked
        connect_timeout: upper bound on one open attempt, in seconds
        retry_backoff: delay before the single retry, in seconds
        clock: monotonic clock, injectable for tests
        sleep: backoff sleeper, injectable for tests
    """

    def __init__(
        self,
        opener: Callable[[TenantDescriptor], Awaitable[TenantDatabase]] | None = None,
        cache: TenantConnectionCache | None = None,
        ttl_seconds: float = 300,
        connect_timeout: float = 30,
        retry_backoff: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._opener = opener or make_tenant_opener(connect_timeout=connect_timeout)
        self._cache = cache if cache is not None else InMemoryConnectionCache()
        self.ttl_seconds = ttl_seconds
        self.connect_timeout = connect_timeout
        self.retry_backoff = retry_backoff
        self._clock = clock
        self._sleep = sleep
        self._pending: dict[str, asyncio.Future] = {}
        # Bumped on every eviction; an open started under an older generation is not cached
        self._generations: dict[str, int] = {}
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, tenancy: TenancyConfig, **kwargs) -> "TenantConnectionManager":
        kwargs.setdefault(
            "opener",
            make_tenant_opener(
                pool_size=tenancy.pool_size,
                connect_timeout=tenancy.connect_timeout_seconds,
            ),
        )
        return cls(
            ttl_seconds=tenancy.connection_ttl_seconds,
            connect_timeout=tenancy.connect_timeout_seconds,
            retry_backoff=tenancy.retry_backoff_seconds,
            **kwargs,
        )

    @property
    def cache(self) -> TenantConnectionCache:
        return self._cache

    # ----------------------------------------
    # Lookup
    # ----------------------------------------

    async def get_connection_for_tenant(self, descriptor: TenantDescriptor) -> TenantDatabase:
        """
        Return the live handle for a tenant, opening it if needed.

        Raises:
            ConnectionUnavailable: open failed twice or timed out
        """
        key = descriptor.key
        entry = self._cache.get(key)

        if entry is not None:
            if not self._is_stale(entry):
                return self._touch(entry)

            if await self._is_healthy(entry.handle):
                logger.info(f"Reusing connection for tenant '{key}' after health check")
                return self._touch(entry)

            # Another caller may already have replaced the entry while we pinged
            if self._cache.get(key) is entry:
                self._evict(key, "failed health check")

        return await self._open_single_flight(descriptor)

    def _is_stale(self, entry: CachedConnection) -> bool:
        return self._clock() - entry.last_used_at > self.ttl_seconds

    def _touch(self, entry: CachedConnection) -> TenantDatabase:
        entry.last_used_at = self._clock()
        entry.hits += 1
        return entry.handle

    async def _is_healthy(self, handle: TenantDatabase) -> bool:
        try:
            await asyncio.wait_for(asyncio.to_thread(handle.ping), timeout=self.connect_timeout)
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Health check failed for tenant '{handle.key}': {e!s}")
            return False

    # ----------------------------------------
    # Single-flight open
    # ----------------------------------------

    async def _open_single_flight(self, descriptor: TenantDescriptor) -> TenantDatabase:
        key = descriptor.key

        # A concurrent open may have finished while this caller was health-checking
        entry = self._cache.get(key)
        if entry is not None and not self._is_stale(entry):
            return self._touch(entry)

        future = self._pending.get(key)
        if future is None:
            future = asyncio.get_running_loop().create_future()
            # Mark the exception retrieved even if every waiter was cancelled
            future.add_done_callback(lambda f: f.cancelled() or f.exception())
            self._pending[key] = future

            generation = self._generations.get(key, 0)
            task = asyncio.create_task(self._do_open(descriptor, future, generation))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        # Shielded so one cancelled request does not cancel the open for the rest
        return await asyncio.shield(future)

    async def _do_open(self, descriptor: TenantDescriptor, future: asyncio.Future, generation: int) -> None:
        key = descriptor.key
        try:
            handle = await self._open_with_retry(descriptor)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            if not future.done():
                future.set_exception(e)
        else:
            if self._generations.get(key, 0) == generation:
                now = self._clock()
                self._cache.set(key, CachedConnection(handle=handle, opened_at=now, last_used_at=now))
                logger.info(f"Opened connection for tenant '{key}'")
            else:
                # Evicted mid-open: serve the callers already waiting, keep nothing
                handle.dispose()
                logger.info(f"Discarded connection for tenant '{key}' opened before eviction")
            if not future.done():
                future.set_result(handle)
        finally:
            if self._pending.get(key) is future:
                del self._pending[key]

    async def _open_with_retry(self, descriptor: TenantDescriptor) -> TenantDatabase:
        last_error: Exception | None = None

        for attempt in (1, 2):
            try:
                return await asyncio.wait_for(self._opener(descriptor), timeout=self.connect_timeout)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Connection open for tenant '{descriptor.key}' failed "
                    f"(attempt {attempt}/2): {type(e).__name__}: {e!s}"
                )
                if attempt == 1:
                    await self._sleep(self.retry_backoff)

        raise ConnectionUnavailable(descriptor.key) from last_error

    # ----------------------------------------
    # Eviction & maintenance
    # ----------------------------------------

    def _forget_pending(self, key: str) -> None:
        """Detach any in-flight open so its handle is never cached"""
        self._generations[key] = self._generations.get(key, 0) + 1
        self._pending.pop(key, None)

    def _evict(self, key: str, reason: str) -> bool:
        self._forget_pending(key)
        entry = self._cache.invalidate(key)
        if entry is None:
            return False
        entry.handle.dispose()
        logger.info(f"Evicted connection for tenant '{key}' ({reason})")
        return True

    def report_failure(self, key: str) -> bool:
        """Evict a handle after a handler hit a connection-level error"""
        return self._evict(key, "connection error")

    def close_tenant(self, key: str) -> bool:
        """Close and forget one tenant's handle"""
        return self._evict(key, "closed")

    def close_all(self) -> int:
        """Close every cached handle; returns how many were closed"""
        for key in list(self._pending):
            self._forget_pending(key)
        entries = self._cache.clear()
        for entry in entries:
            entry.handle.dispose()
        if entries:
            logger.info(f"Closed {len(entries)} tenant connection(s)")
        return len(entries)

    async def check_health(self, key: str) -> bool | None:
        """Ping a cached handle; None if the tenant has no live handle"""
        entry = self._cache.get(key)
        if entry is None:
            return None
        healthy = await self._is_healthy(entry.handle)
        if not healthy and self._cache.get(key) is entry:
            self._evict(key, "failed health check")
        return healthy

    def active_connections(self) -> list[ConnectionStats]:
        now = self._clock()
        return [
            ConnectionStats(
                key=key,
                opened_at=entry.opened_wall,
                idle_seconds=round(now - entry.last_used_at, 3),
                hits=entry.hits,
            )
            for key, entry in self._cache.items()
        ]


# ----------------------------------------
# Process-wide instances
# ----------------------------------------

_manager: TenantConnectionManager | None = None
_default_database: TenantDatabase | None = None


def get_connection_manager() -> TenantConnectionManager:
    """Get or create the global connection manager"""
    global _manager
    if _manager is None:
        from vetcore.config import get_app_config

        _manager = TenantConnectionManager.from_config(get_app_config().tenancy)
    return _manager


def configure_connection_manager(manager: TenantConnectionManager | None) -> TenantConnectionManager | None:
    """Replace the global connection manager (closing the old one's handles)"""
    global _manager
    if _manager is not None and _manager is not manager:
        _manager.close_all()
    _manager = manager
    return _manager


def get_default_connection() -> TenantDatabase:
    """
    Process-wide connection for requests without a tenant.

    Created lazily on first use from default_database_url.
    """
    global _default_database
    if _default_database is None:
        from vetcore.config import get_settings

        settings = get_settings()
        _default_database = TenantDatabase(
            DEFAULT_TENANT_KEY,
            build_engine(settings.default_database_url),
        )
        logger.info("Opened default connection")
    return _default_database


def set_default_connection(database: TenantDatabase | None) -> None:
    """Install (or clear with None) the default connection"""
    global _default_database
    if _default_database is not None and _default_database is not database:
        _default_database.dispose()
    _default_database = database
