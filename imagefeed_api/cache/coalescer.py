"""
Single-flight fetch cache.

At most one fetch runs per key, however many callers ask for it at once:
the first caller records an in-progress asyncio.Task before it ever
suspends, later callers await that same task, and every waiter sees the one
outcome it produces. Successful values are memoized for the lifetime of the
cache; failures clear the entry so the next call fetches again.

The store is only touched from the owning event loop and never across an
await, so each lookup-and-insert step runs as one indivisible unit. No lock
is needed, and an instance must not be shared between event loops.

Cancelling a waiter never cancels the shared fetch, not even when it is the
only waiter: the task runs to completion and its outcome is still recorded.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

import orjson

from imagefeed.errors import FetchError

from .config import CacheConfig
from .keys import RequestKey


@dataclass(slots=True)
class InProgress:
    task: asyncio.Task


@dataclass(slots=True)
class Resolved:
    value: Any


CacheEntry = Union[InProgress, Resolved]

FetchFn = Callable[[RequestKey], Awaitable[Any]]


def _consume_exception(task: asyncio.Task) -> None:
    # A failed fetch whose waiters were all cancelled still counts as retrieved
    if not task.cancelled():
        task.exception()


class SingleFlightCache:
    def __init__(self, fetch_fn: FetchFn, name: str = "images"):
        self._fetch_fn = fetch_fn
        self._name = name
        self._store: dict[RequestKey, CacheEntry] = {}
        self._fetch_count = 0

    async def resolve(self, key: RequestKey) -> Any:
        """Return the value for `key`, fetching it at most once concurrently."""
        value, _ = await self.resolve_with_layer(key)
        return value

    async def resolve_with_layer(self, key: RequestKey) -> tuple[Any, str]:
        """
        Same as resolve().

        Returns:
            (value, layer) where layer is "memory" (memoized), "coalesced"
            (attached to another caller's fetch) or "live" (started the fetch).
        """
        entry = self._store.get(key)
        if isinstance(entry, Resolved):
            return entry.value, "memory"
        if isinstance(entry, InProgress):
            self._event("join", key)
            return await asyncio.shield(entry.task), "coalesced"

        task = self._start(key)
        return await asyncio.shield(task), "live"

    def _start(self, key: RequestKey) -> asyncio.Task:
        """Invoke the fetch function and record the handle. Must not await."""
        try:
            coro = self._fetch_fn(key)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(f"Fetch could not start: {e}", url=key.url) from e

        self._fetch_count += 1
        task = asyncio.create_task(self._run(key, coro), name=f"{self._name}:{key}")
        task.add_done_callback(_consume_exception)
        self._store[key] = InProgress(task)
        self._event("leader", key)
        return task

    async def _run(self, key: RequestKey, coro: Awaitable[Any]) -> Any:
        try:
            value = await coro
        except FetchError as e:
            self._forget(key)
            self._failed(key, e)
            raise
        except asyncio.CancelledError:
            self._forget(key)
            raise
        except Exception as e:
            self._forget(key)
            err = FetchError(f"Fetch failed: {e}", url=key.url)
            self._failed(key, err)
            raise err from e

        if self._owns(key):
            self._store[key] = Resolved(value)
        self._event("resolved", key)
        return value

    def _owns(self, key: RequestKey) -> bool:
        entry = self._store.get(key)
        return isinstance(entry, InProgress) and entry.task is asyncio.current_task()

    def _forget(self, key: RequestKey) -> None:
        if self._owns(key):
            del self._store[key]

    def _failed(self, key: RequestKey, e: FetchError) -> None:
        print(f"[cache] Fetch failed for {key}: {e}")
        self._event("failed", key, error=type(e).__name__)

    def _event(self, event: str, key: RequestKey, **fields: Any) -> None:
        if not CacheConfig.CACHE_EVENT_LOGS:
            return
        print(
            orjson.dumps(
                {"event": f"singleflight_{event}", "cache": self._name, "key": key.url, **fields}
            ).decode()
        )

    # ── Introspection ───────────────────────────────────────

    def contains(self, key: RequestKey) -> bool:
        return isinstance(self._store.get(key), Resolved)

    def is_in_flight(self, key: RequestKey) -> bool:
        return isinstance(self._store.get(key), InProgress)

    @property
    def in_flight_count(self) -> int:
        return sum(1 for e in self._store.values() if isinstance(e, InProgress))

    @property
    def resolved_count(self) -> int:
        return sum(1 for e in self._store.values() if isinstance(e, Resolved))

    @property
    def fetch_count(self) -> int:
        """Number of fetch function invocations since creation."""
        return self._fetch_count

    def stats(self) -> dict:
        return {
            "name": self._name,
            "resolved": self.resolved_count,
            "in_flight": self.in_flight_count,
            "fetches": self._fetch_count,
        }
