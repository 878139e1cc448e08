"""Keyed, at-most-once memoization for values derived from a trace."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class ComputedArtifactCache:
    """
    Memoize async computations by (artifact name, key).

    Concurrent requests for the same entry await one in-flight future, so each
    computation runs at most once. Failures are kept as well; recomputing a
    static trace would fail the same way.
    """

    def __init__(self):
        self._entries: dict[tuple[str, Hashable], asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def contains(self, name: str, key: Hashable) -> bool:
        return (name, key) in self._entries

    def clear(self) -> None:
        self._entries.clear()

    async def request(self, name: str, key: Hashable, compute: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the artifact for (name, key), running compute() on first request.

        Args:
            name: Artifact name, e.g. "trace_of_tab"
            key: Identity of the trace the artifact derives from
            compute: Zero-argument coroutine function producing the artifact
        """
        entry_key = (name, key)
        future = self._entries.get(entry_key)
        if future is not None:
            logger.debug("Artifact %s for %r served from cache", name, key)
            return await asyncio.shield(future)

        future = asyncio.get_running_loop().create_future()
        self._entries[entry_key] = future
        logger.debug("Computing artifact %s for %r", name, key)
        try:
            result = await compute()
        except Exception as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        finally:
            # Cancellation or interpreter exits leave nothing to share; waiters
            # see the cancellation and the next request recomputes.
            if not future.done():
                self._entries.pop(entry_key, None)
                future.cancel()
        return await future
