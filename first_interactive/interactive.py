"""First interactive: quiet window search floored by DOM content loaded."""

import asyncio
import logging
from typing import Awaitable, Callable, Hashable, Iterable, Sequence

from first_interactive.artifacts import ComputedArtifactCache
from first_interactive.config import DEFAULT_POLICY, QuietWindowPolicy
from first_interactive.errors import TraceTooShortError
from first_interactive.models import FirstInteractiveResult, LongTask, TimingReferences
from first_interactive.quiet_window import find_quiet_window

logger = logging.getLogger(__name__)


def filter_long_tasks(
    tasks: Iterable[LongTask],
    fmp: float,
    policy: QuietWindowPolicy = DEFAULT_POLICY
) -> list[LongTask]:
    """Keep tasks at or above the long task threshold that end after FMP."""
    return [
        task
        for task in tasks
        if task.duration >= policy.long_task_threshold_ms and task.end > fmp
    ]


def compute_first_interactive(
    timings: TimingReferences,
    long_tasks: Sequence[LongTask],
    policy: QuietWindowPolicy = DEFAULT_POLICY
) -> FirstInteractiveResult:
    """
    Compute first interactive from reference timings and main thread tasks.

    Raises:
        TraceTooShortError: Less than max_quiet_window_ms of trace after FMP
        TraceBusyError: No quiet window was found before the trace ended
    """
    fmp = timings.first_meaningful_paint
    if timings.trace_end - fmp < policy.max_quiet_window_ms:
        raise TraceTooShortError()

    candidates = filter_long_tasks(long_tasks, fmp, policy)
    logger.debug("Searching quiet window over %d long tasks after FMP=%.1fms", len(candidates), fmp)
    quiet_window_start = find_quiet_window(fmp, timings.trace_end, candidates, policy)

    value_in_ms = quiet_window_start
    if timings.dom_content_loaded is not None:
        value_in_ms = max(quiet_window_start, timings.dom_content_loaded)

    return FirstInteractiveResult(
        time_in_ms=value_in_ms,
        timestamp=(value_in_ms + timings.navigation_start) * 1000
    )


async def request_first_interactive(
    cache: ComputedArtifactCache,
    trace_key: Hashable,
    load_tasks: Callable[[], Awaitable[Sequence[LongTask]]],
    load_timings: Callable[[], Awaitable[TimingReferences]],
    policy: QuietWindowPolicy = DEFAULT_POLICY
) -> FirstInteractiveResult:
    """
    Resolve the main thread tasks and timings for a trace, then compute first interactive.

    Both inputs and the result are memoized in the cache under trace_key.
    """
    async def compute() -> FirstInteractiveResult:
        long_tasks, timings = await asyncio.gather(
            cache.request("main_thread_tasks", trace_key, load_tasks),
            cache.request("trace_of_tab", trace_key, load_timings)
        )
        return compute_first_interactive(timings, long_tasks, policy)

    return await cache.request("first_interactive", (trace_key, policy), compute)
