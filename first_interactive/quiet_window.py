"""
Quiet window search over main thread long tasks.

A quiet window starts at the end of a long task and must stay free of
disqualifying work for a duration that decays with the time elapsed since
first meaningful paint. Short, isolated tasks ("lonely" tasks) are forgiven.
"""

import logging
import math
from typing import Sequence

from first_interactive.config import DEFAULT_POLICY, QuietWindowPolicy, WINDOW_DECAY_RATE
from first_interactive.errors import TraceBusyError
from first_interactive.models import LongTask

logger = logging.getLogger(__name__)

NOT_LONELY = -1


def required_window_size_ms(elapsed_ms: float) -> float:
    """
    Quiet duration required for a window starting elapsed_ms after FMP.

    Starts at 5000ms and decays towards 1000ms.
    """
    t = elapsed_ms / 1000
    return (4 * math.exp(-WINDOW_DECAY_RATE * t) + 1) * 1000


def last_lonely_task_index(
    long_tasks: Sequence[LongTask],
    i: int,
    fmp: float,
    trace_end: float,
    policy: QuietWindowPolicy = DEFAULT_POLICY
) -> tuple[bool, int]:
    """
    Check whether long_tasks[i] seeds a lonely task envelope.

    Returns:
        Tuple of (is_lonely, last index covered by the envelope). The index is
        NOT_LONELY when the task is not lonely.
    """
    if i <= 0:
        # Nothing precedes the first task, so its leading padding is unknown.
        return False, NOT_LONELY

    task = long_tasks[i]
    previous = long_tasks[i - 1]
    padding = policy.lonely_task_neighbor_distance_ms
    if (
        task.start < fmp + policy.lonely_task_fmp_distance_ms
        or trace_end - task.end < padding
        or task.start - previous.end < padding
        or task.end - task.start > policy.lonely_task_envelope_ms
    ):
        return False, NOT_LONELY

    envelope_end = task.start + policy.lonely_task_envelope_ms
    window_end = envelope_end + padding

    # A later task that fits the envelope again overrides an earlier spill.
    last_index = i
    j = i + 1
    while j < len(long_tasks) and long_tasks[j].start < window_end:
        if long_tasks[j].end > envelope_end:
            last_index = NOT_LONELY
        else:
            last_index = j
        j += 1

    return last_index != NOT_LONELY, last_index


def find_quiet_window(
    fmp: float,
    trace_end: float,
    long_tasks: Sequence[LongTask],
    policy: QuietWindowPolicy = DEFAULT_POLICY
) -> float:
    """
    Find the first long task boundary that starts a quiet window.

    Args:
        fmp: First meaningful paint, ms relative to navigation start
        trace_end: End of the trace, same time base
        long_tasks: Long tasks ending after FMP, ascending by start

    Returns:
        Start of the first quiet window (ms relative to navigation start)

    Raises:
        TraceBusyError: No quiet window fits before the end of the trace
    """
    if not long_tasks or long_tasks[0].start > fmp + policy.max_quiet_window_ms:
        return fmp

    for i, task in enumerate(long_tasks):
        window_start = task.end
        window_end = window_start + required_window_size_ms(window_start - fmp)
        if window_end > trace_end:
            logger.debug("Window at %.1fms needs trace until %.1fms, trace ends at %.1fms",
                         window_start, window_end, trace_end)
            raise TraceBusyError()

        is_quiet = True
        j = i + 1
        while j < len(long_tasks) and long_tasks[j].start < window_end:
            is_lonely, last_index = last_lonely_task_index(long_tasks, j, fmp, trace_end, policy)
            if not is_lonely:
                is_quiet = False
                break
            j = last_index + 1

        if is_quiet:
            return window_start
        logger.debug("Window at %.1fms broken by task starting at %.1fms",
                     window_start, long_tasks[j].start)

    raise TraceBusyError()
