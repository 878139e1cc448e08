"""Time to first interactive from browser traces."""

from first_interactive.artifacts import ComputedArtifactCache
from first_interactive.config import DEFAULT_POLICY, QuietWindowPolicy
from first_interactive.errors import (
    FirstInteractiveError,
    MissingTimingError,
    TraceBusyError,
    TraceTooShortError
)
from first_interactive.interactive import (
    compute_first_interactive,
    filter_long_tasks,
    request_first_interactive
)
from first_interactive.models import FirstInteractiveResult, LongTask, TimingReferences
from first_interactive.quiet_window import (
    NOT_LONELY,
    find_quiet_window,
    last_lonely_task_index,
    required_window_size_ms
)

__all__ = [
    "ComputedArtifactCache",
    "DEFAULT_POLICY",
    "FirstInteractiveError",
    "FirstInteractiveResult",
    "LongTask",
    "MissingTimingError",
    "NOT_LONELY",
    "QuietWindowPolicy",
    "TimingReferences",
    "TraceBusyError",
    "TraceTooShortError",
    "compute_first_interactive",
    "filter_long_tasks",
    "find_quiet_window",
    "last_lonely_task_index",
    "request_first_interactive",
    "required_window_size_ms"
]
