"""Policy constants for the first interactive computation."""

from dataclasses import dataclass, replace


LONG_TASK_THRESHOLD_MS = 50
LONELY_TASK_FMP_DISTANCE_MS = 5000
LONELY_TASK_ENVELOPE_MS = 250
LONELY_TASK_NEIGHBOR_DISTANCE_MS = 1000
MAX_QUIET_WINDOW_MS = 5000
WINDOW_DECAY_RATE = 0.045

DEFAULT_SCHEMA_VERSION = "FI1"
DEFAULT_TOP_N = 5


@dataclass(frozen=True)
class QuietWindowPolicy:
    """Tunable thresholds used by the quiet window search (all in ms)."""

    long_task_threshold_ms: float = LONG_TASK_THRESHOLD_MS
    lonely_task_fmp_distance_ms: float = LONELY_TASK_FMP_DISTANCE_MS
    lonely_task_envelope_ms: float = LONELY_TASK_ENVELOPE_MS
    lonely_task_neighbor_distance_ms: float = LONELY_TASK_NEIGHBOR_DISTANCE_MS
    max_quiet_window_ms: float = MAX_QUIET_WINDOW_MS

    def with_overrides(self, **overrides) -> "QuietWindowPolicy":
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)

    def to_dict(self) -> dict:
        return {
            "long_task_threshold_ms": self.long_task_threshold_ms,
            "lonely_task_fmp_distance_ms": self.lonely_task_fmp_distance_ms,
            "lonely_task_envelope_ms": self.lonely_task_envelope_ms,
            "lonely_task_neighbor_distance_ms": self.lonely_task_neighbor_distance_ms,
            "max_quiet_window_ms": self.max_quiet_window_ms
        }


DEFAULT_POLICY = QuietWindowPolicy()
