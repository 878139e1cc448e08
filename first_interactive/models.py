"""Value types shared by the quiet window search and the trace collaborator."""

from dataclasses import dataclass


def _pick(data: dict, *keys: str):
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass(frozen=True)
class LongTask:
    """A main thread task, in ms relative to navigation start."""

    start: float
    end: float

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Long task must end after it starts: start={self.start}, end={self.end}")

    @property
    def duration(self) -> float:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: dict) -> "LongTask":
        return cls(start=float(data["start"]), end=float(data["end"]))


@dataclass(frozen=True)
class TimingReferences:
    """
    Reference timestamps for one page load.

    navigation_start is absolute (trace clock, ms); every other field is
    relative to it. dom_content_loaded is None when the trace has no marker.
    """

    navigation_start: float
    first_meaningful_paint: float
    trace_end: float
    dom_content_loaded: float | None = None

    def to_dict(self) -> dict:
        return {
            "navigation_start_ms": self.navigation_start,
            "first_meaningful_paint_ms": self.first_meaningful_paint,
            "dom_content_loaded_ms": self.dom_content_loaded,
            "trace_end_ms": self.trace_end
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimingReferences":
        navigation_start = _pick(data, "navigation_start_ms", "navigation_start", "navigationStart")
        fmp = _pick(data, "first_meaningful_paint_ms", "first_meaningful_paint", "firstMeaningfulPaint")
        trace_end = _pick(data, "trace_end_ms", "trace_end", "traceEnd")
        dcl = _pick(data, "dom_content_loaded_ms", "dom_content_loaded", "domContentLoaded")

        missing = [
            name
            for name, value in [
                ("navigation_start", navigation_start),
                ("first_meaningful_paint", fmp),
                ("trace_end", trace_end)
            ]
            if value is None
        ]
        if missing:
            raise ValueError(f"Missing timing fields: {', '.join(missing)}")

        return cls(
            navigation_start=float(navigation_start),
            first_meaningful_paint=float(fmp),
            trace_end=float(trace_end),
            dom_content_loaded=float(dcl) if dcl is not None else None
        )


@dataclass(frozen=True)
class FirstInteractiveResult:
    """time_in_ms is relative to navigation start; timestamp is absolute microseconds."""

    time_in_ms: float
    timestamp: float

    def to_dict(self) -> dict:
        return {"timeInMs": self.time_in_ms, "timestamp": self.timestamp}
