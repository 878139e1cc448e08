"""Errors raised while computing first interactive."""


TRACE_TOO_SHORT_MSG = "trace not at least 5 seconds longer than FMP"
TRACE_BUSY_MSG = "trace was busy the entire time"


class FirstInteractiveError(RuntimeError):
    """Base class for failures that prevent a first interactive value."""

    kind = "first_interactive_error"


class TraceTooShortError(FirstInteractiveError):
    kind = "trace_too_short"

    def __init__(self, message: str = TRACE_TOO_SHORT_MSG):
        super().__init__(message)


class TraceBusyError(FirstInteractiveError):
    """No quiet window could be confirmed before the trace ended."""

    kind = "trace_busy"

    def __init__(self, message: str = TRACE_BUSY_MSG):
        super().__init__(message)


class MissingTimingError(FirstInteractiveError):
    """A reference marker (navigation start, FMP, main thread) is absent from the trace."""

    kind = "missing_timing"
