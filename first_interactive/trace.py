"""Chrome trace loading and the first interactive report."""

import asyncio
import logging

from perfetto.trace_processor import TraceProcessor

from first_interactive.artifacts import ComputedArtifactCache
from first_interactive.config import (
    DEFAULT_POLICY,
    DEFAULT_SCHEMA_VERSION,
    DEFAULT_TOP_N,
    LONG_TASK_THRESHOLD_MS,
    QuietWindowPolicy
)
from first_interactive.errors import FirstInteractiveError, MissingTimingError
from first_interactive.interactive import filter_long_tasks, request_first_interactive
from first_interactive.models import FirstInteractiveResult, LongTask, TimingReferences

logger = logging.getLogger(__name__)

MAIN_THREAD_NAME = "CrRendererMain"
NAVIGATION_START_MARKER = "navigationStart"
FMP_MARKER = "firstMeaningfulPaint"
FMP_CANDIDATE_MARKER = "firstMeaningfulPaintCandidate"
DCL_MARKER = "domContentLoadedEventEnd"


def _q(tp: TraceProcessor, sql: str) -> list[dict]:
    """Execute a SQL query and return results as a list of dictionaries."""
    result = tp.query(sql)
    rows = []
    for row in result:
        row_dict = {col: getattr(row, col) for col in result.column_names}
        rows.append(row_dict)
    return rows


def _safe_q(tp: TraceProcessor, sql: str, assumption_key: str, assumptions: dict | None) -> list[dict]:
    """Execute a SQL query, returning [] on failure and recording the reason."""
    try:
        return _q(tp, sql)
    except Exception as exc:
        logger.debug("Query for %s failed: %s", assumption_key, exc)
        if assumptions is not None and assumption_key not in assumptions:
            assumptions[assumption_key] = f"Query failed for {assumption_key}: {str(exc)}"
        return []


def _set_assumption(assumptions: dict, key: str, note: str) -> None:
    if key not in assumptions:
        assumptions[key] = note


def _ns_to_ms(value: float) -> float:
    return value / 1e6


class ChromeTraceAnalyzer:
    """Wrapper for Perfetto TraceProcessor over a Chrome JSON trace."""

    def __init__(self, trace_path: str, tp: TraceProcessor | None = None):
        """
        Initialize the analyzer with a trace file.

        Args:
            trace_path: Path to the Chrome trace file
            tp: Already opened TraceProcessor; one is created when omitted
        """
        self.trace_path = trace_path
        self.tp = tp if tp is not None else TraceProcessor(trace=trace_path)

    def close(self):
        """Close the trace processor."""
        self.tp.close()

    def get_trace_bounds_ns(self, assumptions: dict) -> tuple[int | None, int | None]:
        rows = _safe_q(
            self.tp,
            "SELECT start_ts, end_ts FROM trace_bounds",
            "trace_bounds",
            assumptions
        )
        if not rows:
            return None, None
        return rows[0].get("start_ts"), rows[0].get("end_ts")

    def resolve_main_thread(self, assumptions: dict) -> dict | None:
        """
        Resolve the renderer main thread, preferring the busiest one.
        """
        rows = _safe_q(
            self.tp,
            f"""
            SELECT
                t.utid AS utid,
                t.tid AS tid,
                t.upid AS upid,
                t.name AS name,
                p.pid AS pid,
                p.name AS process_name,
                COUNT(s.id) AS slice_count
            FROM thread t
            LEFT JOIN process p ON t.upid = p.upid
            JOIN thread_track tt ON tt.utid = t.utid
            JOIN slice s ON s.track_id = tt.id
            WHERE t.name = '{MAIN_THREAD_NAME}'
            GROUP BY t.utid
            ORDER BY slice_count DESC
            LIMIT 1
            """,
            "main_thread",
            assumptions
        )
        if not rows:
            return None
        return {
            "utid": rows[0].get("utid"),
            "tid": rows[0].get("tid"),
            "upid": rows[0].get("upid"),
            "name": rows[0].get("name"),
            "pid": rows[0].get("pid"),
            "process_name": rows[0].get("process_name")
        }

    def _marker_ts(
        self,
        name: str,
        upid: int | None,
        after_ts: int | None,
        latest: bool,
        assumptions: dict
    ) -> int | None:
        where_clauses = [f"s.name = '{name}'"]
        if upid is not None:
            # Markers sit on either a thread track or a process track of the page's renderer.
            where_clauses.append(
                f"""(
                    s.track_id IN (
                        SELECT tt.id FROM thread_track tt JOIN thread t ON tt.utid = t.utid
                        WHERE t.upid = {upid}
                    )
                    OR s.track_id IN (SELECT pt.id FROM process_track pt WHERE pt.upid = {upid})
                )"""
            )
        if after_ts is not None:
            where_clauses.append(f"s.ts >= {after_ts}")
        where_sql = " AND ".join(where_clauses)
        aggregate = "MAX" if latest else "MIN"

        rows = _safe_q(
            self.tp,
            f"SELECT {aggregate}(s.ts) AS ts FROM slice s WHERE {where_sql}",
            name,
            assumptions
        )
        if not rows:
            return None
        return rows[0].get("ts")

    def get_timing_references(self, main_thread: dict | None, assumptions: dict) -> TimingReferences:
        """
        Derive the reference timestamps for the page load.

        Markers are limited to the process owning the main thread. FMP falls
        back to the last FMP candidate when no final FMP was recorded.

        Raises:
            MissingTimingError: navigation start, FMP or trace end is unavailable
        """
        upid = main_thread.get("upid") if main_thread else None
        if upid is None:
            _set_assumption(
                assumptions,
                "timing_markers",
                f"No {MAIN_THREAD_NAME} process resolved; timing markers taken from the whole trace"
            )

        navigation_start_ns = self._marker_ts(NAVIGATION_START_MARKER, upid, None, False, assumptions)
        if navigation_start_ns is None:
            raise MissingTimingError(f"No {NAVIGATION_START_MARKER} marker found in trace")

        fmp_ns = self._marker_ts(FMP_MARKER, upid, navigation_start_ns, False, assumptions)
        if fmp_ns is None:
            fmp_ns = self._marker_ts(FMP_CANDIDATE_MARKER, upid, navigation_start_ns, True, assumptions)
            if fmp_ns is None:
                raise MissingTimingError(f"No {FMP_MARKER} marker found after {NAVIGATION_START_MARKER}")
            _set_assumption(
                assumptions,
                "first_meaningful_paint",
                f"{FMP_MARKER} missing; used last {FMP_CANDIDATE_MARKER}"
            )

        _, end_ns = self.get_trace_bounds_ns(assumptions)
        if end_ns is None:
            raise MissingTimingError("Trace bounds unavailable")

        dcl_ns = self._marker_ts(DCL_MARKER, upid, navigation_start_ns, False, assumptions)
        if dcl_ns is None:
            _set_assumption(
                assumptions,
                "dom_content_loaded",
                f"No {DCL_MARKER} marker found; first interactive not floored by DCL"
            )

        return TimingReferences(
            navigation_start=_ns_to_ms(navigation_start_ns),
            first_meaningful_paint=_ns_to_ms(fmp_ns - navigation_start_ns),
            trace_end=_ns_to_ms(end_ns - navigation_start_ns),
            dom_content_loaded=_ns_to_ms(dcl_ns - navigation_start_ns) if dcl_ns is not None else None
        )

    def get_main_thread_tasks(
        self,
        main_thread: dict | None,
        navigation_start_ms: float,
        assumptions: dict
    ) -> list[LongTask]:
        """
        Top-level slices on the main thread, relative to navigation start.

        Raises:
            MissingTimingError: no renderer main thread was resolved
        """
        if not main_thread or main_thread.get("utid") is None:
            raise MissingTimingError(f"No {MAIN_THREAD_NAME} thread found in trace")

        rows = _safe_q(
            self.tp,
            f"""
            SELECT s.ts AS ts, s.dur AS dur
            FROM slice s
            JOIN thread_track tt ON s.track_id = tt.id
            WHERE tt.utid = {main_thread.get('utid')} AND s.depth = 0 AND s.dur > 0
            ORDER BY s.ts
            """,
            "main_thread_tasks",
            assumptions
        )

        tasks = []
        for row in rows:
            ts = row.get("ts")
            dur = row.get("dur")
            if ts is None or dur is None or dur <= 0:
                continue
            start = _ns_to_ms(ts) - navigation_start_ms
            tasks.append(LongTask(start=start, end=start + _ns_to_ms(dur)))
        return tasks


async def _resolve_artifacts(
    analyzer: ChromeTraceAnalyzer,
    main_thread: dict | None,
    policy: QuietWindowPolicy,
    assumptions: dict
) -> tuple[FirstInteractiveResult | None, FirstInteractiveError | None, TimingReferences | None, list[LongTask]]:
    cache = ComputedArtifactCache()
    trace_key = analyzer.trace_path

    async def load_timings() -> TimingReferences:
        return analyzer.get_timing_references(main_thread, assumptions)

    async def load_tasks() -> list[LongTask]:
        # Task times are relative to navigation start.
        timings = await cache.request("trace_of_tab", trace_key, load_timings)
        return analyzer.get_main_thread_tasks(main_thread, timings.navigation_start, assumptions)

    try:
        result = await request_first_interactive(cache, trace_key, load_tasks, load_timings, policy)
    except FirstInteractiveError as exc:
        logger.info("First interactive unavailable for %s: %s", trace_key, exc)
        timings = await _resolved_or_none(cache, "trace_of_tab", trace_key, load_timings)
        tasks = await _resolved_or_none(cache, "main_thread_tasks", trace_key, load_tasks)
        return None, exc, timings, tasks or []

    timings = await cache.request("trace_of_tab", trace_key, load_timings)
    tasks = await cache.request("main_thread_tasks", trace_key, load_tasks)
    return result, None, timings, tasks


async def _resolved_or_none(cache: ComputedArtifactCache, name: str, trace_key, load):
    """Cached artifact, or None when the trace lacks what it needs."""
    try:
        return await cache.request(name, trace_key, load)
    except MissingTimingError:
        return None


def analyze_trace(
    trace_path: str,
    long_task_ms: float = LONG_TASK_THRESHOLD_MS,
    top_n: int = DEFAULT_TOP_N,
    schema_version: str = DEFAULT_SCHEMA_VERSION,
    tp: TraceProcessor | None = None
) -> dict:
    """
    Analyze a Chrome trace and return the first interactive report.

    Args:
        trace_path: Path to the trace file
        long_task_ms: Threshold for identifying long tasks
        top_n: Number of longest tasks after FMP to include

    Returns:
        Dictionary with analysis results following the report schema
    """
    analyzer = ChromeTraceAnalyzer(trace_path, tp=tp)
    policy = DEFAULT_POLICY.with_overrides(long_task_threshold_ms=long_task_ms)

    try:
        assumptions: dict = {}

        start_ns, end_ns = analyzer.get_trace_bounds_ns(assumptions)
        trace_duration_ms = None
        if start_ns is not None and end_ns is not None:
            trace_duration_ms = _ns_to_ms(end_ns - start_ns)

        main_thread = analyzer.resolve_main_thread(assumptions)

        first_interactive, error, timings, tasks = asyncio.run(
            _resolve_artifacts(analyzer, main_thread, policy, assumptions)
        )

        long_tasks = []
        if timings is not None:
            long_tasks = filter_long_tasks(tasks, timings.first_meaningful_paint, policy)
        top = sorted(long_tasks, key=lambda task: task.duration, reverse=True)[:top_n]

        result = {
            "schema_version": schema_version,
            "trace_path": trace_path,
            "trace_duration_ms": trace_duration_ms,
            "main_thread": main_thread,
            "timings": timings.to_dict() if timings is not None else None,
            "policy": policy.to_dict(),
            "long_tasks": {
                "threshold_ms": long_task_ms,
                "count": len(long_tasks),
                "top": [
                    dict(task.to_dict(), dur_ms=task.duration)
                    for task in top
                ]
            },
            "first_interactive": first_interactive.to_dict() if first_interactive is not None else None,
            "error": {"kind": error.kind, "message": str(error)} if error is not None else None,
            "assumptions": assumptions
        }
        _set_assumption(
            result["assumptions"],
            "trace_duration",
            "Calculated from trace_bounds table (end_ts - start_ts)"
        )
        _set_assumption(
            result["assumptions"],
            "long_tasks",
            f"Long tasks are top-level {MAIN_THREAD_NAME} slices with dur >= {long_task_ms}ms ending after FMP"
        )
        if error is not None:
            _set_assumption(
                result["assumptions"],
                "first_interactive",
                f"First interactive unavailable: {error}"
            )
        return result
    finally:
        analyzer.close()
