"""
Age-based lossy compression of traces.

A compressed record keeps the tool pattern, summary, score and timing but
drops per-call arguments, results and file lists.
"""

from tracemem.models import CompressedTrace, Trace

MS_PER_HOUR = 60 * 60 * 1000


def compress_trace(trace: Trace) -> CompressedTrace:
    return CompressedTrace(
        pattern=trace.pattern,
        summary=trace.summary,
        score=trace.score,
        tool_count=len(trace.tools),
        duration=trace.metadata.duration,
        timestamp=trace.metadata.start_time,
    )


def trace_age_hours(trace: Trace, now_ms: int) -> float:
    return (now_ms - trace.metadata.start_time) / MS_PER_HOUR


def compress_if_older(trace: Trace, age_hours: float, now_ms: int) -> bool:
    """Attach a compressed record when the trace is older than ``age_hours``.

    Returns True only if the record was attached by this call.
    """
    if trace.compressed is not None:
        return False
    if trace_age_hours(trace, now_ms) <= age_hours:
        return False
    return trace.attach_compressed(compress_trace(trace))
