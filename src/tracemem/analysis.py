"""
Trace analysis views.

Three read-only views over finalized traces:
    performance: trace and call durations, tool usage, bottleneck tools
    patterns: common tool transitions, repeated calls, success rate
    errors: error rate, common errors, error sources, recovery patterns

Rates are percentages rounded to one decimal. Every view works on an empty
list and returns zeros instead of dividing by zero.
"""

from collections import Counter, defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List, Sequence, Union

from tracemem.models import TOOL_CHAIN_SEPARATOR, Trace

TOP_N = 5
BOTTLENECK_FACTOR = 2.0


class AnalysisType(str, Enum):
    PERFORMANCE = "performance"
    PATTERNS = "patterns"
    ERRORS = "errors"


def _percent(part: int, whole: int) -> float:
    return round(100.0 * part / whole, 1) if whole else 0.0


def is_successful(trace: Trace) -> bool:
    """A trace succeeds when it has no errors or every error led to a fix attempt."""
    return not trace.metadata.errors_encountered or trace.metadata.causal_chain


def _distinct(values) -> List[str]:
    return list(dict.fromkeys(values))


def analyze_performance(traces: Sequence[Trace]) -> Dict[str, Any]:
    calls = [c for t in traces for c in t.tools]
    timed = [c for c in calls if c.duration is not None]

    slowest = max(timed, key=lambda c: c.duration, default=None)

    durations_by_tool: Dict[str, List[int]] = defaultdict(list)
    for call in timed:
        durations_by_tool[call.tool].append(call.duration)
    average_by_tool = {
        tool: sum(values) / len(values) for tool, values in durations_by_tool.items()
    }
    overall = sum(c.duration for c in timed) / len(timed) if timed else 0.0
    # Tools whose mean call time is well above the mean of all timed calls
    bottlenecks = sorted(
        (
            tool
            for tool, avg in average_by_tool.items()
            if overall and avg >= BOTTLENECK_FACTOR * overall
        ),
        key=lambda tool: average_by_tool[tool],
        reverse=True,
    )

    return {
        "average_duration": (
            sum(t.metadata.duration for t in traces) / len(traces) if traces else 0.0
        ),
        "average_call_duration": overall,
        "slowest_operation": (
            {"tool": slowest.tool, "duration": slowest.duration, "id": slowest.id}
            if slowest
            else None
        ),
        "tool_usage": dict(Counter(c.tool for c in calls).most_common()),
        "bottlenecks": bottlenecks,
    }


def analyze_patterns(traces: Sequence[Trace]) -> Dict[str, Any]:
    transitions: Counter = Counter()
    repeated: List[str] = []
    for trace in traces:
        names = trace.tool_names
        for first, second in zip(names, names[1:]):
            transitions[f"{first}{TOOL_CHAIN_SEPARATOR}{second}"] += 1
            if first == second:
                repeated.append(first)

    successful = sum(1 for t in traces if is_successful(t))
    return {
        "common_sequences": [
            {"sequence": seq, "count": count} for seq, count in transitions.most_common(TOP_N)
        ],
        "repetitive_operations": _distinct(repeated),
        "success_rate": _percent(successful, len(traces)),
        "failure_patterns": _distinct(t.pattern for t in traces if not is_successful(t)),
    }


def analyze_errors(traces: Sequence[Trace]) -> Dict[str, Any]:
    calls = [c for t in traces for c in t.tools]
    failed = [c for c in calls if c.has_error]
    # First line only; stack traces make every message unique
    messages = Counter(c.error.strip().split("\n", 1)[0] for c in failed)

    return {
        "error_rate": _percent(len(failed), len(calls)),
        "common_errors": [
            {"error": message, "count": count} for message, count in messages.most_common(TOP_N)
        ],
        "error_sources": dict(Counter(c.tool for c in failed).most_common()),
        "recovery_patterns": _distinct(t.pattern for t in traces if t.metadata.causal_chain),
    }


_ANALYZERS: Dict[AnalysisType, Callable[[Sequence[Trace]], Dict[str, Any]]] = {
    AnalysisType.PERFORMANCE: analyze_performance,
    AnalysisType.PATTERNS: analyze_patterns,
    AnalysisType.ERRORS: analyze_errors,
}


def analyze_traces(
    traces: Sequence[Trace],
    analysis_type: Union[AnalysisType, str] = AnalysisType.PERFORMANCE,
) -> Dict[str, Any]:
    """
    Run one analysis view over ``traces``.

    Args:
        traces: Finalized traces, usually a whole store or a single trace
        analysis_type: "performance", "patterns" or "errors"

    Returns:
        Plain dict with ``analysis_type`` and ``trace_count`` plus the
        view's fields

    Raises:
        ValueError: If ``analysis_type`` is not a known view
    """
    kind = AnalysisType(analysis_type)
    return {
        "analysis_type": kind.value,
        "trace_count": len(traces),
        **_ANALYZERS[kind](traces),
    }
