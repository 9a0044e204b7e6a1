"""
Trace type classification.

Tool names form an open set, so classification works on name families
rather than an enum of tools. A trace is matched against an ordered table of
subsequence patterns first; when nothing matches, heuristic fallbacks decide.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Sequence, Tuple

from tracemem.models import ToolCall, TraceType

SEARCH_TOOLS: FrozenSet[str] = frozenset({"search", "grep"})
EDIT_TOOLS: FrozenSet[str] = frozenset({"edit"})
WRITE_TOOLS: FrozenSet[str] = frozenset({"write"})
TEST_TOOLS: FrozenSet[str] = frozenset({"test"})
SHELL_TOOLS: FrozenSet[str] = frozenset({"bash"})
DECISION_TOOLS: FrozenSet[str] = frozenset(
    {"decision_recording", "record_decision", "log_decision"}
)


def normalize_tool_name(name: str) -> str:
    return name.strip().lower()


def in_family(tool_name: str, family: FrozenSet[str]) -> bool:
    return normalize_tool_name(tool_name) in family


@dataclass(frozen=True)
class PatternStep:
    """One element of a pattern: a tool name, optionally required to have failed."""

    tool: str
    requires_error: bool = False

    def matches(self, call: ToolCall) -> bool:
        if normalize_tool_name(call.tool) != self.tool:
            return False
        return call.has_error or not self.requires_error


@dataclass(frozen=True)
class TracePattern:
    steps: Tuple[PatternStep, ...]
    type: TraceType
    description: str


def _steps(*names: str) -> Tuple[PatternStep, ...]:
    return tuple(PatternStep(n) for n in names)


# Ordered, first match wins
TRACE_PATTERNS: Tuple[TracePattern, ...] = (
    TracePattern(
        _steps("search", "grep", "read", "edit"),
        TraceType.SEARCH_DRIVEN,
        "Search-driven code modification",
    ),
    TracePattern(
        (PatternStep("bash", requires_error=True),) + _steps("edit", "bash"),
        TraceType.ERROR_RECOVERY,
        "Error recovery sequence",
    ),
    TracePattern(
        _steps("write", "edit", "test"),
        TraceType.FEATURE_IMPLEMENTATION,
        "New feature implementation",
    ),
    TracePattern(
        _steps("read", "edit", "edit", "test"),
        TraceType.REFACTORING,
        "Code refactoring",
    ),
    TracePattern(
        _steps("test", "bash", "test"),
        TraceType.TESTING,
        "Test execution and validation",
    ),
    TracePattern(
        _steps("grep", "search", "read"),
        TraceType.EXPLORATION,
        "Codebase exploration",
    ),
    TracePattern(
        _steps("bash", "build", "deploy"),
        TraceType.BUILD_DEPLOY,
        "Build and deployment",
    ),
)


def matches_pattern(tools: Sequence[ToolCall], steps: Sequence[PatternStep]) -> bool:
    """
    Check whether ``steps`` occurs as a (not necessarily contiguous) subsequence.

    Scans left to right and advances to the next required step whenever the
    current one is seen.
    """
    if not steps:
        return False
    index = 0
    for call in tools:
        if steps[index].matches(call):
            index += 1
            if index >= len(steps):
                return True
    return False


def _has_family(names: Iterable[str], family: FrozenSet[str]) -> bool:
    return any(n in family for n in names)


def classify_trace(
    tools: Sequence[ToolCall],
    patterns: Sequence[TracePattern] = TRACE_PATTERNS,
) -> TraceType:
    """Map a tool sequence to a TraceType; pattern table first, heuristics second."""
    for pattern in patterns:
        if matches_pattern(tools, pattern.steps):
            return pattern.type

    names: List[str] = [normalize_tool_name(t.tool) for t in tools]

    if _has_family(names, SEARCH_TOOLS):
        if _has_family(names, EDIT_TOOLS):
            return TraceType.SEARCH_DRIVEN
        return TraceType.EXPLORATION

    if any(t.has_error for t in tools):
        return TraceType.ERROR_RECOVERY

    if _has_family(names, TEST_TOOLS):
        return TraceType.TESTING

    if _has_family(names, WRITE_TOOLS):
        return TraceType.FEATURE_IMPLEMENTATION

    return TraceType.UNKNOWN
