"""
Boundary detection as pure functions over an explicit state.

``advance`` takes the current DetectorState plus one ToolCall and returns the
next state together with any tool sequences that are finished and must be
turned into traces. TraceDetector owns the state and does the finalization.
"""

import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Set, Tuple

from tracemem.classification import (
    EDIT_TOOLS,
    SHELL_TOOLS,
    TEST_TOOLS,
    WRITE_TOOLS,
    in_family,
)
from tracemem.models import ToolCall, TraceBoundaryConfig
from tracemem.utils.logger import get_logger

logger = get_logger("Boundaries")


class BoundaryReason(str, Enum):
    TIME_GAP = "time_gap"
    DIRECTORY_CHANGE = "directory_change"
    UNRESOLVED_ERROR = "unresolved_error"
    OUT_OF_ORDER = "out_of_order"
    MAX_SIZE = "max_size"


@dataclass(frozen=True)
class DetectorState:
    active_buffer: Tuple[ToolCall, ...] = ()
    last_timestamp: Optional[int] = None


def get_directory(file_path: str) -> str:
    """Parent directory of a path; "" for bare file names."""
    return posixpath.dirname(file_path.replace("\\", "/"))


def _directories(files: Tuple[str, ...]) -> Set[str]:
    return {get_directory(f) for f in files}


def is_fix_attempt(current: ToolCall, previous: ToolCall) -> bool:
    """
    Heuristic for a call that addresses a preceding error.

    An edit or write right after a failed call counts as a fix. Test and
    shell runs count as validation whatever the previous call's state.
    """
    if previous.has_error and (
        in_family(current.tool, EDIT_TOOLS) or in_family(current.tool, WRITE_TOOLS)
    ):
        return True
    return in_family(current.tool, TEST_TOOLS) or in_family(current.tool, SHELL_TOOLS)


def should_start_new_trace(
    tool: ToolCall,
    last_tool: ToolCall,
    config: TraceBoundaryConfig,
) -> Optional[BoundaryReason]:
    """Return why ``tool`` must open a new trace, or None if it extends the current one."""
    gap = tool.timestamp - last_tool.timestamp
    if gap < 0:
        return BoundaryReason.OUT_OF_ORDER
    if gap > config.time_proximity_ms:
        return BoundaryReason.TIME_GAP

    if config.same_dir_threshold and last_tool.files_affected and tool.files_affected:
        if _directories(last_tool.files_affected).isdisjoint(
            _directories(tool.files_affected)
        ):
            return BoundaryReason.DIRECTORY_CHANGE

    if config.causal_relationship and last_tool.has_error:
        if not is_fix_attempt(tool, last_tool):
            return BoundaryReason.UNRESOLVED_ERROR

    return None


def advance(
    state: DetectorState,
    tool: ToolCall,
    config: TraceBoundaryConfig,
) -> Tuple[DetectorState, List[Tuple[ToolCall, ...]]]:
    """
    Apply one tool call to the detector state.

    Returns:
        (new_state, finished) where ``finished`` holds zero, one or two
        completed tool sequences in the order they must be finalized.
    """
    finished: List[Tuple[ToolCall, ...]] = []
    buffer = state.active_buffer

    if not buffer:
        buffer = (tool,)
    else:
        reason = should_start_new_trace(tool, buffer[-1], config)
        if reason is None:
            buffer = buffer + (tool,)
        else:
            if reason is BoundaryReason.OUT_OF_ORDER:
                logger.warning(
                    f"⏪ Out-of-order tool call '{tool.tool}' ({tool.timestamp} < {buffer[-1].timestamp}); starting new trace"
                )
            else:
                logger.debug(f"✂️ Trace boundary before '{tool.tool}': {reason.value}")
            finished.append(buffer)
            buffer = (tool,)

    if len(buffer) >= config.max_trace_size:
        logger.debug(
            f"✂️ Trace reached max size {config.max_trace_size}: {BoundaryReason.MAX_SIZE.value}"
        )
        finished.append(buffer)
        buffer = ()

    return DetectorState(active_buffer=buffer, last_timestamp=tool.timestamp), finished
