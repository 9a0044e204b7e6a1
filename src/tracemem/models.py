"""
Data models for trace detection.

ToolCall is the input unit pushed by the agent runtime; Trace is the output
unit produced at finalization. TraceBoundaryConfig holds the per-detector
thresholds and is validated with pydantic at construction time.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

TOOL_CHAIN_SEPARATOR = "→"


def now_ms() -> int:
    return int(time.time() * 1000)


def _serialize_value(value: Any) -> Any:
    """Convert a value to something JSON-serializable.

    Handles raw dicts, lists, tuples and pydantic models nested inside tool
    arguments and results.
    """
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if isinstance(value, Mapping):
        return {str(k): _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_serialize_value(v) for v in value]
    return value


class TraceType(str, Enum):
    SEARCH_DRIVEN = "search_driven"
    ERROR_RECOVERY = "error_recovery"
    FEATURE_IMPLEMENTATION = "feature_implementation"
    REFACTORING = "refactoring"
    TESTING = "testing"
    EXPLORATION = "exploration"
    DEBUGGING = "debugging"
    DOCUMENTATION = "documentation"
    BUILD_DEPLOY = "build_deploy"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ToolCall:
    """
    A single tool invocation made by the coding agent.

    Attributes:
        id: Unique identifier (caller-supplied or generated)
        tool: Name of the invoked tool, from an open set
        timestamp: Milliseconds; expected non-decreasing within a stream
        arguments: Arguments passed to the tool, as a read-only mapping
        result: Tool output, if any
        error: Error message; its presence marks the call as failed
        files_affected: Ordered file paths touched by the call
        duration: Elapsed time in milliseconds
    """

    id: str
    tool: str
    timestamp: int
    arguments: Mapping[str, Any] = field(default_factory=dict)
    result: Any = None
    error: Optional[str] = None
    files_affected: Tuple[str, ...] = ()
    duration: Optional[int] = None

    def __post_init__(self):
        # Accept any sequence or mapping from callers, store read-only copies
        if not isinstance(self.files_affected, tuple):
            object.__setattr__(
                self, "files_affected", tuple(self.files_affected or ())
            )
        object.__setattr__(self, "arguments", MappingProxyType(dict(self.arguments or {})))

    def __hash__(self) -> int:
        return hash(self.id)

    @classmethod
    def create(
        cls,
        tool: str,
        timestamp: Optional[int] = None,
        arguments: Optional[Mapping[str, Any]] = None,
        result: Any = None,
        error: Optional[str] = None,
        files_affected: Optional[Sequence[str]] = None,
        duration: Optional[int] = None,
    ) -> "ToolCall":
        """Factory method that auto-generates the id and, if missing, the timestamp."""
        return cls(
            id=str(uuid.uuid4()),
            tool=tool,
            timestamp=now_ms() if timestamp is None else int(timestamp),
            arguments=dict(arguments or {}),
            result=result,
            error=error,
            files_affected=tuple(files_affected or ()),
            duration=duration,
        )

    @property
    def has_error(self) -> bool:
        return bool(self.error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tool": self.tool,
            "timestamp": self.timestamp,
            "arguments": _serialize_value(self.arguments),
            "result": _serialize_value(self.result),
            "error": self.error,
            "files_affected": list(self.files_affected),
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolCall":
        """Build a ToolCall from a dict using snake_case or camelCase keys.

        Missing ``id`` and ``timestamp`` are generated like in ``create``.
        """
        files = data.get("files_affected", data.get("filesAffected")) or ()
        timestamp = data.get("timestamp")
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            tool=str(data["tool"]),
            timestamp=now_ms() if timestamp is None else int(timestamp),
            arguments=dict(data.get("arguments") or {}),
            result=data.get("result"),
            error=data.get("error") or None,
            files_affected=tuple(files),
            duration=data.get("duration"),
        )


@dataclass(frozen=True)
class TraceMetadata:
    start_time: int
    end_time: int
    files_modified: Tuple[str, ...] = ()
    errors_encountered: Tuple[str, ...] = ()
    decisions_recorded: Tuple[str, ...] = ()
    causal_chain: bool = False  # error immediately followed by a fix attempt

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "files_modified": list(self.files_modified),
            "errors_encountered": list(self.errors_encountered),
            "decisions_recorded": list(self.decisions_recorded),
            "causal_chain": self.causal_chain,
        }


@dataclass(frozen=True)
class CompressedTrace:
    """Lossy long-term record of a trace; per-call detail is dropped."""

    pattern: str  # e.g. "search→read→edit→test"
    summary: str
    score: float
    tool_count: int
    duration: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "summary": self.summary,
            "score": self.score,
            "tool_count": self.tool_count,
            "duration": self.duration,
            "timestamp": self.timestamp,
        }


@dataclass
class Trace:
    """
    A finalized group of related tool calls.

    All fields are read-only once the trace is built, except ``compressed``
    which can be populated exactly once and is never cleared afterwards.
    """

    id: str
    type: TraceType
    tools: Tuple[ToolCall, ...]
    score: float
    summary: str
    metadata: TraceMetadata
    compressed: Optional[CompressedTrace] = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "compressed":
            if self.__dict__.get("compressed") is not None:
                raise AttributeError("Trace.compressed is already set")
        elif name in self.__dict__:
            raise AttributeError(f"Trace.{name} is read-only")
        object.__setattr__(self, name, value)

    @property
    def tool_names(self) -> List[str]:
        return [t.tool for t in self.tools]

    @property
    def pattern(self) -> str:
        return TOOL_CHAIN_SEPARATOR.join(self.tool_names)

    def attach_compressed(self, compressed: CompressedTrace) -> bool:
        """Populate ``compressed`` if unset. Returns True when it was set now."""
        if self.compressed is not None:
            return False
        self.compressed = compressed
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "tools": [t.to_dict() for t in self.tools],
            "score": self.score,
            "summary": self.summary,
            "metadata": self.metadata.to_dict(),
            "compressed": self.compressed.to_dict() if self.compressed else None,
        }


class TraceBoundaryConfig(BaseModel):
    """Thresholds that decide where one trace ends and the next begins."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    time_proximity_ms: int = Field(default=30000, ge=0)
    same_dir_threshold: bool = True
    causal_relationship: bool = True
    max_trace_size: int = Field(default=50, gt=0)
    compression_threshold_hours: float = Field(default=24, ge=0)
