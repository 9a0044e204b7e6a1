"""
Pydantic request and response models for the trace API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tracemem.models import TraceType


class ToolCallPayload(BaseModel):
    """A tool call in the native shape. Missing files are inferred from arguments."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    tool: str = Field(min_length=1)
    timestamp: Optional[int] = None
    arguments: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: Optional[str] = None
    files_affected: Optional[List[str]] = Field(default=None, alias="filesAffected")
    duration: Optional[int] = None


class HookEventPayload(BaseModel):
    """A PostToolUse-style hook event emitted by the agent runtime."""

    model_config = ConfigDict(extra="allow")

    tool_name: str = Field(min_length=1)
    tool_input: Dict[str, Any] = Field(default_factory=dict)
    tool_response: Any = None
    tool_use_id: Optional[str] = None
    timestamp: Optional[int] = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None


class IngestRequest(BaseModel):
    tool_calls: List[ToolCallPayload]


class HookEventsRequest(BaseModel):
    events: List[HookEventPayload]


class IngestResponse(BaseModel):
    session_id: str
    ingested: int
    traces_finalized: int
    active_tool_count: int


class TraceSummary(BaseModel):
    id: str
    type: TraceType
    pattern: str
    summary: str
    score: float
    tool_count: int
    duration: int
    start_time: int
    compressed: bool


class FlushResponse(BaseModel):
    session_id: str
    trace: Optional[TraceSummary] = None


class TraceListResponse(BaseModel):
    session_id: str
    total_count: int
    traces: List[TraceSummary]


class StatisticsResponse(BaseModel):
    session_id: str
    total_traces: int
    traces_by_type: Dict[str, int]
    average_score: float
    average_length: float
    compressed_count: int
    high_importance_count: int


class CompressResponse(BaseModel):
    session_id: str
    age_hours: float
    compressed: int


class SessionListResponse(BaseModel):
    sessions: List[str]
