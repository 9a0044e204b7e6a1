"""
FastAPI router for the trace API.

Every session owns its own TraceDetector inside the SessionRegistry; the
router only translates payloads and serializes results.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from tracemem.analysis import AnalysisType
from tracemem.api.models import (
    CompressResponse,
    FlushResponse,
    HookEventsRequest,
    IngestRequest,
    IngestResponse,
    SessionListResponse,
    StatisticsResponse,
    TraceListResponse,
)
from tracemem.api.translator import (
    hook_event_to_tool_call,
    payloads_to_tool_calls,
    trace_to_summary,
)
from tracemem.exceptions import SessionNotFoundError, TraceNotFoundError
from tracemem.models import ToolCall, TraceType
from tracemem.sessions import SessionRegistry
from tracemem.utils.logger import get_logger

logger = get_logger("API")

router = APIRouter(prefix="/v1", tags=["traces"])

# Global registry instance (set by create_app)
_registry: Optional[SessionRegistry] = None

def set_registry(registry: SessionRegistry) -> None:
    """Set the global session registry."""
    global _registry
    _registry = registry

def get_registry() -> SessionRegistry:
    """Dependency to get the session registry."""
    if _registry is None:
        raise HTTPException(
            status_code=500,
            detail="Session registry not initialized. Call set_registry() first.",
        )
    return _registry

def _not_found(session_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Session '{session_id}' not found")

def _ingest(
    registry: SessionRegistry, session_id: str, calls: List[ToolCall]
) -> IngestResponse:
    with registry.use(session_id, create=True) as detector:
        finalized = detector.ingest(calls)
        active = detector.active_tool_count
    logger.debug(
        f"📥 {session_id}: ingested {len(calls)} calls, finalized {len(finalized)} traces"
    )
    return IngestResponse(
        session_id=session_id,
        ingested=len(calls),
        traces_finalized=len(finalized),
        active_tool_count=active,
    )

@router.get("/sessions", response_model=SessionListResponse)
def list_sessions(registry: SessionRegistry = Depends(get_registry)) -> SessionListResponse:
    return SessionListResponse(sessions=registry.session_ids())

@router.post("/sessions/{session_id}/tool-calls", response_model=IngestResponse)
def ingest_tool_calls(
    session_id: str,
    request: IngestRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> IngestResponse:
    """Append tool calls to a session, creating the session on first use."""
    return _ingest(registry, session_id, payloads_to_tool_calls(request.tool_calls))

@router.post("/sessions/{session_id}/hook-events", response_model=IngestResponse)
def ingest_hook_events(
    session_id: str,
    request: HookEventsRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> IngestResponse:
    """Append agent hook events to a session, creating the session on first use."""
    calls = [hook_event_to_tool_call(e) for e in request.events]
    return _ingest(registry, session_id, calls)

@router.post("/sessions/{session_id}/flush", response_model=FlushResponse)
def flush_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> FlushResponse:
    try:
        with registry.use(session_id) as detector:
            trace = detector.flush()
    except SessionNotFoundError:
        raise _not_found(session_id)
    return FlushResponse(
        session_id=session_id,
        trace=trace_to_summary(trace) if trace else None,
    )

@router.get("/sessions/{session_id}/traces", response_model=TraceListResponse)
def list_traces(
    session_id: str,
    trace_type: Optional[TraceType] = Query(default=None, alias="type"),
    min_score: Optional[float] = Query(default=None, ge=0.0, le=1.0),
    pattern: Optional[str] = None,
    start_time: Optional[int] = None,
    end_time: Optional[int] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    registry: SessionRegistry = Depends(get_registry),
) -> TraceListResponse:
    """
    List finalized traces of a session.

    Filters combine: ``type`` exact match, ``min_score`` inclusive, ``pattern``
    substring of the tool chain, ``start_time``/``end_time`` inclusive bounds
    on the trace start (ms), ``limit`` keeps the newest matches.
    """
    try:
        with registry.use(session_id) as detector:
            traces = detector.store.query(
                pattern=pattern, start_time=start_time, end_time=end_time
            )
    except SessionNotFoundError:
        raise _not_found(session_id)

    if trace_type is not None:
        traces = [t for t in traces if t.type == trace_type]
    if min_score is not None:
        traces = [t for t in traces if t.score >= min_score]
    if limit is not None:
        traces = traces[-limit:]

    return TraceListResponse(
        session_id=session_id,
        total_count=len(traces),
        traces=[trace_to_summary(t) for t in traces],
    )

@router.get("/sessions/{session_id}/traces/{trace_id}")
def get_trace(
    session_id: str,
    trace_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    try:
        with registry.use(session_id) as detector:
            trace = detector.get_trace(trace_id)
    except SessionNotFoundError:
        raise _not_found(session_id)
    if trace is None:
        raise HTTPException(status_code=404, detail=f"Trace '{trace_id}' not found")
    return trace.to_dict()

@router.get("/sessions/{session_id}/statistics", response_model=StatisticsResponse)
def session_statistics(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> StatisticsResponse:
    try:
        with registry.use(session_id) as detector:
            stats = detector.get_statistics()
    except SessionNotFoundError:
        raise _not_found(session_id)
    return StatisticsResponse(session_id=session_id, **stats.to_dict())

@router.get("/sessions/{session_id}/export")
def export_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> List[Dict[str, Any]]:
    try:
        with registry.use(session_id) as detector:
            return detector.export_traces()
    except SessionNotFoundError:
        raise _not_found(session_id)

@router.get("/sessions/{session_id}/analysis")
def analyze_session(
    session_id: str,
    analysis_type: AnalysisType = AnalysisType.PERFORMANCE,
    trace_id: Optional[str] = None,
    registry: SessionRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    """
    Analyze a session's traces, or a single trace when ``trace_id`` is given.

    ``analysis_type`` is one of performance, patterns or errors.
    """
    try:
        with registry.use(session_id) as detector:
            analysis = detector.analyze(analysis_type, trace_id)
    except SessionNotFoundError:
        raise _not_found(session_id)
    except TraceNotFoundError:
        raise HTTPException(status_code=404, detail=f"Trace '{trace_id}' not found")
    return {"session_id": session_id, **analysis}

@router.post("/sessions/{session_id}/compress", response_model=CompressResponse)
def compress_session(
    session_id: str,
    age_hours: float = Query(default=24, ge=0),
    registry: SessionRegistry = Depends(get_registry),
) -> CompressResponse:
    try:
        with registry.use(session_id) as detector:
            compressed = detector.compress_old_traces(age_hours)
    except SessionNotFoundError:
        raise _not_found(session_id)
    return CompressResponse(session_id=session_id, age_hours=age_hours, compressed=compressed)

@router.delete("/sessions/{session_id}")
def delete_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> Dict[str, Any]:
    if not registry.remove(session_id):
        raise _not_found(session_id)
    return {"session_id": session_id, "deleted": True}
