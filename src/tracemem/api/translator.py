"""
Translation layer between API payloads and core trace models.

Functions:
    payload_to_tool_call: ToolCallPayload -> ToolCall
    hook_event_to_tool_call: HookEventPayload -> ToolCall
    trace_to_summary: Trace -> TraceSummary
"""

from dataclasses import replace
from typing import List

from tracemem.api.models import HookEventPayload, ToolCallPayload, TraceSummary
from tracemem.ingestion import infer_files_affected, tool_call_from_hook_event
from tracemem.models import ToolCall, Trace


def payload_to_tool_call(payload: ToolCallPayload) -> ToolCall:
    """
    Convert a native tool-call payload into a ToolCall.

    Generates id and timestamp when absent. When ``files_affected`` is not
    given it is inferred from the arguments and result.
    """
    files = payload.files_affected
    if files is None:
        files = infer_files_affected(payload.arguments, payload.result)

    call = ToolCall.create(
        tool=payload.tool,
        timestamp=payload.timestamp,
        arguments=payload.arguments,
        result=payload.result,
        error=payload.error,
        files_affected=files,
        duration=payload.duration,
    )
    if payload.id:
        call = replace(call, id=payload.id)
    return call


def hook_event_to_tool_call(event: HookEventPayload) -> ToolCall:
    return tool_call_from_hook_event(event.model_dump())


def payloads_to_tool_calls(payloads: List[ToolCallPayload]) -> List[ToolCall]:
    return [payload_to_tool_call(p) for p in payloads]


def trace_to_summary(trace: Trace) -> TraceSummary:
    return TraceSummary(
        id=trace.id,
        type=trace.type,
        pattern=trace.pattern,
        summary=trace.summary,
        score=trace.score,
        tool_count=len(trace.tools),
        duration=trace.metadata.duration,
        start_time=trace.metadata.start_time,
        compressed=trace.compressed is not None,
    )
