"""Metadata extraction for a finalizing tool sequence."""

from typing import Dict, List, Sequence

from tracemem.boundaries import is_fix_attempt
from tracemem.classification import DECISION_TOOLS, in_family
from tracemem.models import ToolCall, TraceMetadata


def _decision_text(call: ToolCall) -> str:
    if not in_family(call.tool, DECISION_TOOLS):
        return ""
    decision = call.arguments.get("decision")
    return str(decision) if decision else ""


def extract_metadata(tools: Sequence[ToolCall]) -> TraceMetadata:
    """
    Derive time span, files, errors, decisions and the causal-chain flag.

    Args:
        tools: Ordered tool calls of the trace; must not be empty

    Returns:
        TraceMetadata for the sequence
    """
    if not tools:
        raise ValueError("Cannot extract metadata from an empty tool sequence")

    files: Dict[str, None] = {}
    errors: List[str] = []
    decisions: List[str] = []
    causal_chain = False

    for i, call in enumerate(tools):
        for path in call.files_affected:
            files.setdefault(path, None)

        if call.has_error:
            errors.append(call.error)
            if i + 1 < len(tools) and is_fix_attempt(tools[i + 1], call):
                causal_chain = True

        decision = _decision_text(call)
        if decision:
            decisions.append(decision)

    return TraceMetadata(
        start_time=tools[0].timestamp,
        end_time=tools[-1].timestamp,
        files_modified=tuple(files),
        errors_encountered=tuple(errors),
        decisions_recorded=tuple(decisions),
        causal_chain=causal_chain,
    )
