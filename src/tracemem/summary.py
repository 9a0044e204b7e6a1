from typing import Sequence

from tracemem.models import TOOL_CHAIN_SEPARATOR, ToolCall, TraceMetadata, TraceType

_TEMPLATES = {
    TraceType.SEARCH_DRIVEN: "Search-driven modification: {chain}",
    TraceType.ERROR_RECOVERY: "Error recovery: {error} via {chain}",
    TraceType.FEATURE_IMPLEMENTATION: "Feature implementation: {file_count} files via {chain}",
    TraceType.REFACTORING: "Code refactoring: {chain}",
    TraceType.TESTING: "Test execution: {chain}",
    TraceType.EXPLORATION: "Codebase exploration: {chain}",
    TraceType.DEBUGGING: "Debugging session: {chain}",
    TraceType.DOCUMENTATION: "Documentation update: {chain}",
    TraceType.BUILD_DEPLOY: "Build and deploy: {chain}",
}
_FALLBACK_TEMPLATE = "Tool sequence: {chain}"


def summarize_trace(
    trace_type: TraceType,
    tools: Sequence[ToolCall],
    metadata: TraceMetadata,
) -> str:
    """Build the templated one-line description for a trace."""
    template = _TEMPLATES.get(trace_type, _FALLBACK_TEMPLATE)
    chain = TOOL_CHAIN_SEPARATOR.join(t.tool for t in tools)
    error = metadata.errors_encountered[0] if metadata.errors_encountered else "unknown error"
    return template.format(
        chain=chain,
        error=error,
        file_count=len(metadata.files_modified),
    )
