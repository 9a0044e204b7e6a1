"""
HTTP API layer for tracemem.

Exposes per-session trace ingestion, queries, statistics, export and
compression over FastAPI.
"""

from tracemem.api.app import create_app
from tracemem.api.models import (
    IngestRequest,
    IngestResponse,
    ToolCallPayload,
    HookEventPayload,
    TraceSummary,
)

__all__ = [
    "create_app",
    "IngestRequest",
    "IngestResponse",
    "ToolCallPayload",
    "HookEventPayload",
    "TraceSummary",
]
