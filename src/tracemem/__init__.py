"""
Trace detection and scoring for coding-agent tool calls.

Groups a stream of tool invocations into classified, scored traces and
compresses them as they age.
"""

from tracemem.detector import TraceDetector
from tracemem.models import (
    CompressedTrace,
    ToolCall,
    Trace,
    TraceBoundaryConfig,
    TraceMetadata,
    TraceType,
)
from tracemem.scoring import ScoringFactors, ScoringService, WeightedToolScorer
from tracemem.sessions import SessionRegistry

__all__ = [
    "TraceDetector",
    "ToolCall",
    "Trace",
    "TraceType",
    "TraceMetadata",
    "CompressedTrace",
    "TraceBoundaryConfig",
    "ScoringFactors",
    "ScoringService",
    "WeightedToolScorer",
    "SessionRegistry",
]
