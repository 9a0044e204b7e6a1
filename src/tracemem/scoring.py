"""
Trace importance scoring.

Per-call base scores come from an injected ScoringService. The trace takes
the maximum of those and then gets structural bonuses and penalties. A
failing scoring collaborator never breaks segmentation: the affected call
falls back to DEFAULT_CALL_SCORE.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Sequence

from tracemem.classification import (
    DECISION_TOOLS,
    EDIT_TOOLS,
    WRITE_TOOLS,
    in_family,
    normalize_tool_name,
)
from tracemem.models import ToolCall, TraceMetadata
from tracemem.utils.config import DEFAULT_TOOL_SCORES, ScoringConfig, ScoringWeights
from tracemem.utils.logger import get_logger

logger = get_logger("Scoring")

DEFAULT_CALL_SCORE = 0.0
CAUSAL_CHAIN_BONUS = 0.1
DECISION_BONUS = 0.05
UNRESOLVED_ERROR_PENALTY = 0.1
HIGH_IMPORTANCE_THRESHOLD = 0.7


@dataclass(frozen=True)
class ScoringFactors:
    files_affected: int = 0
    is_permanent: bool = False
    reference_count: int = 0


class ScoringService(Protocol):
    """Converts a tool name plus contextual factors into a score in [0, 1]."""

    def calculate_score(self, tool_name: str, factors: ScoringFactors) -> float: ...


def is_permanent_change(call: ToolCall) -> bool:
    return (
        in_family(call.tool, EDIT_TOOLS)
        or in_family(call.tool, WRITE_TOOLS)
        or in_family(call.tool, DECISION_TOOLS)
    )


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class WeightedToolScorer:
    """
    Default ScoringService backed by the scoring registry.

    score = tool_score * w.base
            + min(files / 10, 1) * w.impact
            + 0.2 * w.persistence          (permanent changes only)
            + min(references / 100, 1) * w.reference
    clamped to [0, 1].
    """

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        tool_scores: Optional[Dict[str, float]] = None,
        default_tool_score: float = 0.5,
    ):
        self.weights = weights or ScoringWeights()
        source = DEFAULT_TOOL_SCORES if tool_scores is None else tool_scores
        self.tool_scores = {normalize_tool_name(k): v for k, v in source.items()}
        self.default_tool_score = default_tool_score

    @classmethod
    def from_config(cls, config: ScoringConfig) -> "WeightedToolScorer":
        weights, tool_scores = config.resolved()
        return cls(
            weights=weights,
            tool_scores=tool_scores,
            default_tool_score=config.default_tool_score,
        )

    def base_score(self, tool_name: str) -> float:
        return self.tool_scores.get(normalize_tool_name(tool_name), self.default_tool_score)

    def explain(self, tool_name: str, factors: ScoringFactors) -> Dict[str, float]:
        """Return each weighted component and the clamped total."""
        w = self.weights
        components = {
            "base": self.base_score(tool_name) * w.base,
            "impact": min(factors.files_affected / 10, 1) * w.impact,
            "persistence": 0.2 * w.persistence if factors.is_permanent else 0.0,
            "reference": min(factors.reference_count / 100, 1) * w.reference,
        }
        components["total"] = _clamp(sum(components.values()))
        return components

    def calculate_score(self, tool_name: str, factors: ScoringFactors) -> float:
        return self.explain(tool_name, factors)["total"]


def _call_score(scorer: ScoringService, call: ToolCall) -> float:
    factors = ScoringFactors(
        files_affected=len(call.files_affected),
        is_permanent=is_permanent_change(call),
        reference_count=0,  # references are not tracked by the detector
    )
    try:
        score = float(scorer.calculate_score(call.tool, factors))
    except Exception as e:
        logger.warning(
            f"⚠️ Scoring failed for tool '{call.tool}', using {DEFAULT_CALL_SCORE}: {e}"
        )
        return DEFAULT_CALL_SCORE
    if not math.isfinite(score):
        logger.warning(
            f"⚠️ Non-finite score {score} for tool '{call.tool}', using {DEFAULT_CALL_SCORE}"
        )
        return DEFAULT_CALL_SCORE
    return _clamp(score)


def score_trace(
    tools: Sequence[ToolCall],
    metadata: TraceMetadata,
    scorer: ScoringService,
) -> float:
    """
    Combine per-call scores into one trace score in [0, 1].

    Args:
        tools: Ordered tool calls of the trace
        metadata: Metadata extracted from the same calls
        scorer: Scoring collaborator

    Returns:
        max(per-call scores) adjusted by the causal-chain and decision
        bonuses and the unresolved-error penalty
    """
    if not tools:
        return DEFAULT_CALL_SCORE

    score = max(_call_score(scorer, call) for call in tools)

    if metadata.causal_chain:
        score = min(score + CAUSAL_CHAIN_BONUS, 1.0)

    if metadata.decisions_recorded:
        score = min(score + DECISION_BONUS * len(metadata.decisions_recorded), 1.0)

    if metadata.errors_encountered and not metadata.causal_chain:
        score = max(score - UNRESOLVED_ERROR_PENALTY, 0.0)

    return score
