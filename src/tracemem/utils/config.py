"""
Configuration models and loaders.

Two TOML files are read: the trace config (logging, weave, boundary
thresholds) and the scoring registry (weights, per-tool base scores and
profiles). Missing files fall back to defaults.
"""

import tomllib
from pathlib import Path
from typing import Annotated, Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from tracemem.exceptions import TraceConfigError
from tracemem.models import TraceBoundaryConfig
from tracemem.utils.logger import get_logger

logger = get_logger("Config")

WEIGHT_SUM_TOLERANCE = 0.001

UnitScore = Annotated[float, Field(ge=0.0, le=1.0)]

DEFAULT_TOOL_SCORES: Dict[str, float] = {
    "search": 0.95,
    "task_creation": 0.9,
    "decision_recording": 0.9,
    "context_retrieval": 0.85,
    "write": 0.75,
    "edit": 0.5,
    "test": 0.45,
    "bash": 0.4,
    "read": 0.25,
    "grep": 0.15,
}


class ScoringWeights(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    base: float = Field(default=0.4, ge=0.0, le=1.0)
    impact: float = Field(default=0.3, ge=0.0, le=1.0)
    persistence: float = Field(default=0.2, ge=0.0, le=1.0)
    reference: float = Field(default=0.1, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _weights_sum_to_one(self) -> "ScoringWeights":
        total = self.base + self.impact + self.persistence + self.reference
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Weights must sum to 1.0 (current: {total:.3f})")
        return self


class WeightOverrides(BaseModel):
    """Partial weights carried by a profile; unset fields keep the base value."""

    model_config = ConfigDict(extra="forbid")

    base: Optional[float] = None
    impact: Optional[float] = None
    persistence: Optional[float] = None
    reference: Optional[float] = None


class ScoringProfile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    description: Optional[str] = None
    weights: Optional[WeightOverrides] = None
    tool_scores: Optional[Dict[str, UnitScore]] = None


PRESET_PROFILES: Dict[str, ScoringProfile] = {
    "default": ScoringProfile(
        name="default",
        description="Balanced configuration for general use",
    ),
    "security-focused": ScoringProfile(
        name="security-focused",
        description="Prioritizes security decisions and audit trails",
        weights=WeightOverrides(base=0.2, impact=0.5, persistence=0.2, reference=0.1),
        tool_scores={"decision_recording": 0.95, "bash": 0.8, "test": 0.7},
    ),
    "exploration-heavy": ScoringProfile(
        name="exploration-heavy",
        description="Optimized for codebase exploration and learning",
        weights=WeightOverrides(base=0.3, impact=0.1, persistence=0.1, reference=0.5),
        tool_scores={"search": 0.99, "grep": 0.3, "read": 0.4},
    ),
    "production-system": ScoringProfile(
        name="production-system",
        description="For production environments with stability focus",
        weights=WeightOverrides(base=0.2, impact=0.4, persistence=0.3, reference=0.1),
        tool_scores={"write": 0.9, "edit": 0.85, "test": 0.8, "bash": 0.7},
    ),
}


class ScoringConfig(BaseModel):
    """Scoring registry: weights, per-tool base scores and named profiles."""

    model_config = ConfigDict(extra="forbid")

    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    tool_scores: Dict[str, UnitScore] = Field(default_factory=lambda: dict(DEFAULT_TOOL_SCORES))
    default_tool_score: float = Field(default=0.5, ge=0.0, le=1.0)
    profile: Optional[str] = None
    profiles: Dict[str, ScoringProfile] = Field(default_factory=lambda: dict(PRESET_PROFILES))

    @field_validator("tool_scores", mode="after")
    @classmethod
    def _merge_default_tool_scores(cls, value: Dict[str, float]) -> Dict[str, float]:
        return {**DEFAULT_TOOL_SCORES, **value}

    @field_validator("profiles", mode="after")
    @classmethod
    def _merge_preset_profiles(cls, value: Dict[str, ScoringProfile]) -> Dict[str, ScoringProfile]:
        return {**PRESET_PROFILES, **value}

    @model_validator(mode="after")
    def _active_profile_exists(self) -> "ScoringConfig":
        if self.profile is not None and self.profile not in self.profiles:
            raise ValueError(f"Scoring profile '{self.profile}' not defined.")
        return self

    def resolved(self) -> Tuple[ScoringWeights, Dict[str, float]]:
        """Weights and tool scores with the active profile applied."""
        weights = self.weights
        tool_scores = dict(self.tool_scores)
        if self.profile is None:
            return weights, tool_scores

        active = self.profiles[self.profile]
        if active.weights is not None:
            overrides = active.weights.model_dump(exclude_none=True)
            try:
                weights = ScoringWeights(**{**weights.model_dump(), **overrides})
            except ValidationError as e:
                raise TraceConfigError(
                    f"Profile '{self.profile}' produces invalid weights: {e}"
                ) from e
        if active.tool_scores:
            tool_scores.update(active.tool_scores)
        return weights, tool_scores


class TraceMemoryConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    logging_level: str = "INFO"
    weave_project: Optional[str] = None
    boundary: TraceBoundaryConfig = Field(default_factory=TraceBoundaryConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)


def _read_toml(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        logger.warning(f"⚠️ Config file {path} not found, using defaults")
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise TraceConfigError(f"Failed to read config from {path}: {e}") from e


def load_configs(
    trace_path: str = "config.toml",
    scoring_path: str = "scoring_config.toml",
) -> TraceMemoryConfig:
    """
    Load and validate trace and scoring configuration.

    Args:
        trace_path: Path to the trace config file
        scoring_path: Path to the scoring registry file

    Returns:
        Validated TraceMemoryConfig

    Raises:
        TraceConfigError: If a file cannot be parsed or a value is invalid
    """
    data = _read_toml(Path(trace_path))
    scoring_data = _read_toml(Path(scoring_path))
    if scoring_data:
        data = {**data, "scoring": scoring_data}

    try:
        cfg = TraceMemoryConfig.model_validate(data)
        # Surface profile weight errors at load time rather than first use
        cfg.scoring.resolved()
    except ValidationError as e:
        raise TraceConfigError(f"Invalid configuration: {e}") from e

    logger.debug(f"⚙️ Loaded config from {trace_path} and {scoring_path}")
    return cfg
