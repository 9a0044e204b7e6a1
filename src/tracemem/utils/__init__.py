# Utils module for tracemem

from .config import (
    DEFAULT_TOOL_SCORES,
    PRESET_PROFILES,
    ScoringConfig,
    ScoringProfile,
    ScoringWeights,
    TraceMemoryConfig,
    load_configs,
)
from .logger import get_logger, set_global_log_level

__all__ = [
    "get_logger",
    "set_global_log_level",
    "load_configs",
    "TraceMemoryConfig",
    "ScoringConfig",
    "ScoringProfile",
    "ScoringWeights",
    "DEFAULT_TOOL_SCORES",
    "PRESET_PROFILES",
]
