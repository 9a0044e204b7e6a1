import uuid
import weave

from typing import Callable, Iterable, List, Optional, Sequence

from tracemem.boundaries import DetectorState, advance
from tracemem.classification import classify_trace
from tracemem.compression import compress_if_older
from tracemem.metadata import extract_metadata
from tracemem.models import ToolCall, Trace, TraceBoundaryConfig, TraceType, now_ms
from tracemem.scoring import (
    HIGH_IMPORTANCE_THRESHOLD,
    ScoringService,
    WeightedToolScorer,
    score_trace,
)
from tracemem.store import TraceStatistics, TraceStore
from tracemem.summary import summarize_trace
from tracemem.utils.config import TraceMemoryConfig
from tracemem.utils.logger import get_logger

logger = get_logger("TraceDetector")


class TraceDetector:
    """
    Groups a stream of tool calls into classified, scored traces.

    One detector belongs to one session. It is synchronous and not
    thread-safe: concurrent callers must serialize access themselves.

    Usage:
        detector = TraceDetector()
        for call in tool_calls:
            detector.add_tool_call(call)
        detector.flush()

        detector.get_traces_by_type(TraceType.ERROR_RECOVERY)
        detector.get_statistics()
    """

    def __init__(
        self,
        config: Optional[TraceBoundaryConfig] = None,
        scorer: Optional[ScoringService] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            config: Boundary thresholds; defaults to TraceBoundaryConfig()
            scorer: Per-tool scoring collaborator; defaults to WeightedToolScorer()
            clock: Returns "now" in milliseconds, used for compression age
        """
        self.config = config or TraceBoundaryConfig()
        self.scorer: ScoringService = scorer or WeightedToolScorer()
        self._clock = clock or now_ms
        self._state = DetectorState()
        self.store = TraceStore()

    @classmethod
    def from_config(
        cls,
        cfg: TraceMemoryConfig,
        clock: Optional[Callable[[], int]] = None,
    ) -> "TraceDetector":
        return cls(
            config=cfg.boundary,
            scorer=WeightedToolScorer.from_config(cfg.scoring),
            clock=clock,
        )

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def active_tool_count(self) -> int:
        return len(self._state.active_buffer)

    def add_tool_call(self, tool: ToolCall) -> List[Trace]:
        """
        Add a tool call to the active trace, splitting first if a boundary is detected.

        Returns:
            Traces finalized by this call (usually none)
        """
        self._state, finished = advance(self._state, tool, self.config)
        return [self._finalize(tools) for tools in finished]

    def ingest(self, tool_calls: Iterable[ToolCall]) -> List[Trace]:
        finalized: List[Trace] = []
        for call in tool_calls:
            finalized.extend(self.add_tool_call(call))
        return finalized

    @weave.op(enable_code_capture=False)
    def flush(self) -> Optional[Trace]:
        """Finalize the active trace, if any. Calling it on an empty buffer is a no-op."""
        buffer = self._state.active_buffer
        if not buffer:
            return None
        self._state = DetectorState(last_timestamp=self._state.last_timestamp)
        return self._finalize(buffer)

    def reset(self) -> None:
        """Drop the active buffer and every stored trace."""
        self._state = DetectorState()
        self.store.clear()
        logger.info("🔄 Trace detector reset")

    def _finalize(self, tools: Sequence[ToolCall]) -> Trace:
        tools = tuple(tools)
        metadata = extract_metadata(tools)
        trace_type = classify_trace(tools)
        score = score_trace(tools, metadata, self.scorer)
        trace = Trace(
            id=str(uuid.uuid4()),
            type=trace_type,
            tools=tools,
            score=score,
            summary=summarize_trace(trace_type, tools, metadata),
            metadata=metadata,
        )

        if compress_if_older(trace, self.config.compression_threshold_hours, self._clock()):
            logger.debug(f"🗜️ Trace {trace.id[:8]} compressed at creation")

        self.store.append(trace)
        logger.debug(
            f"🧵 Trace finalized: {trace.type.value} ({len(tools)} tools, score={score:.3f})"
        )
        return trace

    # Query API, delegated to the store

    def get_traces(self) -> List[Trace]:
        return self.store.get_traces()

    def get_trace(self, trace_id: str) -> Optional[Trace]:
        return self.store.get_trace(trace_id)

    def get_traces_by_type(self, trace_type: TraceType) -> List[Trace]:
        return self.store.get_traces_by_type(trace_type)

    def get_high_importance_traces(
        self, threshold: float = HIGH_IMPORTANCE_THRESHOLD
    ) -> List[Trace]:
        return self.store.get_high_importance_traces(threshold)

    @weave.op(enable_code_capture=False)
    def compress_old_traces(self, age_hours: float = 24) -> int:
        compressed = self.store.compress_old_traces(age_hours, now_ms=self._clock())
        if compressed:
            logger.info(f"🗜️ Compressed {compressed} traces older than {age_hours}h")
        return compressed

    def export_traces(self):
        return self.store.export_traces()

    def get_statistics(self) -> TraceStatistics:
        return self.store.get_statistics()

    def analyze(self, analysis_type: str = "performance", trace_id: Optional[str] = None) -> dict:
        return self.store.analyze(analysis_type, trace_id)
