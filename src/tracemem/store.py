"""
Trace Store - In-memory ordered collection of finalized traces.

Keeps traces in creation order for the lifetime of a detector. There is no
automatic eviction; callers export and clear when they need to.
"""

import json
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from tracemem.analysis import AnalysisType, analyze_traces
from tracemem.compression import compress_if_older
from tracemem.exceptions import TraceNotFoundError
from tracemem.models import Trace, TraceType, now_ms as current_time_ms
from tracemem.scoring import HIGH_IMPORTANCE_THRESHOLD


@dataclass
class TraceStatistics:
    total_traces: int = 0
    traces_by_type: Dict[str, int] = field(default_factory=dict)
    average_score: float = 0.0
    average_length: float = 0.0
    compressed_count: int = 0
    high_importance_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_traces": self.total_traces,
            "traces_by_type": dict(self.traces_by_type),
            "average_score": self.average_score,
            "average_length": self.average_length,
            "compressed_count": self.compressed_count,
            "high_importance_count": self.high_importance_count,
        }


class TraceStore:
    """
    Ordered in-memory store for finalized traces.

    Query methods return new lists, so callers cannot reorder or drop
    stored traces by mutating a result.
    """

    def __init__(self):
        self._traces: List[Trace] = []

    def append(self, trace: Trace) -> None:
        self._traces.append(trace)

    def __len__(self) -> int:
        return len(self._traces)

    def __iter__(self) -> Iterator[Trace]:
        return iter(list(self._traces))

    def clear(self) -> None:
        """Remove all traces. Called on session reset."""
        self._traces.clear()

    def get_traces(self) -> List[Trace]:
        return list(self._traces)

    def get_trace(self, trace_id: str) -> Optional[Trace]:
        for trace in self._traces:
            if trace.id == trace_id:
                return trace
        return None

    def get_traces_by_type(self, trace_type: TraceType) -> List[Trace]:
        return [t for t in self._traces if t.type == trace_type]

    def get_high_importance_traces(
        self, threshold: float = HIGH_IMPORTANCE_THRESHOLD
    ) -> List[Trace]:
        return [t for t in self._traces if t.score >= threshold]

    def query(
        self,
        limit: Optional[int] = None,
        pattern: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> List[Trace]:
        """
        Filter traces by tool pattern and time window.

        Args:
            limit: Keep only the newest ``limit`` matches (creation order kept)
            pattern: Substring that must occur in the "a→b→c" tool pattern
            start_time: Inclusive lower bound on a trace's start time (ms)
            end_time: Inclusive upper bound on a trace's start time (ms)

        Returns:
            Matching traces in creation order
        """
        results = []
        for trace in self._traces:
            if pattern and pattern not in trace.pattern:
                continue
            if start_time is not None and trace.metadata.start_time < start_time:
                continue
            if end_time is not None and trace.metadata.start_time > end_time:
                continue
            results.append(trace)
        if limit is not None:
            results = results[-limit:] if limit > 0 else []
        return results

    def compress_old_traces(self, age_hours: float = 24, now_ms: Optional[int] = None) -> int:
        """
        Compress every stored trace older than ``age_hours`` that is not compressed yet.

        Returns:
            Number of traces compressed by this call only
        """
        now = current_time_ms() if now_ms is None else now_ms
        return sum(1 for trace in self._traces if compress_if_older(trace, age_hours, now))

    def analyze(
        self,
        analysis_type: Union[AnalysisType, str] = AnalysisType.PERFORMANCE,
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Run a performance, patterns or errors analysis.

        Args:
            analysis_type: Which view to build
            trace_id: Restrict the analysis to this trace; all traces when None

        Raises:
            ValueError: If ``analysis_type`` is unknown
            TraceNotFoundError: If ``trace_id`` is not stored
        """
        if trace_id is None:
            return analyze_traces(list(self._traces), analysis_type)
        trace = self.get_trace(trace_id)
        if trace is None:
            raise TraceNotFoundError(trace_id)
        return analyze_traces([trace], analysis_type)

    def export_traces(self) -> List[Dict[str, Any]]:
        return [trace.to_dict() for trace in self._traces]

    def export_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.export_traces(), indent=indent, ensure_ascii=False, default=str)

    def get_statistics(self) -> TraceStatistics:
        stats = TraceStatistics()
        if not self._traces:
            return stats

        count = len(self._traces)
        stats.total_traces = count
        stats.traces_by_type = dict(Counter(t.type.value for t in self._traces))
        stats.average_score = sum(t.score for t in self._traces) / count
        stats.average_length = sum(len(t.tools) for t in self._traces) / count
        stats.compressed_count = sum(1 for t in self._traces if t.compressed is not None)
        stats.high_importance_count = sum(
            1 for t in self._traces if t.score >= HIGH_IMPORTANCE_THRESHOLD
        )
        return stats
