"""
Unit tests for age-based trace compression.

A fixed clock is injected into the detector so trace ages are exact.
"""

import pytest

from tracemem.compression import (
    MS_PER_HOUR,
    compress_if_older,
    compress_trace,
    trace_age_hours,
)
from tracemem.detector import TraceDetector
from tracemem.models import ToolCall

START = 1_700_000_000_000


class FixedClock:
    """Clock returning a settable millisecond timestamp."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


def _trace(detector, *names, start=START):
    for i, name in enumerate(names):
        detector.add_tool_call(ToolCall.create(name, timestamp=start + i * 1000))
    return detector.flush()


@pytest.fixture
def clock():
    return FixedClock(START + 2 * MS_PER_HOUR)


@pytest.fixture
def detector(clock):
    return TraceDetector(clock=clock)


class TestCompressTrace:
    def test_projection(self, detector):
        trace = _trace(detector, "grep", "search", "read")
        compressed = compress_trace(trace)

        assert compressed.pattern == "grep→search→read"
        assert compressed.summary == trace.summary
        assert compressed.score == trace.score
        assert compressed.tool_count == 3
        assert compressed.duration == 2000
        assert compressed.timestamp == START

    def test_age_in_hours(self, detector, clock):
        trace = _trace(detector, "read")
        assert trace_age_hours(trace, clock.now) == pytest.approx(2.0)


class TestCompressIfOlder:
    def test_age_must_exceed_threshold(self, detector):
        trace = _trace(detector, "read")

        assert not compress_if_older(trace, 24, START + 24 * MS_PER_HOUR)
        assert trace.compressed is None
        assert compress_if_older(trace, 24, START + 24 * MS_PER_HOUR + 1)
        assert trace.compressed is not None

    def test_second_compression_is_a_no_op(self, detector):
        trace = _trace(detector, "read")
        assert compress_if_older(trace, 0, START + MS_PER_HOUR)
        first = trace.compressed

        assert not compress_if_older(trace, 0, START + 5 * MS_PER_HOUR)
        assert trace.compressed is first


class TestDetectorCompression:
    def test_fresh_trace_not_compressed_at_creation(self, detector):
        assert _trace(detector, "read").compressed is None

    def test_old_trace_compressed_at_creation(self, clock):
        clock.now = START + 25 * MS_PER_HOUR
        trace = _trace(TraceDetector(clock=clock), "read")
        assert trace.compressed is not None

    def test_compress_old_traces_counts_only_new(self, detector, clock):
        _trace(detector, "read")
        _trace(detector, "grep", start=START + MS_PER_HOUR)

        clock.now = START + 30 * MS_PER_HOUR
        assert detector.compress_old_traces(24) == 2
        assert detector.compress_old_traces(24) == 0
        assert detector.get_statistics().compressed_count == 2

    def test_compress_old_traces_respects_age(self, detector, clock):
        _trace(detector, "read")
        _trace(detector, "grep", start=START + 10 * MS_PER_HOUR)

        clock.now = START + 12 * MS_PER_HOUR
        assert detector.compress_old_traces(5) == 1
        compressed = [t.compressed is not None for t in detector.get_traces()]
        assert compressed == [True, False]
