"""
Unit tests for the per-session detector registry.
"""

import threading

import pytest

from tracemem.detector import TraceDetector
from tracemem.exceptions import SessionNotFoundError
from tracemem.models import ToolCall
from tracemem.sessions import SessionRegistry


class TestSessionRegistry:
    def test_use_creates_on_demand(self):
        registry = SessionRegistry()
        with registry.use("s1", create=True) as detector:
            assert isinstance(detector, TraceDetector)
        assert "s1" in registry
        assert registry.session_ids() == ["s1"]

    def test_unknown_session_raises(self):
        registry = SessionRegistry()
        with pytest.raises(SessionNotFoundError):
            with registry.use("missing"):
                pass
        assert "missing" not in registry

    def test_sessions_have_separate_detectors(self):
        registry = SessionRegistry()
        with registry.use("a", create=True) as detector:
            detector.add_tool_call(ToolCall.create("read", timestamp=0))
            first = detector
        with registry.use("b", create=True) as detector:
            assert detector is not first
            assert detector.active_tool_count == 0
        with registry.use("a") as detector:
            assert detector is first

    def test_factory_used_for_new_sessions(self):
        calls = []

        def factory():
            calls.append(1)
            return TraceDetector()

        registry = SessionRegistry(factory)
        with registry.use("a", create=True):
            pass
        with registry.use("a", create=True):
            pass
        assert len(calls) == 1

    def test_remove(self):
        registry = SessionRegistry()
        with registry.use("a", create=True):
            pass
        assert registry.remove("a") is True
        assert registry.remove("a") is False
        assert registry.session_ids() == []

    def test_concurrent_ingestion_into_one_session(self):
        """Serialized access keeps every call from every thread."""
        registry = SessionRegistry()

        def worker():
            for _ in range(100):
                call = ToolCall.create("read", timestamp=0, files_affected=["src/a.py"])
                with registry.use("shared", create=True) as detector:
                    detector.add_tool_call(call)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        with registry.use("shared") as detector:
            detector.flush()
            total = sum(len(t.tools) for t in detector.get_traces())
        assert total == 400
