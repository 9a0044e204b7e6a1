"""
Unit tests for metadata extraction and templated summaries.
"""

import pytest

from tracemem.metadata import extract_metadata
from tracemem.models import ToolCall, TraceType
from tracemem.summary import summarize_trace


def _call(tool, timestamp=0, files=(), error=None, arguments=None):
    return ToolCall.create(
        tool, timestamp=timestamp, files_affected=files, error=error, arguments=arguments
    )


class TestExtractMetadata:
    def test_time_span_from_first_and_last_call(self):
        metadata = extract_metadata([_call("read", 100), _call("edit", 250), _call("test", 900)])

        assert metadata.start_time == 100
        assert metadata.end_time == 900
        assert metadata.duration == 800

    def test_files_deduplicated_in_first_seen_order(self):
        metadata = extract_metadata(
            [
                _call("read", files=["src/b.py", "src/a.py"]),
                _call("edit", files=["src/a.py", "src/c.py"]),
            ]
        )
        assert metadata.files_modified == ("src/b.py", "src/a.py", "src/c.py")

    def test_errors_collected_in_order(self):
        metadata = extract_metadata(
            [_call("bash", error="first"), _call("edit"), _call("bash", error="second")]
        )
        assert metadata.errors_encountered == ("first", "second")

    def test_decisions_from_decision_tools_only(self):
        metadata = extract_metadata(
            [
                _call("decision_recording", arguments={"decision": "Use SQLite"}),
                _call("edit", arguments={"decision": "ignored"}),
                _call("record_decision", arguments={"decision": ""}),
                _call("log_decision", arguments={"decision": "Drop v1 API"}),
            ]
        )
        assert metadata.decisions_recorded == ("Use SQLite", "Drop v1 API")

    def test_causal_chain_when_error_followed_by_fix(self):
        metadata = extract_metadata([_call("bash", error="boom"), _call("edit")])
        assert metadata.causal_chain is True

    def test_no_causal_chain_without_fix(self):
        metadata = extract_metadata([_call("bash", error="boom"), _call("read")])
        assert metadata.causal_chain is False

    def test_no_causal_chain_when_error_is_last(self):
        metadata = extract_metadata([_call("read"), _call("bash", error="boom")])
        assert metadata.causal_chain is False

    def test_empty_sequence_rejected(self):
        with pytest.raises(ValueError):
            extract_metadata([])


class TestSummarizeTrace:
    def test_error_recovery_mentions_first_error(self):
        tools = [_call("bash", error="ImportError: x"), _call("edit"), _call("bash")]
        summary = summarize_trace(TraceType.ERROR_RECOVERY, tools, extract_metadata(tools))
        assert summary == "Error recovery: ImportError: x via bash→edit→bash"

    def test_error_recovery_without_error(self):
        tools = [_call("edit")]
        summary = summarize_trace(TraceType.ERROR_RECOVERY, tools, extract_metadata(tools))
        assert summary == "Error recovery: unknown error via edit"

    def test_feature_implementation_counts_files(self):
        tools = [
            _call("write", files=["src/a.py"]),
            _call("edit", files=["src/a.py", "src/b.py"]),
            _call("test"),
        ]
        summary = summarize_trace(
            TraceType.FEATURE_IMPLEMENTATION, tools, extract_metadata(tools)
        )
        assert summary == "Feature implementation: 2 files via write→edit→test"

    def test_unknown_uses_generic_template(self):
        tools = [_call("read"), _call("read")]
        summary = summarize_trace(TraceType.UNKNOWN, tools, extract_metadata(tools))
        assert summary == "Tool sequence: read→read"

    @pytest.mark.parametrize(
        "trace_type,prefix",
        [
            (TraceType.SEARCH_DRIVEN, "Search-driven modification: "),
            (TraceType.REFACTORING, "Code refactoring: "),
            (TraceType.TESTING, "Test execution: "),
            (TraceType.EXPLORATION, "Codebase exploration: "),
            (TraceType.DEBUGGING, "Debugging session: "),
            (TraceType.DOCUMENTATION, "Documentation update: "),
            (TraceType.BUILD_DEPLOY, "Build and deploy: "),
        ],
    )
    def test_chain_templates(self, trace_type, prefix):
        tools = [_call("grep"), _call("read")]
        summary = summarize_trace(trace_type, tools, extract_metadata(tools))
        assert summary == f"{prefix}grep→read"
