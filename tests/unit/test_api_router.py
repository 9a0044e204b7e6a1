"""
Unit tests for the trace API router.

Tests the HTTP layer against a real SessionRegistry whose detectors use a
fixed clock, to verify:
- Payload parsing and validation
- Per-session ingestion and flushing
- Query filters, statistics, analysis and export
- 404 handling for unknown sessions and traces

These tests use FastAPI's TestClient.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tracemem.api.router import router, set_registry
from tracemem.compression import MS_PER_HOUR
from tracemem.detector import TraceDetector
from tracemem.sessions import SessionRegistry

START = 1_700_000_000_000


class FixedClock:
    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FixedClock(START + MS_PER_HOUR)


@pytest.fixture
def registry(clock):
    return SessionRegistry(lambda: TraceDetector(clock=clock))


@pytest.fixture
def client(registry):
    """Create a TestClient with the router mounted on a bare app."""
    set_registry(registry)
    app = FastAPI()
    app.include_router(router)
    yield TestClient(app)


def _tool_calls(*entries):
    """Build tool-call payloads from (tool, offset_ms[, extra]) tuples."""
    payloads = []
    for entry in entries:
        tool, offset = entry[0], entry[1]
        payload = {"tool": tool, "timestamp": START + offset}
        if len(entry) > 2:
            payload.update(entry[2])
        payloads.append(payload)
    return {"tool_calls": payloads}


@pytest.fixture
def populated(client):
    """Session "s1" with an exploration trace and an error-recovery trace."""
    client.post(
        "/v1/sessions/s1/tool-calls",
        json=_tool_calls(
            ("grep", 0),
            ("search", 1000),
            ("read", 2000, {"arguments": {"file_path": "src/a.py"}}),
            ("bash", 60000, {"error": "exit 1"}),
            ("edit", 61000, {"filesAffected": ["src/a.py"]}),
            ("bash", 62000),
        ),
    )
    client.post("/v1/sessions/s1/flush")
    return client


class TestIngestion:
    """Tests for POST /v1/sessions/{id}/tool-calls and hook-events."""

    def test_ingest_creates_session(self, client):
        response = client.post(
            "/v1/sessions/s1/tool-calls",
            json=_tool_calls(("read", 0), ("read", 1000), ("read", 90000)),
        )

        assert response.status_code == 200
        data = response.json()
        assert data == {
            "session_id": "s1",
            "ingested": 3,
            "traces_finalized": 1,
            "active_tool_count": 1,
        }
        assert client.get("/v1/sessions").json() == {"sessions": ["s1"]}

    def test_empty_tool_name_rejected(self, client):
        response = client.post("/v1/sessions/s1/tool-calls", json={"tool_calls": [{"tool": ""}]})
        assert response.status_code == 422

    def test_hook_events(self, client):
        response = client.post(
            "/v1/sessions/s2/hook-events",
            json={
                "events": [
                    {
                        "tool_name": "Bash",
                        "tool_input": {"command": "pytest"},
                        "tool_response": {"is_error": True, "content": "1 failed"},
                        "timestamp": START,
                    },
                    {
                        "tool_name": "Edit",
                        "tool_input": {"file_path": "src/a.py"},
                        "timestamp": START + 500,
                        "session_id": "ignored-extra-field",
                    },
                ]
            },
        )
        assert response.status_code == 200
        assert response.json()["active_tool_count"] == 2

        trace = client.post("/v1/sessions/s2/flush").json()["trace"]
        assert trace["type"] == "error_recovery"
        assert trace["pattern"] == "Bash→Edit"


class TestFlush:
    def test_flush_returns_trace_summary(self, client):
        client.post("/v1/sessions/s1/tool-calls", json=_tool_calls(("write", 0), ("edit", 10), ("test", 20)))
        trace = client.post("/v1/sessions/s1/flush").json()["trace"]

        assert trace["type"] == "feature_implementation"
        assert trace["tool_count"] == 3
        assert trace["duration"] == 20
        assert trace["compressed"] is False

    def test_flush_empty_buffer(self, client):
        client.post("/v1/sessions/s1/tool-calls", json=_tool_calls(("read", 0)))
        client.post("/v1/sessions/s1/flush")
        response = client.post("/v1/sessions/s1/flush")

        assert response.status_code == 200
        assert response.json()["trace"] is None

    def test_unknown_session_404(self, client):
        assert client.post("/v1/sessions/nope/flush").status_code == 404


class TestTraceQueries:
    def test_list_all(self, populated):
        data = populated.get("/v1/sessions/s1/traces").json()

        assert data["total_count"] == 2
        assert [t["type"] for t in data["traces"]] == ["exploration", "error_recovery"]

    def test_filter_by_type(self, populated):
        data = populated.get("/v1/sessions/s1/traces", params={"type": "error_recovery"}).json()
        assert [t["pattern"] for t in data["traces"]] == ["bash→edit→bash"]

    def test_filter_by_min_score(self, populated):
        data = populated.get("/v1/sessions/s1/traces", params={"min_score": 0.375}).json()
        assert [t["type"] for t in data["traces"]] == ["exploration"]

    def test_filter_by_pattern_and_limit(self, populated):
        data = populated.get("/v1/sessions/s1/traces", params={"pattern": "bash"}).json()
        assert data["total_count"] == 1

        data = populated.get("/v1/sessions/s1/traces", params={"limit": 1}).json()
        assert [t["type"] for t in data["traces"]] == ["error_recovery"]

    def test_filter_by_time_window(self, populated):
        """Bounds are inclusive and apply to the trace start time."""
        later = populated.get("/v1/sessions/s1/traces", params={"start_time": START + 30000}).json()
        earlier = populated.get("/v1/sessions/s1/traces", params={"end_time": START}).json()
        both = populated.get(
            "/v1/sessions/s1/traces", params={"start_time": START, "end_time": START + 60000}
        ).json()

        assert [t["type"] for t in later["traces"]] == ["error_recovery"]
        assert [t["type"] for t in earlier["traces"]] == ["exploration"]
        assert both["total_count"] == 2

    def test_type_combines_with_time_window(self, populated):
        data = populated.get(
            "/v1/sessions/s1/traces", params={"type": "exploration", "start_time": START + 30000}
        ).json()
        assert data["total_count"] == 0

    def test_invalid_type_rejected(self, populated):
        response = populated.get("/v1/sessions/s1/traces", params={"type": "nonsense"})
        assert response.status_code == 422

    def test_get_trace_by_id(self, populated):
        summary = populated.get("/v1/sessions/s1/traces").json()["traces"][1]
        trace = populated.get(f"/v1/sessions/s1/traces/{summary['id']}").json()

        assert trace["id"] == summary["id"]
        assert [t["tool"] for t in trace["tools"]] == ["bash", "edit", "bash"]
        assert trace["metadata"]["causal_chain"] is True
        assert trace["metadata"]["files_modified"] == ["src/a.py"]

    def test_unknown_trace_404(self, populated):
        assert populated.get("/v1/sessions/s1/traces/missing").status_code == 404

    def test_unknown_session_404(self, client):
        assert client.get("/v1/sessions/nope/traces").status_code == 404


class TestStatisticsAndExport:
    def test_statistics(self, populated):
        data = populated.get("/v1/sessions/s1/statistics").json()

        assert data["session_id"] == "s1"
        assert data["total_traces"] == 2
        assert data["traces_by_type"] == {"exploration": 1, "error_recovery": 1}
        assert data["average_length"] == 3.0
        assert data["compressed_count"] == 0

    def test_export(self, populated):
        exported = populated.get("/v1/sessions/s1/export").json()
        assert len(exported) == 2
        assert exported[0]["tools"][2]["files_affected"] == ["src/a.py"]


class TestAnalysis:
    """Tests for GET /v1/sessions/{id}/analysis."""

    def test_performance_is_default(self, populated):
        data = populated.get("/v1/sessions/s1/analysis").json()

        assert data["session_id"] == "s1"
        assert data["analysis_type"] == "performance"
        assert data["trace_count"] == 2
        assert data["average_duration"] == 2000.0
        assert data["tool_usage"] == {"bash": 2, "grep": 1, "search": 1, "read": 1, "edit": 1}
        assert data["slowest_operation"] is None

    def test_errors(self, populated):
        data = populated.get("/v1/sessions/s1/analysis", params={"analysis_type": "errors"}).json()

        assert data["error_rate"] == 16.7
        assert data["common_errors"] == [{"error": "exit 1", "count": 1}]
        assert data["error_sources"] == {"bash": 1}
        assert data["recovery_patterns"] == ["bash→edit→bash"]

    def test_patterns_for_single_trace(self, populated):
        first = populated.get("/v1/sessions/s1/traces").json()["traces"][0]
        data = populated.get(
            "/v1/sessions/s1/analysis",
            params={"analysis_type": "patterns", "trace_id": first["id"]},
        ).json()

        assert data["trace_count"] == 1
        assert data["success_rate"] == 100.0
        assert data["common_sequences"] == [
            {"sequence": "grep→search", "count": 1},
            {"sequence": "search→read", "count": 1},
        ]
        assert data["failure_patterns"] == []

    def test_invalid_type_rejected(self, populated):
        response = populated.get("/v1/sessions/s1/analysis", params={"analysis_type": "latency"})
        assert response.status_code == 422

    def test_unknown_trace_404(self, populated):
        response = populated.get("/v1/sessions/s1/analysis", params={"trace_id": "missing"})
        assert response.status_code == 404

    def test_unknown_session_404(self, client):
        assert client.get("/v1/sessions/nope/analysis").status_code == 404


class TestCompressAndDelete:
    def test_compress_counts_new_only(self, populated, clock):
        clock.now = START + 30 * MS_PER_HOUR

        first = populated.post("/v1/sessions/s1/compress").json()
        second = populated.post("/v1/sessions/s1/compress").json()

        assert first["compressed"] == 2
        assert second["compressed"] == 0
        stats = populated.get("/v1/sessions/s1/statistics").json()
        assert stats["compressed_count"] == 2

    def test_compress_age_parameter(self, populated):
        data = populated.post("/v1/sessions/s1/compress", params={"age_hours": 0.5}).json()
        assert data["age_hours"] == 0.5
        assert data["compressed"] == 2

    def test_delete_session(self, populated):
        assert populated.delete("/v1/sessions/s1").status_code == 200
        assert populated.get("/v1/sessions/s1/traces").status_code == 404
        assert populated.delete("/v1/sessions/s1").status_code == 404


class TestCreateApp:
    def test_health_and_routes(self, tmp_path):
        from tracemem.api.app import create_app

        scoring = tmp_path / "scoring_config.toml"
        scoring.write_text('profile = "production-system"\n', encoding="utf-8")
        app = create_app(str(tmp_path / "config.toml"), str(scoring))
        client = TestClient(app)

        health = client.get("/health").json()
        assert health["status"] == "healthy"
        assert health["scoring_profile"] == "production-system"

        client.post("/v1/sessions/s1/tool-calls", json=_tool_calls(("edit", 0)))
        assert client.get("/health").json()["sessions"] == 1
