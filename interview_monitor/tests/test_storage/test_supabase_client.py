"""
Tests for the Supabase REST client against a mocked transport.
"""

import json
from datetime import datetime, timezone

import httpx
import pytest

from interview_monitor.app.config import SupabaseConfig
from interview_monitor.app.storage.supabase_client import SupabaseClient


@pytest.fixture
def config():
    return SupabaseConfig(url="https://example.supabase.co/", key="anon-key", service_key="service-key")


def make_client(config, handler):
    return SupabaseClient(config, transport=httpx.MockTransport(handler))


class TestSupabaseClient:
    """Tests for session/event REST calls."""

    def test_configured(self, config):
        assert SupabaseClient(config).configured is True
        assert SupabaseClient(SupabaseConfig(url="", key="")).configured is False

    def test_create_session(self, config):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json=[{"id": 42}])

        client = make_client(config, handler)
        start = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

        session_id = client.create_session("Ada", start)

        assert session_id == "42"
        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/interview_sessions"
        assert request.headers["apikey"] == "service-key"
        body = json.loads(request.content)
        assert body["candidate_name"] == "Ada"
        assert body["start_time"] == "2024-05-01T09:30:00+00:00"
        assert body["status"] == "ACTIVE"

    def test_create_session_http_error(self, config):
        client = make_client(config, lambda request: httpx.Response(500, json={"message": "down"}))

        assert client.create_session("Ada", datetime.now(timezone.utc)) is None

    def test_create_session_empty_response(self, config):
        client = make_client(config, lambda request: httpx.Response(201, json=[]))

        assert client.create_session("Ada", datetime.now(timezone.utc)) is None

    def test_log_event(self, config):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(201, json=[{}])

        client = make_client(config, handler)
        event = {
            "type": "SUSPICIOUS_OBJECT",
            "severity": "danger",
            "message": "book detected (87% confidence)",
            "timestamp": "2024-05-01T09:31:00+00:00",
            "session_time_ms": 60000,
            "data": {"class": "book", "confidence": 0.87},
        }

        assert client.log_event("42", event) is True

        assert requests[0].url.path == "/rest/v1/session_events"
        body = json.loads(requests[0].content)
        assert body["session_id"] == "42"
        assert body["event_type"] == "SUSPICIOUS_OBJECT"
        assert body["occurred_at"] == "2024-05-01T09:31:00+00:00"
        assert body["data"] == {"class": "book", "confidence": 0.87}

    def test_log_event_failure(self, config):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = make_client(config, handler)

        assert client.log_event("42", {"type": "NO_FACE"}) is False

    def test_end_session(self, config):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=[{}])

        client = make_client(config, handler)
        report = {
            "end_time": "2024-05-01T10:00:00+00:00",
            "duration_sec": 1800.0,
            "focus_summary": {"focus_lost_count": 1},
            "object_summary": {"total_detections": 0, "items": []},
        }

        assert client.end_session("42", report) is True

        request = requests[0]
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.42"
        body = json.loads(request.content)
        assert body["status"] == "ENDED"
        assert body["duration_sec"] == 1800.0
        assert body["object_summary"] == {"total_detections": 0, "items": []}
