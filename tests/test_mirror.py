"""
Unit tests for the external mirror sync.

Transports are faked; no network I/O happens.
"""

import json
import threading
from unittest.mock import Mock, patch

import pytest
import requests

from sales_tracker.core.errors import SyncFailure
from sales_tracker.core.identity import SessionManager
from sales_tracker.core.workflow import submit_conveyance, update_settings
from sales_tracker.storage.repository import EntityStore
from sales_tracker.sync.mirror import HttpTransport, MirrorSync, build_mirror


class RecordingTransport:
    """Collects every snapshot sent."""

    def __init__(self):
        self.sent = []
        self._lock = threading.Lock()

    def send(self, snapshot):
        with self._lock:
            self.sent.append(snapshot)


class FailingTransport:
    def __init__(self):
        self.calls = 0

    def send(self, snapshot):
        self.calls += 1
        raise SyncFailure("endpoint unavailable")


@pytest.fixture
def store():
    return EntityStore()


class TestAutomaticSync:
    """Every mutation schedules a full-snapshot push."""

    def test_mutation_schedules_push(self, store):
        transport = RecordingTransport()
        mirror = MirrorSync(store, transport)
        try:
            SessionManager(store).register("alice", "Alice A")
            mirror.flush(timeout=5)
        finally:
            mirror.close()

        assert len(transport.sent) == 1
        assert transport.sent[0]["users"][0]["username"] == "alice"
        assert transport.sent[0]["inquiries"] == []
        assert transport.sent[0]["conveyances"] == []

    def test_each_mutation_pushes_full_snapshot(self, store):
        transport = RecordingTransport()
        mirror = MirrorSync(store, transport)
        try:
            alice = SessionManager(store).register("alice", "Alice A")
            update_settings(store, 12)
            submit_conveyance(store, alice.id, "2024-01-02", "BIKE", 0, 10)
            mirror.flush(timeout=5)
        finally:
            mirror.close()

        assert len(transport.sent) == 3
        for snapshot in transport.sent:
            assert set(snapshot.keys()) == {"users", "inquiries", "conveyances"}
        # every push contains the full dataset as of when it ran
        assert any(len(s["conveyances"]) == 1 for s in transport.sent)

    def test_session_changes_do_not_push(self, store):
        transport = RecordingTransport()
        SessionManager(store).register("alice", "Alice A")
        mirror = MirrorSync(store, transport)
        try:
            sessions = SessionManager(store)
            sessions.logout()
            sessions.authenticate("alice")
            mirror.flush(timeout=5)
        finally:
            mirror.close()

        assert transport.sent == []

    def test_failure_is_swallowed(self, store):
        transport = FailingTransport()
        mirror = MirrorSync(store, transport)
        try:
            user = SessionManager(store).register("alice", "Alice A")
            mirror.flush(timeout=5)
        finally:
            mirror.close()

        assert transport.calls == 1
        assert store.find_user(user.id) is not None

    def test_unexpected_transport_error_is_swallowed(self, store):
        transport = Mock()
        transport.send.side_effect = RuntimeError("boom")
        mirror = MirrorSync(store, transport)
        try:
            SessionManager(store).register("alice", "Alice A")
            future = mirror.schedule()
            mirror.flush(timeout=5)
        finally:
            mirror.close()

        assert future.result() is False

    def test_mutation_does_not_wait_for_push(self, store):
        release = threading.Event()
        transport = Mock()
        transport.send.side_effect = lambda snapshot: release.wait(5)
        mirror = MirrorSync(store, transport, max_workers=1)
        try:
            SessionManager(store).register("alice", "Alice A")
            # the push is still blocked, yet the mutation already returned
            assert store.find_user_by_username("alice") is not None
            release.set()
            mirror.flush(timeout=5)
        finally:
            mirror.close()

        transport.send.assert_called_once()

    def test_closed_mirror_stops_listening(self, store):
        transport = RecordingTransport()
        mirror = MirrorSync(store, transport)
        mirror.close()

        SessionManager(store).register("alice", "Alice A")

        assert transport.sent == []
        assert mirror.schedule() is None


class TestForceSync:
    """The manual sync reports its outcome."""

    def test_success(self, store):
        transport = RecordingTransport()
        mirror = MirrorSync(store, transport)
        try:
            assert mirror.force_sync() is True
        finally:
            mirror.close()

        assert transport.sent == [{"users": [], "inquiries": [], "conveyances": []}]

    def test_failure_raises(self, store):
        mirror = MirrorSync(store, FailingTransport())
        try:
            with pytest.raises(SyncFailure):
                mirror.force_sync()
        finally:
            mirror.close()

    def test_unexpected_error_wrapped(self, store):
        transport = Mock()
        transport.send.side_effect = RuntimeError("boom")
        mirror = MirrorSync(store, transport)
        try:
            with pytest.raises(SyncFailure, match="boom"):
                mirror.force_sync()
        finally:
            mirror.close()


class TestHttpTransport:
    """Test the POST request shape."""

    @patch('sales_tracker.sync.mirror.requests.post')
    def test_posts_plain_text_json(self, mock_post):
        transport = HttpTransport("https://example.invalid/exec", timeout=3)
        snapshot = {"users": [{"id": "u1"}], "inquiries": [], "conveyances": []}

        transport.send(snapshot)

        mock_post.assert_called_once()
        args, kwargs = mock_post.call_args
        assert args[0] == "https://example.invalid/exec"
        assert kwargs["headers"] == {"Content-Type": "text/plain"}
        assert json.loads(kwargs["data"]) == snapshot
        assert kwargs["timeout"] == 3

    @patch('sales_tracker.sync.mirror.requests.post')
    def test_response_is_not_inspected(self, mock_post):
        mock_post.return_value = Mock(status_code=500, text="<html>error</html>")
        transport = HttpTransport("https://example.invalid/exec")

        transport.send({"users": [], "inquiries": [], "conveyances": []})

        mock_post.return_value.raise_for_status.assert_not_called()
        mock_post.return_value.json.assert_not_called()

    @patch('sales_tracker.sync.mirror.requests.post')
    def test_network_error_becomes_sync_failure(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("offline")
        transport = HttpTransport("https://example.invalid/exec")

        with pytest.raises(SyncFailure, match="offline"):
            transport.send({"users": [], "inquiries": [], "conveyances": []})

    def test_endpoint_required(self):
        with pytest.raises(ValueError, match="endpoint is required"):
            HttpTransport("")


class TestBuildMirror:
    """Test mirror construction from config values."""

    def test_no_endpoint_disables_mirror(self, store):
        assert build_mirror(store, None) is None
        assert build_mirror(store, "") is None

    def test_endpoint_builds_http_mirror(self, store):
        mirror = build_mirror(store, "https://example.invalid/exec", timeout=4)
        try:
            assert isinstance(mirror.transport, HttpTransport)
            assert mirror.transport.timeout == 4
        finally:
            mirror.close()
