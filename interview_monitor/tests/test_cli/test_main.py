"""
Tests for the command-line entry point: status display and shutdown.
"""

import threading

import pytest
from unittest.mock import MagicMock, patch

from interview_monitor.app import main as cli
from interview_monitor.app.session.report import format_timer


class TestFormatTimer:
    """Tests for the mm:ss elapsed-time display."""

    @pytest.mark.parametrize("seconds, expected", [
        (0, "00:00"),
        (9, "00:09"),
        (65, "01:05"),
        (599, "09:59"),
        (3600, "60:00"),
    ])
    def test_format(self, seconds, expected):
        assert format_timer(seconds) == expected

    def test_negative_clamped(self):
        assert format_timer(-3) == "00:00"


class TestWaitForStop:
    """Tests for the status loop that runs while a session is active."""

    def _controller(self, elapsed=75, score=88):
        controller = MagicMock()
        controller.is_active.return_value = True
        controller.elapsed_seconds = elapsed
        controller.focus_state.focus_score = score
        return controller

    @pytest.mark.timeout(5)
    def test_prints_status_until_duration(self, capsys):
        with patch.object(cli, "STATUS_INTERVAL_SEC", 0.05):
            cli.wait_for_stop(self._controller(), threading.Event(), duration=0.3)

        lines = capsys.readouterr().out.splitlines()
        assert len(lines) >= 2
        assert lines[0] == "[01:15] focus score 88"

    @pytest.mark.timeout(5)
    def test_stop_request_returns_immediately(self, capsys):
        stop_requested = threading.Event()
        stop_requested.set()

        cli.wait_for_stop(self._controller(), stop_requested)

        assert capsys.readouterr().out == ""

    def test_inactive_controller(self):
        controller = self._controller()
        controller.is_active.return_value = False

        cli.wait_for_stop(controller, threading.Event())


class TestShutdown:
    """main() releases perception resources when the session ends."""

    def _patch_collaborators(self, controller):
        config_manager = MagicMock()
        config_manager.load_policy.return_value = False
        return patch.multiple(
            cli,
            get_config_manager=MagicMock(return_value=config_manager),
            setup_logging=MagicMock(),
            get_audit_logger=MagicMock(),
            get_supabase_client=MagicMock(),
            get_sqlite_queue=MagicMock(),
            QueuedSessionStore=MagicMock(),
            CameraRecorder=MagicMock(),
            get_object_detector=MagicMock(),
            SessionController=MagicMock(return_value=controller),
            signal=MagicMock(),
        )

    def test_face_mesh_closed_after_session(self, capsys):
        face_mesh = MagicMock()
        controller = MagicMock()
        controller.is_active.return_value = False
        controller.stop_session.return_value.to_dict.return_value = {"session_id": "s-1"}

        with self._patch_collaborators(controller), \
                patch.object(cli, "get_face_mesh_provider", return_value=face_mesh):
            assert cli.main(["Ada", "--duration", "0"]) == 0

        controller.stop_session.assert_called_once()
        face_mesh.close.assert_called_once()
        assert '"session_id": "s-1"' in capsys.readouterr().out

    def test_face_mesh_closed_when_start_fails(self):
        face_mesh = MagicMock()
        controller = MagicMock()
        controller.start_session.side_effect = cli.SessionError("camera busy")

        with self._patch_collaborators(controller), \
                patch.object(cli, "get_face_mesh_provider", return_value=face_mesh):
            assert cli.main(["Ada"]) == 1

        face_mesh.close.assert_called_once()
        controller.stop_session.assert_not_called()
