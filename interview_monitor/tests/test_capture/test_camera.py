"""
Tests for the camera recorder with OpenCV capture mocked out.
"""

import numpy as np
import pytest
from unittest.mock import MagicMock, patch

from interview_monitor.app.capture.camera import CameraRecorder, CaptureError


def fake_capture(opened=True, frame=None):
    cap = MagicMock()
    cap.isOpened.return_value = opened
    frame = frame if frame is not None else np.full((48, 64, 3), 7, dtype=np.uint8)
    cap.read.return_value = (True, frame)
    return cap


class TestCameraRecorder:
    """Tests for start/stop and frame access."""

    def test_camera_unavailable(self):
        cap = fake_capture(opened=False)

        with patch("interview_monitor.app.capture.camera.cv2.VideoCapture", return_value=cap):
            recorder = CameraRecorder(camera_index=3)
            with pytest.raises(CaptureError):
                recorder.start()

        cap.release.assert_called_once()
        assert recorder.is_running is False
        assert recorder.read_frame() is None

    def test_camera_without_frames(self):
        cap = fake_capture()
        cap.read.return_value = (False, None)

        with patch("interview_monitor.app.capture.camera.cv2.VideoCapture", return_value=cap):
            with pytest.raises(CaptureError):
                CameraRecorder().start()

        cap.release.assert_called_once()

    @pytest.mark.timeout(10)
    def test_read_frame_returns_copy(self):
        cap = fake_capture()

        with patch("interview_monitor.app.capture.camera.cv2.VideoCapture", return_value=cap):
            recorder = CameraRecorder()
            recorder.start()
            try:
                frame = recorder.read_frame()
                frame[:] = 0
                again = recorder.read_frame()
            finally:
                recorder.stop()

        assert frame.shape == (48, 64, 3)
        assert again.max() == 7
        assert recorder.is_running is False
        assert recorder.read_frame() is None
        cap.release.assert_called_once()

    @pytest.mark.timeout(10)
    def test_recording_writer(self, tmp_path):
        cap = fake_capture()
        writer = MagicMock()
        writer.isOpened.return_value = True

        with patch("interview_monitor.app.capture.camera.cv2.VideoCapture", return_value=cap), \
                patch("interview_monitor.app.capture.camera.cv2.VideoWriter", return_value=writer) as writer_cls:
            recorder = CameraRecorder(output_dir=tmp_path / "recordings", fps=10.0)
            recorder.start()
            recorder.stop()

        args = writer_cls.call_args[0]
        assert args[0].endswith(".mp4")
        assert args[2] == 10.0
        assert args[3] == (64, 48)
        assert writer.write.called
        writer.release.assert_called_once()
        assert recorder.recording_path.parent == tmp_path / "recordings"

    def test_recording_writer_failure(self, tmp_path):
        cap = fake_capture()
        writer = MagicMock()
        writer.isOpened.return_value = False

        with patch("interview_monitor.app.capture.camera.cv2.VideoCapture", return_value=cap), \
                patch("interview_monitor.app.capture.camera.cv2.VideoWriter", return_value=writer):
            recorder = CameraRecorder(output_dir=tmp_path)
            with pytest.raises(CaptureError):
                recorder.start()

        cap.release.assert_called_once()
        assert recorder.is_running is False

    def test_stop_when_not_started(self):
        CameraRecorder().stop()
