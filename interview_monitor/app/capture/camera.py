"""
Interview Integrity Monitor - Capture: Camera Recorder

Opens the camera, keeps the most recent frame for the sampling tick and
records the session to an MP4 file.
"""

import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class CaptureError(RuntimeError):
    """Camera or recorder could not be started."""


class CameraRecorder:
    """
    Background camera reader with optional recording.

    start() raises CaptureError when the camera cannot be opened; nothing
    is left running in that case.
    """

    FOURCC_MP4 = "mp4v"

    def __init__(
        self,
        camera_index: int = 0,
        output_dir: Optional[Path] = None,
        fps: float = 15.0
    ):
        """
        Initialize camera recorder.

        Args:
            camera_index: OpenCV camera index
            output_dir: Directory for recordings (no recording if None)
            fps: Frame rate written to the recording
        """
        self.camera_index = camera_index
        self.output_dir = output_dir
        self.fps = fps

        self.recording_path: Optional[Path] = None
        self.frame_count = 0

        self._cap = None
        self._writer = None
        self._latest: Optional[np.ndarray] = None
        self._lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        """Open the camera and begin reading (and recording) frames."""
        if self._running:
            return

        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            cap.release()
            raise CaptureError(f"Could not open camera {self.camera_index}")

        ok, frame = cap.read()
        if not ok or frame is None:
            cap.release()
            raise CaptureError(f"Camera {self.camera_index} returned no frames")

        writer = None
        if self.output_dir is not None:
            try:
                writer = self._open_writer(frame)
            except CaptureError:
                cap.release()
                raise

        self._cap = cap
        self._writer = writer
        self.frame_count = 0
        self._store(frame)

        self._running = True
        self._thread = threading.Thread(target=self._read_loop, name="camera-reader", daemon=True)
        self._thread.start()

        logger.info(f"Camera {self.camera_index} started")

    def stop(self):
        """Stop reading and finish the recording."""
        if not self._running:
            return

        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None

        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._writer is not None:
            self._writer.release()
            self._writer = None
            logger.info(f"Recording saved: {self.recording_path} ({self.frame_count} frames)")

        with self._lock:
            self._latest = None

        logger.info(f"Camera {self.camera_index} stopped")

    def read_frame(self) -> Optional[np.ndarray]:
        """Copy of the most recent frame, or None."""
        with self._lock:
            return None if self._latest is None else self._latest.copy()

    def _open_writer(self, frame: np.ndarray):
        self.output_dir.mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.recording_path = self.output_dir / f"session_{ts}.mp4"

        h, w = frame.shape[:2]
        fourcc = cv2.VideoWriter_fourcc(*self.FOURCC_MP4)
        writer = cv2.VideoWriter(str(self.recording_path), fourcc, self.fps, (w, h))
        if not writer.isOpened():
            writer.release()
            raise CaptureError(f"Could not open recording {self.recording_path}")
        return writer

    def _store(self, frame: np.ndarray):
        with self._lock:
            self._latest = frame
        if self._writer is not None:
            self._writer.write(frame)
        self.frame_count += 1

    def _read_loop(self):
        while self._running:
            ok, frame = self._cap.read()
            if not ok or frame is None:
                time.sleep(0.01)
                continue
            self._store(frame)
