"""
Interview Integrity Monitor - AI: Face Mesh Landmarks

Landmark provider backed by MediaPipe Face Mesh.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from interview_monitor.app.ai.gaze import FrameLandmarks, Landmark

logger = logging.getLogger(__name__)

try:
    import mediapipe as mp
    try:
        import mediapipe.solutions.face_mesh as mp_face_mesh
    except (ImportError, AttributeError):
        # Older wheels keep solutions under mediapipe.python
        import mediapipe.python.solutions.face_mesh as mp_face_mesh
    MP_AVAILABLE = True
except (ImportError, AttributeError):
    MP_AVAILABLE = False
    mp = None
    mp_face_mesh = None

if not MP_AVAILABLE:
    logger.warning("MediaPipe solutions not found - Face landmarks will be disabled")


class FaceMeshProvider:
    """
    Extracts normalized landmarks for up to `max_num_faces` faces.

    An empty result is a valid "no face" observation, never an error.
    """

    def __init__(
        self,
        max_num_faces: int = 3,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5
    ):
        self.enabled = MP_AVAILABLE
        self.face_mesh = None

        if self.enabled:
            try:
                self.face_mesh = mp_face_mesh.FaceMesh(
                    static_image_mode=False,
                    max_num_faces=max_num_faces,
                    refine_landmarks=True,
                    min_detection_confidence=min_detection_confidence,
                    min_tracking_confidence=min_tracking_confidence
                )
            except Exception as e:
                logger.error(f"Failed to initialize MediaPipe FaceMesh: {e}")
                self.enabled = False

    def landmarks(self, frame: Optional[np.ndarray]) -> FrameLandmarks:
        """
        Landmarks for every face in a BGR frame.

        Returns:
            One list of Landmark per face, primary face first
        """
        if not self.enabled or frame is None or frame.size == 0:
            return []

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self.face_mesh.process(rgb)

        if not results.multi_face_landmarks:
            return []

        return [
            [Landmark(lm.x, lm.y, lm.z) for lm in face.landmark]
            for face in results.multi_face_landmarks
        ]

    def close(self):
        """Release resources."""
        if self.face_mesh is not None:
            self.face_mesh.close()
            self.face_mesh = None


# Global instance
_provider: Optional[FaceMeshProvider] = None


def get_face_mesh_provider() -> FaceMeshProvider:
    """Get global face mesh provider instance."""
    global _provider
    if _provider is None:
        from interview_monitor.app.config import get_config
        _provider = FaceMeshProvider(max_num_faces=get_config().thresholds.MAX_FACES)
    return _provider
