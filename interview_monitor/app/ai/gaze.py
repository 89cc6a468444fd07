"""
Interview Integrity Monitor - AI: Gaze Analysis

Turns one frame's face landmarks (MediaPipe Face Mesh topology) into
instantaneous focus signals: face presence, multiple faces, looking at
screen and eye closure.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Landmark:
    """A normalized landmark point ([0, 1] image coordinates)."""
    x: float
    y: float
    z: float = 0.0


# One face is an indexable sequence of points exposing .x/.y
# (Landmark, mediapipe NormalizedLandmark) or an (N, 2|3) array.
FaceLandmarks = Any
FrameLandmarks = List[FaceLandmarks]


@dataclass(frozen=True)
class FocusSignal:
    """Per-frame focus signals. No history."""
    face_detected: bool
    multiple_faces: bool
    looking_at_screen: bool
    eye_closure: bool
    face_count: int = 0
    gaze_vector: Optional[Tuple[float, float]] = None
    eye_aspect_ratio: Optional[float] = None

    @classmethod
    def no_face(cls) -> "FocusSignal":
        return cls(
            face_detected=False,
            multiple_faces=False,
            looking_at_screen=False,
            eye_closure=False,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class GazeAnalyzer:
    """
    Coarse gaze and drowsiness estimation from face landmarks.

    Gaze is the offset between the midpoint of the two outer eye corners and
    the nose tip; the subject is looking at the screen while both components
    stay inside a symmetric box. Eye closure uses the average eye aspect
    ratio (EAR) of both eyes.
    """

    # MediaPipe Face Mesh landmark indices
    LEFT_EYE_CORNER = 33
    RIGHT_EYE_CORNER = 263
    NOSE_TIP = 1

    # EAR point sets, ordered p1..p6:
    # p1/p4 horizontal corners, (p2, p6) and (p3, p5) vertical pairs
    LEFT_EYE_EAR = (33, 160, 158, 133, 153, 144)
    RIGHT_EYE_EAR = (362, 385, 387, 263, 373, 380)

    def __init__(self, gaze_threshold: float = 0.05, ear_threshold: float = 0.2):
        """
        Initialize gaze analyzer.

        Args:
            gaze_threshold: Max |x| and |y| of the face vector (normalized units)
            ear_threshold: Average EAR below which eyes count as closed
        """
        self.gaze_threshold = gaze_threshold
        self.ear_threshold = ear_threshold

    @classmethod
    def from_config(cls, thresholds) -> "GazeAnalyzer":
        return cls(
            gaze_threshold=thresholds.GAZE_THRESHOLD,
            ear_threshold=thresholds.EAR_THRESHOLD,
        )

    def analyze(self, faces: Optional[FrameLandmarks]) -> FocusSignal:
        """
        Analyze one frame's landmarks.

        Args:
            faces: Landmark sets for every face in the frame (may be empty)

        Returns:
            FocusSignal for the frame; only the first face is analyzed
        """
        if not faces:
            return FocusSignal.no_face()

        face_count = len(faces)
        primary = faces[0]

        try:
            vector = self.gaze_vector(primary)
        except (IndexError, AttributeError, TypeError) as e:
            logger.debug(f"Gaze computation error: {e}")
            vector = None

        try:
            ear = self.average_eye_aspect_ratio(primary)
        except (IndexError, AttributeError, TypeError) as e:
            logger.debug(f"EAR computation error: {e}")
            ear = None

        looking = vector is not None and (
            abs(vector[0]) < self.gaze_threshold and
            abs(vector[1]) < self.gaze_threshold
        )

        return FocusSignal(
            face_detected=True,
            multiple_faces=face_count > 1,
            looking_at_screen=looking,
            eye_closure=ear is not None and ear < self.ear_threshold,
            face_count=face_count,
            gaze_vector=vector,
            eye_aspect_ratio=ear,
        )

    def gaze_vector(self, face: FaceLandmarks) -> Tuple[float, float]:
        """Offset of the eye-corner midpoint from the nose tip."""
        left = _point(face, self.LEFT_EYE_CORNER)
        right = _point(face, self.RIGHT_EYE_CORNER)
        nose = _point(face, self.NOSE_TIP)

        vector = (left + right) / 2 - nose
        return (float(vector[0]), float(vector[1]))

    def average_eye_aspect_ratio(self, face: FaceLandmarks) -> Optional[float]:
        """Mean EAR of the eyes that could be measured, or None."""
        values = [
            ear for ear in (
                self.eye_aspect_ratio(face, self.LEFT_EYE_EAR),
                self.eye_aspect_ratio(face, self.RIGHT_EYE_EAR),
            )
            if ear is not None
        ]
        if not values:
            return None
        return sum(values) / len(values)

    @staticmethod
    def eye_aspect_ratio(face: FaceLandmarks, indices: Sequence[int]) -> Optional[float]:
        """
        Eye aspect ratio for one eye.

        Returns None when the eye is degenerate (zero width).
        """
        p1, p2, p3, p4, p5, p6 = (_point(face, i) for i in indices)

        vertical_1 = np.linalg.norm(p2 - p6)
        vertical_2 = np.linalg.norm(p3 - p5)
        horizontal = np.linalg.norm(p1 - p4)

        if horizontal <= 1e-9:
            return None

        return float((vertical_1 + vertical_2) / (2.0 * horizontal))


def _point(face: FaceLandmarks, index: int) -> np.ndarray:
    """Landmark `index` of a face as a 2D numpy vector."""
    if isinstance(face, np.ndarray):
        return face[index, :2].astype(float)
    if hasattr(face, "landmark"):
        # mediapipe NormalizedLandmarkList
        face = face.landmark
    lm = face[index]
    return np.array([lm.x, lm.y], dtype=float)
