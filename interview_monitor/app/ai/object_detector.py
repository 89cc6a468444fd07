"""
Interview Integrity Monitor - AI: Object Detection

Runs a YOLOv8 model over a frame and filters detections down to the
suspicious ones (anything that is not the expected subject class).
"""

import logging
from typing import Iterable, List, Optional, Tuple
from dataclasses import dataclass

import numpy as np

try:
    from ultralytics import YOLO
    YOLO_AVAILABLE = True
except ImportError:
    YOLO_AVAILABLE = False
    YOLO = None

logger = logging.getLogger(__name__)

if not YOLO_AVAILABLE:
    logger.warning("ultralytics.YOLO not available - Object detection disabled")


@dataclass(frozen=True)
class Detection:
    """One object detected in a frame."""
    class_name: str
    confidence: float
    box: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)  # x1, y1, x2, y2

    def to_dict(self) -> dict:
        return {
            "class": self.class_name,
            "confidence": self.confidence,
            "box": list(self.box),
        }


def filter_suspicious(
    detections: Optional[Iterable[Detection]],
    expected_class: str = "person"
) -> List[Detection]:
    """
    Drop the expected subject class from a frame's detections.

    Order is preserved and nothing is deduplicated.
    """
    if not detections:
        return []
    return [d for d in detections if d.class_name != expected_class]


class ObjectDetector:
    """
    Object detection using YOLOv8.

    Returns every class above the confidence threshold, the subject
    included; filtering happens in filter_suspicious.
    """

    def __init__(self, model_path: str = "yolov8s.pt", confidence_threshold: float = 0.5):
        self.enabled = YOLO_AVAILABLE
        self.model = None
        self.confidence_threshold = confidence_threshold

        if self.enabled:
            try:
                self.model = YOLO(model_path)
                logger.info(f"YOLO model loaded: {model_path}")
            except Exception as e:
                logger.error(f"Failed to load YOLO model: {e}")
                self.enabled = False

    def detect(self, frame: Optional[np.ndarray]) -> List[Detection]:
        """Detect objects in a frame."""
        if not self.enabled or self.model is None:
            return []
        if frame is None or frame.size == 0:
            return []

        try:
            results = self.model(frame, verbose=False)[0]
        except Exception as e:
            logger.error(f"Object detection error: {e}")
            return []

        detections = []
        for box in results.boxes:
            conf = float(box.conf[0])
            if conf < self.confidence_threshold:
                continue

            label = results.names[int(box.cls[0])]
            x1, y1, x2, y2 = (float(v) for v in box.xyxy[0])
            detections.append(Detection(
                class_name=label,
                confidence=conf,
                box=(x1, y1, x2, y2)
            ))

        return detections


# Global instance
_detector: Optional[ObjectDetector] = None


def get_object_detector() -> ObjectDetector:
    """Get global object detector instance."""
    global _detector
    if _detector is None:
        from interview_monitor.app.config import get_config
        _detector = ObjectDetector(
            confidence_threshold=get_config().thresholds.OBJECT_CONFIDENCE_MIN
        )
    return _detector
