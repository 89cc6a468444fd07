"""Signal analysis modules for the Interview Integrity Monitor"""

from interview_monitor.app.ai.gaze import GazeAnalyzer, FocusSignal, Landmark
from interview_monitor.app.ai.focus_tracker import FocusTracker, FocusState
from interview_monitor.app.ai.object_detector import Detection, filter_suspicious
from interview_monitor.app.ai.event_classifier import (
    EventType, Severity, ViolationEvent, ViolationClassifier
)
from interview_monitor.app.ai.debouncer import EventDebouncer
# Perception providers load heavy models; import them directly:
# from interview_monitor.app.ai.face_mesh import FaceMeshProvider, get_face_mesh_provider
# from interview_monitor.app.ai.object_detector import ObjectDetector, get_object_detector

__all__ = [
    "GazeAnalyzer", "FocusSignal", "Landmark",
    "FocusTracker", "FocusState",
    "Detection", "filter_suspicious",
    "EventType", "Severity", "ViolationEvent", "ViolationClassifier",
    "EventDebouncer",
]
