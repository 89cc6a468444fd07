"""
Interview Integrity Monitor - AI: Event Classifier

Maps the focus state, frame signals and suspicious detections of one tick
into violation event candidates.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from interview_monitor.app.ai.gaze import FocusSignal
from interview_monitor.app.ai.focus_tracker import FocusState
from interview_monitor.app.ai.object_detector import Detection

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Types of violation events."""
    FOCUS_LOST = "FOCUS_LOST"
    NO_FACE = "NO_FACE"
    MULTIPLE_FACES = "MULTIPLE_FACES"
    EYE_CLOSURE = "EYE_CLOSURE"
    SUSPICIOUS_OBJECT = "SUSPICIOUS_OBJECT"


class Severity(Enum):
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class ViolationEvent:
    """
    A violation event.

    Candidates have no timestamp; the debouncer stamps the ones it accepts.
    """
    event_type: EventType
    severity: Severity
    message: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[datetime] = None
    session_time_ms: Optional[int] = None

    @property
    def timestamp_iso(self) -> Optional[str]:
        return self.timestamp.isoformat() if self.timestamp else None

    def stamped(self, timestamp: datetime, session_time_ms: int) -> "ViolationEvent":
        return replace(self, timestamp=timestamp, session_time_ms=session_time_ms)

    def to_dict(self) -> dict:
        return {
            "type": self.event_type.value,
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp_iso,
            "session_time_ms": self.session_time_ms,
            "data": self.payload,
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ViolationClassifier:
    """
    Rule set for one tick. Rules are independent; several may fire together.

    1. Focus lost longer than FOCUS_LOST_MS -> FOCUS_LOST (warning)
    2. No face longer than NO_FACE_MS -> NO_FACE (danger)
    3. More than one face -> MULTIPLE_FACES (danger)
    4. Eyes closed, when enabled -> EYE_CLOSURE (warning)
    5. Each suspicious detection -> SUSPICIOUS_OBJECT (danger)
    """

    def __init__(
        self,
        focus_lost_ms: int = 5000,
        no_face_ms: int = 10000,
        emit_eye_closure: bool = False
    ):
        self.focus_lost_ms = focus_lost_ms
        self.no_face_ms = no_face_ms
        self.emit_eye_closure = emit_eye_closure

    @classmethod
    def from_config(cls, thresholds) -> "ViolationClassifier":
        return cls(
            focus_lost_ms=thresholds.FOCUS_LOST_MS,
            no_face_ms=thresholds.NO_FACE_MS,
            emit_eye_closure=thresholds.EYE_CLOSURE_EVENTS,
        )

    def classify(
        self,
        state: FocusState,
        signal: FocusSignal,
        suspicious: List[Detection]
    ) -> List[ViolationEvent]:
        """Event candidates for one tick, in rule order."""
        events = []
        focus_data = {**signal.to_dict(), **state.to_dict()}

        if state.focus_lost_duration_ms > self.focus_lost_ms:
            seconds = round_half_up(state.focus_lost_duration_ms / 1000)
            events.append(ViolationEvent(
                event_type=EventType.FOCUS_LOST,
                severity=Severity.WARNING,
                message=f"Focus lost for {seconds}s",
                payload=focus_data,
            ))

        if state.no_face_duration_ms > self.no_face_ms:
            seconds = round_half_up(state.no_face_duration_ms / 1000)
            events.append(ViolationEvent(
                event_type=EventType.NO_FACE,
                severity=Severity.DANGER,
                message=f"No face detected for {seconds}s",
                payload=focus_data,
            ))

        if signal.multiple_faces:
            events.append(ViolationEvent(
                event_type=EventType.MULTIPLE_FACES,
                severity=Severity.DANGER,
                message="Multiple faces detected in frame",
                payload=focus_data,
            ))

        if self.emit_eye_closure and signal.eye_closure:
            events.append(ViolationEvent(
                event_type=EventType.EYE_CLOSURE,
                severity=Severity.WARNING,
                message="Eyes closed",
                payload=focus_data,
            ))

        for detection in suspicious:
            percent = round_half_up(detection.confidence * 100)
            events.append(ViolationEvent(
                event_type=EventType.SUSPICIOUS_OBJECT,
                severity=Severity.DANGER,
                message=f"{detection.class_name} detected ({percent}% confidence)",
                payload=detection.to_dict(),
            ))

        if events:
            logger.debug(f"Classified {len(events)} candidate(s): {[e.event_type.value for e in events]}")

        return events
