"""
Interview Integrity Monitor - Session: Record and Integrity Report

The session record and the summaries computed when it is finalized.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from interview_monitor.app.ai.event_classifier import EventType, ViolationEvent


@dataclass
class FocusSummary:
    focus_lost_count: int = 0
    no_face_count: int = 0
    multiple_faces_count: int = 0
    eye_closure_count: int = 0

    @classmethod
    def from_events(cls, events: Iterable[ViolationEvent]) -> "FocusSummary":
        summary = cls()
        for event in events:
            if event.event_type == EventType.FOCUS_LOST:
                summary.focus_lost_count += 1
            elif event.event_type == EventType.NO_FACE:
                summary.no_face_count += 1
            elif event.event_type == EventType.MULTIPLE_FACES:
                summary.multiple_faces_count += 1
            elif event.event_type == EventType.EYE_CLOSURE:
                summary.eye_closure_count += 1
        return summary

    def to_dict(self) -> dict:
        return {
            "focus_lost_count": self.focus_lost_count,
            "no_face_count": self.no_face_count,
            "multiple_faces_count": self.multiple_faces_count,
            "eye_closure_count": self.eye_closure_count,
        }


@dataclass
class ObjectSummary:
    total_detections: int = 0
    items: List[str] = field(default_factory=list)  # distinct classes, first seen first

    @classmethod
    def from_events(cls, events: Iterable[ViolationEvent]) -> "ObjectSummary":
        summary = cls()
        for event in events:
            if event.event_type != EventType.SUSPICIOUS_OBJECT:
                continue
            summary.total_detections += 1
            name = event.payload.get("class")
            if name and name not in summary.items:
                summary.items.append(name)
        return summary

    def to_dict(self) -> dict:
        return {
            "total_detections": self.total_detections,
            "items": list(self.items),
        }


@dataclass
class Session:
    """One monitored interview. Events are append-only."""
    id: str
    candidate_name: str
    start_time: datetime
    start_ms: int
    end_time: Optional[datetime] = None
    duration_sec: float = 0.0
    events: List[ViolationEvent] = field(default_factory=list)
    focus_summary: Optional[FocusSummary] = None
    object_summary: Optional[ObjectSummary] = None

    @property
    def finalized(self) -> bool:
        return self.end_time is not None

    def append_event(self, event: ViolationEvent):
        if self.finalized:
            raise RuntimeError(f"Session {self.id} is finalized")
        self.events.append(event)

    def finalize(self, end_time: datetime) -> "Session":
        """Close the session and compute its summaries."""
        if self.finalized:
            raise RuntimeError(f"Session {self.id} is already finalized")

        self.end_time = end_time
        self.duration_sec = max(0.0, (end_time - self.start_time).total_seconds())
        self.focus_summary = FocusSummary.from_events(self.events)
        self.object_summary = ObjectSummary.from_events(self.events)
        return self

    def to_dict(self) -> dict:
        return {
            "session_id": self.id,
            "candidate_name": self.candidate_name,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_sec": self.duration_sec,
            "events": [e.to_dict() for e in self.events],
            "focus_summary": self.focus_summary.to_dict() if self.focus_summary else None,
            "object_summary": self.object_summary.to_dict() if self.object_summary else None,
        }


def format_timer(seconds: int) -> str:
    """Elapsed session time as mm:ss (minutes keep counting past 59)."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
