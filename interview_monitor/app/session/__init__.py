"""Session lifecycle for the Interview Integrity Monitor"""

from interview_monitor.app.session.controller import (
    SessionController, SessionState, SessionError, SessionValidationError,
    InvalidTransitionError, ResourceAcquisitionError
)
from interview_monitor.app.session.report import Session, FocusSummary, ObjectSummary
from interview_monitor.app.session.scheduler import PeriodicTask

__all__ = [
    "SessionController", "SessionState", "SessionError", "SessionValidationError",
    "InvalidTransitionError", "ResourceAcquisitionError",
    "Session", "FocusSummary", "ObjectSummary",
    "PeriodicTask",
]
