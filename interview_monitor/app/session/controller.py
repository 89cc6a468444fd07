"""
Interview Integrity Monitor - Session Controller

Core session lifecycle and per-tick signal processing.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Optional

from interview_monitor.app.config import ThresholdConfig, get_config
from interview_monitor.app.ai.gaze import GazeAnalyzer, FocusSignal, FrameLandmarks
from interview_monitor.app.ai.focus_tracker import FocusTracker, FocusState
from interview_monitor.app.ai.object_detector import Detection, filter_suspicious
from interview_monitor.app.ai.event_classifier import ViolationClassifier, ViolationEvent
from interview_monitor.app.ai.debouncer import EventDebouncer
from interview_monitor.app.session.report import Session
from interview_monitor.app.session.scheduler import PeriodicTask

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Base class for session lifecycle errors."""


class SessionValidationError(SessionError, ValueError):
    """Request rejected before any state change."""


class InvalidTransitionError(SessionValidationError):
    """Request not allowed in the current session state."""


class ResourceAcquisitionError(SessionError, RuntimeError):
    """Session could not start; the controller stays idle."""


class SessionState(Enum):
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class SessionController:
    """
    Session orchestration.

    Coordinates:
    - Session lifecycle (IDLE -> ACTIVE -> ENDED)
    - Capture/recording start and stop
    - Sampling tick: perception -> signals -> focus state -> events
    - Event log, debouncing and persistence hand-off
    - Final integrity report
    """

    def __init__(
        self,
        capture: Any,
        landmark_provider: Any,
        object_provider: Any,
        store: Any,
        thresholds: Optional[ThresholdConfig] = None,
        clock: Callable[[], float] = time.time,
        task_factory: Callable[..., PeriodicTask] = PeriodicTask,
        on_event: Optional[Callable[[ViolationEvent], None]] = None,
        on_report: Optional[Callable[[Session], None]] = None,
        on_state_change: Optional[Callable[["SessionState"], None]] = None,
        audit: Any = None
    ):
        """
        Initialize session controller.

        Args:
            capture: Capture/recording collaborator (start, stop, read_frame)
            landmark_provider: Exposes landmarks(frame) -> FrameLandmarks
            object_provider: Exposes detect(frame) -> List[Detection]
            store: Persistence collaborator (create_session, log_event, end_session)
            thresholds: Detection thresholds (global config if None)
            clock: Wall clock in seconds
            task_factory: Builds the periodic tasks (interval, callback, name)
            on_event: Called with every accepted event
            on_report: Receives the finalized session
            on_state_change: Called after every state transition
            audit: Optional AuditLogger for lifecycle entries
        """
        self.thresholds = thresholds or get_config().thresholds
        self.capture = capture
        self.landmark_provider = landmark_provider
        self.object_provider = object_provider
        self.store = store

        self.on_event = on_event
        self.on_report = on_report
        self.on_state_change = on_state_change
        self.audit = audit

        self._clock = clock
        self._task_factory = task_factory

        self.gaze = GazeAnalyzer.from_config(self.thresholds)
        self.tracker = FocusTracker.from_config(self.thresholds)
        self.classifier = ViolationClassifier.from_config(self.thresholds)
        self.debouncer = EventDebouncer(self.thresholds.EVENT_COOLDOWN_MS)

        self.state = SessionState.IDLE
        self.session: Optional[Session] = None
        self.focus_state = FocusState()
        self.last_signal = FocusSignal.no_face()
        self.elapsed_seconds = 0

        self._sampler: Optional[PeriodicTask] = None
        self._timer: Optional[PeriodicTask] = None
        self._ending = False

        # Held for one tick's processing and for every transition
        self._lock = threading.RLock()
        # Duration counter only; never waits on a tick
        self._timer_lock = threading.Lock()

    def now_ms(self) -> int:
        return int(round(self._clock() * 1000))

    # ==================== Lifecycle ====================

    def start_session(self, candidate_name: str) -> Session:
        """
        Start monitoring a candidate.

        Raises:
            SessionValidationError: Empty candidate name
            InvalidTransitionError: A session is already active
            ResourceAcquisitionError: Capture or session record unavailable;
                the controller is left IDLE (also when it was ENDED)
        """
        name = (candidate_name or "").strip()
        if not name:
            raise SessionValidationError("Candidate name is required")

        with self._lock:
            if self.state == SessionState.ACTIVE:
                raise InvalidTransitionError("A session is already active")

            try:
                self.capture.start()
            except Exception as e:
                logger.error(f"Capture failed to start: {e}")
                self._return_to_idle()
                raise ResourceAcquisitionError(f"Could not start capture: {e}") from e

            start_ms = self.now_ms()
            start_time = _to_datetime(start_ms)

            try:
                session_id = self.store.create_session(name, start_time)
            except Exception as e:
                logger.error(f"Error creating session record: {e}")
                self._release_capture()
                self._return_to_idle()
                raise ResourceAcquisitionError(f"Could not create session record: {e}") from e

            if not session_id:
                self._release_capture()
                self._return_to_idle()
                raise ResourceAcquisitionError("Could not create session record")

            self.session = Session(
                id=str(session_id),
                candidate_name=name,
                start_time=start_time,
                start_ms=start_ms,
            )
            self.focus_state = FocusState.initial(start_ms)
            self.last_signal = FocusSignal.no_face()
            self.debouncer.reset()
            with self._timer_lock:
                self.elapsed_seconds = 0
            self._ending = False

            interval = self.thresholds.SAMPLE_INTERVAL_MS / 1000
            self._sampler = self._task_factory(interval, self.sample_once, name="session-sampler")
            self._timer = self._task_factory(interval, self._tick_timer, name="session-timer")

            self.state = SessionState.ACTIVE
            self._sampler.start()
            self._timer.start()

        logger.info(f"Session started: {self.session.id} ({name})")
        self._audit("session_started", {"candidate_name": name})
        self._notify_state_change()
        return self.session

    def stop_session(self) -> Session:
        """
        End the active session and deliver its integrity report.

        May be called from an event listener inside a sampling tick; the
        tick stops processing once the session has ended.

        Raises:
            InvalidTransitionError: No session is active
        """
        with self._lock:
            if self.state != SessionState.ACTIVE or self._ending:
                raise InvalidTransitionError("No active session to end")
            self._ending = True
            sampler, timer = self._sampler, self._timer

        # Outside the lock so an in-flight tick can finish. Neither task
        # needs the session lock to exit: the sampler drops out once
        # _ending is set and the timer only takes _timer_lock.
        for task in (sampler, timer):
            if task is not None:
                task.cancel()

        with self._lock:
            self._sampler = self._timer = None
            self._release_capture()

            session = self.session.finalize(_to_datetime(self.now_ms()))
            self.session = None
            self.state = SessionState.ENDED
            self._ending = False

        logger.info(
            f"Session ended: {session.id} after {session.duration_sec:.1f}s "
            f"with {len(session.events)} event(s)"
        )

        try:
            self.store.end_session(session.id, session.to_dict())
        except Exception as e:
            logger.error(f"Error saving final report for {session.id}: {e}")

        self._audit("session_ended", {
            "duration_sec": session.duration_sec,
            "focus_summary": session.focus_summary.to_dict(),
            "object_summary": session.object_summary.to_dict(),
        }, session_id=session.id)

        if self.on_report:
            try:
                self.on_report(session)
            except Exception as e:
                logger.error(f"Error in report consumer: {e}")

        self._notify_state_change()
        return session

    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    # ==================== Ticks ====================

    def sample_once(self) -> List[ViolationEvent]:
        """
        Sampling tick: one frame through the whole pipeline.

        Perception runs without the session lock; only process_frame
        takes it.
        """
        if not self._accepting_ticks():
            return []

        try:
            frame = self.capture.read_frame()
        except Exception as e:
            logger.warning(f"Frame unavailable: {e}")
            frame = None

        landmarks = self._perceive(self.landmark_provider.landmarks, frame, "landmarks")
        detections = self._perceive(self.object_provider.detect, frame, "objects")

        return self.process_frame(landmarks, detections)

    def process_frame(
        self,
        landmarks: Optional[FrameLandmarks],
        detections: Optional[List[Detection]],
        now_ms: Optional[int] = None
    ) -> List[ViolationEvent]:
        """
        Process one frame's perception output.

        Returns:
            Events accepted into the session log
        """
        with self._lock:
            if not self._accepting_ticks():
                return []

            session = self.session
            now_ms = self.now_ms() if now_ms is None else now_ms

            signal = self.gaze.analyze(landmarks or [])
            self.focus_state = self.tracker.update(self.focus_state, signal, now_ms)
            self.last_signal = signal

            suspicious = filter_suspicious(detections, self.thresholds.EXPECTED_SUBJECT_CLASS)
            candidates = self.classifier.classify(self.focus_state, signal, suspicious)

            accepted = []
            for candidate in candidates:
                event = self.debouncer.accept(candidate, now_ms, session.start_ms)
                if event is None:
                    continue
                session.append_event(event)
                accepted.append(event)
                self._publish(session.id, event)

                # A listener ended the session; the rest of the tick is dropped
                if not self._accepting_ticks():
                    break

            return accepted

    def _tick_timer(self):
        # Unlocked state read: a tick racing stop_session is harmless here
        if self.state != SessionState.ACTIVE:
            return
        with self._timer_lock:
            self.elapsed_seconds += 1

    def _accepting_ticks(self) -> bool:
        return self.state == SessionState.ACTIVE and not self._ending and self.session is not None

    # ==================== Helpers ====================

    def _perceive(self, provider: Callable, frame: Any, kind: str) -> list:
        """Provider output for a frame; gaps count as an empty observation."""
        if frame is None:
            return []
        try:
            return provider(frame) or []
        except Exception as e:
            logger.warning(f"Perception gap ({kind}): {e}")
            return []

    def _publish(self, session_id: str, event: ViolationEvent):
        logger.info(f"Violation: {event.event_type.value} - {event.message}")

        try:
            self.store.log_event(session_id, event.to_dict())
        except Exception as e:
            logger.error(f"Error logging event {event.event_type.value}: {e}")

        if self.on_event:
            try:
                self.on_event(event)
            except Exception as e:
                logger.error(f"Error in event listener: {e}")

    def _release_capture(self):
        try:
            self.capture.stop()
        except Exception as e:
            logger.error(f"Error stopping capture: {e}")

    def _return_to_idle(self):
        # A failed restart leaves no ended session behind
        if self.state == SessionState.ENDED:
            self.state = SessionState.IDLE
            self._notify_state_change()

    def _audit(self, action: str, evidence: dict, session_id: Optional[str] = None):
        if self.audit is None:
            return
        try:
            self.audit.log_event(
                action=action,
                entity="interview_session",
                entity_id=session_id or (self.session.id if self.session else None),
                evidence=evidence,
            )
        except Exception as e:
            logger.error(f"Audit log failed for {action}: {e}")

    def _notify_state_change(self):
        if self.on_state_change:
            self.on_state_change(self.state)


def _to_datetime(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
