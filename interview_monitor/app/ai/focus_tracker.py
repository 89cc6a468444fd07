"""
Interview Integrity Monitor - AI: Focus Tracker

Temporal focus state carried across frames of one session.
"""

from dataclasses import dataclass, asdict, replace

from interview_monitor.app.ai.gaze import FocusSignal


@dataclass(frozen=True)
class FocusState:
    """Focus state after one frame. Durations are in milliseconds."""
    focus_score: int = 0
    focus_lost_duration_ms: int = 0
    no_face_duration_ms: int = 0
    last_face_seen_ms: int = 0
    last_focused_ms: int = 0

    @classmethod
    def initial(cls, now_ms: int) -> "FocusState":
        """State at session start: both reference clocks begin now."""
        return cls(last_face_seen_ms=now_ms, last_focused_ms=now_ms)

    def to_dict(self) -> dict:
        return asdict(self)


class FocusTracker:
    """
    Pure focus state transition: (state, signal, now) -> state.

    Score model is additive: every condition that holds in the frame
    subtracts its penalty from 100, floored at 0.
    """

    PENALTY_NO_FACE = 50
    PENALTY_LOOKING_AWAY = 20
    PENALTY_MULTIPLE_FACES = 30
    PENALTY_EYE_CLOSURE = 15
    PENALTY_FOCUS_LOST = 20
    PENALTY_NO_FACE_LONG = 40

    def __init__(self, focus_lost_ms: int = 5000, no_face_ms: int = 10000):
        self.focus_lost_ms = focus_lost_ms
        self.no_face_ms = no_face_ms

    @classmethod
    def from_config(cls, thresholds) -> "FocusTracker":
        return cls(
            focus_lost_ms=thresholds.FOCUS_LOST_MS,
            no_face_ms=thresholds.NO_FACE_MS,
        )

    def update(self, state: FocusState, signal: FocusSignal, now_ms: int) -> FocusState:
        """Advance the focus state by one observation taken at `now_ms`."""
        last_face_seen = state.last_face_seen_ms
        last_focused = state.last_focused_ms

        if signal.face_detected:
            last_face_seen = now_ms
            no_face = 0
            if signal.looking_at_screen:
                last_focused = now_ms
                focus_lost = 0
            else:
                focus_lost = max(0, now_ms - last_focused)
        else:
            # No face also counts as focus loss, measured from the last face
            no_face = max(0, now_ms - last_face_seen)
            focus_lost = no_face

        new_state = replace(
            state,
            focus_lost_duration_ms=focus_lost,
            no_face_duration_ms=no_face,
            last_face_seen_ms=last_face_seen,
            last_focused_ms=last_focused,
        )
        return replace(new_state, focus_score=self.score(signal, new_state))

    def score(self, signal: FocusSignal, state: FocusState) -> int:
        """Focus score in [0, 100] for a signal and its updated durations."""
        penalty = 0
        if not signal.face_detected:
            penalty += self.PENALTY_NO_FACE
        if not signal.looking_at_screen:
            penalty += self.PENALTY_LOOKING_AWAY
        if signal.multiple_faces:
            penalty += self.PENALTY_MULTIPLE_FACES
        if signal.eye_closure:
            penalty += self.PENALTY_EYE_CLOSURE
        if state.focus_lost_duration_ms > self.focus_lost_ms:
            penalty += self.PENALTY_FOCUS_LOST
        if state.no_face_duration_ms > self.no_face_ms:
            penalty += self.PENALTY_NO_FACE_LONG

        return min(100, max(0, 100 - penalty))
