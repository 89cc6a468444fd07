"""
Drive a session controller through a scripted interview without a camera.

Each phase of the script is a number of one-second ticks with fixed
perception output. The clock is simulated, so the run finishes instantly.

Usage:
    python scripts/simulate_session.py [--cooldown-ms 3000] [--report out.json]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from interview_monitor.app.config import ThresholdConfig
from interview_monitor.app.ai.gaze import GazeAnalyzer, Landmark
from interview_monitor.app.ai.object_detector import Detection
from interview_monitor.app.session.controller import SessionController


class SimulatedClock:
    def __init__(self, start_ms=1_700_000_000_000):
        self.ms = start_ms

    def __call__(self):
        return self.ms / 1000


class IdleTask:
    """Ticks are driven by the script, not by a thread."""

    def __init__(self, interval, callback, name=""):
        self.callback = callback

    def start(self):
        pass

    def cancel(self, timeout=None):
        pass


class NullCapture:
    def start(self):
        pass

    def stop(self):
        pass

    def read_frame(self):
        return None


class MemoryStore:
    def __init__(self):
        self.events = []

    def create_session(self, candidate_name, start_time):
        return "simulated-session"

    def log_event(self, session_id, event):
        self.events.append(event)

    def end_session(self, session_id, report):
        pass


def face(dx=0.0, open_eyes=True):
    points = [Landmark(0.5, 0.5) for _ in range(478)]
    half = 0.01 if open_eyes else 0.002
    for indices, x0 in ((GazeAnalyzer.LEFT_EYE_EAR, 0.40), (GazeAnalyzer.RIGHT_EYE_EAR, 0.54)):
        p1, p2, p3, p4, p5, p6 = indices
        points[p1] = Landmark(x0, 0.40)
        points[p4] = Landmark(x0 + 0.06, 0.40)
        points[p2] = points[p3] = Landmark(x0 + 0.03, 0.40 - half)
        points[p6] = points[p5] = Landmark(x0 + 0.03, 0.40 + half)
    points[GazeAnalyzer.NOSE_TIP] = Landmark(0.50 - dx, 0.40)
    return points


# (label, seconds, landmarks, detections)
SCRIPT = [
    ("focused", 10, [face()], [Detection("person", 0.95)]),
    ("looking away", 8, [face(dx=0.12)], [Detection("person", 0.93)]),
    ("second person", 7, [face(), face()], [Detection("person", 0.9), Detection("person", 0.88)]),
    ("phone on desk", 5, [face()], [Detection("person", 0.94), Detection("cell phone", 0.71)]),
    ("left the room", 14, [], []),
    ("eyes closed", 4, [face(open_eyes=False)], [Detection("person", 0.9)]),
    ("book", 3, [face()], [Detection("person", 0.92), Detection("book", 0.87)]),
]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Simulate a monitored interview")
    parser.add_argument("--cooldown-ms", type=int, default=3000)
    parser.add_argument("--eye-closure-events", action="store_true")
    parser.add_argument("--report", type=Path, default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)-8s | %(name)s | %(message)s")

    clock = SimulatedClock()
    thresholds = ThresholdConfig(
        EVENT_COOLDOWN_MS=args.cooldown_ms,
        EYE_CLOSURE_EVENTS=args.eye_closure_events,
    )
    controller = SessionController(
        capture=NullCapture(),
        landmark_provider=None,
        object_provider=None,
        store=MemoryStore(),
        thresholds=thresholds,
        clock=clock,
        task_factory=IdleTask,
    )

    controller.start_session("Simulated Candidate")

    for label, seconds, landmarks, detections in SCRIPT:
        print(f"--- {label} ({seconds}s) ---")
        for _ in range(seconds):
            clock.ms += thresholds.SAMPLE_INTERVAL_MS
            for event in controller.process_frame(landmarks, detections):
                print(f"[{event.session_time_ms / 1000:6.1f}s] {event.severity.value.upper():7} {event.message}")
        print(f"    focus score: {controller.focus_state.focus_score}")

    session = controller.stop_session()
    report = json.dumps(session.to_dict(), indent=2)

    if args.report:
        args.report.write_text(report)
        print(f"Report written to {args.report}")
    else:
        print(json.dumps({
            "duration_sec": session.duration_sec,
            "focus_summary": session.focus_summary.to_dict(),
            "object_summary": session.object_summary.to_dict(),
        }, indent=2))

    return 0


if __name__ == "__main__":
    sys.exit(main())
