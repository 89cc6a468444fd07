"""
Interview Integrity Monitor - AI: Event Debouncer

Rate-limits repeated events of the same type within one session.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from interview_monitor.app.ai.event_classifier import EventType, ViolationEvent

logger = logging.getLogger(__name__)


class EventDebouncer:
    """
    Accepts at most one event per type per cooldown window.

    The key is the event type alone, so two different suspicious objects
    seen within one window collapse into a single SUSPICIOUS_OBJECT event.
    """

    def __init__(self, cooldown_ms: int = 3000):
        self.cooldown_ms = cooldown_ms
        self._last_accepted: Dict[EventType, int] = {}

    def accept(
        self,
        event: ViolationEvent,
        now_ms: int,
        session_start_ms: int = 0
    ) -> Optional[ViolationEvent]:
        """
        Accept or drop a candidate.

        Returns:
            The event stamped with its absolute and session-relative time,
            or None when it falls inside the cooldown window
        """
        last = self._last_accepted.get(event.event_type)
        if last is not None and now_ms - last < self.cooldown_ms:
            logger.debug(f"Debounced event: {event.event_type.value}")
            return None

        self._last_accepted[event.event_type] = now_ms
        return event.stamped(
            timestamp=datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc),
            session_time_ms=now_ms - session_start_ms,
        )

    def last_accepted(self, event_type: EventType) -> Optional[int]:
        return self._last_accepted.get(event_type)

    def reset(self):
        """Forget all accepted events (new session)."""
        self._last_accepted.clear()
