"""
Interview Integrity Monitor - Supabase Client

REST API client for the session and event tables.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

import httpx

from interview_monitor.app.config import SupabaseConfig

logger = logging.getLogger(__name__)


class SupabaseClient:
    """
    Supabase (PostgREST) client for session persistence.

    Handles:
    - Session creation
    - Event logging
    - Final report storage
    """

    def __init__(
        self,
        config: Optional[SupabaseConfig] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        if config is None:
            from interview_monitor.app.config import get_config
            config = get_config().supabase

        self.config = config
        self.base_url = config.url.rstrip('/')
        self.api_key = config.key
        self.service_key = config.service_key or config.key

        self._client = httpx.Client(
            timeout=30.0,
            headers=self._default_headers(),
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _default_headers(self, use_service_key: bool = False) -> Dict[str, str]:
        """Get default headers for API requests."""
        key = self.service_key if use_service_key else self.api_key
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def _rest_url(self, table: str) -> str:
        """Get PostgREST URL for a table."""
        return f"{self.base_url}/rest/v1/{table}"

    def create_session(self, candidate_name: str, start_time: datetime) -> Optional[str]:
        """
        Create a new interview session record.

        Args:
            candidate_name: Candidate identifier
            start_time: Session start

        Returns:
            Created session ID, or None on failure
        """
        try:
            payload = {
                "candidate_name": candidate_name,
                "start_time": start_time.isoformat(),
                "status": "ACTIVE",
                "created_at": datetime.now(timezone.utc).isoformat(),
            }

            response = self._client.post(
                self._rest_url(self.config.sessions_table),
                json=payload,
                headers=self._default_headers(use_service_key=True)
            )
            response.raise_for_status()

            data = response.json()
            session_id = str(data[0]["id"])
            logger.info(f"Created session: {session_id}")
            return session_id

        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            logger.error(f"Error creating session: {e}")
            return None

    def log_event(self, session_id: str, event: Dict[str, Any]) -> bool:
        """
        Insert one violation event.

        Returns:
            True if successful
        """
        try:
            payload = {
                "session_id": session_id,
                "event_type": event.get("type"),
                "severity": event.get("severity"),
                "message": event.get("message"),
                "occurred_at": event.get("timestamp"),
                "session_time_ms": event.get("session_time_ms"),
                "data": event.get("data"),
            }

            response = self._client.post(
                self._rest_url(self.config.events_table),
                json=payload,
                headers=self._default_headers(use_service_key=True)
            )
            response.raise_for_status()

            logger.debug(f"Logged event {payload['event_type']} for session {session_id}")
            return True

        except httpx.HTTPError as e:
            logger.error(f"Error logging event: {e}")
            return False

    def end_session(self, session_id: str, report: Dict[str, Any]) -> bool:
        """
        Store the final integrity report and close the session.

        Returns:
            True if successful
        """
        try:
            payload = {
                "status": "ENDED",
                "end_time": report.get("end_time"),
                "duration_sec": report.get("duration_sec"),
                "focus_summary": report.get("focus_summary"),
                "object_summary": report.get("object_summary"),
            }

            response = self._client.patch(
                self._rest_url(self.config.sessions_table),
                params={"id": f"eq.{session_id}"},
                json=payload,
                headers=self._default_headers(use_service_key=True)
            )
            response.raise_for_status()

            logger.info(f"Session {session_id} closed")
            return True

        except httpx.HTTPError as e:
            logger.error(f"Error ending session: {e}")
            return False

    def close(self):
        """Close HTTP client connections."""
        self._client.close()


# Global client instance
_client: Optional[SupabaseClient] = None


def get_supabase_client() -> SupabaseClient:
    """Get global Supabase client instance."""
    global _client
    if _client is None:
        _client = SupabaseClient()
    return _client
