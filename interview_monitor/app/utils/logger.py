"""
Interview Integrity Monitor - Logging Utilities

Structured JSON logging and a hash-chained audit trail of session lifecycle
entries.
"""

import logging
import json
import sys
import hashlib
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List
from logging.handlers import RotatingFileHandler

# First entry of a fresh audit file chains to this
GENESIS_HASH = "0" * 16

# Handlers installed by setup_logging, replaced on the next call
_app_handlers: List[logging.Handler] = []


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _entry_hash(entry: dict) -> str:
    body = {k: v for k, v in entry.items() if k != "hash"}
    return hashlib.sha256(json.dumps(body, sort_keys=True, default=str).encode()).hexdigest()[:16]


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _utc_now_iso(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Passed as logger.info(..., extra={"extra_data": {...}})
        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Append-only audit trail for interview sessions.

    Every entry carries the hash of the previous one, so removing or editing
    a line breaks the chain (see verify_audit_trail).
    """

    def __init__(self, log_file: Path):
        self.log_file = Path(log_file)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

        self.logger = logging.getLogger(f"audit.{self.log_file}")
        self.logger.propagate = False
        self.logger.setLevel(logging.INFO)

        if not self.logger.handlers:
            # No rotation: a rotated-out file would break the chain
            handler = logging.FileHandler(self.log_file, encoding="utf-8")
            handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(handler)

        self._lock = threading.Lock()
        self._last_hash = self._read_last_hash()

    def _read_last_hash(self) -> str:
        if not self.log_file.exists():
            return GENESIS_HASH

        last = GENESIS_HASH
        with open(self.log_file, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    last = json.loads(line).get("hash", last)
                except ValueError:
                    logging.getLogger(__name__).warning(f"Unreadable audit line in {self.log_file}")
        return last

    def log_event(
        self,
        action: str,
        entity: str,
        entity_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        evidence: Optional[dict] = None,
    ) -> dict:
        """
        Append one audit entry.

        Returns:
            The entry as written, including prev_hash and hash
        """
        with self._lock:
            entry = {
                "action": action,
                "entity": entity,
                "entity_id": entity_id,
                "actor_id": actor_id,
                "evidence": evidence,
                "timestamp": _utc_now_iso(),
                "prev_hash": self._last_hash,
            }
            entry["hash"] = _entry_hash(entry)

            self.logger.info(json.dumps(entry, default=str))
            self._last_hash = entry["hash"]
            return entry

    def close(self):
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)


def verify_audit_trail(log_file: Path) -> Optional[int]:
    """
    Check the hash chain of an audit file.

    Returns:
        None if the chain is intact, otherwise the 1-based line number of
        the first broken entry
    """
    expected_prev = GENESIS_HASH
    line_no = 0

    with open(log_file, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except ValueError:
                return line_no

            if entry.get("prev_hash") != expected_prev or entry.get("hash") != _entry_hash(entry):
                return line_no
            expected_prev = entry["hash"]

    return None


def setup_logging(log_file: Path, debug: bool = False):
    """
    Configure application logging.

    Safe to call again: handlers from a previous call are replaced.

    Args:
        log_file: Path to main log file
        debug: Enable debug level logging
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    for handler in _app_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _app_handlers.clear()

    level = logging.DEBUG if debug else logging.INFO
    root_logger.setLevel(level)

    # Console: events are printed by the CLI, so keep this to warnings unless debugging
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S"
    ))

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=50 * 1024 * 1024,  # 50MB
        backupCount=10,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONFormatter())

    for handler in (console_handler, file_handler):
        root_logger.addHandler(handler)
        _app_handlers.append(handler)

    # Third-party chatter
    for name in ("httpx", "httpcore", "ultralytics"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging initialized. File: {log_file}, Debug: {debug}")


_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get or create the global audit logger."""
    global _audit_logger
    if _audit_logger is None:
        from interview_monitor.app.config import get_config
        _audit_logger = AuditLogger(get_config().data_dir / "audit.log")
    return _audit_logger
