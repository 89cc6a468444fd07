"""
Interview Integrity Monitor - Main Entry Point

Monitors one interview from the local camera and prints the integrity
report when the session ends.
"""

import argparse
import json
import logging
import signal
import sys
import threading
import time
from datetime import datetime
from pathlib import Path

from interview_monitor.app.config import get_config_manager
from interview_monitor.app.utils.logger import setup_logging, get_audit_logger
from interview_monitor.app.capture.camera import CameraRecorder
from interview_monitor.app.ai.face_mesh import get_face_mesh_provider
from interview_monitor.app.ai.object_detector import get_object_detector
from interview_monitor.app.db.sqlite_queue import get_sqlite_queue
from interview_monitor.app.storage.supabase_client import get_supabase_client
from interview_monitor.app.storage.uploader import QueuedSessionStore
from interview_monitor.app.session.controller import SessionController, SessionError
from interview_monitor.app.session.report import format_timer

# Seconds between status lines while a session runs
STATUS_INTERVAL_SEC = 10


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Interview integrity monitor")
    parser.add_argument("candidate", help="Candidate name")
    parser.add_argument("--duration", type=float, default=None,
                        help="Stop after this many seconds (default: until Ctrl+C)")
    parser.add_argument("--policy", type=Path, default=None, help="Policy JSON file")
    parser.add_argument("--camera", type=int, default=None, help="Camera index")
    parser.add_argument("--no-record", action="store_true", help="Do not save a recording")
    parser.add_argument("--offline", action="store_true",
                        help="Keep session writes in the local queue only")
    parser.add_argument("--report", type=Path, default=None, help="Write the report JSON here")
    return parser.parse_args(argv)


def wait_for_stop(controller: SessionController, stop_requested: threading.Event, duration=None):
    """Block until Ctrl+C or the duration elapses, printing elapsed time and focus score."""
    deadline = time.monotonic() + duration if duration is not None else None

    while controller.is_active():
        timeout = STATUS_INTERVAL_SEC
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            timeout = min(timeout, remaining)

        if stop_requested.wait(timeout):
            return

        print(f"[{format_timer(controller.elapsed_seconds)}] focus score "
              f"{controller.focus_state.focus_score}", flush=True)


def main(argv=None) -> int:
    """Application entry point"""
    args = parse_args(argv)

    config_manager = get_config_manager()
    config = config_manager.config

    setup_logging(config.log_file, config.debug_mode)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("Interview Integrity Monitor Starting")
    logger.info(f"Timestamp: {datetime.now().isoformat()}")
    logger.info("=" * 60)

    if config_manager.load_policy(args.policy):
        logger.info("Policy configuration loaded")
        if config.policy_verified:
            logger.info("Policy signature verified")
    else:
        logger.info("Using default configuration")

    client = get_supabase_client()
    offline = args.offline or not client.configured
    if offline and not args.offline:
        logger.warning("Supabase configuration missing - running offline")
        logger.warning("Set SUPABASE_URL and SUPABASE_KEY environment variables")

    store = QueuedSessionStore(client, get_sqlite_queue(), offline=offline)
    store.start()

    camera = CameraRecorder(
        camera_index=args.camera if args.camera is not None else config.camera_index,
        output_dir=None if args.no_record else config.recordings_dir,
    )

    stop_requested = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop_requested.set())

    face_mesh = get_face_mesh_provider()
    controller = SessionController(
        capture=camera,
        landmark_provider=face_mesh,
        object_provider=get_object_detector(),
        store=store,
        thresholds=config.thresholds,
        on_event=lambda e: print(f"[{e.session_time_ms / 1000:7.1f}s] {e.severity.value.upper():7} {e.message}", flush=True),
        audit=get_audit_logger(),
    )

    try:
        controller.start_session(args.candidate)
    except SessionError as e:
        logger.error(f"Could not start session: {e}")
        face_mesh.close()
        store.close()
        return 1

    wait_for_stop(controller, stop_requested, args.duration)

    session = controller.stop_session()
    face_mesh.close()
    store.close()

    report = json.dumps(session.to_dict(), indent=2)
    if args.report:
        args.report.write_text(report)
        logger.info(f"Report written to {args.report}")
    else:
        print(report)

    return 0


if __name__ == "__main__":
    sys.exit(main())
