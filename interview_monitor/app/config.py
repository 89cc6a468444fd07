"""
Interview Integrity Monitor - Configuration Management

Handles loading of signed policy configuration and environment variables.
All detection thresholds are configurable via a (optionally signed) policy file.
"""

import os
import json
import logging
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.exceptions import InvalidSignature

logger = logging.getLogger(__name__)


@dataclass
class ThresholdConfig:
    """Detection thresholds - configurable via policy"""
    # Gaze / eyes (normalized landmark units)
    GAZE_THRESHOLD: float = 0.05  # Max |offset| of eye midpoint from nose tip
    EAR_THRESHOLD: float = 0.2  # Eye aspect ratio below this counts as closed
    MAX_FACES: int = 3  # Faces requested from the landmark provider

    # Durations
    FOCUS_LOST_MS: int = 5000  # Focus lost event / score penalty
    NO_FACE_MS: int = 10000  # No face event / score penalty

    # Event log
    EVENT_COOLDOWN_MS: int = 3000  # Min gap between two events of one type
    EYE_CLOSURE_EVENTS: bool = False  # Emit EYE_CLOSURE events into the log

    # Objects
    OBJECT_CONFIDENCE_MIN: float = 0.5
    EXPECTED_SUBJECT_CLASS: str = "person"

    # Scheduling
    SAMPLE_INTERVAL_MS: int = 1000


@dataclass
class SupabaseConfig:
    """Supabase connection configuration"""
    url: str = ""
    key: str = ""
    service_key: str = ""  # For writes
    sessions_table: str = "interview_sessions"
    events_table: str = "session_events"


@dataclass
class AppConfig:
    """Main application configuration"""
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)

    # Paths
    data_dir: Path = field(default_factory=lambda: Path.home() / ".interview_monitor")
    log_file: Path = field(default_factory=lambda: Path.home() / ".interview_monitor" / "app.log")
    recordings_dir: Path = field(default_factory=lambda: Path.home() / ".interview_monitor" / "recordings")
    queue_db: Path = field(default_factory=lambda: Path.home() / ".interview_monitor" / "queue.db")

    # Policy
    policy_public_key: Optional[bytes] = None
    policy_verified: bool = False

    # Runtime
    debug_mode: bool = False
    camera_index: int = 0


class ConfigManager:
    """Manages loading and verification of configuration"""

    # Policy key -> ThresholdConfig attribute
    THRESHOLD_KEYS = {
        "gaze_threshold": "GAZE_THRESHOLD",
        "ear_threshold": "EAR_THRESHOLD",
        "max_faces": "MAX_FACES",
        "focus_lost_ms": "FOCUS_LOST_MS",
        "no_face_ms": "NO_FACE_MS",
        "event_cooldown_ms": "EVENT_COOLDOWN_MS",
        "eye_closure_events": "EYE_CLOSURE_EVENTS",
        "object_confidence_min": "OBJECT_CONFIDENCE_MIN",
        "expected_subject_class": "EXPECTED_SUBJECT_CLASS",
        "sample_interval_ms": "SAMPLE_INTERVAL_MS",
    }

    def __init__(self, config: Optional[AppConfig] = None, create_dirs: bool = True):
        self.config = config or AppConfig()
        self._load_environment()
        if create_dirs:
            self._ensure_directories()

    def _load_environment(self):
        """Load configuration from environment variables"""
        from dotenv import load_dotenv
        load_dotenv()

        # Supabase
        self.config.supabase.url = os.getenv("SUPABASE_URL", self.config.supabase.url)
        self.config.supabase.key = os.getenv("SUPABASE_KEY", self.config.supabase.key)
        self.config.supabase.service_key = os.getenv(
            "SUPABASE_SERVICE_KEY", self.config.supabase.service_key
        )

        # Debug mode
        self.config.debug_mode = os.getenv("DEBUG", "false").lower() == "true"

        # Camera
        self.config.camera_index = int(os.getenv("CAMERA_INDEX", str(self.config.camera_index)))

        # Policy verification key
        key_file = os.getenv("POLICY_PUBLIC_KEY_FILE")
        if key_file:
            try:
                self.config.policy_public_key = Path(key_file).read_bytes()
            except OSError as e:
                logger.error(f"Could not read policy public key {key_file}: {e}")

        logger.info(f"Loaded configuration: Supabase URL = {self.config.supabase.url[:30]}...")

    def _ensure_directories(self):
        """Create necessary directories"""
        self.config.data_dir.mkdir(parents=True, exist_ok=True)
        self.config.recordings_dir.mkdir(parents=True, exist_ok=True)

    def load_policy(self, policy_path: Optional[Path] = None) -> bool:
        """
        Load and verify a policy file.

        Returns True if the policy is valid and applied.
        """
        if policy_path is None:
            policy_path = self.config.data_dir / "policy.json"

        if not policy_path.exists():
            logger.warning("No policy file found, using defaults")
            return False

        try:
            with open(policy_path, "r") as f:
                policy_data = json.load(f)

            # Verify signature if we have a public key
            if self.config.policy_public_key:
                if "signature" not in policy_data:
                    logger.error("Policy is unsigned but a public key is configured")
                    return False
                if not self._verify_policy_signature(policy_data):
                    logger.error("Policy signature verification failed!")
                    return False
                self.config.policy_verified = True

            if "thresholds" in policy_data:
                self._apply_thresholds(policy_data["thresholds"])

            logger.info("Policy loaded successfully")
            return True

        except (OSError, ValueError) as e:
            logger.error(f"Failed to load policy: {e}")
            return False

    def _verify_policy_signature(self, policy_data: dict) -> bool:
        """Verify RSA signature of policy data"""
        try:
            signature = bytes.fromhex(policy_data["signature"])

            # Signed payload is the policy without its signature
            payload = {k: v for k, v in policy_data.items() if k != "signature"}
            payload_bytes = json.dumps(payload, sort_keys=True).encode()

            public_key = serialization.load_pem_public_key(self.config.policy_public_key)

            public_key.verify(
                signature,
                payload_bytes,
                padding.PKCS1v15(),
                hashes.SHA256()
            )
            return True

        except InvalidSignature:
            return False
        except ValueError as e:
            logger.error(f"Signature verification error: {e}")
            return False

    def _apply_thresholds(self, thresholds: dict):
        """Apply threshold values from policy"""
        for policy_key, config_attr in self.THRESHOLD_KEYS.items():
            if policy_key in thresholds:
                setattr(self.config.thresholds, config_attr, thresholds[policy_key])

        unknown = set(thresholds) - set(self.THRESHOLD_KEYS)
        if unknown:
            logger.warning(f"Ignoring unknown policy thresholds: {sorted(unknown)}")

    def get_default_policy(self) -> dict:
        """Generate default policy JSON for reference"""
        return {
            "thresholds": {
                policy_key: getattr(self.config.thresholds, config_attr)
                for policy_key, config_attr in self.THRESHOLD_KEYS.items()
            }
        }


# Global config instance
_config_manager: Optional[ConfigManager] = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    return get_config_manager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
