"""
Mock Interview Configuration
============================

This file contains ALL configuration for the mock interview system.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Dict, Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the interview
# =============================================================================

# Optional: path to a Google service account JSON for speech services
GOOGLE_APPLICATION_CREDENTIALS = None

# Answer window
ANSWER_SECONDS = 30
PLAYBACK_DELAY_SECONDS = 1.0

# Export
EXPORT_DIR = "./_interviews"
SHARE_BASE_URL = "http://localhost:8080/"

# Speech settings
ENABLE_TTS = True
ENABLE_CAPTURE = True

# Logging
LOG_FILE = "./_interviews/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Languages
DEFAULT_LANGUAGE_TAG = "en-US"
LANGUAGE_TAGS: Dict[str, str] = {
    "hi": "hi-IN",
}

# Timer
TICK_INTERVAL_SECONDS = 1.0

# Recording flush: the assembled artifact settles ~100ms after stop
FLUSH_TIMEOUT_SECONDS = 0.5
FLUSH_MAX_ATTEMPTS = 3

# Speech recognition
RECOGNITION_MAX_RESTARTS = 5

# Audio capture
SAMPLE_RATE_CAPTURE = 48000
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
FRAME_MS = 100
MIC_GAIN = 1.0

# Recording
RECORDING_MIME_TYPE = "audio/webm"
RECORDING_CODEC = "libopus"
RECORDING_BITRATE = "48k"
RECORDING_CHUNK_BYTES = 4096
FFMPEG_BINARY = "ffmpeg"

# Export
NO_ANSWER_TEXT = "No answer provided"
ARCHIVE_SUFFIX = "_interview.zip"


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    google_application_credentials: Optional[str] = GOOGLE_APPLICATION_CREDENTIALS
    answer_seconds: int = ANSWER_SECONDS
    playback_delay_seconds: float = PLAYBACK_DELAY_SECONDS
    tick_interval_seconds: float = TICK_INTERVAL_SECONDS
    flush_timeout_seconds: float = FLUSH_TIMEOUT_SECONDS
    flush_max_attempts: int = FLUSH_MAX_ATTEMPTS
    recognition_max_restarts: int = RECOGNITION_MAX_RESTARTS
    export_dir: str = EXPORT_DIR
    share_base_url: str = SHARE_BASE_URL
    enable_tts: bool = ENABLE_TTS
    enable_capture: bool = ENABLE_CAPTURE
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def get_config() -> Config:
    """Load configuration, applying environment overrides."""
    return Config(
        google_application_credentials=(
            os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS
        ),
        answer_seconds=_env_int("INTERVIEW_ANSWER_SECONDS", ANSWER_SECONDS),
        export_dir=os.getenv("INTERVIEW_EXPORT_DIR") or EXPORT_DIR,
        share_base_url=os.getenv("INTERVIEW_SHARE_BASE_URL") or SHARE_BASE_URL,
        log_file=os.getenv("INTERVIEW_LOG_FILE") or LOG_FILE,
        log_level=os.getenv("INTERVIEW_LOG_LEVEL") or LOG_LEVEL,
    )
