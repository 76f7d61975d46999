"""Utility modules for logging and native library noise."""

from .logging import setup_logging
from .native import suppressed_native_stderr, with_suppressed_audio_warnings

__all__ = ["setup_logging", "suppressed_native_stderr", "with_suppressed_audio_warnings"]
