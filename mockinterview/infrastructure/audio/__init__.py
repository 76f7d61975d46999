"""
Audio capture, recording and speech services for the mock interview.

- processing: PCM conversion, microphone capture and WebM recording
- speech: Google Cloud text-to-speech and streaming speech-to-text
"""

from .processing import prepare_for_recognition

__all__ = ["prepare_for_recognition"]
