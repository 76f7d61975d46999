"""Speech-to-text and text-to-speech modules."""

from .tts import GoogleSpeechSynthesizer, select_voice
from .stt import GoogleStreamingTranscriber

__all__ = ["GoogleSpeechSynthesizer", "GoogleStreamingTranscriber", "select_voice"]
