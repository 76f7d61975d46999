"""
Service classes and collaborator interfaces for the interview system.

Collaborators run on their own threads and report back only by posting
messages onto the control loop; the interfaces below describe what the
session controller asks of them.
"""
import itertools
import logging
import random
import string
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from .dispatch import Message, PlaybackFailed, PlaybackFinished, StartPlayback
from ..config import PLAYBACK_DELAY_SECONDS

logger = logging.getLogger("services")

_BASE36 = string.digits + string.ascii_lowercase


# =============================================================================
# COLLABORATOR INTERFACES
# =============================================================================

class SpeechSynthesizer(ABC):
    """Speaks text; posts PlaybackFinished or PlaybackFailed for the request."""

    @abstractmethod
    def speak(self, request_id: int, text: str, language_tag: str) -> None:
        ...

    @abstractmethod
    def cancel(self) -> None:
        ...


class Transcriber(ABC):
    """
    Streaming speech recognition.

    Posts TranscriptResult for every recognized utterance, TranscriptEnded
    when a stream stops (possibly on its own) and TranscriptError on failure.
    """

    @abstractmethod
    def start(self, stream_id: int, language_tag: str) -> None:
        ...

    @abstractmethod
    def stop(self, stream_id: int) -> None:
        ...


class Recorder(ABC):
    """
    Segment recorder.

    Posts MediaChunk while running and RecordingStopped once everything
    buffered for the segment has been delivered. ``stop`` is idempotent.
    """

    @abstractmethod
    def start(self, segment_id: int) -> None:
        ...

    @abstractmethod
    def stop(self, segment_id: int) -> None:
        ...


class CaptureDevice(ABC):
    """Microphone/camera handle shared by the transcriber and the recorder."""

    @abstractmethod
    def acquire(self) -> None:
        """Raises DeviceUnavailable when access is denied or no device exists."""

    @abstractmethod
    def release(self) -> None:
        ...


class Prompter(ABC):
    @abstractmethod
    def ask(self, message: str) -> str:
        ...


class Confirmer(ABC):
    @abstractmethod
    def confirm(self, message: str) -> bool:
        ...


class SilentSynthesizer(SpeechSynthesizer):
    """Finishes every request immediately, for text-only sessions."""

    def __init__(self, post: Callable[[Message], None]):
        self.post = post

    def speak(self, request_id: int, text: str, language_tag: str) -> None:
        self.post(PlaybackFinished(request_id))

    def cancel(self) -> None:
        pass


# =============================================================================
# SESSION IDS AND SHARE LINKS
# =============================================================================

def generate_session_id(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """Unique id of the form ``user_{epoch_ms}_{9 base-36 chars}``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    rng = rng or random.SystemRandom()
    suffix = "".join(rng.choice(_BASE36) for _ in range(9))
    return f"user_{now_ms}_{suffix}"


def build_share_link(base_url: str, session_id: str) -> str:
    return f"{base_url}?interview={session_id}"


def recognize_shared_link(url: str) -> Optional[str]:
    """
    Extract the interview id from a shared link.

    The id is only recognized for display; sessions are never restored from it.
    """
    if not url:
        return None
    values = parse_qs(urlparse(url).query).get("interview")
    if not values or not values[0].strip():
        return None
    return values[0].strip()


# =============================================================================
# PLAYBACK
# =============================================================================

class PlaybackService:
    """Speaks questions after the presentation delay, tracked by request id."""

    def __init__(self,
                 synthesizer: SpeechSynthesizer,
                 scheduler,
                 delay: float = PLAYBACK_DELAY_SECONDS):
        self.synthesizer = synthesizer
        self.scheduler = scheduler
        self.delay = delay
        self._ids = itertools.count(1)
        self._pending: Dict[int, Tuple[str, str]] = {}

    def request(self, text: str, language_tag: str, delay: Optional[float] = None) -> int:
        """Schedule speech for ``text`` and return its request id."""
        request_id = next(self._ids)
        self._pending[request_id] = (text, language_tag)
        self.scheduler.call_later(self.delay if delay is None else delay, StartPlayback(request_id))
        logger.debug(f"Playback {request_id} requested: '{text}'")
        return request_id

    def start(self, request_id: int) -> bool:
        """Hand a scheduled request to the synthesizer."""
        pending = self._pending.pop(request_id, None)
        if pending is None:
            logger.debug(f"Playback {request_id} was cancelled")
            return False
        text, language_tag = pending
        try:
            self.synthesizer.speak(request_id, text, language_tag)
        except Exception as e:
            logger.error(f"Speech synthesis failed for request {request_id}: {e}")
            self.scheduler.post(PlaybackFailed(request_id, str(e)))
            return False
        return True

    def cancel(self) -> None:
        """Drop scheduled requests and silence current speech."""
        self._pending.clear()
        self.synthesizer.cancel()
