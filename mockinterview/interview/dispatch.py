"""
Inbound messages and the control loop that serializes them.

Collaborators (synthesis, recognition, recording, ticking) run on their own
threads and only ever ``post()`` messages. Every state mutation happens when
the control thread drains the queue and hands each message to the session
controller.
"""
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Set

logger = logging.getLogger("dispatch")


@dataclass(frozen=True)
class Message:
    """Base class for inbound messages."""


@dataclass(frozen=True)
class StartPlayback(Message):
    """Delayed request to speak the current question."""
    request_id: int


@dataclass(frozen=True)
class PlaybackFinished(Message):
    request_id: int


@dataclass(frozen=True)
class PlaybackFailed(Message):
    request_id: int
    reason: str


@dataclass(frozen=True)
class TranscriptResult(Message):
    """Latest recognized utterance of a transcription stream."""
    stream_id: int
    text: str


@dataclass(frozen=True)
class TranscriptEnded(Message):
    stream_id: int


@dataclass(frozen=True)
class TranscriptError(Message):
    stream_id: int
    reason: str


@dataclass(frozen=True)
class MediaChunk(Message):
    segment_id: int
    data: bytes


@dataclass(frozen=True)
class RecordingStopped(Message):
    """All buffered data of a segment has been delivered."""
    segment_id: int


@dataclass(frozen=True)
class FlushDeadline(Message):
    segment_id: int
    attempt: int


@dataclass(frozen=True)
class TimerTick(Message):
    timer_id: int


@dataclass(frozen=True)
class UserAction(Message):
    """A user command routed onto the control thread."""
    name: str
    kwargs: Dict[str, Any] = field(default_factory=dict)


MessageHandler = Callable[[Message], None]


class ControlLoop:
    """Single-consumer queue feeding the session controller."""

    def __init__(self, handler: Optional[MessageHandler] = None):
        self._queue: "queue.Queue[Message]" = queue.Queue()
        self._handler = handler
        self._timers: Set[threading.Timer] = set()
        self._timers_lock = threading.Lock()
        self._closed = False

    def bind(self, handler: MessageHandler) -> None:
        """Attach the consumer of all messages."""
        self._handler = handler

    def post(self, message: Message) -> None:
        """Queue a message. Safe to call from any thread."""
        if self._closed:
            logger.debug(f"Loop closed, dropping {message}")
            return
        self._queue.put(message)

    def call_later(self, delay: float, message: Message) -> None:
        """Post a message after ``delay`` seconds (immediately when delay <= 0)."""
        if delay <= 0:
            self.post(message)
            return

        def fire():
            with self._timers_lock:
                self._timers.discard(timer)
            self.post(message)

        timer = threading.Timer(delay, fire)
        timer.daemon = True
        with self._timers_lock:
            self._timers.add(timer)
        timer.start()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _handle(self, message: Message) -> None:
        if self._handler is None:
            raise RuntimeError("ControlLoop has no handler bound")
        self._handler(message)

    def drain(self) -> int:
        """Process every queued message on the calling thread."""
        processed = 0
        while True:
            try:
                message = self._queue.get_nowait()
            except queue.Empty:
                return processed
            self._handle(message)
            processed += 1

    def run(self, stop: threading.Event, poll_interval: float = 0.1) -> None:
        """Process messages until ``stop`` is set."""
        while not stop.is_set():
            try:
                message = self._queue.get(timeout=poll_interval)
            except queue.Empty:
                continue
            try:
                self._handle(message)
            except Exception:
                logger.exception(f"Failed to handle {message}")

    def close(self) -> None:
        """Cancel scheduled messages and refuse new ones."""
        self._closed = True
        with self._timers_lock:
            timers = list(self._timers)
            self._timers.clear()
        for timer in timers:
            timer.cancel()
