"""
Testing infrastructure with scripted collaborators for the interview system.

The doubles post the same messages the real adapters post, so a test drives
a session exactly the way the console does, only with the control loop
drained synchronously.
"""
import tempfile
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from .controller import SessionController
from .dispatch import (
    ControlLoop,
    MediaChunk,
    Message,
    PlaybackFailed,
    PlaybackFinished,
    RecordingStopped,
    TimerTick,
    TranscriptEnded,
    TranscriptError,
    TranscriptResult,
)
from .errors import DeviceUnavailable
from .services import CaptureDevice, Confirmer, Prompter, Recorder, SpeechSynthesizer, Transcriber
from .timer import TickSource
from ..config import Config

DEVICE_DENIED = "Please allow access to your camera and microphone to use this application."


class ManualControlLoop(ControlLoop):
    """Control loop whose delayed messages wait until the test releases them."""

    def __init__(self, handler=None):
        super().__init__(handler)
        self.scheduled: List[Tuple[float, Message]] = []

    def call_later(self, delay: float, message: Message) -> None:
        if delay <= 0:
            self.post(message)
            return
        self.scheduled.append((delay, message))

    def release_scheduled(self) -> int:
        """Post every delayed message and drain the queue."""
        scheduled, self.scheduled = self.scheduled, []
        for _, message in scheduled:
            self.post(message)
        return self.drain()


class MockSynthesizer(SpeechSynthesizer):
    """Records spoken text; finishes (or fails) each request right away unless told otherwise."""

    def __init__(self, post: Callable[[Message], None], auto_finish: bool = True,
                 fail_reason: Optional[str] = None):
        self.post = post
        self.auto_finish = auto_finish
        self.fail_reason = fail_reason
        self.spoken: List[Tuple[int, str, str]] = []
        self.cancelled = 0

    @property
    def spoken_texts(self) -> List[str]:
        return [text for _, text, _ in self.spoken]

    def speak(self, request_id: int, text: str, language_tag: str) -> None:
        self.spoken.append((request_id, text, language_tag))
        if self.auto_finish:
            self.finish(request_id)

    def finish(self, request_id: Optional[int] = None) -> None:
        if request_id is None:
            request_id = self.spoken[-1][0]
        if self.fail_reason:
            self.post(PlaybackFailed(request_id, self.fail_reason))
        else:
            self.post(PlaybackFinished(request_id))

    def cancel(self) -> None:
        self.cancelled += 1


class MockTranscriber(Transcriber):
    """Scripted recognizer: the test decides what is heard and when streams end."""

    def __init__(self, post: Callable[[Message], None], start_error: Optional[Exception] = None):
        self.post = post
        self.start_error = start_error
        self.started: List[Tuple[int, str]] = []
        self.stopped: List[int] = []

    @property
    def active_streams(self) -> List[int]:
        return [stream_id for stream_id, _ in self.started if stream_id not in self.stopped]

    @property
    def current_stream(self) -> Optional[int]:
        active = self.active_streams
        return active[-1] if active else None

    @property
    def last_stream(self) -> Optional[int]:
        return self.started[-1][0] if self.started else None

    def start(self, stream_id: int, language_tag: str) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started.append((stream_id, language_tag))

    def stop(self, stream_id: int) -> None:
        if stream_id not in self.stopped:
            self.stopped.append(stream_id)

    def hear(self, text: str, stream_id: Optional[int] = None) -> None:
        self.post(TranscriptResult(stream_id or self.last_stream, text))

    def end(self, stream_id: Optional[int] = None) -> None:
        self.post(TranscriptEnded(stream_id or self.last_stream))

    def fail(self, reason: str = "network", stream_id: Optional[int] = None) -> None:
        self.post(TranscriptError(stream_id or self.last_stream, reason))


class MockRecorder(Recorder):
    """
    Scripted recorder.

    With ``auto_flush`` every stop posts the ``tail`` bytes (if any) and then
    the completion event; otherwise the test calls ``complete``.
    """

    def __init__(self, post: Callable[[Message], None], auto_flush: bool = True,
                 tail: bytes = b"", unavailable: bool = False):
        self.post = post
        self.auto_flush = auto_flush
        self.tail = tail
        self.unavailable = unavailable
        self.started: List[int] = []
        self.stop_requests: List[int] = []
        self.completed: List[int] = []

    @property
    def last_segment(self) -> Optional[int]:
        return self.started[-1] if self.started else None

    def start(self, segment_id: int) -> None:
        if self.unavailable:
            raise DeviceUnavailable(DEVICE_DENIED)
        self.started.append(segment_id)

    def stop(self, segment_id: int) -> None:
        self.stop_requests.append(segment_id)
        if self.auto_flush and segment_id not in self.completed:
            self.complete(segment_id)

    def feed(self, data: bytes, segment_id: Optional[int] = None) -> None:
        self.post(MediaChunk(segment_id or self.last_segment, data))

    def complete(self, segment_id: Optional[int] = None) -> None:
        segment_id = segment_id or self.last_segment
        if self.tail:
            self.post(MediaChunk(segment_id, self.tail))
        self.completed.append(segment_id)
        self.post(RecordingStopped(segment_id))


class MockCaptureDevice(CaptureDevice):
    def __init__(self, available: bool = True):
        self.available = available
        self.acquired = 0
        self.released = 0

    def acquire(self) -> None:
        if not self.available:
            raise DeviceUnavailable(DEVICE_DENIED)
        self.acquired += 1

    def release(self) -> None:
        self.released += 1


class ManualTicker(TickSource):
    """Tick source the test drives by hand."""

    def __init__(self, post: Callable[[Message], None]):
        self.post = post
        self.active_id: Optional[int] = None
        self.last_id: Optional[int] = None
        self.starts = 0

    def start(self, timer_id: int) -> None:
        self.active_id = timer_id
        self.last_id = timer_id
        self.starts += 1

    def stop(self) -> None:
        self.active_id = None

    def tick(self, count: int = 1) -> None:
        """Post ``count`` ticks for the last armed timer, running or not."""
        for _ in range(count):
            self.post(TimerTick(self.last_id))


class ScriptedPrompter(Prompter):
    def __init__(self, replies: List[str]):
        self.replies = list(replies)
        self.asked: List[str] = []

    def ask(self, message: str) -> str:
        self.asked.append(message)
        return self.replies.pop(0) if self.replies else ""


class StaticConfirmer(Confirmer):
    def __init__(self, answer: bool = True):
        self.answer = answer
        self.asked: List[str] = []

    def confirm(self, message: str) -> bool:
        self.asked.append(message)
        return self.answer


def create_test_config(**overrides) -> Config:
    """Config with no playback delay and an export directory under a temp dir."""
    config = Config(
        playback_delay_seconds=0,
        export_dir=tempfile.mkdtemp(),
        log_file="",
    )
    return replace(config, **overrides)


def create_mock_interview_setup(device_available: bool = True,
                                auto_flush: bool = True,
                                confirm: Optional[bool] = True,
                                prompter_replies: Optional[List[str]] = None,
                                **config_overrides) -> Dict[str, Any]:
    """Create a controller wired to scripted collaborators."""
    loop = ManualControlLoop()
    synthesizer = MockSynthesizer(loop.post)
    transcriber = MockTranscriber(loop.post)
    recorder = MockRecorder(loop.post, auto_flush=auto_flush)
    device = MockCaptureDevice(available=device_available)
    ticker = ManualTicker(loop.post)
    prompter = ScriptedPrompter(prompter_replies or [])
    confirmer = StaticConfirmer(confirm) if confirm is not None else None
    config = create_test_config(**config_overrides)

    controller = SessionController(
        loop,
        synthesizer,
        transcriber,
        recorder,
        device=device,
        prompter=prompter,
        confirmer=confirmer,
        config=config,
        ticker=ticker,
        session_id_factory=lambda: "user_1700000000000_abc123xyz",
    )

    return {
        "controller": controller,
        "loop": loop,
        "synthesizer": synthesizer,
        "transcriber": transcriber,
        "recorder": recorder,
        "device": device,
        "ticker": ticker,
        "prompter": prompter,
        "confirmer": confirmer,
        "config": config,
    }
