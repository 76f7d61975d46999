"""
Capture coordination for one answer window.

A capture cycle spans one question's answer. Inside it the coordinator keeps
one transcription stream and one recording segment alive while listening,
closes both on pause, and reopens fresh ones on resume. Everything arriving
from the transcriber and the recorder is matched against the current stream
and segment ids, so late events never leak into another answer.
"""
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .dispatch import FlushDeadline
from .errors import CaptureCycleConflict, DeviceUnavailable, InterviewError, RecognitionTransient
from .models import Answer, MediaArtifact
from ..config import (
    FLUSH_MAX_ATTEMPTS,
    FLUSH_TIMEOUT_SECONDS,
    RECOGNITION_MAX_RESTARTS,
    RECORDING_MIME_TYPE,
)

logger = logging.getLogger("capture")

ErrorReporter = Callable[[InterviewError, str], None]


class CycleStatus(str, Enum):
    LISTENING = "listening"
    PAUSED = "paused"
    CLOSED = "closed"


class SegmentStatus(str, Enum):
    RECORDING = "recording"
    FLUSHING = "flushing"
    ATTACHED = "attached"
    DISCARDED = "discarded"


@dataclass
class CaptureCycle:
    """Open/close span of capture for one question."""
    cycle_id: int
    answer: Answer
    language_tag: str
    status: CycleStatus = CycleStatus.LISTENING
    stream_id: Optional[int] = None
    segment_id: Optional[int] = None
    restarts: int = 0


@dataclass
class RecordingSegment:
    """One recorder start/stop span inside a cycle."""
    segment_id: int
    cycle_id: int
    answer: Answer
    chunks: List[bytes] = field(default_factory=list)
    status: SegmentStatus = SegmentStatus.RECORDING
    attempts: int = 0

    @property
    def size(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)


class CaptureCoordinator:
    """Owns the transcription stream and recording segments of the open cycle."""

    def __init__(self,
                 transcriber,
                 recorder,
                 scheduler,
                 report: ErrorReporter,
                 flush_timeout: float = FLUSH_TIMEOUT_SECONDS,
                 flush_max_attempts: int = FLUSH_MAX_ATTEMPTS,
                 max_restarts: int = RECOGNITION_MAX_RESTARTS,
                 mime_type: str = RECORDING_MIME_TYPE):
        self.transcriber = transcriber
        self.recorder = recorder
        self.scheduler = scheduler
        self.report = report
        self.flush_timeout = flush_timeout
        self.flush_max_attempts = flush_max_attempts
        self.max_restarts = max_restarts
        self.mime_type = mime_type

        self.capture_enabled = True
        self.cycle: Optional[CaptureCycle] = None
        self.on_settled: Optional[Callable[[], None]] = None

        self._segments: Dict[int, RecordingSegment] = {}
        self._cycle_ids = itertools.count(1)
        self._stream_ids = itertools.count(1)
        self._segment_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Cycle lifecycle
    # ------------------------------------------------------------------

    @property
    def has_open_cycle(self) -> bool:
        return self.cycle is not None and self.cycle.status != CycleStatus.CLOSED

    @property
    def pending_flushes(self) -> int:
        return sum(1 for s in self._segments.values() if s.status == SegmentStatus.FLUSHING)

    def segment(self, segment_id: int) -> Optional[RecordingSegment]:
        return self._segments.get(segment_id)

    def open_cycle(self, answer: Answer, language_tag: str) -> CaptureCycle:
        """
        Open the capture cycle for ``answer``.

        Raises:
            CaptureCycleConflict: Another cycle is still open
        """
        if self.has_open_cycle:
            raise CaptureCycleConflict(
                f"Cycle {self.cycle.cycle_id} is still open for question {self.cycle.answer.question_index}"
            )
        cycle = CaptureCycle(cycle_id=next(self._cycle_ids), answer=answer, language_tag=language_tag)
        self.cycle = cycle
        logger.info(f"Opened capture cycle {cycle.cycle_id} for question {answer.question_index}")
        self._start_capture(cycle)
        return cycle

    def pause_cycle(self) -> None:
        cycle = self._require_status(CycleStatus.LISTENING)
        self._stop_capture(cycle)
        cycle.status = CycleStatus.PAUSED
        logger.info(f"Paused cycle {cycle.cycle_id}, transcript checkpoint: '{cycle.answer.transcript}'")

    def resume_cycle(self) -> None:
        cycle = self._require_status(CycleStatus.PAUSED)
        cycle.status = CycleStatus.LISTENING
        cycle.restarts = 0
        self._start_capture(cycle)
        logger.info(f"Resumed cycle {cycle.cycle_id}")

    def close_cycle(self) -> Optional[CaptureCycle]:
        """Stop capture and let the last segment flush into the answer."""
        cycle = self.cycle
        if cycle is None or cycle.status == CycleStatus.CLOSED:
            return None
        if cycle.status == CycleStatus.LISTENING:
            self._stop_capture(cycle)
        cycle.status = CycleStatus.CLOSED
        self.cycle = None
        logger.info(f"Closed cycle {cycle.cycle_id}")
        return cycle

    def discard_cycle(self) -> None:
        """Close the cycle and drop its transcript and every segment, flushed or not."""
        cycle = self.cycle
        if cycle is None:
            return
        self._stop_stream(cycle)
        for segment in list(self._segments.values()):
            if segment.cycle_id != cycle.cycle_id:
                continue
            if segment.status == SegmentStatus.RECORDING:
                self._request_stop(segment)
            segment.status = SegmentStatus.DISCARDED
            del self._segments[segment.segment_id]
            logger.debug(f"Discarded segment {segment.segment_id} ({segment.size} bytes)")
        cycle.segment_id = None
        cycle.answer.clear()
        cycle.status = CycleStatus.CLOSED
        self.cycle = None
        logger.info(f"Discarded cycle {cycle.cycle_id}")
        self._check_settled()

    def disable_capture(self, error: InterviewError) -> None:
        """Turn capture off for this and all later cycles. Reported once."""
        if not self.capture_enabled:
            return
        self.capture_enabled = False
        logger.warning(f"Capture disabled: {error}")
        if self.cycle is not None and self.cycle.status == CycleStatus.LISTENING:
            self._stop_capture(self.cycle)
        self.report(error, "capture")

    def shutdown(self) -> None:
        """Stop everything and forget pending segments."""
        if self.cycle is not None:
            self._stop_stream(self.cycle)
            self.cycle.status = CycleStatus.CLOSED
            self.cycle = None
        for segment in list(self._segments.values()):
            if segment.status == SegmentStatus.RECORDING:
                self._request_stop(segment)
            segment.status = SegmentStatus.DISCARDED
        self._segments.clear()
        self.on_settled = None

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    def handle_transcript(self, stream_id: int, text: str) -> Optional[str]:
        """
        Merge a recognized utterance into the open answer.

        Returns:
            The applied fragment, or None if the result was dropped
        """
        cycle = self.cycle
        if cycle is None or cycle.status != CycleStatus.LISTENING or cycle.stream_id != stream_id:
            logger.debug(f"Dropped late transcript from stream {stream_id}: '{text}'")
            return None
        fragment = (text or "").strip()
        if not fragment:
            return None
        cycle.restarts = 0
        cycle.answer.append_fragment(fragment)
        logger.debug(f"Question {cycle.answer.question_index} transcript: '{cycle.answer.transcript}'")
        return fragment

    def handle_stream_end(self, stream_id: int) -> None:
        cycle = self.cycle
        if not self._is_current_stream(cycle, stream_id):
            logger.debug(f"Ignoring end of stream {stream_id}")
            return
        logger.info(f"Transcription stream {stream_id} ended, restarting")
        self._restart_stream(cycle)

    def handle_stream_error(self, stream_id: int, reason: str) -> None:
        cycle = self.cycle
        if not self._is_current_stream(cycle, stream_id):
            logger.debug(f"Ignoring error of stream {stream_id}: {reason}")
            return
        logger.warning(f"Transcription stream {stream_id} failed: {reason}")
        self.transcriber.stop(stream_id)
        self._restart_stream(cycle)

    def handle_media_chunk(self, segment_id: int, data: bytes) -> None:
        segment = self._segments.get(segment_id)
        if segment is None or segment.status not in (SegmentStatus.RECORDING, SegmentStatus.FLUSHING):
            logger.debug(f"Dropped {len(data)} bytes for closed segment {segment_id}")
            return
        segment.chunks.append(data)

    def handle_recording_stopped(self, segment_id: int) -> None:
        segment = self._segments.get(segment_id)
        if segment is None:
            logger.debug(f"Ignoring completion of closed segment {segment_id}")
            return
        if segment.status == SegmentStatus.RECORDING:
            logger.warning(f"Recorder stopped segment {segment_id} on its own")
            if self.cycle is not None and self.cycle.segment_id == segment_id:
                self.cycle.segment_id = None
        self._attach(segment)

    def handle_flush_deadline(self, segment_id: int, attempt: int) -> None:
        segment = self._segments.get(segment_id)
        if segment is None or segment.status != SegmentStatus.FLUSHING or attempt != segment.attempts:
            return
        if attempt < self.flush_max_attempts:
            segment.attempts += 1
            logger.debug(f"Segment {segment_id} not flushed yet, retry {segment.attempts}")
            self._request_stop(segment)
            self.scheduler.call_later(self.flush_timeout, FlushDeadline(segment_id, segment.attempts))
            return
        logger.warning(
            f"Segment {segment_id} never reported completion, attaching {segment.size} buffered bytes"
        )
        self._attach(segment)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_status(self, status: CycleStatus) -> CaptureCycle:
        if self.cycle is None or self.cycle.status != status:
            current = self.cycle.status.value if self.cycle else "none"
            raise CaptureCycleConflict(f"Expected a {status.value} cycle, found {current}")
        return self.cycle

    @staticmethod
    def _is_current_stream(cycle: Optional[CaptureCycle], stream_id: int) -> bool:
        return cycle is not None and cycle.status == CycleStatus.LISTENING and cycle.stream_id == stream_id

    def _start_capture(self, cycle: CaptureCycle) -> None:
        if not self.capture_enabled:
            return
        self._start_segment(cycle)
        if self.capture_enabled:
            self._start_stream(cycle)

    def _stop_capture(self, cycle: CaptureCycle) -> None:
        self._stop_stream(cycle)
        self._stop_segment(cycle)

    def _start_stream(self, cycle: CaptureCycle) -> None:
        stream_id = next(self._stream_ids)
        cycle.stream_id = stream_id
        try:
            self.transcriber.start(stream_id, cycle.language_tag)
        except DeviceUnavailable as e:
            cycle.stream_id = None
            self.disable_capture(e)
            return
        except Exception as e:
            cycle.stream_id = None
            logger.error(f"Could not start transcription stream {stream_id}: {e}")
            self.report(RecognitionTransient(f"Speech recognition unavailable: {e}"), "transcription")
            return
        logger.debug(f"Started transcription stream {stream_id} ({cycle.language_tag})")

    def _restart_stream(self, cycle: CaptureCycle) -> None:
        cycle.stream_id = None
        if cycle.restarts >= self.max_restarts:
            logger.error(f"Transcription gave up after {cycle.restarts} restarts without a result")
            self.report(
                RecognitionTransient(f"Speech recognition stopped after {cycle.restarts} restarts"),
                "transcription",
            )
            return
        cycle.restarts += 1
        self._start_stream(cycle)

    def _stop_stream(self, cycle: CaptureCycle) -> None:
        if cycle.stream_id is None:
            return
        stream_id = cycle.stream_id
        cycle.stream_id = None
        self.transcriber.stop(stream_id)
        logger.debug(f"Stopped transcription stream {stream_id}")

    def _start_segment(self, cycle: CaptureCycle) -> None:
        segment = RecordingSegment(
            segment_id=next(self._segment_ids),
            cycle_id=cycle.cycle_id,
            answer=cycle.answer,
        )
        self._segments[segment.segment_id] = segment
        cycle.segment_id = segment.segment_id
        try:
            self.recorder.start(segment.segment_id)
        except DeviceUnavailable as e:
            del self._segments[segment.segment_id]
            cycle.segment_id = None
            self.disable_capture(e)
            return
        logger.debug(f"Started recording segment {segment.segment_id}")

    def _stop_segment(self, cycle: CaptureCycle) -> None:
        if cycle.segment_id is None:
            return
        segment = self._segments.get(cycle.segment_id)
        cycle.segment_id = None
        if segment is None or segment.status != SegmentStatus.RECORDING:
            return
        segment.status = SegmentStatus.FLUSHING
        segment.attempts = 1
        self._request_stop(segment)
        self.scheduler.call_later(self.flush_timeout, FlushDeadline(segment.segment_id, segment.attempts))

    def _request_stop(self, segment: RecordingSegment) -> None:
        try:
            self.recorder.stop(segment.segment_id)
        except Exception as e:
            logger.error(f"Recorder failed to stop segment {segment.segment_id}: {e}")

    def _attach(self, segment: RecordingSegment) -> None:
        del self._segments[segment.segment_id]
        segment.status = SegmentStatus.ATTACHED
        data = b"".join(segment.chunks)
        if data:
            segment.answer.attach_media(
                MediaArtifact(segment_id=segment.segment_id, data=data, mime_type=self.mime_type)
            )
            logger.info(
                f"Attached {len(data)} bytes of recording to question {segment.answer.question_index}"
            )
        else:
            logger.debug(f"Segment {segment.segment_id} recorded nothing")
        self._check_settled()

    def _check_settled(self) -> None:
        if self.pending_flushes == 0 and self.on_settled is not None:
            callback = self.on_settled
            self.on_settled = None
            callback()
