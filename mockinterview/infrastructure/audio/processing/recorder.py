"""
Segment recorder encoding microphone PCM to WebM/Opus through ffmpeg.

Only the microphone track is captured; there is no camera input. Segments
are audio-only WebM (``audio/webm``) even though the export keeps the
``answer_video.webm`` file name.
"""
import logging
import shutil
import subprocess
import threading
from typing import Callable, Dict, Optional

from ....config import FFMPEG_BINARY, RECORDING_BITRATE, RECORDING_CHUNK_BYTES, RECORDING_CODEC
from ....interview.dispatch import MediaChunk, Message, RecordingStopped
from ....interview.errors import DeviceUnavailable
from ....interview.services import Recorder
from .capture import MicrophoneDevice

logger = logging.getLogger("recorder")


class _Segment:
    def __init__(self, segment_id: int, process: subprocess.Popen):
        self.segment_id = segment_id
        self.process = process
        self.stdin_lock = threading.Lock()
        self.stopping = False

    def write(self, frame: bytes) -> None:
        with self.stdin_lock:
            if self.stopping or self.process.stdin is None:
                return
            try:
                self.process.stdin.write(frame)
            except (BrokenPipeError, ValueError) as e:
                logger.warning(f"Encoder for segment {self.segment_id} closed early: {e}")
                self.stopping = True

    def close_input(self) -> None:
        with self.stdin_lock:
            if self.stopping:
                return
            self.stopping = True
            try:
                self.process.stdin.close()
            except BrokenPipeError as e:
                logger.warning(f"Encoder for segment {self.segment_id} closed early: {e}")


class FfmpegRecorder(Recorder):
    """
    One ffmpeg process per segment: raw frames in on stdin, WebM out on stdout.

    Closing stdin makes ffmpeg finish the container; the reader thread posts
    the remaining bytes and then ``RecordingStopped``.
    """

    def __init__(self,
                 device: MicrophoneDevice,
                 post: Callable[[Message], None],
                 ffmpeg_binary: str = FFMPEG_BINARY,
                 codec: str = RECORDING_CODEC,
                 bitrate: str = RECORDING_BITRATE,
                 chunk_bytes: int = RECORDING_CHUNK_BYTES):
        self.device = device
        self.post = post
        self.ffmpeg_binary = ffmpeg_binary
        self.codec = codec
        self.bitrate = bitrate
        self.chunk_bytes = chunk_bytes
        self._segments: Dict[int, _Segment] = {}
        self._listeners: Dict[int, Callable[[bytes], None]] = {}

    def _command(self) -> list:
        return [
            self.ffmpeg_binary, "-hide_banner", "-loglevel", "error",
            "-f", "s16le", "-ar", str(self.device.sample_rate), "-ac", str(self.device.channels),
            "-i", "pipe:0",
            "-c:a", self.codec, "-b:a", self.bitrate,
            "-f", "webm", "pipe:1",
        ]

    def start(self, segment_id: int) -> None:
        if shutil.which(self.ffmpeg_binary) is None:
            raise DeviceUnavailable(f"Recording needs {self.ffmpeg_binary}, which is not on PATH")
        if not self.device.is_open:
            raise DeviceUnavailable("Microphone is not available for recording")

        try:
            process = subprocess.Popen(
                self._command(),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise DeviceUnavailable(f"Could not start recorder: {e}") from e

        segment = _Segment(segment_id, process)
        self._segments[segment_id] = segment
        self._listeners[segment_id] = segment.write
        self.device.add_listener(segment.write)
        threading.Thread(
            target=self._read_output, args=(segment,), name=f"recorder-{segment_id}", daemon=True
        ).start()
        logger.debug(f"Recording segment {segment_id}: {' '.join(self._command())}")

    def _read_output(self, segment: _Segment) -> None:
        stdout = segment.process.stdout
        while True:
            data = stdout.read1(self.chunk_bytes) if hasattr(stdout, "read1") else stdout.read(self.chunk_bytes)
            if not data:
                break
            self.post(MediaChunk(segment.segment_id, data))
        code = segment.process.wait()
        if code != 0:
            logger.warning(f"Encoder for segment {segment.segment_id} exited with {code}")
        self._segments.pop(segment.segment_id, None)
        self.post(RecordingStopped(segment.segment_id))

    def stop(self, segment_id: int) -> None:
        listener = self._listeners.pop(segment_id, None)
        if listener is not None:
            self.device.remove_listener(listener)
        segment: Optional[_Segment] = self._segments.get(segment_id)
        if segment is None:
            return
        segment.close_input()
