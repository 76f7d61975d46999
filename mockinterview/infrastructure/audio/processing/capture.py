"""
Microphone capture with frame fan-out to the transcriber and the recorder.
"""
import logging
import threading
from typing import Callable, List, Optional

from ....config import CHANNELS, FRAME_MS, SAMPLE_RATE_CAPTURE
from ....interview.errors import DeviceUnavailable
from ....interview.services import CaptureDevice
from ....utils import with_suppressed_audio_warnings

logger = logging.getLogger("audio_capture")

FrameListener = Callable[[bytes], None]

DENIED_MESSAGE = "Please allow access to your camera and microphone to use this application."


class MicrophoneDevice(CaptureDevice):
    """
    PyAudio input stream shared by every consumer of raw frames.

    Frames are interleaved PCM16 at ``sample_rate``; listeners are called on
    the PortAudio callback thread and must only copy or enqueue.
    """

    def __init__(self,
                 input_device: Optional[int] = None,
                 channels: int = CHANNELS,
                 sample_rate: int = SAMPLE_RATE_CAPTURE,
                 frame_ms: int = FRAME_MS):
        self.input_device = input_device
        self.channels = channels
        self.sample_rate = sample_rate
        self.frame_size = int(sample_rate * frame_ms / 1000)
        self._listeners: List[FrameListener] = []
        self._lock = threading.Lock()
        self._pa = None
        self._stream = None
        self._continue = None

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def add_listener(self, listener: FrameListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: FrameListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @with_suppressed_audio_warnings
    def acquire(self) -> None:
        """
        Open the input stream.

        Raises:
            DeviceUnavailable: PyAudio missing, no input device, or access denied
        """
        if self._stream is not None:
            return
        try:
            import pyaudio
        except ImportError as e:
            raise DeviceUnavailable(f"Audio capture is not installed: {e}")

        pa = pyaudio.PyAudio()
        try:
            if self.input_device is None:
                info = pa.get_default_input_device_info()
                self.input_device = int(info["index"])
                logger.info(f"Using default input device {self.input_device}: {info['name']}")
            stream = pa.open(
                format=pyaudio.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device,
                frames_per_buffer=self.frame_size,
                stream_callback=self._on_audio,
            )
        except (OSError, ValueError) as e:
            pa.terminate()
            logger.error(f"Failed to open microphone: {e}")
            raise DeviceUnavailable(DENIED_MESSAGE) from e

        self._pa = pa
        self._continue = pyaudio.paContinue
        self._stream = stream
        stream.start_stream()
        logger.info(
            f"Microphone opened: device {self.input_device}, {self.channels} ch @ {self.sample_rate} Hz"
        )

    def _on_audio(self, in_data, frame_count, time_info, status):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(in_data)
            except Exception as e:
                logger.error(f"Frame listener failed: {e}")
        return (None, self._continue)

    def release(self) -> None:
        stream, pa = self._stream, self._pa
        self._stream = None
        self._pa = None
        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.warning(f"Error closing microphone: {e}")
        if pa is not None:
            pa.terminate()
        with self._lock:
            self._listeners.clear()
        logger.info("Microphone released")
