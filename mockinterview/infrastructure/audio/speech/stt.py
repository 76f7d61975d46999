"""
Streaming speech-to-text using Google Cloud Speech.
"""
import logging
import queue
import threading
from typing import Callable, Dict, Iterator, Optional

from google.api_core import exceptions as google_exceptions
from google.auth.exceptions import GoogleAuthError
from google.cloud import speech

from ....config import MIC_GAIN, SAMPLE_RATE_TARGET
from ....interview.dispatch import Message, TranscriptEnded, TranscriptError, TranscriptResult
from ....interview.errors import DeviceUnavailable
from ....interview.services import Transcriber
from ..processing.capture import MicrophoneDevice
from ..processing.processing import prepare_for_recognition
from .credentials import load_credentials

logger = logging.getLogger("speech_stt")


class _Stream:
    def __init__(self, stream_id: int, language_tag: str):
        self.stream_id = stream_id
        self.language_tag = language_tag
        self.audio: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self.listener: Optional[Callable[[bytes], None]] = None

    def requests(self) -> Iterator[speech.StreamingRecognizeRequest]:
        while True:
            chunk = self.audio.get()
            if chunk is None:
                return
            yield speech.StreamingRecognizeRequest(audio_content=chunk)


class GoogleStreamingTranscriber(Transcriber):
    """
    One Google streaming recognition call per stream id, fed from the microphone.

    Only final results are reported; each carries the latest utterance.
    """

    def __init__(self,
                 device: MicrophoneDevice,
                 post: Callable[[Message], None],
                 credentials_json: Optional[str] = None,
                 sr_target: int = SAMPLE_RATE_TARGET,
                 mic_gain: float = MIC_GAIN,
                 client=None):
        self.device = device
        self.post = post
        self.credentials_json = credentials_json
        self.sr_target = sr_target
        self.mic_gain = mic_gain
        self._client = client
        self._streams: Dict[int, _Stream] = {}

    @property
    def client(self):
        if self._client is None:
            self._client = speech.SpeechClient(credentials=load_credentials(self.credentials_json))
        return self._client

    def streaming_config(self, language_tag: str) -> speech.StreamingRecognitionConfig:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sr_target,
            language_code=language_tag,
            enable_automatic_punctuation=True,
        )
        return speech.StreamingRecognitionConfig(config=config, interim_results=False)

    def start(self, stream_id: int, language_tag: str) -> None:
        if not self.device.is_open:
            raise DeviceUnavailable("Microphone is not available for transcription")
        stream = _Stream(stream_id, language_tag)

        def on_frame(frame: bytes) -> None:
            stream.audio.put(prepare_for_recognition(
                frame, self.device.channels, self.device.sample_rate, self.sr_target, self.mic_gain
            ))

        stream.listener = on_frame
        self._streams[stream_id] = stream
        self.device.add_listener(on_frame)
        threading.Thread(
            target=self._recognize, args=(stream,), name=f"stt-{stream_id}", daemon=True
        ).start()
        logger.debug(f"Recognition stream {stream_id} started ({language_tag})")

    def _recognize(self, stream: _Stream) -> None:
        """Runs until the stream is stopped; always detaches and reports how it ended."""
        outcome: Optional[Message] = None
        try:
            responses = self.client.streaming_recognize(
                config=self.streaming_config(stream.language_tag),
                requests=stream.requests(),
            )
            for response in responses:
                for result in response.results:
                    if result.is_final and result.alternatives:
                        text = result.alternatives[0].transcript
                        logger.info(f"Stream {stream.stream_id} recognized: '{text}'")
                        self.post(TranscriptResult(stream.stream_id, text))
            outcome = TranscriptEnded(stream.stream_id)
        except (google_exceptions.GoogleAPIError, GoogleAuthError) as e:
            logger.error(f"Speech recognition failed on stream {stream.stream_id}: {e}")
            outcome = TranscriptError(stream.stream_id, str(e))
        finally:
            self._detach(stream)
            if outcome is None:
                outcome = TranscriptError(stream.stream_id, "Speech recognition stopped unexpectedly")
            self.post(outcome)

    def _detach(self, stream: _Stream) -> None:
        if stream.listener is not None:
            self.device.remove_listener(stream.listener)
            stream.listener = None
        stream.audio.put(None)
        self._streams.pop(stream.stream_id, None)

    def stop(self, stream_id: int) -> None:
        stream = self._streams.get(stream_id)
        if stream is None:
            return
        self._detach(stream)
        logger.debug(f"Recognition stream {stream_id} stopped")
