"""
Text-to-speech using Google Cloud TTS, played through the system audio player.
"""
import os
import shutil
import subprocess
import tempfile
import threading
import logging
from typing import Callable, Dict, Iterable, List, Optional

from google.api_core import exceptions as google_exceptions
from google.auth.exceptions import GoogleAuthError
from google.cloud import texttospeech

from ....interview.dispatch import Message, PlaybackFailed, PlaybackFinished
from ....interview.services import SpeechSynthesizer
from .credentials import load_credentials

logger = logging.getLogger("speech_tts")

# macOS first, then ALSA
AUDIO_PLAYERS = (["afplay"], ["aplay", "-q"])


def select_voice(voices: Iterable, language_tag: str) -> Optional[str]:
    """Name of the first voice speaking ``language_tag``; None means the service default."""
    for voice in voices:
        if language_tag in list(voice.language_codes):
            return voice.name
    return None


def find_audio_player() -> Optional[List[str]]:
    for command in AUDIO_PLAYERS:
        if shutil.which(command[0]):
            return list(command)
    return None


class GoogleSpeechSynthesizer(SpeechSynthesizer):
    """
    Speaks on a worker thread and reports back with PlaybackFinished/Failed.

    Only one utterance plays at a time; a new request stops the previous one.
    """

    def __init__(self,
                 post: Callable[[Message], None],
                 credentials_json: Optional[str] = None,
                 sample_rate: int = 16000,
                 client=None):
        self.post = post
        self.credentials_json = credentials_json
        self.sample_rate = sample_rate
        self._client = client
        self._voices: Dict[str, Optional[str]] = {}
        self._player = find_audio_player()
        self._process: Optional[subprocess.Popen] = None
        self._current_request: Optional[int] = None
        self._lock = threading.Lock()
        self._cancelled = set()
        if self._player is None:
            logger.warning("No audio player found (afplay/aplay); questions will only be shown")

    @property
    def client(self):
        if self._client is None:
            self._client = texttospeech.TextToSpeechClient(credentials=load_credentials(self.credentials_json))
        return self._client

    def voice_for(self, language_tag: str) -> Optional[str]:
        if language_tag not in self._voices:
            response = self.client.list_voices(language_code=language_tag)
            self._voices[language_tag] = select_voice(response.voices, language_tag)
            logger.info(f"Voice for {language_tag}: {self._voices[language_tag] or 'default'}")
        return self._voices[language_tag]

    def synthesize(self, text: str, language_tag: str) -> bytes:
        voice_params = texttospeech.VoiceSelectionParams(
            language_code=language_tag,
            name=self.voice_for(language_tag) or "",
        )
        audio_config = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.LINEAR16,
            sample_rate_hertz=self.sample_rate,
        )
        response = self.client.synthesize_speech(
            input=texttospeech.SynthesisInput(text=text), voice=voice_params, audio_config=audio_config
        )
        return response.audio_content

    def speak(self, request_id: int, text: str, language_tag: str) -> None:
        self.cancel()
        with self._lock:
            self._current_request = request_id
        threading.Thread(
            target=self._speak, args=(request_id, text, language_tag), name=f"tts-{request_id}", daemon=True
        ).start()

    def _speak(self, request_id: int, text: str, language_tag: str) -> None:
        """Every request ends with exactly one PlaybackFinished or PlaybackFailed, cancelled ones included."""
        outcome: Optional[Message] = None
        try:
            if self._player is not None and text.strip():
                audio = self.synthesize(text, language_tag)
                self._play(request_id, audio)
            outcome = PlaybackFinished(request_id)
        except (google_exceptions.GoogleAPIError, GoogleAuthError, OSError, subprocess.CalledProcessError) as e:
            logger.error(f"Google TTS failed for request {request_id}: {e}")
            outcome = PlaybackFailed(request_id, "There was an error with the text-to-speech system.")
        finally:
            with self._lock:
                if request_id in self._cancelled:
                    self._cancelled.discard(request_id)
                    logger.debug(f"Playback {request_id} cancelled")
                    outcome = PlaybackFinished(request_id)
                if self._current_request == request_id:
                    self._current_request = None
            if outcome is None:
                outcome = PlaybackFailed(request_id, "The text-to-speech system stopped unexpectedly.")
            self.post(outcome)

    def _play(self, request_id: int, audio: bytes) -> None:
        with tempfile.NamedTemporaryFile(suffix=".wav", delete=False) as tmp_file:
            wav_path = tmp_file.name
            tmp_file.write(audio)
        process = None
        try:
            with self._lock:
                if request_id in self._cancelled:
                    return
                self._process = subprocess.Popen(
                    self._player + [wav_path], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
                )
                process = self._process
            code = process.wait()
            if code not in (0, -15):
                raise subprocess.CalledProcessError(code, self._player[0])
        finally:
            with self._lock:
                if process is not None and self._process is process:
                    self._process = None
            os.unlink(wav_path)

    def cancel(self) -> None:
        """Stop the current utterance; its request still reports PlaybackFinished."""
        with self._lock:
            if self._current_request is not None:
                self._cancelled.add(self._current_request)
                self._current_request = None
            if self._process is not None and self._process.poll() is None:
                self._process.terminate()
