import random
import re

from mockinterview.interview.dispatch import PlaybackFailed, PlaybackFinished, StartPlayback
from mockinterview.interview.services import (
    PlaybackService,
    SilentSynthesizer,
    build_share_link,
    generate_session_id,
    recognize_shared_link,
)
from mockinterview.interview.testing import ManualControlLoop, MockSynthesizer


def test_session_id_format():
    session_id = generate_session_id(now_ms=1700000000123, rng=random.Random(7))
    assert re.fullmatch(r"user_1700000000123_[0-9a-z]{9}", session_id)


def test_session_ids_are_unique():
    assert len({generate_session_id() for _ in range(50)}) == 50


def test_share_link_round_trip():
    link = build_share_link("https://example.org/", "user_1_abc")
    assert link == "https://example.org/?interview=user_1_abc"
    assert recognize_shared_link(link) == "user_1_abc"


def test_unrecognized_links():
    assert recognize_shared_link("") is None
    assert recognize_shared_link("https://example.org/") is None
    assert recognize_shared_link("https://example.org/?interview=") is None


class TestPlaybackService:
    def setup_method(self):
        self.received = []
        self.loop = ManualControlLoop(self.received.append)
        self.synthesizer = MockSynthesizer(self.loop.post)
        self.playback = PlaybackService(self.synthesizer, self.loop, delay=1.0)

    def test_request_waits_for_delay(self):
        request_id = self.playback.request("Hello?", "en-US")
        assert self.loop.scheduled == [(1.0, StartPlayback(request_id))]
        assert self.playback.start(request_id) is True
        assert self.synthesizer.spoken == [(request_id, "Hello?", "en-US")]

    def test_explicit_zero_delay(self):
        request_id = self.playback.request("Again?", "en-US", delay=0)
        self.loop.drain()
        assert self.received == [StartPlayback(request_id)]

    def test_cancelled_request_is_not_spoken(self):
        request_id = self.playback.request("Hello?", "en-US")
        self.playback.cancel()
        assert self.playback.start(request_id) is False
        assert self.synthesizer.spoken == []
        assert self.synthesizer.cancelled == 1

    def test_synthesizer_error_becomes_failure_message(self):
        def broken(request_id, text, language_tag):
            raise OSError("no audio device")

        self.synthesizer.speak = broken
        request_id = self.playback.request("Hello?", "en-US")
        assert self.playback.start(request_id) is False
        self.loop.drain()
        assert self.received == [PlaybackFailed(request_id, "no audio device")]


def test_silent_synthesizer_finishes_immediately():
    received = []
    SilentSynthesizer(received.append).speak(3, "text", "en-US")
    assert received == [PlaybackFinished(3)]
