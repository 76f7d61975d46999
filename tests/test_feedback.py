import pytest

from mockinterview.interview.feedback import COLOR_MAP, classify, merge_signal
from mockinterview.interview.models import PresentationSignal


@pytest.mark.parametrize("text, mood", [
    ("I am HAPPY today", "happy"),
    ("pretty good", "happy"),
    ("a bit sad", "sad"),
    ("not bad", "sad"),
    ("good and bad", "happy"),
    ("nothing special", "neutral"),
    ("", "neutral"),
    (None, "neutral"),
])
def test_mood(text, mood):
    assert classify(text).mood == mood


def test_first_color_in_table_order_wins():
    assert classify("Blue or red?").color == COLOR_MAP["red"]
    assert classify("orange and purple").color == COLOR_MAP["purple"]
    assert classify("I like Green").color == 0x00FF00
    assert classify("grey").color is None


def test_merge_keeps_previous_color():
    previous = PresentationSignal(mood="happy", color=COLOR_MAP["blue"])
    merged = merge_signal(previous, classify("hmm"))
    assert merged == PresentationSignal(mood="neutral", color=COLOR_MAP["blue"])
    assert merge_signal(merged, classify("yellow")).color == COLOR_MAP["yellow"]
