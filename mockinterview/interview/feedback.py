"""
Keyword classifier driving the avatar's mood and color.
"""
from typing import Dict, Optional

from .models import PresentationSignal

HAPPY_WORDS = ("happy", "good")
SAD_WORDS = ("sad", "bad")

# Checked in order; the first color named wins
COLOR_MAP: Dict[str, int] = {
    "red": 0xFF0000,
    "green": 0x00FF00,
    "blue": 0x0000FF,
    "yellow": 0xFFFF00,
    "purple": 0x800080,
    "orange": 0xFFA500,
}


def classify(text: str) -> PresentationSignal:
    """Map a transcript fragment to a mood and an optional color."""
    lowered = (text or "").lower()
    if any(word in lowered for word in HAPPY_WORDS):
        mood = "happy"
    elif any(word in lowered for word in SAD_WORDS):
        mood = "sad"
    else:
        mood = "neutral"

    color: Optional[int] = None
    for name, value in COLOR_MAP.items():
        if name in lowered:
            color = value
            break
    return PresentationSignal(mood=mood, color=color)


def merge_signal(previous: PresentationSignal, latest: PresentationSignal) -> PresentationSignal:
    """The mood always follows the latest fragment; the color sticks until another is named."""
    color = latest.color if latest.color is not None else previous.color
    return PresentationSignal(mood=latest.mood, color=color)
