"""
mockinterview: a self-administered, voice-driven mock interview.

Questions are read aloud, spoken answers are timed, transcribed and recorded,
and the finished session is exported as a ZIP archive.
"""

__version__ = "1.0.0"

# Main entry points
from .interview.controller import SessionController
from .interview.dispatch import ControlLoop
from .interview.models import Answer, InterviewTemplate, Session

__all__ = ["SessionController", "ControlLoop", "Answer", "InterviewTemplate", "Session"]
