"""Interview system components.

This module contains the business logic of a mock interview session: the
controller state machine, answer timing, capture coordination, templates and
archive export.
"""

# Core controller and control loop
from .controller import SessionController
from .dispatch import ControlLoop, UserAction

# Data models
from .models import Answer, InterviewTemplate, MediaArtifact, PresentationSignal, Session

# States and transition table
from .schemas import ALLOWED_ACTIONS, Action, ControllerState, InterviewInfo, Phase

# Components
from .capture import CaptureCoordinator
from .export import ExportComposer
from .feedback import classify
from .templates import LANGUAGES, TemplateRegistry
from .timer import AnswerTimer, ThreadTicker

# Services and collaborator interfaces
from .services import (
    CaptureDevice, Confirmer, PlaybackService, Prompter, Recorder,
    SpeechSynthesizer, Transcriber, build_share_link, generate_session_id,
    recognize_shared_link
)

# Errors
from .errors import (
    InterviewError, ValidationError, NotFound, InvalidTransition,
    DeviceUnavailable, RecognitionTransient, ExportFailure, ConfirmationRequired
)

# Event system
from .events import (
    InterviewEventBus, EventLogger, InterviewMetrics,
    EventType, InterviewEvent
)

__all__ = [
    # Controller
    "SessionController", "ControlLoop", "UserAction",

    # Data models
    "Answer", "InterviewTemplate", "MediaArtifact", "PresentationSignal", "Session",

    # States
    "ALLOWED_ACTIONS", "Action", "ControllerState", "InterviewInfo", "Phase",

    # Components
    "CaptureCoordinator", "ExportComposer", "classify", "LANGUAGES",
    "TemplateRegistry", "AnswerTimer", "ThreadTicker",

    # Services
    "CaptureDevice", "Confirmer", "PlaybackService", "Prompter", "Recorder",
    "SpeechSynthesizer", "Transcriber", "build_share_link", "generate_session_id",
    "recognize_shared_link",

    # Errors
    "InterviewError", "ValidationError", "NotFound", "InvalidTransition",
    "DeviceUnavailable", "RecognitionTransient", "ExportFailure", "ConfirmationRequired",

    # Events
    "InterviewEventBus", "EventLogger", "InterviewMetrics",
    "EventType", "InterviewEvent",
]
