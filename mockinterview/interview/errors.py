"""
Error types for the interview system.

Recoverable conditions derive from ``InterviewError`` and are surfaced to the
user. Programming errors (broken invariants) derive from ``RuntimeError``.
"""


class InterviewError(Exception):
    """Base class for user-facing interview errors."""
    retryable = False


class ValidationError(InterviewError):
    """Invalid selection or custom template input."""


class NotFound(InterviewError):
    """Unknown template or language."""


class InvalidTransition(InterviewError):
    """Action not permitted in the current state."""

    def __init__(self, action: str, state: str, phase: str = None):
        where = f"{state}/{phase}" if phase else state
        super().__init__(f"'{action}' is not allowed in state {where}")
        self.action = action
        self.state = state
        self.phase = phase


class DeviceUnavailable(InterviewError):
    """Camera/microphone denied or absent."""


class RecognitionTransient(InterviewError):
    """Speech recognition could not be kept running."""


class ExportFailure(InterviewError):
    """Archive could not be assembled or written."""
    retryable = True


class ConfirmationRequired(InterviewError):
    """A destructive action needs explicit user confirmation."""


class CaptureCycleConflict(RuntimeError):
    """A capture cycle was opened while another one is open."""


class TimerConflict(RuntimeError):
    """An answer timer was armed while another one is armed."""


class AnswerLockedError(RuntimeError):
    """An answer was mutated after the session was summarized."""


class RegistryFrozenError(RuntimeError):
    """A template was registered after initialization."""
