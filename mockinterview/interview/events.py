"""
Event-driven notifications from the session controller to the presentation layer.
"""
import logging
from abc import ABC
from typing import Dict, Any, List, Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("events")


class EventType(str, Enum):
    """Types of interview events."""
    SESSION_STARTED = "session_started"
    QUESTION_PRESENTED = "question_presented"
    LISTENING_STARTED = "listening_started"
    ANSWER_PAUSED = "answer_paused"
    ANSWER_RESUMED = "answer_resumed"
    ANSWER_RESTARTED = "answer_restarted"
    ANSWER_SUBMITTED = "answer_submitted"
    TRANSCRIPT_UPDATED = "transcript_updated"
    TIMER_UPDATED = "timer_updated"
    PRESENTATION_CHANGED = "presentation_changed"
    DEVICE_UNAVAILABLE = "device_unavailable"
    SESSION_COMPLETED = "session_completed"
    SESSION_EXPORTED = "session_exported"
    ERROR_OCCURRED = "error_occurred"


@dataclass
class InterviewEvent(ABC):
    """Base class for all interview events."""
    event_type: EventType
    session_id: str
    timestamp: float
    data: Dict[str, Any]


@dataclass
class SessionStartedEvent(InterviewEvent):
    """Event fired when a session begins."""
    def __init__(self, session_id: str, timestamp: float, template_name: str,
                 language: str, question_count: int, share_link: str):
        super().__init__(
            event_type=EventType.SESSION_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "template_name": template_name,
                "language": language,
                "question_count": question_count,
                "share_link": share_link
            }
        )


@dataclass
class QuestionPresentedEvent(InterviewEvent):
    """Event fired when a question is shown and its playback requested."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 question: str, question_count: int):
        super().__init__(
            event_type=EventType.QUESTION_PRESENTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "question": question,
                "question_count": question_count
            }
        )


@dataclass
class ListeningStartedEvent(InterviewEvent):
    """Event fired when the answer window opens."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 remaining_seconds: int, capture_enabled: bool):
        super().__init__(
            event_type=EventType.LISTENING_STARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "remaining_seconds": remaining_seconds,
                "capture_enabled": capture_enabled
            }
        )


@dataclass
class AnswerPausedEvent(InterviewEvent):
    """Event fired when the user pauses an answer."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 remaining_seconds: int, transcript: str):
        super().__init__(
            event_type=EventType.ANSWER_PAUSED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "remaining_seconds": remaining_seconds,
                "transcript": transcript
            }
        )


@dataclass
class AnswerResumedEvent(InterviewEvent):
    """Event fired when a paused answer continues."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 remaining_seconds: int):
        super().__init__(
            event_type=EventType.ANSWER_RESUMED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "remaining_seconds": remaining_seconds
            }
        )


@dataclass
class AnswerRestartedEvent(InterviewEvent):
    """Event fired when the current answer is discarded and re-opened."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 remaining_seconds: int):
        super().__init__(
            event_type=EventType.ANSWER_RESTARTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "remaining_seconds": remaining_seconds
            }
        )


@dataclass
class AnswerSubmittedEvent(InterviewEvent):
    """Event fired when an answer is finalized."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 transcript: str, timed_out: bool, has_next: bool):
        super().__init__(
            event_type=EventType.ANSWER_SUBMITTED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "transcript": transcript,
                "timed_out": timed_out,
                "has_next": has_next
            }
        )


@dataclass
class TranscriptUpdatedEvent(InterviewEvent):
    """Event fired when a fragment is merged into the current answer."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 fragment: str, transcript: str):
        super().__init__(
            event_type=EventType.TRANSCRIPT_UPDATED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "fragment": fragment,
                "transcript": transcript
            }
        )


@dataclass
class TimerUpdatedEvent(InterviewEvent):
    """Event fired on every countdown tick."""
    def __init__(self, session_id: str, timestamp: float, question_index: int,
                 remaining_seconds: int):
        super().__init__(
            event_type=EventType.TIMER_UPDATED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "question_index": question_index,
                "remaining_seconds": remaining_seconds
            }
        )


@dataclass
class PresentationChangedEvent(InterviewEvent):
    """Event fired when the mood/color signal changes."""
    def __init__(self, session_id: str, timestamp: float, mood: str, color: Optional[int]):
        super().__init__(
            event_type=EventType.PRESENTATION_CHANGED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "mood": mood,
                "color": color
            }
        )


@dataclass
class DeviceUnavailableEvent(InterviewEvent):
    """Event fired once when capture is disabled for the session."""
    def __init__(self, session_id: str, timestamp: float, reason: str):
        super().__init__(
            event_type=EventType.DEVICE_UNAVAILABLE,
            session_id=session_id,
            timestamp=timestamp,
            data={"reason": reason}
        )


@dataclass
class SessionCompletedEvent(InterviewEvent):
    """Event fired when every question has been answered."""
    def __init__(self, session_id: str, timestamp: float, answer_count: int,
                 answered_count: int, summary: str):
        super().__init__(
            event_type=EventType.SESSION_COMPLETED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "answer_count": answer_count,
                "answered_count": answered_count,
                "summary": summary
            }
        )


@dataclass
class SessionExportedEvent(InterviewEvent):
    """Event fired when the archive has been written."""
    def __init__(self, session_id: str, timestamp: float, path: str):
        super().__init__(
            event_type=EventType.SESSION_EXPORTED,
            session_id=session_id,
            timestamp=timestamp,
            data={"path": path}
        )


@dataclass
class ErrorOccurredEvent(InterviewEvent):
    """Event fired when an error is surfaced or recovered."""
    def __init__(self, session_id: str, timestamp: float, error_type: str,
                 error_message: str, component: str, retryable: bool = False):
        super().__init__(
            event_type=EventType.ERROR_OCCURRED,
            session_id=session_id,
            timestamp=timestamp,
            data={
                "error_type": error_type,
                "error_message": error_message,
                "component": component,
                "retryable": retryable
            }
        )


EventHandler = Callable[[InterviewEvent], None]


class InterviewEventBus:
    """Event bus for interview system communication."""

    def __init__(self):
        self._handlers: Dict[EventType, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Subscribe to specific event type.

        Args:
            event_type: Type of event to listen for
            handler: Function to call when event occurs
        """
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)
        logger.debug(f"Subscribed handler to {event_type}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """
        Subscribe to all events.

        Args:
            handler: Function to call for any event
        """
        self._global_handlers.append(handler)
        logger.debug("Subscribed global handler")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """
        Unsubscribe from specific event type.

        Args:
            event_type: Type of event to stop listening for
            handler: Handler function to remove
        """
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(f"Unsubscribed handler from {event_type}")
            except ValueError:
                logger.warning(f"Handler not found for {event_type}")

    def emit(self, event: InterviewEvent) -> None:
        """
        Emit an event to all subscribers.

        Args:
            event: Event to emit
        """
        logger.debug(f"Emitting event: {event.event_type} for session {event.session_id}")

        for handler in self._handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event.event_type}: {e}")

        for handler in self._global_handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error in global event handler: {e}")

    def clear_handlers(self) -> None:
        """Clear all event handlers."""
        self._handlers.clear()
        self._global_handlers.clear()
        logger.debug("Cleared all event handlers")


class EventLogger:
    """Logs all events for debugging and analysis."""

    # Per-second noise stays at debug level
    QUIET_EVENTS = {EventType.TIMER_UPDATED, EventType.TRANSCRIPT_UPDATED}

    def __init__(self, log_level: int = logging.INFO):
        self.logger = logging.getLogger("event_logger")
        self.log_level = log_level

    def handle_event(self, event: InterviewEvent) -> None:
        """Log event details."""
        level = logging.DEBUG if event.event_type in self.QUIET_EVENTS else self.log_level
        self.logger.log(level, f"Event: {event.event_type.value} | Session: {event.session_id} | Data: {event.data}")


class InterviewMetrics:
    """Collects metrics from interview events."""

    def __init__(self):
        self.reset()

    def handle_event(self, event: InterviewEvent) -> None:
        """Update metrics based on event."""
        if event.event_type == EventType.SESSION_STARTED:
            self.sessions_started += 1
        elif event.event_type == EventType.SESSION_COMPLETED:
            self.sessions_completed += 1
        elif event.event_type == EventType.SESSION_EXPORTED:
            self.sessions_exported += 1
        elif event.event_type == EventType.ANSWER_SUBMITTED:
            self.answers_submitted += 1
            if event.data.get("timed_out"):
                self.answers_timed_out += 1
        elif event.event_type == EventType.ANSWER_PAUSED:
            self.pauses += 1
        elif event.event_type == EventType.ANSWER_RESTARTED:
            self.restarts += 1
        elif event.event_type == EventType.ERROR_OCCURRED:
            self.errors_occurred += 1

    def get_metrics(self) -> Dict[str, int]:
        """Get current metrics snapshot."""
        return {
            "sessions_started": self.sessions_started,
            "sessions_completed": self.sessions_completed,
            "sessions_exported": self.sessions_exported,
            "answers_submitted": self.answers_submitted,
            "answers_timed_out": self.answers_timed_out,
            "pauses": self.pauses,
            "restarts": self.restarts,
            "errors_occurred": self.errors_occurred
        }

    def reset(self) -> None:
        """Reset all metrics to zero."""
        self.sessions_started = 0
        self.sessions_completed = 0
        self.sessions_exported = 0
        self.answers_submitted = 0
        self.answers_timed_out = 0
        self.pauses = 0
        self.restarts = 0
        self.errors_occurred = 0
