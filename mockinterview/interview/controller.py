"""
Session controller: the interview state machine.

The controller owns the session and sequences questions through
presentation, listening, pause/resume/restart and submission, then
completion and export. It runs entirely on the control thread: user
commands and collaborator events both arrive through ``dispatch``.
"""
import logging
import time
from datetime import datetime
from typing import Callable, List, Optional

from .capture import CaptureCoordinator
from .dispatch import (
    ControlLoop,
    FlushDeadline,
    MediaChunk,
    Message,
    PlaybackFailed,
    PlaybackFinished,
    RecordingStopped,
    StartPlayback,
    TimerTick,
    TranscriptEnded,
    TranscriptError,
    TranscriptResult,
    UserAction,
)
from .errors import (
    ConfirmationRequired,
    DeviceUnavailable,
    InterviewError,
    InvalidTransition,
    ValidationError,
)
from .events import (
    AnswerPausedEvent,
    AnswerRestartedEvent,
    AnswerResumedEvent,
    AnswerSubmittedEvent,
    DeviceUnavailableEvent,
    ErrorOccurredEvent,
    EventLogger,
    InterviewEventBus,
    InterviewMetrics,
    ListeningStartedEvent,
    PresentationChangedEvent,
    QuestionPresentedEvent,
    SessionCompletedEvent,
    SessionExportedEvent,
    SessionStartedEvent,
    TimerUpdatedEvent,
    TranscriptUpdatedEvent,
)
from .export import ExportComposer
from .feedback import classify, merge_signal
from .models import Answer, InterviewTemplate, PresentationSignal, Session
from .schemas import Action, ControllerState, Phase, is_allowed
from .services import (
    CaptureDevice,
    Confirmer,
    PlaybackService,
    Prompter,
    Recorder,
    SpeechSynthesizer,
    Transcriber,
    build_share_link,
    generate_session_id,
)
from .templates import (
    CUSTOM_TEMPLATE_ID,
    LANGUAGES,
    TemplateRegistry,
    language_tag_for,
    parse_question_count,
)
from .timer import AnswerTimer, ThreadTicker, TickSource
from ..config import Config

logger = logging.getLogger("controller")

RESTART_CONFIRMATION = "Are you sure you want to restart your answer? Current answer will be deleted."
QUESTION_COUNT_PROMPT = "How many questions would you like in your template?"


class SessionController:
    """
    Owns one interview session from language selection to export.

    All collaborators report back through the control loop; nothing here is
    touched from another thread.
    """

    def __init__(self,
                 loop: ControlLoop,
                 synthesizer: SpeechSynthesizer,
                 transcriber: Transcriber,
                 recorder: Recorder,
                 device: Optional[CaptureDevice] = None,
                 registry: Optional[TemplateRegistry] = None,
                 prompter: Optional[Prompter] = None,
                 confirmer: Optional[Confirmer] = None,
                 config: Optional[Config] = None,
                 event_bus: Optional[InterviewEventBus] = None,
                 ticker: Optional[TickSource] = None,
                 composer: Optional[ExportComposer] = None,
                 session_id_factory: Callable[[], str] = generate_session_id):
        self.config = config or Config()
        self.loop = loop
        self.registry = registry or TemplateRegistry()
        self.device = device
        self.prompter = prompter
        self.confirmer = confirmer
        self.composer = composer or ExportComposer()
        self.session_id_factory = session_id_factory

        # Initialize event system
        self.event_bus = event_bus or InterviewEventBus()
        self.event_logger = EventLogger()
        self.metrics = InterviewMetrics()
        self.event_bus.subscribe_all(self.event_logger.handle_event)
        self.event_bus.subscribe_all(self.metrics.handle_event)

        self.playback = PlaybackService(synthesizer, loop, self.config.playback_delay_seconds)
        self.capture = CaptureCoordinator(
            transcriber,
            recorder,
            loop,
            self._report,
            flush_timeout=self.config.flush_timeout_seconds,
            flush_max_attempts=self.config.flush_max_attempts,
            max_restarts=self.config.recognition_max_restarts,
        )
        self.timer = AnswerTimer(
            ticker or ThreadTicker(loop.post, self.config.tick_interval_seconds),
            duration=self.config.answer_seconds,
            on_expire=self._on_timer_expired,
            on_tick=self._on_timer_tick,
        )

        self.state = ControllerState.IDLE
        self.phase: Optional[Phase] = None
        self.language: Optional[str] = None
        self.template: Optional[InterviewTemplate] = None
        self.session: Optional[Session] = None
        self.presentation_signal = PresentationSignal()

        self._presenting_request: Optional[int] = None
        self._completion_requested = False
        self._device_acquired = False
        self._shut_down = False

        loop.bind(self.dispatch)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def share_link(self) -> Optional[str]:
        if self.session is None:
            return None
        return build_share_link(self.config.share_base_url, self.session.session_id)

    @property
    def language_tag(self) -> str:
        return language_tag_for(self.language or "")

    @property
    def completion_pending(self) -> bool:
        return self._completion_requested

    @property
    def _session_id(self) -> str:
        return self.session.session_id if self.session else ""

    def _require(self, action: Action) -> None:
        if not is_allowed(action, self.state, self.phase):
            raise InvalidTransition(
                action.value, self.state.value, self.phase.value if self.phase else None
            )

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def select_language(self, code: str) -> None:
        self._require(Action.SELECT_LANGUAGE)
        code = (code or "").strip()
        if not code:
            raise ValidationError("Please select a language first.")
        if code not in LANGUAGES:
            raise ValidationError(f"Unsupported language '{code}'")
        self.language = code
        self.state = ControllerState.LANGUAGE_SELECTED
        logger.info(f"Language selected: {code}")

    def select_template(self, template_id: str, question_texts: Optional[List[str]] = None) -> InterviewTemplate:
        """
        Choose a built-in template, or build a custom one.

        For ``custom`` the questions come from ``question_texts`` or, when
        omitted, from the prompter (a count, then each question).
        """
        self._require(Action.SELECT_TEMPLATE)
        template_id = (template_id or "").strip()
        if not template_id:
            raise ValidationError("Please select a template.")

        if template_id == CUSTOM_TEMPLATE_ID:
            if question_texts is None:
                question_texts = self._prompt_custom_questions()
            template = self.registry.build_custom(self.language, question_texts)
        else:
            template = self.registry.get(template_id)
            if self.language not in template.questions:
                raise ValidationError(
                    f"Template '{template.name}' is not available in {LANGUAGES[self.language]}"
                )

        self.template = template
        self.state = ControllerState.TEMPLATE_SELECTED
        logger.info(f"Template selected: {template.name} ({len(template.questions_for(self.language))} questions)")
        return template

    def _prompt_custom_questions(self) -> List[str]:
        if self.prompter is None:
            raise ValidationError("Custom templates need questions")
        count = parse_question_count(self.prompter.ask(QUESTION_COUNT_PROMPT))
        language_name = LANGUAGES[self.language]
        return [
            self.prompter.ask(f"Enter question {number} (in {language_name}):")
            for number in range(1, count + 1)
        ]

    def start_interview(self) -> Session:
        self._require(Action.START_INTERVIEW)
        self.session = Session(
            session_id=self.session_id_factory(),
            template=self.template,
            language=self.language,
        )
        self.state = ControllerState.ACTIVE
        self._completion_requested = False
        logger.info(f"Started session {self.session.session_id} with {self.template.name}")

        self.event_bus.emit(SessionStartedEvent(
            session_id=self.session.session_id,
            timestamp=time.time(),
            template_name=self.template.name,
            language=self.language,
            question_count=self.session.question_count,
            share_link=self.share_link,
        ))

        self._acquire_device()
        self._present_question()
        return self.session

    def _acquire_device(self) -> None:
        if not self.config.enable_capture:
            self.capture.capture_enabled = False
            logger.info("Capture disabled by configuration")
            return
        if self.device is None:
            return
        try:
            self.device.acquire()
            self._device_acquired = True
        except DeviceUnavailable as e:
            self.capture.disable_capture(e)

    def _release_device(self) -> None:
        if self._device_acquired and self.device is not None:
            self.device.release()
            self._device_acquired = False

    # ------------------------------------------------------------------
    # Question cycle
    # ------------------------------------------------------------------

    def _present_question(self) -> None:
        session = self.session
        index = session.question_index
        if len(session.answers) == index:
            session.answers.append(Answer(question_index=index))
        self.phase = Phase.PRESENTING

        self.event_bus.emit(QuestionPresentedEvent(
            session_id=session.session_id,
            timestamp=time.time(),
            question_index=index,
            question=session.current_question,
            question_count=session.question_count,
        ))
        self._presenting_request = self.playback.request(session.current_question, self.language_tag)

    def _on_playback_done(self, request_id: int, failure: Optional[str] = None) -> None:
        if failure is not None:
            logger.warning(f"Playback {request_id} failed: {failure}")
            self._emit_error("PlaybackFailed", failure, "synthesis")
        if (self.state != ControllerState.ACTIVE or self.phase != Phase.PRESENTING
                or request_id != self._presenting_request):
            logger.debug(f"Playback {request_id} finished outside presentation")
            return
        self._start_listening()

    def _start_listening(self) -> None:
        self._presenting_request = None
        self.timer.arm()
        self.capture.open_cycle(self.session.current_answer, self.language_tag)
        self.phase = Phase.LISTENING

        self.event_bus.emit(ListeningStartedEvent(
            session_id=self._session_id,
            timestamp=time.time(),
            question_index=self.session.question_index,
            remaining_seconds=self.timer.remaining,
            capture_enabled=self.capture.capture_enabled,
        ))

    def pause(self) -> None:
        self._require(Action.PAUSE)
        self.timer.freeze()
        self.capture.pause_cycle()
        self.phase = Phase.PAUSED

        self.event_bus.emit(AnswerPausedEvent(
            session_id=self._session_id,
            timestamp=time.time(),
            question_index=self.session.question_index,
            remaining_seconds=self.timer.remaining,
            transcript=self.session.current_answer.transcript,
        ))

    def resume(self) -> None:
        self._require(Action.RESUME)
        self.capture.resume_cycle()
        self.timer.resume()
        self.phase = Phase.LISTENING

        self.event_bus.emit(AnswerResumedEvent(
            session_id=self._session_id,
            timestamp=time.time(),
            question_index=self.session.question_index,
            remaining_seconds=self.timer.remaining,
        ))

    def restart(self, confirmed: Optional[bool] = None) -> bool:
        """
        Discard the current answer and listen again with a full timer.

        Returns:
            True if the answer was restarted, False if the user declined

        Raises:
            ConfirmationRequired: No confirmation given and no confirmer available
        """
        self._require(Action.RESTART)
        if confirmed is None:
            if self.confirmer is None:
                raise ConfirmationRequired("Restarting deletes the current answer and must be confirmed")
            confirmed = self.confirmer.confirm(RESTART_CONFIRMATION)
        if not confirmed:
            logger.info("Restart declined")
            return False

        self.timer.stop()
        self.capture.discard_cycle()
        self.timer.arm()
        self.capture.open_cycle(self.session.current_answer, self.language_tag)
        self.phase = Phase.LISTENING

        self.event_bus.emit(AnswerRestartedEvent(
            session_id=self._session_id,
            timestamp=time.time(),
            question_index=self.session.question_index,
            remaining_seconds=self.timer.remaining,
        ))
        return True

    def submit_answer(self, timed_out: bool = False) -> Answer:
        self._require(Action.SUBMIT_ANSWER)
        self.timer.stop()
        self.capture.close_cycle()
        answer = self.session.current_answer
        answer.finalize()
        self.phase = Phase.AWAITING_NEXT
        logger.info(
            f"Answer {answer.question_index + 1} submitted{' (time up)' if timed_out else ''}: '{answer.transcript}'"
        )

        self.event_bus.emit(AnswerSubmittedEvent(
            session_id=self._session_id,
            timestamp=time.time(),
            question_index=answer.question_index,
            transcript=answer.transcript,
            timed_out=timed_out,
            has_next=self.session.has_next_question(),
        ))
        return answer

    def advance(self) -> None:
        """Present the next question, or complete the session after the last one."""
        self._require(Action.ADVANCE)
        if self._completion_requested:
            raise InvalidTransition(Action.ADVANCE.value, self.state.value, "completing")

        if self.session.has_next_question():
            self.session.question_index += 1
            self._present_question()
            return

        self._completion_requested = True
        pending = self.capture.pending_flushes
        if pending:
            logger.info(f"Waiting for {pending} recording(s) to flush before completing")
            self.capture.on_settled = self._complete
            return
        self._complete()

    def _complete(self) -> None:
        session = self.session
        for answer in session.answers:
            answer.lock()
        session.completed_at = datetime.now()
        self.state = ControllerState.COMPLETED
        self.phase = None
        self._completion_requested = False
        self._release_device()

        answered = sum(1 for answer in session.answers if answer.transcript)
        logger.info(f"Session {session.session_id} completed: {answered}/{len(session.answers)} answered")
        self.event_bus.emit(SessionCompletedEvent(
            session_id=session.session_id,
            timestamp=time.time(),
            answer_count=len(session.answers),
            answered_count=answered,
            summary=self.composer.render_summary(session),
        ))

    def replay_question(self) -> int:
        """Speak the current question again without changing phase."""
        self._require(Action.REPLAY_QUESTION)
        return self.playback.request(self.session.current_question, self.language_tag, delay=0)

    def type_answer(self, text: str) -> str:
        """Append typed text to the current answer, as if it had been spoken."""
        self._require(Action.TYPE_ANSWER)
        fragment = (text or "").strip()
        if not fragment:
            raise ValidationError("Nothing to add to the answer")
        self.session.current_answer.append_fragment(fragment)
        self._on_fragment(fragment)
        return self.session.current_answer.transcript

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def summarize(self) -> str:
        self._require(Action.SUMMARIZE)
        return self.composer.render_summary(self.session)

    def export(self, output_dir: Optional[str] = None) -> str:
        """
        Write the session archive.

        Raises:
            ExportFailure: Retryable; state and session are left as they were
        """
        self._require(Action.EXPORT)
        path = self.composer.export(self.session, output_dir or self.config.export_dir)
        self.state = ControllerState.EXPORTED

        self.event_bus.emit(SessionExportedEvent(
            session_id=self._session_id,
            timestamp=time.time(),
            path=path,
        ))
        return path

    def shutdown(self) -> None:
        """Stop everything on the way out. Safe to call more than once."""
        if self._shut_down:
            return
        self._shut_down = True
        self.timer.stop()
        self.capture.shutdown()
        self.playback.cancel()
        self._release_device()
        self.loop.close()
        logger.info("Controller shut down")

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------

    USER_ACTIONS = {
        Action.SELECT_LANGUAGE.value: "select_language",
        Action.SELECT_TEMPLATE.value: "select_template",
        Action.START_INTERVIEW.value: "start_interview",
        Action.PAUSE.value: "pause",
        Action.RESUME.value: "resume",
        Action.RESTART.value: "restart",
        Action.SUBMIT_ANSWER.value: "submit_answer",
        Action.ADVANCE.value: "advance",
        Action.REPLAY_QUESTION.value: "replay_question",
        Action.TYPE_ANSWER.value: "type_answer",
        Action.EXPORT.value: "export",
        "shutdown": "shutdown",
    }

    def dispatch(self, message: Message) -> None:
        """Apply one inbound message. Runs on the control thread."""
        if self._shut_down:
            logger.debug(f"Shut down, ignoring {message}")
            return

        if isinstance(message, UserAction):
            self._handle_user_action(message)
        elif isinstance(message, StartPlayback):
            self.playback.start(message.request_id)
        elif isinstance(message, PlaybackFinished):
            self._on_playback_done(message.request_id)
        elif isinstance(message, PlaybackFailed):
            self._on_playback_done(message.request_id, failure=message.reason)
        elif isinstance(message, TranscriptResult):
            fragment = self.capture.handle_transcript(message.stream_id, message.text)
            if fragment:
                self._on_fragment(fragment)
        elif isinstance(message, TranscriptEnded):
            self.capture.handle_stream_end(message.stream_id)
        elif isinstance(message, TranscriptError):
            self.capture.handle_stream_error(message.stream_id, message.reason)
        elif isinstance(message, MediaChunk):
            self.capture.handle_media_chunk(message.segment_id, message.data)
        elif isinstance(message, RecordingStopped):
            self.capture.handle_recording_stopped(message.segment_id)
        elif isinstance(message, FlushDeadline):
            self.capture.handle_flush_deadline(message.segment_id, message.attempt)
        elif isinstance(message, TimerTick):
            self.timer.tick(message.timer_id)
        else:
            logger.warning(f"Unhandled message: {message}")

    def _handle_user_action(self, message: UserAction) -> None:
        method_name = self.USER_ACTIONS.get(message.name)
        if method_name is None:
            self._report(ValidationError(f"Unknown command '{message.name}'"), "controller")
            return
        try:
            getattr(self, method_name)(**message.kwargs)
        except InterviewError as e:
            logger.info(f"Action '{message.name}' rejected: {e}")
            self._report(e, "controller")

    def _on_timer_tick(self, remaining: int) -> None:
        self.event_bus.emit(TimerUpdatedEvent(
            session_id=self._session_id,
            timestamp=time.time(),
            question_index=self.session.question_index if self.session else -1,
            remaining_seconds=remaining,
        ))

    def _on_timer_expired(self) -> None:
        if self.state == ControllerState.ACTIVE and self.phase == Phase.LISTENING:
            self.submit_answer(timed_out=True)

    def _on_fragment(self, fragment: str) -> None:
        answer = self.session.current_answer
        self.event_bus.emit(TranscriptUpdatedEvent(
            session_id=self._session_id,
            timestamp=time.time(),
            question_index=answer.question_index,
            fragment=fragment,
            transcript=answer.transcript,
        ))

        signal = merge_signal(self.presentation_signal, classify(fragment))
        if signal != self.presentation_signal:
            self.presentation_signal = signal
            self.event_bus.emit(PresentationChangedEvent(
                session_id=self._session_id,
                timestamp=time.time(),
                mood=signal.mood,
                color=signal.color,
            ))

    # ------------------------------------------------------------------
    # Error reporting
    # ------------------------------------------------------------------

    def _report(self, error: InterviewError, component: str) -> None:
        """Surface a recovered or rejected condition on the event bus."""
        if isinstance(error, DeviceUnavailable):
            self.event_bus.emit(DeviceUnavailableEvent(
                session_id=self._session_id,
                timestamp=time.time(),
                reason=str(error),
            ))
            return
        self._emit_error(type(error).__name__, str(error), component, error.retryable)

    def _emit_error(self, error_type: str, message: str, component: str, retryable: bool = False) -> None:
        self.event_bus.emit(ErrorOccurredEvent(
            session_id=self._session_id,
            timestamp=time.time(),
            error_type=error_type,
            error_message=message,
            component=component,
            retryable=retryable,
        ))
