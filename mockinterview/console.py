"""
Console front end: menus, live interview output and typed commands.

Setup (language, template, custom questions) runs on the main thread before
the control loop starts. Once the interview is running, the main thread only
reads commands and posts them as ``UserAction`` messages; everything printed
comes from event handlers on the control thread.
"""
import logging
import threading
from typing import Callable, List, Optional

from .interview.commands import HELP_TEXT, Command, CommandHandler, CommandType
from .interview.controller import RESTART_CONFIRMATION, SessionController
from .interview.dispatch import ControlLoop, UserAction
from .interview.errors import InterviewError
from .interview.events import EventType, InterviewEvent
from .interview.schemas import Action
from .interview.services import Confirmer, Prompter
from .interview.templates import LANGUAGES

logger = logging.getLogger("console")


class ConsolePrompter(Prompter):
    def __init__(self, input_fn: Callable[[str], str] = input):
        self.input_fn = input_fn

    def ask(self, message: str) -> str:
        return self.input_fn(f"{message} ")


class ConsoleConfirmer(Confirmer):
    def __init__(self, input_fn: Callable[[str], str] = input):
        self.input_fn = input_fn

    def confirm(self, message: str) -> bool:
        return self.input_fn(f"{message} [y/N] ").strip().lower() in ("y", "yes")


def choose(options: List[str], title: str, input_fn: Callable[[str], str] = input,
           print_fn: Callable[[str], None] = print) -> int:
    """Numbered menu; returns the chosen index."""
    print_fn(title)
    for number, label in enumerate(options, start=1):
        print_fn(f"  {number}. {label}")
    while True:
        raw = input_fn("> ").strip()
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return int(raw) - 1
        print_fn(f"Please enter a number between 1 and {len(options)}.")


class ConsoleUI:
    """Drives one interview in the terminal."""

    def __init__(self,
                 controller: SessionController,
                 loop: ControlLoop,
                 input_fn: Callable[[str], str] = input,
                 print_fn: Callable[[str], None] = print):
        self.controller = controller
        self.loop = loop
        self.input_fn = input_fn
        self.print_fn = print_fn
        self.confirmer = ConsoleConfirmer(input_fn)
        self.commands = CommandHandler()
        self._register_commands()
        self._quit = False
        controller.event_bus.subscribe_all(self.on_event)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def select_language(self, code: Optional[str] = None) -> None:
        codes = list(LANGUAGES)
        while True:
            if code is None:
                code = codes[choose([LANGUAGES[c] for c in codes], "🌐 Select a language:",
                                    self.input_fn, self.print_fn)]
            try:
                self.controller.select_language(code)
                return
            except InterviewError as e:
                self.print_fn(f"❌ {e}")
                code = None

    def select_template(self, template_id: Optional[str] = None) -> None:
        entries = self.controller.registry.list_templates()
        while True:
            if template_id is None:
                index = choose([entry["name"] for entry in entries], "📋 Select a template:",
                               self.input_fn, self.print_fn)
                template_id = entries[index]["id"]
            try:
                self.controller.select_template(template_id)
                return
            except InterviewError as e:
                self.print_fn(f"❌ {e}")
                template_id = None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _register_commands(self) -> None:
        simple = {
            CommandType.PAUSE: Action.PAUSE,
            CommandType.RESUME: Action.RESUME,
            CommandType.SUBMIT: Action.SUBMIT_ANSWER,
            CommandType.NEXT: Action.ADVANCE,
            CommandType.LISTEN: Action.REPLAY_QUESTION,
            CommandType.EXPORT: Action.EXPORT,
        }
        for cmd_type, action in simple.items():
            self.commands.register(cmd_type, lambda cmd, action=action: self._post(action.value))
        self.commands.register(CommandType.RESTART, self._restart)
        self.commands.register(CommandType.TYPE, self._type)
        self.commands.register(CommandType.HELP, lambda cmd: self.print_fn(HELP_TEXT))
        self.commands.register(CommandType.QUIT, self._quit_command)
        self.commands.register(CommandType.UNKNOWN, lambda cmd: self.print_fn(f"Unknown command {cmd.raw}, try /help"))

    def _post(self, name: str, **kwargs) -> None:
        self.loop.post(UserAction(name, kwargs))

    def _restart(self, cmd: Command) -> None:
        self._post(Action.RESTART.value, confirmed=self.confirmer.confirm(RESTART_CONFIRMATION))

    def _type(self, cmd: Command) -> None:
        if not cmd.args:
            self.print_fn("Usage: /type <text>")
            return
        self._post(Action.TYPE_ANSWER.value, text=cmd.args)

    def _quit_command(self, cmd: Command) -> None:
        self._quit = True

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def on_event(self, event: InterviewEvent) -> None:
        data = event.data
        if event.event_type == EventType.SESSION_STARTED:
            self.print_fn(f"\n🔗 Your unique interview link: {data['share_link']}")
            self.print_fn(f"🎬 {data['template_name']} ({data['question_count']} questions). Type /help for commands.")
        elif event.event_type == EventType.QUESTION_PRESENTED:
            self.print_fn(f"\n❓ Question {data['question_index'] + 1}/{data['question_count']}: {data['question']}")
        elif event.event_type == EventType.LISTENING_STARTED:
            if data["capture_enabled"]:
                self.print_fn(f"🎧 Listening... {data['remaining_seconds']}s (/pause, /submit)")
            else:
                self.print_fn(f"⌨️  Type your answer with /type <text>. {data['remaining_seconds']}s")
        elif event.event_type == EventType.TIMER_UPDATED:
            remaining = data["remaining_seconds"]
            if remaining and (remaining % 10 == 0 or remaining <= 5):
                self.print_fn(f"   ⏱️  {remaining}s left")
        elif event.event_type == EventType.TRANSCRIPT_UPDATED:
            self.print_fn(f"   💬 \"{data['transcript']}\"")
        elif event.event_type == EventType.ANSWER_PAUSED:
            self.print_fn(f"⏸️  Paused at {data['remaining_seconds']}s (/resume, /restart, /submit)")
        elif event.event_type == EventType.ANSWER_RESUMED:
            self.print_fn(f"▶️  Resumed, {data['remaining_seconds']}s left")
        elif event.event_type == EventType.ANSWER_RESTARTED:
            self.print_fn(f"🔄 Answer deleted, starting over with {data['remaining_seconds']}s")
        elif event.event_type == EventType.ANSWER_SUBMITTED:
            prefix = "⏰ Time's up! " if data["timed_out"] else "✅ "
            hint = "/next for the next question" if data["has_next"] else "/next to finish"
            self.print_fn(f"{prefix}Answer saved. {hint}")
        elif event.event_type == EventType.PRESENTATION_CHANGED:
            color = f"#{data['color']:06X}" if data["color"] is not None else "none"
            self.print_fn(f"   🤖 mood: {data['mood']}, color: {color}")
        elif event.event_type == EventType.DEVICE_UNAVAILABLE:
            self.print_fn(f"🎙️  {data['reason']} Answers can still be typed with /type.")
        elif event.event_type == EventType.SESSION_COMPLETED:
            self.print_fn("\n" + data["summary"])
            self.print_fn("💾 Type /export to download your interview, /quit to leave.")
        elif event.event_type == EventType.SESSION_EXPORTED:
            self.print_fn(f"📦 Saved {data['path']}")
        elif event.event_type == EventType.ERROR_OCCURRED:
            retry = " Please try again." if data["retryable"] else ""
            self.print_fn(f"❌ {data['error_message']}{retry}")

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self, language: Optional[str] = None, template_id: Optional[str] = None) -> None:
        self.select_language(language)
        self.select_template(template_id)
        self.controller.start_interview()

        stop = threading.Event()
        control_thread = threading.Thread(target=self.loop.run, args=(stop,), name="control", daemon=True)
        control_thread.start()
        try:
            while not self._quit:
                try:
                    line = self.input_fn("")
                except EOFError:
                    break
                was_command, _ = self.commands.handle_input(line)
                if not was_command and line.strip():
                    self.print_fn("Commands start with /. Try /help")
        except KeyboardInterrupt:
            self.print_fn("\n👋 Interrupted")
        finally:
            stop.set()
            control_thread.join(timeout=2.0)
            self.controller.shutdown()
            logger.info("Console session ended")
