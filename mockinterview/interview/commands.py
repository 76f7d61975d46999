"""
Command parser and handler for the console interview.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple


class CommandType(Enum):
    """Types of commands available."""
    PAUSE = "pause"
    RESUME = "resume"
    RESTART = "restart"
    SUBMIT = "submit"
    NEXT = "next"
    LISTEN = "listen"
    TYPE = "type"
    EXPORT = "export"
    HELP = "help"
    QUIT = "quit"
    UNKNOWN = "unknown"


@dataclass
class Command:
    """Parsed command with type and arguments."""
    type: CommandType
    args: str = ""
    raw: str = ""


HELP_TEXT = """Commands:
  /pause          pause the answer (timer stops)
  /resume         continue a paused answer
  /restart        delete the paused answer and start over
  /submit         finish this answer
  /next           go to the next question
  /listen         hear the question again
  /type <text>    add typed text to the answer
  /export         save the interview archive
  /quit           leave"""


class CommandHandler:
    """Parse and dispatch commands."""

    ALIASES = {
        "/p": CommandType.PAUSE,
        "/pause": CommandType.PAUSE,
        "/r": CommandType.RESUME,
        "/resume": CommandType.RESUME,
        "/restart": CommandType.RESTART,
        "/s": CommandType.SUBMIT,
        "/submit": CommandType.SUBMIT,
        "/n": CommandType.NEXT,
        "/next": CommandType.NEXT,
        "/l": CommandType.LISTEN,
        "/listen": CommandType.LISTEN,
        "/t": CommandType.TYPE,
        "/type": CommandType.TYPE,
        "/export": CommandType.EXPORT,
        "/download": CommandType.EXPORT,
        "/h": CommandType.HELP,
        "/help": CommandType.HELP,
        "/q": CommandType.QUIT,
        "/quit": CommandType.QUIT,
    }

    def __init__(self):
        self._handlers: Dict[CommandType, Callable[[Command], Any]] = {}

    def register(self, cmd_type: CommandType, handler: Callable[[Command], Any]) -> None:
        """Register a handler for a command type."""
        self._handlers[cmd_type] = handler

    def parse(self, input_str: str) -> Optional[Command]:
        """Parse input string into a command. Returns None if not a command."""
        input_str = input_str.strip()

        if not input_str.startswith("/"):
            return None

        parts = input_str.split(maxsplit=1)
        cmd_str = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""

        cmd_type = self.ALIASES.get(cmd_str, CommandType.UNKNOWN)

        return Command(type=cmd_type, args=args, raw=input_str)

    def execute(self, cmd: Command) -> Any:
        """Execute a command. Returns the handler's result."""
        handler = self._handlers.get(cmd.type)
        if handler:
            return handler(cmd)
        return None

    def handle_input(self, input_str: str) -> Tuple[bool, Any]:
        """
        Handle user input. Returns (was_command, result).
        If not a command, returns (False, None).
        """
        cmd = self.parse(input_str)
        if cmd is None:
            return (False, None)

        result = self.execute(cmd)
        return (True, result)
