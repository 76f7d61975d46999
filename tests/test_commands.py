import pytest

from mockinterview.interview.commands import CommandHandler, CommandType


@pytest.fixture
def handler():
    return CommandHandler()


@pytest.mark.parametrize("raw, cmd_type", [
    ("/p", CommandType.PAUSE),
    ("/RESUME", CommandType.RESUME),
    ("/restart", CommandType.RESTART),
    ("  /s  ", CommandType.SUBMIT),
    ("/next", CommandType.NEXT),
    ("/l", CommandType.LISTEN),
    ("/download", CommandType.EXPORT),
    ("/q", CommandType.QUIT),
    ("/dance", CommandType.UNKNOWN),
])
def test_parse(handler, raw, cmd_type):
    assert handler.parse(raw).type == cmd_type


def test_type_keeps_arguments(handler):
    command = handler.parse("/type I grew up in Pune")
    assert command.type == CommandType.TYPE
    assert command.args == "I grew up in Pune"


def test_plain_text_is_not_a_command(handler):
    assert handler.parse("hello") is None
    assert handler.handle_input("hello") == (False, None)


def test_execute_registered_handler(handler):
    handler.register(CommandType.PAUSE, lambda cmd: "paused")
    assert handler.handle_input("/pause") == (True, "paused")
    assert handler.handle_input("/resume") == (True, None)
