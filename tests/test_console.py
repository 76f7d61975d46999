from mockinterview.console import ConsoleConfirmer, ConsoleUI, choose
from mockinterview.interview.controller import RESTART_CONFIRMATION
from mockinterview.interview.schemas import ControllerState, Phase

from helpers import begin


def scripted(*replies):
    replies = list(replies)
    prompts = []

    def input_fn(prompt):
        prompts.append(prompt)
        return replies.pop(0)

    input_fn.prompts = prompts
    return input_fn


def test_choose_retries_until_valid():
    printed = []
    index = choose(["English", "Hindi"], "Pick", scripted("0", "x", "2"), printed.append)
    assert index == 1
    assert printed.count("Please enter a number between 1 and 2.") == 2


def test_confirmer():
    input_fn = scripted("Y", "")
    confirmer = ConsoleConfirmer(input_fn)
    assert confirmer.confirm(RESTART_CONFIRMATION) is True
    assert confirmer.confirm(RESTART_CONFIRMATION) is False
    assert input_fn.prompts[0].startswith(RESTART_CONFIRMATION)


def test_menus_select_language_and_template(setup):
    printed = []
    ui = ConsoleUI(setup["controller"], setup["loop"], scripted("2", "1"), printed.append)
    ui.select_language()
    ui.select_template()
    controller = setup["controller"]
    assert controller.language == "hi"
    assert controller.template.name == "Personal Interview"
    assert controller.state == ControllerState.TEMPLATE_SELECTED


def test_commands_become_user_actions(setup):
    printed = []
    ui = ConsoleUI(setup["controller"], setup["loop"], scripted("y"), printed.append)
    begin(setup)
    controller = setup["controller"]
    loop = setup["loop"]

    ui.commands.handle_input("/type hello there")
    ui.commands.handle_input("/p")
    loop.drain()
    assert controller.phase == Phase.PAUSED

    ui.commands.handle_input("/restart")
    loop.drain()
    assert controller.phase == Phase.LISTENING
    assert controller.session.current_answer.transcript == ""
    assert any("starting over" in line for line in printed)

    ui.commands.handle_input("/s")
    ui.commands.handle_input("/next")
    loop.drain()
    assert controller.session.question_index == 1


def test_rejected_command_is_printed(setup):
    printed = []
    ui = ConsoleUI(setup["controller"], setup["loop"], scripted(), printed.append)
    begin(setup)
    ui.commands.handle_input("/next")
    ui.commands.handle_input("/type")
    ui.commands.handle_input("/dance")
    setup["loop"].drain()
    assert any(line.startswith("❌ 'advance' is not allowed") for line in printed)
    assert "Usage: /type <text>" in printed
    assert "Unknown command /dance, try /help" in printed
