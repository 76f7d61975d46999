"""End-to-end sessions driven through the control loop."""
import json
import os
import zipfile

from mockinterview.interview.dispatch import UserAction
from mockinterview.interview.events import EventType
from mockinterview.interview.schemas import ControllerState, Phase
from mockinterview.interview.testing import create_mock_interview_setup

from helpers import EventRecorder, answer, begin, next_question

SESSION_ID = "user_1700000000000_abc123xyz"


def test_personal_interview_from_start_to_export(setup, events, tmp_path):
    controller = setup["controller"]
    begin(setup)

    answer(setup, "My name is Asha", media=b"video-1")
    next_question(setup)
    answer(setup, "Twenty eight")
    next_question(setup)

    setup["transcriber"].hear("Pretty good")
    setup["loop"].drain()
    controller.pause()
    controller.resume()
    answer(setup, "thanks", media=b"video-3b")
    next_question(setup)

    # Question 4 is skipped without a word
    answer(setup)
    next_question(setup)

    setup["transcriber"].hear("Reading and hiking")
    setup["ticker"].tick(30)
    setup["loop"].drain()
    next_question(setup)

    assert controller.state == ControllerState.COMPLETED
    assert [a.question_index for a in controller.session.answers] == [0, 1, 2, 3, 4]
    assert setup["synthesizer"].spoken_texts == [
        "What is your name?",
        "What is your age?",
        "How are you feeling today?",
        "What's your favorite color?",
        "Tell me about your hobbies.",
    ]

    summary = controller.summarize()
    assert summary.startswith(f"Summary of Your Personal Interview\nInterview ID: {SESSION_ID}\n")
    assert "What's your favorite color?\nNo answer provided\n" in summary
    assert "How are you feeling today?\nPretty good thanks\n" in summary

    path = controller.export(str(tmp_path / "out"))
    assert os.path.basename(path) == f"{SESSION_ID}_interview.zip"
    assert controller.state == ControllerState.EXPORTED

    with zipfile.ZipFile(path) as archive:
        names = set(archive.namelist())
        root = f"{SESSION_ID}/answers"
        assert f"{root}/Question_1/answer_video.webm" in names
        assert f"{root}/Question_2/answer_video.webm" not in names
        assert f"{root}/Question_3/answer_video.webm" in names
        assert archive.read(f"{root}/Question_4/answer_text.txt").decode() == "No answer provided"
        assert archive.read(f"{root}/Question_5/answer_text.txt").decode() == "Reading and hiking"
        assert archive.read(f"{root}/Question_1/answer_video.webm") == b"video-1"
        info = json.loads(archive.read(f"{SESSION_ID}/interview_info.json"))
        assert info["templateName"] == "Personal Interview"
        assert info["interviewId"] == SESSION_ID
        assert info["language"] == "en"
        assert len(info["templateQuestions"]) == 5

    metrics = controller.metrics.get_metrics()
    assert metrics["answers_submitted"] == 5
    assert metrics["answers_timed_out"] == 1
    assert metrics["pauses"] == 1
    assert metrics["sessions_exported"] == 1
    assert events.types()[-1] == EventType.SESSION_EXPORTED

    # Exporting again overwrites the same archive
    assert controller.export(str(tmp_path / "out")) == path


def test_personal_interview_with_timeout_and_restart(setup, events, tmp_path):
    controller = setup["controller"]
    loop = setup["loop"]
    begin(setup)

    answer(setup, "My name is Asha", media=b"q1-video")
    next_question(setup)

    # Question 2 runs out of time without a word
    setup["ticker"].tick(30)
    loop.drain()
    assert controller.phase == Phase.AWAITING_NEXT
    next_question(setup)

    answer(setup, "Pretty good", media=b"q3-video")
    next_question(setup)
    answer(setup, "Blue")
    next_question(setup)

    setup["transcriber"].hear("I like to")
    setup["recorder"].feed(b"first-take")
    loop.drain()
    controller.pause()
    loop.drain()
    assert controller.restart(confirmed=True) is True
    loop.drain()
    answer(setup, "Reading and hiking", media=b"second-take")
    next_question(setup)

    assert controller.state == ControllerState.COMPLETED
    answers = controller.session.answers
    assert [a.question_index for a in answers] == [0, 1, 2, 3, 4]
    assert answers[1].transcript == ""
    assert answers[4].transcript == "Reading and hiking"
    assert [m.data for m in answers[4].media] == [b"second-take"]
    assert len(events.of_type(EventType.ANSWER_RESTARTED)) == 1

    path = controller.export(str(tmp_path / "out"))
    with zipfile.ZipFile(path) as archive:
        root = f"{SESSION_ID}/answers/"
        entries = {name[len(root):].split("/")[0] for name in archive.namelist() if name.startswith(root)}
        assert entries == {f"Question_{n}" for n in range(1, 6)} | {"summary.txt"}
        assert archive.read(f"{root}Question_2/answer_text.txt").decode() == "No answer provided"
        assert f"{root}Question_2/answer_video.webm" not in archive.namelist()
        assert archive.read(f"{root}Question_5/answer_text.txt").decode() == "Reading and hiking"
        assert archive.read(f"{root}Question_5/answer_video.webm") == b"second-take"
        summary = archive.read(f"{root}summary.txt").decode()
        assert "What is your age?\nNo answer provided\n" in summary
        assert "I like to" not in summary


def test_custom_hindi_interview_driven_by_user_actions(tmp_path):
    setup = create_mock_interview_setup(
        export_dir=str(tmp_path / "exports"),
        prompter_replies=["2", "आपका नाम?", "आप कहाँ रहते हैं?"],
    )
    controller = setup["controller"]
    loop = setup["loop"]
    events = EventRecorder(controller.event_bus)

    loop.post(UserAction("select_language", {"code": "hi"}))
    loop.post(UserAction("select_template", {"template_id": "custom"}))
    loop.post(UserAction("start_interview"))
    loop.drain()
    assert setup["transcriber"].started == [(1, "hi-IN")]

    setup["transcriber"].hear("आशा")
    loop.post(UserAction("submit_answer"))
    loop.post(UserAction("advance"))
    loop.drain()
    loop.post(UserAction("type_answer", {"text": "दिल्ली"}))
    loop.post(UserAction("submit_answer"))
    loop.post(UserAction("advance"))
    loop.drain()
    loop.post(UserAction("export"))
    loop.drain()

    assert controller.state == ControllerState.EXPORTED
    assert events.of_type(EventType.ERROR_OCCURRED) == []
    path = events.of_type(EventType.SESSION_EXPORTED)[0].data["path"]
    with zipfile.ZipFile(path) as archive:
        info = json.loads(archive.read(f"{SESSION_ID}/interview_info.json"))
        assert info["templateName"] == "Custom Template"
        assert info["language"] == "hi"
        assert info["templateQuestions"] == ["आपका नाम?", "आप कहाँ रहते हैं?"]
        text = archive.read(f"{SESSION_ID}/answers/Question_2/answer_text.txt").decode("utf-8")
        assert text == "दिल्ली"


def test_zero_question_custom_template_never_starts(tmp_path):
    setup = create_mock_interview_setup(export_dir=str(tmp_path / "exports"), prompter_replies=["0"])
    controller = setup["controller"]
    events = EventRecorder(controller.event_bus)
    loop = setup["loop"]
    loop.post(UserAction("select_language", {"code": "en"}))
    loop.post(UserAction("select_template", {"template_id": "custom"}))
    loop.post(UserAction("start_interview"))
    loop.drain()

    assert controller.session is None
    assert controller.state == ControllerState.LANGUAGE_SELECTED
    errors = [e.data["error_type"] for e in events.of_type(EventType.ERROR_OCCURRED)]
    assert errors == ["ValidationError", "InvalidTransition"]
