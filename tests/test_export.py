import io
import json
import zipfile
from datetime import datetime, timedelta, timezone

import pytest

from mockinterview.interview.errors import ExportFailure, InvalidTransition
from mockinterview.interview.export import ExportComposer, answer_text, format_timestamp, video_names
from mockinterview.interview.models import Answer, MediaArtifact, Session
from mockinterview.interview.schemas import ControllerState
from mockinterview.interview.templates import TemplateRegistry
from mockinterview.interview.testing import create_mock_interview_setup

from helpers import answer, begin, next_question

FIXED_NOW = datetime(2024, 3, 5, 9, 30, 15, 123456, tzinfo=timezone.utc)


@pytest.fixture
def composer():
    return ExportComposer(clock=lambda: FIXED_NOW)


@pytest.fixture
def session():
    template = TemplateRegistry().build_custom("en", ["First?", "Second?", "Third?"])
    first = Answer(question_index=0, transcript="One")
    first.attach_media(MediaArtifact(segment_id=1, data=b"aaa"))
    first.attach_media(MediaArtifact(segment_id=2, data=b"bbb"))
    first.attach_media(MediaArtifact(segment_id=3, data=b"ccc"))
    second = Answer(question_index=1)
    return Session(session_id="user_1_abcdefghi", template=template, language="en",
                   answers=[first, second])


def read_archive(content):
    return zipfile.ZipFile(io.BytesIO(content))


def test_format_timestamp():
    assert format_timestamp(FIXED_NOW) == "2024-03-05T09:30:15.123Z"
    ist = timezone(timedelta(hours=5, minutes=30))
    assert format_timestamp(datetime(2024, 3, 5, 15, 0, 0, tzinfo=ist)) == "2024-03-05T09:30:00.000Z"


@pytest.mark.parametrize("count, expected", [
    (0, []),
    (1, ["answer_video.webm"]),
    (3, ["answer_video.webm", "answer_video_part2.webm", "answer_video_part3.webm"]),
])
def test_video_names(count, expected):
    assert video_names(count) == expected


def test_answer_text():
    assert answer_text(None) == "No answer provided"
    assert answer_text(Answer(question_index=0)) == "No answer provided"
    assert answer_text(Answer(question_index=0, transcript="yes")) == "yes"


def test_archive_layout(composer, session):
    with read_archive(composer.compose(session)) as archive:
        root = "user_1_abcdefghi"
        assert sorted(archive.namelist()) == sorted([
            f"{root}/interview_info.json",
            f"{root}/answers/summary.txt",
            f"{root}/answers/Question_1/question.txt",
            f"{root}/answers/Question_1/answer_text.txt",
            f"{root}/answers/Question_1/answer_video.webm",
            f"{root}/answers/Question_1/answer_video_part2.webm",
            f"{root}/answers/Question_1/answer_video_part3.webm",
            f"{root}/answers/Question_2/question.txt",
            f"{root}/answers/Question_2/answer_text.txt",
            f"{root}/answers/Question_3/question.txt",
            f"{root}/answers/Question_3/answer_text.txt",
        ])
        assert archive.read(f"{root}/answers/Question_1/answer_video_part3.webm") == b"ccc"
        assert archive.read(f"{root}/answers/Question_3/answer_text.txt") == b"No answer provided"
        assert archive.getinfo(f"{root}/interview_info.json").compress_type == zipfile.ZIP_DEFLATED


def test_interview_info(composer, session):
    with read_archive(composer.compose(session)) as archive:
        info = json.loads(archive.read("user_1_abcdefghi/interview_info.json"))
    assert info == {
        "templateName": "Custom Template",
        "interviewId": "user_1_abcdefghi",
        "timestamp": "2024-03-05T09:30:15.123Z",
        "templateQuestions": ["First?", "Second?", "Third?"],
        "language": "en",
    }


def test_summary_text(composer, session):
    assert composer.render_summary(session) == (
        "Summary of Your Custom Template\n"
        "Interview ID: user_1_abcdefghi\n"
        "\nFirst?\nOne\n"
        "\nSecond?\nNo answer provided\n"
        "\nThird?\nNo answer provided\n"
    )


def test_invalid_session_is_an_export_failure(composer, session):
    session.session_id = ""
    with pytest.raises(ExportFailure) as excinfo:
        composer.compose(session)
    assert excinfo.value.retryable


def test_export_writes_atomically(composer, session, tmp_path):
    path = composer.export(session, str(tmp_path / "nested" / "dir"))
    assert path.endswith("user_1_abcdefghi_interview.zip")
    leftovers = [p.name for p in (tmp_path / "nested" / "dir").iterdir()]
    assert leftovers == ["user_1_abcdefghi_interview.zip"]


def test_unwritable_target_is_retryable(tmp_path):
    setup = create_mock_interview_setup(export_dir=str(tmp_path / "exports"))
    controller = setup["controller"]
    begin(setup, template="custom", question_texts=["Only?"])
    with pytest.raises(InvalidTransition):
        controller.export()
    answer(setup, "yes")
    next_question(setup)

    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    with pytest.raises(ExportFailure):
        controller.export(str(blocker))
    assert controller.state == ControllerState.COMPLETED
    assert controller.session.answers[0].transcript == "yes"

    path = controller.export()
    assert path.startswith(str(tmp_path / "exports"))
    assert controller.state == ControllerState.EXPORTED
