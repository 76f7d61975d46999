import pytest

from mockinterview.interview.testing import create_mock_interview_setup

from helpers import EventRecorder, begin


@pytest.fixture
def setup(tmp_path):
    return create_mock_interview_setup(export_dir=str(tmp_path / "exports"))


@pytest.fixture
def controller(setup):
    return setup["controller"]


@pytest.fixture
def loop(setup):
    return setup["loop"]


@pytest.fixture
def events(controller):
    return EventRecorder(controller.event_bus)


@pytest.fixture
def started(setup):
    begin(setup)
    return setup
