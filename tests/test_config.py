import pytest

from mockinterview.config import ANSWER_SECONDS, EXPORT_DIR, get_config


def test_defaults(monkeypatch):
    for name in ("INTERVIEW_ANSWER_SECONDS", "INTERVIEW_EXPORT_DIR", "GOOGLE_APPLICATION_CREDENTIALS"):
        monkeypatch.delenv(name, raising=False)
    config = get_config()
    assert config.answer_seconds == ANSWER_SECONDS == 30
    assert config.export_dir == EXPORT_DIR
    assert config.google_application_credentials is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("INTERVIEW_ANSWER_SECONDS", "45")
    monkeypatch.setenv("INTERVIEW_EXPORT_DIR", "/tmp/interviews")
    monkeypatch.setenv("INTERVIEW_SHARE_BASE_URL", "https://interviews.example/")
    config = get_config()
    assert config.answer_seconds == 45
    assert config.export_dir == "/tmp/interviews"
    assert config.share_base_url == "https://interviews.example/"


@pytest.mark.parametrize("raw", ["thirty", "0", "-5"])
def test_invalid_answer_seconds(monkeypatch, raw):
    monkeypatch.setenv("INTERVIEW_ANSWER_SECONDS", raw)
    with pytest.raises(ValueError, match="INTERVIEW_ANSWER_SECONDS"):
        get_config()
