import pytest

from mockinterview.interview.errors import NotFound, RegistryFrozenError, ValidationError
from mockinterview.interview.models import InterviewTemplate
from mockinterview.interview.templates import (
    BUILTIN_TEMPLATES,
    CUSTOM_TEMPLATE_ID,
    TemplateRegistry,
    get_language_name,
    language_tag_for,
    parse_question_count,
)


def test_builtins_have_five_questions_in_every_language():
    registry = TemplateRegistry()
    for template_id in ("personal", "professional", "educational"):
        template = registry.get(template_id)
        assert set(template.languages) == {"en", "hi"}
        assert len(template.questions_for("en")) == 5
        assert len(template.questions_for("hi")) == 5


def test_personal_template_questions():
    template = TemplateRegistry().get("personal")
    assert template.name == "Personal Interview"
    assert template.questions_for("en")[0] == "What is your name?"
    assert template.questions_for("en")[-1] == "Tell me about your hobbies."


def test_get_unknown_template():
    with pytest.raises(NotFound):
        TemplateRegistry().get("astronaut")


def test_list_templates_ends_with_custom():
    entries = TemplateRegistry().list_templates()
    assert [e["id"] for e in entries] == ["personal", "professional", "educational", "custom"]
    assert entries[-1]["name"] == "Custom Template"


def test_registry_is_frozen_after_init():
    registry = TemplateRegistry()
    with pytest.raises(RegistryFrozenError):
        registry.register(InterviewTemplate("extra", "Extra", {"en": ["Why?"]}))


def test_register_rejects_unequal_languages():
    uneven = InterviewTemplate("uneven", "Uneven", {"en": ["a", "b"], "hi": ["a"]})
    with pytest.raises(ValidationError):
        TemplateRegistry([uneven])


def test_register_rejects_reserved_custom_id():
    with pytest.raises(ValidationError):
        TemplateRegistry([InterviewTemplate(CUSTOM_TEMPLATE_ID, "Mine", {"en": ["a"]})])


def test_custom_registry_contents():
    registry = TemplateRegistry([BUILTIN_TEMPLATES[0]])
    assert [e["id"] for e in registry.list_templates()] == ["personal", "custom"]


class TestBuildCustom:
    def test_populates_only_selected_language(self):
        template = TemplateRegistry().build_custom("hi", ["  पहला?  ", "दूसरा?"])
        assert template.template_id == "custom"
        assert template.name == "Custom Template"
        assert template.questions == {"hi": ["पहला?", "दूसरा?"]}
        with pytest.raises(NotFound):
            template.questions_for("en")

    def test_empty_list(self):
        with pytest.raises(ValidationError):
            TemplateRegistry().build_custom("en", [])

    def test_blank_entry(self):
        with pytest.raises(ValidationError, match="Question 2"):
            TemplateRegistry().build_custom("en", ["One?", "   ", "Three?"])

    def test_requires_language(self):
        with pytest.raises(ValidationError):
            TemplateRegistry().build_custom("", ["One?"])


@pytest.mark.parametrize("raw, expected", [("3", 3), (" 12 ", 12)])
def test_parse_question_count(raw, expected):
    assert parse_question_count(raw) == expected


@pytest.mark.parametrize("raw", ["0", "-2", "three", "", None, "2.5"])
def test_parse_question_count_rejects(raw):
    with pytest.raises(ValidationError):
        parse_question_count(raw)


def test_language_helpers():
    assert language_tag_for("hi") == "hi-IN"
    assert language_tag_for("en") == "en-US"
    assert get_language_name("hi") == "Hindi"
    assert get_language_name("fr") == "FR"
