"""
Interview templates: built-in question sets and ad hoc custom templates.
"""
import logging
from typing import Dict, Iterable, List, Optional

from .errors import NotFound, RegistryFrozenError, ValidationError
from .models import InterviewTemplate
from ..config import DEFAULT_LANGUAGE_TAG, LANGUAGE_TAGS

logger = logging.getLogger("templates")

LANGUAGES: Dict[str, str] = {
    "en": "English",
    "hi": "Hindi",
}

CUSTOM_TEMPLATE_ID = "custom"
CUSTOM_TEMPLATE_NAME = "Custom Template"

BUILTIN_TEMPLATES: List[InterviewTemplate] = [
    InterviewTemplate(
        template_id="personal",
        name="Personal Interview",
        questions={
            "en": [
                "What is your name?",
                "What is your age?",
                "How are you feeling today?",
                "What's your favorite color?",
                "Tell me about your hobbies.",
            ],
            "hi": [
                "आपका नाम क्या है?",
                "आपकी उम्र क्या है?",
                "आज आप कैसा महसूस कर रहे हैं?",
                "आपका पसंदीदा रंग क्या है?",
                "अपने शौक के बारे में बताएं।",
            ],
        },
    ),
    InterviewTemplate(
        template_id="professional",
        name="Professional Interview",
        questions={
            "en": [
                "What is your professional background?",
                "Describe your ideal work environment",
                "What are your career goals?",
                "What's your greatest professional achievement?",
                "How do you handle workplace challenges?",
            ],
            "hi": [
                "आपका पेशेवर पृष्ठभूमि क्या है?",
                "अपने आदर्श कार्य वातावरण का वर्णन करें",
                "आपके करियर के लक्ष्य क्या हैं?",
                "आपकी सबसे बड़ी पेशेवर उपलब्धि क्या है?",
                "आप कार्यस्थल की चुनौतियों को कैसे संभालते हैं?",
            ],
        },
    ),
    InterviewTemplate(
        template_id="educational",
        name="Educational Interview",
        questions={
            "en": [
                "What is your educational background?",
                "What subjects interest you most?",
                "Describe your learning style",
                "What are your academic goals?",
                "How do you approach studying?",
            ],
            "hi": [
                "आपकी शैक्षिक पृष्ठभूमि क्या है?",
                "आपको सबसे अधिक रुचि वाले विषय क्या हैं?",
                "अपनी सीखने की शैली का वर्णन करें",
                "आपके शैक्षिक लक्ष्य क्या हैं?",
                "आप अध्ययन के लिए कैसे तैयारी करते हैं?",
            ],
        },
    ),
]


def get_language_name(code: str) -> str:
    """Display name for a language code."""
    return LANGUAGES.get(code, code.upper())


def language_tag_for(code: str) -> str:
    """Locale tag for synthesis and recognition (Hindi locale, else English)."""
    return LANGUAGE_TAGS.get(code, DEFAULT_LANGUAGE_TAG)


def parse_question_count(raw: Optional[str]) -> int:
    """Parse the number of custom questions entered by the user."""
    text = (raw or "").strip()
    try:
        count = int(text)
    except ValueError:
        raise ValidationError(f"Question count must be a whole number, got {text!r}")
    if count <= 0:
        raise ValidationError(f"Question count must be positive, got {count}")
    return count


class TemplateRegistry:
    """Holds the named, language-indexed question sets."""

    def __init__(self, templates: Optional[Iterable[InterviewTemplate]] = None):
        self._templates: Dict[str, InterviewTemplate] = {}
        self._frozen = False
        for template in (BUILTIN_TEMPLATES if templates is None else templates):
            self.register(template)
        self._frozen = True
        logger.debug(f"Loaded templates: {list(self._templates)}")

    def register(self, template: InterviewTemplate) -> None:
        """Add a built-in template. Only valid while initializing."""
        if self._frozen:
            raise RegistryFrozenError("Templates can only be registered at initialization")
        if template.template_id == CUSTOM_TEMPLATE_ID:
            raise ValidationError("'custom' is reserved for ad hoc templates")
        lengths = {len(questions) for questions in template.questions.values()}
        if not template.questions or 0 in lengths:
            raise ValidationError(f"Template '{template.template_id}' has no questions")
        if len(lengths) != 1:
            raise ValidationError(
                f"Template '{template.template_id}' has unequal question counts across languages"
            )
        self._templates[template.template_id] = template

    def get(self, template_id: str) -> InterviewTemplate:
        """Return a built-in template by id."""
        try:
            return self._templates[template_id]
        except KeyError:
            raise NotFound(f"Unknown template '{template_id}'")

    def list_templates(self) -> List[Dict[str, str]]:
        """Selectable templates, custom last."""
        entries = [{"id": t.template_id, "name": t.name} for t in self._templates.values()]
        entries.append({"id": CUSTOM_TEMPLATE_ID, "name": CUSTOM_TEMPLATE_NAME})
        return entries

    def build_custom(self, language: str, question_texts: List[str]) -> InterviewTemplate:
        """
        Build a custom template usable only for ``language``.

        Raises:
            ValidationError: No questions, or an empty question
        """
        if not language:
            raise ValidationError("Select a language before creating a custom template")
        if not question_texts:
            raise ValidationError("A custom template needs at least one question")
        cleaned = []
        for number, text in enumerate(question_texts, start=1):
            text = (text or "").strip()
            if not text:
                raise ValidationError(f"Question {number} is empty")
            cleaned.append(text)
        logger.info(f"Built custom template with {len(cleaned)} questions in {language}")
        return InterviewTemplate(
            template_id=CUSTOM_TEMPLATE_ID,
            name=CUSTOM_TEMPLATE_NAME,
            questions={language: cleaned},
        )
