"""
Data models for the interview system.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, List

from .errors import AnswerLockedError, NotFound


@dataclass
class InterviewTemplate:
    """Named question set indexed by language code."""
    template_id: str
    name: str
    questions: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def languages(self) -> List[str]:
        return list(self.questions.keys())

    def questions_for(self, language: str) -> List[str]:
        """Ordered questions for a language."""
        if language not in self.questions:
            raise NotFound(f"Template '{self.name}' has no questions for language '{language}'")
        return list(self.questions[language])


@dataclass(frozen=True)
class MediaArtifact:
    """Assembled recording of one segment."""
    segment_id: int
    data: bytes
    mime_type: str = "audio/webm"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class Answer:
    """Represents the answer to a single question."""
    question_index: int
    transcript: str = ""
    media: List[MediaArtifact] = field(default_factory=list)
    finalized: bool = False
    locked: bool = False

    @property
    def has_media(self) -> bool:
        return bool(self.media)

    def _check_unlocked(self) -> None:
        if self.locked:
            raise AnswerLockedError(f"Answer {self.question_index} is locked")

    def append_fragment(self, fragment: str) -> str:
        """Append the latest utterance to the transcript."""
        self._check_unlocked()
        self.transcript = f"{self.transcript} {fragment}".strip()
        return self.transcript

    def attach_media(self, artifact: MediaArtifact) -> None:
        self._check_unlocked()
        self.media.append(artifact)

    def clear(self) -> None:
        """Drop transcript and recordings (restart)."""
        self._check_unlocked()
        self.transcript = ""
        self.media = []
        self.finalized = False

    def finalize(self) -> None:
        self._check_unlocked()
        self.finalized = True

    def lock(self) -> None:
        self.finalized = True
        self.locked = True


@dataclass
class Session:
    """One run through a template's questions."""
    session_id: str
    template: InterviewTemplate
    language: str
    answers: List[Answer] = field(default_factory=list)
    question_index: int = 0
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def questions(self) -> List[str]:
        return self.template.questions_for(self.language)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> str:
        return self.questions[self.question_index]

    @property
    def current_answer(self) -> Answer:
        return self.answers[self.question_index]

    def has_next_question(self) -> bool:
        return self.question_index + 1 < self.question_count


@dataclass(frozen=True)
class PresentationSignal:
    """Mood/color side channel for the avatar renderer."""
    mood: str = "neutral"
    color: Optional[int] = None
