"""
Structured states, transition table and archive schemas for the interview system.
"""
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ControllerState(str, Enum):
    """Top-level controller states."""
    IDLE = "idle"
    LANGUAGE_SELECTED = "language_selected"
    TEMPLATE_SELECTED = "template_selected"
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPORTED = "exported"


class Phase(str, Enum):
    """Phases of the current question while ACTIVE."""
    PRESENTING = "presenting"
    LISTENING = "listening"
    PAUSED = "paused"
    AWAITING_NEXT = "awaiting_next"


class Action(str, Enum):
    """User-facing transitions of the session controller."""
    SELECT_LANGUAGE = "select_language"
    SELECT_TEMPLATE = "select_template"
    START_INTERVIEW = "start_interview"
    PAUSE = "pause"
    RESUME = "resume"
    RESTART = "restart"
    SUBMIT_ANSWER = "submit_answer"
    ADVANCE = "advance"
    REPLAY_QUESTION = "replay_question"
    TYPE_ANSWER = "type_answer"
    SUMMARIZE = "summarize"
    EXPORT = "export"


StatePhase = Tuple[ControllerState, Optional[Phase]]

_ACTIVE_ANY: FrozenSet[StatePhase] = frozenset(
    (ControllerState.ACTIVE, phase) for phase in Phase
)
_FINISHED: FrozenSet[StatePhase] = frozenset({
    (ControllerState.COMPLETED, None),
    (ControllerState.EXPORTED, None),
})

# Where each action may be invoked; anything else is an InvalidTransition
ALLOWED_ACTIONS: Dict[Action, FrozenSet[StatePhase]] = {
    Action.SELECT_LANGUAGE: frozenset({(ControllerState.IDLE, None)}),
    Action.SELECT_TEMPLATE: frozenset({(ControllerState.LANGUAGE_SELECTED, None)}),
    Action.START_INTERVIEW: frozenset({(ControllerState.TEMPLATE_SELECTED, None)}),
    Action.PAUSE: frozenset({(ControllerState.ACTIVE, Phase.LISTENING)}),
    Action.RESUME: frozenset({(ControllerState.ACTIVE, Phase.PAUSED)}),
    Action.RESTART: frozenset({(ControllerState.ACTIVE, Phase.PAUSED)}),
    Action.SUBMIT_ANSWER: frozenset({
        (ControllerState.ACTIVE, Phase.LISTENING),
        (ControllerState.ACTIVE, Phase.PAUSED),
    }),
    Action.ADVANCE: frozenset({(ControllerState.ACTIVE, Phase.AWAITING_NEXT)}),
    Action.REPLAY_QUESTION: _ACTIVE_ANY,
    Action.TYPE_ANSWER: frozenset({(ControllerState.ACTIVE, Phase.LISTENING)}),
    Action.SUMMARIZE: _FINISHED,
    Action.EXPORT: _FINISHED,
}


def is_allowed(action: Action, state: ControllerState, phase: Optional[Phase]) -> bool:
    """Check an action against the transition table."""
    return (state, phase) in ALLOWED_ACTIONS[action]


class InterviewInfo(BaseModel):
    """Content of ``interview_info.json`` in the exported archive."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    template_name: str = Field(..., alias="templateName", min_length=1)
    interview_id: str = Field(..., alias="interviewId", min_length=1)
    timestamp: str
    template_questions: List[str] = Field(..., alias="templateQuestions", min_length=1)
    language: str = Field(..., min_length=1)
