import math
from datetime import datetime, timezone
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from tutor_assessment.core.config import DEFAULT_LANGUAGE_CODE, DEFAULT_SAMPLE_RATE

LanguageLevel = Literal["beginner", "elementary", "intermediate", "upper-intermediate", "advanced", "proficient"]
StrictnessLevel = Literal["lenient", "moderate", "strict"]
Severity = Literal["high", "medium", "low"]
IssueKind = Literal[
    "grammar", "syntax", "vocabulary", "fluency",
    "pronunciation-guide", "suggestion", "encouragement",
]
IssueSource = Literal["rule", "language-model", "heuristic"]

LEVEL_ORDER: tuple = ("beginner", "elementary", "intermediate", "upper-intermediate", "advanced", "proficient")
LEVEL_WEIGHTS: Dict[str, int] = {level: index + 1 for index, level in enumerate(LEVEL_ORDER)}
SEVERITY_RANK: Dict[str, int] = {"high": 3, "medium": 2, "low": 1}

NO_TEXT_FEEDBACK = "No text provided for analysis"


def clamp_score(value) -> float:
    """Clamp a numeric signal into [0, 1]; NaN and None become 0"""
    if value is None:
        return 0.0
    value = float(value)
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


def weight_to_level(weight: float) -> str:
    """Map an average tier weight (1..6) back onto the nearest tier"""
    if weight <= 1.5:
        return "beginner"
    if weight <= 2.5:
        return "elementary"
    if weight <= 3.5:
        return "intermediate"
    if weight <= 4.5:
        return "upper-intermediate"
    if weight <= 5.5:
        return "advanced"
    return "proficient"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Any score or confidence exposed to callers goes through this type
Score = Annotated[float, BeforeValidator(clamp_score)]


class LearnerProfile(BaseModel):
    """What the analyzers need to know about the learner"""
    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    current_level: LanguageLevel = "intermediate"
    target_language: str = DEFAULT_LANGUAGE_CODE
    native_language: Optional[str] = None
    learning_goals: List[str] = Field(default_factory=list)


class ConversationContext(BaseModel):
    """Conversation state supplied by the caller for one turn"""
    model_config = ConfigDict(frozen=True)

    session_id: Optional[str] = None
    user_id: Optional[str] = None
    current_topic: Optional[str] = None
    user_profile: Optional[LearnerProfile] = None

    @property
    def learner_level(self) -> str:
        if self.user_profile is None:
            return "intermediate"
        return self.user_profile.current_level

    @property
    def topic(self) -> str:
        return self.current_topic or "general conversation"


class Utterance(BaseModel):
    """One learner turn submitted for assessment"""
    model_config = ConfigDict(frozen=True)

    text: str
    audio: Optional[bytes] = None
    language_code: str = DEFAULT_LANGUAGE_CODE
    sample_rate: int = Field(default=DEFAULT_SAMPLE_RATE, gt=0)
    context: ConversationContext = Field(default_factory=ConversationContext)


class Span(BaseModel):
    """Character offsets into the original utterance"""
    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def check_order(self):
        if self.end < self.start:
            raise ValueError("span end must not precede start")
        return self

    def fits(self, text: str) -> bool:
        return self.end <= len(text)


class DetectedIssue(BaseModel):
    """A grammar/vocabulary error, pronunciation guide, suggestion or encouragement"""
    kind: IssueKind
    severity: Optional[Severity] = None
    description: str
    span: Optional[Span] = None
    suggestion: str = ""
    confidence: Score = 0.7
    source: IssueSource = "rule"
    rule_id: Optional[str] = None


def rank_issues(issues: List[DetectedIssue]) -> List[DetectedIssue]:
    """Order by confidence, then severity, then position; the sort is stable"""
    return sorted(
        issues,
        key=lambda issue: (
            -issue.confidence,
            -SEVERITY_RANK.get(issue.severity or "", 0),
            issue.span.start if issue.span else 0,
        ),
    )
