from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tutor_assessment.core.config import DEFAULT_LANGUAGE_CODE
from tutor_assessment.models.analysis_model import (
    ConversationContext,
    DetectedIssue,
    Score,
    Severity,
    Span,
    StrictnessLevel,
    utc_now,
)

GrammarFocusArea = Literal["grammar", "syntax", "vocabulary", "fluency"]


class GrammarAnalysisConfig(BaseModel):
    """Per-call configuration for grammar analysis"""
    language_code: str = DEFAULT_LANGUAGE_CODE
    enable_contextual_analysis: bool = True
    strictness_level: StrictnessLevel = "moderate"
    focus_areas: List[GrammarFocusArea] = Field(default_factory=lambda: ["grammar", "syntax"])
    severity_penalties: Dict[Severity, float] = Field(
        default_factory=lambda: {"high": 0.15, "medium": 0.08, "low": 0.03}
    )
    strictness_multipliers: Dict[StrictnessLevel, float] = Field(
        default_factory=lambda: {"lenient": 0.75, "moderate": 1.0, "strict": 1.25}
    )
    max_errors: Dict[StrictnessLevel, int] = Field(
        default_factory=lambda: {"lenient": 5, "moderate": 7, "strict": 10}
    )

    @field_validator("severity_penalties", "strictness_multipliers")
    @classmethod
    def non_negative(cls, value):
        if any(weight < 0 for weight in value.values()):
            raise ValueError("penalty weights must not be negative")
        return value

    @field_validator("max_errors")
    @classmethod
    def positive_ceiling(cls, value):
        if any(limit < 1 for limit in value.values()):
            raise ValueError("error ceilings must be at least 1")
        return value


class ImprovementSuggestion(BaseModel):
    """Model for a single improvement suggestion"""
    category: str
    original: str
    suggested: str
    explanation: str
    confidence: Score = 0.7


class GrammarResult(BaseModel):
    """Result of analyzing one utterance for grammar"""
    grammar_score: Score
    fluency_score: Score
    vocabulary_score: Score
    pronunciation_score: Score = 0.0
    errors: List[DetectedIssue] = Field(default_factory=list)
    suggestions: List[ImprovementSuggestion] = Field(default_factory=list)
    feedback: List[str] = Field(default_factory=list)
    confidence: Score
    degraded_sources: List[str] = Field(default_factory=list)
    analysis_timestamp: datetime = Field(default_factory=utc_now)


class LanguageModelGrammarError(BaseModel):
    """One error as reported by the language model critique"""
    type: Literal["grammar", "vocabulary", "syntax", "fluency"]
    description: str
    severity: Severity
    position: Optional[Span] = None
    suggestion: str = ""


class GrammarCritique(BaseModel):
    """Strict schema for the grammar critique payload"""
    model_config = ConfigDict(populate_by_name=True)

    errors: List[LanguageModelGrammarError]
    fluency_score: float = Field(alias="fluencyScore", ge=0, le=1)
    vocabulary_score: float = Field(alias="vocabularyScore", ge=0, le=1)
    contextual_feedback: List[str] = Field(default_factory=list, alias="contextualFeedback")


class GrammarRequest(BaseModel):
    """Request model for grammar analysis"""
    transcript: str
    context: ConversationContext = Field(default_factory=ConversationContext)
    config: GrammarAnalysisConfig = Field(default_factory=GrammarAnalysisConfig)
