from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tutor_assessment.core.config import DEFAULT_LANGUAGE_CODE
from tutor_assessment.models.analysis_model import (
    ConversationContext,
    LanguageLevel,
    Score,
    Span,
    utc_now,
)
from tutor_assessment.models.syntax_model import DetectedEntity, DetectedKeyPhrase

VocabularyFocusArea = Literal["academic", "business", "casual", "technical", "creative"]
SuggestionType = Literal["synonym", "simpler", "more-advanced", "context-appropriate"]


class VocabularyAnalysisConfig(BaseModel):
    """Per-call configuration for vocabulary analysis"""
    language_code: str = DEFAULT_LANGUAGE_CODE
    target_level: LanguageLevel = "intermediate"
    include_entity_analysis: bool = True
    include_synonym_suggestions: bool = True
    include_complexity_analysis: bool = True
    enable_contextual_analysis: bool = True
    focus_areas: List[VocabularyFocusArea] = Field(default_factory=list)
    score_weights: Dict[Literal["complexity", "diversity", "appropriateness"], float] = Field(
        default_factory=lambda: {"complexity": 0.4, "diversity": 0.3, "appropriateness": 0.3}
    )
    max_suggestions: int = Field(default=5, ge=1)

    @field_validator("score_weights")
    @classmethod
    def usable_weights(cls, value):
        if any(weight < 0 for weight in value.values()):
            raise ValueError("score weights must not be negative")
        if sum(value.values()) <= 0:
            raise ValueError("score weights must not all be zero")
        return value


class VocabularySuggestion(BaseModel):
    """Model for vocabulary suggestions"""
    type: SuggestionType
    original: str
    suggested: List[str]
    explanation: str
    confidence: Score = 0.7
    position: Optional[Span] = None


class VocabularyAlternative(BaseModel):
    original: str
    alternatives: List[str]
    context: str
    difficulty: LanguageLevel
    appropriateness: Score


class VocabularyResult(BaseModel):
    """Result of analyzing one utterance for vocabulary"""
    vocabulary_score: Score
    complexity_level: LanguageLevel = "beginner"
    diversity_score: Score = 0.0
    appropriateness_score: Score = 0.0
    entities: List[DetectedEntity] = Field(default_factory=list)
    key_phrases: List[DetectedKeyPhrase] = Field(default_factory=list)
    suggestions: List[VocabularySuggestion] = Field(default_factory=list)
    alternatives: List[VocabularyAlternative] = Field(default_factory=list)
    feedback: List[str] = Field(default_factory=list)
    confidence: Score
    degraded_sources: List[str] = Field(default_factory=list)
    analysis_timestamp: datetime = Field(default_factory=utc_now)


class LanguageModelVocabularySuggestion(BaseModel):
    type: SuggestionType
    original: str
    suggested: List[str]
    explanation: str = ""
    confidence: float = Field(default=0.7, ge=0, le=1)
    position: Optional[Span] = None


class VocabularyCritique(BaseModel):
    """Strict schema for the vocabulary critique payload"""
    model_config = ConfigDict(populate_by_name=True)

    vocabulary_score: float = Field(alias="vocabularyScore", ge=0, le=1)
    suggestions: List[LanguageModelVocabularySuggestion] = Field(default_factory=list)
    contextual_feedback: List[str] = Field(default_factory=list, alias="contextualFeedback")


class VocabularyRequest(BaseModel):
    """Request model for vocabulary analysis"""
    transcript: str
    context: ConversationContext = Field(default_factory=ConversationContext)
    config: VocabularyAnalysisConfig = Field(default_factory=VocabularyAnalysisConfig)
