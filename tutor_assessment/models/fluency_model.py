from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tutor_assessment.core.config import (
    DEFAULT_LANGUAGE_CODE,
    DEFAULT_SAMPLE_RATE,
    OPTIMAL_WPM_MAX,
    OPTIMAL_WPM_MIN,
)
from tutor_assessment.models.analysis_model import (
    ConversationContext,
    DetectedIssue,
    LanguageLevel,
    Score,
    StrictnessLevel,
    utc_now,
)

FluencySignal = Literal["pronunciation", "rhythm", "pace", "transcription_confidence", "holistic"]


class FluencyAnalysisConfig(BaseModel):
    """Per-call configuration for fluency assessment"""
    include_transcription_analysis: bool = True
    include_pronunciation_feedback: bool = True
    include_rhythm_analysis: bool = True
    enable_contextual_analysis: bool = True
    target_language: str = DEFAULT_LANGUAGE_CODE
    strictness_level: StrictnessLevel = "moderate"
    sample_rate: int = Field(default=DEFAULT_SAMPLE_RATE, gt=0)
    optimal_wpm_min: float = Field(default=OPTIMAL_WPM_MIN, gt=0)
    optimal_wpm_max: float = Field(default=OPTIMAL_WPM_MAX, gt=0)
    weights: Dict[FluencySignal, float] = Field(
        default_factory=lambda: {
            "pronunciation": 0.25,
            "rhythm": 0.2,
            "pace": 0.15,
            "transcription_confidence": 0.1,
            "holistic": 0.3,
        }
    )
    pronunciation_shift: Dict[LanguageLevel, float] = Field(
        default_factory=lambda: {"beginner": 0.15, "elementary": 0.1}
    )
    strictness_adjustments: Dict[StrictnessLevel, float] = Field(
        default_factory=lambda: {"lenient": 0.05, "moderate": 0.0, "strict": -0.05}
    )

    @field_validator("weights")
    @classmethod
    def usable_weights(cls, value):
        if any(weight < 0 for weight in value.values()):
            raise ValueError("fluency weights must not be negative")
        if sum(value.values()) <= 0:
            raise ValueError("fluency weights must not all be zero")
        return value

    @model_validator(mode="after")
    def check_wpm_band(self):
        if self.optimal_wpm_min >= self.optimal_wpm_max:
            raise ValueError("optimal_wpm_min must be lower than optimal_wpm_max")
        return self


class AudioQuality(BaseModel):
    clarity: Score
    volume: Score
    background_noise: Score
    recommendations: List[str] = Field(default_factory=list)


class RhythmResult(BaseModel):
    """Rhythm and pace of one utterance"""
    rhythm_score: Score
    pace_score: Score
    words_per_minute: float = 0.0
    audio_duration: float = 0.0
    feedback: List[str] = Field(default_factory=list)


class WordScore(BaseModel):
    word: str
    score: Score
    recognized_as: Optional[str] = None


class PronunciationResult(BaseModel):
    """Pronunciation assessment derived from speech-to-text output"""
    overall_score: Score
    confidence: Score
    transcription_confidence: Score = 0.0
    transcript: str = ""
    word_scores: List[WordScore] = Field(default_factory=list)
    problem_areas: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    feedback: List[str] = Field(default_factory=list)
    guidance: List[DetectedIssue] = Field(default_factory=list)
    degraded_sources: List[str] = Field(default_factory=list)


class FluencyResult(BaseModel):
    """Response model for fluency assessment"""
    fluency_score: Score
    pronunciation_score: Score = 0.0
    rhythm_score: Score = 0.0
    pace_score: Score = 0.0
    transcription_confidence: Score = 0.0
    words_per_minute: float = 0.0
    audio_duration: float = 0.0
    problem_areas: List[str] = Field(default_factory=list)
    feedback: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    guidance: List[DetectedIssue] = Field(default_factory=list)
    confidence: Score
    degraded_sources: List[str] = Field(default_factory=list)
    analysis_timestamp: datetime = Field(default_factory=utc_now)


class CritiqueFeedback(BaseModel):
    type: str = "fluency"
    text: str
    confidence: float = Field(default=0.7, ge=0, le=1)


class FluencyCritique(BaseModel):
    """Strict schema for the fluency critique payload"""
    model_config = ConfigDict(populate_by_name=True)

    fluency_score: float = Field(alias="fluencyScore", ge=0, le=1)
    rhythm_score: Optional[float] = Field(default=None, alias="rhythmScore", ge=0, le=1)
    feedback: List[CritiqueFeedback] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class FluencyRequest(BaseModel):
    """Request model for fluency assessment"""
    text: str
    audio_base64: Optional[str] = None
    context: ConversationContext = Field(default_factory=ConversationContext)
    config: FluencyAnalysisConfig = Field(default_factory=FluencyAnalysisConfig)
