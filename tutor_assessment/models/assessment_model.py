from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from tutor_assessment.models.analysis_model import (
    ConversationContext,
    DetectedIssue,
    Score,
    utc_now,
)
from tutor_assessment.models.fluency_model import FluencyAnalysisConfig, FluencyResult
from tutor_assessment.models.grammar_model import GrammarAnalysisConfig, GrammarResult
from tutor_assessment.models.vocabulary_model import VocabularyAnalysisConfig, VocabularyResult


class TurnAnalysisConfig(BaseModel):
    """Configuration for all three analyzers on one turn"""
    grammar: GrammarAnalysisConfig = Field(default_factory=GrammarAnalysisConfig)
    vocabulary: VocabularyAnalysisConfig = Field(default_factory=VocabularyAnalysisConfig)
    fluency: FluencyAnalysisConfig = Field(default_factory=FluencyAnalysisConfig)


class TurnAssessment(BaseModel):
    """Merged grammar, vocabulary and fluency assessment of one turn"""
    grammar: GrammarResult
    vocabulary: VocabularyResult
    fluency: FluencyResult
    overall_score: Score
    overall_confidence: Score
    feedback: List[DetectedIssue] = Field(default_factory=list)
    degraded_sources: List[str] = Field(default_factory=list)
    analysis_timestamp: datetime = Field(default_factory=utc_now)


class TurnRequest(BaseModel):
    """Request model for a full turn assessment"""
    text: str
    audio_base64: Optional[str] = None
    language_code: Optional[str] = None
    sample_rate: Optional[int] = None
    context: ConversationContext = Field(default_factory=ConversationContext)
    config: TurnAnalysisConfig = Field(default_factory=TurnAnalysisConfig)
