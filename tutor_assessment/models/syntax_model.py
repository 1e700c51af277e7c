from typing import List, Literal

from pydantic import BaseModel, Field

from tutor_assessment.models.analysis_model import Score


class SyntaxToken(BaseModel):
    text: str
    part_of_speech: str = "UNKNOWN"
    begin_offset: int = 0
    end_offset: int = 0
    confidence: Score = 0.8


class DetectedEntity(BaseModel):
    text: str
    type: str = "OTHER"
    confidence: Score = 0.0
    begin_offset: int = 0
    end_offset: int = 0
    complexity: Literal["basic", "intermediate", "advanced"] = "advanced"


class DetectedKeyPhrase(BaseModel):
    text: str
    confidence: Score = 0.0
    begin_offset: int = 0
    end_offset: int = 0
    relevance: Score = 0.0


class SyntaxAnalysis(BaseModel):
    """Token-level tags plus entities, as returned by the syntax service"""
    tokens: List[SyntaxToken] = Field(default_factory=list)
    entities: List[DetectedEntity] = Field(default_factory=list)
    confidence: Score = 0.7
