from typing import List

from pydantic import BaseModel, Field

from tutor_assessment.models.analysis_model import Score


class TranscriptAlternative(BaseModel):
    transcript: str
    confidence: Score = 0.0


class TranscriptionResult(BaseModel):
    """Result returned by the speech-to-text service"""
    transcript: str
    confidence: Score
    language_code: str
    alternatives: List[TranscriptAlternative] = Field(default_factory=list)
