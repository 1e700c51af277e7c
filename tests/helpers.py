"""Builders shared by the test modules"""

import json
from typing import Any, Optional
from unittest.mock import AsyncMock, Mock

import numpy as np

from tutor_assessment.models.analysis_model import ConversationContext, LearnerProfile
from tutor_assessment.models.transcription_model import TranscriptionResult

SAMPLE_RATE = 16000


def make_pcm_audio(seconds: float, sample_rate: int = SAMPLE_RATE, amplitude: float = 0.3) -> bytes:
    """Generate a 16-bit mono sine tone of the given length"""
    t = np.linspace(0, seconds, int(sample_rate * seconds), endpoint=False)
    tone = amplitude * np.sin(2 * np.pi * 220 * t)
    return (tone * 32767).astype("<i2").tobytes()


def llm_client_returning(payload: Any) -> Mock:
    """Language model client whose completion is the given payload as JSON"""
    client = Mock()
    content = payload if isinstance(payload, str) else json.dumps(payload)
    client.complete = AsyncMock(return_value=content)
    return client


def transcription_service_returning(transcript: str, confidence: float = 0.9) -> Mock:
    service = Mock()
    service.transcribe_audio = AsyncMock(return_value=TranscriptionResult(
        transcript=transcript,
        confidence=confidence,
        language_code="en-US",
        alternatives=[],
    ))
    return service


def make_context(level: str = "intermediate", topic: Optional[str] = None) -> ConversationContext:
    return ConversationContext(
        session_id="session-123",
        user_id="user-456",
        current_topic=topic,
        user_profile=LearnerProfile(user_id="user-456", current_level=level),
    )
