"""
Shared pytest configuration for service and API tests.
This file provides common fixtures: mocked external services, PCM audio
and conversation contexts.
"""

import os
import pytest
from unittest.mock import Mock, AsyncMock
from typing import Any, Dict

from tutor_assessment.core.errors import ExternalServiceError
from tutor_assessment.models.analysis_model import ConversationContext
from tutor_assessment.models.syntax_model import (
    DetectedEntity,
    DetectedKeyPhrase,
    SyntaxAnalysis,
    SyntaxToken,
)
from tutor_assessment.utils.vocabulary_utils import LexicalTable
from tests.helpers import make_context

# Test environment detection
IS_CI = os.getenv("CI", "false").lower() == "true"


@pytest.fixture(scope="session")
def lexical_table() -> LexicalTable:
    return LexicalTable.from_file()


@pytest.fixture
def failing_llm_client() -> Mock:
    client = Mock()
    client.complete = AsyncMock(side_effect=ExternalServiceError("language-model", "service unavailable"))
    return client


@pytest.fixture
def grammar_critique() -> Dict[str, Any]:
    return {
        "errors": [],
        "fluencyScore": 0.8,
        "vocabularyScore": 0.6,
        "contextualFeedback": ["Try linking your ideas with connectors like 'because' or 'so'."],
    }


@pytest.fixture
def mock_syntax_service() -> Mock:
    service = Mock()
    service.detect_syntax = AsyncMock(return_value=SyntaxAnalysis(
        tokens=[SyntaxToken(text="He", part_of_speech="PRON", begin_offset=0, end_offset=2, confidence=0.9)],
        entities=[],
        confidence=0.9,
    ))
    service.detect_entities_and_key_phrases = AsyncMock(return_value=(
        [DetectedEntity(text="Paris", type="GPE", confidence=0.9, begin_offset=0, end_offset=5, complexity="basic")],
        [DetectedKeyPhrase(text="the old market", confidence=0.7, begin_offset=0, end_offset=14, relevance=0.7)],
    ))
    return service


@pytest.fixture
def failing_syntax_service() -> Mock:
    service = Mock()
    error = ExternalServiceError("syntax", "model not installed")
    service.detect_syntax = AsyncMock(side_effect=error)
    service.detect_entities_and_key_phrases = AsyncMock(side_effect=error)
    return service


@pytest.fixture
def failing_transcription_service() -> Mock:
    service = Mock()
    service.transcribe_audio = AsyncMock(side_effect=ExternalServiceError("speech-to-text", "recognition canceled"))
    return service


@pytest.fixture
def intermediate_context() -> ConversationContext:
    return make_context("intermediate", "weekend plans")


@pytest.fixture
def beginner_context() -> ConversationContext:
    return make_context("beginner", "daily routine")


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "api: mark test as API test"
    )
    config.addinivalue_line(
        "markers", "external_api: mark test as requiring external API"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests that need real credentials in CI"""
    if IS_CI:
        skip_external = pytest.mark.skip(reason="External API tests skipped in CI without real keys")
        for item in items:
            if "external_api" in item.keywords:
                has_real_keys = all(
                    os.getenv(key) and not os.getenv(key).startswith("test_")
                    for key in ["OPENAI_API_KEY", "AZURE_SPEECH_KEY"]
                )
                if not has_real_keys:
                    item.add_marker(skip_external)
