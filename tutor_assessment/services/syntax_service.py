import asyncio
import logging
import threading
from typing import List, Optional, Protocol, Tuple

import spacy

from tutor_assessment.core.config import SPACY_MODEL
from tutor_assessment.core.errors import ExternalServiceError
from tutor_assessment.models.syntax_model import (
    DetectedEntity,
    DetectedKeyPhrase,
    SyntaxAnalysis,
    SyntaxToken,
)

# Setup logging
logger = logging.getLogger(__name__)

SERVICE_NAME = "syntax"

# spaCy does not score its predictions; these stand in for per-item confidence
TOKEN_CONFIDENCE = 0.85
ENTITY_CONFIDENCE = 0.85
KEY_PHRASE_CONFIDENCE = 0.8

COMMON_WORDS = frozenset(["the", "a", "an", "and", "or", "but", "in", "on", "at"])


class SyntaxService(Protocol):
    """Syntactic, entity and key phrase analysis used by the analyzers"""

    async def detect_syntax(self, text: str, language_code: str) -> SyntaxAnalysis: ...

    async def detect_entities(self, text: str, language_code: str) -> List[DetectedEntity]: ...

    async def detect_key_phrases(self, text: str, language_code: str) -> List[DetectedKeyPhrase]: ...

    async def detect_entities_and_key_phrases(
        self, text: str, language_code: str
    ) -> Tuple[List[DetectedEntity], List[DetectedKeyPhrase]]: ...


def entity_complexity(entity_type: str) -> str:
    if entity_type in ("PERSON", "LOCATION", "GPE", "LOC"):
        return "basic"
    if entity_type in ("ORGANIZATION", "ORG", "DATE", "TIME"):
        return "intermediate"
    return "advanced"


def phrase_relevance(phrase: str) -> float:
    """Share of a phrase made of content words"""
    words = phrase.split()
    if not words:
        return 0.0
    content_words = [word for word in words if word.lower() not in COMMON_WORDS]
    return min(1.0, len(content_words) / len(words))


class SpacySyntaxService:
    """SyntaxService backed by a local spaCy pipeline"""

    def __init__(self, model_name: Optional[str] = None):
        self.model_name = model_name or SPACY_MODEL
        self.nlp_processor = None
        self._load_lock = threading.Lock()

    def initialize(self):
        """Load the spaCy pipeline on first use. Blocking; call from a worker thread."""
        with self._load_lock:
            if self.nlp_processor is None:
                logger.info(f"Loading spaCy model {self.model_name}...")
                try:
                    self.nlp_processor = spacy.load(self.model_name)
                except OSError as e:
                    raise ExternalServiceError(SERVICE_NAME, f"spaCy model {self.model_name} unavailable: {e}")
                logger.info("Successfully loaded spaCy model")
        return self.nlp_processor

    def _load_and_parse(self, text: str):
        return self.initialize()(text)

    async def _parse(self, text: str, language_code: str):
        if not language_code.lower().startswith("en"):
            raise ExternalServiceError(SERVICE_NAME, f"unsupported language {language_code}")
        return await asyncio.to_thread(self._load_and_parse, text)

    async def detect_syntax(self, text: str, language_code: str) -> SyntaxAnalysis:
        doc = await self._parse(text, language_code)

        tokens = [
            SyntaxToken(
                text=token.text,
                part_of_speech=token.pos_ or "UNKNOWN",
                begin_offset=token.idx,
                end_offset=token.idx + len(token.text),
                confidence=TOKEN_CONFIDENCE,
            )
            for token in doc
            if not token.is_space
        ]
        entities = self._entities(doc)

        confidence = sum(token.confidence for token in tokens) / len(tokens) if tokens else 0.7
        return SyntaxAnalysis(tokens=tokens, entities=entities, confidence=confidence)

    async def detect_entities(self, text: str, language_code: str) -> List[DetectedEntity]:
        doc = await self._parse(text, language_code)
        return self._entities(doc)

    async def detect_key_phrases(self, text: str, language_code: str) -> List[DetectedKeyPhrase]:
        doc = await self._parse(text, language_code)
        return self._key_phrases(doc)

    async def detect_entities_and_key_phrases(
        self, text: str, language_code: str
    ) -> Tuple[List[DetectedEntity], List[DetectedKeyPhrase]]:
        """Entities and key phrases from a single pipeline run"""
        doc = await self._parse(text, language_code)
        return self._entities(doc), self._key_phrases(doc)

    def _entities(self, doc) -> List[DetectedEntity]:
        return [self._entity(ent) for ent in doc.ents]

    @staticmethod
    def _key_phrases(doc) -> List[DetectedKeyPhrase]:
        return [
            DetectedKeyPhrase(
                text=chunk.text,
                confidence=KEY_PHRASE_CONFIDENCE,
                begin_offset=chunk.start_char,
                end_offset=chunk.end_char,
                relevance=phrase_relevance(chunk.text),
            )
            for chunk in doc.noun_chunks
        ]

    @staticmethod
    def _entity(ent) -> DetectedEntity:
        return DetectedEntity(
            text=ent.text,
            type=ent.label_ or "OTHER",
            confidence=ENTITY_CONFIDENCE,
            begin_offset=ent.start_char,
            end_offset=ent.end_char,
            complexity=entity_complexity(ent.label_),
        )
