import asyncio
import json
import logging
import math
from typing import List, Optional, Tuple

from tutor_assessment.models.analysis_model import (
    LEVEL_WEIGHTS,
    NO_TEXT_FEEDBACK,
    ConversationContext,
    Span,
    clamp_score,
    weight_to_level,
)
from tutor_assessment.models.syntax_model import DetectedEntity, DetectedKeyPhrase
from tutor_assessment.models.vocabulary_model import (
    VocabularyAlternative,
    VocabularyAnalysisConfig,
    VocabularyCritique,
    VocabularyResult,
    VocabularySuggestion,
)
from tutor_assessment.services.llm_service import LanguageModelClient, parse_model_payload
from tutor_assessment.services.syntax_service import SpacySyntaxService, SyntaxService
from tutor_assessment.utils.signal_utils import guarded_call
from tutor_assessment.utils.text_processing import extract_words, find_word_span, is_content_word
from tutor_assessment.utils.vocabulary_utils import LexicalTable

# Setup logging
logger = logging.getLogger(__name__)

NEUTRAL_APPROPRIATENESS = 0.7
MAX_ALTERNATIVE_WORDS = 10
MAX_ALTERNATIVES_PER_WORD = 3
TOPIC_STEM_LENGTH = 4


def lexical_diversity(words: List[str]) -> float:
    """Herdan's C: log(types) / log(tokens)"""
    if not words:
        return 0.0
    if len(words) == 1:
        return 1.0
    return clamp_score(math.log(len(set(words))) / math.log(len(words)))


def shares_stem(word: str, topic_words: List[str]) -> bool:
    """True when word and any topic word share a prefix of at least four letters"""
    if len(word) < TOPIC_STEM_LENGTH:
        return False
    stem = word[:TOPIC_STEM_LENGTH]
    return any(len(topic) >= TOPIC_STEM_LENGTH and topic[:TOPIC_STEM_LENGTH] == stem for topic in topic_words)


def build_vocabulary_prompt(text: str, context: ConversationContext, config: VocabularyAnalysisConfig) -> str:
    focus = ", ".join(config.focus_areas) or "general"
    return f"""
As an expert language teacher, analyze the vocabulary used in this student text.

Student Text: {json.dumps(text)}
Student Level: {context.learner_level}
Target Level: {config.target_level}
Conversation Topic: {context.topic}
Focus Areas: {focus}

Output format:
{{
  "vocabularyScore": 0.75,
  "suggestions": [
    {{
      "type": "synonym|simpler|more-advanced|context-appropriate",
      "original": "word",
      "suggested": ["alternative1", "alternative2"],
      "explanation": "Why this suggestion helps",
      "confidence": 0.8,
      "position": {{"start": 0, "end": 4}}
    }}
  ],
  "contextualFeedback": [
    "Specific vocabulary feedback for this context"
  ]
}}

Focus on:
1. Vocabulary appropriateness for the topic and level
2. Word choice variety and sophistication
3. Context-specific terminology usage

Provide ONLY the JSON object. No other text or markdown formatting.
"""


class VocabularyAnalyzer:
    """Lexical complexity, diversity and appropriateness scoring with suggestions"""

    def __init__(self, lexical_table: Optional[LexicalTable] = None,
                 llm_client: Optional[LanguageModelClient] = None,
                 syntax_service: Optional[SyntaxService] = None):
        self.lexical_table = lexical_table if lexical_table is not None else LexicalTable.from_file()
        self.llm_client = llm_client or LanguageModelClient()
        self.syntax_service = syntax_service or SpacySyntaxService()

    async def _extract_entities(self, text: str, language_code: str) -> Tuple[List[DetectedEntity], List[DetectedKeyPhrase]]:
        return await self.syntax_service.detect_entities_and_key_phrases(text, language_code)

    async def _critique(self, text: str, context: ConversationContext,
                        config: VocabularyAnalysisConfig) -> Optional[VocabularyCritique]:
        content = await self.llm_client.complete(build_vocabulary_prompt(text, context, config))
        return parse_model_payload(content, VocabularyCritique)

    async def analyze(self, text: Optional[str], context: Optional[ConversationContext] = None,
                      config: Optional[VocabularyAnalysisConfig] = None) -> VocabularyResult:
        context = context or ConversationContext()
        config = config or VocabularyAnalysisConfig()

        words = extract_words(text or "")
        if not words:
            return VocabularyResult(vocabulary_score=0.0, confidence=0.0, feedback=[NO_TEXT_FEEDBACK])

        logger.info(f"Starting vocabulary analysis for {len(words)} words")

        complexity_level = self.analyze_complexity(words)
        diversity_score = lexical_diversity(words)
        appropriateness_score = self.analyze_appropriateness(words, context, config)

        (extracted, syntax_ok), (critique, llm_ok) = await asyncio.gather(
            self._maybe(config.include_entity_analysis, "syntax",
                        lambda: self._extract_entities(text, config.language_code), ([], [])),
            self._maybe(config.enable_contextual_analysis, "language-model",
                        lambda: self._critique(text, context, config), None),
        )
        entities, key_phrases = extracted

        degraded_sources = []
        if syntax_ok is False:
            degraded_sources.append("syntax")
        if llm_ok is False:
            degraded_sources.append("language-model")

        vocabulary_score = self.calculate_vocabulary_score(
            complexity_level, diversity_score, appropriateness_score, config
        )
        suggestions = self.generate_vocabulary_suggestions(text, words, critique, config)
        alternatives = self.generate_vocabulary_alternatives(words, context, config)
        confidence = self.calculate_confidence(entities, key_phrases, syntax_ok, llm_ok)

        feedback = self.generate_feedback(complexity_level, diversity_score, appropriateness_score, context, config)
        if critique:
            feedback.extend(critique.contextual_feedback)

        logger.info(f"Vocabulary analysis complete: score={vocabulary_score:.2f}, level={complexity_level}")

        return VocabularyResult(
            vocabulary_score=vocabulary_score,
            complexity_level=complexity_level,
            diversity_score=diversity_score,
            appropriateness_score=appropriateness_score,
            entities=entities,
            key_phrases=key_phrases,
            suggestions=suggestions,
            alternatives=alternatives,
            feedback=feedback,
            confidence=confidence,
            degraded_sources=degraded_sources,
        )

    @staticmethod
    async def _maybe(enabled: bool, source: str, factory, fallback):
        """Guarded call when enabled; (fallback, None) when the signal was not requested"""
        if not enabled:
            return fallback, None
        return await guarded_call(source, factory(), fallback)

    def analyze_complexity(self, words: List[str]) -> str:
        weights = [LEVEL_WEIGHTS[self.lexical_table.level_of(word)] for word in words]
        return weight_to_level(sum(weights) / len(weights))

    def analyze_appropriateness(self, words: List[str], context: ConversationContext,
                                config: VocabularyAnalysisConfig) -> float:
        topic_words = extract_words(context.current_topic or "")
        focus_words = set()
        for area in config.focus_areas:
            focus_words |= self.lexical_table.focus_area_words(area)

        content_words = [word for word in words if is_content_word(word)]
        if (not topic_words and not focus_words) or not content_words:
            return NEUTRAL_APPROPRIATENESS

        matching = sum(
            1 for word in content_words
            if shares_stem(word, topic_words) or word in focus_words
        )
        return clamp_score(matching / len(content_words))

    @staticmethod
    def calculate_vocabulary_score(complexity_level: str, diversity_score: float,
                                   appropriateness_score: float, config: VocabularyAnalysisConfig) -> float:
        weights = config.score_weights
        level_gap = abs(LEVEL_WEIGHTS[config.target_level] - LEVEL_WEIGHTS[complexity_level])
        complexity_fit = 1 - level_gap / 6
        score = (
            weights.get("complexity", 0.0) * complexity_fit
            + weights.get("diversity", 0.0) * diversity_score
            + weights.get("appropriateness", 0.0) * appropriateness_score
        )
        return clamp_score(score)

    def generate_vocabulary_suggestions(self, text: str, words: List[str], critique: Optional[VocabularyCritique],
                                        config: VocabularyAnalysisConfig) -> List[VocabularySuggestion]:
        target_weight = LEVEL_WEIGHTS[config.target_level]
        advanced_target = config.target_level in ("advanced", "proficient")
        candidates: List[VocabularySuggestion] = []

        for word in dict.fromkeys(words):
            span = find_word_span(text, word)
            position = Span(start=span[0], end=span[1]) if span else None
            word_level = self.lexical_table.level_of(word)

            if config.include_complexity_analysis:
                if not advanced_target and LEVEL_WEIGHTS[word_level] > target_weight:
                    simpler = self.lexical_table.simpler_alternatives(word)
                    if simpler:
                        candidates.append(VocabularySuggestion(
                            type="simpler",
                            original=word,
                            suggested=simpler,
                            explanation=f'Consider using simpler alternatives for "{word}"',
                            confidence=0.8,
                            position=position,
                        ))

                if advanced_target and word_level in ("beginner", "elementary"):
                    advanced = self.lexical_table.advanced_alternatives(word)
                    if advanced:
                        candidates.append(VocabularySuggestion(
                            type="more-advanced",
                            original=word,
                            suggested=advanced,
                            explanation=f'Try using more sophisticated vocabulary instead of "{word}"',
                            confidence=0.7,
                            position=position,
                        ))

            if config.include_synonym_suggestions:
                synonyms = self.lexical_table.synonyms(word)
                if synonyms:
                    candidates.append(VocabularySuggestion(
                        type="synonym",
                        original=word,
                        suggested=synonyms,
                        explanation=f'Add variety by using synonyms for "{word}"',
                        confidence=0.6,
                        position=position,
                    ))

        if critique:
            for item in critique.suggestions:
                position = item.position if item.position and item.position.fits(text) else None
                candidates.append(VocabularySuggestion(
                    type=item.type,
                    original=item.original,
                    suggested=item.suggested,
                    explanation=item.explanation,
                    confidence=item.confidence,
                    position=position,
                ))

        seen = set()
        unique = []
        for suggestion in candidates:
            key = (suggestion.type, suggestion.original.lower())
            if key in seen:
                continue
            seen.add(key)
            unique.append(suggestion)

        unique.sort(key=lambda suggestion: -suggestion.confidence)
        return unique[:config.max_suggestions]

    def generate_vocabulary_alternatives(self, words: List[str], context: ConversationContext,
                                         config: VocabularyAnalysisConfig) -> List[VocabularyAlternative]:
        target_weight = LEVEL_WEIGHTS[config.target_level]
        topic_words = extract_words(context.current_topic or "")
        focus_words = set()
        for area in config.focus_areas:
            focus_words |= self.lexical_table.focus_area_words(area)

        alternatives = []
        for word in dict.fromkeys(words):
            if len(alternatives) >= MAX_ALTERNATIVE_WORDS:
                break
            if not is_content_word(word):
                continue
            entry = self.lexical_table.lookup(word)
            if entry is None:
                continue

            if LEVEL_WEIGHTS[entry.level] > target_weight:
                options = list(entry.simpler)
            else:
                options = list(entry.advanced)
            options.extend(synonym for synonym in entry.synonyms if synonym not in options)
            options = options[:MAX_ALTERNATIVES_PER_WORD]
            if not options:
                continue

            if shares_stem(word, topic_words):
                appropriateness = 1.0
            elif word in focus_words:
                appropriateness = 0.85
            else:
                appropriateness = NEUTRAL_APPROPRIATENESS

            alternatives.append(VocabularyAlternative(
                original=word,
                alternatives=options,
                context=f"Alternatives for {context.topic}",
                difficulty=entry.level,
                appropriateness=appropriateness,
            ))

        return alternatives

    @staticmethod
    def calculate_confidence(entities: List[DetectedEntity], key_phrases: List[DetectedKeyPhrase],
                             syntax_ok: Optional[bool], llm_ok: Optional[bool]) -> float:
        scored = [item.confidence for item in entities] + [item.confidence for item in key_phrases]
        if syntax_ok is False:
            confidence = 0.5
        elif scored:
            confidence = sum(scored) / len(scored)
        else:
            confidence = 0.7

        if llm_ok is True:
            confidence = (confidence + 0.8) / 2
        elif llm_ok is False:
            confidence -= 0.1

        return max(0.1, min(1.0, confidence))

    @staticmethod
    def generate_feedback(complexity_level: str, diversity_score: float, appropriateness_score: float,
                          context: ConversationContext, config: VocabularyAnalysisConfig) -> List[str]:
        feedback = [f"Your vocabulary is at the {complexity_level} level"]

        gap = LEVEL_WEIGHTS[complexity_level] - LEVEL_WEIGHTS[config.target_level]
        if gap < 0:
            feedback.append(f"Try using some {config.target_level} words to stretch your vocabulary")
        elif gap > 1:
            feedback.append("Some of your words may be harder than you need; simpler words can be clearer")

        if diversity_score < 0.6:
            feedback.append("Try to vary your word choice and avoid repeating the same words")
        if appropriateness_score < 0.5:
            feedback.append(f"Use more words related to {context.topic}")

        return feedback

