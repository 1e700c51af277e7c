import re
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple

from tutor_assessment.core.config import BASELINE_CONFIDENCE, LLM_FALLBACK_SCORE
from tutor_assessment.models.analysis_model import (
    NO_TEXT_FEEDBACK,
    ConversationContext,
    DetectedIssue,
    Span,
    clamp_score,
    rank_issues,
)
from tutor_assessment.models.grammar_model import (
    GrammarAnalysisConfig,
    GrammarCritique,
    GrammarResult,
    ImprovementSuggestion,
)
from tutor_assessment.services.llm_service import LanguageModelClient, parse_model_payload
from tutor_assessment.services.syntax_service import SpacySyntaxService, SyntaxService
from tutor_assessment.utils.signal_utils import guarded_call
from tutor_assessment.utils.text_processing import count_actual_words, extract_words, get_sentence_count

# Setup logging
logger = logging.getLogger(__name__)

LANGUAGE_MODEL_ISSUE_CONFIDENCE = 0.75
MAX_SUGGESTIONS = 5


@dataclass(frozen=True)
class GrammarRule:
    id: str
    name: str
    description: str
    pattern: Pattern
    error_type: str
    severity: str
    suggestion: str
    confidence: float = 0.7


GRAMMAR_RULES: Tuple[GrammarRule, ...] = (
    GrammarRule(
        id="subject-verb-agreement",
        name="Subject-Verb Agreement",
        description="Subject and verb must agree in number",
        pattern=re.compile(
            r"\b(?:(?:you|we|they)\s+(?:is|was)|(?:he|she|it)\s+(?:don[’']t|are))(?![\w’'])",
            re.IGNORECASE,
        ),
        error_type="grammar",
        severity="high",
        suggestion='Use "are"/"were" with plural subjects and "doesn\'t"/"is" with he, she or it',
        confidence=0.85,
    ),
    GrammarRule(
        id="article-usage",
        name="Article Usage",
        description="Incorrect article usage",
        pattern=re.compile(r"\ba\s+[aeiou]\w*", re.IGNORECASE),
        error_type="grammar",
        severity="medium",
        suggestion='Use "an" before vowel sounds',
        confidence=0.75,
    ),
    GrammarRule(
        id="double-negative",
        name="Double Negative",
        description="Avoid double negatives",
        pattern=re.compile(
            r"\b(?:don[’']t|doesn[’']t|didn[’']t|won[’']t|can[’']t)\s+(?:\w+\s+)?(?:no|nothing|nobody|never)\b",
            re.IGNORECASE,
        ),
        error_type="grammar",
        severity="medium",
        suggestion="Use only one negative in a sentence",
        confidence=0.8,
    ),
    GrammarRule(
        id="sentence-fragment",
        name="Sentence Fragment",
        description="Incomplete sentence",
        pattern=re.compile(
            r"(?:^|(?<=[.!?]\s))"
            r"(?:[A-Z][a-z]*\s+(?:and|but|or|because|since|although)\s*\."
            r"|(?i:because|since|although)\b[^.!?,]*[.!?])",
            re.MULTILINE,
        ),
        error_type="syntax",
        severity="high",
        suggestion="Complete the sentence with a main clause",
        confidence=0.7,
    ),
    GrammarRule(
        id="run-on-sentence",
        name="Run-on Sentence",
        description="Sentence is too long without proper punctuation",
        pattern=re.compile(r"[^.!?]{100,}"),
        error_type="syntax",
        severity="low",
        suggestion="Break into shorter sentences or add punctuation",
        confidence=0.6,
    ),
)


def apply_grammar_rules(text: str, config: GrammarAnalysisConfig,
                        rules: Tuple[GrammarRule, ...] = GRAMMAR_RULES) -> List[DetectedIssue]:
    """Run every rule whose error type is in focus and collect the hits"""
    issues = []
    for rule in rules:
        if rule.error_type not in config.focus_areas:
            continue

        for match in rule.pattern.finditer(text):
            severity = rule.severity
            if severity == "low":
                if config.strictness_level == "lenient":
                    continue
                if config.strictness_level == "strict":
                    severity = "medium"

            issues.append(DetectedIssue(
                kind=rule.error_type,
                severity=severity,
                description=rule.description,
                span=Span(start=match.start(), end=match.end()),
                suggestion=rule.suggestion,
                confidence=rule.confidence,
                source="rule",
                rule_id=rule.id,
            ))

    logger.info(f"Rule pass found {len(issues)} issues")
    return issues


def critique_to_issues(text: str, critique: GrammarCritique) -> List[DetectedIssue]:
    issues = []
    for error in critique.errors:
        if error.position is not None and not error.position.fits(text):
            logger.warning(f"Dropping language model error with out-of-range span {error.position}")
            continue
        issues.append(DetectedIssue(
            kind=error.type,
            severity=error.severity,
            description=error.description,
            span=error.position,
            suggestion=error.suggestion,
            confidence=LANGUAGE_MODEL_ISSUE_CONFIDENCE,
            source="language-model",
        ))
    return issues


def combine_and_prioritize_errors(rule_issues: List[DetectedIssue], contextual_issues: List[DetectedIssue],
                                  config: GrammarAnalysisConfig) -> List[DetectedIssue]:
    """Dedupe by span (first wins), rank and cut to the strictness ceiling"""
    seen_spans = set()
    unique = []
    for issue in rule_issues + contextual_issues:
        if issue.span is not None:
            key = (issue.span.start, issue.span.end)
            if key in seen_spans:
                continue
            seen_spans.add(key)
        unique.append(issue)

    return rank_issues(unique)[:config.max_errors[config.strictness_level]]


def calculate_grammar_score(issues: List[DetectedIssue], config: GrammarAnalysisConfig) -> float:
    multiplier = config.strictness_multipliers.get(config.strictness_level, 1.0)
    penalty = sum(config.severity_penalties.get(issue.severity, 0.0) for issue in issues)
    return clamp_score(1.0 - penalty * multiplier)


def estimate_fluency(text: str, issues: List[DetectedIssue]) -> float:
    """Sentence-length heuristic used when no critique is requested"""
    word_count = count_actual_words(text)
    sentence_count = max(get_sentence_count(text), 1)
    avg_words_per_sentence = word_count / sentence_count

    score = 0.7
    if 10 <= avg_words_per_sentence <= 20:
        score += 0.1
    elif avg_words_per_sentence < 5 or avg_words_per_sentence > 30:
        score -= 0.1

    score -= 0.05 * sum(1 for issue in issues if issue.kind == "fluency")
    return clamp_score(score)


LEVEL_MULTIPLIERS = {
    "beginner": 0.8,
    "elementary": 0.85,
    "intermediate": 0.9,
    "upper-intermediate": 0.95,
    "advanced": 1.0,
    "proficient": 1.0,
}


def estimate_vocabulary(text: str, learner_level: str) -> float:
    """Diversity/word-length heuristic scaled by the learner's level"""
    words = extract_words(text)
    if not words:
        return 0.0
    diversity = len(set(words)) / len(words)
    advanced_ratio = sum(1 for word in words if len(word) > 6) / len(words)
    score = diversity * 0.6 + advanced_ratio * 0.4
    return clamp_score(score * LEVEL_MULTIPLIERS.get(learner_level, 0.9))


def build_grammar_prompt(text: str, context: ConversationContext) -> str:
    return f"""
You are an expert language teacher. Analyze this student text for grammar, fluency and vocabulary.
Since it is derived from speech, ignore disfluencies (e.g., "um", "uh") and transcription-related punctuation issues.

Student Text: {json.dumps(text)}
Student Level: {context.learner_level}
Conversation Topic: {context.topic}

Positions are character offsets into the student text, with "end" exclusive.

Output format:
{{
  "errors": [
    {{
      "type": "grammar|vocabulary|syntax|fluency",
      "description": "Clear explanation of the error",
      "severity": "low|medium|high",
      "position": {{"start": 0, "end": 5}},
      "suggestion": "Corrected version"
    }}
  ],
  "fluencyScore": 0.85,
  "vocabularyScore": 0.75,
  "contextualFeedback": [
    "Specific improvement suggestions based on context"
  ]
}}

Scores are between 0 and 1. Keep feedback constructive and encouraging.
Provide ONLY the JSON object. No other text or markdown formatting.
"""


class GrammarAnalyzer:
    """Rule checks plus syntax and language model critique, merged into one grammar result"""

    def __init__(self, llm_client: Optional[LanguageModelClient] = None,
                 syntax_service: Optional[SyntaxService] = None):
        self.llm_client = llm_client or LanguageModelClient()
        self.syntax_service = syntax_service or SpacySyntaxService()

    async def _critique(self, text: str, context: ConversationContext) -> Optional[GrammarCritique]:
        content = await self.llm_client.complete(build_grammar_prompt(text, context))
        return parse_model_payload(content, GrammarCritique)

    async def analyze(self, text: Optional[str], context: Optional[ConversationContext] = None,
                      config: Optional[GrammarAnalysisConfig] = None) -> GrammarResult:
        context = context or ConversationContext()
        config = config or GrammarAnalysisConfig()

        if not extract_words(text or ""):
            return GrammarResult(
                grammar_score=0.0,
                fluency_score=0.0,
                vocabulary_score=0.0,
                confidence=0.0,
                feedback=[NO_TEXT_FEEDBACK],
            )

        logger.info(f"Starting grammar analysis for text of length: {len(text)}")

        rule_issues = apply_grammar_rules(text, config)
        critique = None
        degraded_sources = []
        confidence = BASELINE_CONFIDENCE

        if config.enable_contextual_analysis:
            (syntax, syntax_ok), (critique, llm_ok) = await asyncio.gather(
                guarded_call("syntax", self.syntax_service.detect_syntax(text, config.language_code), None),
                guarded_call("language-model", self._critique(text, context), None),
            )
            for source, ok in (("syntax", syntax_ok), ("language-model", llm_ok)):
                if ok:
                    confidence += 0.1
                else:
                    confidence -= 0.15
                    degraded_sources.append(source)
            if syntax_ok:
                logger.info(f"Syntax context: {len(syntax.tokens)} tokens, {len(syntax.entities)} entities")
            confidence = max(0.1, min(1.0, confidence))

        contextual_issues = critique_to_issues(text, critique) if critique else []
        errors = combine_and_prioritize_errors(rule_issues, contextual_issues, config)
        grammar_score = calculate_grammar_score(errors, config)

        if critique is not None:
            fluency_score = critique.fluency_score
            vocabulary_score = critique.vocabulary_score
        elif config.enable_contextual_analysis:
            fluency_score = LLM_FALLBACK_SCORE
            vocabulary_score = LLM_FALLBACK_SCORE
        else:
            fluency_score = estimate_fluency(text, errors)
            vocabulary_score = estimate_vocabulary(text, context.learner_level)

        contextual_feedback = critique.contextual_feedback if critique else []
        suggestions = self.generate_improvement_suggestions(text, errors, contextual_feedback)

        feedback = []
        if errors:
            feedback.append(f"Found {len(errors)} grammar issue{'s' if len(errors) != 1 else ''} to review")
        else:
            feedback.append("No grammar issues detected")
        feedback.extend(contextual_feedback)

        logger.info(f"Grammar analysis complete: score={grammar_score:.2f}, errors={len(errors)}")

        return GrammarResult(
            grammar_score=grammar_score,
            fluency_score=fluency_score,
            vocabulary_score=vocabulary_score,
            pronunciation_score=0.0,
            errors=errors,
            suggestions=suggestions,
            feedback=feedback,
            confidence=confidence,
            degraded_sources=degraded_sources,
        )

    @staticmethod
    def generate_improvement_suggestions(text: str, errors: List[DetectedIssue],
                                         contextual_feedback: List[str]) -> List[ImprovementSuggestion]:
        suggestions = []
        for error in errors[:3]:
            original = text[error.span.start:error.span.end] if error.span else text
            suggestions.append(ImprovementSuggestion(
                category="grammar" if error.kind == "syntax" else error.kind,
                original=original,
                suggested=error.suggestion,
                explanation=error.description,
                confidence=0.8,
            ))

        for item in contextual_feedback[:2]:
            suggestions.append(ImprovementSuggestion(
                category="fluency",
                original=text,
                suggested=item,
                explanation="Contextual improvement suggestion",
                confidence=0.7,
            ))

        suggestions.sort(key=lambda suggestion: -suggestion.confidence)
        return suggestions[:MAX_SUGGESTIONS]
