import random

import pytest

from tutor_assessment.models.analysis_model import DetectedIssue, Span
from tutor_assessment.models.assessment_model import TurnAssessment
from tutor_assessment.models.fluency_model import FluencyResult
from tutor_assessment.models.grammar_model import GrammarResult
from tutor_assessment.models.vocabulary_model import VocabularyResult, VocabularySuggestion
from tutor_assessment.services.feedback_service import (
    ENCOURAGEMENT_PHRASES,
    MAX_FEEDBACK_ITEMS,
    FeedbackService,
)


def make_assessment(overall_score=0.7, error_count=4, suggestion_count=3, guidance_count=1):
    errors = [
        DetectedIssue(
            kind="grammar",
            severity="high" if index % 2 == 0 else "low",
            description=f"Error {index}",
            span=Span(start=index * 5, end=index * 5 + 3),
            suggestion="fix",
            confidence=0.85 - index * 0.05,
            rule_id="subject-verb-agreement",
        )
        for index in range(error_count)
    ]
    suggestions = [
        VocabularySuggestion(
            type="simpler",
            original=f"word{index}",
            suggested=["place", "shop"],
            explanation="Simpler word",
            confidence=0.8,
        )
        for index in range(suggestion_count)
    ]
    guidance = [
        DetectedIssue(
            kind="pronunciation-guide",
            severity="medium",
            description="Some sounds were unclear",
            confidence=0.6,
            source="heuristic",
        )
        for _ in range(guidance_count)
    ]
    return TurnAssessment(
        grammar=GrammarResult(grammar_score=0.7, fluency_score=0.7, vocabulary_score=0.7,
                              errors=errors, confidence=0.8),
        vocabulary=VocabularyResult(vocabulary_score=0.7, suggestions=suggestions, confidence=0.8),
        fluency=FluencyResult(fluency_score=0.7, guidance=guidance, confidence=0.8),
        overall_score=overall_score,
        overall_confidence=0.8,
    )


class TestFeedbackService:

    def test_feedback_is_bounded_and_ends_with_encouragement(self):
        feedback = FeedbackService(random.Random(1)).compose(make_assessment())

        assert len(feedback) == MAX_FEEDBACK_ITEMS + 1
        assert feedback[-1].kind == "encouragement"
        assert all(item.kind != "encouragement" for item in feedback[:-1])

    def test_items_are_ranked_by_confidence(self):
        feedback = FeedbackService(random.Random(1)).compose(make_assessment())

        confidences = [item.confidence for item in feedback[:-1]]
        assert confidences == sorted(confidences, reverse=True)

    def test_only_top_grammar_errors_and_vocabulary_suggestions_are_used(self):
        feedback = FeedbackService(random.Random(1)).compose(
            make_assessment(error_count=4, suggestion_count=3, guidance_count=0))

        descriptions = [item.description for item in feedback[:-1]]
        assert "Error 3" not in descriptions
        assert descriptions.count("Simpler word") == 2
        vocabulary_item = next(item for item in feedback if item.description == "Simpler word")
        assert vocabulary_item.suggestion == "place, shop"
        assert vocabulary_item.source == "heuristic"

    def test_empty_assessment_only_encourages(self):
        feedback = FeedbackService(random.Random(1)).compose(
            make_assessment(overall_score=0.9, error_count=0, suggestion_count=0, guidance_count=0))

        assert len(feedback) == 1
        assert feedback[0].description in ENCOURAGEMENT_PHRASES["excellent"]

    @pytest.mark.parametrize("score, tier", [
        (0.95, "excellent"),
        (0.8, "excellent"),
        (0.65, "good"),
        (0.3, "developing"),
    ])
    def test_encouragement_tiers(self, score, tier):
        encouragement = FeedbackService(random.Random(7)).encouragement(score)

        assert encouragement.kind == "encouragement"
        assert encouragement.confidence == 1.0
        assert encouragement.description in ENCOURAGEMENT_PHRASES[tier]

    def test_seeded_generator_is_deterministic(self):
        first = FeedbackService(random.Random(42)).compose(make_assessment())
        second = FeedbackService(random.Random(42)).compose(make_assessment())

        assert [item.description for item in first] == [item.description for item in second]

    def test_whole_feedback_list_is_in_confidence_order(self):
        feedback = FeedbackService(random.Random(9)).compose(make_assessment())

        confidences = [item.confidence for item in feedback]
        assert confidences == sorted(confidences, reverse=True)
        assert feedback[-1].kind == "encouragement"
        assert feedback[-1].confidence == pytest.approx(feedback[-2].confidence)
