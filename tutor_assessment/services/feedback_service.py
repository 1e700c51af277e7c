import logging
import random
from typing import List, Optional

from tutor_assessment.models.analysis_model import DetectedIssue, rank_issues
from tutor_assessment.models.assessment_model import TurnAssessment

# Setup logging
logger = logging.getLogger(__name__)

MAX_FEEDBACK_ITEMS = 5

ENCOURAGEMENT_PHRASES = {
    "excellent": [
        "Excellent work! You expressed yourself clearly and accurately.",
        "Great job! That was a really natural answer.",
        "Fantastic! Your English sounded confident there.",
    ],
    "good": [
        "Good job! You're making real progress.",
        "Nice work! Just a few small things to polish.",
        "Well done! Keep going, you're on the right track.",
    ],
    "developing": [
        "Good effort! Every sentence you speak makes you better.",
        "Keep it up! Mistakes are how we learn.",
        "You're doing fine. Let's work on a couple of things together.",
    ],
}


class FeedbackService:
    """Turns a scored turn into learner-facing corrections, tips and encouragement"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def compose(self, assessment: TurnAssessment) -> List[DetectedIssue]:
        items: List[DetectedIssue] = []

        for error in assessment.grammar.errors[:3]:
            items.append(DetectedIssue(
                kind="suggestion",
                severity=error.severity,
                description=error.description,
                span=error.span,
                suggestion=error.suggestion,
                confidence=error.confidence,
                source=error.source,
                rule_id=error.rule_id,
            ))

        for suggestion in assessment.vocabulary.suggestions[:2]:
            items.append(DetectedIssue(
                kind="suggestion",
                severity="low",
                description=suggestion.explanation,
                span=suggestion.position,
                suggestion=", ".join(suggestion.suggested),
                confidence=suggestion.confidence,
                source="heuristic",
            ))

        items.extend(assessment.fluency.guidance)

        feedback = rank_issues(items)[:MAX_FEEDBACK_ITEMS]
        # never outranks the items before it
        floor = min((item.confidence for item in feedback), default=1.0)
        feedback.append(self.encouragement(assessment.overall_score, confidence=floor))

        logger.info(f"Composed {len(feedback)} feedback items")
        return feedback

    def encouragement(self, overall_score: float, confidence: float = 1.0) -> DetectedIssue:
        if overall_score >= 0.8:
            tier = "excellent"
        elif overall_score >= 0.6:
            tier = "good"
        else:
            tier = "developing"

        return DetectedIssue(
            kind="encouragement",
            description=self.rng.choice(ENCOURAGEMENT_PHRASES[tier]),
            confidence=confidence,
            source="heuristic",
        )
