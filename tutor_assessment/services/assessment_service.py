import asyncio
import logging
from typing import Optional

from tutor_assessment.models.analysis_model import Utterance
from tutor_assessment.models.assessment_model import TurnAnalysisConfig, TurnAssessment
from tutor_assessment.services.feedback_service import FeedbackService
from tutor_assessment.services.fluency_service import FluencyAnalyzer
from tutor_assessment.services.grammar_service import GrammarAnalyzer
from tutor_assessment.services.vocabulary_service import VocabularyAnalyzer

# Setup logging
logger = logging.getLogger(__name__)

OVERALL_WEIGHTS = {"grammar": 0.35, "vocabulary": 0.35, "fluency": 0.3}


class AssessmentService:
    """
    Runs the grammar, vocabulary and fluency analyzers on one turn and
    merges their output.

    The analyzers share nothing but the read-only lexical table, so they
    are awaited concurrently and none of them sees another's result.
    """

    def __init__(
        self,
        grammar_analyzer: Optional[GrammarAnalyzer] = None,
        vocabulary_analyzer: Optional[VocabularyAnalyzer] = None,
        fluency_analyzer: Optional[FluencyAnalyzer] = None,
        feedback_service: Optional[FeedbackService] = None,
    ):
        self.grammar_analyzer = grammar_analyzer or GrammarAnalyzer()
        self.vocabulary_analyzer = vocabulary_analyzer or VocabularyAnalyzer()
        self.fluency_analyzer = fluency_analyzer or FluencyAnalyzer()
        self.feedback_service = feedback_service or FeedbackService()

    async def assess_turn(self, utterance: Utterance, config: Optional[TurnAnalysisConfig] = None) -> TurnAssessment:
        config = config or TurnAnalysisConfig()
        logger.info(f"Assessing turn for session {utterance.context.session_id}")

        grammar_config = config.grammar.model_copy(update={"language_code": utterance.language_code})
        vocabulary_config = config.vocabulary.model_copy(update={"language_code": utterance.language_code})
        fluency_config = config.fluency.model_copy(
            update={"target_language": utterance.language_code, "sample_rate": utterance.sample_rate}
        )

        grammar, vocabulary, fluency = await asyncio.gather(
            self.grammar_analyzer.analyze(utterance.text, utterance.context, grammar_config),
            self.vocabulary_analyzer.analyze(utterance.text, utterance.context, vocabulary_config),
            self.fluency_analyzer.analyze_fluency(utterance.audio, utterance.text, utterance.context, fluency_config),
        )

        overall_score = (
            OVERALL_WEIGHTS["grammar"] * grammar.grammar_score
            + OVERALL_WEIGHTS["vocabulary"] * vocabulary.vocabulary_score
            + OVERALL_WEIGHTS["fluency"] * fluency.fluency_score
        )
        overall_confidence = (grammar.confidence + vocabulary.confidence + fluency.confidence) / 3

        degraded_sources = list(dict.fromkeys(
            grammar.degraded_sources + vocabulary.degraded_sources + fluency.degraded_sources
        ))

        assessment = TurnAssessment(
            grammar=grammar,
            vocabulary=vocabulary,
            fluency=fluency,
            overall_score=overall_score,
            overall_confidence=overall_confidence,
            degraded_sources=degraded_sources,
        )
        feedback = self.feedback_service.compose(assessment)

        logger.info(f"Turn assessment complete: overall={overall_score:.2f}, confidence={overall_confidence:.2f}")
        return assessment.model_copy(update={"feedback": feedback})
