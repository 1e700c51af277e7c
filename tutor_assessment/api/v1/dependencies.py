from functools import lru_cache

from tutor_assessment.services.assessment_service import AssessmentService
from tutor_assessment.services.feedback_service import FeedbackService
from tutor_assessment.services.fluency_service import FluencyAnalyzer
from tutor_assessment.services.grammar_service import GrammarAnalyzer
from tutor_assessment.services.llm_service import LanguageModelClient
from tutor_assessment.services.syntax_service import SpacySyntaxService
from tutor_assessment.services.transcription_service import AzureTranscriptionService
from tutor_assessment.services.vocabulary_service import VocabularyAnalyzer
from tutor_assessment.utils.vocabulary_utils import LexicalTable


@lru_cache
def get_llm_client() -> LanguageModelClient:
    return LanguageModelClient()


@lru_cache
def get_syntax_service() -> SpacySyntaxService:
    return SpacySyntaxService()


@lru_cache
def get_lexical_table() -> LexicalTable:
    return LexicalTable.from_file()


@lru_cache
def get_grammar_analyzer() -> GrammarAnalyzer:
    return GrammarAnalyzer(llm_client=get_llm_client(), syntax_service=get_syntax_service())


@lru_cache
def get_vocabulary_analyzer() -> VocabularyAnalyzer:
    return VocabularyAnalyzer(
        lexical_table=get_lexical_table(),
        llm_client=get_llm_client(),
        syntax_service=get_syntax_service(),
    )


@lru_cache
def get_fluency_analyzer() -> FluencyAnalyzer:
    return FluencyAnalyzer(llm_client=get_llm_client(), transcription_service=AzureTranscriptionService())


@lru_cache
def get_assessment_service() -> AssessmentService:
    return AssessmentService(
        grammar_analyzer=get_grammar_analyzer(),
        vocabulary_analyzer=get_vocabulary_analyzer(),
        fluency_analyzer=get_fluency_analyzer(),
        feedback_service=FeedbackService(),
    )
