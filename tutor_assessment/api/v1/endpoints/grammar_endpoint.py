from fastapi import APIRouter, Depends, HTTPException
from tutor_assessment.api.v1.dependencies import get_grammar_analyzer
from tutor_assessment.models.grammar_model import GrammarRequest, GrammarResult
from tutor_assessment.services.grammar_service import GrammarAnalyzer
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/analysis", response_model=GrammarResult)
async def analyze_grammar_endpoint(request: GrammarRequest, analyzer: GrammarAnalyzer = Depends(get_grammar_analyzer)):
    """
    Analyze grammar in a transcript

    Args:
        request: GrammarRequest containing the transcript, conversation context and config

    Returns:
        GrammarResult containing:
        - Grammar score and secondary fluency/vocabulary estimates
        - Ranked errors and improvement suggestions
        - Confidence and any degraded signal sources
    """
    try:
        logger.info(f"Received grammar analysis request for transcript of length: {len(request.transcript)}")

        result = await analyzer.analyze(request.transcript, request.context, request.config)

        logger.info(f"Analysis complete: score={result.grammar_score:.2f}, {len(result.errors)} errors")
        return result

    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid grammar analysis request: {str(e)}")
    except Exception as e:
        logger.exception("Error in grammar analysis endpoint")
        raise HTTPException(
            status_code=500,
            detail=f"Error analyzing grammar: {str(e)}"
        )
