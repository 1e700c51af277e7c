from fastapi import APIRouter, Depends, HTTPException
from tutor_assessment.api.v1.dependencies import get_vocabulary_analyzer
from tutor_assessment.models.vocabulary_model import VocabularyRequest, VocabularyResult
from tutor_assessment.services.vocabulary_service import VocabularyAnalyzer
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/analysis", response_model=VocabularyResult)
async def analyze_vocabulary_endpoint(request: VocabularyRequest,
                                      analyzer: VocabularyAnalyzer = Depends(get_vocabulary_analyzer)):
    """Score vocabulary level, diversity and topic fit, with word suggestions"""
    try:
        logger.info(f"Received vocabulary analysis request for transcript of length: {len(request.transcript)}")
        return await analyzer.analyze(request.transcript, request.context, request.config)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid vocabulary analysis request: {str(e)}")
    except Exception as e:
        logger.exception("Error in vocabulary analysis endpoint")
        raise HTTPException(
            status_code=500,
            detail=f"Error analyzing vocabulary: {str(e)}"
        )
