import base64
import binascii
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from tutor_assessment.api.v1.dependencies import get_fluency_analyzer
from tutor_assessment.models.fluency_model import FluencyRequest, FluencyResult
from tutor_assessment.services.fluency_service import FluencyAnalyzer

logger = logging.getLogger(__name__)
router = APIRouter()


def decode_audio(audio_base64: Optional[str]) -> Optional[bytes]:
    """Decode base64 PCM audio; HTTP 400 when it is not valid base64"""
    if not audio_base64:
        return None
    try:
        return base64.b64decode(audio_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="audio_base64 is not valid base64")


@router.post("/analysis", response_model=FluencyResult)
async def assess_fluency(request: FluencyRequest, analyzer: FluencyAnalyzer = Depends(get_fluency_analyzer)) -> FluencyResult:
    """
    Assess speech fluency, pace and pronunciation

    Args:
        request: FluencyRequest with the reference text and optional base64 16-bit mono PCM audio

    Returns:
        FluencyResult with component scores, feedback and confidence
    """
    audio = decode_audio(request.audio_base64)

    try:
        return await analyzer.analyze_fluency(audio, request.text, request.context, request.config)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid fluency request: {str(e)}")
    except Exception as e:
        logger.exception("Error in fluency analysis endpoint")
        raise HTTPException(status_code=500, detail=f"Unexpected endpoint error: {str(e)}")
