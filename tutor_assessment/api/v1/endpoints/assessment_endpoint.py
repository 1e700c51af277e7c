import logging

from fastapi import APIRouter, Depends, HTTPException

from tutor_assessment.api.v1.dependencies import get_assessment_service
from tutor_assessment.api.v1.endpoints.fluency_endpoint import decode_audio
from tutor_assessment.models.analysis_model import Utterance
from tutor_assessment.models.assessment_model import TurnAssessment, TurnRequest
from tutor_assessment.services.assessment_service import AssessmentService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/turn", response_model=TurnAssessment)
async def assess_turn_endpoint(request: TurnRequest, service: AssessmentService = Depends(get_assessment_service)):
    """Run grammar, vocabulary and fluency analysis on one conversation turn"""
    audio = decode_audio(request.audio_base64)

    try:
        utterance_fields = {"text": request.text, "audio": audio, "context": request.context}
        if request.language_code:
            utterance_fields["language_code"] = request.language_code
        if request.sample_rate is not None:
            utterance_fields["sample_rate"] = request.sample_rate
        utterance = Utterance(**utterance_fields)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid turn request: {str(e)}")

    try:
        logger.info(f"Received turn assessment request for session {request.context.session_id}")
        return await service.assess_turn(utterance, request.config)
    except Exception as e:
        logger.exception("Error in turn assessment endpoint")
        raise HTTPException(status_code=500, detail=f"Error assessing turn: {str(e)}")
