from fastapi import APIRouter
from datetime import datetime
import os
from tutor_assessment.core.config import AZURE_SPEECH_KEY, OPENAI_API_KEY, SPACY_MODEL
from tutor_assessment.models.schemas import HealthResponse

router = APIRouter()

@router.get("/", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "environment": os.environ.get("ENVIRONMENT", "development"),
        "services": {
            "language-model": "configured" if OPENAI_API_KEY else "not configured",
            "speech-to-text": "configured" if AZURE_SPEECH_KEY else "not configured",
            "syntax": SPACY_MODEL,
        },
    }
