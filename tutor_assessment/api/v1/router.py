from fastapi import APIRouter

from .endpoints import health, grammar_endpoint, vocabulary_endpoint, fluency_endpoint, assessment_endpoint

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])

api_router.include_router(grammar_endpoint.router, prefix="/grammar", tags=["analysis"])
api_router.include_router(vocabulary_endpoint.router, prefix="/vocabulary", tags=["analysis"])
api_router.include_router(fluency_endpoint.router, prefix="/fluency", tags=["analysis"])
api_router.include_router(assessment_endpoint.router, prefix="/assessment", tags=["assessment"])
