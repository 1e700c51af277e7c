from typing import Dict

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    services: Dict[str, str]
