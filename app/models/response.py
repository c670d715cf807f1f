from datetime import datetime
from typing import NamedTuple, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "healthy"
    service: str
    timestamp: datetime
    uptime_seconds: float
    engine_running: bool
    active_sessions: int


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class ConversionResult(NamedTuple):
    content: bytes
    filename: str
