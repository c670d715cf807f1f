import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from app import config
from app.dependencies import get_engine
from app.models.response import HealthResponse
from app.services.browser import BrowserEngine

router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(request: Request, engine: BrowserEngine = Depends(get_engine)) -> HealthResponse:
    """Report liveness. Always 200 while the process is serving."""
    return HealthResponse(
        status="healthy",
        service=config.SERVICE_NAME,
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=round(time.monotonic() - request.app.state.started_at, 3),
        engine_running=engine.is_running,
        active_sessions=engine.active_sessions,
    )


@router.get("/test", summary="Smoke test")
async def smoke_test() -> dict:
    return {"message": "HTML to PDF converter is working!"}
