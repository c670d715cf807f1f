import logging
import logging.config
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import config
from app.models.response import ErrorResponse
from app.routers.convert import limiter, router as convert_router
from app.routers.health import router as health_router
from app.services.browser import BrowserEngine
from app.services.errors import ConversionError, InternalError

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "root": {"level": config.LOG_LEVEL, "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine: BrowserEngine = app.state.engine
    if config.LAUNCH_BROWSER_ON_STARTUP:
        # FatalStartupError propagates: the server refuses to start without a browser.
        await engine.start()
    logger.info("HTML to PDF converter listening on port %d", config.PORT)
    yield
    await engine.shutdown(grace=config.SHUTDOWN_GRACE_S)


app = FastAPI(
    title="HTML to PDF Converter",
    description="Converts a web page URL or an uploaded HTML file into a PDF using headless Chromium.",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.engine = BrowserEngine.from_config()
app.state.started_at = time.monotonic()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)

# Rate-limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def _error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details if config.DEBUG else None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(ConversionError)
async def conversion_error_handler(request: Request, exc: ConversionError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("%s for %s: %s", exc.code, request.url.path, exc.details or exc.message)
    return _error_response(exc.status_code, exc.message, exc.details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s", request.url)
    return _error_response(500, InternalError.message, str(exc))


app.include_router(health_router)
app.include_router(convert_router)
