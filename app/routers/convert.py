"""HTML → PDF conversion endpoint."""

import json
import logging
from typing import Any, NamedTuple, Optional

from fastapi import APIRouter, Depends, Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.datastructures import UploadFile

from app import config
from app.dependencies import get_engine
from app.models.response import ErrorResponse
from app.services.browser import BrowserEngine
from app.services.converter import convert
from app.services.errors import ConversionError, InternalError, MissingParameter, PayloadTooLarge
from app.services.validator import UploadedFile, validate_request

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(prefix="/api", tags=["Conversion"])


class RawFields(NamedTuple):
    type: Optional[str]
    url: Optional[str]
    upload: Optional[UploadedFile]
    settings: Any


@router.post(
    "/convert",
    summary="Convert a URL or an uploaded HTML file to PDF",
    description=(
        "Accepts either a multipart form (`type`, `url`, `settings` and one "
        "HTML file part under any field name) or a JSON body (`type`, `url`, "
        "`settings`, or `html` + `filename` for inline documents).\n\n"
        "`settings` may set `pageSize` (A4, Letter, Legal, Tabloid), "
        "`orientation` (portrait, landscape), `margins` (none, small, medium, "
        "large), `includeBackground` and `waitForDynamicContent`. Unknown or "
        "malformed settings fall back to defaults.\n\n"
        "Only the first uploaded file is converted."
    ),
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "The rendered PDF."},
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@limiter.limit(config.RATE_LIMIT)
async def convert_document(request: Request, engine: BrowserEngine = Depends(get_engine)) -> Response:
    # ── Step 1: validate (no browser work yet) ───────────────────────────────
    fields = await _read_fields(request)
    conversion_request = validate_request(
        fields.type,
        url=fields.url,
        upload=fields.upload,
        settings=fields.settings,
    )
    logger.info(
        "Conversion request received",
        extra={
            "source_type": conversion_request.source_type,
            "url": conversion_request.url,
            "file_name": conversion_request.file_name,
        },
    )

    # ── Step 2: convert; the session is released inside convert() ───────────
    try:
        result = await convert(engine, conversion_request)
    except ConversionError:
        raise
    except Exception as exc:
        logger.exception("Unexpected conversion failure")
        raise InternalError(details=str(exc)) from exc

    # ── Step 3: emit; the whole document exists before the first byte goes out
    return Response(
        content=result.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _check_declared_size(request: Request) -> None:
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > config.MAX_UPLOAD_BYTES:
        raise PayloadTooLarge(details=f"Request body of {declared} bytes exceeds the limit.")


async def _read_fields(request: Request) -> RawFields:
    """Pull the conversion fields out of a JSON or form-encoded request."""
    _check_declared_size(request)
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith("application/json"):
        return await _read_json_fields(request)
    return await _read_form_fields(request)


async def _read_capped_body(request: Request) -> bytes:
    """Read the request body, giving up as soon as it passes the upload ceiling.

    Chunked requests carry no Content-Length, so the running total is the
    only thing standing between the client and an unbounded buffer.
    """
    limit = config.MAX_UPLOAD_BYTES
    chunks = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > limit:
            raise PayloadTooLarge(details=f"Request body exceeds {limit} bytes.")
        chunks.append(chunk)
    return b"".join(chunks)


async def _read_json_fields(request: Request) -> RawFields:
    body = await _read_capped_body(request)
    try:
        data = json.loads(body) if body else {}
    except ValueError:
        raise MissingParameter("Request body is not valid JSON.")
    if not isinstance(data, dict):
        raise MissingParameter("Request body must be a JSON object.")

    upload = None
    html = data.get("html")
    if isinstance(html, str):
        upload = UploadedFile(
            filename=_as_str(data.get("filename")),
            content_type="text/html",
            content=html.encode("utf-8"),
        )

    return RawFields(
        type=_as_str(data.get("type")),
        url=_as_str(data.get("url")),
        upload=upload,
        settings=data.get("settings"),
    )


async def _read_form_fields(request: Request) -> RawFields:
    body = await _read_capped_body(request)

    async def replay() -> dict:
        return {"type": "http.request", "body": body, "more_body": False}

    form = await Request(request.scope, replay).form()
    try:
        upload = None
        for _, value in form.multi_items():
            # First file wins, whatever its field name.
            if isinstance(value, UploadFile):
                upload = UploadedFile(
                    filename=value.filename,
                    content_type=value.content_type,
                    content=await value.read(config.MAX_UPLOAD_BYTES + 1),
                )
                break

        return RawFields(
            type=_as_str(form.get("type")),
            url=_as_str(form.get("url")),
            upload=upload,
            settings=_as_str(form.get("settings")),
        )
    finally:
        await form.close()


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None
