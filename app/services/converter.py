"""Conversion lifecycle: load content into a fresh session and print it."""

import logging
import time
from typing import Optional

from app import config
from app.models.request import ConversionRequest
from app.models.response import ConversionResult
from app.services.browser import BrowserEngine
from app.services.filename import pdf_filename
from app.services.loader import guard_private_addresses, load_file, load_html, load_url, staged_upload
from app.services.print_options import build_print_options
from app.services.renderer import render_pdf

logger = logging.getLogger(__name__)


async def convert(
    engine: BrowserEngine,
    request: ConversionRequest,
    *,
    staging: Optional[str] = None,
    block_private: Optional[bool] = None,
) -> ConversionResult:
    """Convert a validated *request* to PDF.

    The page context (and the staged upload, in ``"disk"`` staging mode) is
    released before this returns or raises. Errors are the typed
    :mod:`app.services.errors` classes raised by each step.
    """
    staging = config.UPLOAD_STAGING if staging is None else staging
    block_private = config.BLOCK_PRIVATE_ADDRESSES if block_private is None else block_private
    settings = request.settings
    options = build_print_options(settings)
    started = time.perf_counter()

    async with engine.session() as page:
        if block_private:
            await guard_private_addresses(page)
        if request.source_type == "url":
            await load_url(page, request.url, wait_for_dynamic_content=settings.wait_for_dynamic_content)
            pdf_bytes = await render_pdf(page, options)
        elif staging == "disk":
            async with staged_upload(request.file_content) as path:
                await load_file(page, path, wait_for_dynamic_content=settings.wait_for_dynamic_content)
                pdf_bytes = await render_pdf(page, options)
        else:
            await load_html(page, request.file_content, wait_for_dynamic_content=settings.wait_for_dynamic_content)
            pdf_bytes = await render_pdf(page, options)

    filename = pdf_filename(request.file_name if request.source_type == "file" else None)
    logger.info(
        "Conversion completed",
        extra={
            "source_type": request.source_type,
            "bytes": len(pdf_bytes),
            "duration_ms": round((time.perf_counter() - started) * 1000),
        },
    )
    return ConversionResult(content=pdf_bytes, filename=filename)

