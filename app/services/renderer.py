"""Invoke Chromium's print-to-PDF on a loaded page."""

import asyncio
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from app import config
from app.services.errors import RenderFailed, RenderTimeout
from app.services.print_options import PrintOptions

logger = logging.getLogger(__name__)


async def render_pdf(page: Page, options: PrintOptions, *, timeout_s: Optional[float] = None) -> bytes:
    """Return the PDF bytes for *page*.

    Raises:
        RenderTimeout: rendering did not finish within *timeout_s*.
        RenderFailed: the engine raised, or produced no output.
    """
    timeout_s = config.RENDER_TIMEOUT_S if timeout_s is None else timeout_s

    try:
        pdf_bytes = await asyncio.wait_for(page.pdf(**options.as_pdf_kwargs()), timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        logger.error("PDF rendering timed out after %ss", timeout_s)
        raise RenderTimeout(details=f"No output after {timeout_s}s") from exc
    except PlaywrightError as exc:
        logger.error("PDF rendering failed: %s", exc.message)
        raise RenderFailed(details=exc.message) from exc

    if not pdf_bytes:
        logger.error("PDF rendering returned no output")
        raise RenderFailed(details="Renderer returned an empty document")

    return pdf_bytes
