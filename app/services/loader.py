"""Load HTML content, remote or uploaded, into a rendering page."""

import asyncio
import logging
import os
import re
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, Route
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from app import config
from app.services.errors import ContentDecodeError, NavigationFailed, NavigationTimeout
from app.services.validator import is_private_address

logger = logging.getLogger(__name__)

_NET_ERROR_RE = re.compile(r"net::(ERR_[A-Z_]+)")


def _wait_until(wait_for_dynamic_content: bool) -> str:
    return "networkidle" if wait_for_dynamic_content else "load"


async def _settle(page: Page, wait_for_dynamic_content: bool, settle_ms: int) -> None:
    # Client-rendered pages often paint after the network goes quiet.
    if wait_for_dynamic_content and settle_ms > 0:
        await page.wait_for_timeout(settle_ms)


async def guard_private_addresses(page: Page) -> None:
    """Abort every request *page* makes to a private or internal host.

    This covers the main document, sub-resources, frames and script-issued
    requests. Navigation requests are fetched without following redirects
    and handed back to the browser, so each redirect hop comes back through
    the guard as a new request. Redirects of sub-resources are not
    re-checked.
    """

    async def _check(route: Route) -> None:
        host = urlparse(route.request.url).hostname
        if host and await asyncio.to_thread(is_private_address, host):
            logger.warning("Blocked request to private address %s", host)
            await route.abort("blockedbyclient")
            return
        if not host or not route.request.is_navigation_request():
            await route.continue_()
            return
        try:
            response = await route.fetch(max_redirects=0)
        except PlaywrightError as exc:
            # Let the browser make the request itself and report its own
            # network error code.
            logger.debug("Guarded fetch of %s failed: %s", route.request.url, exc)
            await route.continue_()
            return
        await route.fulfill(response=response)

    await page.route("**/*", _check)


async def load_url(
    page: Page,
    url: str,
    *,
    wait_for_dynamic_content: bool = False,
    timeout_ms: Optional[int] = None,
    settle_ms: Optional[int] = None,
) -> None:
    """Navigate *page* to *url* and wait until it is ready to print.

    Raises:
        NavigationTimeout: the readiness condition was not met in time.
        NavigationFailed: DNS, connection, TLS or other network failure.
    """
    timeout_ms = config.NAVIGATION_TIMEOUT_MS if timeout_ms is None else timeout_ms
    settle_ms = config.DYNAMIC_SETTLE_MS if settle_ms is None else settle_ms

    try:
        await page.goto(url, wait_until=_wait_until(wait_for_dynamic_content), timeout=timeout_ms)
    except PlaywrightTimeoutError as exc:
        logger.warning("Navigation timed out for %s", url)
        raise NavigationTimeout(details=str(exc)) from exc
    except PlaywrightError as exc:
        match = _NET_ERROR_RE.search(exc.message or "")
        net_error = match.group(1) if match else None
        logger.warning("Navigation failed for %s (%s)", url, net_error or "no net error code")
        raise NavigationFailed.from_net_error(net_error, details=exc.message) from exc

    await _settle(page, wait_for_dynamic_content, settle_ms)


def decode_html(content: bytes) -> str:
    """Decode an uploaded document as UTF-8, tolerating a byte-order mark."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ContentDecodeError(details=str(exc)) from exc


async def load_html(
    page: Page,
    content: bytes,
    *,
    wait_for_dynamic_content: bool = False,
    timeout_ms: Optional[int] = None,
    settle_ms: Optional[int] = None,
) -> None:
    """Inject uploaded HTML as the document of *page*.

    Raises:
        ContentDecodeError: *content* is not valid UTF-8.
        NavigationTimeout: sub-resources did not finish loading in time.
        NavigationFailed: the engine rejected the document.
    """
    timeout_ms = config.NAVIGATION_TIMEOUT_MS if timeout_ms is None else timeout_ms
    settle_ms = config.DYNAMIC_SETTLE_MS if settle_ms is None else settle_ms

    html = decode_html(content)
    try:
        await page.set_content(html, wait_until=_wait_until(wait_for_dynamic_content), timeout=timeout_ms)
    except PlaywrightTimeoutError as exc:
        logger.warning("Timed out loading uploaded HTML")
        raise NavigationTimeout(details=str(exc)) from exc
    except PlaywrightError as exc:
        logger.warning("Failed to load uploaded HTML: %s", exc.message)
        raise NavigationFailed(details=exc.message) from exc

    await _settle(page, wait_for_dynamic_content, settle_ms)


def _write_temp_html(content: bytes) -> Path:
    fd, name = tempfile.mkstemp(prefix="upload-", suffix=".html")
    with os.fdopen(fd, "wb") as fh:
        fh.write(content)
    return Path(name)


@asynccontextmanager
async def staged_upload(content: bytes) -> AsyncIterator[Path]:
    """Write *content* to a temporary ``.html`` file, removed on exit.

    Removal errors are logged and never replace an error raised inside the
    ``async with`` block.
    """
    # Validate before anything touches the disk.
    decode_html(content)
    path = await asyncio.to_thread(_write_temp_html, content)
    try:
        yield path
    finally:
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove staged upload %s: %s", path, exc)


async def load_file(
    page: Page,
    path: Path,
    *,
    wait_for_dynamic_content: bool = False,
    timeout_ms: Optional[int] = None,
    settle_ms: Optional[int] = None,
) -> None:
    """Load a staged upload through its ``file://`` URL."""
    await load_url(
        page,
        path.resolve().as_uri(),
        wait_for_dynamic_content=wait_for_dynamic_content,
        timeout_ms=timeout_ms,
        settle_ms=settle_ms,
    )
