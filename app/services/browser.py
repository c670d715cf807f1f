"""Shared headless Chromium instance and per-request rendering sessions."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from app import config
from app.services.errors import ConversionError, FatalStartupError, RenderFailed

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    # --no-sandbox is required when running as root inside a container
    # (Docker drops the user namespace needed by Chromium's sandbox).
    # Loaded pages then run with the browser process's privileges, so in
    # non-containerised environments omit this flag and rely on the
    # OS-level sandbox instead.
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class BrowserEngine:
    """Owns one Chromium process shared by all requests.

    The browser is launched lazily, at most once, even when several requests
    race to use it. Each call to :meth:`session` gets its own browser context
    and page; contexts are never reused.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        executable_path: Optional[str] = None,
        launch_args: Optional[List[str]] = None,
        max_concurrent: int = 5,
    ) -> None:
        self.headless = headless
        self.executable_path = executable_path
        self.launch_args = list(LAUNCH_ARGS if launch_args is None else launch_args)

        self._launch_lock = asyncio.Lock()
        self._slots = asyncio.Semaphore(max_concurrent)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._startup_error: Optional[FatalStartupError] = None
        self._active = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @classmethod
    def from_config(cls) -> "BrowserEngine":
        return cls(
            headless=config.BROWSER_HEADLESS,
            executable_path=config.CHROMIUM_EXECUTABLE_PATH,
            max_concurrent=config.MAX_CONCURRENT_CONVERSIONS,
        )

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def active_sessions(self) -> int:
        return self._active

    async def start(self) -> Browser:
        """Launch Chromium if it is not running yet and return it.

        A browser that has lost its connection (crashed or killed) is
        discarded and launched again.

        Raises:
            FatalStartupError: if the browser cannot be launched.
        """
        if self.is_running:
            return self._browser

        async with self._launch_lock:
            if self.is_running:
                return self._browser
            # A failed launch is not retried per request.
            if self._startup_error is not None:
                raise self._startup_error
            if self._browser is not None:
                logger.warning("Chromium is no longer connected, relaunching")
                await self._release()

            logger.info("Launching Chromium", extra={"headless": self.headless})
            playwright = None
            try:
                playwright = await async_playwright().start()
                self._browser = await playwright.chromium.launch(
                    headless=self.headless,
                    executable_path=self.executable_path,
                    args=self.launch_args,
                )
            except Exception as exc:
                logger.error("Chromium failed to launch: %s", exc)
                if playwright is not None:
                    await playwright.stop()
                self._startup_error = FatalStartupError(details=str(exc))
                raise self._startup_error from exc

            self._playwright = playwright
            return self._browser

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Page]:
        """Yield a fresh page; its context is closed exactly once on exit."""
        browser = await self.start()

        async with self._slots:
            self._active += 1
            self._idle.clear()
            try:
                try:
                    context = await browser.new_context()
                except PlaywrightError as exc:
                    raise _session_error(browser, exc) from exc
                try:
                    try:
                        page = await context.new_page()
                    except PlaywrightError as exc:
                        raise _session_error(browser, exc) from exc
                    yield page
                finally:
                    try:
                        await context.close()
                    except Exception as exc:
                        logger.warning("Failed to close browser context: %s", exc)
            finally:
                self._active -= 1
                if self._active == 0:
                    self._idle.set()

    async def shutdown(self, grace: float = 0.0) -> None:
        """Close the browser after waiting up to *grace* seconds for open sessions."""
        if self._active and grace > 0:
            logger.info("Waiting for %d active session(s) before shutdown", self._active)
            try:
                await asyncio.wait_for(self._idle.wait(), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning("Shutdown grace period elapsed with %d session(s) open", self._active)

        await self._release()
        logger.info("Browser engine shut down")

    async def _release(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None

        if browser is not None:
            try:
                await browser.close()
            except Exception as exc:
                logger.warning("Failed to close Chromium: %s", exc)
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as exc:
                logger.warning("Failed to stop Playwright: %s", exc)


def _session_error(browser: Browser, exc: PlaywrightError) -> ConversionError:
    if not browser.is_connected():
        return FatalStartupError(details=str(exc))
    return RenderFailed(details=str(exc))
