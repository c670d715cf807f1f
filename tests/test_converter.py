"""Tests for the conversion lifecycle in app.services.converter.

Failures are injected at every step after the session is acquired; the page
context must be closed exactly once and any staged upload removed, whichever
step failed.
"""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from app.models.request import ConversionRequest
from app.models.settings import ConversionSettings
from app.services import loader
from app.services.converter import convert
from app.services.errors import (
    ContentDecodeError,
    NavigationFailed,
    NavigationTimeout,
    RenderFailed,
    RenderTimeout,
)

pytestmark = pytest.mark.asyncio


def _url_request(**settings) -> ConversionRequest:
    return ConversionRequest(
        source_type="url", url="https://example.com", settings=ConversionSettings(**settings)
    )


def _file_request(content: bytes = b"<h1>Hello</h1>", name: str = "hello.html") -> ConversionRequest:
    return ConversionRequest(
        source_type="file", file_content=content, file_name=name, content_type="text/html"
    )


async def _hang(*args, **kwargs):
    await asyncio.sleep(10)


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------

class TestSuccess:
    async def test_url_conversion(self, make_engine, fake_pdf):
        engine, context, page = make_engine()

        result = await convert(engine, _url_request(page_size="Legal"))

        assert result.content == fake_pdf
        assert result.filename == "converted.pdf"
        page.goto.assert_awaited_once()
        assert page.pdf.await_args.kwargs["width"] == "816px"
        context.close.assert_awaited_once()

    async def test_inline_file_conversion(self, make_engine):
        engine, context, page = make_engine()

        result = await convert(engine, _file_request(), staging="memory")

        assert result.filename == "hello.pdf"
        page.set_content.assert_awaited_once()
        page.goto.assert_not_awaited()
        context.close.assert_awaited_once()

    async def test_disk_staged_file_conversion(self, make_engine):
        engine, context, page = make_engine()
        seen = {}

        async def goto(url, **kwargs):
            seen["url"] = url
            seen["existed"] = Path(url.removeprefix("file://")).exists()

        page.goto = AsyncMock(side_effect=goto)

        await convert(engine, _file_request(), staging="disk")

        assert seen["url"].startswith("file://")
        assert seen["existed"] is True
        assert not Path(seen["url"].removeprefix("file://")).exists()
        context.close.assert_awaited_once()

    async def test_dynamic_content_setting_reaches_loader(self, make_engine):
        engine, _, page = make_engine()

        with patch.object(loader.config, "DYNAMIC_SETTLE_MS", 5):
            await convert(engine, _url_request(waitForDynamicContent=True))

        assert page.goto.await_args.kwargs["wait_until"] == "networkidle"
        page.wait_for_timeout.assert_awaited_once_with(5)


    async def test_private_address_guard_installed_when_enabled(self, make_engine):
        engine, _, page = make_engine()

        await convert(engine, _url_request(), block_private=True)

        page.route.assert_awaited_once()
        assert page.route.await_args.args[0] == "**/*"

    async def test_no_guard_by_default(self, make_engine):
        engine, _, page = make_engine()

        with patch("app.services.converter.config.BLOCK_PRIVATE_ADDRESSES", False):
            await convert(engine, _url_request())

        page.route.assert_not_awaited()


# ---------------------------------------------------------------------------
# Failure injection: release happens exactly once on every path
# ---------------------------------------------------------------------------

class TestReleaseOnFailure:
    @pytest.mark.parametrize(
        "side_effect, expected",
        [
            (PlaywrightError("net::ERR_NAME_NOT_RESOLVED at https://example.com/"), NavigationFailed),
            (PlaywrightTimeoutError("Timeout 30000ms exceeded."), NavigationTimeout),
        ],
    )
    async def test_navigation_failures(self, side_effect, expected, make_engine):
        engine, context, page = make_engine()
        page.goto = AsyncMock(side_effect=side_effect)

        with pytest.raises(expected):
            await convert(engine, _url_request())

        context.close.assert_awaited_once()
        page.pdf.assert_not_awaited()
        assert engine.active_sessions == 0

    async def test_render_timeout(self, make_engine):
        engine, context, page = make_engine()
        page.pdf = _hang

        with patch("app.services.renderer.config.RENDER_TIMEOUT_S", 0.01):
            with pytest.raises(RenderTimeout):
                await convert(engine, _url_request())

        context.close.assert_awaited_once()

    async def test_render_error(self, make_engine):
        engine, context, page = make_engine()
        page.pdf = AsyncMock(side_effect=PlaywrightError("Printing failed"))

        with pytest.raises(RenderFailed):
            await convert(engine, _url_request())

        context.close.assert_awaited_once()

    async def test_unexpected_fault(self, make_engine):
        engine, context, page = make_engine()
        page.pdf = AsyncMock(side_effect=KeyError("surprise"))

        with pytest.raises(KeyError):
            await convert(engine, _url_request())

        context.close.assert_awaited_once()

    async def test_decode_error(self, make_engine):
        engine, context, _ = make_engine()

        with pytest.raises(ContentDecodeError):
            await convert(engine, _file_request(content=b"\xff\xfe\x00bad"), staging="memory")

        context.close.assert_awaited_once()

    @pytest.mark.parametrize("failing_step", ["goto", "pdf"])
    async def test_staged_upload_removed_on_failure(self, failing_step, make_engine):
        engine, context, page = make_engine()
        staged = {}

        async def goto(url, **kwargs):
            staged["path"] = Path(url.removeprefix("file://"))
            if failing_step == "goto":
                raise PlaywrightError("net::ERR_FILE_NOT_FOUND")

        page.goto = AsyncMock(side_effect=goto)
        if failing_step == "pdf":
            page.pdf = AsyncMock(side_effect=PlaywrightError("Printing failed"))

        with pytest.raises((NavigationFailed, RenderFailed)):
            await convert(engine, _file_request(), staging="disk")

        assert not staged["path"].exists()
        context.close.assert_awaited_once()


async def test_repeated_conversions_use_separate_contexts(make_engine, make_page):
    page = make_page()
    engine, _, _ = make_engine(page)

    first = await convert(engine, _url_request())
    second = await convert(engine, _url_request())

    assert first == second
    assert engine._browser.new_context.await_count == 2
