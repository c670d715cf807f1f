"""Shared fakes standing in for Playwright's Browser / BrowserContext / Page."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.browser import BrowserEngine

_FAKE_PDF = b"%PDF-1.7\n%fake document\n%%EOF"


@pytest.fixture
def fake_pdf() -> bytes:
    return _FAKE_PDF


@pytest.fixture
def make_page():
    """Factory for a fake page whose ``pdf()`` returns *pdf*."""

    def _make_page(pdf: bytes = _FAKE_PDF) -> AsyncMock:
        page = AsyncMock()
        page.pdf = AsyncMock(return_value=pdf)
        return page

    return _make_page


@pytest.fixture
def make_engine(make_page):
    """Factory returning ``(engine, context, page)`` with an already "running" fake browser."""

    def _make_engine(page: AsyncMock | None = None) -> tuple[BrowserEngine, AsyncMock, AsyncMock]:
        page = page or make_page()
        context = AsyncMock()
        context.new_page = AsyncMock(return_value=page)
        browser = AsyncMock()
        browser.new_context = AsyncMock(return_value=context)
        browser.is_connected = MagicMock(return_value=True)

        engine = BrowserEngine()
        engine._browser = browser
        return engine, context, page

    return _make_engine
