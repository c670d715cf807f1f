from fastapi import Request

from app.services.browser import BrowserEngine


def get_engine(request: Request) -> BrowserEngine:
    """Return the browser engine owned by the running application."""
    return request.app.state.engine
