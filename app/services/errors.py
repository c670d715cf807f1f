"""Typed conversion errors.

Each lifecycle step raises the subclass that describes what went wrong; the
application boundary turns it into an HTTP response without inspecting the
underlying engine error again.
"""

from typing import Optional


class ConversionError(Exception):
    """Base class for every error the conversion endpoint reports to callers."""

    status_code = 500
    message = "Conversion failed. Please try again."

    def __init__(self, message: Optional[str] = None, *, details: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        self.details = details
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__


# ---------------------------------------------------------------------------
# Validation errors (raised before any browser session is acquired)
# ---------------------------------------------------------------------------

class MissingParameter(ConversionError):
    status_code = 400
    message = "Please provide either a URL or an HTML file."


class InvalidURL(ConversionError):
    status_code = 400
    message = "Invalid URL. Please provide a URL starting with http:// or https://."


class UnsupportedFileType(ConversionError):
    status_code = 400
    message = "Unsupported file type. Please upload an HTML file (.html or .htm)."


class PayloadTooLarge(ConversionError):
    status_code = 413
    message = "The uploaded content exceeds the maximum allowed size."


# ---------------------------------------------------------------------------
# Engine / conversion errors
# ---------------------------------------------------------------------------

class FatalStartupError(ConversionError):
    message = "The rendering engine is unavailable."


class NavigationFailed(ConversionError):
    """The page could not be reached.

    ``reason`` is one of ``"dns"``, ``"refused"``, ``"tls"``, ``"blocked"`` or
    ``"other"``.
    """

    _MESSAGES = {
        "dns": "Website not found. Please check the URL and try again.",
        "refused": "Could not connect to the website. The site may be down or blocking access.",
        "tls": "The website's security certificate could not be verified.",
        "blocked": "Requests to private/internal addresses are not allowed.",
        "other": "Failed to load the page. Please check the URL and try again.",
    }

    # Chromium network error codes, as reported in ``net::ERR_*`` tokens.
    _NET_ERROR_REASONS = {
        "ERR_NAME_NOT_RESOLVED": "dns",
        "ERR_NAME_RESOLUTION_FAILED": "dns",
        "ERR_ADDRESS_UNREACHABLE": "refused",
        "ERR_CONNECTION_REFUSED": "refused",
        "ERR_CONNECTION_RESET": "refused",
        "ERR_CONNECTION_CLOSED": "refused",
        "ERR_CONNECTION_FAILED": "refused",
        "ERR_EMPTY_RESPONSE": "refused",
        "ERR_BLOCKED_BY_RESPONSE": "refused",
        "ERR_CERT_AUTHORITY_INVALID": "tls",
        "ERR_CERT_COMMON_NAME_INVALID": "tls",
        "ERR_CERT_DATE_INVALID": "tls",
        "ERR_SSL_PROTOCOL_ERROR": "tls",
        "ERR_SSL_VERSION_OR_CIPHER_MISMATCH": "tls",
        "ERR_BLOCKED_BY_CLIENT": "blocked",
    }

    def __init__(self, reason: str = "other", *, details: Optional[str] = None) -> None:
        self.reason = reason if reason in self._MESSAGES else "other"
        super().__init__(self._MESSAGES[self.reason], details=details)

    @classmethod
    def from_net_error(cls, net_error: Optional[str], *, details: Optional[str] = None) -> "NavigationFailed":
        """Build from a Chromium ``ERR_*`` code (``None`` when the engine gave none)."""
        reason = cls._NET_ERROR_REASONS.get(net_error or "", "other")
        if reason == "other" and net_error and net_error.startswith(("ERR_CERT_", "ERR_SSL_")):
            reason = "tls"
        return cls(reason, details=details)


class NavigationTimeout(ConversionError):
    message = "Conversion timed out while loading the page. The page may be too slow or too large."


class ContentDecodeError(ConversionError):
    message = "The uploaded file could not be read as UTF-8 HTML."


class RenderTimeout(ConversionError):
    message = "Conversion timed out. The page may be too complex to render."


class RenderFailed(ConversionError):
    message = "Failed to generate the PDF."


class InternalError(ConversionError):
    message = "Conversion failed. Please try again."
