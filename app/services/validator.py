"""Request validation: raw endpoint fields → :class:`ConversionRequest`.

Nothing here touches the browser; every failure is raised before a session
is acquired.
"""

import ipaddress
import json
import logging
import socket
from typing import Any, Mapping, NamedTuple, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from app import config
from app.models.request import ConversionRequest
from app.models.settings import ConversionSettings
from app.services.errors import InvalidURL, MissingParameter, PayloadTooLarge, UnsupportedFileType

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = {"http", "https"}
HTML_CONTENT_TYPES = {"text/html", "application/xhtml+xml"}
HTML_EXTENSIONS = (".html", ".htm", ".xhtml")


class UploadedFile(NamedTuple):
    filename: Optional[str]
    content_type: Optional[str]
    content: bytes


def parse_settings(raw: Any) -> ConversionSettings:
    """Parse the optional ``settings`` field.

    Accepts ``None``, a JSON string/bytes, or an already-decoded mapping.
    Malformed input never fails the request: it yields default settings.
    """
    if raw is None or raw == "" or raw == b"":
        return ConversionSettings()

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring malformed settings JSON", extra={"settings": str(raw)[:200]})
            return ConversionSettings()

    if not isinstance(raw, Mapping):
        logger.debug("Ignoring non-object settings value", extra={"settings": str(raw)[:200]})
        return ConversionSettings()

    try:
        return ConversionSettings.model_validate(dict(raw))
    except ValidationError:
        # Field validators coerce unknown values; this only guards odd key types.
        return ConversionSettings()


def is_private_address(hostname: str) -> bool:
    """Return True if *hostname* is, or resolves to, a non-public address.

    Names that do not resolve count as public; the browser reports those
    itself when it tries to connect.
    """
    try:
        infos = socket.getaddrinfo(hostname, None, proto=socket.IPPROTO_TCP)
    except (socket.gaierror, UnicodeError):
        return False
    return any(_is_internal(info[4][0]) for info in infos)


def _is_internal(raw_ip: str) -> bool:
    try:
        addr = ipaddress.ip_address(raw_ip.split("%")[0])
    except ValueError:
        return False
    # ::ffff:10.0.0.1 reaches the same host as 10.0.0.1
    mapped = getattr(addr, "ipv4_mapped", None)
    if mapped is not None:
        addr = mapped
    return not addr.is_global or addr.is_multicast


def validate_url(url: Optional[str], *, block_private: bool = False) -> str:
    """Return the stripped *url* or raise :class:`MissingParameter` / :class:`InvalidURL`."""
    if url is None or not url.strip():
        raise MissingParameter("URL is required when type is 'url'.")

    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidURL(details=f"Scheme '{parsed.scheme}' is not allowed.")
    if not parsed.hostname:
        raise InvalidURL(details="URL must have a valid hostname.")
    if block_private and is_private_address(parsed.hostname):
        raise InvalidURL("Requests to private/internal addresses are not allowed.")
    return url


def is_html_upload(upload: UploadedFile) -> bool:
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type in HTML_CONTENT_TYPES:
        return True
    return bool(upload.filename) and upload.filename.lower().endswith(HTML_EXTENSIONS)


def validate_upload(upload: Optional[UploadedFile], *, max_bytes: int) -> UploadedFile:
    if upload is None:
        raise MissingParameter("An HTML file is required when type is 'file'.")
    if len(upload.content) > max_bytes:
        raise PayloadTooLarge(details=f"{len(upload.content)} bytes exceeds the {max_bytes} byte limit.")
    if not is_html_upload(upload):
        raise UnsupportedFileType(
            details=f"filename={upload.filename!r} content_type={upload.content_type!r}"
        )
    if not upload.content:
        raise MissingParameter("The uploaded HTML file is empty.")
    return upload


def validate_request(
    source_type: Optional[str],
    *,
    url: Optional[str] = None,
    upload: Optional[UploadedFile] = None,
    settings: Any = None,
    max_bytes: Optional[int] = None,
    block_private: Optional[bool] = None,
) -> ConversionRequest:
    """Build a :class:`ConversionRequest` from raw endpoint fields.

    Raises:
        MissingParameter: ``type`` is absent/unknown, or the source it names
            was not supplied.
        InvalidURL: the URL is not an http(s) URL with a hostname.
        UnsupportedFileType: the upload is not HTML.
        PayloadTooLarge: the upload exceeds *max_bytes*.
    """
    if max_bytes is None:
        max_bytes = config.MAX_UPLOAD_BYTES
    if block_private is None:
        block_private = config.BLOCK_PRIVATE_ADDRESSES

    kind = (source_type or "").strip().lower()
    parsed_settings = parse_settings(settings)

    if kind == "url":
        return ConversionRequest(
            source_type="url",
            url=validate_url(url, block_private=block_private),
            settings=parsed_settings,
        )

    if kind == "file":
        upload = validate_upload(upload, max_bytes=max_bytes)
        return ConversionRequest(
            source_type="file",
            file_content=upload.content,
            file_name=upload.filename,
            content_type=upload.content_type,
            settings=parsed_settings,
        )

    raise MissingParameter("Missing or unknown conversion type. Use 'url' or 'file'.")
