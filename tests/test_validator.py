"""Tests for app.services.validator.validate_request."""

import socket
from unittest.mock import patch

import pytest

from app.services.errors import InvalidURL, MissingParameter, PayloadTooLarge, UnsupportedFileType
from app.services.validator import UploadedFile, is_html_upload, is_private_address, validate_request

_HTML = UploadedFile(filename="page.html", content_type="text/html", content=b"<h1>Hello</h1>")


class TestUrlSource:
    def test_valid_https_url(self):
        request = validate_request("url", url="https://example.com/page")
        assert request.source_type == "url"
        assert request.url == "https://example.com/page"
        assert request.file_content is None

    def test_url_is_stripped(self):
        assert validate_request("url", url="  http://example.com  ").url == "http://example.com"

    def test_type_is_case_insensitive(self):
        assert validate_request("URL", url="http://example.com").source_type == "url"

    def test_ftp_url_rejected(self):
        with pytest.raises(InvalidURL):
            validate_request("url", url="ftp://x")

    def test_javascript_url_rejected(self):
        with pytest.raises(InvalidURL):
            validate_request("url", url="javascript:alert(1)")

    def test_missing_hostname_rejected(self):
        with pytest.raises(InvalidURL):
            validate_request("url", url="http://")

    def test_missing_url(self):
        with pytest.raises(MissingParameter):
            validate_request("url")

    def test_blank_url(self):
        with pytest.raises(MissingParameter):
            validate_request("url", url="   ")

    def test_private_address_blocked_when_enabled(self):
        with patch("app.services.validator.is_private_address", return_value=True):
            with pytest.raises(InvalidURL):
                validate_request("url", url="http://internal.local", block_private=True)

    def test_private_address_allowed_by_default(self):
        with patch("app.services.validator.is_private_address", return_value=True) as check:
            validate_request("url", url="http://localhost:8000", block_private=False)
        check.assert_not_called()


@pytest.mark.parametrize(
    "host, internal",
    [
        ("127.0.0.1", True),
        ("10.1.2.3", True),
        ("169.254.169.254", True),
        ("100.64.0.1", True),
        ("0.0.0.0", True),
        ("::1", True),
        ("::ffff:10.0.0.1", True),
        ("8.8.8.8", False),
        ("2001:4860:4860::8888", False),
    ],
)
def test_is_private_address_literals(host, internal):
    assert is_private_address(host) is internal


def test_unresolvable_host_is_not_private():
    with patch("app.services.validator.socket.getaddrinfo", side_effect=socket.gaierror("nope")):
        assert is_private_address("nope.invalid") is False


class TestFileSource:
    def test_valid_upload(self):
        request = validate_request("file", upload=_HTML)
        assert request.source_type == "file"
        assert request.file_content == b"<h1>Hello</h1>"
        assert request.file_name == "page.html"
        assert request.url is None

    def test_missing_upload(self):
        with pytest.raises(MissingParameter):
            validate_request("file")

    def test_url_without_upload_is_still_missing(self):
        with pytest.raises(MissingParameter):
            validate_request("file", url="https://example.com")

    def test_empty_upload(self):
        with pytest.raises(MissingParameter):
            validate_request("file", upload=_HTML._replace(content=b""))

    def test_non_html_upload_rejected(self):
        upload = UploadedFile(filename="report.pdf", content_type="application/pdf", content=b"%PDF")
        with pytest.raises(UnsupportedFileType):
            validate_request("file", upload=upload)

    def test_oversized_upload_rejected(self):
        with pytest.raises(PayloadTooLarge):
            validate_request("file", upload=_HTML, max_bytes=5)

    def test_upload_at_limit_accepted(self):
        assert validate_request("file", upload=_HTML, max_bytes=len(_HTML.content)).source_type == "file"


class TestIsHtmlUpload:
    def test_content_type_with_charset(self):
        assert is_html_upload(UploadedFile("blob", "text/html; charset=utf-8", b"x"))

    def test_xhtml_content_type(self):
        assert is_html_upload(UploadedFile(None, "application/xhtml+xml", b"x"))

    def test_extension_when_content_type_generic(self):
        assert is_html_upload(UploadedFile("INDEX.HTM", "application/octet-stream", b"x"))

    def test_plain_text_rejected(self):
        assert not is_html_upload(UploadedFile("notes.txt", "text/plain", b"x"))


class TestTypeField:
    def test_missing_type(self):
        with pytest.raises(MissingParameter):
            validate_request(None, url="https://example.com")

    def test_unknown_type(self):
        with pytest.raises(MissingParameter):
            validate_request("image", url="https://example.com")

    def test_malformed_settings_do_not_fail(self):
        request = validate_request("url", url="https://example.com", settings="{not json")
        assert request.settings.page_size == "A4"
        assert request.settings.margins == "small"
