"""Download filename generation for converted PDFs."""

import re
import unicodedata
from typing import Optional

DEFAULT_FILENAME = "converted.pdf"
_MAX_STEM_LENGTH = 100


def pdf_filename(upload_name: Optional[str] = None) -> str:
    """Return a safe ``<stem>.pdf`` name derived from *upload_name*.

    The stem is ASCII-only and keeps letters, digits, dots, underscores and
    hyphens; anything else collapses to a single hyphen. Directory components
    and the original extension are dropped. Falls back to
    :data:`DEFAULT_FILENAME` when nothing usable remains.
    """
    if not upload_name:
        return DEFAULT_FILENAME

    # Browsers on Windows may send the full client path.
    base = re.split(r"[\\/]", upload_name)[-1]
    base = re.sub(r"\.[^.]*$", "", base)

    stem = unicodedata.normalize("NFKD", base)
    stem = stem.encode("ascii", "ignore").decode("ascii")
    stem = re.sub(r"[^A-Za-z0-9._-]+", "-", stem)
    stem = stem[:_MAX_STEM_LENGTH].strip(".-_")

    return f"{stem}.pdf" if stem else DEFAULT_FILENAME
