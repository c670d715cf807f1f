from typing import Literal, Optional

from pydantic import BaseModel, Field

from app.models.settings import ConversionSettings

SourceType = Literal["url", "file"]


class ConversionRequest(BaseModel):
    """A validated conversion request.

    Exactly one of ``url`` / ``file_content`` is populated, selected by
    ``source_type``.
    """

    source_type: SourceType
    url: Optional[str] = None
    file_content: Optional[bytes] = None
    file_name: Optional[str] = None
    content_type: Optional[str] = None
    settings: ConversionSettings = Field(default_factory=ConversionSettings)
