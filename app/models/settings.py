from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

PageSize = Literal["A4", "Letter", "Legal", "Tabloid"]
Orientation = Literal["portrait", "landscape"]
MarginLevel = Literal["none", "small", "medium", "large"]

_PAGE_SIZES = {"a4": "A4", "letter": "Letter", "legal": "Legal", "tabloid": "Tabloid"}
_ORIENTATIONS = {"portrait", "landscape"}
_MARGIN_LEVELS = {"none", "small", "medium", "large"}
_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


class ConversionSettings(BaseModel):
    """User-facing print settings.

    Every field is optional. Values that are not recognised fall back to the
    field default instead of failing validation, so a sloppy client never
    loses a conversion over a typo in ``settings``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    page_size: PageSize = Field(default="A4", alias="pageSize")
    orientation: Orientation = "portrait"
    margins: MarginLevel = "small"
    include_background: bool = Field(default=False, alias="includeBackground")
    wait_for_dynamic_content: bool = Field(default=False, alias="waitForDynamicContent")

    @field_validator("page_size", mode="before")
    @classmethod
    def _coerce_page_size(cls, value: Any) -> str:
        if isinstance(value, str):
            return _PAGE_SIZES.get(value.strip().lower(), "A4")
        return "A4"

    @field_validator("orientation", mode="before")
    @classmethod
    def _coerce_orientation(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in _ORIENTATIONS:
            return value.strip().lower()
        return "portrait"

    @field_validator("margins", mode="before")
    @classmethod
    def _coerce_margins(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in _MARGIN_LEVELS:
            return value.strip().lower()
        return "small"

    @field_validator("include_background", "wait_for_dynamic_content", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        # Anything else (numbers, null, objects) means "use the default".
        return False
