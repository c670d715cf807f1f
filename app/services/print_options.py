"""Translate user-facing :class:`ConversionSettings` into renderer print options.

All lengths are CSS pixels at 96 px per inch, the unit Chromium uses for
``page.pdf``. Keeping one unit for both the page table and the margin table
means a named margin level is the same physical size on every path.
"""

from typing import Dict, NamedTuple

from app.models.settings import ConversionSettings

PX_PER_INCH = 96

# Portrait (width, height) in CSS pixels.
PAGE_DIMENSIONS: Dict[str, tuple] = {
    "A4": (794, 1123),  # 210 × 297 mm
    "Letter": (816, 1056),  # 8.5 × 11 in
    "Legal": (816, 1344),  # 8.5 × 14 in
    "Tabloid": (1056, 1632),  # 11 × 17 in
}

# Applied uniformly to all four sides.
MARGIN_PX: Dict[str, int] = {
    "none": 0,
    "small": PX_PER_INCH // 2,  # 0.5 in
    "medium": PX_PER_INCH,  # 1 in
    "large": PX_PER_INCH * 2,  # 2 in
}


class PrintOptions(NamedTuple):
    width: int
    height: int
    margin: int
    print_background: bool

    def as_pdf_kwargs(self) -> dict:
        """Keyword arguments for Playwright's ``page.pdf``."""
        margin = f"{self.margin}px"
        return {
            "width": f"{self.width}px",
            "height": f"{self.height}px",
            "margin": {"top": margin, "right": margin, "bottom": margin, "left": margin},
            "print_background": self.print_background,
        }


def build_print_options(settings: ConversionSettings) -> PrintOptions:
    width, height = PAGE_DIMENSIONS.get(settings.page_size, PAGE_DIMENSIONS["A4"])
    if settings.orientation == "landscape":
        width, height = height, width

    return PrintOptions(
        width=width,
        height=height,
        margin=MARGIN_PX.get(settings.margins, MARGIN_PX["small"]),
        print_background=settings.include_background,
    )
