"""Certificate Generator Module.

Draws text onto a certificate template image using Pillow and exports the page as PDF.

Key features:
- Template and font are loaded from bytes (no paths inside the renderer)
- Text measured with the font's advance width so centering matches drawing
- Coordinates are bottom-up page coordinates, converted for Pillow internally
"""

from __future__ import annotations

import io
from typing import Dict, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from teamcert.errors import TemplateError

DEFAULT_TEXT_COLOR: Tuple[int, int, int] = (237, 230, 209)
DEFAULT_PDF_RESOLUTION = 300.0


class CertificateGenerator:
    """Render one certificate page from an image template."""

    def __init__(
        self,
        template_bytes: bytes,
        font_bytes: Optional[bytes] = None,
        color: Tuple[int, int, int] = DEFAULT_TEXT_COLOR,
        resolution: float = DEFAULT_PDF_RESOLUTION,
    ):
        try:
            with Image.open(io.BytesIO(template_bytes)) as img_in:
                self._image = img_in.convert("RGBA")
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise TemplateError(f"Template image could not be decoded: {e}") from e

        self._draw = ImageDraw.Draw(self._image)
        self._font_bytes = font_bytes
        self._fonts: Dict[int, ImageFont.FreeTypeFont] = {}
        self.color = color
        self.resolution = resolution

        # Fail on a bad font now rather than halfway through drawing.
        self._font(12)

    @property
    def page_size(self) -> Tuple[int, int]:
        return self._image.size

    def _font(self, size: int) -> ImageFont.FreeTypeFont:
        font = self._fonts.get(size)
        if font is None:
            try:
                if self._font_bytes is None:
                    font = ImageFont.load_default(size=size)
                else:
                    font = ImageFont.truetype(io.BytesIO(self._font_bytes), size=size)
            except (OSError, ValueError) as e:
                raise TemplateError(f"Font could not be loaded: {e}") from e
            self._fonts[size] = font
        return font

    def text_width(self, text: str, size: int) -> float:
        return float(self._font(size).getlength(text))

    def draw_text(self, text: str, x: float, y: float, size: int) -> None:
        """Draw ``text`` with its left baseline at (x, y), y measured from the bottom edge."""
        _, height = self._image.size
        self._draw.text(
            (x, height - y),
            text,
            font=self._font(size),
            fill=self.color + (255,),
            anchor="ls",
        )

    def to_pdf_bytes(self) -> bytes:
        # Convert to RGB before saving as PDF (Pillow PDF export)
        background = Image.new("RGB", self._image.size, (255, 255, 255))
        background.paste(self._image, mask=self._image.split()[-1])

        buffer = io.BytesIO()
        try:
            background.save(buffer, "PDF", resolution=self.resolution)
        except (OSError, ValueError) as e:
            raise TemplateError(f"Certificate could not be saved as PDF: {e}") from e
        return buffer.getvalue()
