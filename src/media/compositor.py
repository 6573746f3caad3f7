"""
Branding compositor for generated lifestyle images.

Draws, in one pass and in this order: the base image, an optional logo and
business name in the top-left corner, and a price pill in the bottom-right
corner. All branding sizes are expressed against a 1000px reference width and
scaled with the base image.
"""
import io
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple, Union

import requests
from PIL import Image, ImageDraw, ImageFilter, ImageFont

from src.media.image_encoding import InlineImage, load_image_bytes
from src.shared.logging_utils import warning as log_warning
from src.specs.common.errors import MerchantAIError

ImageSource = Union[bytes, InlineImage, str]
Box = Tuple[float, float, float, float]

REFERENCE_WIDTH = 1000.0
BRANDING_OFFSET = 40.0
BRANDING_GAP = 20.0
LOGO_SIZE = 120.0
LOGO_SHADOW = (0.5, 10.0)
NAME_FONT_SIZE = 40.0
NAME_SHADOW = (0.8, 8.0)
PRICE_FONT_RATIO = 0.05
PRICE_MIN_FONT = 20.0
PRICE_PADDING_RATIO = 0.6
PRICE_ANCHOR_RATIO = 0.95
PRICE_SHADOW = (0.3, 10.0)
PILL_RADIUS = 12
PRICE_COLOR = "#4f46e5"

_BOLD_FONTS: Sequence[str] = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",
    "/Library/Fonts/Arial Bold.ttf",
    "DejaVuSans-Bold.ttf",
    "arialbd.ttf",
)


@dataclass(frozen=True)
class CompositionResult:
    png: bytes
    size: Tuple[int, int]
    filename: str
    logo_box: Optional[Box] = None
    name_position: Optional[Tuple[float, float]] = None
    price_box: Optional[Box] = None


def download_filename(product_name: str) -> str:
    slug = re.sub(r"\s+", "-", product_name or "").lower()
    return f"merchant-ai-{slug}.png"


def logo_draw_size(logo_width: int, logo_height: int, scale: float) -> Tuple[float, float]:
    """Fit a logo into the reference box, capping tall logos by height."""
    size = LOGO_SIZE * scale
    aspect = logo_width / logo_height
    draw_width = size
    draw_height = size / aspect
    if draw_height > size:
        draw_height = size
        draw_width = size * aspect
    return draw_width, draw_height


def price_font_size(image_width: int) -> float:
    return max(PRICE_MIN_FONT, image_width * PRICE_FONT_RATIO)


def price_pill_box(text_width: float, font_size: float, image_width: int, image_height: int) -> Box:
    padding = font_size * PRICE_PADDING_RATIO
    x = image_width * PRICE_ANCHOR_RATIO
    y = image_height * PRICE_ANCHOR_RATIO
    left = x - text_width - padding * 2
    top = y - font_size - padding
    return (left, top, left + text_width + padding * 2, top + font_size + padding * 1.5)


def _pick_font(size: float) -> ImageFont.ImageFont:
    px = max(1, int(round(size)))
    for name in _BOLD_FONTS:
        try:
            return ImageFont.truetype(name, size=px)
        except OSError:
            continue
    return ImageFont.load_default(size=px)


def _cast_shadow(canvas: Image.Image, paint: Callable[[Image.Image], None], blur: float) -> None:
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    paint(layer)
    if blur > 0:
        # canvas shadowBlur is roughly twice the gaussian sigma
        layer = layer.filter(ImageFilter.GaussianBlur(blur / 2))
    canvas.alpha_composite(layer)


def _shadow_rgba(opacity: float) -> Tuple[int, int, int, int]:
    return (0, 0, 0, int(round(255 * opacity)))


class Compositor:
    """Pillow renderer for the branded download image."""

    def __init__(self, trace_id: Optional[str] = None) -> None:
        self._trace_id = trace_id

    def compose(
        self,
        base_image: Optional[ImageSource],
        logo_image: Optional[ImageSource] = None,
        business_name: Optional[str] = None,
        price_text: str = "",
        product_name: str = "",
    ) -> Optional[CompositionResult]:
        """Render the composition, or return None when there is no usable base image."""
        if not base_image:
            return None
        base = self._load(base_image, "base")
        if base is None:
            return None

        width, height = base.size
        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        canvas.alpha_composite(base)

        scale = width / REFERENCE_WIDTH
        branding_x = BRANDING_OFFSET * scale
        branding_y = BRANDING_OFFSET * scale

        logo_box: Optional[Box] = None
        if logo_image:
            logo = self._load(logo_image, "logo")
            if logo is not None:
                logo_box = self._draw_logo(canvas, logo, branding_x, branding_y, scale)
                branding_y += (logo_box[3] - logo_box[1]) + BRANDING_GAP * scale

        name_position: Optional[Tuple[float, float]] = None
        if business_name:
            name_position = self._draw_business_name(canvas, business_name, branding_x, branding_y, scale)

        price_box = self._draw_price_tag(canvas, price_text or "")

        buf = io.BytesIO()
        canvas.save(buf, format="PNG")
        return CompositionResult(
            png=buf.getvalue(),
            size=(width, height),
            filename=download_filename(product_name),
            logo_box=logo_box,
            name_position=name_position,
            price_box=price_box,
        )

    def _load(self, source: ImageSource, role: str) -> Optional[Image.Image]:
        try:
            if isinstance(source, InlineImage):
                raw = source.raw_bytes()
            elif isinstance(source, str):
                raw = load_image_bytes(source).raw_bytes()
            else:
                raw = bytes(source)
            with Image.open(io.BytesIO(raw)) as img:
                img.load()
                return img.convert("RGBA")
        except (OSError, ValueError, Image.DecompressionBombError, MerchantAIError, requests.RequestException) as exc:
            log_warning(self._trace_id, f"compose:{role}_unreadable", error=str(exc))
            return None

    def _draw_logo(self, canvas: Image.Image, logo: Image.Image, x: float, y: float, scale: float) -> Box:
        draw_width, draw_height = logo_draw_size(logo.width, logo.height, scale)
        size = (max(1, int(round(draw_width))), max(1, int(round(draw_height))))
        resized = logo.resize(size, Image.Resampling.LANCZOS)
        dest = (int(round(x)), int(round(y)))
        opacity, blur = LOGO_SHADOW

        def paint(layer: Image.Image) -> None:
            shadow = Image.new("RGBA", resized.size, (0, 0, 0, 0))
            alpha = resized.split()[3]
            shadow.putalpha(alpha.point(lambda p: int(p * opacity)))
            layer.paste(shadow, dest)

        _cast_shadow(canvas, paint, blur * scale)
        canvas.alpha_composite(resized, dest=dest)
        return (x, y, x + draw_width, y + draw_height)

    def _draw_business_name(self, canvas: Image.Image, name: str, x: float, y: float, scale: float) -> Tuple[float, float]:
        font = _pick_font(NAME_FONT_SIZE * scale)
        opacity, blur = NAME_SHADOW

        def paint(layer: Image.Image) -> None:
            ImageDraw.Draw(layer).text((x, y), name, font=font, fill=_shadow_rgba(opacity), anchor="la")

        _cast_shadow(canvas, paint, blur * scale)
        ImageDraw.Draw(canvas).text((x, y), name, font=font, fill="white", anchor="la")
        return (x, y)

    def _draw_price_tag(self, canvas: Image.Image, price_text: str) -> Box:
        width, height = canvas.size
        font_size = price_font_size(width)
        font = _pick_font(font_size)
        draw = ImageDraw.Draw(canvas)
        text_width = draw.textlength(price_text, font=font)
        box = price_pill_box(text_width, font_size, width, height)
        opacity, blur = PRICE_SHADOW

        def fill_pill(target: ImageDraw.ImageDraw, fill) -> None:
            rounded = getattr(target, "rounded_rectangle", None)
            if rounded is not None:
                rounded(box, radius=PILL_RADIUS, fill=fill)
            else:
                target.rectangle(box, fill=fill)

        _cast_shadow(canvas, lambda layer: fill_pill(ImageDraw.Draw(layer), _shadow_rgba(opacity)), blur)
        draw = ImageDraw.Draw(canvas)
        fill_pill(draw, "white")

        padding = font_size * PRICE_PADDING_RATIO
        anchor_x = width * PRICE_ANCHOR_RATIO - padding
        anchor_y = height * PRICE_ANCHOR_RATIO
        draw.text((anchor_x, anchor_y), price_text, font=font, fill=PRICE_COLOR, anchor="rd")
        return box


def compose(
    base_image: Optional[ImageSource],
    logo_image: Optional[ImageSource] = None,
    business_name: Optional[str] = None,
    price_text: str = "",
    product_name: str = "",
    *,
    trace_id: Optional[str] = None,
) -> Optional[CompositionResult]:
    return Compositor(trace_id).compose(base_image, logo_image, business_name, price_text, product_name)


__all__ = [
    "Compositor",
    "CompositionResult",
    "compose",
    "download_filename",
    "logo_draw_size",
    "price_font_size",
    "price_pill_box",
]
