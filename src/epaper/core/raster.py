"""Page rasterization: composed Page -> opaque RGB bitmap at a fixed A4 size"""

import io
import logging
import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx
from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError, features

from epaper.core.errors import RasterizationError, SurfaceDetachedError
from epaper.core.models import ArticleCard, DocumentModel, ImageSlot, Page


logger = logging.getLogger(__name__)

A4_MM = (210, 297)
NOMINAL_DPI = 96
A4_PX = tuple(round(mm / 25.4 * NOMINAL_DPI) for mm in A4_MM)     # (794, 1123)
MIN_SCALE = 2

WHITE = (255, 255, 255)
INK = (26, 26, 26)
MUTED = (102, 102, 102)
RULE = (221, 221, 221)
ACCENT = (196, 30, 58)
PLACEHOLDER = (240, 240, 240)

FONT_DIR = Path(__file__).parent.parent / "fonts"
FONT_CANDIDATES = [
    FONT_DIR / "NotoSansBengali-Regular.ttf",
    Path("/usr/share/fonts/truetype/noto/NotoSansBengali-Regular.ttf"),
    Path("/usr/share/fonts/opentype/noto/NotoSansBengali-Regular.ttf"),
    Path("/usr/share/fonts/truetype/lohit-bengali/Lohit-Bengali.ttf"),
    Path("/usr/share/fonts/truetype/freefont/FreeSerif.ttf"),
]

# Zero-width and combining characters carry no ink on their own
_INKLESS_CATEGORIES = {"Mn", "Me", "Cf", "Cc"}


def page_pixels(scale: int) -> tuple[int, int]:
    """Snapshot size in pixels for the oversampling factor."""
    return A4_PX[0] * scale, A4_PX[1] * scale


def resolve_font(font_path: str = "") -> str:
    """The configured font, else the first installed Bengali-capable candidate, else '' (Pillow's bundled font)."""
    if font_path:
        return font_path
    for candidate in FONT_CANDIDATES:
        if candidate.is_file():
            return str(candidate)
    return ""


def _layout_engine():
    """Complex-script shaping (Bengali conjuncts) needs libraqm; fall back to basic layout without it."""
    if features.check_feature("raqm"):
        return ImageFont.Layout.RAQM
    return ImageFont.Layout.BASIC


@dataclass
class RasterPage:
    """An in-memory page snapshot keyed by page number; not persisted."""
    index: int
    image: Image.Image


class PageRenderer(ABC):
    @abstractmethod
    def render_to_bitmap(self, page: Page, size: tuple[int, int]) -> Image.Image:
        """Paint page onto a bitmap of exactly size pixels."""
        raise NotImplementedError


class ImageLoader:
    """Fetch images for page slots from local paths, file:// URIs, or http(s)."""

    def __init__(self, timeout: float = 10.0, client: httpx.Client | None = None):
        self.timeout = timeout
        self.client = client
        self._cache: dict[str, Image.Image | None] = {}

    def _read(self, uri: str) -> bytes:
        parsed = urlparse(uri)
        if parsed.scheme in ("http", "https"):
            if self.client is not None:
                response = self.client.get(uri, timeout=self.timeout, follow_redirects=True)
            else:
                response = httpx.get(uri, timeout=self.timeout, follow_redirects=True)
            response.raise_for_status()
            return response.content
        if parsed.scheme == "file":
            return Path(unquote(parsed.path)).read_bytes()
        return Path(uri).expanduser().read_bytes()

    def load(self, uri: str) -> Image.Image | None:
        """Return the decoded image, or None (logged) when it cannot be fetched or decoded."""
        if uri not in self._cache:
            try:
                image = Image.open(io.BytesIO(self._read(uri)))
                image.load()
                self._cache[uri] = image
            except (httpx.HTTPError, OSError, UnidentifiedImageError, ValueError) as e:
                logger.warning("Image %s unavailable, drawing placeholder: %s", uri, e)
                self._cache[uri] = None
        return self._cache[uri]


class _Canvas:
    """Drawing state for one page: scaled fonts, a vertical cursor, and a main/side column split."""

    MARGIN = 40
    GUTTER = 20

    def __init__(self, size: tuple[int, int], font_path: str, loader: ImageLoader):
        self.image = Image.new("RGB", size, WHITE)
        self.draw = ImageDraw.Draw(self.image)
        self.scale = size[0] / A4_PX[0]
        self.font_path = font_path
        self.loader = loader
        self._fonts: dict[tuple[int, bool], ImageFont.ImageFont] = {}
        self._coverage: dict[tuple[bool, str], bool] = {}
        self.left = self.MARGIN
        self.width = A4_PX[0] - 2 * self.MARGIN
        self.y = self.MARGIN
        self.grid_top: float | None = None
        self.main_bottom = self.side_bottom = 0.0

    # --- primitives (nominal px in, scaled px out) ---

    def font(self, size: int, bundled: bool = False):
        key = (size, bundled or not self.font_path)
        if key not in self._fonts:
            px = max(1, round(size * self.scale))
            self._fonts[key] = (
                ImageFont.load_default(size=px) if key[1]
                else ImageFont.truetype(self.font_path, px, layout_engine=_layout_engine())
            )
        return self._fonts[key]

    def _covers(self, font, bundled: bool, text: str) -> bool:
        for ch in set(text):
            if ch.isspace() or unicodedata.category(ch) in _INKLESS_CATEGORIES:
                continue
            key = (bundled, ch)
            if key not in self._coverage:
                self._coverage[key] = font.getmask(ch).getbbox() is not None
            if not self._coverage[key]:
                return False
        return True

    def font_for(self, text: str, size: int):
        """The configured font if it draws every visible character of text, else Pillow's bundled font.

        Raises RasterizationError when neither can, instead of painting blank glyphs.
        """
        options = [False, True] if self.font_path else [True]
        for bundled in options:
            font = self.font(size, bundled)
            if self._covers(font, bundled, text):
                return font
        missing = sorted({ch for (_, ch), drawn in self._coverage.items() if not drawn and ch in text})
        raise RasterizationError(
            f"No available font draws {''.join(missing)!r} (font_path={self.font_path or 'unset'}); "
            "set font_path to a font covering the edition's script"
        )

    def _s(self, value: float) -> int:
        return round(value * self.scale)

    def text(self, x: float, y: float, text: str, size: int, fill=INK, anchor: str = "la") -> None:
        self.draw.text((self._s(x), self._s(y)), text, font=self.font_for(text, size), fill=fill, anchor=anchor)

    def rule(self, x: float, y: float, width: float, thickness: float = 1, fill=RULE) -> None:
        self.draw.rectangle(
            (self._s(x), self._s(y), self._s(x + width), self._s(y + thickness)), fill=fill,
        )

    def wrap(self, text: str, size: int, width: float, max_lines: int | None = None) -> list[str]:
        """Greedy word wrap to width; overflowing lines are dropped and the last gets '...'."""
        font, limit = self.font_for(text, size), self._s(width)
        lines: list[str] = []
        current = ""
        for word in text.split():
            candidate = f"{current} {word}".strip()
            if font.getlength(candidate) <= limit:
                current = candidate
                continue
            if current:
                lines.append(current)
            while font.getlength(word) > limit and len(word) > 1:
                cut = len(word) - 1
                while cut > 1 and font.getlength(word[:cut]) > limit:
                    cut -= 1
                lines.append(word[:cut])
                word = word[cut:]
            current = word
        if current:
            lines.append(current)
        if max_lines is not None and len(lines) > max_lines:
            lines = lines[:max_lines]
            lines[-1] = lines[-1].rstrip(". ") + "..."
        return lines

    def paragraph(self, x: float, y: float, width: float, text: str, size: int,
                  fill=INK, max_lines: int | None = None) -> float:
        """Draw wrapped text; returns the height used in nominal px."""
        line_height = size * 1.45
        lines = self.wrap(text, size, width, max_lines)
        for i, line in enumerate(lines):
            self.text(x, y + i * line_height, line, size, fill)
        return len(lines) * line_height

    def image_box(self, x: float, y: float, width: float, height: float, slot: ImageSlot | None,
                  uri: str | None = None) -> None:
        """Fill the box with the cover-cropped image, or the neutral placeholder."""
        uri = uri or (slot.uri if slot else None)
        box = (self._s(x), self._s(y), self._s(x + width), self._s(y + height))
        picture = self.loader.load(uri) if uri else None
        if picture is None:
            self.draw.rectangle(box, fill=PLACEHOLDER)
            if slot and slot.placeholder:
                self.text(x + width / 2, y + height / 2, slot.placeholder, 10, MUTED, anchor="mm")
            return
        fitted = ImageOps.fit(picture.convert("RGB"), (box[2] - box[0], box[3] - box[1]))
        self.image.paste(fitted, box[:2])


class PillowPageRenderer(PageRenderer):
    """Paints the page block tree with Pillow onto a white A4 canvas."""

    def __init__(self, font_path: str = "", loader: ImageLoader | None = None):
        self.font_path = resolve_font(font_path)
        self.loader = loader or ImageLoader()

    def render_to_bitmap(self, page: Page, size: tuple[int, int]) -> Image.Image:
        canvas = _Canvas(size, self.font_path, self.loader)
        has_sidebar = any(b.kind == "sidebar" for b in page.blocks)
        for block in page.blocks:
            getattr(self, f"_paint_{block.kind}")(canvas, block, has_sidebar)
        return canvas.image

    # --- column helpers ---

    @staticmethod
    def _main(c: _Canvas, has_sidebar: bool) -> tuple[float, float]:
        if c.grid_top is None:
            c.grid_top = c.y
        width = (c.width - c.GUTTER) * 2 / 3 if has_sidebar else c.width
        return c.left, width

    @staticmethod
    def _side(c: _Canvas) -> tuple[float, float]:
        main_width = (c.width - c.GUTTER) * 2 / 3
        return c.left + main_width + c.GUTTER, c.width - main_width - c.GUTTER

    # --- block painters ---

    def _paint_masthead(self, c: _Canvas, block, has_sidebar: bool) -> None:
        center = c.left + c.width / 2
        if block.logo and not block.compact:
            logo = c.loader.load(block.logo)
            if logo is not None:
                logo = ImageOps.contain(logo.convert("RGB"), (c._s(240), c._s(48)))
                c.image.paste(logo, (c._s(center) - logo.width // 2, c._s(c.y)))
                c.y += 54
        title_size = 28 if block.compact else 40
        c.text(center, c.y, block.site_name, title_size, anchor="ma")
        c.y += title_size * 1.3
        if block.description and not block.compact:
            c.text(center, c.y, block.description, 12, MUTED, anchor="ma")
            c.y += 18
        c.rule(c.left, c.y + 4, c.width)
        c.y += 10
        c.text(c.left, c.y, block.date_label, 10, MUTED)
        c.text(center, c.y, block.section_label, 10, MUTED, anchor="ma")
        c.text(c.left + c.width, c.y, block.page_label, 10, MUTED, anchor="ra")
        c.y += 18
        c.rule(c.left, c.y, c.width, 2, INK)
        c.rule(c.left, c.y + 4, c.width, 2, INK)
        c.y += 16

    def _paint_headline_strip(self, c: _Canvas, block, has_sidebar: bool) -> None:
        count = max(1, len(block.items))
        cell = (c.width - 8 * (count - 1)) / count
        for i, item in enumerate(block.items):
            x = c.left + i * (cell + 8)
            c.rule(x, c.y, 3, 46, ACCENT)
            c.text(x + 8, c.y + 2, item.category, 8, ACCENT)
            c.paragraph(x + 8, c.y + 14, cell - 10, item.title, 10, max_lines=2)
        c.y += 58

    def _paint_lead_article(self, c: _Canvas, block, has_sidebar: bool) -> None:
        x, width = self._main(c, has_sidebar)
        card: ArticleCard = block.card
        c.y += c.paragraph(x, c.y, width, card.title, 22, max_lines=3) + 6
        if card.image is not None:
            height = 220 if has_sidebar else 180
            c.image_box(x, c.y, width, height, card.image)
            c.y += height + 4
            if card.image.credit:
                c.text(x, c.y, card.image.credit, 8, MUTED)
                c.y += 12
        if card.text:
            column = (width - c.GUTTER) / 2
            lines = c.wrap(card.text, 11, column)
            half = (len(lines) + 1) // 2
            line_height = 11 * 1.45
            for i, line in enumerate(lines):
                col_x = x if i < half else x + column + c.GUTTER
                c.text(col_x, c.y + (i % half) * line_height, line, 11)
            c.y += half * line_height
        c.y += 8
        c.rule(x, c.y, width, 2, INK)
        c.y += 12
        c.main_bottom = c.y

    def _paint_secondary_grid(self, c: _Canvas, block, has_sidebar: bool) -> None:
        x, width = self._main(c, has_sidebar)
        if not block.items:
            return
        cell = (width - 2 * 12) / 3
        bottom = c.y
        for i, card in enumerate(block.items):
            cx, cy = x + i * (cell + 12), c.y
            c.image_box(cx, cy, cell, 90, card.image)
            cy += 96
            cy += c.paragraph(cx, cy, cell, card.title, 12, max_lines=3) + 4
            cy += c.paragraph(cx, cy, cell, card.text, 9, MUTED, max_lines=6)
            bottom = max(bottom, cy)
        c.y = bottom + 12
        c.main_bottom = c.y

    def _paint_sidebar(self, c: _Canvas, block, has_sidebar: bool) -> None:
        x, width = self._side(c)
        y = c.grid_top if c.grid_top is not None else c.y
        c.rule(x - c.GUTTER / 2, y, 1, A4_PX[1] - y - 110)
        c.rule(x, y, width, 26, ACCENT)
        c.text(x + 8, y + 6, block.title, 12, WHITE)
        y += 36
        for card in block.items:
            y += c.paragraph(x, y, width, card.title, 11, max_lines=3) + 2
            y += c.paragraph(x, y, width, card.text, 9, MUTED, max_lines=3) + 6
            c.rule(x, y, width)
            y += 8
        c.side_bottom = y

    def _paint_category_header(self, c: _Canvas, block, has_sidebar: bool) -> None:
        c.draw.ellipse((c._s(c.left), c._s(c.y + 6), c._s(c.left + 8), c._s(c.y + 14)), fill=ACCENT)
        c.text(c.left + 16, c.y, block.name, 16, ACCENT)
        c.y += 24
        c.rule(c.left, c.y, c.width, 2, ACCENT)
        c.y += 12

    def _paint_category_grid(self, c: _Canvas, block, has_sidebar: bool) -> None:
        column = (c.width - 16) / 2
        row_height = 78
        for i, card in enumerate(block.items):
            x = c.left + (i % 2) * (column + 16)
            y = c.y + (i // 2) * row_height
            c.image_box(x, y, 80, 60, card.image)
            used = c.paragraph(x + 90, y, column - 90, card.title, 11, max_lines=2)
            c.paragraph(x + 90, y + used + 2, column - 90, card.text, 9, MUTED, max_lines=2)
            c.rule(x, y + row_height - 8, column)
        c.y += ((len(block.items) + 1) // 2) * row_height + 4

    def _paint_ad_space(self, c: _Canvas, block, has_sidebar: bool) -> None:
        if has_sidebar:
            x, width = self._side(c)
            y = c.side_bottom + 8
            c.side_bottom = y + 70
        else:
            x, width, y = c.left, c.width, c.y + 8
            c.y = y + 70
        c.draw.rectangle((c._s(x), c._s(y), c._s(x + width), c._s(y + 60)), fill=(245, 245, 245), outline=(204, 204, 204))
        c.text(x + width / 2, y + 30, block.label, 10, (153, 153, 153), anchor="mm")

    def _paint_footer(self, c: _Canvas, block, has_sidebar: bool) -> None:
        y = A4_PX[1] - c.MARGIN - 22
        c.rule(c.left, y, c.width, 2, INK)
        c.text(c.left, y + 8, block.site_name, 10, MUTED)
        c.text(c.left + c.width / 2, y + 8, block.page_label, 10, INK, anchor="ma")
        c.text(c.left + c.width, y + 8, block.date_label, 10, MUTED, anchor="ra")

    def _paint_text(self, c: _Canvas, block, has_sidebar: bool) -> None:
        c.y += c.paragraph(c.left, c.y, c.width, block.text, 12) + 8

    def _paint_media(self, c: _Canvas, block, has_sidebar: bool) -> None:
        c.image_box(c.left + c.width * 0.1, c.y, c.width * 0.8, 200, None, uri=block.uri)
        c.y += 204
        if block.credit:
            c.text(c.left + c.width / 2, c.y, block.credit, 9, MUTED, anchor="ma")
            c.y += 14
        c.y += 8


class RenderSurface:
    """The preview surface a generation owns; closing it cancels further rasterization."""

    def __init__(self, document: DocumentModel, renderer: PageRenderer, scale: int = MIN_SCALE):
        if scale < MIN_SCALE:
            raise ValueError(f"scale must be >= {MIN_SCALE}, got {scale}")
        self.document = document
        self.renderer = renderer
        self.scale = scale
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "RenderSurface":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _opaque(image: Image.Image) -> Image.Image:
    """Flatten any alpha onto white so nothing shows through in print."""
    if image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info:
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def rasterize(page: Page, surface: RenderSurface) -> RasterPage:
    """Snapshot exactly one page box at the surface's scale.

    Raises SurfaceDetachedError if the surface was closed or the page is not
    attached to it, and RasterizationError if rendering fails or the bitmap
    does not match the fixed page size.
    """
    if surface.closed:
        raise SurfaceDetachedError(f"Preview surface closed before page {page.number} was captured")
    if not any(p is page for p in surface.document.pages):
        raise SurfaceDetachedError(f"Page {page.number} is not attached to the preview surface")

    size = page_pixels(surface.scale)
    try:
        bitmap = surface.renderer.render_to_bitmap(page, size)
    except RasterizationError:
        raise
    except Exception as e:
        raise RasterizationError(f"Failed to render page {page.number}: {e}") from e
    if bitmap is None or bitmap.size != size:
        got = None if bitmap is None else bitmap.size
        raise RasterizationError(f"Page {page.number} rendered at {got}, expected {size}")

    logger.debug("Rasterized page %d at %dx%d", page.number, *size)
    return RasterPage(index=page.number, image=_opaque(bitmap))


def rasterize_pages(surface: RenderSurface) -> list[RasterPage]:
    """Rasterize every page in strictly increasing page-number order, one at a time."""
    rasters: list[RasterPage] = []
    for page in surface.document.pages:
        if rasters and page.number <= rasters[-1].index:
            raise RasterizationError(f"Page {page.number} is out of order after page {rasters[-1].index}")
        rasters.append(rasterize(page, surface))
    logger.info("Rasterized %d page(s)", len(rasters))
    return rasters
