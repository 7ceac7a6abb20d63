"""PDF assembly: ordered page snapshots -> one A4 PDF binary"""

import io
import logging

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from epaper.core.errors import AssemblyError
from epaper.core.raster import RasterPage


logger = logging.getLogger(__name__)

ASPECT_TOLERANCE = 0.01


def _jpeg(raster: RasterPage, quality: int) -> ImageReader:
    buffer = io.BytesIO()
    raster.image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    buffer.seek(0)
    return ImageReader(buffer)


def assemble(rasters: list[RasterPage], quality: int = 95, title: str | None = None) -> bytes:
    """Stamp each snapshot full-bleed onto its own A4 page, in input order.

    The first page needs no page break; each later page starts with one.
    Built entirely in memory: any failure raises AssemblyError and no partial
    PDF is returned.
    """
    if not rasters:
        raise AssemblyError("No page snapshots to assemble")

    width, height = A4
    for raster in rasters:
        w, h = raster.image.size
        if abs(w / h - width / height) > ASPECT_TOLERANCE:
            raise AssemblyError(f"Page {raster.index} snapshot {w}x{h} does not match the A4 aspect ratio")

    buffer = io.BytesIO()
    try:
        pdf = canvas.Canvas(buffer, pagesize=A4)
        if title:
            pdf.setTitle(title)
        for i, raster in enumerate(rasters):
            if i > 0:
                pdf.showPage()
            pdf.drawImage(_jpeg(raster, quality), 0, 0, width=width, height=height)
        pdf.save()
    except Exception as e:
        raise AssemblyError(f"Failed to assemble PDF: {e}") from e

    data = buffer.getvalue()
    logger.info("Assembled %d page(s) into %d bytes", len(rasters), len(data))
    return data
