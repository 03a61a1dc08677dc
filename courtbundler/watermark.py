import io
from contextlib import ExitStack

from pikepdf import Pdf
from reportlab.lib import colors
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from courtbundler.annotator import page_size, place_overlay
from courtbundler.bundle_config import LayoutConfig
from courtbundler.logger import bundle_logger

WATERMARK_COLOUR = colors.Color(0.8, 0.1, 0.1)


def render_watermark_overlay(pdf: Pdf, text: str, config: LayoutConfig) -> io.BytesIO:
    """A diagonal, translucent caption centred on a page of each bundle page's size."""
    buffer = io.BytesIO()
    canvas = Canvas(buffer, invariant=1)
    for page in pdf.pages:
        width, height = page_size(page)
        canvas.setPageSize((width, height))
        # Shrink the caption on small pages so the diagonal still fits.
        font_size = config.watermark_size
        text_width = stringWidth(text, config.bold_font, font_size)
        diagonal = (width**2 + height**2) ** 0.5
        if text_width > 0.8 * diagonal:
            font_size *= 0.8 * diagonal / text_width

        canvas.saveState()
        canvas.translate(width / 2, height / 2)
        canvas.rotate(config.watermark_angle)
        canvas.setFillColor(WATERMARK_COLOUR)
        canvas.setFillAlpha(config.watermark_alpha)
        canvas.setFont(config.bold_font, font_size)
        canvas.drawCentredString(0, -font_size / 3, text)
        canvas.restoreState()
        canvas.showPage()
    canvas.save()
    buffer.seek(0)
    return buffer


def apply_watermark(pdf: Pdf, text: str, config: LayoutConfig, stack: ExitStack) -> int:
    """Stamp the preview watermark over every page. Pagination and links are untouched."""
    overlay_pdf = stack.enter_context(Pdf.open(render_watermark_overlay(pdf, text, config)))
    for i, (page, overlay_page) in enumerate(zip(pdf.pages, overlay_pdf.pages, strict=True)):
        place_overlay(pdf, page, overlay_page, f"CbWatermark{i}")
    bundle_logger.info(f"[WMK]Watermarked {len(pdf.pages)} pages")
    return len(pdf.pages)
