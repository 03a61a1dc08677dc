"""Draw the index and divider pages with ReportLab."""

import io
from collections.abc import Sequence

from reportlab.lib import colors
from reportlab.pdfgen.canvas import Canvas

from courtbundler.bundle_config import LayoutConfig
from courtbundler.index_layout import DARK_GREY, NAVY, IndexLayout, TextLine
from courtbundler.logger import bundle_logger

HEADER_BAND_COLOUR = colors.Color(0.9, 0.93, 0.96)


def _draw_text(canvas: Canvas, line: TextLine):
    canvas.setFont(line.font_name, line.font_size)
    canvas.setFillColor(colors.Color(*line.color))
    if line.align == "centre":
        canvas.drawCentredString(line.x, line.y, line.text)
    elif line.align == "right":
        canvas.drawRightString(line.x, line.y, line.text)
    else:
        canvas.drawString(line.x, line.y, line.text)


def render_index(layout: IndexLayout, config: LayoutConfig | None = None) -> tuple[io.BytesIO, int]:
    """Render an index layout to PDF.

    Returns the buffer and the number of pages produced. The renderer adds
    no link annotations; those are attached later, once the pages they point
    at exist.
    """
    config = config or LayoutConfig()
    buffer = io.BytesIO()
    canvas = Canvas(buffer, pagesize=(config.page_width, config.page_height), invariant=1)

    for page_index in range(layout.page_count):
        for line in layout.caption:
            if line.page_index == page_index:
                _draw_text(canvas, line)

        for header in layout.headers:
            if header.page_index != page_index:
                continue
            canvas.setFillColor(HEADER_BAND_COLOUR)
            canvas.rect(*header.band, stroke=0, fill=1)
            for label in header.labels:
                _draw_text(canvas, label)

        for row in layout.rows_on_page(page_index):
            title_colour = NAVY if row.entry.is_section else DARK_GREY
            _draw_text(canvas, TextLine(page_index, row.title_text, row.x, row.y, row.font_name, row.font_size, "left", title_colour))
            if row.date_text:
                _draw_text(canvas, TextLine(page_index, row.date_text, config.date_left_x, row.y, row.font_name, row.font_size))
            if row.label_text:
                _draw_text(canvas, TextLine(page_index, row.label_text, config.label_right_x, row.y, row.font_name, row.font_size, "right"))

        if layout.footer and layout.footer.page_index == page_index:
            _draw_text(canvas, layout.footer)

        canvas.showPage()

    canvas.save()
    buffer.seek(0)
    bundle_logger.debug(f"[IDX]Rendered {layout.page_count} index pages")
    return buffer, layout.page_count


def render_divider_pages(section_names: Sequence[str], config: LayoutConfig | None = None) -> io.BytesIO:
    """One page per section name, bearing only the name."""
    config = config or LayoutConfig()
    buffer = io.BytesIO()
    canvas = Canvas(buffer, pagesize=(config.page_width, config.page_height), invariant=1)
    for name in section_names:
        canvas.setFont(config.regular_font, config.divider_title_size)
        canvas.setFillColor(colors.black)
        canvas.drawString(config.margin_left, config.page_height - config.divider_title_drop, name)
        canvas.showPage()
    canvas.save()
    buffer.seek(0)
    return buffer
