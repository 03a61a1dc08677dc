"""Vertical layout of the index pages.

The layout is computed once and then consumed read-only by the renderer
(which draws the text), the link builder and the bookmark builder. Nothing
else steps the index cursor, so link rectangles always sit on the text they
belong to.
"""

from collections.abc import Sequence
from typing import Literal, NamedTuple

from reportlab.pdfbase.pdfmetrics import stringWidth

from courtbundler.bundle_config import LayoutConfig
from courtbundler.headers import HEADERS
from courtbundler.logger import bundle_logger
from courtbundler.models import BundleMetadata, IndexEntry, Party

Align = Literal["left", "centre", "right"]

NAVY = (0.12, 0.24, 0.45)
DARK_GREY = (0.2, 0.2, 0.2)
MID_GREY = (0.5, 0.5, 0.5)


class TextLine(NamedTuple):
    page_index: int
    text: str
    x: float
    y: float
    font_name: str
    font_size: float
    align: Align = "left"
    color: tuple[float, float, float] = DARK_GREY


class TableHeader(NamedTuple):
    page_index: int
    band: tuple[float, float, float, float]
    labels: list[TextLine]


class RowLayout(NamedTuple):
    entry: IndexEntry
    page_index: int
    x: float
    y: float
    font_name: str
    font_size: float
    title_text: str
    date_text: str
    label_text: str
    link_rect: tuple[float, float, float, float]


class IndexLayout(NamedTuple):
    page_count: int
    caption: list[TextLine]
    headers: list[TableHeader]
    rows: list[RowLayout]
    footer: TextLine | None
    show_dates: bool

    def rows_on_page(self, page_index: int) -> list[RowLayout]:
        return [row for row in self.rows if row.page_index == page_index]


def fit_text(text: str, font_name: str, font_size: float, available: float, ellipsis: str = "...") -> str:
    """Truncate text so that it, plus the ellipsis, fits in `available` points."""
    if stringWidth(text, font_name, font_size) <= available:
        return text
    ellipsis_width = stringWidth(ellipsis, font_name, font_size)
    if ellipsis_width > available:
        return ""
    truncated = text
    while truncated and stringWidth(truncated, font_name, font_size) + ellipsis_width > available:
        truncated = truncated[:-1]
    return truncated.rstrip() + ellipsis


class _Cursor:
    """Tracks the current index page and baseline."""

    def __init__(self, config: LayoutConfig):
        self.config = config
        self.page_index = 0
        self.y = config.top_y

    def needs_break(self) -> bool:
        return self.y < self.config.bottom_margin

    def new_page(self):
        self.page_index += 1
        self.y = self.config.top_y

    def step(self, amount: float):
        self.y -= amount


def _party_lines(parties: Sequence[Party]) -> list[tuple[str, str, bool]]:
    lines = []
    for party in parties:
        lines.append((party.name.upper(), party.designation, True))
        if party.litigation_friend:
            lines.append((f"(by their litigation friend {party.litigation_friend})", "", False))
    return lines


def _caption_lines(metadata: BundleMetadata, index_title: str, cursor: _Cursor) -> list[TextLine]:
    config = cursor.config
    centre_x = config.page_width / 2
    caption = [
        TextLine(cursor.page_index, metadata.bundle_title or index_title, config.margin_left, cursor.y, config.bold_font, config.title_size, color=NAVY)
    ]
    cursor.step(config.title_step)

    case_info = [
        f"Case: {metadata.case_name}" if metadata.case_name else None,
        f"Case Number: {metadata.case_number}" if metadata.case_number else None,
        f"Court: {metadata.court}" if metadata.court else None,
        f"Date: {metadata.date}" if metadata.date else None,
    ]
    queued: list[tuple[str, str, Align, str]] = [(info, config.regular_font, "left", "") for info in case_info if info]

    if metadata.applicants or metadata.respondents:
        queued.append(("BETWEEN:", config.bold_font, "left", ""))
        for text, designation, bold in _party_lines(metadata.applicants):
            queued.append((text, config.bold_font if bold else config.regular_font, "centre", designation))
        queued.append(("-v-" if metadata.is_adversarial else "-and-", config.bold_font, "centre", ""))
        for text, designation, bold in _party_lines(metadata.respondents):
            queued.append((text, config.bold_font if bold else config.regular_font, "centre", designation))

    for text, font_name, align, designation in queued:
        if cursor.needs_break():
            cursor.new_page()
        x = {"left": config.margin_left, "centre": centre_x, "right": config.label_right_x}[align]
        caption.append(TextLine(cursor.page_index, text, x, cursor.y, font_name, config.caption_size, align))
        if designation:
            caption.append(TextLine(cursor.page_index, designation, config.label_right_x, cursor.y, config.regular_font, config.caption_size, "right"))
        cursor.step(config.caption_step)

    cursor.step(config.caption_gap)
    return caption


def _table_header(cursor: _Cursor, show_dates: bool) -> TableHeader:
    config = cursor.config
    y = cursor.y
    band = (
        config.margin_left,
        y - config.header_band_drop,
        config.page_width - config.margin_left - config.margin_right,
        config.header_band_height,
    )
    text_y = y + config.header_text_rise
    document_hdr, date_hdr, pages_hdr = HEADERS
    labels = [TextLine(cursor.page_index, document_hdr, config.header_text_x, text_y, config.bold_font, config.header_size, color=NAVY)]
    if show_dates:
        labels.append(TextLine(cursor.page_index, date_hdr, config.date_left_x, text_y, config.bold_font, config.header_size, color=NAVY))
    labels.append(TextLine(cursor.page_index, pages_hdr, config.label_right_x, text_y, config.bold_font, config.header_size, "right", NAVY))
    cursor.step(config.header_step)
    return TableHeader(cursor.page_index, band, labels)


def _row_layout(entry: IndexEntry, cursor: _Cursor, show_dates: bool) -> RowLayout:
    config = cursor.config
    if entry.is_section:
        font_name, font_size, x = config.bold_font, config.section_size, config.section_x
    else:
        font_name, font_size, x = config.regular_font, config.document_size, (config.document_x if entry.indent else config.section_x)

    label_text = entry.page_range
    label_width = stringWidth(label_text, font_name, font_size) if label_text else 0
    label_left = min(config.label_left_x, config.label_right_x - label_width)
    title_limit = (min(config.date_left_x, label_left) if show_dates else label_left) - config.column_gap
    title_text = fit_text(entry.title, font_name, font_size, title_limit - x, config.ellipsis)
    date_text = ""
    if show_dates and not entry.is_section:
        # Dates sit between the fixed date column and the right-aligned page label.
        date_text = fit_text(entry.date, font_name, font_size, label_left - config.column_gap - config.date_left_x, config.ellipsis)

    y = cursor.y
    link_rect = (x, y - config.link_drop, config.link_right_x, y + font_size + config.link_rise)
    return RowLayout(entry, cursor.page_index, x, y, font_name, font_size, title_text, date_text, label_text, link_rect)


def compute_index_layout(
    entries: Sequence[IndexEntry],
    metadata: BundleMetadata,
    config: LayoutConfig | None = None,
    index_title: str = "COURT BUNDLE INDEX",
    footer_text: str = "",
) -> IndexLayout:
    """Place every caption line, table header and row of the index.

    The cursor starts `top_offset` below the top edge. Section rows advance
    it by `section_step`, document rows by `document_step`. Whenever the
    cursor has dropped below `bottom_margin` a new page starts and the
    table header is repeated.
    """
    config = config or LayoutConfig()
    show_dates = any(entry.date for entry in entries if not entry.is_section)
    cursor = _Cursor(config)

    caption = _caption_lines(metadata, index_title, cursor)
    if cursor.needs_break():
        cursor.new_page()
    headers = [_table_header(cursor, show_dates)]
    rows = []

    for entry in entries:
        if cursor.needs_break():
            cursor.new_page()
            headers.append(_table_header(cursor, show_dates))
        rows.append(_row_layout(entry, cursor, show_dates))
        cursor.step(config.section_step if entry.is_section else config.document_step)

    footer = None
    if footer_text:
        footer = TextLine(cursor.page_index, footer_text, config.margin_left, config.footer_y, config.regular_font, config.footer_size, color=MID_GREY)

    page_count = cursor.page_index + 1
    bundle_logger.debug(f"[IDX]Index layout: {len(rows)} rows over {page_count} pages")
    return IndexLayout(page_count, caption, headers, rows, footer, show_dates)
