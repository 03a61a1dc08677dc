"""Links, bookmarks and page-number stamps for an assembled bundle."""

import io
from collections.abc import Sequence
from contextlib import ExitStack
from itertools import groupby

from pikepdf import Array, Dictionary, Name, OutlineItem, Page, Pdf, Rectangle
from reportlab.lib import colors
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from courtbundler.assembler import AssembledBundle
from courtbundler.bundle_config import BundleConfig, LayoutConfig
from courtbundler.errors import AssemblyError
from courtbundler.index_layout import IndexLayout
from courtbundler.logger import bundle_logger
from courtbundler.models import IndexEntry, PageNumberSettings

STAMP_COLOUR = colors.Color(0.3, 0.3, 0.3)


def page_size(page) -> tuple[float, float]:
    x0, y0, x1, y1 = (float(v) for v in page.mediabox)
    return x1 - x0, y1 - y0


def place_overlay(pdf: Pdf, page: Page, overlay_page: Page, name: str) -> Name:
    """Draw overlay_page over page as a form XObject registered under a fixed name.

    Page.add_overlay picks a random resource name, which makes otherwise
    identical builds differ byte for byte.
    """
    formx = pdf.copy_foreign(overlay_page.as_form_xobject())
    placed = page.add_resource(formx, Name.XObject, name=Name(f"/{name}"))
    placement = page.calc_form_xobject_placement(formx, placed, Rectangle(page.trimbox))
    page.contents_add(pdf.make_stream(b"q\n"), prepend=True)
    page.contents_add(pdf.make_stream(b"\nQ\n"))
    page.contents_add(pdf.make_stream(b"q\n" + placement + b"\nQ\n"))
    return placed


def add_index_links(pdf: Pdf, layout: IndexLayout):
    """Attach one link annotation per index row, at the row's rectangle."""
    total_pages = len(pdf.pages)
    for page_index, row_group in groupby(layout.rows, key=lambda row: row.page_index):
        rows = list(row_group)
        index_page = pdf.pages[page_index]
        if "/Annots" not in index_page:
            index_page.Annots = Array()

        for row in rows:
            target = row.entry.start_page_index
            if not 0 <= target < total_pages:
                raise AssemblyError("links", f"'{row.entry.title}' points at page {target} of {total_pages}")
            index_page.Annots.append(
                Dictionary(
                    Type=Name.Annot,
                    Subtype=Name.Link,
                    Rect=Array(row.link_rect),
                    Border=[0, 0, 0],
                    Dest=[pdf.pages[target].obj, Name.Fit],
                )
            )
        bundle_logger.debug(f"[ANN]Added {len(rows)} links to index page {page_index}")


def add_bookmarks(pdf: Pdf, entries: Sequence[IndexEntry]):
    """Outline with an "Index" item followed by one item per entry, all siblings."""
    with pdf.open_outline() as outline:
        outline.root.append(OutlineItem("Index", 0))
        for entry in entries:
            outline.root.append(OutlineItem(entry.title, entry.start_page_index))
    bundle_logger.debug(f"[ANN]Added {len(entries) + 1} bookmarks")


def stamp_position(settings: PageNumberSettings, text_width: float, width: float, height: float, config: LayoutConfig) -> tuple[float, float]:
    vertical, horizontal = settings.position.split("-")
    y = config.stamp_bottom_y if vertical == "bottom" else height - config.stamp_top_drop
    if horizontal == "left":
        x = config.stamp_margin_x
    elif horizontal == "right":
        x = width - text_width - config.stamp_margin_x
    else:
        x = (width - text_width) / 2
    return x, y


def render_stamp_overlay(pdf: Pdf, page_labels: Sequence[str], settings: PageNumberSettings, config: LayoutConfig) -> io.BytesIO:
    """One overlay page per bundle page, sized to match, carrying its label."""
    font_name = config.bold_font if settings.bold else config.regular_font
    buffer = io.BytesIO()
    canvas = Canvas(buffer, invariant=1)
    for page, label in zip(pdf.pages, page_labels, strict=True):
        width, height = page_size(page)
        canvas.setPageSize((width, height))
        if label:
            text_width = stringWidth(label, font_name, settings.font_size)
            x, y = stamp_position(settings, text_width, width, height, config)
            canvas.setFont(font_name, settings.font_size)
            canvas.setFillColor(STAMP_COLOUR)
            canvas.drawString(x, y, label)
        canvas.showPage()
    canvas.save()
    buffer.seek(0)
    return buffer


def stamp_page_labels(pdf: Pdf, page_labels: Sequence[str], settings: PageNumberSettings, config: LayoutConfig, stack: ExitStack) -> int:
    """Overlay each non-empty label on its page. Index pages carry none."""
    if len(page_labels) != len(pdf.pages):
        raise AssemblyError("stamps", f"{len(page_labels)} labels for {len(pdf.pages)} pages")

    overlay_pdf = stack.enter_context(Pdf.open(render_stamp_overlay(pdf, page_labels, settings, config)))
    stamped = 0
    for i, (page, overlay_page, label) in enumerate(zip(pdf.pages, overlay_pdf.pages, page_labels, strict=True)):
        if not label:
            continue
        place_overlay(pdf, page, overlay_page, f"CbStamp{i}")
        stamped += 1
    bundle_logger.debug(f"[ANN]Stamped {stamped} pages at {settings.position}")
    return stamped


def add_viewer_page_labels(pdf: Pdf, page_labels: Sequence[str]):
    """Write /PageLabels so viewers show A001 and so on instead of physical numbers.

    Unlabelled leading pages (the index) are numbered in lowercase roman.
    See PDF 32000-1:2008, 12.4.2.
    """
    nums = []
    if page_labels and not page_labels[0]:
        nums.extend([0, Dictionary(S=Name.r)])
    for page_index, label in enumerate(page_labels):
        if label:
            nums.extend([page_index, Dictionary(P=label)])
    pdf.Root.PageLabels = Dictionary(Nums=Array(nums))


def annotate_bundle(assembled: AssembledBundle, settings: PageNumberSettings, bundle_config: BundleConfig, stack: ExitStack):
    pdf = assembled.pdf
    add_index_links(pdf, assembled.layout)
    add_bookmarks(pdf, assembled.entries)
    stamp_page_labels(pdf, assembled.page_labels, settings, bundle_config.layout, stack)
    if bundle_config.viewer_page_labels:
        add_viewer_page_labels(pdf, assembled.page_labels)
    bundle_logger.info(f"[ANN]Annotated bundle of {len(pdf.pages)} pages")
