"""Resolve the index size and merge index and content pages into one document."""

import io
import threading
from collections.abc import Mapping, Sequence
from contextlib import ExitStack
from typing import NamedTuple

from pikepdf import Pdf

from courtbundler.bundle_config import BundleConfig
from courtbundler.errors import AssemblyError, BundleCancelledError, LayoutConvergenceError
from courtbundler.index_layout import IndexLayout, compute_index_layout
from courtbundler.index_renderer import render_divider_pages, render_index
from courtbundler.logger import bundle_logger
from courtbundler.models import BundleMetadata, IndexEntry
from courtbundler.planner import DividerBlock, LayoutPlan, shift_entries
from courtbundler.sources import ResolvedSource


class IndexResolution(NamedTuple):
    index_page_count: int
    entries: list[IndexEntry]
    layout: IndexLayout
    iterations: int


class AssembledBundle(NamedTuple):
    pdf: Pdf
    page_labels: list[str]
    entries: list[IndexEntry]
    layout: IndexLayout
    index_page_count: int

    @property
    def total_pages(self) -> int:
        return len(self.pdf.pages)


def layout_index(entries: Sequence[IndexEntry], metadata: BundleMetadata, bundle_config: BundleConfig) -> IndexLayout:
    return compute_index_layout(entries, metadata, bundle_config.layout, bundle_config.index_title, bundle_config.index_footer)


def measure_index_pages(entries: Sequence[IndexEntry], metadata: BundleMetadata, bundle_config: BundleConfig) -> tuple[int, IndexLayout]:
    """Render the index into a throwaway document and count its pages."""
    layout = layout_index(entries, metadata, bundle_config)
    buffer, _ = render_index(layout, bundle_config.layout)
    with Pdf.open(buffer) as measured:
        measured_count = len(measured.pages)
    if measured_count != layout.page_count:
        raise AssemblyError("measure", f"layout expects {layout.page_count} index pages but {measured_count} were rendered")
    return measured_count, layout


def resolve_index_page_count(
    entries: Sequence[IndexEntry], metadata: BundleMetadata, bundle_config: BundleConfig, initial_shift: int = 0
) -> IndexResolution:
    """Find the index page count k such that shifting every entry by k leaves k unchanged.

    Index size depends only on entry count and text, never on the target
    indices, so a shift taken from a measurement pass is confirmed on the
    first iteration. The loop is capped anyway and fails loudly rather than
    spinning.
    """
    provisional = list(entries)
    shift = initial_shift
    for iteration in range(1, bundle_config.max_layout_iterations + 1):
        shifted = shift_entries(provisional, shift)
        measured, layout = measure_index_pages(shifted, metadata, bundle_config)
        bundle_logger.debug(f"[ASM]Iteration {iteration}: shift {shift} -> index measures {measured} pages")
        if measured == shift:
            return IndexResolution(measured, shifted, layout, iteration)
        shift = measured
    raise LayoutConvergenceError(bundle_config.max_layout_iterations, shift)


def _check_cancelled(cancel_event: threading.Event | None):
    if cancel_event is not None and cancel_event.is_set():
        bundle_logger.warning("[ASM]Cancellation requested, abandoning assembly")
        raise BundleCancelledError


def build_content_document(
    plan: LayoutPlan,
    sources: Mapping[str, ResolvedSource],
    bundle_config: BundleConfig,
    stack: ExitStack,
    cancel_event: threading.Event | None = None,
) -> Pdf:
    """Concatenate divider and document pages in plan order.

    Source PDFs are registered on `stack` and stay open until the caller has
    saved the final document, since copied pages still read from them.
    """
    content = stack.enter_context(Pdf.new())
    divider_names = [block.section_name for block in plan.blocks if isinstance(block, DividerBlock)]
    divider_pages = iter(())
    if divider_names:
        dividers = stack.enter_context(Pdf.open(render_divider_pages(divider_names, bundle_config.layout)))
        divider_pages = iter(dividers.pages)

    for block in plan.blocks:
        _check_cancelled(cancel_event)
        if isinstance(block, DividerBlock):
            content.pages.append(next(divider_pages))
            continue
        source = sources[block.document_id]
        src_pdf = stack.enter_context(Pdf.open(io.BytesIO(source.data)))
        for page_index in block.page_indices:
            content.pages.append(src_pdf.pages[page_index])
        bundle_logger.debug(f"[ASM]..Copied {len(block.page_indices)} pages from {block.name}")

    if len(content.pages) != plan.content_page_count:
        raise AssemblyError("content", f"planned {plan.content_page_count} pages but merged {len(content.pages)}")

    # Round-trip through a buffer so the merged pages form a self-contained document.
    buffer = io.BytesIO()
    content.save(buffer)
    buffer.seek(0)
    bundle_logger.info(f"[ASM]Content document holds {plan.content_page_count} pages")
    return stack.enter_context(Pdf.open(buffer))


def assemble_bundle(
    resolution: IndexResolution,
    content_pdf: Pdf,
    plan: LayoutPlan,
    bundle_config: BundleConfig,
    stack: ExitStack,
) -> AssembledBundle:
    """Place the index pages first, then the content pages verbatim."""
    index_buffer, index_page_count = render_index(resolution.layout, bundle_config.layout)
    if index_page_count != resolution.index_page_count:
        raise AssemblyError("index", f"measured {resolution.index_page_count} index pages but rendered {index_page_count}")

    index_pdf = stack.enter_context(Pdf.open(index_buffer))
    final_pdf = stack.enter_context(Pdf.new())
    final_pdf.pages.extend(index_pdf.pages)
    final_pdf.pages.extend(content_pdf.pages)

    page_labels = [""] * index_page_count + list(plan.labels)
    if len(page_labels) != len(final_pdf.pages):
        raise AssemblyError("labels", f"{len(page_labels)} labels for {len(final_pdf.pages)} pages")

    bundle_logger.info(f"[ASM]Assembled {len(final_pdf.pages)} pages ({index_page_count} index, {plan.content_page_count} content)")
    return AssembledBundle(final_pdf, page_labels, resolution.entries, resolution.layout, index_page_count)
