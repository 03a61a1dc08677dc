# Bundle assembly pipeline.
#
# Planned -> Measured -> Shifted -> Assembled -> Annotated -> [Watermarked] -> [Split] -> Done
#
# Every stage consumes the page positions produced by the one before it, so
# the pipeline is strictly sequential. Only source parsing runs on a thread
# pool. Any failure aborts the run and nothing is returned.
import argparse
import io
import threading
from collections.abc import Callable, Sequence
from contextlib import ExitStack
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from pikepdf import Pdf
from werkzeug.utils import secure_filename

from courtbundler.annotator import annotate_bundle
from courtbundler.assembler import assemble_bundle, build_content_document, layout_index, measure_index_pages, resolve_index_page_count
from courtbundler.bundle_config import BundleConfig, BundleConfigParams
from courtbundler.csv_index import IndexRow, build_sections, load_index_data
from courtbundler.errors import BundleError, PipelineStateError
from courtbundler.index_renderer import render_index
from courtbundler.logger import bundle_logger, configure_logger, dedent_and_log
from courtbundler.makedocxindex import DocxConfig, create_index_docx
from courtbundler.models import PAGE_NUMBER_POSITIONS, BundleMetadata, IndexEntry, PageNumberSettings, Section, Volume
from courtbundler.planner import LayoutPlan, plan_layout
from courtbundler.sources import resolve_sources
from courtbundler.volumes import build_manifest, calculate_volumes, create_volume_zip, split_into_volumes
from courtbundler.watermark import apply_watermark


class PipelineStage(Enum):
    PLANNED = 1
    MEASURED = 2
    SHIFTED = 3
    ASSEMBLED = 4
    ANNOTATED = 5
    WATERMARKED = 6
    SPLIT = 7
    DONE = 8


_TRANSITIONS = {
    None: {PipelineStage.PLANNED},
    PipelineStage.PLANNED: {PipelineStage.MEASURED},
    PipelineStage.MEASURED: {PipelineStage.SHIFTED},
    PipelineStage.SHIFTED: {PipelineStage.ASSEMBLED},
    PipelineStage.ASSEMBLED: {PipelineStage.ANNOTATED},
    PipelineStage.ANNOTATED: {PipelineStage.WATERMARKED, PipelineStage.SPLIT, PipelineStage.DONE},
    PipelineStage.WATERMARKED: {PipelineStage.SPLIT, PipelineStage.DONE},
    PipelineStage.SPLIT: {PipelineStage.DONE},
    PipelineStage.DONE: set(),
}

ProgressHook = Callable[[PipelineStage, str], None]


class BundlePipeline:
    """Enforces stage order and reports each transition to the progress hook."""

    def __init__(self, progress: ProgressHook | None = None):
        self.stage: PipelineStage | None = None
        self.progress = progress
        self.history: list[PipelineStage] = []

    def advance(self, stage: PipelineStage, message: str = ""):
        if stage not in _TRANSITIONS[self.stage]:
            raise PipelineStateError(self.stage, stage)
        self.stage = stage
        self.history.append(stage)
        bundle_logger.info(f"[CB]{stage.name}{': ' + message if message else ''}")
        if self.progress:
            self.progress(stage, message)


class BundleResult(NamedTuple):
    pdf_bytes: bytes | None
    zip_bytes: bytes | None
    filename: str
    page_labels: list[str]
    entries: list[IndexEntry]
    index_page_count: int
    volumes: list[Volume]
    manifest: str = ""

    @property
    def total_pages(self) -> int:
        return len(self.page_labels)

    @property
    def is_split(self) -> bool:
        return self.zip_bytes is not None


def output_filename(metadata: BundleMetadata, extension: str = "pdf", suffix: str = "") -> str:
    stem = "_".join(part for part in (secure_filename(metadata.case_number), secure_filename(metadata.case_name)) if part) or "bundle"
    return f"{stem}{suffix}.{extension}"


def _check_unique_document_ids(sections: Sequence[Section]):
    seen = set()
    for section in sections:
        for document in section.documents:
            if document.id in seen:
                msg = f"Document id {document.id} is used more than once"
                raise BundleError(msg)
            seen.add(document.id)


def _plan(sections: Sequence[Section], bundle_config: BundleConfig) -> tuple[LayoutPlan, dict]:
    _check_unique_document_ids(sections)
    sources = resolve_sources(document for section in sections for document in section.documents)
    plan = plan_layout(sections, sources, bundle_config.label_width, bundle_config.label_overflow)
    return plan, sources


def _log_settings(sections: Sequence[Section], metadata: BundleMetadata, settings: PageNumberSettings, bundle_config: BundleConfig, watermark: bool):
    user_settings_log = f"""\
        =============================================================================
        COURTBUNDLER -- BEGIN RECORD OF SETTINGS
        Session: {bundle_config.session_id} ({bundle_config.user_agent}) at {bundle_config.timestamp}
        ..Case: {metadata.case_name} / {metadata.case_number} / {metadata.court}
        ..Sections: {len(sections)}, documents: {sum(len(s.documents) for s in sections)}
        ..Page numbers: {settings.position}, {settings.font_size}pt, bold={settings.bold}
        ..Labels: width {bundle_config.label_width}, overflow {bundle_config.label_overflow}
        ..Volume cap: {bundle_config.volume_page_cap}
        ..Watermark: {watermark}
        END RECORD OF SETTINGS
        ============================================================================="""
    dedent_and_log(bundle_logger, user_settings_log)


def create_bundle(
    sections: Sequence[Section],
    metadata: BundleMetadata,
    page_number_settings: PageNumberSettings | None = None,
    bundle_config: BundleConfig | None = None,
    watermark: bool = False,
    progress: ProgressHook | None = None,
    cancel_event: threading.Event | None = None,
) -> BundleResult:
    """Assemble sections into a single bundle PDF, or a zip of volumes if it is over the page cap."""
    bundle_config = bundle_config or BundleConfig()
    settings = page_number_settings or PageNumberSettings()
    pipeline = BundlePipeline(progress)
    _log_settings(sections, metadata, settings, bundle_config, watermark)

    try:
        plan, sources = _plan(sections, bundle_config)
        pipeline.advance(PipelineStage.PLANNED, f"{plan.content_page_count} content pages, {len(plan.entries)} entries")

        with ExitStack() as stack:
            content_pdf = build_content_document(plan, sources, bundle_config, stack, cancel_event)

            measured, _ = measure_index_pages(plan.entries, metadata, bundle_config)
            pipeline.advance(PipelineStage.MEASURED, f"index needs {measured} pages")

            resolution = resolve_index_page_count(plan.entries, metadata, bundle_config, initial_shift=measured)
            pipeline.advance(PipelineStage.SHIFTED, f"entries shifted by {resolution.index_page_count}")

            assembled = assemble_bundle(resolution, content_pdf, plan, bundle_config, stack)
            pipeline.advance(PipelineStage.ASSEMBLED, f"{assembled.total_pages} pages")

            annotate_bundle(assembled, settings, bundle_config, stack)
            pipeline.advance(PipelineStage.ANNOTATED)

            if watermark:
                apply_watermark(assembled.pdf, bundle_config.watermark_text, bundle_config.layout, stack)
                pipeline.advance(PipelineStage.WATERMARKED)

            buffer = io.BytesIO()
            assembled.pdf.save(buffer, deterministic_id=True)
            pdf_bytes = buffer.getvalue()
            page_labels = assembled.page_labels

        volumes = calculate_volumes(len(page_labels), bundle_config.volume_page_cap)
        if len(volumes) > 1:
            volume_pdfs = split_into_volumes(pdf_bytes, volumes, page_labels if bundle_config.viewer_page_labels else None)
            manifest = build_manifest(metadata, volumes, bundle_config.volume_page_cap, page_labels)
            zip_bytes = create_volume_zip(volume_pdfs, metadata, manifest)
            pipeline.advance(PipelineStage.SPLIT, f"{len(volumes)} volumes")
            result = BundleResult(
                None, zip_bytes, output_filename(metadata, "zip", "_VOLUMES"), page_labels, resolution.entries, resolution.index_page_count, volumes, manifest
            )
        else:
            result = BundleResult(pdf_bytes, None, output_filename(metadata), page_labels, resolution.entries, resolution.index_page_count, volumes)

        pipeline.advance(PipelineStage.DONE)
    except Exception:
        bundle_logger.exception(f"[CB]Bundle generation failed after stage {getattr(pipeline.stage, 'name', 'START')}")
        raise
    return result


def generate_index_only(
    sections: Sequence[Section],
    metadata: BundleMetadata,
    bundle_config: BundleConfig | None = None,
    watermark: bool = False,
) -> tuple[bytes, list[IndexEntry]]:
    """Render just the index pages, with page ranges as they will appear in the bundle."""
    bundle_config = bundle_config or BundleConfig()
    plan, _ = _plan(sections, bundle_config)
    resolution = resolve_index_page_count(plan.entries, metadata, bundle_config)
    buffer, _ = render_index(layout_index(resolution.entries, metadata, bundle_config), bundle_config.layout)
    if not watermark:
        return buffer.getvalue(), resolution.entries

    with ExitStack() as stack:
        index_pdf = stack.enter_context(Pdf.open(buffer))
        apply_watermark(index_pdf, bundle_config.watermark_text, bundle_config.layout, stack)
        out = io.BytesIO()
        index_pdf.save(out, deterministic_id=True)
    return out.getvalue(), resolution.entries


def _parse_cli_args(argv=None):
    parser = argparse.ArgumentParser(description="Assemble PDFs into a paginated court bundle with an index.")
    parser.add_argument("input_files", nargs="+", help="Input PDF files")
    parser.add_argument("-o", "--output_file", help="Output file (PDF, or zip when split into volumes)", default=None)
    parser.add_argument("-index", help="CSV file describing sections and documents", default=None)
    parser.add_argument("-b", "--bundlename", help="Title of the bundle", default="")
    parser.add_argument("-c", "--casename", help="Name of case e.g. Smith v Jones & ors", default="")
    parser.add_argument("-n", "--caseno", help="Case number", default="")
    parser.add_argument("--court", help="Court name", default="")
    parser.add_argument("--date", help="Hearing date", default="")
    parser.add_argument("--position", choices=PAGE_NUMBER_POSITIONS, default="bottom-center", help="Page number position")
    parser.add_argument("--font-size", type=int, default=10, help="Page number font size (8-16)")
    parser.add_argument("--bold", action="store_true", default=False, help="Bold page numbers")
    parser.add_argument("--date-setting", default="DD-MM-YYYY", help="How index dates are displayed")
    parser.add_argument("--volume-cap", type=int, default=350, help="Maximum pages per volume")
    parser.add_argument("--widen-labels", action="store_true", default=False, help="Widen labels past 999 instead of failing")
    parser.add_argument("-watermark", action="store_true", default=False, help="Add the preview watermark")
    parser.add_argument("-docx", action="store_true", default=False, help="Also write the index as a .docx")
    return parser.parse_args(argv)


def main(argv=None):
    """Command-line usage. Builds a bundle from local files and writes it next to them."""
    args = _parse_cli_args(argv)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    bundle_config = BundleConfig(
        BundleConfigParams(
            timestamp=timestamp,
            session_id=timestamp,
            user_agent="CLI",
            date_setting=args.date_setting,
            label_overflow="widen" if args.widen_labels else "error",
            volume_page_cap=args.volume_cap,
        )
    )
    configure_logger(bundle_config)

    files = {Path(name).name: Path(name).read_bytes() for name in args.input_files}
    if args.index:
        rows = load_index_data(Path(args.index).read_text(), bundle_config.date_setting)
    else:
        rows = [IndexRow(filename=name, title="", date="", is_section=False) for name in files]
    sections = build_sections(rows, files)

    metadata = BundleMetadata(case_name=args.casename, case_number=args.caseno, court=args.court, date=args.date, bundle_title=args.bundlename)
    settings = PageNumberSettings(position=args.position, font_size=args.font_size, bold=args.bold)

    result = create_bundle(sections, metadata, settings, bundle_config, watermark=args.watermark)
    output_path = Path(args.output_file) if args.output_file else Path(result.filename)
    output_path.write_bytes(result.zip_bytes if result.is_split else result.pdf_bytes)
    bundle_logger.info(f"[CB]Wrote {output_path} ({result.total_pages} pages, {len(result.volumes)} volume(s))")

    if args.docx:
        docx_path = output_path.with_name(f"{output_path.stem}_index.docx")
        docx_config = DocxConfig(show_dates=bundle_config.date_setting != "hide_date", preview=args.watermark)
        docx_path.write_bytes(create_index_docx(result.entries, metadata, docx_config, bundle_config.index_title))
        bundle_logger.info(f"[CB]Wrote {docx_path}")
    return output_path


if __name__ == "__main__":
    main()
