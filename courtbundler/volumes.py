"""Split an over-long bundle into page-capped volumes and package them as a zip."""

import io
import zipfile
from collections.abc import Sequence

from pikepdf import Array, Pdf
from werkzeug.utils import secure_filename

from courtbundler.annotator import add_viewer_page_labels
from courtbundler.bundle_config import DEFAULT_VOLUME_PAGE_CAP
from courtbundler.logger import bundle_logger
from courtbundler.models import BundleMetadata, Volume

MANIFEST_NAME = "MANIFEST.txt"


def calculate_volumes(total_pages: int, cap: int = DEFAULT_VOLUME_PAGE_CAP) -> list[Volume]:
    """Partition [0, total_pages) into contiguous ranges of at most `cap` pages."""
    if cap <= 0:
        msg = f"Volume page cap must be positive, got {cap}"
        raise ValueError(msg)
    volumes = []
    start = 0
    while start < total_pages:
        page_count = min(cap, total_pages - start)
        volumes.append(Volume(len(volumes) + 1, start, start + page_count - 1, page_count))
        start += page_count
    return volumes


def _link_target(annot):
    if annot.get("/Subtype") != "/Link":
        return None
    dest = annot.get("/Dest")
    if dest is None and "/A" in annot and annot.A.get("/S") == "/GoTo":
        dest = annot.A.get("/D")
    if isinstance(dest, Array) and len(dest) > 0 and dest[0].is_indirect:
        return dest[0].objgen
    return None


def _drop_foreign_links(page, kept_pages: set) -> int:
    """Remove link annotations pointing outside the volume. Returns how many were dropped."""
    annots = page.get("/Annots")
    if not annots:
        return 0
    kept = [annot for annot in annots if (target := _link_target(annot)) is None or target in kept_pages]
    dropped = len(annots) - len(kept)
    if dropped:
        page.Annots = Array(kept)
    return dropped


def split_into_volumes(pdf_bytes: bytes, volumes: Sequence[Volume], page_labels: Sequence[str] | None = None) -> list[bytes]:
    """Cut each volume's page range out of a fresh copy of the bundle.

    Links whose target lies in another volume cannot be resolved and are
    removed; each volume is navigable on its own. Pages stay in the document
    they were laid out in, so links between kept pages survive unchanged.
    """
    volume_pdfs = []
    for volume in volumes:
        with Pdf.open(io.BytesIO(pdf_bytes)) as volume_pdf:
            page_range = range(volume.start_page, volume.end_page + 1)
            kept_pages = {volume_pdf.pages[i].obj.objgen for i in page_range}
            dropped = sum(_drop_foreign_links(volume_pdf.pages[i], kept_pages) for i in page_range)
            del volume_pdf.pages[volume.end_page + 1 :]
            del volume_pdf.pages[: volume.start_page]
            # Bundle-wide outline and labels no longer match the page range.
            for key in ("/Outlines", "/PageLabels"):
                if key in volume_pdf.Root:
                    del volume_pdf.Root[key]
            if page_labels is not None:
                add_viewer_page_labels(volume_pdf, page_labels[volume.start_page : volume.end_page + 1])

            buffer = io.BytesIO()
            volume_pdf.save(buffer, deterministic_id=True)
            volume_pdfs.append(buffer.getvalue())
        bundle_logger.debug(f"[VOL]Volume {volume.number}: pages {volume.start_page}-{volume.end_page}, {dropped} cross-volume links dropped")
    return volume_pdfs


def volume_filename(metadata: BundleMetadata, number: int, count: int) -> str:
    stem = "_".join(part for part in (secure_filename(metadata.case_number), secure_filename(metadata.case_name)) if part) or "bundle"
    return f"{stem}_Volume_{number}_of_{count}.pdf"


def _label_span(page_labels: Sequence[str] | None, volume: Volume) -> str:
    if not page_labels:
        return ""
    labels = [label for label in page_labels[volume.start_page : volume.end_page + 1] if label]
    if not labels:
        return " [index]"
    return f" [{labels[0]} - {labels[-1]}]"


def build_manifest(metadata: BundleMetadata, volumes: Sequence[Volume], cap: int, page_labels: Sequence[str] | None = None) -> str:
    total_pages = sum(volume.page_count for volume in volumes)
    lines = [
        f"Court Bundle - {metadata.case_identifier}",
        "",
        f"This bundle of {total_pages} pages has been split into {len(volumes)} volumes of at most {cap} pages.",
        "Index links pointing into another volume are not preserved.",
        "",
        "Volumes:",
    ]
    lines.extend(
        f"- Volume {volume.number} of {len(volumes)}: pages {volume.start_page + 1}-{volume.end_page + 1} "
        f"({volume.page_count} pages){_label_span(page_labels, volume)}  {volume_filename(metadata, volume.number, len(volumes))}"
        for volume in volumes
    )
    return "\n".join(lines) + "\n"


def create_volume_zip(volume_pdfs: Sequence[bytes], metadata: BundleMetadata, manifest: str) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zipf:
        for number, pdf_bytes in enumerate(volume_pdfs, start=1):
            zipf.writestr(volume_filename(metadata, number, len(volume_pdfs)), pdf_bytes)
        zipf.writestr(MANIFEST_NAME, manifest)
    bundle_logger.info(f"[VOL]Packaged {len(volume_pdfs)} volumes")
    return buffer.getvalue()
