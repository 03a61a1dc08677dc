"""Turn ordered sections into a content page sequence and provisional index entries."""

from collections.abc import Mapping, Sequence
from typing import NamedTuple

from courtbundler.bundle_config import LabelOverflow
from courtbundler.errors import BundleError, InvalidPageNumberError, LabelCapacityError
from courtbundler.logger import bundle_logger
from courtbundler.models import IndexEntry, Section
from courtbundler.sources import ResolvedSource


class DividerBlock(NamedTuple):
    section_name: str


class DocumentBlock(NamedTuple):
    document_id: str
    name: str
    page_indices: tuple[int, ...]


ContentBlock = DividerBlock | DocumentBlock


class LayoutPlan(NamedTuple):
    blocks: list[ContentBlock]
    labels: list[str]
    entries: list[IndexEntry]

    @property
    def content_page_count(self) -> int:
        return len(self.labels)


def format_page_label(prefix: str, number: int, width: int = 3, overflow: LabelOverflow = "error") -> str:
    """Return prefix + number zero-padded to `width` digits.

    Numbers needing more digits either widen the field or raise
    LabelCapacityError, depending on `overflow`.
    """
    if number < 0:
        raise InvalidPageNumberError(prefix, number)
    if number >= 10**width and overflow == "error":
        raise LabelCapacityError(prefix, number, width)
    return f"{prefix}{number:0{width}d}"


def ordered_sections(sections: Sequence[Section]) -> list[Section]:
    return sorted(sections, key=lambda s: s.order)


def plan_layout(
    sections: Sequence[Section],
    sources: Mapping[str, ResolvedSource],
    label_width: int = 3,
    overflow: LabelOverflow = "error",
) -> LayoutPlan:
    """Walk the sections and assign a label to every content page.

    Entry page indices are content-only indices; they become final indices
    once the index page count is added to them.
    """
    blocks: list[ContentBlock] = []
    labels: list[str] = []
    entries: list[IndexEntry] = []

    for section in ordered_sections(sections):
        documents = sorted(section.documents, key=lambda d: d.order)
        if not documents and not section.add_divider:
            bundle_logger.debug(f"[PLN]Skipping empty section '{section.name}'")
            continue

        counter = section.start_page
        section_first_page = len(labels)
        divider_label = ""

        if section.add_divider:
            divider_label = format_page_label(section.page_prefix, counter, label_width, overflow)
            blocks.append(DividerBlock(section.name))
            labels.append(divider_label)
            counter += 1

        entries.append(
            IndexEntry(
                title=section.name.upper(),
                start_label=divider_label,
                end_label=divider_label,
                start_page_index=section_first_page,
                is_section=True,
            )
        )

        for document in documents:
            source = sources.get(document.id)
            if source is None:
                msg = f"Document {document.id} ({document.name}) was not resolved before planning"
                raise BundleError(msg)

            first_page = len(labels)
            doc_labels = [
                format_page_label(section.page_prefix, counter + offset, label_width, overflow) for offset in range(source.effective_page_count)
            ]
            counter += source.effective_page_count
            blocks.append(DocumentBlock(document.id, document.name, source.page_indices))
            labels.extend(doc_labels)
            entries.append(
                IndexEntry(
                    title=document.title,
                    start_label=doc_labels[0] if doc_labels else "",
                    end_label=doc_labels[-1] if doc_labels else "",
                    start_page_index=first_page,
                    indent=True,
                    date=document.date,
                )
            )

        bundle_logger.debug(f"[PLN]Section '{section.name}' ({section.page_prefix}) uses {len(labels) - section_first_page} pages")

    bundle_logger.info(f"[PLN]Planned {len(labels)} content pages and {len(entries)} index entries")
    return LayoutPlan(blocks, labels, entries)


def shift_entries(entries: Sequence[IndexEntry], offset: int) -> list[IndexEntry]:
    """Move entry targets from content-only to final-document coordinates."""
    return [entry._replace(start_page_index=entry.start_page_index + offset) for entry in entries]
