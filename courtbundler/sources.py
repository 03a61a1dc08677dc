"""Resolve the bytes and page list that each document contributes to a bundle."""

import io
import os
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import count
from typing import Literal, NamedTuple

from pikepdf import Pdf, PdfError

from courtbundler.errors import InvalidPageSubsetError, UnreadableDocumentError
from courtbundler.logger import bundle_logger, init_worker
from courtbundler.models import Document

CPU_COUNT = os.cpu_count()

SourceOrigin = Literal["edited", "subset", "original"]


class ResolvedSource(NamedTuple):
    document_id: str
    data: bytes
    page_indices: tuple[int, ...]
    source_page_count: int
    origin: SourceOrigin

    @property
    def effective_page_count(self) -> int:
        return len(self.page_indices)


def count_pages(data: bytes, document: Document) -> int:
    """Parse a PDF byte string and return its page count."""
    try:
        with Pdf.open(io.BytesIO(data)) as pdf:
            page_count = len(pdf.pages)
    except PdfError as e:
        bundle_logger.exception(f"[SRC]Unable to parse {document.name}")
        raise UnreadableDocumentError(document.id, document.name, str(e)) from e
    if page_count == 0:
        raise UnreadableDocumentError(document.id, document.name, "document has no pages")
    return page_count


def validate_page_subset(document: Document, page_count: int) -> tuple[int, ...]:
    selected = document.selected_pages
    if selected is None:
        return tuple(range(page_count))
    if not selected or len(set(selected)) != len(selected) or any(not 0 <= idx < page_count for idx in selected):
        raise InvalidPageSubsetError(document.id, list(selected), page_count)
    return tuple(selected)


def resolve_document_source(document: Document) -> ResolvedSource:
    """Pick the byte source for a document.

    Precedence is edited bytes, then the explicit page subset, then the
    whole original file. When an edited override and a subset are both
    present the override wins and the subset is ignored.
    """
    if document.edited_data is not None:
        if document.selected_pages is not None:
            bundle_logger.warning(f"[SRC]{document.name} has both an edited copy and a page selection; using the edited copy")
        page_count = count_pages(document.edited_data, document)
        return ResolvedSource(document.id, document.edited_data, tuple(range(page_count)), page_count, "edited")

    page_count = count_pages(document.data, document)
    if document.page_count and document.page_count != page_count:
        bundle_logger.warning(f"[SRC]{document.name} declares {document.page_count} pages but contains {page_count}")

    page_indices = validate_page_subset(document, page_count)
    origin: SourceOrigin = "subset" if document.selected_pages is not None else "original"
    bundle_logger.debug(f"[SRC]{document.name}: {len(page_indices)} of {page_count} pages ({origin})")
    return ResolvedSource(document.id, document.data, page_indices, page_count, origin)


def resolve_sources(documents: Iterable[Document]) -> dict[str, ResolvedSource]:
    """Resolve every document concurrently.

    Documents are independent of each other, so they are parsed on a thread
    pool. The first failure aborts the run.
    """
    documents = list(documents)
    resolved: dict[str, ResolvedSource] = {}
    if not documents:
        return resolved

    with ThreadPoolExecutor(max_workers=CPU_COUNT, initializer=init_worker, initargs=(count(1),)) as executor:
        future_to_document = {executor.submit(resolve_document_source, document): document for document in documents}
        try:
            for future in as_completed(future_to_document):
                source = future.result()
                resolved[source.document_id] = source
        except Exception:
            for future in future_to_document:
                future.cancel()
            raise

    bundle_logger.info(f"[SRC]Resolved {len(resolved)} documents")
    return resolved
