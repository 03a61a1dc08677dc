"""Tests for document source resolution."""
from __future__ import annotations

import pytest
from conftest import make_document, make_empty_pdf, make_pdf

from courtbundler.errors import InvalidPageSubsetError, UnreadableDocumentError
from courtbundler.models import Document
from courtbundler.sources import count_pages, resolve_document_source, resolve_sources


class TestResolveDocumentSource:
    def test_original_uses_every_page(self) -> None:
        source = resolve_document_source(make_document("d", 4))
        assert source.origin == "original"
        assert source.page_indices == (0, 1, 2, 3)
        assert source.effective_page_count == 4

    def test_subset_keeps_given_order(self) -> None:
        source = resolve_document_source(make_document("d", 5, selected_pages=[4, 2]))
        assert source.origin == "subset"
        assert source.page_indices == (4, 2)
        assert source.source_page_count == 5

    def test_edited_copy_wins_over_subset(self) -> None:
        edited = make_pdf(2, "edited")
        document = make_document("d", 5, selected_pages=[0], edited_data=edited)
        source = resolve_document_source(document)
        assert source.origin == "edited"
        assert source.data == edited
        assert source.page_indices == (0, 1)

    def test_declared_count_mismatch_uses_parsed_count(self) -> None:
        document = Document(id="d", name="d.pdf", data=make_pdf(3), page_count=9)
        assert resolve_document_source(document).effective_page_count == 3

    @pytest.mark.parametrize("selected", [[], [0, 0], [5], [-1]])
    def test_invalid_subsets_are_rejected(self, selected: list[int]) -> None:
        with pytest.raises(InvalidPageSubsetError):
            resolve_document_source(make_document("d", 5, selected_pages=selected))


class TestUnreadableDocuments:
    def test_garbage_bytes(self) -> None:
        document = Document(id="bad", name="bad.pdf", data=b"not a pdf at all")
        with pytest.raises(UnreadableDocumentError) as excinfo:
            count_pages(document.data, document)
        assert excinfo.value.document_id == "bad"

    def test_zero_page_document(self) -> None:
        document = Document(id="empty", name="empty.pdf", data=make_empty_pdf())
        with pytest.raises(UnreadableDocumentError):
            resolve_document_source(document)

    def test_one_bad_document_aborts_the_batch(self) -> None:
        documents = [make_document("good", 2), Document(id="bad", name="bad.pdf", data=b"this is not a pdf")]
        with pytest.raises(UnreadableDocumentError):
            resolve_sources(documents)


def test_resolve_sources_keys_by_document_id() -> None:
    resolved = resolve_sources([make_document("x", 1), make_document("y", 3)])
    assert set(resolved) == {"x", "y"}
    assert resolved["y"].effective_page_count == 3
    assert resolve_sources([]) == {}
