"""Shared fixtures: small generated PDFs and section builders."""
from __future__ import annotations

import io

import pdfplumber
import pikepdf
import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen.canvas import Canvas

from courtbundler.bundle_config import BundleConfig, BundleConfigParams
from courtbundler.models import BundleMetadata, Document, Section


def make_pdf(page_count: int, tag: str = "doc", pagesize=A4) -> bytes:
    """A PDF whose page n carries the text '<tag> page <n>' (1-based)."""
    buffer = io.BytesIO()
    canvas = Canvas(buffer, pagesize=pagesize, invariant=1)
    for number in range(1, page_count + 1):
        canvas.setFont("Helvetica", 14)
        canvas.drawString(100, pagesize[1] / 2, f"{tag} page {number}")
        canvas.showPage()
    canvas.save()
    return buffer.getvalue()


def make_empty_pdf() -> bytes:
    buffer = io.BytesIO()
    with pikepdf.Pdf.new() as pdf:
        pdf.save(buffer)
    return buffer.getvalue()


def make_document(doc_id: str, page_count: int, **kwargs) -> Document:
    return Document(id=doc_id, name=f"{doc_id}.pdf", data=make_pdf(page_count, doc_id), page_count=page_count, **kwargs)


def make_section(section_id: str, prefix: str, documents: list[Document], order: int = 0, **kwargs) -> Section:
    return Section(id=section_id, name=f"Section {prefix}", documents=documents, page_prefix=prefix, order=order, **kwargs)


def page_text(pdf_bytes: bytes, page_index: int) -> str:
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        return pdf.pages[page_index].extract_text() or ""


@pytest.fixture
def metadata() -> BundleMetadata:
    return BundleMetadata(case_name="Smith v Jones", case_number="AB12C345", court="High Court", date="01-02-2024")


@pytest.fixture
def bundle_config(tmp_path) -> BundleConfig:
    return BundleConfig(BundleConfigParams(session_id="test", logs_dir=tmp_path / "logs"))


@pytest.fixture
def two_sections() -> list[Section]:
    """Section A with one 3-page document, section B with one 2-page document."""
    return [
        make_section("s-a", "A", [make_document("a1", 3)], order=0),
        make_section("s-b", "B", [make_document("b1", 2)], order=1),
    ]
