import io
from collections.abc import Sequence
from dataclasses import dataclass

from docx import Document
from docx.document import Document as DocumentObject
from docx.enum.text import WD_PARAGRAPH_ALIGNMENT
from docx.shared import Pt, RGBColor

from courtbundler.headers import HEADERS
from courtbundler.models import BundleMetadata, IndexEntry


@dataclass
class DocxConfig:
    """Configuration for the editable DOCX copy of the index."""

    show_dates: bool = True
    font_name: str = "Arial"
    preview: bool = False


def _add_docx_header(doc: DocumentObject, metadata: BundleMetadata, index_title: str, preview: bool):
    if metadata.case_number:
        para = doc.add_paragraph(metadata.case_number)
        para.alignment = WD_PARAGRAPH_ALIGNMENT.RIGHT

    if metadata.court:
        para = doc.add_paragraph(metadata.court.upper())
        para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER

    if metadata.case_name:
        para = doc.add_paragraph(metadata.case_name)
        para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
        run = para.runs[0]
        run.bold = True
        run.font.size = Pt(14)

    if metadata.applicants or metadata.respondents:
        doc.add_paragraph("BETWEEN:")
        separator = "-v-" if metadata.is_adversarial else "-and-"
        for parties in (metadata.applicants, separator, metadata.respondents):
            if isinstance(parties, str):
                para = doc.add_paragraph(parties)
                para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
                continue
            for party in parties:
                para = doc.add_paragraph()
                para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
                para.add_run(party.name.upper()).bold = True
                if party.designation:
                    para.add_run(f"\t{party.designation}")

    para = doc.add_paragraph()
    para.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
    run = para.add_run((metadata.bundle_title or index_title).upper())
    run.bold = True
    run.font.size = Pt(16)
    if preview:
        run.font.color.rgb = RGBColor(255, 0, 0)
        run.text = f"PREVIEW\n{run.text}"


def _create_and_populate_table(doc: DocumentObject, entries: Sequence[IndexEntry], show_dates: bool):
    table = doc.add_table(rows=1, cols=3)
    table.style = "Table Grid"

    header_cells = table.rows[0].cells
    header_cells[0].text = HEADERS[0]
    header_cells[1].text = HEADERS[1] if show_dates else ""
    header_cells[2].text = HEADERS[2]
    for cell in header_cells:
        for run in cell.paragraphs[0].runs:
            run.bold = True
            run.font.size = Pt(10)

    for entry in entries:
        row = table.add_row().cells
        if entry.is_section:
            row[0].merge(row[1])
            para = row[0].paragraphs[0]
            run = para.add_run(entry.title)
            run.bold = True
            run.font.size = Pt(12)
            row[2].text = entry.page_range
        else:
            row[0].text = f"    {entry.title}" if entry.indent else entry.title
            row[1].text = entry.date if show_dates else ""
            row[2].text = entry.page_range


def create_index_docx(entries: Sequence[IndexEntry], metadata: BundleMetadata, config: DocxConfig | None = None, index_title: str = "Index") -> bytes:
    """Build the index as a Word document and return its bytes."""
    config = config or DocxConfig()
    doc = Document()
    doc.styles["Normal"].font.name = config.font_name

    _add_docx_header(doc, metadata, index_title, config.preview)
    _create_and_populate_table(doc, entries, config.show_dates)

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()
