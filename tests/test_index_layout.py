"""Tests for index layout and rendering."""
from __future__ import annotations

import pikepdf
from reportlab.pdfbase.pdfmetrics import stringWidth

from courtbundler.bundle_config import LayoutConfig
from courtbundler.index_layout import compute_index_layout, fit_text
from courtbundler.index_renderer import render_divider_pages, render_index
from courtbundler.models import BundleMetadata, IndexEntry, Party

CONFIG = LayoutConfig()


def _entries(documents: int, dated: bool = False) -> list[IndexEntry]:
    entries = [IndexEntry("SECTION A", "", "", 0, is_section=True)]
    entries.extend(
        IndexEntry(f"Document {i}", f"A{i:03d}", f"A{i:03d}", i, indent=True, date="01-01-2024" if dated else "") for i in range(1, documents + 1)
    )
    return entries


class TestFitText:
    def test_short_text_untouched(self) -> None:
        assert fit_text("Witness statement", "Helvetica", 10, 300) == "Witness statement"

    def test_long_text_truncated_within_width(self) -> None:
        title = "Exhibit bundle of correspondence between the parties " * 6
        fitted = fit_text(title, "Helvetica", 10, 200)
        assert fitted.endswith("...")
        assert len(fitted) < len(title)
        assert stringWidth(fitted, "Helvetica", 10) <= 200

    def test_column_narrower_than_ellipsis_gives_nothing(self) -> None:
        assert fit_text("Long title", "Helvetica", 10, 5) == ""
        assert fit_text("Long title", "Helvetica", 10, -4) == ""

    def test_result_never_exceeds_available(self) -> None:
        for available in (0, 3, 8, 12, 20, 45):
            fitted = fit_text("Correspondence", "Helvetica", 10, available)
            assert stringWidth(fitted, "Helvetica", 10) <= available


class TestComputeIndexLayout:
    def test_single_page_for_small_bundle(self) -> None:
        layout = compute_index_layout(_entries(3), BundleMetadata(case_name="Smith v Jones"), CONFIG)
        assert layout.page_count == 1
        assert len(layout.headers) == 1
        assert len(layout.rows) == 4

    def test_rows_step_by_kind(self) -> None:
        layout = compute_index_layout(_entries(2), BundleMetadata(), CONFIG)
        section, first, second = layout.rows
        assert section.y - first.y == CONFIG.section_step
        assert first.y - second.y == CONFIG.document_step
        assert section.x == CONFIG.section_x
        assert first.x == CONFIG.document_x

    def test_long_index_breaks_and_repeats_header(self) -> None:
        layout = compute_index_layout(_entries(60), BundleMetadata(), CONFIG)
        assert layout.page_count > 1
        assert [h.page_index for h in layout.headers] == list(range(layout.page_count))
        assert all(row.y >= CONFIG.bottom_margin for row in layout.rows)
        assert {row.page_index for row in layout.rows} == set(range(layout.page_count))

    def test_link_rect_surrounds_row_text(self) -> None:
        layout = compute_index_layout(_entries(1), BundleMetadata(), CONFIG)
        row = layout.rows[1]
        x0, y0, x1, y1 = row.link_rect
        assert x0 == row.x
        assert y0 == row.y - CONFIG.link_drop
        assert x1 == CONFIG.page_width - CONFIG.margin_right
        assert y1 == row.y + row.font_size + CONFIG.link_rise

    def test_dates_column_only_when_dated(self) -> None:
        assert not compute_index_layout(_entries(2), BundleMetadata(), CONFIG).show_dates
        dated = compute_index_layout(_entries(2, dated=True), BundleMetadata(), CONFIG)
        assert dated.show_dates
        assert dated.rows[1].date_text == "01-01-2024"
        assert len(dated.headers[0].labels) == 3

    def test_caption_lists_parties(self) -> None:
        metadata = BundleMetadata(
            case_name="Smith v Jones",
            applicants=[Party("Jane Smith", "Claimant")],
            respondents=[Party("Acme Ltd", "Defendant")],
        )
        texts = [line.text for line in compute_index_layout(_entries(1), metadata, CONFIG).caption]
        assert "BETWEEN:" in texts
        assert "JANE SMITH" in texts and "Claimant" in texts
        assert texts.index("-v-") < texts.index("ACME LTD")

    def test_truncated_title_fits_its_column(self) -> None:
        entries = [IndexEntry("A very long document title " * 10, "A001", "A050", 1, indent=True)]
        row = compute_index_layout(entries, BundleMetadata(), CONFIG).rows[0]
        assert row.title_text.endswith(CONFIG.ellipsis)
        assert row.x + stringWidth(row.title_text, row.font_name, row.font_size) <= CONFIG.label_left_x

    def test_long_date_stops_short_of_wide_label(self) -> None:
        entries = [IndexEntry("Exhibits", "EXHIBIT001", "EXHIBIT120", 1, indent=True, date="Various dates 2019 to 2021")]
        row = compute_index_layout(entries, BundleMetadata(), CONFIG).rows[0]
        label_width = stringWidth(row.label_text, row.font_name, row.font_size)
        date_right = CONFIG.date_left_x + stringWidth(row.date_text, row.font_name, row.font_size)
        assert row.date_text != entries[0].date
        assert date_right <= CONFIG.label_right_x - label_width - CONFIG.column_gap
        title_right = row.x + stringWidth(row.title_text, row.font_name, row.font_size)
        assert title_right <= CONFIG.label_right_x - label_width


class TestRenderIndex:
    def test_rendered_pages_match_layout(self) -> None:
        for documents in (3, 60, 150):
            layout = compute_index_layout(_entries(documents), BundleMetadata(), CONFIG)
            buffer, count = render_index(layout, CONFIG)
            with pikepdf.Pdf.open(buffer) as pdf:
                assert len(pdf.pages) == count == layout.page_count

    def test_rendering_is_deterministic(self) -> None:
        layout = compute_index_layout(_entries(10), BundleMetadata(case_name="X"), CONFIG)
        assert render_index(layout, CONFIG)[0].getvalue() == render_index(layout, CONFIG)[0].getvalue()

    def test_divider_pages_one_per_name(self) -> None:
        with pikepdf.Pdf.open(render_divider_pages(["Pleadings", "Evidence"], CONFIG)) as pdf:
            assert len(pdf.pages) == 2
