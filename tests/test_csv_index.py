"""Tests for the CSV index loader."""
from __future__ import annotations

import pytest

from courtbundler.csv_index import DEFAULT_SECTION_NAME, build_sections, load_index_data, parse_the_date

CSV = """filename,title,date,section,prefix,start_page,divider,pages
SECTION,Pleadings,,1,P,1,1,
claim.pdf,Particulars of Claim,2024-03-01,0,,,,
defence.pdf,,01-04-2024,0,,,,2;1
SECTION,Evidence,,1,,5,0,
witness.pdf,Witness Statement,,0,,,,
"""


class TestParseTheDate:
    def test_iso_to_uk(self) -> None:
        assert parse_the_date("2024-03-01", "DD-MM-YYYY") == "01-03-2024"

    def test_uk_long_date(self) -> None:
        assert parse_the_date("01-03-2024", "uk_longdate") == "01 March 2024"

    def test_hidden(self) -> None:
        assert parse_the_date("2024-03-01", "hide_date") == ""

    def test_unparseable_passes_through(self) -> None:
        assert parse_the_date("March 2024", "DD-MM-YYYY") == "March 2024"


class TestLoadIndexData:
    def test_rows(self) -> None:
        rows = load_index_data(CSV)
        assert [r.is_section for r in rows] == [True, False, False, True, False]
        assert rows[0].prefix == "P" and rows[0].divider
        assert rows[1].date == "01-03-2024"
        assert rows[2].pages == [1, 0]
        assert rows[3].start_page == 5 and not rows[3].divider

    def test_blank_lines_ignored(self) -> None:
        assert load_index_data("filename,title\n\n,\na.pdf,A\n") == load_index_data("filename,title\na.pdf,A\n")


class TestBuildSections:
    def test_sections_and_documents(self) -> None:
        files = {"claim.pdf": b"1", "defence.pdf": b"2", "witness.pdf": b"3"}
        sections = build_sections(load_index_data(CSV), files)
        assert [s.name for s in sections] == ["Pleadings", "Evidence"]
        pleadings, evidence = sections
        assert pleadings.add_divider and pleadings.page_prefix == "P"
        assert evidence.page_prefix == "A" and evidence.start_page == 5
        assert [d.title for d in pleadings.documents] == ["Particulars of Claim", "defence"]
        assert pleadings.documents[1].selected_pages == [1, 0]
        assert len({d.id for s in sections for d in s.documents}) == 3

    def test_documents_before_any_section(self) -> None:
        sections = build_sections(load_index_data("filename,title,date\na.pdf,A,\n"), {"a.pdf": b"x"})
        assert len(sections) == 1
        assert sections[0].name == DEFAULT_SECTION_NAME

    def test_missing_file(self) -> None:
        with pytest.raises(KeyError):
            build_sections(load_index_data("filename,title,date\nmissing.pdf,M,\n"), {})
