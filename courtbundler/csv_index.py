"""Read a CSV index describing sections and documents.

The CSV is typically generated by the frontend. Headings:
    filename, title, date, section, prefix, start_page, divider, pages
Section rows:
    SECTION, <section name>, , 1, <prefix>, <start page>, <0|1>,
Document rows:
    <filename>, <title>, <date>, 0, , , , <1-based pages separated by ;>
Only the first three columns are required on document rows. Documents
listed before any section row go into a default section.
"""

import csv
import io
import re
import string
from collections.abc import Mapping
from datetime import datetime
from typing import NamedTuple

from courtbundler.logger import bundle_logger
from courtbundler.models import Document, Section

SECTION_MARKER = "SECTION"
DEFAULT_SECTION_NAME = "Documents"
MIN_CSV_COLUMNS = 2

DATE_FORMATS = {
    "YYYY-MM-DD": "%Y-%m-%d",
    "DD-MM-YYYY": "%d-%m-%Y",
    "MM-DD-YYYY": "%m-%d-%Y",
    "uk_longdate": "%d %B %Y",
    "us_longdate": "%B %d, %Y",
    "uk_abbreviated_date": "%d %b %Y",
    "us_abbreviated_date": "%b %d, %Y",
}


class IndexRow(NamedTuple):
    filename: str
    title: str
    date: str
    is_section: bool
    prefix: str = ""
    start_page: int = 1
    divider: bool = False
    pages: list[int] | None = None


def parse_the_date(date: str, date_setting: str) -> str:
    """Reformat a YYYY-MM-DD or DD-MM-YYYY date per the date setting.

    With date_setting "hide_date" nothing is shown. Anything that does not
    parse is passed through unchanged.
    """
    if date_setting == "hide_date" or not date:
        return ""
    if re.fullmatch(r"\d{4}-\d{2}-\d{2}", date):
        source_format = "%Y-%m-%d"
    elif re.fullmatch(r"\d{2}-\d{2}-\d{4}", date):
        source_format = "%d-%m-%Y"
    else:
        bundle_logger.warning(f"[CSV]Date does not match expected format: {date}")
        return date
    try:
        return datetime.strptime(date, source_format).strftime(DATE_FORMATS[date_setting])
    except KeyError:
        bundle_logger.exception(f"[CSV]Unknown date setting: {date_setting}")
        return date
    except ValueError:
        bundle_logger.warning(f"[CSV]Not a calendar date: {date}")
        return date


def _cell(row: list[str], idx: int) -> str:
    return row[idx].strip() if len(row) > idx else ""


def _parse_pages(value: str) -> list[int] | None:
    if not value:
        return None
    return [int(part) - 1 for part in value.split(";") if part.strip()]


def load_index_data(csv_content: str, date_setting: str = "DD-MM-YYYY") -> list[IndexRow]:
    rows = []
    reader = csv.reader(io.StringIO(csv_content))
    next(reader, None)  # header
    for row in reader:
        if len(row) < MIN_CSV_COLUMNS or not any(cell.strip() for cell in row):
            continue
        filename, title = _cell(row, 0), _cell(row, 1)
        is_section = _cell(row, 3) == "1" or filename.upper() == SECTION_MARKER
        start_page = _cell(row, 5)
        rows.append(
            IndexRow(
                filename=filename,
                title=title,
                date="" if is_section else parse_the_date(_cell(row, 2), date_setting),
                is_section=is_section,
                prefix=_cell(row, 4),
                start_page=int(start_page) if start_page else 1,
                divider=_cell(row, 6) in ("1", "true", "yes"),
                pages=None if is_section else _parse_pages(_cell(row, 7)),
            )
        )
    bundle_logger.debug(f"[CSV]Loaded {len(rows)} index rows")
    return rows


def _next_prefix(used: set[str]) -> str:
    for letter in string.ascii_uppercase:
        if letter not in used:
            return letter
    msg = "No unused single-letter section prefixes remain"
    raise ValueError(msg)


def build_sections(rows: list[IndexRow], files: Mapping[str, bytes]) -> list[Section]:
    """Turn index rows plus uploaded file contents into ordered sections."""
    sections: list[Section] = []
    used_prefixes = {row.prefix for row in rows if row.is_section and row.prefix}
    current = None

    for row in rows:
        if row.is_section:
            prefix = row.prefix or _next_prefix(used_prefixes)
            used_prefixes.add(prefix)
            current = Section(
                id=f"section-{len(sections) + 1}",
                name=row.title,
                add_divider=row.divider,
                page_prefix=prefix,
                start_page=row.start_page,
                order=len(sections),
            )
            sections.append(current)
            continue

        if current is None:
            prefix = _next_prefix(used_prefixes)
            used_prefixes.add(prefix)
            current = Section(id="section-0", name=DEFAULT_SECTION_NAME, page_prefix=prefix, order=-1)
            sections.append(current)

        if row.filename not in files:
            msg = f"Index lists {row.filename} but no such file was supplied"
            raise KeyError(msg)
        current.documents.append(
            Document(
                id=f"{current.id}-doc-{len(current.documents) + 1}",
                name=row.filename,
                data=files[row.filename],
                order=len(current.documents),
                custom_title=row.title or None,
                date=row.date,
                selected_pages=row.pages,
            )
        )
    return sections
