from dataclasses import dataclass, field
from typing import Literal, NamedTuple

PageNumberPosition = Literal["bottom-center", "bottom-right", "bottom-left", "top-center", "top-right", "top-left"]

PAGE_NUMBER_POSITIONS: tuple[PageNumberPosition, ...] = (
    "bottom-center",
    "bottom-right",
    "bottom-left",
    "top-center",
    "top-right",
    "top-left",
)

MIN_PAGE_NUMBER_FONT_SIZE = 8
MAX_PAGE_NUMBER_FONT_SIZE = 16


@dataclass
class Document:
    """A single uploaded PDF and the overrides that apply to it.

    `selected_pages` holds 0-based page indices of the original file, used in
    the order given. `edited_data` is an edited copy of the file which, when
    present, replaces the original outright.
    """

    id: str
    name: str
    data: bytes
    page_count: int = 0
    order: int = 0
    custom_title: str | None = None
    date: str = ""
    selected_pages: list[int] | None = None
    edited_data: bytes | None = None

    @property
    def title(self) -> str:
        if self.custom_title:
            return self.custom_title
        return self.name[:-4] if self.name.lower().endswith(".pdf") else self.name


@dataclass
class Section:
    id: str
    name: str
    documents: list[Document] = field(default_factory=list)
    add_divider: bool = False
    page_prefix: str = ""
    start_page: int = 1
    order: int = 0


@dataclass
class Party:
    name: str
    designation: str = ""
    litigation_friend: str = ""


@dataclass
class BundleMetadata:
    case_name: str = ""
    case_number: str = ""
    court: str = ""
    date: str = ""
    bundle_title: str = ""
    is_adversarial: bool = True
    applicants: list[Party] = field(default_factory=list)
    respondents: list[Party] = field(default_factory=list)

    @property
    def case_identifier(self) -> str:
        parts = [p for p in (self.case_number, self.case_name) if p]
        return " ".join(parts) if parts else "Bundle"


@dataclass
class PageNumberSettings:
    position: PageNumberPosition = "bottom-center"
    font_size: int = 10
    bold: bool = False

    def __post_init__(self):
        if self.position not in PAGE_NUMBER_POSITIONS:
            msg = f"Unknown page number position: {self.position}"
            raise ValueError(msg)
        # Same clamp the settings form applies.
        self.font_size = min(MAX_PAGE_NUMBER_FONT_SIZE, max(MIN_PAGE_NUMBER_FONT_SIZE, int(self.font_size)))


class IndexEntry(NamedTuple):
    """One row of the index.

    `start_page_index` is in content-only coordinates until the index size
    shift has been applied, and in final-document coordinates afterwards.
    """

    title: str
    start_label: str
    end_label: str
    start_page_index: int
    is_section: bool = False
    indent: bool = False
    date: str = ""

    @property
    def page_range(self) -> str:
        if not self.start_label:
            return ""
        if self.start_label == self.end_label:
            return self.start_label
        return f"{self.start_label}-{self.end_label}"


class Volume(NamedTuple):
    number: int
    start_page: int
    end_page: int
    page_count: int
