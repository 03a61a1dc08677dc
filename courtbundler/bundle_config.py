import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, NamedTuple

LabelOverflow = Literal["error", "widen"]

DEFAULT_VOLUME_PAGE_CAP = 350
DEFAULT_WATERMARK_TEXT = "PREVIEW - NOT FOR OFFICIAL USE"


@dataclass(frozen=True)
class LayoutConfig:
    """Every measurement used to lay out index, divider and stamp pages, in PDF points."""

    page_width: float = 595
    page_height: float = 842
    margin_left: float = 50
    margin_right: float = 50
    top_offset: float = 80
    bottom_margin: float = 80

    regular_font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"

    title_size: float = 18
    title_step: float = 40
    caption_size: float = 11
    caption_step: float = 20
    caption_gap: float = 30

    header_band_height: float = 25
    header_band_drop: float = 5
    header_text_rise: float = 5
    header_size: float = 11
    header_step: float = 30
    header_text_x: float = 60

    section_x: float = 60
    document_x: float = 80
    section_size: float = 11
    document_size: float = 10
    section_step: float = 30
    document_step: float = 25

    label_right_inset: float = 60
    label_column_width: float = 70
    date_column_width: float = 70
    column_gap: float = 10
    ellipsis: str = "..."

    link_drop: float = 2
    link_rise: float = 4

    footer_y: float = 30
    footer_size: float = 8

    divider_title_size: float = 16
    divider_title_drop: float = 50

    stamp_margin_x: float = 50
    stamp_bottom_y: float = 20
    stamp_top_drop: float = 30

    watermark_size: float = 48
    watermark_angle: float = 45
    watermark_alpha: float = 0.25

    @property
    def top_y(self) -> float:
        return self.page_height - self.top_offset

    @property
    def label_right_x(self) -> float:
        return self.page_width - self.label_right_inset

    @property
    def label_left_x(self) -> float:
        return self.label_right_x - self.label_column_width

    @property
    def date_left_x(self) -> float:
        return self.label_left_x - self.column_gap - self.date_column_width

    @property
    def link_right_x(self) -> float:
        return self.page_width - self.margin_right


class BundleConfigParams(NamedTuple):
    timestamp: str = ""
    session_id: str = ""
    user_agent: str = ""
    date_setting: str = ""
    label_width: int = 3
    label_overflow: LabelOverflow = "error"
    volume_page_cap: int = DEFAULT_VOLUME_PAGE_CAP
    watermark_text: str = ""
    index_title: str = ""
    index_footer: str = ""
    max_layout_iterations: int = 3
    viewer_page_labels: bool = True
    logs_dir: Path | None = None
    layout: LayoutConfig | None = None


@dataclass(init=False)
class BundleConfig:
    def __init__(
        self,
        bundle_config_params: BundleConfigParams | None = None,
    ):
        (
            timestamp,
            session_id,
            user_agent,
            date_setting,
            label_width,
            label_overflow,
            volume_page_cap,
            watermark_text,
            index_title,
            index_footer,
            max_layout_iterations,
            viewer_page_labels,
            logs_dir,
            layout,
        ) = bundle_config_params or BundleConfigParams()

        if label_overflow not in ("error", "widen"):
            msg = f"Unknown label overflow policy: {label_overflow}"
            raise ValueError(msg)

        self.timestamp = timestamp or datetime.now().strftime("%Y-%m-%d-%H%M%S")
        self.session_id = session_id if session_id else self.timestamp
        self.user_agent = user_agent or "Unknown"
        self.date_setting = date_setting if date_setting else "DD-MM-YYYY"
        self.label_width = label_width if label_width and label_width > 0 else 3
        self.label_overflow = label_overflow
        self.volume_page_cap = volume_page_cap if volume_page_cap and volume_page_cap > 0 else DEFAULT_VOLUME_PAGE_CAP
        self.watermark_text = watermark_text if watermark_text else DEFAULT_WATERMARK_TEXT
        self.index_title = index_title if index_title else "COURT BUNDLE INDEX"
        self.index_footer = index_footer or ""
        self.max_layout_iterations = max_layout_iterations if max_layout_iterations else 3
        self.viewer_page_labels = viewer_page_labels
        self.layout = layout if layout else LayoutConfig()
        base_temp = tempfile.gettempdir()
        self.logs_dir = logs_dir if logs_dir else Path(base_temp) / "courtbundler" / "logs" / self.session_id
