from __future__ import annotations

from pathlib import Path
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field


class ReportConfig(BaseModel):
    """Configuration for table PDF generation."""

    title: str = "Report"
    subtitle: Optional[str] = None

    page_size: Literal["A4", "LETTER"] = "A4"
    orientation: Literal["PORTRAIT", "LANDSCAPE"] = "PORTRAIT"

    output_dir: Path = Path("./out")
    file_name_template: str = "{title}__{date}.pdf"

    # Header labels; columns not listed are humanized ("author.name" -> "Author Name")
    column_labels: Dict[str, str] = Field(default_factory=dict)
    humanize_headers: bool = True
    max_rows: Optional[int] = None
    empty_cell: str = ""

    timezone: str = "UTC"
    date_format: str = "%d %b %Y"
    datetime_format: str = "%d %b %Y %H:%M"
    float_precision: int = 2

    font_size: float = 8.5
    show_row_count: bool = True

    # Font configuration; the built-in Helvetica family needs no files
    font_regular: str = "Helvetica"
    font_bold: str = "Helvetica-Bold"

    # Optional TTF files registered under font_regular/font_bold when provided
    font_regular_path: Optional[Path] = None
    font_bold_path: Optional[Path] = None

    override_file_name: Optional[str] = Field(default=None, description="Optional explicit output file name")


def load_config_from_yaml(path: Path) -> ReportConfig:
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return ReportConfig.model_validate(raw)
