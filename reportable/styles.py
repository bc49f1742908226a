from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.styles import ParagraphStyle, StyleSheet1, getSampleStyleSheet
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from .config import ReportConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Palette:
    text_primary: colors.Color
    text_secondary: colors.Color
    muted: colors.Color
    divider: colors.Color
    accent: colors.Color
    accent_light: colors.Color

    section_bg: colors.Color
    header_bg: colors.Color
    row_alt_bg: colors.Color


PALETTE = Palette(
    text_primary=colors.HexColor("#111111"),
    text_secondary=colors.HexColor("#444444"),
    muted=colors.HexColor("#666666"),
    divider=colors.HexColor("#DDDDDD"),
    accent=colors.HexColor("#1F4E79"),
    accent_light=colors.HexColor("#E7EFFB"),
    section_bg=colors.HexColor("#F7FAFF"),
    header_bg=colors.HexColor("#1F4E79"),
    row_alt_bg=colors.HexColor("#F7F7F7"),
)


def register_fonts(config: ReportConfig) -> None:
    """Register configured TTF fonts. Raises a clear error if a file is missing."""

    paths = {
        config.font_regular: config.font_regular_path,
        config.font_bold: config.font_bold_path,
    }
    paths = {name: path for name, path in paths.items() if path is not None}

    missing = [str(p) for p in paths.values() if not Path(p).exists()]
    if missing:
        msg = "Configured font files not found:\n- " + "\n- ".join(missing)
        raise FileNotFoundError(msg)

    registered = pdfmetrics.getRegisteredFontNames()
    for font_name, path in paths.items():
        if font_name not in registered:
            logger.debug("register_font", extra={"font": font_name, "path": str(path)})
            pdfmetrics.registerFont(TTFont(font_name, str(path)))


def build_styles(config: ReportConfig) -> Dict[str, ParagraphStyle]:
    base: StyleSheet1 = getSampleStyleSheet()

    title = ParagraphStyle(
        "Title",
        parent=base["Normal"],
        fontName=config.font_bold,
        fontSize=20,
        leading=24,
        textColor=PALETTE.text_primary,
        alignment=TA_LEFT,
        spaceAfter=6,
    )

    subtitle = ParagraphStyle(
        "Subtitle",
        parent=base["Normal"],
        fontName=config.font_regular,
        fontSize=11,
        leading=14,
        textColor=PALETTE.text_secondary,
        spaceAfter=10,
    )

    section = ParagraphStyle(
        "SectionHeader",
        parent=base["Normal"],
        fontName=config.font_bold,
        fontSize=12.5,
        leading=16,
        textColor=PALETTE.text_primary,
    )

    body = ParagraphStyle(
        "Body",
        parent=base["Normal"],
        fontName=config.font_regular,
        fontSize=10,
        leading=13,
        textColor=PALETTE.text_primary,
    )

    cell = ParagraphStyle(
        "Cell",
        parent=body,
        fontSize=config.font_size,
        leading=config.font_size + 2.5,
    )

    table_header = ParagraphStyle(
        "TableHeader",
        parent=cell,
        fontName=config.font_bold,
        textColor=colors.white,
    )

    small = ParagraphStyle(
        "Small",
        parent=base["Normal"],
        fontName=config.font_regular,
        fontSize=8,
        leading=10,
        textColor=PALETTE.muted,
    )

    return {
        "title": title,
        "subtitle": subtitle,
        "section": section,
        "body": body,
        "cell": cell,
        "table_header": table_header,
        "small": small,
    }
