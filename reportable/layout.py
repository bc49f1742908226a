from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple, Union

from reportlab.lib.pagesizes import A4, LETTER, landscape, portrait
from reportlab.lib.units import mm
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import BaseDocTemplate, Frame, PageTemplate

from .config import ReportConfig
from .styles import PALETTE


MARGIN_LEFT = 15 * mm
MARGIN_RIGHT = 15 * mm
MARGIN_TOP = 14 * mm
MARGIN_BOTTOM = 14 * mm

HEADER_H = 12 * mm
FOOTER_H = 10 * mm

PAGE_SIZES = {"A4": A4, "LETTER": LETTER}


def page_size(config: ReportConfig) -> Tuple[float, float]:
    size = PAGE_SIZES[config.page_size]
    return landscape(size) if config.orientation == "LANDSCAPE" else portrait(size)


def content_width(config: ReportConfig) -> float:
    width, _ = page_size(config)
    return width - MARGIN_LEFT - MARGIN_RIGHT


@dataclass(frozen=True)
class LayoutContext:
    config: ReportConfig
    report_title: str
    generated: str


class NumberedCanvas(Canvas):
    """Canvas that supports 'Page X of Y' by storing page states."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._saved_page_states: List[Dict[str, Any]] = []

    def showPage(self) -> None:  # noqa: N802
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self) -> None:  # noqa: D401
        num_pages = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._page_count = num_pages
            self.draw_footer()
            Canvas.showPage(self)
        Canvas.save(self)

    def draw_footer(self) -> None:
        drawer = getattr(self, "_footer_drawer", None)
        if drawer is not None:
            drawer(self)


def build_doc(output: Union[str, Any], config: ReportConfig, on_page: Callable[[Canvas, BaseDocTemplate], None]) -> BaseDocTemplate:
    width, height = page_size(config)
    doc = BaseDocTemplate(
        output,
        pagesize=(width, height),
        leftMargin=MARGIN_LEFT,
        rightMargin=MARGIN_RIGHT,
        topMargin=MARGIN_TOP,
        bottomMargin=MARGIN_BOTTOM,
        title=config.title,
    )

    frame = Frame(
        MARGIN_LEFT,
        MARGIN_BOTTOM + FOOTER_H,
        width - MARGIN_LEFT - MARGIN_RIGHT,
        height - MARGIN_TOP - MARGIN_BOTTOM - HEADER_H - FOOTER_H,
        id="content",
        showBoundary=0,
    )

    template = PageTemplate(id="main", frames=[frame], onPage=on_page)
    doc.addPageTemplates([template])
    return doc


def make_header_footer_drawer(ctx: LayoutContext) -> Callable[[Canvas, BaseDocTemplate], None]:
    width, height = page_size(ctx.config)
    font_regular = ctx.config.font_regular
    font_bold = ctx.config.font_bold

    def _draw_footer(c: Canvas, page_num: int) -> None:
        c.saveState()
        footer_y_bottom = MARGIN_BOTTOM
        footer_y_top = footer_y_bottom + FOOTER_H

        c.setStrokeColor(PALETTE.divider)
        c.setLineWidth(0.5)
        c.line(MARGIN_LEFT, footer_y_top, width - MARGIN_RIGHT, footer_y_top)

        c.setFillColor(PALETTE.muted)
        c.setFont(font_regular, 8)
        c.drawString(MARGIN_LEFT, footer_y_bottom + 4, f"Generated: {ctx.generated}")

        page_count = int(getattr(c, "_page_count", 0) or 0)
        if page_count:
            c.drawRightString(width - MARGIN_RIGHT, footer_y_bottom + 4, f"Page {page_num} of {page_count}")
        else:
            c.drawRightString(width - MARGIN_RIGHT, footer_y_bottom + 4, f"Page {page_num}")
        c.restoreState()

    def _draw(c: Canvas, doc: BaseDocTemplate) -> None:
        c.saveState()

        header_y_top = height - MARGIN_TOP
        header_y_bottom = header_y_top - HEADER_H

        c.setFillColor(PALETTE.text_primary)
        c.setFont(font_bold, 10)
        c.drawString(MARGIN_LEFT, header_y_top - 12, ctx.report_title)

        c.setStrokeColor(PALETTE.divider)
        c.setLineWidth(0.5)
        c.line(MARGIN_LEFT, header_y_bottom, width - MARGIN_RIGHT, header_y_bottom)

        c.restoreState()

        # The page total is only known once the whole story is laid out
        page_num = doc.page
        c._footer_drawer = lambda canvas: _draw_footer(canvas, page_num)  # type: ignore[attr-defined]

    return _draw
