from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from reportlab.platypus import Paragraph, Spacer

from .components import data_table, section_header
from .config import ReportConfig
from .layout import LayoutContext, NumberedCanvas, build_doc, content_width, make_header_footer_drawer
from .normalize import escape_markup, fmt_dt, to_local
from .schema import ReportDataError
from .styles import build_styles, register_fonts
from .table import Table

logger = logging.getLogger(__name__)


class TemplateNotFound(KeyError):
    """Raised when no report template is registered under a name."""


@dataclass(frozen=True)
class TemplateContext:
    assigns: Mapping[str, Any]
    config: ReportConfig
    styles: Dict[str, Any]

    def require(self, key: str) -> Any:
        if key not in self.assigns:
            raise ReportDataError(f"Template requires assign {key!r}")
        return self.assigns[key]


Template = Callable[[TemplateContext], List[Any]]

TEMPLATES: Dict[str, Template] = {}


def register_template(name: str) -> Callable[[Template], Template]:
    """Register a story builder under ``name`` for ``render_template_pdf``."""

    def _register(fn: Template) -> Template:
        TEMPLATES[name] = fn
        return fn

    return _register


def get_template(name: str) -> Template:
    try:
        return TEMPLATES[name]
    except KeyError:
        raise TemplateNotFound(name) from None


def table_story(ctx: TemplateContext, table: Table, title: Optional[str] = None) -> List[Any]:
    config = ctx.config
    styles = ctx.styles
    story: List[Any] = []

    if title:
        story.append(section_header(title, styles))
        story.append(Spacer(1, 6))

    if not table.column_names:
        story.append(Paragraph("No data", styles["body"]))
        return story

    if config.max_rows is not None and len(table) > config.max_rows:
        logger.warning("table_truncated", extra={"rows": len(table), "max_rows": config.max_rows})

    story.append(data_table(table, config, styles, width=content_width(config)))
    if config.show_row_count:
        story.append(Spacer(1, 4))
        story.append(Paragraph(f"{len(table)} rows", styles["small"]))
    return story


@register_template("table")
def _table_template(ctx: TemplateContext) -> List[Any]:
    table = ctx.require("table")
    if not isinstance(table, Table):
        raise ReportDataError("Assign 'table' must be a Table")

    story: List[Any] = [Paragraph(escape_markup(ctx.config.title), ctx.styles["title"])]
    if ctx.config.subtitle:
        story.append(Paragraph(escape_markup(ctx.config.subtitle), ctx.styles["subtitle"]))
    story.extend(table_story(ctx, table, title=ctx.assigns.get("title")))
    return story


def render_template_pdf(name: str, assigns: Mapping[str, Any], config: Optional[ReportConfig] = None) -> bytes:
    """Render a registered template with ``assigns`` into PDF bytes."""

    config = config or ReportConfig()
    template = get_template(name)

    register_fonts(config)
    styles = build_styles(config)
    ctx = TemplateContext(assigns=dict(assigns), config=config, styles=styles)

    story = template(ctx)

    generated = fmt_dt(to_local(datetime.now().astimezone(), config.timezone), config)
    on_page = make_header_footer_drawer(LayoutContext(config=config, report_title=config.title, generated=generated))

    buf = io.BytesIO()
    doc = build_doc(buf, config, on_page=on_page)
    doc.build(story, canvasmaker=NumberedCanvas)
    logger.debug("template_rendered", extra={"template": name, "bytes": buf.tell()})
    return buf.getvalue()


def render_table_pdf(table: Table, config: Optional[ReportConfig] = None, title: Optional[str] = None) -> bytes:
    assigns: Dict[str, Any] = {"table": table}
    if title:
        assigns["title"] = title
    return render_template_pdf("table", assigns, config)


def _sanitize_filename(name: str) -> str:
    invalid = '<>:/\\|?*"'
    return "".join("-" if ch in invalid else ch for ch in name)


def report_file_name(config: ReportConfig) -> str:
    if config.override_file_name:
        file_name = config.override_file_name
    else:
        file_name = config.file_name_template.format(
            title=config.title,
            date=datetime.now().strftime("%Y-%m-%d"),
        )
    return _sanitize_filename(file_name)


def generate_report_pdf(table: Table, config: ReportConfig) -> Path:
    """Public API: render a table into a PDF file under ``config.output_dir``."""

    output_dir = config.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    out_path = output_dir / report_file_name(config)
    out_path.write_bytes(render_table_pdf(table, config))
    return out_path
