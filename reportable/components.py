from __future__ import annotations

from typing import Any, Dict, List, Optional

from reportlab.platypus import Paragraph, Table, TableStyle

from .config import ReportConfig
from .normalize import column_label, escape_markup, format_cell
from .styles import PALETTE
from .table import Table as DataTable


def section_header(title: str, styles: Dict[str, Any]) -> Table:
    """Create a consistent section header with an accent strip."""

    tbl = Table([[Paragraph(escape_markup(title), styles["section"])]], colWidths=[None])
    tbl.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, -1), PALETTE.section_bg),
                ("LINEBEFORE", (0, 0), (0, -1), 4, PALETTE.accent),
                ("LEFTPADDING", (0, 0), (-1, -1), 8),
                ("RIGHTPADDING", (0, 0), (-1, -1), 8),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    return tbl


def data_table(
    table: DataTable,
    config: ReportConfig,
    styles: Dict[str, Any],
    width: Optional[float] = None,
) -> Table:
    """Lay out a projected table as a ReportLab table with a repeating header row."""

    columns = list(table.column_names)
    header = [Paragraph(escape_markup(column_label(c, config)), styles["table_header"]) for c in columns]

    rows = table.to_rows()
    if config.max_rows is not None:
        rows = rows[: config.max_rows]

    body: List[List[Any]] = [
        [Paragraph(escape_markup(format_cell(v, config)), styles["cell"]) for v in row] for row in rows
    ]

    col_widths = None
    if width is not None and columns:
        col_widths = [width / len(columns)] * len(columns)

    tbl = Table([header] + body, colWidths=col_widths, repeatRows=1)
    commands = [
        ("BACKGROUND", (0, 0), (-1, 0), PALETTE.header_bg),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LINEBELOW", (0, 0), (-1, -1), 0.25, PALETTE.divider),
        ("LEFTPADDING", (0, 0), (-1, -1), 4),
        ("RIGHTPADDING", (0, 0), (-1, -1), 4),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]
    for i in range(2, len(body) + 1, 2):
        commands.append(("BACKGROUND", (0, i), (-1, i), PALETTE.row_alt_bg))
    tbl.setStyle(TableStyle(commands))
    return tbl
