from __future__ import annotations

import io
from pathlib import Path

import pytest
from pypdf import PdfReader
from reportlab.platypus import Paragraph

from reportable.config import ReportConfig, load_config_from_yaml
from reportable.projector import project
from reportable.renderer import (
    TemplateNotFound,
    generate_report_pdf,
    register_template,
    render_table_pdf,
    render_template_pdf,
)
from reportable.schema import ReportDataError
from reportable.source import wrap_records


def _extract_text(pdf: bytes) -> str:
    reader = PdfReader(io.BytesIO(pdf))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _books_table():
    records = wrap_records(
        [
            {"id": 1, "title": "Foo", "author": {"name": "Ann"}},
            {"id": 2, "title": "Bar", "author": None},
        ]
    )
    return project(records, {"only": ["title"], "include": {"author": {"only": "name"}}})


def test_render_table_pdf_contains_headers_and_values():
    pdf = render_table_pdf(_books_table(), ReportConfig(title="Books"))
    assert pdf.startswith(b"%PDF")
    text = _extract_text(pdf)
    assert "Books" in text
    assert "Author Name" in text
    assert "Foo" in text
    assert "Ann" in text
    assert "2 rows" in text
    assert "Page 1 of 1" in text


def test_long_table_spans_pages_with_total():
    records = wrap_records([{"id": i, "title": f"Title {i}"} for i in range(200)])
    pdf = render_table_pdf(project(records), ReportConfig(title="Many"))
    reader = PdfReader(io.BytesIO(pdf))
    assert len(reader.pages) > 1
    last = reader.pages[-1].extract_text() or ""
    assert f"Page {len(reader.pages)} of {len(reader.pages)}" in last


def test_empty_table_renders():
    pdf = render_table_pdf(project([]), ReportConfig(title="Nothing"))
    assert "No data" in _extract_text(pdf)


def test_max_rows_truncates_output():
    records = wrap_records([{"title": f"Row{i}"} for i in range(5)])
    pdf = render_table_pdf(project(records), ReportConfig(max_rows=2, show_row_count=False))
    text = _extract_text(pdf)
    assert "Row1" in text
    assert "Row3" not in text


def test_generate_report_pdf_writes_file(tmp_path: Path):
    cfg = ReportConfig(title="Books: 2026/01", output_dir=tmp_path, orientation="LANDSCAPE")
    out = generate_report_pdf(_books_table(), cfg)
    assert out.parent == tmp_path
    assert ":" not in out.name and "/" not in out.name
    assert out.stat().st_size > 0


def test_override_file_name(tmp_path: Path):
    cfg = ReportConfig(output_dir=tmp_path, override_file_name="books.pdf")
    assert generate_report_pdf(_books_table(), cfg) == tmp_path / "books.pdf"


def test_custom_template():
    @register_template("greeting")
    def _greeting(ctx):
        return [Paragraph(f"Hello {ctx.require('name')}", ctx.styles["body"])]

    pdf = render_template_pdf("greeting", {"name": "Reader"})
    assert "Hello Reader" in _extract_text(pdf)

    with pytest.raises(ReportDataError):
        render_template_pdf("greeting", {})


def test_unknown_template():
    with pytest.raises(TemplateNotFound):
        render_template_pdf("missing", {})


def test_table_template_requires_table():
    with pytest.raises(ReportDataError):
        render_template_pdf("table", {"table": [1, 2]})


def test_missing_font_file_is_reported(tmp_path: Path):
    cfg = ReportConfig(font_regular="Custom", font_regular_path=tmp_path / "missing.ttf")
    with pytest.raises(FileNotFoundError):
        render_table_pdf(_books_table(), cfg)


def test_load_config_from_yaml(tmp_path: Path):
    path = tmp_path / "report.yaml"
    path.write_text("title: Quarterly\npage_size: LETTER\ncolumn_labels:\n  author.name: Writer\n", encoding="utf-8")
    cfg = load_config_from_yaml(path)
    assert cfg.title == "Quarterly"
    assert cfg.page_size == "LETTER"
    assert cfg.column_labels == {"author.name": "Writer"}
