from __future__ import annotations

import json
from pathlib import Path

from reportable.cli import main


def _write_inputs(tmp_path: Path) -> tuple[Path, Path]:
    records = tmp_path / "books.json"
    records.write_text(
        json.dumps(
            [
                {"id": 1, "title": "Foo", "author": {"name": "A"}},
                None,
                {"id": 2, "title": "Bar", "author": {"name": "B"}},
            ]
        ),
        encoding="utf-8",
    )
    options = tmp_path / "options.yaml"
    options.write_text("only: [title]\ninclude:\n  author:\n    only: name\n", encoding="utf-8")
    return records, options


def test_cli_json_to_stdout(tmp_path: Path, capsys):
    records, options = _write_inputs(tmp_path)
    assert main(["--input", str(records), "--options", str(options), "--format", "json"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["columns"] == ["title", "author.name"]
    assert out["rows"] == [{"title": "Foo", "author.name": "A"}, {"title": "Bar", "author.name": "B"}]


def test_cli_csv_to_file(tmp_path: Path, capsys):
    records, options = _write_inputs(tmp_path)
    out_dir = tmp_path / "out"
    assert main(["--input", str(records), "--options", str(options), "--format", "csv", "--out", str(out_dir)]) == 0
    out_path = Path(capsys.readouterr().out.strip())
    assert out_path == out_dir / "books.csv"
    assert out_path.read_text(encoding="utf-8").splitlines() == ["title,author.name", "Foo,A", "Bar,B"]


def test_cli_pdf(tmp_path: Path, capsys):
    records, options = _write_inputs(tmp_path)
    out_dir = tmp_path / "pdf"
    assert main(["--input", str(records), "--options", str(options), "--out", str(out_dir), "--title", "Books"]) == 0
    out_path = Path(capsys.readouterr().out.strip())
    assert out_path.parent == out_dir
    assert out_path.read_bytes().startswith(b"%PDF")


def test_cli_reports_projection_errors(tmp_path: Path, capsys):
    records, _ = _write_inputs(tmp_path)
    bad = tmp_path / "bad.yaml"
    bad.write_text("include: 5\n", encoding="utf-8")
    assert main(["--input", str(records), "--options", str(bad), "--format", "json"]) == 2
    assert "include" in capsys.readouterr().err
