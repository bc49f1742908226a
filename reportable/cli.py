from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

from .config import ReportConfig, load_config_from_yaml
from .projector import project
from .renderer import generate_report_pdf
from .schema import ProjectionError
from .source import wrap_records


def _load_records(path: Path) -> list:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise SystemExit(f"{path}: expected a JSON list of records")
    return wrap_records(data)


def _load_options(path: Optional[Path]) -> Any:
    if path is None:
        return None
    # YAML is a superset of JSON, so both option file styles load here
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Project JSON records into a report table.")
    parser.add_argument("--input", type=Path, required=True, help="Path to a JSON list of (nested) records")
    parser.add_argument("--options", type=Path, default=None, help="YAML/JSON projection options (only, except, methods, include)")
    parser.add_argument("--config", type=Path, default=None, help="Optional YAML report config file")
    parser.add_argument("--format", choices=["pdf", "csv", "json"], default="pdf")
    parser.add_argument("--out", type=Path, default=None, help="Output directory (overrides config.output_dir)")
    parser.add_argument("--title", default=None, help="Report title")

    args = parser.parse_args(argv)

    cfg = load_config_from_yaml(args.config) if args.config else ReportConfig()
    if args.out is not None:
        cfg.output_dir = args.out
    if args.title:
        cfg.title = args.title

    try:
        table = project(_load_records(args.input), _load_options(args.options))
    except ProjectionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.format == "pdf":
        print(str(generate_report_pdf(table, cfg)))
        return 0

    if args.format == "csv":
        text = table.to_csv()
    else:
        text = json.dumps({"columns": list(table.column_names), "rows": table.to_dicts()}, default=str, indent=2)

    if args.out is None:
        sys.stdout.write(text)
        return 0

    args.out.mkdir(parents=True, exist_ok=True)
    out_path = args.out / f"{Path(args.input).stem}.{args.format}"
    out_path.write_text(text, encoding="utf-8")
    print(str(out_path))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
