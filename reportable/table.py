from __future__ import annotations

import csv
import io
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class TableRecord(Mapping):
    """Read-only row of a Table, keyed by column name."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any]):
        self._data = dict(data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"TableRecord({self._data!r})"

    def to_list(self, columns: Sequence[str]) -> List[Any]:
        return [self._data.get(c) for c in columns]


@dataclass(frozen=True)
class Table:
    column_names: Tuple[str, ...]
    records: Tuple[Any, ...]

    @classmethod
    def build(
        cls,
        rows: Iterable[Mapping[str, Any]],
        column_names: Sequence[str],
        *,
        filters: Sequence[Callable[[Dict[str, Any]], Any]] = (),
        transforms: Sequence[Callable[[Dict[str, Any]], Any]] = (),
        record_class: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ) -> "Table":
        """Build a table from flat rows.

        Each row is copied; it is kept only if every filter returns a truthy
        value, then each transform runs in order. A transform may edit the row
        in place or return a replacement mapping.
        """
        make_record = record_class or TableRecord
        records = []
        rejected = 0
        for raw in rows:
            row = dict(raw)
            if not all(f(row) for f in filters):
                rejected += 1
                continue
            for transform in transforms:
                result = transform(row)
                if isinstance(result, Mapping):
                    row = dict(result)
            records.append(make_record(row))
        if rejected:
            logger.debug("rows_filtered", extra={"rejected": rejected, "kept": len(records)})
        return cls(column_names=tuple(column_names), records=tuple(records))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.records)

    def __getitem__(self, index: int) -> Any:
        return self.records[index]

    def column(self, name: str) -> List[Any]:
        if name not in self.column_names:
            raise KeyError(name)
        return [_get(r, name) for r in self.records]

    def to_rows(self) -> List[List[Any]]:
        """Rows as lists in column order, absent values padded with ``None``."""
        return [[_get(r, c) for c in self.column_names] for r in self.records]

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [{c: _get(r, c) for c in self.column_names} for r in self.records]

    def to_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(self.column_names)
        for row in self.to_rows():
            writer.writerow(["" if v is None else v for v in row])
        return buf.getvalue()

    def as_(self, fmt: str, **kwargs: Any) -> Any:
        """Render through a named output format (``csv``, ``pdf`` or ``dicts``)."""
        fmt = fmt.lower()
        if fmt == "csv":
            return self.to_csv()
        if fmt == "dicts":
            return self.to_dicts()
        if fmt == "pdf":
            from .config import ReportConfig
            from .renderer import render_table_pdf

            return render_table_pdf(self, kwargs.pop("config", None) or ReportConfig(**kwargs))
        raise ValueError(f"Unknown table format: {fmt!r}")


def _get(record: Any, column: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(column)
    return getattr(record, column, None)
