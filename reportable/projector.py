from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .schema import InvalidSpec, ProjectionSpec
from .source import RecordSource, related_records
from .table import Table

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

MAX_DEPTH = 32


def _coerce_spec(spec: Any) -> ProjectionSpec:
    if spec is None:
        return ProjectionSpec()
    if isinstance(spec, ProjectionSpec):
        return spec
    if isinstance(spec, Mapping):
        return ProjectionSpec.from_options(spec)
    raise InvalidSpec(f"Expected ProjectionSpec or options mapping, got {type(spec).__name__}")


def _merge(columns: Sequence[str], new: Iterable[str]) -> List[str]:
    """Ordered union, first occurrence wins."""
    return list(dict.fromkeys([*columns, *new]))


def _qualify(name: str, qualifier: Optional[str]) -> str:
    return f"{qualifier}.{name}" if qualifier else name


def _base_row(record: RecordSource, spec: ProjectionSpec) -> Row:
    # an included name is projected as an association, never as a cell
    attrs = {k: v for k, v in record.get_attributes().items() if str(k) not in spec.include}
    if spec.except_ is not None:
        dropped = set(spec.except_)
        attrs = {k: v for k, v in attrs.items() if str(k) not in dropped}
    elif spec.only is not None:
        kept = set(spec.only)
        attrs = {k: v for k, v in attrs.items() if str(k) in kept}
    row = {str(k): v for k, v in attrs.items()}
    for name in spec.methods:
        row[name] = record.compute(name)
    return row


def _project(
    record: RecordSource, spec: ProjectionSpec, depth: int = 0
) -> Tuple[List[Row], List[str], List[str], bool]:
    """Walk one record; returns rows, own columns, association columns and
    whether the own columns follow an explicit ``only`` order."""
    if depth > MAX_DEPTH:
        raise InvalidSpec(f"Association nesting deeper than {MAX_DEPTH} levels at {spec.qualifier!r}")

    spec = spec.with_defaults(getattr(record, "default_spec", None))
    row = _base_row(record, spec)

    if spec.only is not None:
        columns = _merge(spec.only, row)
    else:
        columns = sorted(row)

    qualifier = spec.qualifier
    if qualifier:
        row = {_qualify(k, qualifier): v for k, v in row.items()}
        columns = [_qualify(c, qualifier) for c in columns]

    rows = [row]
    assoc_columns: List[str] = []
    for name, sub_spec in spec.include.items():
        related = related_records(record, name)
        if not related:
            continue
        path = _qualify(name, qualifier)
        sub_rows: List[Row] = []
        for child in related:
            child_rows, child_cols, child_assoc, _ = _project(child, sub_spec.qualified(path), depth + 1)
            sub_rows.extend(child_rows)
            assoc_columns = _merge(assoc_columns, child_cols + child_assoc)
        rows = [{**current, **sub} for current in rows for sub in sub_rows]
        if len(sub_rows) > 1:
            logger.debug("association_fan_out", extra={"association": path, "rows": len(rows)})

    return rows, columns, assoc_columns, spec.only is not None


def project_one(record: RecordSource, spec: Any = None) -> Tuple[List[Row], List[str]]:
    """Flatten one record (and the associations ``spec`` includes) into rows.

    Returns the rows and the ordered column names they introduce. Columns from
    included associations are qualified with the association path, e.g.
    ``author.name`` or ``author.publisher.name``.
    """
    rows, columns, assoc_columns, _ = _project(record, _coerce_spec(spec))
    return rows, _merge(columns, assoc_columns)


def project(records: Iterable[RecordSource], spec: Any = None) -> Table:
    """Project a collection of records into a Table.

    Record-level columns are sorted alphabetically unless an ``only`` list
    fixes their order; association columns follow in first-seen order.
    ``filters``, ``transforms`` and ``record_class`` on the top-level spec are
    applied while the table is built.
    """
    spec = _coerce_spec(spec)

    rows: List[Row] = []
    own_columns: List[str] = list(spec.only or ())
    assoc_columns: List[str] = []
    ordered = spec.only is not None
    count = 0
    for record in records:
        record_rows, columns, record_assoc, record_ordered = _project(record, spec)
        rows.extend(record_rows)
        own_columns = _merge(own_columns, columns)
        assoc_columns = _merge(assoc_columns, record_assoc)
        ordered = ordered or record_ordered
        count += 1

    if not ordered:
        own_columns = sorted(own_columns)
    if count == 0 and spec.only is not None:
        own_columns = _merge(own_columns, spec.methods)

    logger.debug("projected_records", extra={"records": count, "rows": len(rows)})
    return Table.build(
        rows,
        _merge(own_columns, assoc_columns),
        filters=spec.filters,
        transforms=spec.transforms,
        record_class=spec.record_class,
    )
