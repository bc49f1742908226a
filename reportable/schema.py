from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ProjectionError(ValueError):
    """Base class for errors raised while projecting records into a table."""

    code = "INVALID_PROJECTION"


class InvalidSpec(ProjectionError):
    """Raised when projection options have an unsupported shape."""


class MissingAssociation(ProjectionError):
    """Raised when a record cannot resolve a requested association."""

    code = "MISSING_ASSOCIATION"

    def __init__(self, association: str, source: Any = None):
        self.association = association
        owner = type(source).__name__ if source is not None else "record"
        super().__init__(f"{owner} has no association named {association!r}")


class DerivedComputationFailed(ProjectionError):
    """Raised when a ``methods`` entry cannot be computed for a record."""

    code = "DERIVED_COMPUTATION_FAILED"

    def __init__(self, method: str, reason: str = ""):
        self.method = method
        msg = f"Derived value {method!r} failed"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class ReportDataError(ValueError):
    """Raised when required report data is missing or invalid."""


REPORT_OPTION_KEYS = ("only", "except", "methods", "include")
TABLE_OPTION_KEYS = ("filters", "transforms", "record_class")


def _names(value: Any, key: str) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        out = []
        for item in value:
            if not isinstance(item, str):
                raise InvalidSpec(f"{key!r} entries must be attribute names, got {item!r}")
            out.append(item)
        return tuple(out)
    raise InvalidSpec(f"{key!r} must be a name or a list of names, got {type(value).__name__}")


def _callables(value: Any, key: str) -> Tuple[Callable[..., Any], ...]:
    if value is None:
        return ()
    if callable(value):
        return (value,)
    if isinstance(value, (list, tuple)):
        for item in value:
            if not callable(item):
                raise InvalidSpec(f"{key!r} entries must be callables, got {item!r}")
        return tuple(value)
    raise InvalidSpec(f"{key!r} must be a callable or a list of callables")


class ProjectionSpec(BaseModel):
    """Immutable projection options for one level of the record graph.

    ``include`` maps association names to the nested spec used for the
    associated records. ``qualifier`` is filled in while recursing and is the
    dotted association path prefixed to every column of this level.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, arbitrary_types_allowed=True)

    only: Optional[Tuple[str, ...]] = None
    except_: Optional[Tuple[str, ...]] = Field(default=None, alias="except")
    methods: Tuple[str, ...] = ()
    include: Dict[str, "ProjectionSpec"] = Field(default_factory=dict)
    qualifier: Optional[str] = None

    # Table construction hooks, only meaningful on the top-level spec
    filters: Tuple[Callable[..., Any], ...] = ()
    transforms: Tuple[Callable[..., Any], ...] = ()
    record_class: Optional[Callable[..., Any]] = None

    @classmethod
    def from_options(cls, options: Any, *, nested: bool = False) -> "ProjectionSpec":
        """Normalise an options mapping (or ``None``) into a spec.

        Accepts the loose shapes callers tend to write: a single name or a list
        of names for ``only``/``except``/``methods``, and for ``include`` a
        name, a list of names, or a mapping of names to nested options.
        """
        if options is None:
            return cls()
        if isinstance(options, ProjectionSpec):
            return options
        if not isinstance(options, Mapping):
            raise InvalidSpec(f"Projection options must be a mapping, got {type(options).__name__}")

        allowed = REPORT_OPTION_KEYS if nested else REPORT_OPTION_KEYS + TABLE_OPTION_KEYS
        unknown = [k for k in options if k not in allowed]
        if unknown:
            raise InvalidSpec(f"Unknown projection option(s): {', '.join(map(str, unknown))}")

        return cls(
            only=_names(options.get("only"), "only"),
            except_=_names(options.get("except"), "except"),
            methods=_names(options.get("methods"), "methods") or (),
            include=_normalize_include(options.get("include")),
            filters=_callables(options.get("filters"), "filters"),
            transforms=_callables(options.get("transforms"), "transforms"),
            record_class=_record_class(options.get("record_class")),
        )

    @classmethod
    def build(cls, **options: Any) -> "ProjectionSpec":
        """Keyword builder; ``except_`` stands in for the reserved word."""
        if "except_" in options:
            options["except"] = options.pop("except_")
        return cls.from_options(options)

    def has_report_options(self) -> bool:
        return self.only is not None or self.except_ is not None or bool(self.methods) or bool(self.include)

    def qualified(self, qualifier: Optional[str]) -> "ProjectionSpec":
        return self.model_copy(update={"qualifier": qualifier})

    def with_defaults(self, default: Optional["ProjectionSpec"]) -> "ProjectionSpec":
        """Fall back to ``default`` when this level carries no report options."""
        if default is None or self.has_report_options():
            return self
        return default.qualified(self.qualifier)

    def eager_load_tree(self) -> Dict[str, Any]:
        return {name: sub.eager_load_tree() for name, sub in self.include.items()}


def _normalize_include(value: Any) -> Dict[str, ProjectionSpec]:
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        return {value: ProjectionSpec()}
    if isinstance(value, (list, tuple)):
        return _include_from_names(value)
    if isinstance(value, Mapping):
        out: Dict[str, ProjectionSpec] = {}
        for name, sub in value.items():
            if not isinstance(name, str):
                raise InvalidSpec(f"'include' keys must be association names, got {name!r}")
            if sub is None or (isinstance(sub, Mapping) and not sub):
                out[name] = ProjectionSpec()
            elif isinstance(sub, (Mapping, ProjectionSpec)):
                out[name] = ProjectionSpec.from_options(sub, nested=True)
            else:
                raise InvalidSpec(f"'include' value for {name!r} must be a mapping of options")
        return out
    raise InvalidSpec(
        f"'include' must be a name, a list of names or a mapping, got {type(value).__name__}"
    )


def _include_from_names(names: Iterable[Any]) -> Dict[str, ProjectionSpec]:
    out: Dict[str, ProjectionSpec] = {}
    for name in names:
        if not isinstance(name, str):
            raise InvalidSpec(f"'include' entries must be association names, got {name!r}")
        out[name] = ProjectionSpec()
    return out


def _record_class(value: Any) -> Optional[Callable[..., Any]]:
    if value is None or callable(value):
        return value
    raise InvalidSpec("'record_class' must be callable")


ProjectionSpec.model_rebuild()
