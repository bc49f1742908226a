from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    Set,
    Union,
    get_args,
    runtime_checkable,
)

from pydantic import BaseModel

from .schema import DerivedComputationFailed, MissingAssociation, ProjectionSpec

logger = logging.getLogger(__name__)

_DEFAULT_SPECS: Dict[type, ProjectionSpec] = {}


def reportable(**options: Any) -> Callable[[type], type]:
    """Class decorator registering default projection options for a type.

    The defaults apply whenever a record of that type is projected without
    report options of its own, including as an included association::

        @reportable(only=["title"], include="author")
        class Book(BaseModel):
            ...
    """
    spec = ProjectionSpec.build(**options)

    def _register(cls: type) -> type:
        _DEFAULT_SPECS[cls] = spec
        return cls

    return _register


def default_spec_for(cls: type) -> Optional[ProjectionSpec]:
    for klass in cls.__mro__:
        if klass in _DEFAULT_SPECS:
            return _DEFAULT_SPECS[klass]
    return None


@runtime_checkable
class RecordSource(Protocol):
    """What the projector needs from a record: attributes, associations, derived values."""

    default_spec: Optional[ProjectionSpec]

    def get_attributes(self) -> Mapping[str, Any]: ...

    def get_association(self, name: str) -> Union["RecordSource", Sequence["RecordSource"], None]: ...

    def compute(self, name: str) -> Any: ...


class MappingRecord:
    """Record backed by plain dicts.

    ``methods`` maps derived value names to zero-argument callables. Records
    built by :meth:`from_dict` have no declared association layout, so an
    absent or empty key named as an association resolves to zero related
    records instead of raising.
    """

    def __init__(
        self,
        attributes: Optional[Mapping[str, Any]] = None,
        associations: Optional[Mapping[str, Any]] = None,
        methods: Optional[Mapping[str, Callable[[], Any]]] = None,
        open_shape: bool = False,
    ):
        self._attributes = dict(attributes or {})
        self._associations = dict(associations or {})
        self._methods = dict(methods or {})
        self.open_shape = open_shape

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MappingRecord":
        """Split a nested dict: dicts and non-empty lists of dicts become associations."""
        attributes: Dict[str, Any] = {}
        associations: Dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, Mapping):
                associations[key] = cls.from_dict(value)
            elif isinstance(value, list) and value and all(isinstance(v, Mapping) for v in value):
                associations[key] = [cls.from_dict(v) for v in value]
            else:
                attributes[key] = value
        return cls(attributes, associations, open_shape=True)

    @property
    def default_spec(self) -> Optional[ProjectionSpec]:
        return default_spec_for(type(self))

    def get_attributes(self) -> Mapping[str, Any]:
        return dict(self._attributes)

    def get_association(self, name: str) -> Any:
        if name in self._associations:
            return self._associations[name]
        # a null or empty list cannot be told apart from an empty association
        if name in self._attributes and self._attributes[name] in (None, []):
            return None
        if self.open_shape and name not in self._attributes:
            return None
        raise MissingAssociation(name, self)

    def compute(self, name: str) -> Any:
        fn = self._methods.get(name)
        if fn is None:
            raise DerivedComputationFailed(name, "no such derived value")
        return _invoke(name, fn)

    def __repr__(self) -> str:
        return f"MappingRecord({self._attributes!r})"


class ModelRecord:
    """Adapter over a pydantic model instance.

    Fields holding models (or lists of models) are associations, every other
    field is an attribute. Derived values are zero-argument methods or
    properties on the model.
    """

    def __init__(self, model: BaseModel):
        self.model = model

    @property
    def default_spec(self) -> Optional[ProjectionSpec]:
        return default_spec_for(type(self.model))

    def _association_names(self) -> Set[str]:
        fields = type(self.model).model_fields
        return {name for name, info in fields.items() if _mentions_model(info.annotation)}

    def get_attributes(self) -> Mapping[str, Any]:
        skip = self._association_names()
        return {
            name: getattr(self.model, name)
            for name in type(self.model).model_fields
            if name not in skip
        }

    def get_association(self, name: str) -> Any:
        if name not in self._association_names():
            raise MissingAssociation(name, self.model)
        value = getattr(self.model, name)
        if value is None:
            return None
        if isinstance(value, BaseModel):
            return self._wrap(value)
        return [self._wrap(v) for v in value]

    def _wrap(self, model: BaseModel) -> "ModelRecord":
        return ModelRecord(model)

    def compute(self, name: str) -> Any:
        try:
            attr = getattr(self.model, name)
        except AttributeError as exc:
            raise DerivedComputationFailed(name, "no such method") from exc
        except Exception as exc:
            raise DerivedComputationFailed(name, str(exc)) from exc
        if callable(attr):
            return _invoke(name, attr)
        return attr


class ObjectRecord:
    """Adapter over an arbitrary object.

    Attribute and association names may be declared per instance, per
    subclass, or per related type through ``layouts`` (a mapping of type to
    association names carried down to every related object). Without a
    declaration, public instance attributes holding models, objects or
    lists of them are associations and the rest are attributes.
    """

    attribute_names: Optional[Sequence[str]] = None
    association_names: Optional[Sequence[str]] = None

    def __init__(
        self,
        obj: Any,
        attribute_names: Optional[Sequence[str]] = None,
        association_names: Optional[Sequence[str]] = None,
        layouts: Optional[Mapping[type, Sequence[str]]] = None,
    ):
        self.obj = obj
        self.layouts: Dict[type, Sequence[str]] = dict(layouts or {})
        if attribute_names is not None:
            self.attribute_names = tuple(attribute_names)
        if association_names is not None:
            self.association_names = tuple(association_names)
        elif self.association_names is None and type(obj) in self.layouts:
            self.association_names = tuple(self.layouts[type(obj)])

    @property
    def default_spec(self) -> Optional[ProjectionSpec]:
        return default_spec_for(type(self.obj)) or default_spec_for(type(self))

    def _public_vars(self) -> Dict[str, Any]:
        try:
            fields = vars(self.obj)
        except TypeError:
            return {}
        return {k: v for k, v in fields.items() if not k.startswith("_")}

    def _associations(self) -> Set[str]:
        if self.association_names is not None:
            return set(self.association_names)
        return {k for k, v in self._public_vars().items() if _is_related(v)}

    def get_attributes(self) -> Mapping[str, Any]:
        if self.attribute_names is not None:
            return {name: getattr(self.obj, name, None) for name in self.attribute_names}
        skip = self._associations()
        return {
            k: v for k, v in self._public_vars().items() if k not in skip and not _is_related(v)
        }

    def get_association(self, name: str) -> Any:
        if name not in self._associations():
            fields = self._public_vars()
            if self.association_names is None and name in fields and fields[name] in (None, []):
                return None
            raise MissingAssociation(name, self.obj)
        value = getattr(self.obj, name, None)
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return [self._wrap(v) for v in value]
        return self._wrap(value)

    def _wrap(self, obj: Any) -> Optional[RecordSource]:
        if obj is None or isinstance(obj, (MappingRecord, ModelRecord, ObjectRecord)):
            return obj
        if isinstance(obj, BaseModel):
            return ModelRecord(obj)
        if isinstance(obj, Mapping):
            return MappingRecord.from_dict(obj)
        return ObjectRecord(obj, layouts=self.layouts)

    def compute(self, name: str) -> Any:
        try:
            attr = getattr(self.obj, name)
        except AttributeError as exc:
            raise DerivedComputationFailed(name, "no such method") from exc
        except Exception as exc:
            raise DerivedComputationFailed(name, str(exc)) from exc
        if callable(attr):
            return _invoke(name, attr)
        return attr


def _is_record_like(value: Any) -> bool:
    if isinstance(value, (MappingRecord, ModelRecord, ObjectRecord, BaseModel)):
        return True
    if isinstance(value, (type, Enum)) or callable(value):
        return False
    return hasattr(value, "__dict__")


def _is_related(value: Any) -> bool:
    """True for values ObjectRecord adapts as related records."""
    if isinstance(value, (list, tuple)):
        items = [v for v in value if v is not None]
        return bool(items) and all(_is_record_like(v) for v in items)
    return _is_record_like(value)


def _invoke(name: str, fn: Callable[[], Any]) -> Any:
    try:
        return fn()
    except Exception as exc:
        raise DerivedComputationFailed(name, str(exc)) from exc


def _mentions_model(annotation: Any) -> bool:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return True
    return any(_mentions_model(arg) for arg in get_args(annotation))


def related_records(source: RecordSource, name: str) -> List[RecordSource]:
    """Resolve an association into a list, dropping empty (``None``) entries."""
    value = source.get_association(name)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [v for v in value if v is not None]
    return [value]


def wrap_records(items: Iterable[Any], adapter: Callable[[Any], RecordSource] = MappingRecord.from_dict) -> List[RecordSource]:
    """Adapt raw items into record sources, skipping ``None`` rows."""
    out: List[RecordSource] = []
    dropped = 0
    for item in items:
        if item is None:
            dropped += 1
            continue
        out.append(adapter(item))
    if dropped:
        logger.warning("null_records_dropped", extra={"count": dropped})
    return out
