"""Resolution of column accessors.

An accessor tells a column how to get its value out of a record. It can be
either a direct property read, given as an attribute path (`"price"` or
`"customer.name"`), or an arbitrary callable that computes the value.

For direct reads the type of the record is inspected to find the declared
type of the property and its display metadata. The inspection understands
plain annotated classes (including `@property`, `cached_property` and
similar descriptors), attrs classes, pydantic models and SQLAlchemy mapped
classes (hybrid properties included). Each annotation is evaluated on its
own, so a forward reference that cannot be resolved only affects the
property that uses it. For computed accessors only the return annotation
of the callable is available.
"""

import inspect
import logging
import sys
import types
from collections.abc import Mapping
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Tuple,
    Union,
    get_args,
    get_origin,
)

import attrs
from attrs import field, frozen
from pydantic import BaseModel
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapped, Mapper

from exgrid.column import ColumnConfigError, ColumnInfo
from exgrid.constants import TypeTag, tag_for_type
from exgrid.labels import text_name

logger = logging.getLogger(__name__)

# Display metadata members that are read from the properties of a record.
META_KEYS = tuple(k for k in ColumnInfo.model_fields.keys() if k != "path")

_MISSING = object()


@frozen
class ResolvedAccessor:
    """The result of resolving an accessor expression.

    Attributes:
        func: Extracts the value from a record.
        key: The attribute path for direct reads, empty for computed values.
        name: The name of the property that is read; `None` for computed
            values.
        declared_type: The type of the values (with `Optional` and similar
            wrappers removed), `None` if unknown.
        type_tag: The formatting category of the declared type.
        info: The display metadata of the property.
    """

    func: Callable[[Any], Any] = field(repr=False)
    key: str = field(default="")
    name: Optional[str] = field(default=None)
    declared_type: Any = field(default=None)
    type_tag: TypeTag = field(default=TypeTag.OTHER)
    info: ColumnInfo = field(factory=ColumnInfo)

    @property
    def is_direct(self) -> bool:
        """Tell if the accessor is a direct property read."""
        return self.name is not None

    @property
    def title(self) -> str:
        """The title suggested by the metadata of the property."""
        if self.info.title:
            return self.info.title
        if self.name:
            return text_name(self.name)
        return ""


def unwrap_type(tp: Any) -> Any:
    """Remove the wrappers that do not change the kind of a value.

    `Optional[X]`, `X | None`, `Annotated[X, ...]` and SQLAlchemy's
    `Mapped[X]` all become `X`. Unions of several types are left alone.
    """
    origin = get_origin(tp)
    if origin is None:
        return tp
    if origin in (Union, types.UnionType):
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return unwrap_type(args[0])
        return tp
    if origin is Annotated or origin is Mapped:
        return unwrap_type(get_args(tp)[0])
    return tp


def _eval_annotation(
    ann: Any,
    globalns: Dict[str, Any],
    localns: Optional[Dict[str, Any]] = None,
) -> Any:
    """Evaluate an annotation that was stored as a string.

    Names that are not available at runtime (imported only for type
    checking, for example) make the annotation unknown (`None`).
    """
    if not isinstance(ann, str):
        return ann
    try:
        return eval(ann, globalns, localns)
    except (NameError, AttributeError, SyntaxError, TypeError) as e:
        logger.debug("Cannot evaluate annotation %r: %s", ann, e)
        return None


def _class_annotations(cls: type) -> List[Tuple[type, Dict[str, Any]]]:
    """The raw annotations of each class in the MRO, most derived first."""
    result = []
    for base in cls.__mro__:
        if base is object:
            continue
        try:
            ann = inspect.get_annotations(base)
        except NameError as e:
            logger.debug("Cannot read the annotations of %r: %s", base, e)
            continue
        if ann:
            result.append((base, ann))
    return result


def _class_hint(cls: type, name: str) -> Tuple[bool, Any]:
    """Find and evaluate the annotation of a single member of a class.

    Only the requested annotation is evaluated, so an unresolvable sibling
    does not hide the type of this one.

    Returns:
        Whether the class annotates the member and its evaluated type.
    """
    for base, ann in _class_annotations(cls):
        if name in ann:
            module = sys.modules.get(base.__module__)
            module_ns = dict(getattr(module, "__dict__", {}))
            # Module names win over class members, as in get_type_hints().
            return True, _eval_annotation(
                ann[name], dict(vars(base)), module_ns
            )
    return False, None


def _return_hint(func: Any) -> Any:
    """Get the evaluated return annotation of a function, if any."""
    func = inspect.unwrap(func)
    ann = getattr(func, "__annotations__", None)
    if not isinstance(ann, Mapping) or "return" not in ann:
        return None
    return _eval_annotation(ann["return"], getattr(func, "__globals__", {}))


def _descriptor_hint(member: Any) -> Any:
    """Get the type of the values produced by a descriptor.

    Understands `property`, `functools.cached_property`, SQLAlchemy's
    `hybrid_property` and anything else that exposes the wrapped function
    as `fget`, `func` or `__wrapped__`.
    """
    for attr in ("fget", "func", "__wrapped__"):
        func = getattr(member, attr, None)
        if callable(func):
            return _return_hint(func)
    return None


def _mapper_of(cls: Any) -> Optional[Mapper]:
    if not isinstance(cls, type):
        return None
    insp = sa_inspect(cls, raiseerr=False)
    return insp if isinstance(insp, Mapper) else None


def _clean_meta(meta: Any) -> Dict[str, Any]:
    if not isinstance(meta, Mapping):
        return {}
    return {k: meta[k] for k in META_KEYS if meta.get(k) is not None}


def describe_property(
    cls: Any, name: str
) -> Optional[Tuple[Any, Dict[str, Any]]]:
    """Find the declared type and the display metadata of a property.

    Args:
        cls: The class that owns the property.
        name: The name of the property.

    Returns:
        `None` if the class is known to have no such property, otherwise
        the declared type (unwrapped, may be `None`) and the metadata.
        Classes that cannot be inspected accept any name.
    """
    if not isinstance(cls, type):
        return None, {}

    mapper = _mapper_of(cls)
    known = bool(_class_annotations(cls))
    found, tp = _class_hint(cls, name)
    meta: Dict[str, Any] = {}

    if attrs.has(cls):
        known = True
        a_field = attrs.fields_dict(cls).get(name)
        if a_field is not None:
            found = True
            meta = _clean_meta(a_field.metadata)
            if tp is None and not isinstance(a_field.type, str):
                tp = a_field.type

    if issubclass(cls, BaseModel):
        known = True
        p_field = cls.model_fields.get(name)
        if p_field is not None:
            found = True
            if tp is None:
                tp = p_field.annotation
            extra = p_field.json_schema_extra
            meta = _clean_meta(extra if isinstance(extra, Mapping) else {})
            if p_field.title:
                meta["title"] = p_field.title

    if mapper is not None:
        known = True
        if name in mapper.columns:
            found = True
            column = mapper.columns[name]
            meta = _clean_meta(column.info)
            if tp is None:
                try:
                    tp = column.type.python_type
                except NotImplementedError:
                    tp = None
        elif name in mapper.relationships:
            found = True
            rel = mapper.relationships[name]
            tp = None if rel.uselist else rel.mapper.class_
        elif name in mapper.all_orm_descriptors.keys():
            found = True
            tp = _descriptor_hint(mapper.all_orm_descriptors[name])

    if not found:
        member = inspect.getattr_static(cls, name, _MISSING)
        if member is not _MISSING:
            found = True
            tp = _descriptor_hint(member)

    if known and not found:
        return None
    return unwrap_type(tp), meta


def _path_getter(segments: List[str]) -> Callable[[Any], Any]:
    """Create the function that reads an attribute path from a record.

    An absent value in the middle of the path makes the whole path absent.
    """

    def getter(record: Any) -> Any:
        value = record
        for segment in segments:
            if value is None:
                return None
            if isinstance(value, Mapping):
                value = value.get(segment)
            else:
                value = getattr(value, segment)
        return value

    getter.__name__ = "get_" + "_".join(segments)
    return getter


def resolve_path(
    record_type: Any, path: str, type_hint: Any = None
) -> ResolvedAccessor:
    """Resolve an attribute path into an accessor.

    Raises:
        ColumnConfigError: The path is malformed or names a property that
            does not exist.
    """
    segments = path.split(".")
    if not path or not all(s.isidentifier() for s in segments):
        raise ColumnConfigError(f"Invalid attribute path {path!r}", key=path)

    crt_type = record_type
    declared: Any = None
    meta: Dict[str, Any] = {}
    for segment in segments:
        described = describe_property(crt_type, segment)
        if described is None:
            raise ColumnConfigError(
                f"{getattr(crt_type, '__name__', crt_type)} has no "
                f"property {segment!r} (path {path!r})",
                key=path,
            )
        declared, meta = described
        crt_type = declared

    if type_hint is not None:
        declared = unwrap_type(type_hint)

    result = ResolvedAccessor(
        func=_path_getter(segments),
        key=path,
        name=segments[-1],
        declared_type=declared,
        type_tag=tag_for_type(declared),
        info=ColumnInfo.model_validate(meta, strict=True),
    )
    logger.debug(
        "Resolved %s to %s (%s)", path, result.type_tag, result.declared_type
    )
    return result


def resolve_callable(
    func: Callable[[Any], Any], type_hint: Any = None
) -> ResolvedAccessor:
    """Resolve a computed accessor.

    The declared type is the return annotation of the callable, if any.
    """
    if type_hint is not None:
        declared = unwrap_type(type_hint)
    else:
        target: Any = func
        if not isinstance(func, (types.FunctionType, types.MethodType, type)):
            target = getattr(func, "__call__", func)
        declared = unwrap_type(_return_hint(target))
    return ResolvedAccessor(
        func=func,
        declared_type=declared,
        type_tag=tag_for_type(declared),
    )


def resolve_accessor(
    record_type: Any, expr: Any, type_hint: Any = None
) -> ResolvedAccessor:
    """Resolve an accessor expression.

    Args:
        record_type: The type of the records; `None` if not known, in which
            case attribute paths are not validated.
        expr: An attribute path or a callable that receives the record.
        type_hint: Overrides the declared type of the values.

    Raises:
        ColumnConfigError: The expression cannot be turned into an accessor.
    """
    if isinstance(expr, str):
        return resolve_path(record_type, expr, type_hint)
    if callable(expr):
        return resolve_callable(expr, type_hint)
    raise ColumnConfigError(
        f"Cannot use {expr!r} as a column accessor; expected an attribute "
        "path or a callable"
    )
