import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    TypeVar,
    Union,
)

from attrs import define, evolve, field, frozen

from exgrid.accessor import resolve_accessor
from exgrid.column import (
    AttributeData,
    ColumnConfigError,
    ColumnDefinition,
    ColumnInfo,
)

if TYPE_CHECKING:
    from collections.abc import Collection  # noqa: F401

R = TypeVar("R")
logger = logging.getLogger(__name__)


@frozen
class ColumnSet(Mapping, Generic[R]):
    """The ordered, read-only set of columns produced by a builder.

    Attributes:
        columns: Maps the key of each column to its definition, in the order
            in which the columns were added. The mapping is a read-only view.
    """

    columns: Mapping[str, ColumnDefinition] = field(
        factory=dict, converter=MappingProxyType
    )

    def __getitem__(self, key: str) -> ColumnDefinition:
        return self.columns[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    @property
    def has_footer(self) -> bool:
        """Tell if any of the columns computes a footer value."""
        return any(c.has_footer for c in self.columns.values())

    def titles(self) -> List[str]:
        """The titles of the columns, in order."""
        return [c.title for c in self.columns.values()]

    def render_row(self, record: R) -> List[Optional[str]]:
        """Render all the cells of a record, templates included."""
        return [c.render(record) for c in self.columns.values()]

    def render_footer(self, records: "Collection[R]") -> List[Optional[str]]:
        """Render the footer cells; columns without a footer give `None`."""
        return [c.evaluate_footer(records) for c in self.columns.values()]


class ColumnPropertyBuilder(Generic[R]):
    """Customizes one column.

    All methods return the builder itself so that the calls can be chained.
    Setters overwrite the previous value; `add_attribute()` accumulates.

    Attributes:
        column_builder: The builder that created this instance.
        column: The current version of the column definition.
    """

    column_builder: "ColumnBuilder[R]"
    column: ColumnDefinition

    def __init__(
        self, column_builder: "ColumnBuilder[R]", column: ColumnDefinition
    ):
        self.column_builder = column_builder
        self.column = column

    def _change(self, **changes: Any) -> "ColumnPropertyBuilder[R]":
        if self.column_builder.is_built:
            raise ColumnConfigError(
                f"Column {self.column.key or self.column.title!r} can no "
                "longer be changed; the columns were already built",
                key=self.column.key,
            )
        self.column = evolve(self.column, **changes)
        return self

    def footer(
        self, aggregator: Callable[["Collection[R]"], Any]
    ) -> "ColumnPropertyBuilder[R]":
        """Set the function that computes the footer value from all records."""
        return self._change(footer=aggregator)

    def format(self, pattern: str) -> "ColumnPropertyBuilder[R]":
        """Set the format pattern for numbers and moments in time."""
        return self._change(format=pattern)

    def header_class(self, css_classes: str) -> "ColumnPropertyBuilder[R]":
        """Set the css classes of the header cell."""
        return self._change(header_css_class=css_classes)

    def css_class(self, css_classes: str) -> "ColumnPropertyBuilder[R]":
        """Set the css classes of the body cells."""
        return self._change(css_class=css_classes)

    def footer_css_class(
        self, css_classes: str
    ) -> "ColumnPropertyBuilder[R]":
        """Set the css classes of the footer cell."""
        return self._change(footer_css_class=css_classes)

    def is_header(self) -> "ColumnPropertyBuilder[R]":
        """Render the body cells of this column as header cells."""
        return self._change(is_header=True)

    def title(self, custom_title: str) -> "ColumnPropertyBuilder[R]":
        """Set the title, replacing the one derived from the metadata."""
        return self._change(title=custom_title)

    def template(self, template: str) -> "ColumnPropertyBuilder[R]":
        """Set the template that receives the value.

        The value replaces the template specifier (`{value}` by default,
        see `template_specifier()`).
        """
        return self._change(template=template)

    def template_specifier(self, token: str) -> "ColumnPropertyBuilder[R]":
        """Set the token inside the template that is replaced by the value."""
        return self._change(template_specifier=token)

    def bool_text(
        self, true_text: str, false_text: str
    ) -> "ColumnPropertyBuilder[R]":
        """Set the texts shown for boolean values."""
        return self._change(true_text=true_text, false_text=false_text)

    def add_attribute(
        self, name: str, value: Callable[[R], Any]
    ) -> "ColumnPropertyBuilder[R]":
        """Add an attribute to the body cells with a per-record value.

        A `class` attribute is added even if the column already has a css
        class; the renderer receives both.
        """
        return self._change(
            attributes=self.column.attributes + (AttributeData(name, value),)
        )

    def apply_info(
        self, info: Union[ColumnInfo, Dict[str, Any]]
    ) -> "ColumnPropertyBuilder[R]":
        """Apply all the members of the info that are set."""
        if not isinstance(info, ColumnInfo):
            info = ColumnInfo.model_validate(info, strict=True)
        changes = info.model_dump(exclude_none=True, exclude={"path"})
        if not changes:
            return self
        return self._change(**changes)

    def add(self, expr: Any, **kwargs: Any) -> "ColumnPropertyBuilder[R]":
        """Add another column to the parent builder."""
        return self.column_builder.add(expr, **kwargs)


@define
class ColumnBuilder(Generic[R]):
    """Creates the columns of a table.

    Example:

    ```
    cols = ColumnBuilder(Order)
    cols.add("number").is_header().title("No.")
    cols.add("total").format(",.2f").footer(sum_totals)
    cols.add(lambda r: r.total * r.vat, key="vat", type_hint=Decimal)
    table = cols.build()
    ```

    Attributes:
        record_type: The type of the records. It is used to validate
            attribute paths and to find the declared type and the display
            metadata of the properties. Can be `None`.
        is_built: Set by `build()`; columns can no longer be changed.
    """

    record_type: Any = field(default=None)
    is_built: bool = field(default=False, init=False)
    _builders: List[ColumnPropertyBuilder[R]] = field(
        factory=list, init=False, repr=False
    )
    _keys: Dict[str, int] = field(factory=dict, init=False, repr=False)

    def add(
        self,
        expr: Any,
        key: Optional[str] = None,
        title: Optional[str] = None,
        type_hint: Any = None,
        info: Optional[Union[ColumnInfo, Dict[str, Any]]] = None,
    ) -> ColumnPropertyBuilder[R]:
        """Add a column.

        Args:
            expr: An attribute path (`"price"`, `"customer.name"`) or a
                callable that computes the value from a record.
            key: The key of the column in the resulting set. Defaults to the
                attribute path; computed columns without a key are stored
                under their position (`#0`, `#1`, ...).
            title: The title of the column; overrides the metadata.
            type_hint: The type of the values, overriding the declared one.
            info: Customizations applied right away.

        Raises:
            ColumnConfigError: The accessor cannot be resolved or the key is
                already used.
        """
        if self.is_built:
            raise ColumnConfigError(
                "Columns can no longer be added; they were already built",
                key=key or "",
            )

        resolved = resolve_accessor(self.record_type, expr, type_hint)
        map_key = key or resolved.key or f"#{len(self._builders)}"
        if map_key in self._keys:
            raise ColumnConfigError(
                f"Column key {map_key!r} is used more than once", key=map_key
            )

        column = ColumnDefinition(
            key=key or resolved.key,
            accessor=resolved.func,
            name=resolved.name,
            declared_type=resolved.declared_type,
            type_tag=resolved.type_tag,
            title=resolved.title,
            format=resolved.info.format,
        )
        builder = ColumnPropertyBuilder(self, column)
        meta = resolved.info.model_dump(
            exclude_none=True, exclude={"title", "format"}
        )
        if meta:
            builder.apply_info(meta)
        if info is not None:
            builder.apply_info(info)
        if title is not None:
            builder.title(title)

        self._keys[map_key] = len(self._builders)
        self._builders.append(builder)
        logger.debug(
            "Added column %s (%s) to %s",
            map_key,
            column.type_tag,
            getattr(self.record_type, "__name__", self.record_type),
        )
        return builder

    def add_infos(
        self, infos: Iterable[Union[ColumnInfo, Dict[str, Any]]]
    ) -> "ColumnBuilder[R]":
        """Add columns described by configuration data.

        Each entry must have a `path` that is used as the accessor; the rest
        of the members customize the column.
        """
        for info in infos:
            if not isinstance(info, ColumnInfo):
                info = ColumnInfo.model_validate(info, strict=True)
            if not info.path:
                raise ColumnConfigError(
                    "A column created from configuration data needs a path"
                )
            self.add(info.path, info=info)
        return self

    @property
    def count(self) -> int:
        """The number of columns added so far."""
        return len(self._builders)

    def build(self) -> ColumnSet[R]:
        """Freeze the columns.

        After this call the builders of the individual columns refuse any
        further change.
        """
        self.is_built = True
        columns = {k: self._builders[i].column for k, i in self._keys.items()}
        logger.debug("Built %d columns", len(columns))
        return ColumnSet(columns=columns)
