from typing import TYPE_CHECKING, Any, Callable, List, Optional, Tuple

from attrs import field, frozen
from pydantic import BaseModel

from exgrid.constants import (
    ATTR_CLASS,
    DEFAULT_FALSE_TEXT,
    DEFAULT_TEMPLATE_SPECIFIER,
    DEFAULT_TRUE_TEXT,
    TypeTag,
)
from exgrid.evaluator import evaluate, evaluate_footer

if TYPE_CHECKING:
    from collections.abc import Collection  # noqa: F401


class ColumnConfigError(Exception):
    """A column could not be defined as requested.

    These errors are raised while the columns are being built, never while
    they are being rendered.

    Attributes:
        key: The key of the column that caused the error (may be empty for
            computed columns).
    """

    key: str

    def __init__(self, msg: str, key: str = ""):
        super().__init__(msg)
        self.key = key


class ColumnInfo(BaseModel):
    """Declarative information about a column.

    The same layout is used for the display metadata attached to the
    properties of a record (attrs `metadata`, pydantic `json_schema_extra`,
    SQLAlchemy `info`) and for columns that are created from configuration
    data. Only the members that are not `None` are applied.

    Attributes:
        path: The attribute path used as accessor. Only used when columns
            are created from configuration data.
        title: The title of the column.
        format: The format pattern for numbers and moments in time.
        css_class: The css classes of the body cells.
        header_css_class: The css classes of the header cell.
        footer_css_class: The css classes of the footer cell.
        is_header: Render the body cells as header cells.
        template: The template used to render the value.
        template_specifier: The token inside the template that is replaced
            by the value.
        true_text: The text shown for `True`.
        false_text: The text shown for `False`.
    """

    path: Optional[str] = None
    title: Optional[str] = None
    format: Optional[str] = None
    css_class: Optional[str] = None
    header_css_class: Optional[str] = None
    footer_css_class: Optional[str] = None
    is_header: Optional[bool] = None
    template: Optional[str] = None
    template_specifier: Optional[str] = None
    true_text: Optional[str] = None
    false_text: Optional[str] = None


@frozen
class AttributeData:
    """An extra attribute of the body cells.

    Attributes:
        name: The name of the attribute. Names are not unique; a `class`
            attribute may coexist with the css class of the column.
        value: Computes the value of the attribute from a record.
    """

    name: str
    value: Callable[[Any], Any]

    def value_for(self, record: Any) -> Optional[str]:
        """Compute the value of the attribute for a record."""
        result = self.value(record)
        return None if result is None else str(result)


@frozen
class ColumnDefinition:
    """Describes how a column extracts, formats and aggregates its values.

    Instances are immutable. The builder creates new versions while the
    column is being customized and only hands out the final one.

    Attributes:
        key: The stable identity of the column. It is the attribute path for
            direct property reads and empty for computed columns.
        accessor: Extracts the raw value from a record.
        name: The name of the property read by the accessor, `None` for
            computed columns.
        declared_type: The type of the values produced by the accessor.
        type_tag: The formatting category of `declared_type`.
        title: The text shown in the header.
        footer: Reduces all the records to the value of the footer cell.
        format: The pattern applied to numbers and moments in time.
        template: A string that receives the rendered value in place of
            `template_specifier`.
        template_specifier: The placeholder inside the template.
        is_header: The body cells are header cells.
        css_class: The css classes of the body cells.
        header_css_class: The css classes of the header cell.
        footer_css_class: The css classes of the footer cell.
        true_text: The text for boolean `True`.
        false_text: The text for boolean `False`.
        attributes: Extra per-record attributes for the body cells.
    """

    key: str
    accessor: Callable[[Any], Any] = field(repr=False)
    name: Optional[str] = field(default=None)
    declared_type: Any = field(default=None)
    type_tag: TypeTag = field(default=TypeTag.OTHER)
    title: str = field(default="")
    footer: Optional[Callable[["Collection[Any]"], Any]] = field(
        default=None, repr=False
    )
    format: Optional[str] = field(default=None)
    template: Optional[str] = field(default=None)
    template_specifier: str = field(default=DEFAULT_TEMPLATE_SPECIFIER)
    is_header: bool = field(default=False)
    css_class: Optional[str] = field(default=None)
    header_css_class: Optional[str] = field(default=None)
    footer_css_class: Optional[str] = field(default=None)
    true_text: str = field(default=DEFAULT_TRUE_TEXT)
    false_text: str = field(default=DEFAULT_FALSE_TEXT)
    attributes: Tuple[AttributeData, ...] = field(default=(), repr=False)

    @property
    def has_footer(self) -> bool:
        """Tell if the column computes a value for the footer."""
        return self.footer is not None

    def evaluate(self, record: Any) -> Optional[str]:
        """Get the display string of this column for a record."""
        return evaluate(self, record)

    def evaluate_footer(self, records: "Collection[Any]") -> Optional[str]:
        """Get the display string of the footer cell."""
        return evaluate_footer(self, records)

    def apply_template(self, text: Optional[str]) -> Optional[str]:
        """Place the text inside the template of the column.

        Args:
            text: The rendered value. `None` is placed in the template
                as an empty string.

        Returns:
            The text unchanged if the column has no template, the template
            with the specifier replaced otherwise.
        """
        if not self.template:
            return text
        return self.template.replace(self.template_specifier, text or "")

    def render(self, record: Any) -> Optional[str]:
        """Evaluate the column for a record and apply the template."""
        return self.apply_template(self.evaluate(record))

    def attributes_for(self, record: Any) -> List[Tuple[str, Optional[str]]]:
        """Compute the attributes of the body cell for a record.

        The css class of the column comes first, followed by the attributes
        added through the builder in the order in which they were added.
        Repeated names are kept; it is up to the renderer to combine them.
        """
        result: List[Tuple[str, Optional[str]]] = []
        if self.css_class:
            result.append((ATTR_CLASS, self.css_class))
        for attr in self.attributes:
            result.append((attr.name, attr.value_for(record)))
        return result
