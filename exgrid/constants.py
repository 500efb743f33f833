# Constants for column value types
import datetime
import decimal
import enum
from enum import StrEnum
from typing import Any


class TypeTag(StrEnum):
    """The categories of values that drive the formatting of a cell."""

    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    DATE_TIME = "date-time"
    BOOLEAN = "bool"
    ENUM = "enum"
    OTHER = "other"


# The token that is replaced inside a column template by the cell value.
DEFAULT_TEMPLATE_SPECIFIER = "{value}"

# How boolean values are shown unless the column says otherwise.
DEFAULT_TRUE_TEXT = "True"
DEFAULT_FALSE_TEXT = "False"

# The name of the attribute that carries the css classes of a cell.
ATTR_CLASS = "class"


def tag_for_type(tp: Any) -> TypeTag:
    """Map a python type to the tag used for formatting.

    The caller is expected to pass a type that was already stripped of
    `Optional` and similar wrappers (see `exgrid.accessor.unwrap_type`).

    Args:
        tp: The type to map. Anything that is not a class maps to `OTHER`.

    Returns:
        The type tag.
    """
    if not isinstance(tp, type):
        return TypeTag.OTHER

    # bool is a subclass of int so it needs to be checked first.
    if issubclass(tp, bool):
        return TypeTag.BOOLEAN
    if issubclass(tp, enum.Enum):
        return TypeTag.ENUM
    if issubclass(tp, int):
        return TypeTag.INTEGER
    if issubclass(tp, decimal.Decimal):
        return TypeTag.DECIMAL
    if issubclass(tp, float):
        return TypeTag.FLOAT
    if issubclass(tp, (datetime.datetime, datetime.date)):
        return TypeTag.DATE_TIME
    return TypeTag.OTHER


def tag_for_value(value: Any) -> TypeTag:
    """Map the runtime type of a value to a tag."""
    return tag_for_type(type(value))
