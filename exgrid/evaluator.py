"""Conversion of raw column values to display strings.

The conversion depends on the type tag of the value. For body cells the tag
is the one the column computed from its declared type when it was built. For
footer cells the tag is computed from the value produced by the aggregator,
as that value can have a different type than the values in the column (a
count of dates, for example). Footer cells never use the format of the
column.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from exgrid.constants import TypeTag, tag_for_value
from exgrid.labels import coerce_member, enum_label

if TYPE_CHECKING:
    from collections.abc import Collection  # noqa: F401

    from exgrid.column import ColumnDefinition  # noqa: F401

logger = logging.getLogger(__name__)

# A formatter receives the raw value, the format pattern (if any), the type
# that the value is expected to have and the column.
Formatter = Callable[[Any, Optional[str], Any, "ColumnDefinition"], str]


def apply_format(value: Any, pattern: str) -> str:
    """Format a value using a pattern.

    Patterns that contain a replacement field (`{:,.2f}`, `{:%d.%m.%Y}`) are
    applied with `str.format`; anything else is a format specification for
    the built-in `format()` (`,.2f`, `%Y-%m-%d`).

    Raises:
        ValueError: The pattern is not valid for the value.
    """
    if "{" in pattern:
        return pattern.format(value)
    return format(value, pattern)


def format_plain(
    value: Any, pattern: Optional[str], vtype: Any, column: "ColumnDefinition"
) -> str:
    """Numbers and moments in time: the pattern or the default conversion."""
    if pattern:
        return apply_format(value, pattern)
    return str(value)


def format_bool(
    value: Any, pattern: Optional[str], vtype: Any, column: "ColumnDefinition"
) -> str:
    """Booleans use the texts of the column; the pattern is ignored."""
    return column.true_text if value else column.false_text


def format_enum(
    value: Any, pattern: Optional[str], vtype: Any, column: "ColumnDefinition"
) -> str:
    member = coerce_member(vtype, value)
    if member is None:
        logger.debug("Value %r is not a member of %s", value, vtype)
        return str(value)
    return enum_label(member)


def format_other(
    value: Any, pattern: Optional[str], vtype: Any, column: "ColumnDefinition"
) -> str:
    return str(value)


FORMATTERS: Dict[TypeTag, Formatter] = {
    TypeTag.INTEGER: format_plain,
    TypeTag.DECIMAL: format_plain,
    TypeTag.FLOAT: format_plain,
    TypeTag.DATE_TIME: format_plain,
    TypeTag.BOOLEAN: format_bool,
    TypeTag.ENUM: format_enum,
    TypeTag.OTHER: format_other,
}


def evaluate(column: "ColumnDefinition", record: Any) -> Optional[str]:
    """Get the display string of a column for a record.

    Args:
        column: The column to evaluate.
        record: The record to extract the value from.

    Returns:
        The formatted value or `None` if the record has no value for this
        column.
    """
    value = column.accessor(record)
    if value is None:
        return None
    formatter = FORMATTERS[column.type_tag]
    return formatter(value, column.format, column.declared_type, column)


def evaluate_footer(
    column: "ColumnDefinition", records: "Collection[Any]"
) -> Optional[str]:
    """Get the display string of the footer cell of a column.

    Args:
        column: The column to evaluate.
        records: All the records in the table.

    Returns:
        The formatted aggregate or `None` if the column has no footer or the
        aggregate is absent.
    """
    if column.footer is None:
        return None
    value = column.footer(records)
    if value is None:
        return None
    formatter = FORMATTERS[tag_for_value(value)]
    return formatter(value, None, type(value), column)
