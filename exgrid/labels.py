"""Human readable labels for enumeration members.

An enumeration can provide labels for its members in two ways, both of them
keyed by the name of the member:

```
@display_names(LOW="Low priority", HIGH="High priority")
class Priority(Enum):
    LOW = 1
    HIGH = 2


class Status(Enum):
    __display_names__ = {"OPEN": "Open"}
    __descriptions__ = {"CLOSED": "Closed by the owner"}

    OPEN = "o"
    CLOSED = "c"
```

Display names take precedence over descriptions; members with neither are
shown by their name.
"""

from enum import Enum
from typing import Any, Callable, Dict, Optional, Type, TypeVar

E = TypeVar("E", bound=Type[Enum])

DISPLAY_NAMES_ATTR = "__display_names__"
DESCRIPTIONS_ATTR = "__descriptions__"


def _registry(enum_cls: Type[Enum], attr: str) -> Dict[str, str]:
    result = getattr(enum_cls, attr, None)
    return result if isinstance(result, dict) else {}


def _register(attr: str, values: Dict[str, str]) -> Callable[[E], E]:
    def decorator(enum_cls: E) -> E:
        unknown = [k for k in values if k not in enum_cls.__members__]
        if unknown:
            raise ValueError(
                f"{enum_cls.__name__} has no members named "
                f"{', '.join(unknown)}"
            )
        merged = dict(_registry(enum_cls, attr))
        merged.update(values)
        setattr(enum_cls, attr, merged)
        return enum_cls

    return decorator


def display_names(**names: str) -> Callable[[E], E]:
    """Class decorator that sets the display names of enum members."""
    return _register(DISPLAY_NAMES_ATTR, names)


def descriptions(**values: str) -> Callable[[E], E]:
    """Class decorator that sets the (legacy) descriptions of enum members."""
    return _register(DESCRIPTIONS_ATTR, values)


def enum_label(member: Enum) -> str:
    """Get the label of an enum member.

    Args:
        member: The member to get the label for.

    Returns:
        The display name of the member, its description or its name, in this
        order of preference.
    """
    enum_cls = type(member)
    label = _registry(enum_cls, DISPLAY_NAMES_ATTR).get(member.name)
    if label is not None:
        return label
    label = _registry(enum_cls, DESCRIPTIONS_ATTR).get(member.name)
    if label is not None:
        return label
    return member.name


def coerce_member(enum_cls: Any, value: Any) -> Optional[Enum]:
    """Find the member of an enumeration that corresponds to a value.

    Returns:
        The value itself if it is already an enum member, the member with
        that value or `None` if the enumeration has no such member.
    """
    if isinstance(value, Enum):
        return value
    if not (isinstance(enum_cls, type) and issubclass(enum_cls, Enum)):
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def text_name(name: str) -> str:
    """Convert a `snake_case` name to `Text case`."""
    parts = name.split("_")
    parts[0] = parts[0].title()
    return " ".join(p for p in parts if p)
