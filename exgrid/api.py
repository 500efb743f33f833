from exgrid.accessor import (  # noqa: F401
    ResolvedAccessor,
    resolve_accessor,
    unwrap_type,
)
from exgrid.builder import (  # noqa: F401
    ColumnBuilder,
    ColumnPropertyBuilder,
    ColumnSet,
)
from exgrid.column import (  # noqa: F401
    AttributeData,
    ColumnConfigError,
    ColumnDefinition,
    ColumnInfo,
)
from exgrid.constants import (  # noqa: F401
    DEFAULT_FALSE_TEXT,
    DEFAULT_TEMPLATE_SPECIFIER,
    DEFAULT_TRUE_TEXT,
    TypeTag,
    tag_for_type,
    tag_for_value,
)
from exgrid.evaluator import (  # noqa: F401
    apply_format,
    evaluate,
    evaluate_footer,
)
from exgrid.labels import (  # noqa: F401
    descriptions,
    display_names,
    enum_label,
)
