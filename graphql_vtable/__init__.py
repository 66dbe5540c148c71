# Copyright 2024-present Kensho Technologies, LLC.
"""Commonly-used functions and data types from this package."""
from .config import TableConfig  # noqa
from .exceptions import (  # noqa
    ColumnIndexError,
    ConfigError,
    GraphQLResponseError,
    GraphQLVTableError,
    NetworkError,
    PlanDecodeError,
    QueryOptimizationError,
    QueryParseError,
    ResponseShapeError,
    ScanArgumentError,
)
from .flattening import flatten_payload  # noqa
from .query_analysis import analyze_query  # noqa
from .query_optimization import optimize_query  # noqa
from .scan_planning import (  # noqa
    Constraint,
    ConstraintOperator,
    IndexInfo,
    ScanPlan,
    plan_scan,
)
from .schema import get_column_names  # noqa
from .typedefs import QueryDetails, ResultPath, Variable  # noqa
from .vtable import CursorState, GraphQLCursor, GraphQLTable  # noqa


__package_name__ = "graphql-vtable"
__version__ = "0.1.0"
