# Copyright 2024-present Kensho Technologies, LLC.
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple


# A row of the virtual table: one JSON value (or None) per column, results first, then variables.
Row = List[Any]


@dataclass(frozen=True)
class Variable:
    """A variable declared by the query operation, exposed as a column of the table."""

    name: str

    # False if the declared type of the variable is non-null, e.g. "String!".
    nullable: bool


@dataclass(frozen=True)
class ResultPath:
    """Response keys leading from the root field of the query to one of its leaf fields."""

    path: Tuple[str, ...]

    def __str__(self) -> str:
        """Return the column name of the result path."""
        return "_".join(self.path)

    def is_under(self, prefix: Optional[Tuple[str, ...]]) -> bool:
        """Return True if the path starts with the given prefix of response keys."""
        if prefix is None:
            return False
        return self.path[: len(prefix)] == prefix


@dataclass(frozen=True)
class QueryDetails:
    """Structural metadata of the query bound to a virtual table."""

    # Name of the query operation, sent along with every request.
    operation_name: str

    # Response key of the single root field, under which the payload appears in "data".
    endpoint_name: str

    # Declared variables, in declaration order.
    variables: Tuple[Variable, ...]

    # Leaf fields of the query, in the order of the table's result columns.
    results: Tuple[ResultPath, ...]
