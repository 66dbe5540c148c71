# Copyright 2024-present Kensho Technologies, LLC.
"""Virtual table exposing a GraphQL query operation, and the cursors scanning it.

The host database drives these objects through its virtual table protocol:
- a table is created once, from the arguments of the host's table creation statement;
- before each scan, the host offers its constraints to `best_index`, and receives a plan;
- each scan opens a cursor, calls `filter` with the plan and the constraint values, then walks
  the rows with `eof`, `column`, `rowid` and `next`.
"""
from enum import Enum, unique
from typing import Any, List, Mapping, Optional, Sequence

import httpx
from sqlalchemy import Table

from .config import TableConfig
from .exceptions import ColumnIndexError
from .execution import convert_value_to_text, execute_scan
from .scan_planning import Constraint, IndexInfo, ScanPlan, plan_scan
from .schema import build_table_schema, get_declare_table_statement
from .typedefs import Row


@unique
class CursorState(Enum):
    """Lifecycle states of a GraphQLCursor."""

    IDLE = "idle"  # No scan was executed yet, or the last one failed.
    SCANNING = "scanning"  # Positioned on one of the rows of the scan.
    EXHAUSTED = "exhausted"  # Past the last row of the scan.


class GraphQLTable:
    """A virtual table whose rows are fetched with a GraphQL query."""

    def __init__(self, config: TableConfig, client: Optional[httpx.Client] = None) -> None:
        """Create the table from its configuration.

        Args:
            config: configuration of the table
            client: HTTP client shared by the cursors of the table. If None, each scan uses
                    a client of its own
        """
        self.config = config
        self.client = client

    @classmethod
    def create(
        cls, arguments: Mapping[str, str], client: Optional[httpx.Client] = None
    ) -> "GraphQLTable":
        """Create the table from the arguments of the host's table creation statement.

        Raises:
            - ConfigError if the arguments are missing or invalid
            - QueryParseError if the query does not have the supported shape
        """
        return cls(TableConfig.from_arguments(arguments), client=client)

    @property
    def columns(self) -> Sequence[str]:
        """Return the column names of the table."""
        return self.config.columns

    @property
    def table_schema(self) -> Table:
        """Return the SQLAlchemy description of the table's columns."""
        return build_table_schema(self.config.columns)

    def declare_schema(self) -> str:
        """Return the CREATE TABLE statement declaring the table's columns to the host."""
        return get_declare_table_statement(self.table_schema)

    def best_index(self, constraints: Sequence[Constraint], col_used: int) -> IndexInfo:
        """Plan a scan given the constraints offered by the host and the columns it reads."""
        return plan_scan(self.config, constraints, col_used)

    def open(self) -> "GraphQLCursor":
        """Return a new cursor over the table."""
        return GraphQLCursor(self.config, client=self.client)


class GraphQLCursor:
    """Scans a GraphQL table: each call to `filter` sends one request and buffers its rows."""

    def __init__(self, config: TableConfig, client: Optional[httpx.Client] = None) -> None:
        """Create an idle cursor over the table with the given configuration."""
        self.config = config
        self.client = client
        self._rows: Optional[List[Row]] = None
        self._row_number = 0

    @property
    def state(self) -> CursorState:
        """Return the current state of the cursor."""
        if self._rows is None:
            return CursorState.IDLE
        elif self._row_number < len(self._rows):
            return CursorState.SCANNING
        else:
            return CursorState.EXHAUSTED

    def filter(self, idx_str: Optional[str], args: Sequence[Any]) -> None:
        """Start a new scan, replacing the rows of any previous one.

        Args:
            idx_str: the plan string returned by the table's `best_index`, passed back verbatim
            args: values of the constraints the plan uses, in argument order

        Raises:
            - PlanDecodeError if the plan string is not one produced by `best_index`
            - ScanArgumentError if an argument cannot be sent as the value of its variable
            - QueryOptimizationError if the query does not have the supported shape
            - NetworkError, GraphQLResponseError or ResponseShapeError if the request failed
        """
        self._rows = None
        self._row_number = 0

        plan = ScanPlan.decode(idx_str)
        self._rows = execute_scan(self.config, plan, args, client=self.client)

    def next(self) -> None:
        """Advance to the next row."""
        self._row_number += 1

    def eof(self) -> bool:
        """Return True if the cursor is past the last row of the scan."""
        return self.state != CursorState.SCANNING

    def column(self, column_index: int) -> Optional[str]:
        """Return the text value of the given column in the current row, or None if absent."""
        column_count = len(self.config.columns)
        if column_index < 0 or column_index >= column_count:
            raise ColumnIndexError(
                "Column index {} is out of bounds for a table with {} columns.".format(
                    column_index, column_count
                )
            )

        if self.eof():
            return None
        row = self._rows[self._row_number]
        if column_index >= len(row):
            return None
        return convert_value_to_text(row[column_index])

    def rowid(self) -> int:
        """Return the position of the current row within the scan."""
        return self._row_number

    def close(self) -> None:
        """Release the rows of the scan."""
        self._rows = None
        self._row_number = 0
