#!/usr/bin/env python
# Copyright 2024-present Kensho Technologies, LLC.
"""Run a GraphQL query as a virtual table scan, and output its rows as JSON lines.

Used as: python -m graphql_vtable.tool --url URL [--query-file FILE] [--where NAME=VALUE ...]
         [--columns NAME,NAME,...]

The query is read from standard input unless a file is given. Each --where argument is offered
to the table as an equality constraint; the ones the table does not apply are checked against
the rows before outputting them.
"""
import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence, TextIO, Tuple

from .exceptions import GraphQLVTableError
from .scan_planning import Constraint, ConstraintOperator, get_columns_used_mask
from .vtable import GraphQLTable


def _parse_where_argument(where_argument: str) -> Tuple[str, str]:
    """Split a NAME=VALUE argument into its column name and value."""
    column_name, separator, value = where_argument.partition("=")
    if not separator or not column_name:
        raise argparse.ArgumentTypeError(
            "Expected a constraint of the form NAME=VALUE, but got: {}".format(where_argument)
        )
    return column_name, value


def _get_column_index(table: GraphQLTable, column_name: str) -> int:
    """Return the index of the named column of the table."""
    try:
        return list(table.columns).index(column_name)
    except ValueError as e:
        raise GraphQLVTableError(
            "Unknown column {}. The table has the columns: {}".format(
                column_name, list(table.columns)
            )
        ) from e


def scan_table(
    table: GraphQLTable,
    where: Sequence[Tuple[str, str]],
    selected_columns: Optional[Sequence[str]] = None,
) -> List[Dict[str, Optional[str]]]:
    """Scan the table the way a host database would, and return the selected columns of each row.

    Args:
        table: the table to scan
        where: (column name, value) pairs that rows must be equal to
        selected_columns: names of the columns to output, or None to output all of them

    Returns:
        mapping of column name to text value, for each row of the scan
    """
    if selected_columns is None:
        selected_columns = list(table.columns)

    equalities = [
        (_get_column_index(table, column_name), value) for column_name, value in where
    ]
    selected_indices = [_get_column_index(table, column_name) for column_name in selected_columns]

    constraints = [
        Constraint(column_index, ConstraintOperator.EQ) for column_index, _ in equalities
    ]
    col_used = get_columns_used_mask(
        selected_indices + [column_index for column_index, _ in equalities]
    )
    index_info = table.best_index(constraints, col_used)

    args_by_position: Dict[int, Any] = {}
    host_filters = []
    for (column_index, value), usage in zip(equalities, index_info.constraint_usage):
        if usage.argv_index is not None:
            args_by_position[usage.argv_index] = value
        if not usage.omit:
            host_filters.append((column_index, value))
    args = [args_by_position[position] for position in sorted(args_by_position)]

    cursor = table.open()
    rows = []
    try:
        cursor.filter(index_info.idx_str, args)
        while not cursor.eof():
            if all(cursor.column(column_index) == value for column_index, value in host_filters):
                rows.append(
                    {
                        column_name: cursor.column(column_index)
                        for column_name, column_index in zip(selected_columns, selected_indices)
                    }
                )
            cursor.next()
    finally:
        cursor.close()
    return rows


def _get_argument_parser() -> argparse.ArgumentParser:
    """Return the parser of the command line arguments of the tool."""
    parser = argparse.ArgumentParser(
        prog="python -m graphql_vtable.tool",
        description="Scan a GraphQL query as a table, and output its rows as JSON lines.",
    )
    parser.add_argument("--url", required=True, help="URL of the GraphQL endpoint.")
    parser.add_argument(
        "--query-file",
        type=argparse.FileType("r"),
        default=None,
        help="File containing the GraphQL query. Defaults to standard input.",
    )
    parser.add_argument(
        "--where",
        type=_parse_where_argument,
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Only output rows whose column NAME equals VALUE. May be repeated.",
    )
    parser.add_argument(
        "--columns",
        default=None,
        help="Comma-separated names of the columns to output. Defaults to all columns.",
    )
    parser.add_argument("--timeout", default=None, help="Seconds to wait for the server.")
    parser.add_argument("--verbose", action="store_true", help="Log the requests being sent.")
    return parser


def main(
    argv: Optional[Sequence[str]] = None, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout
) -> int:
    """Run the tool with the given command line arguments, and return its exit status."""
    parser = _get_argument_parser()
    arguments = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if arguments.verbose else logging.WARNING, stream=sys.stderr
    )

    query_file = arguments.query_file if arguments.query_file is not None else stdin
    table_arguments = {"url": arguments.url, "query": query_file.read()}
    if arguments.timeout is not None:
        table_arguments["timeout"] = arguments.timeout
    selected_columns = (
        None
        if arguments.columns is None
        else [column_name.strip() for column_name in arguments.columns.split(",")]
    )

    try:
        table = GraphQLTable.create(table_arguments)
        rows = scan_table(table, arguments.where, selected_columns)
    except GraphQLVTableError as e:
        sys.stderr.write("Error: {}\n".format(e))
        return 1

    for row in rows:
        stdout.write(json.dumps(row) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
