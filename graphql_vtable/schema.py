# Copyright 2024-present Kensho Technologies, LLC.
from collections import Counter
from typing import List, Sequence

from sqlalchemy import Column, MetaData, Table, Text
from sqlalchemy.dialects import sqlite
from sqlalchemy.schema import CreateTable

from .exceptions import ConfigError
from .typedefs import QueryDetails


# Name of the table in the statement declaring the schema of a virtual table. Hosts only read
# the column definitions of the statement, so the table name itself is irrelevant.
DECLARED_TABLE_NAME = "x"


def get_column_names(query_details: QueryDetails) -> List[str]:
    """Return the column names of the virtual table: result columns, then variable columns."""
    return [str(result) for result in query_details.results] + [
        variable.name for variable in query_details.variables
    ]


def check_column_names_unique(column_names: Sequence[str]) -> None:
    """Raise ConfigError if the virtual table would have multiple columns with the same name.

    Columns collide when two leaf paths are joined into the same name (e.g. "a_b { c }" and
    "a { b_c }"), or when a leaf path has the same name as a variable. Using a GraphQL alias
    on one of the colliding fields resolves the conflict.
    """
    duplicate_names = sorted(name for name, count in Counter(column_names).items() if count > 1)
    if duplicate_names:
        raise ConfigError(
            "The query would produce a table with multiple columns named the same way, which is "
            "not supported. Use aliases to give the conflicting fields distinct names. "
            "Duplicated column names: {}".format(duplicate_names)
        )


def build_table_schema(
    column_names: Sequence[str], table_name: str = DECLARED_TABLE_NAME
) -> Table:
    """Return a SQLAlchemy Table with one nullable text column per given column name."""
    metadata = MetaData()
    columns = [Column(column_name, Text, nullable=True) for column_name in column_names]
    return Table(table_name, metadata, *columns)


def get_declare_table_statement(table: Table) -> str:
    """Return the CREATE TABLE statement declaring the schema of the table to the host."""
    return str(CreateTable(table).compile(dialect=sqlite.dialect())).strip()
