# Copyright 2024-present Kensho Technologies, LLC.
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from graphql.language.ast import DocumentNode

from .ast_manipulation import safe_parse_graphql
from .exceptions import ConfigError, QueryParseError
from .query_analysis import analyze_query_document
from .schema import check_column_names_unique, get_column_names
from .typedefs import QueryDetails


URL_ARGUMENT = "url"
QUERY_ARGUMENT = "query"
OPERATION_NAME_ARGUMENT = "operationName"
TIMEOUT_ARGUMENT = "timeout"

REQUIRED_ARGUMENTS = (URL_ARGUMENT, QUERY_ARGUMENT)

# Seconds to wait for the GraphQL server before failing the scan.
DEFAULT_TIMEOUT = 30.0


def _parse_timeout(timeout_value: Optional[str]) -> float:
    """Return the request timeout in seconds described by the optional creation argument."""
    if timeout_value is None:
        return DEFAULT_TIMEOUT

    try:
        timeout = float(timeout_value)
    except ValueError as e:
        raise ConfigError(
            'Expected the "{}" argument to be a number of seconds, but got: {}'.format(
                TIMEOUT_ARGUMENT, timeout_value
            )
        ) from e

    if timeout <= 0:
        raise ConfigError(
            'Expected the "{}" argument to be a positive number of seconds, but got: {}'.format(
                TIMEOUT_ARGUMENT, timeout_value
            )
        )
    return timeout


@dataclass(frozen=True)
class TableConfig:
    """Everything a virtual table needs to scan its GraphQL endpoint.

    Created once when the table is created, and shared read-only by every cursor of the table.
    """

    # URL of the GraphQL endpoint.
    url: str

    # The query text, as given at table creation.
    query: str

    # Seconds to wait for the server before failing a scan.
    timeout: float

    # The parsed query. Never mutated: scans prune copies of it.
    document: DocumentNode

    query_details: QueryDetails

    # Column names of the table: result columns, then variable columns.
    columns: Tuple[str, ...]

    @property
    def operation_name(self) -> str:
        """Return the name of the query operation."""
        return self.query_details.operation_name

    @property
    def result_column_count(self) -> int:
        """Return the number of leading columns that hold query results."""
        return len(self.query_details.results)

    @classmethod
    def from_arguments(cls, arguments: Mapping[str, str]) -> "TableConfig":
        """Validate the table creation arguments, analyze the query and return the config.

        Args:
            arguments: mapping of creation argument name to its already-unquoted value.
                       "url" and "query" are required. "operationName" is optional, and must
                       match the name of the query operation if given. "timeout" is an optional
                       number of seconds. Unknown arguments are ignored.

        Returns:
            TableConfig for the table

        Raises:
            - ConfigError if an argument is missing or invalid, or if the columns of the table
              would not have unique names
            - QueryParseError if the query does not have the supported shape
        """
        missing_arguments = [
            argument_name
            for argument_name in REQUIRED_ARGUMENTS
            if not (arguments.get(argument_name) or "").strip()
        ]
        if missing_arguments:
            raise ConfigError(
                "Missing required table arguments: {}. Both a server {} and a GraphQL {} must "
                "be specified.".format(missing_arguments, URL_ARGUMENT, QUERY_ARGUMENT)
            )

        url = arguments[URL_ARGUMENT].strip()
        query = arguments[QUERY_ARGUMENT]
        timeout = _parse_timeout(arguments.get(TIMEOUT_ARGUMENT))

        document = safe_parse_graphql(query, QueryParseError)
        query_details = analyze_query_document(document)

        expected_operation_name = arguments.get(OPERATION_NAME_ARGUMENT)
        if expected_operation_name and expected_operation_name != query_details.operation_name:
            raise ConfigError(
                'The "{}" argument {} does not match the name of the query operation: {}'.format(
                    OPERATION_NAME_ARGUMENT, expected_operation_name, query_details.operation_name
                )
            )

        columns = tuple(get_column_names(query_details))
        check_column_names_unique(columns)

        return cls(
            url=url,
            query=query,
            timeout=timeout,
            document=document,
            query_details=query_details,
            columns=columns,
        )
