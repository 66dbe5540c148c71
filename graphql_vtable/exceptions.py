# Copyright 2024-present Kensho Technologies, LLC.
from typing import Any, List


class GraphQLVTableError(Exception):
    """Generic error when exposing a GraphQL operation as a virtual table."""


class ConfigError(GraphQLVTableError):
    """Exception raised when the table creation arguments are missing or invalid.

    For example:
    - the "url" or "query" argument was not provided, or was empty;
    - the "timeout" argument is not a positive number;
    - the derived columns of the table do not have unique names.
    """


class QueryParseError(GraphQLVTableError):
    """Exception raised when the GraphQL query could not be analyzed.

    This could be due to many reasons, such as:
    - the query text is not valid GraphQL;
    - the document does not contain exactly one named query operation;
    - the operation has more than one root selection;
    - the query uses fragment spreads, which are not supported.
    """


class QueryOptimizationError(GraphQLVTableError):
    """Exception raised when the GraphQL query could not be pruned for a scan."""


class PlanDecodeError(GraphQLVTableError):
    """Exception raised when a serialized scan plan could not be decoded."""


class ScanArgumentError(GraphQLVTableError):
    """Exception raised when a scan argument cannot be sent as a GraphQL variable value."""


class NetworkError(GraphQLVTableError):
    """Exception raised when the request to the GraphQL server failed at the transport level."""


class ResponseShapeError(GraphQLVTableError):
    """Exception raised when the server response body is not a JSON object."""


class GraphQLResponseError(GraphQLVTableError):
    """Exception raised when the server response carries a non-empty "errors" array."""

    errors: List[Any]

    def __init__(self, errors: List[Any]) -> None:
        """Record the errors reported by the server, verbatim."""
        super().__init__(errors)
        self.errors = errors

    def __str__(self) -> str:
        """Describe the server-reported errors."""
        return f"The GraphQL server reported errors: {self.errors}"


class ColumnIndexError(GraphQLVTableError, IndexError):
    """Exception raised when the host requests a column outside of the declared table schema."""
