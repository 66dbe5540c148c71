# Copyright 2024-present Kensho Technologies, LLC.
"""Derive the structure of a virtual table from the GraphQL query it is bound to."""
from graphql.language.ast import DocumentNode, NonNullTypeNode

from .ast_manipulation import (
    get_ast_response_key,
    get_endpoint_field,
    iter_result_leaves,
    safe_parse_graphql,
)
from .exceptions import QueryParseError
from .typedefs import QueryDetails, ResultPath, Variable


def analyze_query_document(document_ast: DocumentNode) -> QueryDetails:
    """Return the QueryDetails of an already-parsed query document.

    Args:
        document_ast: GraphQL document containing exactly one named query operation,
                      whose selection set contains exactly one field

    Returns:
        QueryDetails describing the declared variables and the leaf fields of the query

    Raises:
        QueryParseError if the query does not have the supported shape
    """
    query_definition, endpoint_field = get_endpoint_field(document_ast, QueryParseError)

    variables = tuple(
        Variable(
            name=variable_definition.variable.name.value,
            nullable=not isinstance(variable_definition.type, NonNullTypeNode),
        )
        for variable_definition in query_definition.variable_definitions or ()
    )
    results = tuple(
        ResultPath(path)
        for path, _ in iter_result_leaves(endpoint_field.selection_set, QueryParseError)
    )

    return QueryDetails(
        operation_name=query_definition.name.value,
        endpoint_name=get_ast_response_key(endpoint_field),
        variables=variables,
        results=results,
    )


def analyze_query(query_text: str) -> QueryDetails:
    """Parse the GraphQL query text and return its QueryDetails.

    Raises:
        QueryParseError if the text is not valid GraphQL, or does not have the supported shape
    """
    return analyze_query_document(safe_parse_graphql(query_text, QueryParseError))
