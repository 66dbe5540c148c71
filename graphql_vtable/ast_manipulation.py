# Copyright 2024-present Kensho Technologies, LLC.
from typing import Iterator, Optional, Tuple, Type

from graphql.error import GraphQLSyntaxError
from graphql.language.ast import (
    DocumentNode,
    FieldNode,
    FragmentSpreadNode,
    InlineFragmentNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
)
from graphql.language.parser import parse

from .exceptions import GraphQLVTableError, QueryParseError


def get_ast_field_name(ast: FieldNode) -> str:
    """Return the field name for the given AST node."""
    return ast.name.value


def get_ast_response_key(ast: FieldNode) -> str:
    """Return the key under which the field appears in the response: its alias, if any."""
    if ast.alias is not None:
        return ast.alias.value
    return get_ast_field_name(ast)


def get_human_friendly_ast_field_name(ast) -> str:
    """Return a human-friendly name for the AST node, suitable for error messages."""
    if isinstance(ast, InlineFragmentNode):
        if ast.type_condition is None:
            return "inline fragment"
        return "type coercion to {}".format(ast.type_condition.name.value)
    elif isinstance(ast, FragmentSpreadNode):
        return "spread of fragment {}".format(ast.name.value)
    elif isinstance(ast, OperationDefinitionNode):
        return "{} operation definition".format(ast.operation.value)

    return get_ast_field_name(ast)


def safe_parse_graphql(
    graphql_string: str, desired_error_type: Type[GraphQLVTableError] = QueryParseError
) -> DocumentNode:
    """Return an AST representation of the given GraphQL input, reraising GraphQL library errors."""
    try:
        ast = parse(graphql_string)
    except GraphQLSyntaxError as e:
        raise desired_error_type(e) from e

    return ast


def get_only_query_definition(
    document_ast: DocumentNode, desired_error_type: Type[GraphQLVTableError]
) -> OperationDefinitionNode:
    """Assert that the Document AST contains only a single named query, and return it."""
    if not isinstance(document_ast, DocumentNode):
        raise AssertionError(
            'Received an unexpected value for "document_ast": {}'.format(document_ast)
        )

    if len(document_ast.definitions) != 1:
        raise desired_error_type(
            "Expected a GraphQL document with exactly one query definition, but found {} "
            "definitions. Multiple operations and fragment definitions are not supported.".format(
                len(document_ast.definitions)
            )
        )

    definition_ast = document_ast.definitions[0]
    if not isinstance(definition_ast, OperationDefinitionNode):
        raise desired_error_type(
            "Expected a GraphQL document with a single query definition, but instead found "
            "a {} definition. This is not supported.".format(type(definition_ast).__name__)
        )

    if definition_ast.operation != OperationType.QUERY:
        raise desired_error_type(
            "Expected a GraphQL document with a single query definition, but instead found a "
            '"{}" operation. This is not supported.'.format(definition_ast.operation.value)
        )

    if definition_ast.name is None:
        raise desired_error_type(
            "Expected the query operation to be named, since its name is sent along with every "
            "request. Anonymous queries are not supported."
        )

    return definition_ast


def get_only_selection_from_ast(ast, desired_error_type: Type[GraphQLVTableError]) -> FieldNode:
    """Return the selected sub-ast, ensuring that there is precisely one and that it is a field."""
    selections = [] if ast.selection_set is None else ast.selection_set.selections

    ast_name = get_human_friendly_ast_field_name(ast)
    if len(selections) != 1:
        if selections:
            selection_names = [
                get_human_friendly_ast_field_name(selection_ast) for selection_ast in selections
            ]
            raise desired_error_type(
                "Expected an AST with exactly one selection, but found "
                "{} selections at AST node named {}: {}".format(
                    len(selection_names), ast_name, selection_names
                )
            )
        else:
            raise desired_error_type(
                "Expected an AST with exactly one selection, but got "
                "one with no selections. Error near AST node named: {}".format(ast_name)
            )

    selection = selections[0]
    if not isinstance(selection, FieldNode):
        raise desired_error_type(
            "Expected the only selection of {} to be a field, but found {}.".format(
                ast_name, get_human_friendly_ast_field_name(selection)
            )
        )

    return selection


def get_endpoint_field(
    document_ast: DocumentNode, desired_error_type: Type[GraphQLVTableError]
) -> Tuple[OperationDefinitionNode, FieldNode]:
    """Return the query definition and its single root field, whose selections become columns.

    A root field without selections, such as a scalar, is allowed and has no result columns.
    """
    query_definition = get_only_query_definition(document_ast, desired_error_type)
    endpoint_field = get_only_selection_from_ast(query_definition, desired_error_type)
    return query_definition, endpoint_field


def iter_result_leaves(
    selection_set: Optional[SelectionSetNode],
    desired_error_type: Type[GraphQLVTableError],
    path_prefix: Tuple[str, ...] = (),
) -> Iterator[Tuple[Tuple[str, ...], FieldNode]]:
    """Yield (path, field AST) for each leaf field, depth-first and left-to-right.

    This is the single definition of the leaf order: result column i of a table is the i-th
    leaf yielded here, both when deriving the table's columns and when pruning unused fields.

    Args:
        selection_set: selections to walk; None is treated as an empty selection set
        desired_error_type: exception raised when an unsupported selection is found
        path_prefix: response keys of the fields enclosing the selection set

    Yields:
        tuples of the leaf's path (response keys from below the root field to the leaf inclusive)
        and the leaf FieldNode itself
    """
    if selection_set is None:
        return

    for selection in selection_set.selections:
        if isinstance(selection, FieldNode):
            path = path_prefix + (get_ast_response_key(selection),)
            if selection.selection_set is None:
                yield path, selection
            else:
                yield from iter_result_leaves(selection.selection_set, desired_error_type, path)
        elif isinstance(selection, InlineFragmentNode):
            # e.g. "... on AuthToken", which does not appear in the response.
            yield from iter_result_leaves(
                selection.selection_set, desired_error_type, path_prefix
            )
        elif isinstance(selection, FragmentSpreadNode):
            raise desired_error_type(
                "Fragment spreads are not supported, but found a {} at path {}.".format(
                    get_human_friendly_ast_field_name(selection), list(path_prefix)
                )
            )
        else:
            raise AssertionError(
                "Unexpected selection type {} encountered at path {}: {}".format(
                    type(selection).__name__, list(path_prefix), selection
                )
            )
