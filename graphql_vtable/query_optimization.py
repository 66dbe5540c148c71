# Copyright 2024-present Kensho Technologies, LLC.
"""Prune the leaf fields a scan does not read from the query sent to the GraphQL server."""
from copy import copy
import logging
from typing import Any, FrozenSet, List, Union

from graphql.language.ast import DocumentNode, SelectionSetNode
from graphql.language.printer import print_ast
from graphql.language.visitor import Visitor, VisitorAction, visit

from .ast_manipulation import get_endpoint_field, iter_result_leaves, safe_parse_graphql
from .exceptions import QueryOptimizationError


logger = logging.getLogger(__name__)


class PruneLeavesVisitor(Visitor):
    """Remove the given leaf fields from their selection sets, keeping at least one selection."""

    def __init__(self, removable_leaf_ids: FrozenSet[int]) -> None:
        """Create a visitor removing the given leaf fields from their selection sets.

        Args:
            removable_leaf_ids: ids of the FieldNode objects to remove. Leaf fields have no
                                children to edit, so `visit` never replaces them with copies
                                and their identity is preserved during the traversal
        """
        super().__init__()
        self.removable_leaf_ids = removable_leaf_ids

    def leave_selection_set(
        self, node: SelectionSetNode, key: Any, parent: Any, path: List[Any], ancestors: List[Any]
    ) -> Union[SelectionSetNode, VisitorAction]:
        """Remove the removable leaves, but never the last remaining selection."""
        selections = list(node.selections)
        removable_indices = [
            index
            for index, selection in enumerate(selections)
            if id(selection) in self.removable_leaf_ids
        ]
        if not removable_indices:
            return None

        # Going right-to-left keeps the indices of the selections yet to be removed valid.
        for index in reversed(removable_indices):
            if len(selections) == 1:
                # An empty selection set is not valid GraphQL.
                break
            del selections[index]

        new_node = copy(node)
        new_node.selections = tuple(selections)
        return new_node


def optimize_document(document_ast: DocumentNode, col_used: int) -> str:
    """Return the query text requesting only the leaf fields whose result columns are used.

    Leaf i of the query, in the order of the table's result columns, is kept if bit i of
    col_used is set. A selection set keeps at least one selection even when none of its leaves
    are used. The given document is not modified.

    Args:
        document_ast: the query bound to the table
        col_used: bitset of the result columns read by the scan

    Returns:
        printed text of the pruned query

    Raises:
        QueryOptimizationError if the query does not have the supported shape
    """
    _, endpoint_field = get_endpoint_field(document_ast, QueryOptimizationError)

    leaf_count = 0
    removable_leaf_ids = set()
    for column_index, (_, leaf_ast) in enumerate(
        iter_result_leaves(endpoint_field.selection_set, QueryOptimizationError)
    ):
        leaf_count += 1
        if not (col_used >> column_index) & 1:
            removable_leaf_ids.add(id(leaf_ast))

    optimized_ast = visit(document_ast, PruneLeavesVisitor(frozenset(removable_leaf_ids)))
    logger.debug(
        "Pruned up to %(removable_count)s of %(leaf_count)s leaf fields from the query.",
        {"removable_count": len(removable_leaf_ids), "leaf_count": leaf_count},
    )
    return print_ast(optimized_ast)


def optimize_query(query_text: str, col_used: int) -> str:
    """Parse the query text and return it with the leaf fields of unused result columns pruned.

    Raises:
        QueryOptimizationError if the text is not valid GraphQL, or does not have the supported
        shape
    """
    return optimize_document(safe_parse_graphql(query_text, QueryOptimizationError), col_used)
