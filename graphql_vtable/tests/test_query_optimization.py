# Copyright 2024-present Kensho Technologies, LLC.
from textwrap import dedent
import unittest

from graphql import parse
from graphql.language.ast import SelectionSetNode
from graphql.language.printer import print_ast
from graphql.language.visitor import Visitor, visit

from ..ast_manipulation import get_endpoint_field, iter_result_leaves
from ..exceptions import QueryOptimizationError
from ..query_optimization import optimize_document, optimize_query
from ..scan_planning import get_columns_used_mask
from .test_helpers import AUTH_TOKEN_QUERY, FILMS_QUERY, compare_graphql


NESTED_QUERY = dedent(
    """\
    query Nested($id: ID!) {
      node(id: $id) {
        a {
          x
          y
        }
        b
        ... on Thing {
          c
          d
        }
      }
    }
    """
)


def _get_leaf_paths(query_text: str):
    """Return the paths of the leaf fields of the query, in column order."""
    _, endpoint_field = get_endpoint_field(parse(query_text), QueryOptimizationError)
    return [
        path for path, _ in iter_result_leaves(endpoint_field.selection_set, QueryOptimizationError)
    ]


class _EmptySelectionSetFinder(Visitor):
    def __init__(self) -> None:
        super().__init__()
        self.found_empty_selection_set = False

    def enter_selection_set(self, node: SelectionSetNode, *args) -> None:
        """Record selection sets without any selections."""
        if not node.selections:
            self.found_empty_selection_set = True


class QueryOptimizationTests(unittest.TestCase):
    def test_all_columns_used(self) -> None:
        compare_graphql(self, FILMS_QUERY, optimize_query(FILMS_QUERY, 0b1111))
        compare_graphql(self, FILMS_QUERY, optimize_query(FILMS_QUERY, -1))
        compare_graphql(self, AUTH_TOKEN_QUERY, optimize_query(AUTH_TOKEN_QUERY, 0b11))
        compare_graphql(self, NESTED_QUERY, optimize_query(NESTED_QUERY, 0b11111))

    def test_prune_some_columns(self) -> None:
        expected_query = """
            query AllFilms {
              allFilms {
                films {
                  id
                  director
                }
              }
            }
        """
        compare_graphql(
            self, expected_query, optimize_query(FILMS_QUERY, get_columns_used_mask([0, 2]))
        )

    def test_never_empty_selection_set(self) -> None:
        expected_query = """
            query AllFilms {
              allFilms {
                films {
                  id
                }
              }
            }
        """
        compare_graphql(self, expected_query, optimize_query(FILMS_QUERY, 0))

        for query in (FILMS_QUERY, AUTH_TOKEN_QUERY, NESTED_QUERY):
            finder = _EmptySelectionSetFinder()
            visit(parse(optimize_query(query, 0)), finder)
            self.assertFalse(finder.found_empty_selection_set, msg=query)

    def test_prune_within_inline_fragment(self) -> None:
        expected_query = """
            query MyQuery($username_eq: String!, $password_eq: String!) {
              authToken(password: $password_eq, username: $username_eq) {
                ... on AuthToken {
                  token
                }
              }
            }
        """
        compare_graphql(
            self, expected_query, optimize_query(AUTH_TOKEN_QUERY, get_columns_used_mask([1]))
        )

    def test_prune_nested_selections(self) -> None:
        # Leaves in column order: a_x, a_y, b, c, d.
        only_b_and_d = """
            query Nested($id: ID!) {
              node(id: $id) {
                a {
                  x
                }
                b
                ... on Thing {
                  d
                }
              }
            }
        """
        compare_graphql(
            self, only_b_and_d, optimize_query(NESTED_QUERY, get_columns_used_mask([2, 4]))
        )

        without_b = """
            query Nested($id: ID!) {
              node(id: $id) {
                a {
                  x
                  y
                }
                ... on Thing {
                  c
                  d
                }
              }
            }
        """
        compare_graphql(
            self, without_b, optimize_query(NESTED_QUERY, get_columns_used_mask([0, 1, 3, 4]))
        )

    def test_used_leaves_are_kept(self) -> None:
        for col_used in range(0b100000):
            kept_paths = _get_leaf_paths(optimize_query(NESTED_QUERY, col_used))
            all_paths = _get_leaf_paths(NESTED_QUERY)
            used_paths = [
                path for index, path in enumerate(all_paths) if (col_used >> index) & 1
            ]
            for path in used_paths:
                self.assertIn(path, kept_paths, msg=bin(col_used))
            # Kept leaves appear in their original order.
            self.assertEqual(
                [path for path in all_paths if path in kept_paths], kept_paths, msg=bin(col_used)
            )

    def test_deterministic(self) -> None:
        self.assertEqual(
            optimize_query(NESTED_QUERY, 0b10101), optimize_query(NESTED_QUERY, 0b10101)
        )

    def test_document_not_modified(self) -> None:
        document = parse(FILMS_QUERY)
        printed_document = print_ast(document)
        optimize_document(document, 0)
        self.assertEqual(printed_document, print_ast(document))
        self.assertEqual(parse(FILMS_QUERY), document)

    def test_unsupported_queries(self) -> None:
        invalid_queries = (
            "query Broken { root { a }",
            "{ root { a } }",
            "subscription S { events { id } }",
            "query A { root { a } other { b } }",
            "query A { root { a ...F } }",
        )
        for query in invalid_queries:
            with self.assertRaises(QueryOptimizationError, msg=query):
                optimize_query(query, -1)
