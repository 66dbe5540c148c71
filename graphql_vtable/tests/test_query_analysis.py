# Copyright 2024-present Kensho Technologies, LLC.
from textwrap import dedent
import unittest

from ..exceptions import QueryParseError
from ..query_analysis import analyze_query
from ..typedefs import QueryDetails, ResultPath, Variable
from .test_helpers import AUTH_TOKEN_QUERY, FILMS_QUERY


class QueryAnalysisTests(unittest.TestCase):
    def test_nested_fields(self) -> None:
        expected_details = QueryDetails(
            operation_name="AllFilms",
            endpoint_name="allFilms",
            variables=(),
            results=(
                ResultPath(("films", "id")),
                ResultPath(("films", "title")),
                ResultPath(("films", "director")),
                ResultPath(("films", "edited")),
            ),
        )
        self.assertEqual(expected_details, analyze_query(FILMS_QUERY))

    def test_inline_fragment_and_variables(self) -> None:
        expected_details = QueryDetails(
            operation_name="MyQuery",
            endpoint_name="authToken",
            variables=(
                Variable(name="username_eq", nullable=False),
                Variable(name="password_eq", nullable=False),
            ),
            results=(ResultPath(("__typename",)), ResultPath(("token",))),
        )
        self.assertEqual(expected_details, analyze_query(AUTH_TOKEN_QUERY))

    def test_depth_first_left_to_right_order(self) -> None:
        query = dedent(
            """\
            query Ordering($first: Int, $after: String!) {
              root(first: $first, after: $after) {
                a {
                  x
                  ... on Thing {
                    y
                    z {
                      w
                    }
                  }
                }
                b
                ... on Other {
                  c
                }
              }
            }
            """
        )
        details = analyze_query(query)
        self.assertEqual(
            [("a", "x"), ("a", "y"), ("a", "z", "w"), ("b",), ("c",)],
            [result.path for result in details.results],
        )
        self.assertEqual(
            [Variable("first", True), Variable("after", False)], list(details.variables)
        )

    def test_aliases_are_used_as_path_segments(self) -> None:
        query = dedent(
            """\
            query Aliased {
              hero: character(id: 1) {
                name
                friendNames: friends {
                  label: name
                }
              }
            }
            """
        )
        details = analyze_query(query)
        self.assertEqual("hero", details.endpoint_name)
        self.assertEqual(
            ["name", "friendNames_label"], [str(result) for result in details.results]
        )

    def test_scalar_root_field_has_no_result_columns(self) -> None:
        details = analyze_query("query V($x: String) { version(x: $x) }")
        expected_details = QueryDetails(
            operation_name="V",
            endpoint_name="version",
            variables=(Variable(name="x", nullable=True),),
            results=(),
        )
        self.assertEqual(expected_details, details)

    def test_deterministic(self) -> None:
        self.assertEqual(analyze_query(FILMS_QUERY), analyze_query(FILMS_QUERY))
        self.assertEqual(analyze_query(AUTH_TOKEN_QUERY), analyze_query(AUTH_TOKEN_QUERY))

    def test_result_path_string(self) -> None:
        self.assertEqual("films_id", str(ResultPath(("films", "id"))))
        self.assertEqual("token", str(ResultPath(("token",))))

    def test_result_path_prefix(self) -> None:
        result = ResultPath(("films", "characters", "name"))
        self.assertTrue(result.is_under(("films",)))
        self.assertTrue(result.is_under(("films", "characters")))
        self.assertFalse(result.is_under(("characters",)))
        self.assertFalse(result.is_under(None))


class QueryAnalysisErrorTests(unittest.TestCase):
    """Ensure unsupported queries raise QueryParseError."""

    def test_invalid_graphql(self) -> None:
        with self.assertRaises(QueryParseError):
            analyze_query("query Broken { root { a }")

    def test_unsupported_documents(self) -> None:
        invalid_queries = (
            # Anonymous query.
            "{ root { a } }",
            # Mutation.
            "mutation Login { login { token } }",
            # Multiple operations.
            "query A { root { a } } query B { root { b } }",
            # Fragment definition alongside the query.
            "query A { root { ...F } } fragment F on Root { a }",
            # Multiple root fields.
            "query A { root { a } other { b } }",
            # Inline fragment at the root.
            "query A { ... on Query { root { a } } }",
            # Fragment spread.
            "query A { root { a ...F } }",
            # Fragment spread nested under an inline fragment.
            "query A { root { ... on Root { b { ...F } } } }",
        )
        for query in invalid_queries:
            with self.assertRaises(QueryParseError, msg=query):
                analyze_query(query)
