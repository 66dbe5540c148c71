# Copyright 2024-present Kensho Technologies, LLC.
"""Turn the JSON payload of a GraphQL response into the rows of a virtual table.

At most one array is expanded per response: the first one found when walking the result paths
in column order. The path leading to that array is its anchor. Each element of the array becomes
a row, in which the result columns under the anchor hold values from the element, and all
other result columns hold the same values in every row. Arrays found anywhere else are
returned as-is, as values of their columns.
"""
from typing import Any, List, Optional, Sequence, Tuple

from funcy import first

from .typedefs import ResultPath, Row


# Response keys leading to the expanded array, and the array itself.
ArrayAnchor = Tuple[Tuple[str, ...], List[Any]]


def resolve_path(value: Any, path: Sequence[str]) -> Any:
    """Return the value found by following the response keys, or None if any of them is absent."""
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _find_path_anchor(payload: Any, result: ResultPath) -> Optional[ArrayAnchor]:
    """Return the anchor of the first array along the result path, if there is one."""
    value = payload
    for depth, key in enumerate(result.path):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
        if isinstance(value, list):
            return result.path[: depth + 1], value
    return None


def find_array_anchor(payload: Any, results: Sequence[ResultPath]) -> Optional[ArrayAnchor]:
    """Return the anchor of the first array found along the result paths, in column order.

    If the payload is itself an array, it is the anchor and every result path is under it.
    """
    if isinstance(payload, list):
        return (), payload
    return first(
        anchor
        for anchor in (_find_path_anchor(payload, result) for result in results)
        if anchor is not None
    )


def flatten_payload(payload: Any, results: Sequence[ResultPath]) -> List[Row]:
    """Return the result columns of the rows described by the payload.

    Args:
        payload: the JSON value returned for the root field of the query; may be None
        results: result paths of the table, in column order

    Returns:
        one row if the payload has no array along the result paths, otherwise one row per
        element of the anchored array (and so no rows at all if that array is empty)
    """
    array_anchor = find_array_anchor(payload, results)
    anchor_path = None if array_anchor is None else array_anchor[0]

    template_row: Row = [
        None if result.is_under(anchor_path) else resolve_path(payload, result.path)
        for result in results
    ]
    if array_anchor is None:
        return [template_row]

    anchor_path, elements = array_anchor
    anchored_columns = [
        (column_index, result.path[len(anchor_path) :])
        for column_index, result in enumerate(results)
        if result.is_under(anchor_path)
    ]

    rows = []
    for element in elements:
        row = list(template_row)
        for column_index, remaining_path in anchored_columns:
            row[column_index] = resolve_path(element, remaining_path)
        rows.append(row)
    return rows
