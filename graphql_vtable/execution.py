# Copyright 2024-present Kensho Technologies, LLC.
from contextlib import nullcontext
import json
import logging
from typing import Any, ContextManager, Dict, List, Optional, Sequence

import httpx

from .config import TableConfig
from .exceptions import ScanArgumentError
from .flattening import flatten_payload
from .query_optimization import optimize_document
from .scan_planning import ScanPlan
from .transport import post_graphql_request
from .typedefs import Row


logger = logging.getLogger(__name__)


def _get_variable_value(variable_name: str, value: Any) -> Any:
    """Return the JSON value sent for a variable bound to the given scan argument.

    Blob arguments are sent as UTF-8 text.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ScanArgumentError(
                "Could not bind variable {} to a blob that is not valid UTF-8 text: {}".format(
                    variable_name, e
                )
            ) from e
    raise ScanArgumentError(
        "Could not bind variable {} to a value of unsupported type {}: {}".format(
            variable_name, type(value).__name__, repr(value)
        )
    )


def get_bound_variables(
    config: TableConfig, plan: ScanPlan, args: Sequence[Any]
) -> Dict[str, Any]:
    """Return the mapping of variable name to the argument value bound to it by the plan."""
    if len(args) != len(plan.params):
        raise AssertionError(
            "Expected the scan to receive one argument per planned parameter, but got {} "
            "arguments for the parameters {}.".format(len(args), plan.params)
        )

    variables = config.query_details.variables
    bound_variables = {}
    for param, value in zip(plan.params, args):
        variable_index = param.col - config.result_column_count
        if not 0 <= variable_index < len(variables):
            raise AssertionError(
                "Expected the planned parameter to target a variable column, but it targets "
                "column {} of a table with {} result columns and {} variables.".format(
                    param.col, config.result_column_count, len(variables)
                )
            )
        variable_name = variables[variable_index].name
        bound_variables[variable_name] = _get_variable_value(variable_name, value)
    return bound_variables


def _get_client_context(client: Optional[httpx.Client]) -> ContextManager[httpx.Client]:
    """Return a context manager providing the given client, or a new client closed on exit."""
    if client is None:
        return httpx.Client()
    return nullcontext(client)


def convert_value_to_text(value: Any) -> Optional[str]:
    """Return the text form of a JSON value, as exposed in the columns of the table."""
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


def execute_scan(
    config: TableConfig,
    plan: ScanPlan,
    args: Sequence[Any],
    client: Optional[httpx.Client] = None,
) -> List[Row]:
    """Request the pruned query from the GraphQL server and return the rows of its response.

    Args:
        config: configuration of the table being scanned
        plan: plan of the scan, as decided when the host planned it
        args: values of the constraints used by the plan, in argument order
        client: HTTP client to send the request with. If None, a client is created for the
                duration of the request

    Returns:
        rows of the scan: the result columns as flattened from the response, followed by the
        text value of each variable column, or None for variables the scan does not bind

    Raises:
        - ScanArgumentError if an argument cannot be sent as the value of its variable
        - QueryOptimizationError if the query does not have the supported shape
        - NetworkError, GraphQLResponseError or ResponseShapeError if the request failed
    """
    bound_variables = get_bound_variables(config, plan, args)
    for variable in config.query_details.variables:
        if not variable.nullable and variable.name not in bound_variables:
            logger.warning(
                "Non-null variable %(variable)s of %(operation_name)s is not bound by an "
                "equality constraint; the server will likely reject the query.",
                {"variable": variable.name, "operation_name": config.operation_name},
            )

    optimized_query = optimize_document(config.document, plan.col_used)

    with _get_client_context(client) as scan_client:
        data = post_graphql_request(
            scan_client,
            config.url,
            config.operation_name,
            optimized_query,
            bound_variables,
            config.timeout,
        )

    endpoint_name = config.query_details.endpoint_name
    payload = data.get(endpoint_name) if isinstance(data, dict) else None
    rows = flatten_payload(payload, config.query_details.results)

    variable_values = [
        convert_value_to_text(bound_variables.get(variable.name))
        for variable in config.query_details.variables
    ]
    for row in rows:
        row.extend(variable_values)

    logger.debug(
        "Scan of %(operation_name)s produced %(row_count)s rows.",
        {"operation_name": config.operation_name, "row_count": len(rows)},
    )
    return rows
