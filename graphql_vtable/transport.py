# Copyright 2024-present Kensho Technologies, LLC.
import logging
from typing import Any, Dict, Optional

import httpx

from .exceptions import GraphQLResponseError, NetworkError, ResponseShapeError


logger = logging.getLogger(__name__)


def _get_response_body(response: httpx.Response) -> Dict[str, Any]:
    """Return the decoded JSON object in the body of the response."""
    try:
        body = response.json()
    except ValueError as e:
        raise ResponseShapeError(
            "Expected the GraphQL server to respond with JSON, but got: {}".format(
                response.text[:200]
            )
        ) from e

    if not isinstance(body, dict):
        raise ResponseShapeError(
            "Expected the GraphQL server to respond with a JSON object, but got a {}.".format(
                type(body).__name__
            )
        )
    return body


def post_graphql_request(
    client: httpx.Client,
    url: str,
    operation_name: str,
    query: str,
    variables: Dict[str, Any],
    timeout: Optional[float],
) -> Any:
    """Send the query to the GraphQL server, and return the "data" value of its response.

    Args:
        client: HTTP client used to send the request
        url: URL of the GraphQL endpoint
        operation_name: name of the query operation
        query: GraphQL query text
        variables: mapping of variable name to its JSON value
        timeout: seconds to wait for the server, or None to wait indefinitely

    Returns:
        the "data" value of the response, or None if the response has no data

    Raises:
        - NetworkError if the request could not be completed, or the server responded with an
          error status and no GraphQL errors
        - GraphQLResponseError if the response carries a non-empty "errors" array
        - ResponseShapeError if the response body is not a JSON object
    """
    request_body = {"operationName": operation_name, "query": query, "variables": variables}
    logger.debug(
        "Sending %(operation_name)s to %(url)s with variables %(variables)s.",
        {"operation_name": operation_name, "url": url, "variables": sorted(variables)},
    )
    try:
        response = client.post(url, json=request_body, timeout=timeout)
    except httpx.HTTPError as e:
        raise NetworkError("Request to {} failed: {}".format(url, e)) from e

    if response.is_error:
        # GraphQL servers commonly report invalid queries with a 4xx status and an errors array.
        try:
            errors = _get_response_body(response).get("errors")
        except ResponseShapeError:
            errors = None
        if errors:
            raise GraphQLResponseError(errors)
        raise NetworkError(
            "Request to {} failed with HTTP status {}: {}".format(
                url, response.status_code, response.text[:200]
            )
        )

    response_body = _get_response_body(response)
    errors = response_body.get("errors")
    if errors:
        raise GraphQLResponseError(errors)

    return response_body.get("data")
