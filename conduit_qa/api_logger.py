"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Response validation with diagnostic logging.

When a response carries an unexpected status code, the request and the
response are logged in full before the test fails, so a broken call can be
diagnosed from the log alone.
"""

import json
import logging
from http import HTTPStatus
from typing import Any

import requests
from pydantic import BaseModel

from conduit_qa.exceptions import UnexpectedStatusError

logger = logging.getLogger("conduit_qa.api_logger")

EMPTY_BODY = "<---empty body--->"


def format_body(body: Any) -> str:
    """
    Render a request or response body for the log.

    Strings that hold JSON are pretty-printed, other strings are returned as is,
    and a missing or empty body is shown as ``<---empty body--->``.
    """
    if body is None:
        return EMPTY_BODY
    if isinstance(body, BaseModel):
        return body.model_dump_json(indent=2, exclude_none=True, by_alias=True)
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            return json.dumps(json.loads(body), indent=2)
        except ValueError:
            return body or EMPTY_BODY
    try:
        return json.dumps(body, indent=2, default=str)
    except (TypeError, ValueError):
        return str(body)


def log_api_error_details_on_failure(
    response: requests.Response,
    expected_status_code: int,
    request: Any = None,
    log: logging.Logger | None = None,
) -> bool:
    """
    Log request and response details when the status code is not the expected one.

    Args:
    ----
        response: The response to check
        expected_status_code: Status code the caller expects
        request: Body that was sent, if any
        log: Logger to write to (defaults to this module's logger)

    Returns:
    -------
        True if a mismatch was logged, False if the status matched

    """
    if response.status_code == expected_status_code:
        return False

    log = log or logger
    try:
        response_body = format_body(response.text)
        request_body = format_body(request)
        headers = json.dumps(dict(response.headers), indent=2)
    except Exception as e:
        log.warning(f"Could not format failed call to {response.url}: {e}")
        response_body = request_body = headers = EMPTY_BODY

    log.error(
        f"Executed call to --> {response.url}  ***FAILED***\n"
        f"Expected status code: {int(expected_status_code)}\n"
        f"Actual status code: {response.status_code}\n"
        f"Response Body:\n{response_body}\n"
        f"Response headers: {headers}\n"
        f"Request Body:\n{request_body}",
        extra={
            "context_data": {
                "url": response.url,
                "expected_status": int(expected_status_code),
                "actual_status": response.status_code,
                "response_headers": headers,
                "response_body": response_body,
                "request_body": request_body,
            }
        },
    )
    return True


def assert_status(response: requests.Response, expected_status_code: int) -> None:
    """
    Raise UnexpectedStatusError if the status code differs from the expected one.
    """
    if response.status_code != expected_status_code:
        raise UnexpectedStatusError(
            f"Expected status code {int(expected_status_code)} but got "
            f"{response.status_code} from {response.url}",
            expected=int(expected_status_code),
            actual=response.status_code,
            url=response.url or "",
        )


def validate_response(
    response: requests.Response,
    expected_status_code: int = HTTPStatus.OK,
    request: Any = None,
    log: bool = True,
) -> requests.Response:
    """Log diagnostics for an unexpected status, then assert on it."""
    if log:
        log_api_error_details_on_failure(response, expected_status_code, request)
    assert_status(response, expected_status_code)
    return response
