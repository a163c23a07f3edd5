"""
Base fixtures for the conduit_qa test suite.

This module provides foundational fixtures for environment handling and
canned HTTP responses.
"""

import os
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests

MANAGED_PREFIXES = ("TESTRAIL_", "CONDUIT_", "ENVIRONMENT")


@pytest.fixture
def clean_env(monkeypatch) -> Generator[pytest.MonkeyPatch, None, None]:
    """
    Remove every variable the configuration reads from the environment.

    Yields:
        The monkeypatch fixture, for setting variables in the test
    """

    for key in list(os.environ):
        if key.startswith(MANAGED_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    yield monkeypatch


@pytest.fixture
def testrail_env(clean_env) -> dict[str, str]:
    """
    Provide a standard TestRail environment.

    Returns:
        Dict[str, str]: The variables that were set
    """
    env = {
        "TESTRAIL_BASE_URL": "https://testrail.example.com",
        "TESTRAIL_USERNAME": "qa-bot",
        "TESTRAIL_PASSWORD": "s3cret",
        "TESTRAIL_ENABLED": "TRUE",
        "TESTRAIL_PROJECT": "BSOM",
        "TESTRAIL_CASES_FILTER": "1",
        "ENVIRONMENT": "QA",
    }
    for key, value in env.items():
        clean_env.setenv(key, value)
    return env


@pytest.fixture
def mock_response() -> Callable[..., MagicMock]:
    """
    Build MagicMock objects that look like requests.Response.

    Returns:
        A factory taking status_code, json_data, text and url
    """

    def _factory(
        status_code: int = 200,
        json_data: Any = None,
        text: str = "",
        url: str = "https://api.example.com/resource",
    ) -> MagicMock:
        response = MagicMock(spec=requests.Response)
        response.status_code = status_code
        response.ok = status_code < 400
        response.url = url
        response.headers = {"Content-Type": "application/json"}
        response.text = text
        if json_data is None:
            response.json.side_effect = ValueError("No JSON")
        else:
            response.json.return_value = json_data
        return response

    return _factory
