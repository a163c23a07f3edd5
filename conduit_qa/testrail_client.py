"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
TestRail API v2 resource controllers.

All endpoints live under ``TestRailConfig.api_path`` (``/index.php?/api/v2``)
and authenticate with HTTP basic auth. Every call expects 200 unless the
caller passes another ``expected_status_code``.
"""

import logging
from http import HTTPStatus
from typing import Any

import requests

from conduit_qa.api_logger import validate_response
from conduit_qa.core.config import TestRailConfig
from conduit_qa.core.logging import log_operation
from conduit_qa.exceptions import ConfigurationError
from conduit_qa.rest_client import BasicCredentials, RestClient, create_client_with_base_auth
from conduit_qa.testrail_models import (
    AddResultForCaseRequest,
    AddRunRequest,
    TestRailCase,
    TestRailResult,
    TestRailRun,
    TestRailTest,
    UpdateRunRequest,
)

logger = logging.getLogger("conduit_qa.testrail_client")


def get_testrail_client(config: TestRailConfig) -> RestClient:
    """
    Create a basic-auth RestClient for the TestRail instance.

    Raises
    ------
        ConfigurationError: If the user name or password is missing

    """
    if not config.has_credentials():
        raise ConfigurationError(
            "The environment variables TESTRAIL_USERNAME and TESTRAIL_PASSWORD are required."
        )
    return create_client_with_base_auth(
        config.base_url,
        BasicCredentials(username=config.username, password=config.password),
        timeout=config.timeout,
    )


def extract_items(body: Any, key: str) -> tuple[list[dict[str, Any]], str | None]:
    """
    Pull the records and the next-page link out of a list response.

    TestRail answers list endpoints either with a bare JSON array or, since
    6.7, with an object holding the records under ``key`` and a ``_links``
    object whose ``next`` entry points at the following page.
    """
    if isinstance(body, list):
        return body, None
    if isinstance(body, dict):
        links = body.get("_links") or {}
        return body.get(key) or [], links.get("next")
    return [], None


class TestRailService:
    """Thin wrappers around the TestRail endpoints used by result synchronization."""

    __test__ = False

    def __init__(self, client: RestClient, api_path: str = "/index.php?/api/v2"):
        self.client = client
        self.api_path = api_path

    @classmethod
    def from_config(cls, config: TestRailConfig) -> "TestRailService":
        return cls(get_testrail_client(config), config.api_path)

    def _path(self, endpoint: str) -> str:
        return f"{self.api_path}/{endpoint}"

    def _next_page_path(self, next_link: str) -> str:
        # next links look like "/api/v2/get_cases/1&suite_id=2&offset=250"
        return f"{self.api_path.partition('?')[0]}?{next_link}"

    def _get_all(self, endpoint: str, key: str, expected_status_code: int) -> list[dict[str, Any]]:
        path = self._path(endpoint)
        items: list[dict[str, Any]] = []
        while path:
            response = self.client.with_url(path).execute_get()
            validate_response(response, expected_status_code)
            page, next_link = extract_items(response.json(), key)
            items.extend(page)
            path = self._next_page_path(next_link) if next_link else None
            if next_link:
                logger.debug(f"Following {key} page link {next_link}")
        return items

    def get_cases_for_suite(
        self, project_id: int, suite_id: int, expected_status_code: int = HTTPStatus.OK
    ) -> list[TestRailCase]:
        """Fetch every case of a suite, in the order TestRail returns them."""
        with log_operation(
            logger,
            "fetching TestRail cases",
            level=logging.DEBUG,
            context={"project_id": project_id, "suite_id": suite_id},
        ):
            items = self._get_all(
                f"get_cases/{project_id}&suite_id={suite_id}", "cases", expected_status_code
            )
        return [TestRailCase.model_validate(item) for item in items]

    def get_results_for_case(
        self,
        run_id: int,
        case_id: int,
        validate: bool = True,
        expected_status_code: int = HTTPStatus.OK,
    ) -> tuple[requests.Response, Any]:
        """
        Fetch the results of a case in a run.

        Args:
        ----
            run_id: The run to look in
            case_id: The case to look up
            validate: Whether to log and assert the status code
            expected_status_code: Status expected when validating

        Returns:
        -------
            The raw response and its decoded body (None if the body is not JSON)

        """
        response = self.client.with_url(
            self._path(f"get_results_for_case/{run_id}/{case_id}")
        ).execute_get()
        if validate:
            validate_response(response, expected_status_code)
        try:
            body = response.json()
        except ValueError:
            body = None
        return response, body

    @staticmethod
    def parse_results(body: Any) -> list[TestRailResult]:
        """Turn a get_results_for_case body of either shape into result records."""
        items, _ = extract_items(body, "results")
        return [TestRailResult.model_validate(item) for item in items]

    def add_result_for_case(
        self,
        run_id: int,
        case_id: int,
        request: AddResultForCaseRequest,
        expected_status_code: int = HTTPStatus.OK,
    ) -> requests.Response:
        response = (
            self.client.with_url(self._path(f"add_result_for_case/{run_id}/{case_id}"))
            .with_body(request)
            .execute_post()
        )
        return validate_response(response, expected_status_code, request)

    def update_run(
        self,
        run_id: int,
        request: UpdateRunRequest,
        expected_status_code: int = HTTPStatus.OK,
    ) -> requests.Response:
        response = (
            self.client.with_url(self._path(f"update_run/{run_id}"))
            .with_body(request)
            .execute_post()
        )
        return validate_response(response, expected_status_code, request)

    def add_run(
        self,
        project_id: int,
        request: AddRunRequest,
        expected_status_code: int = HTTPStatus.OK,
    ) -> TestRailRun:
        """Create a run in a project and return it."""
        response = (
            self.client.with_url(self._path(f"add_run/{project_id}"))
            .with_body(request)
            .execute_post()
        )
        validate_response(response, expected_status_code, request)
        return TestRailRun.model_validate(response.json())

    def get_tests_for_run(
        self, run_id: int, expected_status_code: int = HTTPStatus.OK
    ) -> list[TestRailTest]:
        items = self._get_all(f"get_tests/{run_id}", "tests", expected_status_code)
        return [TestRailTest.model_validate(item) for item in items]
