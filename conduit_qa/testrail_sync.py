"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Synchronization of automated test results with TestRail.

TestRailSync creates runs for a project, adds cases that are missing from a
run before reporting on them, posts results, and decides whether a test can be
skipped because its cases already passed in the run.
"""

import logging
import threading
import weakref
from http import HTTPStatus

from pydantic import ValidationError

from conduit_qa.core.config import TestRailConfig
from conduit_qa.core.logging import log_operation
from conduit_qa.exceptions import ConfigurationError, UnexpectedRemoteError
from conduit_qa.testrail_client import TestRailService
from conduit_qa.testrail_models import (
    AddResultForCaseRequest,
    AddRunRequest,
    CaseFilterCondition,
    CaseStatusId,
    TestExecution,
    TestRailErrorResponse,
    TestRailResult,
    UpdateRunRequest,
)
from conduit_qa.testrail_utils import (
    build_result_comment,
    format_test_run_date,
    get_case_ids_for_title,
    get_filter_predicate,
    get_project_id,
    get_suite_id,
    get_test_status,
    resolve_case_filter,
    resolve_project_key,
)

logger = logging.getLogger("conduit_qa.testrail_sync")

NO_ACTIVE_TEST = "No (active) test found for the run/case combination."

# entries disappear once no caller holds the lock
_run_locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
_run_locks_guard = threading.Lock()


def _lock_for_run(run_id: int) -> threading.Lock:
    with _run_locks_guard:
        return _run_locks.setdefault(run_id, threading.Lock())


class TestRailSync:
    """Reports test executions to TestRail."""

    __test__ = False

    def __init__(self, config: TestRailConfig, service: TestRailService | None = None):
        self.config = config
        self._service = service

    @property
    def service(self) -> TestRailService:
        """The TestRail service, created from the configuration on first use."""
        if self._service is None:
            self._service = TestRailService.from_config(self.config)
        return self._service

    def resolve_test_run_id(self, run_id: int | None = None) -> int:
        """
        Return the explicit run id, else the configured one.

        Raises
        ------
            ConfigurationError: If neither is set

        """
        test_run_id = run_id or self.config.test_run_id
        if not test_run_id:
            raise ConfigurationError("The environment variable TESTRAIL_TEST_RUN_ID is required.")
        return int(test_run_id)

    def build_run_name(self, project_key: str, date: str) -> str:
        prefix = self.config.run_name or (
            f"{project_key} {self.config.environment} Automated Regression Pack"
        )
        return f"{prefix}  {date}"

    def get_filtered_case_ids(
        self, project_id: int, suite_id: int, condition: CaseFilterCondition
    ) -> list[int]:
        """Ids of the suite cases matching the condition, in fetch order."""
        if condition == CaseFilterCondition.EmptyRun:
            return []
        predicate = get_filter_predicate(condition).unwrap()
        cases = self.service.get_cases_for_suite(project_id, suite_id)
        return [case.id for case in cases if predicate(case)]

    def add_test_run(
        self,
        project: str | None = None,
        case_filter_condition: CaseFilterCondition | int | str | None = None,
    ) -> int:
        """
        Create a run for a project and return its id.

        Args:
        ----
            project: Project key, defaults to ``config.project``
            case_filter_condition: Which cases to include, defaults to
                ``config.cases_filter``

        Returns:
        -------
            The id of the new run

        Raises:
        ------
            ConfigurationError: If the project or the filter is missing or invalid

        """
        project_key = resolve_project_key(project or self.config.project).unwrap()
        raw_condition = (
            case_filter_condition
            if case_filter_condition is not None
            else self.config.cases_filter
        )
        condition = resolve_case_filter(raw_condition).unwrap()

        project_id = get_project_id(project_key).unwrap()
        suite_id = get_suite_id(project_key).unwrap()

        with log_operation(
            logger,
            "creating TestRail run",
            context={"project": project_key, "filter": condition.name},
        ) as context:
            case_ids = self.get_filtered_case_ids(project_id, suite_id, condition)
            date = format_test_run_date()
            request = AddRunRequest(
                suite_id=suite_id,
                name=self.build_run_name(project_key, date),
                description=f"Automated pytest run. Test run created {date} (UTC)",
                include_all=False,
                case_ids=case_ids,
            )
            run = self.service.add_run(project_id, request)
            context["run_id"] = run.id
            context["case_count"] = len(case_ids)

        return run.id

    def should_case_be_added_to_run(self, run_id: int, case_id: int) -> bool:
        """
        Check whether a case has no active test in the run yet.

        Raises
        ------
            UnexpectedRemoteError: If TestRail answers with anything other than
                200 or the "no active test" 400

        """
        response, body = self.service.get_results_for_case(run_id, case_id, validate=False)
        if response.status_code == HTTPStatus.OK:
            return False
        if response.status_code == HTTPStatus.BAD_REQUEST and isinstance(body, dict):
            try:
                error = TestRailErrorResponse.model_validate(body).error
            except ValidationError:
                error = None
            if error == NO_ACTIVE_TEST:
                return True
        detail = body if body is not None else response.text
        raise UnexpectedRemoteError(
            f"Unexpected error while checking test case {case_id}: {detail}", body=body
        )

    def get_case_ids_for_run(self, run_id: int) -> list[int]:
        return [test.case_id for test in self.service.get_tests_for_run(run_id)]

    def ensure_case_added_to_run(self, run_id: int, case_id: int) -> None:
        """Add the case to the run unless it already has a test there."""
        with _lock_for_run(run_id):
            if not self.should_case_be_added_to_run(run_id, case_id):
                return
            case_ids = self.get_case_ids_for_run(run_id)
            case_ids.append(case_id)
            logger.info(f"Adding case C{case_id} to run {run_id}")
            self.service.update_run(
                run_id, UpdateRunRequest(include_all=False, case_ids=case_ids)
            )

    def submit_test_result(self, execution: TestExecution, run_id: int, case_id: int) -> None:
        request = AddResultForCaseRequest(
            status_id=get_test_status(execution),
            comment=build_result_comment(execution, case_id, self.config.environment),
        )
        self.service.add_result_for_case(run_id, case_id, request)
        logger.debug(
            f"Reported C{case_id} as {request.status_id.name} to run {run_id}",
            extra={"context_data": {"run_id": run_id, "case_id": case_id}},
        )

    def add_test_result(self, execution: TestExecution, run_id: int | None = None) -> None:
        """
        Report a finished test for every case id in its title.

        Cases are processed one after another; each is added to the run first
        when the run does not contain it yet.
        """
        test_run_id = self.resolve_test_run_id(run_id)
        case_ids = get_case_ids_for_title(execution.title)
        if not case_ids:
            logger.warning(f"No case IDs found in the test title: {execution.title}")
            return

        for case_id in case_ids:
            self.ensure_case_added_to_run(test_run_id, case_id)
            self.submit_test_result(execution, test_run_id, case_id)

    def is_test_passed(self, run_id: int, case_id: int) -> bool:
        """Whether the latest result of the case in the run is AutomationPassed."""
        response, body = self.service.get_results_for_case(run_id, case_id, validate=False)
        if not response.ok:
            logger.warning(f"Failed to fetch results for Case ID: {case_id}")
            return False

        results = self.service.parse_results(body)
        if not results:
            return False
        latest: TestRailResult = max(results, key=lambda result: result.id)
        return latest.status_id == CaseStatusId.AutomationPassed

    def should_skip_test_execution(self, title: str, run_id: int | None = None) -> bool:
        """True as soon as one case of the title already passed in the run."""
        test_run_id = self.resolve_test_run_id(run_id)
        case_ids = get_case_ids_for_title(title)
        if not case_ids:
            logger.warning(f"No case IDs found in the test title: {title}")
            return False

        for case_id in case_ids:
            if self.is_test_passed(test_run_id, case_id):
                logger.info(f"Skipping test for Case ID: {case_id}, already passed.")
                return True
        return False
