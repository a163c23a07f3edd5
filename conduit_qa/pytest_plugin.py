"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
pytest plugin reporting results to TestRail.

Enable it with ``--testrail`` or ``TESTRAIL_ENABLED=TRUE``. The controller
process creates a run when none is configured and exports its id through
``TESTRAIL_TEST_RUN_ID`` so xdist workers report into the same run. Case ids
come from ``@C<digits>`` tags in the test title, which is the argument of the
``testrail_title`` marker or the test name (parametrize ids included).
"""

import logging
import os

import pytest

from conduit_qa.core.config import TestRailConfig
from conduit_qa.exceptions import ConfigurationError
from conduit_qa.testrail_models import TestExecution
from conduit_qa.testrail_sync import TestRailSync

logger = logging.getLogger("conduit_qa.pytest_plugin")

PLUGIN_NAME = "conduit_qa_testrail_reporter"
RUN_ID_VARIABLE = "TESTRAIL_TEST_RUN_ID"
TIMEOUT_MARKER = "Timeout"


def pytest_addoption(parser):
    group = parser.getgroup("testrail", "TestRail result reporting")
    group.addoption(
        "--testrail",
        action="store_true",
        default=False,
        help="Report results to TestRail (also enabled by TESTRAIL_ENABLED=TRUE)",
    )
    group.addoption(
        "--testrail-run-id",
        type=int,
        default=None,
        help="TestRail run receiving the results (default: TESTRAIL_TEST_RUN_ID)",
    )
    group.addoption(
        "--testrail-skip-passed",
        action="store_true",
        default=False,
        help="Skip tests whose cases already passed in the run",
    )
    group.addoption(
        "--testrail-project-name",
        default="",
        help="Project name written into result comments",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "testrail_title(title): title used to find @C<id> TestRail case tags"
    )

    testrail_config = TestRailConfig.from_env()
    if not (config.getoption("--testrail") or testrail_config.enabled):
        return

    run_id = config.getoption("--testrail-run-id")
    if run_id:
        testrail_config = testrail_config.model_copy(update={"test_run_id": run_id})

    reporter = TestRailReporter(
        TestRailSync(testrail_config),
        skip_passed=config.getoption("--testrail-skip-passed"),
        project_name=config.getoption("--testrail-project-name"),
    )
    config.pluginmanager.register(reporter, PLUGIN_NAME)


def get_test_title(item) -> str:
    """Title of a test: the testrail_title marker argument or the test name."""
    marker = item.get_closest_marker("testrail_title")
    if marker is not None and marker.args:
        return str(marker.args[0])
    return item.name


def get_test_status(reports) -> str:
    """Overall status of a test from its setup, call and teardown reports."""
    failed = [report for report in reports if report.failed]
    if failed:
        if any(TIMEOUT_MARKER in report.longreprtext for report in failed):
            return "timedOut"
        return "failed"
    if any(report.skipped for report in reports):
        return "skipped"
    return "passed"


def build_execution(item, reports, project_name: str = "") -> TestExecution:
    """Describe a finished test for TestRail."""
    properties = dict(item.user_properties)
    return TestExecution(
        title=get_test_title(item),
        title_path=item.nodeid.split("::"),
        status=get_test_status(reports),
        retry=max(getattr(item, "execution_count", 1) - 1, 0),
        project_name=project_name,
        duration_ms=sum(report.duration for report in reports) * 1000,
        errors=[report.longreprtext for report in reports if report.failed],
        page_url=str(properties.get("page_url", "")),
    )


class TestRailReporter:
    """Registered on the plugin manager when TestRail reporting is enabled."""

    __test__ = False

    def __init__(self, sync: TestRailSync, skip_passed: bool = False, project_name: str = ""):
        self.sync = sync
        self.skip_passed = skip_passed
        self.project_name = project_name
        self._reports: dict[str, list] = {}
        self._skipped_as_passed: set[str] = set()

    @pytest.hookimpl(tryfirst=True)
    def pytest_sessionstart(self, session):
        if hasattr(session.config, "workerinput"):
            return
        if self.sync.config.test_run_id:
            os.environ[RUN_ID_VARIABLE] = str(self.sync.config.test_run_id)
            return
        try:
            run_id = self.sync.add_test_run()
        except ConfigurationError as e:
            raise pytest.UsageError(str(e)) from e
        self.sync.config = self.sync.config.model_copy(update={"test_run_id": run_id})
        os.environ[RUN_ID_VARIABLE] = str(run_id)
        logger.info(f"Created TestRail run {run_id}")

    def pytest_runtest_setup(self, item):
        if not self.skip_passed:
            return
        title = get_test_title(item)
        try:
            should_skip = self.sync.should_skip_test_execution(title)
        except Exception as e:
            self._warn(item, f"Could not check TestRail results for '{title}': {e}")
            return
        if should_skip:
            self._skipped_as_passed.add(item.nodeid)
            pytest.skip("Already passed in TestRail run")

    @pytest.hookimpl(hookwrapper=True)
    def pytest_runtest_makereport(self, item, call):
        outcome = yield
        report = outcome.get_result()
        reports = self._reports.setdefault(item.nodeid, [])
        reports.append(report)
        if report.when != "teardown":
            return

        del self._reports[item.nodeid]
        if item.nodeid in self._skipped_as_passed:
            self._skipped_as_passed.discard(item.nodeid)
            return

        execution = build_execution(item, reports, self.project_name)
        try:
            self.sync.add_test_result(execution)
        except Exception as e:
            self._warn(item, f"Could not report '{execution.title}' to TestRail: {e}")

    @staticmethod
    def _warn(item, message: str) -> None:
        logger.error(message)
        item.warn(pytest.PytestWarning(message))
