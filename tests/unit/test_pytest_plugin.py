"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Unit tests for the TestRail pytest plugin.

Hooks are called directly with mocked items, reports and a mocked
TestRailSync, so no TestRail traffic is involved.
"""

import os
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from conduit_qa.core.config import TestRailConfig
from conduit_qa.exceptions import ConfigurationError
from conduit_qa.pytest_plugin import (
    PLUGIN_NAME,
    RUN_ID_VARIABLE,
    TestRailReporter,
    build_execution,
    get_test_status,
    get_test_title,
    pytest_configure,
)
from conduit_qa.testrail_sync import TestRailSync


def make_report(when="call", outcome="passed", duration=0.5, longreprtext=""):
    return SimpleNamespace(
        when=when,
        failed=outcome == "failed",
        skipped=outcome == "skipped",
        passed=outcome == "passed",
        duration=duration,
        longreprtext=longreprtext,
    )


def make_item(name="test_login[UK @C11]", title=None, nodeid=None, user_properties=()):
    item = MagicMock()
    item.name = name
    item.nodeid = nodeid or f"tests/api/test_login.py::{name}"
    item.user_properties = list(user_properties)
    if title is None:
        item.get_closest_marker.return_value = None
    else:
        item.get_closest_marker.return_value = SimpleNamespace(args=(title,))
    del item.execution_count
    return item


def run_makereport(reporter, item, report):
    hook = reporter.pytest_runtest_makereport(item, MagicMock())
    next(hook)
    outcome = MagicMock()
    outcome.get_result.return_value = report
    with pytest.raises(StopIteration):
        hook.send(outcome)


@pytest.fixture
def sync():
    sync = MagicMock(spec=TestRailSync)
    sync.config = TestRailConfig(project="BSOM", cases_filter="1")
    return sync


@pytest.mark.unit
class TestTitleAndStatus:
    def test_title_from_marker(self):
        item = make_item(title="Create article @C2222")
        assert get_test_title(item) == "Create article @C2222"
        item.get_closest_marker.assert_called_with("testrail_title")

    def test_title_falls_back_to_name(self):
        assert get_test_title(make_item()) == "test_login[UK @C11]"

    @pytest.mark.parametrize(
        "outcomes, expected",
        [
            (["passed", "passed", "passed"], "passed"),
            (["passed", "failed", "passed"], "failed"),
            (["skipped", "passed"], "skipped"),
            (["failed", "skipped"], "failed"),
        ],
    )
    def test_status(self, outcomes, expected):
        reports = [make_report(outcome=outcome) for outcome in outcomes]
        assert get_test_status(reports) == expected

    def test_timeout_status(self):
        reports = [make_report(outcome="failed", longreprtext="E   Failed: Timeout >30.0s")]
        assert get_test_status(reports) == "timedOut"


@pytest.mark.unit
class TestBuildExecution:
    def test_execution_fields(self):
        item = make_item(user_properties=[("page_url", "https://conduit.example.com/login")])
        reports = [
            make_report("setup", duration=0.25),
            make_report("call", "failed", duration=1.0, longreprtext="AssertionError: 401"),
            make_report("teardown", duration=0.25),
        ]

        execution = build_execution(item, reports, "api")

        assert execution.title == "test_login[UK @C11]"
        assert execution.title_path == ["tests/api/test_login.py", "test_login[UK @C11]"]
        assert execution.status == "failed"
        assert execution.retry == 0
        assert execution.project_name == "api"
        assert execution.duration_ms == 1500
        assert execution.errors == ["AssertionError: 401"]
        assert execution.page_url == "https://conduit.example.com/login"

    def test_rerun_count_becomes_retry(self):
        item = make_item()
        item.execution_count = 3
        execution = build_execution(item, [make_report()])
        assert execution.retry == 2


@pytest.mark.unit
class TestPytestConfigure:
    def make_config(self, **options):
        values = {
            "--testrail": False,
            "--testrail-run-id": None,
            "--testrail-skip-passed": False,
            "--testrail-project-name": "",
            **options,
        }
        config = MagicMock()
        config.getoption.side_effect = values.__getitem__
        return config

    def test_disabled_by_default(self, clean_env):
        config = self.make_config()

        pytest_configure(config)

        config.addinivalue_line.assert_called_once()
        config.pluginmanager.register.assert_not_called()

    def test_enabled_by_option(self, clean_env):
        config = self.make_config(
            **{"--testrail": True, "--testrail-run-id": 7, "--testrail-skip-passed": True}
        )

        pytest_configure(config)

        reporter, name = config.pluginmanager.register.call_args.args
        assert name == PLUGIN_NAME
        assert isinstance(reporter, TestRailReporter)
        assert reporter.skip_passed is True
        assert reporter.sync.config.test_run_id == 7

    def test_enabled_by_environment(self, testrail_env):
        config = self.make_config()

        pytest_configure(config)

        reporter, _ = config.pluginmanager.register.call_args.args
        assert reporter.sync.config.username == "qa-bot"


@pytest.mark.unit
class TestSessionStart:
    def test_creates_run_and_exports_id(self, sync):
        sync.add_test_run.return_value = 501
        reporter = TestRailReporter(sync)

        with patch.dict(os.environ, {}, clear=False):
            reporter.pytest_sessionstart(SimpleNamespace(config=SimpleNamespace()))
            assert os.environ[RUN_ID_VARIABLE] == "501"

        assert reporter.sync.config.test_run_id == 501

    def test_existing_run_is_kept(self, sync):
        sync.config = TestRailConfig(test_run_id=42)
        reporter = TestRailReporter(sync)

        with patch.dict(os.environ, {}, clear=False):
            reporter.pytest_sessionstart(SimpleNamespace(config=SimpleNamespace()))
            assert os.environ[RUN_ID_VARIABLE] == "42"

        sync.add_test_run.assert_not_called()

    def test_workers_do_not_create_runs(self, sync):
        reporter = TestRailReporter(sync)

        reporter.pytest_sessionstart(SimpleNamespace(config=SimpleNamespace(workerinput={})))

        sync.add_test_run.assert_not_called()

    def test_configuration_error_is_usage_error(self, sync):
        sync.add_test_run.side_effect = ConfigurationError("Project is not set")
        reporter = TestRailReporter(sync)

        with pytest.raises(pytest.UsageError, match="Project is not set"):
            reporter.pytest_sessionstart(SimpleNamespace(config=SimpleNamespace()))


@pytest.mark.unit
class TestReporting:
    def test_reports_once_after_teardown(self, sync):
        reporter = TestRailReporter(sync, project_name="api")
        item = make_item()

        run_makereport(reporter, item, make_report("setup"))
        run_makereport(reporter, item, make_report("call"))
        sync.add_test_result.assert_not_called()
        run_makereport(reporter, item, make_report("teardown"))

        execution = sync.add_test_result.call_args.args[0]
        assert execution.title == "test_login[UK @C11]"
        assert execution.status == "passed"
        assert execution.project_name == "api"
        assert reporter._reports == {}

    def test_reporting_failure_becomes_warning(self, sync):
        sync.add_test_result.side_effect = RuntimeError("TestRail down")
        reporter = TestRailReporter(sync)
        item = make_item()

        run_makereport(reporter, item, make_report("teardown"))

        warning = item.warn.call_args.args[0]
        assert isinstance(warning, pytest.PytestWarning)
        assert "TestRail down" in str(warning)

    def test_skip_passed_disabled(self, sync):
        TestRailReporter(sync).pytest_runtest_setup(make_item())
        sync.should_skip_test_execution.assert_not_called()

    def test_passed_test_is_skipped_and_not_reported(self, sync):
        sync.should_skip_test_execution.return_value = True
        reporter = TestRailReporter(sync, skip_passed=True)
        item = make_item()

        with pytest.raises(pytest.skip.Exception):
            reporter.pytest_runtest_setup(item)
        run_makereport(reporter, item, make_report("setup", "skipped"))
        run_makereport(reporter, item, make_report("teardown"))

        sync.should_skip_test_execution.assert_called_once_with("test_login[UK @C11]")
        sync.add_test_result.assert_not_called()

    def test_skip_check_failure_runs_test(self, sync):
        sync.should_skip_test_execution.side_effect = ConfigurationError("no run")
        reporter = TestRailReporter(sync, skip_passed=True)
        item = make_item()

        reporter.pytest_runtest_setup(item)

        item.warn.assert_called_once()
