"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Helpers for TestRail synchronization.

Covers case id extraction from titles, formatting of durations, errors and run
dates, and the lookups that turn project keys, filter conditions and test
statuses into TestRail ids. Lookups return a Resolution instead of raising, so
callers decide which failures are configuration problems.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from math import floor
from typing import Any, Generic, TypeVar

from conduit_qa.exceptions import ConfigurationError, UnexpectedError, UnrecognizedStatusError
from conduit_qa.testrail_models import (
    REGRESSION_TYPE_ID,
    AutomationType,
    CaseFilterCondition,
    CaseStatusId,
    Project,
    SuiteId,
    TestExecution,
    TestRailCase,
)

T = TypeVar("T")

CASE_ID_PATTERN = re.compile(r"(?<=@C)\d+")
ANSI_ESCAPE_PATTERN = re.compile(r"\x1b\[[0-9;]*m")
SEPARATOR_PATTERN = re.compile(r"={5,}")

REPORTER_LINE = "Automated pytest run"


class ResolutionKind(str, Enum):
    OK = "ok"
    CONFIGURATION_ERROR = "configuration_error"
    UNEXPECTED_ERROR = "unexpected_error"


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """Outcome of a lookup: a value, or the reason there is none."""

    kind: ResolutionKind
    value: T | None = None
    message: str = ""

    @classmethod
    def ok(cls, value: T) -> "Resolution[T]":
        return cls(ResolutionKind.OK, value)

    @classmethod
    def configuration_error(cls, message: str) -> "Resolution[T]":
        return cls(ResolutionKind.CONFIGURATION_ERROR, message=message)

    @classmethod
    def unexpected_error(cls, message: str) -> "Resolution[T]":
        return cls(ResolutionKind.UNEXPECTED_ERROR, message=message)

    @property
    def is_ok(self) -> bool:
        return self.kind == ResolutionKind.OK

    def unwrap(self, unexpected: type[UnexpectedError] = UnexpectedError) -> T:
        """
        Return the value or raise the matching exception.

        Raises
        ------
            ConfigurationError: For configuration errors
            UnexpectedError: For unexpected errors (or the given subclass)

        """
        if self.kind == ResolutionKind.OK:
            return self.value
        if self.kind == ResolutionKind.CONFIGURATION_ERROR:
            raise ConfigurationError(self.message)
        raise unexpected(self.message)


def get_case_ids_for_title(title: str) -> list[int]:
    """
    Extract TestRail case ids from a test title.

    Only digits directly preceded by ``@C`` count, so ``"AC01 login"`` has none.

    >>> get_case_ids_for_title("Test for @C123 and @C456")
    [123, 456]
    """
    return [int(match) for match in CASE_ID_PATTERN.findall(title)]


def format_duration(duration_ms: float) -> str:
    """
    Format milliseconds as ``"Xm Ys"``, or ``"Ys"`` below one minute.

    Seconds are rounded half up, so 59500 ms is ``"1m 0s"``.
    """
    total_seconds = floor(duration_ms / 1000 + 0.5)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}m {seconds}s" if minutes > 0 else f"{seconds}s"


def format_test_errors(errors: list[str] | None) -> str:
    """Strip terminal colour codes and ``=====`` separators from stack traces."""
    if not errors:
        return "\n"
    result = ""
    for stack in errors:
        if stack:
            cleaned = SEPARATOR_PATTERN.sub("", ANSI_ESCAPE_PATTERN.sub("", stack))
            result += f"{cleaned}\n"
    return f"\n{result}"


def format_test_run_date(now: datetime | None = None) -> str:
    """Current UTC time as ``DD-MM-YYYY HH:MM:SS``."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%d-%m-%Y %H:%M:%S")


def _valid_projects() -> str:
    return ", ".join(project.name for project in Project)


def _valid_filters() -> str:
    return ", ".join(f"{condition.value} = {condition.name}" for condition in CaseFilterCondition)


def resolve_project_key(project: str | None) -> Resolution[str]:
    """Validate a project key such as ``BSOM``."""
    if not project or project not in Project.__members__:
        return Resolution.configuration_error(
            "Invalid or missing project. Provide a valid project or set the "
            f"TESTRAIL_PROJECT environment variable to one of: {_valid_projects()}"
        )
    return Resolution.ok(project)


def resolve_case_filter(value: Any) -> Resolution[CaseFilterCondition]:
    """
    Validate a case filter given as enum, number, numeric string or name.

    ``0`` (EmptyRun) is a valid filter.
    """
    condition = None
    if isinstance(value, CaseFilterCondition):
        condition = value
    elif isinstance(value, int) and not isinstance(value, bool):
        condition = _filter_by_number(value)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.lstrip("-").isdigit():
            condition = _filter_by_number(int(text))
        else:
            condition = CaseFilterCondition.__members__.get(text)

    if condition is None:
        return Resolution.configuration_error(
            "Invalid or missing cases filter. Provide a valid cases filter or set "
            f"TESTRAIL_CASES_FILTER environment variable to one of: {_valid_filters()}"
        )
    return Resolution.ok(condition)


def _filter_by_number(number: int) -> CaseFilterCondition | None:
    try:
        return CaseFilterCondition(number)
    except ValueError:
        return None


def get_project_id(project_key: str) -> Resolution[int]:
    if project_key in Project.__members__:
        return Resolution.ok(int(Project[project_key]))
    return Resolution.unexpected_error(f"No ProjectId mapped for project key: {project_key}")


def get_suite_id(project_key: str) -> Resolution[int]:
    if project_key in SuiteId.__members__:
        return Resolution.ok(int(SuiteId[project_key]))
    return Resolution.unexpected_error(f"No SuiteId mapped for project key: {project_key}")


_FILTER_PREDICATES: dict[CaseFilterCondition, Callable[[TestRailCase], bool]] = {
    CaseFilterCondition.IsAutomated: lambda case: case.custom_is_automated == 1,
    CaseFilterCondition.IsProductionTest: lambda case: bool(case.custom_is_production_test),
    CaseFilterCondition.IsMobileTest: lambda case: bool(case.custom_is_mobile_test),
    CaseFilterCondition.IsRegressionType: lambda case: case.type_id == REGRESSION_TYPE_ID,
    CaseFilterCondition.IsAPITest: lambda case: case.custom_automation_type == AutomationType.API,
    CaseFilterCondition.IsUITest: lambda case: case.custom_automation_type == AutomationType.UI,
}


def get_filter_predicate(
    condition: CaseFilterCondition,
) -> Resolution[Callable[[TestRailCase], bool]]:
    """Predicate selecting the cases of a filter condition (EmptyRun has none)."""
    predicate = _FILTER_PREDICATES.get(condition)
    if predicate is None:
        return Resolution.unexpected_error(f"Unsupported filter condition: {condition!r}")
    return Resolution.ok(predicate)


_STATUS_MAP: dict[str, CaseStatusId] = {
    "skipped": CaseStatusId.Skipped,
    "passed": CaseStatusId.AutomationPassed,
    "failed": CaseStatusId.AutomationFailed,
    "timedOut": CaseStatusId.AutomationFailed,
    "interrupted": CaseStatusId.AutomationFailed,
}


def map_test_status(status: str) -> Resolution[CaseStatusId]:
    """Map a test outcome to the TestRail status it is reported as."""
    if status in _STATUS_MAP:
        return Resolution.ok(_STATUS_MAP[status])
    return Resolution.unexpected_error(f"No such status: {status}")


def get_test_status(execution: TestExecution) -> CaseStatusId:
    """
    Raises
    ------
        UnrecognizedStatusError: If the status has no TestRail counterpart

    """
    return map_test_status(execution.status).unwrap(UnrecognizedStatusError)


def build_result_comment(execution: TestExecution, case_id: int, environment: str) -> str:
    """Compose the result comment posted to TestRail for one case."""
    spec_file = execution.title_path[0] if execution.title_path else ""
    lines = [
        f"Test Case: C{case_id}",
        f"Title: {execution.title}",
        f"Spec file: {spec_file}",
        f"Status: {execution.status}",
        f"Attempt: {execution.retry + 1}",
        f"Project: {execution.project_name}",
        f"Environment: {environment}",
        f"Most recent URL: {execution.page_url}",
        f"Duration: {format_duration(execution.duration_ms)}",
        REPORTER_LINE,
        format_test_errors(execution.errors),
    ]
    return "\n".join(line for line in lines if line)
