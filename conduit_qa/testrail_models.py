"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Data models for the TestRail API v2.

Records returned by TestRail carry many instance-specific custom fields, so the
record models accept and keep extra fields. Request payloads are serialized with
``exclude_none`` and only send what was set.
"""

from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class CaseFilterCondition(IntEnum):
    """Selects which suite cases go into a newly created run."""

    EmptyRun = 0
    IsAutomated = 1
    IsProductionTest = 2
    IsMobileTest = 3
    IsRegressionType = 4
    IsAPITest = 5
    IsUITest = 6


class Project(IntEnum):
    """TestRail project ids by project key."""

    BSOM = 1
    RTIS = 2


class SuiteId(IntEnum):
    """TestRail suite ids by project key."""

    BSOM = 1
    RTIS = 2


class CaseStatusId(IntEnum):
    """TestRail result status ids, including the custom automation statuses."""

    Passed = 1
    Blocked = 2
    Untested = 3
    Retest = 4
    Failed = 5
    Skipped = 6
    AutomationPassed = 7
    AutomationFailed = 8


REGRESSION_TYPE_ID = 9


class AutomationType(IntEnum):
    API = 0
    UI = 1


class TestRailRecord(BaseModel):
    """Base for records read from TestRail."""

    __test__ = False

    model_config = ConfigDict(extra="allow")


class TestRailCase(TestRailRecord):
    """A test case of a suite."""

    id: int
    title: str = ""
    section_id: int | None = None
    type_id: int | None = None
    priority_id: int | None = None
    suite_id: int | None = None
    refs: str | None = None
    custom_is_automated: int | None = None
    custom_automation_type: int | None = None
    custom_is_production_test: bool | None = None
    custom_is_mobile_test: bool | None = None


class TestRailTest(TestRailRecord):
    """A case instantiated inside a run."""

    id: int
    case_id: int
    status_id: int | None = None
    run_id: int | None = None
    title: str = ""
    type_id: int | None = None


class TestRailResult(TestRailRecord):
    """A result recorded against a test."""

    id: int
    test_id: int | None = None
    status_id: int | None = None
    created_on: int | None = None
    comment: str | None = None
    elapsed: str | None = None
    defects: str | None = None


class TestRailRun(TestRailRecord):
    """A test run."""

    id: int
    name: str = ""
    description: str | None = None
    suite_id: int | None = None
    project_id: int | None = None
    include_all: bool | None = None
    is_completed: bool | None = None
    url: str | None = None


class AddRunRequest(BaseModel):
    suite_id: int
    name: str
    description: str | None = None
    include_all: bool = False
    case_ids: list[int] = Field(default_factory=list)


class UpdateRunRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    include_all: bool | None = None
    case_ids: list[int] | None = None


class AddResultForCaseRequest(BaseModel):
    status_id: CaseStatusId
    comment: str = ""
    elapsed: str | None = None
    defects: str | None = None


class TestRailErrorResponse(BaseModel):
    """Error body returned by TestRail on 4xx responses."""

    __test__ = False

    error: str = ""


class TestExecution(BaseModel):
    """
    A finished test, described independently of the test framework.

    ``status`` is one of passed, failed, timedOut, interrupted or skipped.
    """

    __test__ = False

    title: str
    title_path: list[str] = Field(default_factory=list)
    status: str
    retry: int = 0
    project_name: str = ""
    duration_ms: float = 0
    errors: list[str] = Field(default_factory=list)
    page_url: str = ""
