"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Exception hierarchy for CONDUIT-QA.

Configuration errors are raised before any network call is made. Status
mismatches subclass ``AssertionError`` so test runners report them as
failures rather than errors.
"""


class ConduitQAError(Exception):
    """Base class for all CONDUIT-QA errors."""


class ConfigurationError(ConduitQAError):
    """Missing or invalid configuration (project, filter, run id, credentials)."""


class RequestBuildError(ConduitQAError):
    """A request was configured in a way that cannot be sent."""


class RequestAlreadySentError(RequestBuildError):
    """A request builder was reused after it had been executed."""


class UnexpectedStatusError(ConduitQAError, AssertionError):
    """The actual HTTP status code differs from the expected one."""

    def __init__(self, message: str, expected: int, actual: int, url: str = ""):
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.url = url


class UnexpectedError(ConduitQAError):
    """Base class for failures that no caller anticipates."""


class UnexpectedRemoteError(UnexpectedError):
    """The remote service failed in a way that does not match a known signal."""

    def __init__(self, message: str, body=None):
        super().__init__(message)
        self.body = body


class UnrecognizedStatusError(UnexpectedError):
    """A test finished with a status that has no TestRail counterpart."""
