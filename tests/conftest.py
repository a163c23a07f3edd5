"""
Test configuration and fixtures for the conduit_qa project.

This file is the root pytest configuration file that sets up pytest
markers and imports fixtures from the fixtures modules to make them
available to all tests.
"""

import logging

import pytest

from tests.fixtures.api_clients import (
    conduit_client,
    settings_config,
    testrail_config,
    testrail_service,
    testrail_sync,
)
from tests.fixtures.base import clean_env, mock_response, testrail_env


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark a test as a unit test")
    config.addinivalue_line("markers", "integration: mark a test as an integration test")
    config.addinivalue_line("markers", "api: mark a test that tests API functionality")
    config.addinivalue_line("markers", "cli: mark a test that tests CLI functionality")


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo logging configuration done by a test so caplog keeps working."""
    logger = logging.getLogger("conduit_qa")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate
