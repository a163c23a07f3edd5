"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Configuration management for CONDUIT-QA.

This module provides a central location for all configuration settings in CONDUIT-QA.
It handles environment variables, default values, and validation of configuration
parameters for logging, TestRail synchronization and the Conduit environments.
"""

import logging
import os
from enum import Enum
from typing import Any, ClassVar, Never

from pydantic import BaseModel, Field, field_validator

from conduit_qa.exceptions import ConfigurationError

logger = logging.getLogger("conduit_qa.config")

ENVIRONMENT_VARIABLE = "ENVIRONMENT"


class BaseConfig(BaseModel):
    """Base configuration class with common functionality."""

    ENV_PREFIX: ClassVar[str] = "CONDUIT_QA_"

    @classmethod
    def from_env(cls, **overrides) -> Never:
        """
        Create a configuration instance from environment variables.

        Args:
        ----
            **overrides: Key-value pairs that override environment variables

        Returns:
        -------
            An instance of the configuration class

        """
        raise NotImplementedError("Subclasses must implement from_env method")

    @classmethod
    def get_env_var(cls, key: str, default: Any = None) -> Any:
        """
        Get an environment variable with the class prefix.

        Args:
        ----
            key: Key name without prefix
            default: Default value if environment variable is not found

        Returns:
        -------
            The environment variable value or default

        """
        env_key = f"{cls.ENV_PREFIX}{key.upper()}"
        return os.environ.get(env_key, default)


class LoggingConfig(BaseConfig):
    """Configuration for logging settings."""

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    use_rich: bool = Field(
        default=True,
        description="Whether to use rich for logging formatting",
    )
    log_file: str | None = Field(
        default=None,
        description="Path to the log file (None for console-only logging)",
    )
    json_format: bool = Field(
        default=False,
        description="Whether to use JSON format for logs",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, value):
        """Validate that the log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        value = value.upper()
        if value not in valid_levels:
            logger.warning(f"Invalid log level '{value}', defaulting to INFO")
            return "INFO"
        return value

    @classmethod
    def from_env(cls, **overrides) -> "LoggingConfig":
        """Create a logging configuration from environment variables."""
        config = {
            "level": cls.get_env_var("LOG_LEVEL", "INFO"),
            "use_rich": cls.get_env_var("LOG_USE_RICH", "true").lower() == "true",
            "log_file": cls.get_env_var("LOG_FILE", None),
            "json_format": cls.get_env_var("LOG_JSON", "false").lower() == "true",
        }

        config.update(overrides)

        return cls(**config)

    def get_log_level_int(self) -> int:
        """Get the numeric logging level."""
        return getattr(logging, self.level)

    def configure_logging(self, debug: bool = False) -> None:
        """
        Configure logging based on the settings.

        Args:
        ----
            debug: Whether to force debug mode

        """
        from conduit_qa.core.logging import configure_logging as configure_contextual_logging

        configure_contextual_logging(
            level=self.get_log_level_int(),
            log_file=self.log_file,
            json_format=self.json_format,
            include_timestamp=True,
            use_rich=self.use_rich,
            debug=debug,
        )


class TestRailConfig(BaseConfig):
    """Configuration for the TestRail API and result synchronization."""

    __test__ = False

    base_url: str = Field(
        default="https://apptestrail",
        description="Base URL of the TestRail instance",
    )
    api_path: str = Field(
        default="/index.php?/api/v2",
        description="Path prefix of the TestRail API v2 endpoints",
    )
    username: str = Field(
        default="",
        description="TestRail user name for basic authentication",
    )
    password: str = Field(
        default="",
        description="TestRail password or API key for basic authentication",
        repr=False,
    )
    enabled: bool = Field(
        default=False,
        description="Whether results are reported to TestRail",
    )
    test_run_id: int | None = Field(
        default=None,
        description="Run that receives results",
    )
    project: str | None = Field(
        default=None,
        description="Project key used when creating runs (BSOM, RTIS)",
    )
    cases_filter: str | None = Field(
        default=None,
        description="Case filter condition used when creating runs (name or number)",
    )
    run_name: str | None = Field(
        default=None,
        description="Custom run name prefix",
    )
    environment: str = Field(
        default="QA",
        description="Environment name written to run names and result comments",
    )
    timeout: float = Field(
        default=90.0,
        description="API request timeout in seconds",
    )

    ENV_PREFIX: ClassVar[str] = "TESTRAIL_"

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value):
        """Validate base URL format."""
        if not value:
            raise ValueError("base_url must be provided")
        if not value.startswith(("http://", "https://")):
            value = f"https://{value}"
        return value.rstrip("/")

    @field_validator("test_run_id", mode="before")
    @classmethod
    def validate_test_run_id(cls, value):
        """Treat an empty run id as unset."""
        if value in ("", None):
            return None
        return value

    @classmethod
    def from_env(cls, **overrides) -> "TestRailConfig":
        """Create a TestRail configuration from environment variables."""
        config = {
            "base_url": cls.get_env_var("BASE_URL", "https://apptestrail"),
            "username": cls.get_env_var("USERNAME", ""),
            "password": cls.get_env_var("PASSWORD", ""),
            "enabled": cls.get_env_var("ENABLED", "") == "TRUE",
            "test_run_id": cls.get_env_var("TEST_RUN_ID"),
            "project": cls.get_env_var("PROJECT"),
            "cases_filter": cls.get_env_var("CASES_FILTER"),
            "run_name": cls.get_env_var("RUN_NAME"),
            "environment": os.environ.get(ENVIRONMENT_VARIABLE, "QA"),
            "timeout": float(cls.get_env_var("TIMEOUT", "90.0")),
        }

        config.update(overrides)

        return cls(**config)

    def has_credentials(self) -> bool:
        """Check whether both user name and password are configured."""
        return bool(self.username and self.password)


class EnvironmentName(str, Enum):
    """Deployment environments of the Conduit application."""

    QA = "QA"
    STAGE = "Stage"
    PROD = "Prod"


class Urls(BaseModel):
    """Conduit and admin URLs of a single environment."""

    conduit: str
    admin: str


class EnvironmentSettings(BaseModel):
    """Per-environment URLs and database server."""

    ui_urls: Urls
    api_urls: Urls
    database_server: str | None = None


ENVIRONMENT_SETTINGS: dict[EnvironmentName, EnvironmentSettings] = {
    EnvironmentName.QA: EnvironmentSettings(
        ui_urls=Urls(
            conduit="https://conduit.bondaracademy.com",
            admin="https://admin.bondaracademy.com",
        ),
        api_urls=Urls(
            conduit="https://conduit-api.bondaracademy.com",
            admin="https://admin-api.bondaracademy.com/api",
        ),
        database_server="qa-conduit.local",
    ),
    EnvironmentName.STAGE: EnvironmentSettings(
        ui_urls=Urls(
            conduit="https://conduit.stage.bondaracademy.com",
            admin="https://admin.stage.bondaracademy.com",
        ),
        api_urls=Urls(
            conduit="https://conduit-api.stage.bondaracademy.com/api",
            admin="https://cadmin-api.stage.bondaracademy.com/api",
        ),
        database_server="stage-conduit.local",
    ),
    EnvironmentName.PROD: EnvironmentSettings(
        ui_urls=Urls(
            conduit="https://conduit.prod.bondaracademy.com",
            admin="https://admin.prod.bondaracademy.com",
        ),
        api_urls=Urls(
            conduit="https://conduit-api.prod.bondaracademy.com/api",
            admin="https://admin-api.prod.bondaracademy.com/api",
        ),
    ),
}


def resolve_environment(value: str | None) -> EnvironmentName:
    """
    Map an environment name to an EnvironmentName.

    Raises
    ------
        ConfigurationError: If the name is not QA, Stage or Prod

    """
    try:
        return EnvironmentName(value)
    except ValueError:
        raise ConfigurationError(
            "Environment is not set. Have to be QA | Stage | Prod."
        ) from None


class SettingsConfig(BaseConfig):
    """Conduit environment selection and the shared test user password."""

    environment: EnvironmentName = Field(
        default=EnvironmentName.QA,
        description="Environment the tests run against",
    )
    password: str = Field(
        default="",
        description="Password shared by the seeded test users",
        repr=False,
    )

    ENV_PREFIX: ClassVar[str] = "CONDUIT_"

    @classmethod
    def from_env(cls, **overrides) -> "SettingsConfig":
        """Create environment settings from environment variables."""
        config = {
            "environment": resolve_environment(os.environ.get(ENVIRONMENT_VARIABLE, "QA")),
            "password": cls.get_env_var("USER_PASSWORD", ""),
        }

        config.update(overrides)

        return cls(**config)

    @property
    def environment_settings(self) -> EnvironmentSettings:
        """URLs and database server of the selected environment."""
        return ENVIRONMENT_SETTINGS[self.environment]

    @property
    def conduit_api_url(self) -> str:
        return self.environment_settings.api_urls.conduit

    @property
    def conduit_ui_url(self) -> str:
        return self.environment_settings.ui_urls.conduit


class AppConfig(BaseConfig):
    """Main application configuration that aggregates all other configurations."""

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    testrail: TestRailConfig = Field(
        default_factory=TestRailConfig,
        description="TestRail configuration",
    )
    settings: SettingsConfig = Field(
        default_factory=SettingsConfig,
        description="Conduit environment settings",
    )
    debug: bool = Field(
        default=False,
        description="Debug mode flag",
    )

    _NESTED: ClassVar[dict[str, type[BaseConfig]]] = {
        "logging": LoggingConfig,
        "testrail": TestRailConfig,
        "settings": SettingsConfig,
    }

    @classmethod
    def from_env(cls, **overrides) -> "AppConfig":
        """
        Create an application configuration from environment variables.

        A nested configuration passed in ``overrides`` is not read from the
        environment, so its variables are neither needed nor validated.
        """
        config: dict[str, Any] = {
            "debug": cls.get_env_var("DEBUG", "false").lower() == "true",
        }

        for key, nested in cls._NESTED.items():
            value = overrides.get(key)
            if value is None:
                config[key] = nested.from_env()
            elif isinstance(value, dict):
                config[key] = nested(**value)
            else:
                config[key] = value

        for key, value in overrides.items():
            if key not in cls._NESTED:
                config[key] = value

        return cls(**config)

    def configure_logging(self) -> None:
        """Configure logging based on the settings."""
        self.logging.configure_logging(debug=self.debug)


_app_config = None


def get_app_config() -> AppConfig:
    """
    Get the global application configuration.

    Returns
    -------
        The application configuration instance

    """
    global _app_config
    if _app_config is None:
        _app_config = AppConfig.from_env()
    return _app_config


def init_app_config(config: AppConfig = None, **kwargs) -> AppConfig:
    """
    Initialize the global application configuration.

    Args:
    ----
        config: An existing AppConfig instance
        **kwargs: Key-value pairs for creating a new AppConfig

    Returns:
    -------
        The application configuration instance

    """
    global _app_config
    _app_config = config if config is not None else AppConfig.from_env(**kwargs)
    return _app_config
