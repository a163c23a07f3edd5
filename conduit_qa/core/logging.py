"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""Logging infrastructure with correlation ids and secret redaction.

Every record emitted under the ``conduit_qa`` namespace carries the current
correlation id and has credentials masked before it reaches a handler.
Structured context is passed through ``extra={"context_data": {...}}`` and is
rendered by both the rich console formatter and the JSON formatter.
"""

import json
import logging
import os
import re
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from re import Pattern
from typing import Any

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "conduit_qa"

_correlation_id: ContextVar[str] = ContextVar("conduit_qa_correlation_id", default="")


def generate_correlation_id() -> str:
    """Return a new correlation id of the form ``cqa-<uuid>``."""
    return f"cqa-{uuid.uuid4()}"


def get_correlation_id() -> str:
    """
    Get the current correlation ID, generating one on first use.
    """
    current = _correlation_id.get()
    if not current:
        current = generate_correlation_id()
        _correlation_id.set(current)
    return current


def set_correlation_id(value: str | None = None) -> str:
    """Set the correlation ID for the current context and return it."""
    value = value or generate_correlation_id()
    _correlation_id.set(value)
    return value


@contextmanager
def correlation_id(value: str | None = None) -> Iterator[str]:
    """
    Context manager for setting a correlation ID for the current context.

    Args:
    ----
        value: ID to use, or None to generate a new one

    Yields:
    ------
        str: The correlation ID active inside the block

    """
    token = _correlation_id.set(value or generate_correlation_id())
    try:
        yield _correlation_id.get()
    finally:
        _correlation_id.reset(token)


class LogRedactor:
    """
    Redacts sensitive information from log messages.
    """

    def __init__(self) -> None:
        self.patterns: dict[str, Pattern] = {
            "api_key": re.compile(
                r'(api[_-]?key|token)["\']?\s*[:=]\s*["\']?([^"\'&\s]{8,})', re.IGNORECASE
            ),
            "password": re.compile(
                r'(password|passwd|secret)["\']?\s*[:=]\s*["\']?([^"\'&\s]+)', re.IGNORECASE
            ),
            "authorization": re.compile(
                r'(Authorization)["\']?\s*[:=]\s*["\']?((?:Basic|Bearer|Token)\s+[^"\'&\s]+)',
                re.IGNORECASE,
            ),
        }

    def redact(self, message: str) -> str:
        """Mask secret values while keeping the key that introduced them."""
        if not isinstance(message, str):
            return message
        for pattern in self.patterns.values():
            message = pattern.sub(r"\1: [REDACTED]", message)
        return message


redactor = LogRedactor()


class CorrelationIdFilter(logging.Filter):
    """Adds the current correlation id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


class RedactionFilter(logging.Filter):
    """Masks credentials in the rendered message of every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redactor.redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """
    Formatter that outputs log records as JSON.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "correlation_id"):
            log_data["correlation_id"] = record.correlation_id

        context_data = getattr(record, "context_data", None)
        if context_data:
            log_data["context"] = context_data

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, default=str)


class RichContextFormatter(logging.Formatter):
    """
    Formatter for Rich console output with context data.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        context_data = getattr(record, "context_data", None)
        if context_data:
            context_str = " ".join(f"[{k}={v}]" for k, v in context_data.items())
            message = f"{message} {context_str}"

        if hasattr(record, "correlation_id"):
            message = f"{message} [correlation_id={record.correlation_id}]"

        return message


@contextmanager
def log_operation(
    logger: logging.Logger,
    operation_name: str,
    level: int = logging.INFO,
    context: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """
    Context manager for logging operations with timing and context tracking.

    Args:
    ----
        logger: The logger instance to use
        operation_name: Name of the operation being performed
        level: Log level to use
        context: Additional context data to include in the logs

    Yields:
    ------
        dict: The context dictionary, which the block may extend

    Raises:
    ------
        Exception: Re-raises any exception that occurs within the context

    """
    start_time = time.time()
    context = dict(context or {})
    context["operation_id"] = str(uuid.uuid4())[:8]

    logger.log(level, f"Starting {operation_name}", extra={"context_data": context})

    try:
        yield context
    except Exception as e:
        duration = time.time() - start_time
        error_context = {
            **context,
            "error_type": type(e).__name__,
            "error": str(e),
            "duration": f"{duration:.2f}s",
        }
        logger.error(
            f"Failed {operation_name} after {duration:.2f}s",
            extra={"context_data": error_context},
        )
        raise

    duration = time.time() - start_time
    logger.log(
        level,
        f"Completed {operation_name} in {duration:.2f}s",
        extra={"context_data": context},
    )


def _plain_format(include_timestamp: bool) -> str:
    if include_timestamp:
        return "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    return "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: int | str = logging.INFO,
    log_file: str | None = None,
    json_format: bool = False,
    include_timestamp: bool = True,
    use_rich: bool = True,
    debug: bool = False,
) -> logging.Logger:
    """
    Configure the ``conduit_qa`` logger hierarchy.

    Args:
    ----
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL or integer)
        log_file: Optional path to log file
        json_format: Whether to use JSON format for logs
        include_timestamp: Whether to include timestamps in logs
        use_rich: Whether to use Rich for console output
        debug: Whether to force debug mode

    Returns:
    -------
        The configured package logger

    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    if debug:
        level = logging.DEBUG

    handlers: list[logging.Handler] = []

    if use_rich and not json_format:
        console_handler: logging.Handler = RichHandler(
            rich_tracebacks=True, markup=False, show_time=include_timestamp
        )
        console_handler.setFormatter(RichContextFormatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        if json_format:
            console_handler.setFormatter(JSONFormatter())
        else:
            console_handler.setFormatter(logging.Formatter(_plain_format(include_timestamp)))
    handlers.append(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        if json_format:
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(_plain_format(include_timestamp)))
        handlers.append(file_handler)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.addFilter(CorrelationIdFilter())
        handler.addFilter(RedactionFilter())
        logger.addHandler(handler)

    logger.debug(f"Logging configured with level {logging.getLevelName(level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the ``conduit_qa`` namespace.

    Args:
    ----
        name: Dotted name, typically ``__name__``

    Returns:
    -------
        The logger instance

    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
