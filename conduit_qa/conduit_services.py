"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Conduit API services.

Service calls send the request, log diagnostics and assert when the status
code is not the expected one, and parse the body into the requested model.
"""

import logging
from collections.abc import Iterable
from http import HTTPStatus
from typing import TypeVar

from pydantic import BaseModel

from conduit_qa.api_logger import validate_response
from conduit_qa.core.config import SettingsConfig
from conduit_qa.core.logging import log_operation
from conduit_qa.exceptions import UnexpectedStatusError
from conduit_qa.models import (
    ArticleRequest,
    ArticleResponse,
    ArticlesResponse,
    UserCredentials,
    UserRequest,
    UserResponse,
)
from conduit_qa.rest_client import RestClient, create_client

M = TypeVar("M", bound=BaseModel)

logger = logging.getLogger("conduit_qa.conduit_services")


class ArticleService:
    """Article endpoints of the Conduit API."""

    def __init__(self, client: RestClient):
        self.client = client

    def post_article(
        self,
        request: ArticleRequest,
        expected_status_code: int = HTTPStatus.CREATED,
        response_model: type[M] = ArticleResponse,
    ) -> M:
        response = self.client.with_url("/api/articles/").with_body(request).execute_post()
        validate_response(response, expected_status_code, request)
        return response_model.model_validate(response.json())

    def get_article(
        self,
        slug: str,
        expected_status_code: int = HTTPStatus.OK,
        response_model: type[M] = ArticleResponse,
    ) -> M:
        response = self.client.with_url(f"/api/articles/{slug}").execute_get()
        validate_response(response, expected_status_code)
        return response_model.model_validate(response.json())

    def delete_article(
        self, slug: str, expected_status_code: int = HTTPStatus.NO_CONTENT
    ) -> None:
        response = self.client.with_url(f"/api/articles/{slug}").execute_delete()
        validate_response(response, expected_status_code)

    def get_all_articles(
        self,
        expected_status_code: int = HTTPStatus.OK,
        response_model: type[M] = ArticlesResponse,
    ) -> M:
        response = self.client.with_url("/api/articles").execute_get()
        validate_response(response, expected_status_code)
        return response_model.model_validate(response.json())


def post_login(
    client: RestClient,
    request: UserRequest,
    expected_status_code: int = HTTPStatus.OK,
    response_model: type[M] = UserResponse,
) -> M:
    """Log a user in."""
    response = client.with_url("/api/users/login").with_body(request).execute_post()
    validate_response(response, expected_status_code, request)
    return response_model.model_validate(response.json())


def post_user(
    client: RestClient,
    request: UserRequest,
    expected_status_code: int = HTTPStatus.CREATED,
    should_log_error: bool = True,
    response_model: type[M] = UserResponse,
) -> M:
    """
    Register a user.

    Args:
    ----
        client: Client for the Conduit API
        request: Registration payload
        expected_status_code: Status the call must return
        should_log_error: Whether a mismatch is logged before the assertion
        response_model: Model the body is parsed into

    """
    response = client.with_url("/api/users").with_body(request).execute_post()
    validate_response(response, expected_status_code, request, log=should_log_error)
    return response_model.model_validate(response.json())


def get_access_token(client: RestClient, credentials: UserCredentials) -> str:
    request = UserRequest(
        user=UserCredentials(email=credentials.email, password=credentials.password)
    )
    return post_login(client, request).user.token


def get_conduit_client(
    settings: SettingsConfig, credentials: UserCredentials | None = None
) -> RestClient:
    """
    Create a client for the Conduit API of the selected environment.

    With credentials, the user is logged in and the client sends
    ``Authorization: Token <jwt>`` on every request.
    """
    client = create_client(settings.conduit_api_url)
    if credentials:
        token = get_access_token(client, credentials)
        client.with_authorization_header(f"Token {token}")
    return client


def ensure_users_exist(settings: SettingsConfig, users: Iterable[UserCredentials]) -> None:
    """Register every user that does not exist yet."""
    client = get_conduit_client(settings)
    try:
        for user in users:
            try:
                post_user(
                    client,
                    UserRequest(user=user),
                    HTTPStatus.CREATED,
                    should_log_error=False,
                )
                logger.info(f"Created user with email: {user.email}")
            except UnexpectedStatusError:
                logger.info(f"User with email: {user.email} is already created.")
    finally:
        client.close()


def delete_test_articles(
    settings: SettingsConfig, users: Iterable[UserCredentials], title_marker: str
) -> int:
    """
    Delete every article of the users whose title contains ``title_marker``.

    Returns
    -------
        Number of deleted articles

    """
    deleted = 0
    for user in users:
        with log_operation(
            logger, "deleting test articles", context={"user": user.email}
        ) as context, get_conduit_client(settings, user) as client:
            service = ArticleService(client)
            articles = service.get_all_articles().articles
            for article in articles:
                if title_marker in article.title and article.slug:
                    service.delete_article(article.slug)
                    deleted += 1
            context["deleted"] = deleted
    return deleted


__all__ = [
    "ArticleService",
    "delete_test_articles",
    "ensure_users_exist",
    "get_access_token",
    "get_conduit_client",
    "post_login",
    "post_user",
]
