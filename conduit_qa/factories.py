"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Test data factories for the Conduit API.

Articles created by the factories carry TITLE_MARKER in their title so the
teardown can find and delete them.
"""

import random
import uuid

from conduit_qa.core.config import SettingsConfig
from conduit_qa.models import (
    Article,
    ArticleData,
    ArticleRequest,
    ArticleResponse,
    Author,
    ErrorResponse,
    User,
    UserCredentials,
    UserRequest,
    UserResponse,
)

TITLE_MARKER = "Automation Test Article"
ALREADY_TAKEN = "has already been taken"


def default_users(settings: SettingsConfig) -> dict[str, UserCredentials]:
    """The seeded UK and US users, sharing the configured password."""
    return {
        "uk": UserCredentials(
            username="ukUser", email="ukUser@test.com", password=settings.password
        ),
        "us": UserCredentials(
            username="usUser", email="usUser@test.com", password=settings.password
        ),
    }


def _random_username() -> str:
    return f"user_{uuid.uuid4().hex[:10]}"


def create_user_request(
    credentials: UserCredentials | None = None, password: str = ""
) -> UserRequest:
    """Registration payload, random when no credentials are given."""
    if credentials is None:
        username = _random_username()
        credentials = UserCredentials(
            username=username, email=f"{username}@example.com", password=password
        )
    return UserRequest(user=credentials)


def create_user_response(credentials: UserCredentials) -> UserResponse:
    return UserResponse(user=User(email=credentials.email, username=credentials.username or ""))


def create_error_response() -> ErrorResponse:
    """Errors Conduit returns when both email and username are taken."""
    return ErrorResponse(errors={"email": [ALREADY_TAKEN], "username": [ALREADY_TAKEN]})


def create_article_request(title: str | None = None) -> ArticleRequest:
    return ArticleRequest(
        article=Article(
            title=title or f"{TITLE_MARKER} {random.randint(0, 1000000)}",
            description="Test description",
            body="Test body",
            tag_list=["Test tag"],
        )
    )


def create_article_response(
    request: ArticleRequest, credentials: UserCredentials
) -> ArticleResponse:
    """The article Conduit is expected to echo back for ``request``."""
    article = request.article
    return ArticleResponse(
        article=ArticleData(
            title=article.title,
            description=article.description,
            body=article.body,
            tag_list=list(article.tag_list),
            author=Author(username=credentials.username or ""),
        )
    )
