"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

import json
import logging
from http import HTTPStatus

import pytest
import responses

from conduit_qa.conduit_services import (
    ArticleService,
    delete_test_articles,
    ensure_users_exist,
    get_conduit_client,
    post_login,
    post_user,
)
from conduit_qa.exceptions import UnexpectedStatusError
from conduit_qa.factories import (
    TITLE_MARKER,
    create_article_request,
    create_error_response,
    default_users,
)
from conduit_qa.models import ErrorResponse, UserCredentials, UserRequest

API_URL = "https://conduit-api.bondaracademy.com"


def article_json(title: str, slug: str) -> dict:
    return {
        "slug": slug,
        "title": title,
        "description": "Test description",
        "body": "Test body",
        "tagList": ["Test tag"],
        "createdAt": "2025-02-17T13:45:30.000Z",
        "updatedAt": "2025-02-17T13:45:30.000Z",
        "favorited": False,
        "favoritesCount": 0,
        "author": {"username": "ukUser", "bio": None, "image": None, "following": False},
    }


def login_json(email: str, token: str) -> dict:
    return {"user": {"email": email, "username": email.split("@")[0], "token": token}}


@pytest.mark.unit
@pytest.mark.api
class TestArticleService:
    @responses.activate
    def test_post_article(self, conduit_client):
        request = create_article_request("Automation Test Article 1")
        responses.add(
            responses.POST,
            f"{API_URL}/api/articles/",
            json={"article": article_json(request.article.title, "automation-1")},
            status=201,
        )

        response = ArticleService(conduit_client).post_article(request)

        assert response.article.slug == "automation-1"
        assert response.article.tag_list == ["Test tag"]
        sent = json.loads(responses.calls[0].request.body)
        assert sent["article"]["tagList"] == ["Test tag"]

    @responses.activate
    def test_post_article_unexpected_status(self, conduit_client, caplog):
        responses.add(
            responses.POST,
            f"{API_URL}/api/articles/",
            json={"errors": {"title": ["must be unique"]}},
            status=422,
        )

        with caplog.at_level(logging.ERROR, logger="conduit_qa"):
            with pytest.raises(UnexpectedStatusError):
                ArticleService(conduit_client).post_article(create_article_request())

        assert "Actual status code: 422" in caplog.text

    @responses.activate
    def test_post_article_with_error_model(self, conduit_client):
        responses.add(
            responses.POST,
            f"{API_URL}/api/articles/",
            json={"errors": {"title": ["can't be blank"]}},
            status=422,
        )

        response = ArticleService(conduit_client).post_article(
            create_article_request(),
            expected_status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            response_model=ErrorResponse,
        )

        assert response.errors == {"title": ["can't be blank"]}

    @responses.activate
    def test_get_and_delete_article(self, conduit_client):
        responses.add(
            responses.GET,
            f"{API_URL}/api/articles/automation-1",
            json={"article": article_json("Automation Test Article 1", "automation-1")},
        )
        responses.add(responses.DELETE, f"{API_URL}/api/articles/automation-1", status=204)
        service = ArticleService(conduit_client)

        article = service.get_article("automation-1").article
        service.delete_article(article.slug)

        assert article.favorites_count == 0
        assert responses.calls[1].request.method == "DELETE"

    @responses.activate
    def test_get_all_articles(self, conduit_client):
        responses.add(
            responses.GET,
            f"{API_URL}/api/articles",
            json={"articles": [article_json("a", "a"), article_json("b", "b")], "articlesCount": 2},
        )

        response = ArticleService(conduit_client).get_all_articles()

        assert response.articles_count == 2
        assert [article.slug for article in response.articles] == ["a", "b"]


@pytest.mark.unit
@pytest.mark.api
class TestUsers:
    @responses.activate
    def test_post_login(self, conduit_client):
        responses.add(
            responses.POST, f"{API_URL}/api/users/login", json=login_json("a@b.c", "jwt")
        )

        response = post_login(
            conduit_client, UserRequest(user=UserCredentials(email="a@b.c", password="p"))
        )

        assert response.user.token == "jwt"
        assert json.loads(responses.calls[0].request.body) == {
            "user": {"email": "a@b.c", "password": "p"}
        }

    @responses.activate
    def test_post_user_without_error_log(self, conduit_client, caplog):
        responses.add(
            responses.POST,
            f"{API_URL}/api/users",
            json=create_error_response().model_dump(),
            status=422,
        )

        with caplog.at_level(logging.ERROR, logger="conduit_qa"):
            with pytest.raises(UnexpectedStatusError):
                post_user(
                    conduit_client,
                    UserRequest(user=UserCredentials(email="a@b.c", password="p")),
                    should_log_error=False,
                )

        assert caplog.records == []

    @responses.activate
    def test_authenticated_client_sends_token(self, settings_config):
        responses.add(
            responses.POST, f"{API_URL}/api/users/login", json=login_json("a@b.c", "jwt-123")
        )
        responses.add(responses.GET, f"{API_URL}/api/articles", json={"articles": []})

        with get_conduit_client(
            settings_config, UserCredentials(email="a@b.c", password="p")
        ) as client:
            ArticleService(client).get_all_articles()

        assert "Authorization" not in responses.calls[0].request.headers
        assert responses.calls[1].request.headers["Authorization"] == "Token jwt-123"

    @responses.activate
    def test_ensure_users_exist(self, settings_config, caplog):
        users = default_users(settings_config)
        responses.add(
            responses.POST,
            f"{API_URL}/api/users",
            json={"user": {"email": "ukUser@test.com", "username": "ukUser", "token": "t"}},
            status=201,
        )
        responses.add(
            responses.POST,
            f"{API_URL}/api/users",
            json=create_error_response().model_dump(),
            status=422,
        )

        with caplog.at_level(logging.INFO, logger="conduit_qa"):
            ensure_users_exist(settings_config, users.values())

        assert "Created user with email: ukUser@test.com" in caplog.text
        assert "User with email: usUser@test.com is already created." in caplog.text
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

    @responses.activate
    def test_delete_test_articles(self, settings_config):
        users = default_users(settings_config)
        responses.add(
            responses.POST, f"{API_URL}/api/users/login", json=login_json("ukUser@test.com", "uk")
        )
        responses.add(
            responses.POST, f"{API_URL}/api/users/login", json=login_json("usUser@test.com", "us")
        )
        responses.add(
            responses.GET,
            f"{API_URL}/api/articles",
            json={
                "articles": [
                    article_json(f"{TITLE_MARKER} 1", "auto-1"),
                    article_json("Hand written", "manual"),
                ]
            },
        )
        responses.add(
            responses.GET,
            f"{API_URL}/api/articles",
            json={"articles": [article_json(f"{TITLE_MARKER} 2", "auto-2")]},
        )
        responses.add(responses.DELETE, f"{API_URL}/api/articles/auto-1", status=204)
        responses.add(responses.DELETE, f"{API_URL}/api/articles/auto-2", status=204)

        deleted = delete_test_articles(settings_config, users.values(), TITLE_MARKER)

        assert deleted == 2
        deletes = [call.request.url for call in responses.calls if call.request.method == "DELETE"]
        assert deletes == [f"{API_URL}/api/articles/auto-1", f"{API_URL}/api/articles/auto-2"]
