"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

from typing import Any

from pydantic import BaseModel, Field


class UserCredentials(BaseModel):
    """Login details of a Conduit test user."""

    username: str | None = None
    email: str
    password: str = Field(repr=False)


class User(BaseModel):
    """Represents a Conduit user as returned by the API."""

    id: int | None = None
    email: str
    username: str
    bio: Any = None
    image: str | None = None
    token: str | None = Field(None, repr=False)


class UserRequest(BaseModel):
    """Payload for registering or logging in a user."""

    user: UserCredentials


class UserResponse(BaseModel):
    user: User


class Article(BaseModel):
    """The editable part of an article."""

    title: str
    description: str
    body: str
    tag_list: list[str] = Field(default_factory=list, alias="tagList")

    model_config = {"populate_by_name": True}


class ArticleRequest(BaseModel):
    article: Article


class Author(BaseModel):
    username: str
    bio: Any = None
    image: str | None = None
    following: bool | None = None


class ArticleData(Article):
    """An article as stored by Conduit."""

    slug: str | None = None
    created_at: str | None = Field(None, alias="createdAt")
    updated_at: str | None = Field(None, alias="updatedAt")
    favorited: bool | None = None
    favorites_count: int | None = Field(None, alias="favoritesCount")
    author: Author | None = None


class ArticleResponse(BaseModel):
    article: ArticleData


class ArticlesResponse(BaseModel):
    """Paged article listing."""

    articles: list[ArticleData] = Field(default_factory=list)
    articles_count: int | None = Field(None, alias="articlesCount")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Validation errors keyed by field name."""

    errors: dict[str, list[str]]
