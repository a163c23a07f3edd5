"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of CONDUIT-QA, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Fluent REST client built on requests.

A RestClient owns one ``requests.Session`` together with the base URL, the
authentication and the transport options. Every ``with_url`` call hands out a
new single-use RequestBuilder, so headers, parameters and bodies never leak
from one request into the next.
"""

import json
import logging
import time
from enum import Enum
from typing import Any

import requests
from pydantic import BaseModel, ConfigDict, Field, model_validator
from requests.auth import HTTPBasicAuth

from conduit_qa.exceptions import RequestAlreadySentError, RequestBuildError

logger = logging.getLogger("conduit_qa.rest_client")

DEFAULT_TIMEOUT = 90.0


class HttpMethod(str, Enum):
    """HTTP verbs supported by the request builder."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class AuthScheme(str, Enum):
    """How a client authenticates its requests."""

    NONE = "none"
    BEARER = "bearer"
    BASIC = "basic"
    HEADER = "header"


class BasicCredentials(BaseModel):
    """User name and password for HTTP basic authentication."""

    username: str
    password: str = Field(repr=False)


class Authentication(BaseModel):
    """Authentication owned by a RestClient."""

    scheme: AuthScheme = AuthScheme.NONE
    value: str | BasicCredentials | None = Field(default=None, repr=False)

    @model_validator(mode="after")
    def validate_value(self):
        """Check that the value matches the scheme."""
        if self.scheme == AuthScheme.BASIC and not isinstance(self.value, BasicCredentials):
            raise ValueError("Basic authentication requires BasicCredentials")
        if self.scheme in (AuthScheme.BEARER, AuthScheme.HEADER) and not isinstance(
            self.value, str
        ):
            raise ValueError(f"{self.scheme.value} authentication requires a string value")
        return self

    @classmethod
    def none(cls) -> "Authentication":
        return cls()

    @classmethod
    def bearer(cls, token: str) -> "Authentication":
        return cls(scheme=AuthScheme.BEARER, value=token)

    @classmethod
    def basic(cls, username: str, password: str) -> "Authentication":
        return cls(
            scheme=AuthScheme.BASIC,
            value=BasicCredentials(username=username, password=password),
        )

    @classmethod
    def header(cls, value: str) -> "Authentication":
        return cls(scheme=AuthScheme.HEADER, value=value)


class FilePart(BaseModel):
    """An in-memory file sent as one part of a multipart request."""

    name: str
    mime_type: str = "application/octet-stream"
    buffer: bytes


class RequestState(BaseModel):
    """Everything a single request carries until it is sent."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    url: str
    method: HttpMethod | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    params: dict[str, Any] = Field(default_factory=dict)
    form: dict[str, Any] | None = None
    body: Any = None
    multipart: dict[str, Any] | None = None
    payload_kind: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    sent: bool = False


def serialize_value(value: Any) -> Any:
    """Render booleans the way query strings and form fields expect them."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _serialize_mapping(values: dict[str, Any]) -> dict[str, Any]:
    return {key: serialize_value(value) for key, value in values.items()}


class RequestBuilder:
    """Single-use builder for one HTTP request."""

    def __init__(self, client: "RestClient", path: str):
        self._client = client
        self.state = RequestState(url=client.build_url(path), timeout=client.timeout)

    def _ensure_not_sent(self) -> None:
        if self.state.sent:
            raise RequestAlreadySentError(
                f"Request to {self.state.url} was already sent; call with_url() again"
            )

    def _set_payload(self, kind: str) -> None:
        self._ensure_not_sent()
        if self.state.payload_kind not in (None, kind):
            raise RequestBuildError(
                f"Cannot set {kind}: request already has a {self.state.payload_kind} payload"
            )
        self.state.payload_kind = kind

    def with_headers(self, headers: dict[str, str]) -> "RequestBuilder":
        """Merge headers into the request."""
        self._ensure_not_sent()
        self.state.headers.update(headers)
        return self

    def with_params(self, params: dict[str, Any]) -> "RequestBuilder":
        """Replace the query parameters."""
        self._ensure_not_sent()
        self.state.params = dict(params)
        return self

    def with_form(self, form: dict[str, Any]) -> "RequestBuilder":
        """Send an url-encoded form."""
        self._set_payload("form")
        self.state.form = dict(form)
        return self

    def with_body(self, body: Any) -> "RequestBuilder":
        """Send a body: raw str/bytes, a pydantic model, or any JSON value."""
        self._set_payload("body")
        self.state.body = body
        return self

    def with_multipart(self, multipart: dict[str, Any]) -> "RequestBuilder":
        """Send multipart form data with scalar fields and file parts."""
        self._set_payload("multipart")
        self.state.multipart = dict(multipart)
        return self

    def with_timeout(self, seconds: float) -> "RequestBuilder":
        self._ensure_not_sent()
        self.state.timeout = seconds
        return self

    def execute_get(self) -> requests.Response:
        return self._execute(HttpMethod.GET)

    def execute_post(self) -> requests.Response:
        return self._execute(HttpMethod.POST)

    def execute_put(self) -> requests.Response:
        return self._execute(HttpMethod.PUT)

    def execute_patch(self) -> requests.Response:
        return self._execute(HttpMethod.PATCH)

    def execute_delete(self) -> requests.Response:
        return self._execute(HttpMethod.DELETE)

    def _execute(self, method: HttpMethod) -> requests.Response:
        self._ensure_not_sent()
        self.state.sent = True
        self.state.method = method
        return self._client.send(self.state)


class RestClient:
    """
    HTTP client for one base URL.

    Changing the authentication closes the current session and opens a new one,
    so no header or credential survives the change.
    """

    def __init__(
        self,
        base_url: str,
        authentication: Authentication | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify_tls: bool = True,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.authentication = authentication or Authentication.none()
        self.session = self._open_session()

    def _open_session(self) -> requests.Session:
        session = requests.Session()
        session.verify = self.verify_tls
        auth = self.authentication
        if auth.scheme == AuthScheme.BEARER:
            session.headers["Authorization"] = f"Bearer {auth.value}"
        elif auth.scheme == AuthScheme.HEADER:
            session.headers["Authorization"] = auth.value
        elif auth.scheme == AuthScheme.BASIC:
            session.auth = HTTPBasicAuth(auth.value.username, auth.value.password)
        return session

    def build_url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{path}"

    def with_authentication(self, authentication: Authentication) -> "RestClient":
        """Replace the authentication and reopen the session."""
        self.authentication = authentication
        self.session.close()
        self.session = self._open_session()
        logger.debug(f"Authentication changed to {authentication.scheme.value} for {self.base_url}")
        return self

    def with_authorization_header(self, value: str) -> "RestClient":
        return self.with_authentication(Authentication.header(value))

    def with_base_authentication(self, credentials: BasicCredentials) -> "RestClient":
        return self.with_authentication(
            Authentication(scheme=AuthScheme.BASIC, value=credentials)
        )

    def without_authentication(self) -> "RestClient":
        return self.with_authentication(Authentication.none())

    def with_url(self, path: str) -> RequestBuilder:
        """Start a new request against ``base_url + path``."""
        return RequestBuilder(self, path)

    def send(self, state: RequestState) -> requests.Response:
        """
        Send a prepared request state.

        Args:
        ----
            state: The request to send

        Returns:
        -------
            The raw response; status codes are not checked

        Raises:
        ------
            requests.exceptions.RequestException: On transport failures

        """
        kwargs: dict[str, Any] = {
            "headers": dict(state.headers),
            "params": _serialize_mapping(state.params),
            "timeout": state.timeout,
        }

        if state.payload_kind == "form":
            kwargs["data"] = _serialize_mapping(state.form or {})
        elif state.payload_kind == "body":
            body = state.body
            if isinstance(body, (str, bytes)):
                kwargs["data"] = body
            elif isinstance(body, BaseModel):
                kwargs["json"] = body.model_dump(mode="json", exclude_none=True, by_alias=True)
            else:
                kwargs["json"] = body
        elif state.payload_kind == "multipart":
            data, files = self._split_multipart(state.multipart or {})
            kwargs["data"] = data
            kwargs["files"] = files

        method = state.method.value
        request_id = f"{method}_{int(time.time() * 1000)}"
        logger.debug(f"API Request [{request_id}]: {method} {state.url}")
        if state.params:
            logger.debug(f"Parameters [{request_id}]: {kwargs['params']}")
        if logger.isEnabledFor(logging.DEBUG) and "json" in kwargs:
            logger.debug(f"Request Body [{request_id}]: {json.dumps(kwargs['json'], default=str)}")

        start_time = time.time()
        try:
            response = self.session.request(method, state.url, **kwargs)
        except requests.exceptions.SSLError as e:
            logger.error(f"SSL Error [{request_id}]: {method} {state.url}: {e}")
            raise
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection Error [{request_id}]: Could not connect to {state.url}: {e}")
            raise
        except requests.exceptions.Timeout as e:
            logger.error(
                f"Timeout Error [{request_id}]: Request to {state.url} timed out "
                f"after {state.timeout}s: {e}"
            )
            raise

        duration = time.time() - start_time
        logger.debug(
            f"Response [{request_id}] received in {duration:.2f}s - "
            f"Status: {response.status_code}"
        )
        return response

    @staticmethod
    def _split_multipart(multipart: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        data: dict[str, Any] = {}
        files: dict[str, Any] = {}
        for key, value in multipart.items():
            if isinstance(value, FilePart):
                files[key] = (value.name, value.buffer, value.mime_type)
            elif hasattr(value, "read"):
                files[key] = value
            else:
                data[key] = serialize_value(value)
        return data, files

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "RestClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_client(
    base_url: str,
    authentication: Authentication | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    verify_tls: bool = True,
) -> RestClient:
    """Create a RestClient for ``base_url``."""
    return RestClient(base_url, authentication, timeout=timeout, verify_tls=verify_tls)


def create_client_with_base_auth(
    base_url: str,
    credentials: BasicCredentials,
    timeout: float = DEFAULT_TIMEOUT,
) -> RestClient:
    """Create a RestClient that authenticates with HTTP basic auth."""
    return RestClient(
        base_url,
        Authentication(scheme=AuthScheme.BASIC, value=credentials),
        timeout=timeout,
    )
