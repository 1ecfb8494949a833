"""Jira REST API client.

Provides HTTP client with basic or bearer-token authentication, thread
safety, and automatic response validation using Pydantic models.
"""

import threading
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import httpx
import pydantic
import structlog

from .types import FieldDefinition, Issue, SearchResponse

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0

SEARCH_ENDPOINT = "/rest/api/2/search"


class JiraApiError(Exception):
    """Base class for errors raised while talking to the Jira REST API."""


class AuthorizationError(JiraApiError):
    """Raised when the server rejects the configured credentials."""


class CommunicationError(JiraApiError):
    """Raised for any other request failure.

    Covers transport errors, unexpected HTTP statuses, empty bodies and
    responses that fail JSON decoding or model validation.
    """


def _error_details(response: httpx.Response) -> str:
    """Extract Jira's ``errorMessages``/``errors`` from an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()

    if not isinstance(data, dict):
        return ""

    error_messages = data.get("errorMessages") or []
    if isinstance(error_messages, str):
        error_messages = [error_messages]
    messages = []
    if isinstance(error_messages, list):
        messages = [str(message) for message in error_messages]
    errors = data.get("errors") or {}
    if isinstance(errors, dict):
        messages.extend(f"{field}: {message}" for field, message in errors.items())
    return "; ".join(messages)


class JiraRestApiClient:
    """HTTP client for the Jira REST API.

    Lightweight client that handles authentication, makes HTTP requests,
    validates responses, and returns Pydantic-validated data objects.
    Its :meth:`search` method is the page source used by
    :class:`~jira_walker.walker.IssueWalker`.

    Thread-safe through thread-local storage of httpx.Client instances.
    Can be used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        base_url: str,
        username: str | None = None,
        token_file: str | Path | None = None,
        api_token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the REST API client.

        Args:
            base_url: Base URL of the Jira instance (e.g., "https://jira.example.com").
            username: Account name for basic authentication. Without it a
                token is sent as a bearer token.
            token_file: Path to file containing the API token or password.
            api_token: API token given directly; ignored if token_file is set.
            timeout: Request timeout in seconds (default: 30.0).
            transport: Optional httpx transport, mainly for tests.

        Raises:
            ValueError: If base_url is empty or timeout is not positive.
            FileNotFoundError: If token_file is specified but doesn't exist.
        """
        if not base_url:
            msg = "base_url cannot be empty"
            raise ValueError(msg)
        if timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)

        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._auth: httpx.Auth | None = None

        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

        token = api_token
        if token_file:
            token_path = Path(token_file)
            if not token_path.exists():
                msg = f"Token file not found: {token_file}"
                raise FileNotFoundError(msg)
            token = token_path.read_text().strip()

        if username and token:
            self._auth = httpx.BasicAuth(username, token)
        elif token:
            self._headers["Authorization"] = f"Bearer {token}"
        else:
            logger.info("No credentials configured, using anonymous access")

        # Use thread-local storage for httpx.Client (thread safety)
        self._local = threading.local()

    @property
    def client(self) -> httpx.Client:
        """Get or create thread-local httpx client.

        Returns:
            Thread-local httpx.Client instance.
        """
        if not hasattr(self._local, "client") or self._local.client.is_closed:
            self._local.client = httpx.Client(
                base_url=self.base_url,
                headers=self._headers,
                auth=self._auth,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._local.client

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the thread-local HTTP client if open."""
        if hasattr(self._local, "client") and not self._local.client.is_closed:
            self._local.client.close()

    def _make_request(
        self,
        endpoint: str,
        method: str = "GET",
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Make HTTP request to the Jira REST API.

        Handles request execution, error mapping, and JSON parsing.
        Logs request details and duration.

        Args:
            endpoint: API endpoint path (e.g., "/rest/api/2/search").
            method: HTTP method.
            params: Optional query parameters.
            json: Optional JSON request body.

        Returns:
            Decoded JSON response.

        Raises:
            AuthorizationError: If the server answers 401.
            CommunicationError: For any other failure.
        """
        start_time = time.time()
        params = params or {}

        logger.debug(
            "Making API request",
            method=method,
            endpoint=endpoint,
            params=params,
        )
        try:
            response = self.client.request(method, endpoint, params=params, json=json)
        except httpx.HTTPError as exc:
            duration = time.time() - start_time
            logger.exception(
                "API request failed",
                endpoint=endpoint,
                duration_seconds=round(duration, 3),
            )
            msg = f"Request to {endpoint} failed: {exc}"
            raise CommunicationError(msg) from exc

        duration = time.time() - start_time
        logger.debug(
            "API request completed",
            status_code=response.status_code,
            duration_seconds=round(duration, 3),
        )

        if response.status_code == httpx.codes.UNAUTHORIZED:
            msg = f"Unauthorized request to {endpoint}"
            raise AuthorizationError(msg)

        if response.is_error:
            details = _error_details(response)
            logger.error(
                "API error response",
                endpoint=endpoint,
                status_code=response.status_code,
                error_message=details,
            )
            msg = f"API returned HTTP {response.status_code} for {endpoint}"
            if details:
                msg = f"{msg}: {details}"
            raise CommunicationError(msg)

        if not response.content.strip():
            msg = f"Empty response from {endpoint}"
            raise CommunicationError(msg)

        try:
            return response.json()
        except ValueError as exc:
            msg = f"Invalid JSON in response from {endpoint}"
            raise CommunicationError(msg) from exc

    def search(
        self,
        jql: str,
        start_at: int = 0,
        max_results: int = 20,
        fields: str | Sequence[str] | None = None,
    ) -> SearchResponse:
        """Fetch one page of issues matching a JQL query.

        Args:
            jql: JQL query string.
            start_at: Index of the first issue to return.
            max_results: Maximum number of issues on the page.
            fields: Field selector; a list is sent comma-joined, None lets
                the server use its default (all navigable fields).

        Returns:
            Validated SearchResponse for the requested page.

        Raises:
            AuthorizationError: If credentials are rejected.
            CommunicationError: If the request or decoding fails.
        """
        params: dict[str, Any] = {
            "jql": jql,
            "startAt": start_at,
            "maxResults": max_results,
        }
        if fields is not None:
            params["fields"] = fields if isinstance(fields, str) else ",".join(fields)

        data = self._make_request(SEARCH_ENDPOINT, params=params)

        try:
            return SearchResponse.model_validate(data)
        except pydantic.ValidationError as exc:
            msg = f"Unexpected search response: {exc}"
            raise CommunicationError(msg) from exc

    def get_issue(self, issue_key: str, expand: str = "") -> Issue:
        """Fetch a single issue by key (e.g., "PRJ-221").

        Raises:
            AuthorizationError: If credentials are rejected.
            CommunicationError: If the request or decoding fails.
        """
        params = {"expand": expand} if expand else None
        data = self._make_request(f"/rest/api/2/issue/{issue_key}", params=params)

        try:
            return Issue.model_validate(data)
        except pydantic.ValidationError as exc:
            msg = f"Unexpected issue response: {exc}"
            raise CommunicationError(msg) from exc

    def get_fields(self) -> list[FieldDefinition]:
        """Fetch field definitions (system and custom fields).

        The result is not cached; callers that need it repeatedly should
        keep their own copy.
        """
        data = self._make_request("/rest/api/2/field")
        if not isinstance(data, list):
            msg = "Unexpected payload for /rest/api/2/field"
            raise CommunicationError(msg)

        try:
            return [FieldDefinition.model_validate(item) for item in data]
        except pydantic.ValidationError as exc:
            msg = f"Unexpected field definition: {exc}"
            raise CommunicationError(msg) from exc
