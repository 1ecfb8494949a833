"""Jira REST API client package.

Provides a lightweight HTTP client for the Jira REST API that returns
raw, validated API response types with minimal processing. Pagination is
handled by :mod:`jira_walker.walker`.

Exports:
    JiraRestApiClient: HTTP client with authentication and error handling.
    JiraApiError, AuthorizationError, CommunicationError: Request errors.
    types: Module containing Pydantic models for API responses.
    DEFAULT_TIMEOUT: Default HTTP request timeout.
"""

from . import types
from .client import (
    DEFAULT_TIMEOUT,
    AuthorizationError,
    CommunicationError,
    JiraApiError,
    JiraRestApiClient,
)

__all__ = [
    "DEFAULT_TIMEOUT",
    "AuthorizationError",
    "CommunicationError",
    "JiraApiError",
    "JiraRestApiClient",
    "types",
]
