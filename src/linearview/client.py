from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import requests
from opentelemetry import trace

from . import __version__
from .errors import (
    EmptyResult,
    FetchError,
    FetchResult,
    RemoteRejected,
    TransportError,
    Unauthenticated,
    redact,
)
from .logging import get_logger
from .models import Issue, PayloadError, User
from .settings import DEFAULT_API_URL

USER_AGENT = f"linearview/{__version__}"
HTTP_ERROR_STATUS = 400
PAGE_SIZE = 50

_tracer = trace.get_tracer("linearview.client")

_ISSUE_FIELDS = """
            nodes {
                id
                identifier
                title
                description
                priority
                url
                createdAt
                updatedAt
                state {
                    id
                    name
                    color
                    type
                }
                assignee {
                    id
                    name
                    email
                    avatarUrl
                }
                project {
                    id
                    name
                    icon
                    color
                }
                labels {
                    nodes {
                        id
                        name
                        color
                    }
                }
                comments {
                    nodes {
                        id
                        body
                        createdAt
                        user {
                            id
                            name
                        }
                    }
                }
            }"""

MY_ISSUES_QUERY = (
    """query MyIssues {
    issues(
        filter: {
            assignee: { isMe: { eq: true } }
            state: { type: { nin: ["completed", "canceled"] } }
        }
        orderBy: updatedAt
        first: %d
    ) {%s
    }
}"""
    % (PAGE_SIZE, _ISSUE_FIELDS)
)

ALL_ISSUES_QUERY = (
    """query AllIssues {
    issues(
        filter: {
            state: { type: { nin: ["completed", "canceled"] } }
        }
        orderBy: updatedAt
        first: %d
    ) {%s
    }
}"""
    % (PAGE_SIZE, _ISSUE_FIELDS)
)

VIEWER_QUERY = """query Viewer {
    viewer {
        id
        name
        email
    }
}"""


@dataclass
class LinearClient:
    """Read-only GraphQL client for the Linear API.

    Every public method returns a ``FetchResult``; failures never propagate as
    exceptions. Each call is one POST with no retries.
    """

    session: requests.Session | None = None
    api_url: str = DEFAULT_API_URL
    timeout: float | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self.logger = get_logger()

    # ---- public operations -------------------------------------------
    def fetch_my_issues(self, api_key: str | None) -> FetchResult[list[Issue]]:
        return self._fetch_issues("my_issues", MY_ISSUES_QUERY, api_key)

    def fetch_all_issues(self, api_key: str | None) -> FetchResult[list[Issue]]:
        return self._fetch_issues("all_issues", ALL_ISSUES_QUERY, api_key)

    def fetch_issues(self, api_key: str | None, *, only_mine: bool) -> FetchResult[list[Issue]]:
        if only_mine:
            return self.fetch_my_issues(api_key)
        return self.fetch_all_issues(api_key)

    def test_connection(self, api_key: str | None) -> FetchResult[User]:
        if not api_key or not api_key.strip():
            return FetchResult.failure(Unauthenticated())
        try:
            data = self._execute("viewer", VIEWER_QUERY, api_key)
            viewer = data.get("viewer") if data is not None else None
            if not isinstance(viewer, Mapping):
                raise EmptyResult()
            try:
                user = User.from_payload(viewer)
            except PayloadError as exc:
                raise TransportError(f"Malformed viewer payload: {exc}") from exc
        except FetchError as exc:
            self.logger.log_error("Failed to test connection", error=exc.message, kind=exc.kind)
            return FetchResult.failure(exc)
        self.logger.log_operation("test_connection", viewer=user.name)
        return FetchResult.success(user)

    # ---- internals ----------------------------------------------------
    def _fetch_issues(
        self, operation: str, query: str, api_key: str | None
    ) -> FetchResult[list[Issue]]:
        if not api_key or not api_key.strip():
            return FetchResult.failure(Unauthenticated())
        start = time.perf_counter()
        try:
            data = self._execute(operation, query, api_key)
            issues = self._parse_issues(data)
        except FetchError as exc:
            self.logger.log_error("Failed to fetch issues", error=exc.message, kind=exc.kind)
            return FetchResult.failure(exc)
        self.logger.log_fetch(operation, len(issues), (time.perf_counter() - start) * 1000)
        return FetchResult.success(issues)

    @staticmethod
    def _parse_issues(data: Mapping[str, Any] | None) -> list[Issue]:
        if data is None:
            return []
        connection = data.get("issues")
        if not isinstance(connection, Mapping):
            return []
        nodes = connection.get("nodes")
        if not isinstance(nodes, list):
            return []
        try:
            return [Issue.from_payload(node) for node in nodes if isinstance(node, Mapping)]
        except PayloadError as exc:
            raise TransportError(f"Malformed issue payload: {exc}") from exc

    def _execute(self, operation: str, query: str, api_key: str) -> Mapping[str, Any] | None:
        """POST one query and return the ``data`` object (None when absent)."""
        payload = self._post(operation, query, api_key)
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            messages = [
                str(err.get("message") or "") if isinstance(err, Mapping) else str(err)
                for err in errors
            ]
            rejected = RemoteRejected([m for m in messages if m] or ["Unknown GraphQL error"])
            self.logger.warning(f"GraphQL errors: {rejected.message}", operation=operation)
            raise rejected
        data = payload.get("data")
        return data if isinstance(data, Mapping) else None

    def _post(self, operation: str, query: str, api_key: str) -> Mapping[str, Any]:
        body = {"query": query, "variables": {}}
        headers = {
            "Content-Type": "application/json",
            "Authorization": api_key,
            "User-Agent": USER_AGENT,
        }
        with _tracer.start_as_current_span("linear.graphql") as span:
            span.set_attribute("linear.operation", operation)
            try:
                response = self._session.request(
                    "POST",
                    self.api_url,
                    json=body,
                    headers=headers,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                raise TransportError(f"Request to {self.api_url} failed: {redact(str(exc))}") from exc
            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= HTTP_ERROR_STATUS:
                raise TransportError(
                    f"Linear API returned HTTP {response.status_code}",
                    detail=redact(response.text[:500]),
                )
            try:
                payload = response.json()
            except ValueError as exc:
                raise TransportError(f"Malformed JSON response: {exc}") from exc
        if not isinstance(payload, Mapping):
            raise TransportError("Malformed response: expected a JSON object")
        return payload


__all__ = [
    "ALL_ISSUES_QUERY",
    "LinearClient",
    "MY_ISSUES_QUERY",
    "PAGE_SIZE",
    "VIEWER_QUERY",
]
