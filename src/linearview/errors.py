"""Fetch error taxonomy, result wrapper & redaction.

The fetch client never raises past its boundary: every failure path becomes a
``FetchError`` instance carried inside a ``FetchResult``. Callers decide what
to do with it (the view controller maps it to a status line via
``describe_failure``).

Public API:
- FetchError and its four concrete kinds
- FetchResult.success(value) / FetchResult.failure(error)
- describe_failure(error) -> str
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

# Linear personal API keys and anything that looks like an auth header value
_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"lin_api_[A-Za-z0-9]{16,}"),
    re.compile(r"lin_oauth_[A-Za-z0-9]{16,}"),
    re.compile(r"(?i)(authorization['\"]?\s*[:=]\s*['\"]?)[^\s'\",}]+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"

API_KEY_HINT = "Please configure API key with `linearview login`"


class FetchError(Exception):
    """Base class for every failure the fetch client can report."""

    kind = "generic"

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class Unauthenticated(FetchError):
    """No API key (or a blank one) is configured. No request was attempted."""

    kind = "unauthenticated"

    def __init__(self, message: str = "API key not configured") -> None:
        super().__init__(message)


class TransportError(FetchError):
    """Network, HTTP status, or body decoding failure."""

    kind = "transport"


class RemoteRejected(FetchError):
    """The API answered with a GraphQL ``errors`` list."""

    kind = "remote_rejected"

    def __init__(self, messages: list[str]) -> None:
        super().__init__(", ".join(messages))
        self.messages = list(messages)


class EmptyResult(FetchError):
    """The viewer query succeeded but returned no identity."""

    kind = "empty_result"

    def __init__(self, message: str = "No user data returned") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    value: T | None = None
    error: FetchError | None = None

    @classmethod
    def success(cls, value: T) -> FetchResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: FetchError) -> FetchResult[T]:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def redact(text: str) -> str:
    """Mask API keys and authorization values in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def describe_failure(error: FetchError) -> str:
    """User-visible status line for a failed fetch."""
    if isinstance(error, Unauthenticated):
        return API_KEY_HINT
    return f"Error: {redact(error.message)}"


__all__ = [
    "API_KEY_HINT",
    "EmptyResult",
    "FetchError",
    "FetchResult",
    "RemoteRejected",
    "TransportError",
    "Unauthenticated",
    "describe_failure",
    "redact",
]
