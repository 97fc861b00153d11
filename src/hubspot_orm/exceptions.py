"""
Error taxonomy for the HubSpot API.

Every remote failure surfaces as a RequestError subclass chosen by
``error_from_response``. Local validation problems raise ArgumentError
before any request is made.
"""

import re
from typing import Any

import httpx

SCOPE_ERROR_PATTERNS = (
    re.compile(r"MISSING_SCOPES"),
    re.compile(r"You do not have permissions", re.IGNORECASE),
)


class HubspotError(Exception):
    """Base exception for this library."""
    pass


class NotConfiguredError(HubspotError):
    """Raised when a request is attempted before an access token is set."""
    pass


class ArgumentError(HubspotError, ValueError):
    """Raised for invalid caller input (bad query, mixed batch, etc)."""
    pass


class NothingToDoError(HubspotError):
    """Raised by save_strict() when there are no pending changes."""
    pass


class RequestError(HubspotError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
        response: httpx.Response | None = None,
    ):
        if message:
            message += "\n"
        super().__init__(f"{message or ''}Response body: {response_body}")
        self.status_code = status_code
        self.response_body = response_body
        self.response = response

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code:
            return f"{base} (HTTP {self.status_code})"
        return base


class NotFoundError(RequestError):
    """Raised when the resource does not exist (404)."""
    pass


class OauthScopeError(RequestError):
    """Raised when the token lacks the scopes the endpoint needs."""
    pass


class RateLimitExceededError(RequestError):
    """Raised on 429 once the retry budget is spent."""

    def __init__(self, *args: Any, retry_after: float | None = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.retry_after = retry_after


def parse_retry_after(headers: httpx.Headers) -> float | None:
    """Seconds from a Retry-After header, or None if absent/unparseable."""
    value = headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _message_from_body(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("message")
    return None


def error_from_response(response: httpx.Response) -> RequestError:
    """Map a failed response onto the matching RequestError subclass."""
    body = response.text
    kwargs: dict[str, Any] = {
        "status_code": response.status_code,
        "response_body": body,
        "response": response,
    }

    if response.status_code == 404:
        return NotFoundError(_message_from_body(response), **kwargs)

    if response.status_code == 429:
        return RateLimitExceededError(
            _message_from_body(response) or "Rate limit exceeded",
            retry_after=parse_retry_after(response.headers),
            **kwargs,
        )

    if any(pattern.search(body) for pattern in SCOPE_ERROR_PATTERNS):
        return OauthScopeError("Private app missing required scopes", **kwargs)

    return RequestError(_message_from_body(response), **kwargs)
