"""
Error taxonomy for talking to the upstream workspace API.

TransportError is retryable (unreachable, timeout, 5xx). UpstreamError covers
semantic 4xx failures and is surfaced to users as text, never as a bare status
code. Cancellation is not an error; it is the ABORTED fetch outcome.
"""
import json
from typing import Optional


class WorkspaceError(Exception):
    """Base class for upstream failures."""
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(WorkspaceError):
    """Network failure, timeout or temporary upstream outage."""
    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(WorkspaceError):
    """Upstream rejected the request (auth, access, not found, validation, rate limit)."""

    def __init__(self, message: str, status_code: int = 502, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class MalformedResponseError(UpstreamError):
    """Upstream answered 2xx with a payload we cannot read."""

    def __init__(self, message: str):
        super().__init__(message, status_code=502, code="malformed_response")


def parse_error_body(body: str):
    """Return (code, message) from an upstream error body; non-JSON bodies become the message."""
    try:
        parsed = json.loads(body) if body else {}
    except ValueError:
        return "", body or ""
    if not isinstance(parsed, dict):
        return "", body or ""
    return str(parsed.get("code") or ""), str(parsed.get("message") or "")


def describe_upstream_error(status: int, body: str = "") -> str:
    """Translate an upstream status code + body into actionable text."""
    code, message = parse_error_body(body)

    if status == 401:
        return "Invalid API key. Please check your integration token."
    if status == 403:
        return "Access denied. Make sure the database is shared with your integration."
    if status == 404:
        return "Database not found. Please verify the database ID and ensure it is shared with your integration."
    if status == 429:
        return "Rate limited by the upstream API. Please wait a moment and try again."
    if status == 400:
        if code == "validation_error":
            return f"Invalid request: {message}"
        return f"Bad request: {message or 'Please check your configuration.'}"
    if status in (500, 502, 503):
        return "Upstream API is temporarily unavailable. Please try again later."
    return f"API error ({status}): {message or 'Unknown error'}"


def error_for_status(status: int, body: str = "") -> WorkspaceError:
    """Build the right exception for a non-2xx response."""
    text = describe_upstream_error(status, body)
    if status >= 500:
        return TransportError(text, status_code=status)
    code, _ = parse_error_body(body)
    return UpstreamError(text, status_code=status, code=code or None)
