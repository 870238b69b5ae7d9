"""Render client failures as MCP tool results."""

import json

from snackbase.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    SnackBaseError,
    UnexpectedError,
    ValidationError,
)


def describe_error(error: BaseException) -> str:
    """Human readable message, prefixed with the kind of failure."""
    if not isinstance(error, SnackBaseError) or isinstance(error, UnexpectedError):
        cause = error.cause if isinstance(error, UnexpectedError) else error
        return f"Unexpected error: {str(cause) or type(cause).__name__}"

    message = error.message
    if isinstance(error, ValidationError):
        if error.fields:
            return f"{message}\nValidation Details:\n{json.dumps(error.fields, indent=2)}"
        return message
    if isinstance(error, AuthenticationError):
        return f"Authentication failed — check your SNACKBASE_API_KEY. {message}"
    if isinstance(error, AuthorizationError):
        return f"Permission denied: {message}"
    if isinstance(error, NotFoundError):
        return f"Not found: {message}"
    if isinstance(error, ConflictError):
        return f"Conflict: {message}"
    if isinstance(error, RateLimitError):
        retry_after = f" Retry after {error.retry_after:g} seconds." if error.retry_after else ""
        return f"Rate limited.{retry_after} {message}"
    # timeout before network: it is a NetworkError subclass
    if isinstance(error, RequestTimeoutError):
        return f"Request timed out. {message}"
    if isinstance(error, NetworkError):
        return f"Network error — is the backend running? {message}"
    if isinstance(error, ServerError):
        return f"Server error ({error.status}): {message}"
    return message
