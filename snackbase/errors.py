"""Error types raised by the SnackBase client."""

from typing import Any

import httpx


class ConfigurationError(ValueError):
    """Raised when a client is constructed with invalid options."""


class SnackBaseError(Exception):
    """Base class for every classified client failure."""

    default_message = "An unexpected error occurred"
    default_code = "UNKNOWN_ERROR"
    default_status: int | None = None
    retryable = False

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status: int | None = None,
        details: Any = None,
        retryable: bool | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = code or self.default_code
        self.status = status if status is not None else self.default_status
        self.details = details
        if retryable is not None:
            self.retryable = retryable

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status={self.status})"


class AuthenticationError(SnackBaseError):
    default_message = "Authentication failed"
    default_code = "AUTHENTICATION_ERROR"
    default_status = 401


class AuthorizationError(SnackBaseError):
    default_message = "Not authorized"
    default_code = "AUTHORIZATION_ERROR"
    default_status = 403


class NotFoundError(SnackBaseError):
    default_message = "Resource not found"
    default_code = "NOT_FOUND_ERROR"
    default_status = 404


class ConflictError(SnackBaseError):
    default_message = "Resource conflict"
    default_code = "CONFLICT_ERROR"
    default_status = 409


class ValidationError(SnackBaseError):
    default_message = "Validation failed"
    default_code = "VALIDATION_ERROR"
    default_status = 422

    def __init__(
        self,
        message: str | None = None,
        *,
        fields: dict[str, list[str]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.fields = fields or {}


class RateLimitError(SnackBaseError):
    default_message = "Rate limit exceeded"
    default_code = "RATE_LIMIT_ERROR"
    default_status = 429
    retryable = True

    def __init__(
        self,
        message: str | None = None,
        *,
        retry_after: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ServerError(SnackBaseError):
    default_message = "Internal server error"
    default_code = "SERVER_ERROR"
    default_status = 500
    retryable = True


class NetworkError(SnackBaseError):
    """No HTTP response was received."""

    default_message = "Network request failed"
    default_code = "NETWORK_ERROR"
    retryable = True


class RequestTimeoutError(NetworkError):
    default_message = "Request timed out"
    default_code = "TIMEOUT_ERROR"


class UnexpectedError(SnackBaseError):
    """Wraps a failure that is neither an HTTP nor a transport error."""

    default_code = "UNEXPECTED_ERROR"

    def __init__(self, cause: BaseException | Any) -> None:
        message = str(cause) if str(cause) else type(cause).__name__
        super().__init__(message, details=cause)
        self.cause = cause


_STATUS_ERRORS: dict[int, type[SnackBaseError]] = {
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
    429: RateLimitError,
}


def _extract_message(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    for key in ("message", "error", "detail"):
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def _extract_fields(data: Any) -> dict[str, list[str]]:
    """Collect per-field messages from an ``errors`` object or a FastAPI-style ``detail`` list."""
    if not isinstance(data, dict):
        return {}

    errors = data.get("errors")
    if isinstance(errors, dict):
        fields: dict[str, list[str]] = {}
        for name, messages in errors.items():
            if isinstance(messages, str):
                messages = [messages]
            fields[str(name)] = [str(m) for m in messages]
        return fields

    detail = data.get("detail")
    if isinstance(detail, list):
        fields = {}
        for item in detail:
            if not isinstance(item, dict) or "msg" not in item:
                continue
            loc = item.get("loc") or ["__root__"]
            fields.setdefault(str(loc[-1]), []).append(str(item["msg"]))
        return fields

    return {}


def _parse_retry_after(headers: httpx.Headers, data: Any) -> float | None:
    raw = headers.get("retry-after")
    if raw is None and isinstance(data, dict):
        raw = data.get("retry_after", data.get("retryAfter"))
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except (TypeError, ValueError):
        return None


def classify_response(status: int, headers: httpx.Headers, data: Any) -> SnackBaseError:
    """Build the error matching a non-2xx response.

    The status code decides first; for otherwise unrecognised 4xx responses
    an ``errors`` object in the body marks the failure as validation.
    """
    message = _extract_message(data)
    error_cls = _STATUS_ERRORS.get(status)

    if error_cls is ValidationError or (
        error_cls is None
        and 400 <= status < 500
        and isinstance(data, dict)
        and isinstance(data.get("errors"), dict)
    ):
        return ValidationError(message, status=status, details=data, fields=_extract_fields(data))
    if error_cls is RateLimitError:
        return RateLimitError(message, details=data, retry_after=_parse_retry_after(headers, data))
    if error_cls is not None:
        return error_cls(message, details=data)
    if status >= 500:
        return ServerError(message, status=status, details=data)
    return SnackBaseError(message, status=status, details=data)


def classify_transport_error(exc: Exception, timeout: float | None = None) -> SnackBaseError:
    """Map an httpx request exception to a network, timeout or unexpected error.

    Failures below HTTP (connect, read, write) are network errors. Request
    errors that are not transport failures, such as a redirect loop or an
    undecodable body, are unexpected.
    """
    if isinstance(exc, httpx.TimeoutException):
        if timeout is not None:
            return RequestTimeoutError(f"Request timed out after {int(timeout * 1000)}ms", details=exc)
        return RequestTimeoutError(str(exc) or None, details=exc)
    if isinstance(exc, httpx.TransportError):
        return NetworkError(str(exc) or None, details=exc)
    return UnexpectedError(exc)
