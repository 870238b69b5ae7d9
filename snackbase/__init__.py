from snackbase.client import SnackBaseClient
from snackbase.config import ClientConfig
from snackbase.dispatcher import Request, Response
from snackbase.errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
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
from snackbase.events import AuthEvents
from snackbase.http_client import HttpClient
from snackbase.storage import FileStorage, MemoryStorage, StorageBackend
from snackbase.tokens import TokenState, TokenStore

__all__ = [
    "AuthEvents",
    "AuthenticationError",
    "AuthorizationError",
    "ClientConfig",
    "ConfigurationError",
    "ConflictError",
    "FileStorage",
    "HttpClient",
    "MemoryStorage",
    "NetworkError",
    "NotFoundError",
    "RateLimitError",
    "Request",
    "RequestTimeoutError",
    "Response",
    "ServerError",
    "SnackBaseClient",
    "SnackBaseError",
    "StorageBackend",
    "TokenState",
    "TokenStore",
    "UnexpectedError",
    "ValidationError",
]
