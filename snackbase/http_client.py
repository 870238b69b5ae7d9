"""HTTP client facade used by every SnackBase service."""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping, TypeVar

import httpx
from pydantic import ValidationError as PydanticValidationError

from snackbase.config import ClientConfig
from snackbase.dispatcher import Dispatcher, HttpMethod, QueryValue, Request, Response
from snackbase.errors import (
    AuthenticationError,
    NetworkError,
    RateLimitError,
    SnackBaseError,
    UnexpectedError,
)
from snackbase.events import AuthEvents
from snackbase.refresh import RefreshCoordinator
from snackbase.retry import RetryPolicy, Sleep
from snackbase.tokens import TokenState, TokenStore

logger = logging.getLogger(__name__)

AUTH_LOGIN_PATH = "/api/v1/auth/login"
AUTH_REFRESH_PATH = "/api/v1/auth/refresh"

ErrorHook = Callable[[SnackBaseError], None]

T = TypeVar("T")
Interceptor = Callable[[T], T | Awaitable[T]]
RequestInterceptor = Interceptor[Request]
ResponseInterceptor = Interceptor[Response]
ErrorInterceptor = Interceptor[SnackBaseError]


async def _apply(interceptors: list[Interceptor[T]], value: T) -> T:
    for interceptor in interceptors:
        value = interceptor(value)
        if inspect.isawaitable(value):
            value = await value
    return value


class HttpClient:
    """Retry policy, refresh coordinator and dispatcher behind five verbs.

    A request that gets a 401 is retried once after a refresh. Retryable
    failures are re-issued by the retry policy. Any other failure reaches the
    caller as a ``SnackBaseError``, with unrecognised ones wrapped in
    ``UnexpectedError``.
    """

    def __init__(
        self,
        config: ClientConfig,
        tokens: TokenStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
        on_auth_error: ErrorHook | None = None,
        on_network_error: ErrorHook | None = None,
        on_rate_limit_error: ErrorHook | None = None,
        events: AuthEvents | None = None,
    ) -> None:
        self.config = config
        self.tokens = tokens
        self.events = events or AuthEvents()
        self.dispatcher = Dispatcher(config, tokens, transport=transport)
        self.refresher = RefreshCoordinator(tokens, self._refresh_tokens, self.events)
        self.retry = RetryPolicy(
            max_retries=config.max_retries,
            base_delay=config.retry_delay / 1000,
            max_delay=config.max_retry_delay / 1000,
            sleep=sleep,
        )
        self._hooks: list[tuple[type[SnackBaseError], ErrorHook]] = [
            (cls, hook)
            for cls, hook in (
                (AuthenticationError, on_auth_error),
                (NetworkError, on_network_error),
                (RateLimitError, on_rate_limit_error),
            )
            if hook is not None
        ]
        self._request_interceptors: list[RequestInterceptor] = []
        self._response_interceptors: list[ResponseInterceptor] = []
        self._error_interceptors: list[ErrorInterceptor] = []

    def add_request_interceptor(self, interceptor: RequestInterceptor) -> None:
        """Run ``interceptor`` on each request before sending; it returns the request to send."""
        self._request_interceptors.append(interceptor)

    def add_response_interceptor(self, interceptor: ResponseInterceptor) -> None:
        self._response_interceptors.append(interceptor)

    def add_error_interceptor(self, interceptor: ErrorInterceptor) -> None:
        """Run ``interceptor`` on the final error; it returns the error to raise."""
        self._error_interceptors.append(interceptor)

    async def aclose(self) -> None:
        await self.dispatcher.aclose()

    async def _refresh_tokens(self, refresh_token: str) -> TokenState:
        response = await self.dispatcher.send(
            Request("POST", AUTH_REFRESH_PATH, body={"refreshToken": refresh_token})
        )
        data = response.data if isinstance(response.data, dict) else {}
        token = data.get("token") or data.get("access_token")
        if not isinstance(token, str) or not token:
            raise AuthenticationError("Refresh response contained no token", details=data)
        try:
            return TokenState(
                access_token=token,
                refresh_token=data.get("refreshToken") or refresh_token,
                expires_at=data.get("expiresAt"),
            )
        except PydanticValidationError as e:
            raise AuthenticationError("Malformed refresh response", details=data) from e

    def _can_refresh(self, request: Request) -> bool:
        if not self.config.enable_auto_refresh:
            return False
        if request.path.rstrip("/") in (AUTH_LOGIN_PATH, AUTH_REFRESH_PATH):
            return False
        return self.refresher.can_refresh()

    async def _send_once(self, request: Request, auth: dict[str, bool]) -> Response:
        used_token = self.tokens.get().access_token
        try:
            return await self.dispatcher.send(request)
        except AuthenticationError as e:
            if auth["retried"] or not self._can_refresh(request):
                raise
            auth["retried"] = True
            failure = e
        await self.refresher.recover(failure, used_token)
        return await self.dispatcher.send(request)

    def _notify(self, error: SnackBaseError) -> None:
        for cls, hook in self._hooks:
            if isinstance(error, cls):
                hook(error)

    async def send(self, request: Request) -> Response:
        # at most one refresh-and-retry per request, across all retry attempts
        auth = {"retried": False}
        try:
            request = await _apply(self._request_interceptors, request)
            response = await self.retry.run(lambda: self._send_once(request, auth))
            return await _apply(self._response_interceptors, response)
        except Exception as e:
            error = e if isinstance(e, SnackBaseError) else UnexpectedError(e)
            error = await _apply(self._error_interceptors, error)
            self._notify(error)
            if error is e:
                raise
            raise error from e

    async def request(
        self,
        method: HttpMethod,
        path: str,
        *,
        params: Mapping[str, QueryValue] | None = None,
        body: Any = None,
        files: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: int | None = None,
    ) -> Response:
        return await self.send(
            Request(
                method=method,
                path=path,
                params=params,
                body=body,
                files=files,
                data=data,
                headers=dict(headers or {}),
                timeout=timeout,
            )
        )

    async def get(self, path: str, **options: Any) -> Response:
        return await self.request("GET", path, **options)

    async def post(self, path: str, body: Any = None, **options: Any) -> Response:
        return await self.request("POST", path, body=body, **options)

    async def put(self, path: str, body: Any = None, **options: Any) -> Response:
        return await self.request("PUT", path, body=body, **options)

    async def patch(self, path: str, body: Any = None, **options: Any) -> Response:
        return await self.request("PATCH", path, body=body, **options)

    async def delete(self, path: str, **options: Any) -> Response:
        return await self.request("DELETE", path, **options)
