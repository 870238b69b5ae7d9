"""Single-request dispatch over httpx with response classification."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

import httpx

from snackbase.config import ClientConfig
from snackbase.errors import classify_response, classify_transport_error
from snackbase.tokens import TokenStore

logger = logging.getLogger(__name__)

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
QueryValue = str | int | float | bool | None | list[str | int | float | bool]

_USER_SPECIFIC_PATHS = ("/auth/oauth/", "/auth/saml/")


@dataclass(frozen=True)
class Request:
    """Everything needed to send one request.

    ``files`` or ``data`` switch the body to multipart/form encoding; the
    JSON ``body`` is ignored in that case.
    """

    method: HttpMethod
    path: str
    params: Mapping[str, QueryValue] | None = None
    body: Any = None
    files: Mapping[str, Any] | None = None
    data: Mapping[str, Any] | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: int | None = None

    @property
    def is_multipart(self) -> bool:
        return self.files is not None or self.data is not None


@dataclass
class Response:
    status: int
    headers: httpx.Headers
    data: Any
    request: Request


def _decode_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    content_type = resp.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return resp.json()
        except ValueError:
            return resp.text
    return resp.text


def _encode_params(params: Mapping[str, QueryValue] | None) -> dict[str, Any] | None:
    if not params:
        return None
    encoded: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            encoded[key] = [str(v).lower() if isinstance(v, bool) else v for v in value]
        else:
            encoded[key] = value
    return encoded


class Dispatcher:
    """Sends requests on a shared ``httpx.AsyncClient``.

    Non-2xx responses and transport failures are raised as classified
    ``SnackBaseError`` subclasses.
    """

    def __init__(
        self,
        config: ClientConfig,
        tokens: TokenStore,
        http: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.tokens = tokens
        self.http = http or httpx.AsyncClient(
            base_url=config.base_url,
            transport=transport,
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    def build_headers(self, request: Request) -> dict[str, str]:
        headers: dict[str, str] = {}
        if request.body is not None and not request.is_multipart:
            headers["Content-Type"] = "application/json"

        # credentials only go to the configured backend
        if self.is_backend_url(self.resolve_url(request.path)):
            if self.config.api_key and not any(p in request.path for p in _USER_SPECIFIC_PATHS):
                headers["X-API-Key"] = self.config.api_key

            token = self.tokens.get().access_token or None
            if token:
                headers["Authorization"] = f"Bearer {token}"

        headers.update(request.headers)
        return headers

    def resolve_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.config.base_url}/{path.lstrip('/')}"

    def is_backend_url(self, url: str) -> bool:
        target, base = httpx.URL(url), httpx.URL(self.config.base_url)
        return (target.scheme, target.host, target.port) == (base.scheme, base.host, base.port)

    async def send(self, request: Request) -> Response:
        headers = self.build_headers(request)
        timeout_ms = request.timeout if request.timeout is not None else self.config.timeout
        timeout = timeout_ms / 1000 if timeout_ms else None
        url = self.resolve_url(request.path)

        kwargs: dict[str, Any] = {}
        if request.is_multipart:
            kwargs["files"] = request.files
            kwargs["data"] = request.data
        elif request.body is not None:
            kwargs["json"] = request.body

        started = time.monotonic()
        try:
            resp = await self.http.request(
                request.method,
                url,
                params=_encode_params(request.params),
                headers=headers,
                timeout=timeout,
                **kwargs,
            )
        except httpx.RequestError as e:
            error = classify_transport_error(e, timeout)
            logger.warning("%s %s failed: %s", request.method, request.path, error.message)
            raise error from e

        duration = time.monotonic() - started
        data = _decode_body(resp)
        logger.debug(
            "%s %s -> %d (%.3fs)", request.method, request.path, resp.status_code, duration
        )

        if 200 <= resp.status_code < 300:
            return Response(resp.status_code, resp.headers, data, request)

        raise classify_response(resp.status_code, resp.headers, data)

