import asyncio
from pathlib import Path
from typing import Any, Callable

import httpx
from pydantic import ValidationError as PydanticValidationError

from snackbase.config import (
    DEFAULT_STORAGE_KEY,
    SNACKBASE_API_KEY,
    SNACKBASE_URL,
    ClientConfig,
    StorageBackendName,
    detect_storage_backend,
)
from snackbase.errors import ConfigurationError
from snackbase.events import AuthEvent, AuthEvents, Listener
from snackbase.http_client import ErrorHook, HttpClient
from snackbase.retry import Sleep
from snackbase.services.auth import AuthService
from snackbase.storage import StorageBackend, create_storage
from snackbase.tokens import TokenStore


def _format_config_error(error: PydanticValidationError) -> str:
    problems = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "config"
        message = item["msg"].removeprefix("Value error, ")
        problems.append(f"{field}: {message}")
    return "Invalid SnackBase client configuration: " + "; ".join(problems)


class SnackBaseClient:
    """Entry point owning one configuration, token store and connection pool.

    Nothing is shared between instances; build one per backend and pass it
    to whatever needs it.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: int = 30000,
        max_retries: int = 3,
        retry_delay: int = 1000,
        max_retry_delay: int = 30000,
        storage_backend: StorageBackendName | None = None,
        storage_path: Path | str | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        storage: StorageBackend | None = None,
        api_key: str | None = None,
        default_account: str | None = None,
        enable_auto_refresh: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
        on_auth_error: ErrorHook | None = None,
        on_network_error: ErrorHook | None = None,
        on_rate_limit_error: ErrorHook | None = None,
    ) -> None:
        options: dict[str, Any] = {
            "base_url": base_url,
            "timeout": timeout,
            "max_retries": max_retries,
            "retry_delay": retry_delay,
            "max_retry_delay": max_retry_delay,
            "storage_backend": storage_backend or detect_storage_backend(),
            "storage_key": storage_key,
            "api_key": api_key,
            "default_account": default_account,
            "enable_auto_refresh": enable_auto_refresh,
        }
        if storage_path is not None:
            options["storage_path"] = storage_path
        try:
            self.config = ClientConfig(**options)
        except PydanticValidationError as e:
            raise ConfigurationError(_format_config_error(e)) from e

        if storage is not None and not isinstance(storage, StorageBackend):
            raise ConfigurationError("storage must provide get(key), set(key, value) and remove(key)")

        self.tokens = TokenStore(storage or create_storage(self.config), self.config.storage_key)
        self.events = AuthEvents()
        self.http = HttpClient(
            self.config,
            self.tokens,
            events=self.events,
            transport=transport,
            sleep=sleep,
            on_auth_error=on_auth_error,
            on_network_error=on_network_error,
            on_rate_limit_error=on_rate_limit_error,
        )
        self.auth = AuthService(self.http, self.tokens, self.config.default_account, self.events)

    @classmethod
    def from_env(cls, **overrides: Any) -> "SnackBaseClient":
        """Build a client from ``SNACKBASE_URL`` and ``SNACKBASE_API_KEY``."""
        base_url = overrides.pop("base_url", None) or SNACKBASE_URL
        if not base_url:
            raise ConfigurationError("SNACKBASE_URL environment variable is required")
        overrides.setdefault("api_key", SNACKBASE_API_KEY)
        return cls(base_url, **overrides)

    def on(self, event: AuthEvent, listener: Listener) -> Callable[[], None]:
        """Subscribe to ``auth:login``, ``auth:logout``, ``auth:refresh`` or ``auth:error``."""
        return self.events.on(event, listener)

    def off(self, event: AuthEvent, listener: Listener) -> None:
        self.events.off(event, listener)

    async def __aenter__(self) -> "SnackBaseClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def get(self, path: str, **options: Any):
        return await self.http.get(path, **options)

    async def post(self, path: str, body: Any = None, **options: Any):
        return await self.http.post(path, body, **options)

    async def put(self, path: str, body: Any = None, **options: Any):
        return await self.http.put(path, body, **options)

    async def patch(self, path: str, body: Any = None, **options: Any):
        return await self.http.patch(path, body, **options)

    async def delete(self, path: str, **options: Any):
        return await self.http.delete(path, **options)
