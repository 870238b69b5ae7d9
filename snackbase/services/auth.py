"""Login, logout and session endpoints."""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from snackbase.errors import AuthenticationError, SnackBaseError
from snackbase.events import AuthEvents
from snackbase.http_client import AUTH_LOGIN_PATH, HttpClient
from snackbase.tokens import TokenState, TokenStore

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(
        self,
        http: HttpClient,
        tokens: TokenStore,
        default_account: str | None = None,
        events: AuthEvents | None = None,
    ) -> None:
        self.http = http
        self.tokens = tokens
        self.default_account = default_account
        self.events = events or http.events

    async def login(self, email: str, password: str, account: str | None = None) -> dict[str, Any]:
        """Authenticate with email and password and store the returned tokens.

        Falls back to the client's default account when ``account`` is omitted.
        """
        if not email or not password:
            raise ValueError("email and password are required")
        payload = {"email": email, "password": password}
        account = account or self.default_account
        if account:
            payload["account"] = account

        response = await self.http.post(AUTH_LOGIN_PATH, payload)
        data = response.data if isinstance(response.data, dict) else {}
        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise AuthenticationError("Login response contained no token", details=data)

        try:
            state = self.tokens.set(token, data.get("refreshToken"), data.get("expiresAt"))
        except PydanticValidationError as e:
            raise AuthenticationError("Malformed login response", details=data) from e
        logger.info("Logged in as %s", email)
        self.events.emit("auth:login", state)
        return data

    async def register(
        self,
        email: str,
        password: str,
        account_name: str | None = None,
        account_slug: str | None = None,
    ) -> dict[str, Any]:
        if not email or not password:
            raise ValueError("email and password are required")
        payload = {"email": email, "password": password}
        account_name = account_name or self.default_account
        if account_name:
            payload["account_name"] = account_name
        if account_slug:
            payload["account_slug"] = account_slug
        response = await self.http.post("/api/v1/auth/register", payload)
        return response.data

    async def refresh(self) -> TokenState:
        return await self.http.refresher.refresh()

    async def me(self) -> dict[str, Any]:
        response = await self.http.get("/api/v1/auth/me")
        return response.data

    async def logout(self) -> None:
        """Tell the backend, then always drop the local session."""
        try:
            await self.http.post("/api/v1/auth/logout", {})
        except SnackBaseError as e:
            logger.info("Logout request failed, clearing local session anyway: %s", e)
        finally:
            self.tokens.clear()
        self.events.emit("auth:logout")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.tokens.get().access_token)
