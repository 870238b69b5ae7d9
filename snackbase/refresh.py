"""Single-flight access token refresh."""

import asyncio
import enum
import logging
from typing import Awaitable, Callable

from snackbase.errors import AuthenticationError, SnackBaseError, UnexpectedError
from snackbase.events import AuthEvents
from snackbase.tokens import TokenState, TokenStore

logger = logging.getLogger(__name__)

RefreshFunc = Callable[[str], Awaitable[TokenState]]


class RefreshState(enum.Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshCoordinator:
    """Makes sure a wave of 401s produces exactly one refresh call.

    The first request to fail starts the refresh task. Every request that
    fails while it runs waits on the same task and sees the same outcome.
    """

    def __init__(
        self,
        tokens: TokenStore,
        refresh: RefreshFunc,
        events: AuthEvents | None = None,
    ) -> None:
        self.tokens = tokens
        self._refresh = refresh
        self.events = events or AuthEvents()
        self._task: asyncio.Task[SnackBaseError | None] | None = None

    @property
    def state(self) -> RefreshState:
        return RefreshState.IDLE if self._task is None else RefreshState.REFRESHING

    def can_refresh(self) -> bool:
        return self._task is not None or bool(self.tokens.get().refresh_token)

    async def recover(self, error: AuthenticationError, used_token: str | None) -> None:
        """Return once a new access token is stored, otherwise re-raise ``error``.

        ``used_token`` is the access token the failed request carried. If the
        store already holds a different one, a refresh finished while the
        request was in flight and no new refresh is needed.
        """
        current = self.tokens.get().access_token
        if self._task is None and current and current != used_token:
            logger.debug("Access token already replaced; retrying without refresh")
            return
        if self._task is None and not self.tokens.get().refresh_token:
            raise error
        if await self._join() is not None:
            raise error

    async def refresh(self) -> TokenState:
        """Refresh now, or join the refresh already in flight."""
        if self._task is None and not self.tokens.get().refresh_token:
            raise AuthenticationError("No refresh token available")
        failure = await self._join()
        if failure is not None:
            raise failure
        return self.tokens.get()

    async def _join(self) -> SnackBaseError | None:
        if self._task is None:
            refresh_token = self.tokens.get().refresh_token
            self._task = asyncio.create_task(self._run(refresh_token))
        # shield so one abandoned waiter cannot cancel the refresh for the rest
        return await asyncio.shield(self._task)

    async def _run(self, refresh_token: str) -> SnackBaseError | None:
        logger.info("Refreshing access token")
        try:
            new = await self._refresh(refresh_token)
            state = self.tokens.set(new.access_token, new.refresh_token, new.expires_at)
        except Exception as e:
            error = e if isinstance(e, SnackBaseError) else UnexpectedError(e)
            logger.warning("Token refresh failed, clearing session: %s", error)
            self.tokens.clear()
            self.events.emit("auth:error", error)
            return error
        finally:
            self._task = None
        logger.info("Access token refreshed")
        self.events.emit("auth:refresh", state)
        return None
