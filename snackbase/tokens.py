"""Access/refresh token state and its persistent holder."""

import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from snackbase.config import DEFAULT_STORAGE_KEY
from snackbase.storage import StorageBackend

logger = logging.getLogger(__name__)


class TokenState(BaseModel):
    """Serialized with the backend's camelCase names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str | None = Field(None, alias="token")
    refresh_token: str | None = Field(None, alias="refreshToken")
    expires_at: datetime | None = Field(None, alias="expiresAt")

    @property
    def is_empty(self) -> bool:
        return not (self.access_token or self.refresh_token)


class TokenStore:
    """Owns the client's token state and writes every change through to storage.

    It does not judge expiry; the refresh coordinator decides when tokens
    need replacing.
    """

    def __init__(self, storage: StorageBackend, key: str = DEFAULT_STORAGE_KEY) -> None:
        self._storage = storage
        self._key = key
        self._state = self._hydrate()

    def _hydrate(self) -> TokenState:
        raw = self._storage.get(self._key)
        if not raw:
            return TokenState()
        try:
            return TokenState.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning("Discarding corrupt stored token state: %s", e)
            self._storage.remove(self._key)
            return TokenState()

    def get(self) -> TokenState:
        return self._state

    def set(
        self,
        access_token: str | None,
        refresh_token: str | None = None,
        expires_at: datetime | str | None = None,
    ) -> TokenState:
        if access_token is not None and not isinstance(access_token, str):
            raise TypeError("access_token must be a string")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise TypeError("refresh_token must be a string")
        self._state = TokenState(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
        )
        self._storage.set(self._key, self._state.model_dump_json(by_alias=True))
        return self._state

    def clear(self) -> None:
        self._state = TokenState()
        self._storage.remove(self._key)
