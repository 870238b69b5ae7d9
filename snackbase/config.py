import os
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

SNACKBASE_URL = os.environ.get("SNACKBASE_URL")
SNACKBASE_API_KEY = os.environ.get("SNACKBASE_API_KEY")
SNACKBASE_LOG_LEVEL = os.environ.get("SNACKBASE_LOG_LEVEL", "WARNING")

DEFAULT_STORAGE_PATH = Path(
    os.environ.get("SNACKBASE_STORAGE_PATH", str(Path.home() / ".snackbase" / "auth.json"))
)
DEFAULT_STORAGE_KEY = "sb_auth_state"

StorageBackendName = Literal["memory", "file"]


class ClientConfig(BaseModel):
    """Immutable per-client settings. Times are in milliseconds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str
    timeout: int = Field(30000, description="Request timeout; 0 disables it")
    max_retries: int = 3
    retry_delay: int = 1000
    max_retry_delay: int = 30000
    storage_backend: StorageBackendName = "memory"
    storage_path: Path = DEFAULT_STORAGE_PATH
    storage_key: str = DEFAULT_STORAGE_KEY
    api_key: str | None = None
    default_account: str | None = None
    enable_auto_refresh: bool = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        if not value:
            raise ValueError("baseUrl is required")
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("baseUrl must be a valid absolute http(s) URL")
        return value.rstrip("/")

    @field_validator("timeout", "max_retries", "retry_delay", "max_retry_delay")
    @classmethod
    def validate_non_negative(cls, value: int, info: ValidationInfo) -> int:
        if value < 0:
            raise ValueError(f"{info.field_name} must be a non-negative number")
        return value

    @property
    def timeout_seconds(self) -> float | None:
        return self.timeout / 1000 if self.timeout else None


def detect_storage_backend() -> StorageBackendName:
    """Use file persistence when a storage path is configured in the environment."""
    if os.environ.get("SNACKBASE_STORAGE_PATH"):
        return "file"
    return "memory"
