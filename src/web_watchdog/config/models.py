from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from web_watchdog.core import HttpMethod
from web_watchdog.storage import FileStore

if TYPE_CHECKING:
    from collections.abc import Mapping

    from web_watchdog.storage import StoreLocation


def _is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc)


class DatabaseConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Path | None = None
    record_history: bool = False
    lock_timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("path", mode="before")
    @classmethod
    def _blank_path_is_memory(cls, value: object) -> object:
        return None if value == "" else value

    @property
    def location(self) -> StoreLocation | None:
        if self.path is None:
            return None
        return FileStore(self.path)


class WatchConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    interval_seconds: int = Field(default=300, gt=0)
    timeout_seconds: float = Field(default=10.0, gt=0)
    ignore_response_headers: tuple[str, ...] = ()


class TargetConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    method: HttpMethod = HttpMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    cookies: dict[str, str] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        if not _is_valid_url(value):
            msg = "must be a valid URL"
            raise ValueError(msg)
        return value

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    targets: list[TargetConfig]

    @field_validator("targets")
    @classmethod
    def _validate_targets(cls, value: list[TargetConfig]) -> list[TargetConfig]:
        if not value:
            msg = "must be non-empty"
            raise ValueError(msg)
        return value

    @classmethod
    def from_raw(cls, data: Mapping[str, object]) -> AppConfig:
        return cls.model_validate(data)
