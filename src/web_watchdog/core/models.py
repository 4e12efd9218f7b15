from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, StrEnum
from types import MappingProxyType


class HttpMethod(StrEnum):
    GET = "GET"
    POST = "POST"
    HEAD = "HEAD"


def _frozen_mapping(value: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(value))


@dataclass(frozen=True, slots=True)
class Observation:
    """One captured request/response exchange submitted for tracking."""

    request_url: str
    request_method: HttpMethod
    response_url: str
    response_body: str
    request_headers: Mapping[str, str] = field(default_factory=dict)
    request_cookies: Mapping[str, str] = field(default_factory=dict)
    response_headers: Mapping[str, str] = field(default_factory=dict)
    response_cookies: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        try:
            method = HttpMethod(str(self.request_method).upper())
        except ValueError:
            msg = f"unsupported request_method: {self.request_method!r}"
            raise ValueError(msg) from None
        object.__setattr__(self, "request_method", method)
        for name in ("request_headers", "request_cookies", "response_headers", "response_cookies"):
            object.__setattr__(self, name, _frozen_mapping(getattr(self, name)))

    @property
    def resource_id(self) -> str:
        return self.request_url


class WatchOutcome(Enum):
    INSERTED = "inserted"
    TOUCHED = "touched"
    FAILED = "failed"


class WatchErrorKind(Enum):
    NOT_INITIALIZED = "not_initialized"
    CHECKSUM = "checksum"
    SERIALIZATION = "serialization"
    INVALID_IDENTIFIER = "invalid_identifier"
    STORE = "store"
    LOCK_TIMEOUT = "lock_timeout"


@dataclass(frozen=True, slots=True)
class WatchResult:
    outcome: WatchOutcome
    record_id: int | None = None
    error: WatchErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not WatchOutcome.FAILED

    @classmethod
    def failed(cls, error: WatchErrorKind) -> WatchResult:
        return cls(outcome=WatchOutcome.FAILED, error=error)
