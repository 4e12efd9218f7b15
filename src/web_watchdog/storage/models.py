from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class FileStore:
    path: Path

    def __post_init__(self) -> None:
        if not str(self.path):
            msg = "path cannot be empty"
            raise ValueError(msg)
        object.__setattr__(self, "path", Path(self.path))


@dataclass(frozen=True, slots=True)
class MemoryStore:
    pass


StoreLocation = FileStore | MemoryStore


@dataclass(frozen=True, slots=True)
class ResourceSnapshot:
    """One observed state of a resource, ready to be written to the store."""

    resource_id: str
    content: str | None
    header: str | None
    cookie: str | None
    checksum: str
    query: str | None
    query_checksum: str
    flag: str | None = None

    def __post_init__(self) -> None:
        if not self.checksum:
            msg = "checksum cannot be empty"
            raise ValueError(msg)
        if not self.query_checksum:
            msg = "query_checksum cannot be empty"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ResourceRecord:
    id: int
    resource_id: str
    content: str | None
    header: str | None
    cookie: str | None
    checksum: str
    query: str | None
    query_checksum: str
    flag: str | None
    create_time: datetime
    update_time: datetime

    @property
    def state_key(self) -> tuple[str, str, str]:
        return (self.resource_id, self.checksum, self.query_checksum)


@dataclass(frozen=True, slots=True)
class ResourceLogEntry:
    id: int
    resource_id: str
    content: str | None
    header: str | None
    cookie: str | None
    checksum: str
    query: str | None
    query_checksum: str
    flag: str | None
    timestamp: datetime
