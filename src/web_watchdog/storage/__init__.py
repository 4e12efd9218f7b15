from .database import Database
from .models import (
    FileStore,
    MemoryStore,
    ResourceLogEntry,
    ResourceRecord,
    ResourceSnapshot,
    StoreLocation,
)
from .repository import ResourceLogRepository, ResourceRepository

__all__ = [
    "Database",
    "FileStore",
    "MemoryStore",
    "ResourceLogEntry",
    "ResourceLogRepository",
    "ResourceRecord",
    "ResourceRepository",
    "ResourceSnapshot",
    "StoreLocation",
]
