"""Fingerprint observed web resources and keep a deduplicated catalog of their states."""

from web_watchdog.core import (
    HttpMethod,
    Observation,
    WatchErrorKind,
    WatchOutcome,
    WatchResult,
    Watchdog,
    compute_request_checksum,
    compute_response_checksum,
)
from web_watchdog.errors import LockTimeoutError, StoreOpenError, WatchdogError
from web_watchdog.storage import FileStore, MemoryStore

__all__ = [
    "FileStore",
    "HttpMethod",
    "LockTimeoutError",
    "MemoryStore",
    "Observation",
    "StoreOpenError",
    "WatchErrorKind",
    "WatchOutcome",
    "WatchResult",
    "Watchdog",
    "WatchdogError",
    "compute_request_checksum",
    "compute_response_checksum",
]
