from .checksum import (
    RequestChecksum,
    ResponseChecksum,
    compute_request_checksum,
    compute_response_checksum,
    ignoring_response_headers,
)
from .models import HttpMethod, Observation, WatchErrorKind, WatchOutcome, WatchResult
from .watchdog import Watchdog

__all__ = [
    "HttpMethod",
    "Observation",
    "RequestChecksum",
    "ResponseChecksum",
    "WatchErrorKind",
    "WatchOutcome",
    "WatchResult",
    "Watchdog",
    "compute_request_checksum",
    "compute_response_checksum",
    "ignoring_response_headers",
]
