"""Errors raised by the watchdog core."""

from __future__ import annotations


class WatchdogError(Exception):
    """Base class for watchdog errors."""


class StoreOpenError(WatchdogError):
    """Raised when the backing store cannot be opened at all.

    Nothing can be recorded without a store, so callers should treat this as
    unrecoverable and decide their own exit policy.
    """


class LockTimeoutError(WatchdogError):
    """Raised when the store guard could not be acquired within the configured wait."""
