"""Deterministic fingerprints over request shapes and response states."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_SEPARATOR = "\t"


class RequestChecksum(Protocol):
    def __call__(
        self,
        url: str,
        method: str,
        headers: Mapping[str, str],
        cookies: Mapping[str, str],
    ) -> str: ...


class ResponseChecksum(Protocol):
    def __call__(
        self,
        url: str,
        content: str,
        headers: Mapping[str, str],
        cookies: Mapping[str, str],
    ) -> str: ...


def _sorted_pairs(mapping: Mapping[str, str] | None) -> str:
    if not mapping:
        return ""
    return _SEPARATOR.join(f"{key}{_SEPARATOR}{mapping[key]}" for key in sorted(mapping))


def _digest(parts: Iterable[str]) -> str:
    canonical = _SEPARATOR.join(parts)
    return hashlib.sha256(canonical.encode("utf-8", errors="surrogatepass")).hexdigest()


def compute_request_checksum(
    url: str,
    method: str,
    headers: Mapping[str, str],
    cookies: Mapping[str, str],
) -> str:
    return _digest((url, str(method), _sorted_pairs(headers), _sorted_pairs(cookies)))


def compute_response_checksum(
    url: str,
    content: str,
    headers: Mapping[str, str],
    cookies: Mapping[str, str],
) -> str:
    return _digest((url, content, _sorted_pairs(headers), _sorted_pairs(cookies)))


def ignoring_response_headers(names: Iterable[str]) -> ResponseChecksum:
    """Build a response checksum that leaves volatile headers (``Date``, ``Age``...) out."""
    ignored = frozenset(name.lower() for name in names)

    def checksum(
        url: str,
        content: str,
        headers: Mapping[str, str],
        cookies: Mapping[str, str],
    ) -> str:
        kept = {key: value for key, value in headers.items() if key.lower() not in ignored}
        return compute_response_checksum(url, content, kept, cookies)

    return checksum
