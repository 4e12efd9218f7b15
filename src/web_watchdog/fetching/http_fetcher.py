from __future__ import annotations

import time
from email.utils import parsedate_to_datetime
from enum import StrEnum
from http import HTTPStatus
from typing import TYPE_CHECKING

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from web_watchdog.core import Observation
from web_watchdog.observability import get_logger

if TYPE_CHECKING:
    from web_watchdog.config import TargetConfig

logger = get_logger(__name__)


class HTTPHeader(StrEnum):
    COOKIE = "Cookie"
    RETRY_AFTER = "Retry-After"


class RetriableHTTPError(httpx.HTTPError):
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"Retriable HTTP error: {response.status_code}")


_DEFAULT_RETRY_AFTER: float = 60.0
_MAX_ATTEMPTS = 3
_exponential_backoff = wait_exponential(multiplier=1, max=60)


def parse_retry_after(header: str) -> float:
    try:
        return max(0.0, float(header))
    except ValueError:
        pass
    try:
        dt = parsedate_to_datetime(header)
        return max(0.0, dt.timestamp() - time.time())
    except (ValueError, TypeError):
        return _DEFAULT_RETRY_AFTER


def wait_strategy(retry_state: RetryCallState) -> float:
    outcome = retry_state.outcome
    if outcome is None:
        return float(_exponential_backoff(retry_state=retry_state))

    exc = outcome.exception()
    if isinstance(exc, RetriableHTTPError) and exc.response.status_code == HTTPStatus.TOO_MANY_REQUESTS:
        retry_after = exc.response.headers.get(HTTPHeader.RETRY_AFTER)
        if retry_after is None:
            return _DEFAULT_RETRY_AFTER
        return parse_retry_after(retry_after)

    return float(_exponential_backoff(retry_state=retry_state))


def _cookie_header(cookies: dict[str, str]) -> str:
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


def _flatten_headers(headers: httpx.Headers) -> dict[str, str]:
    flattened: dict[str, str] = {}
    for name in headers:
        flattened[name] = ", ".join(headers.get_list(name))
    return flattened


class HttpFetcher:
    """Executes a configured target and captures the exchange as an observation."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, target: TargetConfig) -> Observation:
        headers = dict(target.headers)
        if target.cookies:
            headers[HTTPHeader.COOKIE] = _cookie_header(target.cookies)

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type((httpx.TimeoutException, RetriableHTTPError)),
            wait=wait_strategy,
            stop=stop_after_attempt(_MAX_ATTEMPTS),
            reraise=True,
        ):
            with attempt:
                response = await self._client.request(target.method.value, target.url, headers=headers)
                if response.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
                    raise RetriableHTTPError(response)
                if response.status_code == HTTPStatus.TOO_MANY_REQUESTS:
                    raise RetriableHTTPError(response)

        logger.debug("target_fetched", url=target.url, status_code=response.status_code)
        return Observation(
            request_url=target.url,
            request_method=target.method,
            request_headers=target.headers,
            request_cookies=target.cookies,
            response_url=str(response.url),
            response_body=response.text,
            response_headers=_flatten_headers(response.headers),
            response_cookies={cookie.name: cookie.value or "" for cookie in response.cookies.jar},
        )
