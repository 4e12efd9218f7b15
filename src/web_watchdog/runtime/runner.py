from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

import httpx

from web_watchdog.core import WatchOutcome
from web_watchdog.observability import get_logger

if TYPE_CHECKING:
    from web_watchdog.config import AppConfig, TargetConfig
    from web_watchdog.core import Observation, Watchdog, WatchResult

logger = get_logger(__name__)


class Fetcher(Protocol):
    async def fetch(self, target: TargetConfig) -> Observation: ...


class WatchRunner:
    """Fetches every configured target once and hands the exchange to the watchdog."""

    def __init__(self, *, config: AppConfig, fetcher: Fetcher, watchdog: Watchdog) -> None:
        self._config = config
        self._fetcher = fetcher
        self._watchdog = watchdog

    async def check_all(self) -> list[WatchResult]:
        targets = self._config.targets
        logger.info("watch_cycle_started", targets=len(targets))

        results: list[WatchResult] = []
        for target in targets:
            try:
                observation = await self._fetcher.fetch(target)
            except httpx.HTTPError as exc:
                logger.warning("target_fetch_failed", url=target.url, error=str(exc))
                continue

            result = await asyncio.to_thread(self._watchdog.watch_detailed, observation)
            results.append(result)
            if result.outcome is WatchOutcome.INSERTED:
                logger.info("state_recorded", url=target.url, record_id=result.record_id)
            elif result.outcome is WatchOutcome.FAILED:
                logger.warning("state_not_recorded", url=target.url, error=result.error.value if result.error else None)

        changed = sum(1 for result in results if result.outcome is WatchOutcome.INSERTED)
        logger.info("watch_cycle_completed", targets=len(targets), recorded=len(results), new_states=changed)
        return results
