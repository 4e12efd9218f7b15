from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import httpx
import typer

from web_watchdog.config import ConfigError, load_config
from web_watchdog.core import Watchdog, ignoring_response_headers
from web_watchdog.errors import StoreOpenError
from web_watchdog.fetching import HttpFetcher
from web_watchdog.observability import configure_logging, get_logger
from web_watchdog.runtime import WatchRunner, WatchScheduler

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from web_watchdog.config import AppConfig

logger = get_logger(__name__)

app = typer.Typer(add_completion=False)


@dataclass(frozen=True, slots=True)
class ApplicationComponents:
    config: AppConfig
    watchdog: Watchdog
    client: httpx.AsyncClient
    runner: WatchRunner
    scheduler: WatchScheduler


def build_watchdog(config: AppConfig) -> Watchdog:
    response_checksum = None
    if config.watch.ignore_response_headers:
        response_checksum = ignoring_response_headers(config.watch.ignore_response_headers)
    return Watchdog(
        config.database.location,
        response_checksum=response_checksum,
        record_history=config.database.record_history,
        lock_timeout=config.database.lock_timeout_seconds,
    )


@asynccontextmanager
async def create_application(config_path: Path) -> AsyncIterator[ApplicationComponents]:
    config = load_config(config_path)

    watchdog = build_watchdog(config)
    if not watchdog.init():
        msg = "store schema could not be created"
        raise StoreOpenError(msg)

    client = httpx.AsyncClient(timeout=httpx.Timeout(config.watch.timeout_seconds), follow_redirects=True)
    runner = WatchRunner(config=config, fetcher=HttpFetcher(client), watchdog=watchdog)
    scheduler = WatchScheduler(interval_seconds=config.watch.interval_seconds, runner=runner)

    try:
        yield ApplicationComponents(
            config=config,
            watchdog=watchdog,
            client=client,
            runner=runner,
            scheduler=scheduler,
        )
    finally:
        await client.aclose()
        watchdog.close()


@app.command()
def run(
    config: Annotated[Path, typer.Option("-c", "--config")],
    once: Annotated[bool, typer.Option("--once")] = False,
) -> None:
    """Watch the configured targets, once or on the configured interval."""
    configure_logging()
    try:
        if once:
            asyncio.run(_run_once(config))
        else:
            asyncio.run(_run_scheduler(config))
    except ConfigError as exc:
        logger.error("config_invalid", error=str(exc))
        raise typer.Exit(code=1) from exc
    except StoreOpenError as exc:
        logger.error("store_unavailable", error=str(exc))
        raise typer.Exit(code=1) from exc


@app.command()
def show(
    db: Annotated[Path, typer.Option("--db")],
    url: Annotated[str, typer.Argument()],
) -> None:
    """Print every recorded state of a resource."""
    configure_logging()
    watchdog = Watchdog()
    try:
        if not watchdog.init_with_file(db):
            raise typer.Exit(code=1)
    except StoreOpenError as exc:
        logger.error("store_unavailable", error=str(exc))
        raise typer.Exit(code=1) from exc

    try:
        records = watchdog.records(url)
    finally:
        watchdog.close()

    if not records:
        typer.echo(f"no recorded states for {url}")
        return
    for record in records:
        typer.echo(
            f"{record.id}\t{record.checksum[:12]}\t{record.query_checksum[:12]}\t"
            f"{record.create_time.isoformat()}\t{record.update_time.isoformat()}"
        )


async def _run_once(config_path: Path) -> None:
    async with create_application(config_path) as components:
        await components.runner.check_all()


async def _run_scheduler(config_path: Path) -> None:
    async with create_application(config_path) as components:
        await components.scheduler.start()
        logger.info("scheduler_started", interval_seconds=components.config.watch.interval_seconds)
        try:
            await asyncio.Event().wait()
        finally:
            await components.scheduler.shutdown()


if __name__ == "__main__":
    app()
