from __future__ import annotations

import json
import threading
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from freezegun import freeze_time

from tests.test_utils.factories import ObservationFactory
from web_watchdog.core import Watchdog, WatchErrorKind, WatchOutcome, compute_response_checksum
from web_watchdog.errors import StoreOpenError
from web_watchdog.storage import FileStore, MemoryStore, ResourceRepository

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path


# ============================================================================
# Initialization
# ============================================================================


def test_init_without_location_falls_back_to_memory() -> None:
    watchdog = Watchdog()

    assert watchdog.init() is True
    assert watchdog.location == MemoryStore()
    assert watchdog.is_open is True
    watchdog.close()


def test_init_uses_configured_file_location(tmp_path: Path) -> None:
    path = tmp_path / "store.sqlite3"
    watchdog = Watchdog(FileStore(path))

    assert watchdog.init() is True
    assert path.exists()
    watchdog.close()


def test_repeated_init_keeps_in_memory_data(memory_watchdog: Watchdog) -> None:
    observation = ObservationFactory.build()
    assert memory_watchdog.watch(observation)

    assert memory_watchdog.init_with_in_memory() is True
    assert memory_watchdog.init() is True

    assert len(memory_watchdog.records(observation.resource_id)) == 1


def test_init_with_unopenable_file_raises_store_open_error(tmp_path: Path) -> None:
    watchdog = Watchdog()

    with pytest.raises(StoreOpenError):
        watchdog.init_with_file(tmp_path / "missing-dir" / "store.sqlite3")

    assert watchdog.is_open is False
    assert watchdog.watch_detailed(ObservationFactory.build()).error is WatchErrorKind.NOT_INITIALIZED


def test_lock_timeout_must_be_positive() -> None:
    with pytest.raises(ValueError, match="lock_timeout must be positive"):
        Watchdog(lock_timeout=0)


# ============================================================================
# watch()
# ============================================================================


def test_first_observation_inserts_one_record(memory_watchdog: Watchdog) -> None:
    observation = ObservationFactory.build()

    result = memory_watchdog.watch_detailed(observation)

    assert result.outcome is WatchOutcome.INSERTED
    assert result.record_id is not None
    assert len(memory_watchdog.records("https://example.com")) == 1


def test_repeated_observation_touches_only_update_time(memory_watchdog: Watchdog) -> None:
    observation = ObservationFactory.build(response_body="<html>v1</html>")
    first_seen = datetime(2025, 1, 1, tzinfo=UTC)

    with freeze_time(first_seen):
        first = memory_watchdog.watch_detailed(observation)
    with freeze_time(first_seen + timedelta(hours=1)):
        second = memory_watchdog.watch_detailed(observation)

    assert first.outcome is WatchOutcome.INSERTED
    assert second.outcome is WatchOutcome.TOUCHED
    assert second.record_id == first.record_id

    [record] = memory_watchdog.records(observation.resource_id)
    assert record.create_time == first_seen
    assert record.update_time == first_seen + timedelta(hours=1)
    assert record.content == "<html>v1</html>"


def test_changed_body_creates_second_record(memory_watchdog: Watchdog) -> None:
    assert memory_watchdog.watch(ObservationFactory.build(response_body=""))
    assert memory_watchdog.watch(ObservationFactory.build(response_body="changed"))

    records = memory_watchdog.records("https://example.com")

    assert len(records) == 2
    assert {record.content for record in records} == {"", "changed"}
    assert len({record.checksum for record in records}) == 2
    assert len({record.query_checksum for record in records}) == 1


def test_changed_request_shape_creates_second_record(memory_watchdog: Watchdog) -> None:
    assert memory_watchdog.watch(ObservationFactory.build(request_headers={"Accept-Language": "en"}))
    assert memory_watchdog.watch(ObservationFactory.build(request_headers={"Accept-Language": "zh-TW"}))

    records = memory_watchdog.records("https://example.com")

    assert len(records) == 2
    assert len({record.query_checksum for record in records}) == 2


def test_header_order_does_not_create_new_record(memory_watchdog: Watchdog) -> None:
    assert memory_watchdog.watch(ObservationFactory.build(response_headers={"A": "1", "B": "2"}))
    assert memory_watchdog.watch(ObservationFactory.build(response_headers={"B": "2", "A": "1"}))

    assert len(memory_watchdog.records("https://example.com")) == 1


def test_new_redirect_target_creates_second_record(memory_watchdog: Watchdog) -> None:
    assert memory_watchdog.watch(ObservationFactory.build(response_url="https://example.com/a"))
    assert memory_watchdog.watch(ObservationFactory.build(response_url="https://example.com/b"))

    assert len(memory_watchdog.records("https://example.com")) == 2


def test_record_stores_serialized_blobs(memory_watchdog: Watchdog) -> None:
    observation = ObservationFactory.build(
        request_headers={"Accept": "text/html"},
        request_cookies={"sid": "1"},
        response_headers={"Content-Type": "text/html"},
        response_cookies={"seen": "yes"},
        response_url="https://example.com/landing",
    )
    assert memory_watchdog.watch(observation)

    [record] = memory_watchdog.records(observation.resource_id)

    assert json.loads(record.header or "") == {"Content-Type": "text/html"}
    assert json.loads(record.cookie or "") == {"seen": "yes"}
    assert json.loads(record.query or "") == {
        "url": "https://example.com",
        "method": "GET",
        "headers": {"Accept": "text/html"},
        "cookies": {"sid": "1"},
        "response_url": "https://example.com/landing",
    }
    assert record.flag is None


@pytest.mark.parametrize(
    "overrides",
    [
        pytest.param({"response_body": "bad \udcff byte"}, id="body"),
        pytest.param({"response_headers": {"X-Raw": "\udcff"}}, id="header"),
        pytest.param({"response_cookies": {"sid": "\ud800"}}, id="cookie"),
    ],
)
def test_lone_surrogate_reports_serialization_error(memory_watchdog: Watchdog, overrides: dict[str, object]) -> None:
    result = memory_watchdog.watch_detailed(ObservationFactory.build(**overrides))

    assert result.ok is False
    assert result.error is WatchErrorKind.SERIALIZATION
    assert memory_watchdog.records("https://example.com") == []


def test_conflicting_insert_falls_back_to_touch(memory_watchdog: Watchdog, monkeypatch: pytest.MonkeyPatch) -> None:
    observation = ObservationFactory.build()
    first = memory_watchdog.watch_detailed(observation)

    find_id = ResourceRepository.find_id
    stale_lookups = [None]

    def find_id_missing_once(self: ResourceRepository, *key: str) -> int | None:
        if stale_lookups:
            return stale_lookups.pop()
        return find_id(self, *key)

    monkeypatch.setattr(ResourceRepository, "find_id", find_id_missing_once)

    second = memory_watchdog.watch_detailed(observation)

    assert second.outcome is WatchOutcome.TOUCHED
    assert second.record_id == first.record_id
    assert len(memory_watchdog.records(observation.resource_id)) == 1


def test_watch_after_close_fails_without_reopening(memory_watchdog: Watchdog) -> None:
    observation = ObservationFactory.build()
    assert memory_watchdog.watch(observation)

    assert memory_watchdog.close() is True
    result = memory_watchdog.watch_detailed(observation)

    assert result.ok is False
    assert result.error is WatchErrorKind.NOT_INITIALIZED
    assert memory_watchdog.records(observation.resource_id) == []


def test_reinit_after_close_starts_empty_memory_store(memory_watchdog: Watchdog) -> None:
    observation = ObservationFactory.build()
    assert memory_watchdog.watch(observation)
    memory_watchdog.close()

    assert memory_watchdog.init() is True

    assert memory_watchdog.records(observation.resource_id) == []
    assert memory_watchdog.watch_detailed(observation).outcome is WatchOutcome.INSERTED


def test_close_is_repeatable(memory_watchdog: Watchdog) -> None:
    assert memory_watchdog.close() is True
    assert memory_watchdog.close() is True


# ============================================================================
# Checksum strategies
# ============================================================================


def _body_only(url: str, content: str, headers: Mapping[str, str], cookies: Mapping[str, str]) -> str:
    _ = headers, cookies
    return compute_response_checksum(url, content, {}, {})


def test_response_strategy_can_ignore_headers(memory_watchdog: Watchdog) -> None:
    memory_watchdog.set_response_checksum_strategy(_body_only)

    assert memory_watchdog.watch(ObservationFactory.build(response_headers={"Date": "Mon"}))
    assert memory_watchdog.watch(ObservationFactory.build(response_headers={"Date": "Tue"}))

    assert len(memory_watchdog.records("https://example.com")) == 1


def test_resetting_strategy_restores_default(memory_watchdog: Watchdog) -> None:
    memory_watchdog.set_response_checksum_strategy(_body_only)
    memory_watchdog.set_response_checksum_strategy(None)

    assert memory_watchdog.watch(ObservationFactory.build(response_headers={"Date": "Mon"}))
    assert memory_watchdog.watch(ObservationFactory.build(response_headers={"Date": "Tue"}))

    assert len(memory_watchdog.records("https://example.com")) == 2


def test_request_strategy_injected_at_construction() -> None:
    calls: list[str] = []

    def constant(url: str, method: str, headers: Mapping[str, str], cookies: Mapping[str, str]) -> str:
        _ = headers, cookies
        calls.append(f"{method} {url}")
        return "f" * 64

    watchdog = Watchdog(request_checksum=constant)
    assert watchdog.init_with_in_memory()

    assert watchdog.watch(ObservationFactory.build(request_headers={"X": "1"}))
    assert watchdog.watch(ObservationFactory.build(request_headers={"X": "2"}))

    [record] = watchdog.records("https://example.com")
    assert record.query_checksum == "f" * 64
    assert calls == ["GET https://example.com", "GET https://example.com"]
    watchdog.close()


def test_failing_strategy_reports_checksum_error(memory_watchdog: Watchdog) -> None:
    def broken(url: str, content: str, headers: Mapping[str, str], cookies: Mapping[str, str]) -> str:
        msg = "boom"
        raise RuntimeError(msg)

    memory_watchdog.set_response_checksum_strategy(broken)

    result = memory_watchdog.watch_detailed(ObservationFactory.build())

    assert result.error is WatchErrorKind.CHECKSUM
    assert memory_watchdog.records("https://example.com") == []


def test_serialization_failure_leaves_no_state(memory_watchdog: Watchdog) -> None:
    observation = ObservationFactory.build(response_headers={"X-Raw": b"\x00\x01"})

    result = memory_watchdog.watch_detailed(observation)

    assert result.ok is False
    assert result.error is WatchErrorKind.SERIALIZATION
    assert memory_watchdog.records("https://example.com") == []


# ============================================================================
# History
# ============================================================================


def test_history_disabled_by_default(memory_watchdog: Watchdog) -> None:
    observation = ObservationFactory.build()
    memory_watchdog.watch(observation)
    memory_watchdog.watch(observation)

    assert memory_watchdog.history(observation.resource_id) == []


def test_history_records_every_observation_when_enabled() -> None:
    watchdog = Watchdog(record_history=True)
    assert watchdog.init_with_in_memory()
    observation = ObservationFactory.build()

    watchdog.watch(observation)
    watchdog.watch(observation)
    watchdog.watch(ObservationFactory.build(response_body="changed"))

    history = watchdog.history(observation.resource_id)
    assert len(history) == 3
    assert len(watchdog.records(observation.resource_id)) == 2
    watchdog.close()


# ============================================================================
# Guard
# ============================================================================


def test_bounded_wait_reports_lock_timeout() -> None:
    watchdog = Watchdog(lock_timeout=0.05)
    assert watchdog.init_with_in_memory()
    release = threading.Event()
    acquired = threading.Event()

    def hold_guard() -> None:
        with watchdog._guard():
            acquired.set()
            release.wait(timeout=5)

    holder = threading.Thread(target=hold_guard)
    holder.start()
    try:
        assert acquired.wait(timeout=5)
        result = watchdog.watch_detailed(ObservationFactory.build())
        closed = watchdog.close()
    finally:
        release.set()
        holder.join()

    assert result.error is WatchErrorKind.LOCK_TIMEOUT
    assert closed is False
    assert watchdog.close() is True
