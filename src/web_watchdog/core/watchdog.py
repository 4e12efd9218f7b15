from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from web_watchdog.errors import LockTimeoutError, StoreOpenError
from web_watchdog.observability import get_logger
from web_watchdog.storage import (
    Database,
    FileStore,
    MemoryStore,
    ResourceLogRepository,
    ResourceRepository,
    ResourceSnapshot,
)

from .checksum import compute_request_checksum, compute_response_checksum
from .models import WatchErrorKind, WatchOutcome, WatchResult

if TYPE_CHECKING:
    from collections.abc import Iterator

    from web_watchdog.storage import ResourceLogEntry, ResourceRecord, StoreLocation

    from .checksum import RequestChecksum, ResponseChecksum
    from .models import Observation

logger = get_logger(__name__)


class _ChecksumError(Exception):
    pass


class Watchdog:
    """Records distinct states of observed web resources.

    Every store-touching call runs under one exclusive guard, so calls are
    totally ordered. A repeated observation only refreshes ``updateTime`` of
    the existing record; a changed request shape or response yields a new one.
    """

    def __init__(
        self,
        store: StoreLocation | None = None,
        *,
        request_checksum: RequestChecksum | None = None,
        response_checksum: ResponseChecksum | None = None,
        record_history: bool = False,
        lock_timeout: float | None = None,
    ) -> None:
        if lock_timeout is not None and lock_timeout <= 0:
            msg = "lock_timeout must be positive"
            raise ValueError(msg)
        self._location = store
        self._request_checksum: RequestChecksum = request_checksum or compute_request_checksum
        self._response_checksum: ResponseChecksum = response_checksum or compute_response_checksum
        self._record_history = record_history
        self._lock_timeout = lock_timeout
        self._lock = threading.Lock()
        self._db: Database | None = None
        self._records: ResourceRepository | None = None
        self._history: ResourceLogRepository | None = None

    @property
    def location(self) -> StoreLocation | None:
        return self._location

    @property
    def is_open(self) -> bool:
        return self._db is not None and self._db.is_open

    def set_request_checksum_strategy(self, strategy: RequestChecksum | None) -> None:
        with self._guard():
            self._request_checksum = strategy or compute_request_checksum

    def set_response_checksum_strategy(self, strategy: ResponseChecksum | None) -> None:
        with self._guard():
            self._response_checksum = strategy or compute_response_checksum

    def init_with_file(self, path: str | Path) -> bool:
        return self._initialize(FileStore(Path(path)))

    def init_with_in_memory(self) -> bool:
        return self._initialize(MemoryStore())

    def init(self) -> bool:
        location = self._location
        if location is None:
            logger.warning("store_location_missing", fallback="memory")
            location = MemoryStore()
        return self._initialize(location)

    def close(self) -> bool:
        try:
            with self._guard():
                if self._db is None:
                    return True
                if isinstance(self._db.location, MemoryStore):
                    logger.warning("memory_store_discarded")
                self._db.close()
                self._detach()
        except LockTimeoutError:
            logger.warning("store_close_failed", reason="lock_timeout")
            return False
        except sqlite3.Error as exc:
            logger.error("store_close_failed", error=str(exc))
            return False
        logger.info("store_closed")
        return True

    def watch(self, observation: Observation) -> bool:
        return self.watch_detailed(observation).ok

    def watch_detailed(self, observation: Observation) -> WatchResult:
        log = logger.bind(resource_id=observation.resource_id, method=str(observation.request_method))

        try:
            snapshot = self._build_snapshot(observation)
        except _ChecksumError:
            log.exception("checksum_failed")
            return WatchResult.failed(WatchErrorKind.CHECKSUM)
        except (TypeError, ValueError) as exc:
            log.warning("serialization_failed", error=str(exc))
            return WatchResult.failed(WatchErrorKind.SERIALIZATION)

        try:
            with self._guard():
                result = self._record(snapshot)
        except LockTimeoutError:
            log.warning("watch_failed", error=WatchErrorKind.LOCK_TIMEOUT.value)
            return WatchResult.failed(WatchErrorKind.LOCK_TIMEOUT)
        except sqlite3.Error as exc:
            log.error("watch_failed", error=WatchErrorKind.STORE.value, detail=str(exc))
            return WatchResult.failed(WatchErrorKind.STORE)

        if result.outcome is WatchOutcome.INSERTED:
            log.info("record_inserted", record_id=result.record_id, checksum=snapshot.checksum)
        elif result.outcome is WatchOutcome.TOUCHED:
            log.debug("record_touched", record_id=result.record_id)
        else:
            log.warning("watch_failed", error=result.error.value if result.error else None)
        return result

    def records(self, resource_id: str) -> list[ResourceRecord]:
        with self._guard():
            if self._records is None:
                return []
            return self._records.list_by_resource_id(resource_id)

    def history(self, resource_id: str) -> list[ResourceLogEntry]:
        with self._guard():
            if self._history is None:
                return []
            return self._history.list_by_resource_id(resource_id)

    @contextmanager
    def _guard(self) -> Iterator[None]:
        timeout = -1 if self._lock_timeout is None else self._lock_timeout
        if not self._lock.acquire(timeout=timeout):
            msg = f"store guard not acquired within {self._lock_timeout}s"
            raise LockTimeoutError(msg)
        try:
            yield
        finally:
            self._lock.release()

    def _initialize(self, location: StoreLocation) -> bool:
        try:
            with self._guard():
                if self._db is not None and self._db.location != location:
                    self._db.close()
                    self._detach()
                if self._db is None:
                    self._db = Database(location)
                self._location = location
                try:
                    self._db.initialize()
                except StoreOpenError:
                    self._detach()
                    raise
                self._records = ResourceRepository(self._db)
                self._history = ResourceLogRepository(self._db)
        except LockTimeoutError:
            logger.warning("store_init_failed", reason="lock_timeout")
            return False
        except sqlite3.Error as exc:
            logger.error("store_init_failed", error=str(exc))
            return False
        logger.info("store_initialized", store=_describe(location), record_history=self._record_history)
        return True

    def _detach(self) -> None:
        self._db = None
        self._records = None
        self._history = None

    def _build_snapshot(self, observation: Observation) -> ResourceSnapshot:
        try:
            query_checksum = self._request_checksum(
                observation.request_url,
                str(observation.request_method),
                observation.request_headers,
                observation.request_cookies,
            )
            checksum = self._response_checksum(
                observation.response_url,
                observation.response_body,
                observation.response_headers,
                observation.response_cookies,
            )
        except Exception as exc:
            raise _ChecksumError from exc

        if not isinstance(query_checksum, str) or not isinstance(checksum, str) or not query_checksum or not checksum:
            msg = "checksum strategies must return a non-empty str"
            raise _ChecksumError(msg)

        query = {
            "url": observation.request_url,
            "method": str(observation.request_method),
            "headers": dict(observation.request_headers),
            "cookies": dict(observation.request_cookies),
            "response_url": observation.response_url,
        }
        header = _serialize(dict(observation.response_headers))
        cookie = _serialize(dict(observation.response_cookies))
        serialized_query = _serialize(query)
        # sqlite3 binds text as strict UTF-8; lone surrogates must fail here
        for text in (observation.response_body, header, cookie, serialized_query):
            text.encode("utf-8")
        return ResourceSnapshot(
            resource_id=observation.resource_id,
            content=observation.response_body,
            header=header,
            cookie=cookie,
            checksum=checksum,
            query=serialized_query,
            query_checksum=query_checksum,
        )

    def _record(self, snapshot: ResourceSnapshot) -> WatchResult:
        if self._db is None or self._records is None or self._history is None:
            return WatchResult.failed(WatchErrorKind.NOT_INITIALIZED)

        now = datetime.now(UTC)
        key = (snapshot.resource_id, snapshot.checksum, snapshot.query_checksum)
        with self._db.transaction():
            record_id = self._records.find_id(*key)
            if record_id is None:
                record_id = self._records.insert(snapshot, now=now)
                if record_id is None:
                    # another writer recorded the same state first
                    touched = self._records.touch(*key, now=now)
                    record_id = self._records.find_id(*key) if touched else None
                    outcome = WatchOutcome.TOUCHED
                else:
                    outcome = WatchOutcome.INSERTED
            else:
                outcome = WatchOutcome.TOUCHED if self._records.touch(*key, now=now) else WatchOutcome.FAILED

            if outcome is WatchOutcome.FAILED or record_id is None or record_id <= 0:
                return WatchResult.failed(WatchErrorKind.INVALID_IDENTIFIER)
            if self._record_history:
                self._history.add(snapshot, now=now)
        return WatchResult(outcome=outcome, record_id=record_id)


def _serialize(value: object) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def _describe(location: StoreLocation) -> str:
    if isinstance(location, FileStore):
        return str(location.path)
    return "memory"
