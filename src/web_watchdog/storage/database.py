from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import TYPE_CHECKING

from web_watchdog.errors import StoreOpenError

from .models import FileStore, StoreLocation
from .sql import SCHEMA_SQL

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

_MEMORY_DSN = ":memory:"


class Database:
    """Owns one SQLite connection for a file-backed or in-memory store.

    The connection is shared across threads; callers serialize access.
    """

    def __init__(self, location: StoreLocation) -> None:
        self._location = location
        self._connection: sqlite3.Connection | None = None
        self._transaction_depth = 0

    @property
    def location(self) -> StoreLocation:
        return self._location

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def connect(self) -> sqlite3.Connection:
        if self._connection is None:
            dsn = self._location.path if isinstance(self._location, FileStore) else _MEMORY_DSN
            try:
                self._connection = sqlite3.connect(dsn, check_same_thread=False)
            except sqlite3.Error as exc:
                msg = f"cannot open store: {dsn}"
                raise StoreOpenError(msg) from exc
            self._connection.row_factory = sqlite3.Row
        return self._connection

    def initialize(self) -> None:
        connection = self.connect()
        connection.executescript(SCHEMA_SQL)
        connection.commit()

    def execute(
        self,
        query: str,
        params: Sequence[object] | None = None,
    ) -> sqlite3.Cursor:
        connection = self.connect()
        cursor = connection.execute(query, params or ())
        if self._transaction_depth == 0:
            connection.commit()
        return cursor

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        connection = self.connect()
        self._transaction_depth += 1
        try:
            yield connection
        except BaseException:
            self._transaction_depth -= 1
            if self._transaction_depth == 0:
                connection.rollback()
            raise
        self._transaction_depth -= 1
        if self._transaction_depth == 0:
            connection.commit()

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            self._transaction_depth = 0
