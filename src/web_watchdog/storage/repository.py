from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from .models import ResourceLogEntry, ResourceRecord, ResourceSnapshot
from .sql import TARGET_LOG_TABLE, TARGET_TABLE

if TYPE_CHECKING:
    import sqlite3

    from .database import Database


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        # CURRENT_TIMESTAMP defaults are written in UTC without an offset
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _snapshot_params(snapshot: ResourceSnapshot) -> tuple[object, ...]:
    return (
        snapshot.resource_id,
        snapshot.content,
        snapshot.header,
        snapshot.cookie,
        snapshot.checksum,
        snapshot.query,
        snapshot.query_checksum,
        snapshot.flag,
    )


class ResourceRepository:
    """Data access for the deduplicated ``target`` table."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def find_id(self, resource_id: str, checksum: str, query_checksum: str) -> int | None:
        row = self._db.execute(
            f"""
            SELECT id FROM {TARGET_TABLE}
            WHERE resourceId = ? AND resourceChecksum = ? AND resourceQueryChecksum = ?
            """,
            (resource_id, checksum, query_checksum),
        ).fetchone()
        return int(row["id"]) if row else None

    def insert(self, snapshot: ResourceSnapshot, *, now: datetime) -> int | None:
        """Insert a new state; returns ``None`` when the state is already recorded."""
        timestamp = now.isoformat()
        cursor = self._db.execute(
            f"""
            INSERT INTO {TARGET_TABLE} (
                resourceId,
                resourceContent,
                resourceHeader,
                resourceCookie,
                resourceChecksum,
                resourceQuery,
                resourceQueryChecksum,
                flag,
                createTime,
                updateTime
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(resourceId, resourceChecksum, resourceQueryChecksum) DO NOTHING
            """,
            (*_snapshot_params(snapshot), timestamp, timestamp),
        )
        if cursor.rowcount != 1:
            return None
        return cursor.lastrowid

    def touch(self, resource_id: str, checksum: str, query_checksum: str, *, now: datetime) -> bool:
        cursor = self._db.execute(
            f"""
            UPDATE {TARGET_TABLE} SET updateTime = ?
            WHERE resourceId = ? AND resourceChecksum = ? AND resourceQueryChecksum = ?
            """,
            (now.isoformat(), resource_id, checksum, query_checksum),
        )
        return cursor.rowcount > 0

    def get(self, record_id: int) -> ResourceRecord | None:
        row = self._db.execute(f"SELECT * FROM {TARGET_TABLE} WHERE id = ?", (record_id,)).fetchone()
        return self._row_to_record(row) if row else None

    def list_by_resource_id(self, resource_id: str) -> list[ResourceRecord]:
        rows = self._db.execute(
            f"SELECT * FROM {TARGET_TABLE} WHERE resourceId = ? ORDER BY id",
            (resource_id,),
        ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def count(self) -> int:
        row = self._db.execute(f"SELECT COUNT(*) AS total FROM {TARGET_TABLE}").fetchone()
        return int(row["total"])

    def _row_to_record(self, row: sqlite3.Row) -> ResourceRecord:
        return ResourceRecord(
            id=row["id"],
            resource_id=row["resourceId"],
            content=row["resourceContent"],
            header=row["resourceHeader"],
            cookie=row["resourceCookie"],
            checksum=row["resourceChecksum"],
            query=row["resourceQuery"],
            query_checksum=row["resourceQueryChecksum"],
            flag=row["flag"],
            create_time=_parse_time(row["createTime"]),
            update_time=_parse_time(row["updateTime"]),
        )


class ResourceLogRepository:
    """Append-only history of every observation."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def add(self, snapshot: ResourceSnapshot, *, now: datetime) -> int:
        cursor = self._db.execute(
            f"""
            INSERT INTO {TARGET_LOG_TABLE} (
                resourceId,
                resourceContent,
                resourceHeader,
                resourceCookie,
                resourceChecksum,
                resourceQuery,
                resourceQueryChecksum,
                flag,
                timestamp
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (*_snapshot_params(snapshot), now.isoformat()),
        )
        return int(cursor.lastrowid or 0)

    def list_by_resource_id(self, resource_id: str) -> list[ResourceLogEntry]:
        rows = self._db.execute(
            f"""
            SELECT * FROM {TARGET_LOG_TABLE}
            WHERE resourceId = ?
            ORDER BY timestamp DESC, id DESC
            """,
            (resource_id,),
        ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def _row_to_entry(self, row: sqlite3.Row) -> ResourceLogEntry:
        return ResourceLogEntry(
            id=row["id"],
            resource_id=row["resourceId"],
            content=row["resourceContent"],
            header=row["resourceHeader"],
            cookie=row["resourceCookie"],
            checksum=row["resourceChecksum"],
            query=row["resourceQuery"],
            query_checksum=row["resourceQueryChecksum"],
            flag=row["flag"],
            timestamp=_parse_time(row["timestamp"]),
        )
