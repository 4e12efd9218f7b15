TARGET_TABLE = "target"
TARGET_LOG_TABLE = "target_log"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {TARGET_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    resourceId TEXT NOT NULL,
    resourceContent TEXT,
    resourceHeader TEXT,
    resourceCookie TEXT,
    resourceChecksum TEXT NOT NULL,
    resourceQuery TEXT,
    resourceQueryChecksum TEXT NOT NULL,
    flag TEXT,
    createTime TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updateTime TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE UNIQUE INDEX IF NOT EXISTS u_target_state
ON {TARGET_TABLE}(resourceId, resourceChecksum, resourceQueryChecksum);

CREATE TABLE IF NOT EXISTS {TARGET_LOG_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    resourceId TEXT NOT NULL,
    resourceContent TEXT,
    resourceHeader TEXT,
    resourceCookie TEXT,
    resourceChecksum TEXT NOT NULL,
    resourceQuery TEXT,
    resourceQueryChecksum TEXT NOT NULL,
    flag TEXT,
    timestamp TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_target_log_resource_time
ON {TARGET_LOG_TABLE}(resourceId, timestamp DESC);
"""
