"""SQL text, shell snippets and log locations used by the pod actions."""

from __future__ import annotations

import shlex

CLICKHOUSE_LOG_PATH = "/var/log/clickhouse-server/clickhouse-server.log"
POSTGRES_LOG_GLOB = "/var/log/postgresql/*"
LATEST_POSTGRES_LOG = f'cat "$(ls -t {POSTGRES_LOG_GLOB} | head -1)"'

UNSUPPORTED_PACKAGE_MANAGER_EXIT = 3

CLICKHOUSE_CRASH_PATTERN = r"Fatal\|Critical\|ERROR"
POSTGRES_CRASH_PATTERN = r"FATAL\|ERROR"

# (lines after, lines before) around each crash match.
CLICKHOUSE_CRASH_CONTEXT = (50, 20)
POSTGRES_CRASH_CONTEXT = (20, 10)

HEALTH_SYSTEM_TABLES: tuple[str, ...] = ("tables", "databases", "processes")
PING_OK_RESPONSE = "Ok."

CONNECTIVITY_PROBE = "SELECT 1"

SCHEMA_REPORT = """SELECT
    database AS Database,
    name AS Table,
    engine AS Engine,
    formatReadableSize(total_bytes) AS Size,
    total_rows AS Rows,
    partition_key AS PartitionKey,
    sorting_key AS SortingKey
FROM system.tables
WHERE database NOT IN ('system', 'information_schema', 'INFORMATION_SCHEMA')
ORDER BY database, name"""

SCHEMA_COUNT = (
    "SELECT count() FROM system.tables "
    "WHERE database NOT IN ('system', 'information_schema', 'INFORMATION_SCHEMA')"
)

DATA_REPORT = """SELECT
    database AS Database,
    table AS Table,
    formatReadableSize(sum(bytes)) AS Size,
    sum(rows) AS Rows,
    count() AS Parts,
    max(modification_time) AS LastModified
FROM system.parts
WHERE active
GROUP BY database, table
ORDER BY database, table"""

DATA_COUNT = "SELECT count() FROM system.parts WHERE active"

REPLICA_ISSUES = """SELECT
    database,
    table,
    is_leader,
    is_readonly,
    replica_is_active
FROM system.replicas
WHERE replica_is_active = 0 OR is_readonly = 1"""


def grant_report(user: str) -> str:
    return f"SHOW GRANTS FOR {quote_identifier(user)}"


def grant_count(user: str) -> str:
    return f"SELECT count() FROM system.grants WHERE user_name = {quote_literal(user)}"


def quote_identifier(value: str) -> str:
    return "`" + value.replace("\\", "\\\\").replace("`", "\\`") + "`"


def quote_literal(value: str) -> str:
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def install_tools_script(packages: list[str]) -> str:
    names = " ".join(shlex.quote(package) for package in packages)
    return (
        "if command -v apt-get >/dev/null 2>&1; then "
        f"apt-get update && apt-get install -y {names}; "
        "elif command -v yum >/dev/null 2>&1; then "
        f"yum install -y {names}; "
        "else "
        f'echo "Unsupported package manager"; exit {UNSUPPORTED_PACKAGE_MANAGER_EXIT}; '
        "fi"
    )

