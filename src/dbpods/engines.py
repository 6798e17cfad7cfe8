"""Database client invocations run inside the pods."""

from __future__ import annotations

from dataclasses import dataclass, field

from .config import Settings


@dataclass(frozen=True)
class ClickHouseClient:
    user: str
    password: str | None = field(default=None, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> ClickHouseClient:
        return cls(user=settings.clickhouse_user, password=settings.clickhouse_password)

    def argv(self, *extra: str) -> list[str]:
        command = ["clickhouse-client", "-u", self.user]
        if self.password is not None:
            command.append(f"--password={self.password}")
        command.extend(extra)
        return command

    def query_argv(self, query: str) -> list[str]:
        return self.argv("-q", query)

    def stdin_argv(self, output_format: str) -> list[str]:
        """Client reading one query from stdin."""
        return self.argv("--format", output_format)

    def interactive_argv(self) -> list[str]:
        return self.argv("--multiline")


@dataclass(frozen=True)
class PostgresClient:
    user: str
    database: str

    @classmethod
    def from_settings(cls, settings: Settings) -> PostgresClient:
        return cls(user=settings.postgres_user, database=settings.postgres_database)

    def interactive_argv(self) -> list[str]:
        return ["psql", "-U", self.user, "-d", self.database]
