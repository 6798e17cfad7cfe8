from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from dbpods.config import Settings, load_settings
from dbpods.engines import ClickHouseClient


def test_defaults_keep_credentials_out_of_code() -> None:
    settings = load_settings()

    assert settings.context == "sentio-sea"
    assert settings.clickhouse_user == "default_viewer"
    assert settings.clickhouse_password is None
    assert settings.max_retries == 3
    assert settings.retry_delay_seconds == 2.0
    assert ClickHouseClient.from_settings(settings).query_argv("SELECT 1") == [
        "clickhouse-client",
        "-u",
        "default_viewer",
        "-q",
        "SELECT 1",
    ]


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DBPODS_CLICKHOUSE_PASSWORD", "  from-env  ")
    monkeypatch.setenv("DBPODS_CONTEXT", "")
    monkeypatch.setenv("DBPODS_TOOLS", '["vim", "less", "procps"]')
    monkeypatch.setenv("DBPODS_RUN_LOG_PATH", "")

    settings = load_settings()

    assert settings.clickhouse_password == "from-env"
    assert settings.context is None
    assert settings.tools == ["vim", "less", "procps"]
    assert settings.run_log_path is None


def test_yaml_config_file_is_loaded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "context: prod-eu\n"
        "clickhouse_password: hunter2\n"
        "max_retries: 5\n"
        "tools: vim less\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("DBPODS_CONFIG", str(config_path))

    settings = load_settings()

    assert settings.context == "prod-eu"
    assert settings.max_retries == 5
    assert settings.tools == ["vim", "less"]
    assert "hunter2" in ClickHouseClient.from_settings(settings).argv()[-1]


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_retries": 0},
        {"retry_delay_seconds": -1},
        {"clickhouse_http_port": 0},
        {"tools": []},
    ],
)
def test_invalid_settings_are_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        Settings(**overrides)  # type: ignore[arg-type]
