"""Tests for CLI commands."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from typer.testing import CliRunner

from fastcomp.cli import app
from fastcomp.config import settings as settings_module
from fastcomp.config.settings import Settings
from fastcomp.db import set_db

runner = CliRunner()


def ago(hours: float) -> str:
    return (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat(timespec="seconds")


def invoke_json(args):
    result = runner.invoke(app, args + ["--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


@pytest.fixture(autouse=True)
def cli_db(temp_db):
    set_db(temp_db)
    yield temp_db
    set_db(None)


@pytest.fixture(autouse=True)
def cli_settings(monkeypatch):
    settings = Settings()
    monkeypatch.setattr(settings_module, "_settings", settings)
    return settings


@pytest.fixture
def completed_fast():
    """A 24h fast from 200 to 197 lb, ended a day ago."""
    fast_id = invoke_json(["fast", "start", "--at", ago(48), "--planned-hours", "24"])["data"]["fast_id"]
    invoke_json(["log", "add", "200", "--at", ago(48), "--tag", "fast_start", "--fast", str(fast_id)])
    invoke_json(["fast", "end", str(fast_id), "--at", ago(24)])
    invoke_json(["log", "add", "197", "--at", ago(24), "--tag", "post_fast", "--fast", str(fast_id)])
    return fast_id


class TestMainCommands:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "fast" in result.output.lower()

    def test_effectiveness_requires_fast_id(self):
        result = runner.invoke(app, ["effectiveness"])
        assert result.exit_code != 0

    def test_config_show(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "retention_window_hours" in result.output


class TestUserCommands:
    def test_set_and_show(self):
        result = runner.invoke(app, ["user", "set", "--sex", "male", "--height-cm", "180", "--age", "40"])
        assert result.exit_code == 0

        data = invoke_json(["user", "show"])["data"]
        assert data["sex"] == "male"
        assert data["height_cm"] == 180.0

    def test_invalid_sex(self):
        result = runner.invoke(app, ["user", "set", "--sex", "robot"])
        assert result.exit_code == 1

    def test_show_without_profile(self):
        result = runner.invoke(app, ["user", "show"])
        assert result.exit_code == 1


class TestFastAndLogCommands:
    def test_fast_lifecycle(self, completed_fast):
        fasts = invoke_json(["fast", "list"])["data"]["fasts"]
        assert [f["fast_id"] for f in fasts] == [completed_fast]
        assert fasts[0]["duration_hours"] == pytest.approx(24.0)

    def test_end_unknown_fast(self):
        result = runner.invoke(app, ["fast", "end", "404"])
        assert result.exit_code == 1

    def test_end_twice(self, completed_fast):
        result = runner.invoke(app, ["fast", "end", str(completed_fast)])
        assert result.exit_code == 1

    def test_log_rejects_unknown_tag(self):
        result = runner.invoke(app, ["log", "add", "180", "--tag", "lunch"])
        assert result.exit_code == 1

    def test_log_rejects_bad_timestamp(self):
        result = runner.invoke(app, ["log", "add", "180", "--at", "soon"])
        assert result.exit_code == 1

    def test_log_rejects_unknown_fast(self):
        result = runner.invoke(app, ["log", "add", "180", "--fast", "404", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["errors"] == ["Fast 404 not found"]

    def test_log_canonical(self):
        entry = invoke_json(["log", "add", "180", "--at", ago(2), "--tag", "morning"])["data"]
        assert entry["is_canonical"] is False

        result = runner.invoke(app, ["log", "canonical", str(entry["entry_id"])])
        assert result.exit_code == 0

        entries = invoke_json(["log", "list"])["data"]["entries"]
        assert entries[0]["is_canonical"] is True
        assert entries[0]["canonical_status"] == "manual"

    def test_log_list_table(self, completed_fast):
        result = runner.invoke(app, ["log", "list"])
        assert result.exit_code == 0
        assert "post_fast" in result.output


class TestAnalyticsCommands:
    def test_effectiveness_json(self, completed_fast):
        response = invoke_json(["effectiveness", str(completed_fast)])
        assert response["success"] is True
        assert response["data"]["status"] == "ok"
        assert response["data"]["total_weight_lost"] == 3.0

    def test_effectiveness_table(self, completed_fast):
        result = runner.invoke(app, ["effectiveness", str(completed_fast)])
        assert result.exit_code == 0
        assert "Fat" in result.output

    def test_effectiveness_unknown_fast(self):
        result = runner.invoke(app, ["effectiveness", "404"])
        assert result.exit_code == 0
        assert "couldn't find" in result.output

    def test_analytics_json(self, completed_fast):
        data = invoke_json(["analytics", "--days", "30"])["data"]
        assert data["fast_effectiveness"]["fast_id"] == completed_fast
        assert data["rolling_insights"]["protocols"][0]["label"] == "24h Reset"
        assert data["retention"]["status"] == "waiting"

    def test_analytics_table(self, completed_fast):
        result = runner.invoke(app, ["analytics"])
        assert result.exit_code == 0
        assert "24h Reset" in result.output

    def test_analytics_empty(self):
        result = runner.invoke(app, ["analytics"])
        assert result.exit_code == 0
        assert "Complete a fast" in result.output


class TestOutputFormat:
    def test_configured_json_default(self, cli_settings, completed_fast):
        cli_settings.defaults.output_format = "json"
        result = runner.invoke(app, ["effectiveness", str(completed_fast)])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["command"] == "effectiveness"
        assert data["data"]["total_weight_lost"] == 3.0

    def test_configured_json_errors(self, cli_settings):
        cli_settings.defaults.output_format = "json"
        result = runner.invoke(app, ["fast", "end", "404"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["success"] is False

    def test_table_default(self, completed_fast):
        result = runner.invoke(app, ["fast", "list"])
        assert result.exit_code == 0
        with pytest.raises(json.JSONDecodeError):
            json.loads(result.stdout)
