"""Tests for the command-line entrypoint."""

import json

import pytest
from structlog.testing import capture_logs

from mindful_pulse import main as cli


@pytest.fixture(autouse=True)
def logs(monkeypatch):
    """Keep log lines out of stdout so the command output can be parsed."""
    monkeypatch.setattr(cli, "setup_logging", lambda level: None)
    with capture_logs() as captured:
        yield captured


def test_show_settings_prints_defaults(capsys, logs):
    cli.main(["show-settings"])
    assert any(entry["event"] == "settings_store.defaults" for entry in logs)
    payload = json.loads(capsys.readouterr().out)
    assert payload == {
        "collectionEnabled": False,
        "lastUpdated": None,
        "preferences": {
            "syncFrequency": "hourly",
            "notificationsEnabled": True,
            "privacyMode": False,
        },
    }


def test_init_db_creates_database(tmp_path, capsys):
    cli.main(["init-db"])
    assert "Database tables created." in capsys.readouterr().out
    assert (tmp_path / "test.db").exists()


def test_no_command_exits_with_help():
    with pytest.raises(SystemExit) as info:
        cli.main([])
    assert info.value.code == 1
