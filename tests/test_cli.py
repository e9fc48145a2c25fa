import json
import os
from types import SimpleNamespace

import pytest

import cli
from conftest import FakeControl, FakeTimezone, FakeWeather, stack_files
from dsu import journal, orchestrator
from dsu.settings import Settings


@pytest.fixture
def stack(tmp_path, monkeypatch):
    for name, text in stack_files().items():
        p = tmp_path / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text)

    control = FakeControl()
    s = Settings(stack_dir=str(tmp_path), echo=False, poll_interval_s=0)
    monkeypatch.setattr(cli, "settings", s)
    monkeypatch.setattr(cli, "DockerServiceControl", lambda stack_dir: control)
    monkeypatch.setattr(cli, "TimezoneHelper", lambda stack_dir: FakeTimezone())
    monkeypatch.setattr(cli, "WeatherSetup", lambda stack_dir: FakeWeather(available=False))
    monkeypatch.setattr(orchestrator, "check_status", lambda url, status, timeout: (True, "Ready"))
    monkeypatch.setattr(os, "geteuid", lambda: 1000)
    return SimpleNamespace(path=tmp_path, control=control)


@pytest.mark.parametrize(
    "answer,expected",
    [("y", True), ("YES", True), (" yes ", True), ("", False), ("n", False), ("yep", False)],
)
def test_prompt_yes_no(monkeypatch, answer, expected):
    monkeypatch.setattr("builtins.input", lambda prompt: answer)
    assert cli.prompt_yes_no("Proceed?") is expected


def test_prompt_without_terminal_is_no(monkeypatch):
    def no_tty(prompt):
        raise EOFError

    monkeypatch.setattr("builtins.input", no_tty)
    assert cli.prompt_yes_no("Proceed?") is False


def test_upgrade_completes(stack, capsys):
    code = cli.main(["--yes", "--skip-sync", "--json"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Update Dashboard" in out
    report = json.loads(out[out.index("{"):])
    assert report["status"] == "completed"
    assert (stack.path / "influxdb" / "run-once-3.sql.done").read_text() == "OK\n"
    assert (stack.path / "grafana.env").exists()
    assert "PW_STYLE=grafana-dark" in (stack.path / "pypowerwall.env").read_text()


def test_declined_upgrade_exits_zero(stack):
    code = cli.main(["--skip-sync"], confirm=lambda q: False)
    assert code == 0
    assert not (stack.path / "grafana.env").exists()
    assert stack.control.calls == []


def test_missing_credentials_exit_nonzero(stack, capsys):
    (stack.path / "pypowerwall.env").unlink()
    code = cli.main(["--yes", "--skip-sync"])
    err = capsys.readouterr().err
    assert code == 1
    assert "Missing pypowerwall.env" in err
    assert "setup" in err


def test_root_is_refused(stack, monkeypatch, capsys):
    monkeypatch.setattr(os, "geteuid", lambda: 0)
    code = cli.main(["--yes", "--skip-sync"])
    assert code == 1
    assert "root" in capsys.readouterr().err
    assert not (stack.path / "grafana.env").exists()


def test_events_lists_journal(capsys):
    journal.log_event("INFO", "hello from a test", step="unit")
    code = cli.main(["--events", "1"])
    events = json.loads(capsys.readouterr().out)
    assert code == 0
    assert events[0]["message"] == "hello from a test"
