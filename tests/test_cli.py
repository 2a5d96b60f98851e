"""CLI tests — option handling for the maintenance commands."""

from datetime import timedelta

from click.testing import CliRunner

from eventhub.cli import main as cli_main
from eventhub.config import settings


def _run_prune(monkeypatch, *args):
    seen = []

    async def fake_prune(retention):
        seen.append(retention)
        return 2

    monkeypatch.setattr(cli_main, "_prune", fake_prune)
    result = CliRunner().invoke(cli_main.cli, ["prune", *args])
    return result, seen


def test_prune_older_than_zero_is_honoured(monkeypatch):
    result, seen = _run_prune(monkeypatch, "--older-than", "0")
    assert result.exit_code == 0, result.output
    assert seen == [timedelta(0)]
    assert "Pruned 2 change record(s)" in result.output


def test_prune_defaults_to_configured_retention(monkeypatch):
    result, seen = _run_prune(monkeypatch)
    assert result.exit_code == 0, result.output
    assert seen == [timedelta(seconds=settings.change_retention_seconds)]


def test_prune_rejects_negative_retention(monkeypatch):
    result, seen = _run_prune(monkeypatch, "--older-than", "-5")
    assert result.exit_code != 0
    assert seen == []
