"""Tests for the developer CLI."""

from contextlib import contextmanager

import pytest
from typer.testing import CliRunner

import remend.cli as cli

runner = CliRunner()


@pytest.fixture
def cli_session(seeded_session, monkeypatch):
    """Route CLI sessions to the test database."""

    @contextmanager
    def _session():
        yield seeded_session
        seeded_session.flush()

    monkeypatch.setattr(cli, "get_session", _session)
    monkeypatch.setattr(cli, "setup_logger_from_settings", lambda: None)
    monkeypatch.setattr(cli, "formatter_from_settings", lambda: None)
    monkeypatch.setattr(cli, "weekly_summary_formatter_from_settings", lambda: None)
    cli._advice_cache.clear()
    return seeded_session


def test_create_program_and_log(cli_session):
    created = runner.invoke(cli.app, ["create-program", "--user-id", "u1", "--area", "knee", "--start", "2026-03-01"])
    assert created.exit_code == 0, created.output
    assert "Program 1 created" in created.output

    logged = runner.invoke(cli.app, ["log", "--program-id", "1", "--pain", "5", "--stiffness", "3", "--date", "2026-03-01"])
    assert logged.exit_code == 0, logged.output
    assert "Recorded log" in logged.output
    assert "Gentle Walking" in logged.output

    adherence = runner.invoke(cli.app, ["adherence", "--program-id", "1"])
    assert adherence.exit_code == 0, adherence.output
    assert "streak 1" in adherence.output


def test_second_active_program_is_rejected(cli_session):
    runner.invoke(cli.app, ["create-program", "--user-id", "u1", "--area", "knee"])

    result = runner.invoke(cli.app, ["create-program", "--user-id", "u1", "--area", "ankle"])

    assert result.exit_code == 1
    assert "already has an active program" in result.output


def test_log_for_unknown_program_fails(cli_session):
    result = runner.invoke(cli.app, ["log", "--program-id", "99", "--pain", "5", "--stiffness", "3"])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_weekly_summary_is_generated_once(cli_session):
    runner.invoke(cli.app, ["create-program", "--user-id", "u1", "--area", "knee"])
    runner.invoke(cli.app, ["log", "--program-id", "1", "--pain", "5", "--stiffness", "3"])

    first = runner.invoke(cli.app, ["weekly-summary", "--program-id", "1"])
    second = runner.invoke(cli.app, ["weekly-summary", "--program-id", "1"])

    assert first.exit_code == 0, first.output
    assert "Weekly summary (fallback)" in first.output
    assert "Thanks for staying consistent" in first.output
    assert "not due yet" in second.output
