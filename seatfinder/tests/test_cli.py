"""Tests for the seat CLI."""

import sys

import pytest
from click.testing import CliRunner
from loguru import logger

from seatfinder.cli.seat import cli


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("SEATFINDER_SHEET_ID", raising=False)
    monkeypatch.delenv("SEATFINDER_LOG_LEVEL", raising=False)
    yield
    # The CLI points loguru at the runner's stderr; restore the default sink.
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def guest_csv(tmp_path):
    path = tmp_path / "guests.csv"
    path.write_text(
        "First,Last,Table,Photo\n"
        "John,Smith,5,\n"
        "Anna,Lee,2,anna.png\n"
        ",Nobody,3,\n"
    )
    return str(path)


def test_find(guest_csv):
    result = CliRunner().invoke(cli, ["find", "jhon smith", "--csv", guest_csv])

    assert result.exit_code == 0, result.output
    assert "John Smith" in result.output
    assert "5" in result.output


def test_find_no_results(guest_csv):
    result = CliRunner().invoke(cli, ["find", "zzyxw qqrst", "--csv", guest_csv])

    assert result.exit_code == 0
    assert "No guests found" in result.output


def test_check(guest_csv):
    result = CliRunner().invoke(cli, ["check", "--csv", guest_csv])

    assert result.exit_code == 0, result.output
    assert "Loaded 2 guest(s)" in result.output
    assert "Dropped rows: 1" in result.output


def test_invalid_threshold(guest_csv):
    result = CliRunner().invoke(cli, ["find", "john", "--csv", guest_csv, "--threshold", "2"])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_missing_source():
    result = CliRunner().invoke(cli, ["find", "john"])

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_unreadable_csv(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_bytes(b"First,Last\n\xff\xfe\xfa,bad,1\n")

    result = CliRunner().invoke(cli, ["check", "--csv", str(path)])

    assert result.exit_code == 1
    assert "Unable to load guest list" in result.output


@pytest.mark.parametrize("content", ["matcher: [unclosed\n", "- just\n- a list\n"])
def test_bad_config_file(guest_csv, tmp_path, content):
    path = tmp_path / "seatfinder-bad.yaml"
    path.write_text(content)

    result = CliRunner().invoke(cli, ["find", "john", "--config", str(path), "--csv", guest_csv])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Configuration error" in result.output
